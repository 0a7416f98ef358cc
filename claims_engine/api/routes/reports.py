"""Dashboard reporting API routes."""
from fastapi import APIRouter

from claims_engine.api.requests import SummaryRequest
from claims_engine.services.aggregation import SummaryReport, aggregate

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.post("/summary", response_model=SummaryReport)
async def summary_report(request: SummaryRequest):
    """
    Summarize a collection of claims, authorizations and denials.

    Args:
        request: Entity snapshots and an optional ``as_of`` time for aging

    Returns:
        Status counts, aging buckets, payer rollups and appeal statistics
    """
    return aggregate(request.entities(), as_of=request.as_of)
