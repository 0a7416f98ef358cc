"""Reconciliation API routes."""
from fastapi import APIRouter

from claims_engine.api.requests import ReconcileRequest
from claims_engine.services.reconciliation import ReconciliationResult, reconcile

router = APIRouter(tags=["Reconciliation"])


@router.post("/reconcile", response_model=ReconciliationResult)
async def reconcile_amounts(request: ReconcileRequest):
    """Reconcile an expected amount against the amount actually received."""
    return reconcile(request.expected_amount, request.actual_amount)
