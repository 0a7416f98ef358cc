"""Aggregation reporter: read-side projections for dashboards.

Every function here is pure. Input order never affects output: sums are
exact Decimals and all listings are emitted in a fixed order.
"""
from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

from claims_engine.config.logging_config import get_logger
from claims_engine.models.authorization import AuthorizationRequest
from claims_engine.models.claim import Claim
from claims_engine.models.denial import DenialRecord
from claims_engine.models.enums import AppealStatus, AuthorizationStatus, ClaimStatus

logger = get_logger(__name__)

# (label, min days, max days); None means open-ended
AGING_BUCKETS: Tuple[Tuple[str, int, Optional[int]], ...] = (
    ("0-30", 0, 30),
    ("31-60", 31, 60),
    ("61-90", 61, 90),
    ("91-120", 91, 120),
    ("120+", 121, None),
)

OUTSTANDING_CLAIM_STATUSES = frozenset({
    ClaimStatus.PENDING,
    ClaimStatus.IN_REVIEW,
    ClaimStatus.APPROVED,
    ClaimStatus.PARTIAL,
    ClaimStatus.RETURNED,
})


class StatusCount(BaseModel):
    """Entities in one status."""
    status: str
    count: int
    percentage: float


class AgingBucket(BaseModel):
    """Outstanding claims whose age falls in one day range."""
    label: str
    min_days: int
    max_days: Optional[int] = None
    count: int = 0
    amount: Decimal = Decimal("0")
    percentage: float = Field(default=0.0, description="Share of the total outstanding amount")


class PayerRollup(BaseModel):
    """Claim performance for a single payer."""
    payer: str
    claims_count: int
    total_amount: Decimal
    paid_amount: Decimal
    average_days_to_payment: float
    denial_rate: float
    collection_rate: float


class AppealSummary(BaseModel):
    """Denial and appeal statistics."""
    total_denials: int
    total_denied_amount: Decimal
    status_counts: List[StatusCount]
    success_rate: float


class SummaryReport(BaseModel):
    """Dashboard metrics derived from a snapshot of the collection."""
    as_of: Optional[datetime] = None
    claim_count: int
    authorization_count: int
    claim_status_counts: List[StatusCount]
    authorization_status_counts: List[StatusCount]
    total_claimed: Decimal
    total_paid: Decimal
    total_outstanding: Decimal
    collection_rate: float
    denial_rate: float
    average_days_to_payment: float
    aging_buckets: List[AgingBucket]
    payer_rollups: List[PayerRollup]
    appeals: AppealSummary


def _rate(numerator, denominator) -> float:
    """Percentage with a zero-denominator guard."""
    if not denominator:
        return 0.0
    return round(float(Decimal(numerator) / Decimal(denominator) * 100), 2)


def _mean(total: int, count: int) -> float:
    if not count:
        return 0.0
    return round(float(Decimal(total) / Decimal(count)), 2)


def status_counts(statuses: Sequence, enum_cls) -> List[StatusCount]:
    """Count per status, in enum declaration order, with percentage of total."""
    total = len(statuses)
    counts = {member: 0 for member in enum_cls}
    for status in statuses:
        counts[enum_cls(status)] += 1
    return [
        StatusCount(status=member.value, count=count, percentage=_rate(count, total))
        for member, count in counts.items()
    ]


def _days_between(start: Optional[datetime], end: Optional[datetime]) -> Optional[int]:
    if start is None or end is None:
        return None
    return max((end - start).days, 0)


def aging_buckets(claims: Iterable[Claim], as_of: Optional[datetime]) -> List[AgingBucket]:
    """Bucket outstanding claims by days since submission."""
    buckets = [
        AgingBucket(label=label, min_days=low, max_days=high)
        for label, low, high in AGING_BUCKETS
    ]
    for claim in claims:
        if claim.status not in OUTSTANDING_CLAIM_STATUSES:
            continue
        age = _days_between(claim.submission_timestamp, as_of)
        if age is None:
            continue
        for bucket in buckets:
            if bucket.max_days is None or age <= bucket.max_days:
                bucket.count += 1
                bucket.amount += claim.outstanding_amount
                break

    total_amount = sum((b.amount for b in buckets), Decimal("0"))
    for bucket in buckets:
        bucket.percentage = _rate(bucket.amount, total_amount)
    return buckets


def average_days_to_payment(claims: Iterable[Claim]) -> float:
    """Mean days from submission to the latest payment, over claims that were paid."""
    total_days = 0
    paid_count = 0
    for claim in claims:
        days = _days_between(claim.submission_timestamp, claim.payment_date)
        if days is not None:
            total_days += days
            paid_count += 1
    return _mean(total_days, paid_count)


def payer_rollups(claims: Iterable[Claim]) -> List[PayerRollup]:
    """Per-payer totals, sorted by payer name."""
    by_payer: Dict[str, List[Claim]] = defaultdict(list)
    for claim in claims:
        by_payer[claim.payer].append(claim)

    rollups = []
    for payer in sorted(by_payer):
        payer_claims = by_payer[payer]
        total_amount = sum((c.claimed_amount for c in payer_claims), Decimal("0"))
        paid_amount = sum((c.paid_amount for c in payer_claims), Decimal("0"))
        denied = sum(1 for c in payer_claims if c.status == ClaimStatus.REJECTED)
        rollups.append(PayerRollup(
            payer=payer,
            claims_count=len(payer_claims),
            total_amount=total_amount,
            paid_amount=paid_amount,
            average_days_to_payment=average_days_to_payment(payer_claims),
            denial_rate=_rate(denied, len(payer_claims)),
            collection_rate=_rate(paid_amount, total_amount),
        ))
    return rollups


def appeal_summary(denials: Sequence[DenialRecord]) -> AppealSummary:
    """Appeal counts and success rate = resolved / (resolved + submitted)."""
    counts = status_counts([d.appeal_status for d in denials], AppealStatus)
    by_status = {c.status: c.count for c in counts}
    resolved = by_status[AppealStatus.RESOLVED.value]
    submitted = by_status[AppealStatus.SUBMITTED.value]
    return AppealSummary(
        total_denials=len(denials),
        total_denied_amount=sum((d.denial_amount for d in denials), Decimal("0")),
        status_counts=counts,
        success_rate=_rate(resolved, resolved + submitted),
    )


def _latest_update(entities: Iterable) -> Optional[datetime]:
    stamps = [e.last_updated for e in entities if e.last_updated is not None]
    return max(stamps) if stamps else None


def aggregate(entities: Iterable, as_of: Optional[datetime] = None) -> SummaryReport:
    """
    Build the dashboard summary for a collection.

    Args:
        entities: Any mix of claims, authorization requests and denial records
        as_of: Reference time for aging; defaults to the latest ``last_updated`` in the collection

    Returns:
        SummaryReport; inputs are not modified
    """
    claims: List[Claim] = []
    authorizations: List[AuthorizationRequest] = []
    denials: List[DenialRecord] = []
    for entity in entities:
        if isinstance(entity, Claim):
            claims.append(entity)
        elif isinstance(entity, AuthorizationRequest):
            authorizations.append(entity)
        elif isinstance(entity, DenialRecord):
            denials.append(entity)
        else:
            raise TypeError(f"Cannot aggregate {type(entity).__name__}")

    if as_of is None:
        as_of = _latest_update([*claims, *authorizations, *denials])

    total_claimed = sum((c.claimed_amount for c in claims), Decimal("0"))
    total_paid = sum((c.paid_amount for c in claims), Decimal("0"))
    rejected = sum(1 for c in claims if c.status == ClaimStatus.REJECTED)
    buckets = aging_buckets(claims, as_of)

    report = SummaryReport(
        as_of=as_of,
        claim_count=len(claims),
        authorization_count=len(authorizations),
        claim_status_counts=status_counts([c.status for c in claims], ClaimStatus),
        authorization_status_counts=status_counts([a.status for a in authorizations], AuthorizationStatus),
        total_claimed=total_claimed,
        total_paid=total_paid,
        total_outstanding=sum((b.amount for b in buckets), Decimal("0")),
        collection_rate=_rate(total_paid, total_claimed),
        denial_rate=_rate(rejected, len(claims)),
        average_days_to_payment=average_days_to_payment(claims),
        aging_buckets=buckets,
        payer_rollups=payer_rollups(claims),
        appeals=appeal_summary(denials),
    )

    logger.info(
        "Summary report generated",
        claims=len(claims),
        authorizations=len(authorizations),
        denials=len(denials),
    )
    return report
