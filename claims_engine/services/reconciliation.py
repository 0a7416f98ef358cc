"""Reconciliation calculator: expected vs actual amounts."""
from datetime import datetime
from decimal import Decimal
from typing import Optional, Union

from pydantic import BaseModel, Field

from claims_engine.config.logging_config import get_logger
from claims_engine.models.enums import (
    EscalationLevel,
    PerformanceStatus,
    ReconciliationStatus,
    VarianceCategory,
)
from claims_engine.models.payment import PaymentRecord

logger = get_logger(__name__)

Amount = Union[Decimal, int, float, str]

# A variance within this share of the expected amount counts as contractual
CONTRACTUAL_BAND = Decimal("0.10")


class ReconciliationResult(BaseModel):
    """Outcome of matching an expected amount against an actual one."""
    expected_amount: Decimal
    actual_amount: Decimal
    variance: Decimal = Field(..., description="actual - expected")
    variance_percentage: float = Field(..., description="variance / expected * 100, 0 when expected is 0")
    status: ReconciliationStatus
    performance: PerformanceStatus
    category: VarianceCategory
    escalation: EscalationLevel


def _to_decimal(value: Amount) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def variance_percentage(expected: Amount, actual: Amount) -> float:
    """Variance as a percentage of the expected amount."""
    expected_amount = _to_decimal(expected)
    if expected_amount == 0:
        return 0.0
    variance = _to_decimal(actual) - expected_amount
    return float(variance / expected_amount * 100)


def classify_performance(percentage: float) -> PerformanceStatus:
    """
    Classify a KPI variance percentage.

    Every band is inclusive on its lower edge: 10 exceeds, 0 meets,
    -10 is below, anything under -10 is critical.
    """
    if percentage >= 10:
        return PerformanceStatus.EXCEEDS
    if percentage >= 0:
        return PerformanceStatus.MEETS
    if percentage >= -10:
        return PerformanceStatus.BELOW
    return PerformanceStatus.CRITICAL


def categorize_variance(expected: Amount, actual: Amount) -> VarianceCategory:
    """Bucket a variance as contractual, underpayment or overpayment."""
    expected_amount = _to_decimal(expected)
    variance = _to_decimal(actual) - expected_amount
    band = abs(expected_amount) * CONTRACTUAL_BAND
    if variance < 0 and abs(variance) > band:
        return VarianceCategory.UNDERPAYMENT
    if variance > 0 and variance > band:
        return VarianceCategory.OVERPAYMENT
    return VarianceCategory.CONTRACTUAL


def escalation_level(expected: Amount, actual: Amount) -> EscalationLevel:
    """Sign-off level for a variance, by its absolute share of the expected amount."""
    expected_amount = _to_decimal(expected)
    if expected_amount == 0:
        return EscalationLevel.NONE
    share = abs(_to_decimal(actual) - expected_amount) / abs(expected_amount)
    if share <= Decimal("0.05"):
        return EscalationLevel.NONE
    if share <= Decimal("0.15"):
        return EscalationLevel.SUPERVISOR
    if share <= Decimal("0.30"):
        return EscalationLevel.MANAGER
    return EscalationLevel.EXECUTIVE


def reconcile(expected: Amount, actual: Amount) -> ReconciliationResult:
    """
    Reconcile an actual amount against the expected amount.

    Args:
        expected: Amount that should have been received
        actual: Amount that was received

    Returns:
        ReconciliationResult; status is reconciled only when the variance is exactly zero
    """
    expected_amount = _to_decimal(expected)
    actual_amount = _to_decimal(actual)
    variance = actual_amount - expected_amount
    percentage = variance_percentage(expected_amount, actual_amount)

    result = ReconciliationResult(
        expected_amount=expected_amount,
        actual_amount=actual_amount,
        variance=variance,
        variance_percentage=percentage,
        status=ReconciliationStatus.RECONCILED if variance == 0 else ReconciliationStatus.UNRECONCILED,
        performance=classify_performance(percentage),
        category=categorize_variance(expected_amount, actual_amount),
        escalation=escalation_level(expected_amount, actual_amount),
    )

    logger.debug(
        "Reconciled amounts",
        expected=str(expected_amount),
        actual=str(actual_amount),
        variance=str(variance),
        status=result.status.value,
    )
    return result


def build_payment_record(
    claim_id: str,
    expected: Amount,
    actual: Amount,
    payment_reference: Optional[str] = None,
    recorded_at: Optional[datetime] = None,
) -> PaymentRecord:
    """Create a PaymentRecord from a fresh reconciliation."""
    result = reconcile(expected, actual)
    return PaymentRecord(
        claim_id=claim_id,
        payment_amount=result.actual_amount,
        expected_amount=result.expected_amount,
        variance=result.variance,
        variance_percentage=result.variance_percentage,
        reconciliation_status=result.status,
        payment_reference=payment_reference,
        recorded_at=recorded_at,
    )
