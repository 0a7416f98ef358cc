"""Payment reconciliation record."""
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator

from claims_engine.exceptions import ReconciliationInvariantError
from .enums import ReconciliationStatus


class PaymentRecord(BaseModel):
    """A received payment matched against the amount that was expected."""
    id: str = Field(default_factory=lambda: str(uuid4()))
    claim_id: str = Field(..., description="Claim this payment belongs to")
    payment_amount: Decimal = Field(..., description="Amount actually received")
    expected_amount: Decimal = Field(..., description="Amount that was expected")
    variance: Decimal = Field(..., description="payment_amount - expected_amount")
    variance_percentage: float = Field(..., description="Variance as a percentage of the expected amount")
    reconciliation_status: ReconciliationStatus
    payment_reference: Optional[str] = None
    recorded_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _status_matches_variance(self) -> "PaymentRecord":
        if self.variance != self.payment_amount - self.expected_amount:
            raise ReconciliationInvariantError(
                f"variance {self.variance} does not equal payment - expected"
            )
        is_reconciled = self.reconciliation_status == ReconciliationStatus.RECONCILED
        if is_reconciled != (self.variance == 0):
            raise ReconciliationInvariantError(
                f"status {self.reconciliation_status.value} contradicts variance {self.variance}"
            )
        return self

    def mark_disputed(self) -> "PaymentRecord":
        """Return a copy flagged as disputed. Only unreconciled records can be disputed."""
        return PaymentRecord(
            **{**self.model_dump(), "reconciliation_status": ReconciliationStatus.DISPUTED}
        )
