"""Claim and service line models."""
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Set
from uuid import uuid4

from .audit import AuditEntry, VersionedEntity
from .enums import ClaimStatus, RuleContext
from claims_engine.exceptions import ClaimNotEditableError

EDITABLE_CLAIM_STATUSES = frozenset({ClaimStatus.DRAFT, ClaimStatus.RETURNED})


@dataclass
class DateRange:
    """Inclusive range of service dates."""
    start: date
    end: date

    @property
    def is_ordered(self) -> bool:
        return self.start <= self.end


@dataclass
class ServiceLine:
    """One billed service on a claim."""
    service_code: str = ""
    quantity: int = 1
    unit_price: Decimal = Decimal("0")
    provider_id: str = ""
    date_range: Optional[DateRange] = None
    line_id: str = field(default_factory=lambda: str(uuid4()))

    @property
    def total_amount(self) -> Decimal:
        return Decimal(self.quantity) * Decimal(self.unit_price)


@dataclass
class Claim(VersionedEntity):
    """
    A request for payment for services already delivered.

    ``claimed_amount`` is derived from the current service lines on every
    read so it can never drift from them.
    """
    id: str = field(default_factory=lambda: str(uuid4()))
    claim_number: str = ""
    patient_id: str = ""
    payer: str = "Daman"
    # Weak reference: lookup only
    authorization_reference: Optional[str] = None
    status: ClaimStatus = ClaimStatus.DRAFT
    context: RuleContext = RuleContext.STANDARD

    service_lines: List[ServiceLine] = field(default_factory=list)
    documents: Set[str] = field(default_factory=set)

    # Present only once status is partial or paid
    paid_amount: Decimal = Decimal("0")
    payment_date: Optional[datetime] = None
    payment_reference: Optional[str] = None

    submission_timestamp: Optional[datetime] = None
    last_updated: Optional[datetime] = None

    version: int = 1
    history: List[AuditEntry] = field(default_factory=list)

    @property
    def claimed_amount(self) -> Decimal:
        return sum((line.total_amount for line in self.service_lines), Decimal("0"))

    @property
    def outstanding_amount(self) -> Decimal:
        return self.claimed_amount - self.paid_amount

    @property
    def provider_ids(self) -> List[str]:
        """Distinct providers in order of first appearance."""
        seen = []
        for line in self.service_lines:
            if line.provider_id and line.provider_id not in seen:
                seen.append(line.provider_id)
        return seen

    # Service line editing

    def _editable_copy(self) -> "Claim":
        if self.status not in EDITABLE_CLAIM_STATUSES:
            raise ClaimNotEditableError(
                f"Claim {self.id} is {self.status.value}; service lines can only change in draft or returned"
            )
        return self.next_version()

    def add_service_line(self, line: ServiceLine) -> "Claim":
        """Return a new version with ``line`` appended."""
        new_claim = self._editable_copy()
        new_claim.service_lines.append(line)
        return new_claim

    def update_service_line(self, line_id: str, **changes: Any) -> "Claim":
        """Return a new version with the fields of one line replaced."""
        new_claim = self._editable_copy()
        for line in new_claim.service_lines:
            if line.line_id == line_id:
                for name, value in changes.items():
                    if not hasattr(line, name) or name in ("line_id", "total_amount"):
                        raise AttributeError(f"ServiceLine has no editable field {name!r}")
                    setattr(line, name, value)
                return new_claim
        raise KeyError(line_id)

    def remove_service_line(self, line_id: str) -> "Claim":
        """Return a new version without the given line."""
        new_claim = self._editable_copy()
        remaining = [line for line in new_claim.service_lines if line.line_id != line_id]
        if len(remaining) == len(new_claim.service_lines):
            raise KeyError(line_id)
        new_claim.service_lines = remaining
        return new_claim

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        data = {
            key: self._value_to_primitive(value)
            for key, value in self.__dict__.items()
            if key != "service_lines"
        }
        data["service_lines"] = [
            {**self._value_to_primitive(line), "total_amount": str(line.total_amount)}
            for line in self.service_lines
        ]
        data["claimed_amount"] = str(self.claimed_amount)
        return data
