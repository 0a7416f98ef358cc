"""Denial record model for the appeal sub-flow."""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import uuid4

from .audit import AuditEntry, VersionedEntity
from .enums import AppealStatus

TERMINAL_APPEAL_STATUSES = frozenset({AppealStatus.RESOLVED, AppealStatus.REJECTED})


@dataclass
class DenialRecord(VersionedEntity):
    """A payer denial of a claim and the state of its appeal."""
    claim_id: str
    denial_date: datetime
    appeal_deadline: datetime
    denial_reason: str = ""
    denial_code: str = ""
    denial_amount: Decimal = Decimal("0")
    payer: str = "Daman"
    id: str = field(default_factory=lambda: str(uuid4()))
    appeal_status: AppealStatus = AppealStatus.NOT_STARTED
    appeal_submission_date: Optional[datetime] = None
    resolution_amount: Optional[Decimal] = None
    last_updated: Optional[datetime] = None

    version: int = 1
    history: List[AuditEntry] = field(default_factory=list)

    # The shared transition helpers work on ``status``
    @property
    def status(self) -> AppealStatus:
        return self.appeal_status

    @status.setter
    def status(self, value: AppealStatus) -> None:
        self.appeal_status = value

    @property
    def is_terminal(self) -> bool:
        return self.appeal_status in TERMINAL_APPEAL_STATUSES

    def deadline_passed(self, now: datetime) -> bool:
        return now > self.appeal_deadline

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            key: self._value_to_primitive(value)
            for key, value in self.__dict__.items()
        }
