"""Prior authorization request model."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Set
from uuid import uuid4

from .audit import AuditEntry, VersionedEntity
from .enums import AuthorizationStatus, RuleContext


@dataclass
class Signatures:
    """Signature capture state on the authorization form."""
    patient_signed: bool = False
    provider_signed: bool = False


@dataclass
class AuthorizationRequest(VersionedEntity):
    """
    A pre-approval request sent to the payer.

    Only the length of the clinical justification is kept; the engine
    validates its size and never needs the text.
    """
    id: str = field(default_factory=lambda: str(uuid4()))
    patient_id: str = ""
    payer: str = "Daman"
    status: AuthorizationStatus = AuthorizationStatus.DRAFT
    context: RuleContext = RuleContext.STANDARD

    # Assigned on first successful submission, immutable afterwards
    reference_number: Optional[str] = None

    requested_services: Set[str] = field(default_factory=set)
    requested_duration_days: int = 0
    clinical_justification_length: int = 0
    documents: Set[str] = field(default_factory=set)
    signatures: Signatures = field(default_factory=Signatures)
    payment_terms: str = "30_days"

    submission_timestamp: Optional[datetime] = None
    review_deadline: Optional[datetime] = None
    last_updated: Optional[datetime] = None

    version: int = 1
    history: List[AuditEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            key: self._value_to_primitive(value)
            for key, value in self.__dict__.items()
        }
