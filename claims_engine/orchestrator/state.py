"""Events, override flags and results exchanged with the state machines."""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, FrozenSet, List, Optional, Union

from claims_engine.models.enums import AppealEventType, TransitionErrorKind, TransitionEventType
from claims_engine.models.violations import Violation


@dataclass(frozen=True)
class PaymentDetails:
    """Money received from the payer."""
    amount: Decimal
    reference: Optional[str] = None
    payment_date: Optional[datetime] = None


@dataclass(frozen=True)
class TransitionEvent:
    """
    An event offered to a state machine.

    Only the payload fields relevant to ``type`` are read: ``reference_number``
    on submit, ``documents`` on provide_info, ``payment`` on payment events and
    appeal resolution, ``reason``/``denial_code`` on reject. ``denial`` is the
    resolved DenialRecord that authorizes appeal_resolved on a rejected claim.
    """
    type: Union[TransitionEventType, AppealEventType]
    reference_number: Optional[str] = None
    documents: FrozenSet[str] = frozenset()
    payment: Optional[PaymentDetails] = None
    reason: Optional[str] = None
    denial_code: Optional[str] = None
    denial: Optional[Any] = None
    actor: str = "system"


@dataclass(frozen=True)
class OverrideFlags:
    """Explicit caller decisions that replace interactive confirmations."""
    override_deadline: bool = False


@dataclass
class TransitionError:
    """Why a transition was refused. Returned, never raised."""
    kind: TransitionErrorKind
    message: str
    violations: List[Violation] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "violations": [v.model_dump(mode="json") for v in self.violations],
        }


@dataclass
class TransitionResult:
    """
    Result of attempting a transition.

    On success ``entity`` is the new version; on refusal it is the
    untouched input and ``error`` says why. ``violations`` carries every
    finding from validation, advisories included, so callers can show
    them before proceeding.
    """
    entity: Any
    error: Optional[TransitionError] = None
    violations: List[Violation] = field(default_factory=list)
    payment_record: Optional[Any] = None
    denial_record: Optional[Any] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def advisories(self) -> List[Violation]:
        return [v for v in self.violations if not v.is_blocking]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "ok": self.ok,
            "entity": self.entity.to_dict(),
            "error": self.error.to_dict() if self.error else None,
            "violations": [v.model_dump(mode="json") for v in self.violations],
            "payment_record": self.payment_record.model_dump(mode="json") if self.payment_record else None,
            "denial_record": self.denial_record.to_dict() if self.denial_record else None,
        }


def refused(entity: Any, kind: TransitionErrorKind, message: str,
            violations: Optional[List[Violation]] = None) -> TransitionResult:
    """Build a refusal result that leaves ``entity`` unchanged."""
    violations = violations or []
    return TransitionResult(
        entity=entity,
        error=TransitionError(kind=kind, message=message, violations=violations),
        violations=violations,
    )
