"""Lifecycle state machine for authorization requests and claims."""
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Union

from claims_engine.config.logging_config import get_logger
from claims_engine.exceptions import ConcurrentTransitionError
from claims_engine.models.authorization import AuthorizationRequest
from claims_engine.models.claim import Claim
from claims_engine.models.denial import DenialRecord
from claims_engine.models.enums import (
    AppealStatus,
    ClaimStatus,
    Severity,
    TransitionErrorKind,
    TransitionEventType,
    ViolationCode,
)
from claims_engine.models.license import ClinicianLicense
from claims_engine.models.violations import Violation
from claims_engine.orchestrator.denial_flow import attempt_appeal_transition, open_denial
from claims_engine.orchestrator.state import (
    OverrideFlags,
    TransitionEvent,
    TransitionResult,
    refused,
)
from claims_engine.orchestrator.transitions import (
    AUTHORIZATION_TRANSITIONS,
    CLAIM_TRANSITIONS,
    PAYMENT_EVENTS,
    SUBMISSION_EVENTS,
)
from claims_engine.services.reconciliation import build_payment_record
from claims_engine.validation.validator import SubmissionValidator, get_validator

logger = get_logger(__name__)

Entity = Union[AuthorizationRequest, Claim, DenialRecord]
TransitionHandler = Callable[[TransitionResult], None]


class LifecycleStateMachine:
    """
    Owns the canonical states and transitions.

    A transition is refused, leaving the entity untouched, when the event
    is not defined for the current state or when a submission-triggering
    event meets blocking violations. Accepted transitions return a new
    entity version with an audit entry appended.
    """

    def __init__(self, validator: Optional[SubmissionValidator] = None):
        self._validator = validator or get_validator()
        self._event_handlers: Dict[str, List[TransitionHandler]] = {}

    def register_event_handler(self, event_type: str, handler: TransitionHandler) -> None:
        """Call ``handler`` with the result of every accepted ``event_type`` transition."""
        if event_type not in self._event_handlers:
            self._event_handlers[event_type] = []
        self._event_handlers[event_type].append(handler)

    def attempt_transition(
        self,
        entity: Entity,
        event: TransitionEvent,
        now: datetime,
        override_flags: Optional[OverrideFlags] = None,
        licenses: Optional[Mapping[str, ClinicianLicense]] = None,
    ) -> TransitionResult:
        """
        Attempt to apply ``event`` to ``entity``.

        Args:
            entity: Authorization request, claim or denial record
            event: Event to apply
            now: Caller-supplied time of the attempt
            override_flags: Explicit caller overrides (appeal deadline)
            licenses: Clinician licenses keyed by provider id, for claim validation

        Returns:
            TransitionResult with the new entity or the refusal reason
        """
        override_flags = override_flags or OverrideFlags()

        if isinstance(entity, DenialRecord):
            result = attempt_appeal_transition(entity, event, now, override_flags)
        elif isinstance(entity, Claim):
            result = self._attempt_claim(entity, event, now, licenses)
        elif isinstance(entity, AuthorizationRequest):
            result = self._attempt_authorization(entity, event, now)
        else:
            raise TypeError(f"Unsupported entity type: {type(entity).__name__}")

        if result.ok:
            logger.info(
                "Transition accepted",
                entity_id=entity.id,
                event_type=event.type.value,
                from_state=entity.status.value,
                to_state=result.entity.status.value,
                advisories=len(result.advisories),
            )
            for handler in self._event_handlers.get(event.type.value, []):
                handler(result)
        else:
            logger.warning(
                "Transition refused",
                entity_id=entity.id,
                event_type=event.type.value,
                state=entity.status.value,
                reason=result.error.kind.value,
            )
        return result

    # Authorization requests

    def _attempt_authorization(
        self,
        auth: AuthorizationRequest,
        event: TransitionEvent,
        now: datetime,
    ) -> TransitionResult:
        target = AUTHORIZATION_TRANSITIONS[auth.status].get(event.type)
        if target is None:
            return self._invalid_for_state(auth, event)

        candidate = auth
        violations: List[Violation] = []
        if event.type == TransitionEventType.PROVIDE_INFO:
            new_documents = set(event.documents) - auth.documents
            if not new_documents:
                return refused(
                    auth,
                    TransitionErrorKind.BLOCKING_VIOLATIONS_PRESENT,
                    "Additional information requires at least one newly attached document",
                    [Violation(
                        code=ViolationCode.NO_NEW_DOCUMENTS,
                        message="Attach at least one new document before returning to review",
                        severity=Severity.BLOCKING,
                        subject="documents",
                    )],
                )
            candidate = replace(auth, documents=auth.documents | new_documents)

        if event.type in SUBMISSION_EVENTS:
            violations = self._validator.validate(candidate, now)
            if any(v.is_blocking for v in violations):
                return self._blocked(auth, violations)

        new_auth = candidate.record_transition(
            target, now, event.type.value, actor=event.actor, note=event.reason
        )
        if event.type == TransitionEventType.SUBMIT:
            if new_auth.reference_number is None and event.reference_number:
                new_auth.reference_number = event.reference_number
            new_auth.submission_timestamp = now
        return TransitionResult(entity=new_auth, violations=violations)

    # Claims

    def _attempt_claim(
        self,
        claim: Claim,
        event: TransitionEvent,
        now: datetime,
        licenses: Optional[Mapping[str, ClinicianLicense]],
    ) -> TransitionResult:
        target = CLAIM_TRANSITIONS[claim.status].get(event.type)
        if target is None:
            return self._invalid_for_state(claim, event)

        violations: List[Violation] = []
        if event.type in SUBMISSION_EVENTS:
            violations = self._validator.validate(claim, now, licenses=licenses)
            if any(v.is_blocking for v in violations):
                return self._blocked(claim, violations)

        if event.type == TransitionEventType.APPEAL_RESOLVED:
            unresolved = self._unresolved_appeal(claim, event.denial)
            if unresolved is not None:
                return refused(
                    claim,
                    TransitionErrorKind.BLOCKING_VIOLATIONS_PRESENT,
                    "A rejected claim is reopened only by its resolved appeal",
                    [unresolved],
                )

        if event.type in PAYMENT_EVENTS:
            return self._apply_payment(claim, event, target, now)

        new_claim = claim.record_transition(
            target, now, event.type.value, actor=event.actor, note=event.reason
        )
        if new_claim.submission_timestamp is None and event.type == TransitionEventType.SUBMIT:
            new_claim.submission_timestamp = now

        denial = None
        if target == ClaimStatus.REJECTED:
            denial = open_denial(
                new_claim,
                reason=event.reason or "",
                code=event.denial_code or "",
                denial_date=now,
            )
        return TransitionResult(entity=new_claim, violations=violations, denial_record=denial)

    def _apply_payment(
        self,
        claim: Claim,
        event: TransitionEvent,
        target: ClaimStatus,
        now: datetime,
    ) -> TransitionResult:
        payment = event.payment
        if payment is None:
            return refused(
                claim,
                TransitionErrorKind.BLOCKING_VIOLATIONS_PRESENT,
                f"{event.type.value} requires payment details",
                [Violation(
                    code=ViolationCode.MISSING_PAYMENT,
                    message="Payment amount is required",
                    severity=Severity.BLOCKING,
                    subject="payment",
                )],
            )

        if payment.amount <= 0:
            return refused(
                claim,
                TransitionErrorKind.BLOCKING_VIOLATIONS_PRESENT,
                f"{event.type.value} requires a positive payment amount",
                [Violation(
                    code=ViolationCode.INVALID_PAYMENT_AMOUNT,
                    message=f"Payment amount must be greater than zero, got {payment.amount}",
                    severity=Severity.BLOCKING,
                    subject="payment",
                )],
            )

        expected = claim.outstanding_amount
        paid_total = claim.paid_amount + payment.amount
        # A partial payment that settles the claim, or a resolved appeal, lands by amount
        if event.type in (TransitionEventType.RECORD_PARTIAL_PAYMENT, TransitionEventType.APPEAL_RESOLVED):
            target = ClaimStatus.PAID if paid_total >= claim.claimed_amount else ClaimStatus.PARTIAL

        new_claim = claim.record_transition(
            target, now, event.type.value, actor=event.actor, note=payment.reference
        )
        new_claim.paid_amount = paid_total
        new_claim.payment_date = payment.payment_date or now
        new_claim.payment_reference = payment.reference

        record = build_payment_record(
            claim.id,
            expected=expected,
            actual=payment.amount,
            payment_reference=payment.reference,
            recorded_at=now,
        )
        logger.info(
            "Payment recorded",
            claim_id=claim.id,
            amount=str(payment.amount),
            expected=str(expected),
            reconciliation_status=record.reconciliation_status.value,
        )
        return TransitionResult(entity=new_claim, payment_record=record)

    @staticmethod
    def _unresolved_appeal(claim: Claim, denial: Optional[DenialRecord]) -> Optional[Violation]:
        if denial is None:
            message = "No denial record was supplied with the appeal resolution"
        elif denial.claim_id != claim.id:
            message = f"Denial {denial.id} belongs to claim {denial.claim_id}, not {claim.id}"
        elif denial.appeal_status != AppealStatus.RESOLVED:
            message = f"Appeal on denial {denial.id} is {denial.appeal_status.value}, not resolved"
        else:
            return None
        return Violation(
            code=ViolationCode.APPEAL_NOT_RESOLVED,
            message=message,
            severity=Severity.BLOCKING,
            subject="denial",
        )

    # Refusals

    @staticmethod
    def _invalid_for_state(entity, event: TransitionEvent) -> TransitionResult:
        return refused(
            entity,
            TransitionErrorKind.INVALID_FOR_STATE,
            f"Event {event.type.value} is not allowed in state {entity.status.value}",
        )

    @staticmethod
    def _blocked(entity, violations: List[Violation]) -> TransitionResult:
        blocking = [v for v in violations if v.is_blocking]
        return refused(
            entity,
            TransitionErrorKind.BLOCKING_VIOLATIONS_PRESENT,
            f"{len(blocking)} blocking violation(s) must be resolved first",
            violations,
        )


def attach_documents(entity, documents: Iterable[str], now: datetime):
    """
    Return a new version with ``documents`` added to the attached set.

    Status never changes, including after approval or rejection.
    """
    new_entity = entity.next_version()
    new_entity.documents = set(entity.documents) | set(documents)
    new_entity.last_updated = now
    return new_entity


def merge_concurrent(base, incoming):
    """
    Merge two concurrently modified copies of the same entity.

    The copies' audit histories must agree: one must extend the other.
    Every field but the set fields comes from the copy with the longer
    history; when both have the same history, it comes from whichever
    copy is newer by (version, last_updated), with ``incoming`` winning
    ties. Set fields are always unioned.

    Raises:
        ValueError: if the copies are different entities
        ConcurrentTransitionError: if the copies took different transitions
    """
    if base.id != incoming.id:
        raise ValueError(f"Cannot merge different entities: {base.id} and {incoming.id}")

    base_chain = [entry.signature for entry in base.history]
    incoming_chain = [entry.signature for entry in incoming.history]
    shared = min(len(base_chain), len(incoming_chain))
    if base_chain[:shared] != incoming_chain[:shared]:
        raise ConcurrentTransitionError(
            f"Copies of {base.id} diverge after {_common_prefix(base_chain, incoming_chain)} transition(s)"
        )

    if len(incoming_chain) != len(base_chain):
        incoming_wins = len(incoming_chain) > len(base_chain)
    elif incoming.version != base.version:
        incoming_wins = incoming.version > base.version
    elif base.last_updated and incoming.last_updated:
        incoming_wins = incoming.last_updated >= base.last_updated
    else:
        incoming_wins = True

    winner, loser = (incoming, base) if incoming_wins else (base, incoming)
    merged = winner.next_version()
    merged.version = max(base.version, incoming.version) + 1
    for name, value in vars(winner).items():
        if isinstance(value, (set, frozenset)):
            setattr(merged, name, set(value) | set(getattr(loser, name)))
    return merged


def _common_prefix(left: List[str], right: List[str]) -> int:
    count = 0
    for a, b in zip(left, right):
        if a != b:
            break
        count += 1
    return count


# Global instance
_state_machine: Optional[LifecycleStateMachine] = None


def get_state_machine() -> LifecycleStateMachine:
    """Get or create the global state machine."""
    global _state_machine
    if _state_machine is None:
        _state_machine = LifecycleStateMachine()
    return _state_machine


def attempt_transition(
    entity: Entity,
    event: TransitionEvent,
    now: datetime,
    override_flags: Optional[OverrideFlags] = None,
    licenses: Optional[Mapping[str, ClinicianLicense]] = None,
) -> TransitionResult:
    """Attempt a transition with the global state machine."""
    return get_state_machine().attempt_transition(entity, event, now, override_flags, licenses)
