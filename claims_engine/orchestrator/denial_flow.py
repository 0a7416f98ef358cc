"""Denial and appeal sub-flow nested under rejected claims."""
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from claims_engine.config.logging_config import get_logger
from claims_engine.config.settings import get_settings
from claims_engine.models.claim import Claim
from claims_engine.models.denial import DenialRecord
from claims_engine.models.enums import (
    AppealEventType,
    ClaimStatus,
    Severity,
    TransitionErrorKind,
    TransitionEventType,
    ViolationCode,
)
from claims_engine.models.payment import PaymentRecord
from claims_engine.models.violations import Violation
from claims_engine.orchestrator.state import (
    OverrideFlags,
    PaymentDetails,
    TransitionEvent,
    TransitionResult,
    refused,
)
from claims_engine.orchestrator.transitions import APPEAL_TRANSITIONS
from claims_engine.services.reconciliation import build_payment_record

logger = get_logger(__name__)


def open_denial(
    claim: Claim,
    reason: str,
    code: str,
    denial_date: datetime,
    window_days: Optional[int] = None,
) -> DenialRecord:
    """
    Create the denial record for a claim that has just been rejected.

    Args:
        claim: The rejected claim
        reason: Payer's denial reason
        code: Payer's denial code
        denial_date: When the denial was received
        window_days: Appeal window; defaults to the configured policy window

    Returns:
        DenialRecord with appeal_status not_started
    """
    if window_days is None:
        window_days = get_settings().appeal_window_days

    denial = DenialRecord(
        claim_id=claim.id,
        denial_date=denial_date,
        appeal_deadline=denial_date + timedelta(days=window_days),
        denial_reason=reason,
        denial_code=code,
        denial_amount=claim.outstanding_amount,
        payer=claim.payer,
        last_updated=denial_date,
    )
    logger.info(
        "Denial opened",
        denial_id=denial.id,
        claim_id=claim.id,
        denial_code=code,
        appeal_deadline=denial.appeal_deadline.isoformat(),
    )
    return denial


def days_until_deadline(denial: DenialRecord, now: datetime) -> int:
    """Whole days left to appeal; negative once the deadline has passed."""
    return (denial.appeal_deadline - now).days


def attempt_appeal_transition(
    denial: DenialRecord,
    event: TransitionEvent,
    now: datetime,
    override_flags: Optional[OverrideFlags] = None,
) -> TransitionResult:
    """
    Apply an appeal event to a denial record.

    Submitting after the appeal deadline is refused unless
    ``override_flags.override_deadline`` is set. Resolving requires a
    resolution amount and yields a reconciled PaymentRecord.
    """
    override_flags = override_flags or OverrideFlags()

    target = APPEAL_TRANSITIONS[denial.appeal_status].get(event.type)
    if target is None:
        return refused(
            denial,
            TransitionErrorKind.INVALID_FOR_STATE,
            f"Event {event.type.value} is not allowed in appeal state {denial.appeal_status.value}",
        )

    if event.type == AppealEventType.SUBMIT_APPEAL and denial.deadline_passed(now):
        if not override_flags.override_deadline:
            return refused(
                denial,
                TransitionErrorKind.DEADLINE_PASSED_WITHOUT_OVERRIDE,
                f"Appeal deadline {denial.appeal_deadline.isoformat()} has passed",
            )
        logger.warning(
            "Appeal deadline overridden",
            denial_id=denial.id,
            appeal_deadline=denial.appeal_deadline.isoformat(),
            actor=event.actor,
        )

    payment_record = None
    if event.type == AppealEventType.RESOLVE_APPEAL:
        if event.payment is None:
            return refused(
                denial,
                TransitionErrorKind.BLOCKING_VIOLATIONS_PRESENT,
                "Resolving an appeal requires a resolution amount",
                [Violation(
                    code=ViolationCode.MISSING_RESOLUTION_AMOUNT,
                    message="Resolution amount is required",
                    severity=Severity.BLOCKING,
                    subject="resolution_amount",
                )],
            )
        if event.payment.amount <= 0:
            return refused(
                denial,
                TransitionErrorKind.BLOCKING_VIOLATIONS_PRESENT,
                "Resolving an appeal requires a positive resolution amount",
                [Violation(
                    code=ViolationCode.INVALID_PAYMENT_AMOUNT,
                    message=f"Resolution amount must be greater than zero, got {event.payment.amount}",
                    severity=Severity.BLOCKING,
                    subject="resolution_amount",
                )],
            )
        payment_record = build_payment_record(
            denial.claim_id,
            expected=denial.denial_amount,
            actual=event.payment.amount,
            payment_reference=event.payment.reference,
            recorded_at=now,
        )

    new_denial = denial.record_transition(
        target, now, event.type.value, actor=event.actor, note=event.reason
    )
    if event.type == AppealEventType.SUBMIT_APPEAL:
        new_denial.appeal_submission_date = now
    if payment_record is not None:
        new_denial.resolution_amount = event.payment.amount

    return TransitionResult(entity=new_denial, payment_record=payment_record)


@dataclass
class AppealResolution:
    """Outcome of resolving an appeal against its claim."""
    denial: DenialRecord
    claim: Claim
    payment_record: Optional[PaymentRecord]
    denial_result: TransitionResult
    claim_result: Optional[TransitionResult] = None

    @property
    def ok(self) -> bool:
        return self.denial_result.ok and (self.claim_result is None or self.claim_result.ok)


def resolve_claim_appeal(
    claim: Claim,
    denial: DenialRecord,
    resolution_amount: Decimal,
    now: datetime,
    reference: Optional[str] = None,
) -> AppealResolution:
    """
    Resolve a submitted appeal and reopen its rejected claim.

    The denial moves to resolved with a reconciled payment record, then
    the claim leaves rejected for paid or partial depending on whether
    the resolution covers the outstanding amount.
    """
    from claims_engine.orchestrator.state_machine import attempt_transition

    if denial.claim_id != claim.id:
        raise ValueError(f"Denial {denial.id} does not belong to claim {claim.id}")
    if claim.status != ClaimStatus.REJECTED:
        message = f"Claim {claim.id} is {claim.status.value}; only a rejected claim can be reopened by its appeal"
        return AppealResolution(
            denial=denial,
            claim=claim,
            payment_record=None,
            denial_result=refused(denial, TransitionErrorKind.INVALID_FOR_STATE, message),
            claim_result=refused(claim, TransitionErrorKind.INVALID_FOR_STATE, message),
        )

    payment = PaymentDetails(amount=Decimal(resolution_amount), reference=reference, payment_date=now)
    denial_result = attempt_transition(
        denial, TransitionEvent(type=AppealEventType.RESOLVE_APPEAL, payment=payment), now
    )
    if not denial_result.ok:
        return AppealResolution(
            denial=denial,
            claim=claim,
            payment_record=None,
            denial_result=denial_result,
        )

    claim_result = attempt_transition(
        claim, TransitionEvent(
            type=TransitionEventType.APPEAL_RESOLVED,
            payment=payment,
            denial=denial_result.entity,
        ), now
    )
    return AppealResolution(
        denial=denial_result.entity,
        claim=claim_result.entity,
        payment_record=denial_result.payment_record,
        denial_result=denial_result,
        claim_result=claim_result,
    )
