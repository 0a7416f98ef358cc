"""Transition tables for authorization requests, claims and appeals."""
from typing import Dict

from claims_engine.models.enums import (
    AppealEventType,
    AppealStatus,
    AuthorizationStatus,
    ClaimStatus,
    TransitionEventType,
)

# Authorizations may go offline from any non-final state
_OFFLINE_CAPABLE = (
    AuthorizationStatus.DRAFT,
    AuthorizationStatus.SUBMITTED,
    AuthorizationStatus.IN_REVIEW,
    AuthorizationStatus.ADDITIONAL_INFO_REQUIRED,
)

AUTHORIZATION_TRANSITIONS: Dict[AuthorizationStatus, Dict[TransitionEventType, AuthorizationStatus]] = {
    AuthorizationStatus.DRAFT: {
        TransitionEventType.SUBMIT: AuthorizationStatus.SUBMITTED,
    },
    AuthorizationStatus.PENDING_SYNC: {
        TransitionEventType.SYNC: AuthorizationStatus.SUBMITTED,
    },
    AuthorizationStatus.SUBMITTED: {
        TransitionEventType.START_REVIEW: AuthorizationStatus.IN_REVIEW,
    },
    AuthorizationStatus.IN_REVIEW: {
        TransitionEventType.APPROVE: AuthorizationStatus.APPROVED,
        TransitionEventType.REJECT: AuthorizationStatus.REJECTED,
        TransitionEventType.REQUEST_INFO: AuthorizationStatus.ADDITIONAL_INFO_REQUIRED,
    },
    AuthorizationStatus.ADDITIONAL_INFO_REQUIRED: {
        TransitionEventType.PROVIDE_INFO: AuthorizationStatus.IN_REVIEW,
    },
    AuthorizationStatus.APPROVED: {},
    AuthorizationStatus.REJECTED: {},
}
for _status in _OFFLINE_CAPABLE:
    AUTHORIZATION_TRANSITIONS[_status][TransitionEventType.GO_OFFLINE] = AuthorizationStatus.PENDING_SYNC

CLAIM_TRANSITIONS: Dict[ClaimStatus, Dict[TransitionEventType, ClaimStatus]] = {
    ClaimStatus.DRAFT: {
        TransitionEventType.SUBMIT: ClaimStatus.PENDING,
    },
    ClaimStatus.PENDING: {
        TransitionEventType.START_REVIEW: ClaimStatus.IN_REVIEW,
    },
    ClaimStatus.IN_REVIEW: {
        TransitionEventType.APPROVE: ClaimStatus.APPROVED,
        TransitionEventType.RECORD_PARTIAL_PAYMENT: ClaimStatus.PARTIAL,
        TransitionEventType.REJECT: ClaimStatus.REJECTED,
        TransitionEventType.RETURN_CLAIM: ClaimStatus.RETURNED,
    },
    ClaimStatus.APPROVED: {
        TransitionEventType.RECORD_PAYMENT: ClaimStatus.PAID,
    },
    ClaimStatus.PARTIAL: {
        TransitionEventType.RECORD_PAYMENT: ClaimStatus.PAID,
    },
    ClaimStatus.RETURNED: {
        TransitionEventType.RESUBMIT: ClaimStatus.PENDING,
    },
    ClaimStatus.PAID: {},
    # Reopened only by a resolved appeal; lands in paid or partial depending on the amount
    ClaimStatus.REJECTED: {
        TransitionEventType.APPEAL_RESOLVED: ClaimStatus.PAID,
    },
}

APPEAL_TRANSITIONS: Dict[AppealStatus, Dict[AppealEventType, AppealStatus]] = {
    AppealStatus.NOT_STARTED: {
        AppealEventType.START_APPEAL: AppealStatus.IN_PROGRESS,
        AppealEventType.SUBMIT_APPEAL: AppealStatus.SUBMITTED,
    },
    AppealStatus.IN_PROGRESS: {
        AppealEventType.SUBMIT_APPEAL: AppealStatus.SUBMITTED,
    },
    AppealStatus.SUBMITTED: {
        AppealEventType.RESOLVE_APPEAL: AppealStatus.RESOLVED,
        AppealEventType.DENY_APPEAL: AppealStatus.REJECTED,
    },
    AppealStatus.RESOLVED: {},
    AppealStatus.REJECTED: {},
}

# Events that hand the snapshot to the payer and therefore run the validator
SUBMISSION_EVENTS = frozenset({
    TransitionEventType.SUBMIT,
    TransitionEventType.SYNC,
    TransitionEventType.RESUBMIT,
    TransitionEventType.PROVIDE_INFO,
})

PAYMENT_EVENTS = frozenset({
    TransitionEventType.RECORD_PARTIAL_PAYMENT,
    TransitionEventType.RECORD_PAYMENT,
    TransitionEventType.APPEAL_RESOLVED,
})


def allowed_events(status) -> list:
    """Events accepted in ``status``, for any of the three machines."""
    # Status enums are str-based, so pick the table by type rather than by key lookup
    if isinstance(status, AuthorizationStatus):
        table = AUTHORIZATION_TRANSITIONS
    elif isinstance(status, ClaimStatus):
        table = CLAIM_TRANSITIONS
    elif isinstance(status, AppealStatus):
        table = APPEAL_TRANSITIONS
    else:
        return []
    return sorted(event.value for event in table[status])
