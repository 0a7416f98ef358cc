"""Lifecycle state machines for authorizations, claims and appeals."""
from .state import (
    OverrideFlags,
    PaymentDetails,
    TransitionError,
    TransitionEvent,
    TransitionResult,
)
from .state_machine import (
    LifecycleStateMachine,
    attach_documents,
    attempt_transition,
    get_state_machine,
    merge_concurrent,
)
from .denial_flow import (
    AppealResolution,
    attempt_appeal_transition,
    days_until_deadline,
    open_denial,
    resolve_claim_appeal,
)
from .transitions import allowed_events

__all__ = [
    "OverrideFlags",
    "PaymentDetails",
    "TransitionError",
    "TransitionEvent",
    "TransitionResult",
    "LifecycleStateMachine",
    "attach_documents",
    "attempt_transition",
    "get_state_machine",
    "merge_concurrent",
    "AppealResolution",
    "attempt_appeal_transition",
    "days_until_deadline",
    "open_denial",
    "resolve_claim_appeal",
    "allowed_events",
]
