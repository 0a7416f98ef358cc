"""Claims lifecycle engine for payer authorizations and claims."""
from claims_engine.exceptions import (
    ClaimNotEditableError,
    ConcurrentTransitionError,
    EngineError,
    ReconciliationInvariantError,
    UnknownRuleContext,
)
from claims_engine.orchestrator import (
    OverrideFlags,
    PaymentDetails,
    TransitionEvent,
    TransitionResult,
    attempt_transition,
    resolve_claim_appeal,
)
from claims_engine.rules import rules_for
from claims_engine.services import aggregate, reconcile
from claims_engine.validation import validate

__version__ = "0.1.0"

__all__ = [
    "ClaimNotEditableError",
    "ConcurrentTransitionError",
    "EngineError",
    "ReconciliationInvariantError",
    "UnknownRuleContext",
    "OverrideFlags",
    "PaymentDetails",
    "TransitionEvent",
    "TransitionResult",
    "attempt_transition",
    "resolve_claim_appeal",
    "rules_for",
    "aggregate",
    "reconcile",
    "validate",
]
