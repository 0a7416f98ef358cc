"""FastAPI dependencies for dependency injection."""
from claims_engine.orchestrator.state_machine import LifecycleStateMachine, get_state_machine
from claims_engine.validation.validator import SubmissionValidator, get_validator


def get_engine_validator() -> SubmissionValidator:
    """Get validator dependency."""
    return get_validator()


def get_lifecycle() -> LifecycleStateMachine:
    """Get state machine dependency."""
    return get_state_machine()
