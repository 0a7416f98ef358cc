"""Appeal API routes."""
from fastapi import APIRouter, Depends, HTTPException

from claims_engine.api.dependencies import get_lifecycle
from claims_engine.api.requests import AppealTransitionRequest
from claims_engine.api.responses import TransitionResponse
from claims_engine.api.routes.transitions import transition_response
from claims_engine.config.logging_config import get_logger
from claims_engine.models.audit import utc_now
from claims_engine.orchestrator.state_machine import LifecycleStateMachine

logger = get_logger(__name__)

router = APIRouter(prefix="/appeals", tags=["Appeals"])


@router.post("/transition", response_model=TransitionResponse)
async def transition_appeal(
    request: AppealTransitionRequest,
    lifecycle: LifecycleStateMachine = Depends(get_lifecycle),
):
    """
    Apply an appeal event to a denial record.

    Late submissions are refused with ``deadline_passed_without_override``
    unless ``override_deadline`` is set.
    """
    try:
        event = request.engine_event()
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    if request.override_deadline:
        logger.info("Appeal deadline override requested", denial_id=request.denial.id, actor=event.actor)

    result = lifecycle.attempt_transition(
        request.denial.to_entity(),
        event,
        request.now or utc_now(),
        override_flags=request.override_flags(),
    )
    return transition_response(result)
