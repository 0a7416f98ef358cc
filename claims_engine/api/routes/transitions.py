"""Lifecycle transition API routes."""
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from claims_engine.api.dependencies import get_lifecycle
from claims_engine.api.requests import (
    AuthorizationTransitionRequest,
    ClaimTransitionRequest,
    license_registry,
)
from claims_engine.api.responses import TransitionResponse
from claims_engine.config.logging_config import get_logger
from claims_engine.models.audit import utc_now
from claims_engine.orchestrator.state import TransitionResult
from claims_engine.orchestrator.state_machine import LifecycleStateMachine

logger = get_logger(__name__)

router = APIRouter(prefix="/transitions", tags=["Transitions"])


def transition_response(result: TransitionResult):
    """Accepted transitions are 200, refusals 409 with the same body shape."""
    response = TransitionResponse.from_result(result)
    if result.ok:
        return response
    return JSONResponse(status_code=409, content=response.model_dump(mode="json"))


@router.post("/authorization", response_model=TransitionResponse)
async def transition_authorization(
    request: AuthorizationTransitionRequest,
    lifecycle: LifecycleStateMachine = Depends(get_lifecycle),
):
    """
    Apply an event to an authorization request.

    Args:
        request: Authorization snapshot and event
        lifecycle: Injected state machine

    Returns:
        New version of the authorization, or 409 with the refusal reason
    """
    try:
        event = request.engine_event()
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    result = lifecycle.attempt_transition(
        request.authorization.to_entity(), event, request.now or utc_now()
    )
    return transition_response(result)


@router.post("/claim", response_model=TransitionResponse)
async def transition_claim(
    request: ClaimTransitionRequest,
    lifecycle: LifecycleStateMachine = Depends(get_lifecycle),
):
    """
    Apply an event to a claim.

    Rejections return the opened denial record; payment events return
    the reconciled payment record.
    """
    try:
        event = request.engine_event()
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    result = lifecycle.attempt_transition(
        request.claim.to_entity(),
        event,
        request.now or utc_now(),
        licenses=license_registry(request.licenses),
    )
    return transition_response(result)
