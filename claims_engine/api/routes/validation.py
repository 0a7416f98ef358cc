"""Validation API routes for authorization and claim snapshots."""
from fastapi import APIRouter, Depends

from claims_engine.api.dependencies import get_engine_validator
from claims_engine.api.requests import (
    ValidateAuthorizationRequest,
    ValidateClaimRequest,
    license_registry,
)
from claims_engine.api.responses import ValidationResponse
from claims_engine.config.logging_config import get_logger
from claims_engine.models.audit import utc_now
from claims_engine.validation.validator import SubmissionValidator

logger = get_logger(__name__)

router = APIRouter(prefix="/validate", tags=["Validation"])


@router.post("/authorization", response_model=ValidationResponse)
async def validate_authorization(
    request: ValidateAuthorizationRequest,
    validator: SubmissionValidator = Depends(get_engine_validator),
):
    """
    Validate an authorization request before submission.

    Args:
        request: Authorization snapshot, optional rule context and clock
        validator: Injected validator

    Returns:
        Ordered violations with blocking/advisory counts
    """
    violations = validator.validate(
        request.authorization.to_entity(),
        request.now or utc_now(),
        context=request.context,
    )
    return ValidationResponse.from_violations(violations)


@router.post("/claim", response_model=ValidationResponse)
async def validate_claim(
    request: ValidateClaimRequest,
    validator: SubmissionValidator = Depends(get_engine_validator),
):
    """
    Validate a claim, including clinician license checks.

    Args:
        request: Claim snapshot, licenses, optional rule context and clock
        validator: Injected validator

    Returns:
        Ordered violations with blocking/advisory counts
    """
    violations = validator.validate(
        request.claim.to_entity(),
        request.now or utc_now(),
        context=request.context,
        licenses=license_registry(request.licenses),
    )
    return ValidationResponse.from_violations(violations)
