"""Response models for API endpoints."""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from claims_engine.models.violations import Violation
from claims_engine.orchestrator.state import TransitionResult
from claims_engine.orchestrator.transitions import allowed_events


class ValidationResponse(BaseModel):
    """Ordered violations for a snapshot."""
    violations: List[Violation]
    blocking_count: int
    advisory_count: int
    has_blocking: bool

    @classmethod
    def from_violations(cls, violations: List[Violation]) -> "ValidationResponse":
        blocking = sum(1 for v in violations if v.is_blocking)
        return cls(
            violations=violations,
            blocking_count=blocking,
            advisory_count=len(violations) - blocking,
            has_blocking=blocking > 0,
        )


class TransitionResponse(BaseModel):
    """Outcome of a transition attempt."""
    ok: bool
    entity: Dict[str, Any]
    error: Optional[Dict[str, Any]] = None
    violations: List[Dict[str, Any]] = Field(default_factory=list)
    payment_record: Optional[Dict[str, Any]] = None
    denial_record: Optional[Dict[str, Any]] = None
    allowed_events: List[str] = Field(
        default_factory=list,
        description="Events the returned entity accepts next",
    )

    @classmethod
    def from_result(cls, result: TransitionResult) -> "TransitionResponse":
        return cls(
            **result.to_dict(),
            allowed_events=allowed_events(result.entity.status),
        )


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: Optional[str] = None
    error_id: Optional[str] = None
