"""Validation findings."""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .enums import Severity, ViolationCode


class Violation(BaseModel):
    """A single rule finding against a submission snapshot."""
    model_config = ConfigDict(frozen=True)

    code: ViolationCode = Field(..., description="Machine-readable finding")
    message: str = Field(..., description="Human-readable explanation")
    severity: Severity = Field(..., description="Blocking findings stop submission-triggering transitions")
    subject: Optional[str] = Field(
        default=None,
        description="What the finding is about: a field, document type, service code or provider",
    )

    @property
    def is_blocking(self) -> bool:
        return self.severity == Severity.BLOCKING


class ValidationReport(BaseModel):
    """Ordered violations plus convenience views."""
    violations: List[Violation] = Field(default_factory=list)

    @property
    def blocking(self) -> List[Violation]:
        return [v for v in self.violations if v.severity == Severity.BLOCKING]

    @property
    def advisory(self) -> List[Violation]:
        return [v for v in self.violations if v.severity == Severity.ADVISORY]

    @property
    def has_blocking(self) -> bool:
        return any(v.is_blocking for v in self.violations)
