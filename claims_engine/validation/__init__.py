"""Submission validation against the rule catalog."""
from .validator import SubmissionValidator, get_validator, validate, validation_report

__all__ = [
    "SubmissionValidator",
    "get_validator",
    "validate",
    "validation_report",
]
