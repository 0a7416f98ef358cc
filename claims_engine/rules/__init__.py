"""Declarative payer rules."""
from .catalog import (
    RuleSet,
    rules_for,
    registered_contexts,
    ALLOWED_SERVICE_CODES,
    DEPRECATED_SERVICE_CODES,
    DAILY_CUTOFF,
)

__all__ = [
    "RuleSet",
    "rules_for",
    "registered_contexts",
    "ALLOWED_SERVICE_CODES",
    "DEPRECATED_SERVICE_CODES",
    "DAILY_CUTOFF",
]
