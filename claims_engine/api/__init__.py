"""API module for claims engine endpoints."""
from .routes import appeals, reconciliation, reports, transitions, validation

__all__ = ["appeals", "reconciliation", "reports", "transitions", "validation"]
