"""Calculation and reporting services."""
from .reconciliation import (
    ReconciliationResult,
    reconcile,
    classify_performance,
    categorize_variance,
    escalation_level,
    build_payment_record,
)
from .aggregation import SummaryReport, aggregate

__all__ = [
    "ReconciliationResult",
    "reconcile",
    "classify_performance",
    "categorize_variance",
    "escalation_level",
    "build_payment_record",
    "SummaryReport",
    "aggregate",
]
