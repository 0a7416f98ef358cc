"""Data models for the claims lifecycle engine."""
from .enums import (
    SubmissionKind,
    RuleContext,
    AuthorizationStatus,
    ClaimStatus,
    AppealStatus,
    ReconciliationStatus,
    PerformanceStatus,
    VarianceCategory,
    EscalationLevel,
    LicenseStatus,
    Severity,
    ViolationCode,
    TransitionEventType,
    AppealEventType,
    TransitionErrorKind,
)
from .audit import AuditEntry, VersionedEntity, verify_history
from .violations import Violation, ValidationReport
from .authorization import AuthorizationRequest, Signatures
from .claim import Claim, ServiceLine, DateRange
from .denial import DenialRecord
from .payment import PaymentRecord
from .license import ClinicianLicense

__all__ = [
    # Enums
    "SubmissionKind",
    "RuleContext",
    "AuthorizationStatus",
    "ClaimStatus",
    "AppealStatus",
    "ReconciliationStatus",
    "PerformanceStatus",
    "VarianceCategory",
    "EscalationLevel",
    "LicenseStatus",
    "Severity",
    "ViolationCode",
    "TransitionEventType",
    "AppealEventType",
    "TransitionErrorKind",
    # Audit
    "AuditEntry",
    "VersionedEntity",
    "verify_history",
    # Validation
    "Violation",
    "ValidationReport",
    # Entities
    "AuthorizationRequest",
    "Signatures",
    "Claim",
    "ServiceLine",
    "DateRange",
    "DenialRecord",
    "PaymentRecord",
    "ClinicianLicense",
]
