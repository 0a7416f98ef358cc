"""Enumeration types for the claims lifecycle engine."""
from enum import Enum


class SubmissionKind(str, Enum):
    """Kinds of submission the rule catalog knows about."""
    AUTHORIZATION = "authorization"
    CLAIM = "claim"


class RuleContext(str, Enum):
    """Context flags that select a rule set within a kind."""
    STANDARD = "standard"
    PLAN_EXTENSION = "plan_extension"  # MSC plan extension, stricter bounds
    EQUIPMENT = "equipment"  # Wheelchair / medical equipment pre-approval
    HOMECARE = "homecare"  # Nursing and physiotherapy homecare allocation


class AuthorizationStatus(str, Enum):
    """Status of a prior authorization request."""
    DRAFT = "draft"
    PENDING_SYNC = "pending-sync"
    SUBMITTED = "submitted"
    IN_REVIEW = "in-review"
    ADDITIONAL_INFO_REQUIRED = "additional-info-required"
    APPROVED = "approved"
    REJECTED = "rejected"


class ClaimStatus(str, Enum):
    """Status of a claim."""
    DRAFT = "draft"
    PENDING = "pending"
    IN_REVIEW = "in-review"
    APPROVED = "approved"
    PARTIAL = "partial"
    PAID = "paid"
    REJECTED = "rejected"
    RETURNED = "returned"


class AppealStatus(str, Enum):
    """Status of an appeal against a denied claim."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    RESOLVED = "resolved"
    REJECTED = "rejected"


class ReconciliationStatus(str, Enum):
    """Outcome of matching an expected amount against an actual one."""
    RECONCILED = "reconciled"
    UNRECONCILED = "unreconciled"
    DISPUTED = "disputed"


class PerformanceStatus(str, Enum):
    """KPI classification derived from a variance percentage."""
    EXCEEDS = "exceeds"
    MEETS = "meets"
    BELOW = "below"
    CRITICAL = "critical"


class VarianceCategory(str, Enum):
    """Likely cause bucket for a payment variance."""
    CONTRACTUAL = "contractual"
    UNDERPAYMENT = "underpayment"
    OVERPAYMENT = "overpayment"


class EscalationLevel(str, Enum):
    """Who has to sign off on a payment variance."""
    NONE = "none"
    SUPERVISOR = "supervisor"
    MANAGER = "manager"
    EXECUTIVE = "executive"


class LicenseStatus(str, Enum):
    """Status of a clinician license."""
    ACTIVE = "active"
    EXPIRED = "expired"
    SUSPENDED = "suspended"
    PENDING_RENEWAL = "pending-renewal"


class Severity(str, Enum):
    """Whether a violation stops a transition."""
    BLOCKING = "blocking"
    ADVISORY = "advisory"


class ViolationCode(str, Enum):
    """Closed set of validation findings."""
    MISSING_FIELD = "missing_field"
    INVALID_DURATION = "invalid_duration"
    MISSING_SIGNATURE = "missing_signature"
    MISSING_SERVICE_CODES = "missing_service_codes"
    NO_SERVICE_LINES = "no_service_lines"
    INVALID_SERVICE_LINE = "invalid_service_line"
    MISSING_DOCUMENT = "missing_document"
    DEPRECATED_SERVICE_CODE = "deprecated_service_code"
    UNKNOWN_SERVICE_CODE = "unknown_service_code"
    DURATION_EXCEEDS_LIMIT = "duration_exceeds_limit"
    JUSTIFICATION_TOO_SHORT = "justification_too_short"
    LINE_AMOUNT_EXCEEDS_LIMIT = "line_amount_exceeds_limit"
    STALE_SERVICE_DATE = "stale_service_date"
    LATE_SUBMISSION = "late_submission"
    LICENSE_NOT_FOUND = "license_not_found"
    LICENSE_NOT_VALID = "license_not_valid"
    LICENSE_EXPIRING_SOON = "license_expiring_soon"
    PAYMENT_TERMS_MISMATCH = "payment_terms_mismatch"
    # Raised by the state machine for event payload problems
    MISSING_PAYMENT = "missing_payment"
    NO_NEW_DOCUMENTS = "no_new_documents"
    MISSING_RESOLUTION_AMOUNT = "missing_resolution_amount"
    INVALID_PAYMENT_AMOUNT = "invalid_payment_amount"
    APPEAL_NOT_RESOLVED = "appeal_not_resolved"


class TransitionEventType(str, Enum):
    """Events accepted by the authorization and claim state machines."""
    SUBMIT = "submit"
    GO_OFFLINE = "go_offline"
    SYNC = "sync"
    START_REVIEW = "start_review"
    APPROVE = "approve"
    REJECT = "reject"
    REQUEST_INFO = "request_info"
    PROVIDE_INFO = "provide_info"
    RETURN_CLAIM = "return_claim"
    RESUBMIT = "resubmit"
    RECORD_PARTIAL_PAYMENT = "record_partial_payment"
    RECORD_PAYMENT = "record_payment"
    APPEAL_RESOLVED = "appeal_resolved"


class AppealEventType(str, Enum):
    """Events accepted by the denial/appeal sub-flow."""
    START_APPEAL = "start_appeal"
    SUBMIT_APPEAL = "submit_appeal"
    RESOLVE_APPEAL = "resolve_appeal"
    DENY_APPEAL = "deny_appeal"


class TransitionErrorKind(str, Enum):
    """Why a transition was refused."""
    INVALID_FOR_STATE = "invalid_for_state"
    BLOCKING_VIOLATIONS_PRESENT = "blocking_violations_present"
    DEADLINE_PASSED_WITHOUT_OVERRIDE = "deadline_passed_without_override"
