"""Rules-based validator for authorization and claim snapshots.

The validator never raises for bad input: every problem becomes a
Violation so callers can decide whether to proceed past advisories.
The only exception that escapes is UnknownRuleContext.
"""
from datetime import datetime, timedelta
from typing import Iterable, List, Mapping, Optional, Union
from zoneinfo import ZoneInfo

from claims_engine.config.logging_config import get_logger
from claims_engine.config.settings import get_settings
from claims_engine.models.authorization import AuthorizationRequest
from claims_engine.models.claim import Claim, ServiceLine
from claims_engine.models.enums import RuleContext, Severity, SubmissionKind, ViolationCode
from claims_engine.models.license import ClinicianLicense
from claims_engine.models.violations import ValidationReport, Violation
from claims_engine.rules.catalog import RuleSet, rules_for

logger = get_logger(__name__)

Snapshot = Union[AuthorizationRequest, Claim]
LicenseRegistry = Mapping[str, ClinicianLicense]


def _blocking(code: ViolationCode, message: str, subject: Optional[str] = None) -> Violation:
    return Violation(code=code, message=message, severity=Severity.BLOCKING, subject=subject)


def _advisory(code: ViolationCode, message: str, subject: Optional[str] = None) -> Violation:
    return Violation(code=code, message=message, severity=Severity.ADVISORY, subject=subject)


class SubmissionValidator:
    """
    Evaluates a snapshot against the rule catalog.

    Checks run in a fixed order so the resulting violation list is
    deterministic:

    1. required fields
    2. required documents
    3. deprecated / unknown service codes
    4. numeric bounds
    5. daily submission cutoff (advisory)
    6. clinician licenses (claims only, advisory)
    7. cross-field consistency
    """

    def __init__(self, settings=None):
        self._settings = settings or get_settings()

    def validate(
        self,
        snapshot: Snapshot,
        now: datetime,
        context: Optional[Union[RuleContext, str]] = None,
        licenses: Optional[LicenseRegistry] = None,
    ) -> List[Violation]:
        """
        Validate a snapshot.

        Args:
            snapshot: Authorization request or claim
            now: Caller-supplied wall-clock time
            context: Rule context; defaults to the snapshot's own context
            licenses: Clinician licenses keyed by provider id (claims only)

        Returns:
            Ordered list of violations (empty when the snapshot is clean)

        Raises:
            UnknownRuleContext: If no rule set exists for the kind/context
        """
        kind = SubmissionKind.CLAIM if isinstance(snapshot, Claim) else SubmissionKind.AUTHORIZATION
        rules = rules_for(kind, context if context is not None else snapshot.context)

        violations: List[Violation] = []
        if kind == SubmissionKind.AUTHORIZATION:
            violations.extend(self._authorization_required_fields(snapshot))
            violations.extend(self._required_documents(snapshot.documents, rules))
            violations.extend(self._service_codes(sorted(snapshot.requested_services), rules))
            violations.extend(self._authorization_bounds(snapshot, rules))
            violations.extend(self._cutoff(now, rules))
            violations.extend(self._cross_field(snapshot, rules))
        else:
            violations.extend(self._claim_required_fields(snapshot))
            violations.extend(self._required_documents(snapshot.documents, rules))
            violations.extend(self._service_codes(self._claim_codes(snapshot), rules))
            violations.extend(self._claim_bounds(snapshot, rules, now))
            violations.extend(self._cutoff(now, rules))
            violations.extend(self._licenses(snapshot, licenses or {}, now))

        blocking = sum(1 for v in violations if v.is_blocking)
        logger.info(
            "Snapshot validated",
            entity_id=snapshot.id,
            kind=kind.value,
            context=rules.context.value,
            blocking=blocking,
            advisory=len(violations) - blocking,
        )
        return violations

    # Step 1: required fields

    def _authorization_required_fields(self, auth: AuthorizationRequest) -> Iterable[Violation]:
        if not auth.id:
            yield _blocking(ViolationCode.MISSING_FIELD, "Authorization id is required", "id")
        if not auth.patient_id:
            yield _blocking(ViolationCode.MISSING_FIELD, "Patient ID is required", "patient_id")
        if not auth.requested_services:
            yield _blocking(
                ViolationCode.MISSING_SERVICE_CODES,
                "At least one service code must be selected from the updated code list",
                "requested_services",
            )
        if auth.requested_duration_days <= 0:
            yield _blocking(
                ViolationCode.INVALID_DURATION,
                "Requested duration must be greater than 0",
                "requested_duration_days",
            )
        if not auth.signatures.patient_signed:
            yield _blocking(ViolationCode.MISSING_SIGNATURE, "Patient signature is required", "patient_signed")
        if not auth.signatures.provider_signed:
            yield _blocking(ViolationCode.MISSING_SIGNATURE, "Provider signature is required", "provider_signed")

    def _claim_required_fields(self, claim: Claim) -> Iterable[Violation]:
        if not claim.id:
            yield _blocking(ViolationCode.MISSING_FIELD, "Claim id is required", "id")
        if not claim.claim_number:
            yield _blocking(ViolationCode.MISSING_FIELD, "Claim number is required", "claim_number")
        if not claim.patient_id:
            yield _blocking(ViolationCode.MISSING_FIELD, "Patient ID is required", "patient_id")
        if not claim.service_lines:
            yield _blocking(
                ViolationCode.NO_SERVICE_LINES,
                "At least one service line is required",
                "service_lines",
            )
        for line in claim.service_lines:
            problems = self._line_problems(line)
            if problems:
                yield _blocking(
                    ViolationCode.INVALID_SERVICE_LINE,
                    f"Service line {line.line_id} is incomplete: {', '.join(problems)}",
                    line.line_id,
                )

    @staticmethod
    def _line_problems(line: ServiceLine) -> List[str]:
        problems = []
        if not line.service_code:
            problems.append("service code is required")
        if line.quantity < 1:
            problems.append("quantity must be at least 1")
        if line.unit_price <= 0:
            problems.append("unit price must be positive")
        if not line.provider_id:
            problems.append("provider is required")
        if line.date_range is None:
            problems.append("date of service is required")
        elif not line.date_range.is_ordered:
            problems.append("service end date precedes start date")
        return problems

    # Step 2: documents

    @staticmethod
    def _required_documents(documents, rules: RuleSet) -> Iterable[Violation]:
        for document_type in rules.required_documents:
            if document_type not in documents:
                yield _blocking(
                    ViolationCode.MISSING_DOCUMENT,
                    f"{document_type} is required",
                    document_type,
                )

    # Step 3: service codes

    @staticmethod
    def _claim_codes(claim: Claim) -> List[str]:
        codes = []
        for line in claim.service_lines:
            if line.service_code and line.service_code not in codes:
                codes.append(line.service_code)
        return codes

    @staticmethod
    def _service_codes(codes: Iterable[str], rules: RuleSet) -> Iterable[Violation]:
        replacements = ", ".join(rules.replacement_codes)
        for code in codes:
            if code in rules.deprecated_service_codes:
                yield _blocking(
                    ViolationCode.DEPRECATED_SERVICE_CODE,
                    f"Service code {code} is no longer accepted. Use one of: {replacements}",
                    code,
                )
            elif code not in rules.allowed_service_codes:
                yield _blocking(
                    ViolationCode.UNKNOWN_SERVICE_CODE,
                    f"Service code {code} is not on the payer's code list",
                    code,
                )

    # Step 4: numeric bounds

    @staticmethod
    def _authorization_bounds(auth: AuthorizationRequest, rules: RuleSet) -> Iterable[Violation]:
        if rules.max_duration_days is not None and auth.requested_duration_days > rules.max_duration_days:
            yield _blocking(
                ViolationCode.DURATION_EXCEEDS_LIMIT,
                f"Requested duration of {auth.requested_duration_days} days exceeds the "
                f"{rules.max_duration_days}-day limit for {rules.context.value} requests",
                "requested_duration_days",
            )
        if auth.clinical_justification_length < rules.min_justification_length:
            yield _blocking(
                ViolationCode.JUSTIFICATION_TOO_SHORT,
                f"Clinical justification must be at least {rules.min_justification_length} characters",
                "clinical_justification_length",
            )

    @staticmethod
    def _claim_bounds(claim: Claim, rules: RuleSet, now: datetime) -> Iterable[Violation]:
        oldest_allowed = None
        if rules.max_service_age_days is not None:
            oldest_allowed = now.date() - timedelta(days=rules.max_service_age_days)

        for line in claim.service_lines:
            if rules.max_line_amount is not None and line.total_amount > rules.max_line_amount:
                yield _blocking(
                    ViolationCode.LINE_AMOUNT_EXCEEDS_LIMIT,
                    f"Service line {line.line_id} amount {line.total_amount} exceeds {rules.max_line_amount}",
                    line.line_id,
                )
            if oldest_allowed and line.date_range and line.date_range.start < oldest_allowed:
                yield _blocking(
                    ViolationCode.STALE_SERVICE_DATE,
                    f"Service line {line.line_id} starts more than "
                    f"{rules.max_service_age_days} days ago",
                    line.line_id,
                )

    # Step 5: cutoff

    def _cutoff(self, now: datetime, rules: RuleSet) -> Iterable[Violation]:
        local_now = now
        if now.tzinfo is not None:
            local_now = now.astimezone(ZoneInfo(self._settings.submission_timezone))
        if local_now.time() > rules.daily_cutoff:
            yield _advisory(
                ViolationCode.LATE_SUBMISSION,
                f"Submitted after the {rules.daily_cutoff.strftime('%H:%M')} daily deadline. "
                "Late submissions require escalation approval.",
                "submission_time",
            )

    # Step 6: licenses

    def _licenses(self, claim: Claim, licenses: LicenseRegistry, now: datetime) -> Iterable[Violation]:
        warning_days = self._settings.license_expiry_warning_days
        for provider_id in claim.provider_ids:
            license_record = licenses.get(provider_id)
            if license_record is None:
                yield _advisory(
                    ViolationCode.LICENSE_NOT_FOUND,
                    f"{provider_id} (No license record found)",
                    provider_id,
                )
            elif not license_record.valid_for_claims(now):
                yield _advisory(
                    ViolationCode.LICENSE_NOT_VALID,
                    f"{provider_id} ({license_record.status.value} license, expires "
                    f"{license_record.expiry_date.isoformat()})",
                    provider_id,
                )
            elif license_record.expires_within(warning_days, now):
                yield _advisory(
                    ViolationCode.LICENSE_EXPIRING_SOON,
                    f"{provider_id} license expires {license_record.expiry_date.isoformat()}",
                    provider_id,
                )

    # Step 7: cross-field

    def _cross_field(self, auth: AuthorizationRequest, rules: RuleSet) -> Iterable[Violation]:
        required_terms = self._settings.required_payment_terms
        if rules.enforce_payment_terms and auth.payment_terms != required_terms:
            yield _blocking(
                ViolationCode.PAYMENT_TERMS_MISMATCH,
                f"{rules.context.value} requests must use {required_terms} payment terms",
                "payment_terms",
            )


# Global instance
_validator: Optional[SubmissionValidator] = None


def get_validator() -> SubmissionValidator:
    """Get or create the global validator instance."""
    global _validator
    if _validator is None:
        _validator = SubmissionValidator()
    return _validator


def validate(
    snapshot: Snapshot,
    context: Optional[Union[RuleContext, str]] = None,
    *,
    now: datetime,
    licenses: Optional[LicenseRegistry] = None,
) -> List[Violation]:
    """Validate a snapshot with the global validator."""
    return get_validator().validate(snapshot, now, context=context, licenses=licenses)


def validation_report(violations: List[Violation]) -> ValidationReport:
    """Wrap a violation list for blocking/advisory views."""
    return ValidationReport(violations=violations)
