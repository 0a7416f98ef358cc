"""Rule catalog: required documents, bounds and code lists per submission kind.

Pure data. Reflects the Daman authorization updates (CN_2025): 30-day
payment terms, 17-25-x service codes replacing 17-26-x, the 08:00 daily
submission cutoff, MSC plan extensions capped at 90 days with a longer
clinical justification, and wheelchair pre-approval paperwork.
"""
from dataclasses import dataclass
from datetime import time
from typing import Dict, FrozenSet, List, Optional, Tuple, Union

from claims_engine.config.logging_config import get_logger
from claims_engine.exceptions import UnknownRuleContext
from claims_engine.models.enums import RuleContext, SubmissionKind

logger = get_logger(__name__)

ALLOWED_SERVICE_CODES: FrozenSet[str] = frozenset({
    "17-25-1",  # Simple home visit, nursing
    "17-25-2",  # Simple home visit, supportive
    "17-25-3",  # Specialized home visit, consultation
    "17-25-4",  # Per diem routine home nursing care
    "17-25-5",  # Per diem advanced home nursing care
})

DEPRECATED_SERVICE_CODES: FrozenSet[str] = frozenset({
    "17-26-1",
    "17-26-2",
    "17-26-3",
    "17-26-4",
})

DAILY_CUTOFF = time(8, 0)

STANDARD_AUTHORIZATION_DOCUMENTS: Tuple[str, ...] = (
    "Medical Report",
    "Treatment Plan",
    "Physician Referral",
    "Insurance Card",
    "Patient Consent",
)

CLAIM_DOCUMENTS: Tuple[str, ...] = (
    "Claim Form",
    "Authorization Approval Letter",
    "Detailed Invoice",
    "Service Log",
    "Staff Attendance Sheet",
    "Clinical Progress Notes",
)


@dataclass(frozen=True)
class RuleSet:
    """Rules that apply to one (kind, context) pair."""
    kind: SubmissionKind
    context: RuleContext
    required_documents: Tuple[str, ...]
    allowed_service_codes: FrozenSet[str] = ALLOWED_SERVICE_CODES
    deprecated_service_codes: FrozenSet[str] = DEPRECATED_SERVICE_CODES
    min_duration_days: int = 1
    max_duration_days: Optional[int] = None
    min_justification_length: int = 0
    daily_cutoff: time = DAILY_CUTOFF
    # Cross-field consistency: payment terms must match the current policy value
    enforce_payment_terms: bool = False
    # Claims only
    max_line_amount: Optional[float] = None
    max_service_age_days: Optional[int] = None

    @property
    def replacement_codes(self) -> List[str]:
        return sorted(self.allowed_service_codes)


_CATALOG: Dict[Tuple[SubmissionKind, RuleContext], RuleSet] = {
    (SubmissionKind.AUTHORIZATION, RuleContext.STANDARD): RuleSet(
        kind=SubmissionKind.AUTHORIZATION,
        context=RuleContext.STANDARD,
        required_documents=STANDARD_AUTHORIZATION_DOCUMENTS,
        min_justification_length=50,
    ),
    (SubmissionKind.AUTHORIZATION, RuleContext.PLAN_EXTENSION): RuleSet(
        kind=SubmissionKind.AUTHORIZATION,
        context=RuleContext.PLAN_EXTENSION,
        required_documents=STANDARD_AUTHORIZATION_DOCUMENTS + ("Previous Authorization",),
        max_duration_days=90,
        min_justification_length=100,
        enforce_payment_terms=True,
    ),
    (SubmissionKind.AUTHORIZATION, RuleContext.EQUIPMENT): RuleSet(
        kind=SubmissionKind.AUTHORIZATION,
        context=RuleContext.EQUIPMENT,
        required_documents=STANDARD_AUTHORIZATION_DOCUMENTS + (
            "Wheelchair Pre-approval Form",
            "Physiotherapist/OT Signature",
            "Warranty Documentation",
        ),
        # Equipment authorizations renew monthly
        max_duration_days=30,
        min_justification_length=50,
    ),
    (SubmissionKind.AUTHORIZATION, RuleContext.HOMECARE): RuleSet(
        kind=SubmissionKind.AUTHORIZATION,
        context=RuleContext.HOMECARE,
        required_documents=STANDARD_AUTHORIZATION_DOCUMENTS + (
            "Face-to-Face Assessment",
            "Periodic Assessment Form",
        ),
        min_justification_length=50,
    ),
    (SubmissionKind.CLAIM, RuleContext.STANDARD): RuleSet(
        kind=SubmissionKind.CLAIM,
        context=RuleContext.STANDARD,
        required_documents=CLAIM_DOCUMENTS,
        max_line_amount=50000.0,
        max_service_age_days=365,
    ),
}


def rules_for(
    kind: Union[SubmissionKind, str],
    context: Union[RuleContext, str] = RuleContext.STANDARD,
) -> RuleSet:
    """
    Look up the rule set for a submission kind and context.

    Args:
        kind: Authorization or claim
        context: Context flag selecting the variant

    Returns:
        The registered RuleSet

    Raises:
        UnknownRuleContext: If the combination is not registered
    """
    try:
        key = (SubmissionKind(kind), RuleContext(context))
    except ValueError:
        logger.error("Unknown rule context", kind=str(kind), context=str(context))
        raise UnknownRuleContext(kind, context) from None

    rule_set = _CATALOG.get(key)
    if rule_set is None:
        logger.error("Unknown rule context", kind=key[0].value, context=key[1].value)
        raise UnknownRuleContext(key[0].value, key[1].value)
    return rule_set


def registered_contexts() -> List[Tuple[SubmissionKind, RuleContext]]:
    """All (kind, context) pairs the catalog can answer for."""
    return list(_CATALOG.keys())
