"""Request models for API endpoints."""
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from claims_engine.models.audit import AuditEntry
from claims_engine.models.authorization import AuthorizationRequest, Signatures
from claims_engine.models.claim import Claim, DateRange, ServiceLine
from claims_engine.models.denial import DenialRecord
from claims_engine.models.enums import (
    AppealEventType,
    AppealStatus,
    AuthorizationStatus,
    ClaimStatus,
    LicenseStatus,
    RuleContext,
    TransitionEventType,
)
from claims_engine.models.license import ClinicianLicense
from claims_engine.orchestrator.state import OverrideFlags, PaymentDetails, TransitionEvent


class ServiceLinePayload(BaseModel):
    """One billed service on a claim."""
    service_code: str = ""
    quantity: int = 1
    unit_price: Decimal = Decimal("0")
    provider_id: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    line_id: Optional[str] = None

    def to_entity(self) -> ServiceLine:
        date_range = None
        if self.start_date is not None:
            date_range = DateRange(start=self.start_date, end=self.end_date or self.start_date)
        line = ServiceLine(
            service_code=self.service_code,
            quantity=self.quantity,
            unit_price=self.unit_price,
            provider_id=self.provider_id,
            date_range=date_range,
        )
        if self.line_id:
            line.line_id = self.line_id
        return line


class AuthorizationPayload(BaseModel):
    """Snapshot of an authorization request as held by the caller."""
    id: Optional[str] = Field(default=None, description="Generated when omitted")
    patient_id: str = ""
    payer: str = "Daman"
    status: AuthorizationStatus = AuthorizationStatus.DRAFT
    context: RuleContext = RuleContext.STANDARD
    reference_number: Optional[str] = None
    requested_services: List[str] = Field(default_factory=list)
    requested_duration_days: int = 0
    clinical_justification_length: int = 0
    documents: List[str] = Field(default_factory=list)
    patient_signed: bool = False
    provider_signed: bool = False
    payment_terms: str = "30_days"
    submission_timestamp: Optional[datetime] = None
    last_updated: Optional[datetime] = None
    version: int = 1
    history: List[AuditEntry] = Field(default_factory=list, description="Audit trail returned with the previous version")

    def to_entity(self) -> AuthorizationRequest:
        auth = AuthorizationRequest(
            patient_id=self.patient_id,
            payer=self.payer,
            status=self.status,
            context=self.context,
            reference_number=self.reference_number,
            requested_services=set(self.requested_services),
            requested_duration_days=self.requested_duration_days,
            clinical_justification_length=self.clinical_justification_length,
            documents=set(self.documents),
            signatures=Signatures(
                patient_signed=self.patient_signed,
                provider_signed=self.provider_signed,
            ),
            payment_terms=self.payment_terms,
            submission_timestamp=self.submission_timestamp,
            last_updated=self.last_updated,
            version=self.version,
            history=list(self.history),
        )
        if self.id is not None:
            auth.id = self.id
        return auth


class ClaimPayload(BaseModel):
    """Snapshot of a claim as held by the caller."""
    id: Optional[str] = Field(default=None, description="Generated when omitted")
    claim_number: str = ""
    patient_id: str = ""
    payer: str = "Daman"
    authorization_reference: Optional[str] = None
    status: ClaimStatus = ClaimStatus.DRAFT
    context: RuleContext = RuleContext.STANDARD
    service_lines: List[ServiceLinePayload] = Field(default_factory=list)
    documents: List[str] = Field(default_factory=list)
    paid_amount: Decimal = Decimal("0")
    payment_date: Optional[datetime] = None
    payment_reference: Optional[str] = None
    submission_timestamp: Optional[datetime] = None
    last_updated: Optional[datetime] = None
    version: int = 1
    history: List[AuditEntry] = Field(default_factory=list, description="Audit trail returned with the previous version")

    def to_entity(self) -> Claim:
        claim = Claim(
            claim_number=self.claim_number,
            patient_id=self.patient_id,
            payer=self.payer,
            authorization_reference=self.authorization_reference,
            status=self.status,
            context=self.context,
            service_lines=[line.to_entity() for line in self.service_lines],
            documents=set(self.documents),
            paid_amount=self.paid_amount,
            payment_date=self.payment_date,
            payment_reference=self.payment_reference,
            submission_timestamp=self.submission_timestamp,
            last_updated=self.last_updated,
            version=self.version,
            history=list(self.history),
        )
        if self.id is not None:
            claim.id = self.id
        return claim


class DenialPayload(BaseModel):
    """Snapshot of a denial record and its appeal."""
    id: Optional[str] = None
    claim_id: str
    denial_date: datetime
    appeal_deadline: datetime
    denial_reason: str = ""
    denial_code: str = ""
    denial_amount: Decimal = Decimal("0")
    payer: str = "Daman"
    appeal_status: AppealStatus = AppealStatus.NOT_STARTED
    appeal_submission_date: Optional[datetime] = None
    resolution_amount: Optional[Decimal] = None
    last_updated: Optional[datetime] = None
    version: int = 1
    history: List[AuditEntry] = Field(default_factory=list, description="Audit trail returned with the previous version")

    def to_entity(self) -> DenialRecord:
        denial = DenialRecord(
            claim_id=self.claim_id,
            denial_date=self.denial_date,
            appeal_deadline=self.appeal_deadline,
            denial_reason=self.denial_reason,
            denial_code=self.denial_code,
            denial_amount=self.denial_amount,
            payer=self.payer,
            appeal_status=self.appeal_status,
            appeal_submission_date=self.appeal_submission_date,
            resolution_amount=self.resolution_amount,
            last_updated=self.last_updated,
            version=self.version,
            history=list(self.history),
        )
        if self.id is not None:
            denial.id = self.id
        return denial


class LicensePayload(BaseModel):
    """A clinician license, keyed by the provider id used on service lines."""
    clinician_identity: str
    expiry_date: date
    status: LicenseStatus = LicenseStatus.ACTIVE
    license_number: Optional[str] = None

    def to_entity(self) -> ClinicianLicense:
        return ClinicianLicense(
            clinician_identity=self.clinician_identity,
            expiry_date=self.expiry_date,
            status=self.status,
            license_number=self.license_number,
        )


class PaymentPayload(BaseModel):
    """Money received from the payer."""
    amount: Decimal
    reference: Optional[str] = None
    payment_date: Optional[datetime] = None


class EventPayload(BaseModel):
    """An event to apply; only the fields relevant to its type are read."""
    type: str = Field(..., description="Event name, e.g. submit, record_payment, submit_appeal")
    reference_number: Optional[str] = None
    documents: List[str] = Field(default_factory=list)
    payment: Optional[PaymentPayload] = None
    reason: Optional[str] = None
    denial_code: Optional[str] = None
    actor: str = "system"

    def to_event(self, event_enum, denial: Optional[DenialRecord] = None) -> TransitionEvent:
        """Build the engine event; raises ValueError for names ``event_enum`` does not define."""
        payment = None
        if self.payment is not None:
            payment = PaymentDetails(
                amount=self.payment.amount,
                reference=self.payment.reference,
                payment_date=self.payment.payment_date,
            )
        return TransitionEvent(
            type=event_enum(self.type),
            reference_number=self.reference_number,
            documents=frozenset(self.documents),
            payment=payment,
            reason=self.reason,
            denial_code=self.denial_code,
            denial=denial,
            actor=self.actor,
        )


def license_registry(licenses: List[LicensePayload]):
    """Index license payloads by clinician identity."""
    return {item.clinician_identity: item.to_entity() for item in licenses}


class ValidateAuthorizationRequest(BaseModel):
    """Request to validate an authorization snapshot."""
    authorization: AuthorizationPayload
    context: Optional[RuleContext] = Field(default=None, description="Defaults to the snapshot's context")
    now: Optional[datetime] = Field(default=None, description="Defaults to the server clock")


class ValidateClaimRequest(BaseModel):
    """Request to validate a claim snapshot."""
    claim: ClaimPayload
    context: Optional[RuleContext] = None
    now: Optional[datetime] = None
    licenses: List[LicensePayload] = Field(default_factory=list)


class AuthorizationTransitionRequest(BaseModel):
    """Request to apply an event to an authorization."""
    authorization: AuthorizationPayload
    event: EventPayload
    now: Optional[datetime] = None

    def engine_event(self) -> TransitionEvent:
        return self.event.to_event(TransitionEventType)


class ClaimTransitionRequest(BaseModel):
    """Request to apply an event to a claim."""
    claim: ClaimPayload
    event: EventPayload
    now: Optional[datetime] = None
    denial: Optional[DenialPayload] = Field(default=None, description="Resolved denial record, required for appeal_resolved")
    licenses: List[LicensePayload] = Field(default_factory=list)

    def engine_event(self) -> TransitionEvent:
        denial = self.denial.to_entity() if self.denial is not None else None
        return self.event.to_event(TransitionEventType, denial=denial)


class AppealTransitionRequest(BaseModel):
    """Request to apply an appeal event to a denial record."""
    denial: DenialPayload
    event: EventPayload
    now: Optional[datetime] = None
    override_deadline: bool = Field(default=False, description="Submit even though the appeal deadline has passed")

    def engine_event(self) -> TransitionEvent:
        return self.event.to_event(AppealEventType)

    def override_flags(self) -> OverrideFlags:
        return OverrideFlags(override_deadline=self.override_deadline)


class ReconcileRequest(BaseModel):
    """Request to reconcile an expected amount against an actual one."""
    expected_amount: Decimal
    actual_amount: Decimal


class SummaryRequest(BaseModel):
    """Collection to summarize for the dashboard."""
    claims: List[ClaimPayload] = Field(default_factory=list)
    authorizations: List[AuthorizationPayload] = Field(default_factory=list)
    denials: List[DenialPayload] = Field(default_factory=list)
    as_of: Optional[datetime] = None

    def entities(self) -> list:
        return (
            [c.to_entity() for c in self.claims]
            + [a.to_entity() for a in self.authorizations]
            + [d.to_entity() for d in self.denials]
        )
