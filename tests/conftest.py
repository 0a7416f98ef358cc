from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from claims_engine.models import (
    AuthorizationRequest,
    Claim,
    ClaimStatus,
    ClinicianLicense,
    DateRange,
    ServiceLine,
    Signatures,
    TransitionEventType,
)
from claims_engine.orchestrator import LifecycleStateMachine, PaymentDetails, TransitionEvent
from claims_engine.rules.catalog import CLAIM_DOCUMENTS, STANDARD_AUTHORIZATION_DOCUMENTS

# 07:00 in Dubai, before the 08:00 daily cutoff
NOW = datetime(2025, 6, 2, 3, 0, tzinfo=timezone.utc)
# 09:00 in Dubai, after the cutoff
LATE = datetime(2025, 6, 2, 5, 0, tzinfo=timezone.utc)

PROVIDER_ID = "DHA-P-0001"


def make_authorization(**overrides):
    """Authorization request that passes every standard rule."""
    fields = dict(
        id="AUTH-001",
        patient_id="P-1001",
        requested_services={"17-25-1", "17-25-4"},
        requested_duration_days=30,
        clinical_justification_length=120,
        documents=set(STANDARD_AUTHORIZATION_DOCUMENTS),
        signatures=Signatures(patient_signed=True, provider_signed=True),
    )
    fields.update(overrides)
    return AuthorizationRequest(**fields)


def make_line(service_code="17-25-1", quantity=10, unit_price="1080", provider_id=PROVIDER_ID,
              start=date(2025, 5, 1), end=date(2025, 5, 10), line_id=None):
    line = ServiceLine(
        service_code=service_code,
        quantity=quantity,
        unit_price=Decimal(unit_price),
        provider_id=provider_id,
        date_range=DateRange(start=start, end=end),
    )
    if line_id:
        line.line_id = line_id
    return line


def make_claim(**overrides):
    """Claim for 10800 that passes every claim rule."""
    fields = dict(
        id="CLM-001",
        claim_number="DAM-2025-0001",
        patient_id="P-1001",
        authorization_reference="PA-2025-0001",
        service_lines=[make_line(line_id="L1")],
        documents=set(CLAIM_DOCUMENTS),
    )
    fields.update(overrides)
    return Claim(**fields)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def late():
    return LATE


@pytest.fixture
def authorization():
    return make_authorization()


@pytest.fixture
def claim():
    return make_claim()


@pytest.fixture
def licenses():
    """License registry keyed by provider id, valid well past NOW."""
    return {
        PROVIDER_ID: ClinicianLicense(
            clinician_identity=PROVIDER_ID,
            expiry_date=date(2026, 6, 1),
            license_number="DOH-88231",
        )
    }


@pytest.fixture
def machine():
    return LifecycleStateMachine()


def drive_claim(machine, claim, events, licenses=None, start=NOW):
    """Apply event types in order, one hour apart; fail loudly on refusal."""
    current = claim
    moment = start
    for event in events:
        if not isinstance(event, TransitionEvent):
            event = TransitionEvent(type=event)
        result = machine.attempt_transition(current, event, moment, licenses=licenses)
        assert result.ok, result.error
        current = result.entity
        moment = moment + timedelta(hours=1)
    return current


@pytest.fixture
def in_review_claim(machine, claim, licenses):
    return drive_claim(
        machine,
        claim,
        [TransitionEventType.SUBMIT, TransitionEventType.START_REVIEW],
        licenses=licenses,
    )


@pytest.fixture
def rejected_claim_and_denial(machine, in_review_claim):
    result = machine.attempt_transition(
        in_review_claim,
        TransitionEvent(
            type=TransitionEventType.REJECT,
            reason="Service not covered under plan",
            denial_code="MNEC-004",
        ),
        NOW,
    )
    assert result.ok
    assert result.entity.status == ClaimStatus.REJECTED
    return result.entity, result.denial_record


def payment(amount, reference="EFT-1001"):
    return PaymentDetails(amount=Decimal(amount), reference=reference)
