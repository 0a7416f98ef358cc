import pytest
from fastapi.testclient import TestClient

from claims_engine.main import app
from claims_engine.models.audit import AuditEntry, verify_history
from claims_engine.rules.catalog import CLAIM_DOCUMENTS, STANDARD_AUTHORIZATION_DOCUMENTS

NOW = "2025-06-02T03:00:00+00:00"


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


def authorization_payload(**overrides):
    payload = {
        "id": "AUTH-001",
        "patient_id": "P-1001",
        "requested_services": ["17-25-1"],
        "requested_duration_days": 30,
        "clinical_justification_length": 120,
        "documents": list(STANDARD_AUTHORIZATION_DOCUMENTS),
        "patient_signed": True,
        "provider_signed": True,
    }
    payload.update(overrides)
    return payload


def claim_payload(**overrides):
    payload = {
        "id": "CLM-001",
        "claim_number": "DAM-2025-0001",
        "patient_id": "P-1001",
        "documents": list(CLAIM_DOCUMENTS),
        "service_lines": [{
            "line_id": "L1",
            "service_code": "17-25-1",
            "quantity": 10,
            "unit_price": "1080",
            "provider_id": "DHA-P-0001",
            "start_date": "2025-05-01",
            "end_date": "2025-05-10",
        }],
    }
    payload.update(overrides)
    return payload


LICENSES = [{"clinician_identity": "DHA-P-0001", "expiry_date": "2026-06-01"}]


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["components"]["rule_catalog"] is True


def test_correlation_id_is_echoed(client):
    response = client.get("/", headers={"X-Correlation-ID": "req-42"})

    assert response.headers["X-Correlation-ID"] == "req-42"


def test_correlation_id_is_generated(client):
    assert client.get("/").headers["X-Correlation-ID"]


def test_unusable_correlation_id_is_replaced(client):
    returned = client.get("/", headers={"X-Correlation-ID": "id with spaces"}).headers["X-Correlation-ID"]

    assert returned
    assert returned != "id with spaces"


def test_validate_clean_authorization(client):
    response = client.post("/api/v1/validate/authorization", json={
        "authorization": authorization_payload(),
        "now": NOW,
    })

    assert response.status_code == 200
    assert response.json() == {
        "violations": [],
        "blocking_count": 0,
        "advisory_count": 0,
        "has_blocking": False,
    }


def test_validate_authorization_missing_documents(client):
    response = client.post("/api/v1/validate/authorization", json={
        "authorization": authorization_payload(documents=[]),
        "now": NOW,
    })

    body = response.json()
    assert body["blocking_count"] == 5
    assert body["advisory_count"] == 0
    assert [v["subject"] for v in body["violations"]] == list(STANDARD_AUTHORIZATION_DOCUMENTS)


def test_validate_claim_with_licenses(client):
    response = client.post("/api/v1/validate/claim", json={
        "claim": claim_payload(),
        "now": NOW,
        "licenses": LICENSES,
    })

    assert response.status_code == 200
    assert response.json()["violations"] == []


def test_unknown_rule_context_is_422(client):
    response = client.post("/api/v1/validate/claim", json={
        "claim": claim_payload(),
        "context": "plan_extension",
        "now": NOW,
    })

    assert response.status_code == 422
    assert response.json()["error"] == "Unknown rule context"


def test_submit_authorization(client):
    response = client.post("/api/v1/transitions/authorization", json={
        "authorization": authorization_payload(),
        "event": {"type": "submit", "reference_number": "PA-2025-0001"},
        "now": NOW,
    })

    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["entity"]["status"] == "submitted"
    assert body["entity"]["reference_number"] == "PA-2025-0001"
    assert body["allowed_events"] == ["go_offline", "start_review"]


def test_refused_transition_is_409(client):
    response = client.post("/api/v1/transitions/authorization", json={
        "authorization": authorization_payload(status="approved"),
        "event": {"type": "submit"},
        "now": NOW,
    })

    assert response.status_code == 409
    body = response.json()
    assert body["ok"] is False
    assert body["error"]["kind"] == "invalid_for_state"
    assert body["entity"]["status"] == "approved"


def test_unknown_event_is_422(client):
    response = client.post("/api/v1/transitions/authorization", json={
        "authorization": authorization_payload(),
        "event": {"type": "teleport"},
        "now": NOW,
    })

    assert response.status_code == 422


def test_partial_payment_returns_payment_record(client):
    response = client.post("/api/v1/transitions/claim", json={
        "claim": claim_payload(status="in-review"),
        "event": {"type": "record_partial_payment", "payment": {"amount": "9720", "reference": "EFT-1"}},
        "now": NOW,
    })

    assert response.status_code == 200
    body = response.json()
    assert body["entity"]["status"] == "partial"
    assert float(body["payment_record"]["variance"]) == -1080
    assert body["payment_record"]["variance_percentage"] == -10.0
    assert body["payment_record"]["reconciliation_status"] == "unreconciled"


def test_claim_rejection_returns_denial(client):
    response = client.post("/api/v1/transitions/claim", json={
        "claim": claim_payload(status="in-review"),
        "event": {"type": "reject", "reason": "Not covered", "denial_code": "MNEC-004"},
        "now": NOW,
    })

    denial = response.json()["denial_record"]
    assert denial["claim_id"] == "CLM-001"
    assert denial["appeal_status"] == "not_started"
    assert denial["appeal_deadline"].startswith("2025-07-02")


def denial_payload():
    return {
        "id": "DEN-001",
        "claim_id": "CLM-001",
        "denial_date": "2025-06-02T03:00:00+00:00",
        "appeal_deadline": "2025-07-02T03:00:00+00:00",
        "denial_amount": "10800",
    }


def test_late_appeal_needs_override(client):
    request = {
        "denial": denial_payload(),
        "event": {"type": "submit_appeal"},
        "now": "2025-07-03T03:00:00+00:00",
    }

    refused = client.post("/api/v1/appeals/transition", json=request)
    assert refused.status_code == 409
    assert refused.json()["error"]["kind"] == "deadline_passed_without_override"

    accepted = client.post("/api/v1/appeals/transition", json={**request, "override_deadline": True})
    assert accepted.status_code == 200
    assert accepted.json()["entity"]["appeal_status"] == "submitted"


def test_reconcile(client):
    response = client.post("/api/v1/reconcile", json={"expected_amount": "10800", "actual_amount": "9720"})

    body = response.json()
    assert body["variance_percentage"] == -10.0
    assert body["status"] == "unreconciled"
    assert body["performance"] == "below"


def test_summary_report(client):
    response = client.post("/api/v1/reports/summary", json={
        "claims": [claim_payload(status="rejected")],
        "authorizations": [authorization_payload()],
    })

    body = response.json()
    assert response.status_code == 200
    assert body["claim_count"] == 1
    assert body["authorization_count"] == 1
    assert body["denial_rate"] == 100.0


def test_history_carries_over_between_requests(client):
    submitted = client.post("/api/v1/transitions/authorization", json={
        "authorization": authorization_payload(),
        "event": {"type": "submit", "reference_number": "PA-2025-0001"},
        "now": NOW,
    }).json()["entity"]

    response = client.post("/api/v1/transitions/authorization", json={
        "authorization": authorization_payload(
            status=submitted["status"],
            reference_number=submitted["reference_number"],
            version=submitted["version"],
            history=submitted["history"],
        ),
        "event": {"type": "start_review"},
        "now": "2025-06-02T04:00:00+00:00",
    })

    assert response.status_code == 200
    history = response.json()["entity"]["history"]
    assert [entry["to_state"] for entry in history] == ["submitted", "in-review"]
    assert history[1]["previous_signature"] == submitted["history"][0]["signature"]
    assert verify_history([AuditEntry.model_validate(entry) for entry in history])


def test_appeal_resolved_claim_needs_resolved_denial(client):
    request = {
        "claim": claim_payload(status="rejected"),
        "event": {"type": "appeal_resolved", "payment": {"amount": "10800", "reference": "APL-1"}},
        "now": NOW,
    }

    refused = client.post("/api/v1/transitions/claim", json=request)
    assert refused.status_code == 409
    assert refused.json()["error"]["violations"][0]["code"] == "appeal_not_resolved"

    resolved_denial = {**denial_payload(), "appeal_status": "resolved", "resolution_amount": "10800"}
    accepted = client.post("/api/v1/transitions/claim", json={**request, "denial": resolved_denial})
    assert accepted.status_code == 200
    assert accepted.json()["entity"]["status"] == "paid"
