from datetime import timedelta
from decimal import Decimal

import pytest

from claims_engine.exceptions import ClaimNotEditableError, ConcurrentTransitionError
from claims_engine.models import (
    AppealStatus,
    AuthorizationStatus,
    ClaimStatus,
    ReconciliationStatus,
    TransitionErrorKind,
    TransitionEventType,
    ViolationCode,
)
from claims_engine.orchestrator import (
    TransitionEvent,
    allowed_events,
    attach_documents,
    attempt_transition,
    merge_concurrent,
)
from claims_engine.orchestrator import state_machine as state_machine_module

from conftest import NOW, drive_claim, make_authorization, make_line, payment

SUBMIT = TransitionEvent(type=TransitionEventType.SUBMIT, reference_number="PA-2025-0001")


def event(event_type, **kwargs):
    return TransitionEvent(type=event_type, **kwargs)


class RecordingLogger:
    """Keeps every call; the message is positional as it is for structlog loggers."""

    def __init__(self):
        self.records = []

    def info(self, event, **context):
        self.records.append(("info", event, context))

    def warning(self, event, **context):
        self.records.append(("warning", event, context))


class TestAuthorizationLifecycle:

    def test_submit_valid_draft(self, machine, authorization):
        result = machine.attempt_transition(authorization, SUBMIT, NOW)

        assert result.ok
        submitted = result.entity
        assert submitted.status == AuthorizationStatus.SUBMITTED
        assert submitted.reference_number == "PA-2025-0001"
        assert submitted.submission_timestamp == NOW
        assert submitted.version == authorization.version + 1
        assert len(submitted.history) == 1
        assert submitted.history[0].from_state == "draft"
        assert submitted.history[0].to_state == "submitted"
        assert submitted.audit_chain_valid

    def test_input_is_never_mutated(self, machine, authorization):
        machine.attempt_transition(authorization, SUBMIT, NOW)

        assert authorization.status == AuthorizationStatus.DRAFT
        assert authorization.reference_number is None
        assert authorization.history == []

    def test_blocking_violations_refuse_submit(self, machine):
        auth = make_authorization(documents=set())

        result = machine.attempt_transition(auth, SUBMIT, NOW)

        assert not result.ok
        assert result.error.kind == TransitionErrorKind.BLOCKING_VIOLATIONS_PRESENT
        assert len(result.error.violations) == 5
        assert result.entity is auth

    def test_resubmitting_is_refused_and_idempotent(self, machine, authorization):
        submitted = machine.attempt_transition(authorization, SUBMIT, NOW).entity

        result = machine.attempt_transition(submitted, SUBMIT, NOW + timedelta(minutes=5))

        assert result.error.kind == TransitionErrorKind.INVALID_FOR_STATE
        assert result.entity is submitted
        assert submitted.version == 2
        assert len(submitted.history) == 1

    def test_late_submit_proceeds_with_advisory(self, machine, authorization, late):
        result = machine.attempt_transition(authorization, SUBMIT, late)

        assert result.ok
        assert [v.code for v in result.advisories] == [ViolationCode.LATE_SUBMISSION]

    def test_offline_then_sync(self, machine):
        # Offline drafts are queued without validation; sync validates
        incomplete = make_authorization(documents={"Medical Report"})
        queued = machine.attempt_transition(incomplete, event(TransitionEventType.GO_OFFLINE), NOW)
        assert queued.ok
        assert queued.entity.status == AuthorizationStatus.PENDING_SYNC

        refused = machine.attempt_transition(queued.entity, event(TransitionEventType.SYNC), NOW)
        assert refused.error.kind == TransitionErrorKind.BLOCKING_VIOLATIONS_PRESENT

        complete = attach_documents(
            queued.entity,
            ["Treatment Plan", "Physician Referral", "Insurance Card", "Patient Consent"],
            NOW,
        )
        synced = machine.attempt_transition(complete, event(TransitionEventType.SYNC), NOW)
        assert synced.ok
        assert synced.entity.status == AuthorizationStatus.SUBMITTED

    def test_reference_number_is_never_replaced(self, machine, authorization):
        submitted = machine.attempt_transition(authorization, SUBMIT, NOW).entity
        offline = machine.attempt_transition(submitted, event(TransitionEventType.GO_OFFLINE), NOW).entity
        synced = machine.attempt_transition(offline, event(TransitionEventType.SYNC), NOW).entity

        assert synced.reference_number == "PA-2025-0001"

    def test_additional_info_requires_new_document(self, machine, authorization):
        submitted = machine.attempt_transition(authorization, SUBMIT, NOW).entity
        in_review = machine.attempt_transition(submitted, event(TransitionEventType.START_REVIEW), NOW).entity
        waiting = machine.attempt_transition(in_review, event(TransitionEventType.REQUEST_INFO), NOW).entity
        assert waiting.status == AuthorizationStatus.ADDITIONAL_INFO_REQUIRED

        same_docs = machine.attempt_transition(
            waiting,
            event(TransitionEventType.PROVIDE_INFO, documents=frozenset({"Medical Report"})),
            NOW,
        )
        assert same_docs.error.kind == TransitionErrorKind.BLOCKING_VIOLATIONS_PRESENT
        assert same_docs.error.violations[0].code == ViolationCode.NO_NEW_DOCUMENTS

        provided = machine.attempt_transition(
            waiting,
            event(TransitionEventType.PROVIDE_INFO, documents=frozenset({"Lab Results"})),
            NOW,
        )
        assert provided.ok
        assert provided.entity.status == AuthorizationStatus.IN_REVIEW
        assert "Lab Results" in provided.entity.documents

    def test_terminal_states_accept_no_events(self, machine, authorization):
        submitted = machine.attempt_transition(authorization, SUBMIT, NOW).entity
        in_review = machine.attempt_transition(submitted, event(TransitionEventType.START_REVIEW), NOW).entity
        approved = machine.attempt_transition(in_review, event(TransitionEventType.APPROVE), NOW).entity

        for event_type in TransitionEventType:
            result = machine.attempt_transition(approved, event(event_type), NOW)
            assert result.error.kind == TransitionErrorKind.INVALID_FOR_STATE

    def test_documents_attach_after_approval(self, machine, authorization):
        submitted = machine.attempt_transition(authorization, SUBMIT, NOW).entity
        in_review = machine.attempt_transition(submitted, event(TransitionEventType.START_REVIEW), NOW).entity
        approved = machine.attempt_transition(in_review, event(TransitionEventType.APPROVE), NOW).entity

        updated = attach_documents(approved, ["Signed Care Plan"], NOW)

        assert updated.status == AuthorizationStatus.APPROVED
        assert "Signed Care Plan" in updated.documents
        assert updated.version == approved.version + 1

    def test_tampered_history_fails_verification(self, machine, authorization):
        submitted = machine.attempt_transition(authorization, SUBMIT, NOW).entity
        in_review = machine.attempt_transition(submitted, event(TransitionEventType.START_REVIEW), NOW).entity

        in_review.history[0] = in_review.history[0].model_copy(update={"to_state": "approved"})

        assert not in_review.audit_chain_valid

    def test_event_handlers_run_on_accept_only(self, machine, authorization):
        seen = []
        machine.register_event_handler("submit", seen.append)

        machine.attempt_transition(make_authorization(documents=set()), SUBMIT, NOW)
        machine.attempt_transition(authorization, SUBMIT, NOW)

        assert len(seen) == 1
        assert seen[0].entity.status == AuthorizationStatus.SUBMITTED

    def test_accepted_and_refused_transitions_are_logged(self, machine, authorization, monkeypatch):
        recorder = RecordingLogger()
        monkeypatch.setattr(state_machine_module, "logger", recorder)

        machine.attempt_transition(authorization, SUBMIT, NOW)
        machine.attempt_transition(authorization, event(TransitionEventType.APPROVE), NOW)

        assert [(level, message) for level, message, _ in recorder.records] == [
            ("info", "Transition accepted"),
            ("warning", "Transition refused"),
        ]
        accepted, rejected = recorder.records[0][2], recorder.records[1][2]
        assert accepted["event_type"] == "submit"
        assert accepted["to_state"] == "submitted"
        assert rejected["event_type"] == "approve"
        assert rejected["reason"] == "invalid_for_state"

    def test_allowed_events(self):
        assert allowed_events(AuthorizationStatus.DRAFT) == ["go_offline", "submit"]
        assert allowed_events(ClaimStatus.IN_REVIEW) == [
            "approve", "record_partial_payment", "reject", "return_claim"
        ]
        assert allowed_events(AppealStatus.SUBMITTED) == ["deny_appeal", "resolve_appeal"]

    def test_unsupported_entity(self, machine):
        with pytest.raises(TypeError):
            machine.attempt_transition(object(), SUBMIT, NOW)


class TestClaimLifecycle:

    def test_submit_sets_pending_and_timestamp(self, machine, claim, licenses):
        result = machine.attempt_transition(claim, SUBMIT, NOW, licenses=licenses)

        assert result.ok
        assert result.entity.status == ClaimStatus.PENDING
        assert result.entity.submission_timestamp == NOW

    def test_submit_without_licenses_warns(self, machine, claim):
        result = machine.attempt_transition(claim, SUBMIT, NOW)

        assert result.ok
        assert [v.code for v in result.advisories] == [ViolationCode.LICENSE_NOT_FOUND]

    def test_full_payment(self, machine, in_review_claim):
        approved = drive_claim(machine, in_review_claim, [TransitionEventType.APPROVE])

        result = machine.attempt_transition(
            approved, event(TransitionEventType.RECORD_PAYMENT, payment=payment("10800")), NOW
        )

        assert result.entity.status == ClaimStatus.PAID
        assert result.entity.paid_amount == Decimal("10800")
        assert result.payment_record.reconciliation_status == ReconciliationStatus.RECONCILED
        assert result.payment_record.variance == 0

    def test_partial_then_balance(self, machine, in_review_claim):
        partial = machine.attempt_transition(
            in_review_claim,
            event(TransitionEventType.RECORD_PARTIAL_PAYMENT, payment=payment("9720")),
            NOW,
        )
        assert partial.entity.status == ClaimStatus.PARTIAL
        assert partial.payment_record.variance == Decimal("-1080")
        assert partial.payment_record.variance_percentage == -10.0
        assert partial.payment_record.reconciliation_status == ReconciliationStatus.UNRECONCILED
        assert partial.entity.outstanding_amount == Decimal("1080")

        paid = machine.attempt_transition(
            partial.entity,
            event(TransitionEventType.RECORD_PAYMENT, payment=payment("1080", "EFT-1002")),
            NOW,
        )
        assert paid.entity.status == ClaimStatus.PAID
        assert paid.entity.paid_amount == Decimal("10800")
        assert paid.entity.payment_reference == "EFT-1002"
        assert paid.payment_record.reconciliation_status == ReconciliationStatus.RECONCILED

    def test_payment_event_requires_amount(self, machine, in_review_claim):
        result = machine.attempt_transition(
            in_review_claim, event(TransitionEventType.RECORD_PARTIAL_PAYMENT), NOW
        )

        assert result.error.kind == TransitionErrorKind.BLOCKING_VIOLATIONS_PRESENT
        assert result.error.violations[0].code == ViolationCode.MISSING_PAYMENT
        assert result.entity is in_review_claim

    @pytest.mark.parametrize("amount", ["0", "-500"])
    def test_payment_amount_must_be_positive(self, machine, in_review_claim, amount):
        result = machine.attempt_transition(
            in_review_claim,
            event(TransitionEventType.RECORD_PARTIAL_PAYMENT, payment=payment(amount)),
            NOW,
        )

        assert result.error.kind == TransitionErrorKind.BLOCKING_VIOLATIONS_PRESENT
        assert result.error.violations[0].code == ViolationCode.INVALID_PAYMENT_AMOUNT
        assert result.entity is in_review_claim
        assert result.payment_record is None

    def test_partial_payment_covering_claim_settles_it(self, machine, in_review_claim):
        result = machine.attempt_transition(
            in_review_claim,
            event(TransitionEventType.RECORD_PARTIAL_PAYMENT, payment=payment("10800")),
            NOW,
        )

        assert result.entity.status == ClaimStatus.PAID
        assert result.entity.outstanding_amount == 0
        assert result.payment_record.reconciliation_status == ReconciliationStatus.RECONCILED

    def test_appeal_resolved_needs_resolved_denial(self, machine, rejected_claim_and_denial):
        claim, denial = rejected_claim_and_denial

        without_denial = machine.attempt_transition(
            claim, event(TransitionEventType.APPEAL_RESOLVED, payment=payment("10800")), NOW
        )
        open_appeal = machine.attempt_transition(
            claim, event(TransitionEventType.APPEAL_RESOLVED, payment=payment("10800"), denial=denial), NOW
        )

        for result in (without_denial, open_appeal):
            assert result.error.kind == TransitionErrorKind.BLOCKING_VIOLATIONS_PRESENT
            assert result.error.violations[0].code == ViolationCode.APPEAL_NOT_RESOLVED
            assert result.entity is claim
        assert claim.status == ClaimStatus.REJECTED
        assert claim.paid_amount == 0

    def test_reject_opens_denial(self, rejected_claim_and_denial):
        claim, denial = rejected_claim_and_denial

        assert denial.claim_id == claim.id
        assert denial.appeal_status == AppealStatus.NOT_STARTED
        assert denial.denial_amount == Decimal("10800")
        assert denial.denial_code == "MNEC-004"
        assert denial.appeal_deadline == NOW + timedelta(days=30)

    def test_returned_claim_can_be_corrected_and_resubmitted(self, machine, in_review_claim, licenses):
        returned = drive_claim(machine, in_review_claim, [TransitionEventType.RETURN_CLAIM])

        corrected = returned.update_service_line("L1", quantity=5)
        assert corrected.claimed_amount == Decimal("5400")

        resubmitted = machine.attempt_transition(
            corrected, event(TransitionEventType.RESUBMIT), NOW, licenses=licenses
        )
        assert resubmitted.entity.status == ClaimStatus.PENDING
        assert resubmitted.entity.submission_timestamp == in_review_claim.submission_timestamp

    def test_locked_claim_lines_cannot_change(self, in_review_claim):
        with pytest.raises(ClaimNotEditableError):
            in_review_claim.add_service_line(make_line())

    def test_claimed_amount_tracks_lines(self, claim):
        with_two = claim.add_service_line(make_line(quantity=2, unit_price="500", line_id="L2"))
        assert with_two.claimed_amount == Decimal("11800")

        with_one = with_two.remove_service_line("L1")
        assert with_one.claimed_amount == Decimal("1000")
        assert claim.claimed_amount == Decimal("10800")

    def test_unknown_line(self, claim):
        with pytest.raises(KeyError):
            claim.remove_service_line("missing")

    def test_module_level_transition(self, claim, licenses):
        result = attempt_transition(claim, SUBMIT, NOW, licenses=licenses)

        assert result.ok


class TestConcurrentMerge:

    def test_documents_are_unioned(self, authorization):
        first = attach_documents(authorization, ["Lab Results"], NOW)
        second = attach_documents(authorization, ["Home Assessment"], NOW + timedelta(minutes=1))

        merged = merge_concurrent(first, second)

        assert {"Lab Results", "Home Assessment"} <= merged.documents
        assert merged.version == 3

    def test_newer_scalars_win(self, authorization):
        first = attach_documents(authorization, [], NOW)
        first.requested_duration_days = 45
        second = attach_documents(authorization, [], NOW + timedelta(minutes=1))
        second.requested_duration_days = 60

        assert merge_concurrent(first, second).requested_duration_days == 60
        assert merge_concurrent(second, first).requested_duration_days == 60

    def test_transition_survives_concurrent_document_edit(self, machine, authorization):
        submitted = machine.attempt_transition(authorization, SUBMIT, NOW).entity
        edited = attach_documents(authorization, ["Lab Results"], NOW + timedelta(minutes=1))

        for merged in (merge_concurrent(submitted, edited), merge_concurrent(edited, submitted)):
            assert merged.status == AuthorizationStatus.SUBMITTED
            assert merged.reference_number == "PA-2025-0001"
            assert [entry.signature for entry in merged.history] == [submitted.history[0].signature]
            assert merged.audit_chain_valid
            assert "Lab Results" in merged.documents
            assert merged.version == 3

    def test_diverging_transitions_are_not_merged(self, machine, authorization):
        submitted = machine.attempt_transition(authorization, SUBMIT, NOW).entity
        offline = machine.attempt_transition(authorization, event(TransitionEventType.GO_OFFLINE), NOW).entity

        with pytest.raises(ConcurrentTransitionError):
            merge_concurrent(submitted, offline)

    def test_different_entities_are_not_merged(self, authorization):
        with pytest.raises(ValueError):
            merge_concurrent(authorization, make_authorization(id="AUTH-002"))
