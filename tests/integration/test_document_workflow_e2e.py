"""
End-to-end document workflow through DocumentWorkflow.

Every call commits its own transaction, so these tests observe exactly
what a caller of the service layer would: committed state, rollback on
failure, and the structured log trail.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from fiscal_kernel.domain.access_key import parse_access_key
from fiscal_kernel.domain.draft_lifecycle import DraftStatus
from fiscal_kernel.exceptions import (
    DraftNotApprovedError,
    DraftNotFoundError,
    InvalidAccessKeyError,
    InvalidDraftTransitionError,
)


def _approved(workflow, producer_id, header, items, reviewer_id):
    draft = workflow.create_draft(producer_id, header, items)
    workflow.submit_draft(draft.id, reviewer_id=reviewer_id)
    return workflow.review_draft(draft.id, "approved", reviewer_id=reviewer_id)


class TestHappyPath:

    def test_create_submit_approve_finalize(
        self, workflow, registered_producer, header, items, reviewer_id
    ):
        draft = workflow.create_draft(registered_producer.id, header, items)
        assert draft.status == DraftStatus.DRAFT
        assert draft.total_value == Decimal("56.00")

        workflow.submit_draft(draft.id, reviewer_id=reviewer_id)
        assert [d.id for d in workflow.list_pending_review(reviewer_id)] == [draft.id]

        workflow.review_draft(draft.id, "approved", feedback="OK", reviewer_id=reviewer_id)
        assert workflow.list_pending_review() == []

        result = workflow.finalize_draft(draft.id)

        document = workflow.get_document(result.document.id)
        assert document.number == 1
        assert document.total_value == Decimal("56.00")
        assert document.origin == "draft"
        assert len(document.items) == 2
        assert parse_access_key(document.access_key).number == 1
        assert workflow.get_document_by_access_key(document.access_key).id == document.id

        stored = workflow.get_draft(draft.id)
        assert stored.is_finalized
        assert stored.final_document_id == document.id

    def test_list_drafts(self, workflow, registered_producer, header, items, reviewer_id):
        first = workflow.create_draft(registered_producer.id, header, items)
        second = _approved(workflow, registered_producer.id, header, items, reviewer_id)

        assert {d.id for d in workflow.list_drafts(registered_producer.id)} == {first.id, second.id}
        assert [d.id for d in workflow.list_drafts(registered_producer.id, "approved")] == [
            second.id
        ]


class TestRejection:

    def test_rejected_draft_can_only_be_discarded(
        self, workflow, registered_producer, header, items, reviewer_id
    ):
        draft = workflow.create_draft(registered_producer.id, header, items)
        workflow.submit_draft(draft.id, reviewer_id=reviewer_id)
        rejected = workflow.review_draft(
            draft.id, "rejected", feedback="Operação não realizada", reviewer_id=reviewer_id
        )
        assert rejected.status == DraftStatus.REJECTED

        with pytest.raises(InvalidDraftTransitionError):
            workflow.update_draft(draft.id, items=items[:1])
        with pytest.raises(DraftNotApprovedError):
            workflow.finalize_draft(draft.id)

        workflow.discard_draft(draft.id)

        with pytest.raises(DraftNotFoundError):
            workflow.get_draft(draft.id)


class TestRevision:

    def test_corrections_round_trip(
        self, workflow, registered_producer, header, items, reviewer_id
    ):
        draft = workflow.create_draft(
            registered_producer.id, header, items, extra_fields={"talhao": "T-07"}
        )
        workflow.submit_draft(draft.id, reviewer_id=reviewer_id)
        reviewed = workflow.review_draft(
            draft.id,
            "needs_revision",
            feedback="Corrigir destinatário",
            corrections={"counterparty_name": "Cooperativa Central"},
            corrected_payload={"counterparty_name": "Cooperativa Central", "safra": "2024/25"},
            reviewer_id=reviewer_id,
        )
        assert reviewed.status == DraftStatus.NEEDS_REVISION
        assert reviewed.suggested_corrections.plain() == {
            "counterparty_name": "Cooperativa Central"
        }

        corrected = workflow.apply_corrections(draft.id)
        assert corrected.status == DraftStatus.DRAFT
        assert corrected.header.counterparty_name == "Cooperativa Central"
        assert corrected.review_feedback is None
        assert corrected.corrected_payload is None

        workflow.submit_draft(draft.id, reviewer_id=reviewer_id)
        workflow.review_draft(draft.id, "approved", reviewer_id=reviewer_id)
        result = workflow.finalize_draft(draft.id)

        assert result.document.header.counterparty_name == "Cooperativa Central"
        assert result.document.extra_fields.plain() == {"talhao": "T-07", "safra": "2024/25"}

    def test_timestamp_extra_field_round_trips(
        self, workflow, registered_producer, header, items
    ):
        scanned_at = datetime(2025, 1, 20, 10, 30)

        draft = workflow.create_draft(
            registered_producer.id, header, items, extra_fields={"scanned_at": scanned_at}
        )

        assert draft.extra_fields.plain() == {"scanned_at": scanned_at}
        assert workflow.get_draft(draft.id).extra_fields["scanned_at"].value == scanned_at


class TestNumbering:

    def test_direct_and_draft_documents_share_numbering(
        self, workflow, registered_producer, header, items, reviewer_id
    ):
        direct = workflow.create_direct_document(registered_producer.id, header, items)
        draft = _approved(workflow, registered_producer.id, header, items, reviewer_id)
        finalized = workflow.finalize_draft(draft.id).document

        assert (direct.origin, direct.number) == ("direct", 1)
        assert (finalized.origin, finalized.number) == ("draft", 2)
        assert direct.access_key != finalized.access_key

    def test_failed_finalize_rolls_back_number(
        self, workflow, registered_producer, header, items, reviewer_id, monkeypatch
    ):
        draft = _approved(workflow, registered_producer.id, header, items, reviewer_id)

        def broken_check(access_key):
            raise InvalidAccessKeyError(access_key, "check digit mismatch")

        with monkeypatch.context() as patched:
            patched.setattr(
                "fiscal_kernel.services.finalizer_service.parse_access_key", broken_check
            )
            with pytest.raises(InvalidAccessKeyError):
                workflow.finalize_draft(draft.id)

        assert workflow.get_draft(draft.id).status == DraftStatus.APPROVED

        result = workflow.finalize_draft(draft.id)
        assert result.document.number == 1


class TestLogging:

    def test_workflow_trail(
        self, workflow, registered_producer, header, items, reviewer_id, captured_logs
    ):
        draft = _approved(workflow, registered_producer.id, header, items, reviewer_id)
        workflow.finalize_draft(draft.id)

        messages = [r["message"] for r in captured_logs()]
        trail = [
            m for m in messages
            if m in {"draft_created", "draft_submitted", "draft_reviewed", "document_finalized"}
        ]
        assert trail == ["draft_created", "draft_submitted", "draft_reviewed", "document_finalized"]
        assert "transaction_committed" in messages

    def test_rollback_is_logged(self, workflow, registered_producer, header, items, captured_logs):
        draft = workflow.create_draft(registered_producer.id, header, items)

        with pytest.raises(DraftNotApprovedError):
            workflow.finalize_draft(draft.id)

        assert any(r["message"] == "transaction_rolled_back" for r in captured_logs())
