"""
DocumentFinalizer tests.

Covers issuing from an approved draft and the direct path: numbering,
access keys, totals, origin markers and the preconditions of finalize.
"""

from dataclasses import replace
from decimal import Decimal
from uuid import uuid4

import pytest

from fiscal_kernel.domain.access_key import IssuanceSettings, parse_access_key
from fiscal_kernel.domain.draft_lifecycle import DraftStatus
from fiscal_kernel.domain.dtos import ProducerInfo
from fiscal_kernel.exceptions import (
    DraftAlreadyFinalizedError,
    DraftNotApprovedError,
    DraftValidationError,
    ProducerNotFoundError,
)
from fiscal_kernel.models.official_document import ORIGIN_NOTE_SUFFIX, DocumentOrigin
from fiscal_kernel.services.draft_service import DraftService
from fiscal_kernel.services.finalizer_service import DocumentFinalizer, origin_notes
from fiscal_kernel.services.sequence_service import SequenceService, document_sequence_name


@pytest.fixture
def drafts(session, clock):
    return DraftService(session, clock)


@pytest.fixture
def finalizer(session, clock):
    return DocumentFinalizer(session, clock)


@pytest.fixture
def approve(drafts, producer, header, items, reviewer_id):
    """Create, submit and approve a draft; returns its DraftInfo."""

    def _approve(**header_overrides):
        draft = drafts.create(producer.id, replace(header, **header_overrides), items)
        drafts.submit(draft.id, reviewer_id=reviewer_id)
        return drafts.review(draft.id, "approved")

    return _approve


class TestFinalize:

    def test_document_mirrors_draft(self, finalizer, approve, producer):
        draft = approve()

        result = finalizer.finalize(draft.id)
        document = result.document

        assert document.producer_id == producer.id
        assert document.number == 1
        assert document.series == "1"
        assert document.model == "55"
        assert document.origin == DocumentOrigin.DRAFT.value
        assert document.status == "validated"
        assert document.header.counterparty_name == draft.header.counterparty_name
        assert [i.description for i in document.items] == [i.description for i in draft.items]
        assert [i.line_total for i in document.items] == [Decimal("20.00"), Decimal("36.00")]

    def test_totals(self, finalizer, approve):
        document = finalizer.finalize(approve().id).document

        assert document.total_value == Decimal("56.00")
        assert document.cbs_total == Decimal("0.50")
        assert document.ibs_total == Decimal("0.06")
        assert document.funrural_total == Decimal("0.84")

    def test_access_key_layout(self, finalizer, approve, producer):
        document = finalizer.finalize(approve().id).document

        parts = parse_access_key(document.access_key)
        assert len(document.access_key) == 45
        assert parts.region_code == "41"
        assert parts.year_month == "2501"
        assert parts.issuer_tax_id == producer.tax_id
        assert parts.model == "55"
        assert parts.series == "001"
        assert parts.number == 1

    def test_draft_points_at_document(self, finalizer, approve, clock):
        draft = approve()

        result = finalizer.finalize(draft.id)

        assert result.draft.status == DraftStatus.FINALIZED
        assert result.draft.final_document_id == result.document.id
        assert result.draft.finalized_at == clock.now()
        assert result.draft.total_value == result.document.total_value
        assert result.draft.temporary_key != result.document.access_key

    def test_origin_marker_in_notes(self, finalizer, approve):
        plain = finalizer.finalize(approve().id).document
        annotated = finalizer.finalize(approve(notes="Safra 2024/25").id).document

        suffix = ORIGIN_NOTE_SUFFIX[DocumentOrigin.DRAFT]
        assert plain.notes == suffix
        assert annotated.notes == f"Safra 2024/25 | {suffix}"

    def test_numbers_increase_per_issuer(self, finalizer, approve):
        numbers = [finalizer.finalize(approve().id).document.number for _ in range(3)]

        assert numbers == [1, 2, 3]

    def test_second_finalize_rejected(self, finalizer, approve):
        draft = approve()
        first = finalizer.finalize(draft.id)

        with pytest.raises(DraftAlreadyFinalizedError) as exc_info:
            finalizer.finalize(draft.id)

        assert exc_info.value.final_document_id == str(first.document.id)

    @pytest.mark.parametrize("stop_at", ["draft", "submitted", "needs_revision", "rejected"])
    def test_only_approved_drafts(self, finalizer, drafts, producer, header, items, stop_at):
        draft = drafts.create(producer.id, header, items)
        if stop_at != "draft":
            drafts.submit(draft.id)
        if stop_at in ("needs_revision", "rejected"):
            drafts.review(draft.id, stop_at)

        with pytest.raises(DraftNotApprovedError) as exc_info:
            finalizer.finalize(draft.id)

        assert exc_info.value.current_status == stop_at
        assert exc_info.value.event == "finalize"

    def test_issuance_settings_applied(self, session, clock, approve):
        finalizer = DocumentFinalizer(session, clock, issuance=IssuanceSettings(series="7"))

        document = finalizer.finalize(approve().id).document

        assert document.series == "7"
        assert parse_access_key(document.access_key).series == "007"

    def test_finalize_is_logged(self, finalizer, approve, captured_logs):
        result = finalizer.finalize(approve().id)

        (record,) = [r for r in captured_logs() if r["message"] == "document_finalized"]
        assert record["access_key"] == result.document.access_key
        assert record["document_id"] == str(result.document.id)
        assert record["draft_id"] == str(result.draft.id)


class TestDirectIssue:

    def test_direct_document(self, finalizer, producer, header, items):
        document = finalizer.create_direct(producer.id, header, items)

        assert document.origin == DocumentOrigin.DIRECT.value
        assert document.notes == ORIGIN_NOTE_SUFFIX[DocumentOrigin.DIRECT]
        assert document.total_value == Decimal("56.00")
        assert document.number == 1

    def test_shares_numbering_with_drafts(self, finalizer, approve, producer, header, items):
        direct = finalizer.create_direct(producer.id, header, items)
        finalized = finalizer.finalize(approve().id).document

        assert (direct.number, finalized.number) == (1, 2)

    def test_validation_runs_before_numbering(self, session, finalizer, producer, header, items):
        with pytest.raises(DraftValidationError):
            finalizer.create_direct(producer.id, replace(header, counterparty_name=""), items)

        sequence = document_sequence_name(producer.tax_id, "1")
        assert SequenceService(session).current_value(sequence) is None

    def test_unknown_producer(self, finalizer, header, items):
        with pytest.raises(ProducerNotFoundError):
            finalizer.create_direct(uuid4(), header, items)


class TestRegionFallback:

    def test_unknown_state_uses_default(self, session, clock, producer, header, items, captured_logs):
        class LegacyDirectory:
            def get_producer(self, producer_id):
                return ProducerInfo(
                    id=producer.id,
                    name=producer.name,
                    tax_id=producer.tax_id,
                    state="EX",
                    regime=producer.regime,
                )

        finalizer = DocumentFinalizer(
            session,
            clock,
            producers=LegacyDirectory(),
            issuance=IssuanceSettings(default_state="SP"),
        )

        document = finalizer.create_direct(producer.id, header, items)

        assert parse_access_key(document.access_key).region_code == "35"
        assert any(
            r["message"] == "producer_state_unknown_using_default" for r in captured_logs()
        )


def test_origin_notes():
    assert origin_notes(None, DocumentOrigin.DIRECT) == "Gerada diretamente"
    assert origin_notes("  ", DocumentOrigin.DIRECT) == "Gerada diretamente"
    assert origin_notes(" Lote 3 ", DocumentOrigin.DIRECT) == "Lote 3 | Gerada diretamente"
