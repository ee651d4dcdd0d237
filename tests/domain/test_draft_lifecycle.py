"""
Draft lifecycle tests.

Verifies the transition table exhaustively: every (status, event) pair not
listed in DRAFT_TRANSITIONS must raise InvalidDraftTransitionError.
"""

from datetime import date
from decimal import Decimal

import pytest

from fiscal_kernel.domain.draft_lifecycle import (
    DRAFT_TRANSITIONS,
    TERMINAL_DRAFT_STATUSES,
    DraftEvent,
    DraftStatus,
    ItemFigures,
    ReviewDecision,
    allowed_events,
    is_discardable,
    is_editable,
    next_status,
    submission_problems,
    validate_for_submission,
)
from fiscal_kernel.exceptions import (
    DraftValidationError,
    InvalidDraftTransitionError,
    InvalidReviewDecisionError,
)

NON_REVIEW_EVENTS = [DraftEvent.SUBMIT, DraftEvent.EDIT, DraftEvent.FINALIZE]


def item(line=1, quantity="2", unit_price="10.00"):
    return ItemFigures(
        line_number=line,
        description="Milho",
        quantity=Decimal(quantity),
        unit_price=Decimal(unit_price),
    )


class TestTransitions:

    @pytest.mark.parametrize(
        "current, event, expected",
        [
            (DraftStatus.DRAFT, DraftEvent.SUBMIT, DraftStatus.SUBMITTED),
            (DraftStatus.DRAFT, DraftEvent.EDIT, DraftStatus.DRAFT),
            (DraftStatus.NEEDS_REVISION, DraftEvent.EDIT, DraftStatus.DRAFT),
            (DraftStatus.APPROVED, DraftEvent.FINALIZE, DraftStatus.FINALIZED),
        ],
    )
    def test_single_target_transitions(self, current, event, expected):
        assert next_status(current, event) == expected

    @pytest.mark.parametrize("decision", list(ReviewDecision))
    def test_review_moves_to_decision(self, decision):
        assert next_status(DraftStatus.SUBMITTED, DraftEvent.REVIEW, decision) == DraftStatus(
            decision.value
        )

    def test_accepts_plain_strings(self):
        assert next_status("submitted", "review", "Approved") == DraftStatus.APPROVED

    @pytest.mark.parametrize("current", list(DraftStatus))
    @pytest.mark.parametrize("event", list(DraftEvent))
    def test_unlisted_pairs_raise(self, current, event):
        if (current, event) in DRAFT_TRANSITIONS:
            pytest.skip("listed transition")

        with pytest.raises(InvalidDraftTransitionError) as exc_info:
            next_status(current, event, ReviewDecision.APPROVED, draft_id="d-1")

        assert exc_info.value.current_status == current.value
        assert exc_info.value.event == event.value
        assert exc_info.value.draft_id == "d-1"

    @pytest.mark.parametrize("status", sorted(TERMINAL_DRAFT_STATUSES))
    def test_terminal_statuses_allow_nothing(self, status):
        assert allowed_events(status) == frozenset()

    def test_review_without_decision(self):
        with pytest.raises(InvalidReviewDecisionError):
            next_status(DraftStatus.SUBMITTED, DraftEvent.REVIEW)

    def test_review_with_unknown_decision(self):
        with pytest.raises(InvalidReviewDecisionError) as exc_info:
            next_status(DraftStatus.SUBMITTED, DraftEvent.REVIEW, "maybe")

        assert exc_info.value.decision == "maybe"

    def test_unknown_status_is_a_value_error(self):
        with pytest.raises(ValueError):
            next_status("archived", DraftEvent.SUBMIT)

    def test_allowed_events_from_draft(self):
        assert allowed_events(DraftStatus.DRAFT) == {DraftEvent.SUBMIT, DraftEvent.EDIT}


class TestPredicates:

    @pytest.mark.parametrize(
        "status, editable",
        [
            (DraftStatus.DRAFT, True),
            (DraftStatus.NEEDS_REVISION, True),
            (DraftStatus.SUBMITTED, False),
            (DraftStatus.APPROVED, False),
            (DraftStatus.REJECTED, False),
            (DraftStatus.FINALIZED, False),
        ],
    )
    def test_is_editable(self, status, editable):
        assert is_editable(status) is editable

    @pytest.mark.parametrize(
        "status, discardable",
        [
            (DraftStatus.DRAFT, True),
            (DraftStatus.REJECTED, True),
            (DraftStatus.SUBMITTED, False),
            (DraftStatus.APPROVED, False),
            (DraftStatus.NEEDS_REVISION, False),
            (DraftStatus.FINALIZED, False),
        ],
    )
    def test_is_discardable(self, status, discardable):
        assert is_discardable(status) is discardable


class TestSubmissionGuard:

    def test_complete_draft_passes(self):
        validate_for_submission("Cooperativa", "PR", date(2025, 1, 15), [item()])

    def test_every_problem_is_reported(self):
        with pytest.raises(DraftValidationError) as exc_info:
            validate_for_submission(
                "  ",
                "XX",
                None,
                [item(1, quantity="0"), item(2, unit_price="-1")],
                draft_id="d-9",
            )

        problems = exc_info.value.problems
        assert "counterparty_name is required" in problems
        assert "destination_region 'XX' is not a valid UF" in problems
        assert "issue_date is required" in problems
        assert "item 1: quantity must be positive" in problems
        assert "item 2: unit_price must be positive" in problems
        assert exc_info.value.draft_id == "d-9"
        assert exc_info.value.code == "DRAFT_VALIDATION_FAILED"

    def test_missing_items(self):
        problems = submission_problems("Cooperativa", "SP", date(2025, 1, 15), [])

        assert problems == ["at least one item is required"]

    def test_missing_region(self):
        problems = submission_problems("Cooperativa", None, date(2025, 1, 15), [item()])

        assert problems == ["destination_region is required"]

    @pytest.mark.parametrize("bad", ["NaN", "Infinity", "-Infinity"])
    def test_non_finite_figures_are_problems(self, bad):
        problems = submission_problems(
            "Cooperativa", "PR", date(2025, 1, 15), [item(1, quantity=bad, unit_price=bad)]
        )

        assert problems == [
            "item 1: quantity must be positive",
            "item 1: unit_price must be positive",
        ]
