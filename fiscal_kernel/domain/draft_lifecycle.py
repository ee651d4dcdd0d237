"""
Draft lifecycle (``fiscal_kernel.domain.draft_lifecycle``).

Responsibility
--------------
The closed set of draft statuses and events, the transition table, and the
single dispatch function every status change goes through.  Also the
submission guard (required header fields and positive item values).

Architecture position
---------------------
**Kernel domain layer** -- pure.  ZERO I/O.  Services call ``next_status``
and never compare statuses ad hoc, so adding a status forces every
transition site through this table.

Transitions
-----------
::

    draft ──submit──> submitted ──review──> approved ──finalize──> finalized
      ^                            ├──────> needs_revision ──edit──┐
      └──────────edit──────────────┘        rejected               │
      ^────────────────────────────────────────────────────────────┘

``rejected`` and ``finalized`` are terminal.  A rejected draft can only be
discarded; a new draft replaces it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Iterable, Sequence

from fiscal_kernel.domain.values import is_valid_uf
from fiscal_kernel.exceptions import (
    DraftValidationError,
    InvalidDraftTransitionError,
    InvalidReviewDecisionError,
)


class DraftStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    NEEDS_REVISION = "needs_revision"
    REJECTED = "rejected"
    FINALIZED = "finalized"


class DraftEvent(str, Enum):
    SUBMIT = "submit"
    REVIEW = "review"
    EDIT = "edit"
    FINALIZE = "finalize"


class ReviewDecision(str, Enum):
    """Outcomes a reviewing accountant may choose."""

    APPROVED = "approved"
    NEEDS_REVISION = "needs_revision"
    REJECTED = "rejected"

    @classmethod
    def parse(cls, value: "ReviewDecision | str") -> "ReviewDecision":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidReviewDecisionError(str(value)) from None


class DraftKind(str, Enum):
    """Direction of the goods movement (entrada = inbound, saida = outbound)."""

    ENTRADA = "entrada"
    SAIDA = "saida"


DRAFT_TRANSITIONS: dict[tuple[DraftStatus, DraftEvent], frozenset[DraftStatus]] = {
    (DraftStatus.DRAFT, DraftEvent.SUBMIT): frozenset({DraftStatus.SUBMITTED}),
    (DraftStatus.DRAFT, DraftEvent.EDIT): frozenset({DraftStatus.DRAFT}),
    (DraftStatus.NEEDS_REVISION, DraftEvent.EDIT): frozenset({DraftStatus.DRAFT}),
    (DraftStatus.SUBMITTED, DraftEvent.REVIEW): frozenset({
        DraftStatus.APPROVED,
        DraftStatus.NEEDS_REVISION,
        DraftStatus.REJECTED,
    }),
    (DraftStatus.APPROVED, DraftEvent.FINALIZE): frozenset({DraftStatus.FINALIZED}),
}

TERMINAL_DRAFT_STATUSES: frozenset[DraftStatus] = frozenset({
    DraftStatus.REJECTED,
    DraftStatus.FINALIZED,
})

EDITABLE_STATUSES: frozenset[DraftStatus] = frozenset(
    status for (status, event) in DRAFT_TRANSITIONS if event == DraftEvent.EDIT
)

DISCARDABLE_STATUSES: frozenset[DraftStatus] = frozenset({
    DraftStatus.DRAFT,
    DraftStatus.REJECTED,
})


def allowed_events(current: DraftStatus | str) -> frozenset[DraftEvent]:
    current = DraftStatus(current)
    return frozenset(event for (status, event) in DRAFT_TRANSITIONS if status == current)


def next_status(
    current: DraftStatus | str,
    event: DraftEvent | str,
    decision: ReviewDecision | str | None = None,
    draft_id: str | None = None,
) -> DraftStatus:
    """
    Resolve the status a draft moves to when ``event`` is applied.

    ``review`` requires ``decision``; its target is the decision itself.
    Every other event has exactly one target.

    Raises:
        InvalidDraftTransitionError: Event not allowed from ``current``.
        InvalidReviewDecisionError: ``review`` with a missing or unknown decision.
    """
    current = DraftStatus(current)
    event = DraftEvent(event)
    targets = DRAFT_TRANSITIONS.get((current, event))
    if targets is None:
        raise InvalidDraftTransitionError(
            current_status=current.value,
            event=event.value,
            draft_id=draft_id,
        )

    if event == DraftEvent.REVIEW:
        if decision is None:
            raise InvalidReviewDecisionError("<missing>")
        target = DraftStatus(ReviewDecision.parse(decision).value)
    else:
        (target,) = targets

    if target not in targets:
        raise InvalidDraftTransitionError(
            current_status=current.value,
            event=event.value,
            draft_id=draft_id,
            requested_status=target.value,
        )
    return target


def is_editable(status: DraftStatus | str) -> bool:
    return DraftStatus(status) in EDITABLE_STATUSES


def is_discardable(status: DraftStatus | str) -> bool:
    return DraftStatus(status) in DISCARDABLE_STATUSES


# =========================================================================
# Submission guard
# =========================================================================


@dataclass(frozen=True)
class ItemFigures:
    """The item values the submission guard inspects."""

    line_number: int
    description: str | None
    quantity: Decimal
    unit_price: Decimal


def submission_problems(
    counterparty_name: str | None,
    destination_region: str | None,
    issue_date: date | None,
    items: Sequence[ItemFigures],
) -> list[str]:
    """Every reason a draft cannot be submitted; empty when it can."""
    problems: list[str] = []
    if not counterparty_name or not counterparty_name.strip():
        problems.append("counterparty_name is required")
    if not destination_region:
        problems.append("destination_region is required")
    elif not is_valid_uf(destination_region):
        problems.append(f"destination_region '{destination_region}' is not a valid UF")
    if issue_date is None:
        problems.append("issue_date is required")
    if not items:
        problems.append("at least one item is required")
    for item in items:
        if item.quantity is None or not item.quantity.is_finite() or item.quantity <= 0:
            problems.append(f"item {item.line_number}: quantity must be positive")
        if item.unit_price is None or not item.unit_price.is_finite() or item.unit_price <= 0:
            problems.append(f"item {item.line_number}: unit_price must be positive")
    return problems


def validate_for_submission(
    counterparty_name: str | None,
    destination_region: str | None,
    issue_date: date | None,
    items: Iterable[ItemFigures],
    draft_id: str | None = None,
) -> None:
    """
    Raises:
        DraftValidationError: Listing every problem found.
    """
    problems = submission_problems(counterparty_name, destination_region, issue_date, list(items))
    if problems:
        raise DraftValidationError(problems, draft_id=draft_id)
