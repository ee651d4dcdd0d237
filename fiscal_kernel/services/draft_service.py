"""
DraftService -- the write path of the draft lifecycle.

Responsibility:
    Creates drafts, replaces their header and items, submits them for
    review, records review decisions, merges reviewer corrections and
    discards drafts.  Every status change goes through
    ``draft_lifecycle.next_status``.

Architecture position:
    Kernel > Services -- imperative shell.  Flush-only; the caller owns the
    transaction.

Invariants enforced:
    - Single writer per draft: every operation starts by locking the draft
      row (``SELECT ... FOR UPDATE`` with ``populate_existing``) and the
      draft's version column rejects writes based on a stale read.
    - total_value equals the sum of item line totals after every write.
    - Items are only replaced in draft / needs_revision; an edit in
      needs_revision clears the review fields and returns the draft to draft.

Failure modes:
    - DraftNotFoundError, ProducerNotFoundError.
    - InvalidDraftTransitionError (current status, attempted event).
    - DraftValidationError on submit, listing every problem.
    - InvalidReviewDecisionError, InvalidCorrectionError.
    - ConcurrentDraftModificationError on a lost update.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import inspect, select
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from fiscal_kernel.domain.access_key import generate_temporary_key
from fiscal_kernel.domain.clock import Clock
from fiscal_kernel.domain.corrections import (
    CorrectionMap,
    coerce_correction_map,
    split_header_corrections,
)
from fiscal_kernel.domain.draft_lifecycle import (
    DraftEvent,
    DraftStatus,
    ReviewDecision,
    is_discardable,
    next_status,
    validate_for_submission,
)
from fiscal_kernel.domain.dtos import (
    DraftHeader,
    DraftInfo,
    DraftItemSpec,
    ProducerDirectory,
    compute_total,
)
from fiscal_kernel.exceptions import (
    ConcurrentDraftModificationError,
    DraftNotFoundError,
    FiscalValidationError,
    InvalidCorrectionError,
    InvalidDraftTransitionError,
)
from fiscal_kernel.logging_config import LogContext, get_logger
from fiscal_kernel.models.draft import Draft, DraftItem
from fiscal_kernel.services.base import BaseService
from fiscal_kernel.services.producer_service import ProducerService

logger = get_logger("services.draft")


def lock_draft(session: Session, draft_id: UUID) -> Draft:
    """
    Load a draft with a row lock, refreshing any stale identity-map copy.

    Raises:
        DraftNotFoundError: If the id is unknown.
    """
    draft = session.execute(
        select(Draft)
        .where(Draft.id == draft_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if draft is None:
        raise DraftNotFoundError(str(draft_id))
    return draft


def flush_draft(session: Session, draft: Draft) -> None:
    """Flush, translating a version-check failure into a typed error."""
    # A failed flush expires the draft; read the id from its identity key.
    state = inspect(draft)
    draft_id = str(state.identity[0]) if state.identity else str(draft.id)
    try:
        session.flush()
    except StaleDataError as exc:
        logger.warning(
            "draft_concurrent_modification",
            extra={"draft_id": draft_id},
        )
        raise ConcurrentDraftModificationError(draft_id) from exc


class DraftService(BaseService[Draft]):
    """
    Draft lifecycle writes.

    Args:
        session: SQLAlchemy session (caller owns the transaction).
        clock: Time source for lifecycle timestamps and temporary keys.
        producers: Producer-identity lookup; defaults to ProducerService.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        producers: ProducerDirectory | None = None,
    ):
        super().__init__(session, clock)
        self._producers = producers or ProducerService(session, clock)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _replace_items(self, draft: Draft, items: Sequence[DraftItemSpec], actor_id: UUID) -> None:
        specs = list(items)
        draft.items.clear()
        # Old rows must be gone before new rows reuse their line numbers.
        flush_draft(self.session, draft)
        for line_number, spec in enumerate(specs, start=1):
            draft.items.append(
                DraftItem(
                    **DraftItem.values_from_spec(spec, line_number),
                    created_by_id=actor_id,
                )
            )

    def _recompute_total(self, draft: Draft) -> None:
        draft.total_value = compute_total([item.to_spec() for item in draft.items])

    def _merge_changes(self, draft: Draft, changes: CorrectionMap) -> None:
        header_updates, extras = split_header_corrections(changes)
        if header_updates:
            try:
                header = draft.header.with_updates(header_updates)
            except ValueError as exc:
                # Only the kind enum can reject a correctly tagged value.
                raise InvalidCorrectionError("kind", str(exc)) from exc
            draft.apply_header(header)
        if extras:
            current = CorrectionMap.from_json(draft.extra_fields)
            draft.extra_fields = current.merged(extras).to_json()

    def _edit(
        self,
        draft: Draft,
        actor_id: UUID,
        header: DraftHeader | None = None,
        items: Sequence[DraftItemSpec] | None = None,
        changes: CorrectionMap | None = None,
    ) -> DraftStatus:
        previous = draft.status_enum
        target = next_status(previous, DraftEvent.EDIT, draft_id=str(draft.id))

        if header is not None:
            draft.apply_header(header)
        if changes:
            self._merge_changes(draft, changes)
        if items is not None:
            self._replace_items(draft, items, actor_id)
        if previous == DraftStatus.NEEDS_REVISION:
            draft.clear_review()

        draft.status = target.value
        draft.updated_by_id = actor_id
        self._recompute_total(draft)
        flush_draft(self.session, draft)
        return previous

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def create(
        self,
        producer_id: UUID,
        header: DraftHeader,
        items: Sequence[DraftItemSpec],
        reviewer_id: UUID | None = None,
        extra_fields: CorrectionMap | Mapping[str, Any] | None = None,
        actor_id: UUID | None = None,
    ) -> DraftInfo:
        """
        Create a draft in status ``draft`` with a fresh temporary key.

        Raises:
            ProducerNotFoundError: If ``producer_id`` is unknown.
        """
        self._producers.get_producer(producer_id)
        actor = actor_id or producer_id
        now = self._clock.now()
        extras = coerce_correction_map(extra_fields) or CorrectionMap()

        draft = Draft(
            id=uuid4(),
            producer_id=producer_id,
            reviewer_id=reviewer_id,
            temporary_key=generate_temporary_key(int(now.timestamp() * 1000)),
            status=DraftStatus.DRAFT.value,
            extra_fields=extras.to_json() if extras else None,
            created_by_id=actor,
        )
        draft.apply_header(header)
        for line_number, spec in enumerate(items, start=1):
            draft.items.append(
                DraftItem(**DraftItem.values_from_spec(spec, line_number), created_by_id=actor)
            )
        self._recompute_total(draft)
        self.session.add(draft)
        self.session.flush()

        with LogContext.bind(draft_id=draft.id, producer_id=producer_id):
            logger.info(
                "draft_created",
                extra={
                    "item_count": len(draft.items),
                    "total_value": draft.total_value,
                    "temporary_key": draft.temporary_key,
                },
            )
        return draft.to_info()

    def update(
        self,
        draft_id: UUID,
        header: DraftHeader | None = None,
        items: Sequence[DraftItemSpec] | None = None,
        changes: CorrectionMap | Mapping[str, Any] | None = None,
        actor_id: UUID | None = None,
    ) -> DraftInfo:
        """
        Replace the header and/or items, or merge ``changes`` into the header.

        ``changes`` is a tagged scalar map: known header fields are type
        checked and applied, other keys land in ``extra_fields``.

        Raises:
            InvalidDraftTransitionError: Draft not in draft/needs_revision.
            InvalidCorrectionError: A change has the wrong type.
        """
        draft = lock_draft(self.session, draft_id)
        actor = actor_id or draft.producer_id
        previous = self._edit(
            draft, actor, header=header, items=items,
            changes=coerce_correction_map(changes),
        )

        with LogContext.bind(draft_id=draft.id, producer_id=draft.producer_id):
            logger.info(
                "draft_updated",
                extra={
                    "previous_status": previous.value,
                    "items_replaced": items is not None,
                    "total_value": draft.total_value,
                },
            )
        return draft.to_info()

    def submit(
        self,
        draft_id: UUID,
        reviewer_id: UUID | None = None,
        actor_id: UUID | None = None,
    ) -> DraftInfo:
        """
        Send a draft to the accountant.

        Raises:
            InvalidDraftTransitionError: Draft not in status draft.
            DraftValidationError: Required header fields or items missing.
        """
        draft = lock_draft(self.session, draft_id)
        target = next_status(draft.status_enum, DraftEvent.SUBMIT, draft_id=str(draft.id))
        validate_for_submission(
            counterparty_name=draft.counterparty_name,
            destination_region=draft.destination_region,
            issue_date=draft.issue_date,
            items=[item.to_spec().figures(item.line_number) for item in draft.items],
            draft_id=str(draft.id),
        )

        if reviewer_id is not None:
            draft.reviewer_id = reviewer_id
        draft.status = target.value
        draft.submitted_at = self._clock.now()
        draft.updated_by_id = actor_id or draft.producer_id
        self._recompute_total(draft)
        flush_draft(self.session, draft)

        with LogContext.bind(draft_id=draft.id, producer_id=draft.producer_id):
            logger.info(
                "draft_submitted",
                extra={
                    "reviewer_id": str(draft.reviewer_id) if draft.reviewer_id else None,
                    "total_value": draft.total_value,
                },
            )
        return draft.to_info()

    def review(
        self,
        draft_id: UUID,
        decision: ReviewDecision | str,
        feedback: str | None = None,
        corrections: CorrectionMap | Mapping[str, Any] | None = None,
        corrected_payload: CorrectionMap | Mapping[str, Any] | None = None,
        reviewer_id: UUID | None = None,
    ) -> DraftInfo:
        """
        Record the accountant's decision on a submitted draft.

        Raises:
            InvalidDraftTransitionError: Draft not in status submitted.
            InvalidReviewDecisionError: Unknown decision.
        """
        draft = lock_draft(self.session, draft_id)
        parsed = ReviewDecision.parse(decision)
        target = next_status(draft.status_enum, DraftEvent.REVIEW, parsed, draft_id=str(draft.id))

        suggested = coerce_correction_map(corrections)
        payload = coerce_correction_map(corrected_payload)
        if reviewer_id is not None:
            draft.reviewer_id = reviewer_id
        draft.status = target.value
        draft.review_feedback = feedback
        draft.suggested_corrections = suggested.to_json() if suggested is not None else None
        draft.corrected_payload = payload.to_json() if payload is not None else None
        draft.reviewed_at = self._clock.now()
        draft.updated_by_id = draft.reviewer_id or draft.producer_id
        flush_draft(self.session, draft)

        with LogContext.bind(
            draft_id=draft.id,
            producer_id=draft.producer_id,
            actor_id=draft.reviewer_id,
        ):
            logger.info(
                "draft_reviewed",
                extra={
                    "decision": parsed.value,
                    "has_feedback": feedback is not None,
                    "correction_count": len(suggested) if suggested else 0,
                },
            )
        return draft.to_info()

    def apply_corrections(self, draft_id: UUID, actor_id: UUID | None = None) -> DraftInfo:
        """
        Merge the reviewer's corrected payload into the header.

        Counts as an edit: a needs_revision draft returns to draft with its
        review fields cleared.

        Raises:
            InvalidDraftTransitionError: Draft not in draft/needs_revision.
            FiscalValidationError: No corrected payload to apply.
        """
        draft = lock_draft(self.session, draft_id)
        if draft.corrected_payload is None:
            # Surface a transition error first when the status is wrong.
            next_status(draft.status_enum, DraftEvent.EDIT, draft_id=str(draft.id))
            raise FiscalValidationError(f"Draft {draft_id} has no corrected payload to apply")

        payload = CorrectionMap.from_json(draft.corrected_payload)
        previous = self._edit(draft, actor_id or draft.producer_id, changes=payload)

        with LogContext.bind(draft_id=draft.id, producer_id=draft.producer_id):
            logger.info(
                "draft_corrections_applied",
                extra={"previous_status": previous.value, "fields": sorted(payload)},
            )
        return draft.to_info()

    def discard(self, draft_id: UUID) -> None:
        """
        Delete a draft that is still a draft or was rejected.

        Raises:
            InvalidDraftTransitionError: Any other status.
        """
        draft = lock_draft(self.session, draft_id)
        status = draft.status_enum
        if not is_discardable(status):
            raise InvalidDraftTransitionError(
                current_status=status.value,
                event="discard",
                draft_id=str(draft.id),
            )
        producer_id = draft.producer_id
        self.session.delete(draft)
        flush_draft(self.session, draft)

        with LogContext.bind(draft_id=draft_id, producer_id=producer_id):
            logger.info("draft_discarded", extra={"previous_status": status.value})
