"""
DocumentFinalizer -- turns an approved draft into an official document.

Responsibility:
    Allocates the next document number for the issuer and series, builds the
    45-digit access key, inserts the immutable OfficialDocument with a
    field-for-field copy of the draft's items, and marks the draft finalized
    with a one-way reference to the document.  Also issues documents
    directly, without a draft, for the "direct" path.

Architecture position:
    Kernel > Services -- imperative shell.  Flush-only; the caller's
    transaction makes number allocation, document insert and draft update a
    single unit.

Invariants enforced:
    - Only approved drafts are finalized, exactly once.  The draft row is
      locked first; a second caller sees status finalized and gets
      DraftAlreadyFinalizedError.
    - The document total equals the sum of its item line totals.
    - Document numbers come from the locked sequence counter, never from
      ``MAX(number) + 1``.
    - The access key passes the modulus-11 check.

Failure modes:
    - DraftNotFoundError, ProducerNotFoundError.
    - DraftNotApprovedError (status other than approved or finalized).
    - DraftAlreadyFinalizedError (carries the existing document id).
    - DraftValidationError on the direct path.
    - ConcurrentDraftModificationError when a unique constraint or version
      check fails because another transaction finalized first.

Audit relevance:
    Logs ``document_finalized`` / ``document_issued_directly`` with the
    access key, number and total.  The document's notes carry the origin
    marker.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, tzinfo
from uuid import UUID, uuid4

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fiscal_kernel.domain.access_key import (
    DEFAULT_ISSUANCE,
    AccessKeyContext,
    IssuanceSettings,
    generate_access_key,
    parse_access_key,
)
from fiscal_kernel.domain.clock import Clock
from fiscal_kernel.domain.corrections import CorrectionMap
from fiscal_kernel.domain.draft_lifecycle import (
    DraftEvent,
    DraftStatus,
    next_status,
    validate_for_submission,
)
from fiscal_kernel.domain.dtos import (
    DraftHeader,
    DraftItemSpec,
    FinalizationResult,
    OfficialDocumentInfo,
    ProducerDirectory,
    ProducerInfo,
    compute_total,
)
from fiscal_kernel.domain.recurrence import BRASILIA_TZ
from fiscal_kernel.domain.values import ZERO, is_valid_uf, region_code_for, round_money
from fiscal_kernel.exceptions import (
    ConcurrentDraftModificationError,
    DraftAlreadyFinalizedError,
    DraftNotApprovedError,
)
from fiscal_kernel.logging_config import LogContext, get_logger
from fiscal_kernel.models.official_document import (
    ORIGIN_NOTE_SUFFIX,
    DocumentOrigin,
    DocumentStatus,
    OfficialDocument,
    OfficialDocumentItem,
)
from fiscal_kernel.services.base import BaseService
from fiscal_kernel.services.draft_service import flush_draft, lock_draft
from fiscal_kernel.services.producer_service import ProducerService
from fiscal_kernel.services.sequence_service import SequenceService, document_sequence_name

logger = get_logger("services.finalizer")


def origin_notes(notes: str | None, origin: DocumentOrigin) -> str:
    """Append the origin marker to the caller's notes."""
    suffix = ORIGIN_NOTE_SUFFIX[origin]
    if notes and notes.strip():
        return f"{notes.strip()} | {suffix}"
    return suffix


class DocumentFinalizer(BaseService[OfficialDocument]):
    """
    Issues official documents.

    Args:
        session: SQLAlchemy session (caller owns the transaction).
        clock: Time source for issue dates and timestamps.
        producers: Producer-identity lookup; defaults to ProducerService.
        issuance: Model, series and emission type of issued documents.
        tz: Zone used to derive the issue date from the clock.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        producers: ProducerDirectory | None = None,
        issuance: IssuanceSettings = DEFAULT_ISSUANCE,
        tz: tzinfo = BRASILIA_TZ,
    ):
        super().__init__(session, clock)
        self._producers = producers or ProducerService(session, clock)
        self._issuance = issuance
        self._tz = tz
        self._sequences = SequenceService(session)

    def _region_code(self, producer: ProducerInfo) -> str:
        if is_valid_uf(producer.state):
            return region_code_for(producer.state)
        logger.warning(
            "producer_state_unknown_using_default",
            extra={"state": producer.state, "default_state": self._issuance.default_state},
        )
        return region_code_for(self._issuance.default_state)

    def _issue(
        self,
        producer: ProducerInfo,
        header: DraftHeader,
        items: Sequence[DraftItemSpec],
        origin: DocumentOrigin,
        extra_fields: str | None,
        actor_id: UUID,
    ) -> OfficialDocument:
        issue_date: date = header.issue_date or self._clock.now().astimezone(self._tz).date()
        series = self._issuance.series
        number = self._sequences.next_value(document_sequence_name(producer.tax_id, series))

        access_key = generate_access_key(
            AccessKeyContext(
                region_code=self._region_code(producer),
                issue_date=issue_date,
                issuer_tax_id=producer.tax_id,
                series=series,
                number=number,
                model=self._issuance.model,
                emission_type=self._issuance.emission_type,
            )
        )
        # Raises InvalidAccessKeyError if the layout were ever broken.
        parse_access_key(access_key)

        specs = list(items)
        document = OfficialDocument(
            id=uuid4(),
            producer_id=producer.id,
            access_key=access_key,
            model=self._issuance.model,
            series=series,
            number=number,
            origin=origin.value,
            kind=header.kind.value,
            operation_code=header.operation_code,
            nature=header.nature,
            counterparty_name=header.counterparty_name,
            counterparty_tax_id=header.counterparty_tax_id,
            destination_region=header.destination_region,
            issue_date=issue_date,
            notes=origin_notes(header.notes, origin),
            total_value=compute_total(specs),
            cbs_total=round_money(sum((s.cbs_value for s in specs), ZERO)),
            ibs_total=round_money(sum((s.ibs_value for s in specs), ZERO)),
            funrural_total=round_money(sum((s.funrural_value for s in specs), ZERO)),
            status=DocumentStatus.VALIDATED.value,
            extra_fields=extra_fields,
            created_by_id=actor_id,
        )
        for line_number, spec in enumerate(specs, start=1):
            document.items.append(
                OfficialDocumentItem(
                    **OfficialDocumentItem.values_from_spec(spec, line_number),
                    created_by_id=actor_id,
                )
            )
        self.session.add(document)
        self.session.flush()
        return document

    def finalize(self, draft_id: UUID, actor_id: UUID | None = None) -> FinalizationResult:
        """
        Issue the official document for an approved draft.

        Raises:
            DraftNotApprovedError: Draft is not approved.
            DraftAlreadyFinalizedError: Draft already has a document.
            ConcurrentDraftModificationError: Lost a race with another
                finalization.
        """
        draft = lock_draft(self.session, draft_id)
        status = draft.status_enum
        if status == DraftStatus.FINALIZED:
            raise DraftAlreadyFinalizedError(
                str(draft.id),
                str(draft.final_document_id) if draft.final_document_id else None,
            )
        if status != DraftStatus.APPROVED:
            raise DraftNotApprovedError(str(draft.id), status.value)
        target = next_status(status, DraftEvent.FINALIZE, draft_id=str(draft.id))

        producer = self._producers.get_producer(draft.producer_id)
        actor = actor_id or draft.reviewer_id or draft.producer_id
        specs = [item.to_spec() for item in draft.items]

        try:
            document = self._issue(
                producer,
                draft.header,
                specs,
                DocumentOrigin.DRAFT,
                extra_fields=draft.extra_fields,
                actor_id=actor,
            )
        except IntegrityError as exc:
            logger.warning(
                "document_insert_conflict",
                extra={"draft_id": str(draft_id)},
            )
            raise ConcurrentDraftModificationError(str(draft_id)) from exc

        draft.total_value = document.total_value
        draft.status = target.value
        draft.final_document_id = document.id
        draft.finalized_at = self._clock.now()
        draft.updated_by_id = actor
        flush_draft(self.session, draft)

        with LogContext.bind(
            draft_id=draft.id,
            producer_id=draft.producer_id,
            document_id=document.id,
        ):
            logger.info(
                "document_finalized",
                extra={
                    "access_key": document.access_key,
                    "series": document.series,
                    "number": document.number,
                    "total_value": document.total_value,
                    "item_count": len(document.items),
                },
            )
        return FinalizationResult(draft=draft.to_info(), document=document.to_info())

    def create_direct(
        self,
        producer_id: UUID,
        header: DraftHeader,
        items: Sequence[DraftItemSpec],
        extra_fields: CorrectionMap | None = None,
        actor_id: UUID | None = None,
    ) -> OfficialDocumentInfo:
        """
        Issue a document without a draft or review.

        The header and items must pass the same checks as a draft submission.

        Raises:
            ProducerNotFoundError: Unknown producer.
            DraftValidationError: Required fields or items missing.
        """
        producer = self._producers.get_producer(producer_id)
        specs = list(items)
        validate_for_submission(
            counterparty_name=header.counterparty_name,
            destination_region=header.destination_region,
            issue_date=header.issue_date,
            items=[spec.figures(n) for n, spec in enumerate(specs, start=1)],
        )

        document = self._issue(
            producer,
            header,
            specs,
            DocumentOrigin.DIRECT,
            extra_fields=extra_fields.to_json() if extra_fields else None,
            actor_id=actor_id or producer_id,
        )

        with LogContext.bind(producer_id=producer_id, document_id=document.id):
            logger.info(
                "document_issued_directly",
                extra={
                    "access_key": document.access_key,
                    "series": document.series,
                    "number": document.number,
                    "total_value": document.total_value,
                },
            )
        return document.to_info()

