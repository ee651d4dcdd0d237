"""
fiscal_services.document_workflow -- Transactional façade over the draft
lifecycle and document issuance.

Responsibility:
    One method per workflow operation.  Each call opens its own transaction
    (``transaction_scope``), composes the kernel services and selectors
    around one shared Session and Clock, and returns frozen DTOs.

Architecture position:
    Services -- owns commit/rollback.  Kernel services only flush, so the
    finalize sequence (number allocation, document insert, draft update)
    commits or rolls back as a unit.

Invariants enforced:
    - A failed operation leaves no partial writes behind.
    - Issuance constants come from ``fiscal_config``; the kernel never reads
      configuration itself.

Failure modes:
    - Every kernel exception propagates unchanged after rollback.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session, sessionmaker

from fiscal_config import FiscalConfiguration, get_active_config
from fiscal_kernel.db.engine import transaction_scope
from fiscal_kernel.db.immutability import register_immutability_listeners
from fiscal_kernel.domain.clock import Clock, SystemClock
from fiscal_kernel.domain.corrections import CorrectionMap
from fiscal_kernel.domain.draft_lifecycle import DraftStatus, ReviewDecision
from fiscal_kernel.domain.dtos import (
    DraftHeader,
    DraftInfo,
    DraftItemSpec,
    FinalizationResult,
    OfficialDocumentInfo,
    ProducerInfo,
)
from fiscal_kernel.logging_config import LogContext
from fiscal_kernel.selectors.document_selector import DocumentSelector
from fiscal_kernel.selectors.draft_selector import DraftSelector
from fiscal_kernel.services.draft_service import DraftService
from fiscal_kernel.services.finalizer_service import DocumentFinalizer
from fiscal_kernel.services.producer_service import ProducerService

TaggedMap = CorrectionMap | Mapping[str, Any] | None


class DocumentWorkflow:
    """
    Draft and document operations, one transaction per call.

    Args:
        session_factory: Factory producing Sessions bound to the database.
        clock: Time source shared by every service.
        config: Configuration; defaults to ``get_active_config()``.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
        config: FiscalConfiguration | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._config = config or get_active_config()
        register_immutability_listeners()

    def _drafts(self, session: Session) -> DraftService:
        return DraftService(session, self._clock)

    def _finalizer(self, session: Session) -> DocumentFinalizer:
        return DocumentFinalizer(
            session,
            self._clock,
            issuance=self._config.issuance,
            tz=self._config.calendar.tz,
        )

    # ------------------------------------------------------------------
    # Producers
    # ------------------------------------------------------------------

    def register_producer(
        self,
        name: str,
        tax_id: str,
        state: str,
        regime: str,
        email: str | None = None,
    ) -> ProducerInfo:
        with transaction_scope(self._session_factory) as session:
            return ProducerService(session, self._clock).register(
                name, tax_id, state, regime, email=email
            )

    # ------------------------------------------------------------------
    # Draft lifecycle
    # ------------------------------------------------------------------

    def create_draft(
        self,
        producer_id: UUID,
        header: DraftHeader,
        items: Sequence[DraftItemSpec],
        reviewer_id: UUID | None = None,
        extra_fields: TaggedMap = None,
    ) -> DraftInfo:
        with LogContext.bind(producer_id=producer_id):
            with transaction_scope(self._session_factory) as session:
                return self._drafts(session).create(
                    producer_id, header, items,
                    reviewer_id=reviewer_id, extra_fields=extra_fields,
                )

    def update_draft(
        self,
        draft_id: UUID,
        header: DraftHeader | None = None,
        items: Sequence[DraftItemSpec] | None = None,
        changes: TaggedMap = None,
    ) -> DraftInfo:
        with transaction_scope(self._session_factory) as session:
            return self._drafts(session).update(
                draft_id, header=header, items=items, changes=changes
            )

    def submit_draft(self, draft_id: UUID, reviewer_id: UUID | None = None) -> DraftInfo:
        with transaction_scope(self._session_factory) as session:
            return self._drafts(session).submit(draft_id, reviewer_id=reviewer_id)

    def review_draft(
        self,
        draft_id: UUID,
        decision: ReviewDecision | str,
        feedback: str | None = None,
        corrections: TaggedMap = None,
        corrected_payload: TaggedMap = None,
        reviewer_id: UUID | None = None,
    ) -> DraftInfo:
        with LogContext.bind(actor_id=reviewer_id):
            with transaction_scope(self._session_factory) as session:
                return self._drafts(session).review(
                    draft_id,
                    decision,
                    feedback=feedback,
                    corrections=corrections,
                    corrected_payload=corrected_payload,
                    reviewer_id=reviewer_id,
                )

    def apply_corrections(self, draft_id: UUID) -> DraftInfo:
        with transaction_scope(self._session_factory) as session:
            return self._drafts(session).apply_corrections(draft_id)

    def discard_draft(self, draft_id: UUID) -> None:
        with transaction_scope(self._session_factory) as session:
            self._drafts(session).discard(draft_id)

    # ------------------------------------------------------------------
    # Issuance
    # ------------------------------------------------------------------

    def finalize_draft(self, draft_id: UUID) -> FinalizationResult:
        with transaction_scope(self._session_factory) as session:
            return self._finalizer(session).finalize(draft_id)

    def create_direct_document(
        self,
        producer_id: UUID,
        header: DraftHeader,
        items: Sequence[DraftItemSpec],
    ) -> OfficialDocumentInfo:
        with LogContext.bind(producer_id=producer_id):
            with transaction_scope(self._session_factory) as session:
                return self._finalizer(session).create_direct(producer_id, header, items)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_draft(self, draft_id: UUID) -> DraftInfo:
        with transaction_scope(self._session_factory) as session:
            return DraftSelector(session).get(draft_id)

    def list_drafts(
        self,
        producer_id: UUID,
        status: DraftStatus | str | None = None,
    ) -> list[DraftInfo]:
        with transaction_scope(self._session_factory) as session:
            return DraftSelector(session).list_by_producer(producer_id, status=status)

    def list_pending_review(self, reviewer_id: UUID | None = None) -> list[DraftInfo]:
        with transaction_scope(self._session_factory) as session:
            return DraftSelector(session).list_pending_review(reviewer_id)

    def get_document(self, document_id: UUID) -> OfficialDocumentInfo:
        with transaction_scope(self._session_factory) as session:
            return DocumentSelector(session).get(document_id)

    def get_document_by_access_key(self, access_key: str) -> OfficialDocumentInfo:
        with transaction_scope(self._session_factory) as session:
            return DocumentSelector(session).get_by_access_key(access_key)
