"""
Module: fiscal_kernel.selectors.document_selector
Responsibility: Read-only query access to official documents.
Architecture position: Kernel > Selectors.

Failure modes:
    - get()/get_by_access_key() raise OfficialDocumentNotFoundError.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from fiscal_kernel.domain.dtos import OfficialDocumentInfo
from fiscal_kernel.exceptions import OfficialDocumentNotFoundError
from fiscal_kernel.models.official_document import OfficialDocument
from fiscal_kernel.selectors.base import BaseSelector


class DocumentSelector(BaseSelector[OfficialDocument]):
    """Selector for official documents."""

    def _one(self, condition, ref: str) -> OfficialDocumentInfo:
        document = self.session.execute(
            select(OfficialDocument)
            .options(selectinload(OfficialDocument.items))
            .where(condition)
        ).scalar_one_or_none()
        if document is None:
            raise OfficialDocumentNotFoundError(ref)
        return document.to_info()

    def get(self, document_id: UUID) -> OfficialDocumentInfo:
        return self._one(OfficialDocument.id == document_id, str(document_id))

    def get_by_access_key(self, access_key: str) -> OfficialDocumentInfo:
        return self._one(OfficialDocument.access_key == access_key, access_key)

    def list_by_producer(
        self,
        producer_id: UUID,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[OfficialDocumentInfo]:
        """Documents of a producer ordered by series and number."""
        query = (
            select(OfficialDocument)
            .options(selectinload(OfficialDocument.items))
            .where(OfficialDocument.producer_id == producer_id)
        )
        if start_date is not None:
            query = query.where(OfficialDocument.issue_date >= start_date)
        if end_date is not None:
            query = query.where(OfficialDocument.issue_date <= end_date)
        query = query.order_by(OfficialDocument.series, OfficialDocument.number)
        return [doc.to_info() for doc in self.session.execute(query).scalars()]
