"""
Module: fiscal_kernel.selectors.draft_selector
Responsibility: Read-only query access to drafts and their items.
Architecture position: Kernel > Selectors.  May import from models/ and
    selectors/base.py.

Invariants enforced:
    - Read-only: no mutations on queried data.
    - DTO convention: public methods return DraftInfo, never ORM models.

Failure modes:
    - get() raises DraftNotFoundError; list queries return an empty list.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from fiscal_kernel.domain.draft_lifecycle import DraftStatus
from fiscal_kernel.domain.dtos import DraftInfo
from fiscal_kernel.exceptions import DraftNotFoundError
from fiscal_kernel.models.draft import Draft
from fiscal_kernel.selectors.base import BaseSelector


class DraftSelector(BaseSelector[Draft]):
    """Selector for drafts."""

    def get(self, draft_id: UUID) -> DraftInfo:
        draft = self.session.execute(
            select(Draft).options(selectinload(Draft.items)).where(Draft.id == draft_id)
        ).scalar_one_or_none()
        if draft is None:
            raise DraftNotFoundError(str(draft_id))
        return draft.to_info()

    def find(self, draft_id: UUID) -> DraftInfo | None:
        try:
            return self.get(draft_id)
        except DraftNotFoundError:
            return None

    def list_by_producer(
        self,
        producer_id: UUID,
        status: DraftStatus | str | None = None,
    ) -> list[DraftInfo]:
        """A producer's drafts, most recently updated first."""
        query = (
            select(Draft)
            .options(selectinload(Draft.items))
            .where(Draft.producer_id == producer_id)
        )
        if status is not None:
            query = query.where(Draft.status == DraftStatus(status).value)
        query = query.order_by(Draft.updated_at.desc(), Draft.created_at.desc())
        return [draft.to_info() for draft in self.session.execute(query).scalars()]

    def list_pending_review(self, reviewer_id: UUID | None = None) -> list[DraftInfo]:
        """
        Submitted drafts awaiting a decision, oldest submission first.

        With ``reviewer_id``, only drafts assigned to that accountant plus
        drafts with no reviewer yet.
        """
        query = (
            select(Draft)
            .options(selectinload(Draft.items))
            .where(Draft.status == DraftStatus.SUBMITTED.value)
        )
        if reviewer_id is not None:
            query = query.where(
                (Draft.reviewer_id == reviewer_id) | (Draft.reviewer_id.is_(None))
            )
        query = query.order_by(Draft.submitted_at.asc(), Draft.temporary_key.asc())
        return [draft.to_info() for draft in self.session.execute(query).scalars()]
