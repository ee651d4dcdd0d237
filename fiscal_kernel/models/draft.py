"""
Module: fiscal_kernel.models.draft
Responsibility: ORM persistence for fiscal-document drafts and their items.
Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - total_value equals the sum of item line totals after every service
      write (DraftService recomputes it; the model never trusts callers).
    - temporary_key is unique and never reused as an access key.
    - final_document_id is unique: at most one draft points at a document,
      and it is set exactly once, on finalize.
    - version is a SQLAlchemy version_id_col: an UPDATE issued from a stale
      read raises StaleDataError instead of silently overwriting.

Failure modes:
    - StaleDataError on lost update (mapped to
      ConcurrentDraftModificationError by the services).
    - ImmutabilityViolationError on any write to a finalized draft
      (db/immutability.py).

Audit relevance:
    submitted_at, reviewed_at and finalized_at record when each lifecycle
    step happened; reviewer_id records which accountant decided.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fiscal_kernel.db.base import TrackedBase, UUIDString
from fiscal_kernel.domain.corrections import CorrectionMap
from fiscal_kernel.domain.draft_lifecycle import DraftKind, DraftStatus
from fiscal_kernel.domain.dtos import DraftHeader, DraftInfo
from fiscal_kernel.models.line_item import LineItemColumns


class Draft(TrackedBase):
    """
    A fiscal document under preparation.

    Owned by the producer while editable; once finalized it is immutable
    history that keeps a one-way reference to its official document.
    """

    __tablename__ = "fiscal_drafts"

    __table_args__ = (
        UniqueConstraint("temporary_key", name="uq_draft_temporary_key"),
        UniqueConstraint("final_document_id", name="uq_draft_final_document"),
        Index("idx_draft_producer_status", "producer_id", "status"),
        Index("idx_draft_status_submitted", "status", "submitted_at"),
    )

    producer_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("producers.id"),
        nullable=False,
    )

    # Reviewing accountant (contador), optional until submission
    reviewer_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    kind: Mapped[str] = mapped_column(String(10), nullable=False, default=DraftKind.SAIDA.value)

    # Header
    operation_code: Mapped[str] = mapped_column(String(10), nullable=False, default="")
    nature: Mapped[str | None] = mapped_column(String(120), nullable=True)
    counterparty_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    counterparty_tax_id: Mapped[str | None] = mapped_column(String(14), nullable=True)
    destination_region: Mapped[str] = mapped_column(String(2), nullable=False, default="")
    issue_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    total_value: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0.00")
    )

    temporary_key: Mapped[str] = mapped_column(String(40), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DraftStatus.DRAFT.value
    )

    # Review outcome; tagged maps are stored as JSON text
    review_feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    suggested_corrections: Mapped[str | None] = mapped_column(Text, nullable=True)
    corrected_payload: Mapped[str | None] = mapped_column(Text, nullable=True)

    # OCR / correction fields with no header column
    extra_fields: Mapped[str | None] = mapped_column(Text, nullable=True)

    final_document_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("official_documents.id"),
        nullable=True,
    )

    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    finalized_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    items: Mapped[list["DraftItem"]] = relationship(
        back_populates="draft",
        cascade="all, delete-orphan",
        order_by="DraftItem.line_number",
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Draft {self.temporary_key}: {self.status}>"

    @property
    def status_enum(self) -> DraftStatus:
        return DraftStatus(self.status)

    @property
    def header(self) -> DraftHeader:
        return DraftHeader(
            kind=DraftKind(self.kind),
            operation_code=self.operation_code,
            nature=self.nature,
            counterparty_name=self.counterparty_name,
            counterparty_tax_id=self.counterparty_tax_id,
            destination_region=self.destination_region,
            issue_date=self.issue_date,
            notes=self.notes,
        )

    def apply_header(self, header: DraftHeader) -> None:
        self.kind = header.kind.value
        self.operation_code = header.operation_code
        self.nature = header.nature
        self.counterparty_name = header.counterparty_name
        self.counterparty_tax_id = header.counterparty_tax_id
        self.destination_region = header.destination_region
        self.issue_date = header.issue_date
        self.notes = header.notes

    def clear_review(self) -> None:
        self.review_feedback = None
        self.suggested_corrections = None
        self.corrected_payload = None

    def to_info(self) -> DraftInfo:
        return DraftInfo(
            id=self.id,
            producer_id=self.producer_id,
            reviewer_id=self.reviewer_id,
            header=self.header,
            items=tuple(item.to_spec() for item in self.items),
            total_value=self.total_value,
            temporary_key=self.temporary_key,
            status=self.status_enum,
            review_feedback=self.review_feedback,
            suggested_corrections=(
                CorrectionMap.from_json(self.suggested_corrections)
                if self.suggested_corrections is not None else None
            ),
            corrected_payload=(
                CorrectionMap.from_json(self.corrected_payload)
                if self.corrected_payload is not None else None
            ),
            extra_fields=CorrectionMap.from_json(self.extra_fields),
            final_document_id=self.final_document_id,
            submitted_at=self.submitted_at,
            reviewed_at=self.reviewed_at,
            finalized_at=self.finalized_at,
            version=self.version,
        )


class DraftItem(LineItemColumns, TrackedBase):
    """A line item of a draft."""

    __tablename__ = "fiscal_draft_items"

    __table_args__ = (
        UniqueConstraint("draft_id", "line_number", name="uq_draft_item_line"),
    )

    draft_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("fiscal_drafts.id", ondelete="CASCADE"),
        nullable=False,
    )

    draft: Mapped["Draft"] = relationship(back_populates="items")

    def __repr__(self) -> str:
        return f"<DraftItem {self.line_number}: {self.description}>"
