"""
Module: fiscal_kernel.models.official_document
Responsibility: ORM persistence for official (finalized) fiscal documents and
    their items.
Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - access_key is unique and passes the modulus-11 check (generated by
      domain/access_key.py, verified again by DocumentFinalizer).
    - (producer_id, series, number) is unique: one number per issuer/series.
    - Rows are insert-only.  UPDATE/DELETE of a document or its items raises
      ImmutabilityViolationError (db/immutability.py).
    - There is no column pointing back at the source draft; the draft holds
      the only reference (Draft.final_document_id).

Audit relevance:
    origin records whether the document came through accountant review
    ("draft") or was issued directly ("direct"); the same marker is appended
    to notes.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    Date,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fiscal_kernel.db.base import TrackedBase, UUIDString
from fiscal_kernel.domain.corrections import CorrectionMap
from fiscal_kernel.domain.draft_lifecycle import DraftKind
from fiscal_kernel.domain.dtos import DraftHeader, OfficialDocumentInfo
from fiscal_kernel.models.line_item import LineItemColumns


class DocumentOrigin(str, Enum):
    DRAFT = "draft"
    DIRECT = "direct"


class DocumentStatus(str, Enum):
    VALIDATED = "validated"


ORIGIN_NOTE_SUFFIX: dict[DocumentOrigin, str] = {
    DocumentOrigin.DRAFT: "Gerada a partir de rascunho aprovado pelo contador",
    DocumentOrigin.DIRECT: "Gerada diretamente",
}


class OfficialDocument(TrackedBase):
    """An issued fiscal document (NF-e).  Immutable once inserted."""

    __tablename__ = "official_documents"

    __table_args__ = (
        UniqueConstraint("access_key", name="uq_document_access_key"),
        UniqueConstraint("producer_id", "series", "number", name="uq_document_number"),
        Index("idx_document_producer_issue", "producer_id", "issue_date"),
    )

    producer_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("producers.id"),
        nullable=False,
    )

    access_key: Mapped[str] = mapped_column(String(45), nullable=False)

    model: Mapped[str] = mapped_column(String(2), nullable=False)
    series: Mapped[str] = mapped_column(String(3), nullable=False)
    number: Mapped[int] = mapped_column(BigInteger, nullable=False)

    origin: Mapped[str] = mapped_column(String(10), nullable=False)

    kind: Mapped[str] = mapped_column(String(10), nullable=False)
    operation_code: Mapped[str] = mapped_column(String(10), nullable=False)
    nature: Mapped[str | None] = mapped_column(String(120), nullable=True)
    counterparty_name: Mapped[str] = mapped_column(String(200), nullable=False)
    counterparty_tax_id: Mapped[str | None] = mapped_column(String(14), nullable=True)
    destination_region: Mapped[str] = mapped_column(String(2), nullable=False)
    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    total_value: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    cbs_total: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    ibs_total: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    funrural_total: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DocumentStatus.VALIDATED.value
    )

    extra_fields: Mapped[str | None] = mapped_column(Text, nullable=True)

    items: Mapped[list["OfficialDocumentItem"]] = relationship(
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="OfficialDocumentItem.line_number",
    )

    def __repr__(self) -> str:
        return f"<OfficialDocument {self.series}/{self.number}: {self.access_key}>"

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

    def to_info(self) -> OfficialDocumentInfo:
        return OfficialDocumentInfo(
            id=self.id,
            producer_id=self.producer_id,
            access_key=self.access_key,
            series=self.series,
            number=self.number,
            model=self.model,
            origin=self.origin,
            header=self.header,
            items=tuple(item.to_spec() for item in self.items),
            total_value=self.total_value,
            cbs_total=self.cbs_total,
            ibs_total=self.ibs_total,
            funrural_total=self.funrural_total,
            issue_date=self.issue_date,
            status=self.status,
            notes=self.notes,
            extra_fields=CorrectionMap.from_json(self.extra_fields),
            created_at=self.created_at,
        )


class OfficialDocumentItem(LineItemColumns, TrackedBase):
    """A line item copied from a draft (or supplied directly) at issue time."""

    __tablename__ = "official_document_items"

    __table_args__ = (
        UniqueConstraint("document_id", "line_number", name="uq_document_item_line"),
    )

    document_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("official_documents.id"),
        nullable=False,
    )

    document: Mapped["OfficialDocument"] = relationship(back_populates="items")

    def __repr__(self) -> str:
        return f"<OfficialDocumentItem {self.line_number}: {self.description}>"
