"""
Domain DTOs for the document workflow.

These are the immutable shapes passed into and returned from services and
selectors.  ORM objects never leave the kernel; callers receive these.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Protocol, Sequence
from uuid import UUID

from fiscal_kernel.domain.corrections import CorrectionMap
from fiscal_kernel.domain.draft_lifecycle import DraftKind, DraftStatus, ItemFigures
from fiscal_kernel.domain.values import ZERO, round_money, to_decimal


@dataclass(frozen=True)
class DraftHeader:
    """Header fields of a draft or official document."""

    kind: DraftKind = DraftKind.SAIDA
    operation_code: str = ""
    nature: str | None = None
    counterparty_name: str = ""
    counterparty_tax_id: str | None = None
    destination_region: str = ""
    issue_date: date | None = None
    notes: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.kind, DraftKind):
            object.__setattr__(self, "kind", DraftKind(self.kind))
        if self.destination_region:
            object.__setattr__(
                self, "destination_region", self.destination_region.strip().upper()
            )

    def with_updates(self, updates: dict[str, Any]) -> "DraftHeader":
        return replace(self, **updates)


@dataclass(frozen=True)
class DraftItemSpec:
    """
    One line item, as supplied by a caller or an OCR/LLM extraction.

    ``line_total`` defaults to ``round(quantity * unit_price, 2)`` when not
    supplied.  ``line_number`` is assigned in order when omitted.
    """

    description: str
    quantity: Decimal
    unit_price: Decimal
    product_code: str | None = None
    tax_code: str | None = None
    operation_code: str | None = None
    unit: str = "UN"
    line_total: Decimal | None = None
    line_number: int | None = None
    discount: Decimal = ZERO
    freight: Decimal = ZERO
    icms_base: Decimal = ZERO
    icms_value: Decimal = ZERO
    icms_rate: Decimal = ZERO
    ipi_base: Decimal = ZERO
    ipi_value: Decimal = ZERO
    ipi_rate: Decimal = ZERO
    cbs_value: Decimal = ZERO
    ibs_value: Decimal = ZERO
    funrural_value: Decimal = ZERO
    additional_info: str | None = None

    def __post_init__(self) -> None:
        for name in (
            "quantity", "unit_price", "discount", "freight",
            "icms_base", "icms_value", "icms_rate",
            "ipi_base", "ipi_value", "ipi_rate",
            "cbs_value", "ibs_value", "funrural_value",
        ):
            object.__setattr__(self, name, to_decimal(getattr(self, name), name))
        if self.line_total is not None:
            object.__setattr__(self, "line_total", to_decimal(self.line_total, "line_total"))

    def resolved_line_total(self) -> Decimal:
        if self.line_total is not None:
            return round_money(self.line_total)
        return round_money(self.quantity * self.unit_price)

    def figures(self, line_number: int) -> ItemFigures:
        return ItemFigures(
            line_number=line_number,
            description=self.description,
            quantity=self.quantity,
            unit_price=self.unit_price,
        )


def compute_total(items: Sequence[DraftItemSpec]) -> Decimal:
    """Sum of resolved line totals, rounded to cents."""
    return round_money(sum((item.resolved_line_total() for item in items), ZERO))


@dataclass(frozen=True)
class DraftInfo:
    id: UUID
    producer_id: UUID
    reviewer_id: UUID | None
    header: DraftHeader
    items: tuple[DraftItemSpec, ...]
    total_value: Decimal
    temporary_key: str
    status: DraftStatus
    review_feedback: str | None = None
    suggested_corrections: CorrectionMap | None = None
    corrected_payload: CorrectionMap | None = None
    extra_fields: CorrectionMap = field(default_factory=CorrectionMap)
    final_document_id: UUID | None = None
    submitted_at: datetime | None = None
    reviewed_at: datetime | None = None
    finalized_at: datetime | None = None
    version: int = 1

    @property
    def kind(self) -> DraftKind:
        return self.header.kind

    @property
    def is_finalized(self) -> bool:
        return self.status == DraftStatus.FINALIZED


@dataclass(frozen=True)
class OfficialDocumentInfo:
    id: UUID
    producer_id: UUID
    access_key: str
    series: str
    number: int
    model: str
    origin: str
    header: DraftHeader
    items: tuple[DraftItemSpec, ...]
    total_value: Decimal
    cbs_total: Decimal
    ibs_total: Decimal
    funrural_total: Decimal
    issue_date: date
    status: str
    notes: str | None = None
    extra_fields: CorrectionMap = field(default_factory=CorrectionMap)
    created_at: datetime | None = None


@dataclass(frozen=True)
class FinalizationResult:
    """The finalized draft together with the document it produced."""

    draft: DraftInfo
    document: OfficialDocumentInfo


@dataclass(frozen=True)
class ProducerInfo:
    id: UUID
    name: str
    tax_id: str
    state: str
    regime: str
    email: str | None = None


class ProducerDirectory(Protocol):
    """Producer-identity lookup used to validate producer ids."""

    def get_producer(self, producer_id: UUID) -> ProducerInfo:
        """Raises ProducerNotFoundError when the id is unknown."""
        ...


@dataclass(frozen=True)
class ScheduledReminderInfo:
    id: UUID
    producer_id: UUID
    obligation_name: str
    due_date: date
    lead_days: int
    notify_at: datetime
    message: str
    priority: str
    sent: bool
    sent_at: datetime | None = None
