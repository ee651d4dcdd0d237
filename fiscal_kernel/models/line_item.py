"""
Module: fiscal_kernel.models.line_item
Responsibility: Column set shared by draft items and official document items,
    so that finalization is a straight field-for-field copy.
Architecture position: Kernel > Models.
"""

from decimal import Decimal

from sqlalchemy import Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from fiscal_kernel.domain.dtos import DraftItemSpec

ITEM_COPY_FIELDS: tuple[str, ...] = (
    "line_number",
    "product_code",
    "description",
    "tax_code",
    "operation_code",
    "unit",
    "quantity",
    "unit_price",
    "line_total",
    "discount",
    "freight",
    "icms_base",
    "icms_value",
    "icms_rate",
    "ipi_base",
    "ipi_value",
    "ipi_rate",
    "cbs_value",
    "ibs_value",
    "funrural_value",
    "additional_info",
)


def _money(default: int = 0):
    return mapped_column(Numeric(15, 2), nullable=False, default=Decimal(default))


class LineItemColumns:
    """Mixin with the item columns of NF-e line items."""

    line_number: Mapped[int] = mapped_column(Integer, nullable=False)

    product_code: Mapped[str | None] = mapped_column(String(60), nullable=True)
    description: Mapped[str] = mapped_column(String(500), nullable=False)

    # NCM classification
    tax_code: Mapped[str | None] = mapped_column(String(10), nullable=True)

    # CFOP of the line
    operation_code: Mapped[str | None] = mapped_column(String(10), nullable=True)

    unit: Mapped[str] = mapped_column(String(10), nullable=False, default="UN")

    quantity: Mapped[Decimal] = mapped_column(Numeric(15, 4), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(15, 4), nullable=False)
    line_total: Mapped[Decimal] = _money()

    discount: Mapped[Decimal] = _money()
    freight: Mapped[Decimal] = _money()

    icms_base: Mapped[Decimal] = _money()
    icms_value: Mapped[Decimal] = _money()
    icms_rate: Mapped[Decimal] = mapped_column(Numeric(7, 4), nullable=False, default=Decimal(0))

    ipi_base: Mapped[Decimal] = _money()
    ipi_value: Mapped[Decimal] = _money()
    ipi_rate: Mapped[Decimal] = mapped_column(Numeric(7, 4), nullable=False, default=Decimal(0))

    # Tax reform (CBS/IBS) and FUNRURAL contribution
    cbs_value: Mapped[Decimal] = _money()
    ibs_value: Mapped[Decimal] = _money()
    funrural_value: Mapped[Decimal] = _money()

    additional_info: Mapped[str | None] = mapped_column(Text, nullable=True)

    def item_values(self) -> dict:
        return {name: getattr(self, name) for name in ITEM_COPY_FIELDS}

    def to_spec(self) -> DraftItemSpec:
        return DraftItemSpec(**self.item_values())

    @classmethod
    def values_from_spec(cls, spec: DraftItemSpec, line_number: int) -> dict:
        """Column values for a new row built from ``spec``."""
        values = {name: getattr(spec, name) for name in ITEM_COPY_FIELDS}
        values["line_number"] = line_number
        values["line_total"] = spec.resolved_line_total()
        return values
