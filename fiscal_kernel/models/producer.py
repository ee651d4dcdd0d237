"""
Module: fiscal_kernel.models.producer
Responsibility: ORM persistence for the minimal producer identity used by the
    document workflow and the fiscal calendar.
Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - tax_id (CPF/CNPJ digits) is unique.
    - state is a UF code; it drives the region code of access keys.
"""

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from fiscal_kernel.db.base import TrackedBase
from fiscal_kernel.domain.dtos import ProducerInfo


class Producer(TrackedBase):
    """A rural producer (pessoa física or jurídica) that issues documents."""

    __tablename__ = "producers"

    __table_args__ = (
        UniqueConstraint("tax_id", name="uq_producer_tax_id"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    # CPF (11) or CNPJ (14), digits only
    tax_id: Mapped[str] = mapped_column(String(14), nullable=False)

    state: Mapped[str] = mapped_column(String(2), nullable=False)

    # "MEI", "Simples Nacional", "Lucro Presumido", "Lucro Real"
    regime: Mapped[str] = mapped_column(String(40), nullable=False)

    email: Mapped[str | None] = mapped_column(String(200), nullable=True)

    def __repr__(self) -> str:
        return f"<Producer {self.tax_id}: {self.name}>"

    def to_info(self) -> ProducerInfo:
        return ProducerInfo(
            id=self.id,
            name=self.name,
            tax_id=self.tax_id,
            state=self.state,
            regime=self.regime,
            email=self.email,
        )
