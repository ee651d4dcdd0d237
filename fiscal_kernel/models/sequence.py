"""
Module: fiscal_kernel.models.sequence
Responsibility: Counter rows backing document numbering.
Architecture position: Kernel > Models.  Written only by SequenceService.
"""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from fiscal_kernel.db.base import Base


class SequenceCounter(Base):
    """
    Named counter.  Row-level locking keeps allocation monotonic.

    Names follow ``nfe:<issuer tax id>:<series>``.
    """

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(
        String(80),
        nullable=False,
        unique=True,
    )

    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )

    def __repr__(self) -> str:
        return f"<SequenceCounter {self.name}={self.current_value}>"
