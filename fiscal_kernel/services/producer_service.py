"""
Service layer for producer identity.

The SQL implementation of the ``ProducerDirectory`` lookup: validates
producer ids for the document workflow and supplies the issuer tax id,
state and regime.  Returns ProducerInfo DTOs instead of ORM entities.
"""

from __future__ import annotations

from uuid import UUID, uuid4

from sqlalchemy import select

from fiscal_kernel.domain.dtos import ProducerInfo
from fiscal_kernel.domain.values import digits_only, is_valid_uf
from fiscal_kernel.exceptions import FiscalValidationError, ProducerNotFoundError
from fiscal_kernel.logging_config import get_logger
from fiscal_kernel.models.producer import Producer
from fiscal_kernel.services.base import BaseService

logger = get_logger("services.producer")


class ProducerService(BaseService[Producer]):
    """Registers and looks up producers."""

    def _get_by_id(self, producer_id: UUID) -> Producer:
        producer = self.session.get(Producer, producer_id)
        if producer is None:
            raise ProducerNotFoundError(str(producer_id))
        return producer

    def get_producer(self, producer_id: UUID) -> ProducerInfo:
        """
        Raises:
            ProducerNotFoundError: If the id is unknown.
        """
        return self._get_by_id(producer_id).to_info()

    def find_by_tax_id(self, tax_id: str) -> ProducerInfo | None:
        producer = self.session.execute(
            select(Producer).where(Producer.tax_id == digits_only(tax_id))
        ).scalar_one_or_none()
        return producer.to_info() if producer else None

    def register(
        self,
        name: str,
        tax_id: str,
        state: str,
        regime: str,
        email: str | None = None,
        actor_id: UUID | None = None,
        producer_id: UUID | None = None,
    ) -> ProducerInfo:
        """
        Create a producer.

        Raises:
            FiscalValidationError: Missing name, bad tax id or unknown UF.
        """
        digits = digits_only(tax_id)
        if not name or not name.strip():
            raise FiscalValidationError("Producer name is required")
        if len(digits) not in (11, 14):
            raise FiscalValidationError(
                f"Producer tax id must have 11 (CPF) or 14 (CNPJ) digits, got {len(digits)}"
            )
        if not is_valid_uf(state):
            raise FiscalValidationError(f"Unknown federative unit: {state!r}")
        if not regime:
            raise FiscalValidationError("Producer regime is required")

        new_id = producer_id or uuid4()
        producer = Producer(
            id=new_id,
            name=name.strip(),
            tax_id=digits,
            state=state.strip().upper(),
            regime=regime,
            email=email,
            created_by_id=actor_id or new_id,
        )
        self.session.add(producer)
        self.session.flush()

        logger.info(
            "producer_registered",
            extra={"producer_id": str(producer.id), "state": producer.state, "regime": regime},
        )
        return producer.to_info()
