"""
SequenceService -- document number allocation via locked counter rows.

Responsibility:
    Provides strictly increasing document numbers per issuer and series.
    Uses a dedicated counter table with row-level locking
    (``SELECT ... FOR UPDATE``) so that two concurrent finalizations never
    receive the same number.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by DocumentFinalizer for both the draft and the direct path.

Invariants enforced:
    - The locked counter row is the sole source of truth for the next value;
      ``MAX(number) + 1`` over documents is never used.
    - Transactional: an increment is only visible after the caller's
      transaction commits.  Rollback returns the value.
    - Document numbers fit the 9-digit field of the access key.

Failure modes:
    - IntegrityError: concurrent counter creation race (handled via
      savepoint rollback and retry).
    - SequenceExhaustedError: the counter passed 999,999,999.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fiscal_kernel.domain.access_key import MAX_DOCUMENT_NUMBER
from fiscal_kernel.exceptions import SequenceExhaustedError
from fiscal_kernel.logging_config import get_logger
from fiscal_kernel.models.sequence import SequenceCounter

logger = get_logger("services.sequence")


def document_sequence_name(issuer_tax_id: str, series: str) -> str:
    return f"nfe:{issuer_tax_id}:{series.zfill(3)}"


class SequenceService:
    """
    Service for generating transactional sequence numbers.

    Does NOT call ``session.commit()`` -- the caller controls boundaries.

    Usage:
        with transaction_scope(factory) as session:
            number = SequenceService(session).next_value(
                document_sequence_name(tax_id, "001")
            )
    """

    def __init__(self, session: Session):
        self._session = session

    def _locked_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, sequence_name: str, max_value: int = MAX_DOCUMENT_NUMBER) -> int:
        """
        Lock the counter row (creating it on first use), increment, return.

        Returns:
            The next value (always > 0).

        Raises:
            SequenceExhaustedError: The next value would exceed ``max_value``.
        """
        counter = self._locked_counter(sequence_name)

        if counter is None:
            # First use; another transaction may create it simultaneously.
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounter(name=sequence_name, current_value=1)
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={"sequence_name": sequence_name, "value": 1},
                )
                return 1
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": sequence_name},
                )
                savepoint.rollback()
                counter = self._locked_counter(sequence_name)
                if counter is None:
                    raise

        next_value = counter.current_value + 1
        if next_value > max_value:
            raise SequenceExhaustedError(sequence_name, next_value)
        counter.current_value = next_value
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": next_value},
        )
        return next_value

    def current_value(self, sequence_name: str) -> int | None:
        """Current value without incrementing, or None if never used."""
        counter = self._session.execute(
            select(SequenceCounter).where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()
        return counter.current_value if counter else None

    def reset(self, sequence_name: str, value: int = 0) -> None:
        """
        Reset a sequence to a specific value.

        WARNING: tests and data migrations only.  Resetting in production
        reissues document numbers.
        """
        counter = self._locked_counter(sequence_name)
        if counter is None:
            self._session.add(SequenceCounter(name=sequence_name, current_value=value))
        else:
            counter.current_value = value
        self._session.flush()
