"""
fiscal_services.reminder_scheduler -- Persists a producer's reminder schedule.

Derives reminders from the producer's regime through ObligationCalendar and
replaces the stored schedule in one transaction.  Delivery is left to an
external channel that polls ``due_reminders()`` and calls ``mark_sent()``.
"""

from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy.orm import Session, sessionmaker

from fiscal_config import FiscalConfiguration, get_active_config
from fiscal_kernel.db.engine import transaction_scope
from fiscal_kernel.domain.clock import Clock, SystemClock
from fiscal_kernel.domain.dtos import ScheduledReminderInfo
from fiscal_kernel.logging_config import LogContext
from fiscal_kernel.selectors.reminder_selector import ReminderSelector
from fiscal_kernel.services.producer_service import ProducerService
from fiscal_kernel.services.reminder_service import ReminderService
from fiscal_services.obligation_calendar import ObligationCalendar


class ReminderScheduler:
    """
    Args:
        session_factory: Factory producing Sessions bound to the database.
        clock: Time source for "now".
        config: Configuration; defaults to ``get_active_config()``.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
        config: FiscalConfiguration | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._calendar = ObligationCalendar(self._clock, config or get_active_config())

    def schedule(
        self,
        producer_id: UUID,
        lead_days: Sequence[int] | None = None,
    ) -> list[ScheduledReminderInfo]:
        """
        Replace the producer's pending reminders with a fresh derivation.

        Raises:
            ProducerNotFoundError: Unknown producer.
            FiscalValidationError: Negative lead time.
        """
        with LogContext.bind(producer_id=producer_id):
            with transaction_scope(self._session_factory) as session:
                producer = ProducerService(session, self._clock).get_producer(producer_id)
                notifications = self._calendar.derive_reminders(producer.regime, lead_days)
                return ReminderService(session, self._clock).replace_schedule(
                    producer_id, notifications
                )

    def pending(self, producer_id: UUID) -> list[ScheduledReminderInfo]:
        with transaction_scope(self._session_factory) as session:
            return ReminderSelector(session).list_for_producer(producer_id)

    def due_reminders(self) -> list[ScheduledReminderInfo]:
        with transaction_scope(self._session_factory) as session:
            return ReminderSelector(session).list_due(self._clock.now())

    def mark_sent(self, reminder_id: UUID) -> ScheduledReminderInfo:
        with transaction_scope(self._session_factory) as session:
            return ReminderService(session, self._clock).mark_sent(reminder_id)
