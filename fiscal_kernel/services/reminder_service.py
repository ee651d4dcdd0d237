"""
ReminderService -- persists the reminder schedule derived from the calendar.

Responsibility:
    Replaces a producer's pending reminders with a freshly derived set and
    records delivery.  Delivery itself (e-mail, push) happens outside the
    kernel.

Invariants enforced:
    - Rescheduling is idempotent: pending future reminders are replaced,
      sent reminders are never touched or duplicated.
    - notify_at is stored in UTC.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select

from fiscal_kernel.domain.dtos import ScheduledReminderInfo
from fiscal_kernel.domain.obligations import Notification
from fiscal_kernel.exceptions import ReminderNotFoundError
from fiscal_kernel.logging_config import LogContext, get_logger
from fiscal_kernel.models.reminder import ScheduledReminder, as_utc
from fiscal_kernel.services.base import BaseService

logger = get_logger("services.reminder")


class ReminderService(BaseService[ScheduledReminder]):
    """Writes scheduled reminders."""

    def replace_schedule(
        self,
        producer_id: UUID,
        notifications: Iterable[Notification],
        actor_id: UUID | None = None,
    ) -> list[ScheduledReminderInfo]:
        """
        Drop pending future reminders and insert ``notifications``.

        Reminders already sent, or already due but not yet delivered, are
        kept; a notification for the same (obligation, due date, lead) is
        skipped.
        """
        now = self._clock.now_utc()
        existing = self.session.execute(
            select(ScheduledReminder).where(ScheduledReminder.producer_id == producer_id)
        ).scalars().all()

        removed = 0
        kept_keys = set()
        for reminder in existing:
            if not reminder.sent and reminder.notify_at_utc > now:
                self.session.delete(reminder)
                removed += 1
            else:
                kept_keys.add((reminder.obligation_name, reminder.due_date, reminder.lead_days))
        self.session.flush()

        created = []
        for notification in notifications:
            key = (notification.obligation_name, notification.due_date, notification.lead_days)
            if key in kept_keys:
                continue
            kept_keys.add(key)
            reminder = ScheduledReminder(
                producer_id=producer_id,
                obligation_name=notification.obligation_name,
                due_date=notification.due_date,
                lead_days=notification.lead_days,
                notify_at=as_utc(notification.notify_at),
                message=notification.message,
                priority=notification.priority.value,
                sent=False,
                created_by_id=actor_id or producer_id,
            )
            self.session.add(reminder)
            created.append(reminder)
        self.session.flush()

        with LogContext.bind(producer_id=producer_id):
            logger.info(
                "reminder_schedule_replaced",
                extra={"removed_count": removed, "created_count": len(created)},
            )
        return [reminder.to_info() for reminder in created]

    def mark_sent(self, reminder_id: UUID) -> ScheduledReminderInfo:
        """
        Raises:
            ReminderNotFoundError: If the id is unknown.
        """
        reminder = self.session.get(ScheduledReminder, reminder_id)
        if reminder is None:
            raise ReminderNotFoundError(str(reminder_id))
        if not reminder.sent:
            reminder.sent = True
            reminder.sent_at = self._clock.now_utc()
            self.session.flush()
            logger.info(
                "reminder_marked_sent",
                extra={"reminder_id": str(reminder.id), "obligation": reminder.obligation_name},
            )
        return reminder.to_info()
