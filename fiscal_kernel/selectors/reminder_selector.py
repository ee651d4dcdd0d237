"""
Module: fiscal_kernel.selectors.reminder_selector
Responsibility: Read-only access to scheduled reminders for delivery
    channels and calendar views.
Architecture position: Kernel > Selectors.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import select

from fiscal_kernel.domain.dtos import ScheduledReminderInfo
from fiscal_kernel.models.reminder import ScheduledReminder, as_utc
from fiscal_kernel.selectors.base import BaseSelector


class ReminderSelector(BaseSelector[ScheduledReminder]):
    """Selector for scheduled reminders."""

    def list_for_producer(
        self,
        producer_id: UUID,
        include_sent: bool = False,
    ) -> list[ScheduledReminderInfo]:
        query = select(ScheduledReminder).where(ScheduledReminder.producer_id == producer_id)
        if not include_sent:
            query = query.where(ScheduledReminder.sent.is_(False))
        query = query.order_by(
            ScheduledReminder.notify_at,
            ScheduledReminder.due_date,
            ScheduledReminder.obligation_name,
            ScheduledReminder.lead_days,
        )
        return [r.to_info() for r in self.session.execute(query).scalars()]

    def list_due(self, now: datetime) -> list[ScheduledReminderInfo]:
        """Unsent reminders whose notify_at has passed, across producers."""
        cutoff = as_utc(now)
        query = (
            select(ScheduledReminder)
            .where(ScheduledReminder.sent.is_(False))
            .order_by(ScheduledReminder.notify_at, ScheduledReminder.obligation_name)
        )
        # notify_at comparison happens in Python: SQLite stores naive UTC.
        return [
            r.to_info()
            for r in self.session.execute(query).scalars()
            if r.notify_at_utc <= cutoff
        ]
