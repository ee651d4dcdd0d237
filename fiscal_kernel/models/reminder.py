"""
Module: fiscal_kernel.models.reminder
Responsibility: ORM persistence for scheduled obligation reminders.
Architecture position: Kernel > Models.

Invariants enforced:
    - (producer_id, obligation_name, due_date, lead_days) is unique.
    - notify_at is stored in UTC.  SQLite drops tzinfo on the way out, so
      readers go through ``notify_at_utc``.

The kernel never delivers reminders; an external channel polls
ReminderSelector.list_due() and calls ReminderService.mark_sent().
"""

from datetime import date, datetime, timezone
from uuid import UUID

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from fiscal_kernel.db.base import TrackedBase, UUIDString
from fiscal_kernel.domain.dtos import ScheduledReminderInfo


def as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ScheduledReminder(TrackedBase):
    """One persisted (occurrence, lead time) reminder for a producer."""

    __tablename__ = "scheduled_reminders"

    __table_args__ = (
        UniqueConstraint(
            "producer_id", "obligation_name", "due_date", "lead_days",
            name="uq_reminder_occurrence_lead",
        ),
        Index("idx_reminder_due", "sent", "notify_at"),
    )

    producer_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("producers.id"),
        nullable=False,
    )

    obligation_name: Mapped[str] = mapped_column(String(100), nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    lead_days: Mapped[int] = mapped_column(Integer, nullable=False)
    notify_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[str] = mapped_column(String(10), nullable=False)
    sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<ScheduledReminder {self.obligation_name} {self.due_date} -{self.lead_days}d>"

    @property
    def notify_at_utc(self) -> datetime:
        return as_utc(self.notify_at)

    def to_info(self) -> ScheduledReminderInfo:
        return ScheduledReminderInfo(
            id=self.id,
            producer_id=self.producer_id,
            obligation_name=self.obligation_name,
            due_date=self.due_date,
            lead_days=self.lead_days,
            notify_at=self.notify_at_utc,
            message=self.message,
            priority=self.priority,
            sent=self.sent,
            sent_at=as_utc(self.sent_at),
        )
