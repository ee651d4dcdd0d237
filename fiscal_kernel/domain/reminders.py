"""
Notification deriver (``fiscal_kernel.domain.reminders``).

Turns occurrences into reminder instants: one notification per
(occurrence, lead time) whose instant is strictly after ``now``.  Reminders
that would already have fired are dropped, never backfilled.

Pure and thread-safe.  The engine only computes *when* a reminder fires;
delivery belongs to an external channel.
"""

from __future__ import annotations

from datetime import datetime, time, timedelta, tzinfo
from typing import Iterable, Sequence

from fiscal_kernel.domain.obligations import Notification, Occurrence, ReminderPriority
from fiscal_kernel.domain.recurrence import BRASILIA_TZ
from fiscal_kernel.exceptions import FiscalValidationError

DEFAULT_REMINDER_TIME = time(8, 0)
HIGH_PRIORITY_LEAD_DAYS = 3


def reminder_message(name: str, lead_days: int) -> str:
    return f"Lembrete: {name} vence em {lead_days} dia(s)"


def reminder_priority(lead_days: int) -> ReminderPriority:
    if lead_days <= HIGH_PRIORITY_LEAD_DAYS:
        return ReminderPriority.HIGH
    return ReminderPriority.MEDIUM


def normalize_lead_days(lead_days: Iterable[int]) -> tuple[int, ...]:
    """Distinct lead times, ascending.

    Raises:
        FiscalValidationError: A lead time is negative or not an integer.
    """
    normalized = set()
    for lead in lead_days:
        if isinstance(lead, bool) or not isinstance(lead, int):
            raise FiscalValidationError(f"Lead time must be an integer, got {lead!r}")
        if lead < 0:
            raise FiscalValidationError(f"Lead time must not be negative, got {lead}")
        normalized.add(lead)
    return tuple(sorted(normalized))


def notify_at(
    occurrence: Occurrence,
    lead_days: int,
    reminder_time: time = DEFAULT_REMINDER_TIME,
    tz: tzinfo = BRASILIA_TZ,
) -> datetime:
    """``due_date - lead_days`` at ``reminder_time`` in the producer's zone."""
    day = occurrence.due_date - timedelta(days=lead_days)
    return datetime.combine(day, reminder_time, tzinfo=tz)


def derive_reminders(
    occurrences: Iterable[Occurrence],
    lead_days: Sequence[int],
    now: datetime,
    reminder_time: time = DEFAULT_REMINDER_TIME,
    tz: tzinfo = BRASILIA_TZ,
    limit: int | None = None,
) -> tuple[Notification, ...]:
    """
    Derive future reminders for ``occurrences``.

    Args:
        occurrences: Occurrences to remind about.
        lead_days: Days before each due date at which to remind.
        now: Reference instant; only reminders strictly after it are kept.
        reminder_time: Local wall-clock time reminders fire at.
        tz: Producer time zone.
        limit: Keep only the nearest ``limit`` reminders.

    Returns:
        Notifications ordered by ``notify_at`` ascending.
    """
    leads = normalize_lead_days(lead_days)
    if now.tzinfo is None:
        now = now.replace(tzinfo=tz)
    if limit is not None and limit < 0:
        raise FiscalValidationError(f"limit must not be negative, got {limit}")

    notifications: list[Notification] = []
    for occurrence in occurrences:
        for lead in leads:
            instant = notify_at(occurrence, lead, reminder_time, tz)
            if instant <= now:
                continue
            notifications.append(
                Notification(
                    occurrence=occurrence,
                    lead_days=lead,
                    notify_at=instant,
                    sent=False,
                    message=reminder_message(occurrence.name, lead),
                    priority=reminder_priority(lead),
                )
            )
    notifications.sort(key=lambda n: (n.notify_at, n.due_date, n.obligation_name, n.lead_days))
    if limit is not None:
        notifications = notifications[:limit]
    return tuple(notifications)
