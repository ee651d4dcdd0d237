"""
fiscal_services.obligation_calendar -- Fiscal calendar over the active catalog.

Responsibility:
    Answers "what is due, and when should the producer be reminded" for a
    tax regime, by feeding the configured obligation catalog through the
    pure recurrence and reminder functions of the kernel.

Architecture position:
    Services -- composes fiscal_config (catalog, thresholds, time zone) with
    fiscal_kernel.domain (expand_catalog, derive_reminders).  The only
    impure input is the injected Clock.

Invariants enforced:
    - Deterministic: same catalog, regime, window and clock instant give the
      same occurrences in the same order.
    - Only active templates of the regime are expanded.
    - Malformed templates are logged and skipped; the rest of the calendar
      is still produced.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, timedelta
from decimal import Decimal

from fiscal_config import FiscalConfiguration, get_active_config
from fiscal_kernel.domain.clock import Clock, SystemClock
from fiscal_kernel.domain.obligations import (
    CalendarAlert,
    CalendarSummary,
    Notification,
    Occurrence,
    templates_for_regime,
)
from fiscal_kernel.domain.recurrence import expand_catalog
from fiscal_kernel.domain.reminders import derive_reminders
from fiscal_kernel.domain.values import ZERO, round_money
from fiscal_kernel.logging_config import get_logger

logger = get_logger("services.calendar")

ALERT_ERROR = "error"
ALERT_WARNING = "warning"


def overdue_message(occurrence: Occurrence) -> str:
    return f"{occurrence.name} venceu há {abs(occurrence.days_remaining)} dia(s)"


def urgent_message(occurrence: Occurrence) -> str:
    return f"{occurrence.name} vence em {occurrence.days_remaining} dia(s)"


class ObligationCalendar:
    """
    Occurrences, reminders and summaries for a regime.

    Args:
        clock: Time source for "today" and the days-remaining reference.
        config: Configuration; defaults to ``get_active_config()``.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        config: FiscalConfiguration | None = None,
    ) -> None:
        self._clock = clock or SystemClock()
        self._config = config or get_active_config()
        self._settings = self._config.calendar
        self._policy = self._settings.policy()

    def today(self) -> date:
        return self._clock.now().astimezone(self._settings.tz).date()

    def _window(self, window_days: int, start: date | None) -> tuple[date, date]:
        if window_days < 0:
            raise ValueError(f"window_days must not be negative, got {window_days}")
        first = start or self.today()
        return first, first + timedelta(days=window_days)

    def expand_occurrences(
        self,
        regime: str,
        window_days: int | None = None,
        start: date | None = None,
    ) -> list[Occurrence]:
        """
        Occurrences of the regime's active obligations in
        ``[start, start + window_days]``, ordered by due date then name.

        ``start`` defaults to today in the configured zone; days remaining
        are always measured from the clock's current instant.
        """
        days = self._settings.window_days if window_days is None else window_days
        window_start, window_end = self._window(days, start)
        templates = templates_for_regime(self._config.catalog, regime)
        occurrences = expand_catalog(
            templates,
            window_start,
            window_end,
            reference=self._clock.now(),
            policy=self._policy,
        )
        logger.debug(
            "occurrences_expanded",
            extra={
                "regime": regime,
                "window_start": window_start,
                "window_end": window_end,
                "template_count": len(templates),
                "occurrence_count": len(occurrences),
            },
        )
        return list(occurrences)

    def derive_reminders(
        self,
        regime: str,
        lead_days: Sequence[int] | None = None,
        limit: int | None = None,
    ) -> list[Notification]:
        """
        Future reminders for the regime's occurrences in the reminder window,
        nearest first, capped at the configured upcoming limit.

        Raises:
            FiscalValidationError: A lead time is negative.
        """
        occurrences = self.expand_occurrences(regime, self._settings.reminder_window_days)
        leads = self._settings.default_lead_days if lead_days is None else lead_days
        notifications = derive_reminders(
            occurrences,
            leads,
            now=self._clock.now(),
            reminder_time=self._settings.reminder_time,
            tz=self._settings.tz,
            limit=self._settings.upcoming_limit if limit is None else limit,
        )
        return list(notifications)

    def summarize(
        self,
        regime: str,
        window_days: int = 30,
        start: date | None = None,
    ) -> CalendarSummary:
        """Counts, estimated total, next occurrence and alerts for a window."""
        window_start, window_end = self._window(window_days, start)
        occurrences = self.expand_occurrences(regime, window_days, window_start)

        overdue = [o for o in occurrences if o.is_overdue]
        urgent = [o for o in occurrences if o.is_urgent]
        estimated: Decimal = round_money(
            sum((o.estimated_value or ZERO for o in occurrences), ZERO)
        )
        alerts = tuple(
            [CalendarAlert(ALERT_ERROR, overdue_message(o), o) for o in overdue]
            + [CalendarAlert(ALERT_WARNING, urgent_message(o), o) for o in urgent]
        )
        upcoming = [o for o in occurrences if o.days_remaining >= 0]

        return CalendarSummary(
            regime=regime,
            window_start=window_start,
            window_end=window_end,
            total=len(occurrences),
            overdue_count=len(overdue),
            urgent_count=len(urgent),
            estimated_total=estimated,
            next_occurrence=upcoming[0] if upcoming else None,
            alerts=alerts,
        )
