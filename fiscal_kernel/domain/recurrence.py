"""
Recurrence calculator (``fiscal_kernel.domain.recurrence``).

Responsibility
--------------
Expands obligation templates into dated occurrences inside a closed
``[window_start, window_end]`` window of calendar dates, and classifies each
occurrence by the number of days remaining until it falls due.

Architecture position
---------------------
**Kernel domain layer** -- pure functions.  ZERO I/O other than the
``obligation_template_skipped`` warning emitted by ``expand_catalog``.
Safe to call concurrently: results depend only on the arguments.

Invariants enforced
-------------------
* Deterministic: identical inputs give identical output.
* Output is ascending by due date with distinct due dates per template.
* A due day past the end of a month clamps to the month's last day.
* Iteration is bounded by ``RecurrencePolicy.horizon_years``.
* Quarterly obligations fall in months whose 0-based index is a multiple of
  3 (January, April, July, October); a window that opens mid-quarter snaps
  forward to the next such month.

Failure modes
-------------
* ``expand`` raises ``UnknownRecurrenceKindError`` for a kind outside
  ``RecurrenceKind`` and ``InvalidObligationTemplateError`` for a ``once``
  template with no ``fixed_date``.
* ``expand_catalog`` logs and skips such templates instead of aborting.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Iterable, Iterator

from fiscal_kernel.domain.obligations import (
    ObligationTemplate,
    Occurrence,
    OccurrenceStatus,
    RecurrenceKind,
)
from fiscal_kernel.exceptions import (
    FiscalValidationError,
    InvalidObligationTemplateError,
    UnknownRecurrenceKindError,
)
from fiscal_kernel.logging_config import get_logger

logger = get_logger("domain.recurrence")

# Brasília time; Brazil has not observed DST since 2019.
BRASILIA_TZ = timezone(timedelta(hours=-3), "BRT")

_ONE_DAY = timedelta(days=1)


@dataclass(frozen=True)
class RecurrencePolicy:
    """Thresholds and bounds applied when expanding templates."""

    urgent_days: int = 7
    attention_days: int = 15
    horizon_years: int = 10
    tz: tzinfo = BRASILIA_TZ

    def __post_init__(self) -> None:
        if self.urgent_days < 0 or self.attention_days < 0:
            raise ValueError("Status thresholds must be non-negative")
        if self.horizon_years < 1:
            raise ValueError("horizon_years must be at least 1")


DEFAULT_POLICY = RecurrencePolicy()


# =========================================================================
# Date helpers
# =========================================================================


def clamp_date(year: int, month: int, day: int) -> date:
    """``date(year, month, day)`` with ``day`` clamped to the month length."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


def add_months(year: int, month: int, count: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + count
    return index // 12, index % 12 + 1


def _iter_months(start: date, end: date, step: int = 1) -> Iterator[tuple[int, int]]:
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        yield year, month
        year, month = add_months(year, month, step)


def _next_quarter_month(month: int) -> int:
    # 1-based month whose 0-based index is a multiple of 3, at or after `month`.
    # Returns 13 for November/December; the caller rolls that into January.
    return ((month - 1 + 2) // 3) * 3 + 1


def horizon_end(window_start: date, window_end: date, horizon_years: int) -> date:
    """Window end capped at ``horizon_years`` after the window start."""
    cap = clamp_date(window_start.year + horizon_years, window_start.month, window_start.day)
    return min(window_end, cap)


# =========================================================================
# Classification
# =========================================================================


def days_until(due_date: date, reference: datetime, tz: tzinfo = BRASILIA_TZ) -> int:
    """``ceil((due_date - reference) / 1 day)`` with the due date at local midnight."""
    if reference.tzinfo is None:
        reference = reference.replace(tzinfo=tz)
    due_instant = datetime.combine(due_date, time.min, tzinfo=tz)
    delta = due_instant - reference
    return -((-delta) // _ONE_DAY)


def classify(days_remaining: int, policy: RecurrencePolicy = DEFAULT_POLICY) -> OccurrenceStatus:
    if days_remaining <= 0:
        return OccurrenceStatus.OVERDUE
    if days_remaining <= policy.urgent_days:
        return OccurrenceStatus.URGENT
    return OccurrenceStatus.NORMAL


def make_occurrence(
    template: ObligationTemplate,
    due_date: date,
    reference: datetime,
    policy: RecurrencePolicy = DEFAULT_POLICY,
) -> Occurrence:
    remaining = days_until(due_date, reference, policy.tz)
    return Occurrence(
        template=template,
        due_date=due_date,
        days_remaining=remaining,
        status=classify(remaining, policy),
        attention=remaining <= policy.attention_days,
    )


# =========================================================================
# Expansion
# =========================================================================


def due_dates(
    template: ObligationTemplate,
    window_start: date,
    window_end: date,
    horizon_years: int = DEFAULT_POLICY.horizon_years,
) -> list[date]:
    """All due dates of ``template`` inside the window, ascending and distinct."""
    try:
        kind = RecurrenceKind(template.recurrence_kind)
    except ValueError:
        raise UnknownRecurrenceKindError(template.name, template.recurrence_kind) from None

    if window_start > window_end:
        return []
    end = horizon_end(window_start, window_end, horizon_years)

    candidates: list[date] = []
    if kind is RecurrenceKind.MONTHLY:
        candidates = [
            clamp_date(y, m, template.due_day)
            for y, m in _iter_months(window_start, end)
        ]
    elif kind is RecurrenceKind.QUARTERLY:
        first = _next_quarter_month(window_start.month)
        start_year = window_start.year
        if first > 12:
            start_year, first = start_year + 1, 1
        anchor = date(start_year, first, 1)
        candidates = [
            clamp_date(y, m, template.due_day)
            for y, m in _iter_months(anchor, end, step=3)
        ]
    elif kind is RecurrenceKind.ANNUAL:
        candidates = [
            clamp_date(year, template.due_month, template.due_day)
            for year in range(window_start.year, end.year + 1)
        ]
    elif kind is RecurrenceKind.ONCE:
        if template.fixed_date is None:
            raise InvalidObligationTemplateError(
                template.name, "'once' obligations require fixed_date"
            )
        candidates = [template.fixed_date]

    return sorted({d for d in candidates if window_start <= d <= end})


def expand(
    template: ObligationTemplate,
    window_start: date,
    window_end: date,
    reference: datetime | None = None,
    policy: RecurrencePolicy = DEFAULT_POLICY,
) -> tuple[Occurrence, ...]:
    """
    Expand one template into occurrences inside ``[window_start, window_end]``.

    Args:
        template: The obligation template.
        window_start: First date of the window (inclusive).
        window_end: Last date of the window (inclusive).
        reference: Instant ``days_remaining`` is measured from.  Defaults to
            local midnight of ``window_start``.
        policy: Thresholds, horizon cap and time zone.

    Raises:
        UnknownRecurrenceKindError: Template kind is not a RecurrenceKind.
        InvalidObligationTemplateError: ``once`` template without a date.
    """
    if reference is None:
        reference = datetime.combine(window_start, time.min, tzinfo=policy.tz)
    return tuple(
        make_occurrence(template, due, reference, policy)
        for due in due_dates(template, window_start, window_end, policy.horizon_years)
    )


def expand_catalog(
    templates: Iterable[ObligationTemplate],
    window_start: date,
    window_end: date,
    reference: datetime | None = None,
    policy: RecurrencePolicy = DEFAULT_POLICY,
) -> tuple[Occurrence, ...]:
    """
    Expand many templates, skipping malformed ones.

    Output is ordered by due date, then template name.
    """
    occurrences: list[Occurrence] = []
    for template in templates:
        try:
            occurrences.extend(expand(template, window_start, window_end, reference, policy))
        except FiscalValidationError as exc:
            logger.warning(
                "obligation_template_skipped",
                extra={
                    "template_name": template.name,
                    "recurrence_kind": template.recurrence_kind,
                    "reason": str(exc),
                    "error_code": exc.code,
                },
            )
    occurrences.sort(key=lambda o: (o.due_date, o.name))
    return tuple(occurrences)
