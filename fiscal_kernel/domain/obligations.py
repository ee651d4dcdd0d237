"""
Obligation domain types (``fiscal_kernel.domain.obligations``).

Responsibility
--------------
Pure value objects for the fiscal calendar: obligation templates (the
catalog), the occurrences expanded from them, and the reminder
notifications derived from occurrences.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports from
``db/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* Templates are frozen and never mutated after the catalog is loaded.
* ``recurrence_kind`` is carried as text so that a catalog containing a kind
  the calculator does not support can still be loaded; the calculator
  rejects or skips it at expansion time.
* Occurrences and notifications are derived on demand and never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable

from fiscal_kernel.exceptions import InvalidObligationTemplateError


class RecurrenceKind(str, Enum):
    """Recurrence kinds the calculator knows how to expand."""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"
    ONCE = "once"


KNOWN_RECURRENCE_KINDS: frozenset[str] = frozenset(k.value for k in RecurrenceKind)


class OccurrenceStatus(str, Enum):
    """Urgency of an occurrence relative to the reference instant."""

    OVERDUE = "overdue"
    URGENT = "urgent"
    NORMAL = "normal"


class ReminderPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"


# =========================================================================
# Catalog
# =========================================================================


@dataclass(frozen=True)
class ObligationTemplate:
    """A periodic fiscal obligation, e.g. the monthly DAS payment.

    ``due_month`` only matters for annual templates; ``fixed_date`` only for
    ``once`` templates.  ``applicable_regimes`` holds regime names exactly as
    producers are classified ("Simples Nacional", "Lucro Real", ...).
    """

    name: str
    description: str
    recurrence_kind: str
    due_day: int
    applicable_regimes: frozenset[str]
    due_month: int | None = None
    active: bool = True
    mandatory: bool = True
    estimated_value: Decimal | None = None
    notes: str | None = None
    fixed_date: date | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise InvalidObligationTemplateError("<unnamed>", "name is required")
        if not 1 <= self.due_day <= 31:
            raise InvalidObligationTemplateError(
                self.name, f"due_day must be 1-31, got {self.due_day}"
            )
        if self.due_month is not None and not 1 <= self.due_month <= 12:
            raise InvalidObligationTemplateError(
                self.name, f"due_month must be 1-12, got {self.due_month}"
            )
        if self.recurrence_kind == RecurrenceKind.ANNUAL.value and self.due_month is None:
            raise InvalidObligationTemplateError(
                self.name, "annual obligations require due_month"
            )
        if not isinstance(self.applicable_regimes, frozenset):
            object.__setattr__(
                self, "applicable_regimes", frozenset(self.applicable_regimes)
            )

    @property
    def is_known_kind(self) -> bool:
        return self.recurrence_kind in KNOWN_RECURRENCE_KINDS

    def applies_to(self, regime: str) -> bool:
        return regime in self.applicable_regimes


def templates_for_regime(
    catalog: Iterable[ObligationTemplate],
    regime: str,
    active_only: bool = True,
) -> tuple[ObligationTemplate, ...]:
    """Templates applicable to ``regime``, in catalog order."""
    return tuple(
        t for t in catalog
        if t.applies_to(regime) and (t.active or not active_only)
    )


# =========================================================================
# Derived values
# =========================================================================


@dataclass(frozen=True)
class Occurrence:
    """One concrete due date of a template, relative to a reference instant."""

    template: ObligationTemplate
    due_date: date
    days_remaining: int
    status: OccurrenceStatus
    attention: bool = False

    @property
    def name(self) -> str:
        return self.template.name

    @property
    def mandatory(self) -> bool:
        return self.template.mandatory

    @property
    def estimated_value(self) -> Decimal | None:
        return self.template.estimated_value

    @property
    def is_overdue(self) -> bool:
        return self.status == OccurrenceStatus.OVERDUE

    @property
    def is_urgent(self) -> bool:
        return self.status == OccurrenceStatus.URGENT


@dataclass(frozen=True)
class Notification:
    """A reminder instant for one (occurrence, lead time) pair."""

    occurrence: Occurrence
    lead_days: int
    notify_at: datetime
    sent: bool = False
    message: str = ""
    priority: ReminderPriority = ReminderPriority.MEDIUM

    @property
    def obligation_name(self) -> str:
        return self.occurrence.name

    @property
    def due_date(self) -> date:
        return self.occurrence.due_date


@dataclass(frozen=True)
class CalendarAlert:
    """Dashboard alert derived from an overdue or urgent occurrence."""

    level: str
    message: str
    occurrence: Occurrence


@dataclass(frozen=True)
class CalendarSummary:
    """Aggregate view of the occurrences inside a window."""

    regime: str
    window_start: date
    window_end: date
    total: int
    overdue_count: int
    urgent_count: int
    estimated_total: Decimal
    next_occurrence: Occurrence | None
    alerts: tuple[CalendarAlert, ...] = field(default_factory=tuple)
