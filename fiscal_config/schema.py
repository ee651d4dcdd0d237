"""
FiscalConfiguration schema.

Defines the human-authored, reviewable configuration artifact: the
obligation catalog, the calendar/reminder settings and the document
issuance constants.  YAML is parsed into these types by the loader; callers
only ever see the frozen ``FiscalConfiguration``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import time, timedelta, timezone, tzinfo

from fiscal_kernel.domain.access_key import IssuanceSettings
from fiscal_kernel.domain.obligations import ObligationTemplate
from fiscal_kernel.domain.recurrence import RecurrencePolicy

# ---------------------------------------------------------------------------
# Calendar
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CalendarSettings:
    """Windows, thresholds and reminder defaults of the fiscal calendar."""

    window_days: int = 30
    reminder_window_days: int = 60
    default_lead_days: tuple[int, ...] = (1, 3, 7)
    urgent_days: int = 7
    attention_days: int = 15
    utc_offset_hours: int = -3
    reminder_time: time = time(8, 0)
    horizon_years: int = 10
    upcoming_limit: int = 10

    @property
    def tz(self) -> tzinfo:
        return timezone(timedelta(hours=self.utc_offset_hours))

    def policy(self) -> RecurrencePolicy:
        return RecurrencePolicy(
            urgent_days=self.urgent_days,
            attention_days=self.attention_days,
            horizon_years=self.horizon_years,
            tz=self.tz,
        )


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FiscalConfiguration:
    """The complete runtime configuration."""

    config_id: str
    version: int
    catalog: tuple[ObligationTemplate, ...]
    calendar: CalendarSettings = field(default_factory=CalendarSettings)
    issuance: IssuanceSettings = field(default_factory=IssuanceSettings)
    checksum: str = ""

    def template(self, name: str) -> ObligationTemplate:
        for template in self.catalog:
            if template.name == name:
                return template
        raise KeyError(name)
