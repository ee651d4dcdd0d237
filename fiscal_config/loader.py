"""
Configuration Loader (``fiscal_config.loader``).

Responsibility
--------------
Loads the YAML configuration file and parses it into the typed
``fiscal_config.schema`` dataclasses.  Runtime callers go through
``fiscal_config.get_active_config()``; this module is its internal
machinery and test tooling.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; required keys have no silent defaults.
* Money values are parsed as ``Decimal`` from their string form, never
  through ``float``.
* ``compute_checksum`` is a deterministic SHA-256 over the canonical JSON
  form of the raw document.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Out-of-range values  -> ``ValueError`` / ``InvalidObligationTemplateError``.
"""

from __future__ import annotations

import hashlib
import json
from datetime import date, time
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from fiscal_config.schema import CalendarSettings, FiscalConfiguration
from fiscal_kernel.domain.access_key import IssuanceSettings
from fiscal_kernel.domain.obligations import ObligationTemplate
from fiscal_kernel.domain.values import is_valid_uf


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def parse_date(value: Any) -> date:
    """Parse a date from YAML (string or date object)."""
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise ValueError(f"Cannot parse date from {value!r}")


def parse_time(value: Any) -> time:
    """Parse ``HH:MM`` (YAML may also hand over minutes since midnight)."""
    if isinstance(value, time):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        # YAML 1.1 reads an unquoted 08:00 as sexagesimal minutes.
        hours, minutes = divmod(value, 60)
        return time(hours, minutes)
    if isinstance(value, str):
        return time.fromisoformat(value)
    raise ValueError(f"Cannot parse time from {value!r}")


def parse_money(value: Any) -> Decimal | None:
    if value is None:
        return None
    if isinstance(value, float):
        # Go through the YAML text form, not the binary float.
        return Decimal(repr(value))
    return Decimal(str(value))


def parse_obligation(data: dict[str, Any]) -> ObligationTemplate:
    """
    Parse an ``ObligationTemplate`` from a dict.

    Raises:
        KeyError: if name, recurrence or due_day is missing.
        InvalidObligationTemplateError: if the values are out of range.
    """
    return ObligationTemplate(
        name=data["name"],
        description=data.get("description", ""),
        recurrence_kind=str(data["recurrence"]),
        due_day=int(data["due_day"]),
        applicable_regimes=frozenset(data.get("regimes", ())),
        due_month=int(data["due_month"]) if data.get("due_month") is not None else None,
        active=bool(data.get("active", True)),
        mandatory=bool(data.get("mandatory", True)),
        estimated_value=parse_money(data.get("estimated_value")),
        notes=data.get("notes"),
        fixed_date=parse_date(data["fixed_date"]) if data.get("fixed_date") else None,
    )


def parse_calendar(data: dict[str, Any]) -> CalendarSettings:
    defaults = CalendarSettings()
    lead_days = tuple(int(d) for d in data.get("default_lead_days", defaults.default_lead_days))
    if any(d < 0 for d in lead_days):
        raise ValueError(f"default_lead_days must not be negative: {lead_days}")
    settings = CalendarSettings(
        window_days=int(data.get("window_days", defaults.window_days)),
        reminder_window_days=int(
            data.get("reminder_window_days", defaults.reminder_window_days)
        ),
        default_lead_days=lead_days,
        urgent_days=int(data.get("urgent_days", defaults.urgent_days)),
        attention_days=int(data.get("attention_days", defaults.attention_days)),
        utc_offset_hours=int(data.get("utc_offset_hours", defaults.utc_offset_hours)),
        reminder_time=parse_time(data.get("reminder_time", defaults.reminder_time)),
        horizon_years=int(data.get("horizon_years", defaults.horizon_years)),
        upcoming_limit=int(data.get("upcoming_limit", defaults.upcoming_limit)),
    )
    if settings.window_days < 1 or settings.reminder_window_days < 1:
        raise ValueError("Calendar windows must be at least one day")
    if not -12 <= settings.utc_offset_hours <= 14:
        raise ValueError(f"utc_offset_hours out of range: {settings.utc_offset_hours}")
    # Raises ValueError for bad thresholds or horizon.
    settings.policy()
    return settings


def parse_issuance(data: dict[str, Any]) -> IssuanceSettings:
    defaults = IssuanceSettings()
    settings = IssuanceSettings(
        model=str(data.get("model", defaults.model)),
        series=str(data.get("series", defaults.series)),
        emission_type=str(data.get("emission_type", defaults.emission_type)),
        default_state=str(data.get("default_state", defaults.default_state)).upper(),
    )
    if not is_valid_uf(settings.default_state):
        raise ValueError(f"Unknown default_state: {settings.default_state!r}")
    if not (settings.series.isdigit() and len(settings.series) <= 3):
        raise ValueError(f"series must be up to 3 digits, got {settings.series!r}")
    return settings


def compute_checksum(data: dict[str, Any]) -> str:
    canonical = json.dumps(data, sort_keys=True, default=str, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def parse_configuration(data: dict[str, Any]) -> FiscalConfiguration:
    """
    Parse a complete configuration document.

    Raises:
        KeyError: if ``config_id`` or ``obligations`` is missing.
        ValueError: on duplicate obligation names or bad settings.
    """
    catalog = tuple(parse_obligation(o) for o in data["obligations"])
    names = [t.name for t in catalog]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ValueError(f"Duplicate obligation names: {duplicates}")

    return FiscalConfiguration(
        config_id=data["config_id"],
        version=int(data.get("version", 1)),
        catalog=catalog,
        calendar=parse_calendar(data.get("calendar") or {}),
        issuance=parse_issuance(data.get("issuance") or {}),
        checksum=compute_checksum(data),
    )


def load_configuration(path: Path) -> FiscalConfiguration:
    return parse_configuration(load_yaml_file(path))
