"""
Pure domain layer.

This module contains the obligation recurrence engine, the reminder
derivation, the draft lifecycle rules and the access-key generator, with NO
dependencies on:
- ORM (SQLAlchemy)
- Database
- Wall-clock time (an injected Clock supplies "now")

All domain objects are immutable and deterministic.
"""

from fiscal_kernel.domain.access_key import (
    AccessKeyContext,
    IssuanceSettings,
    compute_check_digit,
    generate_access_key,
    generate_temporary_key,
    is_valid_access_key,
    parse_access_key,
)
from fiscal_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from fiscal_kernel.domain.corrections import CorrectionMap, ScalarType, TaggedScalar
from fiscal_kernel.domain.draft_lifecycle import (
    DraftEvent,
    DraftKind,
    DraftStatus,
    ReviewDecision,
    next_status,
    validate_for_submission,
)
from fiscal_kernel.domain.dtos import (
    DraftHeader,
    DraftInfo,
    DraftItemSpec,
    FinalizationResult,
    OfficialDocumentInfo,
    ProducerInfo,
    ScheduledReminderInfo,
)
from fiscal_kernel.domain.obligations import (
    CalendarAlert,
    CalendarSummary,
    Notification,
    ObligationTemplate,
    Occurrence,
    OccurrenceStatus,
    RecurrenceKind,
    ReminderPriority,
)
from fiscal_kernel.domain.recurrence import (
    BRASILIA_TZ,
    RecurrencePolicy,
    due_dates,
    expand,
    expand_catalog,
)
from fiscal_kernel.domain.reminders import derive_reminders

__all__ = [
    "AccessKeyContext",
    "BRASILIA_TZ",
    "CalendarAlert",
    "CalendarSummary",
    "Clock",
    "CorrectionMap",
    "DeterministicClock",
    "DraftEvent",
    "DraftHeader",
    "DraftInfo",
    "DraftItemSpec",
    "DraftKind",
    "DraftStatus",
    "FinalizationResult",
    "IssuanceSettings",
    "Notification",
    "ObligationTemplate",
    "Occurrence",
    "OccurrenceStatus",
    "OfficialDocumentInfo",
    "ProducerInfo",
    "RecurrenceKind",
    "RecurrencePolicy",
    "ReminderPriority",
    "ReviewDecision",
    "ScalarType",
    "ScheduledReminderInfo",
    "SystemClock",
    "TaggedScalar",
    "compute_check_digit",
    "derive_reminders",
    "due_dates",
    "expand",
    "expand_catalog",
    "generate_access_key",
    "generate_temporary_key",
    "is_valid_access_key",
    "next_status",
    "parse_access_key",
    "validate_for_submission",
]
