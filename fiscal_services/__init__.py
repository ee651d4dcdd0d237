"""
fiscal_services -- Package init and public API.

Responsibility:
    Stateful orchestration over the fiscal kernel: the obligation calendar,
    the document workflow and the reminder scheduler.  This is the layer
    that owns transaction boundaries and reads configuration.

Architecture position:
    Dependency direction:
        fiscal_services/ -> fiscal_config/   (allowed)
        fiscal_services/ -> fiscal_kernel/   (allowed)
        fiscal_kernel/   -> fiscal_services/ (FORBIDDEN)
        fiscal_kernel/   -> fiscal_config/   (FORBIDDEN)
"""

from fiscal_services.document_workflow import DocumentWorkflow
from fiscal_services.obligation_calendar import ObligationCalendar
from fiscal_services.reminder_scheduler import ReminderScheduler

__all__ = [
    "DocumentWorkflow",
    "ObligationCalendar",
    "ReminderScheduler",
]
