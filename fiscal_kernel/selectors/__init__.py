"""Selectors for the fiscal kernel (read side)."""

from fiscal_kernel.selectors.document_selector import DocumentSelector
from fiscal_kernel.selectors.draft_selector import DraftSelector
from fiscal_kernel.selectors.reminder_selector import ReminderSelector

__all__ = [
    "DocumentSelector",
    "DraftSelector",
    "ReminderSelector",
]
