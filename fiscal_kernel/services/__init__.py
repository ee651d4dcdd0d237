"""Services for the fiscal kernel (write side)."""

from fiscal_kernel.services.draft_service import DraftService, lock_draft
from fiscal_kernel.services.finalizer_service import DocumentFinalizer
from fiscal_kernel.services.producer_service import ProducerService
from fiscal_kernel.services.reminder_service import ReminderService
from fiscal_kernel.services.sequence_service import SequenceService, document_sequence_name

__all__ = [
    "DocumentFinalizer",
    "DraftService",
    "ProducerService",
    "ReminderService",
    "SequenceService",
    "document_sequence_name",
    "lock_draft",
]
