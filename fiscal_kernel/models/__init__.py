"""ORM models for the fiscal kernel."""

from fiscal_kernel.models.draft import Draft, DraftItem
from fiscal_kernel.models.official_document import (
    ORIGIN_NOTE_SUFFIX,
    DocumentOrigin,
    DocumentStatus,
    OfficialDocument,
    OfficialDocumentItem,
)
from fiscal_kernel.models.producer import Producer
from fiscal_kernel.models.reminder import ScheduledReminder
from fiscal_kernel.models.sequence import SequenceCounter

__all__ = [
    "DocumentOrigin",
    "DocumentStatus",
    "Draft",
    "DraftItem",
    "ORIGIN_NOTE_SUFFIX",
    "OfficialDocument",
    "OfficialDocumentItem",
    "Producer",
    "ScheduledReminder",
    "SequenceCounter",
]
