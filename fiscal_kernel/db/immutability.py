"""
ORM-Level Immutability Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

An issued fiscal document is a legal record.  Once a draft has been turned
into an official document, neither the document, its items, nor the draft
that produced it may change: corrections are made by issuing a new document.

SQLAlchemy fires events before UPDATE/DELETE statements reach the database.
The listeners registered here intercept those events and raise
ImmutabilityViolationError, aborting the flush before any SQL is sent:

    session.flush()
         |
         v
    [before_update] --> _check_*_update() --> ImmutabilityViolationError
         |
    [before_delete] --> _check_*_delete() --> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity                 | When Immutable                   | Why
-----------------------|----------------------------------|-------------------------------
OfficialDocument       | ALWAYS (from insert)             | Issued = legal record
OfficialDocumentItem   | ALWAYS (from insert)             | Items are part of the document
Draft                  | After status = finalized         | Finalized = history
DraftItem              | When parent draft is finalized   | Items are part of the draft

===============================================================================
DESIGN DECISIONS
===============================================================================

1. updated_at/updated_by_id may change: they are audit metadata, not
   document content.

2. "Was finalized" rather than "is finalized": the finalize step itself must
   set status=finalized on the draft.  The approved -> finalized write is
   allowed; anything after it is blocked.  Attribute history tells the two
   apart.

3. Inline model imports avoid the models <-> db import cycle.

===============================================================================
USAGE
===============================================================================

    from fiscal_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup (idempotent)

Tests that need to tamper on purpose:

    unregister_immutability_listeners()
"""

from sqlalchemy import event, inspect
from sqlalchemy.orm.attributes import get_history

from fiscal_kernel.exceptions import ImmutabilityViolationError
from fiscal_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_AUDIT_FIELDS = frozenset({"updated_at", "updated_by_id"})
_FINALIZED = "finalized"


def _changed_fields(target) -> list[str]:
    """Column attributes with pending changes, excluding audit metadata."""
    changed = []
    for attr in inspect(target).attrs:
        if attr.key in _AUDIT_FIELDS:
            continue
        if attr.history.has_changes():
            changed.append(attr.key)
    return changed


def _blocked(entity_type: str, target, operation: str, reason: str, field: str | None = None):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
            "field": field,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _status_value(value) -> str:
    return getattr(value, "value", value)


def _was_finalized(target) -> bool:
    """True when the draft was already finalized before this flush."""
    status_history = get_history(target, "status")
    if status_history.deleted:
        return _status_value(status_history.deleted[0]) == _FINALIZED
    if not status_history.added:
        return _status_value(target.status) == _FINALIZED
    return False


# Official documents


def _check_document_update(mapper, connection, target):
    changed = _changed_fields(target)
    if changed:
        _blocked(
            "OfficialDocument", target, "UPDATE",
            f"Cannot modify field '{changed[0]}' on an issued document",
            field=changed[0],
        )


def _check_document_delete(mapper, connection, target):
    _blocked("OfficialDocument", target, "DELETE", "Issued documents cannot be deleted")


def _check_document_item_update(mapper, connection, target):
    changed = _changed_fields(target)
    if changed:
        _blocked(
            "OfficialDocumentItem", target, "UPDATE",
            f"Cannot modify field '{changed[0]}' on an issued document item",
            field=changed[0],
        )


def _check_document_item_delete(mapper, connection, target):
    _blocked(
        "OfficialDocumentItem", target, "DELETE",
        "Items of issued documents cannot be deleted",
    )


# Drafts


def _check_draft_update(mapper, connection, target):
    if not _was_finalized(target):
        return
    changed = _changed_fields(target)
    if changed:
        _blocked(
            "Draft", target, "UPDATE",
            f"Cannot modify field '{changed[0]}' on a finalized draft",
            field=changed[0],
        )


def _check_draft_delete(mapper, connection, target):
    if _status_value(target.status) == _FINALIZED:
        _blocked("Draft", target, "DELETE", "Finalized drafts cannot be deleted")


def _parent_finalized(target) -> bool:
    draft = target.draft
    return draft is not None and _status_value(draft.status) == _FINALIZED


def _check_draft_item_update(mapper, connection, target):
    if _parent_finalized(target):
        _blocked(
            "DraftItem", target, "UPDATE",
            "Items cannot be modified after the draft is finalized",
        )


def _check_draft_item_delete(mapper, connection, target):
    if _parent_finalized(target):
        _blocked(
            "DraftItem", target, "DELETE",
            "Items cannot be deleted after the draft is finalized",
        )


def _listeners():
    from fiscal_kernel.models.draft import Draft, DraftItem
    from fiscal_kernel.models.official_document import (
        OfficialDocument,
        OfficialDocumentItem,
    )

    return [
        (OfficialDocument, "before_update", _check_document_update),
        (OfficialDocument, "before_delete", _check_document_delete),
        (OfficialDocumentItem, "before_update", _check_document_item_update),
        (OfficialDocumentItem, "before_delete", _check_document_item_delete),
        (Draft, "before_update", _check_draft_update),
        (Draft, "before_delete", _check_draft_delete),
        (DraftItem, "before_update", _check_draft_item_update),
        (DraftItem, "before_delete", _check_draft_item_delete),
    ]


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Safe to call more than once; already-registered listeners are skipped.
    """
    for target, event_name, listener_fn in _listeners():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring it if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests that violate immutability on purpose.
    """
    for target, event_name, listener_fn in _listeners():
        _safe_remove_listener(target, event_name, listener_fn)
