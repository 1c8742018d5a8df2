"""
ORM-Level Immutability Enforcement for posted journal data.

===============================================================================
WHY THIS EXISTS
===============================================================================

Posted transactions are never edited.  Mistakes are corrected with a visible
contra-entry (see services/reversal_service.py), so the ledger always shows
what was booked and when it was undone.  These listeners reject any flush
that would UPDATE or DELETE a finalized journal row, before SQL reaches the
database.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity        | When Immutable                 | Mutable fields after that
--------------|--------------------------------|------------------------------
JournalEntry  | status was POSTED              | status -> reversed,
              |                                | reversed_by_id, reversed_at,
              |                                | settled_amount, audit fields
JournalEntry  | status was REVERSED            | audit fields only
JournalLine   | parent entry POSTED/REVERSED   | nothing

===============================================================================
DESIGN DECISIONS
===============================================================================

1. updated_at / updated_by_id are audit metadata and may always change.
2. The check looks at the status the row had BEFORE this flush (attribute
   history), so the DRAFT -> POSTED transition itself is allowed.
3. Imports of the models are inline: models import db, db must not import
   models at module load.

===============================================================================
USAGE
===============================================================================

    from ledger_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup

Tests that need to bypass the guard call unregister_immutability_listeners().
===============================================================================
"""

from sqlalchemy import event, inspect, select
from sqlalchemy.orm.attributes import get_history

from ledger_kernel.exceptions import ImmutabilityViolationError
from ledger_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_AUDIT_FIELDS = frozenset({"updated_at", "updated_by_id"})
_POSTED_MUTABLE_FIELDS = _AUDIT_FIELDS | {
    "status",
    "reversed_by_id",
    "reversed_at",
    "settled_amount",
}


def _previous_status(target) -> str | None:
    """Status the row had before the pending flush."""
    history = get_history(target, "status")
    if history.deleted:
        return history.deleted[0]
    if history.unchanged:
        return history.unchanged[0]
    if not history.added:
        return target.status
    return None


def _blocked(entity_type: str, entity_id, operation: str, reason: str, field: str | None = None):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "operation": operation,
            "field": field,
        },
    )
    return ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(entity_id),
        reason=reason,
    )


def _check_journal_entry_immutability(mapper, connection, target):
    """
    Reject field changes on posted or reversed entries.

    A posted entry may only move to REVERSED and record its contra-entry or
    settlement state.  A reversed entry is frozen.
    """
    from ledger_kernel.models.journal import JournalEntryStatus

    previous = _previous_status(target)
    if previous == JournalEntryStatus.POSTED:
        allowed = _POSTED_MUTABLE_FIELDS
        new_status = target.status
        if new_status not in (JournalEntryStatus.POSTED, JournalEntryStatus.REVERSED):
            raise _blocked(
                "JournalEntry", target.id, "UPDATE",
                f"Posted entry cannot move to status '{new_status}'",
                field="status",
            )
    elif previous == JournalEntryStatus.REVERSED:
        allowed = _AUDIT_FIELDS
    else:
        return

    for attr in inspect(target).attrs:
        if attr.key in allowed:
            continue
        if attr.history.has_changes():
            raise _blocked(
                "JournalEntry", target.id, "UPDATE",
                f"Cannot modify field '{attr.key}' on {previous} journal entry",
                field=attr.key,
            )


def _check_journal_entry_delete(mapper, connection, target):
    """Journal entries are never deleted once numbered and posted."""
    from ledger_kernel.models.journal import JournalEntryStatus

    if _previous_status(target) in (JournalEntryStatus.POSTED, JournalEntryStatus.REVERSED):
        raise _blocked(
            "JournalEntry", target.id, "DELETE",
            "Posted or reversed journal entries cannot be deleted",
        )


def _line_is_frozen(connection, target) -> bool:
    from ledger_kernel.models.journal import JournalEntry, JournalEntryStatus

    frozen = (JournalEntryStatus.POSTED, JournalEntryStatus.REVERSED)
    entry = target.entry
    if entry is not None:
        return entry.status in frozen
    # Orphaned from its collection: read the stored parent status
    status = connection.execute(
        select(JournalEntry.status).where(JournalEntry.id == target.journal_entry_id)
    ).scalar_one_or_none()
    return status in frozen


def _check_journal_line_immutability(mapper, connection, target):
    if _line_is_frozen(connection, target):
        raise _blocked(
            "JournalLine", target.id, "UPDATE",
            "Journal lines cannot be modified after the entry is posted",
        )


def _check_journal_line_delete(mapper, connection, target):
    if _line_is_frozen(connection, target):
        raise _blocked(
            "JournalLine", target.id, "DELETE",
            "Journal lines cannot be deleted after the entry is posted",
        )


def register_immutability_listeners():
    """
    Register the immutability listeners.

    Call once after the models are imported and before any flush.
    """
    from ledger_kernel.models.journal import JournalEntry, JournalLine

    for target, event_name, fn in _listeners(JournalEntry, JournalLine):
        if not event.contains(target, event_name, fn):
            event.listen(target, event_name, fn)


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove a listener, ignoring ones that were never registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove the immutability listeners.

    WARNING: tests only.
    """
    from ledger_kernel.models.journal import JournalEntry, JournalLine

    for target, event_name, fn in _listeners(JournalEntry, JournalLine):
        _safe_remove_listener(target, event_name, fn)


def _listeners(entry_cls, line_cls):
    return (
        (entry_cls, "before_update", _check_journal_entry_immutability),
        (entry_cls, "before_delete", _check_journal_entry_delete),
        (line_cls, "before_update", _check_journal_line_immutability),
        (line_cls, "before_delete", _check_journal_line_delete),
    )
