"""ORM-level immutability for ledger records.

Ledger transactions, entries and credit applications are append-only. These
listeners reject updates and deletes issued through the ORM before any SQL is
sent. Bulk statements bypass mapper events; the matching database triggers in
``creditline.db.rls`` cover those.
"""

import logging

from sqlalchemy import event, inspect

from creditline.core.exceptions import ImmutableFieldError
from creditline.models.ledger_entry import LedgerEntry
from creditline.models.ledger_transaction import LedgerTransaction
from creditline.models.usage_credit_application import UsageCreditApplication

logger = logging.getLogger(__name__)

# Columns maintained by the database itself
_AUDIT_FIELDS = frozenset({"modified_at"})


def _changed_fields(target) -> list[str]:
    return [
        attr.key
        for attr in inspect(target).attrs
        if attr.key not in _AUDIT_FIELDS and attr.history.has_changes()
    ]


def _reject_update(mapper, connection, target):
    changed = _changed_fields(target)
    if changed:
        logger.error(f"Blocked update of {type(target).__name__} {target.id}: {changed}")
        raise ImmutableFieldError(changed[0], f"{type(target).__name__} is append-only")


def _reject_delete(mapper, connection, target):
    logger.error(f"Blocked delete of {type(target).__name__} {target.id}")
    raise ImmutableFieldError("id", f"{type(target).__name__} cannot be deleted")


def _check_ledger_entry_update(mapper, connection, target):
    """Allow only discarding a pending entry."""
    changed = _changed_fields(target)
    if not changed:
        return
    if target.status != "pending" or set(changed) != {"discarded_at"}:
        logger.error(f"Blocked update of LedgerEntry {target.id}: {changed}")
        raise ImmutableFieldError(
            changed[0], "Only discarded_at of a pending ledger entry may change"
        )


_LISTENERS = (
    (LedgerTransaction, "before_update", _reject_update),
    (LedgerTransaction, "before_delete", _reject_delete),
    (UsageCreditApplication, "before_update", _reject_update),
    (UsageCreditApplication, "before_delete", _reject_delete),
    (LedgerEntry, "before_update", _check_ledger_entry_update),
    (LedgerEntry, "before_delete", _reject_delete),
)


def register_immutability_listeners() -> None:
    """Attach the listeners. Safe to call more than once."""
    for model, identifier, fn in _LISTENERS:
        if not event.contains(model, identifier, fn):
            event.listen(model, identifier, fn)


def unregister_immutability_listeners() -> None:
    """Detach the listeners (tests only)."""
    for model, identifier, fn in _LISTENERS:
        if event.contains(model, identifier, fn):
            event.remove(model, identifier, fn)
