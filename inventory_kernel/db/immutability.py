"""
ORM-level append-only enforcement for the movement ledger and sales.

===============================================================================
HOW IT WORKS
===============================================================================

SQLAlchemy fires mapper events before UPDATE/DELETE statements reach the
database.  The listeners below intercept those events for the append-only
tables and raise ImmutabilityViolationError, aborting the flush:

    session.flush()
         |
         v
    [before_update] --> _block_update() --> ImmutabilityViolationError
         |
    [before_delete] --> _block_delete() --> ImmutabilityViolationError
         |
         v
    SQL sent to database (only for INSERTs on these tables)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity          | When Immutable         | Why
----------------|------------------------|--------------------------------------
MovementEntry   | ALWAYS (from creation) | Ledger explains every lot quantity
Sale            | ALWAYS (from creation) | A completed sale is a fact
SaleLine        | ALWAYS (from creation) | Lines are part of the sale

Lots are NOT protected: their quantity is current state and changes with
every movement.  Corrections to the ledger are new adjustment entries.

===============================================================================
USAGE
===============================================================================

Registered by InventoryLedger on construction (idempotent):

    from inventory_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event

from inventory_kernel.exceptions import ImmutabilityViolationError
from inventory_kernel.invariants import KernelInvariant
from inventory_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _block_update(mapper, connection, target):
    entity_type = type(target).__name__

    logger.error(
        "immutability_violation_blocked",
        extra={
            "invariant": KernelInvariant.LEDGER_IMMUTABILITY.value,
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "db_operation": "UPDATE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=f"{entity_type} records are append-only and cannot be modified",
    )


def _block_delete(mapper, connection, target):
    entity_type = type(target).__name__

    logger.error(
        "immutability_violation_blocked",
        extra={
            "invariant": KernelInvariant.LEDGER_IMMUTABILITY.value,
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "db_operation": "DELETE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=f"{entity_type} records cannot be deleted",
    )


def _protected_models():
    from inventory_kernel.models.movement import MovementEntry
    from inventory_kernel.models.sale import Sale, SaleLine

    return (MovementEntry, Sale, SaleLine)


def register_immutability_listeners():
    """
    Register the append-only listeners.

    Safe to call repeatedly; a listener already attached is not attached
    twice.
    """
    for model in _protected_models():
        if not event.contains(model, "before_update", _block_update):
            event.listen(model, "before_update", _block_update)
        if not event.contains(model, "before_delete", _block_delete):
            event.listen(model, "before_delete", _block_delete)


def _safe_remove_listener(target, event_name, listener_fn):
    """
    Safely remove an event listener, ignoring if not registered.
    """
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove the append-only listeners.

    WARNING: Only use this in tests where you need to intentionally
    violate immutability rules to verify detection.
    """
    for model in _protected_models():
        _safe_remove_listener(model, "before_update", _block_update)
        _safe_remove_listener(model, "before_delete", _block_delete)


def listeners_registered() -> bool:
    """True if every protected model has both listeners attached."""
    return all(
        event.contains(model, "before_update", _block_update)
        and event.contains(model, "before_delete", _block_delete)
        for model in _protected_models()
    )
