"""Database layer - engine, base classes, transactions and immutability."""

from inventory_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from inventory_kernel.db.engine import (
    build_engine,
    create_tables,
    get_engine,
    get_session,
    get_session_factory,
    run_in_transaction,
    session_scope,
)

__all__ = [
    "build_engine",
    "get_engine",
    "get_session",
    "get_session_factory",
    "create_tables",
    "run_in_transaction",
    "session_scope",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
]
