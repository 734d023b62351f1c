"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for every
    write-side service.  Services use ``session.flush()`` and never
    ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell.

Invariants enforced:
    Transaction boundaries -- services flush within the caller's transaction
        and never commit or roll back.  The caller (InventoryLedger through
        run_in_transaction, or a test) owns commit/rollback, which is what
        makes read-validate-write-append a single atomic unit.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from inventory_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide read-model queries; those belong in
          ``inventory_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        """
        Args:
            session: Open SQLAlchemy session for database operations.
        """
        self.session = session
