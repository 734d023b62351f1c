"""
AdjustmentService -- reconcile a lot to a physically counted quantity.

Responsibility:
    Sets a lot to an absolute quantity and records the difference as one
    adjustment entry whose direction is carried by origin/destination and
    whose note starts with ``increase`` or ``decrease``.

Architecture position:
    Kernel > Services.

Invariants enforced:
    LEDGER_COMPLETENESS -- one entry with magnitude |new - old| per change.
    A zero difference changes nothing and records nothing.

Failure modes:
    - InvalidQuantityError if the new quantity is negative or not an int.
    - LotNotFoundError.
"""

from uuid import UUID

from sqlalchemy.orm import Session

from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.settings import LedgerSettings
from inventory_kernel.exceptions import InvalidQuantityError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.lot import Lot
from inventory_kernel.models.movement import MovementEntry, MovementKind
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.lot_store import LotStore
from inventory_kernel.services.movement_ledger import MovementLedger

logger = get_logger("services.adjustment")


class AdjustmentService(BaseService[Lot]):
    def __init__(
        self,
        session: Session,
        settings: LedgerSettings | None = None,
        clock: Clock | None = None,
    ):
        super().__init__(session)
        self._ledger = MovementLedger(session, clock)
        self._lots = LotStore(session, settings, clock, self._ledger)

    def adjust_quantity(
        self,
        lot_id: UUID,
        new_quantity: int,
        reason: str | None = None,
        actor_id: UUID | None = None,
    ) -> MovementEntry | None:
        """
        Set lot ``lot_id`` to ``new_quantity``.

        Returns:
            The adjustment entry, or None when new_quantity equals the
            current quantity.

        Raises:
            InvalidQuantityError: new_quantity is negative or not an int.
            LotNotFoundError: no such lot.
        """
        if isinstance(new_quantity, bool) or not isinstance(new_quantity, int):
            raise InvalidQuantityError(new_quantity, reason="must be a whole number of units")
        if new_quantity < 0:
            raise InvalidQuantityError(new_quantity, reason="must be zero or greater")

        lot = self._lots.lock_lot(lot_id)
        old_quantity = lot.quantity
        delta = new_quantity - old_quantity
        if delta == 0:
            logger.info(
                "adjustment_skipped",
                extra={"adjusted_lot_id": str(lot.id), "quantity": old_quantity},
            )
            return None

        word = "increase" if delta > 0 else "decrease"
        note = f"{word} from {old_quantity} to {new_quantity}"
        if reason:
            note = f"{note}: {reason}"

        self._lots.set_quantity(lot, new_quantity)
        entry = self._ledger.append(
            lot,
            MovementKind.ADJUSTMENT,
            abs(delta),
            origin=lot.location if delta < 0 else None,
            destination=lot.location if delta > 0 else None,
            note=note,
            actor_id=actor_id,
        )

        logger.info(
            "adjustment_recorded",
            extra={
                "adjusted_lot_id": str(lot.id),
                "old_quantity": old_quantity,
                "new_quantity": new_quantity,
                "delta": delta,
            },
        )
        return entry
