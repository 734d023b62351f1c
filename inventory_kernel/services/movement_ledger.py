"""
MovementLedger -- append-only writer for movement entries.

Responsibility:
    The single write path into ``movement_entries``.  Every operation that
    changes a lot quantity calls ``append`` in the same transaction, with
    the magnitude of the change and the locations that describe its
    direction.

Architecture position:
    Kernel > Services.  Called by LotStore, TransferService, SaleService
    and AdjustmentService; never by selectors.

Invariants enforced:
    LEDGER_COMPLETENESS -- append() is the only way entries are created, and
        callers invoke it once per changed lot.
    Positive magnitude -- quantity <= 0 is rejected before any write.
    Direction convention -- origin/destination must match the kind:
        stock_in: destination only; sale: origin only; transfer: both and
        distinct; adjustment: exactly one of the two.

Failure modes:
    - InvalidQuantityError for a non-positive magnitude.
    - ValueError when origin/destination do not fit the kind (caller bug).
"""

from uuid import UUID

from sqlalchemy.orm import Session

from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.values import require_positive_quantity
from inventory_kernel.invariants import KernelInvariant
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.lot import Lot
from inventory_kernel.models.movement import MovementEntry, MovementKind
from inventory_kernel.services.base import BaseService

logger = get_logger("services.movement_ledger")


def _check_direction(kind: MovementKind, origin: str | None, destination: str | None) -> None:
    if kind is MovementKind.STOCK_IN:
        ok = destination is not None and origin is None
    elif kind is MovementKind.SALE:
        ok = origin is not None and destination is None
    elif kind is MovementKind.TRANSFER:
        ok = origin is not None and destination is not None and origin != destination
    else:
        ok = (origin is None) != (destination is None)
    if not ok:
        raise ValueError(
            f"{kind.value} movement cannot have origin={origin!r} "
            f"destination={destination!r}"
        )


class MovementLedger(BaseService[MovementEntry]):
    """
    Append-only movement ledger.

    Contract:
        The caller holds the lock on ``lot`` and has already applied the
        quantity change the entry describes.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def append(
        self,
        lot: Lot,
        kind: MovementKind,
        quantity: int,
        *,
        origin: str | None = None,
        destination: str | None = None,
        note: str | None = None,
        counterpart_lot_id: UUID | None = None,
        sale_id: UUID | None = None,
        actor_id: UUID | None = None,
    ) -> MovementEntry:
        """
        Record one movement against ``lot``.

        Returns:
            The flushed MovementEntry (id and timestamp populated).

        Raises:
            InvalidQuantityError: If quantity is not a positive integer.
            ValueError: If origin/destination do not match ``kind``.
        """
        require_positive_quantity(quantity)
        _check_direction(kind, origin, destination)

        entry = MovementEntry(
            lot_id=lot.id,
            product_id=lot.product_id,
            kind=kind.value,
            quantity=quantity,
            origin_location=origin,
            destination_location=destination,
            counterpart_lot_id=counterpart_lot_id,
            sale_id=sale_id,
            occurred_at=self._clock.now(),
            note=note,
            actor_id=actor_id,
        )
        self.session.add(entry)
        self.session.flush()

        logger.info(
            "movement_recorded",
            extra={
                "invariant": KernelInvariant.LEDGER_COMPLETENESS.value,
                "movement_id": str(entry.id),
                "kind": kind.value,
                "quantity": quantity,
                "origin": origin,
                "destination": destination,
                "entry_lot_id": str(lot.id),
            },
        )
        return entry
