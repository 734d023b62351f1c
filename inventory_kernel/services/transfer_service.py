"""
TransferService -- move quantity from one lot to another location.

Responsibility:
    Decrements a source lot, increments the matching lot at the destination
    (creating it if needed) and records one transfer entry, as one unit of
    work inside the caller's transaction.

Architecture position:
    Kernel > Services.

Invariants enforced:
    CONSERVATION -- the same ``quantity`` is subtracted and added, so the
        product's total across locations is unchanged.
    NON_NEGATIVE_STOCK -- via LotStore.set_quantity on the source.
    LEDGER_COMPLETENESS -- one transfer entry referencing the source lot
        with the destination lot as counterpart.

Failure modes:
    - InvalidQuantityError, UnknownLocationError, InvalidDestinationError,
      LotNotFoundError, InsufficientStockError.  All are raised before the
      first write.
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.orm import Session

from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.settings import LedgerSettings
from inventory_kernel.domain.values import require_positive_quantity
from inventory_kernel.exceptions import InsufficientStockError, InvalidDestinationError
from inventory_kernel.invariants import KernelInvariant
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.lot import Lot
from inventory_kernel.models.movement import MovementEntry, MovementKind
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.lot_store import LotStore
from inventory_kernel.services.movement_ledger import MovementLedger

logger = get_logger("services.transfer")


@dataclass
class TransferOutcome:
    """ORM-level result; converted to TransferResult before leaving the engine."""

    source: Lot
    destination: Lot
    entry: MovementEntry


class TransferService(BaseService[Lot]):
    def __init__(
        self,
        session: Session,
        settings: LedgerSettings | None = None,
        clock: Clock | None = None,
    ):
        super().__init__(session)
        self._ledger = MovementLedger(session, clock)
        self._lots = LotStore(session, settings, clock, self._ledger)

    def transfer(
        self,
        lot_id: UUID,
        quantity: int,
        destination: str,
        note: str | None = None,
        actor_id: UUID | None = None,
    ) -> TransferOutcome:
        """
        Move ``quantity`` units of lot ``lot_id`` to ``destination``.

        Postconditions:
            - source.quantity decreased by quantity.
            - destination lot (same product and expiry) increased by quantity.
            - exactly one transfer entry appended.

        Raises:
            InvalidQuantityError: quantity is not a positive integer.
            UnknownLocationError: destination is not configured.
            LotNotFoundError: no such source lot.
            InvalidDestinationError: destination is the source's location.
            InsufficientStockError: quantity exceeds the source's stock.
        """
        require_positive_quantity(quantity)
        self._lots.require_location(destination)

        # Product row before lot rows, matching find_or_create_destination().
        self._lots.lock_product(self._lots.get_lot(lot_id).product_id)
        source = self._lots.lock_lot(lot_id)
        if destination == source.location:
            raise InvalidDestinationError(str(lot_id), destination)
        if quantity > source.quantity:
            raise InsufficientStockError(str(lot_id), requested=quantity, available=source.quantity)

        origin = source.location
        self._lots.set_quantity(source, source.quantity - quantity)

        target = self._lots.find_or_create_destination(source, destination)
        self._lots.set_quantity(target, target.quantity + quantity)

        entry = self._ledger.append(
            source,
            MovementKind.TRANSFER,
            quantity,
            origin=origin,
            destination=destination,
            note=note,
            counterpart_lot_id=target.id,
            actor_id=actor_id,
        )

        logger.info(
            "transfer_completed",
            extra={
                "invariant": KernelInvariant.CONSERVATION.value,
                "source_lot_id": str(source.id),
                "destination_lot_id": str(target.id),
                "origin": origin,
                "destination": destination,
                "quantity": quantity,
            },
        )
        return TransferOutcome(source=source, destination=target, entry=entry)
