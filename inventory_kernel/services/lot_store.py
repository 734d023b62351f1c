"""
LotStore -- owner of lot rows and their quantities.

Responsibility:
    Creates lots, lists them in first-expire-first-out order, acquires row
    locks, and is the only code path that writes ``Lot.quantity``.

Architecture position:
    Kernel > Services.  Used by TransferService, SaleService and
    AdjustmentService inside their transactions.

Invariants enforced:
    NON_NEGATIVE_STOCK -- set_quantity() refuses any negative value before
        the write reaches the database (the check constraint is the backstop).
    LEDGER_COMPLETENESS -- create_lot() appends the stock_in entry for the
        initial quantity in the same flush sequence.
    Lock ordering -- lock_lots() acquires locks sorted by id so concurrent
        multi-lot operations cannot deadlock on each other.
    Single destination -- find_or_create_destination() locks the product row
        before looking up the merge target, so concurrent transfers of the
        same product and expiry into one location share a single lot.

Failure modes:
    - InvalidQuantityError, UnknownLocationError, ProductNotFoundError,
      ProductInactiveError from create_lot().
    - LotNotFoundError from get_lot()/lock_lot().
    - InsufficientStockError from set_quantity().
    - StaleDataError on flush when the lot version moved underneath us.
"""

from collections.abc import Iterable
from datetime import date
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.settings import LedgerSettings
from inventory_kernel.domain.values import require_positive_quantity
from inventory_kernel.exceptions import (
    InsufficientStockError,
    LotNotFoundError,
    ProductInactiveError,
    ProductNotFoundError,
    UnknownLocationError,
)
from inventory_kernel.invariants import KernelInvariant
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.lot import Lot, fifo_order
from inventory_kernel.models.movement import MovementKind
from inventory_kernel.models.product import Product
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.movement_ledger import MovementLedger

logger = get_logger("services.lot_store")


class LotStore(BaseService[Lot]):
    """
    Lot persistence and quantity mutation.

    Contract:
        Quantity-changing methods must be called on a lot obtained from
        lock_lot()/lock_lots()/find_or_create_destination() within the
        current transaction.
    """

    def __init__(
        self,
        session: Session,
        settings: LedgerSettings | None = None,
        clock: Clock | None = None,
        ledger: MovementLedger | None = None,
    ):
        super().__init__(session)
        self._settings = settings or LedgerSettings()
        self._clock = clock or SystemClock()
        self._ledger = ledger or MovementLedger(session, self._clock)

    def require_location(self, location: str) -> str:
        if not self._settings.is_known_location(location):
            raise UnknownLocationError(location, tuple(sorted(self._settings.location_codes)))
        return location

    def _generate_lot_number(self) -> str:
        return f"AUTO-{self._clock.today():%Y%m%d}-{uuid4().hex[:8].upper()}"

    def create_lot(
        self,
        product_id: UUID,
        location: str,
        expiry_date: date,
        quantity: int,
        note: str | None = None,
        actor_id: UUID | None = None,
    ) -> Lot:
        """
        Stock a new lot and record its stock_in entry.

        Preconditions:
            - quantity is a positive integer.
            - location is configured.
            - product exists and is active.

        Returns:
            The flushed Lot.

        Raises:
            InvalidQuantityError, UnknownLocationError, ProductNotFoundError,
            ProductInactiveError.
        """
        require_positive_quantity(quantity)
        self.require_location(location)

        product = self.session.get(Product, product_id)
        if product is None:
            raise ProductNotFoundError(str(product_id))
        if not product.is_active:
            raise ProductInactiveError(str(product_id))

        lot = Lot(
            product_id=product_id,
            location=location,
            expiry_date=expiry_date,
            quantity=quantity,
            lot_number=self._generate_lot_number(),
            received_at=self._clock.now(),
            created_by_id=actor_id,
        )
        self.session.add(lot)
        self.session.flush()

        self._ledger.append(
            lot,
            MovementKind.STOCK_IN,
            quantity,
            destination=location,
            note=note or "initial stock",
            actor_id=actor_id,
        )

        logger.info(
            "lot_created",
            extra={
                "created_lot_id": str(lot.id),
                "product_id": str(product_id),
                "location": location,
                "expiry_date": expiry_date,
                "quantity": quantity,
                "lot_number": lot.lot_number,
            },
        )
        return lot

    def find_available(self, product_id: UUID, location: str) -> list[Lot]:
        """Lots of ``product_id`` at ``location`` with stock, soonest expiry first."""
        stmt = (
            select(Lot)
            .where(
                Lot.product_id == product_id,
                Lot.location == location,
                Lot.quantity > 0,
            )
            .order_by(*fifo_order())
        )
        return list(self.session.execute(stmt).scalars().all())

    def get_lot(self, lot_id: UUID) -> Lot:
        lot = self.session.get(Lot, lot_id)
        if lot is None:
            raise LotNotFoundError(str(lot_id))
        return lot

    def lock_lot(self, lot_id: UUID) -> Lot:
        """
        Load a lot with SELECT ... FOR UPDATE.

        populate_existing refreshes an instance already in the identity map
        so the caller always sees the locked row's current quantity.

        Raises:
            LotNotFoundError: If no lot has this id.
        """
        lot = self.session.execute(
            select(Lot)
            .where(Lot.id == lot_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if lot is None:
            raise LotNotFoundError(str(lot_id))
        return lot

    def lock_lots(self, lot_ids: Iterable[UUID]) -> dict[UUID, Lot]:
        """Lock several lots in ascending id order; duplicates are locked once."""
        return {lot_id: self.lock_lot(lot_id) for lot_id in sorted(set(lot_ids), key=str)}

    def lock_product(self, product_id: UUID) -> Product:
        """
        Take SELECT ... FOR NO KEY UPDATE on a product row.

        Serializes destination-lot creation for the product.  NO KEY UPDATE
        does not block the KEY SHARE lock PostgreSQL takes when a new lot
        row references the product.

        Raises:
            ProductNotFoundError: If no product has this id.
        """
        product = self.session.execute(
            select(Product).where(Product.id == product_id).with_for_update(key_share=True)
        ).scalar_one_or_none()
        if product is None:
            raise ProductNotFoundError(str(product_id))
        return product

    def set_quantity(self, lot: Lot, new_quantity: int) -> Lot:
        """
        Write a lot's quantity.

        Raises:
            InsufficientStockError: If new_quantity < 0.  The lot is left
                untouched.
        """
        # INVARIANT: NON_NEGATIVE_STOCK
        if new_quantity < 0:
            logger.warning(
                "negative_stock_rejected",
                extra={
                    "invariant": KernelInvariant.NON_NEGATIVE_STOCK.value,
                    "rejected_lot_id": str(lot.id),
                    "available": lot.quantity,
                    "requested": lot.quantity - new_quantity,
                },
            )
            raise InsufficientStockError(
                str(lot.id),
                requested=lot.quantity - new_quantity,
                available=lot.quantity,
            )

        lot.quantity = new_quantity
        self.session.flush()
        return lot

    def find_or_create_destination(self, source: Lot, destination: str) -> Lot:
        """
        Locked merge target for a transfer out of ``source``.

        Picks the oldest lot with the same product and expiry at
        ``destination``; creates an empty one carrying the source's lot
        number if none exists.  The product row lock is held first: a
        FOR UPDATE lookup that matches nothing locks nothing, and two
        transfers would otherwise each insert their own destination lot.
        """
        self.lock_product(source.product_id)
        existing = self.session.execute(
            select(Lot)
            .where(
                Lot.product_id == source.product_id,
                Lot.location == destination,
                Lot.expiry_date == source.expiry_date,
                Lot.id != source.id,
            )
            .order_by(Lot.received_at.asc(), Lot.id.asc())
            .limit(1)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if existing is not None:
            return existing

        lot = Lot(
            product_id=source.product_id,
            location=destination,
            expiry_date=source.expiry_date,
            quantity=0,
            lot_number=source.lot_number,
            received_at=self._clock.now(),
        )
        self.session.add(lot)
        self.session.flush()

        logger.info(
            "destination_lot_created",
            extra={
                "created_lot_id": str(lot.id),
                "source_lot_id": str(source.id),
                "location": destination,
            },
        )
        return lot
