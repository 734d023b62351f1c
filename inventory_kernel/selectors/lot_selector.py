"""
Module: inventory_kernel.selectors.lot_selector
Responsibility: Read-only access to lots: FIFO availability, stock per
    location, and expiry views.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - FIFO: available lots are ordered by expiry date ascending, then
      receipt time, then id.
    - Exhausted lots (quantity 0) are excluded from availability and expiry
      views but remain queryable by id.

Failure modes:
    - LotNotFoundError from get_lot(); every other query returns an empty
      result when nothing matches.
"""

from datetime import date, timedelta
from uuid import UUID

from sqlalchemy import func, select

from inventory_kernel.domain.dtos import LotInfo, StockLevel
from inventory_kernel.exceptions import LotNotFoundError
from inventory_kernel.models.lot import Lot, fifo_order
from inventory_kernel.models.product import Product
from inventory_kernel.selectors.base import BaseSelector


class LotSelector(BaseSelector[Lot]):
    """Selector for lot queries."""

    def find_available(self, product_id: UUID, location: str) -> list[LotInfo]:
        """Lots with stock for the product at the location, soonest expiry first."""
        stmt = (
            select(Lot)
            .where(
                Lot.product_id == product_id,
                Lot.location == location,
                Lot.quantity > 0,
            )
            .order_by(*fifo_order())
        )
        return [LotInfo.from_model(lot) for lot in self.session.execute(stmt).scalars()]

    def get_lot(self, lot_id: UUID) -> LotInfo:
        lot = self.session.get(Lot, lot_id)
        if lot is None:
            raise LotNotFoundError(str(lot_id))
        return LotInfo.from_model(lot)

    def list_lots(self, product_id: UUID, include_exhausted: bool = True) -> list[LotInfo]:
        """Every lot of a product across locations, by location then FIFO."""
        stmt = select(Lot).where(Lot.product_id == product_id)
        if not include_exhausted:
            stmt = stmt.where(Lot.quantity > 0)
        stmt = stmt.order_by(Lot.location, *fifo_order())
        return [LotInfo.from_model(lot) for lot in self.session.execute(stmt).scalars()]

    def stock_by_location(
        self,
        product_id: UUID | None = None,
        active_only: bool = True,
    ) -> list[StockLevel]:
        """
        Quantity on hand per (product, location).

        Args:
            product_id: Restrict to one product.
            active_only: Skip products whose is_active flag is False.

        Returns:
            StockLevel rows with quantity > 0, ordered by product then location.
        """
        qty = func.sum(Lot.quantity)
        stmt = (
            select(Lot.product_id, Lot.location, qty.label("quantity"))
            .join(Product, Product.id == Lot.product_id)
            .group_by(Lot.product_id, Lot.location)
            .having(qty > 0)
            .order_by(Lot.product_id, Lot.location)
        )
        if product_id is not None:
            stmt = stmt.where(Lot.product_id == product_id)
        if active_only:
            stmt = stmt.where(Product.is_active.is_(True))

        return [
            StockLevel(product_id=row.product_id, location=row.location, quantity=int(row.quantity))
            for row in self.session.execute(stmt)
        ]

    def product_total(self, product_id: UUID) -> int:
        """Total units of a product across all locations."""
        total = self.session.execute(
            select(func.coalesce(func.sum(Lot.quantity), 0)).where(Lot.product_id == product_id)
        ).scalar_one()
        return int(total)

    def near_expiry(
        self,
        as_of: date,
        within_days: int = 30,
        location: str | None = None,
    ) -> list[LotInfo]:
        """
        Lots with stock expiring between ``as_of`` and ``as_of + within_days``
        inclusive, soonest first.  Already-expired lots are not included.
        """
        stmt = select(Lot).where(
            Lot.quantity > 0,
            Lot.expiry_date >= as_of,
            Lot.expiry_date <= as_of + timedelta(days=within_days),
        )
        if location is not None:
            stmt = stmt.where(Lot.location == location)
        stmt = stmt.order_by(*fifo_order())
        return [LotInfo.from_model(lot) for lot in self.session.execute(stmt).scalars()]

    def expired(self, as_of: date, location: str | None = None) -> list[LotInfo]:
        """Lots with stock whose expiry date is before ``as_of``."""
        stmt = select(Lot).where(Lot.quantity > 0, Lot.expiry_date < as_of)
        if location is not None:
            stmt = stmt.where(Lot.location == location)
        stmt = stmt.order_by(*fifo_order())
        return [LotInfo.from_model(lot) for lot in self.session.execute(stmt).scalars()]
