"""
Module: inventory_kernel.selectors.movement_selector
Responsibility: Read-only access to the movement ledger: filtered history,
    per-kind totals, and replay of a lot's quantity from its entries.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - History is returned newest first.
    - replayed_quantity() derives a lot's quantity purely from ledger
      entries; for a consistent database it equals Lot.quantity.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import func, or_, select

from inventory_kernel.domain.dtos import MovementInfo
from inventory_kernel.models.movement import MovementEntry, MovementKind
from inventory_kernel.selectors.base import BaseSelector, day_after, day_start


class MovementSelector(BaseSelector[MovementEntry]):
    """Selector for movement ledger queries."""

    def _filtered(
        self,
        stmt,
        kind: MovementKind | None,
        product_id: UUID | None,
        date_from: date | None,
        date_to: date | None,
        location: str | None = None,
        lot_id: UUID | None = None,
    ):
        if kind is not None:
            stmt = stmt.where(MovementEntry.kind == MovementKind(kind).value)
        if product_id is not None:
            stmt = stmt.where(MovementEntry.product_id == product_id)
        if date_from is not None:
            stmt = stmt.where(MovementEntry.occurred_at >= day_start(date_from))
        if date_to is not None:
            stmt = stmt.where(MovementEntry.occurred_at < day_after(date_to))
        if location is not None:
            stmt = stmt.where(
                or_(
                    MovementEntry.origin_location == location,
                    MovementEntry.destination_location == location,
                )
            )
        if lot_id is not None:
            stmt = stmt.where(
                or_(
                    MovementEntry.lot_id == lot_id,
                    MovementEntry.counterpart_lot_id == lot_id,
                )
            )
        return stmt

    def list_movements(
        self,
        kind: MovementKind | None = None,
        product_id: UUID | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        location: str | None = None,
        lot_id: UUID | None = None,
        limit: int | None = None,
    ) -> list[MovementInfo]:
        """
        Ledger entries matching every given filter, newest first.

        Args:
            kind: Only entries of this kind.
            product_id: Only entries for this product.
            date_from: Inclusive lower bound on the entry's UTC date.
            date_to: Inclusive upper bound on the entry's UTC date.
            location: Entries with this location as origin or destination.
            lot_id: Entries on this lot, including transfers into it.
            limit: Maximum number of entries.
        """
        stmt = self._filtered(
            select(MovementEntry), kind, product_id, date_from, date_to, location, lot_id
        ).order_by(MovementEntry.occurred_at.desc(), MovementEntry.id.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        return [MovementInfo.from_model(e) for e in self.session.execute(stmt).scalars()]

    def totals_by_kind(
        self,
        product_id: UUID | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> dict[MovementKind, int]:
        """Summed magnitudes per kind; kinds with no entries map to 0."""
        stmt = self._filtered(
            select(MovementEntry.kind, func.sum(MovementEntry.quantity)),
            None,
            product_id,
            date_from,
            date_to,
        ).group_by(MovementEntry.kind)

        totals = {kind: 0 for kind in MovementKind}
        for kind, total in self.session.execute(stmt):
            totals[MovementKind(kind)] = int(total)
        return totals

    def count(self) -> int:
        return self.session.execute(select(func.count(MovementEntry.id))).scalar_one()

    def replayed_quantity(self, lot_id: UUID) -> int:
        """
        Recompute a lot's quantity from the ledger alone.

        Entries on the lot contribute their signed quantity; transfer entries
        naming the lot as counterpart contribute +quantity.
        """
        quantity = 0
        for entry in self.list_movements(lot_id=lot_id):
            if entry.lot_id == lot_id:
                quantity += entry.signed_quantity
            else:
                quantity += entry.quantity
        return quantity
