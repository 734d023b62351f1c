"""
Module: inventory_kernel.models.lot
Responsibility: ORM persistence for stock lots.  Each lot is one batch of one
    product at one location with one expiry date, carrying the quantity that
    is on hand right now.
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    NON_NEGATIVE_STOCK -- quantity >= 0 (ck_lot_quantity_non_negative, plus
        LotStore.set_quantity before the write is attempted).
    FIFO support -- (product_id, location, expiry_date) index backs the
        first-expire-first-out listing.
    Lost-update protection -- ``version`` is the mapper's version_id_col, so
        an UPDATE based on a stale read matches zero rows and raises
        StaleDataError, which the transaction runner retries.

Failure modes:
    - IntegrityError if a raw write bypasses LotStore and goes negative.
    - StaleDataError on flush when a concurrent transaction changed the lot.

Audit relevance:
    Quantity is current state; the history that explains it lives in
    movement_entries.  Lots are never deleted by normal operation, so an
    exhausted lot (quantity 0) keeps its ledger trail.
"""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TrackedBase, UUIDString


class Lot(TrackedBase):
    """
    A dated batch of one product at one location.

    Contract:
        quantity is mutated only by LotStore on behalf of the create,
        transfer, sale and adjustment operations, always inside a
        transaction that also appends the explaining movement entry.

    Non-goals:
        - No uniqueness on (product, location, expiry): initial stocking may
          create several lots with the same key.  Transfers merge into the
          oldest matching lot instead of creating another one.
    """

    __tablename__ = "lots"

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_lot_quantity_non_negative"),
        # Query: FIFO listing for a product at a location
        Index("idx_lot_product_location_expiry", "product_id", "location", "expiry_date"),
        # Query: near-expiry / expired scans
        Index("idx_lot_expiry", "expiry_date"),
    )

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )

    location: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    expiry_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    # INVARIANT: NON_NEGATIVE_STOCK
    quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    lot_number: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )

    # Clock time the lot first received stock; FIFO tie-breaker
    received_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return (
            f"<Lot {self.id}: product={self.product_id} at {self.location} "
            f"exp={self.expiry_date} qty={self.quantity}>"
        )


def fifo_order():
    """ORDER BY for first-expire-first-out listing."""
    return (Lot.expiry_date.asc(), Lot.received_at.asc(), Lot.id.asc())
