"""
Module: inventory_kernel.models.movement
Responsibility: ORM persistence for the append-only movement ledger.  One row
    per stock change: receipt, sale line, transfer or manual adjustment.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    LEDGER_COMPLETENESS -- every lot quantity change has exactly one entry,
        written in the same transaction as the change (services layer).
    LEDGER_IMMUTABILITY -- entries are never updated or deleted (ORM listeners
        in db/immutability.py).
    Positive magnitude -- quantity > 0 (ck_movement_quantity_positive); the
        direction is carried by origin/destination, not by the sign.

Direction convention:
    stock_in    destination = lot location, origin = NULL
    sale        origin = lot location, destination = NULL
    transfer    origin and destination both set, counterpart_lot_id = the
                destination lot
    adjustment  increase: destination only; decrease: origin only

Audit relevance:
    Replaying a lot's entries in order reproduces its current quantity.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base, UUIDString


class MovementKind(str, Enum):
    """Kinds of stock movement."""

    STOCK_IN = "stock_in"
    SALE = "sale"
    TRANSFER = "transfer"
    ADJUSTMENT = "adjustment"


class MovementEntry(Base):
    """
    One immutable ledger record.

    Non-goals:
        - No updated_at: rows are written once.
        - Reversals are new entries (an adjustment), never edits.
    """

    __tablename__ = "movement_entries"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_movement_quantity_positive"),
        Index("idx_movement_lot", "lot_id"),
        Index("idx_movement_kind_time", "kind", "occurred_at"),
        Index("idx_movement_product_time", "product_id", "occurred_at"),
        Index("idx_movement_sale", "sale_id"),
    )

    lot_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("lots.id"),
        nullable=False,
    )

    # Denormalized from the lot for product-level history queries
    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )

    kind: Mapped[MovementKind] = mapped_column(
        String(20),
        nullable=False,
    )

    quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    origin_location: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )

    destination_location: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )

    counterpart_lot_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("lots.id"),
        nullable=True,
    )

    sale_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("sales.id"),
        nullable=True,
    )

    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    note: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    actor_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    def __repr__(self) -> str:
        return (
            f"<MovementEntry {self.id}: {self.kind} {self.quantity} "
            f"{self.origin_location or '-'} -> {self.destination_location or '-'}>"
        )
