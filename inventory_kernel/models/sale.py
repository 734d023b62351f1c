"""
Module: inventory_kernel.models.sale
Responsibility: ORM persistence for sales and their lines.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    SALE_ATOMICITY -- a sale, all of its lines, their lot decrements and their
        ledger entries are written in one transaction (SaleService).
    SALE_TOTAL -- total == sum(line.subtotal); each subtotal is
        quantity * unit_price rounded half-up to the configured currency
        places.
    Immutability -- sales and lines are never updated or deleted once
        flushed (db/immutability.py).
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_kernel.db.base import Base, UUIDString


class Sale(Base):
    """A completed sale at a counter."""

    __tablename__ = "sales"

    __table_args__ = (
        CheckConstraint("total >= 0", name="ck_sale_total_non_negative"),
        Index("idx_sale_time", "occurred_at"),
        Index("idx_sale_payment_method", "payment_method"),
    )

    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    total: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
    )

    payment_method: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
    )

    # Free-text customer reference; customer records are out of scope
    customer_label: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    actor_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    lines: Mapped[list["SaleLine"]] = relationship(
        back_populates="sale",
        order_by="SaleLine.line_seq",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Sale {self.id}: {self.total} via {self.payment_method}>"


class SaleLine(Base):
    """One lot drawn down by a sale."""

    __tablename__ = "sale_lines"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_sale_line_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="ck_sale_line_price_non_negative"),
        Index("idx_sale_line_sale", "sale_id"),
        Index("idx_sale_line_lot", "lot_id"),
    )

    sale_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("sales.id"),
        nullable=False,
    )

    line_seq: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    lot_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("lots.id"),
        nullable=False,
    )

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )

    quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    unit_price: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
    )

    subtotal: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
    )

    sale: Mapped[Sale] = relationship(back_populates="lines")

    def __repr__(self) -> str:
        return f"<SaleLine {self.line_seq} of {self.sale_id}: {self.quantity} x {self.unit_price}>"
