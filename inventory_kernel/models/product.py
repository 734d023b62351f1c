"""
Module: inventory_kernel.models.product
Responsibility: ORM persistence for catalog products.  The catalog
    collaborator owns these rows; the ledger engine only reads them to
    validate lot references and to offer a default price.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - base_price is a Decimal (Numeric(38, 9)), never a float.
    - Deactivated products (is_active=False) keep their lots and history but
      cannot receive new stock (checked by LotStore).
"""

from decimal import Decimal

from sqlalchemy import Boolean, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TrackedBase


class Product(TrackedBase):
    """
    A sellable product tracked in lots.

    Non-goals:
        - No quantity lives here; stock is the sum of the product's lots.
        - Name/category/price maintenance is the catalog's job.
    """

    __tablename__ = "products"

    __table_args__ = (
        Index("idx_product_active", "is_active"),
        Index("idx_product_name", "name"),
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # Packaging type in the original catalog (jar, bottle, box, ...)
    category: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    base_price: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
        default=Decimal("0"),
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    def __repr__(self) -> str:
        return f"<Product {self.id}: {self.name!r} active={self.is_active}>"
