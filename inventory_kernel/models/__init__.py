"""ORM models for the inventory kernel."""

from inventory_kernel.models.lot import Lot
from inventory_kernel.models.movement import MovementEntry, MovementKind
from inventory_kernel.models.product import Product
from inventory_kernel.models.sale import Sale, SaleLine

__all__ = [
    "Lot",
    "MovementEntry",
    "MovementKind",
    "Product",
    "Sale",
    "SaleLine",
]
