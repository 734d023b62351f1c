"""Read-only selectors returning DTOs."""

from inventory_kernel.selectors.base import BaseSelector
from inventory_kernel.selectors.lot_selector import LotSelector
from inventory_kernel.selectors.movement_selector import MovementSelector
from inventory_kernel.selectors.sale_selector import SaleSelector

__all__ = [
    "BaseSelector",
    "LotSelector",
    "MovementSelector",
    "SaleSelector",
]
