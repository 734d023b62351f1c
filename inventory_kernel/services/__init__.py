"""Write-side services and the InventoryLedger facade."""

from inventory_kernel.services.adjustment_service import AdjustmentService
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.inventory_ledger import InventoryLedger
from inventory_kernel.services.lot_store import LotStore
from inventory_kernel.services.movement_ledger import MovementLedger
from inventory_kernel.services.sale_service import SaleService
from inventory_kernel.services.transfer_service import TransferService

__all__ = [
    "AdjustmentService",
    "BaseService",
    "InventoryLedger",
    "LotStore",
    "MovementLedger",
    "SaleService",
    "TransferService",
]
