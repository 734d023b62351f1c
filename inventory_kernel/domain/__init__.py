"""Pure domain layer: clock, value helpers, settings and DTOs."""

from inventory_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from inventory_kernel.domain.dtos import (
    Direction,
    LotInfo,
    MovementInfo,
    SaleInfo,
    SaleLineInfo,
    SaleLineRequest,
    StockLevel,
    TransferResult,
)
from inventory_kernel.domain.settings import LedgerSettings

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "Direction",
    "LotInfo",
    "MovementInfo",
    "SaleInfo",
    "SaleLineInfo",
    "SaleLineRequest",
    "StockLevel",
    "TransferResult",
    "LedgerSettings",
]
