"""
DTOs -- Immutable data transfer objects for the engine's public surface.

Responsibility:
    Defines the frozen structures that cross the engine boundary: requests
    (SaleLineRequest) and results (LotInfo, MovementInfo, SaleInfo,
    TransferResult, StockLevel).

Architecture position:
    Kernel > Domain -- pure, zero I/O.  from_model() class methods are the
    boundary converters and are only invoked while the owning session is
    still open (services and selectors).

Invariants enforced:
    - ORM instances never leave the engine; every facade method returns
      one of these types.
    - Timestamps are UTC-aware regardless of backend.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from inventory_kernel.domain.values import as_utc
from inventory_kernel.models.movement import MovementKind

if TYPE_CHECKING:
    from inventory_kernel.models.lot import Lot
    from inventory_kernel.models.movement import MovementEntry
    from inventory_kernel.models.sale import Sale, SaleLine


class Direction(str, Enum):
    """Which way a movement entry moved stock relative to its lot."""

    INBOUND = "inbound"
    OUTBOUND = "outbound"
    TRANSFER = "transfer"


@dataclass(frozen=True)
class LotInfo:
    """Snapshot of a lot at the end of an operation or query."""

    id: UUID
    product_id: UUID
    location: str
    expiry_date: date
    quantity: int
    lot_number: str
    received_at: datetime
    version: int

    @classmethod
    def from_model(cls, model: Lot) -> LotInfo:
        return cls(
            id=model.id,
            product_id=model.product_id,
            location=model.location,
            expiry_date=model.expiry_date,
            quantity=model.quantity,
            lot_number=model.lot_number,
            received_at=as_utc(model.received_at),
            version=model.version,
        )

    @property
    def is_exhausted(self) -> bool:
        return self.quantity == 0

    def days_until_expiry(self, as_of: date) -> int:
        """Days from ``as_of`` to expiry; negative once expired."""
        return (self.expiry_date - as_of).days


@dataclass(frozen=True)
class MovementInfo:
    """One ledger entry."""

    id: UUID
    lot_id: UUID
    product_id: UUID
    kind: MovementKind
    quantity: int
    origin_location: str | None
    destination_location: str | None
    occurred_at: datetime
    note: str | None = None
    counterpart_lot_id: UUID | None = None
    sale_id: UUID | None = None
    actor_id: UUID | None = None

    @classmethod
    def from_model(cls, model: MovementEntry) -> MovementInfo:
        return cls(
            id=model.id,
            lot_id=model.lot_id,
            product_id=model.product_id,
            kind=MovementKind(model.kind),
            quantity=model.quantity,
            origin_location=model.origin_location,
            destination_location=model.destination_location,
            occurred_at=as_utc(model.occurred_at),
            note=model.note,
            counterpart_lot_id=model.counterpart_lot_id,
            sale_id=model.sale_id,
            actor_id=model.actor_id,
        )

    @property
    def direction(self) -> Direction:
        if self.origin_location and self.destination_location:
            return Direction.TRANSFER
        if self.destination_location:
            return Direction.INBOUND
        return Direction.OUTBOUND

    @property
    def signed_quantity(self) -> int:
        """
        Effect of this entry on its own lot's quantity.

        A transfer entry references the source lot, so it counts as
        outbound there.
        """
        if self.direction is Direction.INBOUND:
            return self.quantity
        return -self.quantity


@dataclass(frozen=True)
class SaleLineRequest:
    """One requested line of a sale."""

    lot_id: UUID
    quantity: int
    unit_price: Decimal | str | int


@dataclass(frozen=True)
class SaleLineInfo:
    line_seq: int
    lot_id: UUID
    product_id: UUID
    quantity: int
    unit_price: Decimal
    subtotal: Decimal

    @classmethod
    def from_model(cls, model: SaleLine) -> SaleLineInfo:
        return cls(
            line_seq=model.line_seq,
            lot_id=model.lot_id,
            product_id=model.product_id,
            quantity=model.quantity,
            unit_price=Decimal(model.unit_price),
            subtotal=Decimal(model.subtotal),
        )


@dataclass(frozen=True)
class SaleInfo:
    """A recorded sale with its lines in request order."""

    id: UUID
    occurred_at: datetime
    total: Decimal
    payment_method: str
    customer_label: str | None
    lines: tuple[SaleLineInfo, ...]

    @classmethod
    def from_model(cls, model: Sale) -> SaleInfo:
        return cls(
            id=model.id,
            occurred_at=as_utc(model.occurred_at),
            total=Decimal(model.total),
            payment_method=model.payment_method,
            customer_label=model.customer_label,
            lines=tuple(SaleLineInfo.from_model(line) for line in model.lines),
        )

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)


@dataclass(frozen=True)
class TransferResult:
    """Source and destination lots after a transfer, plus its ledger entry."""

    source: LotInfo
    destination: LotInfo
    movement: MovementInfo


@dataclass(frozen=True)
class StockLevel:
    """Quantity on hand for one product at one location."""

    product_id: UUID
    location: str
    quantity: int
