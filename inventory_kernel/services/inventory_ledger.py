"""
InventoryLedger -- the engine's public operation surface.

Responsibility:
    Runs each operation in its own transaction (run_in_transaction), wires
    the services and selectors to that transaction's session, and converts
    results to frozen DTOs before the session closes.

Architecture position:
    Kernel > Services -- the outermost kernel component.  UIs, report
    generators and CLIs consume this class; nothing inside the kernel
    depends on it.

Invariants enforced:
    - One transaction per mutating call: read, validate, write, append.
      A domain error rolls back everything the call did.
    - Bounded retry on concurrent modification (settings.max_attempts),
      then ConflictError.
    - Append-only listeners are registered before the first write.
    - ORM instances never escape; every return value is a DTO.

Failure modes:
    Every InventoryKernelError subclass raised by the services propagates
    unchanged after rollback.  ConflictError when retries run out.
"""

from collections.abc import Callable, Iterable, Mapping
from datetime import date
from decimal import Decimal
from typing import TypeVar
from uuid import UUID, uuid4

from sqlalchemy.orm import Session, sessionmaker

from inventory_kernel.db.engine import run_in_transaction
from inventory_kernel.db.immutability import register_immutability_listeners
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.dtos import (
    LotInfo,
    MovementInfo,
    SaleInfo,
    SaleLineRequest,
    StockLevel,
    TransferResult,
)
from inventory_kernel.domain.settings import LedgerSettings
from inventory_kernel.exceptions import InvalidSaleLineError
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.models.movement import MovementKind
from inventory_kernel.selectors.lot_selector import LotSelector
from inventory_kernel.selectors.movement_selector import MovementSelector
from inventory_kernel.selectors.sale_selector import SaleSelector
from inventory_kernel.services.adjustment_service import AdjustmentService
from inventory_kernel.services.lot_store import LotStore
from inventory_kernel.services.sale_service import SaleService
from inventory_kernel.services.transfer_service import TransferService

logger = get_logger("services.inventory_ledger")

T = TypeVar("T")

SaleLineInput = SaleLineRequest | Mapping

_LINE_KEYS = ("lot_id", "quantity", "unit_price")


def _as_line_request(line: SaleLineInput) -> SaleLineRequest:
    if isinstance(line, SaleLineRequest):
        return line
    missing = tuple(key for key in _LINE_KEYS if key not in line)
    if missing:
        raise InvalidSaleLineError(missing)
    return SaleLineRequest(
        lot_id=line["lot_id"],
        quantity=line["quantity"],
        unit_price=line["unit_price"],
    )


class InventoryLedger:
    """
    Transactional facade over the inventory kernel.

    Usage:
        ledger = InventoryLedger(session_factory, settings, clock)
        lot = ledger.create_lot(product_id, "backroom", date(2025, 3, 1), 50)
        ledger.transfer(lot.id, 20, "counter-1")
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        settings: LedgerSettings | None = None,
        clock: Clock | None = None,
        actor_id: UUID | None = None,
    ):
        self._session_factory = session_factory
        self.settings = settings or LedgerSettings()
        self.clock = clock or SystemClock()
        self.actor_id = actor_id
        register_immutability_listeners()

    def _run(self, operation: str, work: Callable[[Session], T]) -> T:
        actor = str(self.actor_id) if self.actor_id else None
        # A caller-supplied correlation id wins over a fresh one per call.
        correlation = None if "correlation_id" in LogContext.get_all() else uuid4().hex
        with LogContext.bind(correlation_id=correlation, operation=operation, actor_id=actor):
            return run_in_transaction(
                work,
                session_factory=self._session_factory,
                max_attempts=self.settings.max_attempts,
                backoff_seconds=self.settings.retry_backoff_seconds,
                operation=operation,
            )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_lot(
        self,
        product_id: UUID,
        location: str,
        expiry_date: date,
        quantity: int,
        note: str | None = None,
    ) -> LotInfo:
        """
        Stock a new lot.

        Raises:
            InvalidQuantityError, UnknownLocationError, ProductNotFoundError,
            ProductInactiveError.
        """

        def work(session: Session) -> LotInfo:
            store = LotStore(session, self.settings, self.clock)
            lot = store.create_lot(
                product_id, location, expiry_date, quantity, note=note, actor_id=self.actor_id
            )
            return LotInfo.from_model(lot)

        return self._run("create_lot", work)

    def transfer(
        self,
        lot_id: UUID,
        quantity: int,
        destination: str,
        note: str | None = None,
    ) -> TransferResult:
        """
        Move stock from a lot to another location.

        Raises:
            InvalidQuantityError, UnknownLocationError, InvalidDestinationError,
            LotNotFoundError, InsufficientStockError, ConflictError.
        """

        def work(session: Session) -> TransferResult:
            service = TransferService(session, self.settings, self.clock)
            with LogContext.bind(lot_id=str(lot_id)):
                outcome = service.transfer(
                    lot_id, quantity, destination, note=note, actor_id=self.actor_id
                )
            return TransferResult(
                source=LotInfo.from_model(outcome.source),
                destination=LotInfo.from_model(outcome.destination),
                movement=MovementInfo.from_model(outcome.entry),
            )

        return self._run("transfer", work)

    def record_sale(
        self,
        lines: Iterable[SaleLineInput],
        payment_method: str,
        customer_label: str | None = None,
    ) -> SaleInfo:
        """
        Record a sale drawing on the given lots.

        Each line is a SaleLineRequest or a mapping with ``lot_id``,
        ``quantity`` and ``unit_price`` keys.

        Raises:
            EmptySaleError, InvalidSaleLineError, InvalidQuantityError, InvalidPriceError,
            InvalidPaymentMethodError, LotNotFoundError,
            InsufficientStockError, ConflictError.
        """
        requests = [_as_line_request(line) for line in lines]

        def work(session: Session) -> SaleInfo:
            service = SaleService(session, self.settings, self.clock)
            sale = service.record_sale(
                requests, payment_method, customer_label=customer_label, actor_id=self.actor_id
            )
            return SaleInfo.from_model(sale)

        return self._run("record_sale", work)

    def adjust_quantity(
        self,
        lot_id: UUID,
        new_quantity: int,
        reason: str | None = None,
    ) -> MovementInfo | None:
        """
        Reconcile a lot to a counted quantity.

        Returns:
            The adjustment entry, or None if the lot already had that quantity.

        Raises:
            InvalidQuantityError, LotNotFoundError, ConflictError.
        """

        def work(session: Session) -> MovementInfo | None:
            service = AdjustmentService(session, self.settings, self.clock)
            with LogContext.bind(lot_id=str(lot_id)):
                entry = service.adjust_quantity(
                    lot_id, new_quantity, reason=reason, actor_id=self.actor_id
                )
            return MovementInfo.from_model(entry) if entry is not None else None

        return self._run("adjust_quantity", work)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_available_lots(self, product_id: UUID, location: str) -> list[LotInfo]:
        """Lots with stock, soonest expiry first."""
        return self._run(
            "list_available_lots",
            lambda s: LotSelector(s).find_available(product_id, location),
        )

    def get_lot(self, lot_id: UUID) -> LotInfo:
        return self._run("get_lot", lambda s: LotSelector(s).get_lot(lot_id))

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
        """Ledger history, newest first."""
        return self._run(
            "list_movements",
            lambda s: MovementSelector(s).list_movements(
                kind=kind,
                product_id=product_id,
                date_from=date_from,
                date_to=date_to,
                location=location,
                lot_id=lot_id,
                limit=limit,
            ),
        )

    def movement_totals(
        self,
        product_id: UUID | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> dict[MovementKind, int]:
        return self._run(
            "movement_totals",
            lambda s: MovementSelector(s).totals_by_kind(product_id, date_from, date_to),
        )

    def stock_by_location(
        self,
        product_id: UUID | None = None,
        active_only: bool = True,
    ) -> list[StockLevel]:
        return self._run(
            "stock_by_location",
            lambda s: LotSelector(s).stock_by_location(product_id, active_only),
        )

    def product_total(self, product_id: UUID) -> int:
        return self._run("product_total", lambda s: LotSelector(s).product_total(product_id))

    def near_expiry(
        self,
        as_of: date | None = None,
        within_days: int | None = None,
        location: str | None = None,
    ) -> list[LotInfo]:
        """
        Lots with stock expiring soon.

        Defaults to the clock's current date and the configured
        near_expiry_days window.
        """
        day = as_of or self.clock.today()
        window = self.settings.near_expiry_days if within_days is None else within_days
        return self._run(
            "near_expiry",
            lambda s: LotSelector(s).near_expiry(day, window, location),
        )

    def expired_lots(self, as_of: date | None = None, location: str | None = None) -> list[LotInfo]:
        day = as_of or self.clock.today()
        return self._run("expired_lots", lambda s: LotSelector(s).expired(day, location))

    def get_sale(self, sale_id: UUID) -> SaleInfo:
        """
        Raises:
            SaleNotFoundError: If no sale has this id.
        """
        return self._run("get_sale", lambda s: SaleSelector(s).get_sale(sale_id))

    def sales_by_payment_method(
        self,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> dict[str, Decimal]:
        return self._run(
            "sales_by_payment_method",
            lambda s: SaleSelector(s).totals_by_payment_method(date_from, date_to),
        )

    def sales_total(self, date_from: date | None = None, date_to: date | None = None) -> Decimal:
        return self._run("sales_total", lambda s: SaleSelector(s).sales_total(date_from, date_to))
