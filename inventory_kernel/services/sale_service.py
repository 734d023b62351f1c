"""
SaleService -- record a multi-line sale atomically.

Responsibility:
    Validates a sale request, locks every referenced lot, decrements them,
    writes the Sale header and its lines, and appends one sale entry per
    line.

Architecture position:
    Kernel > Services.

Invariants enforced:
    SALE_ATOMICITY -- every check (shape, prices, payment method, lot
        existence, aggregated sufficiency) completes before the first write;
        the caller's transaction covers the rest.
    SALE_TOTAL -- total is the sum of per-line subtotals, each quantized
        half-up to the configured currency places.
    NON_NEGATIVE_STOCK -- lines drawing on the same lot are summed before
        the sufficiency check.
    Lock ordering -- lots are locked in ascending id order.

Failure modes:
    - EmptySaleError, InvalidQuantityError, InvalidPriceError,
      InvalidPaymentMethodError, LotNotFoundError, InsufficientStockError.

Non-goals:
    - FIFO is not enforced; the caller's lot choice is trusted.
"""

from collections import Counter
from collections.abc import Sequence
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.dtos import SaleLineRequest
from inventory_kernel.domain.settings import LedgerSettings
from inventory_kernel.domain.values import line_subtotal, require_positive_quantity, require_price
from inventory_kernel.exceptions import (
    EmptySaleError,
    InsufficientStockError,
    InvalidPaymentMethodError,
)
from inventory_kernel.invariants import KernelInvariant
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.models.movement import MovementKind
from inventory_kernel.models.sale import Sale, SaleLine
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.lot_store import LotStore
from inventory_kernel.services.movement_ledger import MovementLedger

logger = get_logger("services.sale")


class SaleService(BaseService[Sale]):
    def __init__(
        self,
        session: Session,
        settings: LedgerSettings | None = None,
        clock: Clock | None = None,
    ):
        super().__init__(session)
        self._settings = settings or LedgerSettings()
        self._clock = clock or SystemClock()
        self._ledger = MovementLedger(session, self._clock)
        self._lots = LotStore(session, self._settings, self._clock, self._ledger)

    def _validate_request(
        self,
        lines: Sequence[SaleLineRequest],
        payment_method: str,
    ) -> list[tuple[SaleLineRequest, Decimal]]:
        if not lines:
            raise EmptySaleError()
        if not self._settings.accepts_payment_method(payment_method):
            raise InvalidPaymentMethodError(payment_method, self._settings.payment_methods)
        priced = []
        for line in lines:
            require_positive_quantity(line.quantity)
            priced.append((line, require_price(line.unit_price)))
        return priced

    def record_sale(
        self,
        lines: Sequence[SaleLineRequest],
        payment_method: str,
        customer_label: str | None = None,
        actor_id: UUID | None = None,
    ) -> Sale:
        """
        Persist a sale and consume stock from the named lots.

        Returns:
            The flushed Sale with its lines in request order.

        Raises:
            EmptySaleError: No lines.
            InvalidQuantityError: A line quantity is not a positive integer.
            InvalidPriceError: A unit price is negative or not a number.
            InvalidPaymentMethodError: Method not in the configured list.
            LotNotFoundError: A referenced lot does not exist.
            InsufficientStockError: A lot cannot cover the summed quantity
                of the lines that reference it.
        """
        priced = self._validate_request(lines, payment_method)

        requested = Counter()
        for line, _ in priced:
            requested[line.lot_id] += line.quantity

        locked = self._lots.lock_lots(requested)
        for lot_id, total_qty in requested.items():
            lot = locked[lot_id]
            if total_qty > lot.quantity:
                raise InsufficientStockError(str(lot_id), requested=total_qty, available=lot.quantity)

        # Validation complete; writes start here.
        places = self._settings.currency_places
        sale = Sale(
            occurred_at=self._clock.now(),
            total=Decimal(0),
            payment_method=payment_method,
            customer_label=customer_label,
            actor_id=actor_id,
        )
        subtotals = []
        for seq, (line, price) in enumerate(priced, start=1):
            lot = locked[line.lot_id]
            subtotal = line_subtotal(line.quantity, price, places)
            subtotals.append(subtotal)
            sale.lines.append(
                SaleLine(
                    line_seq=seq,
                    lot_id=lot.id,
                    product_id=lot.product_id,
                    quantity=line.quantity,
                    unit_price=price,
                    subtotal=subtotal,
                )
            )
        # INVARIANT: SALE_TOTAL
        sale.total = sum(subtotals, Decimal(0))
        self.session.add(sale)
        self.session.flush()

        with LogContext.bind(sale_id=str(sale.id)):
            for line, _ in priced:
                lot = locked[line.lot_id]
                origin = lot.location
                self._lots.set_quantity(lot, lot.quantity - line.quantity)
                self._ledger.append(
                    lot,
                    MovementKind.SALE,
                    line.quantity,
                    origin=origin,
                    note=f"sale {sale.id}",
                    sale_id=sale.id,
                    actor_id=actor_id,
                )

            logger.info(
                "sale_recorded",
                extra={
                    "invariant": KernelInvariant.SALE_ATOMICITY.value,
                    "line_count": len(priced),
                    "lot_count": len(requested),
                    "total": sale.total,
                    "payment_method": payment_method,
                },
            )
        return sale
