"""
Tests for MovementLedger and ledger immutability.

Covers:
- Direction convention per kind
- Magnitude validation
- Timestamps from the injected clock
- Append-only enforcement for entries, sales and sale lines
"""

from datetime import date
from decimal import Decimal

import pytest

from inventory_kernel.db.immutability import (
    listeners_registered,
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from inventory_kernel.domain.dtos import SaleLineRequest
from inventory_kernel.exceptions import ImmutabilityViolationError, InvalidQuantityError
from inventory_kernel.models.movement import MovementKind
from inventory_kernel.services.lot_store import LotStore
from inventory_kernel.services.movement_ledger import MovementLedger
from inventory_kernel.services.sale_service import SaleService


@pytest.fixture
def ledger_service(session, clock):
    return MovementLedger(session, clock)


@pytest.fixture
def lot(session, settings, clock, product):
    return LotStore(session, settings, clock).create_lot(product.id, "backroom", date(2025, 3, 1), 10)


class TestAppend:
    """MovementLedger.append."""

    def test_stamps_clock_time(self, ledger_service, lot, clock):
        clock.advance(3600)
        entry = ledger_service.append(lot, MovementKind.ADJUSTMENT, 1, destination="backroom")
        assert entry.occurred_at == clock.now()

    def test_copies_product_from_lot(self, ledger_service, lot):
        entry = ledger_service.append(lot, MovementKind.SALE, 1, origin="backroom")
        assert entry.product_id == lot.product_id
        assert entry.lot_id == lot.id

    @pytest.mark.parametrize("quantity", [0, -5])
    def test_rejects_non_positive_magnitude(self, ledger_service, lot, quantity):
        with pytest.raises(InvalidQuantityError):
            ledger_service.append(lot, MovementKind.SALE, quantity, origin="backroom")

    @pytest.mark.parametrize(
        "kind, origin, destination",
        [
            (MovementKind.STOCK_IN, "backroom", None),
            (MovementKind.STOCK_IN, None, None),
            (MovementKind.SALE, None, "counter-1"),
            (MovementKind.TRANSFER, "backroom", None),
            (MovementKind.TRANSFER, "backroom", "backroom"),
            (MovementKind.ADJUSTMENT, "backroom", "counter-1"),
            (MovementKind.ADJUSTMENT, None, None),
        ],
    )
    def test_rejects_wrong_direction(self, ledger_service, lot, kind, origin, destination):
        with pytest.raises(ValueError):
            ledger_service.append(lot, kind, 1, origin=origin, destination=destination)


class TestLedgerImmutability:
    """Append-only enforcement."""

    def test_listeners_registered(self):
        register_immutability_listeners()
        assert listeners_registered()

    def test_entry_update_blocked(self, session, ledger_service, lot, captured_logs):
        entry = ledger_service.append(lot, MovementKind.SALE, 1, origin="backroom")
        entry.note = "rewritten"

        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()

        assert exc_info.value.entity_type == "MovementEntry"
        blocked = [r for r in captured_logs() if r["message"] == "immutability_violation_blocked"]
        assert blocked[0]["invariant"] == "ledger_immutability"
        assert blocked[0]["db_operation"] == "UPDATE"

    def test_entry_delete_blocked(self, session, ledger_service, lot):
        entry = ledger_service.append(lot, MovementKind.SALE, 1, origin="backroom")
        session.delete(entry)

        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_sale_update_blocked(self, session, settings, clock, lot):
        sale = SaleService(session, settings, clock).record_sale(
            [SaleLineRequest(lot.id, 1, Decimal("2.00"))], payment_method="cash"
        )

        sale.total = Decimal("0.01")
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "Sale"

    def test_sale_line_update_blocked(self, session, settings, clock, lot):
        sale = SaleService(session, settings, clock).record_sale(
            [SaleLineRequest(lot.id, 1, Decimal("2.00"))], payment_method="cash"
        )

        sale.lines[0].quantity = 5
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "SaleLine"

    def test_unregister_allows_update(self, session, ledger_service, lot):
        entry = ledger_service.append(lot, MovementKind.SALE, 1, origin="backroom")
        unregister_immutability_listeners()
        try:
            assert not listeners_registered()
            entry.note = "test-only edit"
            session.flush()
        finally:
            register_immutability_listeners()
        assert listeners_registered()
