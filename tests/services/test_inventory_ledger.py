"""
End-to-end tests for the InventoryLedger facade.

Each call runs in its own committed transaction, so these tests observe
exactly what a UI or report consumer would.

Covers:
- The reference scenarios (transfer 20 of 50, oversell, count adjustment)
- FIFO listing, expiry views and stock levels
- Sale retrieval and revenue figures
- Movement history filters
- Rollback of failed operations
- DTO shape (frozen, UTC timestamps) and log context
"""

import dataclasses
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from inventory_kernel.db.engine import build_engine, make_session_factory
from inventory_kernel.domain.clock import DeterministicClock
from inventory_kernel.domain.dtos import Direction, SaleLineRequest
from inventory_kernel.exceptions import (
    EmptySaleError,
    InsufficientStockError,
    InvalidDestinationError,
    InvalidSaleLineError,
    SaleNotFoundError,
)
from inventory_kernel.logging_config import LogContext
from inventory_kernel.models.movement import MovementKind
from inventory_kernel.services.inventory_ledger import InventoryLedger


class TestReferenceScenarios:
    """The three canonical flows."""

    def test_transfer_twenty_of_fifty(self, ledger, product_id):
        lot = ledger.create_lot(product_id, "backroom", date(2025, 3, 1), 50)

        result = ledger.transfer(lot.id, 20, "counter-1")

        assert result.source.quantity == 30
        assert result.destination.quantity == 20
        assert result.movement.kind == MovementKind.TRANSFER
        assert result.movement.direction is Direction.TRANSFER
        transfers = ledger.list_movements(kind=MovementKind.TRANSFER)
        assert len(transfers) == 1
        assert transfers[0].origin_location == "backroom"
        assert transfers[0].destination_location == "counter-1"
        assert ledger.product_total(product_id) == 50

    def test_oversell_records_nothing(self, ledger, product_id):
        lot = ledger.create_lot(product_id, "counter-1", date(2025, 3, 1), 20)

        with pytest.raises(InsufficientStockError):
            ledger.record_sale([SaleLineRequest(lot.id, 25, "4.50")], payment_method="cash")

        assert ledger.get_lot(lot.id).quantity == 20
        assert ledger.list_movements(kind=MovementKind.SALE) == []
        assert ledger.sales_total() == Decimal(0)

    def test_count_adjustment(self, ledger, product_id):
        lot = ledger.create_lot(product_id, "counter-1", date(2025, 3, 1), 30)

        entry = ledger.adjust_quantity(lot.id, 27)

        assert entry.kind == MovementKind.ADJUSTMENT
        assert entry.quantity == 3
        assert entry.direction is Direction.OUTBOUND
        assert entry.note.startswith("decrease")
        assert ledger.get_lot(lot.id).quantity == 27
        assert len(ledger.list_movements(kind=MovementKind.ADJUSTMENT)) == 1


class TestLotsAndStock:
    """Availability, stock levels and expiry."""

    def test_list_available_lots_fifo(self, ledger, product_id, clock):
        later = ledger.create_lot(product_id, "backroom", date(2025, 6, 1), 5)
        clock.tick()
        sooner = ledger.create_lot(product_id, "backroom", date(2025, 2, 1), 5)

        lots = ledger.list_available_lots(product_id, "backroom")
        assert [lot.id for lot in lots] == [sooner.id, later.id]

    def test_stock_by_location(self, ledger, make_product, product_id):
        other = make_product(name="Goat cheese")
        lot = ledger.create_lot(product_id, "backroom", date(2025, 3, 1), 50)
        ledger.transfer(lot.id, 20, "counter-1")
        ledger.create_lot(other, "counter-2", date(2025, 3, 1), 7)

        levels = {(s.product_id, s.location): s.quantity for s in ledger.stock_by_location()}
        assert levels == {
            (product_id, "backroom"): 30,
            (product_id, "counter-1"): 20,
            (other, "counter-2"): 7,
        }
        assert len(ledger.stock_by_location(product_id=other)) == 1

    def test_near_expiry_uses_clock_and_config(self, ledger, product_id):
        # clock date is 2024-01-01, window is 30 days
        soon = ledger.create_lot(product_id, "counter-1", date(2024, 1, 20), 3)
        ledger.create_lot(product_id, "counter-1", date(2024, 3, 1), 3)
        expired = ledger.create_lot(product_id, "counter-1", date(2023, 12, 25), 3)

        assert [lot.id for lot in ledger.near_expiry()] == [soon.id]
        assert [lot.id for lot in ledger.expired_lots()] == [expired.id]
        assert len(ledger.near_expiry(within_days=90)) == 2
        assert soon.days_until_expiry(date(2024, 1, 1)) == 19

    def test_exhausted_lot_still_retrievable(self, ledger, product_id):
        lot = ledger.create_lot(product_id, "counter-1", date(2025, 3, 1), 2)
        ledger.record_sale([{"lot_id": lot.id, "quantity": 2, "unit_price": "1.00"}], "cash")

        assert ledger.list_available_lots(product_id, "counter-1") == []
        assert ledger.get_lot(lot.id).is_exhausted


class TestSales:
    """Sale recording and retrieval."""

    def test_get_sale_round_trip(self, ledger, product_id):
        a = ledger.create_lot(product_id, "counter-1", date(2025, 3, 1), 10)
        b = ledger.create_lot(product_id, "counter-1", date(2025, 4, 1), 10)

        sale = ledger.record_sale(
            [
                SaleLineRequest(a.id, 2, Decimal("4.50")),
                {"lot_id": b.id, "quantity": 1, "unit_price": "3.25"},
            ],
            payment_method="card",
            customer_label="Walk-in",
        )
        fetched = ledger.get_sale(sale.id)

        assert fetched.id == sale.id
        assert fetched.total == Decimal("12.25")
        assert fetched.payment_method == "card"
        assert fetched.customer_label == "Walk-in"
        assert [line.lot_id for line in fetched.lines] == [a.id, b.id]
        assert fetched.item_count == 3
        assert sum(line.subtotal for line in fetched.lines) == fetched.total

    def test_get_missing_sale(self, ledger):
        with pytest.raises(SaleNotFoundError):
            ledger.get_sale(uuid4())

    def test_empty_sale_rejected(self, ledger):
        with pytest.raises(EmptySaleError):
            ledger.record_sale([], payment_method="cash")

    def test_mapping_line_missing_keys_rejected(self, ledger, product_id):
        lot = ledger.create_lot(product_id, "counter-1", date(2025, 3, 1), 10)

        with pytest.raises(InvalidSaleLineError) as exc_info:
            ledger.record_sale([{"lot_id": lot.id, "quantity": 1}], payment_method="cash")

        assert exc_info.value.missing == ("unit_price",)
        assert exc_info.value.code == "INVALID_SALE_LINE"
        assert ledger.get_lot(lot.id).quantity == 10

        with pytest.raises(InvalidSaleLineError) as exc_info:
            ledger.record_sale([{"unit_price": "2.00"}], payment_method="cash")
        assert exc_info.value.missing == ("lot_id", "quantity")

    def test_failed_line_rolls_back_whole_sale(self, ledger, product_id):
        a = ledger.create_lot(product_id, "counter-1", date(2025, 3, 1), 10)
        b = ledger.create_lot(product_id, "counter-1", date(2025, 4, 1), 1)

        with pytest.raises(InsufficientStockError):
            ledger.record_sale(
                [SaleLineRequest(a.id, 4, "1"), SaleLineRequest(b.id, 2, "1")],
                payment_method="cash",
            )

        assert ledger.get_lot(a.id).quantity == 10
        assert ledger.get_lot(b.id).quantity == 1
        assert ledger.sales_total() == Decimal(0)

    def test_revenue_by_payment_method(self, ledger, product_id):
        lot = ledger.create_lot(product_id, "counter-1", date(2025, 3, 1), 10)
        ledger.record_sale([SaleLineRequest(lot.id, 1, "2.50")], "cash")
        ledger.record_sale([SaleLineRequest(lot.id, 2, "2.50")], "card")
        ledger.record_sale([SaleLineRequest(lot.id, 1, "1.00")], "cash")

        assert ledger.sales_by_payment_method() == {
            "cash": Decimal("3.50"),
            "card": Decimal("5.00"),
        }
        assert ledger.sales_total() == Decimal("8.50")


class TestMovementHistory:
    """list_movements filters and ordering."""

    def test_newest_first(self, ledger, product_id, clock):
        lot = ledger.create_lot(product_id, "backroom", date(2025, 3, 1), 50)
        clock.advance(60)
        ledger.transfer(lot.id, 5, "counter-1")
        clock.advance(60)
        ledger.adjust_quantity(lot.id, 40)

        kinds = [m.kind for m in ledger.list_movements()]
        assert kinds == [MovementKind.ADJUSTMENT, MovementKind.TRANSFER, MovementKind.STOCK_IN]

    def test_filters(self, ledger, make_product, product_id, clock):
        other = make_product(name="Sourdough loaf")
        lot = ledger.create_lot(product_id, "backroom", date(2025, 3, 1), 50)
        ledger.create_lot(other, "counter-2", date(2025, 3, 1), 5)
        clock.advance_days(3)
        ledger.transfer(lot.id, 5, "counter-1")

        assert len(ledger.list_movements(product_id=product_id)) == 2
        assert len(ledger.list_movements(location="counter-1")) == 1
        assert len(ledger.list_movements(date_from=date(2024, 1, 2))) == 1
        assert len(ledger.list_movements(date_to=date(2024, 1, 1))) == 2
        assert len(ledger.list_movements(lot_id=lot.id)) == 2
        assert len(ledger.list_movements(limit=1)) == 1

    def test_movement_totals(self, ledger, product_id):
        lot = ledger.create_lot(product_id, "backroom", date(2025, 3, 1), 50)
        ledger.transfer(lot.id, 20, "counter-1")
        ledger.adjust_quantity(lot.id, 28)

        totals = ledger.movement_totals()
        assert totals[MovementKind.STOCK_IN] == 50
        assert totals[MovementKind.TRANSFER] == 20
        assert totals[MovementKind.ADJUSTMENT] == 2
        assert totals[MovementKind.SALE] == 0


class TestFacadeContract:
    """DTOs, rollback and context."""

    def test_results_are_frozen(self, ledger, product_id):
        lot = ledger.create_lot(product_id, "backroom", date(2025, 3, 1), 5)
        with pytest.raises(dataclasses.FrozenInstanceError):
            lot.quantity = 99

    def test_timestamps_are_utc(self, ledger, product_id, clock):
        ledger.create_lot(product_id, "backroom", date(2025, 3, 1), 5)
        entry = ledger.list_movements()[0]
        assert entry.occurred_at == clock.now()
        assert entry.occurred_at.tzinfo is not None
        assert entry.occurred_at.utcoffset() == timedelta(0)

    def test_zero_adjustment_returns_none(self, ledger, product_id):
        lot = ledger.create_lot(product_id, "backroom", date(2025, 3, 1), 5)
        assert ledger.adjust_quantity(lot.id, 5) is None
        assert len(ledger.list_movements()) == 1

    def test_failed_transfer_leaves_no_trace(self, ledger, product_id):
        lot = ledger.create_lot(product_id, "backroom", date(2025, 3, 1), 5)
        with pytest.raises(InvalidDestinationError):
            ledger.transfer(lot.id, 1, "backroom")
        assert ledger.get_lot(lot.id).version == 1
        assert len(ledger.list_movements()) == 1

    def test_actor_recorded(self, session_factory, settings, product_id, test_actor_id):
        acting = InventoryLedger(
            session_factory,
            settings,
            DeterministicClock(datetime(2024, 5, 1, 9, 0, tzinfo=UTC)),
            actor_id=test_actor_id,
        )
        lot = acting.create_lot(product_id, "backroom", date(2025, 3, 1), 5)
        acting.transfer(lot.id, 2, "counter-1")

        assert {m.actor_id for m in acting.list_movements()} == {test_actor_id}

    def test_operation_in_log_context(self, ledger, product_id, captured_logs):
        lot = ledger.create_lot(product_id, "backroom", date(2025, 3, 1), 5)
        ledger.transfer(lot.id, 2, "counter-1")

        records = [r for r in captured_logs() if r["message"] == "transfer_completed"]
        assert len(records) == 1
        assert records[0]["operation"] == "transfer"
        assert records[0]["lot_id"] == str(lot.id)
        assert records[0]["quantity"] == 2

    def test_missing_schema_is_not_reported_as_conflict(self, settings, clock, captured_logs):
        bare = build_engine("sqlite://")
        try:
            unmigrated = InventoryLedger(make_session_factory(bare), settings, clock)
            with pytest.raises(OperationalError, match="no such table"):
                unmigrated.create_lot(uuid4(), "backroom", date(2025, 3, 1), 5)
        finally:
            bare.dispose()

        messages = [r["message"] for r in captured_logs()]
        assert "transaction_retry" not in messages
        assert "transaction_conflict" not in messages

    def test_correlation_id_per_call(self, ledger, product_id, captured_logs):
        lot = ledger.create_lot(product_id, "backroom", date(2025, 3, 1), 5)
        ledger.transfer(lot.id, 2, "counter-1")

        records = captured_logs()
        created = {r["correlation_id"] for r in records if r["message"] == "lot_created"}
        moved = {
            r["correlation_id"]
            for r in records
            if r["message"] in ("transfer_completed", "movement_recorded")
            and r.get("operation") == "transfer"
        }
        assert len(created) == 1
        assert len(moved) == 1
        assert created != moved

    def test_caller_correlation_id_kept(self, ledger, product_id, captured_logs):
        with LogContext.bind(correlation_id="till-7-receipt-42"):
            ledger.create_lot(product_id, "backroom", date(2025, 3, 1), 5)

        created = [r for r in captured_logs() if r["message"] == "lot_created"]
        assert created[0]["correlation_id"] == "till-7-receipt-42"
