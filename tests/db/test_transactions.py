"""
Tests for run_in_transaction and optimistic lot versioning.

Covers:
- Commit on success, rollback on failure
- Retry of concurrent-modification errors with a bounded budget
- Domain errors and non-concurrency database errors are not retried
- A real stale lot version detected at flush
- Module-level engine, session_scope and session helpers
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from inventory_kernel.db.engine import (
    build_engine,
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    is_concurrency_failure,
    make_session_factory,
    reset_engine,
    run_in_transaction,
    session_scope,
)
from inventory_kernel.exceptions import ConflictError, InsufficientStockError
from inventory_kernel.models.lot import Lot
from inventory_kernel.models.product import Product
from inventory_kernel.services.lot_store import LotStore


def _product_count(session_factory):
    with session_factory() as s:
        return s.execute(select(func.count(Product.id))).scalar_one()


def _add_product(session):
    session.add(Product(name="Kefir 1L", base_price=Decimal("2.20")))
    session.flush()


class TestRunInTransaction:
    """Commit, rollback and retry behaviour."""

    def test_commits_and_returns(self, session_factory):
        def work(session):
            _add_product(session)
            return "done"

        assert run_in_transaction(work, session_factory=session_factory) == "done"
        assert _product_count(session_factory) == 1

    def test_domain_error_rolls_back_without_retry(self, session_factory):
        calls = []

        def work(session):
            calls.append(1)
            _add_product(session)
            raise InsufficientStockError("lot", requested=5, available=1)

        with pytest.raises(InsufficientStockError):
            run_in_transaction(work, session_factory=session_factory, backoff_seconds=0)

        assert len(calls) == 1
        assert _product_count(session_factory) == 0

    def test_retries_stale_data_then_succeeds(self, session_factory, captured_logs):
        calls = []

        def work(session):
            calls.append(1)
            if len(calls) < 3:
                _add_product(session)
                raise StaleDataError("version moved")
            return len(calls)

        result = run_in_transaction(
            work, session_factory=session_factory, max_attempts=5, backoff_seconds=0
        )

        assert result == 3
        assert _product_count(session_factory) == 0
        retries = [r for r in captured_logs() if r["message"] == "transaction_retry"]
        assert [r["attempt"] for r in retries] == [1, 2]

    def test_exhausted_budget_raises_conflict(self, session_factory, captured_logs):
        def work(session):
            raise StaleDataError("version moved")

        with pytest.raises(ConflictError) as exc_info:
            run_in_transaction(
                work,
                session_factory=session_factory,
                max_attempts=3,
                backoff_seconds=0,
                operation="record_sale",
            )

        assert exc_info.value.attempts == 3
        assert exc_info.value.operation == "record_sale"
        assert exc_info.value.code == "CONFLICT"
        assert isinstance(exc_info.value.__cause__, StaleDataError)
        conflicts = [r for r in captured_logs() if r["message"] == "transaction_conflict"]
        assert len(conflicts) == 1

    def test_rejects_zero_attempts(self, session_factory):
        with pytest.raises(ValueError):
            run_in_transaction(lambda s: None, session_factory=session_factory, max_attempts=0)

    def test_missing_table_propagates_without_retry(self, captured_logs):
        bare = build_engine("sqlite://")
        calls = []

        def work(session):
            calls.append(1)
            return session.execute(select(func.count(Product.id))).scalar_one()

        try:
            with pytest.raises(OperationalError, match="no such table"):
                run_in_transaction(
                    work,
                    session_factory=make_session_factory(bare),
                    max_attempts=5,
                    backoff_seconds=0,
                    operation="create_lot",
                )
        finally:
            bare.dispose()

        assert len(calls) == 1
        messages = [r["message"] for r in captured_logs()]
        assert "transaction_failed" in messages
        assert "transaction_retry" not in messages
        assert "transaction_conflict" not in messages

    def test_locked_database_is_retried(self, session_factory):
        calls = []

        def work(session):
            calls.append(1)
            if len(calls) == 1:
                raise OperationalError("UPDATE lots", {}, Exception("database is locked"))
            return "ok"

        assert run_in_transaction(work, session_factory=session_factory, backoff_seconds=0) == "ok"
        assert len(calls) == 2


class _PgError(Exception):
    def __init__(self, pgcode):
        super().__init__(f"pg error {pgcode}")
        self.pgcode = pgcode


class TestConcurrencyFailureClassification:
    """Only concurrent-writer failures count as retryable."""

    @pytest.mark.parametrize("pgcode", ["40P01", "40001", "55P03"])
    def test_postgres_lock_codes(self, pgcode):
        assert is_concurrency_failure(OperationalError("SELECT 1", {}, _PgError(pgcode)))

    @pytest.mark.parametrize("pgcode", ["08006", "42P01", None])
    def test_other_postgres_errors(self, pgcode):
        assert not is_concurrency_failure(OperationalError("SELECT 1", {}, _PgError(pgcode)))

    def test_sqlite_busy_and_deadlock_messages(self):
        assert is_concurrency_failure(OperationalError("x", {}, Exception("database is busy")))
        assert is_concurrency_failure(OperationalError("x", {}, Exception("deadlock detected")))

    def test_stale_data_and_domain_errors(self):
        assert is_concurrency_failure(StaleDataError("version moved"))
        assert not is_concurrency_failure(InsufficientStockError("lot", requested=1, available=0))
        assert not is_concurrency_failure(
            OperationalError("x", {}, Exception("disk I/O error"))
        )


class TestLotVersioning:
    """Lot.version guards against lost updates."""

    @pytest.fixture
    def lot_id(self, pooled_session_factory, settings, clock):
        with pooled_session_factory() as s:
            product = Product(name="Smoked trout", base_price=Decimal("6.00"))
            s.add(product)
            s.flush()
            lot = LotStore(s, settings, clock).create_lot(
                product.id, "counter-1", date(2025, 3, 1), 10
            )
            s.commit()
            return lot.id

    def test_version_increments_on_update(self, pooled_session_factory, lot_id):
        with pooled_session_factory() as s:
            lot = s.get(Lot, lot_id)
            assert lot.version == 1
            lot.quantity = 9
            s.commit()
            assert lot.version == 2

    def test_stale_write_detected(self, pooled_session_factory, lot_id):
        stale = pooled_session_factory()
        try:
            stale_lot = stale.get(Lot, lot_id)
            stale.commit()

            with pooled_session_factory() as fresh:
                fresh.get(Lot, lot_id).quantity = 4
                fresh.commit()

            stale_lot.quantity = 7
            with pytest.raises(StaleDataError):
                stale.flush()
            stale.rollback()
        finally:
            stale.close()

        with pooled_session_factory() as s:
            assert s.get(Lot, lot_id).quantity == 4


class TestModuleEngine:
    """Process-wide engine and session helpers."""

    @pytest.fixture
    def module_engine(self):
        reset_engine()
        engine = init_engine_from_url("sqlite://")
        create_tables()
        yield engine
        drop_tables()
        reset_engine()

    def test_uninitialized_raises(self):
        reset_engine()
        with pytest.raises(RuntimeError):
            get_engine()
        with pytest.raises(RuntimeError):
            get_session_factory()

    def test_session_scope_commits(self, module_engine):
        with session_scope() as s:
            _add_product(s)

        assert get_engine() is module_engine
        assert _product_count(get_session_factory()) == 1

    def test_session_scope_rolls_back(self, module_engine):
        with pytest.raises(InsufficientStockError):
            with session_scope() as s:
                _add_product(s)
                raise InsufficientStockError("lot", requested=2, available=0)

        assert _product_count(get_session_factory()) == 0

    def test_run_in_transaction_uses_module_factory(self, module_engine):
        run_in_transaction(_add_product)
        with get_session() as s:
            assert s.execute(select(func.count(Product.id))).scalar_one() == 1
