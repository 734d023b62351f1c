"""
Module: inventory_kernel.selectors.sale_selector
Responsibility: Read-only access to sales: single sale lookup with lines and
    the revenue figures (totals, by payment method, by day, best sellers).
Architecture position: Kernel > Selectors.

Failure modes:
    - SaleNotFoundError from get_sale(); aggregates return zero/empty.
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from inventory_kernel.domain.dtos import SaleInfo
from inventory_kernel.domain.values import as_utc
from inventory_kernel.exceptions import SaleNotFoundError
from inventory_kernel.models.sale import Sale, SaleLine
from inventory_kernel.selectors.base import BaseSelector, day_after, day_start


class SaleSelector(BaseSelector[Sale]):
    """Selector for sale queries."""

    def _in_range(self, stmt, date_from: date | None, date_to: date | None):
        if date_from is not None:
            stmt = stmt.where(Sale.occurred_at >= day_start(date_from))
        if date_to is not None:
            stmt = stmt.where(Sale.occurred_at < day_after(date_to))
        return stmt

    def get_sale(self, sale_id: UUID) -> SaleInfo:
        """
        Raises:
            SaleNotFoundError: If no sale has this id.
        """
        sale = self.session.execute(
            select(Sale).where(Sale.id == sale_id).options(selectinload(Sale.lines))
        ).scalar_one_or_none()
        if sale is None:
            raise SaleNotFoundError(str(sale_id))
        return SaleInfo.from_model(sale)

    def list_sales(
        self,
        date_from: date | None = None,
        date_to: date | None = None,
        payment_method: str | None = None,
    ) -> list[SaleInfo]:
        """Sales in the range, newest first."""
        stmt = self._in_range(select(Sale), date_from, date_to)
        if payment_method is not None:
            stmt = stmt.where(Sale.payment_method == payment_method)
        stmt = stmt.order_by(Sale.occurred_at.desc(), Sale.id.desc())
        return [SaleInfo.from_model(s) for s in self.session.execute(stmt).scalars()]

    def sales_total(self, date_from: date | None = None, date_to: date | None = None) -> Decimal:
        stmt = self._in_range(select(Sale.total), date_from, date_to)
        return sum((Decimal(t) for t in self.session.execute(stmt).scalars()), Decimal(0))

    def totals_by_payment_method(
        self,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> dict[str, Decimal]:
        """Revenue per payment method.  Summed in Python to keep Decimal exact."""
        stmt = self._in_range(select(Sale.payment_method, Sale.total), date_from, date_to)
        totals: dict[str, Decimal] = defaultdict(Decimal)
        for method, total in self.session.execute(stmt):
            totals[method] += Decimal(total)
        return dict(totals)

    def daily_totals(
        self,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> dict[date, Decimal]:
        """Revenue per UTC calendar day, in date order."""
        stmt = self._in_range(select(Sale.occurred_at, Sale.total), date_from, date_to)
        totals: dict[date, Decimal] = defaultdict(Decimal)
        for occurred_at, total in self.session.execute(stmt):
            totals[as_utc(occurred_at).date()] += Decimal(total)
        return dict(sorted(totals.items()))

    def units_sold_by_product(
        self,
        date_from: date | None = None,
        date_to: date | None = None,
        limit: int | None = None,
    ) -> list[tuple[UUID, int]]:
        """(product_id, units) pairs, best sellers first."""
        units = func.sum(SaleLine.quantity)
        stmt = self._in_range(
            select(SaleLine.product_id, units.label("units")).join(Sale, Sale.id == SaleLine.sale_id),
            date_from,
            date_to,
        ).group_by(SaleLine.product_id).order_by(units.desc(), SaleLine.product_id)
        if limit is not None:
            stmt = stmt.limit(limit)
        return [(row.product_id, int(row.units)) for row in self.session.execute(stmt)]
