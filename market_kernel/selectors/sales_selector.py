"""
Module: market_kernel.selectors.sales_selector
Responsibility: Read-only access to raw sale rows, orders and day summaries.
Architecture position: Kernel > Selectors.
"""

from collections import OrderedDict
from uuid import UUID

from sqlalchemy import select

from market_kernel.domain.dtos import DaySummaryInfo, OrderRecord, SaleRecord
from market_kernel.models.day_summary import DaySummary
from market_kernel.models.sale import Sale
from market_kernel.selectors.base import BaseSelector


class SalesSelector(BaseSelector[Sale]):
    """Sales ledger queries returning frozen DTOs."""

    def list_sales(self, event_id: UUID, day_number: int | None = None) -> list[SaleRecord]:
        """Sale lines in the order they were rung up."""
        stmt = select(Sale).where(Sale.event_id == event_id)
        if day_number is not None:
            stmt = stmt.where(Sale.day_number == day_number)
        stmt = stmt.order_by(Sale.sold_at, Sale.created_at, Sale.order_id, Sale.event_item_id)
        return [SaleRecord.from_model(s) for s in self.session.execute(stmt).scalars()]

    def order_history(self, event_id: UUID, day_number: int | None = None) -> list[OrderRecord]:
        """Sales grouped by order, newest order first."""
        grouped: OrderedDict[UUID, list[SaleRecord]] = OrderedDict()
        for sale in self.list_sales(event_id, day_number):
            grouped.setdefault(sale.order_id, []).append(sale)

        orders = [self._to_order(lines) for lines in grouped.values()]
        orders.reverse()
        return orders

    def get_order(self, order_id: UUID) -> OrderRecord | None:
        sales = self.session.execute(
            select(Sale).where(Sale.order_id == order_id).order_by(Sale.event_item_id)
        ).scalars()
        lines = [SaleRecord.from_model(s) for s in sales]
        return self._to_order(lines) if lines else None

    def day_summaries(self, event_id: UUID) -> list[DaySummaryInfo]:
        summaries = self.session.execute(
            select(DaySummary)
            .where(DaySummary.event_id == event_id)
            .order_by(DaySummary.day_number)
        ).scalars()
        return [DaySummaryInfo.from_model(s) for s in summaries]

    @staticmethod
    def _to_order(lines: list[SaleRecord]) -> OrderRecord:
        first = lines[0]
        return OrderRecord(
            order_id=first.order_id,
            sold_at=first.sold_at,
            day_number=first.day_number,
            lines=tuple(lines),
            terminal_id=first.terminal_id,
        )
