"""
Module: market_kernel.selectors.metrics_selector
Responsibility: Real-time and historical event metrics derived from the
    sales ledger and the day summaries.
Architecture position: Kernel > Selectors.  Read-only.

Invariants enforced:
    - Deterministic: the same ledger always yields the same numbers, and
      rankings break ties by item name then id.
    - Zero-safe: every ratio returns 0 instead of dividing by zero.
    - No drift: ``event_to_date()`` (summaries + live day) equals
      ``ledger_totals()`` (full scan) for revenue, items and orders.

Failure modes:
    - EventNotFoundError for an unknown event.
    - ValueError for an unknown ``rank_by``.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import distinct, func, select

from market_kernel.db.types import ZERO, percentage, round_money, safe_ratio
from market_kernel.exceptions import EventNotFoundError
from market_kernel.models.day_summary import DaySummary
from market_kernel.models.event import MarketEvent
from market_kernel.models.item import EventItem
from market_kernel.models.sale import Sale
from market_kernel.selectors.base import BaseSelector

RANK_BY_QUANTITY = "quantity"
RANK_BY_REVENUE = "revenue"


def _money(value) -> Decimal:
    if value is None:
        return ZERO
    return round_money(Decimal(str(value)))


@dataclass(frozen=True)
class LedgerTotals:
    revenue: Decimal
    items_sold: int
    order_count: int
    cogs: Decimal


@dataclass(frozen=True)
class DayMetrics:
    """Metrics of the open day; all zero when no day is open."""

    day_number: int
    is_open: bool
    revenue: Decimal
    items_sold: int
    order_count: int
    cogs: Decimal
    opened_at: datetime | None = None

    @property
    def average_order_value(self) -> Decimal:
        return safe_ratio(self.revenue, self.order_count)

    @property
    def items_per_order(self) -> Decimal:
        return safe_ratio(self.items_sold, self.order_count)

    @property
    def gross_profit(self) -> Decimal:
        return round_money(self.revenue - self.cogs)


@dataclass(frozen=True)
class EventToDateMetrics:
    revenue: Decimal
    items_sold: int
    order_count: int
    days_closed: int
    live: DayMetrics

    @property
    def days_run(self) -> int:
        return self.days_closed + (1 if self.live.is_open else 0)

    @property
    def average_revenue_per_day(self) -> Decimal:
        return safe_ratio(self.revenue, self.days_run)

    @property
    def average_order_value(self) -> Decimal:
        return safe_ratio(self.revenue, self.order_count)


@dataclass(frozen=True)
class ItemPerformance:
    item_id: UUID
    name: str
    category: str | None
    sold: int
    remaining: int
    starting_quantity: int
    revenue: Decimal
    cogs: Decimal
    is_active: bool

    @property
    def margin(self) -> Decimal:
        return round_money(self.revenue - self.cogs)

    @property
    def sell_through_pct(self) -> Decimal:
        return percentage(Decimal(self.sold), Decimal(self.starting_quantity))


@dataclass(frozen=True)
class CategoryBreakdown:
    category: str | None
    revenue: Decimal
    units_sold: int
    revenue_share_pct: Decimal


@dataclass(frozen=True)
class DailyBreakdown:
    day_number: int
    open_time: datetime
    close_time: datetime
    revenue: Decimal
    items_sold: int
    order_count: int
    revenue_share_pct: Decimal

    @property
    def duration_seconds(self) -> int:
        return max(int((self.close_time - self.open_time).total_seconds()), 0)


@dataclass(frozen=True)
class EventFinancials:
    revenue: Decimal
    cogs: Decimal
    units_sold: int
    total_inventory: int

    @property
    def gross_profit(self) -> Decimal:
        return round_money(self.revenue - self.cogs)

    @property
    def profit_margin_pct(self) -> Decimal:
        return percentage(self.gross_profit, self.revenue)


class MetricsSelector(BaseSelector[Sale]):
    """
    Read-side projector over Sales and DaySummaries.

    Item "sold" and revenue figures come from the ledger; "remaining" comes
    from the authoritative inventory counters.
    """

    def _event(self, event_id: UUID) -> MarketEvent:
        event = self.session.execute(
            select(MarketEvent)
            .where(MarketEvent.id == event_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if event is None:
            raise EventNotFoundError(event_id)
        return event

    def _totals(self, event_id: UUID, day_number: int | None = None) -> LedgerTotals:
        stmt = select(
            func.sum(Sale.total_price),
            func.coalesce(func.sum(Sale.quantity), 0),
            func.count(distinct(Sale.order_id)),
            func.sum(Sale.unit_cost * Sale.quantity),
        ).where(Sale.event_id == event_id)
        if day_number is not None:
            stmt = stmt.where(Sale.day_number == day_number)
        revenue, items, orders, cogs = self.session.execute(stmt).one()
        return LedgerTotals(
            revenue=_money(revenue),
            items_sold=int(items),
            order_count=int(orders),
            cogs=_money(cogs),
        )

    def live_day_metrics(self, event_id: UUID) -> DayMetrics:
        """Metrics of the currently open day."""
        event = self._event(event_id)
        state = event.day_state
        if not state.is_open:
            return DayMetrics(
                day_number=state.day_number,
                is_open=False,
                revenue=ZERO,
                items_sold=0,
                order_count=0,
                cogs=ZERO,
            )
        totals = self._totals(event_id, state.day_number)
        return DayMetrics(
            day_number=state.day_number,
            is_open=True,
            revenue=totals.revenue,
            items_sold=totals.items_sold,
            order_count=totals.order_count,
            cogs=totals.cogs,
            opened_at=state.since,
        )

    def event_to_date(self, event_id: UUID) -> EventToDateMetrics:
        """Closed-day summaries plus the live day."""
        live = self.live_day_metrics(event_id)
        revenue, items, orders, days = self.session.execute(
            select(
                func.sum(DaySummary.revenue),
                func.coalesce(func.sum(DaySummary.items_sold), 0),
                func.coalesce(func.sum(DaySummary.order_count), 0),
                func.count(DaySummary.id),
            ).where(DaySummary.event_id == event_id)
        ).one()
        return EventToDateMetrics(
            revenue=round_money(_money(revenue) + live.revenue),
            items_sold=int(items) + live.items_sold,
            order_count=int(orders) + live.order_count,
            days_closed=int(days),
            live=live,
        )

    def ledger_totals(self, event_id: UUID) -> LedgerTotals:
        """From-scratch scan of every Sale of the event."""
        self._event(event_id)
        return self._totals(event_id)

    def item_performance(
        self,
        event_id: UUID,
        rank_by: str = RANK_BY_QUANTITY,
        limit: int | None = None,
    ) -> list[ItemPerformance]:
        """
        Per-item sales, ranked descending by ``rank_by``.

        Ties are broken by item name, then id, so the order is stable.
        """
        if rank_by not in (RANK_BY_QUANTITY, RANK_BY_REVENUE):
            raise ValueError(f"rank_by must be 'quantity' or 'revenue', got {rank_by!r}")
        self._event(event_id)

        sold_rows = self.session.execute(
            select(
                Sale.event_item_id,
                func.sum(Sale.quantity),
                func.sum(Sale.total_price),
                func.sum(Sale.unit_cost * Sale.quantity),
            )
            .where(Sale.event_id == event_id)
            .group_by(Sale.event_item_id)
        ).all()
        by_item = {row[0]: row for row in sold_rows}

        items = self.session.execute(
            select(EventItem)
            .where(EventItem.event_id == event_id)
            .execution_options(populate_existing=True)
        ).scalars()

        performance = []
        for item in items:
            row = by_item.get(item.id)
            performance.append(
                ItemPerformance(
                    item_id=item.id,
                    name=item.name,
                    category=item.category,
                    sold=int(row[1]) if row else 0,
                    remaining=item.remaining,
                    starting_quantity=item.starting_quantity,
                    revenue=_money(row[2]) if row else ZERO,
                    cogs=_money(row[3]) if row else ZERO,
                    is_active=item.is_active,
                )
            )

        if rank_by == RANK_BY_QUANTITY:
            performance.sort(key=lambda p: (-p.sold, p.name, str(p.item_id)))
        else:
            performance.sort(key=lambda p: (-p.revenue, p.name, str(p.item_id)))

        if limit is not None:
            performance = performance[:limit]
        return performance

    def top_sellers(
        self,
        event_id: UUID,
        limit: int = 5,
        rank_by: str = RANK_BY_QUANTITY,
    ) -> list[ItemPerformance]:
        """Best-selling items that sold at least one unit."""
        ranked = self.item_performance(event_id, rank_by=rank_by)
        return [p for p in ranked if p.sold > 0][:limit]

    def category_breakdown(self, event_id: UUID) -> list[CategoryBreakdown]:
        """Revenue and units per item category, largest revenue first."""
        self._event(event_id)
        rows = self.session.execute(
            select(
                EventItem.category,
                func.sum(Sale.total_price),
                func.sum(Sale.quantity),
            )
            .join(EventItem, Sale.event_item_id == EventItem.id)
            .where(Sale.event_id == event_id)
            .group_by(EventItem.category)
        ).all()

        total = sum((_money(r[1]) for r in rows), ZERO)
        breakdown = [
            CategoryBreakdown(
                category=r[0],
                revenue=_money(r[1]),
                units_sold=int(r[2]),
                revenue_share_pct=percentage(_money(r[1]), total),
            )
            for r in rows
        ]
        breakdown.sort(key=lambda c: (-c.revenue, c.category or ""))
        return breakdown

    def daily_breakdown(self, event_id: UUID) -> list[DailyBreakdown]:
        """Every closed day with its share of closed-day revenue."""
        self._event(event_id)
        summaries = list(
            self.session.execute(
                select(DaySummary)
                .where(DaySummary.event_id == event_id)
                .order_by(DaySummary.day_number)
            ).scalars()
        )
        total = sum((s.revenue for s in summaries), ZERO)
        return [
            DailyBreakdown(
                day_number=s.day_number,
                open_time=s.open_time,
                close_time=s.close_time,
                revenue=s.revenue,
                items_sold=s.items_sold,
                order_count=s.order_count,
                revenue_share_pct=percentage(s.revenue, total),
            )
            for s in summaries
        ]

    def event_financials(self, event_id: UUID) -> EventFinancials:
        totals = self.ledger_totals(event_id)
        total_inventory = self.session.execute(
            select(func.coalesce(func.sum(EventItem.starting_quantity), 0)).where(
                EventItem.event_id == event_id
            )
        ).scalar_one()
        return EventFinancials(
            revenue=totals.revenue,
            cogs=totals.cogs,
            units_sold=totals.items_sold,
            total_inventory=int(total_inventory),
        )
