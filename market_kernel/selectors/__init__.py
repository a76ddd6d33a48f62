"""Read-only selectors over the sales ledger."""

from market_kernel.selectors.metrics_selector import (
    CategoryBreakdown,
    DailyBreakdown,
    DayMetrics,
    EventFinancials,
    EventToDateMetrics,
    ItemPerformance,
    LedgerTotals,
    MetricsSelector,
)
from market_kernel.selectors.sales_selector import SalesSelector

__all__ = [
    "MetricsSelector",
    "SalesSelector",
    "DayMetrics",
    "EventToDateMetrics",
    "LedgerTotals",
    "ItemPerformance",
    "CategoryBreakdown",
    "DailyBreakdown",
    "EventFinancials",
]
