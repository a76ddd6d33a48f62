"""ORM models for the market kernel."""

from market_kernel.models.day_summary import DaySummary
from market_kernel.models.deal import EventDeal
from market_kernel.models.event import EventStatus, MarketEvent, ScheduleDay
from market_kernel.models.item import EventItem
from market_kernel.models.sale import Sale

__all__ = [
    "MarketEvent",
    "EventStatus",
    "ScheduleDay",
    "EventItem",
    "Sale",
    "DaySummary",
    "EventDeal",
]
