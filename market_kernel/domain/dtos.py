"""
DTOs -- immutable records returned across the service and selector boundary.

Services and selectors never hand ORM entities to callers: a terminal may
hold a result long after the session that produced it is closed.
``from_model()`` class methods are boundary converters used only by the
service and selector layers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from market_kernel.domain.day_state import DayState

if TYPE_CHECKING:
    from market_kernel.models.day_summary import DaySummary
    from market_kernel.models.deal import EventDeal
    from market_kernel.models.event import MarketEvent, ScheduleDay
    from market_kernel.models.item import EventItem
    from market_kernel.models.sale import Sale


@dataclass(frozen=True)
class ScheduleDayInfo:
    day_number: int
    date: date
    open_time: time | None = None
    close_time: time | None = None

    @classmethod
    def from_model(cls, model: ScheduleDay) -> ScheduleDayInfo:
        return cls(
            day_number=model.day_number,
            date=model.date,
            open_time=model.open_time,
            close_time=model.close_time,
        )


@dataclass(frozen=True)
class EventInfo:
    """Snapshot of an event; ``status`` is the effective status (archived wins)."""

    id: UUID
    name: str
    status: str
    is_archived: bool
    current_day: int
    day_state: DayState
    description: str | None = None
    location: str | None = None
    notes: str | None = None
    archived_at: datetime | None = None
    schedule: tuple[ScheduleDayInfo, ...] = ()

    @property
    def is_day_open(self) -> bool:
        return self.day_state.is_open

    @classmethod
    def from_model(cls, model: MarketEvent) -> EventInfo:
        return cls(
            id=model.id,
            name=model.name,
            status=model.effective_status.value,
            is_archived=model.is_archived,
            current_day=model.current_day,
            day_state=model.day_state,
            description=model.description,
            location=model.location,
            notes=model.notes,
            archived_at=model.archived_at,
            schedule=tuple(ScheduleDayInfo.from_model(d) for d in model.schedule),
        )


@dataclass(frozen=True)
class ItemInfo:
    id: UUID
    event_id: UUID
    name: str
    price: Decimal
    cost: Decimal
    category: str | None
    starting_quantity: int
    quantity_sold: int
    is_active: bool
    bake_id: str | None = None

    @property
    def remaining(self) -> int:
        return self.starting_quantity - self.quantity_sold

    @classmethod
    def from_model(cls, model: EventItem) -> ItemInfo:
        return cls(
            id=model.id,
            event_id=model.event_id,
            name=model.name,
            price=model.price,
            cost=model.cost,
            category=model.category,
            starting_quantity=model.starting_quantity,
            quantity_sold=model.quantity_sold,
            is_active=model.is_active,
            bake_id=model.bake_id,
        )


@dataclass(frozen=True)
class DealInfo:
    id: UUID
    event_id: UUID
    name: str
    category: str | None
    quantity_required: int
    deal_price: Decimal
    description: str | None = None

    @classmethod
    def from_model(cls, model: EventDeal) -> DealInfo:
        return cls(
            id=model.id,
            event_id=model.event_id,
            name=model.name,
            category=model.category,
            quantity_required=model.quantity_required,
            deal_price=model.deal_price,
            description=model.description,
        )


@dataclass(frozen=True)
class SaleRecord:
    """One recorded sale line."""

    id: UUID
    event_id: UUID
    event_item_id: UUID
    item_name: str
    order_id: UUID
    quantity: int
    unit_price: Decimal
    unit_cost: Decimal
    total_price: Decimal
    sold_at: datetime
    day_number: int
    terminal_id: str | None = None

    @classmethod
    def from_model(cls, model: Sale) -> SaleRecord:
        return cls(
            id=model.id,
            event_id=model.event_id,
            event_item_id=model.event_item_id,
            item_name=model.item.name,
            order_id=model.order_id,
            quantity=model.quantity,
            unit_price=model.unit_price,
            unit_cost=model.unit_cost,
            total_price=model.total_price,
            sold_at=model.sold_at,
            day_number=model.day_number,
            terminal_id=model.terminal_id,
        )


@dataclass(frozen=True)
class OrderRecord:
    """All sale lines of one checkout."""

    order_id: UUID
    sold_at: datetime
    day_number: int
    lines: tuple[SaleRecord, ...]
    terminal_id: str | None = None

    @property
    def total(self) -> Decimal:
        return sum((line.total_price for line in self.lines), Decimal("0.00"))

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)


@dataclass(frozen=True)
class DaySummaryInfo:
    id: UUID
    event_id: UUID
    day_number: int
    open_time: datetime
    close_time: datetime
    revenue: Decimal
    items_sold: int
    order_count: int

    @classmethod
    def from_model(cls, model: DaySummary) -> DaySummaryInfo:
        return cls(
            id=model.id,
            event_id=model.event_id,
            day_number=model.day_number,
            open_time=model.open_time,
            close_time=model.close_time,
            revenue=model.revenue,
            items_sold=model.items_sold,
            order_count=model.order_count,
        )


@dataclass(frozen=True)
class DayCloseResult:
    """Outcome of closing a day.

    ``duplicate`` is True when the day had already been summarized and the
    existing summary was returned unchanged.
    """

    summary: DaySummaryInfo
    duplicate: bool = False


@dataclass(frozen=True)
class CheckoutResult:
    order_id: UUID
    sales: tuple[SaleRecord, ...]
    remaining: dict[UUID, int] = field(default_factory=dict)
    total: Decimal = Decimal("0.00")
    item_count: int = 0


@dataclass(frozen=True)
class VoidResult:
    """Outcome of an explicit sale correction."""

    sale_ids: tuple[UUID, ...]
    order_id: UUID
    quantity_restored: int
    amount: Decimal
    reason: str
