"""
CatalogService -- narrow ingestion of event authoring data.

Events, their schedule and their bundle deals are authored elsewhere; this
service only records what the kernel needs to run them.  Items are added
through InventoryService.add_item because they carry stock counters.
"""

from dataclasses import dataclass
from datetime import date, time
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from market_kernel.db.types import to_money
from market_kernel.domain.dtos import DealInfo, EventInfo, ScheduleDayInfo
from market_kernel.exceptions import EventArchivedError
from market_kernel.logging_config import get_logger
from market_kernel.models.deal import EventDeal
from market_kernel.models.event import EventStatus, MarketEvent, ScheduleDay
from market_kernel.services.base import BaseService

logger = get_logger("services.catalog")


@dataclass(frozen=True)
class ScheduleDayInput:
    date: date
    open_time: time | None = None
    close_time: time | None = None


class CatalogService(BaseService[MarketEvent]):
    """Creates events and their schedule and deals; lists them back."""

    def create_event(
        self,
        name: str,
        schedule: list[ScheduleDayInput | date] | None = None,
        location: str | None = None,
        description: str | None = None,
        notes: str | None = None,
    ) -> EventInfo:
        """
        Create a draft event.

        ``schedule`` entries are numbered 1..n in the given order.

        Raises:
            ValueError: On a blank name or a close time before the open time.
        """
        if not name or not name.strip():
            raise ValueError("Event name is required")

        event = MarketEvent(
            name=name.strip(),
            location=location,
            description=description,
            notes=notes,
            status=EventStatus.DRAFT.value,
            is_archived=False,
            current_day=0,
        )
        for day_number, entry in enumerate(schedule or [], start=1):
            event.schedule.append(self._schedule_day(day_number, entry))

        self.session.add(event)
        self.session.flush()

        logger.info(
            "event_created",
            extra={
                "event_id": str(event.id),
                "event_name": event.name,
                "scheduled_days": len(event.schedule),
            },
        )
        return EventInfo.from_model(event)

    def add_schedule_day(
        self,
        event_id: UUID,
        day_date: date,
        open_time: time | None = None,
        close_time: time | None = None,
    ) -> ScheduleDayInfo:
        """Append a day to the end of the event's schedule."""
        event = self._get_event(event_id, for_update=True)
        if event.is_archived:
            raise EventArchivedError(event_id, "add schedule day")

        day_number = max((d.day_number for d in event.schedule), default=0) + 1
        day = self._schedule_day(day_number, ScheduleDayInput(day_date, open_time, close_time))
        event.schedule.append(day)
        self.session.flush()

        logger.info(
            "schedule_day_added",
            extra={"event_id": str(event_id), "day_number": day_number, "date": str(day_date)},
        )
        return ScheduleDayInfo.from_model(day)

    def add_deal(
        self,
        event_id: UUID,
        name: str,
        quantity_required: int,
        deal_price: Decimal | int | str,
        category: str | None = None,
        description: str | None = None,
    ) -> DealInfo:
        """
        Define a bundle deal, e.g. any 3 cookies for $10.

        Raises:
            ValueError: On a blank name, quantity_required < 1 or a negative price.
        """
        if not name or not name.strip():
            raise ValueError("Deal name is required")
        if isinstance(quantity_required, bool) or not isinstance(quantity_required, int) or quantity_required < 1:
            raise ValueError(f"quantity_required must be a positive integer, got {quantity_required!r}")
        deal_price = to_money(deal_price)
        if deal_price < 0:
            raise ValueError("Deal price cannot be negative")

        event = self._get_event(event_id)
        if event.is_archived:
            raise EventArchivedError(event_id, "add deal")

        deal = EventDeal(
            event_id=event_id,
            name=name.strip(),
            description=description,
            category=category,
            quantity_required=quantity_required,
            deal_price=deal_price,
        )
        self.session.add(deal)
        self.session.flush()

        logger.info(
            "deal_added",
            extra={"event_id": str(event_id), "deal_id": str(deal.id), "deal_name": deal.name},
        )
        return DealInfo.from_model(deal)

    def list_deals(self, event_id: UUID) -> list[DealInfo]:
        deals = self.session.execute(
            select(EventDeal)
            .where(EventDeal.event_id == event_id)
            .order_by(EventDeal.name, EventDeal.id)
        ).scalars()
        return [DealInfo.from_model(d) for d in deals]

    def get_event(self, event_id: UUID) -> EventInfo:
        return EventInfo.from_model(self._get_event(event_id))

    def list_events(self, include_archived: bool = False) -> list[EventInfo]:
        """Events by name; archived ones only when asked for."""
        stmt = select(MarketEvent)
        if not include_archived:
            stmt = stmt.where(MarketEvent.is_archived.is_(False))
        events = self.session.execute(
            stmt.order_by(MarketEvent.name, MarketEvent.id)
            .execution_options(populate_existing=True)
        ).scalars()
        return [EventInfo.from_model(e) for e in events]

    def list_archived_events(self) -> list[EventInfo]:
        events = self.session.execute(
            select(MarketEvent)
            .where(MarketEvent.is_archived.is_(True))
            .order_by(MarketEvent.name, MarketEvent.id)
            .execution_options(populate_existing=True)
        ).scalars()
        return [EventInfo.from_model(e) for e in events]

    @staticmethod
    def _schedule_day(day_number: int, entry: ScheduleDayInput | date) -> ScheduleDay:
        if isinstance(entry, date):
            entry = ScheduleDayInput(entry)
        if (
            entry.open_time is not None
            and entry.close_time is not None
            and entry.close_time <= entry.open_time
        ):
            raise ValueError(
                f"Schedule day {day_number}: close time must be after open time"
            )
        return ScheduleDay(
            day_number=day_number,
            date=entry.date,
            open_time=entry.open_time,
            close_time=entry.close_time,
        )
