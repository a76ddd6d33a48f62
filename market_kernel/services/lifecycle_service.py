"""
LifecycleService -- event day open/close and event completion.

Responsibility:
    Drives the per-day state of an event:

        (closed) --start_day--> DayOpen(n) --end_day--> DayClosed(n) --start_day--> ...
        any non-archived state --complete_event--> COMPLETED

    Archiving is an orthogonal flag; an archived event cannot start, end or
    complete days until it is restored.

Architecture position:
    Kernel > Services.  Delegates summaries to DaySummaryService.

Invariants enforced:
    - Exactly one of DayOpen / DayClosed holds at any time.
    - At most one open day per event; start_day during an open day raises.
    - Every closed day has exactly one DaySummary.
    - Event rows are read with SELECT ... FOR UPDATE so concurrent
      transitions on the same event serialize.

Failure modes:
    - EventNotFoundError, EventArchivedError, EventCompletedError.
    - DayAlreadyOpenError: start_day while a day is open.
    - DayNotOpenError: end_day before any day was opened.
"""

from uuid import UUID

from market_kernel.domain.day_state import DayClosed, DayOpen
from market_kernel.domain.dtos import DayCloseResult, EventInfo
from market_kernel.exceptions import (
    DayAlreadyOpenError,
    DayNotOpenError,
    EventArchivedError,
    EventCompletedError,
)
from market_kernel.logging_config import get_logger
from market_kernel.models.event import EventStatus, MarketEvent
from market_kernel.services.base import BaseService
from market_kernel.services.day_summary_service import DaySummaryService

logger = get_logger("services.lifecycle")


class LifecycleService(BaseService[MarketEvent]):
    """
    Event lifecycle transitions.

    Guarantees:
        - start_day never touches inventory.
        - end_day is idempotent: repeating it for a closed, summarized day
          returns the stored summary with ``duplicate=True``.
        - complete_event is idempotent on a completed event.
    """

    def __init__(self, session, clock=None):
        super().__init__(session, clock)
        self._summaries = DaySummaryService(session, self._clock)

    def start_day(self, event_id: UUID) -> EventInfo:
        """
        Open the next sales day.

        Raises:
            EventArchivedError: The event is archived.
            EventCompletedError: The event is completed.
            DayAlreadyOpenError: A day is already open.
        """
        event = self._get_event(event_id, for_update=True)
        if event.is_archived:
            raise EventArchivedError(event_id, "start day")
        if event.status == EventStatus.COMPLETED:
            raise EventCompletedError(event_id, "start day")
        state = event.day_state
        if isinstance(state, DayOpen):
            raise DayAlreadyOpenError(event_id, state.day_number)

        now = self._clock.now()
        event.status = EventStatus.ACTIVE.value
        event.current_day = state.day_number + 1
        event.day_open_time = now
        event.day_close_time = None
        self.session.flush()

        scheduled_days = len(event.schedule)
        if scheduled_days and event.current_day > scheduled_days:
            logger.warning(
                "day_beyond_schedule",
                extra={
                    "event_id": str(event_id),
                    "day_number": event.current_day,
                    "scheduled_days": scheduled_days,
                },
            )

        logger.info(
            "day_started",
            extra={
                "event_id": str(event_id),
                "day_number": event.current_day,
                "opened_at": now,
            },
        )
        return EventInfo.from_model(event)

    def end_day(self, event_id: UUID) -> DayCloseResult:
        """
        Close the open day and record its summary.

        Raises:
            EventArchivedError: The event is archived.
            DayNotOpenError: No day has ever been opened, or the last day was
                closed without a summary.
        """
        event = self._get_event(event_id, for_update=True)
        if event.is_archived:
            raise EventArchivedError(event_id, "end day")
        return self._close_current_day(event)

    def complete_event(self, event_id: UUID) -> EventInfo:
        """
        Mark the event completed, closing an open day first.

        Raises:
            EventArchivedError: The event is archived.
        """
        event = self._get_event(event_id, for_update=True)
        if event.is_archived:
            raise EventArchivedError(event_id, "complete event")
        if event.status == EventStatus.COMPLETED and not event.is_day_open:
            return EventInfo.from_model(event)

        if event.is_day_open:
            self._close_current_day(event)

        event.status = EventStatus.COMPLETED.value
        self.session.flush()

        logger.info(
            "event_completed",
            extra={"event_id": str(event_id), "days_run": event.current_day},
        )
        return EventInfo.from_model(event)

    def archive_event(self, event_id: UUID) -> EventInfo:
        event = self._get_event(event_id, for_update=True)
        if not event.is_archived:
            event.is_archived = True
            event.archived_at = self._clock.now()
            self.session.flush()
            logger.info(
                "event_archived",
                extra={"event_id": str(event_id), "status": event.status},
            )
        return EventInfo.from_model(event)

    def restore_event(self, event_id: UUID) -> EventInfo:
        event = self._get_event(event_id, for_update=True)
        if event.is_archived:
            event.is_archived = False
            event.archived_at = None
            self.session.flush()
            logger.info(
                "event_restored",
                extra={"event_id": str(event_id), "status": event.status},
            )
        return EventInfo.from_model(event)

    def _close_current_day(self, event: MarketEvent) -> DayCloseResult:
        state = event.day_state

        if isinstance(state, DayClosed):
            if state.never_opened:
                raise DayNotOpenError(event.id, "end day")
            existing = self._summaries.get_summary(event.id, state.day_number)
            if existing is None:
                raise DayNotOpenError(event.id, "end day")
            logger.info(
                "day_end_repeated",
                extra={"event_id": str(event.id), "day_number": state.day_number},
            )
            return DayCloseResult(summary=existing, duplicate=True)

        now = self._clock.now()
        result = self._summaries.close_day(
            event.id,
            state.day_number,
            open_time=state.since,
            close_time=now,
        )
        event.day_close_time = now
        self.session.flush()

        logger.info(
            "day_ended",
            extra={
                "event_id": str(event.id),
                "day_number": state.day_number,
                "revenue": result.summary.revenue,
                "items_sold": result.summary.items_sold,
                "order_count": result.summary.order_count,
            },
        )
        return result
