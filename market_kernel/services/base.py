"""
BaseService -- abstract base for all kernel write services.

Responsibility:
    Provides the common constructor and session-handling contract.  Every
    concrete service receives a SQLAlchemy ``Session`` and persists through
    ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services.  The transaction owner (EventRunner, a script using
    ``session_scope()``, or a test fixture) commits or rolls back.

Failure modes:
    - If a subclass commits on its own, a checkout that fails halfway could
      leave counters bumped without the matching Sale rows.
"""

from abc import ABC
from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from market_kernel.db.base import Base
from market_kernel.domain.clock import Clock, SystemClock
from market_kernel.exceptions import EventNotFoundError, ItemNotFoundError
from market_kernel.models.event import MarketEvent
from market_kernel.models.item import EventItem

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``; it may open savepoints.
        - Business timestamps come from ``self._clock``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self._clock = clock or SystemClock()

    def _get_event(self, event_id: UUID, *, for_update: bool = False) -> MarketEvent:
        """Load an event with fresh column values, optionally row-locked.

        Raises:
            EventNotFoundError: If the event does not exist.
        """
        stmt = select(MarketEvent).where(MarketEvent.id == event_id)
        if for_update:
            stmt = stmt.with_for_update()
        event = self.session.execute(
            stmt.execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if event is None:
            raise EventNotFoundError(event_id)
        return event

    def _get_item(self, item_id: UUID, *, for_update: bool = False) -> EventItem:
        """Load an event item with fresh counters, optionally row-locked.

        Raises:
            ItemNotFoundError: If the item does not exist.
        """
        stmt = select(EventItem).where(EventItem.id == item_id)
        if for_update:
            stmt = stmt.with_for_update()
        item = self.session.execute(
            stmt.execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if item is None:
            raise ItemNotFoundError(item_id)
        return item
