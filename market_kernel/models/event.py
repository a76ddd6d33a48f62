"""
Module: market_kernel.models.event
Responsibility: ORM persistence for market events and their schedule days.
Architecture position: Kernel > Models.  May import from db/ and domain/
    (pure value objects) only.

Invariants enforced:
    - status is one of draft, active, completed; archiving is an orthogonal
      flag so an archived event remembers where it stopped.
    - day_close_time is only set once day_open_time is set
      (ck_event_day_times).
    - current_day counts opened days; 0 before the first start_day.

Failure modes:
    - IntegrityError if a close time is written without an open time.
"""

from datetime import date, datetime, time
from enum import Enum
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from market_kernel.db.base import TrackedBase, UUIDString
from market_kernel.db.types import LongText, Name
from market_kernel.domain.day_state import DayState, day_state_from_columns


class EventStatus(str, Enum):
    """Lifecycle status of a market event.

    Transitions are DRAFT -> ACTIVE -> COMPLETED.  ARCHIVED is never stored
    in ``status``; it is reported by ``effective_status`` when the archived
    flag is set.
    """

    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class MarketEvent(TrackedBase):
    """
    A pop-up or market event with one or more sales days.

    Guarantees:
        - day_state is always exactly one of DayOpen / DayClosed.
        - Events are never deleted, only archived.
    """

    __tablename__ = "market_events"

    __table_args__ = (
        CheckConstraint(
            "day_close_time IS NULL OR day_open_time IS NOT NULL",
            name="ck_event_day_times",
        ),
        CheckConstraint("current_day >= 0", name="ck_event_current_day"),
        Index("idx_event_status", "status"),
    )

    name: Mapped[str] = mapped_column(Name, nullable=False)

    description: Mapped[str | None] = mapped_column(LongText, nullable=True)

    location: Mapped[str | None] = mapped_column(String(200), nullable=True)

    notes: Mapped[str | None] = mapped_column(LongText, nullable=True)

    status: Mapped[EventStatus] = mapped_column(
        String(20),
        default=EventStatus.DRAFT.value,
        nullable=False,
    )

    is_archived: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    archived_at: Mapped[datetime | None] = mapped_column(nullable=True)

    # Number of the most recently opened day (0 = never opened)
    current_day: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )

    day_open_time: Mapped[datetime | None] = mapped_column(nullable=True)

    day_close_time: Mapped[datetime | None] = mapped_column(nullable=True)

    schedule: Mapped[list["ScheduleDay"]] = relationship(
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="ScheduleDay.day_number",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<MarketEvent {self.name}: {self.effective_status.value} day={self.current_day}>"

    @property
    def effective_status(self) -> EventStatus:
        if self.is_archived:
            return EventStatus.ARCHIVED
        return EventStatus(self.status)

    @property
    def day_state(self) -> DayState:
        return day_state_from_columns(
            self.current_day or 0,
            self.day_open_time,
            self.day_close_time,
        )

    @property
    def is_day_open(self) -> bool:
        return self.day_state.is_open


class ScheduleDay(TrackedBase):
    """One planned day of an event. Advisory: the lifecycle never enforces it."""

    __tablename__ = "event_schedule_days"

    __table_args__ = (
        UniqueConstraint("event_id", "day_number", name="uq_schedule_event_day"),
        CheckConstraint("day_number >= 1", name="ck_schedule_day_number"),
    )

    event_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("market_events.id"),
        nullable=False,
    )

    day_number: Mapped[int] = mapped_column(Integer, nullable=False)

    date: Mapped[date] = mapped_column(Date, nullable=False)

    open_time: Mapped[time | None] = mapped_column(Time, nullable=True)

    close_time: Mapped[time | None] = mapped_column(Time, nullable=True)

    event: Mapped["MarketEvent"] = relationship(back_populates="schedule")

    def __repr__(self) -> str:
        return f"<ScheduleDay {self.day_number}: {self.date}>"
