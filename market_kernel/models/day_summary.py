"""
Module: market_kernel.models.day_summary
Responsibility: ORM persistence for the immutable per-day sales summary.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - At most one summary per (event_id, day_number) (uq_day_summary).
      Concurrent end_day calls race on this constraint; the loser re-reads.
    - Rows are append-only (db/immutability.py).
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from market_kernel.db.base import TrackedBase, UUIDString
from market_kernel.db.types import Money


class DaySummary(TrackedBase):
    """Totals for one closed day of an event."""

    __tablename__ = "event_day_summaries"

    __table_args__ = (
        UniqueConstraint("event_id", "day_number", name="uq_day_summary"),
        CheckConstraint("day_number >= 1", name="ck_day_summary_day_number"),
    )

    event_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("market_events.id"),
        nullable=False,
    )

    day_number: Mapped[int] = mapped_column(Integer, nullable=False)

    open_time: Mapped[datetime] = mapped_column(nullable=False)

    close_time: Mapped[datetime] = mapped_column(nullable=False)

    revenue: Mapped[Decimal] = mapped_column(Money, default=Decimal("0.00"), nullable=False)

    items_sold: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    order_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<DaySummary day={self.day_number} revenue={self.revenue}>"
