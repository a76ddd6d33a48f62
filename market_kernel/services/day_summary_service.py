"""
DaySummaryService -- aggregates one day's sales into an immutable summary.

Responsibility:
    Computes revenue, items sold and distinct order count over the Sales of
    an event recorded for a given day, and stores them as one DaySummary.

Architecture position:
    Kernel > Services.  Called by LifecycleService.end_day / complete_event.

Invariants enforced:
    - Exactly one DaySummary per (event, day).  A second close returns the
      stored summary flagged as a duplicate.  Two concurrent closes race on
      the unique constraint; the loser's savepoint rolls back and it reads
      the winner's row.
    - Summaries are append-only (db/immutability.py).

Failure modes:
    - DuplicateDayCloseError only when the caller passes ``strict=True``.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import distinct, func, select
from sqlalchemy.exc import IntegrityError

from market_kernel.db.types import round_money
from market_kernel.domain.dtos import DayCloseResult, DaySummaryInfo
from market_kernel.exceptions import DuplicateDayCloseError
from market_kernel.logging_config import get_logger
from market_kernel.models.day_summary import DaySummary
from market_kernel.models.sale import Sale
from market_kernel.services.base import BaseService

logger = get_logger("services.day_summary")


class DaySummaryService(BaseService[DaySummary]):
    """Closes days into DaySummary rows."""

    def get_summary(self, event_id: UUID, day_number: int) -> DaySummaryInfo | None:
        summary = self._find(event_id, day_number)
        return DaySummaryInfo.from_model(summary) if summary is not None else None

    def close_day(
        self,
        event_id: UUID,
        day_number: int,
        open_time: datetime,
        close_time: datetime,
        strict: bool = False,
    ) -> DayCloseResult:
        """
        Summarize ``day_number`` of an event.

        Args:
            event_id: The event.
            day_number: Day being closed (>= 1).
            open_time: When the day opened.
            close_time: When the day closed.
            strict: Raise DuplicateDayCloseError instead of returning the
                existing summary.

        Returns:
            DayCloseResult with the summary; ``duplicate`` is True when the
            day had already been closed.
        """
        if day_number < 1:
            raise ValueError(f"day_number must be >= 1, got {day_number}")

        existing = self._find(event_id, day_number)
        if existing is not None:
            return self._duplicate(existing, strict)

        revenue, items_sold, order_count = self._aggregate(event_id, day_number)

        summary = DaySummary(
            event_id=event_id,
            day_number=day_number,
            open_time=open_time,
            close_time=close_time,
            revenue=revenue,
            items_sold=items_sold,
            order_count=order_count,
        )
        try:
            with self.session.begin_nested():
                self.session.add(summary)
                self.session.flush()
        except IntegrityError:
            winner = self._find(event_id, day_number)
            if winner is None:
                raise
            logger.info(
                "day_close_race_lost",
                extra={"event_id": str(event_id), "day_number": day_number},
            )
            return self._duplicate(winner, strict)

        logger.info(
            "day_summary_recorded",
            extra={
                "event_id": str(event_id),
                "day_number": day_number,
                "revenue": revenue,
                "items_sold": items_sold,
                "order_count": order_count,
            },
        )
        return DayCloseResult(summary=DaySummaryInfo.from_model(summary), duplicate=False)

    def _find(self, event_id: UUID, day_number: int) -> DaySummary | None:
        return self.session.execute(
            select(DaySummary).where(
                DaySummary.event_id == event_id,
                DaySummary.day_number == day_number,
            )
        ).scalar_one_or_none()

    def _duplicate(self, existing: DaySummary, strict: bool) -> DayCloseResult:
        if strict:
            raise DuplicateDayCloseError(existing.event_id, existing.day_number)
        logger.info(
            "day_close_duplicate",
            extra={
                "event_id": str(existing.event_id),
                "day_number": existing.day_number,
            },
        )
        return DayCloseResult(summary=DaySummaryInfo.from_model(existing), duplicate=True)

    def _aggregate(self, event_id: UUID, day_number: int) -> tuple[Decimal, int, int]:
        row = self.session.execute(
            select(
                func.coalesce(func.sum(Sale.total_price), 0),
                func.coalesce(func.sum(Sale.quantity), 0),
                func.count(distinct(Sale.order_id)),
            ).where(
                Sale.event_id == event_id,
                Sale.day_number == day_number,
            )
        ).one()
        return round_money(Decimal(str(row[0]))), int(row[1]), int(row[2])
