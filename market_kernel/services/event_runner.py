"""
EventRunner -- transaction-owning facade used by a POS terminal.

Responsibility:
    Wraps the flush-only services for one event and one terminal.  Each
    public call is one unit of work: it binds log context, times the
    operation, commits on success and rolls back on failure.

Architecture position:
    Kernel > Services, outermost.  The only kernel class that commits.
    Set ``auto_commit=False`` to leave transaction control to the caller
    (tests, scripts that batch several operations).

Failure modes:
    - Every kernel error propagates unchanged after the rollback.
    - During checkout, storage and other unexpected errors surface as
      TransactionFailedError (retryable after a fresh read).  ValueError
      from cart validation propagates as is.
"""

import time
from collections.abc import Callable
from typing import TypeVar
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from market_kernel.domain.cart import Cart
from market_kernel.domain.clock import Clock, SystemClock
from market_kernel.domain.deals import DealHint, suggest_deals
from market_kernel.domain.dtos import (
    CheckoutResult,
    DayCloseResult,
    EventInfo,
    ItemInfo,
    VoidResult,
)
from market_kernel.exceptions import MarketKernelError, TransactionFailedError
from market_kernel.logging_config import LogContext, get_logger
from market_kernel.selectors.metrics_selector import DayMetrics, MetricsSelector
from market_kernel.services.catalog_service import CatalogService
from market_kernel.services.checkout_service import CartInput, CheckoutService
from market_kernel.services.correction_service import CorrectionService
from market_kernel.services.inventory_service import InventoryService
from market_kernel.services.lifecycle_service import LifecycleService

logger = get_logger("services.event_runner")

T = TypeVar("T")


class EventRunner:
    """
    Runs one event from one terminal.

    Usage:
        runner = EventRunner(session, event_id, terminal_id="till-1")
        runner.start_day()
        result = runner.checkout(cart)
        runner.end_day()
    """

    def __init__(
        self,
        session: Session,
        event_id: UUID,
        clock: Clock | None = None,
        terminal_id: str | None = None,
        auto_commit: bool = True,
        max_lines: int | None = None,
        max_line_quantity: int | None = None,
    ):
        self._session = session
        self._event_id = event_id
        self._clock = clock or SystemClock()
        self._terminal_id = terminal_id
        self._auto_commit = auto_commit

        self._lifecycle = LifecycleService(session, self._clock)
        self._inventory = InventoryService(session, self._clock)
        self._checkout = CheckoutService(
            session,
            self._clock,
            max_lines=max_lines,
            max_line_quantity=max_line_quantity,
        )
        self._corrections = CorrectionService(session, self._clock)
        self._catalog = CatalogService(session, self._clock)
        self._metrics = MetricsSelector(session)

    @classmethod
    def from_config(
        cls,
        session: Session,
        event_id: UUID,
        config,
        clock: Clock | None = None,
        terminal_id: str | None = None,
    ) -> "EventRunner":
        """Build a runner with checkout limits from a MarketConfig."""
        return cls(
            session,
            event_id,
            clock=clock,
            terminal_id=terminal_id,
            max_lines=config.checkout.max_lines,
            max_line_quantity=config.checkout.max_line_quantity,
        )

    @property
    def event_id(self) -> UUID:
        return self._event_id

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start_day(self) -> EventInfo:
        return self._run("start_day", lambda: self._lifecycle.start_day(self._event_id))

    def end_day(self) -> DayCloseResult:
        return self._run("end_day", lambda: self._lifecycle.end_day(self._event_id))

    def complete_event(self) -> EventInfo:
        return self._run(
            "complete_event", lambda: self._lifecycle.complete_event(self._event_id)
        )

    # ------------------------------------------------------------------
    # Selling
    # ------------------------------------------------------------------

    def checkout(self, cart: CartInput) -> CheckoutResult:
        def _do() -> CheckoutResult:
            try:
                return self._checkout.checkout(
                    self._event_id, cart, terminal_id=self._terminal_id
                )
            except (MarketKernelError, ValueError):
                raise
            except Exception as exc:
                raise TransactionFailedError(None, str(exc)) from exc

        try:
            return self._run("checkout", _do)
        except (MarketKernelError, ValueError):
            raise
        except Exception as exc:
            # commit itself failed
            raise TransactionFailedError(None, str(exc)) from exc

    def void_sale(self, sale_id: UUID, reason: str) -> VoidResult:
        return self._run("void_sale", lambda: self._corrections.void_sale(sale_id, reason))

    def void_order(self, order_id: UUID, reason: str) -> VoidResult:
        return self._run("void_order", lambda: self._corrections.void_order(order_id, reason))

    def void_last_order(self, reason: str) -> VoidResult:
        return self._run(
            "void_last_order",
            lambda: self._corrections.void_last_order(
                self._event_id, reason, terminal_id=self._terminal_id
            ),
        )

    # ------------------------------------------------------------------
    # Stock between days
    # ------------------------------------------------------------------

    def restock(self, item_id: UUID, new_starting_quantity: int) -> ItemInfo:
        return self._run(
            "restock", lambda: self._inventory.restock(item_id, new_starting_quantity)
        )

    def add_stock(self, item_id: UUID, additional: int) -> ItemInfo:
        return self._run("add_stock", lambda: self._inventory.add_stock(item_id, additional))

    # ------------------------------------------------------------------
    # Reads (no commit)
    # ------------------------------------------------------------------

    def live_metrics(self) -> DayMetrics:
        return self._metrics.live_day_metrics(self._event_id)

    def deal_hints(self, cart: Cart) -> list[DealHint]:
        return suggest_deals(cart, self._catalog.list_deals(self._event_id))

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    def _run(self, operation: str, fn: Callable[[], T]) -> T:
        with LogContext.bind(
            correlation_id=str(uuid4()),
            event_id=str(self._event_id),
            terminal_id=self._terminal_id,
        ):
            logger.debug("operation_started", extra={"operation": operation})
            t0 = time.monotonic()
            try:
                result = fn()
                if self._auto_commit:
                    self._session.commit()
            except Exception as exc:
                duration_ms = round((time.monotonic() - t0) * 1000, 2)
                if self._auto_commit:
                    self._session.rollback()
                log = logger.warning if isinstance(exc, MarketKernelError) else logger.error
                log(
                    "operation_failed",
                    extra={
                        "operation": operation,
                        "duration_ms": duration_ms,
                        "error_code": getattr(exc, "code", None),
                    },
                    exc_info=True,
                )
                raise

            duration_ms = round((time.monotonic() - t0) * 1000, 2)
            logger.info(
                "operation_completed",
                extra={"operation": operation, "duration_ms": duration_ms},
            )
            return result
