"""
CheckoutService -- all-or-nothing multi-item checkout.

Responsibility:
    Turns a cart into Sale rows and inventory commits under one order id.
    Either every line is recorded or nothing is.

Architecture position:
    Kernel > Services.  Calls InventoryService for the counter updates.
    Flush-only: EventRunner (or the caller) commits.

Algorithm:
    1. Normalize the cart: merge duplicate lines, enforce line limits.
    2. Generate the order id before touching anything.
    3. Check the event has an open day (FOR SHARE, so end_day waits for
       in-flight checkouts on PostgreSQL).
    4. Re-read every item.  Collect *all* shortages and raise one
       InsufficientStockError naming each offending item.
    5. Inside a savepoint, commit each line in item-id order (deterministic
       lock ordering) and insert one Sale per line.  A lost race rolls the
       savepoint back and raises InsufficientStockError; a storage failure
       raises TransactionFailedError.

Failure modes:
    - EmptyCartError, ValueError (bad quantity, too many lines).
    - DayNotOpenError, EventArchivedError, EventNotFoundError.
    - ItemNotFoundError, ItemInactiveError.
    - InsufficientStockError (pre-check or lost race).
    - TransactionFailedError (retryable after a fresh read).
"""

from collections.abc import Iterable, Mapping
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from market_kernel.db.types import round_money
from market_kernel.domain.cart import Cart, CartLine
from market_kernel.domain.clock import Clock
from market_kernel.domain.dtos import CheckoutResult, SaleRecord
from market_kernel.exceptions import (
    DayNotOpenError,
    EmptyCartError,
    EventArchivedError,
    EventNotFoundError,
    InsufficientStockError,
    ItemInactiveError,
    ItemNotFoundError,
    StockShortage,
    TransactionFailedError,
)
from market_kernel.logging_config import LogContext, get_logger
from market_kernel.models.event import MarketEvent
from market_kernel.models.item import EventItem
from market_kernel.models.sale import Sale
from market_kernel.services.base import BaseService
from market_kernel.services.inventory_service import InventoryService

logger = get_logger("services.checkout")

CartInput = Cart | Iterable[CartLine | tuple[UUID, int] | Mapping]


class CheckoutService(BaseService[Sale]):
    """
    Atomic checkout of a cart.

    Guarantees:
        - Every Sale of one checkout carries the same order_id.
        - On any failure, no counter changed and no Sale exists.
        - Unit price and cost on each Sale are snapshots of the item row
          read inside the transaction, not the cart's display values.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        max_lines: int | None = None,
        max_line_quantity: int | None = None,
    ):
        super().__init__(session, clock)
        self._inventory = InventoryService(session, self._clock)
        self._max_lines = max_lines
        self._max_line_quantity = max_line_quantity

    def checkout(
        self,
        event_id: UUID,
        cart: CartInput,
        terminal_id: str | None = None,
    ) -> CheckoutResult:
        """
        Record a cart as one order.

        Args:
            event_id: Event whose open day the sale belongs to.
            cart: A Cart, or lines of CartLine, ``(item_id, quantity)`` or
                ``{"item_id": ..., "quantity": ...}``.
            terminal_id: Optional label of the POS terminal.

        Returns:
            CheckoutResult with the order id, recorded sales and the
            refreshed remaining count of every item in the cart.
        """
        quantities = self._normalize(cart)
        order_id = uuid4()

        with LogContext.bind(order_id=str(order_id)):
            event = self._get_open_event(event_id)
            items = self._load_items(event_id, quantities)
            self._check_stock(items, quantities)

            sold_at = self._clock.now()
            sales: list[Sale] = []
            try:
                with self.session.begin_nested():
                    for item_id in sorted(quantities, key=str):
                        item = items[item_id]
                        qty = quantities[item_id]
                        self._inventory.commit(item_id, qty)
                        sale = Sale(
                            event_id=event_id,
                            event_item_id=item_id,
                            item=item,
                            order_id=order_id,
                            quantity=qty,
                            unit_price=item.price,
                            unit_cost=item.cost,
                            total_price=round_money(item.price * qty),
                            sold_at=sold_at,
                            day_number=event.current_day,
                            terminal_id=terminal_id,
                        )
                        self.session.add(sale)
                        sales.append(sale)
                    self.session.flush()
            except (InsufficientStockError, ItemInactiveError) as exc:
                logger.warning(
                    "checkout_rejected_lost_race",
                    extra={"event_id": str(event_id), "error_code": exc.code},
                )
                raise
            except SQLAlchemyError as exc:
                logger.error(
                    "transaction_rolled_back",
                    extra={"event_id": str(event_id), "error": str(exc)},
                )
                raise TransactionFailedError(order_id, str(exc)) from exc

            records = tuple(SaleRecord.from_model(s) for s in sales)
            remaining = {
                item_id: self._inventory.remaining(item_id) for item_id in quantities
            }
            total = round_money(sum((s.total_price for s in records), Decimal("0")))
            item_count = sum(s.quantity for s in records)

            logger.info(
                "checkout_committed",
                extra={
                    "event_id": str(event_id),
                    "day_number": event.current_day,
                    "line_count": len(records),
                    "item_count": item_count,
                    "total": total,
                    "terminal_id": terminal_id,
                },
            )

            return CheckoutResult(
                order_id=order_id,
                sales=records,
                remaining=remaining,
                total=total,
                item_count=item_count,
            )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _normalize(self, cart: CartInput) -> dict[UUID, int]:
        quantities: dict[UUID, int] = {}
        for line in cart:
            try:
                if isinstance(line, CartLine):
                    item_id, qty = line.item_id, line.quantity
                elif isinstance(line, Mapping):
                    item_id, qty = line["item_id"], line["quantity"]
                else:
                    item_id, qty = line
                if isinstance(item_id, str):
                    item_id = UUID(item_id)
            except (KeyError, TypeError, ValueError) as exc:
                raise ValueError(f"Malformed cart line {line!r}") from exc
            if not isinstance(item_id, UUID):
                raise ValueError(f"Malformed cart line {line!r}")
            if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
                raise ValueError(f"Quantity must be a positive integer, got {qty!r}")
            quantities[item_id] = quantities.get(item_id, 0) + qty

        if not quantities:
            raise EmptyCartError()
        if self._max_lines is not None and len(quantities) > self._max_lines:
            raise ValueError(
                f"Cart has {len(quantities)} lines; at most {self._max_lines} allowed"
            )
        if self._max_line_quantity is not None:
            for item_id, qty in quantities.items():
                if qty > self._max_line_quantity:
                    raise ValueError(
                        f"Quantity {qty} for item {item_id} exceeds the "
                        f"limit of {self._max_line_quantity}"
                    )
        return quantities

    def _get_open_event(self, event_id: UUID) -> MarketEvent:
        event = self.session.execute(
            select(MarketEvent)
            .where(MarketEvent.id == event_id)
            .with_for_update(read=True)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if event is None:
            raise EventNotFoundError(event_id)
        if event.is_archived:
            raise EventArchivedError(event_id, "check out")
        if not event.is_day_open:
            raise DayNotOpenError(event_id, "check out")
        return event

    def _load_items(
        self, event_id: UUID, quantities: dict[UUID, int]
    ) -> dict[UUID, EventItem]:
        rows = self.session.execute(
            select(EventItem)
            .where(EventItem.id.in_(list(quantities)))
            .execution_options(populate_existing=True)
        ).scalars()
        items = {item.id: item for item in rows}

        for item_id in quantities:
            item = items.get(item_id)
            if item is None or item.event_id != event_id:
                raise ItemNotFoundError(item_id)
            if not item.is_active:
                raise ItemInactiveError(item.id, item.name)
        return items

    def _check_stock(
        self, items: dict[UUID, EventItem], quantities: dict[UUID, int]
    ) -> None:
        shortages = [
            StockShortage(item_id, items[item_id].name, qty, items[item_id].remaining)
            for item_id, qty in quantities.items()
            if qty > items[item_id].remaining
        ]
        if shortages:
            logger.warning(
                "checkout_rejected_insufficient_stock",
                extra={
                    "shortages": [
                        {
                            "item_id": str(s.item_id),
                            "requested": s.requested,
                            "remaining": s.remaining,
                        }
                        for s in shortages
                    ],
                },
            )
            raise InsufficientStockError(shortages)
