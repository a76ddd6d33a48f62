"""
InventoryService -- authoritative stock counters for event items.

Responsibility:
    Owns ``starting_quantity`` and ``quantity_sold`` on every EventItem.
    Remaining stock is always ``starting_quantity - quantity_sold`` read
    fresh from the database; any count a terminal has cached is advisory.

Architecture position:
    Kernel > Services.  Leaf of the write side: CheckoutService and
    CorrectionService call into it; it calls nothing above models/.

Invariants enforced:
    - ``0 <= quantity_sold <= starting_quantity`` under any interleaving of
      terminals.  ``commit()`` is a single conditional UPDATE; there is no
      read-modify-write in application code.
    - Restock and price changes only happen while no day is open, so a
      day's sales are always rung up against one stock level and one price.
    - Items with sales are never deleted.  ``retire_item()`` hides them.

Failure modes:
    - InsufficientStockError: a commit or reservation exceeds remaining.
    - ItemNotFoundError / ItemInactiveError: bad or retired item.
    - RestockWhileDayOpenError: restock during an open day.
    - InvalidRestockError: new starting quantity below units already sold.
    - ItemReferencedError: delete of an item that has sales.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select, update

from market_kernel.db.types import to_money
from market_kernel.domain.dtos import ItemInfo
from market_kernel.exceptions import (
    EventArchivedError,
    InsufficientStockError,
    InvalidRestockError,
    ItemInactiveError,
    ItemNotFoundError,
    ItemReferencedError,
    PreconditionViolationError,
    RestockWhileDayOpenError,
    StockShortage,
)
from market_kernel.logging_config import get_logger
from market_kernel.models.item import EventItem
from market_kernel.models.sale import Sale
from market_kernel.services.base import BaseService

logger = get_logger("services.inventory")


def _validate_quantity(qty: int, what: str = "Quantity") -> None:
    if isinstance(qty, bool) or not isinstance(qty, int):
        raise ValueError(f"{what} must be an integer, got {qty!r}")
    if qty <= 0:
        raise ValueError(f"{what} must be positive, got {qty}")


class InventoryService(BaseService[EventItem]):
    """
    Stock ledger for event items.

    Guarantees:
        - ``remaining()`` never returns a cached value.
        - ``commit()`` either applies the whole quantity or raises; it never
          leaves quantity_sold above starting_quantity.
    """

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def remaining(self, item_id: UUID) -> int:
        """Authoritative remaining stock, read straight from the row."""
        value = self.session.execute(
            select(EventItem.starting_quantity - EventItem.quantity_sold).where(
                EventItem.id == item_id
            )
        ).scalar_one_or_none()
        if value is None:
            raise ItemNotFoundError(item_id)
        return int(value)

    def get_item(self, item_id: UUID) -> ItemInfo:
        return ItemInfo.from_model(self._get_item(item_id))

    def list_items(self, event_id: UUID, include_inactive: bool = True) -> list[ItemInfo]:
        stmt = select(EventItem).where(EventItem.event_id == event_id)
        if not include_inactive:
            stmt = stmt.where(EventItem.is_active.is_(True))
        stmt = stmt.order_by(EventItem.name, EventItem.id)
        items = self.session.execute(
            stmt.execution_options(populate_existing=True)
        ).scalars()
        return [ItemInfo.from_model(item) for item in items]

    def reserve(self, item_id: UUID, qty: int) -> None:
        """
        Check that ``qty`` units could be sold right now.

        Pure check: nothing is held.  A later ``commit()`` can still lose a
        race to another terminal.

        Raises:
            InsufficientStockError: If qty exceeds remaining.
        """
        _validate_quantity(qty)
        item = self._get_item(item_id)
        if qty > item.remaining:
            raise InsufficientStockError(
                [StockShortage(item.id, item.name, qty, item.remaining)]
            )

    # ------------------------------------------------------------------
    # Counter mutation
    # ------------------------------------------------------------------

    def commit(self, item_id: UUID, qty: int) -> None:
        """
        Atomically add ``qty`` to quantity_sold if stock allows.

        Issues one UPDATE guarded by ``quantity_sold + qty <=
        starting_quantity AND is_active``.  Zero affected rows means another
        terminal got there first (or the item was retired).

        Raises:
            InsufficientStockError: If the guarded update matched no row.
            ItemInactiveError: If the item was retired.
            ItemNotFoundError: If the item does not exist.
        """
        _validate_quantity(qty)
        result = self.session.execute(
            update(EventItem)
            .where(
                EventItem.id == item_id,
                EventItem.quantity_sold + qty <= EventItem.starting_quantity,
                EventItem.is_active.is_(True),
            )
            .values(quantity_sold=EventItem.quantity_sold + qty)
            .execution_options(synchronize_session=False)
        )
        self._expire_counters(item_id)

        if result.rowcount == 1:
            logger.debug(
                "inventory_committed",
                extra={"item_id": str(item_id), "quantity": qty},
            )
            return

        item = self._get_item(item_id)
        if not item.is_active:
            raise ItemInactiveError(item.id, item.name)
        raise InsufficientStockError(
            [StockShortage(item.id, item.name, qty, item.remaining)]
        )

    def release(self, item_id: UUID, qty: int) -> None:
        """
        Give ``qty`` units back to stock (used by sale voids).

        Guarded by ``quantity_sold >= qty`` so the counter can never go
        negative.

        Raises:
            ValueError: If fewer than qty units are recorded as sold.
        """
        _validate_quantity(qty)
        result = self.session.execute(
            update(EventItem)
            .where(EventItem.id == item_id, EventItem.quantity_sold >= qty)
            .values(quantity_sold=EventItem.quantity_sold - qty)
            .execution_options(synchronize_session=False)
        )
        self._expire_counters(item_id)
        if result.rowcount != 1:
            raise ValueError(
                f"Cannot release {qty} units of item {item_id}: fewer units recorded as sold"
            )

    def _expire_counters(self, item_id: UUID) -> None:
        key = self.session.identity_key(EventItem, item_id)
        item = self.session.identity_map.get(key)
        if item is not None:
            self.session.expire(item, ["quantity_sold", "starting_quantity"])

    # ------------------------------------------------------------------
    # Restock
    # ------------------------------------------------------------------

    def restock(self, item_id: UUID, new_starting_quantity: int) -> ItemInfo:
        """
        Set a new starting quantity for the next day.

        Only ``starting_quantity`` changes; units already sold stay sold, so
        remaining carries over between days.

        Raises:
            RestockWhileDayOpenError: If a day is open for the item's event.
            InvalidRestockError: If the new value is below quantity_sold.
            ValueError: If the new value is negative.
        """
        if isinstance(new_starting_quantity, bool) or not isinstance(new_starting_quantity, int):
            raise ValueError(f"Starting quantity must be an integer, got {new_starting_quantity!r}")
        if new_starting_quantity < 0:
            raise ValueError(f"Starting quantity cannot be negative, got {new_starting_quantity}")

        item = self._get_item(item_id)
        # Lock the event row so a concurrent start_day waits for us
        event = self._get_event(item.event_id, for_update=True)
        if event.is_day_open:
            raise RestockWhileDayOpenError(event.id, item_id)

        item = self._get_item(item_id, for_update=True)
        if new_starting_quantity < item.quantity_sold:
            raise InvalidRestockError(item_id, new_starting_quantity, item.quantity_sold)

        previous = item.starting_quantity
        item.starting_quantity = new_starting_quantity
        self.session.flush()

        logger.info(
            "item_restocked",
            extra={
                "event_id": str(event.id),
                "item_id": str(item_id),
                "previous_starting_quantity": previous,
                "new_starting_quantity": new_starting_quantity,
                "quantity_sold": item.quantity_sold,
            },
        )
        return ItemInfo.from_model(item)

    def add_stock(self, item_id: UUID, additional: int) -> ItemInfo:
        """Increase starting_quantity by ``additional`` units."""
        _validate_quantity(additional, "Additional stock")
        item = self._get_item(item_id)
        return self.restock(item_id, item.starting_quantity + additional)

    # ------------------------------------------------------------------
    # Catalog mutation
    # ------------------------------------------------------------------

    def add_item(
        self,
        event_id: UUID,
        name: str,
        price: Decimal | int | str,
        starting_quantity: int,
        cost: Decimal | int | str = Decimal("0.00"),
        category: str | None = None,
        bake_id: str | None = None,
    ) -> ItemInfo:
        """
        Add a sellable item to an event.

        Raises:
            EventNotFoundError: If the event does not exist.
            EventArchivedError: If the event is archived.
            ValueError: On a blank name, negative price/cost or stock.
        """
        if not name or not name.strip():
            raise ValueError("Item name is required")
        price = to_money(price)
        cost = to_money(cost)
        if price < 0 or cost < 0:
            raise ValueError("Price and cost cannot be negative")
        if isinstance(starting_quantity, bool) or not isinstance(starting_quantity, int):
            raise ValueError(f"Starting quantity must be an integer, got {starting_quantity!r}")
        if starting_quantity < 0:
            raise ValueError("Starting quantity cannot be negative")

        event = self._get_event(event_id)
        if event.is_archived:
            raise EventArchivedError(event_id, "add item")

        item = EventItem(
            event_id=event_id,
            name=name.strip(),
            price=price,
            cost=cost,
            category=category,
            starting_quantity=starting_quantity,
            quantity_sold=0,
            is_active=True,
            bake_id=bake_id,
        )
        self.session.add(item)
        self.session.flush()

        logger.info(
            "item_added",
            extra={
                "event_id": str(event_id),
                "item_id": str(item.id),
                "item_name": item.name,
                "starting_quantity": starting_quantity,
            },
        )
        return ItemInfo.from_model(item)

    def remove_item(self, item_id: UUID) -> None:
        """
        Delete an item that has never been sold.

        Raises:
            ItemReferencedError: If any Sale references the item.
        """
        item = self._get_item(item_id, for_update=True)
        sale_count = self.session.execute(
            select(func.count(Sale.id)).where(Sale.event_item_id == item_id)
        ).scalar_one()
        if sale_count:
            raise ItemReferencedError(item_id, sale_count=sale_count)

        self.session.delete(item)
        self.session.flush()
        logger.info(
            "item_removed",
            extra={"event_id": str(item.event_id), "item_id": str(item_id)},
        )

    def retire_item(self, item_id: UUID) -> ItemInfo:
        """Stop selling an item while keeping its sales history."""
        return self._set_active(item_id, False)

    def reactivate_item(self, item_id: UUID) -> ItemInfo:
        return self._set_active(item_id, True)

    def _set_active(self, item_id: UUID, active: bool) -> ItemInfo:
        item = self._get_item(item_id, for_update=True)
        if item.is_active != active:
            item.is_active = active
            self.session.flush()
            logger.info(
                "item_reactivated" if active else "item_retired",
                extra={"event_id": str(item.event_id), "item_id": str(item_id)},
            )
        return ItemInfo.from_model(item)

    def update_item_pricing(
        self,
        item_id: UUID,
        price: Decimal | int | str | None = None,
        cost: Decimal | int | str | None = None,
    ) -> ItemInfo:
        """
        Change an item's price and/or unit cost between days.

        Recorded sales keep their snapshots.

        Raises:
            PreconditionViolationError: If a day is open.
            ValueError: On a negative amount.
        """
        item = self._get_item(item_id)
        event = self._get_event(item.event_id, for_update=True)
        if event.is_day_open:
            raise PreconditionViolationError(
                event.id,
                "update pricing",
                "close the current day before changing prices",
            )

        item = self._get_item(item_id, for_update=True)
        if price is not None:
            price = to_money(price)
            if price < 0:
                raise ValueError("Price cannot be negative")
            item.price = price
        if cost is not None:
            cost = to_money(cost)
            if cost < 0:
                raise ValueError("Cost cannot be negative")
            item.cost = cost
        self.session.flush()

        logger.info(
            "item_pricing_updated",
            extra={
                "event_id": str(event.id),
                "item_id": str(item_id),
                "price": item.price,
                "cost": item.cost,
            },
        )
        return ItemInfo.from_model(item)
