"""
Module: market_kernel.models.item
Responsibility: ORM persistence for the sellable items of an event and their
    inventory counters.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - 0 <= quantity_sold <= starting_quantity (ck_item_quantity_bounds).
      InventoryService maintains it with a single conditional UPDATE; the
      check constraint backs it up for any other writer.
    - Items referenced by sales are never deleted (db/immutability.py);
      retire them with is_active = False.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column

from market_kernel.db.base import TrackedBase, UUIDString
from market_kernel.db.types import Money, Name, ShortCode


class EventItem(TrackedBase):
    """A product offered at an event, with its stock counters."""

    __tablename__ = "event_items"

    __table_args__ = (
        CheckConstraint(
            "quantity_sold >= 0 AND quantity_sold <= starting_quantity",
            name="ck_item_quantity_bounds",
        ),
        CheckConstraint("price >= 0", name="ck_item_price"),
        CheckConstraint("cost >= 0", name="ck_item_cost"),
        Index("idx_item_event", "event_id"),
    )

    event_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("market_events.id"),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(Name, nullable=False)

    price: Mapped[Decimal] = mapped_column(Money, nullable=False)

    # Unit cost of goods, supplied by the recipe costing collaborator
    cost: Mapped[Decimal] = mapped_column(Money, default=Decimal("0.00"), nullable=False)

    category: Mapped[str | None] = mapped_column(ShortCode, nullable=True)

    starting_quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    quantity_sold: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    # Reference into the external bake catalog
    bake_id: Mapped[str | None] = mapped_column(ShortCode, nullable=True)

    def __repr__(self) -> str:
        return f"<EventItem {self.name}: {self.quantity_sold}/{self.starting_quantity}>"

    @property
    def remaining(self) -> int:
        return self.starting_quantity - self.quantity_sold
