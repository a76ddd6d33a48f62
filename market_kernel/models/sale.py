"""
Module: market_kernel.models.sale
Responsibility: ORM persistence for the append-only sales ledger.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - One row per cart line; every row of a checkout shares its order_id.
    - Rows are never updated.  Deletes only happen through an explicit void
      (see db/immutability.py allow_sale_correction).
    - unit_price / unit_cost are snapshots taken at checkout, so later price
      edits never rewrite history.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from market_kernel.db.base import TrackedBase, UUIDString
from market_kernel.db.types import Money, ShortCode
from market_kernel.models.item import EventItem


class Sale(TrackedBase):
    """One line of a completed checkout."""

    __tablename__ = "event_sales"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_sale_quantity"),
        Index("idx_sale_event_day", "event_id", "day_number"),
        Index("idx_sale_order", "order_id"),
        Index("idx_sale_item", "event_item_id"),
    )

    event_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("market_events.id"),
        nullable=False,
    )

    event_item_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("event_items.id"),
        nullable=False,
    )

    order_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    unit_price: Mapped[Decimal] = mapped_column(Money, nullable=False)

    unit_cost: Mapped[Decimal] = mapped_column(Money, nullable=False)

    total_price: Mapped[Decimal] = mapped_column(Money, nullable=False)

    sold_at: Mapped[datetime] = mapped_column(nullable=False)

    # Day of the event that was open when the sale was rung up
    day_number: Mapped[int] = mapped_column(Integer, nullable=False)

    terminal_id: Mapped[str | None] = mapped_column(ShortCode, nullable=True)

    item: Mapped["EventItem"] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return f"<Sale {self.order_id} item={self.event_item_id} qty={self.quantity}>"
