"""
Module: market_kernel.models.deal
Responsibility: ORM persistence for bundle deals ("3 for $10") defined on an
    event.  Deals are declarative metadata: checkout never applies them.
Architecture position: Kernel > Models.  May import from db/ only.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column

from market_kernel.db.base import TrackedBase, UUIDString
from market_kernel.db.types import LongText, Money, Name, ShortCode


class EventDeal(TrackedBase):
    """Bundle offer shown to the operator as a hint."""

    __tablename__ = "event_deals"

    __table_args__ = (
        CheckConstraint("quantity_required >= 1", name="ck_deal_quantity"),
        CheckConstraint("deal_price >= 0", name="ck_deal_price"),
    )

    event_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("market_events.id"),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(Name, nullable=False)

    description: Mapped[str | None] = mapped_column(LongText, nullable=True)

    # None means the deal applies to items of any category
    category: Mapped[str | None] = mapped_column(ShortCode, nullable=True)

    quantity_required: Mapped[int] = mapped_column(Integer, nullable=False)

    deal_price: Mapped[Decimal] = mapped_column(Money, nullable=False)

    def __repr__(self) -> str:
        return f"<EventDeal {self.name}: {self.quantity_required} for {self.deal_price}>"
