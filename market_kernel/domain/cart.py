"""
Cart -- ephemeral value object for a terminal's pending order.

A Cart is never persisted.  Every operation returns a new Cart, so a terminal
can keep the previous cart around (for example to restore it after a failed
checkout) without copying.

Prices and names on the lines are display values; checkout always re-reads
the authoritative item row and snapshots *its* price onto the Sale.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from market_kernel.db.types import round_money


@dataclass(frozen=True)
class CartLine:
    """One item in the cart.

    Raises:
        ValueError: If quantity is not a positive integer.
    """

    item_id: UUID
    name: str
    unit_price: Decimal
    quantity: int
    unit_cost: Decimal = Decimal("0.00")
    category: str | None = None

    def __post_init__(self) -> None:
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise ValueError(f"Quantity must be an integer, got {self.quantity!r}")
        if self.quantity <= 0:
            raise ValueError(f"Quantity must be positive, got {self.quantity}")

    @property
    def line_total(self) -> Decimal:
        return round_money(self.unit_price * self.quantity)


@dataclass(frozen=True)
class Cart:
    """Immutable mapping of item id to CartLine, in insertion order."""

    lines: tuple[CartLine, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        ids = [line.item_id for line in self.lines]
        if len(ids) != len(set(ids)):
            raise ValueError("Cart lines must have distinct item ids; use Cart.of() to merge")

    @classmethod
    def of(cls, lines: Iterable[CartLine]) -> Cart:
        """Build a cart, merging lines that share an item id."""
        cart = cls()
        for line in lines:
            cart = cart.add(line)
        return cart

    def add(self, line: CartLine) -> Cart:
        """Add a line, or bump the quantity of an existing line for the item."""
        existing = self.get(line.item_id)
        if existing is None:
            return Cart(self.lines + (line,))
        merged = replace(existing, quantity=existing.quantity + line.quantity)
        return Cart(tuple(merged if l.item_id == line.item_id else l for l in self.lines))

    def remove(self, item_id: UUID) -> Cart:
        return Cart(tuple(l for l in self.lines if l.item_id != item_id))

    def set_quantity(self, item_id: UUID, quantity: int) -> Cart:
        """Change a line's quantity; zero removes the line.

        Raises:
            KeyError: If the item is not in the cart.
            ValueError: If quantity is negative.
        """
        existing = self.get(item_id)
        if existing is None:
            raise KeyError(item_id)
        if quantity == 0:
            return self.remove(item_id)
        updated = replace(existing, quantity=quantity)
        return Cart(tuple(updated if l.item_id == item_id else l for l in self.lines))

    def get(self, item_id: UUID) -> CartLine | None:
        for line in self.lines:
            if line.item_id == item_id:
                return line
        return None

    def quantities(self) -> dict[UUID, int]:
        return {line.item_id: line.quantity for line in self.lines}

    @property
    def subtotal(self) -> Decimal:
        return round_money(sum((l.line_total for l in self.lines), Decimal("0")))

    @property
    def item_count(self) -> int:
        return sum(l.quantity for l in self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def __len__(self) -> int:
        return len(self.lines)

    def __iter__(self):
        return iter(self.lines)
