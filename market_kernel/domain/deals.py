"""
Deal hints -- which bundle deals the current cart qualifies for.

Pure and display-only: checkout never applies a deal.  The operator sees the
hint and decides what to charge.

Each deal is priced against the cheapest qualifying units in the cart, so
the savings shown are never overstated.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Protocol
from uuid import UUID

from market_kernel.db.types import round_money
from market_kernel.domain.cart import Cart


class DealLike(Protocol):
    id: UUID
    name: str
    category: str | None
    quantity_required: int
    deal_price: Decimal


@dataclass(frozen=True)
class DealHint:
    deal_id: UUID
    name: str
    times_applicable: int
    regular_price: Decimal
    deal_price: Decimal

    @property
    def savings(self) -> Decimal:
        return round_money(self.regular_price - self.deal_price)


def _qualifying_unit_prices(cart: Cart, category: str | None) -> list[Decimal]:
    prices: list[Decimal] = []
    for line in cart:
        if category is None or line.category == category:
            prices.extend([line.unit_price] * line.quantity)
    return sorted(prices)


def suggest_deals(cart: Cart, deals: Iterable[DealLike]) -> list[DealHint]:
    """
    Return a hint for every deal the cart qualifies for at least once and
    that actually saves money, largest savings first.
    """
    hints: list[DealHint] = []
    for deal in deals:
        if deal.quantity_required <= 0:
            continue
        prices = _qualifying_unit_prices(cart, deal.category)
        times = len(prices) // deal.quantity_required
        if times == 0:
            continue
        used = prices[: times * deal.quantity_required]
        hint = DealHint(
            deal_id=deal.id,
            name=deal.name,
            times_applicable=times,
            regular_price=round_money(sum(used, Decimal("0"))),
            deal_price=round_money(deal.deal_price * times),
        )
        if hint.savings > 0:
            hints.append(hint)

    hints.sort(key=lambda h: (-h.savings, h.name))
    return hints
