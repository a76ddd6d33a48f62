"""Pure domain layer: clock, cart, day state, deal hints and DTOs. No I/O."""

from market_kernel.domain.cart import Cart, CartLine
from market_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from market_kernel.domain.day_state import DayClosed, DayOpen, DayState
from market_kernel.domain.deals import DealHint, suggest_deals

__all__ = [
    "Cart",
    "CartLine",
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "DayOpen",
    "DayClosed",
    "DayState",
    "DealHint",
    "suggest_deals",
]
