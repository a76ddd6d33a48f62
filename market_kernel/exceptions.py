"""
Typed Exception Hierarchy for the Market Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

A checkout that fails must tell the terminal *what* failed so the operator
can act: refresh stock and shrink the cart, wait for the day to open, or
re-read state before retrying.  Parsing message strings for that decision
is fragile, so every error here:

  1. Has its own class (catch by type, not message)
  2. Has a CODE attribute (machine-readable, API-safe)
  3. Carries structured DATA (item ids, quantities, day numbers)
  4. Offers a ``user_message`` suitable for a stall operator's screen

Example:
    try:
        runner.checkout(cart)
    except InsufficientStockError as e:
        for shortage in e.shortages:
            show(f"{shortage.item_name}: only {shortage.remaining} left")
    except TransactionFailedError:
        refresh_state()          # re-read BEFORE any retry
        show(TransactionFailedError.user_message)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from MarketKernelError:

    MarketKernelError (base)
    |
    +-- LifecycleError
    |   +-- EventNotFoundError
    |   +-- PreconditionViolationError
    |       +-- DayAlreadyOpenError
    |       +-- DayNotOpenError
    |       +-- EventArchivedError
    |       +-- EventCompletedError
    |       +-- RestockWhileDayOpenError   (also an InventoryError)
    |
    +-- InventoryError
    |   +-- InsufficientStockError
    |   +-- ItemNotFoundError
    |   +-- ItemInactiveError
    |   +-- ItemReferencedError
    |   +-- InvalidRestockError
    |
    +-- CheckoutError
    |   +-- EmptyCartError
    |   +-- TransactionFailedError
    |
    +-- DaySummaryError
    |   +-- DuplicateDayCloseError
    |
    +-- CorrectionError
    |   +-- SaleNotFoundError
    |   +-- CorrectionWindowClosedError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                      | When Raised
-------------|---------------------------|-------------------------------------------
Lifecycle    | EVENT_NOT_FOUND           | Event ID doesn't exist
             | PRECONDITION_VIOLATION    | Operation forbidden in current state
             | DAY_ALREADY_OPEN          | start_day while a day is open
             | DAY_NOT_OPEN              | end_day / checkout with no open day
             | EVENT_ARCHIVED            | Lifecycle call on an archived event
             | EVENT_COMPLETED           | start_day on a completed event
-------------|---------------------------|-------------------------------------------
Inventory    | INSUFFICIENT_STOCK        | Cart line exceeds remaining quantity
             | ITEM_NOT_FOUND            | Item ID doesn't exist (or other event)
             | ITEM_INACTIVE             | Item was retired
             | ITEM_REFERENCED           | Delete of an item with sales
             | INVALID_RESTOCK           | New stock below units already sold
             | RESTOCK_WHILE_DAY_OPEN    | Restock attempted during an open day
-------------|---------------------------|-------------------------------------------
Checkout     | EMPTY_CART                | Checkout with no lines
             | TRANSACTION_FAILED        | Storage failure during atomic commit
-------------|---------------------------|-------------------------------------------
Day summary  | DUPLICATE_DAY_CLOSE       | Day already summarized (strict mode)
-------------|---------------------------|-------------------------------------------
Correction   | SALE_NOT_FOUND            | Sale/order ID doesn't exist
             | CORRECTION_WINDOW_CLOSED  | Void of a sale from a closed day
-------------|---------------------------|-------------------------------------------
Immutability | IMMUTABILITY_VIOLATION    | Modifying a sale or day summary

===============================================================================
RETRY POLICY
===============================================================================

Only TransactionFailedError is retryable (``retryable = True``), and only
after the caller has re-read authoritative state: the failed attempt may
have committed before the connection dropped, and a blind retry could
double-sell.  Every other error is a decision for the operator.

DuplicateDayCloseError is normally NOT raised: closing an already-closed
day is reported as an idempotent result.  Callers that want a hard error
pass ``strict=True`` to DaySummaryService.close_day().
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


class MarketKernelError(Exception):
    """
    Base exception for all market kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "MARKET_KERNEL_ERROR"
    retryable: bool = False
    user_message: str = "Something went wrong. Please try again."


# Lifecycle exceptions


class LifecycleError(MarketKernelError):
    """Base exception for event lifecycle errors."""

    code: str = "LIFECYCLE_ERROR"


class EventNotFoundError(LifecycleError):
    """Event with given ID was not found."""

    code: str = "EVENT_NOT_FOUND"

    def __init__(self, event_id: UUID | str):
        self.event_id = str(event_id)
        self.user_message = "This event no longer exists."
        super().__init__(f"Event not found: {event_id}")


class PreconditionViolationError(LifecycleError):
    """A lifecycle operation was invoked in a state that forbids it.

    Never auto-retried: the caller must re-fetch the event and decide.
    """

    code: str = "PRECONDITION_VIOLATION"

    def __init__(self, event_id: UUID | str, operation: str, reason: str):
        self.event_id = str(event_id)
        self.operation = operation
        self.reason = reason
        self.user_message = reason
        super().__init__(
            f"Cannot {operation} for event {event_id}: {reason}"
        )


class DayAlreadyOpenError(PreconditionViolationError):
    """start_day was called while a day is already open."""

    code: str = "DAY_ALREADY_OPEN"

    def __init__(self, event_id: UUID | str, day_number: int):
        self.day_number = day_number
        super().__init__(
            event_id,
            "start day",
            f"day {day_number} is already open",
        )


class DayNotOpenError(PreconditionViolationError):
    """An operation that needs an open day was called while closed."""

    code: str = "DAY_NOT_OPEN"

    def __init__(self, event_id: UUID | str, operation: str):
        super().__init__(event_id, operation, "no sales day is open")


class EventArchivedError(PreconditionViolationError):
    """Lifecycle operation on an archived event."""

    code: str = "EVENT_ARCHIVED"

    def __init__(self, event_id: UUID | str, operation: str):
        super().__init__(event_id, operation, "the event is archived")


class EventCompletedError(PreconditionViolationError):
    """Attempt to open a day on a completed event."""

    code: str = "EVENT_COMPLETED"

    def __init__(self, event_id: UUID | str, operation: str):
        super().__init__(event_id, operation, "the event is completed")


# Inventory exceptions


class InventoryError(MarketKernelError):
    """Base exception for inventory ledger errors."""

    code: str = "INVENTORY_ERROR"


@dataclass(frozen=True)
class StockShortage:
    """One offending cart line in an InsufficientStockError."""

    item_id: UUID
    item_name: str
    requested: int
    remaining: int

    @property
    def message(self) -> str:
        return f"{self.item_name}: only {self.remaining} left"


class InsufficientStockError(InventoryError):
    """One or more cart lines exceed the authoritative remaining quantity.

    Recoverable: refresh stock levels and let the operator adjust the cart.
    The checkout as a whole was rejected; nothing was applied.
    """

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, shortages: list[StockShortage] | tuple[StockShortage, ...]):
        self.shortages = tuple(shortages)
        self.user_message = "; ".join(s.message for s in self.shortages)
        super().__init__(
            "Insufficient stock: "
            + ", ".join(
                f"{s.item_id} requested {s.requested}, remaining {s.remaining}"
                for s in self.shortages
            )
        )

    @property
    def item_ids(self) -> tuple[UUID, ...]:
        return tuple(s.item_id for s in self.shortages)


class ItemNotFoundError(InventoryError):
    """Event item with given ID was not found."""

    code: str = "ITEM_NOT_FOUND"

    def __init__(self, item_id: UUID | str):
        self.item_id = str(item_id)
        self.user_message = "This item is no longer on the menu."
        super().__init__(f"Event item not found: {item_id}")


class ItemInactiveError(InventoryError):
    """Item has been retired and can no longer be sold."""

    code: str = "ITEM_INACTIVE"

    def __init__(self, item_id: UUID | str, item_name: str):
        self.item_id = str(item_id)
        self.item_name = item_name
        self.user_message = f"{item_name} is no longer for sale."
        super().__init__(f"Event item {item_id} ({item_name}) is retired")


class ItemReferencedError(InventoryError):
    """Cannot delete an item that has sales; retire it instead."""

    code: str = "ITEM_REFERENCED"

    def __init__(self, item_id: UUID | str, sale_count: int | None = None):
        self.item_id = str(item_id)
        self.sale_count = sale_count
        self.user_message = "This item has sales. Retire it instead of deleting it."
        super().__init__(
            f"Event item {item_id} is referenced by sales and cannot be deleted"
        )


class InvalidRestockError(InventoryError):
    """New starting quantity is below the units already sold."""

    code: str = "INVALID_RESTOCK"

    def __init__(self, item_id: UUID | str, new_starting_quantity: int, quantity_sold: int):
        self.item_id = str(item_id)
        self.new_starting_quantity = new_starting_quantity
        self.quantity_sold = quantity_sold
        self.user_message = f"Stock cannot be lower than the {quantity_sold} already sold."
        super().__init__(
            f"Cannot restock item {item_id} to {new_starting_quantity}: "
            f"{quantity_sold} already sold"
        )


class RestockWhileDayOpenError(PreconditionViolationError, InventoryError):
    """Restock is only allowed while no day is open for the owning event."""

    code: str = "RESTOCK_WHILE_DAY_OPEN"

    def __init__(self, event_id: UUID | str, item_id: UUID | str):
        self.item_id = str(item_id)
        super().__init__(
            event_id,
            "restock",
            "close the current day before restocking",
        )


# Checkout exceptions


class CheckoutError(MarketKernelError):
    """Base exception for checkout errors."""

    code: str = "CHECKOUT_ERROR"


class EmptyCartError(CheckoutError):
    """Checkout was attempted with an empty cart."""

    code: str = "EMPTY_CART"
    user_message = "The cart is empty."

    def __init__(self) -> None:
        super().__init__("Cannot check out an empty cart")


class TransactionFailedError(CheckoutError):
    """Storage-level failure during the atomic checkout commit.

    The only retryable error, and only after a fresh read of authoritative
    state: the attempt may have committed before the failure surfaced.
    """

    code: str = "TRANSACTION_FAILED"
    retryable: bool = True
    user_message = "The sale could not be saved. Check the stock counts and try again."

    def __init__(self, order_id: UUID | str | None, reason: str):
        self.order_id = str(order_id) if order_id is not None else None
        self.reason = reason
        super().__init__(f"Checkout transaction failed (order {order_id}): {reason}")


# Day summary exceptions


class DaySummaryError(MarketKernelError):
    """Base exception for day summary errors."""

    code: str = "DAY_SUMMARY_ERROR"


class DuplicateDayCloseError(DaySummaryError):
    """A summary already exists for this (event, day_number)."""

    code: str = "DUPLICATE_DAY_CLOSE"

    def __init__(self, event_id: UUID | str, day_number: int):
        self.event_id = str(event_id)
        self.day_number = day_number
        self.user_message = f"Day {day_number} is already closed."
        super().__init__(f"Day {day_number} of event {event_id} is already closed")


# Correction exceptions


class CorrectionError(MarketKernelError):
    """Base exception for sale correction errors."""

    code: str = "CORRECTION_ERROR"


class SaleNotFoundError(CorrectionError):
    """Sale (or order) with given ID was not found."""

    code: str = "SALE_NOT_FOUND"

    def __init__(self, sale_ref: UUID | str):
        self.sale_ref = str(sale_ref)
        super().__init__(f"Sale not found: {sale_ref}")


class CorrectionWindowClosedError(CorrectionError):
    """Sales from a summarized (closed) day cannot be voided."""

    code: str = "CORRECTION_WINDOW_CLOSED"

    def __init__(self, sale_ref: UUID | str, day_number: int):
        self.sale_ref = str(sale_ref)
        self.day_number = day_number
        self.user_message = f"Day {day_number} is closed; its sales can no longer be voided."
        super().__init__(
            f"Cannot void {sale_ref}: day {day_number} is already closed"
        )


# Immutability exceptions


class ImmutabilityError(MarketKernelError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted modification of an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify {entity_type} {entity_id}: {reason}"
        )
