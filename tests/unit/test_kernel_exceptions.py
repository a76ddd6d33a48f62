"""
Unit tests for the typed exception hierarchy.

Terminals branch on exception type and ``code``; these tests pin both.
"""

from uuid import uuid4

import pytest

from market_kernel.exceptions import (
    CorrectionWindowClosedError,
    DayAlreadyOpenError,
    DayNotOpenError,
    DuplicateDayCloseError,
    EmptyCartError,
    EventArchivedError,
    ImmutabilityViolationError,
    InsufficientStockError,
    InventoryError,
    InvalidRestockError,
    ItemReferencedError,
    MarketKernelError,
    PreconditionViolationError,
    RestockWhileDayOpenError,
    StockShortage,
    TransactionFailedError,
)


class TestInsufficientStockError:
    def test_names_every_offending_item(self):
        a, b = uuid4(), uuid4()
        err = InsufficientStockError(
            [StockShortage(a, "Sourdough", 3, 1), StockShortage(b, "Focaccia", 2, 0)]
        )
        assert err.code == "INSUFFICIENT_STOCK"
        assert err.item_ids == (a, b)
        assert "Sourdough: only 1 left" in err.user_message
        assert "Focaccia: only 0 left" in err.user_message
        assert str(a) in str(err)

    def test_not_retryable(self):
        err = InsufficientStockError([StockShortage(uuid4(), "x", 1, 0)])
        assert err.retryable is False


class TestHierarchy:
    @pytest.mark.parametrize(
        "exc",
        [
            DayAlreadyOpenError("e", 1),
            DayNotOpenError("e", "check out"),
            EventArchivedError("e", "start day"),
            RestockWhileDayOpenError("e", "i"),
        ],
    )
    def test_precondition_violations(self, exc):
        assert isinstance(exc, PreconditionViolationError)
        assert isinstance(exc, MarketKernelError)

    def test_restock_while_open_is_also_inventory_error(self):
        err = RestockWhileDayOpenError("e", "i")
        assert isinstance(err, InventoryError)
        assert err.code == "RESTOCK_WHILE_DAY_OPEN"
        assert err.item_id == "i"

    def test_only_transaction_failed_is_retryable(self):
        retryable = [
            e
            for e in (
                EmptyCartError(),
                TransactionFailedError(uuid4(), "disk I/O error"),
                DuplicateDayCloseError("e", 1),
                ItemReferencedError("i", sale_count=2),
                InvalidRestockError("i", 1, 3),
                CorrectionWindowClosedError("s", 1),
                ImmutabilityViolationError("Sale", "s", "no edits"),
            )
            if e.retryable
        ]
        assert [type(e) for e in retryable] == [TransactionFailedError]

    def test_transaction_failed_without_order(self):
        err = TransactionFailedError(None, "commit failed")
        assert err.order_id is None
        assert err.reason == "commit failed"

    def test_codes_are_unique(self):
        samples = [
            DayAlreadyOpenError("e", 1),
            DayNotOpenError("e", "x"),
            EventArchivedError("e", "x"),
            EmptyCartError(),
            TransactionFailedError(None, "x"),
            DuplicateDayCloseError("e", 1),
            ItemReferencedError("i"),
            InvalidRestockError("i", 1, 2),
            CorrectionWindowClosedError("s", 1),
        ]
        codes = [e.code for e in samples]
        assert len(codes) == len(set(codes))

    def test_invalid_restock_message(self):
        err = InvalidRestockError("i", 2, 5)
        assert err.quantity_sold == 5
        assert "5 already sold" in err.user_message
