"""
Tests for EventRunner, the transaction-owning terminal facade.

The ``session`` fixture joins an outer transaction, so the runner's commits
release savepoints and everything is undone at teardown.
"""

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from market_config.schema import CheckoutConfig, MarketConfig
from market_kernel.domain.cart import Cart, CartLine
from market_kernel.exceptions import (
    DayNotOpenError,
    InsufficientStockError,
    RestockWhileDayOpenError,
    TransactionFailedError,
)
from market_kernel.services.event_runner import EventRunner


@pytest.fixture
def runner_for(session, deterministic_clock):
    def _make(event_id, **kwargs):
        kwargs.setdefault("terminal_id", "till-1")
        return EventRunner(session, event_id, clock=deterministic_clock, **kwargs)

    return _make


class TestDayFlow:
    def test_full_day(self, runner_for, create_event, create_item, inventory_service):
        event = create_event()
        item = create_item(event.id, price="6.00", starting_quantity=10)
        runner = runner_for(event.id)

        assert runner.start_day().current_day == 1
        result = runner.checkout([(item.id, 2)])
        assert result.total == Decimal("12.00")

        live = runner.live_metrics()
        assert live.is_open
        assert live.revenue == Decimal("12.00")

        closed = runner.end_day()
        assert closed.summary.revenue == Decimal("12.00")

        assert runner.restock(item.id, 15).remaining == 13
        assert runner.add_stock(item.id, 5).starting_quantity == 20
        assert runner.complete_event().status == "completed"

    def test_voids_through_runner(
        self, runner_for, create_event, create_item, inventory_service, deterministic_clock
    ):
        event = create_event()
        item = create_item(event.id, starting_quantity=10)
        runner = runner_for(event.id)
        runner.start_day()
        first = runner.checkout([(item.id, 1)])
        deterministic_clock.advance(60)
        runner.checkout([(item.id, 2)])

        runner.void_last_order("wrong item")
        assert inventory_service.remaining(item.id) == 9
        runner.void_order(first.order_id, "refund")
        assert inventory_service.remaining(item.id) == 10

    def test_void_single_sale(self, runner_for, create_event, create_item, inventory_service):
        event = create_event()
        item = create_item(event.id, starting_quantity=10)
        runner = runner_for(event.id)
        runner.start_day()
        result = runner.checkout([(item.id, 4)])

        void = runner.void_sale(result.sales[0].id, "mistake")

        assert void.quantity_restored == 4
        assert inventory_service.remaining(item.id) == 10

    def test_deal_hints(self, runner_for, catalog_service, create_event, create_item):
        event = create_event()
        cookie = create_item(event.id, name="Cookie", price="4.00", category="cookies")
        catalog_service.add_deal(event.id, "3 for $10", 3, "10.00", category="cookies")
        runner = runner_for(event.id)

        cart = Cart.of([CartLine(cookie.id, cookie.name, cookie.price, 3, category="cookies")])
        hints = runner.deal_hints(cart)

        assert [h.name for h in hints] == ["3 for $10"]
        assert hints[0].savings == Decimal("2.00")


class TestUnitOfWork:
    def test_failed_checkout_rolls_back(
        self, runner_for, create_event, create_item, inventory_service, sales_selector
    ):
        event = create_event()
        plenty = create_item(event.id, name="Rye", starting_quantity=10)
        scarce = create_item(event.id, name="Bun", starting_quantity=1)
        runner = runner_for(event.id)
        runner.start_day()

        with pytest.raises(InsufficientStockError):
            runner.checkout([(plenty.id, 1), (scarce.id, 5)])

        assert inventory_service.remaining(plenty.id) == 10
        assert sales_selector.list_sales(event.id) == []

    def test_kernel_errors_propagate_unchanged(self, runner_for, create_event, create_item):
        event = create_event()
        item = create_item(event.id)
        with pytest.raises(DayNotOpenError):
            runner_for(event.id).checkout([(item.id, 1)])

    def test_value_error_propagates(self, runner_for, create_event, create_item):
        event = create_event()
        item = create_item(event.id)
        runner = runner_for(event.id)
        runner.start_day()
        with pytest.raises(ValueError):
            runner.checkout([(item.id, 0)])

    def test_malformed_cart_line_is_not_retryable(
        self, runner_for, create_event, create_item, inventory_service
    ):
        event = create_event()
        item = create_item(event.id, starting_quantity=4)
        runner = runner_for(event.id)
        runner.start_day()

        with pytest.raises(ValueError, match="Malformed cart line") as exc_info:
            runner.checkout([{"item_id": item.id}])

        assert not isinstance(exc_info.value, TransactionFailedError)
        assert inventory_service.remaining(item.id) == 4

    def test_unexpected_error_becomes_transaction_failed(
        self, runner_for, create_event, create_item, monkeypatch
    ):
        event = create_event()
        item = create_item(event.id)
        runner = runner_for(event.id)
        runner.start_day()

        def broken(*args, **kwargs):
            raise RuntimeError("disk I/O error")

        monkeypatch.setattr(runner._checkout, "checkout", broken)

        with pytest.raises(TransactionFailedError) as exc_info:
            runner.checkout([(item.id, 1)])
        assert exc_info.value.retryable
        assert "disk I/O error" in exc_info.value.reason

    def test_commit_failure_becomes_transaction_failed(
        self, session, runner_for, create_event, create_item, monkeypatch
    ):
        event = create_event()
        item = create_item(event.id)
        runner = runner_for(event.id)
        runner.start_day()

        def failing_commit():
            raise OperationalError("COMMIT", {}, Exception("connection lost"))

        monkeypatch.setattr(session, "commit", failing_commit)

        with pytest.raises(TransactionFailedError):
            runner.checkout([(item.id, 1)])

    def test_restock_during_day_rolls_back(self, runner_for, create_event, create_item):
        event = create_event()
        item = create_item(event.id)
        runner = runner_for(event.id)
        runner.start_day()
        with pytest.raises(RestockWhileDayOpenError):
            runner.restock(item.id, 50)

    def test_auto_commit_off_leaves_transaction_open(
        self, session, runner_for, create_event
    ):
        event = create_event()
        runner = runner_for(event.id, auto_commit=False)
        runner.start_day()
        assert session.in_transaction()
        session.rollback()


class TestLogging:
    def test_operation_logs_carry_context(
        self, runner_for, create_event, create_item, captured_logs
    ):
        event = create_event()
        item = create_item(event.id)
        runner = runner_for(event.id)
        runner.start_day()
        runner.checkout([(item.id, 1)])

        completed = [r for r in captured_logs() if r["message"] == "operation_completed"]
        assert [r["operation"] for r in completed] == ["start_day", "checkout"]
        for record in completed:
            assert record["event_id"] == str(event.id)
            assert record["terminal_id"] == "till-1"
            assert "correlation_id" in record
            assert record["duration_ms"] >= 0
        assert completed[0]["correlation_id"] != completed[1]["correlation_id"]

    def test_failure_logged(self, runner_for, create_event, create_item, captured_logs):
        event = create_event()
        item = create_item(event.id)
        with pytest.raises(DayNotOpenError):
            runner_for(event.id).checkout([(item.id, 1)])

        failed = [r for r in captured_logs() if r["message"] == "operation_failed"]
        assert failed[0]["error_code"] == "DAY_NOT_OPEN"
        assert failed[0]["level"] == "WARNING"


class TestFromConfig:
    def test_checkout_limits_from_config(self, session, deterministic_clock, create_event, create_item):
        event = create_event()
        a = create_item(event.id, name="A")
        b = create_item(event.id, name="B")
        config = MarketConfig(checkout=CheckoutConfig(max_lines=1, max_line_quantity=3))
        runner = EventRunner.from_config(session, event.id, config, clock=deterministic_clock)
        runner.start_day()

        with pytest.raises(ValueError):
            runner.checkout([(a.id, 1), (b.id, 1)])
        with pytest.raises(ValueError):
            runner.checkout([(a.id, 4)])
        assert runner.checkout([(a.id, 3)]).item_count == 3
