"""
Tests for InventoryService.

Covers the authoritative stock counters, the guarded commit/release updates,
restock between days and the catalog mutations that touch items.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from market_kernel.exceptions import (
    EventArchivedError,
    InsufficientStockError,
    InvalidRestockError,
    ItemInactiveError,
    ItemNotFoundError,
    ItemReferencedError,
    PreconditionViolationError,
    RestockWhileDayOpenError,
)


class TestReads:
    def test_remaining_is_fresh(self, inventory_service, create_event, create_item):
        event = create_event()
        item = create_item(event.id, starting_quantity=7)
        assert inventory_service.remaining(item.id) == 7

        inventory_service.commit(item.id, 2)
        assert inventory_service.remaining(item.id) == 5

    def test_remaining_unknown_item(self, inventory_service):
        with pytest.raises(ItemNotFoundError):
            inventory_service.remaining(uuid4())

    def test_list_items_sorted_by_name(self, inventory_service, create_event, create_item):
        event = create_event()
        create_item(event.id, name="Rye")
        create_item(event.id, name="Baguette")
        retired = create_item(event.id, name="Focaccia")
        inventory_service.retire_item(retired.id)

        assert [i.name for i in inventory_service.list_items(event.id)] == [
            "Baguette",
            "Focaccia",
            "Rye",
        ]
        assert [i.name for i in inventory_service.list_items(event.id, include_inactive=False)] == [
            "Baguette",
            "Rye",
        ]

    def test_reserve_is_a_pure_check(self, inventory_service, create_event, create_item):
        event = create_event()
        item = create_item(event.id, starting_quantity=3)

        inventory_service.reserve(item.id, 3)
        assert inventory_service.remaining(item.id) == 3

        with pytest.raises(InsufficientStockError) as exc_info:
            inventory_service.reserve(item.id, 4)
        assert exc_info.value.shortages[0].remaining == 3


class TestCommitAndRelease:
    def test_commit_exact_remaining(self, inventory_service, create_event, create_item):
        event = create_event()
        item = create_item(event.id, starting_quantity=4)
        inventory_service.commit(item.id, 4)
        assert inventory_service.get_item(item.id).quantity_sold == 4
        assert inventory_service.remaining(item.id) == 0

    def test_commit_beyond_remaining_changes_nothing(
        self, inventory_service, create_event, create_item
    ):
        event = create_event()
        item = create_item(event.id, starting_quantity=4)
        inventory_service.commit(item.id, 3)

        with pytest.raises(InsufficientStockError) as exc_info:
            inventory_service.commit(item.id, 2)

        shortage = exc_info.value.shortages[0]
        assert shortage.requested == 2
        assert shortage.remaining == 1
        assert inventory_service.get_item(item.id).quantity_sold == 3

    def test_commit_retired_item(self, inventory_service, create_event, create_item):
        event = create_event()
        item = create_item(event.id)
        inventory_service.retire_item(item.id)
        with pytest.raises(ItemInactiveError):
            inventory_service.commit(item.id, 1)

    @pytest.mark.parametrize("qty", [0, -3, 1.5])
    def test_commit_rejects_bad_quantity(self, inventory_service, create_event, create_item, qty):
        event = create_event()
        item = create_item(event.id)
        with pytest.raises(ValueError):
            inventory_service.commit(item.id, qty)

    def test_release(self, inventory_service, create_event, create_item):
        event = create_event()
        item = create_item(event.id, starting_quantity=5)
        inventory_service.commit(item.id, 3)
        inventory_service.release(item.id, 2)
        assert inventory_service.remaining(item.id) == 4

    def test_release_never_goes_negative(self, inventory_service, create_event, create_item):
        event = create_event()
        item = create_item(event.id, starting_quantity=5)
        inventory_service.commit(item.id, 1)
        with pytest.raises(ValueError):
            inventory_service.release(item.id, 2)
        assert inventory_service.get_item(item.id).quantity_sold == 1


class TestRestock:
    def test_restock_between_days(
        self, inventory_service, lifecycle_service, checkout_service, create_event, create_item
    ):
        event = create_event()
        item = create_item(event.id, starting_quantity=10)
        lifecycle_service.start_day(event.id)
        checkout_service.checkout(event.id, [(item.id, 8)])
        lifecycle_service.end_day(event.id)

        restocked = inventory_service.restock(item.id, 20)

        assert restocked.starting_quantity == 20
        assert restocked.quantity_sold == 8
        assert restocked.remaining == 12

    def test_restock_rejected_while_day_open(
        self, inventory_service, lifecycle_service, create_event, create_item
    ):
        event = create_event()
        item = create_item(event.id, starting_quantity=10)
        lifecycle_service.start_day(event.id)

        with pytest.raises(RestockWhileDayOpenError):
            inventory_service.restock(item.id, 20)
        assert inventory_service.get_item(item.id).starting_quantity == 10

    def test_restock_below_sold(self, inventory_service, create_event, create_item):
        event = create_event()
        item = create_item(event.id, starting_quantity=10)
        inventory_service.commit(item.id, 6)

        with pytest.raises(InvalidRestockError):
            inventory_service.restock(item.id, 5)

    def test_restock_to_exactly_sold(self, inventory_service, create_event, create_item):
        event = create_event()
        item = create_item(event.id, starting_quantity=10)
        inventory_service.commit(item.id, 6)
        assert inventory_service.restock(item.id, 6).remaining == 0

    def test_restock_negative(self, inventory_service, create_event, create_item):
        event = create_event()
        item = create_item(event.id)
        with pytest.raises(ValueError):
            inventory_service.restock(item.id, -1)

    def test_add_stock(self, inventory_service, create_event, create_item):
        event = create_event()
        item = create_item(event.id, starting_quantity=10)
        assert inventory_service.add_stock(item.id, 5).starting_quantity == 15

    def test_restock_logged(self, inventory_service, create_event, create_item, captured_logs):
        event = create_event()
        item = create_item(event.id, starting_quantity=10)
        inventory_service.restock(item.id, 12)

        records = [r for r in captured_logs() if r["message"] == "item_restocked"]
        assert len(records) == 1
        assert records[0]["previous_starting_quantity"] == 10
        assert records[0]["new_starting_quantity"] == 12


class TestItemCatalog:
    def test_add_item(self, inventory_service, create_event):
        event = create_event()
        item = inventory_service.add_item(
            event.id, "  Cinnamon Roll ", "4.5", 24, cost="1.10", category="pastry"
        )
        assert item.name == "Cinnamon Roll"
        assert item.price == Decimal("4.50")
        assert item.cost == Decimal("1.10")
        assert item.quantity_sold == 0
        assert item.is_active

    @pytest.mark.parametrize(
        "name, price, qty",
        [("", "1.00", 1), ("Bun", "-1.00", 1), ("Bun", "1.00", -1), ("Bun", "1.00", 2.0)],
    )
    def test_add_item_validation(self, inventory_service, create_event, name, price, qty):
        event = create_event()
        with pytest.raises(ValueError):
            inventory_service.add_item(event.id, name, price, qty)

    def test_add_item_to_archived_event(
        self, inventory_service, lifecycle_service, create_event
    ):
        event = create_event()
        lifecycle_service.archive_event(event.id)
        with pytest.raises(EventArchivedError):
            inventory_service.add_item(event.id, "Bun", "1.00", 5)

    def test_remove_unsold_item(self, inventory_service, create_event, create_item):
        event = create_event()
        item = create_item(event.id)
        inventory_service.remove_item(item.id)
        with pytest.raises(ItemNotFoundError):
            inventory_service.get_item(item.id)

    def test_remove_sold_item_rejected(
        self, inventory_service, lifecycle_service, checkout_service, create_event, create_item
    ):
        event = create_event()
        item = create_item(event.id)
        lifecycle_service.start_day(event.id)
        checkout_service.checkout(event.id, [(item.id, 1)])

        with pytest.raises(ItemReferencedError) as exc_info:
            inventory_service.remove_item(item.id)
        assert exc_info.value.sale_count == 1

    def test_retire_and_reactivate(self, inventory_service, create_event, create_item):
        event = create_event()
        item = create_item(event.id)
        assert not inventory_service.retire_item(item.id).is_active
        assert inventory_service.reactivate_item(item.id).is_active

    def test_update_pricing_between_days(self, inventory_service, create_event, create_item):
        event = create_event()
        item = create_item(event.id, price="8.00", cost="2.50")
        updated = inventory_service.update_item_pricing(item.id, price="9.00")
        assert updated.price == Decimal("9.00")
        assert updated.cost == Decimal("2.50")

    def test_update_pricing_rejected_while_day_open(
        self, inventory_service, lifecycle_service, create_event, create_item
    ):
        event = create_event()
        item = create_item(event.id)
        lifecycle_service.start_day(event.id)
        with pytest.raises(PreconditionViolationError):
            inventory_service.update_item_pricing(item.id, price="9.00")
