# Overview: Pytest coverage for the inventory ledger service.

"""
Inventory Ledger Tests

Every on-hand change goes through adjust(): it refuses to go negative,
journals a movement, and leaves the journal append-only.
"""

import pytest
from decimal import Decimal

from wms.errors import (
    ConflictError,
    InsufficientStockError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from wms.extensions import db
from wms.models import InventoryItem, InventoryMovement
from wms.services import inventory_service
from wms.services.concurrency import unit_of_work

from conftest import ACTOR


class TestCreateItem:
    """Item creation and opening stock."""

    def test_opening_stock_is_journaled(self, db_session, make_item):
        item = make_item(sku="W-1", quantity=12, rate="2.50")

        assert item.quantity == 12
        assert item.rate == Decimal("2.50")
        moves = inventory_service.movements(item.id)
        assert len(moves) == 1
        assert moves[0].delta == 12
        assert moves[0].quantity_after == 12
        assert moves[0].reason == "INITIAL_STOCK"

    def test_zero_opening_stock_has_no_movement(self, db_session, make_item):
        item = make_item(quantity=0)
        assert inventory_service.movements(item.id) == []

    def test_duplicate_sku_conflicts(self, db_session, make_item):
        make_item(sku="DUP-1")
        with pytest.raises(ConflictError):
            make_item(sku="DUP-1")
        assert db_session.query(InventoryItem).filter_by(sku="DUP-1").count() == 1

    def test_missing_fields_rejected(self, db_session):
        with pytest.raises(ValidationError) as exc:
            inventory_service.create_item({"sku": "", "name": None}, actor_id=ACTOR)
        assert exc.value.details["empty_fields"] == ["sku", "name"]

    def test_negative_opening_quantity_rejected(self, db_session):
        with pytest.raises(ValidationError):
            inventory_service.create_item({"sku": "N-1", "name": "Neg", "quantity": -1}, actor_id=ACTOR)


class TestAdjust:
    """adjust() is the single write path for on-hand quantity."""

    def test_decrement_within_stock(self, db_session, make_item):
        item = make_item(sku="A-1", quantity=10)
        with unit_of_work():
            new_qty = inventory_service.adjust("A-1", -4, "SALE", actor_id=ACTOR, reference_type="sale_order", reference_id=7)

        assert new_qty == 6
        assert db.session.get(InventoryItem, item.id).quantity == 6
        last = inventory_service.movements(item.id)[-1]
        assert (last.delta, last.quantity_after, last.reason) == (-4, 6, "SALE")
        assert (last.reference_type, last.reference_id) == ("sale_order", 7)

    def test_cannot_go_negative(self, db_session, make_item):
        item = make_item(sku="A-2", name="Bolt", quantity=3)
        with pytest.raises(InsufficientStockError) as exc:
            with unit_of_work():
                inventory_service.adjust(item.id, -5, "SALE", actor_id=ACTOR)

        assert exc.value.available == 3
        assert exc.value.requested == 5
        assert "Available: 3, Requested: 5" in exc.value.message
        assert db.session.get(InventoryItem, item.id).quantity == 3
        assert len(inventory_service.movements(item.id)) == 1

    def test_zero_delta_rejected(self, db_session, make_item):
        item = make_item(quantity=1)
        with pytest.raises(ValidationError):
            with unit_of_work():
                inventory_service.adjust(item.id, 0, "SALE", actor_id=ACTOR)

    def test_unknown_reason_rejected(self, db_session, make_item):
        item = make_item(quantity=1)
        with pytest.raises(ValidationError):
            with unit_of_work():
                inventory_service.adjust(item.id, 1, "GIFT", actor_id=ACTOR)

    def test_unknown_item(self, db_session):
        with pytest.raises(NotFoundError):
            with unit_of_work():
                inventory_service.adjust("NOPE", 1, "STOCK_TAKE", actor_id=ACTOR)

    def test_quantity_equals_sum_of_movements(self, db_session, make_item):
        item = make_item(sku="A-3", quantity=5)
        with unit_of_work():
            inventory_service.adjust(item.id, 7, "PURCHASE_RECEIPT", actor_id=ACTOR)
            inventory_service.adjust(item.id, -2, "SALE", actor_id=ACTOR)
        total = sum(m.delta for m in inventory_service.movements(item.id))
        assert total == db.session.get(InventoryItem, item.id).quantity == 10


class TestMovementJournal:
    """Movements are append-only."""

    def test_movement_cannot_be_modified(self, db_session, make_item):
        item = make_item(quantity=2)
        move = inventory_service.movements(item.id)[0]
        move.delta = 99
        with pytest.raises(InvalidStateError):
            db_session.commit()
        db_session.rollback()

    def test_movement_cannot_be_deleted(self, db_session, make_item):
        item = make_item(quantity=2)
        move = inventory_service.movements(item.id)[0]
        db_session.delete(move)
        with pytest.raises(InvalidStateError):
            db_session.commit()
        db_session.rollback()
        assert db_session.query(InventoryMovement).count() == 1


class TestStockTake:
    """Physical counts reconcile through the journal."""

    def test_count_difference_is_journaled(self, db_session, make_item):
        item = make_item(quantity=10)
        inventory_service.stock_take(item.id, 7, actor_id=ACTOR, note="cycle count")

        assert db.session.get(InventoryItem, item.id).quantity == 7
        last = inventory_service.movements(item.id)[-1]
        assert (last.delta, last.reason, last.note) == (-3, "STOCK_TAKE", "cycle count")

    def test_matching_count_changes_nothing(self, db_session, make_item):
        item = make_item(quantity=10)
        inventory_service.stock_take(item.id, 10, actor_id=ACTOR)
        assert len(inventory_service.movements(item.id)) == 1

    def test_negative_count_rejected(self, db_session, make_item):
        item = make_item(quantity=10)
        with pytest.raises(ValidationError):
            inventory_service.stock_take(item.id, -1, actor_id=ACTOR)


class TestUpdateItem:

    def test_descriptive_fields_update(self, db_session, make_item):
        item = make_item(name="Old", rate="1.00")
        updated = inventory_service.update_item(item.id, {"name": "New", "rate": "3.25"}, actor_id=ACTOR)
        assert updated.name == "New"
        assert updated.rate == Decimal("3.25")

    def test_quantity_not_updatable(self, db_session, make_item):
        item = make_item(quantity=4)
        with pytest.raises(ValidationError):
            inventory_service.update_item(item.id, {"quantity": 100}, actor_id=ACTOR)
        assert db.session.get(InventoryItem, item.id).quantity == 4


class TestLocationStock:
    """Location sub-ledger operations."""

    def test_set_add_subtract(self, db_session, make_item):
        item = make_item(quantity=50)
        inventory_service.set_location_stock(
            item.id, location_id="A-01", location_name="Aisle 1", quantity=10, actor_id=ACTOR
        )
        inventory_service.set_location_stock(item.id, location_id="A-01", quantity=5, operation="add", actor_id=ACTOR)
        item = inventory_service.set_location_stock(
            item.id, location_id="A-01", quantity=30, operation="subtract", actor_id=ACTOR
        )

        entry = item.location_stock[0]
        assert entry.location_name == "Aisle 1"
        assert entry.quantity == 0
        # On-hand is untouched by location bookkeeping
        assert item.quantity == 50

    def test_items_by_location(self, db_session, make_item):
        a = make_item(name="Alpha")
        b = make_item(name="Beta")
        inventory_service.set_location_stock(a.id, location_id="BIN-9", quantity=1, actor_id=ACTOR)
        inventory_service.set_location_stock(b.id, location_id="BIN-9", quantity=2, actor_id=ACTOR)

        rows = inventory_service.items_by_location("BIN-9")
        assert [(item.name, loc.quantity) for item, loc in rows] == [("Alpha", 1), ("Beta", 2)]

    def test_unknown_operation(self, db_session, make_item):
        item = make_item()
        with pytest.raises(ValidationError):
            inventory_service.set_location_stock(item.id, location_id="X", quantity=1, operation="swap", actor_id=ACTOR)


class TestListAndDelete:

    def test_low_stock_filter_and_search(self, db_session, make_item):
        make_item(sku="L-1", name="Low widget", quantity=2)
        make_item(sku="H-1", name="High widget", quantity=200)
        make_item(sku="G-1", name="Gadget", quantity=1)

        low, total = inventory_service.list_items(low_stock_threshold=5)
        assert total == 2
        assert {i.sku for i in low} == {"L-1", "G-1"}

        found, total = inventory_service.list_items(search="widget", sort="-quantity")
        assert [i.sku for i in found] == ["H-1", "L-1"]

    def test_bad_sort_column(self, db_session):
        with pytest.raises(ValidationError):
            inventory_service.list_items(sort="password")

    def test_delete_unreferenced_item(self, db_session, make_item):
        item = make_item(quantity=0)
        inventory_service.delete_item(item.id, actor_id=ACTOR)
        assert db.session.get(InventoryItem, item.id) is None

    def test_delete_blocked_by_open_sales_order(self, db_session, make_item):
        from wms.services import sales_service

        item = make_item(quantity=5)
        sales_service.create_sale_order(
            {"customer_name": "C", "customer_email": "c@example.com", "items": [{"product_id": item.id, "quantity": 1}]},
            actor_id=ACTOR,
        )
        with pytest.raises(ConflictError) as exc:
            inventory_service.delete_item(item.id, actor_id=ACTOR)
        assert "sale_orders" in exc.value.details
