# Overview: Pytest coverage for receiving reconciliation and the receipt workflow.

"""
Receiving Reconciliation Tests

A receive touches PO lines, the inventory ledger and a new receipt in one
transaction. These tests check the three always agree, including when a
receive aborts half way through its lines.
"""

import pytest
from decimal import Decimal

from wms.errors import InvalidStateError, ItemNotFoundError, NotFoundError, ValidationError
from wms.extensions import db
from wms.models import InventoryItem, PurchaseOrder, ReceivingReceipt
from wms.services import inventory_service, receiving_service

from conftest import ACTOR


@pytest.fixture
def stocked_po(db_session, make_item, make_purchase_order):
    """A Sent PO for 100 of an existing item that has 5 on hand."""
    item = make_item(sku="RCV-1", name="Pallet wrap", quantity=5, rate="5.00")
    po = make_purchase_order([
        {"product_id": item.id, "product_name": item.name, "sku": item.sku, "quantity": 100, "unit_price": "5.00"},
    ])
    return po, item


class TestReceiveItems:

    def test_partial_receipt(self, db_session, stocked_po):
        po, item = stocked_po
        line = po.items[0]

        receipt = receiving_service.receive_items(
            po.id,
            [{"item_id": line.id, "quantity_received": 40}],
            actor_id=ACTOR,
            tracking={"tracking_number": "TRK-1", "carrier": "DHL"},
        )

        po = db.session.get(PurchaseOrder, po.id)
        assert po.items[0].received_quantity == 40
        assert po.items[0].pending_quantity == 60
        assert po.receiving_status == "Partially Received"
        assert po.status == "Partially Received"
        assert po.tracking_number == "TRK-1"
        assert po.status_history[-1].status == "Partially Received"

        assert db.session.get(InventoryItem, item.id).quantity == 45
        last = inventory_service.movements(item.id)[-1]
        assert (last.delta, last.reason, last.reference_id) == (40, "PURCHASE_RECEIPT", po.id)

        assert receipt.receipt_number.startswith("RR-")
        assert receipt.status == "Received"
        assert receipt.total_value == Decimal("200.00")
        assert receipt.po_number == po.po_number
        assert receipt.lines[0].quantity_ordered == 100
        assert receipt.lines[0].quantity_received == 40
        assert receipt.lines[0].condition == "Good"

    def test_completing_receipt_marks_order_received(self, db_session, stocked_po):
        po, item = stocked_po
        line_id = po.items[0].id
        receiving_service.receive_items(po.id, [{"item_id": line_id, "quantity_received": 40}], actor_id=ACTOR)
        receiving_service.receive_items(po.id, [{"item_id": line_id, "quantity_received": 60}], actor_id=ACTOR)

        po = db.session.get(PurchaseOrder, po.id)
        assert po.receiving_status == "Fully Received"
        assert po.status == "Received"
        assert po.actual_delivery is not None
        assert db.session.get(InventoryItem, item.id).quantity == 105
        assert len(receiving_service.receipts_for_purchase_order(po.id)) == 2

    def test_over_receipt_rejected(self, db_session, stocked_po):
        po, item = stocked_po
        with pytest.raises(InvalidStateError):
            receiving_service.receive_items(
                po.id, [{"item_id": po.items[0].id, "quantity_received": 101}], actor_id=ACTOR
            )
        assert db.session.get(InventoryItem, item.id).quantity == 5

    def test_unknown_line_aborts_whole_receive(self, db_session, make_item, make_purchase_order):
        a = make_item(sku="AB-1", quantity=0)
        po = make_purchase_order([
            {"product_id": a.id, "product_name": a.name, "sku": a.sku, "quantity": 10, "unit_price": "1.00"},
        ])

        with pytest.raises(ItemNotFoundError):
            receiving_service.receive_items(
                po.id,
                [
                    {"item_id": po.items[0].id, "quantity_received": 4},
                    {"item_id": 424242, "quantity_received": 1},
                ],
                actor_id=ACTOR,
            )

        po = db.session.get(PurchaseOrder, po.id)
        assert po.items[0].received_quantity == 0
        assert po.receiving_status == "Pending"
        assert db.session.get(InventoryItem, a.id).quantity == 0
        assert db_session.query(ReceivingReceipt).count() == 0

    def test_new_sku_creates_inventory_item(self, db_session, make_purchase_order):
        po = make_purchase_order([
            {"product_name": "Brand new", "sku": "NEW-1", "quantity": 6, "unit_price": "3.00"},
        ])
        receiving_service.receive_items(po.id, [{"item_id": po.items[0].id, "quantity_received": 6}], actor_id=ACTOR)

        item = inventory_service.get_item_by_sku("NEW-1")
        assert item.quantity == 6
        assert item.rate == Decimal("3.00")
        assert db.session.get(PurchaseOrder, po.id).items[0].product_id == item.id
        assert [m.reason for m in inventory_service.movements(item.id)] == ["PURCHASE_RECEIPT"]

    def test_existing_sku_is_reused(self, db_session, make_item, make_purchase_order):
        item = make_item(sku="OLD-1", quantity=2)
        po = make_purchase_order([{"product_name": "Old", "sku": "OLD-1", "quantity": 3, "unit_price": "1.00"}])
        receiving_service.receive_items(po.id, [{"item_id": po.items[0].id, "quantity_received": 3}], actor_id=ACTOR)

        assert db_session.query(InventoryItem).filter_by(sku="OLD-1").count() == 1
        assert db.session.get(InventoryItem, item.id).quantity == 5

    def test_draft_order_not_receivable(self, db_session, make_purchase_order):
        po = make_purchase_order([{"product_name": "X", "sku": "X-1", "quantity": 1, "unit_price": "1.00"}], draft=True)
        with pytest.raises(InvalidStateError):
            receiving_service.receive_items(po.id, [{"item_id": po.items[0].id, "quantity_received": 1}], actor_id=ACTOR)

    def test_input_validation(self, db_session, stocked_po):
        po, _ = stocked_po
        with pytest.raises(ValidationError):
            receiving_service.receive_items(po.id, [], actor_id=ACTOR)
        with pytest.raises(ValidationError):
            receiving_service.receive_items(po.id, [{"item_id": po.items[0].id, "quantity_received": 0}], actor_id=ACTOR)
        with pytest.raises(NotFoundError):
            receiving_service.receive_items(999999, [{"item_id": 1, "quantity_received": 1}], actor_id=ACTOR)


class TestReceiptWorkflow:
    """Received -> Inspected / Approved / Rejected; Approved is final."""

    @pytest.fixture
    def receipt(self, db_session, stocked_po):
        po, _ = stocked_po
        return receiving_service.receive_items(
            po.id, [{"item_id": po.items[0].id, "quantity_received": 10}], actor_id=ACTOR
        )

    def test_inspect_then_approve(self, db_session, receipt):
        receipt = receiving_service.update_receipt_status(receipt.id, "Inspected", actor_id="qc", notes="looks fine")
        assert receipt.inspected_by == "qc"
        assert receipt.inspection_notes == "looks fine"

        receipt = receiving_service.approve_receipt(receipt.id, actor_id="manager")
        assert receipt.status == "Approved"
        assert receipt.approved_by == "manager"
        assert receipt.inspection_passed is True

    def test_approved_is_final(self, db_session, receipt):
        receiving_service.approve_receipt(receipt.id, actor_id=ACTOR)
        with pytest.raises(InvalidStateError):
            receiving_service.update_receipt_status(receipt.id, "Inspected", actor_id=ACTOR)
        with pytest.raises(InvalidStateError):
            receiving_service.approve_receipt(receipt.id, actor_id=ACTOR)
        with pytest.raises(InvalidStateError):
            receiving_service.delete_receipt(receipt.id, actor_id=ACTOR)

    def test_reject_requires_reason(self, db_session, receipt):
        with pytest.raises(ValidationError):
            receiving_service.reject_receipt(receipt.id, actor_id=ACTOR, reason="  ")

        receipt = receiving_service.reject_receipt(receipt.id, actor_id=ACTOR, reason="3 cartons crushed")
        assert receipt.status == "Rejected"
        assert receipt.inspection_passed is False
        assert receipt.discrepancy_notes == "3 cartons crushed"

        # Rejected receipts can only go back to inspection
        with pytest.raises(InvalidStateError):
            receiving_service.approve_receipt(receipt.id, actor_id=ACTOR)
        receipt = receiving_service.update_receipt_status(receipt.id, "Inspected", actor_id=ACTOR)
        assert receipt.status == "Inspected"

    def test_delete_keeps_stock(self, db_session, stocked_po, receipt):
        po, item = stocked_po
        receiving_service.delete_receipt(receipt.id, actor_id=ACTOR)

        assert db.session.get(ReceivingReceipt, receipt.id) is None
        assert db.session.get(InventoryItem, item.id).quantity == 15
        assert db.session.get(PurchaseOrder, po.id).items[0].received_quantity == 10

    def test_stats(self, db_session, receipt):
        stats = receiving_service.receipt_stats()
        assert stats["total"] == 1
        assert stats["total_value"] == "50.00"
        assert stats["by_status"]["Received"] == {"count": 1, "total_value": "50.00"}
        assert stats["by_status"]["Approved"]["count"] == 0


class TestReceiptDetails:
    """Where goods landed, their lot data, and the dock inspection."""

    def test_locations_lots_and_inspection(self, db_session, make_item, make_purchase_order):
        item = make_item(sku="LOT-1", name="Yoghurt", quantity=0, rate="1.50")
        po = make_purchase_order([
            {"product_id": item.id, "product_name": item.name, "sku": item.sku, "quantity": 30, "unit_price": "1.50"},
            {"product_name": "Cheese", "sku": "LOT-2", "quantity": 5, "unit_price": "4.00"},
        ])
        yoghurt, cheese = po.items

        receipt = receiving_service.receive_items(
            po.id,
            [
                {"item_id": yoghurt.id, "quantity_received": 20, "batch_number": "B-77", "expiry_date": "2027-01-31T00:00:00Z"},
                {"item_id": cheese.id, "quantity_received": 5, "location": "COLD-2", "serial_number": "SN-1"},
            ],
            actor_id=ACTOR,
            receiving_location="DOCK-1",
            storage_location="COLD-1",
            quality_inspection={"passed": False, "notes": "two tubs dented"},
            discrepancy_notes="outer carton torn",
        )

        assert (receipt.receiving_location, receipt.storage_location) == ("DOCK-1", "COLD-1")
        assert receipt.discrepancy_notes == "outer carton torn"
        assert receipt.inspection_passed is False
        assert receipt.inspection_notes == "two tubs dented"
        assert receipt.inspected_by == ACTOR
        assert receipt.status == "Received"

        first, second = receipt.lines
        assert (first.location, first.batch_number) == ("COLD-1", "B-77")
        assert first.expiry_date.year == 2027
        assert (second.location, second.serial_number) == ("COLD-2", "SN-1")
        assert receipt.to_dict()["lines"][0]["batch_number"] == "B-77"

        stocked = db.session.get(InventoryItem, item.id)
        assert stocked.quantity == 20
        assert [(loc.location_id, loc.quantity) for loc in stocked.location_stock] == [("COLD-1", 20)]
        cheese_item = db_session.query(InventoryItem).filter_by(sku="LOT-2").one()
        assert [(loc.location_id, loc.quantity) for loc in cheese_item.location_stock] == [("COLD-2", 5)]

    def test_put_away_adds_to_existing_location(self, db_session, stocked_po):
        po, item = stocked_po
        inventory_service.set_location_stock(item.id, location_id="A-01", quantity=5, actor_id=ACTOR)

        receiving_service.receive_items(
            po.id, [{"item_id": po.items[0].id, "quantity_received": 10}], actor_id=ACTOR, storage_location="A-01"
        )
        assert db.session.get(InventoryItem, item.id).location_stock[0].quantity == 15

    def test_no_inspection_leaves_it_open(self, db_session, stocked_po):
        po, _ = stocked_po
        receipt = receiving_service.receive_items(
            po.id, [{"item_id": po.items[0].id, "quantity_received": 1}], actor_id=ACTOR
        )
        assert receipt.inspection_passed is None
        assert receipt.lines[0].location is None

    @pytest.mark.parametrize("inspection", ["yes", {"passed": "true"}])
    def test_bad_inspection_rejected(self, db_session, stocked_po, inspection):
        po, item = stocked_po
        with pytest.raises(ValidationError):
            receiving_service.receive_items(
                po.id,
                [{"item_id": po.items[0].id, "quantity_received": 1}],
                actor_id=ACTOR,
                quality_inspection=inspection,
            )
        assert db.session.get(InventoryItem, item.id).quantity == 5
