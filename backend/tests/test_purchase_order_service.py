# Overview: Pytest coverage for purchase order lifecycle and money math.

import pytest
from decimal import Decimal

from wms.errors import InvalidStateError, NotFoundError, ValidationError
from wms.extensions import db
from wms.models import PurchaseOrder, PurchaseOrderStatusHistory
from wms.services import purchase_order_service, receiving_service

from conftest import ACTOR

LINES = [
    {"product_name": "Widget", "sku": "W-1", "quantity": 10, "unit_price": "2.50"},
    {"product_name": "Gadget", "sku": "G-1", "quantity": 3, "unit_price": "10.00"},
]


class TestTotals:
    """total = subtotal + tax - discount + shipping_cost"""

    def test_compute_totals(self):
        subtotal, total = purchase_order_service.compute_totals(
            [(10, Decimal("2.50")), (3, Decimal("10.00"))],
            tax=Decimal("5.00"),
            discount=Decimal("4.00"),
            shipping_cost=Decimal("7.25"),
        )
        assert subtotal == Decimal("55.00")
        assert total == Decimal("63.25")

    def test_created_order_carries_totals(self, db_session, make_purchase_order):
        po = make_purchase_order(LINES, draft=True, tax="5.00", discount="4.00", shipping_cost="7.25")
        assert po.subtotal == Decimal("55.00")
        assert po.total == Decimal("63.25")
        assert [i.total_price for i in po.items] == [Decimal("25.00"), Decimal("30.00")]

    def test_negative_total_rejected(self, db_session, make_purchase_order):
        with pytest.raises(ValidationError):
            make_purchase_order(LINES, draft=True, discount="1000.00")
        assert db_session.query(PurchaseOrder).count() == 0


class TestCreate:

    def test_draft_with_history_and_number(self, db_session, make_purchase_order):
        po = make_purchase_order(LINES, draft=True)

        assert po.po_number.startswith("PO-")
        assert po.status == "Draft"
        assert po.approval_status == "Pending"
        assert po.receiving_status == "Pending"
        assert [i.pending_quantity for i in po.items] == [10, 3]
        assert [h.status for h in po.status_history] == ["Draft"]
        assert po.status_history[0].changed_by == ACTOR

    def test_numbers_are_unique_and_increasing(self, db_session, make_purchase_order):
        first = make_purchase_order(LINES, draft=True)
        second = make_purchase_order(LINES, draft=True)
        assert first.po_number != second.po_number
        assert second.po_number > first.po_number

    def test_zero_quantity_line_rejected(self, db_session, make_purchase_order):
        with pytest.raises(ValidationError):
            make_purchase_order([{"product_name": "X", "sku": "X", "quantity": 0, "unit_price": "1"}], draft=True)

    def test_missing_vendor_rejected(self, db_session):
        with pytest.raises(ValidationError) as exc:
            purchase_order_service.create_purchase_order({"items": LINES}, actor_id=ACTOR)
        assert "vendor_name" in exc.value.details["empty_fields"]

    def test_unknown_product_reference_dropped(self, db_session, make_purchase_order):
        po = make_purchase_order(
            [{"product_id": 9999, "product_name": "Ghost", "sku": "GH-1", "quantity": 1, "unit_price": "1.00"}],
            draft=True,
        )
        assert po.items[0].product_id is None


class TestApproveAndStatus:

    def test_approve_draft_moves_to_sent(self, db_session, make_purchase_order):
        po = make_purchase_order(LINES, draft=True)
        po = purchase_order_service.approve_purchase_order(po.id, actor_id="manager")

        assert po.status == "Sent"
        assert po.approval_status == "Approved"
        assert po.approved_by == "manager"
        assert po.approved_at is not None
        assert [h.status for h in po.status_history] == ["Draft", "Approved"]

    def test_approve_cancelled_rejected(self, db_session, make_purchase_order):
        po = make_purchase_order(LINES, draft=True)
        purchase_order_service.cancel_purchase_order(po.id, actor_id=ACTOR)
        with pytest.raises(InvalidStateError):
            purchase_order_service.approve_purchase_order(po.id, actor_id=ACTOR)

    def test_status_update_appends_history(self, db_session, make_purchase_order):
        po = make_purchase_order(LINES)
        po = purchase_order_service.update_purchase_order_status(
            po.id, "Acknowledged", actor_id=ACTOR, notes="vendor confirmed"
        )
        assert po.status == "Acknowledged"
        assert po.status_history[-1].notes == "vendor confirmed"

    def test_unknown_status_rejected(self, db_session, make_purchase_order):
        po = make_purchase_order(LINES)
        with pytest.raises(ValidationError):
            purchase_order_service.update_purchase_order_status(po.id, "Lost", actor_id=ACTOR)

    def test_terminal_status_cannot_be_left(self, db_session, make_purchase_order):
        po = make_purchase_order(LINES)
        purchase_order_service.update_purchase_order_status(po.id, "Closed", actor_id=ACTOR)
        with pytest.raises(InvalidStateError):
            purchase_order_service.update_purchase_order_status(po.id, "Sent", actor_id=ACTOR)
        assert db.session.get(PurchaseOrder, po.id).status == "Closed"

    def test_history_entries_are_immutable(self, db_session, make_purchase_order):
        po = make_purchase_order(LINES)
        entry = db_session.query(PurchaseOrderStatusHistory).filter_by(purchase_order_id=po.id).first()
        entry.notes = "rewritten"
        with pytest.raises(InvalidStateError):
            db_session.commit()
        db_session.rollback()


class TestCancelAndDelete:

    def test_cancel_twice(self, db_session, make_purchase_order):
        po = make_purchase_order(LINES)
        po = purchase_order_service.cancel_purchase_order(po.id, actor_id=ACTOR, reason="vendor out of business")
        assert po.status == "Cancelled"
        assert po.status_history[-1].notes == "vendor out of business"
        with pytest.raises(InvalidStateError):
            purchase_order_service.cancel_purchase_order(po.id, actor_id=ACTOR)

    def test_cannot_cancel_fully_received(self, db_session, make_purchase_order):
        po = make_purchase_order([{"product_name": "Widget", "sku": "W-9", "quantity": 2, "unit_price": "1.00"}])
        receiving_service.receive_items(po.id, [{"item_id": po.items[0].id, "quantity_received": 2}], actor_id=ACTOR)
        with pytest.raises(InvalidStateError):
            purchase_order_service.cancel_purchase_order(po.id, actor_id=ACTOR)

    def test_delete_draft_removes_lines_and_history(self, db_session, make_purchase_order):
        po = make_purchase_order(LINES, draft=True)
        purchase_order_service.delete_purchase_order(po.id, actor_id=ACTOR)

        assert db.session.get(PurchaseOrder, po.id) is None
        assert db_session.query(PurchaseOrderStatusHistory).count() == 0
        with pytest.raises(NotFoundError):
            purchase_order_service.get_purchase_order(po.id)

    def test_delete_sent_rejected(self, db_session, make_purchase_order):
        po = make_purchase_order(LINES)
        with pytest.raises(InvalidStateError):
            purchase_order_service.delete_purchase_order(po.id, actor_id=ACTOR)


class TestListAndStats:

    def test_filters_and_stats(self, db_session, make_purchase_order):
        make_purchase_order(LINES, draft=True, vendor_name="Northwind")
        make_purchase_order(LINES, vendor_name="Contoso")

        drafts, total = purchase_order_service.list_purchase_orders(status="Draft")
        assert total == 1
        assert drafts[0].vendor_name == "Northwind"

        found, _ = purchase_order_service.list_purchase_orders(search="contoso")
        assert [p.vendor_name for p in found] == ["Contoso"]

        stats = purchase_order_service.purchase_order_stats()
        assert stats["total"] == 2
        assert stats["by_status"]["Draft"] == 1
        assert stats["by_status"]["Sent"] == 1
        assert stats["pending_approval"] == 1
        assert stats["total_value"] == "110.00"
