# Overview: Pytest coverage for shipments and how they drive sales order status.

import pytest

from wms.errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from wms.extensions import db
from wms.models import InventoryItem, SaleOrder, Shipment, ShipmentTrackingEvent
from wms.services import sales_service, shipment_service

from conftest import ACTOR

ADDRESS = {"street": "1 Harbourfront Ave", "city": "Singapore", "zip_code": "098632"}


@pytest.fixture
def confirmed_order(db_session, make_item):
    item = make_item(sku="SHP-1", name="Crate", quantity=10, rate="12.00")
    order = sales_service.create_sale_order(
        {
            "customer_name": "Lee Wei",
            "customer_email": "lee@example.com",
            "customer_phone": "+65 5555 0100",
            "items": [{"product_id": item.id, "quantity": 2}],
        },
        actor_id=ACTOR,
    )
    return sales_service.update_sale_order_status(order.id, actor_id=ACTOR, status="Confirmed")


def _shipment(order_id, **extra):
    return {
        "sales_order_id": order_id,
        "shipping_address": dict(ADDRESS),
        "carrier": "DHL",
        "shipping_method": "Express",
        "shipping_cost": "18.50",
        **extra,
    }


class TestCreateShipment:

    def test_create_marks_order_shipped(self, db_session, confirmed_order):
        shipment = shipment_service.create_shipment(
            _shipment(confirmed_order.id, tracking_number="DHL123"), actor_id=ACTOR
        )

        assert shipment.shipment_number.startswith("SH-")
        assert shipment.status == "Pending"
        assert shipment.customer_name == "Lee Wei"
        assert shipment.ship_country == "Singapore"
        assert [(i.sku, i.quantity) for i in shipment.items] == [("SHP-1", 2)]
        assert [e.status for e in shipment.tracking_history] == ["Pending"]
        assert db.session.get(SaleOrder, confirmed_order.id).status == "Shipped"

    def test_shipment_does_not_touch_stock(self, db_session, confirmed_order):
        before = db_session.query(InventoryItem).filter_by(sku="SHP-1").one().quantity
        shipment_service.create_shipment(_shipment(confirmed_order.id), actor_id=ACTOR)
        assert db_session.query(InventoryItem).filter_by(sku="SHP-1").one().quantity == before == 8

    def test_pending_order_cannot_ship(self, db_session, make_item):
        item = make_item(quantity=3)
        order = sales_service.create_sale_order(
            {"customer_name": "A", "customer_email": "a@example.com", "items": [{"product_id": item.id, "quantity": 1}]},
            actor_id=ACTOR,
        )
        with pytest.raises(InvalidStateError):
            shipment_service.create_shipment(_shipment(order.id), actor_id=ACTOR)
        assert db_session.query(Shipment).count() == 0

    def test_second_shipment_conflicts(self, db_session, confirmed_order):
        shipment_service.create_shipment(_shipment(confirmed_order.id), actor_id=ACTOR)
        # Put the order back into a shippable state to reach the uniqueness check
        order = db.session.get(SaleOrder, confirmed_order.id)
        order.status = "Processing"
        db_session.commit()

        with pytest.raises(ConflictError):
            shipment_service.create_shipment(_shipment(confirmed_order.id), actor_id=ACTOR)
        assert db_session.query(Shipment).count() == 1

    def test_required_fields(self, db_session, confirmed_order):
        with pytest.raises(ValidationError):
            shipment_service.create_shipment(_shipment(confirmed_order.id, carrier="Pigeon"), actor_id=ACTOR)
        with pytest.raises(ValidationError):
            shipment_service.create_shipment(
                _shipment(confirmed_order.id, shipping_address={"street": "x"}), actor_id=ACTOR
            )
        data = _shipment(confirmed_order.id)
        del data["shipping_cost"]
        with pytest.raises(ValidationError):
            shipment_service.create_shipment(data, actor_id=ACTOR)

    def test_unknown_order(self, db_session):
        with pytest.raises(NotFoundError):
            shipment_service.create_shipment(_shipment(987654), actor_id=ACTOR)


class TestTracking:

    def test_delivered_marks_order_delivered(self, db_session, confirmed_order):
        shipment = shipment_service.create_shipment(_shipment(confirmed_order.id), actor_id=ACTOR)
        shipment_service.update_shipment_status(shipment.id, "In Transit", actor_id="driver", location="Depot 3")
        shipment = shipment_service.update_shipment_status(shipment.id, "Delivered", actor_id="driver")

        assert shipment.actual_delivery is not None
        assert [e.status for e in shipment.tracking_history] == ["Pending", "In Transit", "Delivered"]
        assert shipment.tracking_history[1].location == "Depot 3"
        assert db.session.get(SaleOrder, confirmed_order.id).status == "Delivered"

    def test_track_by_number_hides_customer(self, db_session, confirmed_order):
        shipment_service.create_shipment(_shipment(confirmed_order.id, tracking_number="TN-77"), actor_id=ACTOR)
        view = shipment_service.track_shipment("TN-77").to_tracking_dict()
        assert view["tracking_number"] == "TN-77"
        assert "customer_email" not in view
        with pytest.raises(NotFoundError):
            shipment_service.track_shipment("TN-00")

    def test_tracking_events_are_immutable(self, db_session, confirmed_order):
        shipment_service.create_shipment(_shipment(confirmed_order.id), actor_id=ACTOR)
        event = db_session.query(ShipmentTrackingEvent).first()
        event.notes = "edited"
        with pytest.raises(InvalidStateError):
            db_session.commit()
        db_session.rollback()


class TestDetailsAndDelete:

    def test_update_details(self, db_session, confirmed_order):
        shipment = shipment_service.create_shipment(_shipment(confirmed_order.id), actor_id=ACTOR)
        shipment = shipment_service.update_shipment_details(
            shipment.id,
            {"tracking_number": "NEW-1", "signature_required": True, "shipping_address": {**ADDRESS, "city": "Jurong"}},
            actor_id=ACTOR,
        )
        assert shipment.tracking_number == "NEW-1"
        assert shipment.signature_required is True
        assert shipment.ship_city == "Jurong"

    def test_protected_fields(self, db_session, confirmed_order):
        shipment = shipment_service.create_shipment(_shipment(confirmed_order.id), actor_id=ACTOR)
        with pytest.raises(ValidationError):
            shipment_service.update_shipment_details(shipment.id, {"status": "Delivered"}, actor_id=ACTOR)

    def test_delete_reverts_order_to_processing(self, db_session, confirmed_order):
        shipment = shipment_service.create_shipment(_shipment(confirmed_order.id), actor_id=ACTOR)
        shipment_service.delete_shipment(shipment.id, actor_id=ACTOR)

        assert db.session.get(Shipment, shipment.id) is None
        assert db_session.query(ShipmentTrackingEvent).count() == 0
        assert db.session.get(SaleOrder, confirmed_order.id).status == "Processing"

    def test_delete_in_transit_rejected(self, db_session, confirmed_order):
        shipment = shipment_service.create_shipment(_shipment(confirmed_order.id), actor_id=ACTOR)
        shipment_service.update_shipment_status(shipment.id, "In Transit", actor_id=ACTOR)
        with pytest.raises(InvalidStateError):
            shipment_service.delete_shipment(shipment.id, actor_id=ACTOR)


class TestCancelledOrders:
    """A shipment never drags a cancelled order back into the flow."""

    def test_live_shipment_blocks_cancel(self, db_session, confirmed_order):
        shipment_service.create_shipment(_shipment(confirmed_order.id), actor_id=ACTOR)
        sales_service.update_sale_order_status(confirmed_order.id, actor_id=ACTOR, status="Processing")

        with pytest.raises(InvalidStateError) as exc:
            sales_service.cancel_sale_order(confirmed_order.id, actor_id=ACTOR)
        assert exc.value.details["shipment_status"] == "Pending"
        assert db_session.query(InventoryItem).filter_by(sku="SHP-1").one().quantity == 8
        assert db.session.get(SaleOrder, confirmed_order.id).status == "Processing"

    def test_returned_shipment_allows_cancel(self, db_session, confirmed_order):
        shipment = shipment_service.create_shipment(_shipment(confirmed_order.id), actor_id=ACTOR)
        shipment_service.update_shipment_status(shipment.id, "Returned", actor_id=ACTOR)

        order = sales_service.cancel_sale_order(confirmed_order.id, actor_id=ACTOR)
        assert order.status == "Cancelled"
        assert db_session.query(InventoryItem).filter_by(sku="SHP-1").one().quantity == 10

    def test_delivery_does_not_revive_cancelled_order(self, db_session, confirmed_order):
        shipment = shipment_service.create_shipment(_shipment(confirmed_order.id), actor_id=ACTOR)
        shipment_service.update_shipment_status(shipment.id, "Cancelled", actor_id=ACTOR)
        sales_service.cancel_sale_order(confirmed_order.id, actor_id=ACTOR)

        shipment = shipment_service.update_shipment_status(shipment.id, "Delivered", actor_id=ACTOR)
        assert shipment.actual_delivery is not None
        assert db.session.get(SaleOrder, confirmed_order.id).status == "Cancelled"

    def test_delete_order_needs_shipment_gone(self, db_session, confirmed_order):
        shipment = shipment_service.create_shipment(_shipment(confirmed_order.id), actor_id=ACTOR)
        shipment_service.update_shipment_status(shipment.id, "Cancelled", actor_id=ACTOR)
        sales_service.cancel_sale_order(confirmed_order.id, actor_id=ACTOR)

        with pytest.raises(InvalidStateError):
            sales_service.delete_sale_order(confirmed_order.id, actor_id=ACTOR)

        shipment_service.delete_shipment(shipment.id, actor_id=ACTOR)
        assert db.session.get(SaleOrder, confirmed_order.id).status == "Cancelled"

        sales_service.delete_sale_order(confirmed_order.id, actor_id=ACTOR)
        assert db.session.get(SaleOrder, confirmed_order.id) is None
