from __future__ import annotations

from sqlalchemy import event
from sqlalchemy.orm import object_session

from ..errors import InvalidStateError
from ..extensions import db
from ..utils import money_str, to_utc_z, utcnow

SHIPMENT_PENDING = "Pending"
SHIPMENT_PREPARING = "Preparing"
SHIPMENT_READY = "Ready to Ship"
SHIPMENT_SHIPPED = "Shipped"
SHIPMENT_IN_TRANSIT = "In Transit"
SHIPMENT_OUT_FOR_DELIVERY = "Out for Delivery"
SHIPMENT_DELIVERED = "Delivered"
SHIPMENT_FAILED_DELIVERY = "Failed Delivery"
SHIPMENT_RETURNED = "Returned"
SHIPMENT_CANCELLED = "Cancelled"
SHIPMENT_STATUSES = (
    SHIPMENT_PENDING,
    SHIPMENT_PREPARING,
    SHIPMENT_READY,
    SHIPMENT_SHIPPED,
    SHIPMENT_IN_TRANSIT,
    SHIPMENT_OUT_FOR_DELIVERY,
    SHIPMENT_DELIVERED,
    SHIPMENT_FAILED_DELIVERY,
    SHIPMENT_RETURNED,
    SHIPMENT_CANCELLED,
)
# Goods have left the building; the shipment can no longer be deleted
SHIPMENT_LOCKED_STATUSES = (
    SHIPMENT_SHIPPED,
    SHIPMENT_IN_TRANSIT,
    SHIPMENT_OUT_FOR_DELIVERY,
    SHIPMENT_DELIVERED,
)
# Goods are back on the shelf or never went out
SHIPMENT_CLOSED_STATUSES = (SHIPMENT_RETURNED, SHIPMENT_CANCELLED)

CARRIERS = ("FedEx", "UPS", "USPS", "DHL", "Local Delivery", "Customer Pickup")
SHIPPING_METHODS = ("Standard", "Express", "Next Day", "Two Day", "Ground", "Overnight")
SHIPMENT_PRIORITIES = ("Low", "Normal", "High", "Urgent")
DEFAULT_COUNTRY = "Singapore"


class Shipment(db.Model):
    """
    Outbound shipment for exactly one sales order.

    Shipments never touch inventory: stock already left the ledger when the
    sales order was created. They drive the order's Shipped / Delivered
    status instead.
    """
    __tablename__ = "shipments"
    __table_args__ = (
        # At most one shipment per sales order
        db.UniqueConstraint("sales_order_id", name="uq_shipments_sales_order"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shipment_number = db.Column(db.String(32), nullable=False, unique=True)
    sales_order_id = db.Column(db.Integer, db.ForeignKey("sale_orders.id"), nullable=False)

    sales_order_number = db.Column(db.String(32), nullable=False)
    customer_name = db.Column(db.String(255), nullable=False)
    customer_email = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(64), nullable=True)

    ship_street = db.Column(db.String(255), nullable=False)
    ship_city = db.Column(db.String(128), nullable=False)
    ship_state = db.Column(db.String(128), nullable=True)
    ship_zip_code = db.Column(db.String(32), nullable=False)
    ship_country = db.Column(db.String(128), nullable=False, default=DEFAULT_COUNTRY)

    carrier = db.Column(db.String(32), nullable=False)
    shipping_method = db.Column(db.String(32), nullable=False)
    tracking_number = db.Column(db.String(128), nullable=True, index=True)
    estimated_delivery = db.Column(db.DateTime(timezone=True), nullable=True)
    actual_delivery = db.Column(db.DateTime(timezone=True), nullable=True)
    shipping_cost = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    weight = db.Column(db.Numeric(10, 2), nullable=True)
    priority = db.Column(db.String(16), nullable=False, default="Normal")
    signature_required = db.Column(db.Boolean, nullable=False, default=False)
    insurance_value = db.Column(db.Numeric(12, 2), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(32), nullable=False, default=SHIPMENT_PENDING, index=True)
    created_by = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    items = db.relationship(
        "ShipmentItem",
        back_populates="shipment",
        cascade="all, delete-orphan",
        order_by="ShipmentItem.id",
    )
    tracking_history = db.relationship(
        "ShipmentTrackingEvent",
        back_populates="shipment",
        cascade="all, delete-orphan",
        order_by="ShipmentTrackingEvent.id",
    )
    sales_order = db.relationship("SaleOrder")

    def __repr__(self) -> str:
        return f"<Shipment id={self.id} shipment_number={self.shipment_number!r} status={self.status!r}>"

    def add_tracking_event(self, status: str, *, updated_by: str | None, location: str | None = None, notes: str | None = None):
        entry = ShipmentTrackingEvent(
            status=status,
            location=location,
            notes=notes,
            updated_by=updated_by,
            timestamp=utcnow(),
        )
        self.tracking_history.append(entry)
        return entry

    def shipping_address(self) -> dict:
        return {
            "street": self.ship_street,
            "city": self.ship_city,
            "state": self.ship_state,
            "zip_code": self.ship_zip_code,
            "country": self.ship_country,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shipment_number": self.shipment_number,
            "sales_order_id": self.sales_order_id,
            "sales_order_number": self.sales_order_number,
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "customer_phone": self.customer_phone,
            "shipping_address": self.shipping_address(),
            "items": [item.to_dict() for item in self.items],
            "carrier": self.carrier,
            "shipping_method": self.shipping_method,
            "tracking_number": self.tracking_number,
            "estimated_delivery": to_utc_z(self.estimated_delivery),
            "actual_delivery": to_utc_z(self.actual_delivery),
            "shipping_cost": money_str(self.shipping_cost),
            "weight": money_str(self.weight),
            "priority": self.priority,
            "signature_required": self.signature_required,
            "insurance_value": money_str(self.insurance_value),
            "notes": self.notes,
            "status": self.status,
            "tracking_history": [entry.to_dict() for entry in self.tracking_history],
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

    def to_tracking_dict(self) -> dict:
        """Public tracking view: no customer contact details or costs."""
        return {
            "shipment_number": self.shipment_number,
            "tracking_number": self.tracking_number,
            "carrier": self.carrier,
            "shipping_method": self.shipping_method,
            "status": self.status,
            "estimated_delivery": to_utc_z(self.estimated_delivery),
            "actual_delivery": to_utc_z(self.actual_delivery),
            "tracking_history": [entry.to_dict() for entry in self.tracking_history],
        }


class ShipmentItem(db.Model):
    __tablename__ = "shipment_items"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    shipment_id = db.Column(db.Integer, db.ForeignKey("shipments.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, nullable=True, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)

    shipment = db.relationship("Shipment", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "sku": self.sku,
            "quantity": self.quantity,
            "unit_price": money_str(self.unit_price),
        }


class ShipmentTrackingEvent(db.Model):
    __tablename__ = "shipment_tracking_events"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    shipment_id = db.Column(db.Integer, db.ForeignKey("shipments.id", ondelete="CASCADE"), nullable=False, index=True)
    status = db.Column(db.String(32), nullable=False)
    location = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_by = db.Column(db.String(64), nullable=True)

    shipment = db.relationship("Shipment", back_populates="tracking_history")

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "location": self.location,
            "notes": self.notes,
            "timestamp": to_utc_z(self.timestamp),
            "updated_by": self.updated_by,
        }


@event.listens_for(ShipmentTrackingEvent, "before_update")
def _tracking_is_append_only(mapper, connection, target):
    session = object_session(target)
    if session is not None and session.is_modified(target, include_collections=False):
        raise InvalidStateError("Tracking history entries cannot be modified")


@event.listens_for(ShipmentTrackingEvent, "before_delete")
def _tracking_deleted_only_with_shipment(mapper, connection, target):
    session = object_session(target)
    parent_deleted = session is not None and any(
        isinstance(obj, Shipment) and obj.id == target.shipment_id for obj in session.deleted
    )
    if not parent_deleted:
        raise InvalidStateError("Tracking history entries cannot be deleted")
