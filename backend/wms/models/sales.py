from __future__ import annotations

from ..extensions import db
from ..utils import money_str, to_utc_z, utcnow

SALE_STATUS_PENDING = "Pending"
SALE_STATUS_CONFIRMED = "Confirmed"
SALE_STATUS_PROCESSING = "Processing"
SALE_STATUS_SHIPPED = "Shipped"
SALE_STATUS_DELIVERED = "Delivered"
SALE_STATUS_CANCELLED = "Cancelled"
SALE_STATUSES = (
    SALE_STATUS_PENDING,
    SALE_STATUS_CONFIRMED,
    SALE_STATUS_PROCESSING,
    SALE_STATUS_SHIPPED,
    SALE_STATUS_DELIVERED,
    SALE_STATUS_CANCELLED,
)
# A shipment may only be created for an order in one of these
SHIPPABLE_STATUSES = (SALE_STATUS_CONFIRMED, SALE_STATUS_PROCESSING)

PAYMENT_STATUSES = ("Pending", "Paid", "Partial", "Refunded")


class SaleOrder(db.Model):
    """
    Customer sales order.

    WHY: Stock leaves the ledger the moment an order is created, so two
    customers can never be promised the same unit.

    LIFECYCLE:
    Pending -> Confirmed -> Processing -> Shipped -> Delivered
    Cancelled (via sales_service.cancel_sale_order) restores every line's
    quantity exactly once; cancelled_at marks that the restore happened.
    """
    __tablename__ = "sale_orders"
    __table_args__ = (
        db.Index("ix_sale_orders_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(32), nullable=False, unique=True)

    customer_name = db.Column(db.String(255), nullable=False)
    customer_email = db.Column(db.String(255), nullable=False)
    customer_phone = db.Column(db.String(64), nullable=True)
    customer_address = db.Column(db.Text, nullable=True)

    subtotal = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    tax = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    shipping_cost = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    carrier = db.Column(db.String(64), nullable=True)
    expected_delivery = db.Column(db.DateTime(timezone=True), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(16), nullable=False, default=SALE_STATUS_PENDING, index=True)
    payment_status = db.Column(db.String(16), nullable=False, default="Pending")

    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_by = db.Column(db.String(64), nullable=True)
    cancellation_reason = db.Column(db.Text, nullable=True)

    created_by = db.Column(db.String(64), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    items = db.relationship(
        "SaleOrderItem",
        back_populates="sale_order",
        cascade="all, delete-orphan",
        order_by="SaleOrderItem.id",
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<SaleOrder id={self.id} order_number={self.order_number!r} status={self.status!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "customer_phone": self.customer_phone,
            "customer_address": self.customer_address,
            "items": [item.to_dict() for item in self.items],
            "subtotal": money_str(self.subtotal),
            "tax": money_str(self.tax),
            "discount": money_str(self.discount),
            "shipping_cost": money_str(self.shipping_cost),
            "total": money_str(self.total),
            "carrier": self.carrier,
            "expected_delivery": to_utc_z(self.expected_delivery),
            "notes": self.notes,
            "status": self.status,
            "payment_status": self.payment_status,
            "cancelled_at": to_utc_z(self.cancelled_at),
            "cancelled_by": self.cancelled_by,
            "cancellation_reason": self.cancellation_reason,
            "created_by": self.created_by,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class SaleOrderItem(db.Model):
    __tablename__ = "sale_order_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_order_id = db.Column(db.Integer, db.ForeignKey("sale_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id", ondelete="SET NULL"), nullable=True, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    # Snapshot of InventoryItem.rate when the order was placed
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    total_price = db.Column(db.Numeric(12, 2), nullable=False)

    sale_order = db.relationship("SaleOrder", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "sku": self.sku,
            "quantity": self.quantity,
            "unit_price": money_str(self.unit_price),
            "total_price": money_str(self.total_price),
        }
