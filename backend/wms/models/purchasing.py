from __future__ import annotations

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session, object_session

from ..errors import InvalidStateError
from ..extensions import db
from ..utils import money_str, to_utc_z, utcnow

# Purchase order lifecycle
PO_STATUS_DRAFT = "Draft"
PO_STATUS_SENT = "Sent"
PO_STATUS_ACKNOWLEDGED = "Acknowledged"
PO_STATUS_PARTIALLY_RECEIVED = "Partially Received"
PO_STATUS_RECEIVED = "Received"
PO_STATUS_CLOSED = "Closed"
PO_STATUS_CANCELLED = "Cancelled"
PO_STATUSES = (
    PO_STATUS_DRAFT,
    PO_STATUS_SENT,
    PO_STATUS_ACKNOWLEDGED,
    PO_STATUS_PARTIALLY_RECEIVED,
    PO_STATUS_RECEIVED,
    PO_STATUS_CLOSED,
    PO_STATUS_CANCELLED,
)
PO_TERMINAL_STATUSES = (PO_STATUS_CLOSED, PO_STATUS_CANCELLED)
PO_RECEIVABLE_STATUSES = (PO_STATUS_SENT, PO_STATUS_ACKNOWLEDGED, PO_STATUS_PARTIALLY_RECEIVED)

APPROVAL_PENDING = "Pending"
APPROVAL_APPROVED = "Approved"
APPROVAL_REJECTED = "Rejected"
APPROVAL_STATUSES = (APPROVAL_PENDING, APPROVAL_APPROVED, APPROVAL_REJECTED)

RECEIVING_PENDING = "Pending"
RECEIVING_PARTIAL = "Partially Received"
RECEIVING_FULL = "Fully Received"
RECEIVING_STATUSES = (RECEIVING_PENDING, RECEIVING_PARTIAL, RECEIVING_FULL)

PRIORITIES = ("Low", "Medium", "High", "Urgent")

# Receiving receipt lifecycle
RECEIPT_RECEIVED = "Received"
RECEIPT_INSPECTED = "Inspected"
RECEIPT_APPROVED = "Approved"
RECEIPT_REJECTED = "Rejected"
RECEIPT_STATUSES = (RECEIPT_RECEIVED, RECEIPT_INSPECTED, RECEIPT_APPROVED, RECEIPT_REJECTED)

CONDITIONS = ("Good", "Damaged", "Defective", "Partial")


def derive_receiving_status(quantities) -> str:
    """
    Derive a purchase order's receiving status from its lines.

    Args:
        quantities: iterable of (ordered, received) pairs

    Returns:
        "Pending" when nothing has arrived, "Fully Received" when every line
        is complete, "Partially Received" otherwise.
    """
    pairs = list(quantities)
    if not pairs or all(received <= 0 for _, received in pairs):
        return RECEIVING_PENDING
    if all(received >= ordered for ordered, received in pairs):
        return RECEIVING_FULL
    return RECEIVING_PARTIAL


class PurchaseOrder(db.Model):
    """
    Purchase order issued to a vendor.

    LIFECYCLE:
    Draft -> Sent -> Acknowledged -> Partially Received / Received -> Closed
    Cancelled is reachable from any non-terminal state unless fully received.

    TERMINAL: Closed and Cancelled orders only accept notes.

    DERIVED FIELDS: receiving_status (and each line's pending_quantity) are
    recomputed from the lines on every flush; see _sync_derived_fields.
    """
    __tablename__ = "purchase_orders"
    __table_args__ = (
        db.Index("ix_purchase_orders_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    po_number = db.Column(db.String(32), nullable=False, unique=True)

    vendor_name = db.Column(db.String(255), nullable=False)
    vendor_email = db.Column(db.String(255), nullable=False)
    vendor_phone = db.Column(db.String(64), nullable=True)
    vendor_address = db.Column(db.Text, nullable=True)

    subtotal = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    tax = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    shipping_cost = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    status = db.Column(db.String(32), nullable=False, default=PO_STATUS_DRAFT, index=True)
    approval_status = db.Column(db.String(16), nullable=False, default=APPROVAL_PENDING)
    receiving_status = db.Column(db.String(32), nullable=False, default=RECEIVING_PENDING)
    priority = db.Column(db.String(16), nullable=False, default="Medium")
    payment_terms = db.Column(db.String(64), nullable=False, default="Net 30")

    expected_delivery = db.Column(db.DateTime(timezone=True), nullable=True)
    actual_delivery = db.Column(db.DateTime(timezone=True), nullable=True)
    carrier = db.Column(db.String(64), nullable=True)
    tracking_number = db.Column(db.String(128), nullable=True)

    notes = db.Column(db.Text, nullable=True)
    internal_notes = db.Column(db.Text, nullable=True)
    receiving_notes = db.Column(db.Text, nullable=True)
    department = db.Column(db.String(128), nullable=True)
    delivery_location = db.Column(db.String(255), nullable=True)

    approved_by = db.Column(db.String(64), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_by = db.Column(db.String(64), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    items = db.relationship(
        "PurchaseOrderItem",
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderItem.id",
    )
    status_history = db.relationship(
        "PurchaseOrderStatusHistory",
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderStatusHistory.id",
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<PurchaseOrder id={self.id} po_number={self.po_number!r} status={self.status!r}>"

    def add_history(self, status: str, *, changed_by: str | None, notes: str | None = None):
        entry = PurchaseOrderStatusHistory(status=status, changed_by=changed_by, notes=notes, changed_at=utcnow())
        self.status_history.append(entry)
        return entry

    def to_dict(self, include_history: bool = True) -> dict:
        data = {
            "id": self.id,
            "po_number": self.po_number,
            "vendor_name": self.vendor_name,
            "vendor_email": self.vendor_email,
            "vendor_phone": self.vendor_phone,
            "vendor_address": self.vendor_address,
            "items": [item.to_dict() for item in self.items],
            "subtotal": money_str(self.subtotal),
            "tax": money_str(self.tax),
            "discount": money_str(self.discount),
            "shipping_cost": money_str(self.shipping_cost),
            "total": money_str(self.total),
            "status": self.status,
            "approval_status": self.approval_status,
            "receiving_status": self.receiving_status,
            "priority": self.priority,
            "payment_terms": self.payment_terms,
            "expected_delivery": to_utc_z(self.expected_delivery),
            "actual_delivery": to_utc_z(self.actual_delivery),
            "carrier": self.carrier,
            "tracking_number": self.tracking_number,
            "notes": self.notes,
            "internal_notes": self.internal_notes,
            "receiving_notes": self.receiving_notes,
            "department": self.department,
            "delivery_location": self.delivery_location,
            "approved_by": self.approved_by,
            "approved_at": to_utc_z(self.approved_at),
            "created_by": self.created_by,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_history:
            data["status_history"] = [h.to_dict() for h in self.status_history]
        return data


class PurchaseOrderItem(db.Model):
    __tablename__ = "purchase_order_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="quantity_positive"),
        db.CheckConstraint("received_quantity >= 0", name="received_nonneg"),
        db.CheckConstraint("received_quantity <= quantity", name="received_within_ordered"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_order_id = db.Column(
        db.Integer, db.ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Null until the SKU exists in the ledger (bound by the first receipt)
    product_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id", ondelete="SET NULL"), nullable=True, index=True)

    product_name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=False)
    description = db.Column(db.Text, nullable=True)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    received_quantity = db.Column(db.Integer, nullable=False, default=0)
    pending_quantity = db.Column(db.Integer, nullable=False, default=0)

    purchase_order = db.relationship("PurchaseOrder", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "sku": self.sku,
            "description": self.description,
            "quantity": self.quantity,
            "unit_price": money_str(self.unit_price),
            "total_price": money_str(self.total_price),
            "received_quantity": self.received_quantity,
            "pending_quantity": self.pending_quantity,
        }


class PurchaseOrderStatusHistory(db.Model):
    """Append-only status trail; rows go away only with their purchase order."""
    __tablename__ = "purchase_order_status_history"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    purchase_order_id = db.Column(
        db.Integer, db.ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status = db.Column(db.String(32), nullable=False)
    changed_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    changed_by = db.Column(db.String(64), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    purchase_order = db.relationship("PurchaseOrder", back_populates="status_history")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "status": self.status,
            "changed_at": to_utc_z(self.changed_at),
            "changed_by": self.changed_by,
            "notes": self.notes,
        }


class ReceivingReceipt(db.Model):
    """
    Immutable record of one physical arrival against a purchase order.

    Vendor and unit prices are snapshotted so later PO edits never change
    what was received. total_value is always the sum of the lines.

    LIFECYCLE:
    Received -> Inspected / Approved / Rejected
    Inspected -> Approved / Rejected
    Rejected -> Inspected (re-inspection)
    Approved is final: no further changes, no deletion.
    """
    __tablename__ = "receiving_receipts"
    __table_args__ = (
        db.Index("ix_receiving_receipts_status_received", "status", "received_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    receipt_number = db.Column(db.String(32), nullable=False, unique=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=False, index=True)

    po_number = db.Column(db.String(32), nullable=False)
    vendor_name = db.Column(db.String(255), nullable=False)
    vendor_email = db.Column(db.String(255), nullable=True)

    total_value = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    tracking_number = db.Column(db.String(128), nullable=True)
    carrier = db.Column(db.String(64), nullable=True)
    delivery_date = db.Column(db.DateTime(timezone=True), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=RECEIPT_RECEIVED, index=True)
    inspection_passed = db.Column(db.Boolean, nullable=True)
    inspection_notes = db.Column(db.Text, nullable=True)
    inspected_by = db.Column(db.String(64), nullable=True)
    inspected_at = db.Column(db.DateTime(timezone=True), nullable=True)
    approved_by = db.Column(db.String(64), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    discrepancy_notes = db.Column(db.Text, nullable=True)
    receiving_location = db.Column(db.String(64), nullable=True)
    storage_location = db.Column(db.String(64), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    received_by = db.Column(db.String(64), nullable=True)
    received_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    lines = db.relationship(
        "ReceiptLine",
        back_populates="receipt",
        cascade="all, delete-orphan",
        order_by="ReceiptLine.id",
    )
    purchase_order = db.relationship("PurchaseOrder")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "receipt_number": self.receipt_number,
            "purchase_order_id": self.purchase_order_id,
            "po_number": self.po_number,
            "vendor_name": self.vendor_name,
            "vendor_email": self.vendor_email,
            "lines": [line.to_dict() for line in self.lines],
            "total_value": money_str(self.total_value),
            "tracking_number": self.tracking_number,
            "carrier": self.carrier,
            "delivery_date": to_utc_z(self.delivery_date),
            "status": self.status,
            "inspection_passed": self.inspection_passed,
            "inspection_notes": self.inspection_notes,
            "inspected_by": self.inspected_by,
            "inspected_at": to_utc_z(self.inspected_at),
            "approved_by": self.approved_by,
            "approved_at": to_utc_z(self.approved_at),
            "discrepancy_notes": self.discrepancy_notes,
            "receiving_location": self.receiving_location,
            "storage_location": self.storage_location,
            "notes": self.notes,
            "received_by": self.received_by,
            "received_at": to_utc_z(self.received_at),
        }


class ReceiptLine(db.Model):
    __tablename__ = "receipt_lines"
    __table_args__ = (
        db.CheckConstraint("quantity_received >= 1", name="quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    receipt_id = db.Column(db.Integer, db.ForeignKey("receiving_receipts.id", ondelete="CASCADE"), nullable=False, index=True)
    purchase_order_item_id = db.Column(db.Integer, db.ForeignKey("purchase_order_items.id"), nullable=False)
    product_id = db.Column(db.Integer, nullable=True)
    product_name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=False)
    quantity_ordered = db.Column(db.Integer, nullable=False)
    quantity_received = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    total_value = db.Column(db.Numeric(12, 2), nullable=False)
    condition = db.Column(db.String(16), nullable=False, default="Good")
    location = db.Column(db.String(64), nullable=True)
    batch_number = db.Column(db.String(64), nullable=True)
    serial_number = db.Column(db.String(128), nullable=True)
    expiry_date = db.Column(db.DateTime(timezone=True), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    receipt = db.relationship("ReceivingReceipt", back_populates="lines")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_order_item_id": self.purchase_order_item_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "sku": self.sku,
            "quantity_ordered": self.quantity_ordered,
            "quantity_received": self.quantity_received,
            "unit_price": money_str(self.unit_price),
            "total_value": money_str(self.total_value),
            "condition": self.condition,
            "location": self.location,
            "batch_number": self.batch_number,
            "serial_number": self.serial_number,
            "expiry_date": to_utc_z(self.expiry_date),
            "notes": self.notes,
        }


@event.listens_for(Session, "before_flush")
def _sync_derived_fields(session, flush_context, instances):
    """Recompute pending quantities and receiving status before every flush."""
    orders = set()
    for obj in list(session.new) + list(session.dirty):
        if isinstance(obj, PurchaseOrderItem):
            obj.pending_quantity = (obj.quantity or 0) - (obj.received_quantity or 0)
            if obj.purchase_order is not None:
                orders.add(obj.purchase_order)
        elif isinstance(obj, PurchaseOrder):
            orders.add(obj)
    for order in orders:
        if order in session.deleted:
            continue
        derived = derive_receiving_status(
            (item.quantity or 0, item.received_quantity or 0) for item in order.items
        )
        if order.receiving_status != derived:
            order.receiving_status = derived


@event.listens_for(PurchaseOrderStatusHistory, "before_update")
def _history_is_append_only(mapper, connection, target):
    session = object_session(target)
    if session is not None and session.is_modified(target, include_collections=False):
        raise InvalidStateError("Status history entries cannot be modified")


@event.listens_for(PurchaseOrderStatusHistory, "before_delete")
def _history_deleted_only_with_order(mapper, connection, target):
    session = object_session(target)
    parent_deleted = session is not None and any(
        isinstance(obj, PurchaseOrder) and obj.id == target.purchase_order_id for obj in session.deleted
    )
    if not parent_deleted:
        raise InvalidStateError("Status history entries cannot be deleted")


@event.listens_for(ReceivingReceipt, "before_update")
def _approved_receipt_is_final(mapper, connection, target):
    history = inspect(target).attrs.status.history
    previous = history.deleted[0] if history.deleted else target.status
    if previous == RECEIPT_APPROVED:
        raise InvalidStateError("Approved receipts cannot be modified")


@event.listens_for(ReceivingReceipt, "before_delete")
def _approved_receipt_not_deletable(mapper, connection, target):
    if target.status == RECEIPT_APPROVED:
        raise InvalidStateError("Approved receipts cannot be deleted")
