# Overview: Service-layer operations for purchase orders; encapsulates business logic and database work.

"""
Purchase Order Service

LIFECYCLE:
1. Draft: created, awaiting approval
2. Sent: approved (approval advances Draft -> Sent) or sent manually
3. Acknowledged: vendor confirmed
4. Partially Received / Received: driven by receiving_service
5. Closed: paperwork done
Cancelled: from any non-terminal state, unless everything was received

TERMINAL: Closed and Cancelled orders are immutable except for notes.

TOTALS: total = subtotal + tax - discount + shipping_cost
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func, or_

from ..errors import InvalidStateError, NotFoundError, ValidationError
from ..extensions import db
from ..models import InventoryItem, PurchaseOrder, PurchaseOrderItem
from ..models.purchasing import (
    APPROVAL_APPROVED,
    APPROVAL_STATUSES,
    PO_STATUS_CANCELLED,
    PO_STATUS_DRAFT,
    PO_STATUS_SENT,
    PO_STATUSES,
    PO_TERMINAL_STATUSES,
    PRIORITIES,
    RECEIVING_FULL,
    RECEIVING_STATUSES,
)
from ..utils import money_str, quantize_money, utcnow
from ..validation import (
    clamp_pagination,
    optional_str,
    parse_sort,
    require_fields,
    to_choice,
    to_datetime,
    to_int,
    to_money,
)
from . import audit_service
from .concurrency import lock_for_update, unit_of_work
from .sequence_service import next_number

ZERO = Decimal("0.00")
SORTABLE_FIELDS = ("created_at", "po_number", "vendor_name", "total", "expected_delivery", "status")


def compute_totals(lines, *, tax: Decimal, discount: Decimal, shipping_cost: Decimal) -> tuple[Decimal, Decimal]:
    """
    Purchase order money math.

    Args:
        lines: iterable of (quantity, unit_price)

    Returns:
        (subtotal, total) where total = subtotal + tax - discount + shipping_cost
    """
    subtotal = quantize_money(sum((Decimal(q) * price for q, price in lines), ZERO))
    total = quantize_money(subtotal + tax - discount + shipping_cost)
    return subtotal, total


def _parse_items(raw_items) -> list[dict]:
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("At least one item is required")

    parsed = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        try:
            require_fields(raw, ["product_name", "sku"])
        except ValidationError as e:
            raise ValidationError(f"items[{index}]: {e.message}", e.details)
        product_id = raw.get("product_id")
        parsed.append({
            "product_id": to_int(product_id, f"items[{index}].product_id") if product_id is not None else None,
            "product_name": optional_str(raw["product_name"], "product_name"),
            "sku": optional_str(raw["sku"], "sku", max_length=64),
            "description": optional_str(raw.get("description"), "description", max_length=10_000),
            "quantity": to_int(raw.get("quantity"), f"items[{index}].quantity", minimum=1),
            "unit_price": to_money(raw.get("unit_price"), f"items[{index}].unit_price"),
        })
    return parsed


def create_purchase_order(data: dict, *, actor_id: str | None) -> PurchaseOrder:
    """
    Create a Draft purchase order.

    Args:
        data: vendor_name, vendor_email, items[] (product_name, sku, quantity,
            unit_price, optional product_id/description) plus optional tax,
            discount, shipping_cost, vendor contact, priority, payment_terms,
            expected_delivery, notes, internal_notes, department,
            delivery_location
        actor_id: Creating user

    Returns:
        Created PurchaseOrder with its initial Draft history entry

    Raises:
        ValidationError: Missing fields, bad quantities/prices, negative total
    """
    require_fields(data, ["vendor_name", "vendor_email", "items"])
    items = _parse_items(data.get("items"))
    tax = to_money(data.get("tax"), "tax", default=ZERO)
    discount = to_money(data.get("discount"), "discount", default=ZERO)
    shipping_cost = to_money(data.get("shipping_cost"), "shipping_cost", default=ZERO)
    subtotal, total = compute_totals(
        ((i["quantity"], i["unit_price"]) for i in items),
        tax=tax,
        discount=discount,
        shipping_cost=shipping_cost,
    )
    if total < 0:
        raise ValidationError("Total cannot be negative", {"total": money_str(total)})

    priority = to_choice(data.get("priority"), "priority", PRIORITIES, default="Medium")
    expected_delivery = to_datetime(data.get("expected_delivery"), "expected_delivery")

    with unit_of_work():
        # Keep product references only when they resolve to a ledger item
        known_ids = {
            row[0]
            for row in db.session.query(InventoryItem.id)
            .filter(InventoryItem.id.in_([i["product_id"] for i in items if i["product_id"]]))
            .all()
        }

        po = PurchaseOrder(
            po_number=next_number("purchase_order"),
            vendor_name=optional_str(data["vendor_name"], "vendor_name"),
            vendor_email=optional_str(data["vendor_email"], "vendor_email"),
            vendor_phone=optional_str(data.get("vendor_phone"), "vendor_phone", max_length=64),
            vendor_address=optional_str(data.get("vendor_address"), "vendor_address", max_length=2000),
            subtotal=subtotal,
            tax=tax,
            discount=discount,
            shipping_cost=shipping_cost,
            total=total,
            status=PO_STATUS_DRAFT,
            priority=priority,
            payment_terms=optional_str(data.get("payment_terms"), "payment_terms", max_length=64) or "Net 30",
            expected_delivery=expected_delivery,
            notes=optional_str(data.get("notes"), "notes", max_length=10_000),
            internal_notes=optional_str(data.get("internal_notes"), "internal_notes", max_length=10_000),
            department=optional_str(data.get("department"), "department", max_length=128),
            delivery_location=optional_str(data.get("delivery_location"), "delivery_location"),
            created_by=actor_id,
        )
        for i in items:
            po.items.append(PurchaseOrderItem(
                product_id=i["product_id"] if i["product_id"] in known_ids else None,
                product_name=i["product_name"],
                sku=i["sku"],
                description=i["description"],
                quantity=i["quantity"],
                unit_price=i["unit_price"],
                total_price=quantize_money(i["unit_price"] * i["quantity"]),
                received_quantity=0,
                pending_quantity=i["quantity"],
            ))
        po.add_history(PO_STATUS_DRAFT, changed_by=actor_id, notes="Purchase order created")
        db.session.add(po)
        db.session.flush()

    audit_service.record(
        actor_id,
        "CREATE_PURCHASE_ORDER",
        entity_type="purchase_order",
        entity_id=po.id,
        entity_name=po.po_number,
        description=f"Created purchase order {po.po_number} for {po.vendor_name}",
    )
    return po


def get_purchase_order(po_id: int) -> PurchaseOrder:
    po = db.session.get(PurchaseOrder, po_id)
    if not po:
        raise NotFoundError(f"Purchase order {po_id} not found")
    return po


def _lock_purchase_order(po_id: int) -> PurchaseOrder:
    po = lock_for_update(db.session.query(PurchaseOrder).filter_by(id=po_id)).first()
    if not po:
        raise NotFoundError(f"Purchase order {po_id} not found")
    return po


def list_purchase_orders(
    *,
    status: str | None = None,
    approval_status: str | None = None,
    receiving_status: str | None = None,
    priority: str | None = None,
    search: str | None = None,
    sort: str | None = None,
    limit: int | None = None,
    offset: int | None = None,
) -> tuple[list[PurchaseOrder], int]:
    limit, offset = clamp_pagination(limit, offset)
    column, descending = parse_sort(sort, SORTABLE_FIELDS)

    query = db.session.query(PurchaseOrder)
    if status:
        query = query.filter(PurchaseOrder.status == to_choice(status, "status", PO_STATUSES))
    if approval_status:
        query = query.filter(
            PurchaseOrder.approval_status == to_choice(approval_status, "approval_status", APPROVAL_STATUSES)
        )
    if receiving_status:
        query = query.filter(
            PurchaseOrder.receiving_status == to_choice(receiving_status, "receiving_status", RECEIVING_STATUSES)
        )
    if priority:
        query = query.filter(PurchaseOrder.priority == to_choice(priority, "priority", PRIORITIES))
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(
            PurchaseOrder.po_number.ilike(like),
            PurchaseOrder.vendor_name.ilike(like),
            PurchaseOrder.vendor_email.ilike(like),
        ))

    total = query.count()
    order_col = getattr(PurchaseOrder, column)
    query = query.order_by(order_col.desc() if descending else order_col.asc(), PurchaseOrder.id.desc())
    return query.offset(offset).limit(limit).all(), total


def approve_purchase_order(po_id: int, *, actor_id: str | None, notes: str | None = None) -> PurchaseOrder:
    """
    Approve a purchase order. A Draft order advances to Sent.

    Raises:
        NotFoundError: No such order
        InvalidStateError: Order is Closed or Cancelled
    """
    with unit_of_work():
        po = _lock_purchase_order(po_id)
        if po.status in PO_TERMINAL_STATUSES:
            raise InvalidStateError(
                f"Cannot approve a {po.status.lower()} purchase order",
                {"status": po.status},
            )
        po.approval_status = APPROVAL_APPROVED
        po.approved_by = actor_id
        po.approved_at = utcnow()
        if po.status == PO_STATUS_DRAFT:
            po.status = PO_STATUS_SENT
        po.add_history(APPROVAL_APPROVED, changed_by=actor_id, notes=notes or "Purchase order approved")

    audit_service.record(
        actor_id,
        "APPROVE_PURCHASE_ORDER",
        entity_type="purchase_order",
        entity_id=po.id,
        entity_name=po.po_number,
    )
    return po


def update_purchase_order_status(
    po_id: int,
    status: str,
    *,
    actor_id: str | None,
    notes: str | None = None,
) -> PurchaseOrder:
    """
    Set a purchase order's status and append a history entry.

    Transitions between non-terminal statuses are trusted to the caller.
    A Closed or Cancelled order cannot move to another status; re-posting
    its current status only appends the notes.

    Raises:
        ValidationError: Unknown status
        InvalidStateError: Leaving a terminal status, or cancelling a
            fully received order
    """
    status = to_choice(status, "status", PO_STATUSES)

    with unit_of_work():
        po = _lock_purchase_order(po_id)
        previous = po.status
        if previous in PO_TERMINAL_STATUSES and status != previous:
            raise InvalidStateError(
                f"Purchase order is {previous.lower()} and cannot change status",
                {"status": previous, "requested": status},
            )
        if status == PO_STATUS_CANCELLED and previous != status and po.receiving_status == RECEIVING_FULL:
            raise InvalidStateError("Cannot cancel a fully received purchase order")
        po.status = status
        po.add_history(status, changed_by=actor_id, notes=notes or f"Status changed to {status}")

    audit_service.record(
        actor_id,
        "UPDATE_PURCHASE_ORDER_STATUS",
        entity_type="purchase_order",
        entity_id=po.id,
        entity_name=po.po_number,
        changes={"status": [previous, status]},
    )
    return po


def cancel_purchase_order(po_id: int, *, actor_id: str | None, reason: str | None = None) -> PurchaseOrder:
    """
    Cancel a purchase order.

    Raises:
        InvalidStateError: Already Cancelled, Closed, or fully received
    """
    with unit_of_work():
        po = _lock_purchase_order(po_id)
        if po.status == PO_STATUS_CANCELLED:
            raise InvalidStateError("Purchase order is already cancelled")
        if po.status in PO_TERMINAL_STATUSES:
            raise InvalidStateError(f"Cannot cancel a {po.status.lower()} purchase order", {"status": po.status})
        if po.receiving_status == RECEIVING_FULL:
            raise InvalidStateError("Cannot cancel a fully received purchase order")
        po.status = PO_STATUS_CANCELLED
        po.add_history(PO_STATUS_CANCELLED, changed_by=actor_id, notes=reason or "Purchase order cancelled")

    audit_service.record(
        actor_id,
        "CANCEL_PURCHASE_ORDER",
        entity_type="purchase_order",
        entity_id=po.id,
        entity_name=po.po_number,
        description=reason,
    )
    return po


def delete_purchase_order(po_id: int, *, actor_id: str | None) -> None:
    """
    Delete a purchase order.

    Only Draft or Cancelled orders with nothing received may be deleted.
    """
    with unit_of_work():
        po = _lock_purchase_order(po_id)
        if po.status not in (PO_STATUS_DRAFT, PO_STATUS_CANCELLED):
            raise InvalidStateError(
                "Only draft or cancelled purchase orders can be deleted",
                {"status": po.status},
            )
        if any(item.received_quantity > 0 for item in po.items):
            raise InvalidStateError("Purchase orders with received items cannot be deleted")
        po_number = po.po_number
        db.session.delete(po)

    audit_service.record(
        actor_id,
        "DELETE_PURCHASE_ORDER",
        entity_type="purchase_order",
        entity_id=po_id,
        entity_name=po_number,
    )


def purchase_order_stats() -> dict:
    by_status = dict(
        db.session.query(PurchaseOrder.status, func.count(PurchaseOrder.id))
        .group_by(PurchaseOrder.status)
        .all()
    )
    by_receiving = dict(
        db.session.query(PurchaseOrder.receiving_status, func.count(PurchaseOrder.id))
        .group_by(PurchaseOrder.receiving_status)
        .all()
    )
    total_value = (
        db.session.query(func.coalesce(func.sum(PurchaseOrder.total), 0))
        .filter(PurchaseOrder.status != PO_STATUS_CANCELLED)
        .scalar()
    )
    pending_approval = (
        db.session.query(func.count(PurchaseOrder.id))
        .filter(PurchaseOrder.approval_status != APPROVAL_APPROVED)
        .filter(PurchaseOrder.status.notin_(PO_TERMINAL_STATUSES))
        .scalar()
    )
    return {
        "total": sum(by_status.values()),
        "by_status": {s: by_status.get(s, 0) for s in PO_STATUSES},
        "by_receiving_status": {s: by_receiving.get(s, 0) for s in RECEIVING_STATUSES},
        "pending_approval": pending_approval,
        "total_value": money_str(total_value or 0),
    }
