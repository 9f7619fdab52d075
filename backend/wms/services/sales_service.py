# Overview: Service-layer operations for sales orders; encapsulates business logic and database work.

"""
Sales Order Service

WHY: Stock is committed to a customer at order creation. Creating an order
decrements every line through the ledger; cancelling restores exactly what
was taken, once.

LIFECYCLE:
Pending -> Confirmed -> Processing -> Shipped -> Delivered
Cancelled only via cancel_sale_order (restores stock). An order with a
live shipment (anything but Returned or Cancelled) cannot be cancelled;
those goods are not on the shelf.

TOTALS: total = subtotal + tax + shipping_cost - discount
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func, or_

from ..errors import InsufficientStockError, InvalidStateError, NotFoundError, ValidationError
from ..extensions import db
from ..models import SaleOrder, SaleOrderItem, Shipment
from ..models.inventory import REASON_SALE, REASON_SALE_CANCELLATION
from ..models.sales import (
    PAYMENT_STATUSES,
    SALE_STATUS_CANCELLED,
    SALE_STATUS_PENDING,
    SALE_STATUSES,
)
from ..models.shipping import SHIPMENT_CLOSED_STATUSES
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
from . import audit_service, inventory_service
from .concurrency import lock_for_update, unit_of_work
from .sequence_service import next_number

ZERO = Decimal("0.00")
SORTABLE_FIELDS = ("created_at", "order_number", "customer_name", "total", "status")


def compute_totals(lines, *, tax: Decimal, discount: Decimal, shipping_cost: Decimal) -> tuple[Decimal, Decimal]:
    """
    Sales order money math.

    Args:
        lines: iterable of (quantity, unit_price)

    Returns:
        (subtotal, total) where total = subtotal + tax + shipping_cost - discount
    """
    subtotal = quantize_money(sum((Decimal(q) * price for q, price in lines), ZERO))
    total = quantize_money(subtotal + tax + shipping_cost - discount)
    return subtotal, total


def _parse_items(raw_items) -> list[dict]:
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("At least one item is required")
    parsed = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        product_id = raw.get("product_id")
        sku = raw.get("sku")
        if product_id is None and not sku:
            raise ValidationError(f"items[{index}] needs product_id or sku")
        parsed.append({
            "ref": to_int(product_id, f"items[{index}].product_id") if product_id is not None else sku,
            "quantity": to_int(raw.get("quantity"), f"items[{index}].quantity", minimum=1),
        })
    return parsed


def _lock_order(ref):
    return (1, ref) if isinstance(ref, str) else (0, ref)


def _live_shipment(order_id: int) -> Shipment | None:
    return (
        db.session.query(Shipment)
        .filter(Shipment.sales_order_id == order_id, Shipment.status.notin_(SHIPMENT_CLOSED_STATUSES))
        .first()
    )


def create_sale_order(data: dict, *, actor_id: str | None) -> SaleOrder:
    """
    Create a sales order and take its stock out of the ledger.

    All-or-nothing: if any line is short, no line is decremented and no
    order exists.

    Args:
        data: customer_name, customer_email, items[] ({product_id or sku,
            quantity}) plus optional tax, discount, shipping_cost,
            customer_phone, customer_address, carrier, expected_delivery,
            notes, payment_status
        actor_id: Creating user

    Raises:
        ValidationError: Missing fields or bad quantities
        NotFoundError: A line names an unknown product
        InsufficientStockError: requested > available for some product
    """
    require_fields(data, ["customer_name", "customer_email", "items"])
    lines = _parse_items(data.get("items"))
    tax = to_money(data.get("tax"), "tax", default=ZERO)
    discount = to_money(data.get("discount"), "discount", default=ZERO)
    shipping_cost = to_money(data.get("shipping_cost"), "shipping_cost", default=ZERO)
    payment_status = to_choice(data.get("payment_status"), "payment_status", PAYMENT_STATUSES, default="Pending")
    expected_delivery = to_datetime(data.get("expected_delivery"), "expected_delivery")

    with unit_of_work():
        # Lock every product first (ids, then SKUs, each ascending) and check
        # availability for the whole order
        locked = {}
        for ref in sorted({line["ref"] for line in lines}, key=_lock_order):
            item = inventory_service.lock_item(ref)
            if item is None:
                raise NotFoundError(f"Product {ref} not found", {"product": ref})
            locked[ref] = item

        resolved = []
        requested_by_item = {}
        for line in lines:
            item = locked[line["ref"]]
            requested_by_item[item.id] = requested_by_item.get(item.id, 0) + line["quantity"]
            resolved.append((item, line["quantity"]))

        for item, _ in resolved:
            requested = requested_by_item[item.id]
            if requested > item.quantity:
                raise InsufficientStockError(
                    f"Not enough stock for {item.name}. Available: {item.quantity}, Requested: {requested}",
                    sku=item.sku,
                    requested=requested,
                    available=item.quantity,
                    item_id=item.id,
                )

        subtotal, total = compute_totals(
            ((qty, item.rate) for item, qty in resolved),
            tax=tax,
            discount=discount,
            shipping_cost=shipping_cost,
        )
        if total < 0:
            raise ValidationError("Total cannot be negative", {"total": money_str(total)})

        order = SaleOrder(
            order_number=next_number("sale_order"),
            customer_name=optional_str(data["customer_name"], "customer_name"),
            customer_email=optional_str(data["customer_email"], "customer_email"),
            customer_phone=optional_str(data.get("customer_phone"), "customer_phone", max_length=64),
            customer_address=optional_str(data.get("customer_address"), "customer_address", max_length=2000),
            subtotal=subtotal,
            tax=tax,
            discount=discount,
            shipping_cost=shipping_cost,
            total=total,
            carrier=optional_str(data.get("carrier"), "carrier", max_length=64),
            expected_delivery=expected_delivery,
            notes=optional_str(data.get("notes"), "notes", max_length=10_000),
            status=SALE_STATUS_PENDING,
            payment_status=payment_status,
            created_by=actor_id,
        )
        for item, qty in resolved:
            order.items.append(SaleOrderItem(
                product_id=item.id,
                product_name=item.name,
                sku=item.sku,
                quantity=qty,
                unit_price=quantize_money(item.rate),
                total_price=quantize_money(item.rate * qty),
            ))
        db.session.add(order)
        db.session.flush()

        for line in order.items:
            inventory_service.adjust(
                line.product_id,
                -line.quantity,
                REASON_SALE,
                actor_id=actor_id,
                reference_type="sale_order",
                reference_id=order.id,
            )

    audit_service.record(
        actor_id,
        "CREATE_SALE_ORDER",
        entity_type="sale_order",
        entity_id=order.id,
        entity_name=order.order_number,
        description=f"Created sales order {order.order_number} for {order.customer_name}",
    )
    return order


def get_sale_order(order_id: int) -> SaleOrder:
    order = db.session.get(SaleOrder, order_id)
    if not order:
        raise NotFoundError(f"Sales order {order_id} not found")
    return order


def lock_sale_order(order_id: int) -> SaleOrder:
    order = lock_for_update(db.session.query(SaleOrder).filter_by(id=order_id)).first()
    if not order:
        raise NotFoundError(f"Sales order {order_id} not found")
    return order


def list_sale_orders(
    *,
    status: str | None = None,
    payment_status: str | None = None,
    search: str | None = None,
    sort: str | None = None,
    limit: int | None = None,
    offset: int | None = None,
) -> tuple[list[SaleOrder], int]:
    limit, offset = clamp_pagination(limit, offset)
    column, descending = parse_sort(sort, SORTABLE_FIELDS)

    query = db.session.query(SaleOrder)
    if status:
        query = query.filter(SaleOrder.status == to_choice(status, "status", SALE_STATUSES))
    if payment_status:
        query = query.filter(
            SaleOrder.payment_status == to_choice(payment_status, "payment_status", PAYMENT_STATUSES)
        )
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(
            SaleOrder.order_number.ilike(like),
            SaleOrder.customer_name.ilike(like),
            SaleOrder.customer_email.ilike(like),
        ))

    total = query.count()
    order_col = getattr(SaleOrder, column)
    query = query.order_by(order_col.desc() if descending else order_col.asc(), SaleOrder.id.desc())
    return query.offset(offset).limit(limit).all(), total


def cancel_sale_order(order_id: int, *, actor_id: str | None, reason: str | None = None) -> SaleOrder:
    """
    Cancel a sales order and put every line back on the shelf.

    Raises:
        InvalidStateError: Already cancelled (no second restore), or a
            shipment for the order is still live
    """
    with unit_of_work():
        order = lock_sale_order(order_id)
        if order.status == SALE_STATUS_CANCELLED:
            raise InvalidStateError("Sales order is already cancelled")
        shipment = _live_shipment(order.id)
        if shipment is not None:
            raise InvalidStateError(
                f"Cannot cancel {order.order_number}: shipment {shipment.shipment_number} is {shipment.status}",
                {"shipment_id": shipment.id, "shipment_status": shipment.status},
            )

        for line in order.items:
            if line.product_id is None:
                raise InvalidStateError(
                    f"Cannot restore stock for {line.sku}: the inventory item no longer exists",
                    {"sku": line.sku},
                )
            inventory_service.adjust(
                line.product_id,
                line.quantity,
                REASON_SALE_CANCELLATION,
                actor_id=actor_id,
                reference_type="sale_order",
                reference_id=order.id,
            )

        previous = order.status
        order.status = SALE_STATUS_CANCELLED
        order.cancelled_at = utcnow()
        order.cancelled_by = actor_id
        order.cancellation_reason = optional_str(reason, "reason", max_length=10_000)

    audit_service.record(
        actor_id,
        "CANCEL_SALE_ORDER",
        entity_type="sale_order",
        entity_id=order.id,
        entity_name=order.order_number,
        description=reason,
        changes={"status": [previous, SALE_STATUS_CANCELLED]},
    )
    return order


def update_sale_order_status(
    order_id: int,
    *,
    actor_id: str | None,
    status: str | None = None,
    payment_status: str | None = None,
    notes: str | None = None,
) -> SaleOrder:
    """
    Set status and/or payment status. No inventory side effects.

    Cancellation is refused here (use cancel_sale_order, which restores
    stock). A cancelled order keeps its status but still takes payment
    status and notes, e.g. to record a refund.
    """
    if status is None and payment_status is None and notes is None:
        raise ValidationError("Nothing to update")
    if status is not None:
        status = to_choice(status, "status", SALE_STATUSES)
        if status == SALE_STATUS_CANCELLED:
            raise InvalidStateError("Use the cancel operation to cancel a sales order")
    if payment_status is not None:
        payment_status = to_choice(payment_status, "payment_status", PAYMENT_STATUSES)

    changes = {}
    with unit_of_work():
        order = lock_sale_order(order_id)
        if order.status == SALE_STATUS_CANCELLED and status is not None:
            raise InvalidStateError("Cancelled sales orders cannot change status", {"status": status})
        if status is not None and status != order.status:
            changes["status"] = [order.status, status]
            order.status = status
        if payment_status is not None and payment_status != order.payment_status:
            changes["payment_status"] = [order.payment_status, payment_status]
            order.payment_status = payment_status
        if notes is not None:
            order.notes = optional_str(notes, "notes", max_length=10_000)

    audit_service.record(
        actor_id,
        "UPDATE_SALE_ORDER_STATUS",
        entity_type="sale_order",
        entity_id=order.id,
        entity_name=order.order_number,
        changes=changes or None,
    )
    return order


def delete_sale_order(order_id: int, *, actor_id: str | None) -> None:
    """Delete a cancelled sales order (its stock was already restored)."""
    with unit_of_work():
        order = lock_sale_order(order_id)
        if order.status != SALE_STATUS_CANCELLED:
            raise InvalidStateError(
                "Only cancelled sales orders can be deleted",
                {"status": order.status},
            )
        shipment = db.session.query(Shipment).filter_by(sales_order_id=order.id).first()
        if shipment is not None:
            raise InvalidStateError(
                f"Delete shipment {shipment.shipment_number} before deleting {order.order_number}",
                {"shipment_id": shipment.id},
            )
        number = order.order_number
        db.session.delete(order)

    audit_service.record(
        actor_id,
        "DELETE_SALE_ORDER",
        entity_type="sale_order",
        entity_id=order_id,
        entity_name=number,
    )


def sale_order_stats() -> dict:
    by_status = dict(
        db.session.query(SaleOrder.status, func.count(SaleOrder.id)).group_by(SaleOrder.status).all()
    )
    revenue = (
        db.session.query(func.coalesce(func.sum(SaleOrder.total), 0))
        .filter(SaleOrder.status != SALE_STATUS_CANCELLED)
        .scalar()
    )
    return {
        "total": sum(by_status.values()),
        "by_status": {s: by_status.get(s, 0) for s in SALE_STATUSES},
        "revenue": money_str(revenue or 0),
    }
