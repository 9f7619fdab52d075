# Overview: Service-layer operations for shipments; encapsulates business logic and database work.

"""
Shipment Service

WHY: A shipment is the physical leg of a sales order. It never touches
inventory (stock left the ledger when the order was created); instead it
gates and drives the order's status.

RULES:
- Only Confirmed or Processing orders can be shipped, and only once
- Creating a shipment marks the order Shipped
- A Delivered tracking update marks the order Delivered
- Deleting a shipment that has not left (not Shipped / In Transit /
  Out for Delivery / Delivered) reverts the order to Processing
- A cancelled order stays cancelled whatever its shipment does
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Shipment, ShipmentItem
from ..models.sales import (
    SALE_STATUS_CANCELLED,
    SALE_STATUS_DELIVERED,
    SALE_STATUS_PROCESSING,
    SALE_STATUS_SHIPPED,
    SHIPPABLE_STATUSES,
)
from ..models.shipping import (
    CARRIERS,
    DEFAULT_COUNTRY,
    SHIPMENT_DELIVERED,
    SHIPMENT_LOCKED_STATUSES,
    SHIPMENT_PENDING,
    SHIPMENT_PRIORITIES,
    SHIPMENT_STATUSES,
    SHIPPING_METHODS,
)
from ..utils import utcnow
from ..validation import (
    clamp_pagination,
    optional_str,
    require_fields,
    to_choice,
    to_datetime,
    to_int,
    to_money,
)
from . import audit_service
from .concurrency import lock_for_update, unit_of_work
from .sales_service import lock_sale_order
from .sequence_service import next_number

logger = logging.getLogger(__name__)

# Fields clients may change after creation
DETAIL_FIELDS = {
    "tracking_number",
    "carrier",
    "shipping_method",
    "estimated_delivery",
    "shipping_cost",
    "weight",
    "priority",
    "signature_required",
    "insurance_value",
    "notes",
    "shipping_address",
}
PROTECTED_FIELDS = {"shipment_number", "sales_order_id", "created_by", "status"}


def _parse_address(raw) -> dict:
    if not isinstance(raw, dict):
        raise ValidationError("shipping_address must be an object")
    try:
        require_fields(raw, ["street", "city", "zip_code"])
    except ValidationError as e:
        raise ValidationError(f"shipping_address: {e.message}", e.details)
    return {
        "ship_street": optional_str(raw["street"], "street"),
        "ship_city": optional_str(raw["city"], "city", max_length=128),
        "ship_state": optional_str(raw.get("state"), "state", max_length=128),
        "ship_zip_code": optional_str(raw["zip_code"], "zip_code", max_length=32),
        "ship_country": optional_str(raw.get("country"), "country", max_length=128) or DEFAULT_COUNTRY,
    }


def _parse_optional_details(data: dict) -> dict:
    """Coerce the optional descriptive fields present in `data`."""
    fields = {}
    if "tracking_number" in data:
        fields["tracking_number"] = optional_str(data["tracking_number"], "tracking_number", max_length=128)
    if "estimated_delivery" in data:
        fields["estimated_delivery"] = to_datetime(data["estimated_delivery"], "estimated_delivery")
    if data.get("weight") is not None:
        fields["weight"] = to_money(data["weight"], "weight")
    if "priority" in data:
        fields["priority"] = to_choice(data["priority"], "priority", SHIPMENT_PRIORITIES)
    if "signature_required" in data:
        if not isinstance(data["signature_required"], bool):
            raise ValidationError("signature_required must be a boolean")
        fields["signature_required"] = data["signature_required"]
    if data.get("insurance_value") is not None:
        fields["insurance_value"] = to_money(data["insurance_value"], "insurance_value")
    if "notes" in data:
        fields["notes"] = optional_str(data["notes"], "notes", max_length=10_000)
    return fields


def create_shipment(data: dict, *, actor_id: str | None) -> Shipment:
    """
    Create the shipment for a sales order and mark the order Shipped.

    Args:
        data: sales_order_id, shipping_address {street, city, zip_code,
            state?, country?}, carrier, shipping_method, shipping_cost, plus
            optional tracking_number, estimated_delivery, weight, priority,
            signature_required, insurance_value, notes
        actor_id: Creating user

    Raises:
        ValidationError: Missing fields, unknown carrier or method
        NotFoundError: No such sales order
        InvalidStateError: Order is not Confirmed or Processing
        ConflictError: The order already has a shipment
    """
    require_fields(data, ["sales_order_id", "shipping_address", "carrier", "shipping_method"])
    if data.get("shipping_cost") is None:
        raise ValidationError(
            "Please fill in all required fields: shipping_cost",
            {"empty_fields": ["shipping_cost"]},
        )
    sales_order_id = to_int(data["sales_order_id"], "sales_order_id")
    address = _parse_address(data["shipping_address"])
    carrier = to_choice(data["carrier"], "carrier", CARRIERS)
    method = to_choice(data["shipping_method"], "shipping_method", SHIPPING_METHODS)
    shipping_cost = to_money(data["shipping_cost"], "shipping_cost")
    details = _parse_optional_details(data)

    with unit_of_work():
        order = lock_sale_order(sales_order_id)
        if order.status not in SHIPPABLE_STATUSES:
            raise InvalidStateError(
                f"Sales order must be Confirmed or Processing to ship (current: {order.status})",
                {"status": order.status, "allowed": list(SHIPPABLE_STATUSES)},
            )
        existing = db.session.query(Shipment.shipment_number).filter_by(sales_order_id=order.id).first()
        if existing:
            raise ConflictError(
                f"Sales order {order.order_number} already has shipment {existing[0]}",
                {"shipment_number": existing[0]},
            )

        shipment = Shipment(
            shipment_number=next_number("shipment"),
            sales_order_id=order.id,
            sales_order_number=order.order_number,
            customer_name=order.customer_name,
            customer_email=order.customer_email,
            customer_phone=order.customer_phone,
            carrier=carrier,
            shipping_method=method,
            shipping_cost=shipping_cost,
            status=SHIPMENT_PENDING,
            created_by=actor_id,
            **address,
            **details,
        )
        for line in order.items:
            shipment.items.append(ShipmentItem(
                product_id=line.product_id,
                product_name=line.product_name,
                sku=line.sku,
                quantity=line.quantity,
                unit_price=line.unit_price,
            ))
        shipment.add_tracking_event(SHIPMENT_PENDING, updated_by=actor_id, notes="Shipment created")
        order.status = SALE_STATUS_SHIPPED
        db.session.add(shipment)
        try:
            db.session.flush()
        except IntegrityError as exc:
            # Another transaction shipped this order between our check and insert
            raise ConflictError(f"Sales order {order.order_number} already has a shipment") from exc

    audit_service.record(
        actor_id,
        "CREATE_SHIPMENT",
        entity_type="shipment",
        entity_id=shipment.id,
        entity_name=shipment.shipment_number,
        description=f"Shipment for sales order {shipment.sales_order_number} via {carrier}",
    )
    return shipment


def get_shipment(shipment_id: int) -> Shipment:
    shipment = db.session.get(Shipment, shipment_id)
    if not shipment:
        raise NotFoundError(f"Shipment {shipment_id} not found")
    return shipment


def _lock_shipment(shipment_id: int) -> Shipment:
    shipment = lock_for_update(db.session.query(Shipment).filter_by(id=shipment_id)).first()
    if not shipment:
        raise NotFoundError(f"Shipment {shipment_id} not found")
    return shipment


def list_shipments(
    *,
    status: str | None = None,
    carrier: str | None = None,
    limit: int | None = None,
    offset: int | None = None,
) -> tuple[list[Shipment], int]:
    limit, offset = clamp_pagination(limit, offset)
    query = db.session.query(Shipment)
    if status:
        query = query.filter(Shipment.status == to_choice(status, "status", SHIPMENT_STATUSES))
    if carrier:
        query = query.filter(Shipment.carrier == to_choice(carrier, "carrier", CARRIERS))
    total = query.count()
    shipments = query.order_by(Shipment.created_at.desc(), Shipment.id.desc()).offset(offset).limit(limit).all()
    return shipments, total


def shipments_for_sales_order(sales_order_id: int) -> list[Shipment]:
    return (
        db.session.query(Shipment)
        .filter_by(sales_order_id=sales_order_id)
        .order_by(Shipment.id.asc())
        .all()
    )


def track_shipment(tracking_number: str) -> Shipment:
    shipment = db.session.query(Shipment).filter_by(tracking_number=tracking_number).first()
    if not shipment:
        raise NotFoundError(f"No shipment with tracking number {tracking_number}")
    return shipment


def update_shipment_status(
    shipment_id: int,
    status: str,
    *,
    actor_id: str | None,
    location: str | None = None,
    notes: str | None = None,
) -> Shipment:
    """
    Record a tracking update.

    Delivered stamps actual_delivery and marks the sales order Delivered.
    """
    status = to_choice(status, "status", SHIPMENT_STATUSES)
    location = optional_str(location, "location")
    notes = optional_str(notes, "notes", max_length=10_000)

    with unit_of_work():
        shipment = _lock_shipment(shipment_id)
        previous = shipment.status
        shipment.status = status
        shipment.add_tracking_event(status, updated_by=actor_id, location=location, notes=notes)
        if status == SHIPMENT_DELIVERED:
            shipment.actual_delivery = utcnow()
            order = lock_sale_order(shipment.sales_order_id)
            if order.status == SALE_STATUS_CANCELLED:
                logger.warning(
                    "Shipment %s delivered for cancelled sales order %s; order left Cancelled",
                    shipment.shipment_number,
                    order.order_number,
                )
            else:
                order.status = SALE_STATUS_DELIVERED

    audit_service.record(
        actor_id,
        "UPDATE_SHIPMENT_STATUS",
        entity_type="shipment",
        entity_id=shipment.id,
        entity_name=shipment.shipment_number,
        changes={"status": [previous, status]},
    )
    return shipment


def update_shipment_details(shipment_id: int, data: dict, *, actor_id: str | None) -> Shipment:
    """Change descriptive fields. Identity, ownership and status are not writable here."""
    if not isinstance(data, dict) or not data:
        raise ValidationError("No fields to update")
    protected = sorted(set(data) & PROTECTED_FIELDS)
    if protected:
        raise ValidationError(f"Fields cannot be changed: {', '.join(protected)}", {"fields": protected})
    unknown = sorted(set(data) - DETAIL_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(unknown)}", {"allowed": sorted(DETAIL_FIELDS)})

    fields = _parse_optional_details(data)
    if "carrier" in data:
        fields["carrier"] = to_choice(data["carrier"], "carrier", CARRIERS)
    if "shipping_method" in data:
        fields["shipping_method"] = to_choice(data["shipping_method"], "shipping_method", SHIPPING_METHODS)
    if "shipping_cost" in data:
        fields["shipping_cost"] = to_money(data["shipping_cost"], "shipping_cost")
    if "shipping_address" in data:
        fields.update(_parse_address(data["shipping_address"]))

    with unit_of_work():
        shipment = _lock_shipment(shipment_id)
        for key, value in fields.items():
            setattr(shipment, key, value)

    audit_service.record(
        actor_id,
        "UPDATE_SHIPMENT",
        entity_type="shipment",
        entity_id=shipment.id,
        entity_name=shipment.shipment_number,
        changes={"fields": sorted(fields)},
    )
    return shipment


def delete_shipment(shipment_id: int, *, actor_id: str | None) -> None:
    """
    Delete a shipment that has not left yet; the order goes back to Processing.

    Raises:
        InvalidStateError: Shipment is Shipped, In Transit, Out for Delivery or Delivered
    """
    with unit_of_work():
        shipment = _lock_shipment(shipment_id)
        if shipment.status in SHIPMENT_LOCKED_STATUSES:
            raise InvalidStateError(
                f"Cannot delete a shipment that is {shipment.status}",
                {"status": shipment.status},
            )
        number = shipment.shipment_number
        order = lock_sale_order(shipment.sales_order_id)
        if order.status != SALE_STATUS_CANCELLED:
            order.status = SALE_STATUS_PROCESSING
        db.session.delete(shipment)

    logger.info("Shipment %s deleted; sales order %s is %s", number, order.order_number, order.status)
    audit_service.record(
        actor_id,
        "DELETE_SHIPMENT",
        entity_type="shipment",
        entity_id=shipment_id,
        entity_name=number,
    )
