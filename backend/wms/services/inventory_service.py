# Overview: Service-layer operations for the inventory ledger; encapsulates stock mutation and database work.

"""
Inventory Ledger Service

WHY: On-hand quantity is shared by purchasing, sales and cancellations.
All of them change it through adjust(), which locks the item row, refuses
to go negative, and journals the change as an InventoryMovement.

TRANSACTIONS:
- adjust() never commits; it runs inside the caller's unit of work so the
  stock change commits or rolls back together with the order that caused it
- admin operations (create, update, stock take, location stock, delete)
  open their own unit of work
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import or_

from ..errors import ConflictError, InsufficientStockError, NotFoundError, ValidationError
from ..extensions import db
from ..models import (
    InventoryItem,
    InventoryMovement,
    LocationStock,
    PurchaseOrder,
    PurchaseOrderItem,
    SaleOrder,
    SaleOrderItem,
    Shipment,
    ShipmentItem,
)
from ..models.inventory import ITEM_TYPES, MOVEMENT_REASONS, REASON_INITIAL_STOCK, REASON_STOCK_TAKE
from ..models.purchasing import PO_STATUS_CANCELLED, PO_STATUS_CLOSED, PO_STATUS_RECEIVED
from ..models.sales import SALE_STATUS_CANCELLED
from ..models.shipping import SHIPMENT_CANCELLED, SHIPMENT_DELIVERED, SHIPMENT_RETURNED
from ..utils import utcnow
from ..validation import (
    clamp_pagination,
    optional_str,
    parse_sort,
    require_fields,
    to_choice,
    to_int,
    to_money,
)
from . import audit_service
from .concurrency import lock_for_update, unit_of_work

LOCATION_OPERATIONS = ("set", "add", "subtract")
UPDATABLE_FIELDS = {"name", "description", "type", "rate"}
SORTABLE_FIELDS = ("created_at", "name", "sku", "quantity", "rate")


def get_item(item_id: int) -> InventoryItem:
    item = db.session.get(InventoryItem, item_id)
    if not item:
        raise NotFoundError(f"Inventory item {item_id} not found")
    return item


def get_item_by_sku(sku: str) -> InventoryItem:
    item = db.session.query(InventoryItem).filter_by(sku=sku).first()
    if not item:
        raise NotFoundError(f"Inventory item with SKU {sku} not found")
    return item


def lock_item(sku_or_id) -> InventoryItem | None:
    """Load an item by id (int) or SKU (str) holding a row lock."""
    query = db.session.query(InventoryItem)
    if isinstance(sku_or_id, int) and not isinstance(sku_or_id, bool):
        query = query.filter(InventoryItem.id == sku_or_id)
    else:
        query = query.filter(InventoryItem.sku == sku_or_id)
    return lock_for_update(query).first()


def adjust(
    sku_or_id,
    delta: int,
    reason: str,
    *,
    actor_id: str | None,
    reference_type: str | None = None,
    reference_id: int | None = None,
    note: str | None = None,
) -> int:
    """
    Apply a signed change to an item's on-hand quantity.

    Must be called inside a unit of work; the change is flushed, not committed.

    Args:
        sku_or_id: InventoryItem id or SKU
        delta: Non-zero signed quantity change
        reason: One of MOVEMENT_REASONS
        actor_id: Who caused the change
        reference_type / reference_id: Workflow document behind the change

    Returns:
        The new on-hand quantity

    Raises:
        ValidationError: delta is zero or reason unknown
        NotFoundError: No such item
        InsufficientStockError: quantity + delta would be negative
    """
    delta = to_int(delta, "delta")
    if delta == 0:
        raise ValidationError("delta must be non-zero")
    to_choice(reason, "reason", MOVEMENT_REASONS)

    item = lock_item(sku_or_id)
    if not item:
        raise NotFoundError(f"Inventory item {sku_or_id} not found")

    new_quantity = item.quantity + delta
    if new_quantity < 0:
        raise InsufficientStockError(
            f"Not enough stock for {item.name}. Available: {item.quantity}, Requested: {-delta}",
            sku=item.sku,
            requested=-delta,
            available=item.quantity,
            item_id=item.id,
        )

    item.quantity = new_quantity
    db.session.add(
        InventoryMovement(
            item_id=item.id,
            sku=item.sku,
            delta=delta,
            quantity_after=new_quantity,
            reason=reason,
            reference_type=reference_type,
            reference_id=reference_id,
            actor_id=actor_id,
            note=note,
        )
    )
    db.session.flush()
    return new_quantity


def create_item(data: dict, *, actor_id: str | None) -> InventoryItem:
    """
    Create an inventory item. Opening stock is journaled as INITIAL_STOCK.

    Raises:
        ValidationError: Missing/invalid fields
        ConflictError: SKU already exists
    """
    require_fields(data, ["sku", "name"])
    sku = optional_str(data.get("sku"), "sku", max_length=64)
    name = optional_str(data.get("name"), "name")
    item_type = to_choice(data.get("type"), "type", ITEM_TYPES, default="Product")
    rate = to_money(data.get("rate"), "rate", default=Decimal("0.00"))
    opening = to_int(data.get("quantity", 0), "quantity", minimum=0)
    description = optional_str(data.get("description"), "description", max_length=10_000)

    with unit_of_work():
        if db.session.query(InventoryItem.id).filter_by(sku=sku).first():
            raise ConflictError(f"SKU {sku} already exists", {"sku": sku})

        item = InventoryItem(
            sku=sku,
            name=name,
            type=item_type,
            description=description,
            rate=rate,
            quantity=0,
            created_by=actor_id,
        )
        db.session.add(item)
        db.session.flush()
        if opening:
            adjust(item.id, opening, REASON_INITIAL_STOCK, actor_id=actor_id, note="Opening stock")

    audit_service.record(
        actor_id,
        "CREATE_INVENTORY_ITEM",
        entity_type="inventory_item",
        entity_id=item.id,
        entity_name=item.name,
        description=f"Created item {item.sku} with {opening} on hand",
    )
    return item


def update_item(item_id: int, data: dict, *, actor_id: str | None) -> InventoryItem:
    """Update descriptive fields. Quantity only changes through the ledger."""
    if not isinstance(data, dict) or not data:
        raise ValidationError("No fields to update")
    blocked = sorted(set(data) - UPDATABLE_FIELDS)
    if blocked:
        raise ValidationError(
            f"Fields not updatable: {', '.join(blocked)}",
            {"allowed": sorted(UPDATABLE_FIELDS)},
        )

    changes = {}
    with unit_of_work():
        item = lock_item(item_id)
        if not item:
            raise NotFoundError(f"Inventory item {item_id} not found")
        if "name" in data:
            require_fields(data, ["name"])
            changes["name"] = [item.name, data["name"]]
            item.name = optional_str(data["name"], "name")
        if "description" in data:
            item.description = optional_str(data["description"], "description", max_length=10_000)
        if "type" in data:
            changes["type"] = [item.type, data["type"]]
            item.type = to_choice(data["type"], "type", ITEM_TYPES)
        if "rate" in data:
            rate = to_money(data["rate"], "rate")
            changes["rate"] = [str(item.rate), str(rate)]
            item.rate = rate

    audit_service.record(
        actor_id,
        "UPDATE_INVENTORY_ITEM",
        entity_type="inventory_item",
        entity_id=item.id,
        entity_name=item.name,
        changes=changes or None,
    )
    return item


def stock_take(item_id: int, counted_quantity, *, actor_id: str | None, note: str | None = None) -> InventoryItem:
    """
    Reconcile on-hand quantity with a physical count.

    The difference is journaled as a STOCK_TAKE movement; a matching count
    changes nothing.
    """
    counted = to_int(counted_quantity, "counted_quantity", minimum=0)

    with unit_of_work():
        item = lock_item(item_id)
        if not item:
            raise NotFoundError(f"Inventory item {item_id} not found")
        before = item.quantity
        if counted != before:
            adjust(item.id, counted - before, REASON_STOCK_TAKE, actor_id=actor_id, note=note)

    if counted != before:
        audit_service.record(
            actor_id,
            "STOCK_TAKE",
            entity_type="inventory_item",
            entity_id=item.id,
            entity_name=item.name,
            changes={"quantity": [before, counted]},
        )
    return item


def set_location_stock(
    item_id: int,
    *,
    location_id: str,
    quantity,
    operation: str = "set",
    location_name: str | None = None,
    actor_id: str | None,
) -> InventoryItem:
    """
    Update the location sub-ledger for an item.

    operation:
    - set: replace the location quantity
    - add: increase it
    - subtract: decrease it, clamping at zero

    An unknown location_id creates the entry seeded with `quantity`.
    The item's on-hand quantity is not touched.
    """
    location_id = optional_str(location_id, "location_id", max_length=64)
    if not location_id:
        raise ValidationError("location_id is required")
    amount = to_int(quantity, "quantity", minimum=0)
    operation = to_choice(operation, "operation", LOCATION_OPERATIONS)

    with unit_of_work():
        item = lock_item(item_id)
        if not item:
            raise NotFoundError(f"Inventory item {item_id} not found")
        apply_location_change(item, location_id, amount, operation, location_name=location_name)

    return item


def apply_location_change(
    item: InventoryItem,
    location_id: str,
    amount: int,
    operation: str,
    *,
    location_name: str | None = None,
) -> LocationStock:
    """Change one location entry of a locked item; caller owns the unit of work."""
    entry = next((loc for loc in item.location_stock if loc.location_id == location_id), None)
    if entry is None:
        entry = LocationStock(
            location_id=location_id,
            location_name=optional_str(location_name, "location_name") or location_id,
            quantity=amount,
        )
        item.location_stock.append(entry)
    else:
        if location_name:
            entry.location_name = optional_str(location_name, "location_name")
        if operation == "set":
            entry.quantity = amount
        elif operation == "add":
            entry.quantity = entry.quantity + amount
        else:
            entry.quantity = max(0, entry.quantity - amount)
    # Location changes live on a child row; touch the item so its version moves too
    item.updated_at = utcnow()
    return entry


def items_by_location(location_id: str) -> list[tuple[InventoryItem, LocationStock]]:
    rows = (
        db.session.query(InventoryItem, LocationStock)
        .join(LocationStock, LocationStock.item_id == InventoryItem.id)
        .filter(LocationStock.location_id == location_id)
        .order_by(InventoryItem.name.asc())
        .all()
    )
    return [(item, loc) for item, loc in rows]


def list_items(
    *,
    search: str | None = None,
    item_type: str | None = None,
    low_stock_threshold: int | None = None,
    sort: str | None = None,
    limit: int | None = None,
    offset: int | None = None,
) -> tuple[list[InventoryItem], int]:
    limit, offset = clamp_pagination(limit, offset)
    column, descending = parse_sort(sort, SORTABLE_FIELDS, default="name")

    query = db.session.query(InventoryItem)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(InventoryItem.name.ilike(like), InventoryItem.sku.ilike(like)))
    if item_type:
        query = query.filter(InventoryItem.type == to_choice(item_type, "type", ITEM_TYPES))
    if low_stock_threshold is not None:
        query = query.filter(InventoryItem.quantity <= low_stock_threshold)

    total = query.count()
    order_col = getattr(InventoryItem, column)
    query = query.order_by(order_col.desc() if descending else order_col.asc(), InventoryItem.id.asc())
    return query.offset(offset).limit(limit).all(), total


def movements(item_id: int) -> list[InventoryMovement]:
    get_item(item_id)
    return (
        db.session.query(InventoryMovement)
        .filter(InventoryMovement.item_id == item_id)
        .order_by(InventoryMovement.id.asc())
        .all()
    )


def _open_references(item_id: int) -> dict:
    open_pos = (
        db.session.query(PurchaseOrder.po_number)
        .join(PurchaseOrderItem, PurchaseOrderItem.purchase_order_id == PurchaseOrder.id)
        .filter(
            PurchaseOrderItem.product_id == item_id,
            PurchaseOrder.status.notin_((PO_STATUS_RECEIVED, PO_STATUS_CLOSED, PO_STATUS_CANCELLED)),
        )
        .distinct()
        .all()
    )
    open_sales = (
        db.session.query(SaleOrder.order_number)
        .join(SaleOrderItem, SaleOrderItem.sale_order_id == SaleOrder.id)
        .filter(SaleOrderItem.product_id == item_id, SaleOrder.status != SALE_STATUS_CANCELLED)
        .distinct()
        .all()
    )
    open_shipments = (
        db.session.query(Shipment.shipment_number)
        .join(ShipmentItem, ShipmentItem.shipment_id == Shipment.id)
        .filter(
            ShipmentItem.product_id == item_id,
            Shipment.status.notin_((SHIPMENT_DELIVERED, SHIPMENT_RETURNED, SHIPMENT_CANCELLED)),
        )
        .distinct()
        .all()
    )
    refs = {
        "purchase_orders": [row[0] for row in open_pos],
        "sale_orders": [row[0] for row in open_sales],
        "shipments": [row[0] for row in open_shipments],
    }
    return {k: v for k, v in refs.items() if v}


def delete_item(item_id: int, *, actor_id: str | None) -> None:
    """
    Hard-delete an item.

    Raises:
        ConflictError: Item is still referenced by an open purchase order,
            a non-cancelled sales order or an undelivered shipment
    """
    with unit_of_work():
        item = lock_item(item_id)
        if not item:
            raise NotFoundError(f"Inventory item {item_id} not found")
        refs = _open_references(item.id)
        if refs:
            raise ConflictError(f"Inventory item {item.sku} is referenced by open documents", refs)
        sku, name = item.sku, item.name
        db.session.delete(item)

    audit_service.record(
        actor_id,
        "DELETE_INVENTORY_ITEM",
        entity_type="inventory_item",
        entity_id=item_id,
        entity_name=name,
        description=f"Deleted item {sku}",
    )
