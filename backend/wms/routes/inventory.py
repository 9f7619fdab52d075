# Overview: Flask API routes for the inventory ledger; parses input and returns JSON responses.

"""
Inventory Routes

Mutating routes require the X-Actor-Id header. On-hand quantity cannot be
set directly: use /adjust (stock take) so every change is journaled.
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import json_body, pagination_args, require_actor, service_errors
from ..services import inventory_service

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("")
@service_errors("list inventory items")
def list_items_route():
    """
    List inventory items.

    Query parameters:
    - search: Match on name or SKU
    - type: Product, Service, Material
    - low_stock: Only items with quantity <= this value
    - sort: Column, prefix "-" for descending (default: name)
    - limit / offset: Pagination (limit clamped to 1..500)
    """
    limit, offset = pagination_args()
    items, total = inventory_service.list_items(
        search=request.args.get("search"),
        item_type=request.args.get("type"),
        low_stock_threshold=request.args.get("low_stock", type=int),
        sort=request.args.get("sort"),
        limit=limit,
        offset=offset,
    )
    return jsonify({
        "items": [item.to_dict() for item in items],
        "count": total,
        "limit": limit,
        "offset": offset,
    })


@inventory_bp.post("")
@require_actor
@service_errors("create inventory item")
def create_item_route():
    item = inventory_service.create_item(json_body(), actor_id=g.actor_id)
    return jsonify({"item": item.to_dict()}), 201


@inventory_bp.get("/<int:item_id>")
@service_errors("get inventory item")
def get_item_route(item_id: int):
    return jsonify({"item": inventory_service.get_item(item_id).to_dict()})


@inventory_bp.patch("/<int:item_id>")
@require_actor
@service_errors("update inventory item")
def update_item_route(item_id: int):
    item = inventory_service.update_item(item_id, json_body(), actor_id=g.actor_id)
    return jsonify({"item": item.to_dict()})


@inventory_bp.delete("/<int:item_id>")
@require_actor
@service_errors("delete inventory item")
def delete_item_route(item_id: int):
    inventory_service.delete_item(item_id, actor_id=g.actor_id)
    return jsonify({"deleted": True, "id": item_id})


@inventory_bp.post("/<int:item_id>/adjust")
@require_actor
@service_errors("adjust inventory")
def stock_take_route(item_id: int):
    """
    Reconcile with a physical count.

    Request body:
    {
        "counted_quantity": 42,   // required
        "note": "..."             // optional
    }
    """
    data = json_body()
    if data.get("counted_quantity") is None:
        return jsonify({"error": "counted_quantity is required", "code": "VALIDATION_ERROR"}), 400
    item = inventory_service.stock_take(
        item_id,
        data["counted_quantity"],
        actor_id=g.actor_id,
        note=data.get("note"),
    )
    return jsonify({"item": item.to_dict()})


@inventory_bp.post("/<int:item_id>/locations")
@require_actor
@service_errors("update location stock")
def set_location_stock_route(item_id: int):
    """
    Request body:
    {
        "location_id": "A-01",        // required
        "location_name": "Aisle 1",   // optional, used when creating
        "quantity": 5,                // required, >= 0
        "operation": "set"            // set | add | subtract (default: set)
    }
    """
    data = json_body()
    if data.get("quantity") is None:
        return jsonify({"error": "quantity is required", "code": "VALIDATION_ERROR"}), 400
    item = inventory_service.set_location_stock(
        item_id,
        location_id=data.get("location_id"),
        location_name=data.get("location_name"),
        quantity=data["quantity"],
        operation=data.get("operation", "set"),
        actor_id=g.actor_id,
    )
    return jsonify({"item": item.to_dict()})


@inventory_bp.get("/locations/<location_id>")
@service_errors("list items by location")
def items_by_location_route(location_id: str):
    rows = inventory_service.items_by_location(location_id)
    return jsonify({
        "location_id": location_id,
        "items": [
            {**item.to_dict(), "location_quantity": loc.quantity, "location_name": loc.location_name}
            for item, loc in rows
        ],
        "count": len(rows),
    })


@inventory_bp.get("/<int:item_id>/movements")
@service_errors("list inventory movements")
def movements_route(item_id: int):
    rows = inventory_service.movements(item_id)
    return jsonify({"items": [m.to_dict() for m in rows], "count": len(rows)})
