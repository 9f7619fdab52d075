# Overview: Flask API routes for purchase orders and receiving; parses input and returns JSON responses.

"""
Purchase Order Routes

Reads are open; every mutation requires the X-Actor-Id header.
Receiving goes through POST /api/purchase-orders/<id>/receive, which
updates the order, the inventory ledger and creates a receipt atomically.
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import json_body, pagination_args, require_actor, service_errors
from ..services import purchase_order_service, receiving_service

purchase_orders_bp = Blueprint("purchase_orders", __name__, url_prefix="/api/purchase-orders")


@purchase_orders_bp.get("")
@service_errors("list purchase orders")
def list_purchase_orders_route():
    """
    List purchase orders.

    Query parameters:
    - status, approval_status, receiving_status, priority: exact filters
    - search: Match on PO number, vendor name or email
    - sort: Column, prefix "-" for descending (default: -created_at)
    - limit / offset: Pagination
    """
    limit, offset = pagination_args()
    orders, total = purchase_order_service.list_purchase_orders(
        status=request.args.get("status"),
        approval_status=request.args.get("approval_status"),
        receiving_status=request.args.get("receiving_status"),
        priority=request.args.get("priority"),
        search=request.args.get("search"),
        sort=request.args.get("sort"),
        limit=limit,
        offset=offset,
    )
    return jsonify({
        "items": [po.to_dict(include_history=False) for po in orders],
        "count": total,
        "limit": limit,
        "offset": offset,
    })


@purchase_orders_bp.get("/stats")
@service_errors("compute purchase order stats")
def purchase_order_stats_route():
    return jsonify(purchase_order_service.purchase_order_stats())


@purchase_orders_bp.post("")
@require_actor
@service_errors("create purchase order")
def create_purchase_order_route():
    """
    Create a Draft purchase order.

    Request body:
    {
        "vendor_name": "Acme Supply",        // required
        "vendor_email": "orders@acme.test",  // required
        "items": [                            // required, at least one
            {"product_name": "Widget", "sku": "W-1", "quantity": 10, "unit_price": "2.50",
             "product_id": 3}                 // product_id optional
        ],
        "tax": "0.00", "discount": "0.00", "shipping_cost": "0.00",
        "priority": "Medium", "payment_terms": "Net 30", "expected_delivery": "...",
        "notes": "...", "internal_notes": "...", "department": "...", "delivery_location": "..."
    }
    """
    po = purchase_order_service.create_purchase_order(json_body(), actor_id=g.actor_id)
    return jsonify({"purchase_order": po.to_dict()}), 201


@purchase_orders_bp.get("/<int:po_id>")
@service_errors("get purchase order")
def get_purchase_order_route(po_id: int):
    return jsonify({"purchase_order": purchase_order_service.get_purchase_order(po_id).to_dict()})


@purchase_orders_bp.delete("/<int:po_id>")
@require_actor
@service_errors("delete purchase order")
def delete_purchase_order_route(po_id: int):
    purchase_order_service.delete_purchase_order(po_id, actor_id=g.actor_id)
    return jsonify({"deleted": True, "id": po_id})


@purchase_orders_bp.post("/<int:po_id>/approve")
@require_actor
@service_errors("approve purchase order")
def approve_purchase_order_route(po_id: int):
    data = json_body()
    po = purchase_order_service.approve_purchase_order(po_id, actor_id=g.actor_id, notes=data.get("notes"))
    return jsonify({"purchase_order": po.to_dict()})


@purchase_orders_bp.post("/<int:po_id>/status")
@require_actor
@service_errors("update purchase order status")
def update_purchase_order_status_route(po_id: int):
    data = json_body()
    if not data.get("status"):
        return jsonify({"error": "status is required", "code": "VALIDATION_ERROR"}), 400
    po = purchase_order_service.update_purchase_order_status(
        po_id,
        data["status"],
        actor_id=g.actor_id,
        notes=data.get("notes"),
    )
    return jsonify({"purchase_order": po.to_dict()})


@purchase_orders_bp.post("/<int:po_id>/cancel")
@require_actor
@service_errors("cancel purchase order")
def cancel_purchase_order_route(po_id: int):
    data = json_body()
    po = purchase_order_service.cancel_purchase_order(po_id, actor_id=g.actor_id, reason=data.get("reason"))
    return jsonify({"purchase_order": po.to_dict()})


@purchase_orders_bp.post("/<int:po_id>/receive")
@require_actor
@service_errors("receive purchase order items")
def receive_items_route(po_id: int):
    """
    Receive goods against a purchase order.

    Request body:
    {
        "items": [                                  // required
            {"item_id": 7, "quantity_received": 40, "condition": "Good", "notes": "...",
             "location": "A-01", "batch_number": "...", "serial_number": "...",
             "expiry_date": "2027-01-31T00:00:00Z"}
        ],
        "tracking": {"tracking_number": "...", "carrier": "...",
                     "actual_delivery": "...", "notes": "..."},  // optional
        "receiving_location": "DOCK-2",                         // optional
        "storage_location": "A-01",                             // optional, default put-away
        "quality_inspection": {"passed": true, "notes": "..."}, // optional
        "discrepancy_notes": "..."                              // optional
    }

    Returns:
        201 with the receipt and the updated purchase order
    """
    data = json_body()
    receipt = receiving_service.receive_items(
        po_id,
        data.get("items"),
        actor_id=g.actor_id,
        tracking=data.get("tracking"),
        receiving_location=data.get("receiving_location"),
        storage_location=data.get("storage_location"),
        quality_inspection=data.get("quality_inspection"),
        discrepancy_notes=data.get("discrepancy_notes"),
    )
    po = purchase_order_service.get_purchase_order(po_id)
    return jsonify({"receipt": receipt.to_dict(), "purchase_order": po.to_dict()}), 201


@purchase_orders_bp.get("/<int:po_id>/receipts")
@service_errors("list purchase order receipts")
def purchase_order_receipts_route(po_id: int):
    receipts = receiving_service.receipts_for_purchase_order(po_id)
    return jsonify({"items": [r.to_dict() for r in receipts], "count": len(receipts)})
