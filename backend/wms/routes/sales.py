# Overview: Flask API routes for sales orders; parses input and returns JSON responses.

"""
Sales Order Routes

Creating an order takes its stock out of the ledger immediately;
POST /<id>/cancel puts it back. Status updates never touch stock.
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import json_body, pagination_args, require_actor, service_errors
from ..services import sales_service

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales-orders")


@sales_bp.get("")
@service_errors("list sales orders")
def list_sale_orders_route():
    limit, offset = pagination_args()
    orders, total = sales_service.list_sale_orders(
        status=request.args.get("status"),
        payment_status=request.args.get("payment_status"),
        search=request.args.get("search"),
        sort=request.args.get("sort"),
        limit=limit,
        offset=offset,
    )
    return jsonify({
        "items": [o.to_dict() for o in orders],
        "count": total,
        "limit": limit,
        "offset": offset,
    })


@sales_bp.get("/stats")
@service_errors("compute sales order stats")
def sale_order_stats_route():
    return jsonify(sales_service.sale_order_stats())


@sales_bp.post("")
@require_actor
@service_errors("create sales order")
def create_sale_order_route():
    """
    Request body:
    {
        "customer_name": "Jane Doe",          // required
        "customer_email": "jane@example.com", // required
        "items": [{"product_id": 1, "quantity": 2}, {"sku": "W-1", "quantity": 1}],
        "tax": "0.00", "discount": "0.00", "shipping_cost": "0.00",
        "customer_phone": "...", "customer_address": "...", "carrier": "...",
        "expected_delivery": "...", "notes": "...", "payment_status": "Pending"
    }

    Returns:
        201 with the order; 409 INSUFFICIENT_STOCK with available/requested
        figures when a line cannot be filled
    """
    order = sales_service.create_sale_order(json_body(), actor_id=g.actor_id)
    return jsonify({"sale_order": order.to_dict()}), 201


@sales_bp.get("/<int:order_id>")
@service_errors("get sales order")
def get_sale_order_route(order_id: int):
    return jsonify({"sale_order": sales_service.get_sale_order(order_id).to_dict()})


@sales_bp.post("/<int:order_id>/status")
@require_actor
@service_errors("update sales order status")
def update_sale_order_status_route(order_id: int):
    data = json_body()
    order = sales_service.update_sale_order_status(
        order_id,
        actor_id=g.actor_id,
        status=data.get("status"),
        payment_status=data.get("payment_status"),
        notes=data.get("notes"),
    )
    return jsonify({"sale_order": order.to_dict()})


@sales_bp.post("/<int:order_id>/cancel")
@require_actor
@service_errors("cancel sales order")
def cancel_sale_order_route(order_id: int):
    order = sales_service.cancel_sale_order(order_id, actor_id=g.actor_id, reason=json_body().get("reason"))
    return jsonify({"sale_order": order.to_dict()})


@sales_bp.delete("/<int:order_id>")
@require_actor
@service_errors("delete sales order")
def delete_sale_order_route(order_id: int):
    sales_service.delete_sale_order(order_id, actor_id=g.actor_id)
    return jsonify({"deleted": True, "id": order_id})
