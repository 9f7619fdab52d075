# Overview: Flask API routes for receiving receipts; parses input and returns JSON responses.

from flask import Blueprint, g, jsonify, request

from ..decorators import json_body, pagination_args, require_actor, service_errors
from ..services import receiving_service

receipts_bp = Blueprint("receipts", __name__, url_prefix="/api/receipts")


@receipts_bp.get("")
@service_errors("list receipts")
def list_receipts_route():
    """
    Query parameters:
    - status: Received, Inspected, Approved, Rejected
    - purchase_order_id: Receipts of one order
    - search: Match on receipt number, PO number or vendor
    - limit / offset: Pagination
    """
    limit, offset = pagination_args()
    receipts, total = receiving_service.list_receipts(
        status=request.args.get("status"),
        purchase_order_id=request.args.get("purchase_order_id", type=int),
        search=request.args.get("search"),
        limit=limit,
        offset=offset,
    )
    return jsonify({
        "items": [r.to_dict() for r in receipts],
        "count": total,
        "limit": limit,
        "offset": offset,
    })


@receipts_bp.get("/stats")
@service_errors("compute receipt stats")
def receipt_stats_route():
    return jsonify(receiving_service.receipt_stats())


@receipts_bp.get("/<int:receipt_id>")
@service_errors("get receipt")
def get_receipt_route(receipt_id: int):
    return jsonify({"receipt": receiving_service.get_receipt(receipt_id).to_dict()})


@receipts_bp.post("/<int:receipt_id>/status")
@require_actor
@service_errors("update receipt status")
def update_receipt_status_route(receipt_id: int):
    data = json_body()
    if not data.get("status"):
        return jsonify({"error": "status is required", "code": "VALIDATION_ERROR"}), 400
    receipt = receiving_service.update_receipt_status(
        receipt_id,
        data["status"],
        actor_id=g.actor_id,
        notes=data.get("notes"),
    )
    return jsonify({"receipt": receipt.to_dict()})


@receipts_bp.post("/<int:receipt_id>/approve")
@require_actor
@service_errors("approve receipt")
def approve_receipt_route(receipt_id: int):
    receipt = receiving_service.approve_receipt(receipt_id, actor_id=g.actor_id, notes=json_body().get("notes"))
    return jsonify({"receipt": receipt.to_dict()})


@receipts_bp.post("/<int:receipt_id>/reject")
@require_actor
@service_errors("reject receipt")
def reject_receipt_route(receipt_id: int):
    receipt = receiving_service.reject_receipt(receipt_id, actor_id=g.actor_id, reason=json_body().get("reason"))
    return jsonify({"receipt": receipt.to_dict()})


@receipts_bp.delete("/<int:receipt_id>")
@require_actor
@service_errors("delete receipt")
def delete_receipt_route(receipt_id: int):
    receiving_service.delete_receipt(receipt_id, actor_id=g.actor_id)
    return jsonify({"deleted": True, "id": receipt_id})
