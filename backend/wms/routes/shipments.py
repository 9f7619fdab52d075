# Overview: Flask API routes for shipments and public tracking; parses input and returns JSON responses.

from flask import Blueprint, g, jsonify, request

from ..decorators import json_body, pagination_args, require_actor, service_errors
from ..services import shipment_service

shipments_bp = Blueprint("shipments", __name__, url_prefix="/api/shipments")


@shipments_bp.get("")
@service_errors("list shipments")
def list_shipments_route():
    limit, offset = pagination_args()
    shipments, total = shipment_service.list_shipments(
        status=request.args.get("status"),
        carrier=request.args.get("carrier"),
        limit=limit,
        offset=offset,
    )
    return jsonify({
        "items": [s.to_dict() for s in shipments],
        "count": total,
        "limit": limit,
        "offset": offset,
    })


@shipments_bp.post("")
@require_actor
@service_errors("create shipment")
def create_shipment_route():
    """
    Request body:
    {
        "sales_order_id": 1,                                   // required
        "shipping_address": {"street": "...", "city": "...",
                             "zip_code": "...", "state": "...", "country": "..."},
        "carrier": "DHL",                                      // required
        "shipping_method": "Express",                          // required
        "shipping_cost": "12.00",                              // required
        "tracking_number": "...", "estimated_delivery": "...", "weight": "1.5",
        "priority": "Normal", "signature_required": false, "insurance_value": "...",
        "notes": "..."
    }
    """
    shipment = shipment_service.create_shipment(json_body(), actor_id=g.actor_id)
    return jsonify({"shipment": shipment.to_dict()}), 201


@shipments_bp.get("/<int:shipment_id>")
@service_errors("get shipment")
def get_shipment_route(shipment_id: int):
    return jsonify({"shipment": shipment_service.get_shipment(shipment_id).to_dict()})


@shipments_bp.patch("/<int:shipment_id>")
@require_actor
@service_errors("update shipment")
def update_shipment_route(shipment_id: int):
    shipment = shipment_service.update_shipment_details(shipment_id, json_body(), actor_id=g.actor_id)
    return jsonify({"shipment": shipment.to_dict()})


@shipments_bp.post("/<int:shipment_id>/status")
@require_actor
@service_errors("update shipment status")
def update_shipment_status_route(shipment_id: int):
    data = json_body()
    if not data.get("status"):
        return jsonify({"error": "status is required", "code": "VALIDATION_ERROR"}), 400
    shipment = shipment_service.update_shipment_status(
        shipment_id,
        data["status"],
        actor_id=g.actor_id,
        location=data.get("location"),
        notes=data.get("notes"),
    )
    return jsonify({"shipment": shipment.to_dict()})


@shipments_bp.delete("/<int:shipment_id>")
@require_actor
@service_errors("delete shipment")
def delete_shipment_route(shipment_id: int):
    shipment_service.delete_shipment(shipment_id, actor_id=g.actor_id)
    return jsonify({"deleted": True, "id": shipment_id})


@shipments_bp.get("/by-order/<int:sales_order_id>")
@service_errors("list shipments for sales order")
def shipments_for_order_route(sales_order_id: int):
    shipments = shipment_service.shipments_for_sales_order(sales_order_id)
    return jsonify({"items": [s.to_dict() for s in shipments], "count": len(shipments)})


@shipments_bp.get("/track/<tracking_number>")
@service_errors("track shipment")
def track_shipment_route(tracking_number: str):
    """Public tracking view; no actor required and no customer details returned."""
    return jsonify({"tracking": shipment_service.track_shipment(tracking_number).to_tracking_dict()})
