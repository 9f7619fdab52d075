# Overview: Flask API routes for reading the audit trail.

from flask import Blueprint, jsonify, request

from ..decorators import pagination_args, service_errors
from ..services import audit_service

audit_bp = Blueprint("audit", __name__, url_prefix="/api/audit-events")


@audit_bp.get("")
@service_errors("list audit events")
def list_audit_events_route():
    limit, offset = pagination_args()
    events, total = audit_service.list_events(
        entity_type=request.args.get("entity_type"),
        entity_id=request.args.get("entity_id", type=int),
        actor_id=request.args.get("actor_id"),
        limit=limit,
        offset=offset,
    )
    return jsonify({
        "items": [e.to_dict() for e in events],
        "count": total,
        "limit": limit,
        "offset": offset,
    })
