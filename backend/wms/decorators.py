# Overview: Request decorators for API routes: actor identity and service error translation.

from functools import wraps

from flask import current_app, g, jsonify, request

from .errors import FulfillmentError
from .validation import clamp_pagination

ACTOR_HEADER = "X-Actor-Id"


def require_actor(f):
    """
    Require an actor identity on mutating routes.

    The core never authenticates; an upstream gateway vouches for the user
    and forwards its id in the X-Actor-Id header. Sets g.actor_id.

    Returns 401 if the header is missing or blank.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        actor_id = (request.headers.get(ACTOR_HEADER) or "").strip()
        if not actor_id:
            return jsonify({"error": "Actor identity required", "code": "UNAUTHENTICATED"}), 401
        g.actor_id = actor_id[:64]
        return f(*args, **kwargs)

    return decorated_function


def service_errors(action: str):
    """
    Translate service exceptions into JSON error responses.

    FulfillmentError subclasses map to their status_code with
    {"error", "code", "details"}; anything else is logged with a traceback
    and returned as a bare 500.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except FulfillmentError as e:
                if e.status_code >= 500:
                    current_app.logger.warning("Failed to %s: %s", action, e.message)
                return jsonify(e.to_dict()), e.status_code
            except Exception:
                current_app.logger.exception("Failed to %s", action)
                return jsonify({"error": "Internal server error"}), 500

        return decorated_function

    return decorator


def json_body() -> dict:
    """Request JSON as a dict ({} when absent or not an object)."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def pagination_args() -> tuple[int, int]:
    """Clamped (limit, offset) from the query string."""
    return clamp_pagination(
        request.args.get("limit", type=int),
        request.args.get("offset", type=int),
    )
