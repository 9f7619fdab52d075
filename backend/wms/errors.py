# Overview: Exception taxonomy shared by the service layer and the HTTP routes.

"""
Fulfillment errors.

Every service failure is a FulfillmentError carrying a human-readable message,
a stable machine code and a details dict. Routes translate them to JSON using
status_code; nothing below the route layer knows about HTTP otherwise.

ORDERING:
- ValidationError / NotFoundError are raised before any write happens
- InvalidStateError / InsufficientStockError may be raised mid-transaction;
  the surrounding unit of work rolls everything back
- PersistenceError wraps lock, version and commit failures (retryable)
"""

from __future__ import annotations


class FulfillmentError(Exception):
    """Base class for all domain errors."""

    code = "FULFILLMENT_ERROR"
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(FulfillmentError, ValueError):
    """400-level input problem."""

    code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(FulfillmentError, LookupError):
    code = "NOT_FOUND"
    status_code = 404


class InvalidStateError(FulfillmentError):
    """Operation not allowed in the record's current workflow state."""

    code = "INVALID_STATE"
    status_code = 409


class ItemNotFoundError(InvalidStateError):
    """A receiving line names an order item that is not on the purchase order."""

    code = "ITEM_NOT_FOUND"


class InsufficientStockError(FulfillmentError):
    code = "INSUFFICIENT_STOCK"
    status_code = 409

    def __init__(self, message: str, *, sku: str, requested: int, available: int, item_id: int | None = None):
        super().__init__(
            message,
            {"item_id": item_id, "sku": sku, "requested": requested, "available": available},
        )
        self.sku = sku
        self.requested = requested
        self.available = available


class ConflictError(FulfillmentError):
    """409-level uniqueness conflict (duplicate SKU, second shipment, ...)."""

    code = "CONFLICT"
    status_code = 409


class PersistenceError(FulfillmentError):
    """Storage refused the write (lock timeout, stale version, constraint race)."""

    code = "PERSISTENCE_FAILURE"
    status_code = 503
    retryable = True

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["retryable"] = self.retryable
        return body
