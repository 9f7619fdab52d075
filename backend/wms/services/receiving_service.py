# Overview: Service-layer operations for receiving against purchase orders; encapsulates business logic.

"""
Receiving Reconciliation Service

WHY: An arrival touches three things at once: the purchase order lines
(received / pending), the inventory ledger (on-hand), and a receipt
document. They must agree, so receive_items() does all of it in one unit
of work and any failure leaves all three untouched.

RECEIVE FLOW (one transaction):
1. Lock the purchase order; it must be Sent, Acknowledged or Partially Received
2. For each line: bump received_quantity (never past ordered), then
   increment the ledger. Lines for SKUs not yet in the ledger create the
   item (or bind to an existing item with the same SKU)
3. Re-derive receiving_status and mirror it into status
4. Append one status history entry
5. Create the ReceivingReceipt snapshotting prices and conditions

RECEIPT LIFECYCLE:
Received -> Inspected / Approved / Rejected
Inspected -> Approved / Rejected
Rejected -> Inspected
Approved is final.

IMMUTABLE: Deleting a receipt removes the document only. Stock and PO
quantities stay as received.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func, or_

from ..errors import InvalidStateError, ItemNotFoundError, NotFoundError, ValidationError
from ..extensions import db
from ..models import InventoryItem, PurchaseOrder, ReceiptLine, ReceivingReceipt
from ..models.inventory import REASON_PURCHASE_RECEIPT
from ..models.purchasing import (
    CONDITIONS,
    PO_RECEIVABLE_STATUSES,
    PO_STATUS_PARTIALLY_RECEIVED,
    PO_STATUS_RECEIVED,
    RECEIPT_APPROVED,
    RECEIPT_INSPECTED,
    RECEIPT_RECEIVED,
    RECEIPT_REJECTED,
    RECEIPT_STATUSES,
    RECEIVING_FULL,
    derive_receiving_status,
)
from ..utils import money_str, quantize_money, utcnow
from ..validation import clamp_pagination, optional_str, to_choice, to_datetime, to_int
from . import audit_service, inventory_service
from .concurrency import lock_for_update, unit_of_work
from .sequence_service import next_number

RECEIPT_TRANSITIONS = {
    RECEIPT_RECEIVED: {RECEIPT_INSPECTED, RECEIPT_APPROVED, RECEIPT_REJECTED},
    RECEIPT_INSPECTED: {RECEIPT_APPROVED, RECEIPT_REJECTED},
    RECEIPT_REJECTED: {RECEIPT_INSPECTED},
    RECEIPT_APPROVED: set(),
}


def _parse_lines(raw_lines) -> list[dict]:
    if not isinstance(raw_lines, list) or not raw_lines:
        raise ValidationError("At least one received item is required")

    parsed = []
    for index, raw in enumerate(raw_lines):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        if raw.get("item_id") is None:
            raise ValidationError(f"items[{index}].item_id is required")
        parsed.append({
            "item_id": to_int(raw["item_id"], f"items[{index}].item_id"),
            "quantity_received": to_int(raw.get("quantity_received"), f"items[{index}].quantity_received", minimum=1),
            "condition": to_choice(raw.get("condition"), "condition", CONDITIONS, default="Good"),
            "notes": optional_str(raw.get("notes"), "notes", max_length=2000),
            "location": optional_str(raw.get("location"), f"items[{index}].location", max_length=64),
            "batch_number": optional_str(raw.get("batch_number"), f"items[{index}].batch_number", max_length=64),
            "serial_number": optional_str(raw.get("serial_number"), f"items[{index}].serial_number", max_length=128),
            "expiry_date": to_datetime(raw.get("expiry_date"), f"items[{index}].expiry_date"),
        })
    return parsed


def _parse_inspection(raw) -> dict | None:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ValidationError("quality_inspection must be an object")
    passed = raw.get("passed", True)
    if not isinstance(passed, bool):
        raise ValidationError("quality_inspection.passed must be true or false")
    return {
        "passed": passed,
        "notes": optional_str(raw.get("notes"), "quality_inspection.notes", max_length=10_000),
    }


def _stock_line(
    po: PurchaseOrder,
    po_item,
    quantity: int,
    *,
    actor_id: str | None,
    location: str | None = None,
) -> None:
    """Move received units into the ledger (and the put-away location), creating the item for new SKUs."""
    reference = {"reference_type": "purchase_order", "reference_id": po.id}
    if po_item.product_id is None:
        existing = inventory_service.lock_item(po_item.sku)
        if existing is None:
            existing = InventoryItem(
                sku=po_item.sku,
                name=po_item.product_name,
                description=po_item.description,
                rate=po_item.unit_price,
                quantity=0,
                created_by=actor_id,
            )
            db.session.add(existing)
            db.session.flush()
        po_item.product_id = existing.id

    inventory_service.adjust(
        po_item.product_id,
        quantity,
        REASON_PURCHASE_RECEIPT,
        actor_id=actor_id,
        note=f"Received against {po.po_number}",
        **reference,
    )
    if location:
        item = db.session.get(InventoryItem, po_item.product_id)
        inventory_service.apply_location_change(item, location, quantity, "add")


def receive_items(
    po_id: int,
    items,
    *,
    actor_id: str | None,
    tracking: dict | None = None,
    receiving_location: str | None = None,
    storage_location: str | None = None,
    quality_inspection: dict | None = None,
    discrepancy_notes: str | None = None,
) -> ReceivingReceipt:
    """
    Receive goods against a purchase order.

    Args:
        po_id: Purchase order id
        items: [{item_id, quantity_received, condition?, notes?, location?,
            batch_number?, serial_number?, expiry_date?}]; item_id is the
            purchase order line id
        actor_id: Receiving user
        tracking: Optional {tracking_number, carrier, actual_delivery, notes}
        receiving_location: Dock or bay the goods arrived at
        storage_location: Default put-away location for lines without one;
            received units are added to that location's stock
        quality_inspection: Optional {passed, notes} recorded at the dock
        discrepancy_notes: Free text about shortages or damage

    Returns:
        The created ReceivingReceipt

    Raises:
        ValidationError: Empty list, non-positive quantity, unknown condition
        NotFoundError: No such purchase order
        InvalidStateError: Order not receivable, or a line would be over-received
        ItemNotFoundError: A line names an item not on the order
    """
    lines = _parse_lines(items)
    tracking = tracking or {}
    if not isinstance(tracking, dict):
        raise ValidationError("tracking must be an object")
    tracking_number = optional_str(tracking.get("tracking_number"), "tracking_number", max_length=128)
    carrier = optional_str(tracking.get("carrier"), "carrier", max_length=64)
    delivered_at = to_datetime(tracking.get("actual_delivery"), "actual_delivery")
    receiving_notes = optional_str(tracking.get("notes"), "notes", max_length=10_000)
    receiving_location = optional_str(receiving_location, "receiving_location", max_length=64)
    storage_location = optional_str(storage_location, "storage_location", max_length=64)
    inspection = _parse_inspection(quality_inspection)
    discrepancy_notes = optional_str(discrepancy_notes, "discrepancy_notes", max_length=10_000)

    with unit_of_work():
        po = lock_for_update(db.session.query(PurchaseOrder).filter_by(id=po_id)).first()
        if not po:
            raise NotFoundError(f"Purchase order {po_id} not found")
        if po.status not in PO_RECEIVABLE_STATUSES:
            raise InvalidStateError(
                f"Cannot receive items on a purchase order with status {po.status}",
                {"status": po.status, "allowed": list(PO_RECEIVABLE_STATUSES)},
            )

        po_items = {item.id: item for item in po.items}
        receipt_lines = []
        for line in lines:
            po_item = po_items.get(line["item_id"])
            if po_item is None:
                raise ItemNotFoundError(
                    f"Item {line['item_id']} is not on purchase order {po.po_number}",
                    {"item_id": line["item_id"]},
                )

            qty = line["quantity_received"]
            new_received = po_item.received_quantity + qty
            if new_received > po_item.quantity:
                raise InvalidStateError(
                    f"Cannot receive {qty} of {po_item.sku}: only "
                    f"{po_item.quantity - po_item.received_quantity} pending",
                    {
                        "item_id": po_item.id,
                        "ordered": po_item.quantity,
                        "received": po_item.received_quantity,
                        "requested": qty,
                    },
                )
            po_item.received_quantity = new_received
            po_item.pending_quantity = po_item.quantity - new_received

            location = line["location"] or storage_location
            _stock_line(po, po_item, qty, actor_id=actor_id, location=location)

            receipt_lines.append(ReceiptLine(
                purchase_order_item_id=po_item.id,
                product_id=po_item.product_id,
                product_name=po_item.product_name,
                sku=po_item.sku,
                quantity_ordered=po_item.quantity,
                quantity_received=qty,
                unit_price=po_item.unit_price,
                total_value=quantize_money(po_item.unit_price * qty),
                condition=line["condition"],
                location=location,
                batch_number=line["batch_number"],
                serial_number=line["serial_number"],
                expiry_date=line["expiry_date"],
                notes=line["notes"],
            ))

        po.receiving_status = derive_receiving_status(
            (item.quantity, item.received_quantity) for item in po.items
        )
        po.status = PO_STATUS_RECEIVED if po.receiving_status == RECEIVING_FULL else PO_STATUS_PARTIALLY_RECEIVED
        if tracking_number:
            po.tracking_number = tracking_number
        if carrier:
            po.carrier = carrier
        if receiving_notes:
            po.receiving_notes = receiving_notes
        if po.receiving_status == RECEIVING_FULL:
            po.actual_delivery = delivered_at or utcnow()
        po.add_history(
            po.status,
            changed_by=actor_id,
            notes=f"Items received: {len(receipt_lines)} item(s)",
        )

        receipt = ReceivingReceipt(
            receipt_number=next_number("receipt"),
            purchase_order_id=po.id,
            po_number=po.po_number,
            vendor_name=po.vendor_name,
            vendor_email=po.vendor_email,
            total_value=quantize_money(sum((rl.total_value for rl in receipt_lines), Decimal("0"))),
            tracking_number=tracking_number,
            carrier=carrier,
            delivery_date=delivered_at or utcnow(),
            status=RECEIPT_RECEIVED,
            notes=receiving_notes,
            receiving_location=receiving_location,
            storage_location=storage_location,
            discrepancy_notes=discrepancy_notes,
            received_by=actor_id,
            received_at=utcnow(),
        )
        if inspection is not None:
            receipt.inspection_passed = inspection["passed"]
            receipt.inspection_notes = inspection["notes"]
            receipt.inspected_by = actor_id
            receipt.inspected_at = utcnow()
        receipt.lines.extend(receipt_lines)
        db.session.add(receipt)
        db.session.flush()

    audit_service.record(
        actor_id,
        "RECEIVE_PURCHASE_ORDER",
        entity_type="purchase_order",
        entity_id=po.id,
        entity_name=po.po_number,
        description=f"Receipt {receipt.receipt_number}: {len(receipt_lines)} line(s), value {money_str(receipt.total_value)}",
        changes={"receiving_status": po.receiving_status},
    )
    return receipt


def get_receipt(receipt_id: int) -> ReceivingReceipt:
    receipt = db.session.get(ReceivingReceipt, receipt_id)
    if not receipt:
        raise NotFoundError(f"Receipt {receipt_id} not found")
    return receipt


def _lock_receipt(receipt_id: int) -> ReceivingReceipt:
    receipt = lock_for_update(db.session.query(ReceivingReceipt).filter_by(id=receipt_id)).first()
    if not receipt:
        raise NotFoundError(f"Receipt {receipt_id} not found")
    return receipt


def list_receipts(
    *,
    status: str | None = None,
    purchase_order_id: int | None = None,
    search: str | None = None,
    limit: int | None = None,
    offset: int | None = None,
) -> tuple[list[ReceivingReceipt], int]:
    limit, offset = clamp_pagination(limit, offset)
    query = db.session.query(ReceivingReceipt)
    if status:
        query = query.filter(ReceivingReceipt.status == to_choice(status, "status", RECEIPT_STATUSES))
    if purchase_order_id is not None:
        query = query.filter(ReceivingReceipt.purchase_order_id == purchase_order_id)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(
            ReceivingReceipt.receipt_number.ilike(like),
            ReceivingReceipt.po_number.ilike(like),
            ReceivingReceipt.vendor_name.ilike(like),
        ))
    total = query.count()
    receipts = (
        query.order_by(ReceivingReceipt.received_at.desc(), ReceivingReceipt.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return receipts, total


def receipts_for_purchase_order(po_id: int) -> list[ReceivingReceipt]:
    if not db.session.get(PurchaseOrder, po_id):
        raise NotFoundError(f"Purchase order {po_id} not found")
    return (
        db.session.query(ReceivingReceipt)
        .filter_by(purchase_order_id=po_id)
        .order_by(ReceivingReceipt.id.asc())
        .all()
    )


def _apply_receipt_status(receipt: ReceivingReceipt, status: str, *, actor_id: str | None, notes: str | None) -> None:
    allowed = RECEIPT_TRANSITIONS[receipt.status]
    if status not in allowed:
        raise InvalidStateError(
            f"Cannot change receipt from {receipt.status} to {status}",
            {"status": receipt.status, "requested": status, "allowed": sorted(allowed)},
        )
    now = utcnow()
    receipt.status = status
    if status == RECEIPT_INSPECTED:
        receipt.inspected_by = actor_id
        receipt.inspected_at = now
        receipt.inspection_passed = None
        if notes:
            receipt.inspection_notes = notes
    elif status == RECEIPT_APPROVED:
        receipt.approved_by = actor_id
        receipt.approved_at = now
        if receipt.inspection_passed is None:
            receipt.inspection_passed = True
        if notes:
            receipt.notes = notes
    elif status == RECEIPT_REJECTED:
        receipt.inspected_by = actor_id
        receipt.inspected_at = now
        receipt.inspection_passed = False
        if notes:
            receipt.discrepancy_notes = notes


def update_receipt_status(
    receipt_id: int,
    status: str,
    *,
    actor_id: str | None,
    notes: str | None = None,
) -> ReceivingReceipt:
    """
    Move a receipt through its QC workflow.

    Raises:
        ValidationError: Unknown status
        InvalidStateError: Transition not allowed (including anything from Approved)
    """
    status = to_choice(status, "status", RECEIPT_STATUSES)
    notes = optional_str(notes, "notes", max_length=10_000)

    with unit_of_work():
        receipt = _lock_receipt(receipt_id)
        previous = receipt.status
        _apply_receipt_status(receipt, status, actor_id=actor_id, notes=notes)

    audit_service.record(
        actor_id,
        "UPDATE_RECEIPT_STATUS",
        entity_type="receipt",
        entity_id=receipt.id,
        entity_name=receipt.receipt_number,
        changes={"status": [previous, status]},
    )
    return receipt


def approve_receipt(receipt_id: int, *, actor_id: str | None, notes: str | None = None) -> ReceivingReceipt:
    with unit_of_work():
        receipt = _lock_receipt(receipt_id)
        if receipt.status == RECEIPT_APPROVED:
            raise InvalidStateError("Receipt is already approved")
        _apply_receipt_status(receipt, RECEIPT_APPROVED, actor_id=actor_id, notes=notes)

    audit_service.record(
        actor_id,
        "APPROVE_RECEIPT",
        entity_type="receipt",
        entity_id=receipt.id,
        entity_name=receipt.receipt_number,
    )
    return receipt


def reject_receipt(receipt_id: int, *, actor_id: str | None, reason: str | None) -> ReceivingReceipt:
    """Reject a receipt after inspection; the reason lands in discrepancy_notes."""
    reason = optional_str(reason, "reason", max_length=10_000)
    if not reason:
        raise ValidationError("A rejection reason is required")

    with unit_of_work():
        receipt = _lock_receipt(receipt_id)
        if receipt.status == RECEIPT_REJECTED:
            raise InvalidStateError("Receipt is already rejected")
        _apply_receipt_status(receipt, RECEIPT_REJECTED, actor_id=actor_id, notes=reason)

    audit_service.record(
        actor_id,
        "REJECT_RECEIPT",
        entity_type="receipt",
        entity_id=receipt.id,
        entity_name=receipt.receipt_number,
        description=reason,
    )
    return receipt


def delete_receipt(receipt_id: int, *, actor_id: str | None) -> None:
    """Delete a receipt document. Approved receipts are kept forever."""
    with unit_of_work():
        receipt = _lock_receipt(receipt_id)
        if receipt.status == RECEIPT_APPROVED:
            raise InvalidStateError("Approved receipts cannot be deleted")
        number = receipt.receipt_number
        db.session.delete(receipt)

    audit_service.record(
        actor_id,
        "DELETE_RECEIPT",
        entity_type="receipt",
        entity_id=receipt_id,
        entity_name=number,
    )


def receipt_stats() -> dict:
    rows = (
        db.session.query(
            ReceivingReceipt.status,
            func.count(ReceivingReceipt.id),
            func.coalesce(func.sum(ReceivingReceipt.total_value), 0),
        )
        .group_by(ReceivingReceipt.status)
        .all()
    )
    by_status = {s: {"count": 0, "total_value": "0.00"} for s in RECEIPT_STATUSES}
    for status, count, value in rows:
        by_status[status] = {"count": count, "total_value": money_str(value)}
    total_value = sum((quantize_money(v["total_value"]) for v in by_status.values()), Decimal("0"))
    return {
        "total": sum(v["count"] for v in by_status.values()),
        "total_value": money_str(total_value),
        "by_status": by_status,
    }
