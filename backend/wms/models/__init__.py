from .inventory import InventoryItem, LocationStock, InventoryMovement
from .purchasing import (
    PurchaseOrder,
    PurchaseOrderItem,
    PurchaseOrderStatusHistory,
    ReceivingReceipt,
    ReceiptLine,
)
from .sales import SaleOrder, SaleOrderItem
from .shipping import Shipment, ShipmentItem, ShipmentTrackingEvent
from .documents import DocumentSequence, AuditEvent

__all__ = [
    "InventoryItem",
    "LocationStock",
    "InventoryMovement",
    "PurchaseOrder",
    "PurchaseOrderItem",
    "PurchaseOrderStatusHistory",
    "ReceivingReceipt",
    "ReceiptLine",
    "SaleOrder",
    "SaleOrderItem",
    "Shipment",
    "ShipmentItem",
    "ShipmentTrackingEvent",
    "DocumentSequence",
    "AuditEvent",
]
