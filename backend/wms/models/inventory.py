from __future__ import annotations

from sqlalchemy import event
from sqlalchemy.orm import object_session

from ..errors import InvalidStateError
from ..extensions import db
from ..utils import money_str, to_utc_z, utcnow

ITEM_TYPES = ("Product", "Service", "Material")

# Every change to InventoryItem.quantity is journaled under exactly one reason
REASON_PURCHASE_RECEIPT = "PURCHASE_RECEIPT"
REASON_SALE = "SALE"
REASON_SALE_CANCELLATION = "SALE_CANCELLATION"
REASON_STOCK_TAKE = "STOCK_TAKE"
REASON_INITIAL_STOCK = "INITIAL_STOCK"
MOVEMENT_REASONS = (
    REASON_PURCHASE_RECEIPT,
    REASON_SALE,
    REASON_SALE_CANCELLATION,
    REASON_STOCK_TAKE,
    REASON_INITIAL_STOCK,
)


class InventoryItem(db.Model):
    """
    Authoritative on-hand quantity for one SKU.

    WHY: Purchase receipts, sales and cancellations all converge on this row.
    It is the only place stock lives; documents only reference it.

    INVARIANTS:
    - quantity >= 0 (checked by the ledger service and by the database)
    - quantity changes only through inventory_service.adjust, which writes an
      InventoryMovement for every change
    - location_stock is an informational sub-ledger; it need not sum to quantity

    CONCURRENCY: version_id makes concurrent writers that skipped the row lock
    fail with StaleDataError instead of overwriting each other.
    """
    __tablename__ = "inventory_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="quantity_nonneg"),
        db.CheckConstraint("rate >= 0", name="rate_nonneg"),
        db.Index("ix_inventory_items_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sku = db.Column(db.String(64), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(16), nullable=False, default="Product")
    description = db.Column(db.Text, nullable=True)

    # Unit price; snapshotted into sale order lines at sale time
    rate = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    quantity = db.Column(db.Integer, nullable=False, default=0)

    created_by = db.Column(db.String(64), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    location_stock = db.relationship(
        "LocationStock",
        back_populates="item",
        cascade="all, delete-orphan",
        order_by="LocationStock.id",
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<InventoryItem id={self.id} sku={self.sku!r} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "type": self.type,
            "description": self.description,
            "rate": money_str(self.rate),
            "quantity": self.quantity,
            "location_stock": [loc.to_dict() for loc in self.location_stock],
            "created_by": self.created_by,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class LocationStock(db.Model):
    """Per-location quantity for an item (single-warehouse bins/shelves)."""
    __tablename__ = "location_stock"
    __table_args__ = (
        db.UniqueConstraint("item_id", "location_id", name="uq_location_stock_item_location"),
        db.CheckConstraint("quantity >= 0", name="quantity_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id", ondelete="CASCADE"), nullable=False, index=True)
    location_id = db.Column(db.String(64), nullable=False, index=True)
    location_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    item = db.relationship("InventoryItem", back_populates="location_stock")

    def to_dict(self) -> dict:
        return {
            "location_id": self.location_id,
            "location_name": self.location_name,
            "quantity": self.quantity,
            "updated_at": to_utc_z(self.updated_at),
        }


class InventoryMovement(db.Model):
    """
    Append-only journal of on-hand quantity changes.

    One row per adjustment, naming the workflow event that caused it
    (reason + reference). The sku is copied so the journal stays readable
    after an item is deleted.
    """
    __tablename__ = "inventory_movements"
    __table_args__ = (
        db.CheckConstraint("delta <> 0", name="delta_nonzero"),
        db.Index("ix_inventory_movements_reference", "reference_type", "reference_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id", ondelete="SET NULL"), nullable=True, index=True)
    sku = db.Column(db.String(64), nullable=False)
    delta = db.Column(db.Integer, nullable=False)
    quantity_after = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(32), nullable=False, index=True)
    reference_type = db.Column(db.String(32), nullable=True)
    reference_id = db.Column(db.Integer, nullable=True)
    actor_id = db.Column(db.String(64), nullable=True)
    note = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "sku": self.sku,
            "delta": self.delta,
            "quantity_after": self.quantity_after,
            "reason": self.reason,
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "actor_id": self.actor_id,
            "note": self.note,
            "created_at": to_utc_z(self.created_at),
        }


@event.listens_for(InventoryMovement, "before_update")
def _movement_is_append_only(mapper, connection, target):
    session = object_session(target)
    if session is not None and session.is_modified(target, include_collections=False):
        raise InvalidStateError("Inventory movements cannot be modified")


@event.listens_for(InventoryMovement, "before_delete")
def _movement_cannot_be_deleted(mapper, connection, target):
    raise InvalidStateError("Inventory movements cannot be deleted")
