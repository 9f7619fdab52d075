from __future__ import annotations

from ..extensions import db
from ..utils import to_utc_z, utcnow


class DocumentSequence(db.Model):
    """
    Per-entity counter for human-readable document numbers.

    WHY: Numbers derived from counting existing rows collide under concurrent
    creation and go backwards after deletes. A dedicated counter row bumped
    with a single UPDATE inside the creating transaction does neither.
    """
    __tablename__ = "document_sequences"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    entity_type = db.Column(db.String(32), nullable=False, unique=True)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<DocumentSequence {self.entity_type} next={self.next_number}>"


class AuditEvent(db.Model):
    """Who did what to which record. Written after the workflow commits."""
    __tablename__ = "audit_events"
    __table_args__ = (
        db.Index("ix_audit_events_entity", "entity_type", "entity_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    actor_id = db.Column(db.String(64), nullable=True, index=True)
    action = db.Column(db.String(64), nullable=False, index=True)
    entity_type = db.Column(db.String(32), nullable=False)
    entity_id = db.Column(db.Integer, nullable=True)
    entity_name = db.Column(db.String(255), nullable=True)
    description = db.Column(db.Text, nullable=True)
    changes = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "actor_id": self.actor_id,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "entity_name": self.entity_name,
            "description": self.description,
            "changes": self.changes,
            "created_at": to_utc_z(self.created_at),
        }
