# Overview: Service-layer operations for the audit trail; records who changed what, never blocking the workflow.

"""
Audit Sink

WHY: Every successful workflow operation leaves a trace (actor, action,
entity, optional field changes) for back-office review.

DESIGN:
- Events are written AFTER the workflow commits, in their own transaction,
  so an audit write can never roll back stock movements
- A failing sink is logged at WARNING and otherwise ignored
- AUDIT_ENABLED=False turns the sink off entirely
"""

from __future__ import annotations

import logging

from flask import current_app

from ..extensions import db
from ..models import AuditEvent
from ..validation import clamp_pagination
from .concurrency import run_with_retry

logger = logging.getLogger(__name__)


def record(
    actor_id: str | None,
    action: str,
    *,
    entity_type: str,
    entity_id: int | None = None,
    entity_name: str | None = None,
    description: str | None = None,
    changes: dict | None = None,
) -> AuditEvent | None:
    """
    Record an audit event.

    Returns:
        The stored AuditEvent, or None when auditing is disabled or failed.
    """
    if not current_app.config.get("AUDIT_ENABLED", True):
        return None

    def _op() -> AuditEvent:
        entry = AuditEvent(
            actor_id=actor_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            entity_name=entity_name,
            description=description,
            changes=changes,
        )
        db.session.add(entry)
        db.session.commit()
        return entry

    try:
        return run_with_retry(_op, attempts=2, backoff_base=0.05)
    except Exception:
        # Sink failures are reported, never propagated to the caller
        db.session.rollback()
        logger.warning(
            "Audit event %s for %s %s was not recorded",
            action,
            entity_type,
            entity_id,
            exc_info=True,
        )
        return None


def list_events(
    *,
    entity_type: str | None = None,
    entity_id: int | None = None,
    actor_id: str | None = None,
    limit: int | None = None,
    offset: int | None = None,
) -> tuple[list[AuditEvent], int]:
    limit, offset = clamp_pagination(limit, offset)
    query = db.session.query(AuditEvent)
    if entity_type:
        query = query.filter(AuditEvent.entity_type == entity_type)
    if entity_id is not None:
        query = query.filter(AuditEvent.entity_id == entity_id)
    if actor_id:
        query = query.filter(AuditEvent.actor_id == actor_id)
    total = query.count()
    events = query.order_by(AuditEvent.id.desc()).offset(offset).limit(limit).all()
    return events, total
