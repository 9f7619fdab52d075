# Overview: Service-layer operations for document numbering; allocates PO/RR/SO/SH numbers atomically.

from __future__ import annotations

import logging
import time

from flask import current_app
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, OperationalError

from ..extensions import db
from ..models import DocumentSequence

logger = logging.getLogger(__name__)

# entity type -> number prefix
PREFIXES = {
    "purchase_order": "PO",
    "receipt": "RR",
    "sale_order": "SO",
    "shipment": "SH",
}


def format_number(prefix: str, number: int, pad: int | None = None) -> str:
    if pad is None:
        pad = current_app.config.get("SEQUENCE_PAD", 6)
    return f"{prefix}-{number:0{pad}d}"


def fallback_number(prefix: str) -> str:
    """Wall-clock number used when the counter cannot be advanced."""
    return f"{prefix}-T{time.time_ns() // 1000}"


def _bump(entity_type: str) -> int | None:
    stmt = (
        update(DocumentSequence)
        .where(DocumentSequence.entity_type == entity_type)
        .values(next_number=DocumentSequence.next_number + 1)
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        return None
    current = db.session.execute(
        select(DocumentSequence.next_number).where(DocumentSequence.entity_type == entity_type)
    ).scalar()
    return current - 1


def _allocate(entity_type: str) -> int | None:
    number = _bump(entity_type)
    if number is None:
        try:
            with db.session.begin_nested():
                db.session.add(DocumentSequence(entity_type=entity_type, next_number=2))
            number = 1
        except IntegrityError:
            number = _bump(entity_type)
    return number


def next_number(entity_type: str) -> str:
    """
    Allocate the next document number for an entity type, e.g. "PO-000042".

    Runs inside the caller's transaction: the counter row stays locked until
    the creating operation commits, and a rollback gives the number back.

    The first call for an entity type creates the counter row inside a
    savepoint; if a concurrent transaction created it first, the bump is
    retried against that row. If the counter still cannot be advanced, or
    the database refuses the counter statements, a time-based number
    (PREFIX-T<microseconds>) is returned and a warning logged. The counter
    work runs in a savepoint so the caller's transaction stays usable.
    """
    if entity_type not in PREFIXES:
        raise ValueError(f"Unknown document entity type: {entity_type}")
    prefix = PREFIXES[entity_type]

    try:
        with db.session.begin_nested():
            number = _allocate(entity_type)
    except OperationalError as e:
        logger.warning("Sequence counter for %s failed: %s", entity_type, e.orig)
        number = None

    if number is None:
        fallback = fallback_number(prefix)
        logger.warning("Sequence counter for %s unavailable; using %s", entity_type, fallback)
        return fallback
    return format_number(prefix, number)
