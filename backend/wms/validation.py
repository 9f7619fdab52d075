# Overview: Input coercion helpers shared by services; raise ValidationError on bad payloads.

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

from .errors import ValidationError
from .utils import parse_iso_datetime, quantize_money

# Maximum money amount: 9,999,999,999.99 (fits Numeric(12, 2))
MAX_MONEY = Decimal("9999999999.99")

DEFAULT_LIMIT = 100
MAX_LIMIT = 500


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    if isinstance(value, (list, dict)) and not value:
        return True
    return False


def require_fields(data: dict, fields: Iterable[str]) -> None:
    """Reject payloads missing any of `fields`; lists every empty one at once."""
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    empty = [f for f in fields if _is_blank(data.get(f))]
    if empty:
        raise ValidationError(
            f"Please fill in all required fields: {', '.join(empty)}",
            {"empty_fields": empty},
        )


def to_int(value: Any, field: str, *, minimum: int | None = None) -> int:
    """
    Strict integer coercion.

    Accepts ints and plain digit strings; rejects bools, floats and
    scientific notation so "1e3" never turns into a quantity of 1000.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        body = stripped[1:] if stripped.startswith("-") else stripped
        if not body.isdigit():
            raise ValidationError(f"{field} must be an integer")
        result = int(stripped)
    else:
        raise ValidationError(f"{field} must be an integer")

    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be at least {minimum}", {"field": field})
    return result


def to_money(value: Any, field: str, *, default: Decimal | None = None) -> Decimal:
    """Coerce a non-negative money amount to a 2-decimal Decimal."""
    if value is None or (isinstance(value, str) and not value.strip()):
        if default is None:
            raise ValidationError(f"{field} is required")
        return default
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        amount = quantize_money(value)
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number")
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative", {"field": field})
    if amount > MAX_MONEY:
        raise ValidationError(f"{field} exceeds maximum allowed ({MAX_MONEY})")
    return amount


def to_choice(value: Any, field: str, choices: Iterable[str], *, default: str | None = None) -> str:
    if value is None and default is not None:
        return default
    choices = tuple(choices)
    if value not in choices:
        raise ValidationError(
            f"Invalid {field}. Must be one of: {', '.join(choices)}",
            {"field": field, "allowed": list(choices)},
        )
    return value


def to_datetime(value: Any, field: str) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"Invalid {field} format")
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"Invalid {field} format")


def optional_str(value: Any, field: str, *, max_length: int = 255) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    value = value.strip()
    if len(value) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return value or None


def clamp_pagination(limit: int | None, offset: int | None) -> tuple[int, int]:
    limit = DEFAULT_LIMIT if limit is None else limit
    offset = 0 if offset is None else offset
    if limit < 1:
        limit = 1
    if limit > MAX_LIMIT:
        limit = MAX_LIMIT
    if offset < 0:
        offset = 0
    return limit, offset


def parse_sort(value: str | None, allowed: Iterable[str], default: str = "-created_at") -> tuple[str, bool]:
    """
    Parse a sort key like "-created_at" into (column, descending).

    Only columns in `allowed` may be sorted on.
    """
    raw = (value or default).strip()
    descending = raw.startswith("-")
    column = raw.lstrip("-+")
    if column not in set(allowed):
        raise ValidationError(f"Cannot sort by {column}", {"allowed": sorted(allowed)})
    return column, descending
