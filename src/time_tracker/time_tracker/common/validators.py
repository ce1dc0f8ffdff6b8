from __future__ import annotations

from ..core.constants import MAX_QUERY_LIMIT
from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is invalid")
    return value.strip()


def require_min_length(value: str, field_name: str, min_len: int) -> str:
    if value is None or len(value) < min_len:
        raise ValidationError(f"{field_name} must be at least {min_len} characters")
    return value


def require_limit(limit: int, *, maximum: int = MAX_QUERY_LIMIT) -> int:
    """Validate a page size; anything above ``maximum`` is capped."""
    try:
        value = int(limit)
    except (TypeError, ValueError):
        raise ValidationError("Limit must be an integer")
    if value < 1:
        raise ValidationError("Limit must be at least 1")
    return min(value, maximum)
