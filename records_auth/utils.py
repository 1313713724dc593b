"""
Utility functions for the security core.
"""

import uuid
from datetime import datetime, timezone
from typing import Union


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def generate_id(prefix: str) -> str:
    """
    Generate a unique record id.

    Args:
        prefix: Record family, e.g. "perm" or "audit"

    Returns:
        An id of the form ``<prefix>_<uuid4 hex>``
    """
    return f"{prefix}_{uuid.uuid4().hex}"


def normalize_principal(principal: str) -> str:
    """Principals are compared case-insensitively (wallet addresses vary in case)."""
    return principal.lower()


def same_principal(a: str, b: str) -> bool:
    return normalize_principal(a) == normalize_principal(b)


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat()


def coerce_timestamp(value: Union[str, int, float]) -> datetime:
    """
    Parse a persisted timestamp.

    ISO-8601 strings are the current format; numbers are epoch
    milliseconds as written by older clients. Naive values are taken as UTC.

    Raises:
        TypeError: for unsupported types
        ValueError: for unparseable strings
    """
    if isinstance(value, bool):
        raise TypeError("timestamp cannot be a boolean")
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if isinstance(value, str):
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    raise TypeError(f"unsupported timestamp type: {type(value).__name__}")
