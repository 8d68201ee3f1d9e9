# -*- coding: utf-8 -*-
"""UTC timestamp helpers shared by the request models."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def to_utc_iso(value: datetime) -> str:
    """`2024-03-05T10:00:00.000000Z`, the form every stored timestamp uses."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")


def normalize_timestamp(value: Optional[str]) -> Optional[str]:
    """Parse an ISO-8601 date or timestamp; naive values are taken as UTC.

    Raises ValueError on anything else, so pydantic validators can use it as is.
    """
    if value is None:
        return None
    text = value.strip()
    if not text:
        raise ValueError("empty timestamp")
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise ValueError(f"invalid ISO-8601 date or timestamp: {value!r}") from exc
    return to_utc_iso(parsed)
