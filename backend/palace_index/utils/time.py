"""Time helpers."""

from __future__ import annotations

import math
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(tz=timezone.utc)


def isoformat(value: datetime) -> str:
    """RFC 3339 timestamp with second precision."""
    return value.astimezone(timezone.utc).replace(microsecond=0).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_isoformat(value: str) -> datetime:
    return datetime.strptime(value, "%Y-%m-%dT%H:%M:%SZ").replace(tzinfo=timezone.utc)


def normalize_mtime(st_mtime: float) -> int:
    """Truncate a modification time to whole seconds."""
    return math.floor(st_mtime)
