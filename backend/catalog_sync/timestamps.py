"""Timestamp parsing used by the staleness checks."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

METADATA_FLOOR = datetime(2024, 1, 1, 1, 0, 0, tzinfo=timezone.utc)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse ISO strings, epoch numbers (seconds or milliseconds) and datetimes.

    Naive values are taken as UTC. Unparseable input yields ``None``.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        seconds = value / 1000 if value > 1e11 else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def is_newer(candidate: Any, current: Any, *, floor: datetime | None = None) -> bool:
    """Return True when ``candidate`` is strictly later than ``current``.

    A missing ``current`` falls back to ``floor``; with no floor it counts as
    infinitely old. A candidate that cannot be parsed is never newer.
    """

    candidate_ts = parse_timestamp(candidate)
    if candidate_ts is None:
        return False
    current_ts = parse_timestamp(current)
    if current_ts is None:
        current_ts = floor
    if current_ts is None:
        return True
    return candidate_ts > current_ts
