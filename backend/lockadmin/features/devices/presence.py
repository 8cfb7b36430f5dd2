"""
Devices feature: online/offline inference.

A device counts as online when its most recent sign of life (a command
row or a health heartbeat, whichever is newer) is younger than the
threshold. This is a display label only; nothing else reacts to it.
"""

from datetime import datetime, timezone


def parse_timestamp(value: datetime | str | None) -> datetime | None:
    """Parse a PostgREST timestamp; naive values are taken as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def latest_timestamp(*values: datetime | str | None) -> datetime | None:
    """The newest of the given timestamps, ignoring missing/unparseable ones."""
    parsed = [p for p in (parse_timestamp(v) for v in values) if p is not None]
    return max(parsed) if parsed else None


def is_online(
    last_seen: datetime | None,
    threshold_seconds: float,
    now: datetime | None = None,
) -> bool:
    if last_seen is None:
        return False
    now = now or datetime.now(timezone.utc)
    return (now - last_seen).total_seconds() < threshold_seconds
