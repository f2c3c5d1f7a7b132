"""UTC clock and duration helpers shared by auth and metrics."""

import re
from datetime import datetime, timedelta, timezone

DURATION_PATTERN = re.compile(r'^(\d+)\s*([smhd])$', re.IGNORECASE)
DURATION_UNITS = {
    's': timedelta(seconds=1),
    'm': timedelta(minutes=1),
    'h': timedelta(hours=1),
    'd': timedelta(days=1),
}


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form every timestamp column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_duration(value: str | None, default: timedelta) -> timedelta:
    """Parse strings such as ``30s``, ``10m``, ``2h`` or ``1d``.

    Anything that does not match ``<integer><unit>`` falls back to ``default``;
    amounts too large for a timedelta become ``timedelta.max``.
    """
    if not value or not isinstance(value, str):
        return default

    match = DURATION_PATTERN.match(value.strip())
    if not match:
        return default

    amount, unit = match.groups()
    try:
        return int(amount) * DURATION_UNITS[unit.lower()]
    except (OverflowError, ValueError):
        return timedelta.max


def subtract_clamped(moment: datetime, delta: timedelta) -> datetime:
    """``moment - delta``, bottoming out at ``datetime.min`` instead of overflowing."""
    try:
        return moment - delta
    except OverflowError:
        return datetime.min
