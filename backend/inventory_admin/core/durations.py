import re
from datetime import datetime, timedelta, timezone

_EXPIRY_RE = re.compile(r"^(\d+)([smhd])$")

_UNITS = {
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
}


def parse_expiry(expiry: str) -> timedelta:
    """Turn a duration string like "15m" or "7d" into a timedelta."""
    match = _EXPIRY_RE.match((expiry or "").strip())
    if not match:
        raise ValueError(f"Invalid expiry format: {expiry!r}")
    value, unit = match.groups()
    return timedelta(**{_UNITS[unit]: int(value)})


def utcnow() -> datetime:
    # Columns are naive UTC.
    return datetime.now(timezone.utc).replace(tzinfo=None)


def expiry_from_now(expiry: str) -> datetime:
    return utcnow() + parse_expiry(expiry)
