"""RFC 3339 timestamp helpers for image configs."""

import re
from datetime import datetime, timezone

# Configs may carry nanoseconds, datetime keeps microseconds
_FRACTION = re.compile(r"\.(\d+)")


def parse_timestamp(value: str) -> datetime:
    """Parse an image config ``created`` value into an aware UTC datetime.

    Raises:
        ValueError: If the value is not an RFC 3339 timestamp
    """
    if not isinstance(value, str) or not value:
        raise ValueError(f"Invalid timestamp: {value!r}")

    normalized = value.strip().replace("Z", "+00:00").replace("z", "+00:00")
    normalized = _FRACTION.sub(
        lambda m: "." + m.group(1)[:6].ljust(6, "0"), normalized, count=1
    )

    parsed = datetime.fromisoformat(normalized)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Format a datetime the way image configs store ``created``."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def utc_now() -> datetime:
    """Current time in UTC."""
    return datetime.now(timezone.utc)
