"""UTC datetime utilities."""

from datetime import datetime, timezone

from src.cl_common.errors import InvalidArgumentError


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def parse_iso_utc(value: str, field: str = "timestamp") -> datetime:
    """Parse a round-trip ISO-8601 string into an aware UTC datetime.

    Accepts a trailing 'Z'. Naive values are taken as UTC.
    """
    if not value or not value.strip():
        raise InvalidArgumentError(f"{field} is required")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise InvalidArgumentError(f"{field} is not ISO-8601: {value!r}") from exc
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
