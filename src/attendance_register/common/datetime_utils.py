from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date {value!r} (expected YYYY-MM-DD)")


def parse_session_date(value) -> datetime:
    """Normalize a client supplied date to midnight of that calendar day.

    Accepts `date`/`datetime` objects, `YYYY-MM-DD` and full ISO-8601 timestamps
    (a trailing `Z` is understood). Aware timestamps are converted to UTC first.
    """

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return datetime.combine(value, datetime.min.time())
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(f"Invalid date {value!r}")
    else:
        raise ValidationError("date is required")

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return datetime.combine(parsed.date(), datetime.min.time())


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Half-open range [start, end) covering one calendar day."""
    start = datetime.combine(day, datetime.min.time())
    return start, start + timedelta(days=1)


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (what pymongo hands back).

    Note: Wrapped so tests can patch/mock easier.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)
