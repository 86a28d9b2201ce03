from __future__ import annotations

import re
from typing import Any, Iterable

from ..core.constants import MAX_SEMESTER, MIN_SEMESTER
from ..core.exceptions import ValidationError

_TIME_LABEL = re.compile(
    r"^\s*(?P<h1>\d{1,2}):(?P<m1>\d{2})\s*(?P<p1>[AaPp][Mm])?"
    r"\s*(?:-\s*(?P<h2>\d{1,2}):(?P<m2>\d{2})\s*(?P<p2>[AaPp][Mm])?\s*)?$"
)


def require_non_empty(value: Any, field_name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def parse_semester(value: Any) -> int:
    """Accept `2`, `"2"` or the route form `"sem2"`."""
    if isinstance(value, bool):
        raise ValidationError("semester must be a number")
    if isinstance(value, int):
        semester = value
    else:
        text = str(value or "").strip().lower().replace("sem", "", 1)
        if not text.isdigit():
            raise ValidationError(f"Invalid semester {value!r}")
        semester = int(text)

    if not MIN_SEMESTER <= semester <= MAX_SEMESTER:
        raise ValidationError(f"semester must be between {MIN_SEMESTER} and {MAX_SEMESTER}")
    return semester


def require_count(value: Any, field_name: str) -> int:
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field_name} is required")
    try:
        count = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")
    if isinstance(value, float) and not value.is_integer():
        raise ValidationError(f"{field_name} must be an integer")
    if count < 0:
        raise ValidationError(f"{field_name} must not be negative")
    return count


def normalize_student_ids(values: Any) -> list[str]:
    """Return the ids as strings, duplicates removed, first occurrence kept."""
    if values is None or isinstance(values, (str, bytes)) or not isinstance(values, Iterable):
        raise ValidationError("studentsPresent must be an array")

    seen: set[str] = set()
    out: list[str] = []
    for raw in values:
        sid = require_non_empty(raw, "student id")
        if sid not in seen:
            seen.add(sid)
            out.append(sid)
    return out


def _to_minutes(hour: int, minute: int, period: str | None) -> int:
    if minute > 59:
        raise ValueError("minute")
    if period:
        if not 1 <= hour <= 12:
            raise ValueError("hour")
        hour = hour % 12 + (12 if period.upper() == "PM" else 0)
    elif hour > 23:
        raise ValueError("hour")
    return hour * 60 + minute


def parse_time_label(value: Any) -> tuple[str, int]:
    """Validate a period label and return it with the period start in minutes.

    Accepted: "10:00 AM - 11:00 AM", "9:30 AM", "14:00", "14:00-15:00".
    """

    label = require_non_empty(value, "time")
    match = _TIME_LABEL.match(label)
    if not match:
        raise ValidationError(f"Invalid time label {label!r}")

    try:
        start = _to_minutes(int(match["h1"]), int(match["m1"]), match["p1"])
        if match["h2"] is not None:
            _to_minutes(int(match["h2"]), int(match["m2"]), match["p2"])
    except ValueError:
        raise ValidationError(f"Invalid time label {label!r}")

    return " ".join(label.split()), start
