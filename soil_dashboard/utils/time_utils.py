"""
Time helpers shared by ingestion, persistence, and display code.
"""

from __future__ import annotations

from datetime import date, datetime, timezone


def utcnow() -> datetime:
    """Return the current UTC datetime with timezone info.

    Prefer this over ``datetime.utcnow()`` (which returns naive datetimes).
    """
    return datetime.now(tz=timezone.utc)


def format_cell_value(value: object) -> str:
    """Render a spreadsheet cell value as a display string.

    Real dates become ISO dates (``datetime`` values at midnight drop their
    time part); ``None`` becomes ``""``; integral floats lose the trailing
    ``.0`` so report numbers typed as numbers read naturally.
    """
    if value is None:
        return ""
    if isinstance(value, datetime):
        if value.time() == datetime.min.time():
            return value.date().isoformat()
        return value.isoformat(sep=" ")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def age_hours(created_at: datetime, now: datetime | None = None) -> float:
    """Hours elapsed since ``created_at`` (naive datetimes are taken as UTC)."""
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    now = now or utcnow()
    return (now - created_at).total_seconds() / 3600.0
