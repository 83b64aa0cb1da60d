from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional


# Timestamps are stored as naive UTC; the API speaks ISO-8601 with a trailing "Z".


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def utc_timestamp() -> datetime:
    """Row timestamp: naive UTC truncated to whole seconds, the precision the API reports."""
    return utcnow().replace(microsecond=0)


def today() -> date:
    """Business date for intake records (UTC)."""
    return utcnow().date()


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Report bound from a query string, as naive UTC.

    "2026-01-31" means midnight; offsets and "Z" are folded into UTC;
    a value with no offset is taken as UTC already. Blank -> None.
    """
    if value is None or not value.strip():
        return None
    text = value.strip()
    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_iso_date(value) -> Optional[date]:
    """Intake date from a date, a datetime or "YYYY-MM-DD"; blank -> None."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    return date.fromisoformat(text[:10])


def to_utc_z(moment: Optional[datetime]) -> Optional[str]:
    if moment is None:
        return None
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment.replace(microsecond=0).isoformat() + "Z"


def to_iso_date(d: Optional[date]) -> Optional[str]:
    return d.isoformat() if d is not None else None
