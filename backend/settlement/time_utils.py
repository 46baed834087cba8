# Overview: Clock and timestamp helpers; all stored datetimes are UTC-naive.

from __future__ import annotations

from datetime import date, datetime, time, timezone


def utcnow() -> datetime:
    return datetime.utcnow()


def business_day_start(now: datetime | None = None) -> datetime:
    """Midnight opening the business day of `now` (default: current UTC time)."""
    return datetime.combine((now or utcnow()).date(), time.min)


def parse_iso_datetime(value: str | None) -> datetime | None:
    """
    Parse a history filter bound.

    Accepts a bare date ("2026-03-10", read as that day's midnight) or a full
    ISO-8601 datetime. Offsets and a trailing "Z" are folded into UTC; naive
    values are taken as UTC already. Blank input means no bound.

    Raises:
        ValueError: the value is not ISO-8601
    """
    raw = (value or "").strip()
    if not raw:
        return None

    if len(raw) == 10:
        return datetime.combine(date.fromisoformat(raw), time.min)

    parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def to_utc_z(value: datetime | None) -> str | None:
    """Render a stored timestamp as whole-second ISO-8601 with a "Z" suffix."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.replace(microsecond=0).isoformat() + "Z"
