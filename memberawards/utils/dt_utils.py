# File: utils/dt_utils.py
"""Date and time utilities for memberawards.

Uses standard library datetime/zoneinfo plus dateutil for calendar-month
arithmetic.

Functions:
    - dt_now_utc: Current timezone-aware UTC datetime
    - dt_now_iso: Current UTC datetime as ISO string
    - as_utc: Convert (or stamp) a datetime to UTC
    - dt_parse: Normalize string/date/datetime input to an aware datetime
    - dt_months_between: Whole calendar months between two instants
"""

from __future__ import annotations

from datetime import UTC, date, datetime
import logging

from dateutil.relativedelta import relativedelta

_LOGGER = logging.getLogger(__name__)


# ==============================================================================
# Current Date/Time Functions
# ==============================================================================


def dt_now_utc() -> datetime:
    """Return the current datetime in UTC (timezone-aware)."""
    return datetime.now(UTC)


def dt_now_iso() -> str:
    """Return the current UTC datetime as an ISO 8601 string."""
    return dt_now_utc().isoformat()


# ==============================================================================
# Conversion / Parsing
# ==============================================================================


def as_utc(dt_obj: datetime) -> datetime:
    """Convert a datetime to UTC. Naive datetimes are assumed to be UTC."""
    if dt_obj.tzinfo is None:
        dt_obj = dt_obj.replace(tzinfo=UTC)
    return dt_obj.astimezone(UTC)


def dt_parse(dt_input: str | date | datetime | None) -> datetime | None:
    """Normalize string, date or datetime input to an aware UTC datetime.

    Accepts ISO 8601 datetimes ("2025-04-15T10:00:00+02:00"), bare dates
    ("2025-04-15") and the "Z" suffix written by the document database.

    Returns:
        Aware UTC datetime, or None if the input is empty or unparseable.

    Example:
        >>> dt_parse("2025-04-15")
        datetime.datetime(2025, 4, 15, 0, 0, tzinfo=datetime.timezone.utc)
    """
    if not dt_input:
        return None

    if isinstance(dt_input, datetime):
        return as_utc(dt_input)

    if isinstance(dt_input, date):
        return datetime.combine(dt_input, datetime.min.time(), tzinfo=UTC)

    if isinstance(dt_input, str):
        raw = dt_input.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            return as_utc(datetime.fromisoformat(raw))
        except ValueError:
            _LOGGER.warning("Unparseable datetime value: %s", dt_input)
            return None

    return None


# ==============================================================================
# Calendar Arithmetic
# ==============================================================================


def dt_months_between(start: datetime, end: datetime | None = None) -> int:
    """Return the number of whole calendar months from start to end.

    Used to derive membership duration from a join date. A start after end
    yields 0 (durations are never negative).

    Examples:
        2024-01-15 → 2024-03-14 gives 1
        2024-01-15 → 2024-03-15 gives 2
    """
    end_dt = as_utc(end) if end is not None else dt_now_utc()
    start_dt = as_utc(start)
    if start_dt >= end_dt:
        return 0
    delta = relativedelta(end_dt, start_dt)
    return delta.years * 12 + delta.months
