"""
Datetime utilities.

Provides timezone-aware datetime functions and the business-day helpers
used by the dividend passes.
"""

from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    """
    Get current UTC datetime with timezone info.

    Returns:
        Current datetime in UTC with timezone awareness
    """
    return datetime.now(UTC)


def ensure_utc(value: datetime | None) -> datetime | None:
    """
    Attach UTC to naive datetimes read back from the store.

    Every timestamp is written in UTC; some drivers return it without
    tzinfo.

    Args:
        value: Datetime or None

    Returns:
        Timezone-aware datetime in UTC, or None
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def business_now(timezone: str, now: datetime | None = None) -> datetime:
    """
    Current time in the business timezone.

    Args:
        timezone: IANA zone name (e.g. "Asia/Shanghai")
        now: Reference UTC time (defaults to utc_now())

    Returns:
        Localised datetime
    """
    reference = ensure_utc(now) if now is not None else utc_now()
    return reference.astimezone(ZoneInfo(timezone))


def business_date(timezone: str, now: datetime | None = None) -> date:
    """Calendar date in the business timezone."""
    return business_now(timezone, now).date()


def first_of_month(day: date) -> date:
    """First day of the month containing day."""
    return day.replace(day=1)


def is_daily_window(timezone: str, hour: int, now: datetime | None = None) -> bool:
    """
    Check whether the daily dividend pass should run now.

    Args:
        timezone: Business timezone
        hour: Local hour the pass runs in
        now: Reference UTC time

    Returns:
        True during the configured local hour
    """
    return business_now(timezone, now).hour == hour


def is_monthly_window(
    timezone: str, day_of_month: int, hour: int, now: datetime | None = None
) -> bool:
    """Check whether the monthly dividend pass should run now."""
    local = business_now(timezone, now)
    return local.day == day_of_month and local.hour == hour
