"""
Unit tests for business-day helpers.

The business day follows Asia/Shanghai (UTC+8), so 16:00 UTC is
local midnight.
"""

from datetime import UTC, date, datetime, timedelta, timezone

from app.utils.datetime_utils import (
    business_date,
    business_now,
    ensure_utc,
    first_of_month,
    is_daily_window,
    is_monthly_window,
)


TZ = "Asia/Shanghai"


class TestBusinessDate:
    """Test date rollover in the business timezone."""

    def test_before_local_midnight(self):
        assert business_date(TZ, datetime(2026, 10, 16, 15, 59, tzinfo=UTC)) == date(2026, 10, 16)

    def test_after_local_midnight(self):
        assert business_date(TZ, datetime(2026, 10, 16, 16, 30, tzinfo=UTC)) == date(2026, 10, 17)

    def test_naive_reference_is_utc(self):
        local = business_now(TZ, datetime(2026, 10, 16, 4, 0))

        assert local.hour == 12
        assert local.utcoffset() == timedelta(hours=8)

    def test_first_of_month(self):
        assert first_of_month(date(2026, 10, 16)) == date(2026, 10, 1)


class TestWindows:
    """Test dividend windows."""

    def test_daily_window(self):
        now = datetime(2026, 10, 16, 16, 30, tzinfo=UTC)

        assert is_daily_window(TZ, 0, now)
        assert not is_daily_window(TZ, 1, now)

    def test_monthly_window_on_first_day(self):
        now = datetime(2026, 10, 31, 16, 5, tzinfo=UTC)

        assert is_monthly_window(TZ, 1, 0, now)

    def test_monthly_window_other_day(self):
        now = datetime(2026, 10, 16, 16, 5, tzinfo=UTC)

        assert not is_monthly_window(TZ, 1, 0, now)


class TestEnsureUtc:
    """Test timezone normalisation."""

    def test_none(self):
        assert ensure_utc(None) is None

    def test_naive_gets_utc(self):
        assert ensure_utc(datetime(2026, 1, 1, 8, 0)).tzinfo is UTC

    def test_aware_is_converted(self):
        value = datetime(2026, 1, 1, 8, 0, tzinfo=timezone(timedelta(hours=8)))

        assert ensure_utc(value) == datetime(2026, 1, 1, 0, 0, tzinfo=UTC)
