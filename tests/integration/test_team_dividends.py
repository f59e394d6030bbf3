"""
Integration tests for daily and monthly team dividends.
"""

from datetime import date
from decimal import Decimal

import pytest

from app.config.broker_levels import BROKER_LEVELS
from app.models.enums import DividendType
from app.services.broker.dividend_service import DividendService


TODAY = date(2026, 10, 16)


class TestDailyDividends:
    """Test the daily pass."""

    @pytest.mark.asyncio
    async def test_pays_level_amount_once(self, session, ledger, wallet):
        await ledger.broker_level(wallet(1), 2)
        service = DividendService(session, timezone="Asia/Shanghai")

        first = await service.distribute_daily(TODAY)
        second = await service.distribute_daily(TODAY)

        assert first.distributed == 1
        assert first.total_amount == Decimal("5")
        assert second.distributed == 0
        assert second.skipped == 1
        assert await ledger.get_balance(wallet(1)) == Decimal("5")

        rows = await ledger.dividend_rows()
        assert len(rows) == 1
        assert rows[0].dividend_type == DividendType.DAILY.value
        assert rows[0].dividend_date == TODAY

    @pytest.mark.asyncio
    async def test_next_day_pays_again(self, session, ledger, wallet):
        await ledger.broker_level(wallet(1), 1)
        service = DividendService(session)

        await service.distribute_daily(TODAY)
        await service.distribute_daily(date(2026, 10, 17))

        assert await ledger.get_balance(wallet(1)) == Decimal("4")

    @pytest.mark.asyncio
    async def test_level0_gets_nothing(self, session, ledger, wallet):
        await ledger.broker_level(wallet(1), 0)

        result = await DividendService(session).distribute_daily(TODAY)

        assert result.distributed == 0
        assert await ledger.dividend_rows() == []

    @pytest.mark.asyncio
    async def test_unknown_level_fails_alone(self, session, ledger, wallet):
        await ledger.broker_level(wallet(1), 9)
        await ledger.broker_level(wallet(2), 1)

        result = await DividendService(session).distribute_daily(TODAY)

        assert result.failed == 1
        assert result.distributed == 1
        assert await ledger.get_balance(wallet(2)) == Decimal("2")

    @pytest.mark.asyncio
    async def test_zero_amount_level_skipped(self, session, ledger, wallet):
        await ledger.broker_level(wallet(1), 1)
        table = {1: BROKER_LEVELS[1]._replace(daily_dividend=Decimal("0"))}

        result = await DividendService(session, level_table=table).distribute_daily(TODAY)

        assert result.distributed == 0
        assert await ledger.dividend_rows() == []


class TestMonthlyDividends:
    """Test the monthly pass."""

    @pytest.mark.asyncio
    async def test_keyed_on_first_of_month(self, session, ledger, wallet):
        await ledger.broker_level(wallet(1), 2)
        service = DividendService(session)

        result = await service.distribute_monthly(TODAY)
        again = await service.distribute_monthly(date(2026, 10, 28))

        assert result.period == date(2026, 10, 1)
        assert result.total_amount == Decimal("150")
        assert again.skipped == 1
        assert await ledger.get_balance(wallet(1)) == Decimal("150")

    @pytest.mark.asyncio
    async def test_daily_and_monthly_are_separate(self, session, ledger, wallet):
        await ledger.broker_level(wallet(1), 1)
        service = DividendService(session)

        await service.distribute_daily(date(2026, 10, 1))
        await service.distribute_monthly(date(2026, 10, 1))

        assert await ledger.get_balance(wallet(1)) == Decimal("62")
        assert len(await ledger.dividend_rows()) == 2
