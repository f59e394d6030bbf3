"""
Integration tests for broker level calculation.
"""

from decimal import Decimal

import pytest

from app.config.broker_levels import BrokerLevelConfig
from app.models.enums import PositionStatus
from app.services.broker.broker_level_service import BrokerLevelService


def make_level(level: int, **overrides) -> BrokerLevelConfig:
    values = {
        "level": level,
        "min_direct_referrals": 1,
        "direct_min_investment": Decimal("0"),
        "sub_broker_level": 0,
        "min_sub_brokers": 0,
        "min_team_volume": Decimal("0"),
        "min_team_members": 1,
        "daily_dividend": Decimal("1"),
        "monthly_dividend": Decimal("30"),
    }
    values.update(overrides)
    return BrokerLevelConfig(**values)


SMALL_TABLE = {
    1: make_level(
        1,
        min_direct_referrals=3,
        direct_min_investment=Decimal("100"),
        min_team_volume=Decimal("100"),
        min_team_members=3,
    ),
}


class TestCalculateWallet:
    """Test one wallet's level."""

    @pytest.mark.asyncio
    async def test_qualifies_for_level1(self, session, ledger, wallet):
        root = wallet(1)
        for n in range(2, 5):
            await ledger.referral(wallet(n), root)
            await ledger.position(wallet(n))

        service = BrokerLevelService(session, level_table=SMALL_TABLE)
        result = await service.calculate_wallet(root)
        await session.commit()

        assert result.new_level == 1
        assert result.changed
        stored = await ledger.stored_level(root)
        assert stored.level == 1
        assert stored.direct_count == 3
        assert stored.qualified_direct_count == 3
        assert stored.team_volume == Decimal("300")
        assert stored.team_members == 3

    @pytest.mark.asyncio
    async def test_cancelled_direct_does_not_qualify(self, session, ledger, wallet):
        root = wallet(1)
        for n in range(2, 5):
            await ledger.referral(wallet(n), root)
        await ledger.position(wallet(2))
        await ledger.position(wallet(3))
        await ledger.position(wallet(4), status=PositionStatus.CANCELLED)

        service = BrokerLevelService(session, level_table=SMALL_TABLE)
        result = await service.calculate_wallet(root)

        assert result.new_level == 0
        assert result.metrics.qualified_directs(Decimal("100")) == 2

    @pytest.mark.asyncio
    async def test_volume_at_threshold_does_not_qualify(self, session, ledger, wallet):
        root = wallet(1)
        for n in range(2, 5):
            await ledger.referral(wallet(n), root)
            await ledger.position(wallet(n))
        table = {1: SMALL_TABLE[1]._replace(min_team_volume=Decimal("300"))}

        result = await BrokerLevelService(session, level_table=table).calculate_wallet(root)

        assert result.new_level == 0

    @pytest.mark.asyncio
    async def test_default_table_level0(self, session, ledger, wallet):
        await ledger.referral(wallet(2), wallet(1))

        result = await BrokerLevelService(session).calculate_wallet(wallet(1))

        assert result.new_level == 0
        assert not result.changed


class TestCalculateAllLevels:
    """Test the full pass."""

    @pytest.mark.asyncio
    async def test_pass_counts(self, session, ledger, wallet):
        root = wallet(1)
        for n in range(2, 5):
            await ledger.referral(wallet(n), root)
            await ledger.position(wallet(n))

        result = await BrokerLevelService(session, level_table=SMALL_TABLE).calculate_all_levels()

        assert result.processed == 1
        assert result.changed == 1
        assert result.level_counts == {1: 1}

    @pytest.mark.asyncio
    async def test_promotion_reaches_upline_on_next_pass(self, session, ledger, wallet):
        top, mid, leaf = wallet(1), wallet(2), wallet(3)
        await ledger.chain([leaf, mid, top])
        await ledger.position(leaf)
        table = {
            1: make_level(1, direct_min_investment=Decimal("100")),
            2: make_level(2, sub_broker_level=1, min_sub_brokers=1, min_team_members=2),
        }
        service = BrokerLevelService(session, level_table=table)

        await service.calculate_all_levels()
        assert (await ledger.stored_level(top)).level == 0
        assert (await ledger.stored_level(mid)).level == 1

        await service.calculate_all_levels()
        assert (await ledger.stored_level(top)).level == 2

    @pytest.mark.asyncio
    async def test_cycle_terminates(self, session, ledger, wallet):
        a, b, c = wallet(1), wallet(2), wallet(3)
        await ledger.referral(b, a)
        await ledger.referral(c, b)
        await ledger.referral(a, c)
        for member in (a, b, c):
            await ledger.position(member)

        result = await BrokerLevelService(session).calculate_all_levels()

        assert result.processed == 3
        assert (await ledger.stored_level(a)).team_members == 2

    @pytest.mark.asyncio
    async def test_invalid_referrer_counted_as_failure(self, session, ledger, wallet):
        await ledger.referral(wallet(2), "not-a-wallet")
        await ledger.referral(wallet(3), wallet(1))

        result = await BrokerLevelService(session).calculate_all_levels()

        assert result.failed == 1
        assert result.processed == 1

    @pytest.mark.asyncio
    async def test_demotion_overwrites(self, session, ledger, wallet):
        await ledger.broker_level(wallet(1), 2)
        await ledger.referral(wallet(2), wallet(1))

        result = await BrokerLevelService(session).calculate_all_levels()

        assert result.changed == 1
        assert (await ledger.stored_level(wallet(1))).level == 0
