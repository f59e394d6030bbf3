"""
Integration tests for the multi-level referral distributor.

Tests cover:
- Level amounts and depth bound
- Idempotency per (wallet, source, level)
- Cycle and invalid referrer halts
- Purchase rate table
"""

from decimal import Decimal

import pytest

from app.models.enums import RewardSource
from app.services.referral.referral_reward_processor import (
    STOP_BELOW_MINIMUM,
    STOP_CHAIN_END,
    STOP_CYCLE,
    STOP_INVALID_REFERRER,
    ReferralRewardProcessor,
)


EXPECTED_LEVEL_AMOUNTS = [
    Decimal("30"), Decimal("10"), Decimal("5"),
    Decimal("1"), Decimal("1"), Decimal("1"), Decimal("1"), Decimal("1"),
]


class TestMaturityRewards:
    """Test the 8-level maturity distribution."""

    @pytest.mark.asyncio
    async def test_full_chain_pays_each_level(self, session, ledger, wallet):
        wallets = [wallet(n) for n in range(1, 10)]
        await ledger.chain(wallets)

        processor = ReferralRewardProcessor(session)
        result = await processor.process_rewards(wallets[0], 1, Decimal("100"))

        assert result.success
        assert result.rewards_count == 8
        assert result.total_rewards == Decimal("50")
        assert [r.amount for r in result.rewards] == EXPECTED_LEVEL_AMOUNTS

        rows = await ledger.reward_rows(source_id=1)
        assert [row.wallet_address for row in rows] == wallets[1:]
        assert [row.reward_amount for row in rows] == EXPECTED_LEVEL_AMOUNTS
        for upline, amount in zip(wallets[1:], EXPECTED_LEVEL_AMOUNTS):
            assert await ledger.get_balance(upline) == amount

    @pytest.mark.asyncio
    async def test_second_run_pays_nothing(self, session, ledger, wallet):
        wallets = [wallet(n) for n in range(1, 10)]
        await ledger.chain(wallets)
        processor = ReferralRewardProcessor(session)

        await processor.process_rewards(wallets[0], 1, Decimal("100"))
        again = await processor.process_rewards(wallets[0], 1, Decimal("100"))

        assert again.success
        assert again.rewards_count == 0
        assert again.already_paid_count == 8
        assert again.total_rewards == Decimal("0")
        assert len(await ledger.reward_rows(source_id=1)) == 8
        assert await ledger.get_balance(wallets[1]) == Decimal("30")

    @pytest.mark.asyncio
    async def test_other_source_pays_again(self, session, ledger, wallet):
        await ledger.chain([wallet(1), wallet(2)])
        processor = ReferralRewardProcessor(session)

        await processor.process_rewards(wallet(1), 1, Decimal("100"))
        await processor.process_rewards(wallet(1), 2, Decimal("100"))

        assert await ledger.get_balance(wallet(2)) == Decimal("60")

    @pytest.mark.asyncio
    async def test_long_chain_stops_at_depth(self, session, ledger, wallet):
        wallets = [wallet(n) for n in range(1, 21)]
        await ledger.chain(wallets)

        result = await ReferralRewardProcessor(session).process_rewards(
            wallets[0], 7, Decimal("100")
        )

        assert result.rewards_count == 8
        assert result.stop_reason is None
        assert result.total_rewards <= Decimal("100") * Decimal("0.50")
        assert await ledger.get_balance(wallets[9]) is None

    @pytest.mark.asyncio
    async def test_fractional_base_stays_within_cap(self, session, ledger, wallet):
        wallets = [wallet(n) for n in range(1, 10)]
        await ledger.chain(wallets)
        base = Decimal("1.0195")

        result = await ReferralRewardProcessor(session).process_rewards(
            wallets[0], 1, base
        )

        assert [r.amount for r in result.rewards] == [
            Decimal("0.3058"), Decimal("0.1019"), Decimal("0.0509"),
        ] + [Decimal("0.0101")] * 5
        assert result.total_rewards == Decimal("0.5091")
        assert result.total_rewards <= base * Decimal("0.50")

    @pytest.mark.asyncio
    async def test_short_chain_ends(self, session, ledger, wallet):
        await ledger.chain([wallet(1), wallet(2), wallet(3)])

        result = await ReferralRewardProcessor(session).process_rewards(
            wallet(1), 1, Decimal("100")
        )

        assert result.rewards_count == 2
        assert result.total_rewards == Decimal("40")
        assert result.stop_reason == STOP_CHAIN_END

    @pytest.mark.asyncio
    async def test_no_referrer(self, session, wallet):
        result = await ReferralRewardProcessor(session).process_rewards(
            wallet(1), 1, Decimal("100")
        )

        assert result.success
        assert result.rewards_count == 0
        assert result.stop_reason == STOP_CHAIN_END

    @pytest.mark.asyncio
    async def test_single_reward_is_capped(self, session, ledger, wallet):
        await ledger.chain([wallet(1), wallet(2), wallet(3)])

        result = await ReferralRewardProcessor(session).process_rewards(
            wallet(1), 1, Decimal("10000")
        )

        assert [r.amount for r in result.rewards] == [Decimal("500"), Decimal("500")]


class TestChainGuards:
    """Test halts on malformed graphs."""

    @pytest.mark.asyncio
    async def test_cycle_stops_walk(self, session, ledger, wallet):
        a, b, c = wallet(1), wallet(2), wallet(3)
        await ledger.chain([a, b, c, a])

        result = await ReferralRewardProcessor(session).process_rewards(
            a, 1, Decimal("100")
        )

        assert result.stop_reason == STOP_CYCLE
        assert [r.wallet_address for r in result.rewards] == [b, c]
        assert await ledger.get_balance(a) is None

    @pytest.mark.asyncio
    async def test_invalid_referrer_halts(self, session, ledger, wallet):
        await ledger.referral(wallet(1), wallet(2))
        await ledger.referral(wallet(2), "not-a-wallet")

        result = await ReferralRewardProcessor(session).process_rewards(
            wallet(1), 1, Decimal("100")
        )

        assert result.stop_reason == STOP_INVALID_REFERRER
        assert result.rewards_count == 1
        assert len(await ledger.reward_rows()) == 1

    @pytest.mark.asyncio
    async def test_mixed_case_referrer_is_normalized(
        self, session, ledger, wallet, sample_wallet_address
    ):
        await ledger.referral(wallet(1), sample_wallet_address)

        await ReferralRewardProcessor(session).process_rewards(wallet(1), 1, Decimal("100"))

        assert await ledger.get_balance(sample_wallet_address.lower()) == Decimal("30")

    @pytest.mark.asyncio
    async def test_base_below_minimum(self, session, ledger, wallet):
        await ledger.chain([wallet(1), wallet(2)])

        result = await ReferralRewardProcessor(session).process_rewards(
            wallet(1), 1, Decimal("0.001")
        )

        assert result.stop_reason == STOP_BELOW_MINIMUM
        assert await ledger.reward_rows() == []


class TestPurchaseRewards:
    """Test the purchase rate table."""

    @pytest.mark.asyncio
    async def test_three_levels(self, session, ledger, wallet):
        wallets = [wallet(n) for n in range(1, 6)]
        await ledger.chain(wallets)

        result = await ReferralRewardProcessor(session).process_rewards(
            wallets[0], 1, Decimal("1000"), source_type=RewardSource.PURCHASE
        )

        assert [r.amount for r in result.rewards] == [
            Decimal("50"), Decimal("30"), Decimal("20"),
        ]
        rows = await ledger.reward_rows(source_id=1)
        assert {row.source_type for row in rows} == {RewardSource.PURCHASE.value}
        assert await ledger.get_balance(wallets[4]) is None

    @pytest.mark.asyncio
    async def test_same_id_different_source_is_separate(self, session, ledger, wallet):
        await ledger.chain([wallet(1), wallet(2)])
        processor = ReferralRewardProcessor(session)

        await processor.process_rewards(wallet(1), 1, Decimal("100"))
        result = await processor.process_rewards(
            wallet(1), 1, Decimal("100"), source_type=RewardSource.PURCHASE
        )

        assert result.rewards_count == 1
        assert await ledger.get_balance(wallet(2)) == Decimal("35")

    @pytest.mark.asyncio
    async def test_injected_rate_table(self, session, ledger, wallet):
        await ledger.chain([wallet(1), wallet(2), wallet(3)])
        processor = ReferralRewardProcessor(
            session, rate_tables={RewardSource.MATURITY: {1: Decimal("0.25")}}
        )

        result = await processor.process_rewards(wallet(1), 1, Decimal("100"))

        assert result.total_rewards == Decimal("25")
        assert await ledger.get_balance(wallet(3)) is None

    @pytest.mark.asyncio
    async def test_injected_table_deeper_than_eight_rejected(self, session):
        deep = {level: Decimal("0.01") for level in range(1, 21)}

        with pytest.raises(ValueError, match="max 8"):
            ReferralRewardProcessor(session, rate_tables={RewardSource.MATURITY: deep})

    @pytest.mark.asyncio
    async def test_injected_table_over_cap_rejected(self, session):
        greedy = {1: Decimal("0.40"), 2: Decimal("0.20")}

        with pytest.raises(ValueError, match="above cap"):
            ReferralRewardProcessor(session, rate_tables={RewardSource.MATURITY: greedy})
