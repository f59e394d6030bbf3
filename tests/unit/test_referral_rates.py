"""Unit tests for referral rate tables."""

from decimal import Decimal

import pytest

from app.config.business_constants import MAX_SINGLE_REWARD, REFERRAL_RATE_CAP
from app.models.enums import RewardSource
from app.services.referral.config import (
    MATURITY_REFERRAL_RATES,
    PURCHASE_REFERRAL_RATES,
    REFERRAL_DEPTH,
    REFERRAL_RATES_BY_SOURCE,
    validate_rate_table,
)
from app.services.referral.referral_reward_processor import ReferralRewardProcessor


class TestRateTables:
    """Test the configured tables."""

    def test_maturity_table_has_eight_levels(self):
        assert REFERRAL_DEPTH == 8
        assert sorted(MATURITY_REFERRAL_RATES) == list(range(1, 9))

    def test_maturity_rates(self):
        assert MATURITY_REFERRAL_RATES[1] == Decimal("0.30")
        assert MATURITY_REFERRAL_RATES[2] == Decimal("0.10")
        assert MATURITY_REFERRAL_RATES[3] == Decimal("0.05")
        assert all(MATURITY_REFERRAL_RATES[level] == Decimal("0.01") for level in range(4, 9))

    def test_purchase_table_has_three_levels(self):
        assert PURCHASE_REFERRAL_RATES == {
            1: Decimal("0.05"),
            2: Decimal("0.03"),
            3: Decimal("0.02"),
        }

    @pytest.mark.parametrize("source", list(RewardSource))
    def test_every_table_within_cap(self, source):
        rates = REFERRAL_RATES_BY_SOURCE[source]
        assert sum(rates.values()) <= REFERRAL_RATE_CAP

    def test_maturity_table_uses_full_cap(self):
        assert sum(MATURITY_REFERRAL_RATES.values()) == Decimal("0.50")


class TestValidateRateTable:
    """Test table validation."""

    def test_valid_table(self):
        validate_rate_table({1: Decimal("0.2"), 2: Decimal("0.1")})

    def test_gap_rejected(self):
        with pytest.raises(ValueError, match="contiguous"):
            validate_rate_table({1: Decimal("0.1"), 3: Decimal("0.1")})

    def test_over_cap_rejected(self):
        with pytest.raises(ValueError, match="cap"):
            validate_rate_table({1: Decimal("0.4"), 2: Decimal("0.2")})

    def test_negative_rejected(self):
        with pytest.raises(ValueError, match="negative"):
            validate_rate_table({1: Decimal("-0.1")})

    def test_too_deep_rejected(self):
        table = {level: Decimal("0.01") for level in range(1, 10)}
        with pytest.raises(ValueError, match="max"):
            validate_rate_table(table)


class TestLevelRewardAmount:
    """Test per-level amount calculation."""

    def test_rounded_product(self):
        amount = ReferralRewardProcessor._calculate_level_reward(
            Decimal("123.45"), Decimal("0.30")
        )
        assert amount == Decimal("37.0350")

    def test_capped_at_max_single_reward(self):
        amount = ReferralRewardProcessor._calculate_level_reward(
            Decimal("100000"), Decimal("0.30")
        )
        assert amount == MAX_SINGLE_REWARD
