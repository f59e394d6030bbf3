"""
Referral system configuration.

Contains the per-level rate tables for every reward source. Tables are
validated at import against REFERRAL_RATE_CAP.
"""

from decimal import Decimal

from app.config.business_constants import REFERRAL_RATE_CAP
from app.models.enums import RewardSource


# 8-level program on maturity profit: 30% / 10% / 5% / 1% x 5 (total 50%)
REFERRAL_DEPTH = 8
MATURITY_REFERRAL_RATES = {
    1: Decimal("0.30"),  # 30% for level 1 (direct referrer)
    2: Decimal("0.10"),
    3: Decimal("0.05"),
    4: Decimal("0.01"),
    5: Decimal("0.01"),
    6: Decimal("0.01"),
    7: Decimal("0.01"),
    8: Decimal("0.01"),
}

# 3-level program on DEX purchase price: 5% / 3% / 2%
PURCHASE_REFERRAL_RATES = {
    1: Decimal("0.05"),
    2: Decimal("0.03"),
    3: Decimal("0.02"),
}

REFERRAL_RATES_BY_SOURCE: dict[RewardSource, dict[int, Decimal]] = {
    RewardSource.MATURITY: MATURITY_REFERRAL_RATES,
    RewardSource.PURCHASE: PURCHASE_REFERRAL_RATES,
}


def validate_rate_table(
    rates: dict[int, Decimal],
    cap: Decimal = REFERRAL_RATE_CAP,
    max_depth: int = REFERRAL_DEPTH,
) -> None:
    """
    Check a referral rate table.

    Levels must be 1..N without gaps and N <= max_depth, every rate
    non-negative and the total not above cap.

    Args:
        rates: Level -> fractional rate
        cap: Maximum total rate
        max_depth: Maximum number of levels

    Raises:
        ValueError: If the table is malformed
    """
    if sorted(rates) != list(range(1, len(rates) + 1)):
        raise ValueError(f"Referral levels must be contiguous from 1: {sorted(rates)}")
    if len(rates) > max_depth:
        raise ValueError(f"Referral table has {len(rates)} levels, max {max_depth}")
    if any(rate < 0 for rate in rates.values()):
        raise ValueError("Referral rates must not be negative")
    total = sum(rates.values(), Decimal("0"))
    if total > cap:
        raise ValueError(f"Referral rates sum to {total}, above cap {cap}")


for _rates in REFERRAL_RATES_BY_SOURCE.values():
    validate_rate_table(_rates)
