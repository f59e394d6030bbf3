"""
Broker level table.

Each level lists every requirement a wallet must meet and the fixed
dividends paid while it holds the level. Levels are checked from the
highest down; the first one fully satisfied wins.
"""

from decimal import Decimal
from typing import NamedTuple


class BrokerLevelConfig(NamedTuple):
    """Requirements and dividends of one broker level."""

    level: int
    min_direct_referrals: int  # Direct referrals that must qualify
    direct_min_investment: Decimal  # Committed capital per qualifying referral
    sub_broker_level: int  # Level the subordinate brokers must hold (0 = none)
    min_sub_brokers: int  # Direct referrals already at sub_broker_level or above
    min_team_volume: Decimal  # Team volume must exceed this
    min_team_members: int  # Distinct downline wallets
    daily_dividend: Decimal
    monthly_dividend: Decimal


BROKER_LEVELS: dict[int, BrokerLevelConfig] = {
    1: BrokerLevelConfig(
        level=1,
        min_direct_referrals=5,
        direct_min_investment=Decimal("20"),
        sub_broker_level=0,
        min_sub_brokers=0,
        min_team_volume=Decimal("1000"),
        min_team_members=5,
        daily_dividend=Decimal("2"),
        monthly_dividend=Decimal("60"),
    ),
    2: BrokerLevelConfig(
        level=2,
        min_direct_referrals=10,
        direct_min_investment=Decimal("100"),
        sub_broker_level=1,
        min_sub_brokers=2,
        min_team_volume=Decimal("5000"),
        min_team_members=20,
        daily_dividend=Decimal("5"),
        monthly_dividend=Decimal("150"),
    ),
    3: BrokerLevelConfig(
        level=3,
        min_direct_referrals=20,
        direct_min_investment=Decimal("100"),
        sub_broker_level=2,
        min_sub_brokers=2,
        min_team_volume=Decimal("20000"),
        min_team_members=60,
        daily_dividend=Decimal("15"),
        monthly_dividend=Decimal("450"),
    ),
    4: BrokerLevelConfig(
        level=4,
        min_direct_referrals=30,
        direct_min_investment=Decimal("100"),
        sub_broker_level=3,
        min_sub_brokers=2,
        min_team_volume=Decimal("80000"),
        min_team_members=150,
        daily_dividend=Decimal("50"),
        monthly_dividend=Decimal("1500"),
    ),
    5: BrokerLevelConfig(
        level=5,
        min_direct_referrals=50,
        direct_min_investment=Decimal("100"),
        sub_broker_level=4,
        min_sub_brokers=2,
        min_team_volume=Decimal("200000"),
        min_team_members=350,
        daily_dividend=Decimal("150"),
        monthly_dividend=Decimal("4500"),
    ),
}


def get_level_config(
    level: int, table: dict[int, BrokerLevelConfig] | None = None
) -> BrokerLevelConfig | None:
    """
    Get configuration of a level.

    Args:
        level: Level number (1..N)
        table: Level table (defaults to BROKER_LEVELS)

    Returns:
        Level config or None for level 0 / unknown levels
    """
    return (table or BROKER_LEVELS).get(level)


def validate_level_table(table: dict[int, BrokerLevelConfig]) -> None:
    """
    Check that a level table is contiguous and self-consistent.

    Raises:
        ValueError: If levels have gaps, keys disagree with the level
            field, or a subordinate requirement references a level that is
            not lower than the one being defined
    """
    if sorted(table) != list(range(1, len(table) + 1)):
        raise ValueError(f"Broker levels must be contiguous from 1: {sorted(table)}")
    for key, config in table.items():
        if config.level != key:
            raise ValueError(f"Level key {key} does not match config level {config.level}")
        if config.sub_broker_level >= key:
            raise ValueError(f"Level {key} requires subordinates at level {config.sub_broker_level}")
        if config.daily_dividend < 0 or config.monthly_dividend < 0:
            raise ValueError(f"Level {key} has a negative dividend")


validate_level_table(BROKER_LEVELS)
