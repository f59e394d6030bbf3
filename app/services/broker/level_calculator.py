"""
Broker level calculator.

Pure level derivation from aggregated team metrics. Levels are checked
from the highest down and the first one whose every requirement holds
is the wallet's level.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from app.config.broker_levels import BROKER_LEVELS, BrokerLevelConfig


@dataclass(frozen=True)
class BrokerMetrics:
    """Inputs of the level calculation for one wallet."""

    direct_investments: tuple[Decimal, ...] = ()
    team_volume: Decimal = Decimal("0")
    team_members: int = 0
    # Current broker level -> number of direct referrals holding it (level 0 excluded)
    subordinate_levels: dict[int, int] = field(default_factory=dict)

    @property
    def direct_count(self) -> int:
        """Number of direct referrals."""
        return len(self.direct_investments)

    def qualified_directs(self, min_investment: Decimal) -> int:
        """Direct referrals with at least min_investment committed."""
        return sum(1 for amount in self.direct_investments if amount >= min_investment)

    def sub_brokers_at_or_above(self, level: int) -> int:
        """Direct referrals currently at level or higher."""
        return sum(
            count for sub_level, count in self.subordinate_levels.items()
            if sub_level >= level
        )


@dataclass(frozen=True)
class LevelEvaluation:
    """Which requirements of a level a wallet meets."""

    level: int
    direct_ok: bool
    sub_brokers_ok: bool
    volume_ok: bool
    members_ok: bool

    @property
    def qualified(self) -> bool:
        """All requirements met."""
        return self.direct_ok and self.sub_brokers_ok and self.volume_ok and self.members_ok


def evaluate_level(metrics: BrokerMetrics, config: BrokerLevelConfig) -> LevelEvaluation:
    """
    Check every requirement of one level.

    Team volume must strictly exceed the threshold; the other
    requirements are minimums.

    Args:
        metrics: Aggregated wallet metrics
        config: Level requirements

    Returns:
        LevelEvaluation
    """
    direct_ok = (
        metrics.qualified_directs(config.direct_min_investment)
        >= config.min_direct_referrals
    )
    if config.min_sub_brokers > 0:
        sub_brokers_ok = (
            metrics.sub_brokers_at_or_above(config.sub_broker_level)
            >= config.min_sub_brokers
        )
    else:
        sub_brokers_ok = True

    return LevelEvaluation(
        level=config.level,
        direct_ok=direct_ok,
        sub_brokers_ok=sub_brokers_ok,
        volume_ok=metrics.team_volume > config.min_team_volume,
        members_ok=metrics.team_members >= config.min_team_members,
    )


def calculate_level(
    metrics: BrokerMetrics,
    table: dict[int, BrokerLevelConfig] | None = None,
) -> int:
    """
    Derive the broker level of a wallet.

    Args:
        metrics: Aggregated wallet metrics
        table: Level table (defaults to BROKER_LEVELS)

    Returns:
        Highest qualified level, 0 if none
    """
    table = table or BROKER_LEVELS
    for level in sorted(table, reverse=True):
        if evaluate_level(metrics, table[level]).qualified:
            return level
    return 0
