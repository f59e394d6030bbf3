"""
Referral services package.

Contains modular services for referral processing:
- config: Rate tables per reward source (REFERRAL_DEPTH levels)
- graph: Referrer lookups and bounded downline traversal
- referral_reward_processor: Idempotent multi-level reward distribution
"""

from app.services.referral.config import (
    MATURITY_REFERRAL_RATES,
    PURCHASE_REFERRAL_RATES,
    REFERRAL_DEPTH,
    REFERRAL_RATES_BY_SOURCE,
)
from app.services.referral.graph import ReferralGraph, TeamAggregate
from app.services.referral.referral_reward_processor import (
    LevelReward,
    ProcessResult,
    ReferralRewardProcessor,
)


__all__ = [
    # Configuration
    "REFERRAL_DEPTH",
    "MATURITY_REFERRAL_RATES",
    "PURCHASE_REFERRAL_RATES",
    "REFERRAL_RATES_BY_SOURCE",
    # Graph
    "ReferralGraph",
    "TeamAggregate",
    # Reward processing
    "ReferralRewardProcessor",
    "ProcessResult",
    "LevelReward",
]
