"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from app.models.base import Base
from app.models.broker_level import BrokerLevel
from app.models.enums import (
    COMMITTED_STATUSES,
    DividendType,
    PositionStatus,
    RecordStatus,
    RewardSource,
)

# Ledger inputs and history
from app.models.ledger_records import (
    DepositRecord,
    PromoCredit,
    TransactionHistory,
    WithdrawRecord,
)
from app.models.referral_reward import ReferralReward
from app.models.robot_purchase import RobotPurchase
from app.models.team_dividend import TeamDividend
from app.models.user_balance import UserBalance
from app.models.user_referral import UserReferral


__all__ = [
    "Base",
    # Enums
    "COMMITTED_STATUSES",
    "DividendType",
    "PositionStatus",
    "RecordStatus",
    "RewardSource",
    # Aggregates
    "UserBalance",
    "BrokerLevel",
    # Graph
    "UserReferral",
    # Positions
    "RobotPurchase",
    # Ledger events
    "DepositRecord",
    "WithdrawRecord",
    "ReferralReward",
    "TeamDividend",
    "PromoCredit",
    "TransactionHistory",
]
