"""
Model enumerations.

Values are stored as plain strings; the enums are the single source for
the allowed values.
"""

from enum import Enum


class PositionStatus(str, Enum):
    """Robot purchase lifecycle status."""

    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


# Statuses whose price counts as committed capital
COMMITTED_STATUSES = (PositionStatus.ACTIVE.value, PositionStatus.EXPIRED.value)


class RewardSource(str, Enum):
    """Event that produced a referral reward."""

    MATURITY = "maturity"
    PURCHASE = "purchase"


class DividendType(str, Enum):
    """Team dividend period."""

    DAILY = "daily"
    MONTHLY = "monthly"


class RecordStatus(str, Enum):
    """Status of deposit, withdrawal and history records."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
