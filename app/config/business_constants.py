"""
Business logic constants for the robot ledger.

Central location for reward safety limits and ledger record types.
This module has no database imports and can be used by any layer.
"""

from decimal import Decimal

from app.config.robot_products import ProductType


# Downline depth for team volume and member aggregation
TEAM_DEPTH = 8

# Hard ceiling on the sum of all levels of any referral rate table
REFERRAL_RATE_CAP = Decimal("0.50")

# Reward safety limits
MAX_SINGLE_REWARD = Decimal("500")
MIN_REWARD_BASE = Decimal("0.01")

# Products whose purchase pays the upline immediately
PURCHASE_REWARD_PRODUCTS = frozenset({ProductType.DEX})

# Transaction history types
TX_TYPE_MATURITY_REFUND = "refund"
TX_TYPE_ROBOT_PURCHASE = "robot_purchase"
TX_TYPE_CANCEL_REFUND = "robot_cancel_refund"
