"""
Standard type definitions for database models.

Provides consistent types for monetary and rate fields across all models.
"""

from sqlalchemy import DECIMAL, String

# Standard money type for amounts, balances, rewards
# Precision: 18 digits total, 8 after decimal point
# Range: up to 9,999,999,999.99999999
MoneyType = DECIMAL(18, 8)

# Referral rate stored with each reward (0.3000 = 30%)
RateType = DECIMAL(10, 4)

# Wallet addresses are stored lower-cased, 0x + 40 hex chars
WalletType = String(42)
