"""
Services.

Business logic layer. Domain services live in subpackages:
- robot: position lifecycle and purchases
- referral: referral graph and reward distribution
- broker: broker levels and team dividends
- reconciliation: balance auditing
"""

from app.services.base_service import (
    BaseService,
    log_operation,
    transaction,
)


__all__ = [
    "BaseService",
    "log_operation",
    "transaction",
]
