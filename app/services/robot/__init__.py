"""
Robot position services.

- maturity_policy: Payout rules per product type
- lifecycle_service: Expiry, cancel, reactivate, quantify
- purchase_service: Opening positions
"""

from app.services.robot.lifecycle_service import (
    BatchCancelResult,
    CancelResult,
    ExpiryRunResult,
    ExpiryStats,
    PositionSnapshot,
    RobotLifecycleService,
)
from app.services.robot.maturity_policy import (
    MaturityPayout,
    calculate_cancel_refund,
    calculate_maturity_payout,
)
from app.services.robot.purchase_service import (
    PurchaseResult,
    RobotPurchaseService,
)


__all__ = [
    "RobotLifecycleService",
    "RobotPurchaseService",
    "PositionSnapshot",
    "ExpiryRunResult",
    "ExpiryStats",
    "CancelResult",
    "BatchCancelResult",
    "PurchaseResult",
    "MaturityPayout",
    "calculate_maturity_payout",
    "calculate_cancel_refund",
]
