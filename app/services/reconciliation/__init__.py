"""Balance reconciliation."""

from app.services.reconciliation.balance_auditor import BalanceAuditor
from app.services.reconciliation.drift_report import (
    ACTION_OVERWRITE_BALANCE,
    ACTION_RECORD_SHORTFALL,
    ERROR_CHANGED_CONCURRENTLY,
    AuditSummary,
    BalanceBreakdown,
    DriftReport,
)


__all__ = [
    "BalanceAuditor",
    "BalanceBreakdown",
    "DriftReport",
    "AuditSummary",
    "ACTION_OVERWRITE_BALANCE",
    "ACTION_RECORD_SHORTFALL",
    "ERROR_CHANGED_CONCURRENTLY",
]
