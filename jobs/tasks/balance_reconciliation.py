"""
Balance reconciliation task.

Periodic report-only audit; repairs go through
scripts/reconcile_balances.py --fix or an explicit repair=True message.
"""

import asyncio

import dramatiq
from loguru import logger

from app.services.reconciliation.balance_auditor import BalanceAuditor
from app.services.reconciliation.drift_report import AuditSummary
from app.utils.exceptions import LedgerUnavailableError
from jobs.broker import broker  # noqa: F401
from jobs.utils import run_exclusive, task_session_maker


@dramatiq.actor(max_retries=1, time_limit=3_600_000)  # 1 hour
def reconcile_balances(repair: bool = False) -> None:
    """
    Audit every wallet balance.

    Args:
        repair: Apply repairs instead of only reporting
    """
    logger.info(f"Starting balance reconciliation (repair={repair})...")

    try:
        summary = asyncio.run(
            run_exclusive(
                "balance_reconciliation",
                lambda: _reconcile_async(repair),
                timeout=3600,
            )
        )
    except LedgerUnavailableError as e:
        logger.critical(f"Balance reconciliation aborted, ledger unavailable: {e}")
        raise

    if summary is None:
        return

    for report in summary.reports:
        logger.warning(
            f"Drift {report.wallet_address}: stored {report.actual}, "
            f"expected {report.expected}, action {report.action}"
            f"{' (repaired)' if report.repaired else ''}"
        )
    logger.info(
        f"Balance reconciliation complete: {summary.audited} audited, "
        f"{summary.drifted} drifted, {summary.repaired} repaired"
    )


async def _reconcile_async(repair: bool) -> AuditSummary:
    async with task_session_maker() as session:
        return await BalanceAuditor(session).audit_all(repair=repair)
