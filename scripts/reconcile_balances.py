#!/usr/bin/env python3
"""
Reconcile wallet balances against the ledger.

Usage:
    python scripts/reconcile_balances.py                # report only
    python scripts/reconcile_balances.py --wallet 3f2a  # wallets ending in 3f2a
    python scripts/reconcile_balances.py --fix          # apply repairs
"""

import argparse
import asyncio
import sys
from pathlib import Path


# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.config.settings import settings
from app.services.reconciliation.balance_auditor import BalanceAuditor
from app.utils.exceptions import LedgerUnavailableError
from app.utils.money import format_money


# Configure logger for script
logger.remove()
logger.add(sys.stderr, level="INFO")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile wallet balances")
    parser.add_argument(
        "--wallet",
        dest="wallet_suffix",
        default=None,
        help="Only wallets ending with this suffix",
    )
    parser.add_argument(
        "--fix",
        action="store_true",
        help="Apply repairs (default: report only)",
    )
    parser.add_argument(
        "--include-promo",
        action="store_true",
        default=None,
        help="Count promo credits as income",
    )
    return parser.parse_args(argv)


async def reconcile(args: argparse.Namespace) -> int:
    mode = "REPAIR" if args.fix else "REPORT ONLY"
    logger.info(f"Starting balance reconciliation ({mode})...")

    engine = create_async_engine(
        settings.async_database_url,
        echo=settings.database_echo,
        poolclass=NullPool,
    )
    session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    try:
        async with session_maker() as session:
            auditor = BalanceAuditor(session, include_promo_credits=args.include_promo)
            summary = await auditor.audit_all(
                repair=args.fix, wallet_suffix=args.wallet_suffix
            )
    except LedgerUnavailableError as e:
        logger.critical(f"Ledger unavailable: {e}")
        return 2
    finally:
        await engine.dispose()

    for report in summary.reports:
        b = report.breakdown
        logger.info(f"\n--- {report.wallet_address} ---")
        logger.info(f"Stored:   {format_money(report.actual)}")
        logger.info(
            f"Expected: {format_money(report.expected)} "
            f"(drift {format_money(report.drift)})"
        )
        logger.info(
            f"  deposits {b.deposits} - withdrawals {b.withdrawals} "
            f"- purchases {b.purchases} + payouts {b.payouts}"
        )
        logger.info(
            f"  + referral {b.referral_rewards} + dividends {b.team_dividends} "
            f"+ manual {b.manual_adjustment}"
            f"{f' + promo {b.promo_credits}' if b.include_promo_credits else ''}"
        )
        if report.counter_fixes:
            logger.info(f"Counter fixes: {report.counter_fixes}")
        if report.action:
            status = "applied" if report.repaired else (report.error or "not applied")
            logger.warning(f"Action: {report.action} ({status})")

    for error in summary.errors:
        logger.error(error)

    logger.info(
        f"Audited {summary.audited} wallets: {summary.drifted} drifted "
        f"(total {format_money(summary.total_drift)}), {summary.repaired} repaired, "
        f"{summary.changed_concurrently} changed during audit, {summary.failed} failed"
    )
    return 1 if summary.failed else 0


if __name__ == "__main__":
    sys.exit(asyncio.run(reconcile(parse_args())))
