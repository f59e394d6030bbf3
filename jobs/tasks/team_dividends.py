"""
Team dividend tasks.

Daily and monthly dividend passes. The scheduler only enqueues them
inside their wall-clock window; a pass that runs twice pays once.
"""

import asyncio

import dramatiq
from loguru import logger

from app.config.settings import settings
from app.services.broker.dividend_service import DividendRunResult, DividendService
from app.utils.exceptions import LedgerUnavailableError
from jobs.broker import broker  # noqa: F401
from jobs.utils import run_exclusive, task_session_maker


@dramatiq.actor(max_retries=3, time_limit=900_000)
def distribute_daily_dividends() -> None:
    """Pay today's daily team dividends."""
    _run_pass("daily")


@dramatiq.actor(max_retries=3, time_limit=900_000)
def distribute_monthly_dividends() -> None:
    """Pay this month's monthly team dividends."""
    _run_pass("monthly")


def _run_pass(kind: str) -> None:
    if settings.emergency_stop_dividends:
        logger.warning(f"{kind} dividends skipped: emergency stop is active")
        return

    logger.info(f"Starting {kind} dividend distribution...")

    try:
        result = asyncio.run(
            run_exclusive(f"team_dividends_{kind}", lambda: _distribute_async(kind))
        )
    except LedgerUnavailableError as e:
        logger.critical(f"{kind} dividends aborted, ledger unavailable: {e}")
        raise

    if result is not None:
        logger.info(
            f"{kind} dividends for {result.period} complete: "
            f"{result.distributed} paid, {result.skipped} already paid, "
            f"total {result.total_amount} USDT"
        )


async def _distribute_async(kind: str) -> DividendRunResult:
    async with task_session_maker() as session:
        service = DividendService(session)
        if kind == "monthly":
            return await service.distribute_monthly()
        return await service.distribute_daily()
