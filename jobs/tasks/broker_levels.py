"""
Broker level task.

Recomputes the broker level of every wallet with direct referrals.
Runs hourly.
"""

import asyncio

import dramatiq
from loguru import logger

from app.services.broker.broker_level_service import BrokerLevelService, LevelRunResult
from app.utils.exceptions import LedgerUnavailableError
from jobs.broker import broker  # noqa: F401
from jobs.utils import run_exclusive, task_session_maker


@dramatiq.actor(max_retries=3, time_limit=1_800_000)  # 30 min
def calculate_broker_levels() -> None:
    """Recompute all broker levels."""
    logger.info("Starting broker level calculation...")

    try:
        result = asyncio.run(run_exclusive("broker_levels", _calculate_levels_async))
    except LedgerUnavailableError as e:
        logger.critical(f"Broker level calculation aborted, ledger unavailable: {e}")
        raise

    if result is not None:
        logger.info(
            f"Broker levels complete: {result.processed} processed, "
            f"{result.changed} changed, {result.failed} failed"
        )


async def _calculate_levels_async() -> LevelRunResult:
    async with task_session_maker() as session:
        return await BrokerLevelService(session).calculate_all_levels()
