"""
Robot expiry task.

Matures every active position whose end time has passed: pays the
maturity refund and distributes referral rewards on it.
Runs hourly; positions that fail stay active for the next run.
"""

import asyncio

import dramatiq
from loguru import logger

from app.config.settings import settings
from app.services.robot.lifecycle_service import ExpiryRunResult, RobotLifecycleService
from app.utils.exceptions import LedgerUnavailableError
from jobs.broker import broker  # noqa: F401
from jobs.utils import run_exclusive, task_session_maker


@dramatiq.actor(max_retries=3, time_limit=900_000)  # 15 min
def process_robot_expiry(limit: int | None = None) -> None:
    """
    Process expired robot positions.

    Args:
        limit: Max positions this run (defaults to settings.expiry_batch_size)
    """
    if settings.emergency_stop_expiry:
        logger.warning("Robot expiry skipped: emergency stop is active")
        return

    logger.info("Starting robot expiry processing...")

    try:
        result = asyncio.run(
            run_exclusive("robot_expiry", lambda: _process_robot_expiry_async(limit))
        )
    except LedgerUnavailableError as e:
        logger.critical(f"Robot expiry aborted, ledger unavailable: {e}")
        raise

    if result is not None:
        logger.info(
            f"Robot expiry complete: {result.expired} expired, "
            f"{result.failed} failed ({result.parked} parked), "
            f"{result.referral_retried} referral retries, "
            f"payout {result.total_payout} USDT"
        )


async def _process_robot_expiry_async(limit: int | None) -> ExpiryRunResult:
    """Async implementation of robot expiry."""
    async with task_session_maker() as session:
        service = RobotLifecycleService(session)
        return await service.process_expired(limit=limit)
