"""
Task scheduler.

Enqueues the ledger passes on the dramatiq broker. Everything runs
hourly; the dividend passes are additionally gated on the local
wall-clock so they fire once per day and once per month.
"""

import asyncio
import signal
from datetime import datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger

from app.config.settings import settings
from app.utils.datetime_utils import is_daily_window, is_monthly_window
from app.utils.logging_setup import setup_logging
from jobs.health import set_scheduler, start_health_server, stop_health_server
from jobs.tasks.balance_reconciliation import reconcile_balances
from jobs.tasks.broker_levels import calculate_broker_levels
from jobs.tasks.robot_expiry import process_robot_expiry
from jobs.tasks.team_dividends import (
    distribute_daily_dividends,
    distribute_monthly_dividends,
)

# Set by main(); read by health checks and shutdown
scheduler_instance: AsyncIOScheduler | None = None


def enqueue_dividends(now: datetime | None = None) -> list[str]:
    """
    Enqueue the dividend passes whose window is open.

    Args:
        now: Reference UTC time

    Returns:
        Names of the enqueued passes
    """
    tz = settings.business_timezone
    hour = settings.daily_dividend_hour
    enqueued = []

    if is_daily_window(tz, hour, now):
        distribute_daily_dividends.send()
        enqueued.append("daily")
    if is_monthly_window(tz, settings.monthly_dividend_day, hour, now):
        distribute_monthly_dividends.send()
        enqueued.append("monthly")

    if enqueued:
        logger.info(f"Enqueued dividend passes: {', '.join(enqueued)}")
    return enqueued


def create_scheduler() -> AsyncIOScheduler:
    """Build the scheduler with all ledger jobs."""
    scheduler = AsyncIOScheduler(timezone=settings.business_timezone)

    scheduler.add_job(
        process_robot_expiry.send,
        IntervalTrigger(hours=1),
        id="robot_expiry",
        name="Robot expiry",
        max_instances=1,
        coalesce=True,
    )
    scheduler.add_job(
        calculate_broker_levels.send,
        IntervalTrigger(hours=1),
        id="broker_levels",
        name="Broker levels",
        max_instances=1,
        coalesce=True,
    )
    scheduler.add_job(
        enqueue_dividends,
        IntervalTrigger(hours=1),
        id="team_dividends",
        name="Team dividends (window check)",
        max_instances=1,
        coalesce=True,
    )
    scheduler.add_job(
        reconcile_balances.send,
        IntervalTrigger(hours=settings.reconcile_interval_hours),
        id="balance_reconciliation",
        name="Balance reconciliation (report only)",
        max_instances=1,
        coalesce=True,
    )
    return scheduler


async def main() -> None:
    """Run the scheduler and its health endpoint until signalled."""
    global scheduler_instance

    setup_logging("scheduler")

    scheduler_instance = create_scheduler()
    scheduler_instance.start()
    set_scheduler(scheduler_instance)

    runner, _ = await start_health_server(port=settings.health_check_port)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    logger.info(f"Scheduler started with {len(scheduler_instance.get_jobs())} jobs")
    await stop_event.wait()

    logger.info("Shutting down scheduler...")
    scheduler_instance.shutdown(wait=False)
    await stop_health_server(runner)


if __name__ == "__main__":
    asyncio.run(main())
