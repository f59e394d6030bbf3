"""Run a pass under the distributed lock."""
from collections.abc import Awaitable, Callable
from typing import TypeVar

from loguru import logger

from app.utils.distributed_lock import DistributedLock
from app.utils.redis_utils import get_redis_client

T = TypeVar("T")


async def run_exclusive(
    lock_key: str,
    work: Callable[[], Awaitable[T]],
    timeout: int = 600,
) -> T | None:
    """
    Run work unless another worker holds the lock.

    Args:
        lock_key: Lock name
        work: Coroutine factory doing the pass
        timeout: Lock expiry in seconds (must exceed the pass duration)

    Returns:
        Result of work, or None if the lock was busy
    """
    redis_client = get_redis_client()
    try:
        async with DistributedLock(redis_client).lock(lock_key, timeout=timeout) as acquired:
            if not acquired:
                logger.info(f"Skipping {lock_key}: already running elsewhere")
                return None
            return await work()
    finally:
        await redis_client.aclose()
