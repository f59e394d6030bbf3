"""
Distributed lock.

Keeps two workers from running the same pass at once. Passes are
idempotent on their own; the lock only saves the second worker from
doing the work twice.
"""

import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import redis.asyncio as redis
from loguru import logger


# Deletes the key only if this holder still owns it
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


class DistributedLock:
    """
    Redis SET NX lock.

    Example:
        lock = DistributedLock(redis_client)
        async with lock.lock("robot_expiry", timeout=300) as acquired:
            if acquired:
                ...
    """

    def __init__(self, redis_client: redis.Redis, prefix: str = "ledger_lock:") -> None:
        self.redis_client = redis_client
        self.prefix = prefix

    @asynccontextmanager
    async def lock(self, key: str, timeout: int = 60) -> AsyncIterator[bool]:
        """
        Try to take the lock for the duration of the block.

        Args:
            key: Lock name
            timeout: Seconds before the lock expires on its own

        Yields:
            True if this holder owns the lock
        """
        name = f"{self.prefix}{key}"
        token = uuid.uuid4().hex
        acquired = bool(await self.redis_client.set(name, token, nx=True, ex=timeout))
        if not acquired:
            logger.info(f"Lock {name} is held by another worker")

        try:
            yield acquired
        finally:
            if acquired:
                try:
                    await self.redis_client.eval(_RELEASE_SCRIPT, 1, name, token)
                except redis.RedisError as e:
                    logger.warning(f"Failed to release lock {name}: {e}")
