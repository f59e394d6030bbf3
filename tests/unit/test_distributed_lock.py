"""
Unit tests for the Redis lock.
"""

from unittest.mock import AsyncMock

import pytest
import redis.asyncio as redis

from app.utils.distributed_lock import DistributedLock


@pytest.fixture
def redis_client():
    client = AsyncMock()
    client.set = AsyncMock(return_value=True)
    client.eval = AsyncMock(return_value=1)
    return client


class TestDistributedLock:
    """Test acquire and release."""

    @pytest.mark.asyncio
    async def test_acquired_and_released(self, redis_client):
        async with DistributedLock(redis_client).lock("robot_expiry", timeout=30) as acquired:
            assert acquired is True

        name, token = redis_client.set.call_args.args
        assert name == "ledger_lock:robot_expiry"
        assert redis_client.set.call_args.kwargs == {"nx": True, "ex": 30}
        redis_client.eval.assert_awaited_once()
        assert redis_client.eval.call_args.args[2:] == (name, token)

    @pytest.mark.asyncio
    async def test_busy_lock_not_released(self, redis_client):
        redis_client.set.return_value = None

        async with DistributedLock(redis_client).lock("robot_expiry") as acquired:
            assert acquired is False

        redis_client.eval.assert_not_called()

    @pytest.mark.asyncio
    async def test_released_on_error(self, redis_client):
        with pytest.raises(RuntimeError):
            async with DistributedLock(redis_client).lock("robot_expiry"):
                raise RuntimeError("pass failed")

        redis_client.eval.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_release_failure_is_logged(self, redis_client):
        redis_client.eval.side_effect = redis.RedisError("gone")

        async with DistributedLock(redis_client).lock("robot_expiry") as acquired:
            assert acquired

        redis_client.eval.assert_awaited_once()
