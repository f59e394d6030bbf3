"""
BrokerLevel repository.

Data access layer for the broker level cache.
"""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.broker_level import BrokerLevel
from app.repositories.base import BaseRepository


class BrokerLevelRepository(BaseRepository[BrokerLevel]):
    """BrokerLevel repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(BrokerLevel, session)

    async def get_level(self, wallet_address: str) -> int:
        """Current stored level of a wallet (0 if never calculated)."""
        stmt = select(BrokerLevel.level).where(
            BrokerLevel.wallet_address == wallet_address
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() or 0

    async def get_levels(self, wallet_addresses: list[str]) -> dict[str, int]:
        """
        Current stored levels of several wallets.

        Returns:
            Mapping wallet -> level (wallets without a row omitted)
        """
        if not wallet_addresses:
            return {}

        stmt = select(BrokerLevel.wallet_address, BrokerLevel.level).where(
            BrokerLevel.wallet_address.in_(wallet_addresses)
        )
        result = await self.session.execute(stmt)
        return {row[0]: row[1] for row in result.all()}

    async def get_qualified(self, min_level: int = 1) -> list[tuple[str, int]]:
        """
        Wallets at or above a level.

        Returns:
            List of (wallet, level) ordered by wallet
        """
        stmt = (
            select(BrokerLevel.wallet_address, BrokerLevel.level)
            .where(BrokerLevel.level >= min_level)
            .order_by(BrokerLevel.wallet_address)
        )
        result = await self.session.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]

    async def save(self, wallet_address: str, **values: Any) -> None:
        """Insert or fully overwrite the level row of a wallet."""
        await self.upsert(
            ["wallet_address"],
            {"wallet_address": wallet_address, **values},
        )
