"""
ReferralReward repository.

Data access layer for paid referral commissions.
"""

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.referral_reward import ReferralReward
from app.repositories.base import BaseRepository
from app.utils.money import to_decimal


# Natural key of a reward; backed by uq_referral_reward_source_level
REWARD_KEY = ["wallet_address", "source_type", "source_id", "level"]


class ReferralRewardRepository(BaseRepository[ReferralReward]):
    """ReferralReward repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(ReferralReward, session)

    async def record_reward(
        self,
        wallet_address: str,
        from_wallet: str,
        level: int,
        reward_rate: Decimal,
        reward_amount: Decimal,
        source_type: str,
        source_id: int,
        source_amount: Decimal,
        robot_name: str | None = None,
    ) -> int | None:
        """
        Insert a reward row unless the same reward was already recorded.

        Returns:
            New row ID, or None if (wallet, source, level) already paid
        """
        return await self.insert_ignore(
            REWARD_KEY,
            wallet_address=wallet_address,
            from_wallet=from_wallet,
            level=level,
            reward_rate=reward_rate,
            reward_amount=reward_amount,
            source_type=source_type,
            source_id=source_id,
            source_amount=source_amount,
            robot_name=robot_name,
        )

    async def get_total_by_wallet(self, wallet_address: str) -> Decimal:
        """Sum of all rewards received by a wallet."""
        stmt = select(
            func.coalesce(func.sum(ReferralReward.reward_amount), 0)
        ).where(func.lower(ReferralReward.wallet_address) == wallet_address.lower())
        result = await self.session.execute(stmt)
        return to_decimal(result.scalar())
