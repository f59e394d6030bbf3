"""
Referral repository.

Data access layer for UserReferral edges. Edges are written by the
binding process outside this engine, so lookups compare lower-cased
addresses on both sides.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user_referral import UserReferral
from app.repositories.base import BaseRepository


class ReferralRepository(BaseRepository[UserReferral]):
    """Referral repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize referral repository."""
        super().__init__(UserReferral, session)

    async def get_referrer(self, wallet_address: str) -> str | None:
        """
        Get direct referrer of a member.

        Args:
            wallet_address: Normalized member wallet

        Returns:
            Referrer address as stored, or None
        """
        stmt = select(UserReferral.referrer_address).where(
            func.lower(UserReferral.wallet_address) == wallet_address
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_direct_referrals(self, wallet_address: str) -> list[str]:
        """
        Get members directly referred by a wallet.

        Args:
            wallet_address: Normalized referrer wallet

        Returns:
            Member addresses, lower-cased
        """
        stmt = (
            select(func.lower(UserReferral.wallet_address))
            .where(func.lower(UserReferral.referrer_address) == wallet_address)
            .order_by(UserReferral.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_direct_referrals_many(
        self, wallet_addresses: list[str]
    ) -> list[tuple[str, str]]:
        """
        Get direct referrals of several wallets in one query.

        Args:
            wallet_addresses: Normalized referrer wallets

        Returns:
            List of (referrer, member) pairs, lower-cased
        """
        if not wallet_addresses:
            return []

        stmt = (
            select(
                func.lower(UserReferral.referrer_address),
                func.lower(UserReferral.wallet_address),
            )
            .where(func.lower(UserReferral.referrer_address).in_(wallet_addresses))
            .order_by(UserReferral.id)
        )
        result = await self.session.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]

    async def get_all_referrers(self) -> list[str]:
        """
        Get every wallet that referred at least one member.

        Returns:
            Distinct referrer addresses, lower-cased
        """
        referrer = func.lower(UserReferral.referrer_address)
        stmt = select(referrer).distinct().order_by(referrer)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
