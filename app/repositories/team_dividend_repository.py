"""
TeamDividend repository.

Data access layer for broker dividend payments.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.team_dividend import TeamDividend
from app.repositories.base import BaseRepository
from app.utils.money import to_decimal


# Natural key of a dividend; backed by uq_team_dividend_period
DIVIDEND_KEY = ["wallet_address", "dividend_date", "dividend_type"]


class TeamDividendRepository(BaseRepository[TeamDividend]):
    """TeamDividend repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(TeamDividend, session)

    async def record_dividend(
        self,
        wallet_address: str,
        dividend_type: str,
        dividend_date: date,
        level: int,
        amount: Decimal,
    ) -> int | None:
        """
        Insert a dividend row unless the period was already paid.

        Returns:
            New row ID, or None if (wallet, date, type) already exists
        """
        return await self.insert_ignore(
            DIVIDEND_KEY,
            wallet_address=wallet_address,
            dividend_type=dividend_type,
            dividend_date=dividend_date,
            level=level,
            amount=amount,
        )

    async def get_total_by_wallet(self, wallet_address: str) -> Decimal:
        """Sum of all dividends received by a wallet."""
        stmt = select(
            func.coalesce(func.sum(TeamDividend.amount), 0)
        ).where(func.lower(TeamDividend.wallet_address) == wallet_address.lower())
        result = await self.session.execute(stmt)
        return to_decimal(result.scalar())
