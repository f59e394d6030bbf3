"""
UserBalance repository.

Data access layer for balance aggregates. Every balance change is a
single UPDATE relative to the stored value; callers never read, compute
and write back.

Rows written upstream may carry checksummed (mixed-case) addresses, so
every lookup matches on lower(wallet_address).
"""

from decimal import Decimal
from typing import Any

from sqlalchemy import ColumnElement, Row, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user_balance import UserBalance
from app.repositories.base import BaseRepository


def _wallet_is(wallet_address: str) -> ColumnElement[bool]:
    return func.lower(UserBalance.wallet_address) == wallet_address.lower()


class UserBalanceRepository(BaseRepository[UserBalance]):
    """Repository for UserBalance entity."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(UserBalance, session)

    async def ensure_exists(self, wallet_address: str) -> bool:
        """
        Create a zero balance row if the wallet has none.

        Must run before crediting: an UPDATE on a missing row silently
        credits nothing. The conflict target is left open so that the
        unique index on lower(wallet_address) also counts as "exists".

        Args:
            wallet_address: Normalized wallet address

        Returns:
            True if a row was created
        """
        new_id = await self.insert_ignore(
            None, wallet_address=wallet_address.lower()
        )
        return new_id is not None

    async def is_banned(self, wallet_address: str) -> bool:
        """Check ban flag (missing rows are not banned)."""
        stmt = select(UserBalance.is_banned).where(_wallet_is(wallet_address))
        result = await self.session.execute(stmt)
        return bool(result.scalar_one_or_none())

    async def credit(self, wallet_address: str, amount: Decimal) -> bool:
        """
        Atomically add amount to usdt_balance.

        Args:
            wallet_address: Normalized wallet address
            amount: Positive amount

        Returns:
            True if a row was updated
        """
        stmt = (
            update(UserBalance)
            .where(_wallet_is(wallet_address))
            .values(usdt_balance=UserBalance.usdt_balance + amount)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def debit(self, wallet_address: str, amount: Decimal) -> bool:
        """
        Atomically subtract amount if the balance covers it.

        The balance guard is part of the UPDATE so that two concurrent
        debits cannot both pass.

        Args:
            wallet_address: Normalized wallet address
            amount: Positive amount

        Returns:
            True if debited, False if balance was insufficient or the
            wallet is banned or unknown
        """
        stmt = (
            update(UserBalance)
            .where(
                _wallet_is(wallet_address),
                UserBalance.usdt_balance >= amount,
                UserBalance.is_banned.is_(False),
            )
            .values(usdt_balance=UserBalance.usdt_balance - amount)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def add_manual_adjustment(
        self,
        wallet_address: str,
        amount: Decimal,
        expected_balance: Decimal | None = None,
    ) -> bool:
        """
        Atomically add amount (may be negative) to manual_adjustment.

        Args:
            wallet_address: Normalized wallet address
            amount: Adjustment
            expected_balance: Only apply while usdt_balance still equals this

        Returns:
            True if a row was updated
        """
        stmt = (
            update(UserBalance)
            .where(_wallet_is(wallet_address))
            .values(manual_adjustment=UserBalance.manual_adjustment + amount)
        )
        if expected_balance is not None:
            stmt = stmt.where(UserBalance.usdt_balance == expected_balance)
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def set_fields(self, wallet_address: str, **values: Any) -> None:
        """
        Overwrite counter columns of a balance row.

        Used only by the reconciliation repair path. The balance itself
        goes through compare_and_set_balance().
        """
        stmt = (
            update(UserBalance)
            .where(_wallet_is(wallet_address))
            .values(**values)
        )
        await self.session.execute(stmt)

    async def compare_and_set_balance(
        self, wallet_address: str, expected_current: Decimal, new_balance: Decimal
    ) -> bool:
        """
        Overwrite usdt_balance only if it still holds expected_current.

        A credit that landed after the caller read the balance makes the
        UPDATE match zero rows instead of being erased.

        Args:
            wallet_address: Normalized wallet address
            expected_current: Balance the caller computed against
            new_balance: Replacement value

        Returns:
            True if the row was updated
        """
        stmt = (
            update(UserBalance)
            .where(
                _wallet_is(wallet_address),
                UserBalance.usdt_balance == expected_current,
            )
            .values(usdt_balance=new_balance)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def get_wallets(self, wallet_suffix: str | None = None) -> list[str]:
        """
        List wallets with a balance row.

        Args:
            wallet_suffix: Only wallets ending with this (case-insensitive)

        Returns:
            Lower-case wallet addresses ordered alphabetically
        """
        wallet = func.lower(UserBalance.wallet_address)
        stmt = select(wallet).order_by(wallet)
        if wallet_suffix:
            stmt = stmt.where(wallet.like(f"%{wallet_suffix.lower()}"))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_ledger_fields(self, wallet_address: str) -> Row | None:
        """
        Read the reconciled columns of a balance row.

        Returns:
            Row with usdt_balance, total_deposit, total_withdraw and
            manual_adjustment, or None
        """
        stmt = select(
            UserBalance.usdt_balance,
            UserBalance.total_deposit,
            UserBalance.total_withdraw,
            UserBalance.manual_adjustment,
        ).where(_wallet_is(wallet_address))
        result = await self.session.execute(stmt)
        return result.one_or_none()
