"""
Ledger record repositories.

Read access to the deposit and withdrawal feeds, the promo credit
source, and write access to the transaction history.
"""

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import RecordStatus
from app.models.ledger_records import (
    DepositRecord,
    PromoCredit,
    TransactionHistory,
    WithdrawRecord,
)
from app.repositories.base import BaseRepository
from app.utils.money import to_decimal


class DepositRecordRepository(BaseRepository[DepositRecord]):
    """Confirmed deposit feed."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(DepositRecord, session)

    async def get_completed_total(self, wallet_address: str) -> Decimal:
        """Sum of completed deposits of a wallet."""
        stmt = select(func.coalesce(func.sum(DepositRecord.amount), 0)).where(
            func.lower(DepositRecord.wallet_address) == wallet_address,
            DepositRecord.status == RecordStatus.COMPLETED.value,
        )
        result = await self.session.execute(stmt)
        return to_decimal(result.scalar())


class WithdrawRecordRepository(BaseRepository[WithdrawRecord]):
    """Completed withdrawal feed."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(WithdrawRecord, session)

    async def get_completed_total(self, wallet_address: str) -> Decimal:
        """Sum of completed withdrawals of a wallet."""
        stmt = select(func.coalesce(func.sum(WithdrawRecord.amount), 0)).where(
            func.lower(WithdrawRecord.wallet_address) == wallet_address,
            WithdrawRecord.status == RecordStatus.COMPLETED.value,
        )
        result = await self.session.execute(stmt)
        return to_decimal(result.scalar())


class PromoCreditRepository(BaseRepository[PromoCredit]):
    """Promotional credits."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(PromoCredit, session)

    async def get_total(self, wallet_address: str) -> Decimal:
        """Sum of promo credits of a wallet."""
        stmt = select(func.coalesce(func.sum(PromoCredit.amount), 0)).where(
            func.lower(PromoCredit.wallet_address) == wallet_address
        )
        result = await self.session.execute(stmt)
        return to_decimal(result.scalar())


class TransactionHistoryRepository(BaseRepository[TransactionHistory]):
    """User-facing transaction log."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(TransactionHistory, session)

    async def log(
        self,
        wallet_address: str,
        tx_type: str,
        amount: Decimal,
        description: str | None = None,
    ) -> TransactionHistory:
        """
        Append a completed history entry.

        Args:
            wallet_address: Wallet the entry belongs to
            tx_type: Entry type (refund, robot_purchase, ...)
            amount: Signed amount (negative for debits)
            description: Human readable text

        Returns:
            Created entry
        """
        return await self.create(
            wallet_address=wallet_address,
            tx_type=tx_type,
            amount=amount,
            description=description,
            status=RecordStatus.COMPLETED.value,
        )
