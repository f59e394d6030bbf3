"""
Ledger input and history records.

DepositRecord and WithdrawRecord are written by the upstream confirmation
process; only rows with status "completed" count. TransactionHistory is
the user-facing log written by the engine. PromoCredit holds promotional
credits, an optional reconciliation source.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.enums import RecordStatus
from app.models.types import MoneyType, WalletType


class DepositRecord(Base):
    """Confirmed on-chain deposit."""

    __tablename__ = "deposit_records"
    __table_args__ = (
        CheckConstraint('amount > 0', name='check_deposit_record_positive'),
        Index('idx_deposit_record_wallet_status', 'wallet_address', 'status'),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    wallet_address: Mapped[str] = mapped_column(WalletType, nullable=False)
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=RecordStatus.PENDING.value, nullable=False
    )
    tx_hash: Mapped[str | None] = mapped_column(
        String(100), unique=True, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<DepositRecord(id={self.id}, wallet={self.wallet_address}, "
            f"amount={self.amount}, status={self.status})>"
        )


class WithdrawRecord(Base):
    """Withdrawal processed by the payout system."""

    __tablename__ = "withdraw_records"
    __table_args__ = (
        CheckConstraint('amount > 0', name='check_withdraw_record_positive'),
        Index('idx_withdraw_record_wallet_status', 'wallet_address', 'status'),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    wallet_address: Mapped[str] = mapped_column(WalletType, nullable=False)
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=RecordStatus.PENDING.value, nullable=False
    )
    tx_hash: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<WithdrawRecord(id={self.id}, wallet={self.wallet_address}, "
            f"amount={self.amount}, status={self.status})>"
        )


class TransactionHistory(Base):
    """User-facing transaction log entry."""

    __tablename__ = "transaction_history"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    wallet_address: Mapped[str] = mapped_column(
        WalletType, nullable=False, index=True
    )
    tx_type: Mapped[str] = mapped_column(String(50), nullable=False)
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    currency: Mapped[str] = mapped_column(
        String(10), default="USDT", nullable=False
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default=RecordStatus.COMPLETED.value, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<TransactionHistory(id={self.id}, wallet={self.wallet_address}, "
            f"type={self.tx_type}, amount={self.amount})>"
        )


class PromoCredit(Base):
    """Promotional credit granted to a wallet."""

    __tablename__ = "promo_credits"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    wallet_address: Mapped[str] = mapped_column(
        WalletType, nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<PromoCredit(id={self.id}, wallet={self.wallet_address}, "
            f"amount={self.amount})>"
        )
