"""
UserBalance model.

One mutable balance aggregate per wallet. Every distributor credits it
with an atomic increment; the reconciliation auditor verifies it against
the event tables.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, DateTime, Index, Integer, func
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.types import MoneyType, WalletType


class UserBalance(Base):
    """
    UserBalance entity.

    Attributes:
        id: Primary key
        wallet_address: Owner wallet (unique ignoring case; upstream writers
            may store checksummed addresses)
        usdt_balance: Spendable balance
        secondary_token_balance: Platform token balance (not reconciled)
        total_deposit: Counter of completed deposits
        total_withdraw: Counter of completed withdrawals
        manual_adjustment: Trusted out-of-band credits and audit repairs
        is_banned: Banned owners get no maturity refund and cannot buy
        created_at: Row creation time
        updated_at: Last modification time
    """

    __tablename__ = "user_balances"
    __table_args__ = (
        CheckConstraint(
            'usdt_balance >= 0', name='check_user_balance_non_negative'
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    wallet_address: Mapped[str] = mapped_column(
        WalletType, unique=True, nullable=False, index=True
    )

    usdt_balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    secondary_token_balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    total_deposit: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    total_withdraw: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    manual_adjustment: Mapped[Decimal] = mapped_column(
        MoneyType,
        default=Decimal("0"),
        nullable=False,
        comment="Admin credits and reconciliation shortfall records",
    )

    is_banned: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False, index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<UserBalance(wallet={self.wallet_address}, "
            f"usdt={self.usdt_balance}, banned={self.is_banned})>"
        )


# One row per wallet regardless of address case
Index(
    "uq_user_balances_wallet_lower",
    func.lower(UserBalance.wallet_address),
    unique=True,
)
