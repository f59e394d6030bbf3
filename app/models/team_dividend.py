"""
TeamDividend model.

One row per (wallet, period, dividend type). The unique key is the sole
guard against paying a period twice.
"""

from datetime import UTC, date, datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.types import MoneyType, WalletType


class TeamDividend(Base):
    """Team dividend payment for a broker level holder."""

    __tablename__ = "team_dividends"
    __table_args__ = (
        UniqueConstraint(
            'wallet_address', 'dividend_date', 'dividend_type',
            name='uq_team_dividend_period',
        ),
        CheckConstraint('amount > 0', name='check_team_dividend_positive'),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    wallet_address: Mapped[str] = mapped_column(
        WalletType, nullable=False, index=True
    )
    dividend_type: Mapped[str] = mapped_column(String(20), nullable=False)
    # Business date for daily rows, first of month for monthly rows
    dividend_date: Mapped[date] = mapped_column(Date, nullable=False)
    level: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<TeamDividend(wallet={self.wallet_address}, "
            f"type={self.dividend_type}, date={self.dividend_date}, "
            f"amount={self.amount})>"
        )
