"""
BrokerLevel model.

Derived cache of each wallet's broker level and the metrics it was
computed from. Overwritten in full on every calculation pass.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, Integer
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.types import MoneyType, WalletType


class BrokerLevel(Base):
    """
    BrokerLevel entity.

    Attributes:
        wallet_address: Broker wallet (unique)
        level: Current level, 0 = none
        direct_count: Number of direct referrals
        qualified_direct_count: Direct referrals meeting the investment threshold
        team_volume: Committed capital of the downline (depth 8)
        team_members: Distinct downline wallets (depth 8)
        lv1_subordinates..lv5_subordinates: Direct referrals at each level
        last_calculated_at: Time of the pass that wrote this row
    """

    __tablename__ = "broker_levels"
    __table_args__ = (
        CheckConstraint('level >= 0', name='check_broker_level_non_negative'),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    wallet_address: Mapped[str] = mapped_column(
        WalletType, unique=True, nullable=False, index=True
    )
    level: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False, index=True
    )

    direct_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    qualified_direct_count: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    team_volume: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    team_members: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    lv1_subordinates: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    lv2_subordinates: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    lv3_subordinates: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    lv4_subordinates: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    lv5_subordinates: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    last_calculated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<BrokerLevel(wallet={self.wallet_address}, level={self.level}, "
            f"directs={self.direct_count}, volume={self.team_volume})>"
        )
