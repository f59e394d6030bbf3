"""
ReferralReward model.

One row per paid referral commission. The unique key
(wallet_address, source_type, source_id, level) makes a second payment of
the same event at the same level impossible.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.types import MoneyType, RateType, WalletType


class ReferralReward(Base):
    """
    ReferralReward entity.

    Attributes:
        id: Primary key
        wallet_address: Beneficiary (the referrer being paid)
        from_wallet: Member whose event produced the reward
        level: Upline distance from from_wallet (1 = direct referrer)
        reward_rate: Rate applied at this level
        reward_amount: Credited amount
        source_type: maturity or purchase
        source_id: Id of the source event (robot purchase id)
        source_amount: Base the rate was applied to
        robot_name: Product of the source position
        created_at: Payment time
    """

    __tablename__ = "referral_rewards"
    __table_args__ = (
        UniqueConstraint(
            'wallet_address', 'source_type', 'source_id', 'level',
            name='uq_referral_reward_source_level',
        ),
        CheckConstraint(
            'reward_amount >= 0', name='check_referral_reward_non_negative'
        ),
        CheckConstraint(
            'level >= 1', name='check_referral_reward_level_positive'
        ),
        Index('idx_referral_reward_from_wallet', 'from_wallet'),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    wallet_address: Mapped[str] = mapped_column(
        WalletType, nullable=False, index=True
    )
    from_wallet: Mapped[str] = mapped_column(WalletType, nullable=False)
    level: Mapped[int] = mapped_column(Integer, nullable=False)

    reward_rate: Mapped[Decimal] = mapped_column(RateType, nullable=False)
    reward_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    source_type: Mapped[str] = mapped_column(String(20), nullable=False)
    source_id: Mapped[int] = mapped_column(Integer, nullable=False)
    source_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    robot_name: Mapped[str | None] = mapped_column(String(100), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<ReferralReward(id={self.id}, wallet={self.wallet_address}, "
            f"level={self.level}, amount={self.reward_amount}, "
            f"source={self.source_type}:{self.source_id})>"
        )
