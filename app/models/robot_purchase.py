"""
RobotPurchase model.

A purchased robot position and its lifecycle state.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.enums import PositionStatus
from app.models.types import MoneyType, WalletType


class RobotPurchase(Base):
    """
    RobotPurchase entity.

    Status moves active -> expired (lifecycle sweep) or active ->
    cancelled (admin). Reactivation (cancelled -> active) is an admin-only
    exception path.

    Attributes:
        id: Primary key, also the source id of maturity rewards
        wallet_address: Owner wallet
        robot_name: Product name (key of the product catalog)
        robot_type: Product family (cex, dex, grid, high)
        price: Principal paid at purchase
        expected_return: Promised amount at maturity (principal included)
        is_quantified: High-yield positions pay out only when set
        quantified_at: When quantification happened
        status: active, expired or cancelled
        start_time: Start of the operation cycle
        end_time: Maturity time
        expired_at: When the lifecycle sweep expired the position
        cancelled_at: When an admin cancelled the position
        cancel_reason: Admin supplied reason
        payout_amount: Amount credited back (maturity payout or cancel refund)
        total_profit: Profit part of payout_amount
        referral_pending: Maturity rewards not yet fully distributed
        expiry_attempts: Failed expiry attempts; parked at the configured max
        last_expiry_error: Error of the last failed expiry attempt
    """

    __tablename__ = "robot_purchases"
    __table_args__ = (
        CheckConstraint('price > 0', name='check_robot_price_positive'),
        CheckConstraint(
            'payout_amount >= 0', name='check_robot_payout_non_negative'
        ),
        CheckConstraint(
            "status IN ('active', 'expired', 'cancelled')",
            name='check_robot_status',
        ),
        Index('idx_robot_status_end_time', 'status', 'end_time'),
        Index('idx_robot_wallet_status', 'wallet_address', 'status'),
        Index('idx_robot_referral_pending', 'referral_pending', 'expired_at'),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    wallet_address: Mapped[str] = mapped_column(
        WalletType, nullable=False, index=True
    )

    robot_name: Mapped[str] = mapped_column(String(100), nullable=False)
    robot_type: Mapped[str] = mapped_column(String(20), nullable=False)

    price: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    expected_return: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    is_quantified: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    quantified_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    status: Mapped[str] = mapped_column(
        String(20),
        default=PositionStatus.ACTIVE.value,
        nullable=False,
    )
    start_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    end_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    expired_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    cancelled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    cancel_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    payout_amount: Mapped[Decimal] = mapped_column(
        MoneyType,
        default=Decimal("0"),
        nullable=False,
        comment="Credited back to the owner at expiry or cancellation",
    )
    total_profit: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    referral_pending: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    expiry_attempts: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    last_expiry_error: Mapped[str | None] = mapped_column(Text, nullable=True)

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
            f"<RobotPurchase(id={self.id}, wallet={self.wallet_address}, "
            f"robot={self.robot_name}, price={self.price}, "
            f"status={self.status})>"
        )

    @property
    def is_active(self) -> bool:
        """Check if position is still running."""
        return self.status == PositionStatus.ACTIVE.value
