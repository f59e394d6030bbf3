"""
UserReferral model.

Referral edge member -> referrer, written once at binding time.
"""

from datetime import UTC, datetime

from sqlalchemy import DateTime, Integer
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.types import WalletType


class UserReferral(Base):
    """Referral edge - one referrer per member."""

    __tablename__ = "user_referrals"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    wallet_address: Mapped[str] = mapped_column(
        WalletType, unique=True, nullable=False, index=True
    )
    referrer_address: Mapped[str] = mapped_column(
        WalletType, nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<UserReferral(wallet={self.wallet_address}, "
            f"referrer={self.referrer_address})>"
        )
