"""
RobotPurchase repository.

Data access layer for positions. Status transitions are conditional
UPDATEs: the WHERE clause carries the expected current status, so a
transition that lost a race updates zero rows.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import Row, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import COMMITTED_STATUSES, PositionStatus
from app.models.robot_purchase import RobotPurchase
from app.repositories.base import BaseRepository
from app.utils.money import to_decimal


class RobotPurchaseRepository(BaseRepository[RobotPurchase]):
    """RobotPurchase repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(RobotPurchase, session)

    async def get_due_for_expiry(
        self,
        now: datetime,
        limit: int | None = None,
        max_attempts: int | None = None,
    ) -> list[RobotPurchase]:
        """
        Get active positions whose end time has passed.

        Positions that failed before come after fresh ones, and positions
        that reached max_attempts are parked (not selected at all), so a
        batch of broken rows cannot starve the sweep.

        Args:
            now: Reference time
            limit: Max rows
            max_attempts: Skip positions with this many failed attempts

        Returns:
            Positions ordered by failed attempts, then end_time ascending
        """
        stmt = (
            select(RobotPurchase)
            .where(
                RobotPurchase.status == PositionStatus.ACTIVE.value,
                RobotPurchase.end_time <= now,
            )
            .order_by(
                RobotPurchase.expiry_attempts.asc(),
                RobotPurchase.end_time.asc(),
                RobotPurchase.id.asc(),
            )
        )
        if max_attempts:
            stmt = stmt.where(RobotPurchase.expiry_attempts < max_attempts)
        if limit:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def _transition(
        self,
        position_id: int,
        from_status: PositionStatus,
        **values: Any,
    ) -> bool:
        stmt = (
            update(RobotPurchase)
            .where(
                RobotPurchase.id == position_id,
                RobotPurchase.status == from_status.value,
            )
            .values(**values)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def claim_expiry(
        self,
        position_id: int,
        now: datetime,
        payout_amount: Decimal,
        total_profit: Decimal,
        referral_pending: bool = False,
    ) -> bool:
        """
        Move an active position to expired.

        Args:
            position_id: Position ID
            now: Expiry time
            payout_amount: Amount credited to the owner
            total_profit: Profit part of the payout
            referral_pending: Maturity rewards still to be distributed

        Returns:
            True if this call performed the transition
        """
        return await self._transition(
            position_id,
            PositionStatus.ACTIVE,
            status=PositionStatus.EXPIRED.value,
            expired_at=now,
            payout_amount=payout_amount,
            total_profit=total_profit,
            referral_pending=referral_pending,
        )

    async def record_expiry_failure(self, position_id: int, error: str) -> int:
        """
        Count a failed expiry attempt on an active position.

        Returns:
            Number of failed attempts after this one (0 if the position
            is no longer active)
        """
        stmt = (
            update(RobotPurchase)
            .where(
                RobotPurchase.id == position_id,
                RobotPurchase.status == PositionStatus.ACTIVE.value,
            )
            .values(
                expiry_attempts=RobotPurchase.expiry_attempts + 1,
                last_expiry_error=error[:1000],
            )
            .returning(RobotPurchase.expiry_attempts)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() or 0

    async def get_referral_pending(self, limit: int | None = None) -> list[Row]:
        """
        Expired positions whose maturity rewards are not fully paid.

        Returns:
            Rows of (id, wallet_address, robot_name, total_profit), oldest
            expiry first
        """
        stmt = (
            select(
                RobotPurchase.id,
                RobotPurchase.wallet_address,
                RobotPurchase.robot_name,
                RobotPurchase.total_profit,
            )
            .where(
                RobotPurchase.status == PositionStatus.EXPIRED.value,
                RobotPurchase.referral_pending.is_(True),
            )
            .order_by(RobotPurchase.expired_at.asc(), RobotPurchase.id.asc())
        )
        if limit:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return list(result.all())

    async def clear_referral_pending(self, position_id: int) -> None:
        """Mark the maturity rewards of a position as distributed."""
        stmt = (
            update(RobotPurchase)
            .where(RobotPurchase.id == position_id)
            .values(referral_pending=False)
        )
        await self.session.execute(stmt)

    async def claim_cancel(
        self,
        position_id: int,
        now: datetime,
        refund_amount: Decimal,
        reason: str | None,
    ) -> bool:
        """Move an active position to cancelled."""
        return await self._transition(
            position_id,
            PositionStatus.ACTIVE,
            status=PositionStatus.CANCELLED.value,
            cancelled_at=now,
            cancel_reason=reason,
            payout_amount=refund_amount,
        )

    async def claim_reactivate(self, position_id: int, end_time: datetime) -> bool:
        """Move a cancelled, unrefunded position back to active."""
        stmt = (
            update(RobotPurchase)
            .where(
                RobotPurchase.id == position_id,
                RobotPurchase.status == PositionStatus.CANCELLED.value,
                RobotPurchase.payout_amount == 0,
            )
            .values(
                status=PositionStatus.ACTIVE.value,
                end_time=end_time,
                cancelled_at=None,
                cancel_reason=None,
                expiry_attempts=0,
                last_expiry_error=None,
            )
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def mark_quantified(self, position_id: int, now: datetime) -> bool:
        """Set is_quantified on an active, not yet quantified position."""
        stmt = (
            update(RobotPurchase)
            .where(
                RobotPurchase.id == position_id,
                RobotPurchase.status == PositionStatus.ACTIVE.value,
                RobotPurchase.is_quantified.is_(False),
            )
            .values(is_quantified=True, quantified_at=now)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def get_active_ids_by_wallet(self, wallet_address: str) -> list[int]:
        """IDs of a wallet's active positions."""
        stmt = (
            select(RobotPurchase.id)
            .where(
                func.lower(RobotPurchase.wallet_address) == wallet_address.lower(),
                RobotPurchase.status == PositionStatus.ACTIVE.value,
            )
            .order_by(RobotPurchase.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_active_by_product(
        self, wallet_address: str, robot_name: str
    ) -> int:
        """Count a wallet's active positions of one product."""
        stmt = select(func.count(RobotPurchase.id)).where(
            func.lower(RobotPurchase.wallet_address) == wallet_address.lower(),
            RobotPurchase.robot_name == robot_name,
            RobotPurchase.status == PositionStatus.ACTIVE.value,
        )
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def get_committed_volume(
        self, wallet_addresses: list[str]
    ) -> dict[str, Decimal]:
        """
        Sum price of active and expired positions per wallet.

        Cancelled positions never count as committed capital.

        Args:
            wallet_addresses: Normalized wallets

        Returns:
            Mapping wallet -> volume (wallets without positions omitted)
        """
        if not wallet_addresses:
            return {}

        wallet = func.lower(RobotPurchase.wallet_address)
        stmt = (
            select(wallet, func.coalesce(func.sum(RobotPurchase.price), 0))
            .where(
                wallet.in_(wallet_addresses),
                RobotPurchase.status.in_(COMMITTED_STATUSES),
            )
            .group_by(wallet)
        )
        result = await self.session.execute(stmt)
        return {row[0]: to_decimal(row[1]) for row in result.all()}

    async def get_totals_by_wallet(self, wallet_address: str) -> tuple[Decimal, Decimal]:
        """
        Sum price and payout over every position of a wallet.

        Every purchase debited its price whatever the later status, and
        payout_amount holds what was credited back.

        Returns:
            Tuple of (total_price, total_payout)
        """
        stmt = select(
            func.coalesce(func.sum(RobotPurchase.price), 0),
            func.coalesce(func.sum(RobotPurchase.payout_amount), 0),
        ).where(func.lower(RobotPurchase.wallet_address) == wallet_address.lower())
        result = await self.session.execute(stmt)
        total_price, total_payout = result.one()
        return to_decimal(total_price), to_decimal(total_payout)

    async def get_expiring_between(
        self, start: datetime, end: datetime
    ) -> list[RobotPurchase]:
        """Active positions with end_time in (start, end]."""
        stmt = (
            select(RobotPurchase)
            .where(
                RobotPurchase.status == PositionStatus.ACTIVE.value,
                RobotPurchase.end_time > start,
                RobotPurchase.end_time <= end,
            )
            .order_by(RobotPurchase.end_time.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_expired_stats(self, since: datetime) -> tuple[int, Decimal]:
        """
        Count and sum payouts of positions expired since a time.

        Returns:
            Tuple of (count, total_payout)
        """
        stmt = select(
            func.count(RobotPurchase.id),
            func.coalesce(func.sum(RobotPurchase.payout_amount), 0),
        ).where(
            RobotPurchase.status == PositionStatus.EXPIRED.value,
            RobotPurchase.expired_at >= since,
        )
        result = await self.session.execute(stmt)
        count, total = result.one()
        return count or 0, to_decimal(total)

    async def get_pending_expiry_stats(self, now: datetime) -> tuple[int, Decimal]:
        """
        Count and sum price of active positions already past end_time.

        Returns:
            Tuple of (count, total_price)
        """
        stmt = select(
            func.count(RobotPurchase.id),
            func.coalesce(func.sum(RobotPurchase.price), 0),
        ).where(
            RobotPurchase.status == PositionStatus.ACTIVE.value,
            RobotPurchase.end_time <= now,
        )
        result = await self.session.execute(stmt)
        count, total = result.one()
        return count or 0, to_decimal(total)
