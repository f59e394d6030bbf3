"""
Robot lifecycle service.

Matures positions whose cycle has ended and applies the admin-only
transitions (cancel, batch cancel, reactivate, quantify).

Each position is its own unit of work: the status change is a
conditional UPDATE from "active", followed by the credit and the history
entry, all committed together. A run that loses the race for a position
updates zero rows and moves on, so overlapping runs never pay twice.

Maturity referral rewards run after that commit. The position carries a
referral_pending flag until every level is paid, and later runs retry
flagged positions.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import (
    TX_TYPE_CANCEL_REFUND,
    TX_TYPE_MATURITY_REFUND,
)
from app.config.robot_products import (
    ROBOT_PRODUCTS,
    ProductConfig,
    ProductType,
    calculate_end_time,
)
from app.config.settings import settings
from app.models.enums import PositionStatus, RewardSource
from app.models.robot_purchase import RobotPurchase
from app.repositories.ledger_record_repository import (
    TransactionHistoryRepository,
)
from app.repositories.robot_purchase_repository import RobotPurchaseRepository
from app.repositories.user_balance_repository import UserBalanceRepository
from app.services.base_service import BaseService, log_operation, transaction
from app.services.referral.referral_reward_processor import (
    ReferralRewardProcessor,
)
from app.services.robot.maturity_policy import (
    calculate_cancel_refund,
    calculate_maturity_payout,
)
from app.utils.datetime_utils import ensure_utc, utc_now
from app.utils.exceptions import (
    ConfigurationError,
    InvalidStateTransitionError,
    InvalidWalletAddressError,
    LedgerError,
    LedgerUnavailableError,
    PositionNotFoundError,
)
from app.utils.money import ZERO, to_decimal
from app.utils.validation import normalize_wallet_address, validate_wallet_address


@dataclass(frozen=True)
class PositionSnapshot:
    """Detached copy of the fields the lifecycle needs from a position."""

    id: int
    wallet_address: str
    robot_name: str
    robot_type: str
    price: Decimal
    expected_return: Decimal
    is_quantified: bool
    status: str
    start_time: datetime
    end_time: datetime

    @classmethod
    def from_model(cls, position: RobotPurchase) -> "PositionSnapshot":
        """Copy a loaded RobotPurchase."""
        return cls(
            id=position.id,
            wallet_address=position.wallet_address,
            robot_name=position.robot_name,
            robot_type=position.robot_type,
            price=to_decimal(position.price),
            expected_return=to_decimal(position.expected_return),
            is_quantified=bool(position.is_quantified),
            status=position.status,
            start_time=ensure_utc(position.start_time),
            end_time=ensure_utc(position.end_time),
        )


@dataclass
class ExpiryRunResult:
    """Result of one lifecycle sweep."""

    selected: int = 0
    expired: int = 0
    skipped: int = 0  # claimed by an overlapping run
    failed: int = 0
    parked: int = 0  # reached max failed attempts in this run
    banned: int = 0
    total_payout: Decimal = ZERO
    total_referral_rewards: Decimal = ZERO
    referral_retried: int = 0  # expired earlier, rewards still pending
    referral_failures: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class CancelResult:
    """Result of cancelling one position."""

    position_id: int
    cancelled: bool
    refund_amount: Decimal = ZERO
    error: str | None = None


@dataclass
class BatchCancelResult:
    """Result of cancelling several positions."""

    cancelled: int = 0
    skipped: int = 0
    total_refund: Decimal = ZERO
    results: list[CancelResult] = field(default_factory=list)


@dataclass
class ExpiryStats:
    """Expiry counters for operational tooling."""

    expired_today: int
    expired_today_amount: Decimal
    expired_this_week: int
    expired_this_week_amount: Decimal
    pending: int
    pending_amount: Decimal


class RobotLifecycleService(BaseService):
    """
    Robot lifecycle service.

    Example:
        service = RobotLifecycleService(session)
        result = await service.process_expired()
    """

    def __init__(
        self,
        session: AsyncSession,
        products: dict[str, ProductConfig] | None = None,
        referral_processor: ReferralRewardProcessor | None = None,
        max_attempts: int | None = None,
    ) -> None:
        """
        Initialize lifecycle service.

        Args:
            session: Async database session
            products: Product catalog (defaults to ROBOT_PRODUCTS)
            referral_processor: Distributor for maturity profit
            max_attempts: Failed expiries before a position is parked
                (defaults to settings.expiry_max_attempts)
        """
        super().__init__(session)
        self.products = products if products is not None else ROBOT_PRODUCTS
        self.max_attempts = max_attempts or settings.expiry_max_attempts
        self.purchase_repo = RobotPurchaseRepository(session)
        self.balance_repo = UserBalanceRepository(session)
        self.history_repo = TransactionHistoryRepository(session)
        self.referral_processor = referral_processor or ReferralRewardProcessor(session)

    @log_operation
    async def process_expired(
        self, now: datetime | None = None, limit: int | None = None
    ) -> ExpiryRunResult:
        """
        Mature every active position whose end time has passed.

        Maturity rewards left pending by an earlier run are retried
        first. Due positions follow, fresh ones before ones that failed
        earlier. A failing position is rolled back, its failure counted on
        the row and left active for the next run; after max_attempts
        failures it is parked and no longer selected.

        Args:
            now: Reference time (defaults to utc_now())
            limit: Max positions (defaults to settings.expiry_batch_size)

        Returns:
            ExpiryRunResult

        Raises:
            LedgerUnavailableError: If the due positions cannot be loaded
        """
        now = ensure_utc(now) if now is not None else utc_now()
        result = ExpiryRunResult()
        batch_size = limit or settings.expiry_batch_size

        try:
            pending = await self.purchase_repo.get_referral_pending(batch_size)
            positions = await self.purchase_repo.get_due_for_expiry(
                now, batch_size, max_attempts=self.max_attempts
            )
            due = [PositionSnapshot.from_model(p) for p in positions]
        except Exception as e:
            raise LedgerUnavailableError(f"Cannot load due positions: {e}") from e

        for row in pending:
            result.referral_retried += 1
            await self._distribute_referrals(
                result,
                position_id=row.id,
                wallet_address=row.wallet_address,
                base_amount=to_decimal(row.total_profit),
                robot_name=row.robot_name,
            )

        result.selected = len(due)
        if not due and not pending:
            self.logger.debug("No positions due for expiry")
            return result

        for position in due:
            try:
                payout, referral_base, banned, claimed = await self._expire_position(
                    position, now
                )
            except Exception as e:
                await self.rollback()
                result.failed += 1
                result.errors.append(f"{position.id}: {e}")
                if isinstance(e, LedgerError):
                    self.logger.warning(
                        f"Position {position.id} skipped: {e}",
                        extra={"position_id": position.id},
                    )
                else:
                    self.logger.exception(f"Position {position.id} expiry failed: {e}")
                if await self._record_failure(position.id, e):
                    result.parked += 1
                continue

            if not claimed:
                result.skipped += 1
                continue

            result.expired += 1
            result.total_payout += payout
            if banned:
                result.banned += 1

            if referral_base > 0:
                await self._distribute_referrals(
                    result,
                    position_id=position.id,
                    wallet_address=position.wallet_address,
                    base_amount=referral_base,
                    robot_name=position.robot_name,
                )

        self.logger.info(
            f"Expiry run: {result.expired} expired, {result.skipped} skipped, "
            f"{result.failed} failed, payout {result.total_payout}, "
            f"referral rewards {result.total_referral_rewards}",
            extra={
                "selected": result.selected,
                "banned": result.banned,
                "parked": result.parked,
                "referral_retried": result.referral_retried,
                "referral_failures": result.referral_failures,
            },
        )
        return result

    async def _distribute_referrals(
        self,
        result: ExpiryRunResult,
        position_id: int,
        wallet_address: str,
        base_amount: Decimal,
        robot_name: str,
    ) -> None:
        """
        Pay the maturity rewards of one expired position.

        The position's referral_pending flag is cleared only when every
        level succeeded. Otherwise the next run calls this again and the
        levels already paid are skipped on their unique key.
        """
        try:
            distribution = await self.referral_processor.process_rewards(
                source_wallet=wallet_address,
                source_id=position_id,
                base_amount=base_amount,
                source_type=RewardSource.MATURITY,
                robot_name=robot_name,
            )
        except Exception as e:
            await self.rollback()
            result.referral_failures += 1
            self.logger.exception(
                f"Referral distribution for position {position_id} failed: {e}"
            )
            return

        result.total_referral_rewards += distribution.total_rewards
        if not distribution.success:
            result.referral_failures += 1
            self.logger.warning(
                f"Referral distribution for position {position_id} incomplete, "
                f"retrying next run",
                extra={"position_id": position_id, "error": distribution.error_message},
            )
            return

        try:
            await self.purchase_repo.clear_referral_pending(position_id)
            await self.commit()
        except Exception as e:
            await self.rollback()
            self.logger.exception(
                f"Cannot clear referral flag of position {position_id}: {e}"
            )

    async def _record_failure(self, position_id: int, error: Exception) -> bool:
        """
        Count a failed expiry on the position row.

        Returns:
            True if this failure parked the position
        """
        try:
            attempts = await self.purchase_repo.record_expiry_failure(
                position_id, str(error)
            )
            await self.commit()
        except Exception as e:
            await self.rollback()
            self.logger.exception(
                f"Cannot record expiry failure of position {position_id}: {e}"
            )
            return False

        if attempts >= self.max_attempts:
            self.logger.error(
                f"Position {position_id} parked after {attempts} failed expiry attempts",
                extra={"position_id": position_id, "error": str(error)},
            )
            return True
        return False

    async def _expire_position(
        self, position: PositionSnapshot, now: datetime
    ) -> tuple[Decimal, Decimal, bool, bool]:
        """
        Expire one position in its own transaction.

        Returns:
            Tuple of (payout, referral_base, banned, claimed)

        Raises:
            InvalidWalletAddressError: Owner wallet is malformed
            ConfigurationError: Product is unknown
        """
        is_valid, error = validate_wallet_address(position.wallet_address)
        if not is_valid:
            raise InvalidWalletAddressError(position.wallet_address, error)
        wallet = normalize_wallet_address(position.wallet_address)

        config = self.products.get(position.robot_name)
        if config is None:
            raise ConfigurationError(f"Unknown product {position.robot_name!r}")

        policy = calculate_maturity_payout(
            robot_type=position.robot_type,
            price=position.price,
            expected_return=position.expected_return,
            is_quantified=position.is_quantified,
            config=config,
        )

        banned = await self.balance_repo.is_banned(wallet)
        if banned:
            self.logger.warning(
                f"Owner of position {position.id} is banned, expiring without refund",
                extra={"position_id": position.id, "wallet": wallet},
            )
            payout, profit = ZERO, ZERO
        else:
            payout, profit = policy.payout, policy.profit
        referral_base = ZERO if banned or not policy.pays_referrals else profit

        claimed = await self.purchase_repo.claim_expiry(
            position.id,
            now,
            payout_amount=payout,
            total_profit=profit,
            referral_pending=referral_base > 0,
        )
        if not claimed:
            await self.rollback()
            self.logger.info(
                f"Position {position.id} already left active, skipping",
                extra={"position_id": position.id},
            )
            return ZERO, ZERO, banned, False

        if payout > 0:
            await self.balance_repo.ensure_exists(wallet)
            if not await self.balance_repo.credit(wallet, payout):
                raise LedgerError(f"Balance row of {wallet} missing after ensure")
            await self.history_repo.log(
                wallet_address=wallet,
                tx_type=TX_TYPE_MATURITY_REFUND,
                amount=payout,
                description=f"{position.robot_name} matured ({policy.reason})",
            )

        await self.commit()

        self.logger.info(
            f"Position {position.id} expired: payout {payout} ({policy.reason})",
            extra={
                "position_id": position.id,
                "wallet": wallet,
                "robot_type": position.robot_type,
                "profit": str(profit),
            },
        )

        return payout, referral_base, banned, True

    async def _load_position(self, position_id: int) -> PositionSnapshot:
        position = await self.purchase_repo.get_by_id(position_id)
        if position is None:
            raise PositionNotFoundError(position_id)
        return PositionSnapshot.from_model(position)

    @transaction
    async def cancel(
        self,
        position_id: int,
        refund: bool = False,
        reason: str | None = None,
        now: datetime | None = None,
    ) -> CancelResult:
        """
        Cancel an active position.

        Args:
            position_id: Position ID
            refund: Credit the cancellation refund to the owner
            reason: Admin supplied reason
            now: Cancellation time

        Returns:
            CancelResult

        Raises:
            PositionNotFoundError: Unknown position
            InvalidStateTransitionError: Position is not active
        """
        now = ensure_utc(now) if now is not None else utc_now()
        position = await self._load_position(position_id)
        if position.status != PositionStatus.ACTIVE.value:
            raise InvalidStateTransitionError(
                position_id, position.status, PositionStatus.CANCELLED.value
            )

        refund_amount = ZERO
        if refund:
            refund_amount = calculate_cancel_refund(
                position.robot_type, position.price, position.expected_return
            )

        if not await self.purchase_repo.claim_cancel(
            position_id, now, refund_amount, reason
        ):
            raise InvalidStateTransitionError(
                position_id, "changed concurrently", PositionStatus.CANCELLED.value
            )

        wallet = normalize_wallet_address(position.wallet_address)
        if refund_amount > 0:
            await self.balance_repo.ensure_exists(wallet)
            if not await self.balance_repo.credit(wallet, refund_amount):
                raise LedgerError(f"Balance row of {wallet} missing after ensure")
            await self.history_repo.log(
                wallet_address=wallet,
                tx_type=TX_TYPE_CANCEL_REFUND,
                amount=refund_amount,
                description=f"{position.robot_name} cancelled: {reason or 'admin'}",
            )

        self.logger.info(
            f"Position {position_id} cancelled, refund {refund_amount}",
            extra={"position_id": position_id, "wallet": wallet, "reason": reason},
        )
        return CancelResult(
            position_id=position_id, cancelled=True, refund_amount=refund_amount
        )

    async def batch_cancel(
        self,
        position_ids: list[int],
        refund: bool = False,
        reason: str | None = None,
        now: datetime | None = None,
    ) -> BatchCancelResult:
        """
        Cancel several positions independently.

        Positions that are missing or not active are reported as skipped.

        Returns:
            BatchCancelResult
        """
        result = BatchCancelResult()

        for position_id in position_ids:
            try:
                item = await self.cancel(position_id, refund=refund, reason=reason, now=now)
            except LedgerError as e:
                result.skipped += 1
                result.results.append(
                    CancelResult(position_id=position_id, cancelled=False, error=str(e))
                )
                continue
            except Exception as e:
                self.logger.exception(f"Cancelling position {position_id} failed: {e}")
                result.skipped += 1
                result.results.append(
                    CancelResult(position_id=position_id, cancelled=False, error=str(e))
                )
                continue

            result.cancelled += 1
            result.total_refund += item.refund_amount
            result.results.append(item)

        self.logger.info(
            f"Batch cancel: {result.cancelled} cancelled, {result.skipped} skipped, "
            f"refund {result.total_refund}"
        )
        return result

    async def cancel_by_wallet(
        self,
        wallet_address: str,
        refund: bool = False,
        reason: str | None = None,
        now: datetime | None = None,
    ) -> BatchCancelResult:
        """Cancel every active position of a wallet."""
        wallet = normalize_wallet_address(wallet_address)
        position_ids = await self.purchase_repo.get_active_ids_by_wallet(wallet)
        return await self.batch_cancel(position_ids, refund=refund, reason=reason, now=now)

    @transaction
    async def reactivate(
        self,
        position_id: int,
        extend_days: int = 0,
        now: datetime | None = None,
    ) -> datetime:
        """
        Bring a cancelled position back to active.

        New end time: now + extend_days when given, else the original end
        time if still ahead, else now + the product duration. A position
        whose cancellation was refunded cannot be reactivated.

        Args:
            position_id: Position ID
            extend_days: Days from now for the new end time
            now: Reference time

        Returns:
            New end time

        Raises:
            PositionNotFoundError: Unknown position
            InvalidStateTransitionError: Not cancelled, or refunded
            ConfigurationError: Product unknown and no end time to keep
        """
        now = ensure_utc(now) if now is not None else utc_now()
        position = await self.purchase_repo.get_by_id(position_id)
        if position is None:
            raise PositionNotFoundError(position_id)
        snapshot = PositionSnapshot.from_model(position)
        refunded = to_decimal(position.payout_amount) > 0

        if snapshot.status != PositionStatus.CANCELLED.value:
            raise InvalidStateTransitionError(
                position_id, snapshot.status, PositionStatus.ACTIVE.value
            )
        if refunded:
            raise InvalidStateTransitionError(
                position_id, "cancelled with refund", PositionStatus.ACTIVE.value
            )

        if extend_days > 0:
            new_end = now + timedelta(days=extend_days)
        elif snapshot.end_time > now:
            new_end = snapshot.end_time
        else:
            config = self.products.get(snapshot.robot_name)
            if config is None:
                raise ConfigurationError(f"Unknown product {snapshot.robot_name!r}")
            new_end = calculate_end_time(config, now)

        if not await self.purchase_repo.claim_reactivate(position_id, new_end):
            raise InvalidStateTransitionError(
                position_id, "changed concurrently", PositionStatus.ACTIVE.value
            )

        self.logger.info(
            f"Position {position_id} reactivated until {new_end.isoformat()}",
            extra={"position_id": position_id, "extend_days": extend_days},
        )
        return new_end

    @transaction
    async def quantify(self, position_id: int, now: datetime | None = None) -> bool:
        """
        Mark a running high-yield position as quantified.

        Returns:
            True if newly quantified, False if it already was

        Raises:
            PositionNotFoundError: Unknown position
            InvalidStateTransitionError: Not an active, unmatured high-yield
                position
        """
        now = ensure_utc(now) if now is not None else utc_now()
        position = await self._load_position(position_id)

        if position.robot_type != ProductType.HIGH.value:
            raise InvalidStateTransitionError(position_id, position.robot_type, "quantified")
        if position.status != PositionStatus.ACTIVE.value or position.end_time <= now:
            raise InvalidStateTransitionError(position_id, position.status, "quantified")
        if position.is_quantified:
            return False

        marked = await self.purchase_repo.mark_quantified(position_id, now)
        if marked:
            self.logger.info(f"Position {position_id} quantified")
        return marked

    async def get_upcoming_expirations(
        self, hours_ahead: int = 24, now: datetime | None = None
    ) -> list[PositionSnapshot]:
        """Active positions maturing within the next hours_ahead hours."""
        now = ensure_utc(now) if now is not None else utc_now()
        positions = await self.purchase_repo.get_expiring_between(
            now, now + timedelta(hours=hours_ahead)
        )
        return [PositionSnapshot.from_model(p) for p in positions]

    async def get_expiry_stats(self, now: datetime | None = None) -> ExpiryStats:
        """
        Expiry counters: today (UTC), last 7 days, and overdue positions.

        Returns:
            ExpiryStats
        """
        now = ensure_utc(now) if now is not None else utc_now()
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)

        today_count, today_amount = await self.purchase_repo.get_expired_stats(start_of_day)
        week_count, week_amount = await self.purchase_repo.get_expired_stats(
            now - timedelta(days=7)
        )
        pending_count, pending_amount = await self.purchase_repo.get_pending_expiry_stats(now)

        return ExpiryStats(
            expired_today=today_count,
            expired_today_amount=today_amount,
            expired_this_week=week_count,
            expired_this_week_amount=week_amount,
            pending=pending_count,
            pending_amount=pending_amount,
        )
