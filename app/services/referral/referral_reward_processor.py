"""
Referral reward processor.

Walks the upline of a source wallet and pays each level its share of a
reward base. Each level is its own transaction: the reward row is
inserted first and acts as the idempotency claim, then the referrer's
balance row is ensured and credited, then the transaction commits.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import MAX_SINGLE_REWARD, MIN_REWARD_BASE
from app.models.enums import RewardSource
from app.repositories.referral_reward_repository import (
    ReferralRewardRepository,
)
from app.repositories.user_balance_repository import UserBalanceRepository
from app.services.referral.config import (
    REFERRAL_DEPTH,
    REFERRAL_RATES_BY_SOURCE,
    validate_rate_table,
)
from app.services.referral.graph import ReferralGraph
from app.utils.exceptions import LedgerError
from app.utils.money import ZERO, multiply_rate, to_decimal
from app.utils.validation import normalize_wallet_address, validate_wallet_address


# Why a walk stopped before the last configured level
STOP_CHAIN_END = "chain_end"
STOP_INVALID_REFERRER = "invalid_referrer"
STOP_CYCLE = "cycle"
STOP_LOOKUP_FAILED = "lookup_failed"
STOP_BELOW_MINIMUM = "below_minimum"


@dataclass
class LevelReward:
    """One credited level."""

    level: int
    wallet_address: str
    rate: Decimal
    amount: Decimal


@dataclass
class ProcessResult:
    """Result of reward processing."""

    success: bool
    total_rewards: Decimal
    error_message: str | None = None
    rewards_count: int = 0
    already_paid_count: int = 0
    failed_count: int = 0
    stop_reason: str | None = None
    rewards: list[LevelReward] = field(default_factory=list)


class ReferralRewardProcessor:
    """
    Distributor of multi-level referral rewards.

    Used for maturity profit (8 levels) and DEX purchases (3 levels).
    Running it twice for the same source event pays nothing the second
    time.
    """

    def __init__(
        self,
        session: AsyncSession,
        rate_tables: dict[RewardSource, dict[int, Decimal]] | None = None,
    ) -> None:
        """
        Initialize referral reward processor.

        Args:
            session: Async database session
            rate_tables: Override of the per-source rate tables

        Raises:
            ValueError: If an injected table breaks the depth or cap rules
        """
        self.session = session
        self.rate_tables = rate_tables or REFERRAL_RATES_BY_SOURCE
        for rates in self.rate_tables.values():
            validate_rate_table(rates)
        self.graph = ReferralGraph(session)
        self.reward_repo = ReferralRewardRepository(session)
        self.balance_repo = UserBalanceRepository(session)

    async def process_rewards(
        self,
        source_wallet: str,
        source_id: int,
        base_amount: Decimal,
        source_type: RewardSource = RewardSource.MATURITY,
        robot_name: str | None = None,
    ) -> ProcessResult:
        """
        Distribute rewards for one source event.

        Args:
            source_wallet: Wallet whose event produced the reward
            source_id: Source event ID (robot purchase id)
            base_amount: Amount the rates apply to (profit or price)
            source_type: Reward source, selects the rate table
            robot_name: Product of the source position, stored on rows

        Returns:
            ProcessResult with totals and the reason the walk stopped
        """
        rates = self.rate_tables[source_type]
        source = normalize_wallet_address(source_wallet)
        base = to_decimal(base_amount)
        result = ProcessResult(success=True, total_rewards=ZERO)

        if base < MIN_REWARD_BASE:
            logger.debug(
                f"Reward base {base} below minimum, nothing to distribute",
                extra={"source_wallet": source, "source_id": source_id},
            )
            result.stop_reason = STOP_BELOW_MINIMUM
            return result

        visited = {source}
        current = source

        for level in range(1, min(len(rates), REFERRAL_DEPTH) + 1):
            try:
                raw_referrer = await self.graph.get_referrer(current)
            except Exception as e:
                await self.session.rollback()
                logger.exception(
                    f"Referrer lookup failed at level {level} for {current}: {e}"
                )
                result.failed_count += 1
                result.stop_reason = STOP_LOOKUP_FAILED
                break

            if not raw_referrer:
                result.stop_reason = STOP_CHAIN_END
                break

            is_valid, error = validate_wallet_address(raw_referrer)
            if not is_valid:
                logger.warning(
                    f"Invalid referrer address at level {level}, chain halted",
                    extra={
                        "member": current,
                        "referrer": raw_referrer,
                        "error": error,
                        "source_id": source_id,
                    },
                )
                result.stop_reason = STOP_INVALID_REFERRER
                break

            referrer = normalize_wallet_address(raw_referrer)
            if referrer in visited:
                logger.warning(
                    f"Referral cycle detected at level {level}: {referrer}",
                    extra={"source_wallet": source, "source_id": source_id},
                )
                result.stop_reason = STOP_CYCLE
                break
            visited.add(referrer)

            rate = rates[level]
            amount = self._calculate_level_reward(base, rate)
            if amount > 0:
                await self._process_level(
                    result=result,
                    referrer=referrer,
                    source=source,
                    level=level,
                    rate=rate,
                    amount=amount,
                    base=base,
                    source_type=source_type,
                    source_id=source_id,
                    robot_name=robot_name,
                )

            current = referrer

        if result.failed_count:
            result.success = False
            result.error_message = f"{result.failed_count} level(s) failed"

        logger.info(
            f"Referral rewards processed for {source_type.value}:{source_id}: "
            f"{result.rewards_count} paid, {result.already_paid_count} already paid, "
            f"{result.failed_count} failed, total {result.total_rewards}",
            extra={
                "source_wallet": source,
                "source_type": source_type.value,
                "source_id": source_id,
                "total_rewards": str(result.total_rewards),
                "stop_reason": result.stop_reason,
            },
        )
        return result

    @staticmethod
    def _calculate_level_reward(base: Decimal, rate: Decimal) -> Decimal:
        """Rounded reward for one level, capped at MAX_SINGLE_REWARD."""
        return min(multiply_rate(base, rate), MAX_SINGLE_REWARD)

    async def _process_level(
        self,
        result: ProcessResult,
        referrer: str,
        source: str,
        level: int,
        rate: Decimal,
        amount: Decimal,
        base: Decimal,
        source_type: RewardSource,
        source_id: int,
        robot_name: str | None,
    ) -> None:
        try:
            reward_id = await self.reward_repo.record_reward(
                wallet_address=referrer,
                from_wallet=source,
                level=level,
                reward_rate=rate,
                reward_amount=amount,
                source_type=source_type.value,
                source_id=source_id,
                source_amount=base,
                robot_name=robot_name,
            )
            if reward_id is None:
                logger.debug(
                    f"Level {level} reward for {source_type.value}:{source_id} "
                    f"already paid to {referrer}"
                )
                result.already_paid_count += 1
                return

            await self.balance_repo.ensure_exists(referrer)
            if not await self.balance_repo.credit(referrer, amount):
                raise LedgerError(f"Balance row of {referrer} missing after ensure")

            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            logger.exception(
                f"Level {level} reward to {referrer} failed for "
                f"{source_type.value}:{source_id}: {e}"
            )
            result.failed_count += 1
            return

        result.rewards_count += 1
        result.total_rewards += amount
        result.rewards.append(
            LevelReward(level=level, wallet_address=referrer, rate=rate, amount=amount)
        )
