"""
Broker level service.

Recomputes the broker level of every wallet that has direct referrals
and overwrites its cached BrokerLevel row.

Subordinate counts read the levels currently stored for the direct
referrals, so a promotion deep in a team reaches its upline over
successive passes.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.broker_levels import BROKER_LEVELS, BrokerLevelConfig
from app.config.business_constants import TEAM_DEPTH
from app.repositories.broker_level_repository import BrokerLevelRepository
from app.repositories.robot_purchase_repository import RobotPurchaseRepository
from app.services.base_service import BaseService, log_operation
from app.services.broker.level_calculator import BrokerMetrics, calculate_level
from app.services.referral.graph import ReferralGraph
from app.utils.datetime_utils import ensure_utc, utc_now
from app.utils.exceptions import LedgerUnavailableError
from app.utils.money import ZERO
from app.utils.validation import is_valid_wallet_address, normalize_wallet_address


# Levels with a dedicated lvN_subordinates column
SUBORDINATE_COLUMNS = 5


@dataclass
class BrokerLevelResult:
    """Level calculation of one wallet."""

    wallet_address: str
    old_level: int
    new_level: int
    metrics: BrokerMetrics

    @property
    def changed(self) -> bool:
        """Level differs from the stored one."""
        return self.old_level != self.new_level


@dataclass
class LevelRunResult:
    """Result of a full level pass."""

    processed: int = 0
    changed: int = 0
    failed: int = 0
    level_counts: dict[int, int] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)


class BrokerLevelService(BaseService):
    """
    Broker level service.

    Example:
        service = BrokerLevelService(session)
        result = await service.calculate_all_levels()
    """

    def __init__(
        self,
        session: AsyncSession,
        level_table: dict[int, BrokerLevelConfig] | None = None,
        team_depth: int = TEAM_DEPTH,
    ) -> None:
        """
        Initialize broker level service.

        Args:
            session: Async database session
            level_table: Level requirements (defaults to BROKER_LEVELS)
            team_depth: Downline depth for team aggregation
        """
        super().__init__(session)
        self.level_table = level_table or BROKER_LEVELS
        self.team_depth = team_depth
        self.graph = ReferralGraph(session)
        self.purchase_repo = RobotPurchaseRepository(session)
        self.level_repo = BrokerLevelRepository(session)

    async def collect_metrics(self, wallet_address: str) -> BrokerMetrics:
        """
        Aggregate the level inputs of a wallet.

        Args:
            wallet_address: Normalized wallet

        Returns:
            BrokerMetrics
        """
        directs = await self.graph.get_direct_referrals(wallet_address)
        volumes = await self.purchase_repo.get_committed_volume(directs)
        team = await self.graph.aggregate_team(wallet_address, self.team_depth)
        levels = await self.level_repo.get_levels(directs)

        return BrokerMetrics(
            direct_investments=tuple(volumes.get(d, ZERO) for d in directs),
            team_volume=team.volume,
            team_members=team.member_count,
            subordinate_levels=dict(
                Counter(level for level in levels.values() if level > 0)
            ),
        )

    async def calculate_wallet(
        self, wallet_address: str, now: datetime | None = None
    ) -> BrokerLevelResult:
        """
        Recompute and store the level of one wallet.

        The caller commits.

        Args:
            wallet_address: Wallet to recompute
            now: Calculation time

        Returns:
            BrokerLevelResult
        """
        now = ensure_utc(now) if now is not None else utc_now()
        wallet = normalize_wallet_address(wallet_address)

        metrics = await self.collect_metrics(wallet)
        new_level = calculate_level(metrics, self.level_table)
        old_level = await self.level_repo.get_level(wallet)

        base_threshold = self.level_table[min(self.level_table)].direct_min_investment
        subordinate_counts = {
            f"lv{n}_subordinates": metrics.subordinate_levels.get(n, 0)
            for n in range(1, SUBORDINATE_COLUMNS + 1)
        }
        await self.level_repo.save(
            wallet,
            level=new_level,
            direct_count=metrics.direct_count,
            qualified_direct_count=metrics.qualified_directs(base_threshold),
            team_volume=metrics.team_volume,
            team_members=metrics.team_members,
            last_calculated_at=now,
            **subordinate_counts,
        )

        result = BrokerLevelResult(
            wallet_address=wallet,
            old_level=old_level,
            new_level=new_level,
            metrics=metrics,
        )
        if result.changed:
            self.logger.info(
                f"Broker level change {wallet}: LV{old_level} -> LV{new_level}",
                extra={
                    "wallet": wallet,
                    "direct_count": metrics.direct_count,
                    "team_volume": str(metrics.team_volume),
                    "team_members": metrics.team_members,
                },
            )
        return result

    @log_operation
    async def calculate_all_levels(self, now: datetime | None = None) -> LevelRunResult:
        """
        Recompute the level of every wallet with direct referrals.

        Each wallet commits on its own; a failing wallet is rolled back,
        counted and skipped.

        Returns:
            LevelRunResult

        Raises:
            LedgerUnavailableError: If the referrer list cannot be loaded
        """
        now = ensure_utc(now) if now is not None else utc_now()
        result = LevelRunResult()

        try:
            wallets = await self.graph.get_all_referrers()
        except Exception as e:
            raise LedgerUnavailableError(f"Cannot load referrers: {e}") from e

        for wallet in wallets:
            if not is_valid_wallet_address(wallet):
                self.logger.warning(f"Skipping invalid referrer address {wallet!r}")
                result.failed += 1
                result.errors.append(f"{wallet}: invalid address")
                continue

            try:
                level_result = await self.calculate_wallet(wallet, now)
                await self.commit()
            except Exception as e:
                await self.rollback()
                self.logger.exception(f"Broker level calculation failed for {wallet}: {e}")
                result.failed += 1
                result.errors.append(f"{wallet}: {e}")
                continue

            result.processed += 1
            if level_result.changed:
                result.changed += 1
            if level_result.new_level > 0:
                result.level_counts[level_result.new_level] = (
                    result.level_counts.get(level_result.new_level, 0) + 1
                )

        self.logger.info(
            f"Broker levels: {result.processed} processed, {result.changed} changed, "
            f"{result.failed} failed",
            extra={"level_counts": result.level_counts},
        )
        return result
