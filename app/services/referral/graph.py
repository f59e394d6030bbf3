"""
Referral graph accessor.

Resolves uplines and downlines over the referral edges. Edges are meant
to form a forest but nothing enforces that at write time, so every
traversal here is bounded by depth and guarded by a visited set keyed on
the lower-cased address.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import TEAM_DEPTH
from app.repositories.referral_repository import ReferralRepository
from app.repositories.robot_purchase_repository import RobotPurchaseRepository
from app.utils.validation import normalize_wallet_address


# Max wallets per IN (...) query
QUERY_CHUNK_SIZE = 500


@dataclass
class TeamAggregate:
    """Downline of a wallet and its committed capital."""

    wallet_address: str
    members: list[str] = field(default_factory=list)
    volume: Decimal = Decimal("0")

    @property
    def member_count(self) -> int:
        """Distinct downline wallets, root excluded."""
        return len(self.members)


class ReferralGraph:
    """
    Read-only accessor for the referral graph.

    Example:
        graph = ReferralGraph(session)
        team = await graph.aggregate_team("0xabc...")
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize graph accessor.

        Args:
            session: Async database session
        """
        self.session = session
        self.referral_repo = ReferralRepository(session)
        self.purchase_repo = RobotPurchaseRepository(session)

    async def get_referrer(self, wallet_address: str) -> str | None:
        """
        Direct referrer of a wallet.

        Returns:
            Referrer address as stored (not validated), or None
        """
        return await self.referral_repo.get_referrer(
            normalize_wallet_address(wallet_address)
        )

    async def get_direct_referrals(self, wallet_address: str) -> list[str]:
        """Members directly referred by a wallet, lower-cased."""
        return await self.referral_repo.get_direct_referrals(
            normalize_wallet_address(wallet_address)
        )

    async def get_all_referrers(self) -> list[str]:
        """Every wallet with at least one direct referral."""
        return await self.referral_repo.get_all_referrers()

    async def collect_downline(
        self, wallet_address: str, max_depth: int = TEAM_DEPTH
    ) -> list[str]:
        """
        Collect the downline of a wallet, breadth first.

        One query per depth level. A wallet reached twice (a cycle, or the
        root itself) is counted once and not expanded again; nothing below
        max_depth is visited.

        Args:
            wallet_address: Root wallet
            max_depth: Deepest level included (1 = direct referrals)

        Returns:
            Distinct downline wallets in discovery order, root excluded
        """
        root = normalize_wallet_address(wallet_address)
        visited = {root}
        members: list[str] = []
        frontier = [root]

        for depth in range(1, max_depth + 1):
            if not frontier:
                break

            next_frontier: list[str] = []
            for chunk in _chunks(frontier, QUERY_CHUNK_SIZE):
                edges = await self.referral_repo.get_direct_referrals_many(chunk)
                for referrer, member in edges:
                    if member in visited:
                        logger.debug(
                            f"Referral cycle or duplicate edge: {referrer} -> {member}",
                            extra={"root": root, "depth": depth},
                        )
                        continue
                    visited.add(member)
                    members.append(member)
                    next_frontier.append(member)

            frontier = next_frontier

        return members

    async def aggregate_team(
        self, wallet_address: str, max_depth: int = TEAM_DEPTH
    ) -> TeamAggregate:
        """
        Aggregate team size and committed volume of a wallet.

        Volume is the price of every active or expired position held by
        the downline; cancelled positions never count.

        Args:
            wallet_address: Root wallet
            max_depth: Traversal depth bound

        Returns:
            TeamAggregate
        """
        root = normalize_wallet_address(wallet_address)
        members = await self.collect_downline(root, max_depth)

        volume = Decimal("0")
        for chunk in _chunks(members, QUERY_CHUNK_SIZE):
            volumes = await self.purchase_repo.get_committed_volume(chunk)
            volume += sum(volumes.values(), Decimal("0"))

        return TeamAggregate(wallet_address=root, members=members, volume=volume)


def _chunks(items: list[str], size: int) -> list[list[str]]:
    return [items[i:i + size] for i in range(0, len(items), size)]
