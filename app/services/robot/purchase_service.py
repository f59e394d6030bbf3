"""
Robot purchase service.

Opens positions: debits the price with a guarded atomic UPDATE, creates
the position and its history entry in one transaction, then pays the
purchase-time referral rewards for products that have them.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import (
    PURCHASE_REWARD_PRODUCTS,
    TX_TYPE_ROBOT_PURCHASE,
)
from app.config.robot_products import (
    ROBOT_PRODUCTS,
    ProductConfig,
    calculate_end_time,
    calculate_expected_return,
    resolve_price,
)
from app.models.enums import PositionStatus, RewardSource
from app.repositories.ledger_record_repository import (
    TransactionHistoryRepository,
)
from app.repositories.robot_purchase_repository import RobotPurchaseRepository
from app.repositories.user_balance_repository import UserBalanceRepository
from app.services.base_service import BaseService, transaction
from app.services.referral.referral_reward_processor import (
    ReferralRewardProcessor,
)
from app.utils.datetime_utils import ensure_utc, utc_now
from app.utils.exceptions import (
    BannedWalletError,
    ConfigurationError,
    InsufficientBalanceError,
    LedgerError,
)
from app.utils.money import ZERO, to_decimal
from app.utils.validation import require_wallet_address


@dataclass
class PurchaseResult:
    """Result of a robot purchase."""

    position_id: int
    wallet_address: str
    robot_name: str
    price: Decimal
    expected_return: Decimal
    end_time: datetime
    referral_rewards: Decimal = ZERO


class RobotPurchaseService(BaseService):
    """Robot purchase service."""

    def __init__(
        self,
        session: AsyncSession,
        products: dict[str, ProductConfig] | None = None,
        referral_processor: ReferralRewardProcessor | None = None,
    ) -> None:
        """
        Initialize purchase service.

        Args:
            session: Async database session
            products: Product catalog (defaults to ROBOT_PRODUCTS)
            referral_processor: Distributor for purchase rewards
        """
        super().__init__(session)
        self.products = products if products is not None else ROBOT_PRODUCTS
        self.purchase_repo = RobotPurchaseRepository(session)
        self.balance_repo = UserBalanceRepository(session)
        self.history_repo = TransactionHistoryRepository(session)
        self.referral_processor = referral_processor or ReferralRewardProcessor(session)

    async def purchase(
        self,
        wallet_address: str,
        robot_name: str,
        amount: Decimal | None = None,
        now: datetime | None = None,
    ) -> PurchaseResult:
        """
        Buy a robot.

        Args:
            wallet_address: Buyer wallet
            robot_name: Product name
            amount: Investment for variable-price products
            now: Start time

        Returns:
            PurchaseResult

        Raises:
            InvalidWalletAddressError: Malformed wallet
            ConfigurationError: Unknown product
            ValueError: Amount missing or outside the product corridor
            LedgerError: Purchase limit reached
            BannedWalletError: Buyer is banned
            InsufficientBalanceError: Balance does not cover the price
        """
        wallet = require_wallet_address(wallet_address)
        config = self.products.get(robot_name)
        if config is None:
            raise ConfigurationError(f"Unknown product {robot_name!r}")

        price = resolve_price(config, to_decimal(amount) if amount is not None else None)
        start = ensure_utc(now) if now is not None else utc_now()

        result = await self._open_position(wallet, config, price, start)

        if config.product_type in PURCHASE_REWARD_PRODUCTS:
            distribution = await self.referral_processor.process_rewards(
                source_wallet=wallet,
                source_id=result.position_id,
                base_amount=price,
                source_type=RewardSource.PURCHASE,
                robot_name=robot_name,
            )
            result.referral_rewards = distribution.total_rewards

        return result

    @transaction
    async def _open_position(
        self,
        wallet: str,
        config: ProductConfig,
        price: Decimal,
        start: datetime,
    ) -> PurchaseResult:
        active = await self.purchase_repo.count_active_by_product(wallet, config.name)
        if active >= config.purchase_limit:
            raise LedgerError(
                f"Purchase limit of {config.purchase_limit} reached for {config.name}"
            )

        if await self.balance_repo.is_banned(wallet):
            raise BannedWalletError(f"Wallet {wallet} is banned")

        if not await self.balance_repo.debit(wallet, price):
            raise InsufficientBalanceError(
                f"Balance of {wallet} does not cover {price} for {config.name}"
            )

        expected_return = calculate_expected_return(config, price)
        end_time = calculate_end_time(config, start)
        position = await self.purchase_repo.create(
            wallet_address=wallet,
            robot_name=config.name,
            robot_type=config.product_type.value,
            price=price,
            expected_return=expected_return,
            status=PositionStatus.ACTIVE.value,
            start_time=start,
            end_time=end_time,
        )
        position_id = position.id

        await self.history_repo.log(
            wallet_address=wallet,
            tx_type=TX_TYPE_ROBOT_PURCHASE,
            amount=-price,
            description=f"Purchased {config.name}",
        )

        self.logger.info(
            f"Position {position_id} opened: {config.name} for {price}",
            extra={"wallet": wallet, "expected_return": str(expected_return)},
        )
        return PurchaseResult(
            position_id=position_id,
            wallet_address=wallet,
            robot_name=config.name,
            price=price,
            expected_return=expected_return,
            end_time=end_time,
        )
