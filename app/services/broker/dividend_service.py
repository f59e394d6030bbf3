"""
Team dividend service.

Pays the fixed daily and monthly dividends of every wallet holding a
broker level. The dividend row is inserted first; its unique key
(wallet, period, type) is the only guard against paying a period twice,
so the pass can run any number of times a day.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.broker_levels import BROKER_LEVELS, BrokerLevelConfig, get_level_config
from app.config.settings import settings
from app.models.enums import DividendType
from app.repositories.broker_level_repository import BrokerLevelRepository
from app.repositories.team_dividend_repository import TeamDividendRepository
from app.repositories.user_balance_repository import UserBalanceRepository
from app.services.base_service import BaseService, log_operation
from app.utils.datetime_utils import business_date, first_of_month
from app.utils.exceptions import LedgerError, LedgerUnavailableError
from app.utils.money import ZERO


@dataclass
class DividendRunResult:
    """Result of one dividend pass."""

    dividend_type: DividendType
    period: date
    distributed: int = 0
    skipped: int = 0  # period already paid
    failed: int = 0
    total_amount: Decimal = ZERO
    errors: list[str] = field(default_factory=list)


class DividendService(BaseService):
    """
    Team dividend service.

    Example:
        service = DividendService(session)
        result = await service.distribute_daily()
    """

    def __init__(
        self,
        session: AsyncSession,
        level_table: dict[int, BrokerLevelConfig] | None = None,
        timezone: str | None = None,
    ) -> None:
        """
        Initialize dividend service.

        Args:
            session: Async database session
            level_table: Level table with dividend amounts
            timezone: Business timezone (defaults to settings)
        """
        super().__init__(session)
        self.level_table = level_table or BROKER_LEVELS
        self.timezone = timezone or settings.business_timezone
        self.level_repo = BrokerLevelRepository(session)
        self.dividend_repo = TeamDividendRepository(session)
        self.balance_repo = UserBalanceRepository(session)

    async def distribute_daily(self, today: date | None = None) -> DividendRunResult:
        """
        Pay the daily dividend for a business day.

        Args:
            today: Business date (defaults to today in the business timezone)

        Returns:
            DividendRunResult
        """
        period = today or business_date(self.timezone)
        return await self._distribute(DividendType.DAILY, period)

    async def distribute_monthly(self, today: date | None = None) -> DividendRunResult:
        """
        Pay the monthly dividend for the month containing today.

        Returns:
            DividendRunResult keyed on the first of the month
        """
        period = first_of_month(today or business_date(self.timezone))
        return await self._distribute(DividendType.MONTHLY, period)

    def _amount_for(self, level: int, dividend_type: DividendType) -> Decimal:
        config = get_level_config(level, self.level_table)
        if config is None:
            raise LedgerError(f"No dividend configured for level {level}")
        if dividend_type == DividendType.DAILY:
            return config.daily_dividend
        return config.monthly_dividend

    @log_operation
    async def _distribute(
        self, dividend_type: DividendType, period: date
    ) -> DividendRunResult:
        result = DividendRunResult(dividend_type=dividend_type, period=period)

        try:
            holders = await self.level_repo.get_qualified(min_level=1)
        except Exception as e:
            raise LedgerUnavailableError(f"Cannot load broker levels: {e}") from e

        for wallet, level in holders:
            try:
                amount = self._amount_for(level, dividend_type)
                if amount <= 0:
                    continue

                dividend_id = await self.dividend_repo.record_dividend(
                    wallet_address=wallet,
                    dividend_type=dividend_type.value,
                    dividend_date=period,
                    level=level,
                    amount=amount,
                )
                if dividend_id is None:
                    self.logger.debug(
                        f"{dividend_type.value} dividend for {period} already paid to {wallet}"
                    )
                    result.skipped += 1
                    continue

                await self.balance_repo.ensure_exists(wallet)
                if not await self.balance_repo.credit(wallet, amount):
                    raise LedgerError(f"Balance row of {wallet} missing after ensure")
                await self.commit()
            except Exception as e:
                await self.rollback()
                self.logger.exception(
                    f"{dividend_type.value} dividend for {wallet} failed: {e}"
                )
                result.failed += 1
                result.errors.append(f"{wallet}: {e}")
                continue

            result.distributed += 1
            result.total_amount += amount

        self.logger.info(
            f"{dividend_type.value} dividends for {period}: {result.distributed} paid, "
            f"{result.skipped} already paid, {result.failed} failed, "
            f"total {result.total_amount}"
        )
        return result
