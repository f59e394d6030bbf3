"""
Fixtures for integration tests.

Every test gets a fresh in-memory SQLite database with the full ledger
schema. Expire-on-commit is off, like in the application session maker.
"""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.config.robot_products import ROBOT_PRODUCTS
from app.models import (
    Base,
    BrokerLevel,
    DepositRecord,
    PositionStatus,
    PromoCredit,
    RecordStatus,
    ReferralReward,
    RobotPurchase,
    TeamDividend,
    UserBalance,
    UserReferral,
    WithdrawRecord,
)
from app.utils.money import to_decimal

# Fixed reference time for lifecycle tests
NOW = datetime(2026, 10, 16, 12, 0, tzinfo=UTC)


@pytest_asyncio.fixture
async def engine():
    """In-memory database shared by every connection of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine):
    """Async session with the application's session options."""
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with maker() as session:
        yield session


class LedgerSeeder:
    """
    Writes fixture rows and reads ledger state back.

    Reads go through column selects, never through ORM objects that a
    service rollback may have expired.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def balance(
        self,
        wallet_address: str,
        usdt: Decimal | str = "0",
        banned: bool = False,
        **fields,
    ) -> None:
        self.session.add(
            UserBalance(
                wallet_address=wallet_address,
                usdt_balance=Decimal(str(usdt)),
                is_banned=banned,
                **fields,
            )
        )
        await self.session.commit()

    async def referral(self, member: str, referrer: str) -> None:
        self.session.add(UserReferral(wallet_address=member, referrer_address=referrer))
        await self.session.commit()

    async def chain(self, wallets: list[str]) -> None:
        """wallets[0] referred by wallets[1], referred by wallets[2], ..."""
        for member, referrer in zip(wallets, wallets[1:]):
            self.session.add(UserReferral(wallet_address=member, referrer_address=referrer))
        await self.session.commit()

    async def position(
        self,
        wallet_address: str,
        robot_name: str = "Coinbase Ai Bot",
        price: Decimal | str | None = None,
        expected_return: Decimal | str | None = None,
        status: PositionStatus = PositionStatus.ACTIVE,
        is_quantified: bool = False,
        end_time: datetime | None = None,
        payout_amount: Decimal | str = "0",
    ) -> int:
        config = ROBOT_PRODUCTS[robot_name]
        price = Decimal(str(price)) if price is not None else config.price
        position = RobotPurchase(
            wallet_address=wallet_address,
            robot_name=robot_name,
            robot_type=config.product_type.value,
            price=price,
            expected_return=(
                Decimal(str(expected_return)) if expected_return is not None else price
            ),
            is_quantified=is_quantified,
            status=status.value,
            start_time=NOW - timedelta(days=3),
            end_time=end_time or NOW - timedelta(hours=1),
            payout_amount=Decimal(str(payout_amount)),
        )
        self.session.add(position)
        await self.session.commit()
        return position.id

    async def deposit(self, wallet_address: str, amount: str, status=RecordStatus.COMPLETED) -> None:
        self.session.add(
            DepositRecord(wallet_address=wallet_address, amount=Decimal(amount), status=status.value)
        )
        await self.session.commit()

    async def withdraw(self, wallet_address: str, amount: str, status=RecordStatus.COMPLETED) -> None:
        self.session.add(
            WithdrawRecord(wallet_address=wallet_address, amount=Decimal(amount), status=status.value)
        )
        await self.session.commit()

    async def promo(self, wallet_address: str, amount: str) -> None:
        self.session.add(
            PromoCredit(wallet_address=wallet_address, amount=Decimal(amount), reason="welcome")
        )
        await self.session.commit()

    async def broker_level(self, wallet_address: str, level: int) -> None:
        self.session.add(BrokerLevel(wallet_address=wallet_address, level=level))
        await self.session.commit()

    async def get_balance(self, wallet_address: str) -> Decimal | None:
        result = await self.session.execute(
            select(UserBalance.usdt_balance).where(UserBalance.wallet_address == wallet_address)
        )
        value = result.scalar_one_or_none()
        return None if value is None else to_decimal(value)

    async def balance_rows(self) -> list[tuple[str, Decimal, bool]]:
        """Every balance row as (wallet_address, usdt_balance, is_banned)."""
        result = await self.session.execute(
            select(
                UserBalance.wallet_address,
                UserBalance.usdt_balance,
                UserBalance.is_banned,
            ).order_by(UserBalance.id)
        )
        return [
            (row.wallet_address, to_decimal(row.usdt_balance), bool(row.is_banned))
            for row in result.all()
        ]

    async def get_manual_adjustment(self, wallet_address: str) -> Decimal:
        result = await self.session.execute(
            select(UserBalance.manual_adjustment).where(
                UserBalance.wallet_address == wallet_address
            )
        )
        return to_decimal(result.scalar_one())

    async def get_position(self, position_id: int):
        result = await self.session.execute(
            select(
                RobotPurchase.status,
                RobotPurchase.payout_amount,
                RobotPurchase.total_profit,
                RobotPurchase.is_quantified,
                RobotPurchase.end_time,
                RobotPurchase.referral_pending,
                RobotPurchase.expiry_attempts,
                RobotPurchase.last_expiry_error,
            ).where(RobotPurchase.id == position_id)
        )
        return result.one()

    async def reward_rows(self, source_id: int | None = None) -> list:
        stmt = select(
            ReferralReward.wallet_address,
            ReferralReward.level,
            ReferralReward.reward_amount,
            ReferralReward.source_type,
        ).order_by(ReferralReward.level)
        if source_id is not None:
            stmt = stmt.where(ReferralReward.source_id == source_id)
        result = await self.session.execute(stmt)
        return list(result.all())

    async def dividend_rows(self) -> list:
        result = await self.session.execute(
            select(
                TeamDividend.wallet_address,
                TeamDividend.dividend_type,
                TeamDividend.dividend_date,
                TeamDividend.amount,
            ).order_by(TeamDividend.id)
        )
        return list(result.all())

    async def stored_level(self, wallet_address: str):
        result = await self.session.execute(
            select(
                BrokerLevel.level,
                BrokerLevel.direct_count,
                BrokerLevel.qualified_direct_count,
                BrokerLevel.team_volume,
                BrokerLevel.team_members,
            ).where(BrokerLevel.wallet_address == wallet_address)
        )
        return result.one_or_none()


@pytest_asyncio.fixture
async def ledger(session):
    """Seeder bound to the test session."""
    return LedgerSeeder(session)


@pytest.fixture
def now():
    """Fixed reference time."""
    return NOW
