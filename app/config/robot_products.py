"""
Single source of truth for the robot product catalog.

Every product a position can reference is defined here together with the
maturity policy inputs: duration, daily profit rate, price corridor and
whether principal is returned at maturity.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import NamedTuple

from app.utils.money import quantize_money


class ProductType(str, Enum):
    """Robot product families."""

    CEX = "cex"
    DEX = "dex"
    GRID = "grid"
    HIGH = "high"


class ProductConfig(NamedTuple):
    """Robot product configuration."""

    name: str
    product_type: ProductType
    duration_hours: int
    daily_profit: Decimal  # Daily profit rate in percent (0.8 = 0.8%)
    price: Decimal | None  # Fixed price; None for variable-amount products
    min_price: Decimal | None
    max_price: Decimal | None
    return_principal: bool
    purchase_limit: int  # Max active positions of this product per wallet


# Safety limits applied when computing returns
MAX_DAILY_PROFIT_RATE = Decimal("2.0")
HIGH_PROFIT_CAP_RATIO = Decimal("0.5")


def _fixed(
    name: str,
    product_type: ProductType,
    duration_hours: int,
    daily_profit: str,
    price: str,
    purchase_limit: int = 1,
) -> ProductConfig:
    return ProductConfig(
        name=name,
        product_type=product_type,
        duration_hours=duration_hours,
        daily_profit=Decimal(daily_profit),
        price=Decimal(price),
        min_price=None,
        max_price=None,
        return_principal=True,
        purchase_limit=purchase_limit,
    )


def _variable(
    name: str,
    duration_hours: int,
    daily_profit: str,
    min_price: str,
    max_price: str,
) -> ProductConfig:
    return ProductConfig(
        name=name,
        product_type=ProductType.HIGH,
        duration_hours=duration_hours,
        daily_profit=Decimal(daily_profit),
        price=None,
        min_price=Decimal(min_price),
        max_price=Decimal(max_price),
        return_principal=False,
        purchase_limit=1,
    )


ROBOT_PRODUCTS: dict[str, ProductConfig] = {
    config.name: config
    for config in (
        # CEX robots (fixed price, principal back at maturity)
        _fixed("Binance Ai Bot", ProductType.CEX, 24, "2.0", "20"),
        _fixed("Coinbase Ai Bot", ProductType.CEX, 72, "2.0", "100"),
        _fixed("OKX Ai Bot", ProductType.CEX, 48, "2.0", "300"),
        _fixed("Bybit Ai Bot", ProductType.CEX, 168, "1.5", "800", 2),
        _fixed("Upbit Ai Bot", ProductType.CEX, 360, "1.2", "1600", 2),
        _fixed("Bitfinex Ai Bot", ProductType.CEX, 720, "0.8", "3200", 2),
        # DEX robots (purchase pays the upline)
        _fixed("PancakeSwap Ai Bot", ProductType.DEX, 720, "0.6", "1000"),
        _fixed("Uniswap Ai Bot", ProductType.DEX, 720, "0.6", "2000"),
        _fixed("SushiSwap Ai Bot", ProductType.DEX, 1440, "0.5", "5000"),
        # Grid robots
        _fixed("Binance Grid Bot-M1", ProductType.GRID, 2880, "1.5", "680"),
        _fixed("Binance Grid Bot-M2", ProductType.GRID, 3600, "1.0", "1580"),
        # High-yield robots (principal + profit, only when quantified)
        _variable("Binance High Robot-H1", 24, "1.2", "20", "80000"),
        _variable("Binance High Robot-H2", 72, "0.8", "100", "100000"),
        _variable("Binance High Robot-H3", 120, "0.6", "200", "150000"),
    )
}


def get_product(name: str | None) -> ProductConfig | None:
    """
    Look up a product by its display name.

    Args:
        name: Product name as stored on the position

    Returns:
        ProductConfig or None if unknown
    """
    if not name:
        return None
    return ROBOT_PRODUCTS.get(name)


def resolve_price(config: ProductConfig, amount: Decimal | None) -> Decimal:
    """
    Determine the purchase price of a product.

    Fixed-price products ignore amount; variable ones require it within
    the corridor.

    Raises:
        ValueError: If amount is missing or outside the corridor
    """
    if config.price is not None:
        return config.price

    if amount is None:
        raise ValueError(f"{config.name} requires an amount")
    if amount < config.min_price or amount > config.max_price:
        raise ValueError(
            f"{config.name} amount must be between "
            f"{config.min_price} and {config.max_price}"
        )
    return amount


def calculate_expected_return(config: ProductConfig, price: Decimal) -> Decimal:
    """
    Amount promised at maturity.

    High-yield: price x (1 + daily rate x days), profit capped at half the
    principal. Other products return the principal only.

    Args:
        config: Product configuration
        price: Purchase price

    Returns:
        Expected return (principal included), 4 decimal places
    """
    if config.product_type != ProductType.HIGH:
        return price

    daily_rate = min(config.daily_profit, MAX_DAILY_PROFIT_RATE) / Decimal("100")
    days = Decimal(config.duration_hours) / Decimal("24")
    profit = price * daily_rate * days
    profit = min(profit, price * HIGH_PROFIT_CAP_RATIO)
    return quantize_money(price + profit)


def calculate_end_time(config: ProductConfig, start: datetime) -> datetime:
    """End of the operation cycle for a position started at start."""
    return start + timedelta(hours=config.duration_hours)
