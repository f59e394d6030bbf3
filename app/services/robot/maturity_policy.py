"""
Maturity and refund policy.

Pure functions deciding how much a position pays back. No database
access; the lifecycle service applies the result.
"""

from dataclasses import dataclass
from decimal import Decimal

from app.config.robot_products import (
    ProductConfig,
    ProductType,
    calculate_expected_return,
)
from app.utils.exceptions import ConfigurationError
from app.utils.money import ZERO, quantize_money, to_decimal


# Payout reasons
REASON_QUANTIFIED_RETURN = "quantified_return"
REASON_NOT_QUANTIFIED = "not_quantified"
REASON_PRINCIPAL_REFUND = "principal_refund"
REASON_NO_REFUND = "no_refund"


@dataclass(frozen=True)
class MaturityPayout:
    """Amount credited at maturity and its profit part."""

    payout: Decimal
    profit: Decimal
    reason: str
    product_type: ProductType

    @property
    def pays_referrals(self) -> bool:
        """Only high-yield profit is distributed to the upline."""
        return self.product_type == ProductType.HIGH and self.profit > 0


def parse_product_type(robot_type: str) -> ProductType:
    """
    Convert a stored robot_type to ProductType.

    Raises:
        ConfigurationError: If the type is unknown
    """
    try:
        return ProductType(robot_type)
    except ValueError as e:
        raise ConfigurationError(f"Unknown robot type: {robot_type!r}") from e


def calculate_maturity_payout(
    robot_type: str,
    price: Decimal,
    expected_return: Decimal,
    is_quantified: bool,
    config: ProductConfig | None,
) -> MaturityPayout:
    """
    Decide the maturity payout of a position.

    - high: principal + profit when quantified, otherwise nothing (the
      profit and the principal are forfeited)
    - products with return_principal: principal only, quantified or not
    - anything else: nothing

    Args:
        robot_type: Stored product family
        price: Principal
        expected_return: Stored promised return (principal included)
        is_quantified: Quantification flag
        config: Product configuration

    Returns:
        MaturityPayout

    Raises:
        ConfigurationError: If config is missing or the type is unknown
    """
    product_type = parse_product_type(robot_type)
    if config is None:
        raise ConfigurationError(f"No product configuration for {robot_type} position")

    price = to_decimal(price)

    if product_type == ProductType.HIGH:
        if not is_quantified:
            return MaturityPayout(ZERO, ZERO, REASON_NOT_QUANTIFIED, product_type)

        payout = to_decimal(expected_return)
        if payout <= 0:
            payout = calculate_expected_return(config, price)
        payout = quantize_money(payout)
        profit = max(payout - price, ZERO)
        return MaturityPayout(payout, profit, REASON_QUANTIFIED_RETURN, product_type)

    if config.return_principal:
        return MaturityPayout(
            quantize_money(price), ZERO, REASON_PRINCIPAL_REFUND, product_type
        )

    return MaturityPayout(ZERO, ZERO, REASON_NO_REFUND, product_type)


def calculate_cancel_refund(
    robot_type: str, price: Decimal, expected_return: Decimal
) -> Decimal:
    """
    Refund paid when an admin cancels a position with refund.

    High-yield and DEX positions refund the promised return when one is
    recorded, every other product refunds the principal.
    """
    product_type = parse_product_type(robot_type)
    price = to_decimal(price)
    expected = to_decimal(expected_return)

    if product_type in (ProductType.HIGH, ProductType.DEX) and expected > 0:
        return quantize_money(expected)
    return quantize_money(price)
