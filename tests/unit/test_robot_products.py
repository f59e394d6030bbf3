"""
Unit tests for the robot product catalog.
"""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from app.config.robot_products import (
    ROBOT_PRODUCTS,
    ProductType,
    calculate_end_time,
    calculate_expected_return,
    get_product,
    resolve_price,
)


H1 = ROBOT_PRODUCTS["Binance High Robot-H1"]
H2 = ROBOT_PRODUCTS["Binance High Robot-H2"]
CEX = ROBOT_PRODUCTS["Coinbase Ai Bot"]


class TestCatalog:
    """Test catalog lookups."""

    def test_get_product(self):
        assert get_product("Coinbase Ai Bot") is CEX
        assert get_product("Unknown Bot") is None
        assert get_product(None) is None

    def test_only_high_products_are_variable(self):
        for config in ROBOT_PRODUCTS.values():
            assert (config.price is None) == (config.product_type == ProductType.HIGH)

    def test_high_products_keep_no_principal(self):
        assert all(
            not config.return_principal
            for config in ROBOT_PRODUCTS.values()
            if config.product_type == ProductType.HIGH
        )


class TestResolvePrice:
    """Test price resolution."""

    def test_fixed_price_ignores_amount(self):
        assert resolve_price(CEX, Decimal("5")) == Decimal("100")

    def test_variable_within_corridor(self):
        assert resolve_price(H2, Decimal("1000")) == Decimal("1000")

    @pytest.mark.parametrize("amount", [None, Decimal("99.99"), Decimal("100000.01")])
    def test_variable_rejected(self, amount):
        with pytest.raises(ValueError):
            resolve_price(H2, amount)


class TestExpectedReturn:
    """Test promised returns."""

    def test_high_return(self):
        # 3 days at 0.8%
        assert calculate_expected_return(H2, Decimal("1000")) == Decimal("1024.0000")

    def test_profit_capped_at_half_principal(self):
        config = H1._replace(duration_hours=24 * 40, daily_profit=Decimal("2.0"))

        assert calculate_expected_return(config, Decimal("1000")) == Decimal("1500.0000")

    def test_daily_rate_clamped(self):
        config = H1._replace(daily_profit=Decimal("5"))

        assert calculate_expected_return(config, Decimal("1000")) == Decimal("1020.0000")

    def test_other_products_return_principal(self):
        assert calculate_expected_return(CEX, Decimal("100")) == Decimal("100")

    def test_end_time(self):
        start = datetime(2026, 10, 16, tzinfo=UTC)

        assert calculate_end_time(CEX, start) == start + timedelta(hours=72)
