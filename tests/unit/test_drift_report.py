"""
Unit tests for reconciliation report types.
"""

from decimal import Decimal

from app.services.reconciliation.drift_report import (
    ACTION_OVERWRITE_BALANCE,
    BalanceBreakdown,
    DriftReport,
)


class TestBalanceBreakdown:
    """Test the expected balance formula."""

    def test_expected(self):
        breakdown = BalanceBreakdown(
            deposits=Decimal("1000"),
            withdrawals=Decimal("200"),
            purchases=Decimal("500"),
            payouts=Decimal("300"),
            referral_rewards=Decimal("10"),
            team_dividends=Decimal("5"),
            manual_adjustment=Decimal("-15"),
            promo_credits=Decimal("50"),
        )

        assert breakdown.expected == Decimal("600")

    def test_promo_credits_counted_when_enabled(self):
        breakdown = BalanceBreakdown(
            deposits=Decimal("100"),
            promo_credits=Decimal("50"),
            include_promo_credits=True,
        )

        assert breakdown.expected == Decimal("150")

    def test_empty(self):
        assert BalanceBreakdown().expected == Decimal("0")


class TestDriftReport:
    """Test report properties."""

    def _report(self, **overrides) -> DriftReport:
        values = {
            "wallet_address": "0x" + "1" * 40,
            "actual": Decimal("120"),
            "expected": Decimal("100"),
            "breakdown": BalanceBreakdown(deposits=Decimal("100")),
            "has_drift": True,
            "action": ACTION_OVERWRITE_BALANCE,
        }
        values.update(overrides)
        return DriftReport(**values)

    def test_drift_is_stored_minus_expected(self):
        assert self._report().drift == Decimal("20")

    def test_needs_repair_on_drift(self):
        assert self._report().needs_repair

    def test_needs_repair_on_counter_only(self):
        report = self._report(
            actual=Decimal("100"),
            has_drift=False,
            action=None,
            counter_fixes={"total_deposit": Decimal("100")},
        )

        assert report.needs_repair

    def test_clean(self):
        report = self._report(actual=Decimal("100"), has_drift=False, action=None)

        assert not report.needs_repair
