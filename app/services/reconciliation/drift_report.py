"""
Drift report types.

Plain value objects; two audits of an unchanged ledger produce equal
reports.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from app.utils.money import ZERO


# Repair actions
ACTION_OVERWRITE_BALANCE = "overwrite_balance"
ACTION_RECORD_SHORTFALL = "record_shortfall"

# Repair skipped: the stored balance moved between read and write
ERROR_CHANGED_CONCURRENTLY = "changed_concurrently"


@dataclass(frozen=True)
class BalanceBreakdown:
    """
    Per-source contributions to a wallet's expected balance.

    expected = deposits - withdrawals - purchases + payouts
             + referral_rewards + team_dividends + manual_adjustment
             [+ promo_credits when include_promo_credits]
    """

    deposits: Decimal = ZERO
    withdrawals: Decimal = ZERO
    purchases: Decimal = ZERO
    payouts: Decimal = ZERO
    referral_rewards: Decimal = ZERO
    team_dividends: Decimal = ZERO
    manual_adjustment: Decimal = ZERO
    promo_credits: Decimal = ZERO
    include_promo_credits: bool = False

    @property
    def expected(self) -> Decimal:
        """Balance implied by the ledger sources."""
        total = (
            self.deposits
            - self.withdrawals
            - self.purchases
            + self.payouts
            + self.referral_rewards
            + self.team_dividends
            + self.manual_adjustment
        )
        if self.include_promo_credits:
            total += self.promo_credits
        return total


@dataclass
class DriftReport:
    """Audit outcome of one wallet."""

    wallet_address: str
    actual: Decimal
    expected: Decimal
    breakdown: BalanceBreakdown
    has_drift: bool
    action: str | None = None
    counter_fixes: dict[str, Decimal] = field(default_factory=dict)
    repaired: bool = False
    error: str | None = None

    @property
    def drift(self) -> Decimal:
        """Stored minus expected."""
        return self.actual - self.expected

    @property
    def needs_repair(self) -> bool:
        """Balance drifted or a counter disagrees with its feed."""
        return self.has_drift or bool(self.counter_fixes)


@dataclass
class AuditSummary:
    """Audit outcome of a set of wallets."""

    audited: int = 0
    drifted: int = 0
    repaired: int = 0
    failed: int = 0
    changed_concurrently: int = 0
    total_drift: Decimal = ZERO
    reports: list[DriftReport] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
