"""
Balance auditor.

Recomputes a wallet's expected balance from every ledger source and
compares it with the stored aggregate.

Report-only mode never writes. Repair mode is asymmetric: a negative
expected balance means the sources do not explain the stored balance,
so the gap is recorded in manual_adjustment and the balance is left
alone; a non-negative expected balance overwrites the stored one. Both
are conditional on the stored balance still being the one that was
read, so a credit landing mid-audit is never erased.
"""

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.settings import settings
from app.repositories.ledger_record_repository import (
    DepositRecordRepository,
    PromoCreditRepository,
    WithdrawRecordRepository,
)
from app.repositories.referral_reward_repository import (
    ReferralRewardRepository,
)
from app.repositories.robot_purchase_repository import RobotPurchaseRepository
from app.repositories.team_dividend_repository import TeamDividendRepository
from app.repositories.user_balance_repository import UserBalanceRepository
from app.services.base_service import BaseService, log_operation
from app.services.reconciliation.drift_report import (
    ACTION_OVERWRITE_BALANCE,
    ACTION_RECORD_SHORTFALL,
    ERROR_CHANGED_CONCURRENTLY,
    AuditSummary,
    BalanceBreakdown,
    DriftReport,
)
from app.utils.exceptions import LedgerError, LedgerUnavailableError
from app.utils.money import ZERO, to_decimal, within_epsilon
from app.utils.validation import normalize_wallet_address


class BalanceAuditor(BaseService):
    """
    Balance reconciliation auditor.

    Example:
        auditor = BalanceAuditor(session)
        summary = await auditor.audit_all(repair=False)
    """

    def __init__(
        self,
        session: AsyncSession,
        epsilon: Decimal | None = None,
        include_promo_credits: bool | None = None,
    ) -> None:
        """
        Initialize auditor.

        Args:
            session: Async database session
            epsilon: Drift tolerance (defaults to settings.balance_epsilon)
            include_promo_credits: Count promo credits as income
                (defaults to settings.reconcile_include_promo_credits)
        """
        super().__init__(session)
        self.epsilon = epsilon if epsilon is not None else settings.balance_epsilon
        self.include_promo_credits = (
            include_promo_credits
            if include_promo_credits is not None
            else settings.reconcile_include_promo_credits
        )
        self.balance_repo = UserBalanceRepository(session)
        self.deposit_repo = DepositRecordRepository(session)
        self.withdraw_repo = WithdrawRecordRepository(session)
        self.purchase_repo = RobotPurchaseRepository(session)
        self.reward_repo = ReferralRewardRepository(session)
        self.dividend_repo = TeamDividendRepository(session)
        self.promo_repo = PromoCreditRepository(session)

    async def compute_breakdown(
        self, wallet_address: str, manual_adjustment: Decimal
    ) -> BalanceBreakdown:
        """
        Sum every ledger source of a wallet.

        Args:
            wallet_address: Normalized wallet
            manual_adjustment: Stored manual adjustment

        Returns:
            BalanceBreakdown
        """
        purchases, payouts = await self.purchase_repo.get_totals_by_wallet(wallet_address)
        promo_credits = ZERO
        if self.include_promo_credits:
            promo_credits = await self.promo_repo.get_total(wallet_address)

        return BalanceBreakdown(
            deposits=await self.deposit_repo.get_completed_total(wallet_address),
            withdrawals=await self.withdraw_repo.get_completed_total(wallet_address),
            purchases=purchases,
            payouts=payouts,
            referral_rewards=await self.reward_repo.get_total_by_wallet(wallet_address),
            team_dividends=await self.dividend_repo.get_total_by_wallet(wallet_address),
            manual_adjustment=to_decimal(manual_adjustment),
            promo_credits=promo_credits,
            include_promo_credits=self.include_promo_credits,
        )

    async def audit_wallet(
        self, wallet_address: str, repair: bool = False
    ) -> DriftReport:
        """
        Audit one wallet.

        Args:
            wallet_address: Wallet to audit
            repair: Apply the repair action and counter fixes

        Returns:
            DriftReport

        Raises:
            LedgerError: Wallet has no balance row
        """
        wallet = normalize_wallet_address(wallet_address)
        fields = await self.balance_repo.get_ledger_fields(wallet)
        if fields is None:
            raise LedgerError(f"No balance row for {wallet}")

        actual = to_decimal(fields.usdt_balance)
        breakdown = await self.compute_breakdown(wallet, fields.manual_adjustment)
        expected = breakdown.expected
        has_drift = not within_epsilon(actual, expected, self.epsilon)

        counter_fixes: dict[str, Decimal] = {}
        if not within_epsilon(fields.total_deposit, breakdown.deposits, self.epsilon):
            counter_fixes["total_deposit"] = breakdown.deposits
        if not within_epsilon(fields.total_withdraw, breakdown.withdrawals, self.epsilon):
            counter_fixes["total_withdraw"] = breakdown.withdrawals

        action = None
        if has_drift:
            action = ACTION_RECORD_SHORTFALL if expected < 0 else ACTION_OVERWRITE_BALANCE

        report = DriftReport(
            wallet_address=wallet,
            actual=actual,
            expected=expected,
            breakdown=breakdown,
            has_drift=has_drift,
            action=action,
            counter_fixes=counter_fixes,
        )

        if has_drift:
            self.logger.warning(
                f"Balance drift {wallet}: stored {actual}, expected {expected} "
                f"(drift {report.drift})",
                extra={"wallet": wallet, "action": action},
            )

        if repair and report.needs_repair:
            report.repaired = await self._repair(report)

        return report

    async def _repair(self, report: DriftReport) -> bool:
        wallet = report.wallet_address

        # Both balance actions only apply while the stored balance is still
        # the one the expected value was computed against
        applied = True
        if report.action == ACTION_RECORD_SHORTFALL:
            # Record the unexplained part so that expected == stored
            applied = await self.balance_repo.add_manual_adjustment(
                wallet, report.drift, expected_balance=report.actual
            )
        elif report.action == ACTION_OVERWRITE_BALANCE:
            applied = await self.balance_repo.compare_and_set_balance(
                wallet, report.actual, report.expected
            )

        if not applied:
            await self.rollback()
            report.error = ERROR_CHANGED_CONCURRENTLY
            self.logger.warning(
                f"Balance of {wallet} changed during the audit, repair skipped",
                extra={"wallet": wallet, "actual": str(report.actual)},
            )
            return False

        if report.counter_fixes:
            await self.balance_repo.set_fields(wallet, **report.counter_fixes)

        await self.commit()
        self.logger.info(
            f"Repaired {wallet}: {report.action or 'counters only'}",
            extra={
                "wallet": wallet,
                "actual": str(report.actual),
                "expected": str(report.expected),
                "counter_fixes": {k: str(v) for k, v in report.counter_fixes.items()},
            },
        )
        return True

    @log_operation
    async def audit_all(
        self, repair: bool = False, wallet_suffix: str | None = None
    ) -> AuditSummary:
        """
        Audit every wallet with a balance row.

        Args:
            repair: Apply repairs
            wallet_suffix: Only wallets ending with this suffix

        Returns:
            AuditSummary with the reports of drifted wallets

        Raises:
            LedgerUnavailableError: If the wallet list cannot be loaded
        """
        summary = AuditSummary()

        try:
            wallets = await self.balance_repo.get_wallets(wallet_suffix)
        except Exception as e:
            raise LedgerUnavailableError(f"Cannot load wallets: {e}") from e

        for wallet in wallets:
            try:
                report = await self.audit_wallet(wallet, repair=repair)
            except Exception as e:
                await self.rollback()
                self.logger.exception(f"Audit of {wallet} failed: {e}")
                summary.failed += 1
                summary.errors.append(f"{wallet}: {e}")
                continue

            summary.audited += 1
            if report.needs_repair:
                summary.reports.append(report)
            if report.has_drift:
                summary.drifted += 1
                summary.total_drift += report.drift
            if report.repaired:
                summary.repaired += 1
            if report.error == ERROR_CHANGED_CONCURRENTLY:
                summary.changed_concurrently += 1

        self.logger.info(
            f"Audit: {summary.audited} wallets, {summary.drifted} drifted, "
            f"{summary.repaired} repaired, {summary.failed} failed",
            extra={
                "repair": repair,
                "total_drift": str(summary.total_drift),
                "changed_concurrently": summary.changed_concurrently,
            },
        )
        return summary
