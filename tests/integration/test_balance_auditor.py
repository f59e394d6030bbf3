"""
Integration tests for balance reconciliation.

Tests cover:
- Report-only audits never write
- Overwrite and shortfall repairs, skipped when the balance moved
- Counter fixes
- Promo credit toggle
"""

from decimal import Decimal

import pytest

from app.models.enums import PositionStatus, RecordStatus
from app.services.reconciliation.balance_auditor import BalanceAuditor
from app.services.reconciliation.drift_report import (
    ACTION_OVERWRITE_BALANCE,
    ACTION_RECORD_SHORTFALL,
    ERROR_CHANGED_CONCURRENTLY,
)
from app.utils.exceptions import LedgerError


EPSILON = Decimal("0.01")


def make_auditor(session, include_promo_credits=False) -> BalanceAuditor:
    return BalanceAuditor(
        session, epsilon=EPSILON, include_promo_credits=include_promo_credits
    )


def credit_during_audit(auditor, session, wallet_address, amount) -> None:
    """Credit the wallet between the balance read and the repair."""
    original = auditor.compute_breakdown

    async def compute_then_credit(*args, **kwargs):
        breakdown = await original(*args, **kwargs)
        await auditor.balance_repo.credit(wallet_address, amount)
        await session.commit()
        return breakdown

    auditor.compute_breakdown = compute_then_credit


class TestAuditWallet:
    """Test single wallet audits."""

    @pytest.mark.asyncio
    async def test_breakdown(self, session, ledger, wallet):
        await ledger.balance(wallet(1), usdt="600", total_deposit=Decimal("1000"))
        await ledger.deposit(wallet(1), "1000")
        await ledger.position(wallet(1), status=PositionStatus.EXPIRED, payout_amount="100")
        await ledger.position(wallet(1), robot_name="OKX Ai Bot")

        report = await make_auditor(session).audit_wallet(wallet(1))

        assert report.expected == Decimal("700")
        assert report.has_drift is True
        assert report.breakdown.purchases == Decimal("400")
        assert report.breakdown.payouts == Decimal("100")

    @pytest.mark.asyncio
    async def test_no_drift(self, session, ledger, wallet):
        await ledger.balance(wallet(1), usdt="700", total_deposit=Decimal("1000"))
        await ledger.deposit(wallet(1), "1000")
        await ledger.deposit(wallet(1), "250", status=RecordStatus.PENDING)
        await ledger.position(wallet(1), status=PositionStatus.EXPIRED, payout_amount="100")
        await ledger.position(wallet(1), robot_name="OKX Ai Bot")

        report = await make_auditor(session).audit_wallet(wallet(1))

        assert report.has_drift is False
        assert report.action is None
        assert not report.needs_repair

    @pytest.mark.asyncio
    async def test_unknown_wallet_raises(self, session, wallet):
        with pytest.raises(LedgerError):
            await make_auditor(session).audit_wallet(wallet(1))

    @pytest.mark.asyncio
    async def test_report_only_never_writes(self, session, ledger, wallet):
        await ledger.balance(wallet(1), usdt="1050", total_deposit=Decimal("1000"))
        await ledger.deposit(wallet(1), "1000")
        auditor = make_auditor(session)

        first = await auditor.audit_wallet(wallet(1))
        second = await auditor.audit_wallet(wallet(1))

        assert first.drift == Decimal("50")
        assert first.action == ACTION_OVERWRITE_BALANCE
        assert first.repaired is False
        assert second.drift == first.drift
        assert second.breakdown == first.breakdown
        assert await ledger.get_balance(wallet(1)) == Decimal("1050")

    @pytest.mark.asyncio
    async def test_drift_within_epsilon(self, session, ledger, wallet):
        await ledger.balance(wallet(1), usdt="1000.005", total_deposit=Decimal("1000"))
        await ledger.deposit(wallet(1), "1000")

        report = await make_auditor(session).audit_wallet(wallet(1))

        assert report.has_drift is False


class TestRepair:
    """Test repair mode."""

    @pytest.mark.asyncio
    async def test_overwrite_balance(self, session, ledger, wallet):
        await ledger.balance(wallet(1), usdt="1050", total_deposit=Decimal("1000"))
        await ledger.deposit(wallet(1), "1000")
        auditor = make_auditor(session)

        report = await auditor.audit_wallet(wallet(1), repair=True)

        assert report.repaired is True
        assert await ledger.get_balance(wallet(1)) == Decimal("1000")
        assert not (await auditor.audit_wallet(wallet(1))).has_drift

    @pytest.mark.asyncio
    async def test_shortfall_recorded_as_manual_adjustment(self, session, ledger, wallet):
        # Stored 50, but the sources only explain a purchase: expected -100
        await ledger.balance(wallet(1), usdt="50")
        await ledger.position(wallet(1))
        auditor = make_auditor(session)

        report = await auditor.audit_wallet(wallet(1), repair=True)

        assert report.expected == Decimal("-100")
        assert report.action == ACTION_RECORD_SHORTFALL
        assert report.drift == Decimal("150")
        assert await ledger.get_balance(wallet(1)) == Decimal("50")
        assert await ledger.get_manual_adjustment(wallet(1)) == Decimal("150")

        after = await auditor.audit_wallet(wallet(1))
        assert after.expected == Decimal("50")
        assert after.has_drift is False

    @pytest.mark.asyncio
    async def test_overwrite_skipped_when_balance_changed(self, session, ledger, wallet):
        await ledger.balance(wallet(1), usdt="1050", total_deposit=Decimal("1000"))
        await ledger.deposit(wallet(1), "1000")
        auditor = make_auditor(session)
        credit_during_audit(auditor, session, wallet(1), Decimal("5"))

        report = await auditor.audit_wallet(wallet(1), repair=True)

        assert report.action == ACTION_OVERWRITE_BALANCE
        assert report.repaired is False
        assert report.error == ERROR_CHANGED_CONCURRENTLY
        assert await ledger.get_balance(wallet(1)) == Decimal("1055")

    @pytest.mark.asyncio
    async def test_shortfall_skipped_when_balance_changed(self, session, ledger, wallet):
        await ledger.balance(wallet(1), usdt="50")
        await ledger.position(wallet(1))
        auditor = make_auditor(session)
        credit_during_audit(auditor, session, wallet(1), Decimal("5"))

        report = await auditor.audit_wallet(wallet(1), repair=True)

        assert report.action == ACTION_RECORD_SHORTFALL
        assert report.repaired is False
        assert report.error == ERROR_CHANGED_CONCURRENTLY
        assert await ledger.get_balance(wallet(1)) == Decimal("55")
        assert await ledger.get_manual_adjustment(wallet(1)) == Decimal("0")

    @pytest.mark.asyncio
    async def test_mixed_case_balance_row(self, session, ledger, sample_wallet_address):
        await ledger.balance(
            sample_wallet_address, usdt="1050", total_deposit=Decimal("1000")
        )
        await ledger.deposit(sample_wallet_address.lower(), "1000")
        auditor = make_auditor(session)

        report = await auditor.audit_wallet(sample_wallet_address, repair=True)

        assert report.repaired is True
        assert await ledger.balance_rows() == [
            (sample_wallet_address, Decimal("1000"), False)
        ]

    @pytest.mark.asyncio
    async def test_counter_fixes(self, session, ledger, wallet):
        await ledger.balance(
            wallet(1),
            usdt="800",
            total_deposit=Decimal("0"),
            total_withdraw=Decimal("0"),
        )
        await ledger.deposit(wallet(1), "1000")
        await ledger.withdraw(wallet(1), "200")
        auditor = make_auditor(session)

        report = await auditor.audit_wallet(wallet(1), repair=True)

        assert report.has_drift is False
        assert report.counter_fixes == {
            "total_deposit": Decimal("1000"),
            "total_withdraw": Decimal("200"),
        }
        assert report.repaired is True
        fields = await auditor.balance_repo.get_ledger_fields(wallet(1))
        assert Decimal(str(fields.total_deposit)) == Decimal("1000")
        assert Decimal(str(fields.total_withdraw)) == Decimal("200")


class TestPromoCredits:
    """Test the promo credit toggle."""

    @pytest.mark.asyncio
    async def test_excluded_by_default(self, session, ledger, wallet):
        await ledger.balance(wallet(1), usdt="1050", total_deposit=Decimal("1000"))
        await ledger.deposit(wallet(1), "1000")
        await ledger.promo(wallet(1), "50")

        excluded = await make_auditor(session).audit_wallet(wallet(1))
        included = await make_auditor(session, include_promo_credits=True).audit_wallet(wallet(1))

        assert excluded.has_drift is True
        assert included.has_drift is False
        assert included.breakdown.promo_credits == Decimal("50")


class TestAuditAll:
    """Test full audits."""

    @pytest.mark.asyncio
    async def test_summary(self, session, ledger, wallet):
        await ledger.balance(wallet(1), usdt="1000", total_deposit=Decimal("1000"))
        await ledger.deposit(wallet(1), "1000")
        await ledger.balance(wallet(2), usdt="30", total_deposit=Decimal("0"))

        summary = await make_auditor(session).audit_all()

        assert summary.audited == 2
        assert summary.drifted == 1
        assert summary.repaired == 0
        assert summary.total_drift == Decimal("30")
        assert [r.wallet_address for r in summary.reports] == [wallet(2)]

    @pytest.mark.asyncio
    async def test_repair_then_clean(self, session, ledger, wallet):
        await ledger.balance(wallet(1), usdt="30")
        await ledger.balance(wallet(2), usdt="0")
        auditor = make_auditor(session)

        repaired = await auditor.audit_all(repair=True)
        clean = await auditor.audit_all()

        assert repaired.repaired == 1
        assert clean.drifted == 0
        assert await ledger.get_balance(wallet(1)) == Decimal("0")

    @pytest.mark.asyncio
    async def test_wallet_suffix(self, session, ledger, wallet):
        await ledger.balance(wallet(1), usdt="10")
        await ledger.balance(wallet(2), usdt="20")

        summary = await make_auditor(session).audit_all(wallet_suffix=wallet(2)[-6:])

        assert summary.audited == 1
        assert summary.reports[0].wallet_address == wallet(2)
