"""
End-to-end ledger scenarios through LedgerOrchestrator.

A sale to P1 is invoiced and collected in January.  In February P1 both buys
from and sells to us, and the two positions are netted.  Every figure is
checked against the journal, the general ledger, the trial balance and the
netting report.
"""

from datetime import date

import pytest

from ledger_kernel.domain.clock import DeterministicClock
from ledger_kernel.domain.period import Period
from ledger_kernel.domain.values import VoucherStatus, VoucherType
from ledger_kernel.exceptions import StateError, UnbalancedLineError, UnbalancedVoucherError
from ledger_kernel.services.ledger_orchestrator import LedgerOrchestrator

JANUARY = Period.for_month(2025, 1)
FEBRUARY = Period.for_month(2025, 2)
YEAR_2025 = Period(date(2025, 1, 1), date(2025, 12, 31))


@pytest.fixture
def ledger(seeded_file_ledger):
    return seeded_file_ledger


@pytest.fixture
def orchestrator(ledger):
    return LedgerOrchestrator(ledger.session_factory, clock=DeterministicClock())


def post(orchestrator, ledger, voucher_date, voucher_type, *specs, description=None):
    draft = orchestrator.create_voucher(
        voucher_date, voucher_type, ledger.lines(*specs), "clerk", description=description
    )
    return orchestrator.approve(draft.id, "controller")


@pytest.fixture
def january(orchestrator, ledger):
    invoice = post(
        orchestrator, ledger, date(2025, 1, 10), "SALES",
        ("1100", 352000, 0, "P1"), ("4100", 0, 320000), ("2400", 0, 32000),
        description="Invoice 1001",
    )
    collection = post(
        orchestrator, ledger, date(2025, 1, 20), "RECEIPT",
        ("1020", 352000, 0), ("1100", 0, 352000, "P1"),
        description="Payment for invoice 1001",
    )
    return invoice, collection


class TestInvoiceAndCollection:
    def test_invoice_opens_receivable(self, orchestrator, ledger, january):
        [position] = orchestrator.netting(Period(date(2025, 1, 1), date(2025, 1, 15)),
                                          ledger.partners["P1"].id)
        assert (position.receivable, position.payable, position.net_amount) == (352000, 0, 352000)

    def test_collection_clears_receivable(self, orchestrator, ledger, january):
        [position] = orchestrator.netting(JANUARY, ledger.partners["P1"].id)
        assert (position.receivable, position.payable, position.net_amount) == (0, 0, 0)
        assert [d.voucher_type for d in position.details] == [VoucherType.SALES, VoucherType.RECEIPT]

    def test_journal_in_posting_order(self, orchestrator, january):
        rows = orchestrator.journal(JANUARY)
        assert [(r.voucher_no, r.line_no) for r in rows] == [
            ("VOU-2025-00001", 1), ("VOU-2025-00001", 2), ("VOU-2025-00001", 3),
            ("VOU-2025-00002", 1), ("VOU-2025-00002", 2),
        ]

    def test_bank_ledger_carries_into_next_month(self, orchestrator, ledger, january):
        bank = ledger.accounts["1020"].id
        assert orchestrator.ledger(bank, JANUARY).closing_balance == 352000
        february = orchestrator.ledger(bank, FEBRUARY)
        assert february.opening_balance == 352000
        assert february.entries == ()

    def test_every_voucher_balances(self, orchestrator, january):
        for voucher in orchestrator.list_vouchers(period=JANUARY):
            assert voucher.total_debit == voucher.total_credit
            assert sum(line.debit_amount for line in voucher.lines) == voucher.total_debit
            assert sum(line.credit_amount for line in voucher.lines) == voucher.total_credit
            assert all((line.debit_amount > 0) != (line.credit_amount > 0) for line in voucher.lines)


class TestMonthEndNetting:
    @pytest.fixture
    def february(self, orchestrator, ledger, january):
        post(orchestrator, ledger, date(2025, 2, 5), "PURCHASE",
             ("1200", 200000, 0), ("2100", 0, 200000, "P1"))
        post(orchestrator, ledger, date(2025, 2, 6), "SALES",
             ("1100", 300000, 0, "P1"), ("4100", 0, 300000))

    def test_adjustment_moves_both_sides(self, orchestrator, ledger, february):
        p1 = ledger.partners["P1"].id
        [before] = orchestrator.netting(FEBRUARY, p1)
        assert (before.receivable, before.payable, before.net_amount) == (300000, 200000, 100000)

        adjustment = orchestrator.record_netting_adjustment(
            p1, 100_00, date(2025, 2, 28), "x", "controller"
        )

        [after] = orchestrator.netting(FEBRUARY, p1)
        assert after.receivable == before.receivable - 10000
        assert after.payable == before.payable - 10000
        assert after.net_amount == before.net_amount

        companion = orchestrator.get_voucher(adjustment.voucher_id)
        assert companion.voucher_type == VoucherType.NETTING
        assert companion.status == VoucherStatus.APPROVED

    def test_reports_agree_with_netting(self, orchestrator, ledger, february):
        p1 = ledger.partners["P1"].id
        orchestrator.record_netting_adjustment(p1, 50000, date(2025, 2, 28), None, "controller")

        [position] = orchestrator.netting(YEAR_2025, p1)
        tagged = [row for row in orchestrator.journal(YEAR_2025) if row.partner_id == p1]
        receivable = sum(r.debit - r.credit for r in tagged if r.account_code == "1100")
        payable = sum(r.credit - r.debit for r in tagged if r.account_code == "2100")
        assert (position.receivable, position.payable) == (receivable, payable)

        trial_balance = orchestrator.trial_balance(YEAR_2025)
        assert trial_balance.is_balanced
        balances = {row.account_code: row.balance for row in trial_balance.rows}
        assert balances["1100"] == receivable
        assert balances["2100"] == payable

    def test_reads_are_repeatable(self, orchestrator, february):
        assert orchestrator.netting(YEAR_2025) == orchestrator.netting(YEAR_2025)
        assert orchestrator.trial_balance(YEAR_2025) == orchestrator.trial_balance(YEAR_2025)
        assert orchestrator.journal(FEBRUARY) == orchestrator.journal(FEBRUARY)


class TestRejectedPostings:
    def test_unbalanced_voucher(self, orchestrator, ledger):
        with pytest.raises(UnbalancedVoucherError):
            orchestrator.create_voucher(
                date(2025, 1, 10), "TRANSFER",
                ledger.lines(("1010", 100, 0), ("3100", 0, 50)), "clerk",
            )

    def test_two_sided_line(self, orchestrator, ledger):
        with pytest.raises(UnbalancedLineError):
            orchestrator.create_voucher(
                date(2025, 1, 10), "TRANSFER",
                ledger.lines(("1010", 100, 50), ("3100", 0, 50)), "clerk",
            )

    def test_second_approval(self, orchestrator, ledger):
        draft = orchestrator.create_voucher(
            date(2025, 1, 10), "TRANSFER",
            ledger.lines(("1010", 100, 0), ("3100", 0, 100)), "clerk",
        )
        orchestrator.approve(draft.id, "controller")
        with pytest.raises(StateError):
            orchestrator.approve(draft.id, "controller")
        assert orchestrator.get_voucher(draft.id).status == VoucherStatus.APPROVED
