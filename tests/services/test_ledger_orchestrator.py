"""
LedgerOrchestrator tests.

The orchestrator owns transaction boundaries, so these tests run against a
real file-backed database where every call commits (or rolls back) on its
own.
"""

from datetime import date

import pytest
from sqlalchemy import event

from ledger_kernel.domain.authorization import deny_self_approval
from ledger_kernel.domain.clock import DeterministicClock
from ledger_kernel.domain.period import Period
from ledger_kernel.domain.values import VoucherStatus
from ledger_kernel.exceptions import (
    AuthorizationError,
    UnbalancedVoucherError,
    VoucherNumberConflictError,
)
from ledger_kernel.services.ledger_orchestrator import LedgerOrchestrator
from ledger_kernel.services.sequence_service import SequenceService
from ledger_kernel.services.voucher_service import VoucherService

JANUARY = Period.for_month(2025, 1)


@pytest.fixture
def orchestrator(seeded_file_ledger):
    return LedgerOrchestrator(
        seeded_file_ledger.session_factory,
        clock=DeterministicClock(),
        receivable_account_code="1100",
        payable_account_code="2100",
    )


def test_retry_attempts_must_be_positive():
    with pytest.raises(ValueError):
        LedgerOrchestrator(None, numbering_retry_attempts=0)


class TestLifecycle:
    def test_create_approve_confirm_commit(self, orchestrator, seeded_file_ledger):
        lines = seeded_file_ledger.lines(("1010", 1000, 0), ("3100", 0, 1000))
        draft = orchestrator.create_voucher(date(2025, 1, 3), "RECEIPT", lines, "alice")
        orchestrator.approve(draft.id, "bob")
        orchestrator.confirm(draft.id, "bob")

        stored = orchestrator.get_voucher(draft.id)
        assert stored.status == VoucherStatus.CONFIRMED
        assert stored.voucher_no == "VOU-2025-00001"

    def test_failed_call_leaves_no_trace(self, orchestrator, seeded_file_ledger, captured_logs):
        with pytest.raises(UnbalancedVoucherError):
            orchestrator.create_voucher(
                date(2025, 1, 3), "TRANSFER",
                seeded_file_ledger.lines(("1010", 1000, 0), ("3100", 0, 999)),
                "alice",
            )
        assert orchestrator.list_vouchers() == []
        assert any(r["message"] == "transaction_rolled_back" for r in captured_logs())

    def test_cancel_and_update(self, orchestrator, seeded_file_ledger):
        lines = seeded_file_ledger.lines(("1010", 10, 0), ("3100", 0, 10))
        first = orchestrator.create_voucher(date(2025, 1, 3), "TRANSFER", lines, "alice")
        second = orchestrator.create_voucher(date(2025, 1, 4), "TRANSFER", lines, "alice")

        orchestrator.cancel(first.id, "alice")
        updated = orchestrator.update_draft(
            second.id,
            seeded_file_ledger.lines(("1020", 25, 0), ("3100", 0, 25)),
            "alice",
            description="corrected",
        )

        assert [v.voucher_no for v in orchestrator.list_vouchers()] == ["VOU-2025-00002"]
        assert updated.total_debit == 25

    def test_reverse_restores_balances(self, orchestrator, seeded_file_ledger):
        lines = seeded_file_ledger.lines(("5200", 3000, 0), ("1020", 0, 3000))
        original = orchestrator.create_voucher(date(2025, 1, 25), "PAYMENT", lines, "alice")
        orchestrator.approve(original.id, "bob")
        reversal = orchestrator.reverse(original.id, date(2025, 1, 31), "alice")
        orchestrator.approve(reversal.id, "bob")

        bank = seeded_file_ledger.accounts["1020"]
        assert orchestrator.ledger(bank.id, JANUARY).closing_balance == 0
        assert orchestrator.trial_balance(JANUARY).is_balanced

    def test_authorizer_is_applied(self, seeded_file_ledger):
        orchestrator = LedgerOrchestrator(
            seeded_file_ledger.session_factory,
            clock=DeterministicClock(),
            authorizer=deny_self_approval,
        )
        draft = orchestrator.create_voucher(
            date(2025, 1, 3), "TRANSFER",
            seeded_file_ledger.lines(("1010", 10, 0), ("3100", 0, 10)),
            "alice",
        )
        with pytest.raises(AuthorizationError):
            orchestrator.approve(draft.id, "alice")
        assert orchestrator.get_voucher(draft.id).status == VoucherStatus.DRAFT


def conflict_once(monkeypatch) -> list:
    """Make the next VoucherService.create_voucher call lose the numbering race."""
    real_create = VoucherService.create_voucher
    calls = []

    def flaky_create(self, *args, **kwargs):
        calls.append(1)
        if len(calls) == 1:
            raise VoucherNumberConflictError(2025, "VOU-2025-00099")
        return real_create(self, *args, **kwargs)

    monkeypatch.setattr(VoucherService, "create_voucher", flaky_create)
    return calls


class TestNumberingRetry:
    def test_retries_after_conflict(self, orchestrator, seeded_file_ledger, monkeypatch, captured_logs):
        calls = conflict_once(monkeypatch)
        voucher = orchestrator.create_voucher(
            date(2025, 1, 3), "TRANSFER",
            seeded_file_ledger.lines(("1010", 10, 0), ("3100", 0, 10)),
            "alice",
        )

        assert len(calls) == 2
        assert voucher.voucher_no == "VOU-2025-00001"
        retries = [r for r in captured_logs() if r["message"] == "voucher_create_retry"]
        assert [r["attempt"] for r in retries] == [1]
        assert retries[0]["error_code"] == "VOUCHER_NUMBER_CONFLICT"

    def test_gives_up_after_last_attempt(self, orchestrator, seeded_file_ledger, captured_logs):
        lines = seeded_file_ledger.lines(("1010", 10, 0), ("3100", 0, 10))
        orchestrator.create_voucher(date(2025, 1, 3), "TRANSFER", lines, "alice")

        # Rewind the counter so every attempt re-allocates the taken number
        with seeded_file_ledger.session_factory() as sess, sess.begin():
            SequenceService(sess).reset("voucher:2025", 0)

        with pytest.raises(VoucherNumberConflictError):
            orchestrator.create_voucher(date(2025, 1, 4), "TRANSFER", lines, "alice")

        messages = [r["message"] for r in captured_logs()]
        assert messages.count("voucher_create_retry") == 2
        assert messages.count("voucher_create_retries_exhausted") == 1
        assert len(orchestrator.list_vouchers()) == 1

    def test_netting_adjustment_retried(self, orchestrator, seeded_file_ledger, monkeypatch, captured_logs):
        p1 = seeded_file_ledger.partners["P1"]
        calls = conflict_once(monkeypatch)

        adjustment = orchestrator.record_netting_adjustment(p1.id, 2000, date(2025, 1, 31), None, "alice")

        assert len(calls) == 2
        assert adjustment.amount == 2000
        assert len(orchestrator.list_vouchers(voucher_type="NETTING")) == 1
        retries = [r for r in captured_logs() if r["message"] == "voucher_create_retry"]
        assert [r["attempt"] for r in retries] == [1]

    def test_reverse_retried(self, orchestrator, seeded_file_ledger, monkeypatch, captured_logs):
        lines = seeded_file_ledger.lines(("5200", 3000, 0), ("1020", 0, 3000))
        original = orchestrator.create_voucher(date(2025, 1, 25), "PAYMENT", lines, "alice")
        orchestrator.approve(original.id, "bob")
        calls = conflict_once(monkeypatch)

        reversal = orchestrator.reverse(original.id, date(2025, 1, 31), "alice")

        assert len(calls) == 2
        assert reversal.reversal_of_id == original.id
        assert [r["message"] for r in captured_logs()].count("voucher_create_retry") == 1


class TestReportsAndLookups:
    def test_reports_over_committed_data(self, orchestrator, seeded_file_ledger):
        sale = orchestrator.create_voucher(
            date(2025, 1, 10), "SALES",
            seeded_file_ledger.lines(("1100", 352000, 0, "P1"), ("4100", 0, 320000), ("2400", 0, 32000)),
            "alice",
        )
        orchestrator.approve(sale.id, "bob")

        assert len(orchestrator.journal(JANUARY)) == 3
        assert [s.account_code for s in orchestrator.account_summaries(JANUARY)] == ["1100", "2400", "4100"]
        [p1] = orchestrator.netting(JANUARY)
        assert (p1.partner_code, p1.receivable, p1.payable) == ("P1", 352000, 0)

    def test_netting_adjustment(self, orchestrator, seeded_file_ledger):
        p1 = seeded_file_ledger.partners["P1"]
        for voucher_type, specs in (
            ("SALES", (("1100", 50000, 0, "P1"), ("4100", 0, 50000))),
            ("PURCHASE", (("1200", 20000, 0), ("2100", 0, 20000, "P1"))),
        ):
            v = orchestrator.create_voucher(date(2025, 1, 10), voucher_type, seeded_file_ledger.lines(*specs), "alice")
            orchestrator.approve(v.id, "bob")

        orchestrator.record_netting_adjustment(p1.id, 20000, date(2025, 1, 31), None, "alice")
        [position] = orchestrator.netting(JANUARY, p1.id)
        assert (position.receivable, position.payable, position.net_amount) == (30000, 0, 30000)

    def test_master_data_lookups(self, orchestrator):
        assert orchestrator.get_account_by_code("1100").name == "Accounts receivable"
        assert [a.code for a in orchestrator.list_accounts(account_type="REVENUE")] == ["4100"]
        assert [fy.year for fy in orchestrator.list_fiscal_years()] == [2025]


class TestTransactionModes:
    @pytest.fixture
    def begins(self, seeded_file_ledger):
        """BEGIN statements issued on the ledger engine, in order."""
        engine = seeded_file_ledger.session_factory.kw["bind"]
        statements = []

        def record(conn, cursor, statement, parameters, context, executemany):
            if statement.startswith("BEGIN"):
                statements.append(statement)

        event.listen(engine, "before_cursor_execute", record)
        yield statements
        event.remove(engine, "before_cursor_execute", record)

    def test_reports_use_deferred_begin(self, orchestrator, begins):
        orchestrator.trial_balance(JANUARY)
        orchestrator.netting(JANUARY)
        orchestrator.list_vouchers()
        assert begins == ["BEGIN", "BEGIN", "BEGIN"]

    def test_writes_use_immediate_begin(self, orchestrator, seeded_file_ledger, begins):
        orchestrator.create_voucher(
            date(2025, 1, 3), "TRANSFER", seeded_file_ledger.lines(("1010", 10, 0), ("3100", 0, 10)), "alice"
        )
        assert begins == ["BEGIN IMMEDIATE"]
