"""
Module: ledger_kernel.selectors.ledger_selector
Responsibility: General ledger per account, trial balance and per-account
    period summaries.  All figures are derived from posted voucher lines at
    query time; there are no stored balances.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Normal-balance arithmetic (domain.values.signed_movement):
      ASSET/EXPENSE += debit - credit; LIABILITY/EQUITY/REVENUE
      += credit - debit.
    - opening_balance of a period is the balance of everything posted
      strictly before period.start_date, so it equals the closing balance of
      the preceding period.
    - A trial balance is only ever returned balanced: total debits equal
      total credits.

Failure modes:
    - AccountNotFoundError: ledger() for an unknown account.
    - LedgerIntegrityError: trial balance totals differ.  Logged at ERROR
      and raised; the data is never corrected here.

Audit relevance:
    A raised LedgerIntegrityError means stored data is corrupt (someone wrote
    around VoucherService).  The report is withheld rather than rendered
    unbalanced.
"""

from dataclasses import dataclass
from datetime import date
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ledger_kernel.domain.period import Period
from ledger_kernel.domain.values import AccountType, VoucherType, signed_movement
from ledger_kernel.exceptions import AccountNotFoundError, LedgerIntegrityError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import AccountSubject
from ledger_kernel.models.voucher import Voucher, VoucherLine
from ledger_kernel.selectors.base import BaseSelector, posted_in

logger = get_logger("selectors.ledger")


@dataclass(frozen=True)
class LedgerEntry:
    """One posted line in an account ledger, with the running balance after it."""

    voucher_id: UUID
    voucher_no: str
    voucher_date: date
    voucher_type: VoucherType
    line_no: int
    description: str | None
    partner_id: UUID | None
    debit: int
    credit: int
    balance: int


@dataclass(frozen=True)
class AccountLedger:
    account_id: UUID
    account_code: str
    account_name: str
    account_type: AccountType
    period: Period
    opening_balance: int
    entries: tuple[LedgerEntry, ...]
    closing_balance: int
    debit_total: int
    credit_total: int


@dataclass(frozen=True)
class AccountSummary:
    """Per-account debit/credit totals over a period."""

    account_id: UUID
    account_code: str
    account_name: str
    account_type: AccountType
    debit_total: int
    credit_total: int

    @property
    def balance(self) -> int:
        """Net movement on the account's normal-balance side."""
        return signed_movement(self.account_type, self.debit_total, self.credit_total)


@dataclass(frozen=True)
class TrialBalance:
    period: Period
    rows: tuple[AccountSummary, ...]
    total_debit: int
    total_credit: int

    @property
    def is_balanced(self) -> bool:
        return self.total_debit == self.total_credit


class LedgerSelector(BaseSelector[VoucherLine]):
    """
    Selector for general ledger and trial balance.

    Guarantees:
        - No stored balances: every balance is computed from posted lines.
        - Integer arithmetic end to end.
        - Idempotent over unchanged data.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    def ledger(self, account_id: UUID, period: Period) -> AccountLedger:
        """
        General ledger of one account with opening and running balances.

        Raises:
            AccountNotFoundError: unknown account.
        """
        account = self.session.get(AccountSubject, account_id)
        if account is None:
            raise AccountNotFoundError(str(account_id))

        opening_debit, opening_credit = self.session.execute(
            select(
                func.coalesce(func.sum(VoucherLine.debit_amount), 0),
                func.coalesce(func.sum(VoucherLine.credit_amount), 0),
            )
            .join(Voucher, VoucherLine.voucher_id == Voucher.id)
            .where(
                *posted_in(None),
                Voucher.voucher_date < period.start_date,
                VoucherLine.account_subject_id == account_id,
            )
        ).one()
        opening_balance = signed_movement(
            account.account_type, int(opening_debit), int(opening_credit)
        )

        rows = self.session.execute(
            select(VoucherLine, Voucher)
            .join(Voucher, VoucherLine.voucher_id == Voucher.id)
            .where(*posted_in(period), VoucherLine.account_subject_id == account_id)
            .order_by(Voucher.voucher_date, Voucher.voucher_seq, VoucherLine.line_no)
        ).all()

        balance = opening_balance
        debit_total = 0
        credit_total = 0
        entries = []
        for line, voucher in rows:
            balance += signed_movement(
                account.account_type, line.debit_amount, line.credit_amount
            )
            debit_total += line.debit_amount
            credit_total += line.credit_amount
            entries.append(
                LedgerEntry(
                    voucher_id=voucher.id,
                    voucher_no=voucher.voucher_no,
                    voucher_date=voucher.voucher_date,
                    voucher_type=voucher.voucher_type,
                    line_no=line.line_no,
                    description=line.description or voucher.description,
                    partner_id=line.partner_id,
                    debit=line.debit_amount,
                    credit=line.credit_amount,
                    balance=balance,
                )
            )

        return AccountLedger(
            account_id=account.id,
            account_code=account.code,
            account_name=account.name,
            account_type=account.account_type,
            period=period,
            opening_balance=opening_balance,
            entries=tuple(entries),
            closing_balance=balance,
            debit_total=debit_total,
            credit_total=credit_total,
        )

    def _summaries(self, period: Period, active_only: bool = False) -> list[AccountSummary]:
        stmt = (
            select(
                AccountSubject,
                func.coalesce(func.sum(VoucherLine.debit_amount), 0),
                func.coalesce(func.sum(VoucherLine.credit_amount), 0),
            )
            .join(VoucherLine, VoucherLine.account_subject_id == AccountSubject.id)
            .join(Voucher, VoucherLine.voucher_id == Voucher.id)
            .where(*posted_in(period))
            .group_by(AccountSubject.id)
            .order_by(AccountSubject.code)
        )
        if active_only:
            stmt = stmt.where(AccountSubject.is_active.is_(True))

        return [
            AccountSummary(
                account_id=account.id,
                account_code=account.code,
                account_name=account.name,
                account_type=account.account_type,
                debit_total=int(debit_total),
                credit_total=int(credit_total),
            )
            for account, debit_total, credit_total in self.session.execute(stmt).all()
        ]

    def trial_balance(self, period: Period) -> TrialBalance:
        """
        Per-account debit and credit totals for ``period``, ordered by code.

        Raises:
            LedgerIntegrityError: total debits differ from total credits.
        """
        rows = self._summaries(period)
        total_debit = sum(row.debit_total for row in rows)
        total_credit = sum(row.credit_total for row in rows)

        if total_debit != total_credit:
            logger.error(
                "ledger_integrity_violation",
                extra={
                    "scope": "trial_balance",
                    "period": str(period),
                    "total_debit": total_debit,
                    "total_credit": total_credit,
                },
            )
            raise LedgerIntegrityError(
                f"trial balance {period}", total_debit, total_credit
            )

        return TrialBalance(
            period=period,
            rows=tuple(rows),
            total_debit=total_debit,
            total_credit=total_credit,
        )

    def account_summaries(self, period: Period) -> list[AccountSummary]:
        """Active accounts with posted activity in ``period``, ordered by code."""
        return [
            row
            for row in self._summaries(period, active_only=True)
            if row.debit_total or row.credit_total
        ]
