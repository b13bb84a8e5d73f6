"""
Module: ledger_kernel.selectors.journal_selector
Responsibility: The journal: every posted voucher line of a period in
    booking order, flattened with its voucher, account and partner.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Only lines of APPROVED/CONFIRMED vouchers appear.
    - Ordering is (voucher_date, voucher_seq, line_no).  voucher_seq is the
      numeric part of voucher_no, so this is the same as ordering by
      voucher_no within a fiscal year.

Failure modes:
    - AccountNotFoundError when filtering by an unknown account.
    - Returns an empty list when nothing is posted in the period.
"""

from dataclasses import dataclass
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.period import Period
from ledger_kernel.domain.values import AccountType, VoucherType
from ledger_kernel.exceptions import AccountNotFoundError
from ledger_kernel.models.account import AccountSubject
from ledger_kernel.models.partner import Partner
from ledger_kernel.models.voucher import Voucher, VoucherLine
from ledger_kernel.selectors.base import BaseSelector, posted_in


@dataclass(frozen=True)
class JournalLineDTO:
    """One journal row."""

    voucher_id: UUID
    voucher_no: str
    voucher_date: date
    voucher_type: VoucherType
    voucher_description: str | None
    line_id: UUID
    line_no: int
    line_description: str | None
    account_id: UUID
    account_code: str
    account_name: str
    account_type: AccountType
    partner_id: UUID | None
    partner_code: str | None
    partner_name: str | None
    debit: int
    credit: int


class JournalSelector(BaseSelector[VoucherLine]):
    """
    Selector for the period journal.

    Guarantees:
        - Deterministic order: (voucher_date, voucher_seq, line_no).
        - Recomputed per call; nothing is cached.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    def journal(
        self,
        period: Period,
        account_id: UUID | None = None,
    ) -> list[JournalLineDTO]:
        """
        Posted lines dated in ``period``, optionally for one account.

        Raises:
            AccountNotFoundError: ``account_id`` is given but unknown.
        """
        if account_id is not None and self.session.get(AccountSubject, account_id) is None:
            raise AccountNotFoundError(str(account_id))

        stmt = (
            select(VoucherLine, Voucher, AccountSubject, Partner)
            .join(Voucher, VoucherLine.voucher_id == Voucher.id)
            .join(AccountSubject, VoucherLine.account_subject_id == AccountSubject.id)
            .outerjoin(Partner, VoucherLine.partner_id == Partner.id)
            .where(*posted_in(period))
            .order_by(Voucher.voucher_date, Voucher.voucher_seq, VoucherLine.line_no)
        )
        if account_id is not None:
            stmt = stmt.where(VoucherLine.account_subject_id == account_id)

        return [
            JournalLineDTO(
                voucher_id=voucher.id,
                voucher_no=voucher.voucher_no,
                voucher_date=voucher.voucher_date,
                voucher_type=voucher.voucher_type,
                voucher_description=voucher.description,
                line_id=line.id,
                line_no=line.line_no,
                line_description=line.description,
                account_id=account.id,
                account_code=account.code,
                account_name=account.name,
                account_type=account.account_type,
                partner_id=partner.id if partner is not None else None,
                partner_code=partner.code if partner is not None else None,
                partner_name=partner.name if partner is not None else None,
                debit=line.debit_amount,
                credit=line.credit_amount,
            )
            for line, voucher, account, partner in self.session.execute(stmt).all()
        ]
