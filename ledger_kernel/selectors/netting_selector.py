"""
Module: ledger_kernel.selectors.netting_selector
Responsibility: Per-partner receivable/payable netting computed from the
    posted-line stream (voucher -> line -> account subject -> partner).
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Only partner-tagged lines of APPROVED/CONFIRMED vouchers contribute.
    - RECEIVABLE role: receivable += debit - credit.
      PAYABLE role: payable += credit - debit.
      Role NONE lines contribute nothing and are left out of details.
    - net_amount == receivable - payable, independent of line order.
    - Details sorted by (voucher_date, voucher_seq, line_no); partners
      sorted by code.

Audit relevance:
    Netting figures are the same lines the ledger sums, so for any partner
    the receivable equals that partner's share of the receivable accounts'
    ledger movement over the period.
"""

from dataclasses import dataclass
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.period import Period
from ledger_kernel.domain.values import AccountRole, VoucherType
from ledger_kernel.models.account import AccountSubject
from ledger_kernel.models.partner import Partner
from ledger_kernel.models.voucher import Voucher, VoucherLine
from ledger_kernel.selectors.base import BaseSelector, posted_in


@dataclass(frozen=True)
class NettingDetail:
    voucher_id: UUID
    voucher_no: str
    voucher_date: date
    voucher_type: VoucherType
    voucher_description: str | None
    line_no: int
    line_description: str | None
    account_code: str
    account_name: str
    account_role: AccountRole
    debit: int
    credit: int


@dataclass(frozen=True)
class PartnerNetting:
    partner_id: UUID
    partner_code: str
    partner_name: str
    receivable: int
    payable: int
    net_amount: int
    details: tuple[NettingDetail, ...]


class NettingSelector(BaseSelector[VoucherLine]):
    """Selector for partner netting positions."""

    def __init__(self, session: Session):
        super().__init__(session)

    def netting(
        self,
        period: Period,
        partner_id: UUID | None = None,
    ) -> list[PartnerNetting]:
        """
        Receivable, payable and net position per partner for ``period``.

        Partners without receivable/payable activity in the period are not
        listed.  An unknown ``partner_id`` yields an empty list.
        """
        stmt = (
            select(VoucherLine, Voucher, AccountSubject, Partner)
            .join(Voucher, VoucherLine.voucher_id == Voucher.id)
            .join(AccountSubject, VoucherLine.account_subject_id == AccountSubject.id)
            .join(Partner, VoucherLine.partner_id == Partner.id)
            .where(
                *posted_in(period),
                AccountSubject.role.in_([AccountRole.RECEIVABLE, AccountRole.PAYABLE]),
            )
            .order_by(
                Partner.code,
                Voucher.voucher_date,
                Voucher.voucher_seq,
                VoucherLine.line_no,
            )
        )
        if partner_id is not None:
            stmt = stmt.where(VoucherLine.partner_id == partner_id)

        grouped: dict[UUID, dict] = {}
        for line, voucher, account, partner in self.session.execute(stmt).all():
            bucket = grouped.setdefault(
                partner.id,
                {"partner": partner, "receivable": 0, "payable": 0, "details": []},
            )
            if account.role == AccountRole.RECEIVABLE:
                bucket["receivable"] += line.debit_amount - line.credit_amount
            else:
                bucket["payable"] += line.credit_amount - line.debit_amount
            bucket["details"].append(
                NettingDetail(
                    voucher_id=voucher.id,
                    voucher_no=voucher.voucher_no,
                    voucher_date=voucher.voucher_date,
                    voucher_type=voucher.voucher_type,
                    voucher_description=voucher.description,
                    line_no=line.line_no,
                    line_description=line.description,
                    account_code=account.code,
                    account_name=account.name,
                    account_role=account.role,
                    debit=line.debit_amount,
                    credit=line.credit_amount,
                )
            )

        # dicts keep insertion order, and rows arrive sorted by partner code
        return [
            PartnerNetting(
                partner_id=bucket["partner"].id,
                partner_code=bucket["partner"].code,
                partner_name=bucket["partner"].name,
                receivable=bucket["receivable"],
                payable=bucket["payable"],
                net_amount=bucket["receivable"] - bucket["payable"],
                details=tuple(bucket["details"]),
            )
            for bucket in grouped.values()
        ]
