"""
Data Transfer Objects -- frozen snapshots handed across the kernel boundary.

Responsibility:
    Services and selectors never return ORM instances.  Callers receive these
    immutable dataclasses, built with ``from_model`` while the Session is
    still open, so no lazy load can happen after the transaction ends.

Architecture position:
    Kernel > Domain -- pure value types.  ORM classes are referenced for type
    checking only.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from ledger_kernel.domain.values import (
    AccountRole,
    AccountType,
    VoucherStatus,
    VoucherType,
)

if TYPE_CHECKING:
    from ledger_kernel.models.account import AccountSubject
    from ledger_kernel.models.fiscal_year import FiscalYear
    from ledger_kernel.models.netting import NettingAdjustment
    from ledger_kernel.models.partner import Partner
    from ledger_kernel.models.voucher import Voucher, VoucherLine


@dataclass(frozen=True)
class AccountInfo:
    id: UUID
    code: str
    name: str
    account_type: AccountType
    role: AccountRole
    is_tax_related: bool
    is_active: bool
    level: int
    name_en: str | None = None
    parent_id: UUID | None = None

    @classmethod
    def from_model(cls, model: AccountSubject) -> AccountInfo:
        return cls(
            id=model.id,
            code=model.code,
            name=model.name,
            account_type=model.account_type,
            role=model.role,
            is_tax_related=model.is_tax_related,
            is_active=model.is_active,
            level=model.level,
            name_en=model.name_en,
            parent_id=model.parent_id,
        )


@dataclass(frozen=True)
class PartnerInfo:
    id: UUID
    code: str
    name: str
    is_active: bool

    @classmethod
    def from_model(cls, model: Partner) -> PartnerInfo:
        return cls(
            id=model.id,
            code=model.code,
            name=model.name,
            is_active=model.is_active,
        )


@dataclass(frozen=True)
class FiscalYearInfo:
    """
    Pure domain representation of a fiscal year.

    Guarantees:
        - Immutable (frozen dataclass)
        - voucher_count is only filled by listing queries; 0 otherwise.
    """

    id: UUID
    year: int
    start_date: date
    end_date: date
    is_closed: bool
    voucher_count: int = 0

    @property
    def is_open(self) -> bool:
        return not self.is_closed

    def contains_date(self, check_date: date) -> bool:
        return self.start_date <= check_date <= self.end_date

    @classmethod
    def from_model(cls, model: FiscalYear, voucher_count: int = 0) -> FiscalYearInfo:
        return cls(
            id=model.id,
            year=model.year,
            start_date=model.start_date,
            end_date=model.end_date,
            is_closed=model.is_closed,
            voucher_count=voucher_count,
        )


@dataclass(frozen=True)
class VoucherLineInfo:
    id: UUID
    line_no: int
    account_subject_id: UUID
    debit_amount: int
    credit_amount: int
    partner_id: UUID | None = None
    description: str | None = None

    @classmethod
    def from_model(cls, model: VoucherLine) -> VoucherLineInfo:
        return cls(
            id=model.id,
            line_no=model.line_no,
            account_subject_id=model.account_subject_id,
            debit_amount=model.debit_amount,
            credit_amount=model.credit_amount,
            partner_id=model.partner_id,
            description=model.description,
        )


@dataclass(frozen=True)
class VoucherInfo:
    """
    Snapshot of a voucher with its lines ordered by line_no.

    Guarantees:
        - total_debit == total_credit == sum of line debits == sum of line
          credits for every voucher the kernel has stored.
    """

    id: UUID
    voucher_no: str
    voucher_seq: int
    voucher_date: date
    voucher_type: VoucherType
    status: VoucherStatus
    total_debit: int
    total_credit: int
    fiscal_year_id: UUID
    created_by: str
    version: int
    lines: tuple[VoucherLineInfo, ...] = ()
    description: str | None = None
    approved_by: str | None = None
    approved_at: datetime | None = None
    confirmed_by: str | None = None
    confirmed_at: datetime | None = None
    reversal_of_id: UUID | None = None

    @property
    def is_posted(self) -> bool:
        return self.status.is_posted

    @classmethod
    def from_model(cls, model: Voucher) -> VoucherInfo:
        return cls(
            id=model.id,
            voucher_no=model.voucher_no,
            voucher_seq=model.voucher_seq,
            voucher_date=model.voucher_date,
            voucher_type=model.voucher_type,
            status=model.status,
            total_debit=model.total_debit,
            total_credit=model.total_credit,
            fiscal_year_id=model.fiscal_year_id,
            created_by=model.created_by,
            version=model.version,
            lines=tuple(
                VoucherLineInfo.from_model(line)
                for line in sorted(model.lines, key=lambda ln: ln.line_no)
            ),
            description=model.description,
            approved_by=model.approved_by,
            approved_at=model.approved_at,
            confirmed_by=model.confirmed_by,
            confirmed_at=model.confirmed_at,
            reversal_of_id=model.reversal_of_id,
        )


@dataclass(frozen=True)
class NettingAdjustmentInfo:
    id: UUID
    partner_id: UUID
    amount: int
    adjustment_date: date
    voucher_id: UUID
    voucher_no: str
    created_by: str
    description: str | None = None

    @classmethod
    def from_model(cls, model: NettingAdjustment) -> NettingAdjustmentInfo:
        return cls(
            id=model.id,
            partner_id=model.partner_id,
            amount=model.amount,
            adjustment_date=model.adjustment_date,
            voucher_id=model.voucher_id,
            voucher_no=model.voucher.voucher_no,
            created_by=model.created_by,
            description=model.description,
        )
