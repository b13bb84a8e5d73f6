"""
Module: ledger_kernel.models.voucher
Responsibility: ORM persistence for vouchers and voucher lines -- the single
    source of financial truth.  Every report is a projection of the lines of
    APPROVED and CONFIRMED vouchers.
Architecture position: Kernel > Models.  May import from db/ and
    domain/values.py only.

Invariants enforced:
    - (fiscal_year_id, voucher_no) and (fiscal_year_id, voucher_seq) are
      unique: the numbering backstop behind the locked sequence counter.
    - total_debit == total_credit (ck_voucher_balanced); line totals are
      checked by VoucherService before persistence and again on approve.
    - Each line has exactly one positive side (ck_voucher_line_one_sided).
    - Amounts are non-negative integers in minor units.
    - version is a SQLAlchemy version_id_col: a concurrent UPDATE of the
      same voucher raises StaleDataError at flush.
    - CONFIRMED vouchers and their lines are immutable; APPROVED vouchers
      cannot be deleted (ORM listeners in db/immutability.py).

Failure modes:
    - IntegrityError on a duplicate voucher number (translated to
      VoucherNumberConflictError by VoucherService).
    - StaleDataError on a lost optimistic-lock race (translated to
      OptimisticLockError).
    - ImmutableVoucherError / ImmutabilityViolationError from listeners.

Audit relevance:
    created_by, approved_by/approved_at and confirmed_by/confirmed_at record
    who moved the voucher through each state.  Corrections to posted
    vouchers are made only by contra vouchers (reversal_of_id), so the
    original stays visible.
"""

from datetime import date, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase, UUIDString
from ledger_kernel.db.types import enum_column
from ledger_kernel.domain.values import POSTED_STATUSES, VoucherStatus, VoucherType

if TYPE_CHECKING:
    from ledger_kernel.models.account import AccountSubject
    from ledger_kernel.models.fiscal_year import FiscalYear
    from ledger_kernel.models.partner import Partner


class Voucher(TrackedBase):
    """
    A balanced bookkeeping document.

    Contract:
        Created in DRAFT by VoucherService with a freshly allocated number.
        DRAFT -> APPROVED -> CONFIRMED; DRAFT may be deleted (cancel).

    Guarantees:
        - total_debit == total_credit == sum of line debits == sum of line
          credits for every committed voucher.
        - voucher_no never changes after creation.

    Non-goals:
        - The model does not validate line balance on its own; VoucherService
          does that before any row is written.
    """

    __tablename__ = "vouchers"

    __table_args__ = (
        UniqueConstraint("fiscal_year_id", "voucher_no", name="uq_voucher_year_no"),
        UniqueConstraint("fiscal_year_id", "voucher_seq", name="uq_voucher_year_seq"),
        CheckConstraint("total_debit >= 0 AND total_credit >= 0", name="ck_voucher_totals_non_negative"),
        CheckConstraint("total_debit = total_credit", name="ck_voucher_balanced"),
        Index("idx_voucher_date_seq", "voucher_date", "voucher_seq"),
        Index("idx_voucher_status", "status"),
        # A voucher is contra-posted at most once
        UniqueConstraint("reversal_of_id", name="uq_voucher_reversal_of"),
    )

    # Display number, e.g. VOU-2025-00001
    voucher_no: Mapped[str] = mapped_column(String(30), nullable=False)

    # Numeric part of voucher_no, used for ordering
    voucher_seq: Mapped[int] = mapped_column(Integer, nullable=False)

    voucher_date: Mapped[date] = mapped_column(Date, nullable=False)

    voucher_type: Mapped[VoucherType] = mapped_column(
        enum_column(VoucherType),
        nullable=False,
    )

    status: Mapped[VoucherStatus] = mapped_column(
        enum_column(VoucherStatus),
        nullable=False,
        default=VoucherStatus.DRAFT,
    )

    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    total_debit: Mapped[int] = mapped_column(nullable=False, default=0)

    total_credit: Mapped[int] = mapped_column(nullable=False, default=0)

    fiscal_year_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("fiscal_years.id"),
        nullable=False,
    )

    approved_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    confirmed_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    confirmed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # The voucher this one contra-posts
    reversal_of_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("vouchers.id"),
        nullable=True,
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    lines: Mapped[list["VoucherLine"]] = relationship(
        back_populates="voucher",
        cascade="all, delete-orphan",
        order_by="VoucherLine.line_no",
        lazy="selectin",
    )

    fiscal_year: Mapped["FiscalYear"] = relationship()

    reversal_of: Mapped["Voucher | None"] = relationship(
        remote_side="Voucher.id",
        foreign_keys=[reversal_of_id],
    )

    def __repr__(self) -> str:
        return f"<Voucher {self.voucher_no} status={self.status.value}>"

    @property
    def is_posted(self) -> bool:
        return self.status in POSTED_STATUSES

    @property
    def line_debit_total(self) -> int:
        return sum(line.debit_amount for line in self.lines)

    @property
    def line_credit_total(self) -> int:
        return sum(line.credit_amount for line in self.lines)


class VoucherLine(TrackedBase):
    """
    One side of a voucher posting.

    Contract:
        Exactly one of debit_amount / credit_amount is positive; the other
        is zero.  line_no is 1-based and significant for ordering.

    Guarantees:
        - Lines of APPROVED or CONFIRMED vouchers are never inserted, updated
          or deleted (ORM listeners).
    """

    __tablename__ = "voucher_lines"

    __table_args__ = (
        UniqueConstraint("voucher_id", "line_no", name="uq_voucher_line_no"),
        CheckConstraint(
            "debit_amount >= 0 AND credit_amount >= 0",
            name="ck_voucher_line_non_negative",
        ),
        CheckConstraint(
            "(debit_amount > 0 AND credit_amount = 0) OR "
            "(debit_amount = 0 AND credit_amount > 0)",
            name="ck_voucher_line_one_sided",
        ),
        Index("idx_voucher_line_account", "account_subject_id"),
        Index("idx_voucher_line_partner", "partner_id"),
    )

    voucher_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("vouchers.id"),
        nullable=False,
    )

    line_no: Mapped[int] = mapped_column(Integer, nullable=False)

    account_subject_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("account_subjects.id"),
        nullable=False,
    )

    debit_amount: Mapped[int] = mapped_column(nullable=False, default=0)

    credit_amount: Mapped[int] = mapped_column(nullable=False, default=0)

    partner_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("partners.id"),
        nullable=True,
    )

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    voucher: Mapped["Voucher"] = relationship(back_populates="lines")

    account_subject: Mapped["AccountSubject"] = relationship()

    partner: Mapped["Partner | None"] = relationship()

    def __repr__(self) -> str:
        return (
            f"<VoucherLine {self.line_no} dr={self.debit_amount} "
            f"cr={self.credit_amount}>"
        )
