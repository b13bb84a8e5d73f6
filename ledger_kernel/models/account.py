"""
Module: ledger_kernel.models.account
Responsibility: ORM persistence for the chart of accounts -- the target of
    every voucher line.
Architecture position: Kernel > Models.  May import from db/ and
    domain/values.py only.

Invariants enforced:
    - code is globally unique (uq_account_subject_code).
    - code, account_type and role are immutable once the account is
      referenced by a posted (APPROVED/CONFIRMED) voucher line (ORM listener
      in db/immutability.py).
    - Netting resolves the RECEIVABLE / PAYABLE account by role; at most one
      active account per role is expected unless config names one explicitly.

Failure modes:
    - AccountNotFoundError when a voucher line references an unknown or
      inactive account (raised by VoucherService).
    - ImmutabilityViolationError when identity fields change after posting.

Audit relevance:
    account_type decides the normal-balance side of every figure reported on
    the account.  Changing it after posting would silently flip historical
    balances, so it is locked once referenced.
"""

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase, UUIDString
from ledger_kernel.db.types import enum_column
from ledger_kernel.domain.values import AccountRole, AccountType


class AccountSubject(TrackedBase):
    """
    Chart of accounts entry.

    Contract:
        AccountSubject rows are master data supplied by the catalog.  The
        ledger only reads them, except for seeding.

    Guarantees:
        - code is unique and non-null.
        - account_type and role are closed enum members, never raw strings.

    Non-goals:
        - Does NOT roll balances up the parent hierarchy; reports are per
          account.
    """

    __tablename__ = "account_subjects"

    __table_args__ = (
        UniqueConstraint("code", name="uq_account_subject_code"),
        Index("idx_account_subject_type", "account_type"),
        Index("idx_account_subject_role", "role"),
    )

    code: Mapped[str] = mapped_column(String(20), nullable=False)

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    # English display name
    name_en: Mapped[str | None] = mapped_column(String(200), nullable=True)

    account_type: Mapped[AccountType] = mapped_column(
        enum_column(AccountType),
        nullable=False,
    )

    role: Mapped[AccountRole] = mapped_column(
        enum_column(AccountRole),
        nullable=False,
        default=AccountRole.NONE,
    )

    is_tax_related: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    parent_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("account_subjects.id"),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<AccountSubject {self.code}: {self.name}>"

    @property
    def is_debit_normal(self) -> bool:
        return self.account_type.is_debit_normal
