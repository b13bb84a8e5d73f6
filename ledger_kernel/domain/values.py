"""
Values -- Closed enumerations and normal-balance arithmetic.

Responsibility:
    Defines the closed tag sets of the ledger (account type, account role,
    voucher type, voucher status) and the single place where the
    normal-balance side of an account type is decided.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by models/, selectors/ and services/.  No outward dependencies.

Invariants enforced:
    - Raw strings never reach core logic: boundary code converts them with
      ``domain.validation.parse_enum`` into these members.
    - ASSET/EXPENSE balances grow with debits; LIABILITY/EQUITY/REVENUE
      balances grow with credits.

Audit relevance:
    Every balance figure in the journal, general ledger, trial balance and
    netting report flows through ``signed_movement``.  Keeping the sign rule
    in one function keeps all reports consistent with each other.
"""

from enum import Enum


class AccountType(str, Enum):
    """Types of accounts in the chart of accounts."""

    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    REVENUE = "REVENUE"
    EXPENSE = "EXPENSE"

    @property
    def is_debit_normal(self) -> bool:
        return self in (AccountType.ASSET, AccountType.EXPENSE)


class AccountRole(str, Enum):
    """
    Netting role of an account.

    Contract:
        RECEIVABLE and PAYABLE accounts feed the partner netting report.
        NONE accounts are ignored by netting.
    """

    RECEIVABLE = "RECEIVABLE"
    PAYABLE = "PAYABLE"
    NONE = "NONE"


class VoucherType(str, Enum):
    """
    Informational voucher tag.

    Never affects balance logic.  NETTING and REVERSAL mark system-generated
    postings so drill-downs can tell them apart.
    """

    RECEIPT = "RECEIPT"
    PAYMENT = "PAYMENT"
    TRANSFER = "TRANSFER"
    PURCHASE = "PURCHASE"
    SALES = "SALES"
    NETTING = "NETTING"
    REVERSAL = "REVERSAL"


class VoucherStatus(str, Enum):
    """
    Status of a voucher.

    Contract:
        Lifecycle: DRAFT -> APPROVED -> CONFIRMED.  DRAFT may also be
        cancelled (deleted).  Nothing leaves CONFIRMED.

    Guarantees:
        - Only APPROVED and CONFIRMED vouchers contribute to any report.
    """

    DRAFT = "DRAFT"
    APPROVED = "APPROVED"
    CONFIRMED = "CONFIRMED"

    @property
    def is_posted(self) -> bool:
        return self in POSTED_STATUSES


POSTED_STATUSES: tuple[VoucherStatus, ...] = (
    VoucherStatus.APPROVED,
    VoucherStatus.CONFIRMED,
)


def signed_movement(account_type: AccountType, debit: int, credit: int) -> int:
    """
    Movement of one line on its account's normal-balance side.

    Example:
        signed_movement(AccountType.ASSET, 100, 0) -> 100
        signed_movement(AccountType.REVENUE, 100, 0) -> -100
    """
    if account_type.is_debit_normal:
        return debit - credit
    return credit - debit
