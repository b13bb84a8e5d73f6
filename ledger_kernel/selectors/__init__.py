"""
Read-only query selectors for the ledger kernel.

Selectors provide read-only access to posted ledger data and return DTOs.
They never flush or commit.
"""

from ledger_kernel.selectors.base import BaseSelector
from ledger_kernel.selectors.journal_selector import JournalLineDTO, JournalSelector
from ledger_kernel.selectors.ledger_selector import (
    AccountLedger,
    AccountSummary,
    LedgerEntry,
    LedgerSelector,
    TrialBalance,
)
from ledger_kernel.selectors.netting_selector import (
    NettingDetail,
    NettingSelector,
    PartnerNetting,
)
from ledger_kernel.selectors.voucher_selector import VoucherSelector

__all__ = [
    "AccountLedger",
    "AccountSummary",
    "BaseSelector",
    "JournalLineDTO",
    "JournalSelector",
    "LedgerEntry",
    "LedgerSelector",
    "NettingDetail",
    "NettingSelector",
    "PartnerNetting",
    "TrialBalance",
    "VoucherSelector",
]
