"""ORM models for the ledger kernel."""

from ledger_kernel.models.account import AccountSubject
from ledger_kernel.models.fiscal_year import FiscalYear
from ledger_kernel.models.netting import NettingAdjustment
from ledger_kernel.models.partner import Partner
from ledger_kernel.models.sequence import SequenceCounter
from ledger_kernel.models.voucher import Voucher, VoucherLine

__all__ = [
    "AccountSubject",
    "FiscalYear",
    "NettingAdjustment",
    "Partner",
    "SequenceCounter",
    "Voucher",
    "VoucherLine",
]
