"""Per-entity repositories over an injected Session."""

from ledger_kernel.repositories.account_repository import AccountRepository
from ledger_kernel.repositories.fiscal_year_repository import FiscalYearRepository
from ledger_kernel.repositories.netting_repository import NettingAdjustmentRepository
from ledger_kernel.repositories.partner_repository import PartnerRepository
from ledger_kernel.repositories.voucher_repository import VoucherRepository

__all__ = [
    "AccountRepository",
    "FiscalYearRepository",
    "NettingAdjustmentRepository",
    "PartnerRepository",
    "VoucherRepository",
]
