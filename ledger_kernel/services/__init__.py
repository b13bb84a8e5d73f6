"""
Kernel services: the write side of the ledger.

Services take an injected Session and flush; LedgerOrchestrator owns the
transaction boundary.
"""

from ledger_kernel.services.catalog_service import CatalogService
from ledger_kernel.services.fiscal_year_service import FiscalYearService
from ledger_kernel.services.ledger_orchestrator import LedgerOrchestrator
from ledger_kernel.services.netting_service import NettingService
from ledger_kernel.services.sequence_service import SequenceService
from ledger_kernel.services.voucher_service import VoucherService

__all__ = [
    "CatalogService",
    "FiscalYearService",
    "LedgerOrchestrator",
    "NettingService",
    "SequenceService",
    "VoucherService",
]
