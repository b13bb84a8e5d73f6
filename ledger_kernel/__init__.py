"""
Ledger Kernel - double-entry voucher ledger and partner netting engine.

A voucher-based bookkeeping core with:
- Balanced posting (debits == credits, integer minor units only)
- Voucher state machine (DRAFT -> APPROVED -> CONFIRMED) with locking
- Per-fiscal-year sequential voucher numbering
- Journal, general ledger and trial balance read models
- Partner netting with balanced netting adjustments
"""

__version__ = "0.1.0"
