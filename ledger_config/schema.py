"""
Ledger configuration schema.

Frozen dataclasses the YAML configuration is parsed into.  Tag fields
(account_type, role) stay plain strings here; the kernel parses them into
its enums when seeding, so this package never needs the kernel's types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date


@dataclass(frozen=True)
class AccountSeed:
    """One chart-of-accounts entry."""

    code: str
    name: str
    account_type: str  # ASSET, LIABILITY, EQUITY, REVENUE, EXPENSE
    role: str = "NONE"  # RECEIVABLE, PAYABLE, NONE
    name_en: str | None = None
    is_tax_related: bool = False
    parent_code: str | None = None


@dataclass(frozen=True)
class FiscalYearSeed:
    year: int
    start_date: date
    end_date: date
    is_closed: bool = False


@dataclass(frozen=True)
class NettingConfig:
    """Designated netting accounts; None means "the unique active account with that role"."""

    receivable_account_code: str | None = None
    payable_account_code: str | None = None


@dataclass(frozen=True)
class DatabaseConfig:
    url: str = "sqlite:///ledger.db"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30


@dataclass(frozen=True)
class LedgerConfig:
    """The complete configuration of one ledger installation."""

    config_id: str
    version: int
    voucher_prefix: str = "VOU"
    numbering_retry_attempts: int = 3
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    netting: NettingConfig = field(default_factory=NettingConfig)
    accounts: tuple[AccountSeed, ...] = ()
    fiscal_years: tuple[FiscalYearSeed, ...] = ()
    checksum: str = ""
