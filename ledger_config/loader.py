"""
Configuration Loader (``ledger_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the frozen dataclasses
of ``ledger_config.schema``.  Runtime callers go through
``ledger_config.get_active_config()`` instead of calling this directly.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; required fields have no silent defaults.
* Account codes and fiscal years are unique within one file.
* ``compute_checksum`` gives a deterministic SHA-256 of the parsed source.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Invalid date format  -> ``ValueError`` from ``date.fromisoformat``.
"""

from __future__ import annotations

import hashlib
import json
from datetime import date
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import (
    AccountSeed,
    DatabaseConfig,
    FiscalYearSeed,
    LedgerConfig,
    NettingConfig,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_date(value: Any) -> date:
    """Parse a date from YAML (string or date object)."""
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise ValueError(f"Cannot parse date from {value!r}")


def parse_account(data: dict[str, Any]) -> AccountSeed:
    parent = data.get("parent_code")
    return AccountSeed(
        code=str(data["code"]),
        name=data["name"],
        account_type=str(data["account_type"]).upper(),
        role=str(data.get("role", "NONE")).upper(),
        name_en=data.get("name_en"),
        is_tax_related=bool(data.get("is_tax_related", False)),
        parent_code=str(parent) if parent is not None else None,
    )


def parse_fiscal_year(data: dict[str, Any]) -> FiscalYearSeed:
    return FiscalYearSeed(
        year=int(data["year"]),
        start_date=parse_date(data["start_date"]),
        end_date=parse_date(data["end_date"]),
        is_closed=bool(data.get("is_closed", False)),
    )


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    defaults = DatabaseConfig()
    return DatabaseConfig(
        url=data.get("url", defaults.url),
        echo=bool(data.get("echo", defaults.echo)),
        pool_size=int(data.get("pool_size", defaults.pool_size)),
        max_overflow=int(data.get("max_overflow", defaults.max_overflow)),
        pool_timeout=int(data.get("pool_timeout", defaults.pool_timeout)),
    )


def parse_netting(data: dict[str, Any]) -> NettingConfig:
    receivable = data.get("receivable_account_code")
    payable = data.get("payable_account_code")
    return NettingConfig(
        receivable_account_code=str(receivable) if receivable is not None else None,
        payable_account_code=str(payable) if payable is not None else None,
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_config(data: dict[str, Any]) -> LedgerConfig:
    """
    Build a ``LedgerConfig`` from the parsed YAML document.

    Raises:
        KeyError: ``config_id`` or ``version`` missing.
        ValueError: duplicate account codes or fiscal years, or an invalid
            retry count.
    """
    ledger = data.get("ledger") or {}
    accounts = tuple(parse_account(a) for a in data.get("accounts") or ())
    fiscal_years = tuple(parse_fiscal_year(y) for y in data.get("fiscal_years") or ())

    codes = [a.code for a in accounts]
    duplicates = sorted({c for c in codes if codes.count(c) > 1})
    if duplicates:
        raise ValueError(f"Duplicate account codes in configuration: {duplicates}")

    years = [y.year for y in fiscal_years]
    if len(set(years)) != len(years):
        raise ValueError(f"Duplicate fiscal years in configuration: {sorted(years)}")

    retry_attempts = int(ledger.get("numbering_retry_attempts", 3))
    if retry_attempts < 1:
        raise ValueError("ledger.numbering_retry_attempts must be at least 1")

    return LedgerConfig(
        config_id=data["config_id"],
        version=int(data["version"]),
        voucher_prefix=str(ledger.get("voucher_prefix", "VOU")),
        numbering_retry_attempts=retry_attempts,
        database=parse_database(data.get("database") or {}),
        netting=parse_netting(data.get("netting") or {}),
        accounts=accounts,
        fiscal_years=fiscal_years,
        checksum=compute_checksum(data),
    )


def load_config(path: Path) -> LedgerConfig:
    return parse_config(load_yaml_file(path))
