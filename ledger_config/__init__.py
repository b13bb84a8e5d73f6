"""
ledger_config -- single public entrypoint for ledger configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Returns a frozen ``LedgerConfig``: voucher
    numbering, netting accounts, database settings and the seed chart of
    accounts.

Architecture position:
    Configuration.  This package sits above ``ledger_kernel``.  The kernel
    MUST NEVER import from ``ledger_config``; ``bridges`` translates a
    config into kernel objects.

Resolution order:
    1. the ``path`` argument,
    2. the ``LEDGER_CONFIG`` environment variable,
    3. ``ledger_config/sets/default.yaml``.
    ``DATABASE_URL``, when set, replaces ``database.url``.

Audit relevance:
    Every successful call emits a ``LEDGER_CONFIG_TRACE`` log entry with the
    config_id, version and checksum.
"""

from __future__ import annotations

import dataclasses
import os
from pathlib import Path

from ledger_config.loader import load_config
from ledger_config.schema import (
    AccountSeed,
    DatabaseConfig,
    FiscalYearSeed,
    LedgerConfig,
    NettingConfig,
)
from ledger_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"

CONFIG_ENV_VAR = "LEDGER_CONFIG"
DATABASE_URL_ENV_VAR = "DATABASE_URL"


def get_active_config(path: Path | str | None = None) -> LedgerConfig:
    """The ONLY public configuration entrypoint.

    Raises:
        FileNotFoundError: the resolved file does not exist.
        KeyError / ValueError: the file is structurally invalid.
    """
    resolved = Path(path or os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH)
    config = load_config(resolved)

    database_url = os.environ.get(DATABASE_URL_ENV_VAR)
    if database_url:
        config = dataclasses.replace(
            config,
            database=dataclasses.replace(config.database, url=database_url),
        )

    _logger.info(
        "LEDGER_CONFIG_TRACE",
        extra={
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source": str(resolved),
            "account_count": len(config.accounts),
            "fiscal_year_count": len(config.fiscal_years),
        },
    )
    return config


__all__ = [
    "AccountSeed",
    "DatabaseConfig",
    "FiscalYearSeed",
    "LedgerConfig",
    "NettingConfig",
    "get_active_config",
]
