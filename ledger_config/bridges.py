"""
Config -> Kernel Bridges.

Functions that turn a ``LedgerConfig`` into kernel objects.  They live here
(the producer) because the kernel must never import ledger_config.

Usage:
    from ledger_config import get_active_config
    from ledger_config.bridges import bootstrap_ledger

    config = get_active_config()
    orchestrator = bootstrap_ledger(config, actor="setup")
"""

from __future__ import annotations

from sqlalchemy.orm import Session, sessionmaker

from ledger_config.schema import LedgerConfig
from ledger_kernel.db.engine import (
    create_tables,
    get_session_factory,
    init_engine_from_url,
    session_scope,
)
from ledger_kernel.domain.authorization import TransitionAuthorizer
from ledger_kernel.domain.clock import Clock
from ledger_kernel.services.catalog_service import CatalogService
from ledger_kernel.services.ledger_orchestrator import LedgerOrchestrator


def build_orchestrator(
    config: LedgerConfig,
    session_factory: sessionmaker[Session],
    clock: Clock | None = None,
    authorizer: TransitionAuthorizer | None = None,
) -> LedgerOrchestrator:
    """A LedgerOrchestrator carrying the configured numbering and netting settings."""
    return LedgerOrchestrator(
        session_factory,
        clock=clock,
        authorizer=authorizer,
        voucher_prefix=config.voucher_prefix,
        numbering_retry_attempts=config.numbering_retry_attempts,
        receivable_account_code=config.netting.receivable_account_code,
        payable_account_code=config.netting.payable_account_code,
    )


def seed_catalog(
    config: LedgerConfig,
    session_factory: sessionmaker[Session],
    actor: str,
) -> dict[str, int]:
    """Seed the configured chart of accounts and fiscal years in one transaction."""
    with session_scope(session_factory) as session:
        return CatalogService(session).seed_from_config(config, actor)


def bootstrap_ledger(
    config: LedgerConfig,
    actor: str,
    clock: Clock | None = None,
    authorizer: TransitionAuthorizer | None = None,
) -> LedgerOrchestrator:
    """
    Initialize the engine from ``config.database``, create tables, seed the
    catalog and return a ready orchestrator.
    """
    init_engine_from_url(
        config.database.url,
        echo=config.database.echo,
        pool_size=config.database.pool_size,
        max_overflow=config.database.max_overflow,
        pool_timeout=config.database.pool_timeout,
    )
    create_tables()
    factory = get_session_factory()
    seed_catalog(config, factory, actor)
    return build_orchestrator(config, factory, clock=clock, authorizer=authorizer)
