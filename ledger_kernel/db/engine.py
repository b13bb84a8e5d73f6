"""
Module: ledger_kernel.db.engine
Responsibility: Engine and session-factory lifecycle plus the
    commit-or-rollback scope every exposed ledger operation runs in.  This is
    the only module holding connection state; everything else receives a
    Session.
Architecture position: Kernel > DB.  May import from db/base.py.
    create_tables() imports ledger_kernel.models so every table is registered
    on Base.metadata.

Locking:
    - PostgreSQL runs at READ COMMITTED; vouchers and sequence counters are
      locked explicitly with SELECT ... FOR UPDATE.
    - SQLite (tests, local runs) compiles FOR UPDATE away.  Write
      transactions open with BEGIN IMMEDIATE instead, so writers queue on
      the database file.  Read-only scopes open with a deferred BEGIN and
      keep reading while a writer holds the file.

Failure modes:
    - RuntimeError from get_engine/get_session/get_session_factory before
      init_engine_from_url().
    - sqlalchemy.exc.TimeoutError when the PostgreSQL pool is exhausted for
      longer than pool_timeout.
"""

import atexit
from contextlib import contextmanager
from typing import Any, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from ledger_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

READONLY_OPTION = "ledger_readonly"

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def build_engine(
    database_url: str,
    *,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
) -> Engine:
    """
    A configured engine, independent of the module-level one.

    Pool settings apply to PostgreSQL.  For SQLite ``pool_timeout`` becomes
    the busy timeout, and an in-memory database is held on a StaticPool so
    every session sees the same data.
    """
    url = make_url(database_url)

    if url.get_backend_name() != "sqlite":
        return create_engine(
            url,
            echo=echo,
            poolclass=QueuePool,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=True,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
            isolation_level="READ COMMITTED",
        )

    options: dict[str, Any] = {
        "connect_args": {"check_same_thread": False, "timeout": pool_timeout},
    }
    if url.database in (None, "", ":memory:"):
        options["poolclass"] = StaticPool
    engine = create_engine(url, echo=echo, **options)

    @event.listens_for(engine, "connect")
    def _sqlite_connect(dbapi_connection, connection_record):
        # Disable pysqlite's implicit BEGIN; it breaks SAVEPOINT handling.
        dbapi_connection.isolation_level = None
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    @event.listens_for(engine, "begin")
    def _sqlite_begin(conn):
        if conn.get_execution_options().get(READONLY_OPTION):
            conn.exec_driver_sql("BEGIN")
        else:
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def init_engine_from_url(database_url: str, **options: Any) -> Engine:
    """
    Build the module-level engine and session factory.

    ``options`` are passed to build_engine().  A second call replaces the
    first without disposing it; call reset_engine() in between.
    """
    global _engine, _SessionFactory

    _engine = build_engine(database_url, **options)
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={"dialect": _engine.dialect.name, **options},
    )
    return _engine


def _initialized() -> tuple[Engine, sessionmaker[Session]]:
    if _engine is None or _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine, _SessionFactory


def get_engine() -> Engine:
    return _initialized()[0]


def get_session_factory() -> sessionmaker[Session]:
    """The module-level factory; worker threads each open their own session."""
    return _initialized()[1]


def get_session() -> Session:
    return get_session_factory()()


@contextmanager
def session_scope(
    factory: sessionmaker[Session] | None = None,
    *,
    readonly: bool = False,
) -> Generator[Session, None, None]:
    """
    Commit on normal exit, roll back and re-raise on any exception.

    ``readonly`` marks the connection with READONLY_OPTION before the
    transaction starts; on SQLite that selects a deferred BEGIN.

    Usage::

        with session_scope() as session:
            VoucherService(session, clock).approve(voucher_id, "alice")
    """
    session = (factory or get_session_factory())()
    try:
        if readonly:
            session.connection(execution_options={READONLY_OPTION: True})
        yield session
        session.commit()
        logger.debug("transaction_committed")
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables(engine: Engine | None = None) -> None:
    """Create every ledger table on ``engine`` (default: the module-level one)."""
    from ledger_kernel.db.base import Base
    import ledger_kernel.models  # noqa: F401

    engine = engine or get_engine()
    Base.metadata.create_all(engine)
    logger.info("tables_created", extra={"tables": sorted(Base.metadata.tables)})


def drop_tables(engine: Engine | None = None) -> None:
    """Drop every ledger table.  Tests only."""
    from ledger_kernel.db.base import Base

    Base.metadata.drop_all(engine or get_engine())


def reset_engine() -> None:
    """Dispose the module-level engine and forget the session factory."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


atexit.register(reset_engine)


def is_postgres() -> bool:
    return _engine is not None and _engine.dialect.name == "postgresql"
