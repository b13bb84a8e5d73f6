"""Database layer - engine, base classes, types, and immutability listeners."""

from ledger_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from ledger_kernel.db.engine import (
    build_engine,
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    session_scope,
)
from ledger_kernel.db.types import Amount, from_minor_units, to_minor_units

__all__ = [
    "Amount",
    "Base",
    "build_engine",
    "TrackedBase",
    "UUID",
    "UUIDString",
    "create_tables",
    "from_minor_units",
    "get_engine",
    "get_session",
    "init_engine_from_url",
    "session_scope",
    "to_minor_units",
]
