"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for every
    write service.  Services receive a SQLAlchemy ``Session`` and persist via
    ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell.  Every service in
    ``ledger_kernel/services/`` that performs writes extends this class.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's transaction
      and never commit or roll back the outer transaction.  The caller
      (LedgerOrchestrator or a test harness) owns commit/rollback.  Savepoints
      opened with ``begin_nested()`` are the one exception, and they are
      always closed by the method that opened them.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from ledger_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and uses
        ``session.flush()`` to persist changes within the active transaction.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide report queries -- those belong in
          ``ledger_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session
