"""
Module: ledger_kernel.repositories.base
Responsibility: Common base for per-entity repositories.  A repository is the
    only code that builds ORM queries for its entity; services compose
    repositories and selectors read through them or through their own
    projections.
Architecture position: Kernel > Repositories.  May import from db/, models/
    and domain/values.py.  MUST NOT import from services/ or selectors/.

Invariants enforced:
    - Session ownership: repositories receive the Session from the caller and
      never commit or roll back.  ``add`` flushes only when asked to.
    - No global client: there is no module-level session anywhere outside
      db/engine.py.
"""

from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Session-bound access to one mapped entity.

    Contract:
        Subclasses set ``model`` and add entity-specific finders.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT validate business rules; services do.
    """

    model: type[ModelType]

    def __init__(self, session: Session):
        self.session = session

    def get(self, entity_id: UUID) -> ModelType | None:
        return self.session.get(self.model, entity_id)

    def add(self, entity: ModelType, flush: bool = False) -> ModelType:
        self.session.add(entity)
        if flush:
            self.session.flush()
        return entity
