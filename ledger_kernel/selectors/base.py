"""
Module: ledger_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors.
    Selectors are the read side: journal, general ledger, trial balance,
    netting and voucher listings.
Architecture position: Kernel > Selectors.  May import from db/, models/,
    repositories/ and domain/.  MUST NOT import from services/.

Invariants enforced:
    - Read-only access: selectors never add, delete, flush or commit.
    - DTO return convention: selectors return frozen dataclasses, never ORM
      instances.
    - No stored balances: every figure is recomputed from posted voucher
      lines at query time, so two calls over unchanged data return equal
      results.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy import ColumnElement
from sqlalchemy.orm import Session

from ledger_kernel.db.base import Base
from ledger_kernel.domain.period import Period
from ledger_kernel.domain.values import POSTED_STATUSES
from ledger_kernel.models.voucher import Voucher

ModelType = TypeVar("ModelType", bound=Base)


def posted_in(period: Period | None) -> list[ColumnElement[bool]]:
    """WHERE clauses selecting APPROVED/CONFIRMED vouchers dated in ``period``."""
    clauses: list[ColumnElement[bool]] = [Voucher.status.in_(POSTED_STATUSES)]
    if period is not None:
        clauses.append(Voucher.voucher_date >= period.start_date)
        clauses.append(Voucher.voucher_date <= period.end_date)
    return clauses


class BaseSelector(ABC, Generic[ModelType]):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only queries,
        and return DTOs.  They MUST NOT mutate any data.
    """

    def __init__(self, session: Session):
        self.session = session
