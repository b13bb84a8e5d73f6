"""
FiscalYearService -- fiscal year registry and posting-date resolution.

Responsibility:
    Creates and closes fiscal years and resolves a voucher date to the open
    fiscal year it posts into.  All voucher creation, edits, reversals and
    netting adjustments go through ``resolve_open``.

Architecture position:
    Kernel > Services -- imperative shell.

Invariants enforced:
    - Fiscal years never overlap (checked on create).
    - A voucher date must fall inside exactly one non-closed fiscal year.
    - Closing serializes on the fiscal year row (``SELECT ... FOR UPDATE``).

Failure modes:
    - FiscalYearOverlapError: new range intersects an existing year.
    - FiscalYearNotFoundError: no fiscal year covers the date.
    - FiscalYearClosedError: the covering year is closed.
    - InvalidValueError: start_date after end_date.
"""

from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import FiscalYearInfo
from ledger_kernel.domain.validation import require_text
from ledger_kernel.exceptions import (
    FiscalYearClosedError,
    FiscalYearNotFoundError,
    FiscalYearOverlapError,
    InvalidValueError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.fiscal_year import FiscalYear
from ledger_kernel.repositories.fiscal_year_repository import FiscalYearRepository
from ledger_kernel.services.base import BaseService

logger = get_logger("services.fiscal_year")


class FiscalYearService(BaseService[FiscalYear]):
    """
    Service for the fiscal year lifecycle.

    Contract:
        Lifecycle methods (create, close) flush within the caller's
        transaction and return frozen ``FiscalYearInfo`` DTOs.

    Non-goals:
        - Does NOT carry balances forward at year end; opening balances are
          always recomputed from posted lines.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._years = FiscalYearRepository(session)

    def create_fiscal_year(
        self,
        year: int,
        start_date: date,
        end_date: date,
        created_by: str,
        is_closed: bool = False,
    ) -> FiscalYearInfo:
        """
        Register a fiscal year.

        Two ranges overlap if: start1 <= end2 AND start2 <= end1.

        Raises:
            InvalidValueError: start_date after end_date.
            FiscalYearOverlapError: range overlaps an existing fiscal year.
        """
        created_by = require_text(created_by, "created_by")
        if start_date > end_date:
            raise InvalidValueError(
                "fiscal_year",
                f"{start_date.isoformat()}..{end_date.isoformat()}",
            )

        overlapping = self._years.find_overlapping(start_date, end_date)
        if overlapping is None:
            overlapping = self._years.get_by_year(year)
        if overlapping is not None:
            raise FiscalYearOverlapError(new_year=year, existing_year=overlapping.year)

        fiscal_year = FiscalYear(
            year=year,
            start_date=start_date,
            end_date=end_date,
            is_closed=is_closed,
            created_by=created_by,
        )
        self._years.add(fiscal_year, flush=True)

        logger.info(
            "fiscal_year_created",
            extra={
                "year": year,
                "start_date": str(start_date),
                "end_date": str(end_date),
            },
        )
        return FiscalYearInfo.from_model(fiscal_year)

    def resolve_open(self, voucher_date: date) -> FiscalYear:
        """
        The open fiscal year a voucher dated ``voucher_date`` posts into.

        Raises:
            FiscalYearNotFoundError: no fiscal year covers the date.
            FiscalYearClosedError: the covering fiscal year is closed.
        """
        covering = self._years.find_covering(voucher_date)
        if covering is None:
            raise FiscalYearNotFoundError(str(voucher_date))
        if covering.is_closed:
            raise FiscalYearClosedError(covering.year, str(voucher_date))
        return covering

    def current_year(self, today: date | None = None) -> FiscalYearInfo:
        """
        The single open fiscal year containing ``today`` (clock date by default).

        This is the default posting year for callers that do not pick one.
        """
        today = today or self._clock.today()
        return FiscalYearInfo.from_model(self.resolve_open(today))

    def close_fiscal_year(self, year: int, closed_by: str) -> FiscalYearInfo:
        """
        Close a fiscal year.  Afterwards no voucher dated inside it can be
        created, edited, approved or confirmed.

        Raises:
            FiscalYearNotFoundError: unknown year.
            FiscalYearClosedError: already closed.
        """
        closed_by = require_text(closed_by, "closed_by")
        fiscal_year = self.session.execute(
            select(FiscalYear)
            .where(FiscalYear.year == year)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if fiscal_year is None:
            raise FiscalYearNotFoundError(str(year))
        if fiscal_year.is_closed:
            raise FiscalYearClosedError(year)

        fiscal_year.is_closed = True
        fiscal_year.closed_at = self._clock.now()
        fiscal_year.closed_by = closed_by
        fiscal_year.updated_by = closed_by
        self.session.flush()

        logger.info("fiscal_year_closed", extra={"year": year, "closed_by": closed_by})
        return FiscalYearInfo.from_model(fiscal_year)

    def list_fiscal_years(self) -> list[FiscalYearInfo]:
        """All fiscal years, newest first, with their voucher counts."""
        return [
            FiscalYearInfo.from_model(fiscal_year, voucher_count=count)
            for fiscal_year, count in self._years.list_with_voucher_counts()
        ]
