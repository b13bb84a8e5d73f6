"""
Period -- Inclusive date range value object for ledger queries.

Responsibility:
    Every read model (journal, general ledger, trial balance, netting) is
    scoped by a Period.  The opening balance of a ledger is everything posted
    strictly before ``start_date``.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Protocol

from ledger_kernel.exceptions import InvalidValueError


class _DateRange(Protocol):
    start_date: date
    end_date: date


@dataclass(frozen=True, slots=True)
class Period:
    """
    Inclusive (start_date, end_date) range.

    Guarantees:
        - start_date <= end_date (checked at construction).
        - Immutable and hashable.
    """

    start_date: date
    end_date: date

    def __post_init__(self) -> None:
        if self.start_date > self.end_date:
            raise InvalidValueError(
                "period",
                f"{self.start_date.isoformat()}..{self.end_date.isoformat()}",
            )

    @classmethod
    def for_month(cls, year: int, month: int) -> Period:
        if not 1 <= month <= 12:
            raise InvalidValueError("month", month)
        last_day = calendar.monthrange(year, month)[1]
        return cls(date(year, month, 1), date(year, month, last_day))

    @classmethod
    def for_fiscal_year(cls, fiscal_year: _DateRange) -> Period:
        """Period covering a fiscal year (FiscalYearInfo or model)."""
        return cls(fiscal_year.start_date, fiscal_year.end_date)

    @property
    def is_calendar_month(self) -> bool:
        last_day = calendar.monthrange(self.start_date.year, self.start_date.month)[1]
        return (
            self.start_date.day == 1
            and self.end_date.year == self.start_date.year
            and self.end_date.month == self.start_date.month
            and self.end_date.day == last_day
        )

    def previous(self) -> Period:
        """
        The period immediately preceding this one.

        A calendar month steps back one month.  Any other range steps back by
        its own length in days.
        """
        if self.is_calendar_month:
            if self.start_date.month == 1:
                return Period.for_month(self.start_date.year - 1, 12)
            return Period.for_month(self.start_date.year, self.start_date.month - 1)
        length = (self.end_date - self.start_date).days
        end = self.start_date - timedelta(days=1)
        return Period(end - timedelta(days=length), end)

    def contains(self, value: date) -> bool:
        return self.start_date <= value <= self.end_date

    def __str__(self) -> str:
        return f"{self.start_date.isoformat()}..{self.end_date.isoformat()}"
