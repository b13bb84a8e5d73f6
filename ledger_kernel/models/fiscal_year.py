"""
Module: ledger_kernel.models.fiscal_year
Responsibility: ORM persistence for fiscal years -- the numbering scope and
    posting window of vouchers.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - year is unique (uq_fiscal_year_year).
    - start_date <= end_date (ck_fiscal_year_dates).
    - Fiscal years do not overlap (checked by FiscalYearService on create).
    - Vouchers may only be dated inside an open fiscal year.

Failure modes:
    - FiscalYearOverlapError on create with an overlapping range.
    - FiscalYearClosedError when posting into a closed year.
"""

from datetime import date, datetime

from sqlalchemy import Boolean, CheckConstraint, Date, DateTime, Integer, String
from sqlalchemy import UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase


class FiscalYear(TrackedBase):
    """
    A fiscal year with an inclusive date range.

    Guarantees:
        - Once is_closed is True, no voucher dated in the year can be
          created, edited or reversed into it.
    """

    __tablename__ = "fiscal_years"

    __table_args__ = (
        UniqueConstraint("year", name="uq_fiscal_year_year"),
        CheckConstraint("start_date <= end_date", name="ck_fiscal_year_dates"),
    )

    year: Mapped[int] = mapped_column(Integer, nullable=False)

    start_date: Mapped[date] = mapped_column(Date, nullable=False)

    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    is_closed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    closed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    closed_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    def __repr__(self) -> str:
        return f"<FiscalYear {self.year} {self.start_date}..{self.end_date}>"

    def contains_date(self, check_date: date) -> bool:
        return self.start_date <= check_date <= self.end_date
