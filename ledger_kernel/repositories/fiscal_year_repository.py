"""Fiscal year lookups: by year, by covering date, overlap search."""

from datetime import date

from sqlalchemy import func, select

from ledger_kernel.models.fiscal_year import FiscalYear
from ledger_kernel.models.voucher import Voucher
from ledger_kernel.repositories.base import BaseRepository


class FiscalYearRepository(BaseRepository[FiscalYear]):
    model = FiscalYear

    def get_by_year(self, year: int) -> FiscalYear | None:
        return self.session.execute(
            select(FiscalYear).where(FiscalYear.year == year)
        ).scalar_one_or_none()

    def find_covering(self, check_date: date) -> FiscalYear | None:
        """The fiscal year whose range contains ``check_date``, open or closed."""
        return self.session.execute(
            select(FiscalYear).where(
                FiscalYear.start_date <= check_date,
                FiscalYear.end_date >= check_date,
            )
        ).scalars().first()

    def find_overlapping(self, start_date: date, end_date: date) -> FiscalYear | None:
        return self.session.execute(
            select(FiscalYear)
            .where(
                FiscalYear.start_date <= end_date,
                FiscalYear.end_date >= start_date,
            )
            .order_by(FiscalYear.start_date)
        ).scalars().first()

    def list_with_voucher_counts(self) -> list[tuple[FiscalYear, int]]:
        """All fiscal years, newest first, with the number of vouchers in each."""
        counts = (
            select(Voucher.fiscal_year_id, func.count(Voucher.id).label("voucher_count"))
            .group_by(Voucher.fiscal_year_id)
            .subquery()
        )
        rows = self.session.execute(
            select(FiscalYear, func.coalesce(counts.c.voucher_count, 0))
            .outerjoin(counts, counts.c.fiscal_year_id == FiscalYear.id)
            .order_by(FiscalYear.year.desc())
        ).all()
        return [(fiscal_year, int(count)) for fiscal_year, count in rows]
