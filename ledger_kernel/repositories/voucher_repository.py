"""
Voucher persistence and locking.

``get_for_update`` is the only way services load a voucher they intend to
transition: it takes the row lock (PostgreSQL) and refreshes the identity
map copy so the status check sees committed state.
"""

from uuid import UUID

from sqlalchemy import exists, select

from ledger_kernel.models.voucher import Voucher
from ledger_kernel.repositories.base import BaseRepository


class VoucherRepository(BaseRepository[Voucher]):
    model = Voucher

    def get_for_update(self, voucher_id: UUID) -> Voucher | None:
        return self.session.execute(
            select(Voucher)
            .where(Voucher.id == voucher_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def number_taken(self, fiscal_year_id: UUID, voucher_no: str) -> bool:
        return bool(
            self.session.execute(
                select(
                    exists().where(
                        Voucher.fiscal_year_id == fiscal_year_id,
                        Voucher.voucher_no == voucher_no,
                    )
                )
            ).scalar()
        )

    def find_reversal_of(self, voucher_id: UUID) -> Voucher | None:
        return self.session.execute(
            select(Voucher).where(Voucher.reversal_of_id == voucher_id)
        ).scalars().first()

    def delete(self, voucher: Voucher) -> None:
        self.session.delete(voucher)
        self.session.flush()
