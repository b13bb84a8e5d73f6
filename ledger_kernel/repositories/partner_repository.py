"""Partner lookups."""

from sqlalchemy import select

from ledger_kernel.models.partner import Partner
from ledger_kernel.repositories.base import BaseRepository


class PartnerRepository(BaseRepository[Partner]):
    model = Partner

    def get_by_code(self, code: str) -> Partner | None:
        return self.session.execute(
            select(Partner).where(Partner.code == code)
        ).scalar_one_or_none()

    def list_partners(self, active_only: bool = False) -> list[Partner]:
        stmt = select(Partner)
        if active_only:
            stmt = stmt.where(Partner.is_active.is_(True))
        return list(self.session.execute(stmt.order_by(Partner.code)).scalars())

    def existing_ids(self, partner_ids) -> set:
        ids = set(partner_ids)
        if not ids:
            return set()
        return set(
            self.session.execute(
                select(Partner.id).where(Partner.id.in_(ids))
            ).scalars()
        )
