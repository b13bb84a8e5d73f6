"""Netting adjustment persistence (insert and read only)."""

from uuid import UUID

from sqlalchemy import select

from ledger_kernel.models.netting import NettingAdjustment
from ledger_kernel.repositories.base import BaseRepository


class NettingAdjustmentRepository(BaseRepository[NettingAdjustment]):
    model = NettingAdjustment

    def list_for_partner(self, partner_id: UUID) -> list[NettingAdjustment]:
        return list(
            self.session.execute(
                select(NettingAdjustment)
                .where(NettingAdjustment.partner_id == partner_id)
                .order_by(NettingAdjustment.adjustment_date, NettingAdjustment.created_at)
            ).scalars()
        )
