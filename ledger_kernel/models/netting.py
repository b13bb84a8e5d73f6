"""
Module: ledger_kernel.models.netting
Responsibility: ORM persistence for netting adjustments -- the record that a
    partner's receivable and payable were offset against each other.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - amount > 0 (ck_netting_adjustment_positive).
    - Every adjustment links to its companion NETTING voucher; the voucher
      lines are what move the partner's figures, so the netting report and
      the general ledger always agree.
    - Rows are never updated or deleted (ORM listeners).  An adjustment is
      undone only by reversing its companion voucher.
"""

from datetime import date
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, String
from sqlalchemy import UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from ledger_kernel.models.partner import Partner
    from ledger_kernel.models.voucher import Voucher


class NettingAdjustment(TrackedBase):
    """An offset of receivable against payable for one partner."""

    __tablename__ = "netting_adjustments"

    __table_args__ = (
        UniqueConstraint("voucher_id", name="uq_netting_adjustment_voucher"),
        CheckConstraint("amount > 0", name="ck_netting_adjustment_positive"),
        Index("idx_netting_adjustment_partner", "partner_id"),
    )

    partner_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("partners.id"),
        nullable=False,
    )

    amount: Mapped[int] = mapped_column(nullable=False)

    adjustment_date: Mapped[date] = mapped_column(Date, nullable=False)

    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    voucher_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("vouchers.id"),
        nullable=False,
    )

    partner: Mapped["Partner"] = relationship()

    voucher: Mapped["Voucher"] = relationship()

    def __repr__(self) -> str:
        return f"<NettingAdjustment partner={self.partner_id} amount={self.amount}>"
