"""
Module: ledger_kernel.models.partner
Responsibility: ORM persistence for business partners (customers and
    suppliers).  Identity only: netting figures are always derived from
    voucher lines, never stored on the partner.
Architecture position: Kernel > Models.  May import from db/ only.
"""

from sqlalchemy import Boolean, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase


class Partner(TrackedBase):
    """A counterparty that voucher lines can be tagged with."""

    __tablename__ = "partners"

    __table_args__ = (UniqueConstraint("code", name="uq_partner_code"),)

    code: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Partner {self.code}: {self.name}>"
