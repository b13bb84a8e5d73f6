"""
Module: ledger_kernel.models.sequence
Responsibility: Named counter rows backing voucher numbering.  One row per
    fiscal year (``voucher:2025``); the row is locked while a number is
    taken from it.
Architecture position: Kernel > Models.  May import from db/ only.
"""

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import Base


class SequenceCounter(Base):
    """Last number handed out for one named sequence."""

    __tablename__ = "sequence_counters"

    __table_args__ = (UniqueConstraint("name", name="uq_sequence_counter_name"),)

    name: Mapped[str] = mapped_column(String(50), nullable=False)

    current_value: Mapped[int] = mapped_column(nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<SequenceCounter {self.name}={self.current_value}>"
