"""Voucher lookups and listings for drill-down screens."""

from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from ledger_kernel.domain.dtos import VoucherInfo
from ledger_kernel.domain.period import Period
from ledger_kernel.domain.validation import parse_enum
from ledger_kernel.domain.values import VoucherStatus, VoucherType
from ledger_kernel.exceptions import VoucherNotFoundError
from ledger_kernel.models.voucher import Voucher
from ledger_kernel.selectors.base import BaseSelector


class VoucherSelector(BaseSelector[Voucher]):
    """
    Read-only voucher queries.

    Unlike the report selectors, these see DRAFT vouchers too unless a
    ``status`` filter is given.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    def get_voucher(self, voucher_id: UUID) -> VoucherInfo:
        voucher = self.session.get(Voucher, voucher_id)
        if voucher is None:
            raise VoucherNotFoundError(str(voucher_id))
        return VoucherInfo.from_model(voucher)

    def list_vouchers(
        self,
        voucher_type: VoucherType | str | None = None,
        status: VoucherStatus | str | None = None,
        period: Period | None = None,
        search: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[VoucherInfo]:
        """
        Vouchers newest first: voucher_date desc, then voucher_seq desc.

        ``search`` matches voucher_no or description, case-insensitively.
        """
        stmt = select(Voucher).order_by(
            Voucher.voucher_date.desc(), Voucher.voucher_seq.desc()
        )
        if voucher_type is not None:
            stmt = stmt.where(
                Voucher.voucher_type == parse_enum(VoucherType, voucher_type, "voucher_type")
            )
        if status is not None:
            stmt = stmt.where(
                Voucher.status == parse_enum(VoucherStatus, status, "status")
            )
        if period is not None:
            stmt = stmt.where(
                Voucher.voucher_date >= period.start_date,
                Voucher.voucher_date <= period.end_date,
            )
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(
                or_(
                    Voucher.voucher_no.ilike(pattern),
                    Voucher.description.ilike(pattern),
                )
            )
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)

        return [VoucherInfo.from_model(v) for v in self.session.execute(stmt).scalars()]
