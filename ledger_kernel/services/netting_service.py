"""
NettingService -- offsets a partner's receivable against its payable.

Responsibility:
    Records a netting adjustment as a real ledger posting: a two-line
    NETTING voucher (debit payable, credit receivable, both tagged with the
    partner) approved on the spot, plus a NettingAdjustment row linking to
    it.  The netting report then sees the offset through the same
    posted-line stream as every other voucher.

Architecture position:
    Kernel > Services -- imperative shell.  Composes VoucherService.

Invariants enforced:
    - amount is a positive integer.
    - Adjustments are always balanced postings; the partner's receivable and
      payable drop by exactly ``amount`` and net_amount is unchanged.
    - Voucher and adjustment are written in the caller's transaction, so
      either both exist or neither does.

Failure modes:
    - InvalidAmountError: amount not a positive integer.
    - PartnerNotFoundError: unknown partner.
    - NettingAccountNotFoundError: no unique receivable/payable account.
    - FiscalYearNotFoundError / FiscalYearClosedError: bad date.
"""

from datetime import date
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_kernel.domain.authorization import allow_all
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import NettingAdjustmentInfo
from ledger_kernel.domain.validation import LineInput, require_amount, require_text
from ledger_kernel.domain.values import AccountRole, VoucherType
from ledger_kernel.exceptions import (
    InvalidAmountError,
    NettingAccountNotFoundError,
    PartnerNotFoundError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.account import AccountSubject
from ledger_kernel.models.netting import NettingAdjustment
from ledger_kernel.models.partner import Partner
from ledger_kernel.models.voucher import Voucher
from ledger_kernel.repositories.account_repository import AccountRepository
from ledger_kernel.repositories.netting_repository import NettingAdjustmentRepository
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.voucher_service import DEFAULT_VOUCHER_PREFIX, VoucherService

logger = get_logger("services.netting")


class NettingService(BaseService[NettingAdjustment]):
    """
    Service for netting adjustments.

    The companion voucher is approved by the creating actor.  It bypasses
    the caller's transition authorizer: recording the adjustment is the
    authorized act, and the voucher is its bookkeeping.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        voucher_prefix: str = DEFAULT_VOUCHER_PREFIX,
        receivable_account_code: str | None = None,
        payable_account_code: str | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._vouchers = VoucherService(
            session,
            clock=self._clock,
            authorizer=allow_all,
            voucher_prefix=voucher_prefix,
        )
        self._accounts = AccountRepository(session)
        self._adjustments = NettingAdjustmentRepository(session)
        self._account_codes = {
            AccountRole.RECEIVABLE: receivable_account_code,
            AccountRole.PAYABLE: payable_account_code,
        }

    def record_netting_adjustment(
        self,
        partner_id: UUID,
        amount: int,
        adjustment_date: date,
        description: str | None,
        created_by: str,
    ) -> NettingAdjustmentInfo:
        """
        Offset ``amount`` of the partner's receivable against its payable.

        Raises:
            InvalidAmountError, PartnerNotFoundError,
            NettingAccountNotFoundError, FiscalYearNotFoundError,
            FiscalYearClosedError.
        """
        amount = require_amount(amount)
        if amount <= 0:
            raise InvalidAmountError(amount, "netting amount must be positive")
        created_by = require_text(created_by, "created_by")

        partner = self.session.get(Partner, partner_id)
        if partner is None:
            raise PartnerNotFoundError(str(partner_id))

        receivable = self._resolve_account(AccountRole.RECEIVABLE)
        payable = self._resolve_account(AccountRole.PAYABLE)
        text = description or f"Netting {partner.code}"

        voucher = self._vouchers.create_voucher(
            voucher_date=adjustment_date,
            voucher_type=VoucherType.NETTING,
            lines=[
                LineInput(
                    account_subject_id=payable.id,
                    debit_amount=amount,
                    partner_id=partner.id,
                    description=text,
                ),
                LineInput(
                    account_subject_id=receivable.id,
                    credit_amount=amount,
                    partner_id=partner.id,
                    description=text,
                ),
            ],
            created_by=created_by,
            description=text,
        )
        self._vouchers.approve(voucher.id, approved_by=created_by)

        adjustment = NettingAdjustment(
            partner_id=partner.id,
            amount=amount,
            adjustment_date=adjustment_date,
            description=description,
            voucher=self.session.get(Voucher, voucher.id),
            created_by=created_by,
        )
        self._adjustments.add(adjustment, flush=True)

        with LogContext.bind(partner_id=partner.id, actor_id=created_by):
            logger.info(
                "netting_adjustment_recorded",
                extra={
                    "adjustment_id": str(adjustment.id),
                    "voucher_no": voucher.voucher_no,
                    "amount": amount,
                    "adjustment_date": str(adjustment_date),
                },
            )
        return NettingAdjustmentInfo.from_model(adjustment)

    def list_adjustments(self, partner_id: UUID) -> list[NettingAdjustmentInfo]:
        return [
            NettingAdjustmentInfo.from_model(row)
            for row in self._adjustments.list_for_partner(partner_id)
        ]

    def _resolve_account(self, role: AccountRole) -> AccountSubject:
        """The configured account for ``role``, else the single active one."""
        code = self._account_codes[role]
        if code is not None:
            account = self._accounts.get_by_code(code)
            if account is None or not account.is_active or account.role != role:
                raise NettingAccountNotFoundError(role.value, 0)
            return account

        candidates = self._accounts.active_with_role(role)
        if len(candidates) != 1:
            raise NettingAccountNotFoundError(role.value, len(candidates))
        return candidates[0]
