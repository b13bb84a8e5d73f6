"""
ledger_kernel.services.ledger_orchestrator -- Facade over the ledger kernel.

Responsibility:
    The exposed operation set of the kernel.  Each call opens its own
    transaction with ``session_scope``, wires the services and selectors it
    needs onto that session, and commits on success or rolls back on error.

Architecture position:
    Kernel > Services -- top of the kernel.  The only place that owns
    transaction boundaries.  Outer layers (UI, import jobs, ledger_config
    bridges) talk to this class and receive frozen DTOs.

Invariants enforced:
    - One operation, one transaction: a failed call leaves no trace.
    - Only operations that allocate a voucher number are retried
      (create_voucher, reverse, record_netting_adjustment), and only on
      ConcurrencyError, each attempt in a fresh transaction, at most
      ``numbering_retry_attempts`` times.
    - Reports and lookups run in read-only transactions.
    - Immutability listeners are registered before any session is opened.

Failure modes:
    - Every typed error of the underlying services and selectors propagates
      unchanged after the transaction is rolled back.
    - The last ConcurrencyError propagates once retries are exhausted.

Usage:
    orchestrator = LedgerOrchestrator(get_session_factory(), clock=clock)
    voucher = orchestrator.create_voucher(date(2025, 1, 10), "SALES", lines, "alice")
    orchestrator.approve(voucher.id, "bob")
"""

from collections.abc import Callable, Sequence
from datetime import date
from typing import TypeVar
from uuid import UUID

from sqlalchemy.orm import Session, sessionmaker

from ledger_kernel.db.engine import session_scope
from ledger_kernel.db.immutability import register_immutability_listeners
from ledger_kernel.domain.authorization import TransitionAuthorizer, allow_all
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import (
    AccountInfo,
    FiscalYearInfo,
    NettingAdjustmentInfo,
    VoucherInfo,
)
from ledger_kernel.domain.period import Period
from ledger_kernel.domain.validation import LineInput
from ledger_kernel.domain.values import AccountType, VoucherStatus, VoucherType
from ledger_kernel.exceptions import ConcurrencyError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.selectors.journal_selector import JournalLineDTO, JournalSelector
from ledger_kernel.selectors.ledger_selector import (
    AccountLedger,
    AccountSummary,
    LedgerSelector,
    TrialBalance,
)
from ledger_kernel.selectors.netting_selector import NettingSelector, PartnerNetting
from ledger_kernel.selectors.voucher_selector import VoucherSelector
from ledger_kernel.services.catalog_service import CatalogService
from ledger_kernel.services.fiscal_year_service import FiscalYearService
from ledger_kernel.services.netting_service import NettingService
from ledger_kernel.services.voucher_service import DEFAULT_VOUCHER_PREFIX, VoucherService

logger = get_logger("services.orchestrator")

T = TypeVar("T")

DEFAULT_NUMBERING_RETRY_ATTEMPTS = 3


class LedgerOrchestrator:
    """Transactional facade for the voucher ledger and netting engine.

    Contract:
        Receives a session factory and optional Clock / TransitionAuthorizer.
        Services are built per call on that call's session; the orchestrator
        itself holds no session.

    Guarantees:
        - Every public method runs in exactly one committed transaction
          (numbering operations: one per attempt).
        - Returned objects are frozen DTOs, safe to use after the session
          closes.

    Non-goals:
        - Does NOT retry transitions; a ConcurrencyError from approve or
          confirm means someone else won, and the caller must re-read.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
        authorizer: TransitionAuthorizer | None = None,
        voucher_prefix: str = DEFAULT_VOUCHER_PREFIX,
        numbering_retry_attempts: int = DEFAULT_NUMBERING_RETRY_ATTEMPTS,
        receivable_account_code: str | None = None,
        payable_account_code: str | None = None,
    ):
        if numbering_retry_attempts < 1:
            raise ValueError("numbering_retry_attempts must be at least 1")
        register_immutability_listeners()
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._authorizer = authorizer or allow_all
        self._voucher_prefix = voucher_prefix
        self._numbering_retry_attempts = numbering_retry_attempts
        self._receivable_account_code = receivable_account_code
        self._payable_account_code = payable_account_code

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def _run(self, operation: Callable[[Session], T], readonly: bool = False) -> T:
        with session_scope(self._session_factory, readonly=readonly) as session:
            return operation(session)

    def _read(self, operation: Callable[[Session], T]) -> T:
        return self._run(operation, readonly=True)

    def _run_with_numbering_retry(self, operation: Callable[[Session], T]) -> T:
        """Run ``operation`` in a fresh transaction per attempt until no
        ConcurrencyError is raised or the attempts are used up."""
        for attempt in range(1, self._numbering_retry_attempts + 1):
            try:
                return self._run(operation)
            except ConcurrencyError as exc:
                if attempt == self._numbering_retry_attempts:
                    logger.error(
                        "voucher_create_retries_exhausted",
                        extra={"attempts": attempt, "error_code": exc.code},
                    )
                    raise
                logger.warning(
                    "voucher_create_retry",
                    extra={"attempt": attempt, "error_code": exc.code},
                )
        raise AssertionError("unreachable")

    def _vouchers(self, session: Session) -> VoucherService:
        return VoucherService(
            session,
            clock=self._clock,
            authorizer=self._authorizer,
            voucher_prefix=self._voucher_prefix,
        )

    def _netting(self, session: Session) -> NettingService:
        return NettingService(
            session,
            clock=self._clock,
            voucher_prefix=self._voucher_prefix,
            receivable_account_code=self._receivable_account_code,
            payable_account_code=self._payable_account_code,
        )

    # ------------------------------------------------------------------
    # Voucher lifecycle
    # ------------------------------------------------------------------

    def create_voucher(
        self,
        voucher_date: date,
        voucher_type: VoucherType | str,
        lines: Sequence[LineInput],
        created_by: str,
        description: str | None = None,
    ) -> VoucherInfo:
        """Create a DRAFT voucher, retrying on numbering conflicts."""
        lines = list(lines)
        return self._run_with_numbering_retry(
            lambda session: self._vouchers(session).create_voucher(
                voucher_date=voucher_date,
                voucher_type=voucher_type,
                lines=lines,
                created_by=created_by,
                description=description,
            )
        )

    def approve(self, voucher_id: UUID, approved_by: str) -> VoucherInfo:
        return self._run(lambda s: self._vouchers(s).approve(voucher_id, approved_by))

    def confirm(self, voucher_id: UUID, confirmed_by: str) -> VoucherInfo:
        return self._run(lambda s: self._vouchers(s).confirm(voucher_id, confirmed_by))

    def cancel(self, voucher_id: UUID, actor: str) -> None:
        self._run(lambda s: self._vouchers(s).cancel(voucher_id, actor))

    def update_draft(
        self,
        voucher_id: UUID,
        lines: Sequence[LineInput],
        updated_by: str,
        voucher_date: date | None = None,
        voucher_type: VoucherType | str | None = None,
        description: str | None = None,
    ) -> VoucherInfo:
        return self._run(
            lambda s: self._vouchers(s).update_draft(
                voucher_id,
                lines,
                updated_by,
                voucher_date=voucher_date,
                voucher_type=voucher_type,
                description=description,
            )
        )

    def reverse(
        self,
        voucher_id: UUID,
        reversal_date: date,
        created_by: str,
        description: str | None = None,
    ) -> VoucherInfo:
        """Post the contra voucher, retrying on numbering conflicts."""
        return self._run_with_numbering_retry(
            lambda s: self._vouchers(s).reverse(
                voucher_id, reversal_date, created_by, description=description
            )
        )

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def journal(self, period: Period, account_id: UUID | None = None) -> list[JournalLineDTO]:
        return self._read(lambda s: JournalSelector(s).journal(period, account_id))

    def ledger(self, account_id: UUID, period: Period) -> AccountLedger:
        return self._read(lambda s: LedgerSelector(s).ledger(account_id, period))

    def trial_balance(self, period: Period) -> TrialBalance:
        return self._read(lambda s: LedgerSelector(s).trial_balance(period))

    def account_summaries(self, period: Period) -> list[AccountSummary]:
        return self._read(lambda s: LedgerSelector(s).account_summaries(period))

    def netting(self, period: Period, partner_id: UUID | None = None) -> list[PartnerNetting]:
        return self._read(lambda s: NettingSelector(s).netting(period, partner_id))

    def record_netting_adjustment(
        self,
        partner_id: UUID,
        amount: int,
        adjustment_date: date,
        description: str | None,
        created_by: str,
    ) -> NettingAdjustmentInfo:
        """Post the netting voucher, retrying on numbering conflicts."""
        return self._run_with_numbering_retry(
            lambda s: self._netting(s).record_netting_adjustment(
                partner_id, amount, adjustment_date, description, created_by
            )
        )

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_voucher(self, voucher_id: UUID) -> VoucherInfo:
        return self._read(lambda s: VoucherSelector(s).get_voucher(voucher_id))

    def list_vouchers(
        self,
        voucher_type: VoucherType | str | None = None,
        status: VoucherStatus | str | None = None,
        period: Period | None = None,
        search: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[VoucherInfo]:
        return self._read(
            lambda s: VoucherSelector(s).list_vouchers(
                voucher_type=voucher_type,
                status=status,
                period=period,
                search=search,
                limit=limit,
                offset=offset,
            )
        )

    def list_fiscal_years(self) -> list[FiscalYearInfo]:
        return self._read(lambda s: FiscalYearService(s, self._clock).list_fiscal_years())

    def list_accounts(
        self,
        account_type: AccountType | str | None = None,
        search: str | None = None,
    ) -> list[AccountInfo]:
        return self._read(lambda s: CatalogService(s).list_accounts(account_type, search))

    def get_account_by_code(self, code: str) -> AccountInfo:
        return self._read(lambda s: CatalogService(s).get_account_by_code(code))
