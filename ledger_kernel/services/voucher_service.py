"""
VoucherService -- validated voucher creation and the voucher state machine.

Responsibility:
    Validates and persists vouchers with their lines, allocates voucher
    numbers, and moves vouchers through DRAFT -> APPROVED -> CONFIRMED.
    Draft vouchers can be edited or cancelled; posted vouchers are corrected
    only by a contra (REVERSAL) voucher.

Architecture position:
    Kernel > Services -- imperative shell.  Composes FiscalYearService,
    SequenceService and the repositories.  Called by LedgerOrchestrator and
    NettingService.

Invariants enforced:
    - Every line has exactly one strictly positive side; debits == credits;
      at least one line.  Checked before any row is written.
    - Lines reference existing active accounts and existing partners.
    - voucher_date resolves to an open fiscal year.
    - total_debit == total_credit == line sums; re-checked on approve.
    - Transitions load the voucher FOR UPDATE; the version column catches
      a concurrent writer that slipped past the lock.
    - Nothing leaves CONFIRMED.  APPROVED vouchers are never deleted.

Failure modes:
    - ValidationError subclasses on bad input (nothing persisted).
    - StateError / ImmutableVoucherError / AlreadyReversedError on an
      invalid transition.
    - AuthorizationError when the injected authorizer refuses.
    - VoucherNumberConflictError / OptimisticLockError on concurrency
      conflicts (both ConcurrencyError, both retryable by the caller).
    - LedgerIntegrityError when stored totals disagree with stored lines.

Audit relevance:
    Every transition is logged with voucher_id, voucher_no and actor.
    approved_by/approved_at and confirmed_by/confirmed_at are stamped from
    the injected Clock.
"""

from collections.abc import Sequence
from datetime import date
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ledger_kernel.domain.authorization import (
    TransitionAuthorizer,
    VoucherTransition,
    allow_all,
)
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import VoucherInfo
from ledger_kernel.domain.validation import (
    LineInput,
    parse_enum,
    require_text,
    validate_lines,
)
from ledger_kernel.domain.values import VoucherStatus, VoucherType
from ledger_kernel.exceptions import (
    AccountNotFoundError,
    AlreadyReversedError,
    AuthorizationError,
    FiscalYearClosedError,
    ImmutableVoucherError,
    InvalidValueError,
    LedgerIntegrityError,
    OptimisticLockError,
    PartnerNotFoundError,
    StateError,
    VoucherNotFoundError,
    VoucherNumberConflictError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.fiscal_year import FiscalYear
from ledger_kernel.models.voucher import Voucher, VoucherLine
from ledger_kernel.repositories.account_repository import AccountRepository
from ledger_kernel.repositories.partner_repository import PartnerRepository
from ledger_kernel.repositories.voucher_repository import VoucherRepository
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.fiscal_year_service import FiscalYearService
from ledger_kernel.services.sequence_service import (
    SequenceService,
    format_voucher_no,
    voucher_sequence_name,
)

logger = get_logger("services.voucher")

DEFAULT_VOUCHER_PREFIX = "VOU"


class VoucherService(BaseService[Voucher]):
    """
    Service for voucher creation and state transitions.

    Contract:
        Every public method flushes within the caller's transaction and
        returns a frozen ``VoucherInfo`` (``cancel`` returns None).  All
        validation happens before the first INSERT or UPDATE.

    Guarantees:
        - A stored voucher is always balanced.
        - Voucher numbers are unique per fiscal year and strictly increasing
          in allocation order.

    Non-goals:
        - Does NOT commit or retry; LedgerOrchestrator retries creation on
          ConcurrencyError in a fresh transaction.
        - Does NOT answer report queries (see selectors/).
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        authorizer: TransitionAuthorizer | None = None,
        voucher_prefix: str = DEFAULT_VOUCHER_PREFIX,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._authorizer = authorizer or allow_all
        self._voucher_prefix = voucher_prefix
        self._vouchers = VoucherRepository(session)
        self._accounts = AccountRepository(session)
        self._partners = PartnerRepository(session)
        self._fiscal_years = FiscalYearService(session, self._clock)
        self._sequences = SequenceService(session)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_voucher(
        self,
        voucher_date: date,
        voucher_type: VoucherType | str,
        lines: Sequence[LineInput],
        created_by: str,
        description: str | None = None,
        reversal_of_id: UUID | None = None,
    ) -> VoucherInfo:
        """
        Validate and store a DRAFT voucher with a freshly allocated number.

        Raises:
            EmptyVoucherError, InvalidAmountError, UnbalancedLineError,
            UnbalancedVoucherError, InvalidValueError: invalid input.
            FiscalYearNotFoundError, FiscalYearClosedError: bad date.
            AccountNotFoundError, PartnerNotFoundError: unknown references.
            VoucherNumberConflictError: the allocated number was taken.
        """
        created_by = require_text(created_by, "created_by")
        parsed_type = parse_enum(VoucherType, voucher_type, "voucher_type")
        lines = list(lines)
        totals = validate_lines(lines)
        fiscal_year = self._fiscal_years.resolve_open(voucher_date)
        self._check_references(lines)

        seq = self._sequences.next_value(voucher_sequence_name(fiscal_year.year))
        voucher_no = format_voucher_no(self._voucher_prefix, fiscal_year.year, seq)

        voucher = Voucher(
            voucher_no=voucher_no,
            voucher_seq=seq,
            voucher_date=voucher_date,
            voucher_type=parsed_type,
            status=VoucherStatus.DRAFT,
            description=description,
            total_debit=totals.total_debit,
            total_credit=totals.total_credit,
            fiscal_year_id=fiscal_year.id,
            reversal_of_id=reversal_of_id,
            created_by=created_by,
            lines=self._build_lines(lines, created_by),
        )
        self._insert(voucher, fiscal_year)

        logger.info(
            "voucher_created",
            extra={
                "voucher_id": str(voucher.id),
                "voucher_no": voucher_no,
                "voucher_type": parsed_type.value,
                "voucher_date": str(voucher_date),
                "total_debit": totals.total_debit,
                "line_count": len(lines),
                "created_by": created_by,
            },
        )
        return VoucherInfo.from_model(voucher)

    def _build_lines(self, lines: Sequence[LineInput], actor: str) -> list[VoucherLine]:
        return [
            VoucherLine(
                line_no=line_no,
                account_subject_id=line.account_subject_id,
                debit_amount=line.debit_amount,
                credit_amount=line.credit_amount,
                partner_id=line.partner_id,
                description=line.description,
                created_by=actor,
            )
            for line_no, line in enumerate(lines, start=1)
        ]

    def _check_references(self, lines: Sequence[LineInput]) -> None:
        accounts = self._accounts.get_many(line.account_subject_id for line in lines)
        for line in lines:
            account = accounts.get(line.account_subject_id)
            if account is None or not account.is_active:
                raise AccountNotFoundError(str(line.account_subject_id))

        partner_ids = {line.partner_id for line in lines if line.partner_id is not None}
        missing = partner_ids - self._partners.existing_ids(partner_ids)
        if missing:
            raise PartnerNotFoundError(str(sorted(missing, key=str)[0]))

    def _insert(self, voucher: Voucher, fiscal_year: FiscalYear) -> None:
        """
        INSERT the voucher inside a savepoint.

        The unique (fiscal_year_id, voucher_no) constraint backs up the locked
        counter.  If it fires, the savepoint is rolled back so the caller's
        transaction stays usable, and the conflict surfaces as a
        ConcurrencyError.
        """
        savepoint = self.session.begin_nested()
        try:
            self.session.add(voucher)
            self.session.flush()
            savepoint.commit()
        except IntegrityError:
            savepoint.rollback()
            if self._vouchers.number_taken(fiscal_year.id, voucher.voucher_no):
                logger.warning(
                    "voucher_number_conflict",
                    extra={
                        "fiscal_year": fiscal_year.year,
                        "voucher_no": voucher.voucher_no,
                    },
                )
                raise VoucherNumberConflictError(fiscal_year.year, voucher.voucher_no)
            raise

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def approve(self, voucher_id: UUID, approved_by: str) -> VoucherInfo:
        """
        DRAFT -> APPROVED.

        Raises:
            VoucherNotFoundError: unknown voucher.
            StateError: voucher is not DRAFT (ImmutableVoucherError when
                CONFIRMED).
            FiscalYearClosedError: the voucher's fiscal year was closed.
            AuthorizationError: authorizer refused.
            LedgerIntegrityError: stored totals disagree with stored lines.
        """
        approved_by = require_text(approved_by, "approved_by")
        voucher = self._load_for_update(voucher_id)

        if voucher.status == VoucherStatus.CONFIRMED:
            raise ImmutableVoucherError(str(voucher.id), "approve")
        if voucher.status != VoucherStatus.DRAFT:
            raise StateError(str(voucher.id), voucher.status.value, "approve")

        self._require_open_year(voucher)
        self._authorize(approved_by, voucher, VoucherTransition.APPROVE)
        self._verify_totals(voucher)

        voucher.status = VoucherStatus.APPROVED
        voucher.approved_by = approved_by
        voucher.approved_at = self._clock.now()
        voucher.updated_by = approved_by
        self._flush(voucher)

        with LogContext.bind(voucher_id=voucher.id, actor_id=approved_by):
            logger.info(
                "voucher_approved",
                extra={"voucher_no": voucher.voucher_no, "version": voucher.version},
            )
        return VoucherInfo.from_model(voucher)

    def confirm(self, voucher_id: UUID, confirmed_by: str) -> VoucherInfo:
        """
        APPROVED -> CONFIRMED.  Final: nothing leaves CONFIRMED.

        Raises:
            ImmutableVoucherError: already CONFIRMED.
            StateError: still DRAFT.
            FiscalYearClosedError: the voucher's fiscal year was closed.
            AuthorizationError: authorizer refused.
        """
        confirmed_by = require_text(confirmed_by, "confirmed_by")
        voucher = self._load_for_update(voucher_id)

        if voucher.status == VoucherStatus.CONFIRMED:
            raise ImmutableVoucherError(str(voucher.id), "confirm")
        if voucher.status != VoucherStatus.APPROVED:
            raise StateError(str(voucher.id), voucher.status.value, "confirm")

        self._require_open_year(voucher)
        self._authorize(confirmed_by, voucher, VoucherTransition.CONFIRM)

        voucher.status = VoucherStatus.CONFIRMED
        voucher.confirmed_by = confirmed_by
        voucher.confirmed_at = self._clock.now()
        voucher.updated_by = confirmed_by
        self._flush(voucher)

        with LogContext.bind(voucher_id=voucher.id, actor_id=confirmed_by):
            logger.info("voucher_confirmed", extra={"voucher_no": voucher.voucher_no})
        return VoucherInfo.from_model(voucher)

    def cancel(self, voucher_id: UUID, actor: str) -> None:
        """
        Delete a DRAFT voucher and its lines.

        Raises:
            ImmutableVoucherError: CONFIRMED.
            StateError: APPROVED (post a contra voucher with ``reverse``).
        """
        actor = require_text(actor, "actor")
        voucher = self._load_for_update(voucher_id)

        if voucher.status == VoucherStatus.CONFIRMED:
            raise ImmutableVoucherError(str(voucher.id), "cancel")
        if voucher.status != VoucherStatus.DRAFT:
            raise StateError(str(voucher.id), voucher.status.value, "cancel")

        self._authorize(actor, voucher, VoucherTransition.CANCEL)

        voucher_no = voucher.voucher_no
        self._vouchers.delete(voucher)

        with LogContext.bind(voucher_id=voucher_id, actor_id=actor):
            logger.info("voucher_cancelled", extra={"voucher_no": voucher_no})

    def update_draft(
        self,
        voucher_id: UUID,
        lines: Sequence[LineInput],
        updated_by: str,
        voucher_date: date | None = None,
        voucher_type: VoucherType | str | None = None,
        description: str | None = None,
    ) -> VoucherInfo:
        """
        Replace the lines (and optionally date, type, description) of a DRAFT.

        The voucher number is kept, so the new date must stay inside the
        voucher's fiscal year.

        Raises:
            ImmutableVoucherError: CONFIRMED.
            StateError: APPROVED.
            InvalidValueError: new date in a different fiscal year.
            plus every validation error of ``create_voucher``.
        """
        updated_by = require_text(updated_by, "updated_by")
        voucher = self._load_for_update(voucher_id)

        if voucher.status == VoucherStatus.CONFIRMED:
            raise ImmutableVoucherError(str(voucher.id), "update")
        if voucher.status != VoucherStatus.DRAFT:
            raise StateError(str(voucher.id), voucher.status.value, "update")

        self._authorize(updated_by, voucher, VoucherTransition.UPDATE)

        parsed_type = (
            parse_enum(VoucherType, voucher_type, "voucher_type")
            if voucher_type is not None
            else None
        )
        lines = list(lines)
        totals = validate_lines(lines)
        new_date = voucher_date or voucher.voucher_date
        fiscal_year = self._fiscal_years.resolve_open(new_date)
        if fiscal_year.id != voucher.fiscal_year_id:
            raise InvalidValueError("voucher_date", str(new_date))
        self._check_references(lines)

        # Old lines must be gone before new ones reuse their line numbers
        voucher.lines.clear()
        self._flush(voucher)

        voucher.lines.extend(self._build_lines(lines, updated_by))
        voucher.voucher_date = new_date
        if parsed_type is not None:
            voucher.voucher_type = parsed_type
        if description is not None:
            voucher.description = description
        voucher.total_debit = totals.total_debit
        voucher.total_credit = totals.total_credit
        voucher.updated_by = updated_by
        self._flush(voucher)

        with LogContext.bind(voucher_id=voucher.id, actor_id=updated_by):
            logger.info(
                "voucher_updated",
                extra={
                    "voucher_no": voucher.voucher_no,
                    "total_debit": totals.total_debit,
                    "line_count": len(lines),
                },
            )
        return VoucherInfo.from_model(voucher)

    def reverse(
        self,
        voucher_id: UUID,
        reversal_date: date,
        created_by: str,
        description: str | None = None,
    ) -> VoucherInfo:
        """
        Create the contra voucher of an APPROVED or CONFIRMED voucher.

        The new voucher is a DRAFT of type REVERSAL with every line's sides
        swapped (same accounts, same partners) and ``reversal_of_id`` set.
        It goes through approve/confirm like any other voucher.

        Raises:
            StateError: original is still DRAFT.
            AlreadyReversedError: a contra voucher already exists.
            AuthorizationError: authorizer refused.
        """
        created_by = require_text(created_by, "created_by")
        original = self._load_for_update(voucher_id)

        if original.status == VoucherStatus.DRAFT:
            raise StateError(str(original.id), original.status.value, "reverse")

        existing = self._vouchers.find_reversal_of(original.id)
        if existing is not None:
            raise AlreadyReversedError(
                str(original.id), original.status.value, str(existing.id)
            )

        self._authorize(created_by, original, VoucherTransition.REVERSE)

        contra_lines = [
            LineInput(
                account_subject_id=line.account_subject_id,
                debit_amount=line.debit_amount,
                credit_amount=line.credit_amount,
                partner_id=line.partner_id,
                description=line.description,
            ).swapped()
            for line in original.lines
        ]
        reversal = self.create_voucher(
            voucher_date=reversal_date,
            voucher_type=VoucherType.REVERSAL,
            lines=contra_lines,
            created_by=created_by,
            description=description or f"Reversal of {original.voucher_no}",
            reversal_of_id=original.id,
        )

        logger.info(
            "voucher_reversed",
            extra={
                "voucher_id": str(original.id),
                "voucher_no": original.voucher_no,
                "reversal_id": str(reversal.id),
                "reversal_no": reversal.voucher_no,
            },
        )
        return reversal

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_open_year(self, voucher: Voucher) -> None:
        """A closed fiscal year takes no further postings, drafts included."""
        if voucher.fiscal_year.is_closed:
            raise FiscalYearClosedError(voucher.fiscal_year.year, str(voucher.voucher_date))

    def _load_for_update(self, voucher_id: UUID) -> Voucher:
        voucher = self._vouchers.get_for_update(voucher_id)
        if voucher is None:
            raise VoucherNotFoundError(str(voucher_id))
        return voucher

    def _authorize(
        self,
        actor: str,
        voucher: Voucher,
        transition: VoucherTransition,
    ) -> None:
        if not self._authorizer(actor, VoucherInfo.from_model(voucher), transition):
            logger.warning(
                "voucher_transition_denied",
                extra={
                    "voucher_id": str(voucher.id),
                    "actor": actor,
                    "transition": transition.value,
                },
            )
            raise AuthorizationError(actor, transition.value, str(voucher.id))

    def _verify_totals(self, voucher: Voucher) -> None:
        line_debit = voucher.line_debit_total
        line_credit = voucher.line_credit_total
        if (
            line_debit != line_credit
            or voucher.total_debit != line_debit
            or voucher.total_credit != line_credit
        ):
            logger.error(
                "ledger_integrity_violation",
                extra={
                    "scope": "voucher",
                    "voucher_id": str(voucher.id),
                    "voucher_no": voucher.voucher_no,
                    "total_debit": voucher.total_debit,
                    "total_credit": voucher.total_credit,
                    "line_debit": line_debit,
                    "line_credit": line_credit,
                },
            )
            raise LedgerIntegrityError(
                f"voucher {voucher.voucher_no}", line_debit, line_credit
            )

    def _flush(self, voucher: Voucher) -> None:
        try:
            self.session.flush()
        except StaleDataError as exc:
            logger.warning(
                "voucher_optimistic_lock_conflict",
                extra={"voucher_id": str(voucher.id)},
            )
            raise OptimisticLockError("Voucher", str(voucher.id)) from exc
