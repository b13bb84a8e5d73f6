"""
Typed Exception Hierarchy for the Ledger Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the ledger (reporting layers, HTTP adapters, batch jobs) need to
react to failures precisely: a caller fixes its input after a ValidationError,
retries after a ConcurrencyError, and pages somebody after a
LedgerIntegrityError.  Parsing message strings for that is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from LedgerKernelError:

    LedgerKernelError (base)
    |
    +-- ValidationError                 rejected before persistence
    |   +-- UnbalancedLineError
    |   +-- UnbalancedVoucherError
    |   +-- EmptyVoucherError
    |   +-- InvalidAmountError
    |   +-- InvalidValueError
    |   +-- FiscalYearNotFoundError
    |   +-- FiscalYearClosedError
    |   +-- FiscalYearOverlapError
    |   +-- NettingAccountNotFoundError
    |
    +-- StateError                      invalid voucher transition
    |   +-- ImmutableVoucherError
    |   +-- AlreadyReversedError
    |
    +-- AuthorizationError              actor may not perform transition
    |
    +-- ConcurrencyError                safe to retry the whole operation
    |   +-- VoucherNumberConflictError
    |   +-- OptimisticLockError
    |
    +-- ImmutabilityViolationError      ORM-level guard fired
    |
    +-- LedgerIntegrityError            stored data is corrupt (fatal)
    |
    +-- NotFoundError
        +-- AccountNotFoundError
        +-- PartnerNotFoundError
        +-- VoucherNotFoundError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                        | When Raised
--------------|-----------------------------|-------------------------------------------
Validation    | UNBALANCED_LINE             | Line not exactly one positive side
              | UNBALANCED_VOUCHER          | Sum of debits != sum of credits
              | EMPTY_VOUCHER               | Voucher without lines
              | INVALID_AMOUNT              | Non-integer, float or non-positive amount
              | INVALID_VALUE               | Unknown enum tag or malformed field
              | FISCAL_YEAR_NOT_FOUND       | No fiscal year covers the date
              | FISCAL_YEAR_CLOSED          | Fiscal year covering the date is closed
              | FISCAL_YEAR_OVERLAP         | New fiscal year overlaps an existing one
              | NETTING_ACCOUNT_NOT_FOUND   | No unique receivable/payable account
--------------|-----------------------------|-------------------------------------------
State         | INVALID_STATE               | Transition not allowed from status
              | IMMUTABLE_VOUCHER           | Mutation of a CONFIRMED voucher
              | ALREADY_REVERSED            | Voucher already has a contra voucher
--------------|-----------------------------|-------------------------------------------
Authorization | NOT_AUTHORIZED              | Authorizer refused the transition
--------------|-----------------------------|-------------------------------------------
Concurrency   | VOUCHER_NUMBER_CONFLICT     | Voucher number allocated twice
              | OPTIMISTIC_LOCK_CONFLICT    | Voucher changed by another transaction
--------------|-----------------------------|-------------------------------------------
Immutability  | IMMUTABILITY_VIOLATION      | ORM listener blocked a write
--------------|-----------------------------|-------------------------------------------
Integrity     | LEDGER_INTEGRITY            | Aggregate debit/credit mismatch
--------------|-----------------------------|-------------------------------------------
Not found     | ACCOUNT_NOT_FOUND           | Unknown account id/code
              | PARTNER_NOT_FOUND           | Unknown partner id
              | VOUCHER_NOT_FOUND           | Unknown voucher id

===============================================================================
HANDLING PATTERNS
===============================================================================

    try:
        orchestrator.create_voucher(...)
    except UnbalancedVoucherError as e:
        return {"error": e.code, "debits": e.total_debit, "credits": e.total_credit}
    except ValidationError as e:
        return {"error": e.code, "message": str(e)}

    except LedgerIntegrityError:
        alert_operations()   # never render the report, never "fix" the data
        raise
"""


class LedgerKernelError(Exception):
    """
    Base exception for all ledger kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "LEDGER_KERNEL_ERROR"


# Validation errors


class ValidationError(LedgerKernelError):
    """Input rejected before any persistence; the caller can correct and resend."""

    code: str = "VALIDATION_ERROR"


class UnbalancedLineError(ValidationError):
    """A line does not have exactly one strictly positive side."""

    code: str = "UNBALANCED_LINE"

    def __init__(self, line_no: int, debit_amount: int, credit_amount: int):
        self.line_no = line_no
        self.debit_amount = debit_amount
        self.credit_amount = credit_amount
        super().__init__(
            f"Line {line_no} must have exactly one positive side: "
            f"debit={debit_amount}, credit={credit_amount}"
        )


class UnbalancedVoucherError(ValidationError):
    """Voucher debits do not equal credits."""

    code: str = "UNBALANCED_VOUCHER"

    def __init__(self, total_debit: int, total_credit: int):
        self.total_debit = total_debit
        self.total_credit = total_credit
        super().__init__(
            f"Unbalanced voucher: debits={total_debit}, credits={total_credit}"
        )


class EmptyVoucherError(ValidationError):
    """Voucher has no lines."""

    code: str = "EMPTY_VOUCHER"

    def __init__(self):
        super().__init__("A voucher needs at least one line")


class InvalidAmountError(ValidationError):
    """Amount is not an acceptable integer minor-unit value."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: object, reason: str):
        self.amount = amount
        self.reason = reason
        super().__init__(f"Invalid amount {amount!r}: {reason}")


class InvalidValueError(ValidationError):
    """A field holds a value outside its closed set (enum tag, blank text...)."""

    code: str = "INVALID_VALUE"

    def __init__(self, field: str, value: object, allowed: list[str] | None = None):
        self.field = field
        self.value = value
        self.allowed = allowed
        suffix = f" (allowed: {', '.join(allowed)})" if allowed else ""
        super().__init__(f"Invalid value for {field}: {value!r}{suffix}")


class FiscalYearNotFoundError(ValidationError):
    """No fiscal year covers the given date."""

    code: str = "FISCAL_YEAR_NOT_FOUND"

    def __init__(self, voucher_date: str):
        self.voucher_date = voucher_date
        super().__init__(f"No fiscal year found for date: {voucher_date}")


class FiscalYearClosedError(ValidationError):
    """The fiscal year covering the given date is closed."""

    code: str = "FISCAL_YEAR_CLOSED"

    def __init__(self, year: int, voucher_date: str | None = None):
        self.year = year
        self.voucher_date = voucher_date
        if voucher_date is None:
            message = f"Fiscal year {year} is already closed"
        else:
            message = f"Cannot post to closed fiscal year {year} (date: {voucher_date})"
        super().__init__(message)


class FiscalYearOverlapError(ValidationError):
    """New fiscal year date range overlaps with an existing one."""

    code: str = "FISCAL_YEAR_OVERLAP"

    def __init__(self, new_year: int, existing_year: int):
        self.new_year = new_year
        self.existing_year = existing_year
        super().__init__(
            f"Fiscal year {new_year} overlaps with fiscal year {existing_year}"
        )


class NettingAccountNotFoundError(ValidationError):
    """No single active account carries the role a netting posting needs."""

    code: str = "NETTING_ACCOUNT_NOT_FOUND"

    def __init__(self, role: str, candidates: int):
        self.role = role
        self.candidates = candidates
        super().__init__(
            f"Expected exactly one active {role} account for netting, "
            f"found {candidates}"
        )


# State errors


class StateError(LedgerKernelError):
    """Transition attempted from a status that does not allow it."""

    code: str = "INVALID_STATE"

    def __init__(self, voucher_id: str, current_status: str, operation: str):
        self.voucher_id = voucher_id
        self.current_status = current_status
        self.operation = operation
        super().__init__(
            f"Cannot {operation} voucher {voucher_id} in status {current_status}"
        )


class ImmutableVoucherError(StateError):
    """Mutation or deletion attempted on a CONFIRMED voucher."""

    code: str = "IMMUTABLE_VOUCHER"

    def __init__(self, voucher_id: str, operation: str):
        super().__init__(voucher_id, "CONFIRMED", operation)


class AlreadyReversedError(StateError):
    """A contra voucher already exists for this voucher."""

    code: str = "ALREADY_REVERSED"

    def __init__(self, voucher_id: str, current_status: str, reversal_id: str):
        self.reversal_id = reversal_id
        super().__init__(voucher_id, current_status, "reverse")


# Authorization


class AuthorizationError(LedgerKernelError):
    """The injected authorizer refused the transition."""

    code: str = "NOT_AUTHORIZED"

    def __init__(self, actor: str, operation: str, voucher_id: str):
        self.actor = actor
        self.operation = operation
        self.voucher_id = voucher_id
        super().__init__(
            f"Actor {actor} is not allowed to {operation} voucher {voucher_id}"
        )


# Concurrency


class ConcurrencyError(LedgerKernelError):
    """Base exception for concurrency conflicts; the whole operation may be retried."""

    code: str = "CONCURRENCY_ERROR"


class VoucherNumberConflictError(ConcurrencyError):
    """The allocated voucher number is already taken in this fiscal year."""

    code: str = "VOUCHER_NUMBER_CONFLICT"

    def __init__(self, fiscal_year: int, voucher_no: str):
        self.fiscal_year = fiscal_year
        self.voucher_no = voucher_no
        super().__init__(
            f"Voucher number {voucher_no} already allocated in fiscal year {fiscal_year}"
        )


class OptimisticLockError(ConcurrencyError):
    """Optimistic locking conflict detected."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"Optimistic lock conflict on {entity_type} {entity_id}: "
            "entity was modified by another transaction"
        )


# Immutability


class ImmutabilityViolationError(LedgerKernelError):
    """An ORM immutability listener blocked an UPDATE or DELETE."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Integrity


class LedgerIntegrityError(LedgerKernelError):
    """
    Stored ledger data violates double entry.

    Fatal: upstream data is corrupt.  Must be surfaced, never corrected.
    """

    code: str = "LEDGER_INTEGRITY"

    def __init__(self, scope: str, total_debit: int, total_credit: int):
        self.scope = scope
        self.total_debit = total_debit
        self.total_credit = total_credit
        super().__init__(
            f"Ledger integrity violation in {scope}: "
            f"debits={total_debit}, credits={total_credit}"
        )


# Not found


class NotFoundError(LedgerKernelError):
    """Base exception for unknown identifiers."""

    code: str = "NOT_FOUND"


class AccountNotFoundError(NotFoundError):
    """Account subject with given id or code was not found."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_ref: str):
        self.account_ref = account_ref
        super().__init__(f"Account not found: {account_ref}")


class PartnerNotFoundError(NotFoundError):
    """Partner with given id was not found."""

    code: str = "PARTNER_NOT_FOUND"

    def __init__(self, partner_ref: str):
        self.partner_ref = partner_ref
        super().__init__(f"Partner not found: {partner_ref}")


class VoucherNotFoundError(NotFoundError):
    """Voucher with given id was not found."""

    code: str = "VOUCHER_NOT_FOUND"

    def __init__(self, voucher_id: str):
        self.voucher_id = voucher_id
        super().__init__(f"Voucher not found: {voucher_id}")
