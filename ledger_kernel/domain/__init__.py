"""Pure domain layer: value types, validation, clock, DTOs. No I/O."""

from ledger_kernel.domain.authorization import (
    TransitionAuthorizer,
    VoucherTransition,
    allow_all,
)
from ledger_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from ledger_kernel.domain.dtos import (
    AccountInfo,
    FiscalYearInfo,
    NettingAdjustmentInfo,
    PartnerInfo,
    VoucherInfo,
    VoucherLineInfo,
)
from ledger_kernel.domain.period import Period
from ledger_kernel.domain.validation import LineInput, parse_enum, validate_lines
from ledger_kernel.domain.values import (
    POSTED_STATUSES,
    AccountRole,
    AccountType,
    VoucherStatus,
    VoucherType,
    signed_movement,
)

__all__ = [
    "AccountInfo",
    "AccountRole",
    "AccountType",
    "Clock",
    "DeterministicClock",
    "FiscalYearInfo",
    "LineInput",
    "NettingAdjustmentInfo",
    "POSTED_STATUSES",
    "PartnerInfo",
    "Period",
    "SystemClock",
    "TransitionAuthorizer",
    "VoucherInfo",
    "VoucherLineInfo",
    "VoucherStatus",
    "VoucherTransition",
    "VoucherType",
    "allow_all",
    "parse_enum",
    "signed_movement",
    "validate_lines",
]
