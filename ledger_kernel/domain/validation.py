"""
Voucher line validation and boundary parsing (pure, no I/O).

All checks here run before anything touches the database.  Catalog checks
(account exists and is active, partner exists) need a Session and live in
VoucherService.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Sequence, TypeVar
from uuid import UUID

from ledger_kernel.exceptions import (
    EmptyVoucherError,
    InvalidAmountError,
    InvalidValueError,
    UnbalancedLineError,
    UnbalancedVoucherError,
)

E = TypeVar("E", bound=Enum)


@dataclass(frozen=True)
class LineInput:
    """
    One requested voucher line.

    Amounts are integer minor units.  Exactly one of debit_amount and
    credit_amount must be positive.
    """

    account_subject_id: UUID
    debit_amount: int = 0
    credit_amount: int = 0
    partner_id: UUID | None = None
    description: str | None = None

    def swapped(self) -> LineInput:
        """The contra line: same account and partner, sides exchanged."""
        return LineInput(
            account_subject_id=self.account_subject_id,
            debit_amount=self.credit_amount,
            credit_amount=self.debit_amount,
            partner_id=self.partner_id,
            description=self.description,
        )


@dataclass(frozen=True)
class VoucherTotals:
    total_debit: int
    total_credit: int


def require_amount(value: Any, name: str = "amount") -> int:
    """Reject anything that is not a plain int (bool and float included)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAmountError(
            value, f"{name} must be an integer number of minor units"
        )
    return value


def validate_line(line_no: int, line: LineInput) -> None:
    debit = require_amount(line.debit_amount, "debit_amount")
    credit = require_amount(line.credit_amount, "credit_amount")
    if debit < 0 or credit < 0:
        raise UnbalancedLineError(line_no, debit, credit)
    if (debit > 0) == (credit > 0):
        raise UnbalancedLineError(line_no, debit, credit)


def validate_lines(lines: Sequence[LineInput]) -> VoucherTotals:
    """
    Validate a full set of voucher lines and return their totals.

    Raises:
        EmptyVoucherError: no lines.
        InvalidAmountError: an amount is not an int.
        UnbalancedLineError: a line is not exactly one-sided and non-negative.
        UnbalancedVoucherError: debits and credits differ (always the case
            for a single line).
    """
    if not lines:
        raise EmptyVoucherError()

    for line_no, line in enumerate(lines, start=1):
        validate_line(line_no, line)

    total_debit = sum(line.debit_amount for line in lines)
    total_credit = sum(line.credit_amount for line in lines)
    if total_debit != total_credit:
        raise UnbalancedVoucherError(total_debit, total_credit)
    return VoucherTotals(total_debit=total_debit, total_credit=total_credit)


def parse_enum(enum_cls: type[E], value: Any, field: str) -> E:
    """
    Convert a boundary value into a closed enum member.

    Accepts a member of ``enum_cls`` or its value string (case-insensitive).
    """
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        normalized = value.strip().upper()
        for member in enum_cls:
            if member.value == normalized:
                return member
    raise InvalidValueError(field, value, [m.value for m in enum_cls])


def require_text(value: Any, field: str, max_length: int = 100) -> str:
    """Non-blank string of at most ``max_length`` characters, stripped."""
    if not isinstance(value, str) or not value.strip():
        raise InvalidValueError(field, value)
    value = value.strip()
    if len(value) > max_length:
        raise InvalidValueError(field, value)
    return value
