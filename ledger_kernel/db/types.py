"""
Module: ledger_kernel.db.types
Responsibility: Annotated column aliases and the I/O-boundary conversion
    between decimal major-unit amounts and integer minor-unit amounts.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/ and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    CRITICAL: No floats anywhere in the kernel.  Every amount inside the
    kernel is an ``int`` of minor currency units (e.g. cents).  Decimal values
    exist only at the boundary, on their way in (``to_minor_units``) or out
    (``from_minor_units``).

Failure modes:
    - InvalidAmountError when a boundary value has more fractional digits than
      the currency supports, is not a number, or is a float.
"""

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Annotated

from sqlalchemy import BigInteger, String
from sqlalchemy import Enum as SAEnum

from ledger_kernel.exceptions import InvalidAmountError


# Amount in minor currency units
Amount = Annotated[int, BigInteger]

# Monotonic sequence number
Sequence = Annotated[int, BigInteger]

# Short identifier strings
ShortCode = Annotated[str, String(50)]

# Long text for descriptions
LongText = Annotated[str, String(1000)]


# Number of fractional digits in one major unit (cents -> 2)
MINOR_UNIT_DECIMAL_PLACES = 2


def enum_column(enum_cls: type[Enum], length: int = 20) -> SAEnum:
    """
    Column type for a closed ``str`` enum.

    Stored as VARCHAR holding the member *value*, loaded back as the enum
    member.  Unknown strings in the database fail loudly on load instead of
    flowing into core logic as raw text.
    """
    return SAEnum(
        enum_cls,
        native_enum=False,
        create_constraint=False,
        length=length,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )


def to_minor_units(
    value: Decimal | str | int,
    decimal_places: int = MINOR_UNIT_DECIMAL_PLACES,
) -> int:
    """
    Convert a major-unit amount into integer minor units.

    Rounding is never applied: a value with more precision than the currency
    carries is rejected.

    Example:
        to_minor_units("3520.00") -> 352000
        to_minor_units(Decimal("0.015")) -> InvalidAmountError

    Raises:
        InvalidAmountError: float input, non-numeric string, or excess precision.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise InvalidAmountError(value, "amounts must be Decimal, str or int, never float")

    if isinstance(value, int):
        return value * 10**decimal_places

    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise InvalidAmountError(value, "not a number") from exc

    if not amount.is_finite():
        raise InvalidAmountError(value, "not a finite number")

    scaled = amount.scaleb(decimal_places)
    if scaled != scaled.to_integral_value():
        raise InvalidAmountError(
            value, f"more than {decimal_places} fractional digits"
        )
    return int(scaled)


def from_minor_units(
    value: int,
    decimal_places: int = MINOR_UNIT_DECIMAL_PLACES,
) -> Decimal:
    """
    Convert integer minor units into a major-unit Decimal for display/export.

    Example:
        from_minor_units(1050) -> Decimal("10.50")
    """
    return Decimal(value).scaleb(-decimal_places)
