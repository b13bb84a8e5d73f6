"""
SequenceService -- voucher numbers from locked counter rows.

Every fiscal year has its own counter (``voucher:<year>``).  Taking a number
locks that row with ``SELECT ... FOR UPDATE`` and increments it inside the
caller's transaction, so:

    - two open transactions can never hold the same number;
    - a rolled-back voucher creation gives its number back, leaving no gap.

``max(voucher_seq) + 1`` is never used: two readers would see the same
maximum.

On SQLite the row lock is a no-op; the engine opens every transaction with
BEGIN IMMEDIATE, which serializes writers instead.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.sequence import SequenceCounter

logger = get_logger("services.sequence")


def voucher_sequence_name(fiscal_year: int) -> str:
    return f"voucher:{fiscal_year}"


def format_voucher_no(prefix: str, fiscal_year: int, seq: int) -> str:
    """``format_voucher_no("VOU", 2025, 1) -> "VOU-2025-00001"``"""
    return f"{prefix}-{fiscal_year}-{seq:05d}"


class SequenceService:
    """Counter allocation.  Never commits; the caller owns the transaction."""

    def __init__(self, session: Session):
        self._session = session

    def _locked(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _create(self, sequence_name: str, value: int) -> SequenceCounter | None:
        """
        Insert a fresh counter row inside a savepoint.

        Returns None when a concurrent transaction inserted the same name
        first; the caller's other pending work is left untouched.
        """
        try:
            with self._session.begin_nested():
                counter = SequenceCounter(name=sequence_name, current_value=value)
                self._session.add(counter)
        except IntegrityError:
            logger.debug("sequence_counter_race", extra={"sequence_name": sequence_name})
            return None
        return counter

    def next_value(self, sequence_name: str) -> int:
        """Increment ``sequence_name`` and return the new value (1 on first use)."""
        counter = self._locked(sequence_name)
        if counter is None:
            counter = self._create(sequence_name, 1)
            if counter is not None:
                value = 1
            else:
                counter = self._locked(sequence_name)
                counter.current_value += 1
                value = counter.current_value
        else:
            counter.current_value += 1
            value = counter.current_value

        self._session.flush()
        logger.debug("sequence_allocated", extra={"sequence_name": sequence_name, "value": value})
        return value

    def current_value(self, sequence_name: str) -> int | None:
        """Last value handed out, or None for a sequence never used."""
        return self._session.execute(
            select(SequenceCounter.current_value).where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()

    def reset(self, sequence_name: str, value: int = 0) -> None:
        """
        Force a counter to ``value``.  Tests and data repair only: setting it
        below a number already used makes the next creation hit the
        (fiscal_year_id, voucher_no) unique constraint.
        """
        counter = self._locked(sequence_name)
        if counter is None:
            counter = self._create(sequence_name, value) or self._locked(sequence_name)
        counter.current_value = value
        self._session.flush()
        logger.info("sequence_reset", extra={"sequence_name": sequence_name, "value": value})
