"""
ORM-Level Immutability Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

Posted bookkeeping records must not change.  A confirmed voucher is corrected
with a contra voucher, never edited in place, so every report that was ever
produced from it can be reproduced.

VoucherService already refuses invalid transitions.  This module is the
second layer: SQLAlchemy mapper events that fire BEFORE the SQL is sent, so a
forgotten check in some future service (or a hand-written script using the
ORM) still cannot rewrite history.

    session.flush()
         |
         v
    [before_insert/update/delete] --> _check_*() --> ImmutableVoucherError
         |                                          ImmutabilityViolationError
         v                                          StateError
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity              | Rule
--------------------|------------------------------------------------------------
Voucher             | No field changes once CONFIRMED (audit fields excepted)
Voucher             | No DELETE once APPROVED or CONFIRMED
VoucherLine         | No INSERT/UPDATE/DELETE while parent is APPROVED/CONFIRMED
NettingAdjustment   | No UPDATE, no DELETE, ever
AccountSubject      | code/account_type/role frozen once used by a posted line

===============================================================================
DESIGN DECISIONS
===============================================================================

1. updated_at / updated_by may change on any row: they are audit metadata.

2. "Was confirmed" is read from attribute history, so the APPROVED ->
   CONFIRMED transition itself passes, and every change after it fails.

3. Model imports are inline to avoid a models <-> db import cycle.

===============================================================================
USAGE
===============================================================================

    from ledger_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # idempotent, called by LedgerOrchestrator

To temporarily disable (TESTS ONLY - never in production):

    unregister_immutability_listeners()
    # ... corrupt data on purpose ...
    register_immutability_listeners()
"""

from sqlalchemy import event, exists, inspect, select
from sqlalchemy.orm.attributes import get_history

from ledger_kernel.domain.values import POSTED_STATUSES, VoucherStatus
from ledger_kernel.exceptions import (
    ImmutabilityViolationError,
    ImmutableVoucherError,
    StateError,
)
from ledger_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

# Fields that may change on any row
AUDIT_FIELDS = frozenset({"updated_at", "updated_by", "version"})

# Identity fields frozen once an account carries posted lines
ACCOUNT_IDENTITY_FIELDS = ("code", "account_type", "role")


def _blocked(entity_type: str, entity_id, operation: str, **fields) -> None:
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "operation": operation,
            **fields,
        },
    )


def _status_before_flush(target) -> VoucherStatus:
    """Status as loaded from the database, ignoring pending changes."""
    history = get_history(target, "status")
    if history.deleted:
        return history.deleted[0]
    return target.status


# =============================================================================
# Voucher
# =============================================================================


def _check_voucher_immutability(mapper, connection, target):
    """Block any field change on a voucher that was already CONFIRMED."""
    if _status_before_flush(target) != VoucherStatus.CONFIRMED:
        return

    for attr in inspect(target).attrs:
        if attr.key in AUDIT_FIELDS:
            continue
        if attr.history.has_changes():
            _blocked("Voucher", target.id, "UPDATE", field=attr.key)
            raise ImmutableVoucherError(str(target.id), f"modify {attr.key} of")


def _check_voucher_delete(mapper, connection, target):
    status = _status_before_flush(target)
    if status == VoucherStatus.CONFIRMED:
        _blocked("Voucher", target.id, "DELETE", status=status.value)
        raise ImmutableVoucherError(str(target.id), "delete")
    if status == VoucherStatus.APPROVED:
        _blocked("Voucher", target.id, "DELETE", status=status.value)
        raise StateError(str(target.id), status.value, "delete")


# =============================================================================
# VoucherLine
# =============================================================================


def _line_parent_status(connection, target):
    """
    (voucher_id, status) of the voucher owning a line.

    A line removed from ``Voucher.lines`` has lost its parent reference by
    flush time, so the stored row is consulted instead.
    """
    from ledger_kernel.models.voucher import Voucher

    voucher = target.voucher
    if voucher is not None:
        return voucher.id, _status_before_flush(voucher)
    status = connection.execute(
        select(Voucher.status).where(Voucher.id == target.voucher_id)
    ).scalar_one_or_none()
    return target.voucher_id, status


def _check_voucher_line_write(operation: str):
    def _check(mapper, connection, target):
        voucher_id, status = _line_parent_status(connection, target)
        if status == VoucherStatus.CONFIRMED:
            _blocked("VoucherLine", target.id, operation, voucher_id=str(voucher_id))
            raise ImmutableVoucherError(str(voucher_id), f"{operation.lower()} lines of")
        if status in POSTED_STATUSES:
            _blocked("VoucherLine", target.id, operation, voucher_id=str(voucher_id))
            raise ImmutabilityViolationError(
                entity_type="VoucherLine",
                entity_id=str(target.id),
                reason=f"Lines of {status.value} voucher {voucher_id} are frozen",
            )

    _check.__name__ = f"_check_voucher_line_{operation.lower()}"
    return _check


_check_voucher_line_insert = _check_voucher_line_write("INSERT")
_check_voucher_line_update = _check_voucher_line_write("UPDATE")
_check_line_row_delete = _check_voucher_line_write("DELETE")


def _check_voucher_line_delete(mapper, connection, target):
    """
    A cascaded voucher delete removes the lines first, so the voucher rule
    is applied here for a parent that is itself marked deleted.
    """
    voucher = target.voucher
    session = inspect(target).session
    if voucher is not None and session is not None and voucher in session.deleted:
        _check_voucher_delete(mapper, connection, voucher)
    _check_line_row_delete(mapper, connection, target)


# =============================================================================
# NettingAdjustment
# =============================================================================


def _check_netting_adjustment_immutability(mapper, connection, target):
    _blocked("NettingAdjustment", target.id, "UPDATE")
    raise ImmutabilityViolationError(
        entity_type="NettingAdjustment",
        entity_id=str(target.id),
        reason="Netting adjustments cannot be modified; reverse the companion voucher",
    )


def _check_netting_adjustment_delete(mapper, connection, target):
    _blocked("NettingAdjustment", target.id, "DELETE")
    raise ImmutabilityViolationError(
        entity_type="NettingAdjustment",
        entity_id=str(target.id),
        reason="Netting adjustments cannot be deleted; reverse the companion voucher",
    )


# =============================================================================
# AccountSubject
# =============================================================================


def _account_has_posted_lines(connection, account_id) -> bool:
    from ledger_kernel.models.voucher import Voucher, VoucherLine

    stmt = select(
        exists().where(
            VoucherLine.account_subject_id == account_id,
            VoucherLine.voucher_id == Voucher.id,
            Voucher.status.in_(POSTED_STATUSES),
        )
    )
    return bool(connection.execute(stmt).scalar())


def _check_account_identity_immutability(mapper, connection, target):
    """
    Prevent identity changes on accounts referenced by posted lines.

    Non-identity fields (name, name_en, is_active, ...) can still change.
    """
    changed = [
        field for field in ACCOUNT_IDENTITY_FIELDS
        if get_history(target, field).has_changes()
    ]
    if not changed:
        return

    if _account_has_posted_lines(connection, target.id):
        _blocked("AccountSubject", target.id, "UPDATE", fields=changed)
        raise ImmutabilityViolationError(
            entity_type="AccountSubject",
            entity_id=str(target.id),
            reason=(
                f"Cannot modify {changed} on account {target.code} "
                "referenced by posted voucher lines"
            ),
        )


# =============================================================================
# Registration
# =============================================================================


def _listeners():
    from ledger_kernel.models.account import AccountSubject
    from ledger_kernel.models.netting import NettingAdjustment
    from ledger_kernel.models.voucher import Voucher, VoucherLine

    return [
        (Voucher, "before_update", _check_voucher_immutability),
        (Voucher, "before_delete", _check_voucher_delete),
        (VoucherLine, "before_insert", _check_voucher_line_insert),
        (VoucherLine, "before_update", _check_voucher_line_update),
        (VoucherLine, "before_delete", _check_voucher_line_delete),
        (NettingAdjustment, "before_update", _check_netting_adjustment_immutability),
        (NettingAdjustment, "before_delete", _check_netting_adjustment_delete),
        (AccountSubject, "before_update", _check_account_identity_immutability),
    ]


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Idempotent: listeners already attached are skipped.
    """
    for target, event_name, listener_fn in _listeners():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests where you need to intentionally
    violate immutability rules to verify detection.
    """
    for target, event_name, listener_fn in _listeners():
        _safe_remove_listener(target, event_name, listener_fn)
