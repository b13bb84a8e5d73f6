"""
Transition authorization seam.

The kernel does not know about users, roles or permissions.  An external
collaborator answers one question per state transition: may this actor do
this to this voucher?  A False answer becomes AuthorizationError before any
change is made.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ledger_kernel.domain.dtos import VoucherInfo


class VoucherTransition(str, Enum):
    APPROVE = "approve"
    CONFIRM = "confirm"
    CANCEL = "cancel"
    UPDATE = "update"
    REVERSE = "reverse"


class TransitionAuthorizer(Protocol):
    def __call__(
        self,
        actor: str,
        voucher: VoucherInfo,
        transition: VoucherTransition,
    ) -> bool: ...


def allow_all(actor: str, voucher: VoucherInfo, transition: VoucherTransition) -> bool:
    return True


def deny_self_approval(
    actor: str,
    voucher: VoucherInfo,
    transition: VoucherTransition,
) -> bool:
    """
    Four-eyes rule: the creator of a voucher may not approve or confirm it.

    System-generated netting vouchers are approved by their creator inside the
    kernel and never pass through an authorizer.
    """
    if transition in (VoucherTransition.APPROVE, VoucherTransition.CONFIRM):
        return actor != voucher.created_by
    return True
