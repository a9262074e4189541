"""Exhaustive tests for the deal state machine."""

import itertools

import pytest

from src.gm_common.enums import DealStatus
from src.gm_common.errors import DealStateConflictError, ForbiddenError
from src.gm_deal.domain.state_machine import (
    BUYER_MAY_COMPLETE_UNCONFIRMED,
    DealAction,
    DealRole,
    build_transition_table,
    next_status,
    role_of,
)

# (action, role, status) -> target; every other combination must fail
_ALLOWED = {
    (DealAction.SELLER_CONFIRM, DealRole.SELLER, DealStatus.PENDING): DealStatus.SELLER_CONFIRMED,
    (DealAction.BUYER_COMPLETE, DealRole.BUYER, DealStatus.PENDING): DealStatus.COMPLETED,
    (DealAction.BUYER_COMPLETE, DealRole.BUYER, DealStatus.SELLER_CONFIRMED): DealStatus.COMPLETED,
    (DealAction.DISPUTE, DealRole.BUYER, DealStatus.PENDING): DealStatus.DISPUTE,
    (DealAction.DISPUTE, DealRole.BUYER, DealStatus.SELLER_CONFIRMED): DealStatus.DISPUTE,
    (DealAction.DISPUTE, DealRole.SELLER, DealStatus.PENDING): DealStatus.DISPUTE,
    (DealAction.DISPUTE, DealRole.SELLER, DealStatus.SELLER_CONFIRMED): DealStatus.DISPUTE,
}

_ACTORS = {
    DealAction.SELLER_CONFIRM: {DealRole.SELLER},
    DealAction.BUYER_COMPLETE: {DealRole.BUYER},
    DealAction.DISPUTE: {DealRole.BUYER, DealRole.SELLER},
}


def test_policy_constant_enabled() -> None:
    assert BUYER_MAY_COMPLETE_UNCONFIRMED is True


@pytest.mark.parametrize(
    ("action", "role", "status"),
    list(itertools.product(DealAction, DealRole, DealStatus)),
)
def test_every_combination(action: DealAction, role: DealRole, status: DealStatus) -> None:
    key = (action, role, status)
    if key in _ALLOWED:
        assert next_status(1, status.value, role, action) is _ALLOWED[key]
    elif role not in _ACTORS[action]:
        with pytest.raises(ForbiddenError):
            next_status(1, status.value, role, action)
    else:
        with pytest.raises(DealStateConflictError):
            next_status(1, status.value, role, action)


def test_completed_and_dispute_are_terminal() -> None:
    for status, action in itertools.product(
        (DealStatus.COMPLETED, DealStatus.DISPUTE), DealAction
    ):
        role = DealRole.SELLER if action is DealAction.SELLER_CONFIRM else DealRole.BUYER
        with pytest.raises(DealStateConflictError):
            next_status(1, status.value, role, action)


def test_stranger_is_forbidden_before_state_check() -> None:
    with pytest.raises(ForbiddenError):
        next_status(1, DealStatus.COMPLETED.value, DealRole.OTHER, DealAction.DISPUTE)


def test_strict_policy_requires_seller_confirmation() -> None:
    strict = build_transition_table(False)
    with pytest.raises(DealStateConflictError):
        next_status(1, "pending", DealRole.BUYER, DealAction.BUYER_COMPLETE, table=strict)
    assert (
        next_status(1, "seller_confirmed", DealRole.BUYER, DealAction.BUYER_COMPLETE, table=strict)
        is DealStatus.COMPLETED
    )


def test_role_of() -> None:
    assert role_of("b", "s", "b") is DealRole.BUYER
    assert role_of("b", "s", "s") is DealRole.SELLER
    assert role_of("b", "s", "x") is DealRole.OTHER
