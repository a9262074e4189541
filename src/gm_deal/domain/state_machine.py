"""Deal state machine.

    pending ──seller_confirm──▶ seller_confirmed ──buyer_complete──▶ completed
       │  └──────────────buyer_complete (policy)───────────────────▶
       └──dispute──▶ dispute ◀──dispute── seller_confirmed

``completed`` and ``dispute`` are terminal here; disputes are resolved by a
moderator outside this flow and funds stay frozen meanwhile.

Checks run actor first, then state: a stranger gets ForbiddenError even on a
finished deal. Evaluation is pure; the caller applies the side effects.
"""

from dataclasses import dataclass
from enum import Enum

from src.gm_common.enums import DealStatus
from src.gm_common.errors import DealStateConflictError, ForbiddenError

# A buyer may skip waiting for the seller's confirmation and release funds directly.
BUYER_MAY_COMPLETE_UNCONFIRMED = True


class DealAction(str, Enum):
    SELLER_CONFIRM = "seller_confirm"
    BUYER_COMPLETE = "buyer_complete"
    DISPUTE = "dispute"


class DealRole(str, Enum):
    BUYER = "buyer"
    SELLER = "seller"
    OTHER = "other"


@dataclass(frozen=True)
class TransitionRule:
    actors: frozenset[DealRole]
    sources: frozenset[DealStatus]
    target: DealStatus


TransitionTable = dict[DealAction, TransitionRule]


def build_transition_table(buyer_may_complete_unconfirmed: bool) -> TransitionTable:
    complete_sources = {DealStatus.SELLER_CONFIRMED}
    if buyer_may_complete_unconfirmed:
        complete_sources.add(DealStatus.PENDING)
    return {
        DealAction.SELLER_CONFIRM: TransitionRule(
            actors=frozenset({DealRole.SELLER}),
            sources=frozenset({DealStatus.PENDING}),
            target=DealStatus.SELLER_CONFIRMED,
        ),
        DealAction.BUYER_COMPLETE: TransitionRule(
            actors=frozenset({DealRole.BUYER}),
            sources=frozenset(complete_sources),
            target=DealStatus.COMPLETED,
        ),
        DealAction.DISPUTE: TransitionRule(
            actors=frozenset({DealRole.BUYER, DealRole.SELLER}),
            sources=frozenset({DealStatus.PENDING, DealStatus.SELLER_CONFIRMED}),
            target=DealStatus.DISPUTE,
        ),
    }


TRANSITIONS: TransitionTable = build_transition_table(BUYER_MAY_COMPLETE_UNCONFIRMED)


def role_of(buyer_id: str, seller_id: str, user_id: str) -> DealRole:
    if user_id == buyer_id:
        return DealRole.BUYER
    if user_id == seller_id:
        return DealRole.SELLER
    return DealRole.OTHER


def next_status(
    deal_id: int | str,
    status: str,
    role: DealRole,
    action: DealAction,
    table: TransitionTable | None = None,
) -> DealStatus:
    """Target status for ``action``; raises ForbiddenError or DealStateConflictError."""
    rule = (table or TRANSITIONS)[action]
    if role not in rule.actors:
        raise ForbiddenError(f"{role.value} may not {action.value} deal {deal_id}")
    if DealStatus(status) not in rule.sources:
        raise DealStateConflictError(str(deal_id), status, action.value)
    return rule.target
