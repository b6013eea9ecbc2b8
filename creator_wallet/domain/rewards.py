"""Creator reward state machine

Transition legality lives here and nowhere else; services ask this module
before touching a reward's status.

    pending ──approve──> approved ──mark_paid (cash)──────> cash_paid ──complete──> completed
       │                    │      └─mark_shipped (other)─> product_shipped ─complete─┘
       ├──reject──> rejected
       └──cancel──> cancelled <──cancel── approved
"""

from typing import Dict, FrozenSet

from creator_wallet.domain.exceptions import InvalidTransition
from creator_wallet.domain.models import RewardStatus, RewardType

TERMINAL_STATES: FrozenSet[RewardStatus] = frozenset(
    {RewardStatus.COMPLETED, RewardStatus.REJECTED, RewardStatus.CANCELLED}
)

_TRANSITIONS: Dict[RewardStatus, FrozenSet[RewardStatus]] = {
    RewardStatus.PENDING: frozenset(
        {RewardStatus.APPROVED, RewardStatus.REJECTED, RewardStatus.CANCELLED}
    ),
    RewardStatus.APPROVED: frozenset(
        {RewardStatus.CASH_PAID, RewardStatus.PRODUCT_SHIPPED, RewardStatus.CANCELLED}
    ),
    RewardStatus.CASH_PAID: frozenset({RewardStatus.COMPLETED}),
    RewardStatus.PRODUCT_SHIPPED: frozenset({RewardStatus.COMPLETED}),
}

# Reward types fulfilled by delivering something rather than paying cash
SHIPPABLE_TYPES: FrozenSet[RewardType] = frozenset(
    {RewardType.PRODUCT, RewardType.VOUCHER, RewardType.CUSTOM}
)


def allowed_targets(current: RewardStatus) -> FrozenSet[RewardStatus]:
    return _TRANSITIONS.get(RewardStatus(current), frozenset())


def is_terminal(status: RewardStatus) -> bool:
    return RewardStatus(status) in TERMINAL_STATES


def assert_transition(
    current: RewardStatus,
    target: RewardStatus,
    reward_type: RewardType | None = None,
) -> None:
    """
    Raise InvalidTransition unless `current -> target` is legal.

    Fulfilment targets also depend on the reward type: only cash rewards can
    be paid and only non-cash rewards can be shipped.
    """
    current = RewardStatus(current)
    target = RewardStatus(target)

    if target not in allowed_targets(current):
        raise InvalidTransition(f"Reward cannot move from {current.value} to {target.value}")

    if reward_type is None:
        return
    reward_type = RewardType(reward_type)

    if target == RewardStatus.CASH_PAID and reward_type != RewardType.CASH:
        raise InvalidTransition(f"Only cash rewards can be paid, this one is {reward_type.value}")
    if target == RewardStatus.PRODUCT_SHIPPED and reward_type not in SHIPPABLE_TYPES:
        raise InvalidTransition("Cash rewards are paid, not shipped")
