"""Unit tests for the reward state machine"""

import pytest

from creator_wallet.domain.exceptions import InvalidTransition
from creator_wallet.domain.models import RewardStatus, RewardType
from creator_wallet.domain.rewards import TERMINAL_STATES, allowed_targets, assert_transition, is_terminal


@pytest.mark.parametrize(
    "current,target",
    [
        (RewardStatus.PENDING, RewardStatus.APPROVED),
        (RewardStatus.PENDING, RewardStatus.REJECTED),
        (RewardStatus.PENDING, RewardStatus.CANCELLED),
        (RewardStatus.APPROVED, RewardStatus.CANCELLED),
        (RewardStatus.CASH_PAID, RewardStatus.COMPLETED),
        (RewardStatus.PRODUCT_SHIPPED, RewardStatus.COMPLETED),
    ],
)
def test_legal_transitions(current, target):
    assert_transition(current, target)


@pytest.mark.parametrize(
    "current,target",
    [
        (RewardStatus.PENDING, RewardStatus.CASH_PAID),
        (RewardStatus.PENDING, RewardStatus.COMPLETED),
        (RewardStatus.APPROVED, RewardStatus.APPROVED),
        (RewardStatus.APPROVED, RewardStatus.COMPLETED),
        (RewardStatus.CASH_PAID, RewardStatus.CANCELLED),
        (RewardStatus.PRODUCT_SHIPPED, RewardStatus.CANCELLED),
    ],
)
def test_illegal_transitions(current, target):
    with pytest.raises(InvalidTransition):
        assert_transition(current, target)


@pytest.mark.parametrize("terminal", sorted(TERMINAL_STATES, key=lambda s: s.value))
def test_terminal_states_never_move(terminal):
    assert is_terminal(terminal)
    assert allowed_targets(terminal) == frozenset()
    for target in RewardStatus:
        with pytest.raises(InvalidTransition):
            assert_transition(terminal, target)


def test_only_cash_rewards_are_paid():
    assert_transition(RewardStatus.APPROVED, RewardStatus.CASH_PAID, RewardType.CASH)
    with pytest.raises(InvalidTransition):
        assert_transition(RewardStatus.APPROVED, RewardStatus.CASH_PAID, RewardType.PRODUCT)


@pytest.mark.parametrize("reward_type", [RewardType.PRODUCT, RewardType.VOUCHER, RewardType.CUSTOM])
def test_non_cash_rewards_are_shipped(reward_type):
    assert_transition(RewardStatus.APPROVED, RewardStatus.PRODUCT_SHIPPED, reward_type)


def test_cash_rewards_cannot_be_shipped():
    with pytest.raises(InvalidTransition):
        assert_transition(RewardStatus.APPROVED, RewardStatus.PRODUCT_SHIPPED, RewardType.CASH)


def test_accepts_raw_status_strings():
    assert_transition("pending", "approved")
