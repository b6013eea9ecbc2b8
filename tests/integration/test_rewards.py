"""Integration tests for the reward lifecycle"""

import pytest

from creator_wallet.domain.exceptions import InsufficientFunds, InvalidTransition, RewardNotFound, WalletNotFound
from creator_wallet.domain.models import RewardKind, RewardStatus, RewardType, TransactionType
from creator_wallet.services.rewards import RewardLifecycleManager

COMPANY_ID = 1
CREATOR_ID = 7
CAMPAIGN_ID = 3
ACTOR_ID = 100


@pytest.fixture
def rewards(db, processor) -> RewardLifecycleManager:
    return RewardLifecycleManager(db, processor)


def cash_reward(rewards, value=15000, **kwargs):
    return rewards.create_reward(
        campaign_id=CAMPAIGN_ID,
        company_id=COMPANY_ID,
        creator_id=CREATOR_ID,
        kind=kwargs.pop("kind", RewardKind.RANKING_PLACE),
        reward_type=RewardType.CASH,
        value=value,
        rank_position=kwargs.pop("rank_position", 1),
        **kwargs,
    )


def test_create_reward_is_idempotent(rewards):
    """The same achievement granted twice yields one reward"""
    first = cash_reward(rewards)
    second = cash_reward(rewards)
    assert first.id == second.id
    assert first.status == RewardStatus.PENDING

    third = cash_reward(rewards, rank_position=2)
    assert third.id != first.id


def test_cash_reward_full_lifecycle(rewards, processor, funded_wallet):
    reward = cash_reward(rewards)

    rewards.approve(reward.id, actor_id=ACTOR_ID)
    paid = rewards.mark_paid(reward.id, actor_id=ACTOR_ID)

    assert paid.status == RewardStatus.CASH_PAID
    assert paid.paid_at is not None
    debit = processor.store.transactions.get(paid.wallet_transaction_id)
    assert debit.type == TransactionType.BONUS
    assert debit.amount == -15000
    assert processor.store.get_balance(funded_wallet.id).balance == 35000
    assert processor.get_creator_balance(CREATOR_ID).available_balance == 15000

    completed = rewards.complete(reward.id)
    assert completed.status == RewardStatus.COMPLETED

    statuses = [(e.from_status, e.to_status) for e in rewards.events(reward.id)]
    assert statuses == [
        (None, RewardStatus.PENDING),
        (RewardStatus.PENDING, RewardStatus.APPROVED),
        (RewardStatus.APPROVED, RewardStatus.CASH_PAID),
        (RewardStatus.CASH_PAID, RewardStatus.COMPLETED),
    ]


def test_mark_paid_without_funds_keeps_reward_approved(rewards, processor, wallet):
    """A refused payment leaves no trace"""
    reward = cash_reward(rewards)
    rewards.approve(reward.id)

    with pytest.raises(InsufficientFunds):
        rewards.mark_paid(reward.id)

    reward = rewards.get(reward.id)
    assert reward.status == RewardStatus.APPROVED
    assert reward.wallet_transaction_id is None
    assert processor.store.history(wallet.id) == []
    assert len(rewards.events(reward.id)) == 2


def test_mark_paid_requires_company_wallet(rewards):
    reward = rewards.create_reward(
        campaign_id=CAMPAIGN_ID,
        company_id=2,
        creator_id=CREATOR_ID,
        kind=RewardKind.BONUS,
        reward_type=RewardType.CASH,
        value=1000,
    )
    rewards.approve(reward.id)
    with pytest.raises(WalletNotFound):
        rewards.mark_paid(reward.id)


def test_product_reward_is_shipped(rewards):
    reward = rewards.create_reward(
        campaign_id=CAMPAIGN_ID,
        company_id=COMPANY_ID,
        creator_id=CREATOR_ID,
        kind=RewardKind.MILESTONE,
        reward_type=RewardType.PRODUCT,
        description="Sneakers",
        points_threshold=1000,
    )
    rewards.approve(reward.id)

    with pytest.raises(InvalidTransition):
        rewards.mark_paid(reward.id)

    shipped = rewards.mark_shipped(reward.id, tracking_info="BR123456789")
    assert shipped.status == RewardStatus.PRODUCT_SHIPPED
    assert shipped.tracking_info == "BR123456789"

    assert rewards.complete(reward.id).status == RewardStatus.COMPLETED


def test_rejected_reward_is_terminal(rewards):
    reward = cash_reward(rewards)
    rejected = rewards.reject(reward.id, reason="Fraudulent engagement", actor_id=ACTOR_ID)

    assert rejected.status == RewardStatus.REJECTED
    assert rejected.rejection_reason == "Fraudulent engagement"
    assert rewards.events(reward.id)[-1].note == "Fraudulent engagement"

    for move in (rewards.approve, rewards.cancel, rewards.complete):
        with pytest.raises(InvalidTransition):
            move(reward.id)


def test_approved_reward_can_be_cancelled(rewards):
    reward = cash_reward(rewards)
    rewards.approve(reward.id)
    assert rewards.cancel(reward.id).status == RewardStatus.CANCELLED


def test_unknown_reward(rewards):
    with pytest.raises(RewardNotFound):
        rewards.approve(404)


def test_listings(rewards):
    cash_reward(rewards)
    second = cash_reward(rewards, rank_position=2)
    rewards.approve(second.id)

    assert len(rewards.list_for_creator(CREATOR_ID)) == 2
    approved = rewards.list_for_company(COMPANY_ID, status=RewardStatus.APPROVED)
    assert [r.id for r in approved] == [second.id]
    assert rewards.list_for_company(COMPANY_ID, campaign_id=99) == []
