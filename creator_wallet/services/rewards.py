"""Reward lifecycle manager - moves creator rewards through their state machine"""

from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from creator_wallet.domain import rewards as reward_rules
from creator_wallet.domain.exceptions import InvalidAmount, RewardNotFound, WalletNotFound
from creator_wallet.domain.models import RewardKind, RewardStatus, RewardType, TransactionType
from creator_wallet.infrastructure.database.models import CreatorReward, RewardEvent
from creator_wallet.infrastructure.database.repositories import RewardRepository
from creator_wallet.infrastructure.observability.logging import log_reward_transition
from creator_wallet.infrastructure.observability.metrics import reward_transition_counter
from creator_wallet.services.ledger import unit_of_work
from creator_wallet.services.processor import TransactionProcessor
from creator_wallet.utils.date_utils import utc_now

# Timestamp column stamped when a reward enters each status
_STAMPS = {
    RewardStatus.APPROVED: "approved_at",
    RewardStatus.REJECTED: "rejected_at",
    RewardStatus.CASH_PAID: "paid_at",
    RewardStatus.PRODUCT_SHIPPED: "shipped_at",
    RewardStatus.COMPLETED: "completed_at",
    RewardStatus.CANCELLED: "cancelled_at",
}


class RewardLifecycleManager:
    """
    Owns every status change of a CreatorReward.

    Legality comes from `domain.rewards`; each accepted change is stamped on
    the reward and appended to its audit trail. Paying a cash reward also
    pays the creator from the company's wallet, and both commit together.
    """

    def __init__(self, db: Session, processor: TransactionProcessor | None = None):
        self.db = db
        self.processor = processor or TransactionProcessor(db)
        self.locks = self.processor.store.locks
        self.rewards = RewardRepository(db)

    def create_reward(
        self,
        campaign_id: int,
        company_id: int,
        creator_id: int,
        kind: RewardKind,
        reward_type: RewardType,
        value: Optional[int] = None,
        description: Optional[str] = None,
        rank_position: Optional[int] = None,
        points_threshold: Optional[int] = None,
        actor_id: Optional[int] = None,
    ) -> CreatorReward:
        """
        Record a reward the campaign scorer decided a creator earned.

        Granting the same achievement twice (same campaign, creator, kind,
        rank position and points threshold) returns the existing reward.
        """
        if value is not None and value <= 0:
            raise InvalidAmount(f"Reward value must be positive, got {value}")

        with unit_of_work(self.db, ("creator-rewards", creator_id), self.locks):
            existing = self.rewards.find_existing(campaign_id, creator_id, kind, rank_position, points_threshold)
            if existing is not None:
                return existing
            reward = self.rewards.create(
                CreatorReward(
                    campaign_id=campaign_id,
                    company_id=company_id,
                    creator_id=creator_id,
                    type=RewardKind(kind),
                    reward_type=RewardType(reward_type),
                    value=value,
                    description=description,
                    status=RewardStatus.PENDING,
                    rank_position=rank_position,
                    points_threshold=points_threshold,
                )
            )
            self._audit(reward, None, RewardStatus.PENDING, actor_id, None)
        return reward

    def get(self, reward_id: int) -> CreatorReward:
        reward = self.rewards.get(reward_id)
        if reward is None:
            raise RewardNotFound(f"Reward {reward_id} not found")
        return reward

    def approve(self, reward_id: int, actor_id: Optional[int] = None) -> CreatorReward:
        return self._transition(reward_id, RewardStatus.APPROVED, actor_id)

    def reject(self, reward_id: int, reason: Optional[str] = None, actor_id: Optional[int] = None) -> CreatorReward:
        def record_reason(reward: CreatorReward) -> None:
            reward.rejection_reason = reason

        return self._transition(reward_id, RewardStatus.REJECTED, actor_id, note=reason, before=record_reason)

    def mark_shipped(
        self,
        reward_id: int,
        tracking_info: Optional[str] = None,
        actor_id: Optional[int] = None,
    ) -> CreatorReward:
        def record_tracking(reward: CreatorReward) -> None:
            reward.tracking_info = tracking_info

        return self._transition(
            reward_id, RewardStatus.PRODUCT_SHIPPED, actor_id, note=tracking_info, before=record_tracking
        )

    def complete(self, reward_id: int, actor_id: Optional[int] = None) -> CreatorReward:
        return self._transition(reward_id, RewardStatus.COMPLETED, actor_id)

    def cancel(self, reward_id: int, actor_id: Optional[int] = None) -> CreatorReward:
        return self._transition(reward_id, RewardStatus.CANCELLED, actor_id)

    def mark_paid(self, reward_id: int, actor_id: Optional[int] = None) -> CreatorReward:
        """
        Pay an approved cash reward from the company's wallet.

        Runs under the wallet's guard: if the payment is refused (e.g.
        InsufficientFunds) nothing commits and the reward stays approved.
        """
        reward = self.get(reward_id)
        wallet = self.processor.store.wallets.get_by_company(reward.company_id)
        if wallet is None:
            raise WalletNotFound(f"Company {reward.company_id} has no wallet")

        def pay(locked: CreatorReward) -> None:
            if not locked.value or locked.value <= 0:
                raise InvalidAmount(f"Reward {locked.id} has no cash value to pay")
            debit = self.processor.pay_creator(
                wallet.id,
                locked.creator_id,
                locked.value,
                tx_type=TransactionType.BONUS,
                description=locked.description or f"Reward #{locked.id}",
                campaign_id=locked.campaign_id,
            )
            locked.wallet_transaction_id = debit.id

        with self.processor.store.wallet_guard(wallet.id):
            return self._transition(reward_id, RewardStatus.CASH_PAID, actor_id, before=pay)

    def list_for_creator(self, creator_id: int) -> List[CreatorReward]:
        return self.rewards.list_for_creator(creator_id)

    def list_for_company(
        self,
        company_id: int,
        status: Optional[RewardStatus] = None,
        campaign_id: Optional[int] = None,
    ) -> List[CreatorReward]:
        return self.rewards.list_for_company(company_id, status=status, campaign_id=campaign_id)

    def events(self, reward_id: int) -> List[RewardEvent]:
        self.get(reward_id)
        return self.rewards.events(reward_id)

    def _transition(
        self,
        reward_id: int,
        target: RewardStatus,
        actor_id: Optional[int],
        note: Optional[str] = None,
        before: Optional[Callable[[CreatorReward], None]] = None,
    ) -> CreatorReward:
        with unit_of_work(self.db, ("reward", reward_id), self.locks):
            reward = self.rewards.get_for_update(reward_id)
            if reward is None:
                raise RewardNotFound(f"Reward {reward_id} not found")

            current = RewardStatus(reward.status)
            reward_rules.assert_transition(current, target, reward.reward_type)
            if before is not None:
                before(reward)

            reward.status = target
            setattr(reward, _STAMPS[target], utc_now())
            self._audit(reward, current, target, actor_id, note)
        return reward

    def _audit(
        self,
        reward: CreatorReward,
        from_status: Optional[RewardStatus],
        to_status: RewardStatus,
        actor_id: Optional[int],
        note: Optional[str],
    ) -> None:
        self.rewards.add_event(
            RewardEvent(
                reward_id=reward.id,
                from_status=from_status,
                to_status=to_status,
                actor_id=actor_id,
                note=note,
            )
        )
        reward_transition_counter.labels(to_status=to_status.value).inc()
        log_reward_transition(
            reward.id,
            from_status.value if from_status is not None else None,
            to_status.value,
            actor_id,
        )
