"""Reward endpoints for companies reviewing and paying creator rewards"""

from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from creator_wallet.api.dependencies import (
    get_actor_id,
    get_company_id,
    get_notification_client,
    get_reward_manager,
)
from creator_wallet.api.v1 import schemas
from creator_wallet.domain.exceptions import RewardNotFound
from creator_wallet.domain.models import RewardStatus
from creator_wallet.infrastructure.clients.notifications import NotificationClient
from creator_wallet.services.rewards import RewardLifecycleManager
from creator_wallet.utils.currency import to_minor_units

router = APIRouter()


def _own_reward(rewards: RewardLifecycleManager, company_id: int, reward_id: int) -> None:
    if rewards.get(reward_id).company_id != company_id:
        raise RewardNotFound(f"Reward {reward_id} not found")


@router.get("/rewards", response_model=List[schemas.RewardResponse])
def list_rewards(
    status: Optional[RewardStatus] = Query(None),
    campaign_id: Optional[int] = Query(None, alias="campaignId"),
    company_id: int = Depends(get_company_id),
    rewards: RewardLifecycleManager = Depends(get_reward_manager),
):
    return rewards.list_for_company(company_id, status=status, campaign_id=campaign_id)


@router.post("/rewards", response_model=schemas.RewardResponse, status_code=201)
def create_reward(
    request_body: schemas.RewardCreateRequest,
    company_id: int = Depends(get_company_id),
    actor_id: Optional[int] = Depends(get_actor_id),
    rewards: RewardLifecycleManager = Depends(get_reward_manager),
):
    """Record a reward decided by the campaign scorer; repeats return the existing reward"""
    return rewards.create_reward(
        campaign_id=request_body.campaign_id,
        company_id=company_id,
        creator_id=request_body.creator_id,
        kind=request_body.type,
        reward_type=request_body.reward_type,
        value=to_minor_units(request_body.value) if request_body.value is not None else None,
        description=request_body.description,
        rank_position=request_body.rank_position,
        points_threshold=request_body.points_threshold,
        actor_id=actor_id,
    )


@router.get("/rewards/{reward_id}/events", response_model=List[schemas.RewardEventResponse])
def list_events(
    reward_id: int,
    company_id: int = Depends(get_company_id),
    rewards: RewardLifecycleManager = Depends(get_reward_manager),
):
    _own_reward(rewards, company_id, reward_id)
    return rewards.events(reward_id)


@router.post("/rewards/{reward_id}/approve", response_model=schemas.RewardResponse)
def approve(
    reward_id: int,
    company_id: int = Depends(get_company_id),
    actor_id: Optional[int] = Depends(get_actor_id),
    rewards: RewardLifecycleManager = Depends(get_reward_manager),
):
    _own_reward(rewards, company_id, reward_id)
    return rewards.approve(reward_id, actor_id=actor_id)


@router.post("/rewards/{reward_id}/reject", response_model=schemas.RewardResponse)
def reject(
    reward_id: int,
    request_body: schemas.RejectRequest,
    company_id: int = Depends(get_company_id),
    actor_id: Optional[int] = Depends(get_actor_id),
    rewards: RewardLifecycleManager = Depends(get_reward_manager),
):
    _own_reward(rewards, company_id, reward_id)
    return rewards.reject(reward_id, reason=request_body.reason, actor_id=actor_id)


@router.post("/rewards/{reward_id}/mark-paid", response_model=schemas.RewardResponse)
def mark_paid(
    reward_id: int,
    background_tasks: BackgroundTasks,
    company_id: int = Depends(get_company_id),
    actor_id: Optional[int] = Depends(get_actor_id),
    rewards: RewardLifecycleManager = Depends(get_reward_manager),
    notifier: NotificationClient = Depends(get_notification_client),
):
    """Pay a cash reward from the company wallet; stays approved if the wallet cannot cover it"""
    _own_reward(rewards, company_id, reward_id)
    reward = rewards.mark_paid(reward_id, actor_id=actor_id)
    background_tasks.add_task(
        notifier.send_event,
        "REWARD_PAID",
        {
            "reward_id": reward.id,
            "creator_id": reward.creator_id,
            "amount": reward.value,
            "transaction_id": reward.wallet_transaction_id,
        },
    )
    return reward


@router.post("/rewards/{reward_id}/mark-shipped", response_model=schemas.RewardResponse)
def mark_shipped(
    reward_id: int,
    request_body: schemas.ShipRequest,
    company_id: int = Depends(get_company_id),
    actor_id: Optional[int] = Depends(get_actor_id),
    rewards: RewardLifecycleManager = Depends(get_reward_manager),
):
    _own_reward(rewards, company_id, reward_id)
    return rewards.mark_shipped(reward_id, tracking_info=request_body.tracking_info, actor_id=actor_id)


@router.post("/rewards/{reward_id}/complete", response_model=schemas.RewardResponse)
def complete(
    reward_id: int,
    company_id: int = Depends(get_company_id),
    actor_id: Optional[int] = Depends(get_actor_id),
    rewards: RewardLifecycleManager = Depends(get_reward_manager),
):
    _own_reward(rewards, company_id, reward_id)
    return rewards.complete(reward_id, actor_id=actor_id)


@router.post("/rewards/{reward_id}/cancel", response_model=schemas.RewardResponse)
def cancel(
    reward_id: int,
    company_id: int = Depends(get_company_id),
    actor_id: Optional[int] = Depends(get_actor_id),
    rewards: RewardLifecycleManager = Depends(get_reward_manager),
):
    _own_reward(rewards, company_id, reward_id)
    return rewards.cancel(reward_id, actor_id=actor_id)
