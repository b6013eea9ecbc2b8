"""Creator-side endpoints - the caller is the creator named by X-User-Id"""

from typing import List

from fastapi import APIRouter, Depends, Query

from creator_wallet.api.dependencies import get_processor, get_reward_manager, get_user_id
from creator_wallet.api.v1 import schemas
from creator_wallet.api.v1.presenters import creator_balance_response
from creator_wallet.services.processor import TransactionProcessor
from creator_wallet.services.rewards import RewardLifecycleManager
from creator_wallet.utils.currency import to_minor_units

router = APIRouter()


@router.get("/creator/balance", response_model=schemas.CreatorBalanceResponse)
def get_balance(
    user_id: int = Depends(get_user_id),
    processor: TransactionProcessor = Depends(get_processor),
):
    return creator_balance_response(user_id, processor.get_creator_balance(user_id))


@router.get("/creator/transactions", response_model=List[schemas.TransactionResponse])
def list_transactions(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user_id: int = Depends(get_user_id),
    processor: TransactionProcessor = Depends(get_processor),
):
    return processor.creator_history(user_id, limit=limit, offset=offset)


@router.post("/creator/withdraw", response_model=schemas.TransactionResponse)
def withdraw(
    request_body: schemas.AmountRequest,
    user_id: int = Depends(get_user_id),
    processor: TransactionProcessor = Depends(get_processor),
):
    return processor.creator_withdraw(user_id, to_minor_units(request_body.amount))


@router.put("/creator/pix-key", response_model=schemas.CreatorBalanceResponse)
def set_pix_key(
    request_body: schemas.PixKeyRequest,
    user_id: int = Depends(get_user_id),
    processor: TransactionProcessor = Depends(get_processor),
):
    balance = processor.set_pix_key(user_id, request_body.pix_key, request_body.pix_key_type)
    return creator_balance_response(user_id, balance)


@router.get("/creator/rewards", response_model=List[schemas.RewardResponse])
def list_rewards(
    user_id: int = Depends(get_user_id),
    rewards: RewardLifecycleManager = Depends(get_reward_manager),
):
    """Rewards the caller has earned, newest first"""
    return rewards.list_for_creator(user_id)
