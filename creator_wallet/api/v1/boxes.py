"""Wallet box (caixinha) endpoints"""

from typing import List

from fastapi import APIRouter, Depends, Query

from creator_wallet.api.dependencies import get_box_manager, get_company_wallet
from creator_wallet.api.v1 import schemas
from creator_wallet.api.v1.presenters import box_response
from creator_wallet.domain.exceptions import BoxNotFound
from creator_wallet.infrastructure.database.models import CompanyWallet, WalletBox
from creator_wallet.services.boxes import BoxManager
from creator_wallet.utils.currency import to_minor_units

router = APIRouter()


def _own_box(boxes: BoxManager, wallet: CompanyWallet, box_id: int) -> WalletBox:
    box = boxes.get(box_id)
    if box.company_wallet_id != wallet.id:
        raise BoxNotFound(f"Box {box_id} not found")
    return box


@router.get("/wallet/boxes", response_model=List[schemas.BoxResponse])
def list_boxes(
    include_inactive: bool = Query(False, alias="includeInactive"),
    wallet: CompanyWallet = Depends(get_company_wallet),
    boxes: BoxManager = Depends(get_box_manager),
):
    return [box_response(box) for box in boxes.list_boxes(wallet.id, include_inactive=include_inactive)]


@router.post("/wallet/boxes", response_model=schemas.BoxResponse, status_code=201)
def create_box(
    request_body: schemas.BoxCreateRequest,
    wallet: CompanyWallet = Depends(get_company_wallet),
    boxes: BoxManager = Depends(get_box_manager),
):
    target = to_minor_units(request_body.target_amount) if request_body.target_amount is not None else None
    box = boxes.create_box(
        wallet.id,
        request_body.name,
        description=request_body.description,
        target_amount=target,
        color=request_body.color,
        icon=request_body.icon,
    )
    return box_response(box)


@router.post("/wallet/boxes/{box_id}/allocate", response_model=schemas.BoxResponse)
def allocate(
    box_id: int,
    request_body: schemas.AmountRequest,
    wallet: CompanyWallet = Depends(get_company_wallet),
    boxes: BoxManager = Depends(get_box_manager),
):
    _own_box(boxes, wallet, box_id)
    return box_response(boxes.allocate(box_id, to_minor_units(request_body.amount)))


@router.post("/wallet/boxes/{box_id}/deallocate", response_model=schemas.BoxResponse)
def deallocate(
    box_id: int,
    request_body: schemas.AmountRequest,
    wallet: CompanyWallet = Depends(get_company_wallet),
    boxes: BoxManager = Depends(get_box_manager),
):
    _own_box(boxes, wallet, box_id)
    return box_response(boxes.deallocate(box_id, to_minor_units(request_body.amount)))


@router.post("/wallet/boxes/{box_id}/deactivate", response_model=schemas.BoxResponse)
def deactivate(
    box_id: int,
    wallet: CompanyWallet = Depends(get_company_wallet),
    boxes: BoxManager = Depends(get_box_manager),
):
    _own_box(boxes, wallet, box_id)
    return box_response(boxes.deactivate_box(box_id))


@router.patch("/wallet/boxes/{box_id}", response_model=schemas.BoxResponse)
def update_box(
    box_id: int,
    request_body: schemas.BoxUpdateRequest,
    wallet: CompanyWallet = Depends(get_company_wallet),
    boxes: BoxManager = Depends(get_box_manager),
):
    _own_box(boxes, wallet, box_id)
    changes = {}
    if "description" in request_body.model_fields_set:
        changes["description"] = request_body.description
    if "target_amount" in request_body.model_fields_set:
        target = request_body.target_amount
        changes["target_amount"] = to_minor_units(target) if target is not None else None
    box = boxes.update_box(
        box_id,
        name=request_body.name,
        color=request_body.color,
        icon=request_body.icon,
        **changes,
    )
    return box_response(box)
