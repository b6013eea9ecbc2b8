"""Coupon endpoints"""

from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from creator_wallet.api.dependencies import get_company_id, get_coupon_service
from creator_wallet.api.v1 import schemas
from creator_wallet.domain.exceptions import InvalidAmount
from creator_wallet.domain.models import DiscountType
from creator_wallet.services.sales import CouponService
from creator_wallet.utils.currency import to_minor_units

router = APIRouter()


def _discount_value(discount_type: DiscountType, value: Decimal) -> int:
    """Percent coupons store whole percentage points, fixed ones centavos"""
    if discount_type == DiscountType.PERCENTAGE:
        if value != value.to_integral_value():
            raise InvalidAmount(f"Percentage discounts must be whole numbers, got {value}")
        return int(value)
    return to_minor_units(value)


@router.get("/coupons", response_model=List[schemas.CouponResponse])
def list_coupons(
    campaign_id: Optional[int] = Query(None, alias="campaignId"),
    company_id: int = Depends(get_company_id),
    coupons: CouponService = Depends(get_coupon_service),
):
    return coupons.list_coupons(company_id, campaign_id=campaign_id)


@router.post("/coupons", response_model=schemas.CouponResponse, status_code=201)
def create_coupon(
    request_body: schemas.CouponCreateRequest,
    company_id: int = Depends(get_company_id),
    coupons: CouponService = Depends(get_coupon_service),
):
    return coupons.create_coupon(
        company_id=company_id,
        campaign_id=request_body.campaign_id,
        code=request_body.code,
        discount_type=request_body.discount_type,
        discount_value=_discount_value(request_body.discount_type, request_body.discount_value),
        creator_id=request_body.creator_id,
        max_uses=request_body.max_uses,
        expires_at=request_body.expires_at,
    )


@router.patch("/coupons/{coupon_id}", response_model=schemas.CouponResponse)
def update_coupon(
    coupon_id: int,
    request_body: schemas.CouponUpdateRequest,
    company_id: int = Depends(get_company_id),
    coupons: CouponService = Depends(get_coupon_service),
):
    """Enable or disable a coupon"""
    return coupons.set_coupon_active(company_id, coupon_id, request_body.is_active)
