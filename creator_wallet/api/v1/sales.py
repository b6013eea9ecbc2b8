"""Brand sales tracking and commission endpoints"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from creator_wallet.api.dependencies import get_company_id, get_notification_client, get_sales_service
from creator_wallet.api.v1 import schemas
from creator_wallet.domain.models import CommissionStatus
from creator_wallet.infrastructure.clients.notifications import NotificationClient
from creator_wallet.services.sales import SalesService
from creator_wallet.utils.currency import to_minor_units

router = APIRouter()


@router.post("/brand/sales", response_model=schemas.SaleResponse, status_code=201)
def record_sale(
    request_body: schemas.SaleCreateRequest,
    company_id: int = Depends(get_company_id),
    sales: SalesService = Depends(get_sales_service),
):
    """Track an order from a store integration"""
    return sales.record_sale(
        company_id,
        order_id=request_body.order_id,
        order_value=to_minor_units(request_body.order_value),
        platform=request_body.platform,
        creator_id=request_body.creator_id,
        campaign_id=request_body.campaign_id,
        coupon_code=request_body.coupon_code,
        commission=to_minor_units(request_body.commission) if request_body.commission is not None else None,
        commission_rate_bps=request_body.commission_rate_bps,
        external_order_id=request_body.external_order_id,
        status=request_body.status,
    )


@router.post("/brand/sales/manual", response_model=schemas.SaleResponse, status_code=201)
def record_manual_sale(
    request_body: schemas.ManualSaleRequest,
    company_id: int = Depends(get_company_id),
    sales: SalesService = Depends(get_sales_service),
):
    return sales.record_manual_sale(
        company_id,
        creator_id=request_body.creator_id,
        revenue=to_minor_units(request_body.revenue),
        coupon_code=request_body.coupon_code,
        campaign_id=request_body.campaign_id,
        commission=to_minor_units(request_body.commission) if request_body.commission is not None else None,
    )


@router.get("/brand/sales", response_model=List[schemas.SaleResponse])
def list_sales(
    from_date: Optional[date] = Query(None, alias="from"),
    to_date: Optional[date] = Query(None, alias="to"),
    campaign_id: Optional[int] = Query(None, alias="campaignId"),
    creator_id: Optional[int] = Query(None, alias="creatorId"),
    company_id: int = Depends(get_company_id),
    sales: SalesService = Depends(get_sales_service),
):
    return sales.list_sales(company_id, from_date, to_date, campaign_id=campaign_id, creator_id=creator_id)


@router.get("/brand/sales/summary", response_model=schemas.SalesSummaryResponse)
def sales_summary(
    from_date: Optional[date] = Query(None, alias="from"),
    to_date: Optional[date] = Query(None, alias="to"),
    company_id: int = Depends(get_company_id),
    sales: SalesService = Depends(get_sales_service),
):
    """Totals plus per-creator, per-campaign and per-day aggregates (cancelled sales excluded)"""
    return sales.summary(company_id, from_date, to_date)


@router.patch("/brand/sales/{sale_id}", response_model=schemas.SaleResponse)
def update_sale(
    sale_id: int,
    request_body: schemas.SaleStatusRequest,
    company_id: int = Depends(get_company_id),
    sales: SalesService = Depends(get_sales_service),
):
    return sales.update_sale_status(company_id, sale_id, request_body.status)


@router.get("/brand/commissions", response_model=List[schemas.CommissionResponse])
def list_commissions(
    status: Optional[CommissionStatus] = Query(None),
    creator_id: Optional[int] = Query(None, alias="creatorId"),
    company_id: int = Depends(get_company_id),
    sales: SalesService = Depends(get_sales_service),
):
    return sales.list_commissions(company_id, status=status, creator_id=creator_id)


@router.post("/brand/commissions/{commission_id}/approve", response_model=schemas.CommissionResponse)
def approve_commission(
    commission_id: int,
    company_id: int = Depends(get_company_id),
    sales: SalesService = Depends(get_sales_service),
):
    return sales.approve_commission(company_id, commission_id)


@router.post("/brand/commissions/{commission_id}/reject", response_model=schemas.CommissionResponse)
def reject_commission(
    commission_id: int,
    company_id: int = Depends(get_company_id),
    sales: SalesService = Depends(get_sales_service),
):
    return sales.reject_commission(company_id, commission_id)


@router.post("/brand/commissions/{commission_id}/pay", response_model=schemas.CommissionResponse)
def pay_commission(
    commission_id: int,
    background_tasks: BackgroundTasks,
    company_id: int = Depends(get_company_id),
    sales: SalesService = Depends(get_sales_service),
    notifier: NotificationClient = Depends(get_notification_client),
):
    """Pay an approved commission from the company wallet"""
    commission = sales.pay_commission(company_id, commission_id)
    background_tasks.add_task(
        notifier.send_event,
        "CREATOR_PAID",
        {
            "commission_id": commission.id,
            "creator_id": commission.creator_id,
            "amount": commission.amount,
            "transaction_id": commission.wallet_transaction_id,
        },
    )
    return commission
