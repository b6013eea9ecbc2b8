"""Billing cycle endpoints"""

from fastapi import APIRouter, Depends

from creator_wallet.api.dependencies import get_billing, get_company_wallet
from creator_wallet.api.v1 import schemas
from creator_wallet.api.v1.presenters import cycle_response
from creator_wallet.infrastructure.database.models import CompanyWallet
from creator_wallet.services.billing import BillingCycleManager

router = APIRouter()


@router.get("/wallet/billing-cycle", response_model=schemas.CycleResponse)
def get_cycle(
    wallet: CompanyWallet = Depends(get_company_wallet),
    billing: BillingCycleManager = Depends(get_billing),
):
    """Current window, its progress and the pending invoice; `configured` is false when disabled"""
    if billing.current_cycle(wallet.id) is None:
        return cycle_response(None)
    return cycle_response(billing.cycle_status(wallet.id), billing.pending_invoice_total(wallet.id))


@router.put("/wallet/billing-cycle", response_model=schemas.CycleResponse)
def configure_cycle(
    request_body: schemas.CycleUpdateRequest,
    wallet: CompanyWallet = Depends(get_company_wallet),
    billing: BillingCycleManager = Depends(get_billing),
):
    billing.configure_cycle(wallet.id, request_body.start, request_body.end)
    return cycle_response(billing.cycle_status(wallet.id), billing.pending_invoice_total(wallet.id))


@router.post("/wallet/billing-cycle/close", response_model=schemas.CycleCloseResponse)
def close_cycle(
    wallet: CompanyWallet = Depends(get_company_wallet),
    billing: BillingCycleManager = Depends(get_billing),
):
    """Move the closed window's pending debits to processing and open the next window"""
    result = billing.close_cycle(wallet.id)
    return schemas.CycleCloseResponse(
        closed_start=result.closed_window.start,
        closed_end=result.closed_window.end,
        transactions_moved=result.transactions_moved,
        total_moved=result.total_moved,
        next_cycle=cycle_response(result.next_cycle),
    )
