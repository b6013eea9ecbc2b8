"""Build API responses from ORM rows and domain results"""

from typing import Optional

from creator_wallet.api.v1 import schemas
from creator_wallet.config import settings
from creator_wallet.domain.allocation import box_progress
from creator_wallet.domain.models import BalanceSnapshot, CycleProgress, InvoiceTotals
from creator_wallet.infrastructure.database.models import CompanyWallet, CreatorBalance, WalletBox
from creator_wallet.utils.currency import format_brl


def wallet_response(wallet: CompanyWallet, snapshot: BalanceSnapshot) -> schemas.WalletResponse:
    return schemas.WalletResponse(
        id=wallet.id,
        company_id=wallet.company_id,
        balance=snapshot.balance,
        reserved_balance=snapshot.reserved_balance,
        allocated=snapshot.allocated,
        available_balance=snapshot.available,
        formatted_balance=format_brl(snapshot.balance),
        currency=settings.currency_code,
        billing_cycle_start=wallet.billing_cycle_start,
        billing_cycle_end=wallet.billing_cycle_end,
        archived_at=wallet.archived_at,
    )


def box_response(box: WalletBox) -> schemas.BoxResponse:
    response = schemas.BoxResponse.model_validate(box)
    response.progress = box_progress(box.current_amount, box.target_amount)
    return response


def balance_response(snapshot: BalanceSnapshot) -> schemas.BalanceResponse:
    return schemas.BalanceResponse(
        wallet_id=snapshot.wallet_id,
        balance=snapshot.balance,
        reserved_balance=snapshot.reserved_balance,
        allocated=snapshot.allocated,
        available=snapshot.available,
    )


def cycle_response(
    progress: Optional[CycleProgress],
    invoice: Optional[InvoiceTotals] = None,
) -> schemas.CycleResponse:
    if progress is None:
        return schemas.CycleResponse(configured=False)
    return schemas.CycleResponse(
        configured=True,
        start=progress.window.start,
        end=progress.window.end,
        days_remaining=progress.days_remaining,
        total_days=progress.total_days,
        progress=progress.progress,
        invoice=invoice_response(invoice) if invoice is not None else None,
    )


def invoice_response(invoice: InvoiceTotals) -> schemas.InvoiceResponse:
    return schemas.InvoiceResponse(
        fixed_payments=invoice.fixed_payments,
        variable_payments=invoice.variable_payments,
        commissions=invoice.commissions,
        bonuses=invoice.bonuses,
        total=invoice.total,
    )


def creator_balance_response(user_id: int, balance: Optional[CreatorBalance]) -> schemas.CreatorBalanceResponse:
    """Creators who were never paid have an all-zero balance"""
    available = balance.available_balance if balance else 0
    return schemas.CreatorBalanceResponse(
        user_id=user_id,
        available_balance=available,
        pending_balance=balance.pending_balance if balance else 0,
        formatted_available=format_brl(available),
        pix_key=balance.pix_key if balance else None,
        pix_key_type=balance.pix_key_type if balance else None,
    )
