"""Company wallet endpoints - balance, ledger history and money movements"""

import logging
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request

from creator_wallet.api.dependencies import (
    get_box_manager,
    get_company_wallet,
    get_ledger_store,
    get_notification_client,
    get_processor,
    get_request_id,
)
from creator_wallet.api.v1 import schemas
from creator_wallet.api.v1.presenters import balance_response, box_response, wallet_response
from creator_wallet.domain.exceptions import TransactionNotFound
from creator_wallet.domain.models import PaymentItem, TransactionStatus, TransactionType
from creator_wallet.infrastructure.clients.notifications import NotificationClient
from creator_wallet.infrastructure.database.models import CompanyWallet
from creator_wallet.services.boxes import BoxManager
from creator_wallet.services.ledger import LedgerStore
from creator_wallet.services.processor import TransactionProcessor
from creator_wallet.utils.currency import to_minor_units

logger = logging.getLogger(__name__)

router = APIRouter()


def _overview(wallet: CompanyWallet, store: LedgerStore) -> schemas.WalletResponse:
    return wallet_response(wallet, store.get_balance(wallet.id))


@router.get("/wallet", response_model=schemas.WalletOverviewResponse)
def get_wallet(
    wallet: CompanyWallet = Depends(get_company_wallet),
    store: LedgerStore = Depends(get_ledger_store),
    boxes: BoxManager = Depends(get_box_manager),
):
    """The caller's wallet (opened on first access) with its active boxes"""
    return schemas.WalletOverviewResponse(
        wallet=_overview(wallet, store),
        boxes=[box_response(box) for box in boxes.list_boxes(wallet.id)],
    )


@router.get("/wallet/balance", response_model=schemas.BalanceResponse)
def get_balance(
    wallet: CompanyWallet = Depends(get_company_wallet),
    store: LedgerStore = Depends(get_ledger_store),
):
    return balance_response(store.get_balance(wallet.id))


@router.get("/wallet/transactions", response_model=List[schemas.TransactionResponse])
def list_transactions(
    type: Optional[TransactionType] = Query(None),
    status: Optional[TransactionStatus] = Query(None),
    creator_id: Optional[int] = Query(None, alias="creatorId"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    wallet: CompanyWallet = Depends(get_company_wallet),
    store: LedgerStore = Depends(get_ledger_store),
):
    """Ledger entries, newest first"""
    return store.history(
        wallet.id,
        tx_type=type,
        status=status,
        related_user_id=creator_id,
        limit=limit,
        offset=offset,
    )


@router.get("/wallet/replay", response_model=schemas.ReplayResponse)
def replay_ledger(
    wallet: CompanyWallet = Depends(get_company_wallet),
    store: LedgerStore = Depends(get_ledger_store),
):
    """Fold the ledger in commit order and compare it with the stored balance"""
    result = store.replay(wallet.id)
    return schemas.ReplayResponse(
        wallet_id=result.wallet_id,
        stored_balance=result.stored_balance,
        replayed_balance=result.replayed_balance,
        entries_folded=result.entries_folded,
        consistent=result.consistent,
    )


@router.post("/wallet/deposit", response_model=schemas.WalletResponse)
def deposit(
    request_body: schemas.DepositRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    wallet: CompanyWallet = Depends(get_company_wallet),
    processor: TransactionProcessor = Depends(get_processor),
    notifier: NotificationClient = Depends(get_notification_client),
):
    """Credit funds to the wallet and return the updated wallet"""
    amount = to_minor_units(request_body.amount)
    entry = processor.deposit(
        wallet.id,
        amount,
        description=request_body.description,
        external_reference=request_body.external_reference,
    )
    background_tasks.add_task(
        notifier.send_event,
        "WALLET_DEPOSIT",
        {"wallet_id": wallet.id, "transaction_id": entry.id, "amount": amount},
    )
    logger.info(
        "Deposit accepted",
        extra={"request_id": get_request_id(request), "wallet_id": wallet.id, "amount": amount},
    )
    return _overview(wallet, processor.store)


@router.post("/wallet/withdraw", response_model=schemas.TransactionResponse)
def withdraw(
    request_body: schemas.DebitRequest,
    wallet: CompanyWallet = Depends(get_company_wallet),
    processor: TransactionProcessor = Depends(get_processor),
):
    return processor.withdraw(wallet.id, to_minor_units(request_body.amount), request_body.description)


@router.post("/wallet/refund", response_model=schemas.TransactionResponse)
def refund(
    request_body: schemas.DebitRequest,
    wallet: CompanyWallet = Depends(get_company_wallet),
    processor: TransactionProcessor = Depends(get_processor),
):
    return processor.refund(
        wallet.id,
        to_minor_units(request_body.amount),
        request_body.description,
        external_reference=request_body.external_reference,
    )


@router.post("/wallet/reserve", response_model=schemas.BalanceResponse)
def reserve(
    request_body: schemas.AmountRequest,
    wallet: CompanyWallet = Depends(get_company_wallet),
    processor: TransactionProcessor = Depends(get_processor),
):
    return balance_response(processor.reserve(wallet.id, to_minor_units(request_body.amount)))


@router.post("/wallet/release", response_model=schemas.BalanceResponse)
def release(
    request_body: schemas.AmountRequest,
    wallet: CompanyWallet = Depends(get_company_wallet),
    processor: TransactionProcessor = Depends(get_processor),
):
    return balance_response(processor.release(wallet.id, to_minor_units(request_body.amount)))


@router.post("/wallet/archive", response_model=schemas.WalletResponse)
def archive(
    wallet: CompanyWallet = Depends(get_company_wallet),
    processor: TransactionProcessor = Depends(get_processor),
):
    archived = processor.archive_wallet(wallet.id)
    return _overview(archived, processor.store)


@router.post("/wallet/pay-creator", response_model=schemas.TransactionResponse)
def pay_creator(
    request_body: schemas.PayCreatorRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    wallet: CompanyWallet = Depends(get_company_wallet),
    processor: TransactionProcessor = Depends(get_processor),
    notifier: NotificationClient = Depends(get_notification_client),
):
    """
    Pay a creator from the wallet.

    Returns the wallet-side debit; the creator's paired credit references
    it through `pairedTransactionId`.
    """
    amount = to_minor_units(request_body.amount)
    debit = processor.pay_creator(
        wallet.id,
        request_body.creator_id,
        amount,
        tx_type=request_body.type,
        description=request_body.description,
        campaign_id=request_body.campaign_id,
        wallet_box_id=request_body.wallet_box_id,
        scheduled_for=request_body.scheduled_for,
    )
    background_tasks.add_task(
        notifier.send_event,
        "CREATOR_PAID",
        {
            "wallet_id": wallet.id,
            "transaction_id": debit.id,
            "creator_id": request_body.creator_id,
            "amount": amount,
            "status": TransactionStatus(debit.status).value,
        },
    )
    logger.info(
        "Creator payment accepted",
        extra={
            "request_id": get_request_id(request),
            "wallet_id": wallet.id,
            "creator_id": request_body.creator_id,
            "amount": amount,
        },
    )
    return debit


def _own_transaction(store: LedgerStore, wallet: CompanyWallet, transaction_id: int) -> None:
    entry = store.transactions.get(transaction_id)
    if entry is None or entry.company_wallet_id != wallet.id:
        raise TransactionNotFound(f"Transaction {transaction_id} not found")


@router.post("/wallet/transactions/{transaction_id}/settle", response_model=schemas.TransactionResponse)
def settle_transaction(
    transaction_id: int,
    request_body: schemas.SettleRequest,
    wallet: CompanyWallet = Depends(get_company_wallet),
    processor: TransactionProcessor = Depends(get_processor),
):
    """Report the outcome of a processing payout"""
    _own_transaction(processor.store, wallet, transaction_id)
    return processor.settle_transaction(transaction_id, request_body.succeeded)


@router.post("/wallet/transactions/{transaction_id}/cancel", response_model=schemas.TransactionResponse)
def cancel_transaction(
    transaction_id: int,
    wallet: CompanyWallet = Depends(get_company_wallet),
    processor: TransactionProcessor = Depends(get_processor),
):
    _own_transaction(processor.store, wallet, transaction_id)
    return processor.cancel_transaction(transaction_id)


@router.get("/wallet/creators", response_model=List[schemas.CreatorWithBalanceResponse])
def list_creators(
    wallet: CompanyWallet = Depends(get_company_wallet),
    processor: TransactionProcessor = Depends(get_processor),
):
    """Creators this wallet has paid, with their balances"""
    return processor.list_creators(wallet.id)


@router.get("/wallet/payment-batches", response_model=List[schemas.BatchResponse])
def list_batches(
    wallet: CompanyWallet = Depends(get_company_wallet),
    processor: TransactionProcessor = Depends(get_processor),
):
    return processor.list_batches(wallet.id)


@router.post("/wallet/payment-batches", response_model=schemas.BatchResponse)
def create_batch(
    request_body: schemas.BatchRequest,
    wallet: CompanyWallet = Depends(get_company_wallet),
    processor: TransactionProcessor = Depends(get_processor),
):
    """Pay several creators at once; all payments succeed or none is recorded"""
    items = [
        PaymentItem(
            creator_id=item.creator_id,
            amount=to_minor_units(item.amount),
            type=item.type,
            description=item.description or "",
            campaign_id=item.campaign_id,
        )
        for item in request_body.payments
    ]
    return processor.pay_creators_batch(wallet.id, items, name=request_body.name)
