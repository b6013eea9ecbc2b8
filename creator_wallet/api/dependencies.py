"""Dependency injection for FastAPI endpoints"""

from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from creator_wallet.infrastructure.clients.notifications import NotificationClient
from creator_wallet.infrastructure.database.models import CompanyWallet
from creator_wallet.infrastructure.database.session import get_db
from creator_wallet.services.billing import BillingCycleManager
from creator_wallet.services.boxes import BoxManager
from creator_wallet.services.ledger import LedgerStore
from creator_wallet.services.processor import TransactionProcessor
from creator_wallet.services.rewards import RewardLifecycleManager
from creator_wallet.services.sales import CouponService, SalesService


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


# Caller identity is established by the auth gateway in front of this service


def get_company_id(x_company_id: int = Header(..., alias="X-Company-Id")) -> int:
    return x_company_id


def get_user_id(x_user_id: int = Header(..., alias="X-User-Id")) -> int:
    return x_user_id


def get_actor_id(x_user_id: Optional[int] = Header(None, alias="X-User-Id")) -> Optional[int]:
    """Acting user on company routes, when the gateway forwards one"""
    return x_user_id


def get_notification_client() -> NotificationClient:
    """Provide ledger event notification client instance"""
    return NotificationClient()


# Services share one session (and so one unit of work) per request


def get_ledger_store(db: Session = Depends(get_db)) -> LedgerStore:
    return LedgerStore(db)


def get_processor(db: Session = Depends(get_db), store: LedgerStore = Depends(get_ledger_store)) -> TransactionProcessor:
    return TransactionProcessor(db, store)


def get_billing(db: Session = Depends(get_db), store: LedgerStore = Depends(get_ledger_store)) -> BillingCycleManager:
    return BillingCycleManager(db, store)


def get_box_manager(db: Session = Depends(get_db), store: LedgerStore = Depends(get_ledger_store)) -> BoxManager:
    return BoxManager(db, store)


def get_reward_manager(
    db: Session = Depends(get_db),
    processor: TransactionProcessor = Depends(get_processor),
) -> RewardLifecycleManager:
    return RewardLifecycleManager(db, processor)


def get_coupon_service(db: Session = Depends(get_db)) -> CouponService:
    return CouponService(db)


def get_sales_service(
    db: Session = Depends(get_db),
    coupons: CouponService = Depends(get_coupon_service),
    processor: TransactionProcessor = Depends(get_processor),
) -> SalesService:
    return SalesService(db, coupons, processor)


def get_company_wallet(
    company_id: int = Depends(get_company_id),
    processor: TransactionProcessor = Depends(get_processor),
) -> CompanyWallet:
    """The caller's wallet, opened on first access"""
    return processor.open_wallet(company_id)
