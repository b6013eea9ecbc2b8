"""Coupons, attributed sales and the commissions they earn creators"""

import logging
import uuid
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from creator_wallet.domain.exceptions import (
    CommissionNotFound,
    CouponNotFound,
    DuplicateCoupon,
    DuplicateOrder,
    InvalidAmount,
    MissingAttribution,
    SaleNotFound,
    WalletNotFound,
)
from creator_wallet.domain.models import (
    CommissionStatus,
    DiscountType,
    SalePlatform,
    SalesBucket,
    SaleStatus,
    SalesSummary,
    TransactionType,
)
from creator_wallet.domain.sales import (
    assert_commission_transition,
    assert_sale_transition,
    check_coupon_usable,
    compute_commission,
    normalize_code,
)
from creator_wallet.domain.transactions import require_positive
from creator_wallet.infrastructure.database.models import CampaignCoupon, CreatorCommission, Sale
from creator_wallet.infrastructure.database.repositories import (
    CommissionRepository,
    CouponRepository,
    SaleRepository,
)
from creator_wallet.infrastructure.locks import LockRegistry, get_lock_registry
from creator_wallet.infrastructure.observability.metrics import sales_counter
from creator_wallet.services.ledger import unit_of_work
from creator_wallet.services.processor import TransactionProcessor
from creator_wallet.utils.date_utils import end_of_day, generate_date_range, start_of_day, utc_now

logger = logging.getLogger(__name__)


class CouponService:
    def __init__(self, db: Session, locks: LockRegistry | None = None):
        self.db = db
        self.locks = locks or get_lock_registry()
        self.coupons = CouponRepository(db)

    def create_coupon(
        self,
        company_id: int,
        campaign_id: int,
        code: str,
        discount_type: DiscountType,
        discount_value: int,
        creator_id: Optional[int] = None,
        max_uses: Optional[int] = None,
        expires_at: Optional[datetime] = None,
    ) -> CampaignCoupon:
        """
        Create a discount code. Codes are stored upper-case and are unique
        per company.

        Args:
            discount_value: percentage points for percentage coupons,
                minor units for fixed ones
        """
        code = normalize_code(code)
        if not code:
            raise InvalidAmount("Coupon code must not be empty")
        require_positive(discount_value)
        if DiscountType(discount_type) == DiscountType.PERCENTAGE and discount_value > 100:
            raise InvalidAmount(f"Percentage discount cannot exceed 100, got {discount_value}")
        if max_uses is not None and max_uses <= 0:
            raise InvalidAmount(f"max_uses must be positive, got {max_uses}")

        with unit_of_work(self.db, ("coupon", company_id, code), self.locks):
            if self.coupons.get_by_code(company_id, code) is not None:
                raise DuplicateCoupon(f"Coupon {code} already exists")
            try:
                coupon = self.coupons.create(
                    CampaignCoupon(
                        company_id=company_id,
                        campaign_id=campaign_id,
                        creator_id=creator_id,
                        code=code,
                        discount_type=DiscountType(discount_type),
                        discount_value=discount_value,
                        max_uses=max_uses,
                        current_uses=0,
                        expires_at=expires_at,
                        is_active=True,
                    )
                )
            except IntegrityError as e:
                raise DuplicateCoupon(f"Coupon {code} already exists") from e
        logger.info("Coupon created", extra={"company_id": company_id, "code": code})
        return coupon

    def get(self, company_id: int, coupon_id: int) -> CampaignCoupon:
        coupon = self.coupons.get(coupon_id)
        if coupon is None or coupon.company_id != company_id:
            raise CouponNotFound(f"Coupon {coupon_id} not found")
        return coupon

    def set_coupon_active(self, company_id: int, coupon_id: int, is_active: bool) -> CampaignCoupon:
        coupon = self.get(company_id, coupon_id)
        with unit_of_work(self.db, ("coupon", company_id, coupon.code), self.locks):
            coupon.is_active = is_active
        return coupon

    def list_coupons(self, company_id: int, campaign_id: Optional[int] = None) -> List[CampaignCoupon]:
        return self.coupons.list_for_company(company_id, campaign_id=campaign_id)

    def redeem(self, company_id: int, code: str) -> CampaignCoupon:
        """
        Count one use of a coupon.

        Raises:
            CouponNotFound: no such code for this company
            CouponInactive: disabled or expired
            MaxUsesExceeded: every allowed use is taken
        """
        code = normalize_code(code)
        with unit_of_work(self.db, ("coupon", company_id, code), self.locks):
            coupon = self.coupons.get_by_code(company_id, code, for_update=True)
            if coupon is None:
                raise CouponNotFound(f"Coupon {code} not found")
            check_coupon_usable(
                coupon.code,
                coupon.is_active,
                coupon.current_uses,
                coupon.max_uses,
                coupon.expires_at,
                utc_now(),
            )
            coupon.current_uses += 1
        return coupon


class SalesService:
    """
    Tracks attributed sales, derives the commission each one owes and
    pays approved commissions out of the company's wallet.
    """

    def __init__(
        self,
        db: Session,
        coupons: CouponService | None = None,
        processor: TransactionProcessor | None = None,
    ):
        self.db = db
        self.processor = processor or TransactionProcessor(db)
        self.locks = self.processor.store.locks
        self.coupons = coupons or CouponService(db, self.locks)
        self.sales = SaleRepository(db)
        self.commissions = CommissionRepository(db)

    def record_sale(
        self,
        company_id: int,
        order_id: str,
        order_value: int,
        platform: SalePlatform,
        creator_id: Optional[int] = None,
        campaign_id: Optional[int] = None,
        coupon_code: Optional[str] = None,
        commission: Optional[int] = None,
        commission_rate_bps: Optional[int] = None,
        external_order_id: Optional[str] = None,
        status: SaleStatus = SaleStatus.PENDING,
        tracked_at: Optional[datetime] = None,
    ) -> Sale:
        """
        Record one order and attribute it to a creator.

        A coupon code is redeemed and, when the creator or campaign is not
        given, they are taken from the coupon. A positive commission opens a
        pending CreatorCommission for the sale.
        """
        require_positive(order_value)
        platform = SalePlatform(platform)
        amount = compute_commission(order_value, commission, commission_rate_bps)

        with unit_of_work(self.db, ("sales", company_id), self.locks):
            if self.sales.get_by_order(company_id, platform, order_id) is not None:
                raise DuplicateOrder(f"Order {order_id} on {platform.value} already tracked")

            coupon = None
            if coupon_code:
                coupon = self.coupons.redeem(company_id, coupon_code)
                creator_id = creator_id if creator_id is not None else coupon.creator_id
                campaign_id = campaign_id if campaign_id is not None else coupon.campaign_id
            if creator_id is None:
                raise MissingAttribution(f"Order {order_id} has no creator and no coupon naming one")

            try:
                sale = self.sales.create(
                    Sale(
                        company_id=company_id,
                        campaign_id=campaign_id,
                        creator_id=creator_id,
                        coupon_id=coupon.id if coupon else None,
                        coupon_code=coupon.code if coupon else None,
                        order_id=order_id,
                        external_order_id=external_order_id,
                        order_value=order_value,
                        commission=amount,
                        commission_rate_bps=commission_rate_bps,
                        platform=platform,
                        status=SaleStatus(status),
                        tracked_at=tracked_at or utc_now(),
                    )
                )
            except IntegrityError as e:
                raise DuplicateOrder(f"Order {order_id} on {platform.value} already tracked") from e

            if amount > 0:
                self.commissions.create(
                    CreatorCommission(
                        company_id=company_id,
                        creator_id=creator_id,
                        campaign_id=campaign_id,
                        sale_id=sale.id,
                        amount=amount,
                        status=CommissionStatus.PENDING,
                    )
                )

        sales_counter.labels(platform=platform.value).inc()
        logger.info(
            "Sale tracked",
            extra={
                "company_id": company_id,
                "sale_id": sale.id,
                "creator_id": creator_id,
                "order_value": order_value,
                "commission": amount,
            },
        )
        return sale

    def record_manual_sale(
        self,
        company_id: int,
        creator_id: int,
        revenue: int,
        coupon_code: Optional[str] = None,
        campaign_id: Optional[int] = None,
        commission: Optional[int] = None,
    ) -> Sale:
        """A sale the company enters by hand; confirmed on entry"""
        return self.record_sale(
            company_id,
            order_id=f"manual-{uuid.uuid4()}",
            order_value=revenue,
            platform=SalePlatform.MANUAL,
            creator_id=creator_id,
            campaign_id=campaign_id,
            coupon_code=coupon_code,
            commission=commission,
            status=SaleStatus.CONFIRMED,
        )

    def get_sale(self, company_id: int, sale_id: int) -> Sale:
        sale = self.sales.get(sale_id)
        if sale is None or sale.company_id != company_id:
            raise SaleNotFound(f"Sale {sale_id} not found")
        return sale

    def update_sale_status(self, company_id: int, sale_id: int, status: SaleStatus) -> Sale:
        """Confirm, mark paid or cancel a sale; cancelling rejects its unpaid commission"""
        sale = self.get_sale(company_id, sale_id)
        status = SaleStatus(status)
        with unit_of_work(self.db, ("sales", company_id), self.locks):
            self.db.refresh(sale)
            assert_sale_transition(sale.status, status)
            sale.status = status
            if status == SaleStatus.CANCELLED:
                commission = self.commissions.get_by_sale(sale.id)
                if commission is not None and CommissionStatus(commission.status) != CommissionStatus.PAID:
                    commission.status = CommissionStatus.REJECTED
        return sale

    def list_sales(
        self,
        company_id: int,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
        campaign_id: Optional[int] = None,
        creator_id: Optional[int] = None,
    ) -> List[Sale]:
        return self.sales.list_for_company(
            company_id,
            start=start_of_day(from_date) if from_date else None,
            end=end_of_day(to_date) if to_date else None,
            campaign_id=campaign_id,
            creator_id=creator_id,
        )

    def summary(
        self,
        company_id: int,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> SalesSummary:
        """
        Sales read model aggregated in the database.

        Cancelled sales are excluded. When both dates are given, `by_date`
        lists every day of the range, including days without sales.
        """
        start = start_of_day(from_date) if from_date else None
        end = end_of_day(to_date) if to_date else None

        count, revenue, commission = self.sales.totals(company_id, start, end)
        by_date = self.sales.by_date(company_id, start, end)
        if from_date and to_date:
            seen = {bucket.key: bucket for bucket in by_date}
            by_date = [
                seen.get(day.isoformat(), SalesBucket(key=day.isoformat(), sales_count=0, revenue=0, commission=0))
                for day in generate_date_range(from_date, to_date)
            ]

        return SalesSummary(
            total_sales=count,
            total_revenue=revenue,
            total_commission=commission,
            by_creator=self.sales.by_creator(company_id, start, end),
            by_campaign=self.sales.by_campaign(company_id, start, end),
            by_date=by_date,
            from_date=from_date,
            to_date=to_date,
        )

    # Commissions

    def list_commissions(
        self,
        company_id: int,
        status: Optional[CommissionStatus] = None,
        creator_id: Optional[int] = None,
    ) -> List[CreatorCommission]:
        return self.commissions.list_for_company(company_id, status=status, creator_id=creator_id)

    def get_commission(self, company_id: int, commission_id: int) -> CreatorCommission:
        commission = self.commissions.get(commission_id)
        if commission is None or commission.company_id != company_id:
            raise CommissionNotFound(f"Commission {commission_id} not found")
        return commission

    def approve_commission(self, company_id: int, commission_id: int) -> CreatorCommission:
        return self._move_commission(company_id, commission_id, CommissionStatus.APPROVED)

    def reject_commission(self, company_id: int, commission_id: int) -> CreatorCommission:
        return self._move_commission(company_id, commission_id, CommissionStatus.REJECTED)

    def pay_commission(self, company_id: int, commission_id: int) -> CreatorCommission:
        """
        Pay an approved commission from the company's wallet.

        If the wallet cannot cover it, nothing commits and the commission
        stays approved.
        """
        commission = self.get_commission(company_id, commission_id)
        wallet = self.processor.store.wallets.get_by_company(company_id)
        if wallet is None:
            raise WalletNotFound(f"Company {company_id} has no wallet")

        with self.processor.store.wallet_guard(wallet.id):
            with unit_of_work(self.db, ("commission", commission_id), self.locks):
                self.db.refresh(commission)
                assert_commission_transition(commission.status, CommissionStatus.PAID)
                debit = self.processor.pay_creator(
                    wallet.id,
                    commission.creator_id,
                    commission.amount,
                    tx_type=TransactionType.COMMISSION,
                    description=f"Commission for sale #{commission.sale_id}",
                    campaign_id=commission.campaign_id,
                )
                commission.status = CommissionStatus.PAID
                commission.paid_at = utc_now()
                commission.wallet_transaction_id = debit.id
        return commission

    def _move_commission(self, company_id: int, commission_id: int, target: CommissionStatus) -> CreatorCommission:
        commission = self.get_commission(company_id, commission_id)
        with unit_of_work(self.db, ("commission", commission_id), self.locks):
            self.db.refresh(commission)
            assert_commission_transition(commission.status, target)
            commission.status = target
            if target == CommissionStatus.APPROVED:
                commission.approved_at = utc_now()
        return commission
