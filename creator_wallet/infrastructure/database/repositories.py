"""Data access layer for wallet, ledger, reward and sales entities"""

from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from creator_wallet.domain.models import (
    CommissionStatus,
    RewardStatus,
    SaleStatus,
    SalesBucket,
    TransactionStatus,
    TransactionType,
)
from creator_wallet.infrastructure.database.models import (
    CampaignCoupon,
    CompanyWallet,
    CreatorBalance,
    CreatorCommission,
    CreatorReward,
    PaymentBatch,
    RewardEvent,
    Sale,
    WalletBox,
    WalletTransaction,
)


class WalletRepository:
    """Repository for company wallets"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, wallet_id: int) -> Optional[CompanyWallet]:
        return self.db.get(CompanyWallet, wallet_id)

    def get_by_company(self, company_id: int) -> Optional[CompanyWallet]:
        return self.db.query(CompanyWallet).filter(CompanyWallet.company_id == company_id).first()

    def get_for_update(self, wallet_id: int) -> Optional[CompanyWallet]:
        """Fetch wallet holding a row lock until the transaction ends"""
        return (
            self.db.query(CompanyWallet)
            .filter(CompanyWallet.id == wallet_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def create(
        self,
        company_id: int,
        cycle_start: Optional[datetime] = None,
        cycle_end: Optional[datetime] = None,
    ) -> CompanyWallet:
        wallet = CompanyWallet(
            company_id=company_id,
            balance=0,
            reserved_balance=0,
            last_sequence=0,
            billing_cycle_start=cycle_start,
            billing_cycle_end=cycle_end,
        )
        self.db.add(wallet)
        self.db.flush()
        return wallet


class CreatorBalanceRepository:
    """Repository for creator balances"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_user(self, user_id: int) -> Optional[CreatorBalance]:
        return self.db.query(CreatorBalance).filter(CreatorBalance.user_id == user_id).first()

    def get_for_update(self, user_id: int) -> Optional[CreatorBalance]:
        return (
            self.db.query(CreatorBalance)
            .filter(CreatorBalance.user_id == user_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def get_or_create(self, user_id: int) -> CreatorBalance:
        """
        Fetch the creator's balance row, creating it on first payment.

        Callers hold the creator's lock, so two requests in this process never
        race on the insert; across processes the unique user_id rejects the
        loser with IntegrityError.
        """
        balance = self.get_for_update(user_id)
        if balance is not None:
            return balance
        balance = CreatorBalance(user_id=user_id, available_balance=0, pending_balance=0, last_sequence=0)
        self.db.add(balance)
        self.db.flush()
        return balance

    def list_by_users(self, user_ids: List[int]) -> List[CreatorBalance]:
        if not user_ids:
            return []
        return self.db.query(CreatorBalance).filter(CreatorBalance.user_id.in_(user_ids)).all()


class TransactionRepository:
    """Repository for ledger entries"""

    def __init__(self, db: Session):
        self.db = db

    def add(self, entry: WalletTransaction) -> WalletTransaction:
        self.db.add(entry)
        self.db.flush()  # Assign ID without committing
        return entry

    def get(self, transaction_id: int) -> Optional[WalletTransaction]:
        return self.db.get(WalletTransaction, transaction_id)

    def get_by_external_reference(self, reference: str) -> Optional[WalletTransaction]:
        return (
            self.db.query(WalletTransaction)
            .filter(WalletTransaction.external_reference == reference)
            .first()
        )

    def get_paired(self, transaction_id: int) -> Optional[WalletTransaction]:
        """Creator-side row recorded together with a wallet debit"""
        return (
            self.db.query(WalletTransaction)
            .filter(WalletTransaction.paired_transaction_id == transaction_id)
            .first()
        )

    def list_for_wallet(
        self,
        wallet_id: int,
        tx_type: Optional[TransactionType] = None,
        status: Optional[TransactionStatus] = None,
        related_user_id: Optional[int] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[WalletTransaction]:
        """Newest first, ties broken by id"""
        query = self.db.query(WalletTransaction).filter(WalletTransaction.company_wallet_id == wallet_id)
        if tx_type is not None:
            query = query.filter(WalletTransaction.type == tx_type)
        if status is not None:
            query = query.filter(WalletTransaction.status == status)
        if related_user_id is not None:
            query = query.filter(WalletTransaction.related_user_id == related_user_id)
        return (
            query.order_by(WalletTransaction.created_at.desc(), WalletTransaction.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def list_for_creator(self, creator_balance_id: int, limit: int = 50, offset: int = 0) -> List[WalletTransaction]:
        return (
            self.db.query(WalletTransaction)
            .filter(WalletTransaction.creator_balance_id == creator_balance_id)
            .order_by(WalletTransaction.created_at.desc(), WalletTransaction.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def in_commit_order(self, wallet_id: int) -> List[WalletTransaction]:
        """All wallet entries in the order they were accepted"""
        return (
            self.db.query(WalletTransaction)
            .filter(WalletTransaction.company_wallet_id == wallet_id)
            .order_by(WalletTransaction.sequence.asc())
            .all()
        )

    def pending_debits(self, wallet_id: int, created_before: Optional[datetime] = None) -> List[WalletTransaction]:
        """Pending negative entries not yet swept by a cycle close"""
        query = self.db.query(WalletTransaction).filter(
            WalletTransaction.company_wallet_id == wallet_id,
            WalletTransaction.status == TransactionStatus.PENDING,
            WalletTransaction.amount < 0,
            WalletTransaction.type != TransactionType.BOX_ALLOCATION,
        )
        if created_before is not None:
            query = query.filter(WalletTransaction.created_at <= created_before)
        return query.order_by(WalletTransaction.sequence.asc()).all()

    def committed_outflow(self, wallet_id: int) -> int:
        """Reservations held by debits that have not settled yet"""
        total = (
            self.db.query(func.coalesce(func.sum(WalletTransaction.reserved_amount), 0))
            .filter(
                WalletTransaction.company_wallet_id == wallet_id,
                WalletTransaction.status.in_([TransactionStatus.PENDING, TransactionStatus.PROCESSING]),
                WalletTransaction.amount < 0,
            )
            .scalar()
        )
        return int(total)

    def paid_by_creator(self, wallet_id: int) -> List[Tuple[int, int, int]]:
        """(creator user id, total paid, payment count) for a wallet"""
        rows = (
            self.db.query(
                WalletTransaction.related_user_id,
                func.sum(WalletTransaction.amount),
                func.count(WalletTransaction.id),
            )
            .filter(
                WalletTransaction.company_wallet_id == wallet_id,
                WalletTransaction.related_user_id.isnot(None),
                WalletTransaction.amount < 0,
                WalletTransaction.status.notin_([TransactionStatus.CANCELLED, TransactionStatus.FAILED]),
            )
            .group_by(WalletTransaction.related_user_id)
            .all()
        )
        return [(user_id, -int(total), int(count)) for user_id, total, count in rows]


class BoxRepository:
    """Repository for wallet boxes"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, box_id: int) -> Optional[WalletBox]:
        return self.db.get(WalletBox, box_id)

    def list_for_wallet(self, wallet_id: int, include_inactive: bool = False) -> List[WalletBox]:
        query = self.db.query(WalletBox).filter(WalletBox.company_wallet_id == wallet_id)
        if not include_inactive:
            query = query.filter(WalletBox.is_active.is_(True))
        return query.order_by(WalletBox.name.asc(), WalletBox.id.asc()).all()

    def allocated_total(self, wallet_id: int) -> int:
        """Sum of all active boxes' current amounts"""
        total = (
            self.db.query(func.coalesce(func.sum(WalletBox.current_amount), 0))
            .filter(WalletBox.company_wallet_id == wallet_id, WalletBox.is_active.is_(True))
            .scalar()
        )
        return int(total)

    def create(self, box: WalletBox) -> WalletBox:
        self.db.add(box)
        self.db.flush()
        return box


class PaymentBatchRepository:
    """Repository for payment batches"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, batch: PaymentBatch) -> PaymentBatch:
        self.db.add(batch)
        self.db.flush()
        return batch

    def list_for_wallet(self, wallet_id: int) -> List[PaymentBatch]:
        return (
            self.db.query(PaymentBatch)
            .filter(PaymentBatch.company_wallet_id == wallet_id)
            .order_by(PaymentBatch.created_at.desc(), PaymentBatch.id.desc())
            .all()
        )


class RewardRepository:
    """Repository for creator rewards and their audit trail"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, reward_id: int) -> Optional[CreatorReward]:
        return self.db.get(CreatorReward, reward_id)

    def get_for_update(self, reward_id: int) -> Optional[CreatorReward]:
        return (
            self.db.query(CreatorReward)
            .filter(CreatorReward.id == reward_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def find_existing(
        self,
        campaign_id: int,
        creator_id: int,
        kind,
        rank_position: Optional[int],
        points_threshold: Optional[int],
    ) -> Optional[CreatorReward]:
        """Reward already granted for the same achievement"""
        query = self.db.query(CreatorReward).filter(
            CreatorReward.campaign_id == campaign_id,
            CreatorReward.creator_id == creator_id,
            CreatorReward.type == kind,
        )
        query = query.filter(
            CreatorReward.rank_position.is_(None)
            if rank_position is None
            else CreatorReward.rank_position == rank_position
        )
        query = query.filter(
            CreatorReward.points_threshold.is_(None)
            if points_threshold is None
            else CreatorReward.points_threshold == points_threshold
        )
        return query.first()

    def create(self, reward: CreatorReward) -> CreatorReward:
        self.db.add(reward)
        self.db.flush()
        return reward

    def list_for_creator(self, creator_id: int) -> List[CreatorReward]:
        return (
            self.db.query(CreatorReward)
            .filter(CreatorReward.creator_id == creator_id)
            .order_by(CreatorReward.created_at.desc(), CreatorReward.id.desc())
            .all()
        )

    def list_for_company(
        self,
        company_id: int,
        status: Optional[RewardStatus] = None,
        campaign_id: Optional[int] = None,
    ) -> List[CreatorReward]:
        query = self.db.query(CreatorReward).filter(CreatorReward.company_id == company_id)
        if status is not None:
            query = query.filter(CreatorReward.status == status)
        if campaign_id is not None:
            query = query.filter(CreatorReward.campaign_id == campaign_id)
        return query.order_by(CreatorReward.created_at.desc(), CreatorReward.id.desc()).all()

    def add_event(self, event: RewardEvent) -> RewardEvent:
        self.db.add(event)
        self.db.flush()
        return event

    def events(self, reward_id: int) -> List[RewardEvent]:
        return (
            self.db.query(RewardEvent)
            .filter(RewardEvent.reward_id == reward_id)
            .order_by(RewardEvent.created_at.asc(), RewardEvent.id.asc())
            .all()
        )


class CouponRepository:
    """Repository for campaign coupons"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, coupon_id: int) -> Optional[CampaignCoupon]:
        return self.db.get(CampaignCoupon, coupon_id)

    def get_by_code(self, company_id: int, code: str, for_update: bool = False) -> Optional[CampaignCoupon]:
        query = self.db.query(CampaignCoupon).filter(
            CampaignCoupon.company_id == company_id,
            CampaignCoupon.code == code,
        )
        if for_update:
            query = query.with_for_update().populate_existing()
        return query.first()

    def create(self, coupon: CampaignCoupon) -> CampaignCoupon:
        self.db.add(coupon)
        self.db.flush()
        return coupon

    def list_for_company(self, company_id: int, campaign_id: Optional[int] = None) -> List[CampaignCoupon]:
        query = self.db.query(CampaignCoupon).filter(CampaignCoupon.company_id == company_id)
        if campaign_id is not None:
            query = query.filter(CampaignCoupon.campaign_id == campaign_id)
        return query.order_by(CampaignCoupon.created_at.desc(), CampaignCoupon.id.desc()).all()


class SaleRepository:
    """Repository for attributed sales and their read models"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, sale_id: int) -> Optional[Sale]:
        return self.db.get(Sale, sale_id)

    def get_by_order(self, company_id: int, platform, order_id: str) -> Optional[Sale]:
        return (
            self.db.query(Sale)
            .filter(Sale.company_id == company_id, Sale.platform == platform, Sale.order_id == order_id)
            .first()
        )

    def create(self, sale: Sale) -> Sale:
        self.db.add(sale)
        self.db.flush()
        return sale

    def _scoped(self, query, company_id: int, start: Optional[datetime], end: Optional[datetime]):
        query = query.filter(Sale.company_id == company_id, Sale.status != SaleStatus.CANCELLED)
        if start is not None:
            query = query.filter(Sale.tracked_at >= start)
        if end is not None:
            query = query.filter(Sale.tracked_at <= end)
        return query

    def list_for_company(
        self,
        company_id: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        campaign_id: Optional[int] = None,
        creator_id: Optional[int] = None,
    ) -> List[Sale]:
        query = self.db.query(Sale).filter(Sale.company_id == company_id)
        if start is not None:
            query = query.filter(Sale.tracked_at >= start)
        if end is not None:
            query = query.filter(Sale.tracked_at <= end)
        if campaign_id is not None:
            query = query.filter(Sale.campaign_id == campaign_id)
        if creator_id is not None:
            query = query.filter(Sale.creator_id == creator_id)
        return query.order_by(Sale.tracked_at.desc(), Sale.id.desc()).all()

    def _grouped(self, key_column, company_id: int, start, end) -> List[SalesBucket]:
        query = self.db.query(
            key_column,
            func.count(Sale.id),
            func.coalesce(func.sum(Sale.order_value), 0),
            func.coalesce(func.sum(Sale.commission), 0),
        )
        rows = self._scoped(query, company_id, start, end).group_by(key_column).order_by(key_column).all()
        return [
            SalesBucket(key=str(key), sales_count=int(count), revenue=int(revenue), commission=int(commission))
            for key, count, revenue, commission in rows
        ]

    def by_creator(self, company_id: int, start=None, end=None) -> List[SalesBucket]:
        return self._grouped(Sale.creator_id, company_id, start, end)

    def by_campaign(self, company_id: int, start=None, end=None) -> List[SalesBucket]:
        """Sales without a campaign are grouped under the key 'None'"""
        return self._grouped(Sale.campaign_id, company_id, start, end)

    def by_date(self, company_id: int, start=None, end=None) -> List[SalesBucket]:
        return self._grouped(func.date(Sale.tracked_at), company_id, start, end)

    def totals(self, company_id: int, start=None, end=None) -> Tuple[int, int, int]:
        query = self.db.query(
            func.count(Sale.id),
            func.coalesce(func.sum(Sale.order_value), 0),
            func.coalesce(func.sum(Sale.commission), 0),
        )
        count, revenue, commission = self._scoped(query, company_id, start, end).one()
        return int(count), int(revenue), int(commission)


class CommissionRepository:
    """Repository for creator commissions"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, commission_id: int) -> Optional[CreatorCommission]:
        return self.db.get(CreatorCommission, commission_id)

    def get_by_sale(self, sale_id: int) -> Optional[CreatorCommission]:
        return self.db.query(CreatorCommission).filter(CreatorCommission.sale_id == sale_id).first()

    def create(self, commission: CreatorCommission) -> CreatorCommission:
        self.db.add(commission)
        self.db.flush()
        return commission

    def list_for_company(
        self,
        company_id: int,
        status: Optional[CommissionStatus] = None,
        creator_id: Optional[int] = None,
    ) -> List[CreatorCommission]:
        query = self.db.query(CreatorCommission).filter(CreatorCommission.company_id == company_id)
        if status is not None:
            query = query.filter(CreatorCommission.status == status)
        if creator_id is not None:
            query = query.filter(CreatorCommission.creator_id == creator_id)
        return query.order_by(CreatorCommission.created_at.desc(), CreatorCommission.id.desc()).all()
