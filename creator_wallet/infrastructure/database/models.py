"""SQLAlchemy ORM models for wallets, ledger entries, rewards and sales"""

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

from creator_wallet.domain.models import (
    BatchStatus,
    CommissionStatus,
    DiscountType,
    PixKeyType,
    RewardKind,
    RewardStatus,
    RewardType,
    SalePlatform,
    SaleStatus,
    TransactionStatus,
    TransactionType,
)
from creator_wallet.utils.date_utils import utc_now

Base = declarative_base()


def _enum(enum_cls, name: str) -> Enum:
    """Store enum values (not member names) as plain strings"""
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        validate_strings=True,
        values_callable=lambda members: [m.value for m in members],
        length=32,
    )


class CompanyWallet(Base):
    """A company's balance used to pay creators"""

    __tablename__ = "company_wallets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(Integer, nullable=False, unique=True, index=True)
    balance = Column(BigInteger, nullable=False, default=0)
    reserved_balance = Column(BigInteger, nullable=False, default=0)
    billing_cycle_start = Column(DateTime(timezone=True), nullable=True)
    billing_cycle_end = Column(DateTime(timezone=True), nullable=True)
    last_sequence = Column(BigInteger, nullable=False, default=0)
    archived_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    boxes = relationship("WalletBox", back_populates="wallet", order_by="WalletBox.name")


class WalletBox(Base):
    """Named sub-allocation (caixinha) of a wallet's balance"""

    __tablename__ = "wallet_boxes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_wallet_id = Column(Integer, ForeignKey("company_wallets.id"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    color = Column(String(16), nullable=False, default="#6366f1")
    icon = Column(String(64), nullable=False, default="piggy-bank")
    target_amount = Column(BigInteger, nullable=True)
    current_amount = Column(BigInteger, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    wallet = relationship("CompanyWallet", back_populates="boxes")


class CreatorBalance(Base):
    """Funds a creator has received from companies"""

    __tablename__ = "creator_balances"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, unique=True, index=True)
    available_balance = Column(BigInteger, nullable=False, default=0)
    pending_balance = Column(BigInteger, nullable=False, default=0)
    pix_key = Column(Text, nullable=True)
    pix_key_type = Column(_enum(PixKeyType, "pix_key_type"), nullable=True)
    last_sequence = Column(BigInteger, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)


class PaymentBatch(Base):
    """Creator payments submitted together"""

    __tablename__ = "payment_batches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_wallet_id = Column(Integer, ForeignKey("company_wallets.id"), nullable=False, index=True)
    name = Column(Text, nullable=True)
    total_amount = Column(BigInteger, nullable=False)
    transaction_count = Column(Integer, nullable=False)
    status = Column(_enum(BatchStatus, "batch_status"), nullable=False, default=BatchStatus.DRAFT)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)


class WalletTransaction(Base):
    """
    Append-only ledger entry.

    Exactly one side (company wallet or creator balance) is referenced per
    row. After insert only `status`, `processed_at` and, when a pending row
    is applied, `balance_after` change.
    """

    __tablename__ = "wallet_transactions"
    __table_args__ = (
        UniqueConstraint("company_wallet_id", "sequence", name="uq_wallet_tx_wallet_sequence"),
        UniqueConstraint("creator_balance_id", "sequence", name="uq_wallet_tx_creator_sequence"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_wallet_id = Column(Integer, ForeignKey("company_wallets.id"), nullable=True, index=True)
    creator_balance_id = Column(Integer, ForeignKey("creator_balances.id"), nullable=True, index=True)
    sequence = Column(BigInteger, nullable=False)
    type = Column(_enum(TransactionType, "transaction_type"), nullable=False)
    amount = Column(BigInteger, nullable=False)
    balance_after = Column(BigInteger, nullable=True)
    # Part of reserved_balance this entry holds until it settles or is cancelled
    reserved_amount = Column(BigInteger, nullable=False, default=0)
    related_user_id = Column(Integer, nullable=True, index=True)
    related_campaign_id = Column(Integer, nullable=True)
    wallet_box_id = Column(Integer, ForeignKey("wallet_boxes.id"), nullable=True)
    paired_transaction_id = Column(Integer, ForeignKey("wallet_transactions.id"), nullable=True)
    payment_batch_id = Column(Integer, ForeignKey("payment_batches.id"), nullable=True)
    description = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    external_reference = Column(Text, nullable=True, unique=True)
    status = Column(
        _enum(TransactionStatus, "transaction_status"),
        nullable=False,
        default=TransactionStatus.PENDING,
        index=True,
    )
    scheduled_for = Column(DateTime(timezone=True), nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)


class CreatorReward(Base):
    """Payout owed to a creator for ranking, milestone or bonus"""

    __tablename__ = "creator_rewards"

    id = Column(Integer, primary_key=True, autoincrement=True)
    campaign_id = Column(Integer, nullable=False, index=True)
    company_id = Column(Integer, nullable=False, index=True)
    creator_id = Column(Integer, nullable=False, index=True)
    type = Column(_enum(RewardKind, "reward_kind"), nullable=False)
    reward_type = Column(_enum(RewardType, "reward_type"), nullable=False)
    value = Column(BigInteger, nullable=True)
    description = Column(Text, nullable=True)
    status = Column(_enum(RewardStatus, "reward_status"), nullable=False, default=RewardStatus.PENDING)
    rank_position = Column(Integer, nullable=True)
    points_threshold = Column(Integer, nullable=True)
    wallet_transaction_id = Column(Integer, ForeignKey("wallet_transactions.id"), nullable=True)
    tracking_info = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    shipped_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    events = relationship("RewardEvent", back_populates="reward", order_by="RewardEvent.id")


class RewardEvent(Base):
    """Audit trail of reward status changes"""

    __tablename__ = "reward_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    reward_id = Column(Integer, ForeignKey("creator_rewards.id"), nullable=False, index=True)
    from_status = Column(_enum(RewardStatus, "reward_status"), nullable=True)
    to_status = Column(_enum(RewardStatus, "reward_status"), nullable=False)
    actor_id = Column(Integer, nullable=True)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    reward = relationship("CreatorReward", back_populates="events")


class CampaignCoupon(Base):
    """Discount code attributing sales to a creator/campaign"""

    __tablename__ = "campaign_coupons"
    __table_args__ = (UniqueConstraint("company_id", "code", name="uq_coupon_company_code"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(Integer, nullable=False, index=True)
    campaign_id = Column(Integer, nullable=False, index=True)
    creator_id = Column(Integer, nullable=True)
    code = Column(String(64), nullable=False)
    discount_type = Column(_enum(DiscountType, "discount_type"), nullable=False)
    discount_value = Column(BigInteger, nullable=False)  # percentage points or centavos
    max_uses = Column(Integer, nullable=True)
    current_uses = Column(Integer, nullable=False, default=0)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)


class Sale(Base):
    """Order attributed to a creator"""

    __tablename__ = "sales_tracking"
    __table_args__ = (
        UniqueConstraint("company_id", "platform", "order_id", name="uq_sale_company_platform_order"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(Integer, nullable=False, index=True)
    campaign_id = Column(Integer, nullable=True, index=True)
    creator_id = Column(Integer, nullable=False, index=True)
    coupon_id = Column(Integer, ForeignKey("campaign_coupons.id"), nullable=True)
    coupon_code = Column(String(64), nullable=True)
    order_id = Column(Text, nullable=False)
    external_order_id = Column(Text, nullable=True)
    order_value = Column(BigInteger, nullable=False)
    commission = Column(BigInteger, nullable=True)
    commission_rate_bps = Column(Integer, nullable=True)
    platform = Column(_enum(SalePlatform, "sale_platform"), nullable=False)
    status = Column(_enum(SaleStatus, "sale_status"), nullable=False, default=SaleStatus.PENDING)
    tracked_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)


class CreatorCommission(Base):
    """Commission owed to a creator for an attributed sale"""

    __tablename__ = "creator_commissions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(Integer, nullable=False, index=True)
    creator_id = Column(Integer, nullable=False, index=True)
    campaign_id = Column(Integer, nullable=True)
    sale_id = Column(Integer, ForeignKey("sales_tracking.id"), nullable=True, unique=True)
    amount = Column(BigInteger, nullable=False)
    status = Column(_enum(CommissionStatus, "commission_status"), nullable=False, default=CommissionStatus.PENDING)
    wallet_transaction_id = Column(Integer, ForeignKey("wallet_transactions.id"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
