"""Pydantic schemas for API request/response validation

Requests carry money as decimal reais (at most 2 places); responses carry
integer centavos. Field names are camelCase on the wire.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

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

# Decimal currency units as sent by clients, e.g. 150.50
Money = Annotated[Decimal, Field(gt=0, max_digits=15, decimal_places=2)]


class APIModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# Wallet


class WalletResponse(APIModel):
    id: int
    company_id: int
    balance: int
    reserved_balance: int
    allocated: int
    available_balance: int
    formatted_balance: str
    currency: str
    billing_cycle_start: Optional[datetime] = None
    billing_cycle_end: Optional[datetime] = None
    archived_at: Optional[datetime] = None


class BoxResponse(APIModel):
    id: int
    company_wallet_id: int
    name: str
    description: Optional[str] = None
    color: str
    icon: str
    target_amount: Optional[int] = None
    current_amount: int
    is_active: bool
    progress: Optional[float] = None


class WalletOverviewResponse(APIModel):
    """Response for GET /wallet"""

    wallet: WalletResponse
    boxes: List[BoxResponse]


class BalanceResponse(APIModel):
    wallet_id: int
    balance: int
    reserved_balance: int
    allocated: int
    available: int


class ReplayResponse(APIModel):
    wallet_id: int
    stored_balance: int
    replayed_balance: int
    entries_folded: int
    consistent: bool


class TransactionResponse(APIModel):
    id: int
    company_wallet_id: Optional[int] = None
    creator_balance_id: Optional[int] = None
    sequence: int
    type: TransactionType
    amount: int
    balance_after: Optional[int] = None
    reserved_amount: int = 0
    related_user_id: Optional[int] = None
    related_campaign_id: Optional[int] = None
    wallet_box_id: Optional[int] = None
    paired_transaction_id: Optional[int] = None
    payment_batch_id: Optional[int] = None
    description: Optional[str] = None
    external_reference: Optional[str] = None
    status: TransactionStatus
    scheduled_for: Optional[datetime] = None
    processed_at: Optional[datetime] = None
    created_at: datetime


class DepositRequest(APIModel):
    """Request body for POST /wallet/deposit"""

    amount: Money
    description: Optional[str] = None
    external_reference: Optional[str] = Field(None, description="Payment provider id; repeats are ignored")


class DebitRequest(APIModel):
    """Request body for POST /wallet/withdraw and /wallet/refund"""

    amount: Money
    description: Optional[str] = None
    external_reference: Optional[str] = None


class AmountRequest(APIModel):
    amount: Money


class PayCreatorRequest(APIModel):
    """Request body for POST /wallet/pay-creator"""

    creator_id: int
    amount: Money
    type: TransactionType = TransactionType.PAYMENT_VARIABLE
    description: Optional[str] = None
    campaign_id: Optional[int] = None
    wallet_box_id: Optional[int] = None
    scheduled_for: Optional[datetime] = None


class SettleRequest(APIModel):
    succeeded: bool = True


class BoxCreateRequest(APIModel):
    """Request body for POST /wallet/boxes"""

    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    target_amount: Optional[Money] = None
    color: Optional[str] = None
    icon: Optional[str] = None


class BoxUpdateRequest(APIModel):
    """Request body for PATCH /wallet/boxes/{id}; send only the fields to change"""

    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    target_amount: Optional[Money] = None
    color: Optional[str] = None
    icon: Optional[str] = None


# Billing


class InvoiceResponse(APIModel):
    fixed_payments: int
    variable_payments: int
    commissions: int
    bonuses: int
    total: int


class CycleResponse(APIModel):
    """Response for GET /wallet/billing-cycle; fields are null when cycles are disabled"""

    configured: bool
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    days_remaining: Optional[int] = None
    total_days: Optional[int] = None
    progress: Optional[float] = None
    invoice: Optional[InvoiceResponse] = None


class CycleUpdateRequest(APIModel):
    start: datetime
    end: datetime


class CycleCloseResponse(APIModel):
    closed_start: datetime
    closed_end: datetime
    transactions_moved: int
    total_moved: int
    next_cycle: CycleResponse


# Batches


class BatchItemRequest(APIModel):
    creator_id: int
    amount: Money
    type: TransactionType = TransactionType.PAYMENT_VARIABLE
    description: Optional[str] = None
    campaign_id: Optional[int] = None


class BatchRequest(APIModel):
    name: Optional[str] = None
    payments: List[BatchItemRequest] = Field(..., min_length=1)


class BatchResponse(APIModel):
    id: int
    company_wallet_id: int
    name: Optional[str] = None
    total_amount: int
    transaction_count: int
    status: BatchStatus
    processed_at: Optional[datetime] = None
    created_at: datetime


# Creators


class CreatorWithBalanceResponse(APIModel):
    creator_id: int
    available_balance: int
    pending_balance: int
    total_paid: int
    payments_count: int
    pix_key: Optional[str] = None


class CreatorBalanceResponse(APIModel):
    user_id: int
    available_balance: int
    pending_balance: int
    formatted_available: str
    pix_key: Optional[str] = None
    pix_key_type: Optional[PixKeyType] = None


class PixKeyRequest(APIModel):
    pix_key: str = Field(..., min_length=1)
    pix_key_type: PixKeyType


# Rewards


class RewardCreateRequest(APIModel):
    campaign_id: int
    creator_id: int
    type: RewardKind
    reward_type: RewardType
    value: Optional[Money] = None
    description: Optional[str] = None
    rank_position: Optional[int] = Field(None, ge=1)
    points_threshold: Optional[int] = Field(None, ge=0)


class RewardResponse(APIModel):
    id: int
    campaign_id: int
    company_id: int
    creator_id: int
    type: RewardKind
    reward_type: RewardType
    value: Optional[int] = None
    description: Optional[str] = None
    status: RewardStatus
    rank_position: Optional[int] = None
    points_threshold: Optional[int] = None
    wallet_transaction_id: Optional[int] = None
    tracking_info: Optional[str] = None
    rejection_reason: Optional[str] = None
    approved_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime


class RejectRequest(APIModel):
    reason: Optional[str] = None


class ShipRequest(APIModel):
    tracking_info: Optional[str] = None


class RewardEventResponse(APIModel):
    id: int
    reward_id: int
    from_status: Optional[RewardStatus] = None
    to_status: RewardStatus
    actor_id: Optional[int] = None
    note: Optional[str] = None
    created_at: datetime


# Coupons


class CouponCreateRequest(APIModel):
    campaign_id: int
    code: str = Field(..., min_length=1, max_length=64)
    discount_type: DiscountType
    discount_value: Decimal = Field(..., gt=0, decimal_places=2, description="Percent, or reais for fixed coupons")
    creator_id: Optional[int] = None
    max_uses: Optional[int] = Field(None, gt=0)
    expires_at: Optional[datetime] = None


class CouponUpdateRequest(APIModel):
    """Request body for PATCH /coupons/{id}"""

    is_active: bool


class CouponResponse(APIModel):
    id: int
    company_id: int
    campaign_id: int
    creator_id: Optional[int] = None
    code: str
    discount_type: DiscountType
    discount_value: int
    max_uses: Optional[int] = None
    current_uses: int
    expires_at: Optional[datetime] = None
    is_active: bool
    created_at: datetime


# Sales


class SaleCreateRequest(APIModel):
    order_id: str = Field(..., min_length=1)
    order_value: Money
    platform: SalePlatform
    creator_id: Optional[int] = None
    campaign_id: Optional[int] = None
    coupon_code: Optional[str] = None
    commission: Optional[Annotated[Decimal, Field(ge=0, decimal_places=2)]] = None
    commission_rate_bps: Optional[int] = Field(None, ge=0, le=10_000)
    external_order_id: Optional[str] = None
    status: SaleStatus = SaleStatus.PENDING


class ManualSaleRequest(APIModel):
    """Request body for POST /brand/sales/manual"""

    creator_id: int
    revenue: Money
    coupon_code: Optional[str] = None
    campaign_id: Optional[int] = None
    commission: Optional[Annotated[Decimal, Field(ge=0, decimal_places=2)]] = None


class SaleStatusRequest(APIModel):
    status: SaleStatus


class SaleResponse(APIModel):
    id: int
    company_id: int
    campaign_id: Optional[int] = None
    creator_id: int
    coupon_code: Optional[str] = None
    order_id: str
    external_order_id: Optional[str] = None
    order_value: int
    commission: Optional[int] = None
    platform: SalePlatform
    status: SaleStatus
    tracked_at: datetime


class SalesBucketResponse(APIModel):
    key: str
    sales_count: int
    revenue: int
    commission: int


class SalesSummaryResponse(APIModel):
    total_sales: int
    total_revenue: int
    total_commission: int
    by_creator: List[SalesBucketResponse]
    by_campaign: List[SalesBucketResponse]
    by_date: List[SalesBucketResponse]
    from_date: Optional[date] = None
    to_date: Optional[date] = None


class CommissionResponse(APIModel):
    id: int
    company_id: int
    creator_id: int
    campaign_id: Optional[int] = None
    sale_id: Optional[int] = None
    amount: int
    status: CommissionStatus
    wallet_transaction_id: Optional[int] = None
    approved_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    created_at: datetime
