"""Domain models - enums and pure Python dataclasses shared across layers"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional


class TransactionType(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    PAYMENT_FIXED = "payment_fixed"
    PAYMENT_VARIABLE = "payment_variable"
    COMMISSION = "commission"
    BONUS = "bonus"
    REFUND = "refund"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"
    BOX_ALLOCATION = "box_allocation"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    AVAILABLE = "available"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class BatchStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class RewardKind(str, Enum):
    """Why the reward was earned"""

    RANKING_PLACE = "ranking_place"
    MILESTONE = "milestone"
    BONUS = "bonus"


class RewardType(str, Enum):
    """What the creator receives"""

    CASH = "cash"
    PRODUCT = "product"
    VOUCHER = "voucher"
    CUSTOM = "custom"


class RewardStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CASH_PAID = "cash_paid"
    PRODUCT_SHIPPED = "product_shipped"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class SalePlatform(str, Enum):
    SHOPIFY = "shopify"
    WOOCOMMERCE = "woocommerce"
    MANUAL = "manual"


class SaleStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PAID = "paid"
    CANCELLED = "cancelled"


class CommissionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    PAID = "paid"
    REJECTED = "rejected"


class PixKeyType(str, Enum):
    CPF = "cpf"
    CNPJ = "cnpj"
    EMAIL = "email"
    PHONE = "phone"
    RANDOM = "random"


@dataclass
class BalanceSnapshot:
    """Materialized wallet balance split into its earmarks"""

    wallet_id: int
    balance: int
    reserved_balance: int
    allocated: int

    @property
    def available(self) -> int:
        """Funds not reserved and not parked in an active box"""
        return self.balance - self.reserved_balance - self.allocated


@dataclass
class ReplayResult:
    """Outcome of folding a wallet's ledger in commit order"""

    wallet_id: int
    stored_balance: int
    replayed_balance: int
    entries_folded: int

    @property
    def consistent(self) -> bool:
        return self.stored_balance == self.replayed_balance


@dataclass
class CycleWindow:
    start: datetime
    end: datetime


@dataclass
class CycleProgress:
    """Where `now` sits within a billing window"""

    window: CycleWindow
    days_remaining: int
    total_days: int
    progress: float  # 0.0 - 1.0


@dataclass
class InvoiceTotals:
    """Pending debits of a cycle, bucketed the way invoices display them"""

    fixed_payments: int = 0
    variable_payments: int = 0
    commissions: int = 0
    bonuses: int = 0

    @property
    def total(self) -> int:
        return self.fixed_payments + self.variable_payments + self.commissions + self.bonuses


@dataclass
class CycleCloseResult:
    closed_window: CycleWindow
    transactions_moved: int
    total_moved: int
    next_cycle: CycleProgress


@dataclass
class PaymentItem:
    """One creator payment inside a batch"""

    creator_id: int
    amount: int
    type: TransactionType = TransactionType.PAYMENT_VARIABLE
    description: str = ""
    campaign_id: Optional[int] = None


@dataclass
class CreatorSummary:
    """A creator a wallet has paid, with their balance and what this wallet paid them"""

    creator_id: int
    available_balance: int
    pending_balance: int
    total_paid: int
    payments_count: int
    pix_key: Optional[str] = None


@dataclass
class SalesBucket:
    """Aggregate row for a sales read model"""

    key: str
    sales_count: int
    revenue: int
    commission: int


@dataclass
class SalesSummary:
    total_sales: int = 0
    total_revenue: int = 0
    total_commission: int = 0
    by_creator: List[SalesBucket] = field(default_factory=list)
    by_campaign: List[SalesBucket] = field(default_factory=list)
    by_date: List[SalesBucket] = field(default_factory=list)
    from_date: Optional[date] = None
    to_date: Optional[date] = None
