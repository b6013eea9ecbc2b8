"""Sale attribution rules - commissions and coupon usability"""

from datetime import datetime
from typing import Dict, FrozenSet, Optional

from creator_wallet.domain.exceptions import CouponInactive, InvalidAmount, InvalidTransition, MaxUsesExceeded
from creator_wallet.domain.models import CommissionStatus, SaleStatus
from creator_wallet.utils.date_utils import as_utc

BPS_DENOMINATOR = 10_000


def normalize_code(code: str) -> str:
    return code.strip().upper()


def compute_commission(
    order_value: int,
    commission: Optional[int] = None,
    commission_rate_bps: Optional[int] = None,
) -> int:
    """
    Commission owed for an order, in minor units.

    An explicit commission wins; otherwise the rate in basis points is
    applied (1000 bps = 10%) and rounded half-up to the nearest unit.

    Example:
        order_value=12345, bps=1000 -> 1235
    """
    if commission is not None:
        if commission < 0:
            raise InvalidAmount("Commission cannot be negative")
        return commission
    if not commission_rate_bps:
        return 0
    if commission_rate_bps < 0:
        raise InvalidAmount("Commission rate cannot be negative")
    return (order_value * commission_rate_bps + BPS_DENOMINATOR // 2) // BPS_DENOMINATOR


def check_coupon_usable(
    code: str,
    is_active: bool,
    current_uses: int,
    max_uses: Optional[int],
    expires_at: Optional[datetime],
    now: datetime,
) -> None:
    """Raise unless the coupon can take one more use right now."""
    if not is_active:
        raise CouponInactive(f"Coupon {code} is disabled")
    if expires_at is not None and as_utc(expires_at) <= as_utc(now):
        raise CouponInactive(f"Coupon {code} expired at {as_utc(expires_at).isoformat()}")
    if max_uses is not None and current_uses >= max_uses:
        raise MaxUsesExceeded(f"Coupon {code} already used {current_uses}/{max_uses} times")


_SALE_TRANSITIONS: Dict[SaleStatus, FrozenSet[SaleStatus]] = {
    SaleStatus.PENDING: frozenset({SaleStatus.CONFIRMED, SaleStatus.CANCELLED}),
    SaleStatus.CONFIRMED: frozenset({SaleStatus.PAID, SaleStatus.CANCELLED}),
}

_COMMISSION_TRANSITIONS: Dict[CommissionStatus, FrozenSet[CommissionStatus]] = {
    CommissionStatus.PENDING: frozenset({CommissionStatus.APPROVED, CommissionStatus.REJECTED}),
    CommissionStatus.APPROVED: frozenset({CommissionStatus.PAID, CommissionStatus.REJECTED}),
}


def assert_sale_transition(current: SaleStatus, target: SaleStatus) -> None:
    current, target = SaleStatus(current), SaleStatus(target)
    if target not in _SALE_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransition(f"Sale cannot move from {current.value} to {target.value}")


def assert_commission_transition(current: CommissionStatus, target: CommissionStatus) -> None:
    current, target = CommissionStatus(current), CommissionStatus(target)
    if target not in _COMMISSION_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransition(f"Commission cannot move from {current.value} to {target.value}")
