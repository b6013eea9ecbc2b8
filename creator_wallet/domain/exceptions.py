"""Domain-specific exceptions

Every exception carries a stable ``kind`` so API clients can branch on the
failure without parsing the message, and the HTTP status it maps to.
"""


class DomainException(Exception):
    """Base exception for domain layer"""

    kind = "domain_error"
    status_code = 400

    def __init__(self, message: str | None = None):
        super().__init__(message or self.__doc__)
        self.message = message or self.__doc__


class NotFoundError(DomainException):
    """Requested entity does not exist"""

    kind = "not_found"
    status_code = 404


class WalletNotFound(NotFoundError):
    """Wallet does not exist"""

    kind = "wallet_not_found"


class TransactionNotFound(NotFoundError):
    """Ledger transaction does not exist"""

    kind = "transaction_not_found"


class BoxNotFound(NotFoundError):
    """Wallet box does not exist"""

    kind = "box_not_found"


class RewardNotFound(NotFoundError):
    """Creator reward does not exist"""

    kind = "reward_not_found"


class CouponNotFound(NotFoundError):
    """Coupon does not exist"""

    kind = "coupon_not_found"


class SaleNotFound(NotFoundError):
    """Sale does not exist"""

    kind = "sale_not_found"


class CommissionNotFound(NotFoundError):
    """Commission does not exist"""

    kind = "commission_not_found"


class InvalidAmount(DomainException):
    """Amount must be a positive whole number of minor units"""

    kind = "invalid_amount"
    status_code = 422


class InsufficientFunds(DomainException):
    """Operation would leave the wallet with a negative free balance"""

    kind = "insufficient_funds"
    status_code = 409


class InvalidTransition(DomainException):
    """Requested state change is not allowed from the current state"""

    kind = "invalid_transition"
    status_code = 409


class WalletArchived(DomainException):
    """Wallet is archived and cannot be changed"""

    kind = "wallet_archived"
    status_code = 409


class NoCycleConfigured(DomainException):
    """Wallet has no billing cycle configured"""

    kind = "no_cycle_configured"
    status_code = 422


class InvalidCycle(DomainException):
    """Billing cycle window is malformed"""

    kind = "invalid_cycle"
    status_code = 422


class DuplicateCoupon(DomainException):
    """Coupon code already exists for this company"""

    kind = "duplicate_coupon"
    status_code = 409


class MaxUsesExceeded(DomainException):
    """Coupon has reached its maximum number of uses"""

    kind = "max_uses_exceeded"
    status_code = 409


class CouponInactive(DomainException):
    """Coupon is disabled or expired"""

    kind = "coupon_inactive"
    status_code = 409


class DuplicateOrder(DomainException):
    """Order was already tracked for this company and platform"""

    kind = "duplicate_order"
    status_code = 409


class WalletBusy(DomainException):
    """Wallet is locked by another operation"""

    kind = "wallet_busy"
    status_code = 503


class InvalidPaymentType(DomainException):
    """Transaction type cannot be used to pay a creator"""

    kind = "invalid_payment_type"
    status_code = 422


class MissingAttribution(DomainException):
    """Sale cannot be attributed to a creator"""

    kind = "missing_attribution"
    status_code = 422
