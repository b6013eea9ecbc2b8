"""Ledger entry rules - statuses, signs and balance replay"""

from typing import Dict, FrozenSet, Iterable, Protocol

from creator_wallet.domain.exceptions import InvalidAmount, InvalidTransition
from creator_wallet.domain.models import TransactionStatus, TransactionType

# Statuses whose amount is reflected in the materialized balance
APPLIED_STATUSES: FrozenSet[TransactionStatus] = frozenset(
    {TransactionStatus.AVAILABLE, TransactionStatus.COMPLETED}
)

TERMINAL_STATUSES: FrozenSet[TransactionStatus] = frozenset(
    {TransactionStatus.COMPLETED, TransactionStatus.FAILED, TransactionStatus.CANCELLED}
)

# Types a company may use to pay a creator
PAYOUT_TYPES: FrozenSet[TransactionType] = frozenset(
    {
        TransactionType.PAYMENT_FIXED,
        TransactionType.PAYMENT_VARIABLE,
        TransactionType.COMMISSION,
        TransactionType.BONUS,
    }
)

# Entries that partition funds inside a wallet without moving its balance
MEMO_TYPES: FrozenSet[TransactionType] = frozenset({TransactionType.BOX_ALLOCATION})

_TRANSITIONS: Dict[TransactionStatus, FrozenSet[TransactionStatus]] = {
    TransactionStatus.PENDING: frozenset(
        {TransactionStatus.PROCESSING, TransactionStatus.AVAILABLE, TransactionStatus.CANCELLED}
    ),
    TransactionStatus.PROCESSING: frozenset({TransactionStatus.COMPLETED, TransactionStatus.FAILED}),
    TransactionStatus.AVAILABLE: frozenset({TransactionStatus.COMPLETED}),
}


class LedgerEntryLike(Protocol):
    amount: int
    type: TransactionType
    status: TransactionStatus


def validate_amount(amount: int) -> int:
    """Reject zero, fractional or non-integer amounts."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount(f"Amount must be an integer number of minor units, got {amount!r}")
    if amount == 0:
        raise InvalidAmount("Amount must not be zero")
    return amount


def require_positive(amount: int) -> int:
    validate_amount(amount)
    if amount < 0:
        raise InvalidAmount(f"Amount must be positive, got {amount}")
    return amount


def can_transition(current: TransactionStatus, target: TransactionStatus) -> bool:
    return target in _TRANSITIONS.get(TransactionStatus(current), frozenset())


def assert_transition(current: TransactionStatus, target: TransactionStatus) -> None:
    if not can_transition(current, target):
        raise InvalidTransition(
            f"Transaction cannot move from {TransactionStatus(current).value} to {TransactionStatus(target).value}"
        )


def affects_balance(entry: LedgerEntryLike) -> bool:
    """Whether an entry counts toward the materialized balance"""
    return (
        TransactionType(entry.type) not in MEMO_TYPES
        and TransactionStatus(entry.status) in APPLIED_STATUSES
    )


def fold_balance(entries: Iterable[LedgerEntryLike]) -> int:
    """
    Replay entries in commit order and return the resulting balance.

    Only applied, non-memo entries contribute. Integer arithmetic only, so a
    replay of the full history reproduces the stored balance exactly.
    """
    balance = 0
    for entry in entries:
        if affects_balance(entry):
            balance += entry.amount
    return balance
