"""Unit tests for ledger entry rules and balance replay"""

from dataclasses import dataclass

import pytest

from creator_wallet.domain.exceptions import InvalidAmount, InvalidTransition
from creator_wallet.domain.models import TransactionStatus, TransactionType
from creator_wallet.domain.transactions import (
    affects_balance,
    assert_transition,
    can_transition,
    fold_balance,
    require_positive,
    validate_amount,
)


@dataclass
class Entry:
    amount: int
    type: TransactionType = TransactionType.DEPOSIT
    status: TransactionStatus = TransactionStatus.COMPLETED


@pytest.mark.parametrize("amount", [0, 1.5, "100", True, None])
def test_validate_amount_rejects(amount):
    with pytest.raises(InvalidAmount):
        validate_amount(amount)


def test_validate_amount_accepts_signed_integers():
    assert validate_amount(-20000) == -20000
    assert validate_amount(1) == 1


def test_require_positive():
    assert require_positive(100) == 100
    with pytest.raises(InvalidAmount):
        require_positive(-100)


def test_status_transitions():
    assert can_transition(TransactionStatus.PENDING, TransactionStatus.PROCESSING)
    assert can_transition(TransactionStatus.PENDING, TransactionStatus.CANCELLED)
    assert can_transition(TransactionStatus.PROCESSING, TransactionStatus.FAILED)
    assert can_transition(TransactionStatus.AVAILABLE, TransactionStatus.COMPLETED)
    assert not can_transition(TransactionStatus.PROCESSING, TransactionStatus.CANCELLED)


@pytest.mark.parametrize(
    "terminal",
    [TransactionStatus.COMPLETED, TransactionStatus.FAILED, TransactionStatus.CANCELLED],
)
def test_terminal_statuses_are_immutable(terminal):
    for target in TransactionStatus:
        with pytest.raises(InvalidTransition):
            assert_transition(terminal, target)


def test_pending_and_memo_entries_do_not_affect_balance():
    assert affects_balance(Entry(100))
    assert affects_balance(Entry(100, status=TransactionStatus.AVAILABLE))
    assert not affects_balance(Entry(100, status=TransactionStatus.PENDING))
    assert not affects_balance(Entry(-100, status=TransactionStatus.FAILED))
    assert not affects_balance(Entry(5000, type=TransactionType.BOX_ALLOCATION))


def test_fold_balance():
    entries = [
        Entry(50000),
        Entry(-20000, type=TransactionType.PAYMENT_VARIABLE),
        Entry(5000, type=TransactionType.BOX_ALLOCATION),
        Entry(-10000, type=TransactionType.BONUS, status=TransactionStatus.PENDING),
        Entry(-3000, type=TransactionType.COMMISSION, status=TransactionStatus.CANCELLED),
    ]
    assert fold_balance(entries) == 30000


def test_fold_balance_of_nothing_is_zero():
    assert fold_balance([]) == 0
