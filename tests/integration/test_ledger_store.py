"""Integration tests for the ledger store and its unit of work"""

import pytest

from creator_wallet.domain.exceptions import (
    InsufficientFunds,
    InvalidAmount,
    InvalidTransition,
    TransactionNotFound,
    WalletNotFound,
)
from creator_wallet.domain.models import TransactionStatus, TransactionType
from creator_wallet.services.ledger import LedgerStore, unit_of_work


@pytest.fixture
def store(processor) -> LedgerStore:
    return processor.store


def test_entries_get_increasing_sequence(store, wallet):
    first = store.record_transaction(wallet.id, TransactionType.DEPOSIT, 10000)
    second = store.record_transaction(wallet.id, TransactionType.WITHDRAWAL, -2500)

    assert (first.sequence, second.sequence) == (1, 2)
    assert first.balance_after == 10000
    assert second.balance_after == 7500
    assert store.get_wallet(wallet.id).last_sequence == 2


def test_record_transaction_rejects_zero(store, wallet):
    with pytest.raises(InvalidAmount):
        store.record_transaction(wallet.id, TransactionType.DEPOSIT, 0)


def test_negative_balance_is_never_stored(store, wallet):
    store.record_transaction(wallet.id, TransactionType.DEPOSIT, 1000)

    with pytest.raises(InsufficientFunds):
        store.record_transaction(wallet.id, TransactionType.WITHDRAWAL, -1001)

    assert store.get_balance(wallet.id).balance == 1000
    assert len(store.history(wallet.id)) == 1


def test_unknown_wallet(store):
    with pytest.raises(WalletNotFound):
        store.record_transaction(424242, TransactionType.DEPOSIT, 100)
    with pytest.raises(WalletNotFound):
        store.get_balance(424242)


def test_pending_entry_applies_on_transition(store, wallet):
    """Pending entries move the balance only when they complete"""
    entry = store.record_transaction(wallet.id, TransactionType.DEPOSIT, 5000, status=TransactionStatus.PENDING)
    assert entry.balance_after is None
    assert store.get_balance(wallet.id).balance == 0

    store.transition_status(entry.id, TransactionStatus.AVAILABLE)
    assert entry.balance_after == 5000

    store.transition_status(entry.id, TransactionStatus.COMPLETED)
    assert entry.status == TransactionStatus.COMPLETED
    assert entry.balance_after == 5000
    assert store.get_balance(wallet.id).balance == 5000


def test_terminal_entries_do_not_move(store, wallet):
    entry = store.record_transaction(wallet.id, TransactionType.DEPOSIT, 5000)
    with pytest.raises(InvalidTransition):
        store.transition_status(entry.id, TransactionStatus.CANCELLED)


def test_transition_unknown_entry(store):
    with pytest.raises(TransactionNotFound):
        store.transition_status(999, TransactionStatus.COMPLETED)


def test_replay_matches_stored_balance(store, wallet):
    store.record_transaction(wallet.id, TransactionType.DEPOSIT, 50000)
    store.record_transaction(wallet.id, TransactionType.PAYMENT_FIXED, -12000, related_user_id=7)
    store.record_transaction(wallet.id, TransactionType.BOX_ALLOCATION, 3000)
    pending = store.record_transaction(
        wallet.id, TransactionType.BONUS, -1000, status=TransactionStatus.PENDING
    )
    store.transition_status(pending.id, TransactionStatus.CANCELLED)

    result = store.replay(wallet.id)

    assert result.consistent
    assert result.stored_balance == 38000
    assert result.entries_folded == 4


def test_history_filters_and_pages(store, wallet):
    store.record_transaction(wallet.id, TransactionType.DEPOSIT, 50000)
    for creator_id in (7, 7, 8):
        store.record_transaction(wallet.id, TransactionType.PAYMENT_VARIABLE, -1000, related_user_id=creator_id)

    assert len(store.history(wallet.id, tx_type=TransactionType.PAYMENT_VARIABLE)) == 3
    assert len(store.history(wallet.id, related_user_id=7)) == 2
    assert store.history(wallet.id, status=TransactionStatus.PENDING) == []

    newest = store.history(wallet.id, limit=2)
    rest = store.history(wallet.id, limit=2, offset=2)
    assert [row.sequence for row in newest + rest] == [4, 3, 2, 1]


def test_nested_units_commit_once(db, store, wallet):
    """An error in a nested unit rolls back the outer unit's writes too"""
    with pytest.raises(RuntimeError):
        with store.wallet_guard(wallet.id) as held:
            store.append_wallet_entry(held, TransactionType.DEPOSIT, 7000, TransactionStatus.COMPLETED)
            with unit_of_work(db, ("nested", wallet.id)):
                raise RuntimeError("boom")

    assert store.get_balance(wallet.id).balance == 0
    assert store.history(wallet.id) == []


def test_nested_guard_reuses_held_wallet(store, wallet):
    with store.wallet_guard(wallet.id) as outer:
        store.append_wallet_entry(outer, TransactionType.DEPOSIT, 7000, TransactionStatus.COMPLETED)
        with store.wallet_guard(wallet.id) as inner:
            assert inner is outer
            assert inner.balance == 7000

    assert store.get_balance(wallet.id).balance == 7000
