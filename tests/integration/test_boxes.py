"""Integration tests for wallet boxes (caixinhas)"""

import pytest

from creator_wallet.domain.exceptions import BoxNotFound, InsufficientFunds, InvalidAmount, InvalidTransition
from creator_wallet.domain.models import TransactionStatus, TransactionType
from creator_wallet.services.boxes import DEFAULT_COLOR, BoxManager
from creator_wallet.utils.date_utils import utc_now


@pytest.fixture
def boxes(db, processor) -> BoxManager:
    return BoxManager(db, processor.store)


@pytest.fixture
def small_wallet(processor, wallet):
    """Wallet holding R$ 100,00"""
    processor.deposit(wallet.id, 10000)
    return wallet


def test_create_box_defaults(boxes, wallet):
    box = boxes.create_box(wallet.id, "Q2 campaign", target_amount=20000)
    assert box.current_amount == 0
    assert box.is_active
    assert box.color == DEFAULT_COLOR


def test_allocation_limited_to_free_funds(boxes, processor, small_wallet):
    """Allocating 120 from 100 fails; 50 succeeds and leaves 50 free"""
    box = boxes.create_box(small_wallet.id, "Q2 campaign")

    with pytest.raises(InsufficientFunds):
        boxes.allocate(box.id, 12000)

    box = boxes.allocate(box.id, 5000)
    assert box.current_amount == 5000

    snapshot = processor.store.get_balance(small_wallet.id)
    assert snapshot.balance == 10000
    assert snapshot.allocated == 5000
    assert snapshot.available == 5000

    with pytest.raises(InsufficientFunds):
        processor.withdraw(small_wallet.id, 6000)


def test_allocations_are_memo_entries(boxes, processor, small_wallet):
    box = boxes.create_box(small_wallet.id, "Savings")
    boxes.allocate(box.id, 4000)
    boxes.deallocate(box.id, 1000)

    memos = processor.store.history(small_wallet.id, tx_type=TransactionType.BOX_ALLOCATION)
    assert sorted(memo.amount for memo in memos) == [-1000, 4000]
    assert all(memo.balance_after == 10000 for memo in memos)
    assert processor.store.replay(small_wallet.id).consistent


def test_deallocate_more_than_held(boxes, small_wallet):
    box = boxes.create_box(small_wallet.id, "Savings")
    boxes.allocate(box.id, 3000)
    with pytest.raises(InvalidAmount):
        boxes.deallocate(box.id, 3001)


def test_deactivate_returns_funds(boxes, processor, small_wallet):
    box = boxes.create_box(small_wallet.id, "Savings")
    boxes.allocate(box.id, 3000)

    box = boxes.deactivate_box(box.id)
    assert not box.is_active
    assert box.current_amount == 0
    assert processor.store.get_balance(small_wallet.id).available == 10000

    with pytest.raises(InvalidTransition):
        boxes.allocate(box.id, 100)
    assert boxes.list_boxes(small_wallet.id) == []
    assert len(boxes.list_boxes(small_wallet.id, include_inactive=True)) == 1


def test_unknown_box(boxes):
    with pytest.raises(BoxNotFound):
        boxes.allocate(404, 100)


def test_pay_creator_from_box(boxes, processor, small_wallet):
    """Box payments draw on the box; free funds are untouched"""
    box = boxes.create_box(small_wallet.id, "Influencers")
    boxes.allocate(box.id, 6000)

    with pytest.raises(InsufficientFunds):
        processor.pay_creator(small_wallet.id, 7, 7000, wallet_box_id=box.id)

    processor.pay_creator(small_wallet.id, 7, 2500, wallet_box_id=box.id)

    assert boxes.get(box.id).current_amount == 3500
    snapshot = processor.store.get_balance(small_wallet.id)
    assert snapshot.balance == 7500
    assert snapshot.available == 4000


def test_cancelled_box_payment_refills_box(boxes, processor, small_wallet):
    box = boxes.create_box(small_wallet.id, "Influencers")
    boxes.allocate(box.id, 6000)
    debit = processor.pay_creator(small_wallet.id, 7, 2500, wallet_box_id=box.id, scheduled_for=utc_now())

    processor.cancel_transaction(debit.id)

    assert debit.status == TransactionStatus.CANCELLED
    assert boxes.get(box.id).current_amount == 6000


def test_update_box_labels_and_target(boxes, processor, small_wallet):
    box = boxes.create_box(small_wallet.id, "Q2 campaign", description="Spring push", target_amount=20000)
    boxes.allocate(box.id, 5000)

    updated = boxes.update_box(box.id, name="Q3 campaign", target_amount=10000, color="#10b981")

    assert updated.name == "Q3 campaign"
    assert updated.description == "Spring push"
    assert updated.target_amount == 10000
    assert updated.color == "#10b981"
    assert updated.current_amount == 5000
    assert processor.store.get_balance(small_wallet.id).allocated == 5000

    cleared = boxes.update_box(box.id, description=None, target_amount=None)
    assert cleared.name == "Q3 campaign"
    assert cleared.description is None
    assert cleared.target_amount is None


def test_update_box_validation(boxes, wallet):
    box = boxes.create_box(wallet.id, "Q2 campaign", target_amount=20000)

    with pytest.raises(InvalidAmount):
        boxes.update_box(box.id, target_amount=0)
    assert boxes.get(box.id).target_amount == 20000

    boxes.deactivate_box(box.id)
    with pytest.raises(InvalidTransition):
        boxes.update_box(box.id, name="Reopened")
    with pytest.raises(BoxNotFound):
        boxes.update_box(404, name="Missing")
