"""Integration tests for wallet money movements and creator payments"""

from datetime import timedelta

import pytest

from creator_wallet.domain.exceptions import (
    InsufficientFunds,
    InvalidAmount,
    InvalidPaymentType,
    InvalidTransition,
    WalletArchived,
)
from creator_wallet.domain.models import PaymentItem, PixKeyType, TransactionStatus, TransactionType
from creator_wallet.services.billing import BillingCycleManager
from creator_wallet.utils.date_utils import utc_now

COMPANY_ID = 1
CREATOR_ID = 7


def test_open_wallet_is_get_or_create(processor, wallet):
    """Opening twice returns the same wallet with a default billing cycle"""
    again = processor.open_wallet(COMPANY_ID)
    assert again.id == wallet.id
    assert wallet.balance == 0
    assert wallet.billing_cycle_start is not None
    assert wallet.billing_cycle_end > wallet.billing_cycle_start


def test_pay_creator_moves_funds(processor, funded_wallet):
    """A payment debits the wallet and credits the creator in one step"""
    debit = processor.pay_creator(funded_wallet.id, CREATOR_ID, 20000, description="Campaign post")

    assert debit.amount == -20000
    assert debit.status == TransactionStatus.COMPLETED
    assert debit.balance_after == 30000
    assert debit.related_user_id == CREATOR_ID

    credit = processor.store.transactions.get_paired(debit.id)
    assert credit.type == TransactionType.TRANSFER_IN
    assert credit.amount == 20000
    assert credit.status == TransactionStatus.AVAILABLE

    assert processor.store.get_balance(funded_wallet.id).balance == 30000
    assert processor.get_creator_balance(CREATOR_ID).available_balance == 20000


def test_overdraft_is_rejected_and_changes_nothing(processor, funded_wallet):
    """Paying more than the free balance fails without writing anything"""
    processor.pay_creator(funded_wallet.id, CREATOR_ID, 20000)

    with pytest.raises(InsufficientFunds):
        processor.pay_creator(funded_wallet.id, CREATOR_ID, 40000)

    assert processor.store.get_balance(funded_wallet.id).balance == 30000
    assert processor.get_creator_balance(CREATOR_ID).available_balance == 20000
    assert len(processor.store.history(funded_wallet.id)) == 2


def test_pay_creator_rejects_non_payment_types(processor, funded_wallet):
    with pytest.raises(InvalidPaymentType):
        processor.pay_creator(funded_wallet.id, CREATOR_ID, 1000, tx_type=TransactionType.DEPOSIT)


@pytest.mark.parametrize("amount", [0, -500])
def test_deposit_requires_positive_amount(processor, wallet, amount):
    with pytest.raises(InvalidAmount):
        processor.deposit(wallet.id, amount)


def test_deposit_is_idempotent_on_external_reference(processor, wallet):
    """A replayed provider notification is recorded once"""
    first = processor.deposit(wallet.id, 10000, external_reference="pi_123")
    second = processor.deposit(wallet.id, 10000, external_reference="pi_123")

    assert first.id == second.id
    assert processor.store.get_balance(wallet.id).balance == 10000


def test_withdraw_and_refund(processor, funded_wallet):
    processor.withdraw(funded_wallet.id, 10000)
    refund = processor.refund(funded_wallet.id, 5000, external_reference="re_1")

    assert refund.type == TransactionType.REFUND
    assert refund.balance_after == 35000

    with pytest.raises(InsufficientFunds):
        processor.withdraw(funded_wallet.id, 35001)


def test_reserved_funds_are_not_spendable(processor, funded_wallet):
    snapshot = processor.reserve(funded_wallet.id, 30000)
    assert snapshot.balance == 50000
    assert snapshot.available == 20000

    with pytest.raises(InsufficientFunds):
        processor.pay_creator(funded_wallet.id, CREATOR_ID, 25000)

    snapshot = processor.release(funded_wallet.id, 30000)
    assert snapshot.reserved_balance == 0
    assert snapshot.available == 50000


def test_release_cannot_free_scheduled_payments(processor, funded_wallet):
    """Funds backing a scheduled payment stay reserved"""
    processor.reserve(funded_wallet.id, 10000)
    processor.pay_creator(funded_wallet.id, CREATOR_ID, 20000, scheduled_for=utc_now() + timedelta(days=3))

    with pytest.raises(InvalidAmount):
        processor.release(funded_wallet.id, 15000)

    snapshot = processor.release(funded_wallet.id, 10000)
    assert snapshot.reserved_balance == 20000


def test_scheduled_payment_settles_after_cycle_close(db, processor, funded_wallet, open_cycle):
    """pending -> processing at cycle close -> completed on settlement"""
    debit = processor.pay_creator(
        funded_wallet.id, CREATOR_ID, 20000, scheduled_for=utc_now() + timedelta(days=1)
    )
    assert debit.status == TransactionStatus.PENDING
    assert debit.balance_after is None

    snapshot = processor.store.get_balance(funded_wallet.id)
    assert snapshot.balance == 50000
    assert snapshot.reserved_balance == 20000
    creator = processor.get_creator_balance(CREATOR_ID)
    assert creator.pending_balance == 20000
    assert creator.available_balance == 0

    result = BillingCycleManager(db, processor.store).close_cycle(funded_wallet.id)
    assert result.transactions_moved == 1
    assert result.total_moved == 20000
    db.refresh(debit)
    assert debit.status == TransactionStatus.PROCESSING

    settled = processor.settle_transaction(debit.id, succeeded=True)
    assert settled.status == TransactionStatus.COMPLETED
    assert settled.balance_after == 30000

    snapshot = processor.store.get_balance(funded_wallet.id)
    assert snapshot.balance == 30000
    assert snapshot.reserved_balance == 0
    creator = processor.get_creator_balance(CREATOR_ID)
    assert creator.pending_balance == 0
    assert creator.available_balance == 20000


def test_failed_settlement_releases_reservation(db, processor, funded_wallet, open_cycle):
    debit = processor.pay_creator(
        funded_wallet.id, CREATOR_ID, 20000, scheduled_for=utc_now() + timedelta(days=1)
    )
    BillingCycleManager(db, processor.store).close_cycle(funded_wallet.id)

    failed = processor.settle_transaction(debit.id, succeeded=False)
    assert failed.status == TransactionStatus.FAILED

    snapshot = processor.store.get_balance(funded_wallet.id)
    assert snapshot.balance == 50000
    assert snapshot.reserved_balance == 0
    assert processor.store.transactions.get_paired(debit.id).status == TransactionStatus.CANCELLED
    assert processor.get_creator_balance(CREATOR_ID).pending_balance == 0


def test_settle_requires_processing(processor, funded_wallet):
    debit = processor.pay_creator(funded_wallet.id, CREATOR_ID, 1000, scheduled_for=utc_now())
    with pytest.raises(InvalidTransition):
        processor.settle_transaction(debit.id, succeeded=True)


def test_cancel_pending_payment(processor, funded_wallet):
    debit = processor.pay_creator(funded_wallet.id, CREATOR_ID, 20000, scheduled_for=utc_now())

    cancelled = processor.cancel_transaction(debit.id)
    assert cancelled.status == TransactionStatus.CANCELLED

    snapshot = processor.store.get_balance(funded_wallet.id)
    assert snapshot.reserved_balance == 0
    assert snapshot.available == 50000
    assert processor.get_creator_balance(CREATOR_ID).pending_balance == 0


def test_cancelling_unreserved_pending_debit_leaves_reservation_alone(processor, funded_wallet):
    """A pending debit recorded straight on the ledger never held a reservation"""
    entry = processor.store.record_transaction(
        funded_wallet.id, TransactionType.PAYMENT_FIXED, -3000, status=TransactionStatus.PENDING
    )
    assert entry.reserved_amount == 0

    processor.cancel_transaction(entry.id)

    snapshot = processor.store.get_balance(funded_wallet.id)
    assert snapshot.balance == 50000
    assert snapshot.reserved_balance == 0
    assert snapshot.available == 50000


def test_settling_unreserved_debit_only_moves_balance(db, processor, funded_wallet, open_cycle):
    processor.reserve(funded_wallet.id, 5000)
    entry = processor.store.record_transaction(
        funded_wallet.id, TransactionType.PAYMENT_FIXED, -3000, status=TransactionStatus.PENDING
    )
    BillingCycleManager(db, processor.store).close_cycle(funded_wallet.id)

    processor.settle_transaction(entry.id, succeeded=True)

    snapshot = processor.store.get_balance(funded_wallet.id)
    assert snapshot.balance == 47000
    assert snapshot.reserved_balance == 5000
    assert processor.release(funded_wallet.id, 5000).reserved_balance == 0


def test_completed_entries_cannot_be_cancelled(processor, funded_wallet):
    debit = processor.pay_creator(funded_wallet.id, CREATOR_ID, 1000)
    with pytest.raises(InvalidTransition):
        processor.cancel_transaction(debit.id)


def test_archived_wallet_rejects_mutations(processor, funded_wallet):
    processor.archive_wallet(funded_wallet.id)

    with pytest.raises(WalletArchived):
        processor.deposit(funded_wallet.id, 1000)
    with pytest.raises(WalletArchived):
        processor.pay_creator(funded_wallet.id, CREATOR_ID, 1000)

    assert processor.store.get_balance(funded_wallet.id).balance == 50000


def test_batch_pays_every_creator(processor, funded_wallet):
    batch = processor.pay_creators_batch(
        funded_wallet.id,
        [PaymentItem(creator_id=7, amount=20000), PaymentItem(creator_id=8, amount=10000)],
        name="March payouts",
    )

    assert batch.total_amount == 30000
    assert batch.transaction_count == 2
    assert batch.status == "completed"
    assert processor.store.get_balance(funded_wallet.id).balance == 20000
    rows = processor.store.history(funded_wallet.id, tx_type=TransactionType.PAYMENT_VARIABLE)
    assert {row.payment_batch_id for row in rows} == {batch.id}


def test_batch_over_free_funds_is_rejected(processor, funded_wallet):
    with pytest.raises(InsufficientFunds):
        processor.pay_creators_batch(
            funded_wallet.id,
            [PaymentItem(creator_id=7, amount=30000), PaymentItem(creator_id=8, amount=30000)],
        )
    assert processor.list_batches(funded_wallet.id) == []


def test_batch_is_all_or_nothing(processor, funded_wallet):
    """A bad item rolls back the payments made before it"""
    with pytest.raises(InvalidPaymentType):
        processor.pay_creators_batch(
            funded_wallet.id,
            [
                PaymentItem(creator_id=7, amount=10000),
                PaymentItem(creator_id=8, amount=10000, type=TransactionType.DEPOSIT),
            ],
        )

    assert processor.store.get_balance(funded_wallet.id).balance == 50000
    assert processor.get_creator_balance(7) is None
    assert processor.list_batches(funded_wallet.id) == []


def test_creator_withdraw(processor, funded_wallet):
    processor.pay_creator(funded_wallet.id, CREATOR_ID, 20000)

    withdrawal = processor.creator_withdraw(CREATOR_ID, 5000)
    assert withdrawal.amount == -5000
    assert withdrawal.balance_after == 15000

    with pytest.raises(InsufficientFunds):
        processor.creator_withdraw(CREATOR_ID, 50000)
    with pytest.raises(InsufficientFunds):
        processor.creator_withdraw(999, 100)

    history = processor.creator_history(CREATOR_ID)
    assert [row.type for row in history] == [TransactionType.WITHDRAWAL, TransactionType.TRANSFER_IN]


def test_set_pix_key(processor):
    creator = processor.set_pix_key(CREATOR_ID, "creator@example.com", PixKeyType.EMAIL)
    assert creator.pix_key == "creator@example.com"
    assert creator.pix_key_type == PixKeyType.EMAIL


def test_list_creators(processor, funded_wallet):
    processor.pay_creator(funded_wallet.id, 7, 10000)
    processor.pay_creator(funded_wallet.id, 7, 5000)
    processor.pay_creator(funded_wallet.id, 8, 2500)
    cancelled = processor.pay_creator(funded_wallet.id, 8, 1000, scheduled_for=utc_now())
    processor.cancel_transaction(cancelled.id)

    summaries = {s.creator_id: s for s in processor.list_creators(funded_wallet.id)}

    assert summaries[7].total_paid == 15000
    assert summaries[7].payments_count == 2
    assert summaries[7].available_balance == 15000
    assert summaries[8].total_paid == 2500
    assert summaries[8].payments_count == 1
