"""Transaction processor - validates wallet operations and applies them atomically"""

import logging
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from creator_wallet.config import settings
from creator_wallet.domain.billing import default_window, validate_window
from creator_wallet.domain.exceptions import (
    BoxNotFound,
    DomainException,
    InsufficientFunds,
    InvalidAmount,
    InvalidPaymentType,
    InvalidTransition,
    TransactionNotFound,
)
from creator_wallet.domain.models import (
    BalanceSnapshot,
    BatchStatus,
    CreatorSummary,
    PaymentItem,
    PixKeyType,
    TransactionStatus,
    TransactionType,
)
from creator_wallet.domain.transactions import PAYOUT_TYPES, require_positive
from creator_wallet.infrastructure.database.models import (
    CompanyWallet,
    CreatorBalance,
    PaymentBatch,
    WalletBox,
    WalletTransaction,
)
from creator_wallet.infrastructure.database.repositories import PaymentBatchRepository
from creator_wallet.infrastructure.observability.logging import log_rejection
from creator_wallet.infrastructure.observability.metrics import record_rejection
from creator_wallet.services.ledger import LedgerStore, unit_of_work
from creator_wallet.utils.date_utils import utc_now

logger = logging.getLogger(__name__)


class TransactionProcessor:
    """
    Applies deposits, debits, creator payments and reservations.

    Every mutation runs inside the wallet's guard, so validation against the
    current balance and the writes it permits commit together. Free funds
    are `balance - reserved - allocated`; no debit, reservation or box
    allocation may exceed them.
    """

    def __init__(self, db: Session, store: LedgerStore | None = None):
        self.db = db
        self.store = store or LedgerStore(db)
        self.batches = PaymentBatchRepository(db)

    # Wallet lifecycle

    def open_wallet(
        self,
        company_id: int,
        cycle_start: Optional[datetime] = None,
        cycle_end: Optional[datetime] = None,
    ) -> CompanyWallet:
        """Return the company's wallet, creating it with a default billing cycle on first use"""
        wallet = self.store.wallets.get_by_company(company_id)
        if wallet is not None:
            return wallet

        with unit_of_work(self.db, ("company", company_id), self.store.locks):
            wallet = self.store.wallets.get_by_company(company_id)
            if wallet is not None:
                return wallet

            if cycle_start is not None and cycle_end is not None:
                window = validate_window(cycle_start, cycle_end)
            elif settings.default_billing_day > 0:
                window = default_window(utc_now(), settings.default_billing_day)
            else:
                window = None

            wallet = self.store.wallets.create(
                company_id,
                cycle_start=window.start if window else None,
                cycle_end=window.end if window else None,
            )
            logger.info("Wallet opened", extra={"wallet_id": wallet.id, "company_id": company_id})
        return wallet

    def archive_wallet(self, wallet_id: int) -> CompanyWallet:
        with self.store.wallet_guard(wallet_id) as wallet:
            if wallet.archived_at is None:
                wallet.archived_at = utc_now()
                logger.info("Wallet archived", extra={"wallet_id": wallet_id})
        return wallet

    # Company-side money movements

    def deposit(
        self,
        wallet_id: int,
        amount: int,
        description: Optional[str] = None,
        external_reference: Optional[str] = None,
    ) -> WalletTransaction:
        """
        Credit funds to a wallet.

        A repeated `external_reference` (payment provider id) returns the
        entry recorded the first time and changes nothing.
        """
        require_positive(amount)
        with self.store.wallet_guard(wallet_id) as wallet:
            self.store.ensure_active(wallet)
            if external_reference:
                existing = self.store.transactions.get_by_external_reference(external_reference)
                if existing is not None:
                    logger.info(
                        "Duplicate deposit ignored",
                        extra={"wallet_id": wallet_id, "external_reference": external_reference},
                    )
                    return existing
            return self.store.append_wallet_entry(
                wallet,
                TransactionType.DEPOSIT,
                amount,
                TransactionStatus.COMPLETED,
                description=description or "Deposit",
                external_reference=external_reference,
            )

    def withdraw(self, wallet_id: int, amount: int, description: Optional[str] = None) -> WalletTransaction:
        require_positive(amount)
        with self.store.wallet_guard(wallet_id) as wallet:
            self.store.ensure_active(wallet)
            self._require_free(wallet, amount, "withdraw")
            return self.store.append_wallet_entry(
                wallet,
                TransactionType.WITHDRAWAL,
                -amount,
                TransactionStatus.COMPLETED,
                description=description or "Withdrawal",
            )

    def refund(
        self,
        wallet_id: int,
        amount: int,
        description: Optional[str] = None,
        external_reference: Optional[str] = None,
    ) -> WalletTransaction:
        """Return deposited funds to the company; idempotent on `external_reference`"""
        require_positive(amount)
        with self.store.wallet_guard(wallet_id) as wallet:
            self.store.ensure_active(wallet)
            if external_reference:
                existing = self.store.transactions.get_by_external_reference(external_reference)
                if existing is not None:
                    return existing
            self._require_free(wallet, amount, "refund")
            return self.store.append_wallet_entry(
                wallet,
                TransactionType.REFUND,
                -amount,
                TransactionStatus.COMPLETED,
                description=description or "Refund",
                external_reference=external_reference,
            )

    def reserve(self, wallet_id: int, amount: int) -> BalanceSnapshot:
        """Earmark free funds; the total balance does not change"""
        require_positive(amount)
        with self.store.wallet_guard(wallet_id) as wallet:
            self.store.ensure_active(wallet)
            self._require_free(wallet, amount, "reserve")
            wallet.reserved_balance += amount
            snapshot = self.store.snapshot(wallet)
        logger.info("Funds reserved", extra={"wallet_id": wallet_id, "amount": amount})
        return snapshot

    def release(self, wallet_id: int, amount: int) -> BalanceSnapshot:
        """
        Return reserved funds to the free pool.

        Funds backing scheduled creator payments stay reserved until those
        payments settle or are cancelled.
        """
        require_positive(amount)
        with self.store.wallet_guard(wallet_id) as wallet:
            self.store.ensure_active(wallet)
            releasable = wallet.reserved_balance - self.store.transactions.committed_outflow(wallet.id)
            if amount > releasable:
                self._reject(
                    "release",
                    InvalidAmount(f"Cannot release {amount}: only {releasable} of the reservation is uncommitted"),
                    wallet_id,
                )
            wallet.reserved_balance -= amount
            snapshot = self.store.snapshot(wallet)
        logger.info("Funds released", extra={"wallet_id": wallet_id, "amount": amount})
        return snapshot

    # Creator payments

    def pay_creator(
        self,
        wallet_id: int,
        creator_id: int,
        amount: int,
        tx_type: TransactionType = TransactionType.PAYMENT_VARIABLE,
        description: Optional[str] = None,
        campaign_id: Optional[int] = None,
        wallet_box_id: Optional[int] = None,
        scheduled_for: Optional[datetime] = None,
        payment_batch_id: Optional[int] = None,
    ) -> WalletTransaction:
        """
        Pay a creator from a company wallet.

        Records a debit on the wallet and a paired `transfer_in` credit on
        the creator's balance. Immediate payments complete at once and the
        creator's funds are available. With `scheduled_for` the debit stays
        pending (funds reserved) until the billing cycle closes and the
        payment settles; the creator's credit is pending until then.

        With `wallet_box_id` the payment draws on that box's funds instead
        of the wallet's free funds.

        Returns:
            The wallet-side debit entry
        """
        require_positive(amount)
        if TransactionType(tx_type) not in PAYOUT_TYPES:
            raise InvalidPaymentType(f"{TransactionType(tx_type).value} is not a creator payment type")

        with self.store.wallet_guard(wallet_id) as wallet:
            self.store.ensure_active(wallet)

            box = None
            if wallet_box_id is not None:
                box = self._box_of(wallet, wallet_box_id)
                if box.current_amount < amount:
                    self._reject(
                        "pay_creator",
                        InsufficientFunds(f"Box {box.id} holds {box.current_amount}, cannot pay {amount}"),
                        wallet_id,
                    )
                box.current_amount -= amount
            else:
                self._require_free(wallet, amount, "pay_creator")

            scheduled = scheduled_for is not None
            if scheduled:
                wallet.reserved_balance += amount

            description = description or f"Payment to creator {creator_id}"
            debit = self.store.append_wallet_entry(
                wallet,
                tx_type,
                -amount,
                TransactionStatus.PENDING if scheduled else TransactionStatus.COMPLETED,
                related_user_id=creator_id,
                related_campaign_id=campaign_id,
                wallet_box_id=wallet_box_id,
                payment_batch_id=payment_batch_id,
                scheduled_for=scheduled_for,
                reserved_amount=amount if scheduled else 0,
                description=description,
            )

            with self.store.creator_guard(creator_id) as creator:
                self.store.append_creator_entry(
                    creator,
                    TransactionType.TRANSFER_IN,
                    amount,
                    TransactionStatus.PENDING if scheduled else TransactionStatus.AVAILABLE,
                    related_campaign_id=campaign_id,
                    paired_transaction_id=debit.id,
                    payment_batch_id=payment_batch_id,
                    description=description,
                )
        return debit

    def pay_creators_batch(
        self,
        wallet_id: int,
        items: Sequence[PaymentItem],
        name: Optional[str] = None,
    ) -> PaymentBatch:
        """Pay several creators at once; either every payment commits or none does"""
        if not items:
            raise InvalidAmount("A payment batch needs at least one payment")
        for item in items:
            require_positive(item.amount)
        total = sum(item.amount for item in items)

        with self.store.wallet_guard(wallet_id) as wallet:
            self.store.ensure_active(wallet)
            self._require_free(wallet, total, "pay_creators_batch")
            batch = self.batches.create(
                PaymentBatch(
                    company_wallet_id=wallet.id,
                    name=name,
                    total_amount=total,
                    transaction_count=len(items),
                    status=BatchStatus.PROCESSING,
                )
            )
            for item in items:
                self.pay_creator(
                    wallet_id,
                    item.creator_id,
                    item.amount,
                    tx_type=item.type,
                    description=item.description or None,
                    campaign_id=item.campaign_id,
                    payment_batch_id=batch.id,
                )
            batch.status = BatchStatus.COMPLETED
            batch.processed_at = utc_now()
        logger.info(
            "Payment batch processed",
            extra={"wallet_id": wallet_id, "batch_id": batch.id, "total": total, "count": len(items)},
        )
        return batch

    def list_batches(self, wallet_id: int) -> List[PaymentBatch]:
        self.store.get_wallet(wallet_id)
        return self.batches.list_for_wallet(wallet_id)

    # Scheduled debit lifecycle

    def settle_transaction(self, transaction_id: int, succeeded: bool) -> WalletTransaction:
        """
        Finish a processing debit.

        Success applies the debit and consumes its reservation; the creator's
        pending credit becomes available. Failure releases the reservation
        and cancels the creator's credit.
        """
        entry = self._wallet_entry(transaction_id)
        with self.store.wallet_guard(entry.company_wallet_id) as wallet:
            self.db.refresh(entry)
            target = TransactionStatus.COMPLETED if succeeded else TransactionStatus.FAILED
            if TransactionStatus(entry.status) != TransactionStatus.PROCESSING:
                raise InvalidTransition(
                    f"Only processing transactions can settle, {entry.id} is {TransactionStatus(entry.status).value}"
                )
            self.store.apply_transition(entry, target)
            if entry.amount < 0:
                wallet.reserved_balance -= entry.reserved_amount or 0
                if not succeeded:
                    self._refill_box(wallet, entry)
            self._follow_pair(
                entry, TransactionStatus.AVAILABLE if succeeded else TransactionStatus.CANCELLED
            )
        return entry

    def cancel_transaction(self, transaction_id: int) -> WalletTransaction:
        """Cancel a pending entry and give back what it held; nothing else can be cancelled"""
        entry = self._wallet_entry(transaction_id)
        with self.store.wallet_guard(entry.company_wallet_id) as wallet:
            self.db.refresh(entry)
            self.store.apply_transition(entry, TransactionStatus.CANCELLED)
            if entry.amount < 0:
                wallet.reserved_balance -= entry.reserved_amount or 0
                self._refill_box(wallet, entry)
            self._follow_pair(entry, TransactionStatus.CANCELLED)
        return entry

    # Creator side

    def get_creator_balance(self, user_id: int) -> Optional[CreatorBalance]:
        return self.store.creators.get_by_user(user_id)

    def creator_history(self, user_id: int, limit: int = 50, offset: int = 0) -> List[WalletTransaction]:
        creator = self.store.creators.get_by_user(user_id)
        if creator is None:
            return []
        return self.store.transactions.list_for_creator(creator.id, limit=limit, offset=offset)

    def creator_withdraw(self, user_id: int, amount: int, description: Optional[str] = None) -> WalletTransaction:
        """Pay out a creator's available balance (to their PIX key)"""
        require_positive(amount)
        with self.store.creator_guard(user_id, create=False) as creator:
            available = creator.available_balance if creator is not None else 0
            if creator is None or available < amount:
                self._reject(
                    "creator_withdraw",
                    InsufficientFunds(f"Creator {user_id} has {available} available, cannot withdraw {amount}"),
                    None,
                )
            return self.store.append_creator_entry(
                creator,
                TransactionType.WITHDRAWAL,
                -amount,
                TransactionStatus.COMPLETED,
                description=description or "Withdrawal to PIX",
            )

    def set_pix_key(self, user_id: int, pix_key: str, pix_key_type: PixKeyType) -> CreatorBalance:
        with self.store.creator_guard(user_id) as creator:
            creator.pix_key = pix_key
            creator.pix_key_type = PixKeyType(pix_key_type)
        return creator

    def list_creators(self, wallet_id: int) -> List[CreatorSummary]:
        """Every creator this wallet has paid, with their balance and total received from it"""
        self.store.get_wallet(wallet_id)
        paid = self.store.transactions.paid_by_creator(wallet_id)
        balances = {b.user_id: b for b in self.store.creators.list_by_users([user_id for user_id, _, _ in paid])}
        summaries = []
        for user_id, total_paid, count in paid:
            balance = balances.get(user_id)
            summaries.append(
                CreatorSummary(
                    creator_id=user_id,
                    available_balance=balance.available_balance if balance else 0,
                    pending_balance=balance.pending_balance if balance else 0,
                    total_paid=total_paid,
                    payments_count=count,
                    pix_key=balance.pix_key if balance else None,
                )
            )
        return summaries

    # Helpers

    def _require_free(self, wallet: CompanyWallet, amount: int, operation: str) -> None:
        snapshot = self.store.snapshot(wallet)
        if snapshot.available < amount:
            self._reject(
                operation,
                InsufficientFunds(
                    f"Wallet {wallet.id} has {snapshot.available} free "
                    f"(balance {snapshot.balance}, reserved {snapshot.reserved_balance}, "
                    f"allocated {snapshot.allocated}), cannot take {amount}"
                ),
                wallet.id,
            )

    @staticmethod
    def _reject(operation: str, error: DomainException, wallet_id: Optional[int]) -> None:
        record_rejection(operation, error.kind)
        log_rejection(operation, error.kind, error.message, wallet_id=wallet_id)
        raise error

    def _box_of(self, wallet: CompanyWallet, box_id: int) -> WalletBox:
        box = self.store.boxes.get(box_id)
        if box is None or box.company_wallet_id != wallet.id:
            raise BoxNotFound(f"Box {box_id} not found in wallet {wallet.id}")
        self.db.refresh(box)
        if not box.is_active:
            raise InvalidTransition(f"Box {box_id} is inactive")
        return box

    def _refill_box(self, wallet: CompanyWallet, entry: WalletTransaction) -> None:
        """Put an undone box payment back into its box, if the box is still active"""
        if entry.wallet_box_id is None:
            return
        box = self.store.boxes.get(entry.wallet_box_id)
        if box is not None:
            self.db.refresh(box)
        if box is not None and box.is_active:
            box.current_amount += -entry.amount

    def _wallet_entry(self, transaction_id: int) -> WalletTransaction:
        entry = self.store.transactions.get(transaction_id)
        if entry is None or entry.company_wallet_id is None:
            raise TransactionNotFound(f"Wallet transaction {transaction_id} not found")
        return entry

    def _follow_pair(self, debit: WalletTransaction, target: TransactionStatus) -> None:
        """Move the creator-side credit of a payment along with its debit"""
        credit = self.store.transactions.get_paired(debit.id)
        if credit is None:
            return
        creator = self.db.get(CreatorBalance, credit.creator_balance_id)
        with self.store.creator_guard(creator.user_id):
            self.db.refresh(credit)
            self.store.apply_transition(credit, target)
