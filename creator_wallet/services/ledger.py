"""Ledger store - append-only entries and the materialized balances they drive"""

import logging
from contextlib import ExitStack, contextmanager
from typing import Any, Dict, Hashable, Iterator, List, Optional

from sqlalchemy.orm import Session

from creator_wallet.domain.exceptions import InsufficientFunds, TransactionNotFound, WalletArchived, WalletNotFound
from creator_wallet.domain.models import BalanceSnapshot, ReplayResult, TransactionStatus, TransactionType
from creator_wallet.domain.transactions import (
    APPLIED_STATUSES,
    MEMO_TYPES,
    assert_transition,
    fold_balance,
    validate_amount,
)
from creator_wallet.infrastructure.database.models import CompanyWallet, CreatorBalance, WalletTransaction
from creator_wallet.infrastructure.database.repositories import (
    BoxRepository,
    CreatorBalanceRepository,
    TransactionRepository,
    WalletRepository,
)
from creator_wallet.infrastructure.locks import LockRegistry, get_lock_registry
from creator_wallet.infrastructure.observability.logging import log_transaction
from creator_wallet.infrastructure.observability.metrics import record_transaction
from creator_wallet.utils.date_utils import utc_now

logger = logging.getLogger(__name__)

_DEPTH_KEY = "unit_of_work_depth"
_HELD_KEY = "guarded_rows"
_LOCKS_KEY = "nested_locks"


@contextmanager
def unit_of_work(db: Session, key: Hashable, locks: LockRegistry | None = None) -> Iterator[None]:
    """
    Serialize work on `key` and commit it as one transaction.

    Nested units on the same session join the outermost one: only the
    outermost level commits, and any exception rolls the whole thing back.
    Locks taken by nested units stay held until that commit or rollback.
    """
    locks = locks or get_lock_registry()
    depth = db.info.get(_DEPTH_KEY, 0)

    if depth > 0:
        db.info[_LOCKS_KEY].enter_context(locks.hold(key))
        db.info[_DEPTH_KEY] = depth + 1
        try:
            yield
        finally:
            db.info[_DEPTH_KEY] = depth
        return

    with locks.hold(key), ExitStack() as nested_locks:
        db.info[_DEPTH_KEY] = 1
        db.info[_LOCKS_KEY] = nested_locks
        try:
            yield
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.info[_DEPTH_KEY] = 0
            db.info.pop(_HELD_KEY, None)
            db.info.pop(_LOCKS_KEY, None)


class LedgerStore:
    """
    Durable record of wallet and creator balances.

    Balances change only through `append_*` and `apply_transition`, always
    inside a guard for the owning wallet or creator. Entries get a
    monotonic per-owner `sequence`; replaying applied entries in that
    order reproduces the stored balance.
    """

    def __init__(self, db: Session, locks: LockRegistry | None = None):
        self.db = db
        self.locks = locks or get_lock_registry()
        self.wallets = WalletRepository(db)
        self.creators = CreatorBalanceRepository(db)
        self.transactions = TransactionRepository(db)
        self.boxes = BoxRepository(db)

    def _held(self) -> Dict[Hashable, Any]:
        return self.db.info.setdefault(_HELD_KEY, {})

    @contextmanager
    def wallet_guard(self, wallet_id: int) -> Iterator[CompanyWallet]:
        """Lock a wallet (process lock + row lock) and yield it for mutation"""
        key = ("wallet", wallet_id)
        with unit_of_work(self.db, key, self.locks):
            held = self._held()
            wallet = held.get(key)
            if wallet is None:
                wallet = self.wallets.get_for_update(wallet_id)
                if wallet is None:
                    raise WalletNotFound(f"Wallet {wallet_id} not found")
                held[key] = wallet
            yield wallet

    @contextmanager
    def creator_guard(self, user_id: int, create: bool = True) -> Iterator[Optional[CreatorBalance]]:
        """
        Lock a creator's balance and yield it.

        Taken after the wallet guard when both are needed. With
        create=False an unknown creator yields None.
        """
        key = ("creator", user_id)
        with unit_of_work(self.db, key, self.locks):
            held = self._held()
            creator = held.get(key)
            if creator is None:
                creator = self.creators.get_or_create(user_id) if create else self.creators.get_for_update(user_id)
                if creator is not None:
                    held[key] = creator
            yield creator

    @staticmethod
    def ensure_active(wallet: CompanyWallet) -> None:
        if wallet.archived_at is not None:
            raise WalletArchived(f"Wallet {wallet.id} is archived")

    # Writes

    def record_transaction(
        self,
        wallet_id: int,
        tx_type: TransactionType,
        amount: int,
        status: TransactionStatus = TransactionStatus.COMPLETED,
        **attrs: Any,
    ) -> WalletTransaction:
        """
        Append one entry to a wallet's ledger and commit it.

        Completed/available entries move the balance at once and stamp
        `balance_after`; pending ones wait for `transition_status`.

        Raises:
            InvalidAmount: amount is zero or not an integer
            WalletNotFound: no such wallet
            WalletArchived: wallet is archived
            InsufficientFunds: the entry would take the balance below zero
        """
        validate_amount(amount)
        with self.wallet_guard(wallet_id) as wallet:
            self.ensure_active(wallet)
            return self.append_wallet_entry(wallet, tx_type, amount, status, **attrs)

    def append_wallet_entry(
        self,
        wallet: CompanyWallet,
        tx_type: TransactionType,
        amount: int,
        status: TransactionStatus,
        **attrs: Any,
    ) -> WalletTransaction:
        """Append to a wallet the caller already holds a guard on"""
        validate_amount(amount)
        tx_type = TransactionType(tx_type)
        status = TransactionStatus(status)

        balance_after = None
        if tx_type in MEMO_TYPES:
            balance_after = wallet.balance
        elif status in APPLIED_STATUSES:
            balance_after = self._apply_to_wallet(wallet, amount)

        wallet.last_sequence += 1
        entry = WalletTransaction(
            company_wallet_id=wallet.id,
            sequence=wallet.last_sequence,
            type=tx_type,
            amount=amount,
            balance_after=balance_after,
            status=status,
            processed_at=utc_now() if status in APPLIED_STATUSES else None,
            **attrs,
        )
        self.transactions.add(entry)
        self._recorded(entry)
        return entry

    def append_creator_entry(
        self,
        creator: CreatorBalance,
        tx_type: TransactionType,
        amount: int,
        status: TransactionStatus,
        **attrs: Any,
    ) -> WalletTransaction:
        """Append to a creator balance the caller already holds a guard on"""
        validate_amount(amount)
        status = TransactionStatus(status)

        balance_after = None
        if status in APPLIED_STATUSES:
            balance_after = self._apply_to_creator(creator, amount)
        elif status == TransactionStatus.PENDING:
            creator.pending_balance += amount

        creator.last_sequence += 1
        entry = WalletTransaction(
            creator_balance_id=creator.id,
            sequence=creator.last_sequence,
            type=TransactionType(tx_type),
            amount=amount,
            balance_after=balance_after,
            status=status,
            processed_at=utc_now() if status in APPLIED_STATUSES else None,
            **attrs,
        )
        self.transactions.add(entry)
        self._recorded(entry)
        return entry

    def transition_status(self, transaction_id: int, new_status: TransactionStatus) -> WalletTransaction:
        """Move one entry to a new status under its owner's guard and commit"""
        entry = self.transactions.get(transaction_id)
        if entry is None:
            raise TransactionNotFound(f"Transaction {transaction_id} not found")

        if entry.company_wallet_id is not None:
            with self.wallet_guard(entry.company_wallet_id):
                self.db.refresh(entry)
                self.apply_transition(entry, new_status)
        else:
            creator = self.db.get(CreatorBalance, entry.creator_balance_id)
            with self.creator_guard(creator.user_id):
                self.db.refresh(entry)
                self.apply_transition(entry, new_status)
        return entry

    def apply_transition(self, entry: WalletTransaction, new_status: TransactionStatus) -> None:
        """
        Change an entry's status; the caller holds the owner's guard.

        Entering an applied status for the first time moves the balance
        and stamps `balance_after`. Leaving `pending` on the creator side
        also clears the amount out of `pending_balance`.
        """
        new_status = TransactionStatus(new_status)
        old_status = TransactionStatus(entry.status)
        assert_transition(old_status, new_status)

        applies = (
            new_status in APPLIED_STATUSES
            and old_status not in APPLIED_STATUSES
            and TransactionType(entry.type) not in MEMO_TYPES
        )

        if entry.company_wallet_id is not None:
            wallet = self._held().get(("wallet", entry.company_wallet_id)) or self.get_wallet(entry.company_wallet_id)
            if applies:
                entry.balance_after = self._apply_to_wallet(wallet, entry.amount)
        else:
            creator = self.db.get(CreatorBalance, entry.creator_balance_id)
            if old_status == TransactionStatus.PENDING:
                creator.pending_balance -= entry.amount
            if applies:
                entry.balance_after = self._apply_to_creator(creator, entry.amount)

        entry.status = new_status
        entry.processed_at = utc_now()
        self.db.flush()
        self._recorded(entry)

    def _apply_to_wallet(self, wallet: CompanyWallet, amount: int) -> int:
        new_balance = wallet.balance + amount
        if new_balance < 0:
            raise InsufficientFunds(f"Wallet {wallet.id} balance {wallet.balance} cannot absorb {amount}")
        wallet.balance = new_balance
        return new_balance

    def _apply_to_creator(self, creator: CreatorBalance, amount: int) -> int:
        new_balance = creator.available_balance + amount
        if new_balance < 0:
            raise InsufficientFunds(
                f"Creator {creator.user_id} balance {creator.available_balance} cannot absorb {amount}"
            )
        creator.available_balance = new_balance
        return new_balance

    def _recorded(self, entry: WalletTransaction) -> None:
        type_value = TransactionType(entry.type).value
        status_value = TransactionStatus(entry.status).value
        record_transaction(type_value, status_value)
        log_transaction(
            wallet_id=entry.company_wallet_id,
            creator_balance_id=entry.creator_balance_id,
            transaction_id=entry.id,
            tx_type=type_value,
            amount=entry.amount,
            status=status_value,
            balance_after=entry.balance_after,
        )

    # Reads

    def get_wallet(self, wallet_id: int) -> CompanyWallet:
        wallet = self.wallets.get(wallet_id)
        if wallet is None:
            raise WalletNotFound(f"Wallet {wallet_id} not found")
        return wallet

    def snapshot(self, wallet: CompanyWallet) -> BalanceSnapshot:
        """Balance breakdown for a wallet object, pending writes included"""
        self.db.flush()
        return BalanceSnapshot(
            wallet_id=wallet.id,
            balance=wallet.balance,
            reserved_balance=wallet.reserved_balance,
            allocated=self.boxes.allocated_total(wallet.id),
        )

    def get_balance(self, wallet_id: int) -> BalanceSnapshot:
        return self.snapshot(self.get_wallet(wallet_id))

    def history(
        self,
        wallet_id: int,
        tx_type: Optional[TransactionType] = None,
        status: Optional[TransactionStatus] = None,
        related_user_id: Optional[int] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[WalletTransaction]:
        self.get_wallet(wallet_id)
        return self.transactions.list_for_wallet(
            wallet_id,
            tx_type=tx_type,
            status=status,
            related_user_id=related_user_id,
            limit=limit,
            offset=offset,
        )

    def replay(self, wallet_id: int) -> ReplayResult:
        """Fold the wallet's entries in sequence order and compare with the stored balance"""
        wallet = self.get_wallet(wallet_id)
        entries = self.transactions.in_commit_order(wallet_id)
        replayed = fold_balance(entries)
        result = ReplayResult(
            wallet_id=wallet_id,
            stored_balance=wallet.balance,
            replayed_balance=replayed,
            entries_folded=len(entries),
        )
        if not result.consistent:
            logger.error(
                "Ledger replay mismatch",
                extra={"wallet_id": wallet_id, "stored": wallet.balance, "replayed": replayed},
            )
        return result
