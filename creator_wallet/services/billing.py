"""Billing cycle manager - accounting windows and the invoices they accumulate"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from creator_wallet.domain.billing import bucket_debits, cycle_progress, make_window, next_window, validate_window
from creator_wallet.domain.exceptions import NoCycleConfigured
from creator_wallet.domain.models import (
    CycleCloseResult,
    CycleProgress,
    CycleWindow,
    InvoiceTotals,
    TransactionStatus,
)
from creator_wallet.infrastructure.database.models import CompanyWallet
from creator_wallet.services.ledger import LedgerStore
from creator_wallet.utils.date_utils import as_utc, utc_now

logger = logging.getLogger(__name__)


class BillingCycleManager:
    def __init__(self, db: Session, store: LedgerStore | None = None):
        self.db = db
        self.store = store or LedgerStore(db)

    def current_cycle(self, wallet_id: int) -> Optional[CycleWindow]:
        """Active window, or None when the wallet has cycles disabled"""
        wallet = self.store.get_wallet(wallet_id)
        return make_window(wallet.billing_cycle_start, wallet.billing_cycle_end)

    def _require_cycle(self, wallet: CompanyWallet) -> CycleWindow:
        window = make_window(wallet.billing_cycle_start, wallet.billing_cycle_end)
        if window is None:
            raise NoCycleConfigured(f"Wallet {wallet.id} has no billing cycle configured")
        return window

    def configure_cycle(self, wallet_id: int, start: datetime, end: datetime) -> CycleWindow:
        window = validate_window(start, end)
        with self.store.wallet_guard(wallet_id) as wallet:
            self.store.ensure_active(wallet)
            wallet.billing_cycle_start = window.start
            wallet.billing_cycle_end = window.end
        logger.info(
            "Billing cycle configured",
            extra={"wallet_id": wallet_id, "start": window.start.isoformat(), "end": window.end.isoformat()},
        )
        return window

    def pending_invoice_total(self, wallet_id: int) -> InvoiceTotals:
        """
        Pending debits of the active window, by invoice bucket.

        Closing a window sweeps every pending debit recorded up to the
        close, so whatever is still pending belongs to the open window,
        including debits recorded after its nominal end.
        """
        wallet = self.store.get_wallet(wallet_id)
        self._require_cycle(wallet)
        debits = self.store.transactions.pending_debits(wallet.id)
        return bucket_debits((entry.type, entry.amount) for entry in debits)

    def cycle_status(self, wallet_id: int, now: Optional[datetime] = None) -> CycleProgress:
        wallet = self.store.get_wallet(wallet_id)
        return cycle_progress(self._require_cycle(wallet), now or utc_now())

    def close_cycle(self, wallet_id: int, now: Optional[datetime] = None) -> CycleCloseResult:
        """
        Close the active window and open the next one.

        Every debit still pending at the close moves to `processing`, even
        when it was recorded after the window's end; it keeps its
        reservation until settled. The next window starts one day after the
        old end and has the same length.
        """
        now = as_utc(now) if now else utc_now()
        with self.store.wallet_guard(wallet_id) as wallet:
            self.store.ensure_active(wallet)
            closed = self._require_cycle(wallet)

            moved = self.store.transactions.pending_debits(wallet.id, created_before=now)
            for entry in moved:
                self.store.apply_transition(entry, TransactionStatus.PROCESSING)
            total_moved = sum(-entry.amount for entry in moved)

            upcoming = next_window(closed)
            wallet.billing_cycle_start = upcoming.start
            wallet.billing_cycle_end = upcoming.end

        result = CycleCloseResult(
            closed_window=closed,
            transactions_moved=len(moved),
            total_moved=total_moved,
            next_cycle=cycle_progress(upcoming, now),
        )
        logger.info(
            "Billing cycle closed",
            extra={
                "wallet_id": wallet_id,
                "closed_end": closed.end.isoformat(),
                "next_start": upcoming.start.isoformat(),
                "transactions_moved": result.transactions_moved,
                "total_moved": result.total_moved,
            },
        )
        return result
