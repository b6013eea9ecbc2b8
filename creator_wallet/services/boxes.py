"""Box (caixinha) manager - named partitions of a wallet's balance"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from creator_wallet.domain.allocation import check_allocation, check_deallocation
from creator_wallet.domain.exceptions import BoxNotFound, InsufficientFunds, InvalidTransition
from creator_wallet.domain.models import TransactionStatus, TransactionType
from creator_wallet.domain.transactions import require_positive
from creator_wallet.infrastructure.database.models import CompanyWallet, WalletBox
from creator_wallet.infrastructure.observability.logging import log_rejection
from creator_wallet.infrastructure.observability.metrics import record_rejection
from creator_wallet.services.ledger import LedgerStore

logger = logging.getLogger(__name__)

DEFAULT_COLOR = "#6366f1"
DEFAULT_ICON = "piggy-bank"

_UNSET = object()


class BoxManager:
    """
    Boxes hold no money of their own: `current_amount` earmarks part of the
    wallet balance. Moves in and out are recorded as `box_allocation` memo
    entries that leave the wallet balance untouched.
    """

    def __init__(self, db: Session, store: LedgerStore | None = None):
        self.db = db
        self.store = store or LedgerStore(db)

    def create_box(
        self,
        wallet_id: int,
        name: str,
        description: Optional[str] = None,
        target_amount: Optional[int] = None,
        color: Optional[str] = None,
        icon: Optional[str] = None,
    ) -> WalletBox:
        if target_amount is not None:
            require_positive(target_amount)
        with self.store.wallet_guard(wallet_id) as wallet:
            self.store.ensure_active(wallet)
            box = self.store.boxes.create(
                WalletBox(
                    company_wallet_id=wallet.id,
                    name=name,
                    description=description,
                    target_amount=target_amount,
                    color=color or DEFAULT_COLOR,
                    icon=icon or DEFAULT_ICON,
                    current_amount=0,
                    is_active=True,
                )
            )
        logger.info("Box created", extra={"wallet_id": wallet_id, "box_id": box.id})
        return box

    def update_box(
        self,
        box_id: int,
        name: Optional[str] = None,
        description=_UNSET,
        target_amount=_UNSET,
        color: Optional[str] = None,
        icon: Optional[str] = None,
    ) -> WalletBox:
        """
        Edit how a box is labelled and what it aims for; its funds are untouched.

        `name`, `color` and `icon` are kept when None. `description` and
        `target_amount` change whenever they are passed, and None clears them.
        """
        if target_amount is not _UNSET and target_amount is not None:
            require_positive(target_amount)
        box = self.get(box_id)
        with self.store.wallet_guard(box.company_wallet_id) as wallet:
            self.store.ensure_active(wallet)
            self.db.refresh(box)
            self._require_active(box)
            if name is not None:
                box.name = name
            if description is not _UNSET:
                box.description = description
            if target_amount is not _UNSET:
                box.target_amount = target_amount
            if color is not None:
                box.color = color
            if icon is not None:
                box.icon = icon
        logger.info("Box updated", extra={"wallet_id": box.company_wallet_id, "box_id": box.id})
        return box

    def get(self, box_id: int) -> WalletBox:
        box = self.store.boxes.get(box_id)
        if box is None:
            raise BoxNotFound(f"Box {box_id} not found")
        return box

    def list_boxes(self, wallet_id: int, include_inactive: bool = False) -> List[WalletBox]:
        self.store.get_wallet(wallet_id)
        return self.store.boxes.list_for_wallet(wallet_id, include_inactive=include_inactive)

    def allocate(self, box_id: int, amount: int) -> WalletBox:
        """Move free wallet funds into a box"""
        require_positive(amount)
        box = self.get(box_id)
        with self.store.wallet_guard(box.company_wallet_id) as wallet:
            self.store.ensure_active(wallet)
            self.db.refresh(box)
            self._require_active(box)
            try:
                check_allocation(self.store.snapshot(wallet), amount)
            except InsufficientFunds as e:
                record_rejection("allocate", e.kind)
                log_rejection("allocate", e.kind, e.message, wallet_id=wallet.id, box_id=box.id)
                raise
            box.current_amount += amount
            self._memo(wallet, box, amount, f"Allocated to {box.name}")
        return box

    def deallocate(self, box_id: int, amount: int) -> WalletBox:
        """Return funds from a box to the wallet's unallocated pool"""
        require_positive(amount)
        box = self.get(box_id)
        with self.store.wallet_guard(box.company_wallet_id) as wallet:
            self.store.ensure_active(wallet)
            self.db.refresh(box)
            self._require_active(box)
            check_deallocation(box.current_amount, amount)
            box.current_amount -= amount
            self._memo(wallet, box, -amount, f"Returned from {box.name}")
        return box

    def deactivate_box(self, box_id: int) -> WalletBox:
        """Empty a box back into the wallet and retire it"""
        box = self.get(box_id)
        with self.store.wallet_guard(box.company_wallet_id) as wallet:
            self.store.ensure_active(wallet)
            self.db.refresh(box)
            self._require_active(box)
            if box.current_amount > 0:
                self._memo(wallet, box, -box.current_amount, f"Closed {box.name}")
            box.current_amount = 0
            box.is_active = False
        logger.info("Box deactivated", extra={"box_id": box_id})
        return box

    @staticmethod
    def _require_active(box: WalletBox) -> None:
        if not box.is_active:
            raise InvalidTransition(f"Box {box.id} is inactive")

    def _memo(self, wallet: CompanyWallet, box: WalletBox, amount: int, description: str) -> None:
        self.store.append_wallet_entry(
            wallet,
            TransactionType.BOX_ALLOCATION,
            amount,
            TransactionStatus.COMPLETED,
            wallet_box_id=box.id,
            description=description,
        )
