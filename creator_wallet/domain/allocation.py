"""Box (caixinha) arithmetic - boxes partition a wallet's balance, they never hold money of their own"""

from typing import Optional

from creator_wallet.domain.exceptions import InsufficientFunds, InvalidAmount
from creator_wallet.domain.models import BalanceSnapshot


def box_progress(current_amount: int, target_amount: Optional[int]) -> Optional[float]:
    """current/target clamped to [0, 1]; None when the box has no target."""
    if not target_amount or target_amount <= 0:
        return None
    return min(1.0, max(0.0, current_amount / target_amount))


def check_allocation(snapshot: BalanceSnapshot, amount: int) -> None:
    """Funds can only be parked in a box if they are actually free."""
    if snapshot.available < amount:
        raise InsufficientFunds(
            f"Cannot allocate {amount}: only {snapshot.available} unallocated in wallet {snapshot.wallet_id}"
        )


def check_deallocation(current_amount: int, amount: int) -> None:
    if current_amount < amount:
        raise InvalidAmount(f"Cannot take {amount} out of a box holding {current_amount}")
