"""Billing cycle windows and invoice bucketing"""

from datetime import datetime, timedelta
from typing import Iterable, Optional, Tuple

from creator_wallet.domain.exceptions import InvalidCycle
from creator_wallet.domain.models import CycleProgress, CycleWindow, InvoiceTotals, TransactionType
from creator_wallet.utils.date_utils import add_months, as_utc

_BUCKETS = {
    TransactionType.PAYMENT_FIXED: "fixed_payments",
    TransactionType.PAYMENT_VARIABLE: "variable_payments",
    TransactionType.COMMISSION: "commissions",
    TransactionType.BONUS: "bonuses",
}


def make_window(start: Optional[datetime], end: Optional[datetime]) -> Optional[CycleWindow]:
    """Build a window from nullable wallet columns; None when either side is unset."""
    if start is None or end is None:
        return None
    return CycleWindow(start=as_utc(start), end=as_utc(end))


def validate_window(start: datetime, end: datetime) -> CycleWindow:
    start, end = as_utc(start), as_utc(end)
    if end <= start:
        raise InvalidCycle(f"Cycle end {end.isoformat()} must be after start {start.isoformat()}")
    return CycleWindow(start=start, end=end)


def default_window(now: datetime, billing_day: int) -> CycleWindow:
    """
    Window a new wallet starts with.

    The month-long window containing `now` that starts on `billing_day`
    (clamped to the month's length).

    Example:
        now=2024-03-22, billing_day=10 -> 2024-03-10 .. 2024-04-10
        now=2024-03-05, billing_day=10 -> 2024-02-10 .. 2024-03-10
    """
    now = as_utc(now)
    start = add_months(now.replace(day=1, hour=0, minute=0, second=0, microsecond=0), 0, day=billing_day)
    if start > now:
        start = add_months(start, -1, day=billing_day)
    return CycleWindow(start=start, end=add_months(start, 1, day=billing_day))


def next_window(window: CycleWindow) -> CycleWindow:
    """
    Window that follows a closed one.

    Starts one day after the old end and keeps the old window's length.
    """
    length = window.end - window.start
    start = window.end + timedelta(days=1)
    return CycleWindow(start=start, end=start + length)


def cycle_progress(window: CycleWindow, now: datetime) -> CycleProgress:
    """
    Days remaining and elapsed fraction of a window.

    - days_remaining never goes below 0
    - total_days is at least 1
    - progress is clamped to [0, 1]
    """
    now = as_utc(now)
    days_remaining = max(0, (window.end - now).days)
    total_days = max(1, (window.end - window.start).days)
    progress = min(1.0, max(0.0, (total_days - days_remaining) / total_days))
    return CycleProgress(
        window=window,
        days_remaining=days_remaining,
        total_days=total_days,
        progress=round(progress, 4),
    )


def bucket_debits(entries: Iterable[Tuple[TransactionType, int]]) -> InvoiceTotals:
    """
    Sum debit amounts (absolute value) into the four invoice buckets.

    Credits and types without a bucket are ignored.
    """
    totals = InvoiceTotals()
    for tx_type, amount in entries:
        if amount >= 0:
            continue
        bucket = _BUCKETS.get(TransactionType(tx_type))
        if bucket is None:
            continue
        setattr(totals, bucket, getattr(totals, bucket) + abs(amount))
    return totals
