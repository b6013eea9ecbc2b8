"""Concurrent writers against one wallet, each on its own session"""

from concurrent.futures import ThreadPoolExecutor

from creator_wallet.domain.exceptions import InsufficientFunds
from creator_wallet.services.processor import TransactionProcessor


def test_concurrent_payments_never_overdraw(db, session_factory, processor, funded_wallet):
    """Ten R$ 100 payments race for R$ 500: exactly five succeed"""
    wallet_id = funded_wallet.id

    def pay(creator_id: int) -> str:
        session = session_factory()
        try:
            TransactionProcessor(session).pay_creator(wallet_id, creator_id, 10000)
            return "paid"
        except InsufficientFunds:
            return "refused"
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=10) as pool:
        outcomes = list(pool.map(pay, [7 + i % 2 for i in range(10)]))

    assert outcomes.count("paid") == 5
    assert outcomes.count("refused") == 5

    db.expire_all()
    assert processor.store.get_balance(wallet_id).balance == 0
    assert processor.store.replay(wallet_id).consistent

    creators = processor.list_creators(wallet_id)
    assert sum(c.available_balance for c in creators) == 50000
    assert sum(c.payments_count for c in creators) == 5


def test_concurrent_deposits_keep_sequence_gapless(db, session_factory, processor, wallet):
    wallet_id = wallet.id

    def deposit(n: int) -> int:
        session = session_factory()
        try:
            return TransactionProcessor(session).deposit(wallet_id, 1000, description=f"deposit {n}").sequence
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=8) as pool:
        sequences = list(pool.map(deposit, range(20)))

    assert sorted(sequences) == list(range(1, 21))

    db.expire_all()
    assert processor.store.get_balance(wallet_id).balance == 20000
    assert processor.store.replay(wallet_id).consistent
