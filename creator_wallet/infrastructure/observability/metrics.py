"""Prometheus metrics for ledger activity, payouts, sales and notifications"""

from prometheus_client import Counter, Histogram

# Ledger metrics
transaction_counter = Counter(
    "creator_wallet_transactions_total",
    "Ledger entries recorded",
    ["type", "status"],
)

rejected_operation_counter = Counter(
    "creator_wallet_rejected_operations_total",
    "Operations refused by a domain rule",
    ["operation", "kind"],  # e.g. pay_creator / insufficient_funds
)

lock_wait_histogram = Histogram(
    "creator_wallet_lock_wait_seconds",
    "Time spent waiting for a wallet lock",
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0],
)

# Rewards and sales
reward_transition_counter = Counter(
    "creator_wallet_reward_transitions_total",
    "Reward status changes",
    ["to_status"],
)

sales_counter = Counter(
    "creator_wallet_sales_tracked_total",
    "Attributed sales recorded",
    ["platform"],
)

# Notification metrics
notification_latency_histogram = Histogram(
    "notification_latency_seconds",
    "Ledger event webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

notification_failure_counter = Counter(
    "notification_failures_total",
    "Failed ledger event deliveries",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_transaction(tx_type: str, status: str) -> None:
    transaction_counter.labels(type=tx_type, status=status).inc()


def record_rejection(operation: str, kind: str) -> None:
    rejected_operation_counter.labels(operation=operation, kind=kind).inc()
