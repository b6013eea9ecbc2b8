"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from creator_wallet.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_transaction(
    wallet_id: Optional[int],
    transaction_id: int,
    tx_type: str,
    amount: int,
    status: str,
    balance_after: Optional[int],
    creator_balance_id: Optional[int] = None,
) -> None:
    """Log a committed ledger entry"""
    logging.getLogger("creator_wallet.ledger").info(
        "Ledger entry recorded",
        extra={
            "wallet_id": wallet_id,
            "creator_balance_id": creator_balance_id,
            "transaction_id": transaction_id,
            "tx_type": tx_type,
            "amount": amount,
            "status": status,
            "balance_after": balance_after,
        },
    )


def log_rejection(operation: str, kind: str, message: str, **context: Any) -> None:
    """Log an operation refused by a domain rule"""
    logging.getLogger("creator_wallet.ledger").warning(
        "Operation rejected",
        extra={"operation": operation, "error_kind": kind, "detail": message, **context},
    )


def log_reward_transition(
    reward_id: int,
    from_status: Optional[str],
    to_status: str,
    actor_id: Optional[int] = None,
) -> None:
    logging.getLogger("creator_wallet.rewards").info(
        "Reward transition",
        extra={
            "reward_id": reward_id,
            "from_status": from_status,
            "to_status": to_status,
            "actor_id": actor_id,
        },
    )
