"""Ledger event webhook client with exponential backoff retry logic"""

import asyncio
import logging
from typing import Any, Dict

import httpx

from creator_wallet.config import settings
from creator_wallet.infrastructure.observability.metrics import (
    notification_failure_counter,
    notification_latency_histogram,
)

logger = logging.getLogger(__name__)


class NotificationClient:
    """Client for pushing committed ledger events to an external notifier"""

    def __init__(
        self,
        webhook_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.webhook_url = webhook_url or settings.notification_webhook_url
        self.max_retries = settings.notification_max_retries
        self.backoff_base = settings.notification_backoff_base
        self.timeout = settings.http_timeout_seconds
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    async def send_event(self, event: str, payload: Dict[str, Any]) -> None:
        """
        Send a ledger event with retry logic.

        Retry strategy:
        - Exponential backoff: 1s, 2s, 4s, 8s (base * 2^attempt)
        - Retries on 5xx/4xx responses and network failures
        - Gives up silently after the last attempt; the ledger write
          it describes is already committed

        Args:
            event: Event name, e.g. "CREATOR_PAID"
            payload: Event data
        """
        if not self.enabled:
            return

        body = {"event": event, **payload}
        attempt = 0
        async with httpx.AsyncClient(transport=self._transport) as client:
            while attempt < self.max_retries:
                try:
                    with notification_latency_histogram.time():
                        response = await client.post(self.webhook_url, json=body, timeout=self.timeout)
                        response.raise_for_status()
                        return  # Success

                except (httpx.HTTPStatusError, httpx.RequestError) as e:
                    attempt += 1
                    notification_failure_counter.inc()

                    if attempt >= self.max_retries:
                        logger.error(
                            f"Notification {event} dropped after {attempt} attempts: {e}",
                            extra={"event": event, "attempts": attempt},
                        )
                        return

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    await asyncio.sleep(backoff)
