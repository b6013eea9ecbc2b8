"""Tests for the ledger event webhook client"""

import json
from unittest.mock import AsyncMock, call, patch

import httpx

from creator_wallet.infrastructure.clients.notifications import NotificationClient

WEBHOOK_URL = "http://notifier.test/ledger-events"


def make_client(handler) -> NotificationClient:
    return NotificationClient(WEBHOOK_URL, transport=httpx.MockTransport(handler))


async def test_send_event_posts_payload():
    received = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append(json.loads(request.content))
        return httpx.Response(202)

    await make_client(handler).send_event("CREATOR_PAID", {"wallet_id": 1, "amount": 20000})

    assert received == [{"event": "CREATOR_PAID", "wallet_id": 1, "amount": 20000}]


@patch("creator_wallet.infrastructure.clients.notifications.asyncio.sleep", new_callable=AsyncMock)
async def test_retries_with_exponential_backoff(mock_sleep: AsyncMock):
    """Two 503s then success: waits 1s, then 2s"""
    responses = iter([503, 503, 200])
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        return httpx.Response(next(responses))

    await make_client(handler).send_event("WALLET_DEPOSIT", {"wallet_id": 1})

    assert len(attempts) == 3
    assert mock_sleep.await_args_list == [call(1.0), call(2.0)]


@patch("creator_wallet.infrastructure.clients.notifications.asyncio.sleep", new_callable=AsyncMock)
async def test_gives_up_after_max_retries(mock_sleep: AsyncMock):
    """Network failures never surface to the caller"""
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    client = make_client(handler)
    await client.send_event("REWARD_PAID", {"reward_id": 9})

    assert len(attempts) == client.max_retries
    assert mock_sleep.await_count == client.max_retries - 1


async def test_disabled_without_webhook_url():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    client = NotificationClient(transport=httpx.MockTransport(handler))
    client.webhook_url = None

    assert not client.enabled
    await client.send_event("CREATOR_PAID", {"wallet_id": 1})
