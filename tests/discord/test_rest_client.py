from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from discord_human_relay.discord.errors import (
    DiscordAPIError,
    DiscordPermanentError,
    DiscordTransientError,
)
from discord_human_relay.discord.rest import DiscordRestClient


def _client(handler: Any, **kwargs: Any) -> DiscordRestClient:
    return DiscordRestClient(
        bot_token="abc123",
        base_url="https://discord.test/api/v10",
        transport=httpx.MockTransport(handler),
        retry_base_delay=0.0,
        retry_max_delay=0.0,
        retry_jitter=0.0,
        **kwargs,
    )


@pytest.mark.anyio
async def test_discord_rest_client_sets_authorization_header() -> None:
    observed: dict[str, Any] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        observed["authorization"] = request.headers.get("Authorization")
        observed["path"] = request.url.path
        return httpx.Response(200, json={"url": "wss://gateway.discord.gg"})

    async with _client(handler) as client:
        payload = await client.get_gateway_bot()

    assert payload["url"] == "wss://gateway.discord.gg"
    assert observed["authorization"] == "Bot abc123"
    assert observed["path"] == "/api/v10/gateway/bot"


@pytest.mark.anyio
async def test_create_thread_posts_public_thread_payload() -> None:
    observed: list[tuple[str, str, dict[str, Any]]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        observed.append(
            (request.method, request.url.path, json.loads(request.content))
        )
        return httpx.Response(201, json={"id": "thread-1", "type": 11})

    async with _client(handler) as client:
        thread = await client.create_thread(
            channel_id="chan-1", name="What port?", auto_archive_duration=10080
        )

    assert thread["id"] == "thread-1"
    assert observed == [
        (
            "POST",
            "/api/v10/channels/chan-1/threads",
            {"name": "What port?", "auto_archive_duration": 10080, "type": 11},
        )
    ]


@pytest.mark.anyio
async def test_create_channel_message_posts_to_thread() -> None:
    observed: list[tuple[str, dict[str, Any]]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        observed.append((request.url.path, json.loads(request.content)))
        return httpx.Response(200, json={"id": "msg-1"})

    async with _client(handler) as client:
        payload = await client.create_channel_message(
            channel_id="thread-1", payload={"content": "hello"}
        )

    assert payload == {"id": "msg-1"}
    assert observed == [("/api/v10/channels/thread-1/messages", {"content": "hello"})]


@pytest.mark.anyio
async def test_rate_limit_retry_after_retries_and_succeeds(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    attempts = {"count": 0}
    sleeps: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    monkeypatch.setattr(
        "discord_human_relay.discord.rest.asyncio.sleep", fake_sleep
    )

    def handler(_request: httpx.Request) -> httpx.Response:
        attempts["count"] += 1
        if attempts["count"] < 3:
            return httpx.Response(429, headers={"Retry-After": "0.25"}, json={})
        return httpx.Response(200, json={"id": "msg-1"})

    async with _client(handler) as client:
        payload = await client.create_channel_message(
            channel_id="chan-1",
            payload={"content": "hello"},
        )

    assert payload == {"id": "msg-1"}
    assert attempts["count"] == 3
    assert sleeps == [0.25, 0.25]


@pytest.mark.anyio
async def test_rate_limit_without_retry_after_raises() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, json={})

    async with _client(handler) as client:
        with pytest.raises(DiscordAPIError, match="rate limit"):
            await client.create_channel_message(
                channel_id="chan-1", payload={"content": "hi"}
            )


@pytest.mark.anyio
async def test_server_errors_are_retried_then_succeed() -> None:
    attempts = {"count": 0}

    def handler(_request: httpx.Request) -> httpx.Response:
        attempts["count"] += 1
        if attempts["count"] < 3:
            return httpx.Response(502, text="bad gateway")
        return httpx.Response(200, json={"id": "thread-7"})

    async with _client(handler) as client:
        payload = await client.create_thread(channel_id="chan-1", name="t")

    assert payload == {"id": "thread-7"}
    assert attempts["count"] == 3


@pytest.mark.anyio
async def test_server_errors_exhaust_retries() -> None:
    attempts = {"count": 0}

    def handler(_request: httpx.Request) -> httpx.Response:
        attempts["count"] += 1
        return httpx.Response(500, text="oops")

    async with _client(handler, max_retries=2) as client:
        with pytest.raises(DiscordTransientError, match="status=500"):
            await client.create_thread(channel_id="chan-1", name="t")

    assert attempts["count"] == 3


@pytest.mark.anyio
async def test_network_errors_are_retried() -> None:
    attempts = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        attempts["count"] += 1
        if attempts["count"] == 1:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json={"id": "msg-2"})

    async with _client(handler) as client:
        payload = await client.create_channel_message(
            channel_id="chan-1", payload={"content": "hi"}
        )

    assert payload == {"id": "msg-2"}
    assert attempts["count"] == 2


@pytest.mark.anyio
async def test_authentication_failure_is_permanent_and_not_retried() -> None:
    attempts = {"count": 0}

    def handler(_request: httpx.Request) -> httpx.Response:
        attempts["count"] += 1
        return httpx.Response(401, json={"message": "401: Unauthorized"})

    async with _client(handler) as client:
        with pytest.raises(DiscordPermanentError, match="status=401"):
            await client.get_gateway_bot()

    assert attempts["count"] == 1


@pytest.mark.anyio
async def test_client_errors_are_not_retried() -> None:
    attempts = {"count": 0}

    def handler(_request: httpx.Request) -> httpx.Response:
        attempts["count"] += 1
        return httpx.Response(404, json={"message": "Unknown Channel"})

    async with _client(handler) as client:
        with pytest.raises(DiscordAPIError, match="Unknown Channel") as excinfo:
            await client.create_thread(channel_id="missing", name="t")

    assert excinfo.value.status_code == 404
    assert not isinstance(excinfo.value, DiscordTransientError)
    assert attempts["count"] == 1
