from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import httpx

from ..core.retry import retry_transient
from .constants import (
    AUTO_ARCHIVE_ONE_DAY,
    DISCORD_API_BASE_URL,
    DISCORD_CHANNEL_TYPE_PUBLIC_THREAD,
)
from .errors import DiscordAPIError, DiscordPermanentError, DiscordTransientError

logger = logging.getLogger(__name__)

_RETRYABLE_NETWORK_ERRORS = (
    httpx.ConnectError,
    httpx.ReadError,
    httpx.WriteError,
    httpx.ConnectTimeout,
    httpx.ReadTimeout,
    httpx.WriteTimeout,
    httpx.RemoteProtocolError,
)


def _body_preview(response: httpx.Response) -> str:
    return (response.text or "").strip().replace("\n", " ")[:200]


class DiscordRestClient:
    def __init__(
        self,
        *,
        bot_token: str,
        timeout_seconds: float = 10.0,
        base_url: str = DISCORD_API_BASE_URL,
        max_retries: int = 3,
        retry_base_delay: float = 1.0,
        retry_max_delay: float = 30.0,
        retry_jitter: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url, timeout=timeout_seconds, transport=transport
        )
        self._authorization_header = f"Bot {bot_token}"
        self._max_retries = max_retries
        self._send = retry_transient(
            max_attempts=max_retries + 1,
            base_wait=retry_base_delay,
            max_wait=retry_max_delay,
            jitter=retry_jitter,
        )(self._send_once)

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "DiscordRestClient":
        return self

    async def __aexit__(self, *_exc_info: object) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        payload: dict[str, Any] | None = None,
    ) -> Any:
        return await self._send(method, path, payload)

    async def _send_once(
        self, method: str, path: str, payload: dict[str, Any] | None
    ) -> Any:
        rate_limit_retries = 0
        while True:
            try:
                response = await self._client.request(
                    method,
                    path,
                    json=payload,
                    headers={"Authorization": self._authorization_header},
                )
            except _RETRYABLE_NETWORK_ERRORS as exc:
                raise DiscordTransientError(
                    f"Discord API network error for {method} {path}: "
                    f"{type(exc).__name__}: {exc}"
                ) from exc
            except httpx.HTTPError as exc:
                raise DiscordAPIError(
                    f"Discord API network error for {method} {path}: {exc}"
                ) from exc

            status_code = response.status_code
            if status_code == 429:
                retry_after_raw = response.headers.get("Retry-After")
                if (
                    retry_after_raw is not None
                    and rate_limit_retries < self._max_retries
                ):
                    rate_limit_retries += 1
                    try:
                        retry_after = max(float(retry_after_raw), 0.0)
                    except ValueError:
                        retry_after = 0.0
                    logger.info(
                        "Discord rate limited on %s %s, retrying after %.2fs (attempt %d)",
                        method,
                        path,
                        retry_after,
                        rate_limit_retries,
                    )
                    await asyncio.sleep(retry_after)
                    continue
                raise DiscordAPIError(
                    f"Discord API rate limit exceeded for {method} {path}",
                    status_code=status_code,
                )
            if 500 <= status_code < 600:
                raise DiscordTransientError(
                    f"Discord API server error for {method} {path}: "
                    f"status={status_code} body={_body_preview(response)!r}",
                    status_code=status_code,
                )
            if status_code in {401, 403}:
                raise DiscordPermanentError(
                    f"Discord API authentication failure for {method} {path}: "
                    f"status={status_code} body={_body_preview(response)!r}",
                    status_code=status_code,
                )
            if not 200 <= status_code < 300:
                raise DiscordAPIError(
                    f"Discord API request failed for {method} {path}: "
                    f"status={status_code} body={_body_preview(response)!r}",
                    status_code=status_code,
                )

            if not response.content:
                return {}
            try:
                return response.json()
            except ValueError as exc:
                raise DiscordAPIError(
                    f"Discord API returned non-JSON success response for {method} {path}"
                ) from exc

    async def get_gateway_bot(self) -> dict[str, Any]:
        payload = await self._request("GET", "/gateway/bot")
        return payload if isinstance(payload, dict) else {}

    async def create_thread(
        self,
        *,
        channel_id: str,
        name: str,
        auto_archive_duration: int = AUTO_ARCHIVE_ONE_DAY,
        thread_type: int = DISCORD_CHANNEL_TYPE_PUBLIC_THREAD,
    ) -> dict[str, Any]:
        """Start a thread that is not attached to an existing message."""
        response = await self._request(
            "POST",
            f"/channels/{channel_id}/threads",
            payload={
                "name": name,
                "auto_archive_duration": auto_archive_duration,
                "type": thread_type,
            },
        )
        return response if isinstance(response, dict) else {}

    async def create_channel_message(
        self,
        *,
        channel_id: str,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        response = await self._request(
            "POST",
            f"/channels/{channel_id}/messages",
            payload=payload,
        )
        return response if isinstance(response, dict) else {}
