from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import math
import platform
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

import websockets
from websockets.exceptions import ConnectionClosed

from ..core.logging_utils import log_event
from .constants import DISCORD_GATEWAY_URL
from .errors import DiscordAPIError, DiscordPermanentError
from .rest import DiscordRestClient

# Authentication failed, invalid shard, sharding required, invalid API version,
# invalid intents, disallowed intents.
FATAL_GATEWAY_CLOSE_CODES = {4004, 4010, 4011, 4012, 4013, 4014}
# Sent when heartbeats go unacknowledged; must not be 1000 or 1001.
ZOMBIE_CONNECTION_CLOSE_CODE = 4000

OP_DISPATCH = 0
OP_HEARTBEAT = 1
OP_IDENTIFY = 2
OP_RECONNECT = 7
OP_INVALID_SESSION = 9
OP_HELLO = 10
OP_HEARTBEAT_ACK = 11

DispatchHandler = Callable[[str, dict[str, Any]], Awaitable[None]]


@dataclass(frozen=True)
class GatewayFrame:
    op: int
    d: Any = None
    s: Optional[int] = None
    t: Optional[str] = None
    raw: dict[str, Any] | None = None


def build_identify_payload(*, bot_token: str, intents: int) -> dict[str, Any]:
    return {
        "op": OP_IDENTIFY,
        "d": {
            "token": bot_token,
            "intents": intents,
            "properties": {
                "os": platform.system().lower() or "unknown",
                "browser": "discord-human-relay",
                "device": "discord-human-relay",
            },
        },
    }


def parse_gateway_frame(frame: str | bytes | dict[str, Any]) -> GatewayFrame:
    if isinstance(frame, bytes):
        frame = frame.decode("utf-8")
    payload = json.loads(frame) if isinstance(frame, str) else dict(frame)
    if not isinstance(payload, dict):
        raise DiscordAPIError("Discord gateway frame must be a JSON object")
    op = payload.get("op")
    if not isinstance(op, int):
        raise DiscordAPIError(f"Discord gateway frame missing numeric op: {payload!r}")
    seq = payload.get("s")
    event_type = payload.get("t")
    return GatewayFrame(
        op=op,
        d=payload.get("d"),
        s=seq if isinstance(seq, int) else None,
        t=event_type if isinstance(event_type, str) else None,
        raw=payload,
    )


def calculate_reconnect_backoff(
    attempt: int,
    *,
    base_seconds: float = 1.0,
    max_seconds: float = 30.0,
    rand_float: Callable[[], float] = random.random,
) -> float:
    normalized_attempt = max(attempt, 0)
    if max_seconds <= 0.0 or base_seconds <= 0.0:
        return 0.0
    min_jitter = 0.8
    cap_threshold = math.ceil(math.log2(max_seconds / (base_seconds * min_jitter)))
    if normalized_attempt >= max(cap_threshold, 0):
        return max_seconds
    scaled = base_seconds * (2**normalized_attempt)
    jitter_factor = 0.8 + (0.4 * min(max(rand_float(), 0.0), 1.0))
    return float(min(max_seconds, max(0.0, scaled * jitter_factor)))


def gateway_close_code(exc: BaseException) -> int | None:
    code = getattr(exc, "code", None)
    if isinstance(code, int):
        return code
    received = getattr(exc, "rcvd", None)
    received_code = getattr(received, "code", None)
    if isinstance(received_code, int):
        return received_code
    return None


class DiscordGatewayClient:
    """Websocket client for the Discord gateway.

    Transient disconnects reconnect with jittered backoff and a fresh IDENTIFY.
    Permanent failures (bad token, fatal close codes) raise
    ``DiscordPermanentError`` out of :meth:`run`.
    """

    def __init__(
        self,
        *,
        bot_token: str,
        intents: int,
        logger: logging.Logger,
        gateway_url: str | None = None,
        rest_client_factory: Callable[..., DiscordRestClient] = DiscordRestClient,
    ) -> None:
        self._bot_token = bot_token
        self._intents = intents
        self._logger = logger
        self._gateway_url = gateway_url
        self._rest_client_factory = rest_client_factory
        self._sequence: Optional[int] = None
        self._last_heartbeat_ack: Optional[float] = None
        self._heartbeat_acked = True
        self._ready_in_connection = False
        self._stop_event = asyncio.Event()
        self._heartbeat_task: Optional[asyncio.Task[None]] = None
        self._websocket: Any = None

    async def stop(self) -> None:
        self._stop_event.set()
        await self._cancel_heartbeat()
        if self._websocket is not None:
            with contextlib.suppress(Exception):
                await self._websocket.close()

    async def run(self, on_dispatch: DispatchHandler) -> None:
        reconnect_attempt = 0
        while not self._stop_event.is_set():
            established_session = False
            self._ready_in_connection = False
            try:
                gateway_url = await self._resolve_gateway_url()
                async with websockets.connect(gateway_url) as websocket:
                    self._websocket = websocket
                    established_session = await self._run_connection(
                        websocket, on_dispatch
                    )
            except asyncio.CancelledError:
                raise
            except DiscordPermanentError as exc:
                log_event(
                    self._logger,
                    logging.ERROR,
                    "discord.gateway.permanent_failure",
                    exc=exc,
                )
                raise
            except ConnectionClosed as exc:
                close_code = gateway_close_code(exc)
                if close_code in FATAL_GATEWAY_CLOSE_CODES:
                    log_event(
                        self._logger,
                        logging.ERROR,
                        "discord.gateway.fatal_close",
                        close_code=close_code,
                    )
                    raise DiscordPermanentError(
                        f"Discord gateway closed with fatal code {close_code}; "
                        "check the bot token and enabled intents",
                        status_code=close_code,
                    ) from exc
                log_event(
                    self._logger,
                    logging.INFO,
                    "discord.gateway.closed",
                    close_code=close_code,
                )
            except Exception as exc:
                log_event(
                    self._logger,
                    logging.WARNING,
                    "discord.gateway.error",
                    exc=exc,
                )
            finally:
                self._websocket = None
                await self._cancel_heartbeat()

            if self._stop_event.is_set():
                break
            if established_session or self._ready_in_connection:
                reconnect_attempt = 0
            backoff = calculate_reconnect_backoff(reconnect_attempt)
            reconnect_attempt += 1
            log_event(
                self._logger,
                logging.INFO,
                "discord.gateway.reconnecting",
                attempt=reconnect_attempt,
                backoff_seconds=round(backoff, 2),
            )
            await asyncio.sleep(backoff)

    async def _resolve_gateway_url(self) -> str:
        if self._gateway_url:
            return self._gateway_url
        async with self._rest_client_factory(bot_token=self._bot_token) as rest:
            payload = await rest.get_gateway_bot()
        url = payload.get("url") if isinstance(payload, dict) else None
        if not isinstance(url, str) or not url:
            return DISCORD_GATEWAY_URL
        if "?" in url:
            return url
        return f"{url}?v=10&encoding=json"

    async def _run_connection(
        self,
        websocket: Any,
        on_dispatch: DispatchHandler,
    ) -> bool:
        hello = parse_gateway_frame(await websocket.recv())
        if hello.op != OP_HELLO:
            raise DiscordAPIError(
                "Discord gateway expected HELLO frame before IDENTIFY"
            )
        heartbeat_data = hello.d if isinstance(hello.d, dict) else {}
        heartbeat_ms = heartbeat_data.get("heartbeat_interval")
        if not isinstance(heartbeat_ms, (int, float)) or heartbeat_ms <= 0:
            raise DiscordAPIError("Discord gateway HELLO missing heartbeat_interval")

        self._heartbeat_acked = True
        self._heartbeat_task = asyncio.create_task(
            self._heartbeat_loop(websocket, float(heartbeat_ms) / 1000.0)
        )
        await websocket.send(
            json.dumps(
                build_identify_payload(bot_token=self._bot_token, intents=self._intents)
            )
        )
        established_session = False

        async for raw_message in websocket:
            frame = parse_gateway_frame(raw_message)
            if frame.s is not None:
                self._sequence = frame.s

            if frame.op == OP_DISPATCH:
                if frame.t == "READY":
                    established_session = True
                    self._ready_in_connection = True
                if frame.t and isinstance(frame.d, dict):
                    await on_dispatch(frame.t, frame.d)
                continue
            if frame.op == OP_HEARTBEAT:
                await websocket.send(json.dumps({"op": OP_HEARTBEAT, "d": self._sequence}))
                continue
            if frame.op == OP_HEARTBEAT_ACK:
                self._last_heartbeat_ack = asyncio.get_running_loop().time()
                self._heartbeat_acked = True
                continue
            if frame.op == OP_RECONNECT:
                self._logger.info("Discord gateway requested reconnect")
                return established_session
            if frame.op == OP_INVALID_SESSION:
                self._logger.warning("Discord gateway reported invalid session")
                return established_session

        return established_session

    async def _heartbeat_loop(self, websocket: Any, interval_seconds: float) -> None:
        # First beat is jittered per the gateway docs.
        await asyncio.sleep(interval_seconds * random.random())
        while not self._stop_event.is_set():
            if not self._heartbeat_acked:
                # Previous beat was never acknowledged: the connection is a zombie.
                log_event(
                    self._logger,
                    logging.WARNING,
                    "discord.gateway.heartbeat_missed",
                    last_ack_at=self._last_heartbeat_ack,
                )
                await websocket.close(
                    code=ZOMBIE_CONNECTION_CLOSE_CODE,
                    reason="heartbeat not acknowledged",
                )
                return
            self._heartbeat_acked = False
            await websocket.send(json.dumps({"op": OP_HEARTBEAT, "d": self._sequence}))
            await asyncio.sleep(interval_seconds)

    async def _cancel_heartbeat(self) -> None:
        if self._heartbeat_task is None:
            return
        task = self._heartbeat_task
        self._heartbeat_task = None
        if not task.done():
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as exc:
            # Heartbeat sends fail once the socket is gone; reconnect handles it.
            self._logger.debug("Discord heartbeat task ended with error: %s", exc)
