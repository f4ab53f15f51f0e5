from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, Awaitable, Callable, Optional

from mcp.server.lowlevel import Server

from .config import RelayConfig
from .core.logging_utils import log_event
from .discord.gateway import DiscordGatewayClient
from .discord.messages import extract_bot_user_id, parse_message_create
from .discord.replies import ReplyWaiters
from .discord.rest import DiscordRestClient
from .discord.session import DiscordSession
from .relay.human import DiscordHumanRelay
from .relay.readiness import ReadinessGate
from .server import build_mcp_server, run_stdio_server

McpRunner = Callable[[Server], Awaitable[None]]


class RelayApp:
    """Runs the Discord gateway and the MCP stdio loop side by side.

    Whichever loop finishes first ends the app; the other is cancelled and the
    first loop's error, if any, is re-raised.
    """

    def __init__(
        self,
        config: RelayConfig,
        *,
        logger: logging.Logger,
        rest_client: Optional[DiscordRestClient] = None,
        gateway: Optional[DiscordGatewayClient] = None,
        mcp_runner: McpRunner = run_stdio_server,
    ) -> None:
        self._config = config
        self._logger = logger
        self._rest = rest_client or DiscordRestClient(bot_token=config.bot_token)
        self._gateway = gateway or DiscordGatewayClient(
            bot_token=config.bot_token,
            intents=config.intents,
            logger=logger,
        )
        self._mcp_runner = mcp_runner
        self._replies = ReplyWaiters(logger=logger)
        self._gate: ReadinessGate[DiscordSession] = ReadinessGate()
        self._relay = DiscordHumanRelay.from_config(
            config, gate=self._gate, logger=logger
        )
        self._server = build_mcp_server(self._relay, logger=logger)

    @property
    def relay(self) -> DiscordHumanRelay:
        return self._relay

    @property
    def gate(self) -> ReadinessGate[DiscordSession]:
        return self._gate

    async def on_dispatch(self, event_type: str, payload: dict[str, Any]) -> None:
        if event_type == "READY":
            session = DiscordSession(
                rest=self._rest,
                replies=self._replies,
                bot_user_id=extract_bot_user_id(payload),
                session_id=payload.get("session_id"),
            )
            if self._gate.set(session):
                log_event(
                    self._logger,
                    logging.INFO,
                    "discord.ready",
                    bot_user_id=session.bot_user_id,
                    session_id=session.session_id,
                )
            else:
                log_event(
                    self._logger,
                    logging.INFO,
                    "discord.ready.repeat",
                    session_id=session.session_id,
                    kept_session_id=self._gate.get().session_id,
                )
        elif event_type == "MESSAGE_CREATE":
            message = parse_message_create(payload)
            if message is None:
                return
            session = self._gate.get() if self._gate.is_ready else None
            if session is not None and message.author_id == session.bot_user_id:
                return
            self._replies.feed(message)

    async def run(self) -> None:
        gateway_task = asyncio.create_task(
            self._gateway.run(self.on_dispatch), name="discord-gateway"
        )
        mcp_task = asyncio.create_task(
            self._mcp_runner(self._server), name="mcp-stdio"
        )
        tasks = {gateway_task, mcp_task}
        log_event(
            self._logger,
            logging.INFO,
            "relay.starting",
            channel_id=self._config.channel_id,
            conversation_log=self._config.enable_conversation_log,
        )
        try:
            done, _pending = await asyncio.wait(
                tasks, return_when=asyncio.FIRST_COMPLETED
            )
            for task in done:
                log_event(
                    self._logger,
                    logging.INFO,
                    "relay.loop.finished",
                    loop=task.get_name(),
                    failed=not task.cancelled() and task.exception() is not None,
                )
            for task in done:
                task.result()
        finally:
            self._replies.close()
            for task in tasks:
                if not task.done():
                    task.cancel()
            for task in tasks:
                with contextlib.suppress(asyncio.CancelledError, Exception):
                    await task
            await self._gateway.stop()
            await self._rest.close()


async def serve(config: RelayConfig, *, logger: logging.Logger) -> None:
    await RelayApp(config, logger=logger).run()
