from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Optional, Protocol

from ..core.logging_utils import log_event
from ..discord.constants import AUTO_ARCHIVE_ONE_DAY, AUTO_ARCHIVE_ONE_WEEK
from ..discord.errors import DiscordError
from ..discord.rendering import (
    build_log_embed,
    build_question_messages,
    thread_title,
)
from ..discord.session import DiscordSession
from .errors import (
    LoggingMisconfiguredError,
    NoReplyError,
    SendError,
    ThreadCreationError,
)
from .readiness import ReadinessGate
from .thread_cache import ThreadCache

if TYPE_CHECKING:
    from ..config import RelayConfig

DEFAULT_LOG_THREAD_NAME = "Conversation Log"
LOG_ACKNOWLEDGEMENT = "Conversation logged successfully"


class Human(Protocol):
    async def ask(self, question: str) -> str: ...

    async def log_conversation(
        self, role: str, message: str, context: Optional[str] = None
    ) -> str: ...


class DiscordHumanRelay:
    """Relays questions to one Discord user and returns their replies.

    Questions go to a single thread under ``channel_id`` that is created from
    the first question and reused afterwards. Only one question is outstanding
    at a time: overlapping calls to :meth:`ask` queue on a lock so each reply
    is matched to exactly one question. Conversation log entries go to a
    separate thread under ``log_channel_id`` when logging is enabled.
    """

    def __init__(
        self,
        *,
        user_id: str,
        channel_id: str,
        gate: ReadinessGate[DiscordSession],
        enable_conversation_log: bool = False,
        log_channel_id: Optional[str] = None,
        log_thread_name: str = DEFAULT_LOG_THREAD_NAME,
        reply_timeout_seconds: Optional[float] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._user_id = user_id
        self._channel_id = channel_id
        self._gate = gate
        self._enable_conversation_log = enable_conversation_log
        self._log_channel_id = log_channel_id
        self._log_thread_name = log_thread_name
        self._reply_timeout_seconds = reply_timeout_seconds
        self._logger = logger or logging.getLogger(__name__)
        self._question_thread = ThreadCache("question", logger=self._logger)
        self._log_thread = ThreadCache("log", logger=self._logger)
        self._ask_lock = asyncio.Lock()

    @classmethod
    def from_config(
        cls,
        config: "RelayConfig",
        *,
        gate: ReadinessGate[DiscordSession],
        logger: Optional[logging.Logger] = None,
    ) -> "DiscordHumanRelay":
        return cls(
            user_id=config.user_id,
            channel_id=config.channel_id,
            gate=gate,
            enable_conversation_log=config.enable_conversation_log,
            log_channel_id=config.log_channel_id,
            log_thread_name=config.log_thread_name,
            reply_timeout_seconds=config.reply_timeout_seconds,
            logger=logger,
        )

    @property
    def question_thread_id(self) -> Optional[str]:
        return self._question_thread.peek()

    @property
    def log_thread_id(self) -> Optional[str]:
        return self._log_thread.peek()

    async def ask(self, question: str) -> str:
        self._gate.get()
        async with self._ask_lock:
            session = self._gate.get()
            thread_id = await self._question_thread.get_or_create(
                lambda: self._create_thread(
                    session,
                    parent_id=self._channel_id,
                    name=thread_title(question),
                    auto_archive_duration=AUTO_ARCHIVE_ONE_DAY,
                )
            )
            # Registered before posting so a fast reply cannot slip past.
            pending = session.replies.register(
                channel_id=thread_id, author_id=self._user_id
            )
            try:
                for content in build_question_messages(self._user_id, question):
                    await self._send(session, thread_id, {"content": content})
            except BaseException:
                session.replies.discard(pending)
                raise
            log_event(
                self._logger,
                logging.INFO,
                "relay.ask.posted",
                thread_id=thread_id,
                question_chars=len(question),
            )
            reply = await session.replies.wait(
                pending, timeout=self._reply_timeout_seconds
            )
            if reply is None:
                log_event(
                    self._logger,
                    logging.WARNING,
                    "relay.ask.no_reply",
                    thread_id=thread_id,
                    timeout_seconds=self._reply_timeout_seconds,
                )
                raise NoReplyError("Failed to await message from the human in Discord")
            log_event(
                self._logger,
                logging.INFO,
                "relay.ask.answered",
                thread_id=thread_id,
                message_id=reply.message_id,
            )
            return reply.content

    async def log_conversation(
        self, role: str, message: str, context: Optional[str] = None
    ) -> str:
        if not self._enable_conversation_log:
            return LOG_ACKNOWLEDGEMENT
        log_channel_id = self._log_channel_id
        if not log_channel_id:
            raise LoggingMisconfiguredError("Log channel ID not configured")
        session = self._gate.get()
        thread_id = await self._log_thread.get_or_create(
            lambda: self._create_thread(
                session,
                parent_id=log_channel_id,
                name=self._log_thread_name,
                auto_archive_duration=AUTO_ARCHIVE_ONE_WEEK,
            )
        )
        embed = build_log_embed(role, message, context)
        await self._send(session, thread_id, {"embeds": [embed]})
        log_event(
            self._logger,
            logging.DEBUG,
            "relay.log.posted",
            thread_id=thread_id,
            role=role,
        )
        return LOG_ACKNOWLEDGEMENT

    async def _create_thread(
        self,
        session: DiscordSession,
        *,
        parent_id: str,
        name: str,
        auto_archive_duration: int,
    ) -> str:
        try:
            thread = await session.rest.create_thread(
                channel_id=parent_id,
                name=name,
                auto_archive_duration=auto_archive_duration,
            )
        except DiscordError as exc:
            raise ThreadCreationError(
                f"Failed to create Discord thread in channel {parent_id}: {exc}"
            ) from exc
        thread_id = thread.get("id")
        if not thread_id:
            raise ThreadCreationError(
                f"Discord did not return a thread id for channel {parent_id}"
            )
        return str(thread_id)

    async def _send(
        self, session: DiscordSession, thread_id: str, payload: dict
    ) -> None:
        try:
            await session.rest.create_channel_message(
                channel_id=thread_id, payload=payload
            )
        except DiscordError as exc:
            raise SendError(
                f"Failed to send message to Discord thread {thread_id}: {exc}"
            ) from exc
