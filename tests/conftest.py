"""Test harness configuration.

This repo uses a `src/` layout; make sure the in-repo sources win over any
installed copy of `discord_human_relay`.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Any, Callable, Optional

import pytest

DEFAULT_NON_INTEGRATION_TIMEOUT_SECONDS = 30


def pytest_configure() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    src_path = str(repo_root / "src")
    if sys.path[:1] != [src_path] and src_path not in sys.path:
        sys.path.insert(0, src_path)


def pytest_collection_modifyitems(
    session: pytest.Session, config: pytest.Config, items: list[pytest.Item]
) -> None:
    """
    Apply a default per-test timeout to non-integration tests.

    Relies on `pytest-timeout`; without it the marker is inert. A hung
    reply-await would otherwise block the whole run.
    """
    _ = session, config
    for item in items:
        if item.get_closest_marker("integration") is not None:
            continue
        item.add_marker(pytest.mark.timeout(DEFAULT_NON_INTEGRATION_TIMEOUT_SECONDS))


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class FakeDiscordRest:
    """In-memory stand-in for DiscordRestClient's thread/message calls."""

    def __init__(self) -> None:
        self.created_threads: list[dict[str, Any]] = []
        self.sent_messages: list[tuple[str, dict[str, Any]]] = []
        self.create_thread_error: Optional[Exception] = None
        self.send_error: Optional[Exception] = None
        self.hold_thread_creation: Optional[asyncio.Event] = None
        self._next_id = 5000
        self.closed = False

    async def close(self) -> None:
        self.closed = True

    def _allocate_id(self) -> str:
        self._next_id += 1
        return str(self._next_id)

    async def create_thread(
        self,
        *,
        channel_id: str,
        name: str,
        auto_archive_duration: int = 1440,
        thread_type: int = 11,
    ) -> dict[str, Any]:
        self.created_threads.append(
            {
                "channel_id": channel_id,
                "name": name,
                "auto_archive_duration": auto_archive_duration,
                "type": thread_type,
            }
        )
        if self.hold_thread_creation is not None:
            await self.hold_thread_creation.wait()
        if self.create_thread_error is not None:
            raise self.create_thread_error
        return {"id": self._allocate_id(), "parent_id": channel_id, "name": name}

    async def create_channel_message(
        self, *, channel_id: str, payload: dict[str, Any]
    ) -> dict[str, Any]:
        if self.send_error is not None:
            raise self.send_error
        self.sent_messages.append((channel_id, payload))
        return {"id": self._allocate_id(), "channel_id": channel_id}


@pytest.fixture
def fake_rest() -> FakeDiscordRest:
    return FakeDiscordRest()


async def _wait_until(predicate: Callable[[], bool], *, spins: int = 200) -> None:
    for _ in range(spins):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition was not reached")


@pytest.fixture
def wait_until() -> Callable[..., Any]:
    return _wait_until
