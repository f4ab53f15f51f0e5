from __future__ import annotations

import pytest

from discord_human_relay.relay.errors import NotReadyError
from discord_human_relay.relay.readiness import ReadinessGate


def test_get_before_set_raises_not_ready() -> None:
    gate: ReadinessGate[str] = ReadinessGate()
    assert gate.is_ready is False
    with pytest.raises(NotReadyError, match="not ready"):
        gate.get()


def test_first_set_wins() -> None:
    gate: ReadinessGate[str] = ReadinessGate()
    assert gate.set("first") is True
    assert gate.set("second") is False
    assert gate.is_ready is True
    assert gate.get() == "first"
