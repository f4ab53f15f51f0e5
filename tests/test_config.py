from __future__ import annotations

from pathlib import Path

import pytest

from discord_human_relay.config import (
    RelayConfig,
    RelayConfigError,
    load_config_file,
    merge_raw,
)
from discord_human_relay.discord.constants import DEFAULT_INTENTS

BASE = {
    "discord_token": "token",
    "discord_channel_id": "222222222222222222",
    "discord_user_id": 111111111111111111,
}


def test_relay_config_defaults() -> None:
    cfg = RelayConfig.from_raw(BASE)

    assert cfg.bot_token == "token"
    assert cfg.channel_id == "222222222222222222"
    assert cfg.user_id == "111111111111111111"
    assert cfg.enable_conversation_log is False
    assert cfg.log_channel_id is None
    assert cfg.log_thread_name == "Conversation Log"
    assert cfg.reply_timeout_seconds is None
    assert cfg.intents == DEFAULT_INTENTS
    assert cfg.log_level == "INFO"
    assert cfg.log_file is None


@pytest.mark.parametrize(
    "missing", ["discord_token", "discord_channel_id", "discord_user_id"]
)
def test_relay_config_requires_core_values(missing: str) -> None:
    raw = {key: value for key, value in BASE.items() if key != missing}
    with pytest.raises(RelayConfigError, match="required"):
        RelayConfig.from_raw(raw)


def test_relay_config_rejects_non_numeric_ids() -> None:
    with pytest.raises(RelayConfigError, match="discord_channel_id"):
        RelayConfig.from_raw({**BASE, "discord_channel_id": "general"})


def test_relay_config_parses_logging_options() -> None:
    cfg = RelayConfig.from_raw(
        {
            **BASE,
            "enable_conversation_log": "true",
            "log_channel_id": "333333333333333333",
            "log_thread_name": "  Log  ",
            "reply_timeout_seconds": "90",
            "log_level": "debug",
        }
    )

    assert cfg.enable_conversation_log is True
    assert cfg.log_channel_id == "333333333333333333"
    assert cfg.log_thread_name == "Log"
    assert cfg.reply_timeout_seconds == 90.0
    assert cfg.log_level == "DEBUG"


def test_relay_config_allows_logging_enabled_without_channel() -> None:
    # Reported per log_conversation call rather than at startup.
    cfg = RelayConfig.from_raw({**BASE, "enable_conversation_log": True})
    assert cfg.enable_conversation_log is True
    assert cfg.log_channel_id is None


@pytest.mark.parametrize(
    ("key", "value"),
    [
        ("enable_conversation_log", "maybe"),
        ("reply_timeout_seconds", "soon"),
        ("intents", "all"),
        ("intents", -1),
        ("log_level", "chatty"),
        ("log_thread_name", "x" * 101),
    ],
)
def test_relay_config_rejects_invalid_values(key: str, value: object) -> None:
    with pytest.raises(RelayConfigError):
        RelayConfig.from_raw({**BASE, key: value})


def test_non_positive_reply_timeout_means_wait_forever() -> None:
    cfg = RelayConfig.from_raw({**BASE, "reply_timeout_seconds": 0})
    assert cfg.reply_timeout_seconds is None


def test_load_config_file_normalizes_keys(tmp_path: Path) -> None:
    path = tmp_path / "relay.yml"
    path.write_text(
        "discord-token: from-file\n"
        "discord_channel_id: 222222222222222222\n"
        "log-thread-name: Audit\n",
        encoding="utf-8",
    )

    raw = load_config_file(path)

    assert raw == {
        "discord_token": "from-file",
        "discord_channel_id": 222222222222222222,
        "log_thread_name": "Audit",
    }


def test_load_config_file_errors(tmp_path: Path) -> None:
    with pytest.raises(RelayConfigError, match="Unable to read"):
        load_config_file(tmp_path / "missing.yml")
    bad = tmp_path / "bad.yml"
    bad.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(RelayConfigError, match="mapping"):
        load_config_file(bad)


def test_merge_raw_later_layers_win_but_none_does_not() -> None:
    merged = merge_raw(
        {"discord_token": "file", "log_thread_name": "File"},
        {"discord_token": "cli", "log_thread_name": None},
    )
    assert merged == {"discord_token": "cli", "log_thread_name": "File"}
