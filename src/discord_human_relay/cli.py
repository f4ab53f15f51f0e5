from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, NoReturn, Optional

import typer

from .app import serve
from .config import RelayConfig, RelayConfigError, load_config_file, merge_raw
from .core.logging_utils import log_event, setup_logger
from .discord.errors import DiscordPermanentError
from .version import __version__

LOGGER_NAME = "discord_human_relay"

app = typer.Typer(add_completion=False, help="Ask a human questions over Discord via MCP.")

_CONFIG_OPTION = typer.Option(
    None, "--config", envvar="RELAY_CONFIG", help="YAML config file."
)
_TOKEN_OPTION = typer.Option(
    None, "--discord-token", envvar="DISCORD_TOKEN", help="Discord bot token."
)
_CHANNEL_OPTION = typer.Option(
    None,
    "--discord-channel-id",
    envvar="DISCORD_CHANNEL_ID",
    help="Channel that hosts the question thread.",
)
_USER_OPTION = typer.Option(
    None,
    "--discord-user-id",
    envvar="DISCORD_USER_ID",
    help="The only user whose replies answer questions.",
)
_ENABLE_LOG_OPTION = typer.Option(
    None,
    "--enable-conversation-log/--disable-conversation-log",
    envvar="ENABLE_CONVERSATION_LOG",
    help="Mirror log_conversation calls into a Discord thread.",
)
_LOG_CHANNEL_OPTION = typer.Option(
    None,
    "--log-channel-id",
    envvar="LOG_CHANNEL_ID",
    help="Channel that hosts the conversation log thread.",
)
_LOG_THREAD_NAME_OPTION = typer.Option(
    None,
    "--log-thread-name",
    envvar="LOG_THREAD_NAME",
    help="Name of the conversation log thread (default: Conversation Log).",
)
_REPLY_TIMEOUT_OPTION = typer.Option(
    None,
    "--reply-timeout",
    envvar="REPLY_TIMEOUT_SECONDS",
    help="Seconds to wait for a reply; unset waits indefinitely.",
)
_LOG_LEVEL_OPTION = typer.Option(
    None, "--log-level", envvar="RELAY_LOG_LEVEL", help="Log level (default INFO)."
)
_LOG_FILE_OPTION = typer.Option(
    None,
    "--log-file",
    envvar="RELAY_LOG_FILE",
    help="Write logs to a rotating file instead of stderr.",
)


def raise_exit(message: str, *, cause: Optional[BaseException] = None) -> NoReturn:
    typer.echo(message, err=True)
    if cause is not None:
        raise typer.Exit(code=1) from cause
    raise typer.Exit(code=1)


def _version_callback(value: bool) -> None:
    if not value:
        return
    typer.echo(f"discord-human-relay {__version__}")
    raise typer.Exit(code=0)


@app.callback()
def _root(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    return


def resolve_config(
    *,
    config_path: Optional[Path],
    options: dict[str, Any],
) -> RelayConfig:
    file_raw = load_config_file(config_path) if config_path is not None else {}
    return RelayConfig.from_raw(merge_raw(file_raw, options))


def _collect_options(**options: Any) -> dict[str, Any]:
    return {key: value for key, value in options.items() if value is not None}


@app.command("serve")
def serve_command(
    config_path: Optional[Path] = _CONFIG_OPTION,
    discord_token: Optional[str] = _TOKEN_OPTION,
    discord_channel_id: Optional[str] = _CHANNEL_OPTION,
    discord_user_id: Optional[str] = _USER_OPTION,
    enable_conversation_log: Optional[bool] = _ENABLE_LOG_OPTION,
    log_channel_id: Optional[str] = _LOG_CHANNEL_OPTION,
    log_thread_name: Optional[str] = _LOG_THREAD_NAME_OPTION,
    reply_timeout_seconds: Optional[float] = _REPLY_TIMEOUT_OPTION,
    log_level: Optional[str] = _LOG_LEVEL_OPTION,
    log_file: Optional[Path] = _LOG_FILE_OPTION,
) -> None:
    """Serve the ask_human and log_conversation tools over stdio."""
    try:
        config = resolve_config(
            config_path=config_path,
            options=_collect_options(
                discord_token=discord_token,
                discord_channel_id=discord_channel_id,
                discord_user_id=discord_user_id,
                enable_conversation_log=enable_conversation_log,
                log_channel_id=log_channel_id,
                log_thread_name=log_thread_name,
                reply_timeout_seconds=reply_timeout_seconds,
                log_level=log_level,
                log_file=log_file,
            ),
        )
    except RelayConfigError as exc:
        raise_exit(str(exc), cause=exc)

    logger = setup_logger(LOGGER_NAME, level=config.log_level, log_file=config.log_file)
    try:
        asyncio.run(serve(config, logger=logger))
    except DiscordPermanentError as exc:
        raise_exit(f"Discord connection failed: {exc}", cause=exc)
    except KeyboardInterrupt:
        log_event(logger, logging.INFO, "relay.stopped")
    except Exception as exc:
        log_event(logger, logging.ERROR, "relay.crashed", exc=exc)
        raise_exit(f"discord-human-relay stopped with an error: {exc}", cause=exc)


@app.command("check-config")
def check_config_command(
    config_path: Optional[Path] = _CONFIG_OPTION,
    discord_token: Optional[str] = _TOKEN_OPTION,
    discord_channel_id: Optional[str] = _CHANNEL_OPTION,
    discord_user_id: Optional[str] = _USER_OPTION,
    enable_conversation_log: Optional[bool] = _ENABLE_LOG_OPTION,
    log_channel_id: Optional[str] = _LOG_CHANNEL_OPTION,
    log_thread_name: Optional[str] = _LOG_THREAD_NAME_OPTION,
    reply_timeout_seconds: Optional[float] = _REPLY_TIMEOUT_OPTION,
    log_level: Optional[str] = _LOG_LEVEL_OPTION,
    log_file: Optional[Path] = _LOG_FILE_OPTION,
) -> None:
    """Validate configuration and print the resolved values."""
    try:
        config = resolve_config(
            config_path=config_path,
            options=_collect_options(
                discord_token=discord_token,
                discord_channel_id=discord_channel_id,
                discord_user_id=discord_user_id,
                enable_conversation_log=enable_conversation_log,
                log_channel_id=log_channel_id,
                log_thread_name=log_thread_name,
                reply_timeout_seconds=reply_timeout_seconds,
                log_level=log_level,
                log_file=log_file,
            ),
        )
    except RelayConfigError as exc:
        raise_exit(str(exc), cause=exc)

    typer.echo(f"channel_id: {config.channel_id}")
    typer.echo(f"user_id: {config.user_id}")
    typer.echo(f"conversation_log: {'enabled' if config.enable_conversation_log else 'disabled'}")
    if config.enable_conversation_log:
        if config.log_channel_id is None:
            typer.echo("warning: conversation log is enabled but log_channel_id is unset", err=True)
        else:
            typer.echo(f"log_channel_id: {config.log_channel_id}")
        typer.echo(f"log_thread_name: {config.log_thread_name}")
    timeout = config.reply_timeout_seconds
    typer.echo(f"reply_timeout: {'none' if timeout is None else f'{timeout:g}s'}")


def main() -> None:
    """Entrypoint for CLI execution."""
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
