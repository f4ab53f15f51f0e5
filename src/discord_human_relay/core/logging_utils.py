from __future__ import annotations

import json
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DEFAULT_MAX_BYTES = 5 * 1024 * 1024
DEFAULT_BACKUP_COUNT = 3


def _coerce_field(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, BaseException):
        return f"{type(value).__name__}: {value}"
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_coerce_field(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _coerce_field(item) for key, item in value.items()}
    return repr(value)


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    *,
    exc: Optional[BaseException] = None,
    **fields: Any,
) -> None:
    """Emit a structured log line: ``<event> {"field": ...}``.

    ``exc`` is rendered into the payload and, at ERROR or above, the traceback
    is attached to the record.
    """
    if not logger.isEnabledFor(level):
        return
    payload = {key: _coerce_field(value) for key, value in fields.items()}
    if exc is not None:
        payload["error"] = _coerce_field(exc)
    message = event
    if payload:
        message = f"{event} {json.dumps(payload, sort_keys=True, ensure_ascii=False)}"
    exc_info = exc if exc is not None and level >= logging.ERROR else None
    logger.log(level, message, exc_info=exc_info)


def setup_logger(
    name: str,
    *,
    level: str | int = logging.INFO,
    log_file: Optional[Path] = None,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
) -> logging.Logger:
    """Configure the package logger.

    Output goes to stderr unless ``log_file`` is given; stdout carries the MCP
    stream and must never receive log lines.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level if isinstance(level, int) else level.upper())
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
        existing.close()
    handler: logging.Handler
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
    return logger
