"""structlog configuration for the server process.

Environment variables:
- LOG_FORMAT: "json" renders one JSON object per line; "console" or unset
  renders human-readable lines.
- LOG_LEVEL: standard level name, default INFO.

All structlog output is routed through the stdlib root logger so third-party
libraries and our own modules share the same handlers.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import MutableMapping
    from typing import Any

LOG_FILE_TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"
LOG_FILE_PREFIX = "circle"

_LOG_FORMATS = ("json", "console")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def _enum_values(
    _logger: object,
    _method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Render Enum members (top level or inside lists) by value."""
    for key, value in event_dict.items():
        if isinstance(value, Enum):
            event_dict[key] = value.value
        elif isinstance(value, list):
            event_dict[key] = [item.value if isinstance(item, Enum) else item for item in value]
    return event_dict


def _is_test() -> bool:
    return "pytest" in sys.modules


def log_format_from_env() -> str:
    value = os.environ.get("LOG_FORMAT", "").strip().lower() or "console"
    if value not in _LOG_FORMATS:
        raise ValueError(f"Invalid LOG_FORMAT={value!r}, expected one of {_LOG_FORMATS} or unset")
    return value


def log_level_from_env() -> int:
    value = os.environ.get("LOG_LEVEL", "INFO").strip().upper()
    if value not in _LOG_LEVELS:
        raise ValueError(f"Invalid LOG_LEVEL={value!r}, expected one of {_LOG_LEVELS}")
    return logging.getLevelName(value)


def _formatter(log_format: str, *, colors: bool) -> logging.Formatter:
    renderer = structlog.processors.JSONRenderer() if log_format == "json" else structlog.dev.ConsoleRenderer(colors=colors)
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )


def _open_log_file(log_dir: Path | str, log_format: str) -> logging.FileHandler:
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now(tz=UTC).strftime(LOG_FILE_TIMESTAMP_FORMAT)
    handler = logging.FileHandler(directory / f"{LOG_FILE_PREFIX}-{stamp}.log")
    handler.setFormatter(_formatter(log_format, colors=False))
    return handler


def setup_logging(
    log_dir: Path | str | None = None,
    level: int | None = None,
) -> Path | None:
    """Configure structlog and the stdlib root logger.

    Always logs to stdout. When log_dir is given (and not under pytest) a
    timestamped file is opened there too and its path returned.
    """
    log_format = log_format_from_env()
    if level is None:
        level = log_level_from_env()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            _enum_values,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    root = logging.getLogger()
    root.setLevel(level)
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(_formatter(log_format, colors=sys.stdout.isatty()))
    root.addHandler(stdout_handler)

    if log_dir is None or _is_test():
        return None
    file_handler = _open_log_file(log_dir, log_format)
    root.addHandler(file_handler)
    return Path(file_handler.baseFilename)
