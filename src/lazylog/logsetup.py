"""
Logging Setup.

Configures the ``lazylog`` logger from a LoggingConfig: rich console output
or a plain stream handler, an optional log file, and either a style-aware
text format or one JSON object per record.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, TextIO

from rich.console import Console
from rich.logging import RichHandler

from lazylog.config.models import LoggingConfig
from lazylog.styles import FormatStyle

ROOT_LOGGER_NAME = "lazylog"

# Message-only formats for handlers that render time and level themselves
_MESSAGE_ONLY: dict[FormatStyle, str] = {
    FormatStyle.PERCENT: "%(message)s",
    FormatStyle.BRACE: "{message}",
    FormatStyle.DOLLAR: "${message}",
}

# Attributes every LogRecord has; anything else came in through ``extra``
_RECORD_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime", "style"}

_HANDLER_MARKER = "_lazylog_handler"


class JsonFormatter(logging.Formatter):
    """Formats each record as a single JSON object.

    Fields: timestamp, level, logger, message, plus any ``extra`` values
    and the formatted exception when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRIBUTES and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _build_formatter(config: LoggingConfig, message_only: bool = False) -> logging.Formatter:
    if config.json_output:
        return JsonFormatter()
    fmt = _MESSAGE_ONLY[config.style] if message_only else config.effective_format
    return logging.Formatter(fmt=fmt, datefmt=config.date_format, style=config.style.value)


def configure_logging(
    config: LoggingConfig | None = None,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Configure the lazylog logger.

    Handlers installed by a previous call are removed first, so calling
    this repeatedly never duplicates output.

    Args:
        config: Logging configuration (defaults used when None)
        stream: Console stream, defaults to stderr

    Returns:
        The configured ``lazylog`` logger
    """
    config = config or LoggingConfig()
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(config.level.value)

    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            root.removeHandler(handler)
            handler.close()

    handlers: list[logging.Handler] = []
    if config.rich_console and not config.json_output:
        console = Console(file=stream or sys.stderr)
        console_handler: logging.Handler = RichHandler(
            console=console,
            show_path=False,
            rich_tracebacks=True,
        )
        console_handler.setFormatter(_build_formatter(config, message_only=True))
    else:
        console_handler = logging.StreamHandler(stream or sys.stderr)
        console_handler.setFormatter(_build_formatter(config))
    handlers.append(console_handler)

    if config.file:
        file_handler = logging.FileHandler(config.file, encoding="utf-8")
        file_handler.setFormatter(_build_formatter(config))
        handlers.append(file_handler)

    for handler in handlers:
        setattr(handler, _HANDLER_MARKER, True)
        root.addHandler(handler)

    root.debug(
        "Logging configured: level=%s style=%s json=%s file=%s",
        config.level.value,
        config.style.value,
        config.json_output,
        config.file,
    )
    return root


def get_logger(name: str) -> logging.Logger:
    """Get a logger below the lazylog namespace."""
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
