"""
Structured logging for microquest, using structlog on top of stdlib logging.

Every record, ours and third-party, goes through one ProcessorFormatter, so
the console (stderr, since the CLI prints results on stdout) and the
optional log file share the same fields. Session context bound with
bind_session_context() (user id, active quest) rides along on every line.

Settings come from the `logging:` section of args/microquest.yaml, then
MICROQUEST_LOG_LEVEL / MICROQUEST_LOG_FORMAT, then explicit arguments
(the CLI's --log-level), later ones winning.

Usage:
    from microquest.logging_config import get_logger, setup_logging

    setup_logging(load_config().logging, level="DEBUG")
    logger = get_logger(__name__)
"""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, TextIO

import structlog

from microquest import PROJECT_ROOT
from microquest.config import LoggingConfig


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _formatter(json_output: bool) -> structlog.stdlib.ProcessorFormatter:
    if json_output:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_shared_processors(),
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )


def _file_handler(config: LoggingConfig) -> RotatingFileHandler:
    path = Path(config.file)
    if not path.is_absolute():
        path = PROJECT_ROOT / path
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(path, maxBytes=config.max_bytes, backupCount=config.backup_count, encoding="utf-8")
    # The file is for later inspection, so it is always JSON
    handler.setFormatter(_formatter(json_output=True))
    return handler


def setup_logging(
    config: LoggingConfig | None = None,
    level: str | None = None,
    json_output: bool | None = None,
    stream: TextIO | None = None,
) -> None:
    """
    Route stdlib and structlog records through microquest's handlers.

    Args:
        config: The `logging:` config section (defaults when omitted)
        level: Overrides the config and MICROQUEST_LOG_LEVEL
        json_output: Overrides the config and MICROQUEST_LOG_FORMAT
        stream: Console stream (stderr when omitted)
    """
    config = config or LoggingConfig()

    level = level or os.environ.get("MICROQUEST_LOG_LEVEL") or config.level
    if json_output is None:
        env_format = os.environ.get("MICROQUEST_LOG_FORMAT", "").lower()
        json_output = (env_format or config.format) == "json"

    structlog.configure(
        processors=[
            *_shared_processors(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    console = logging.StreamHandler(stream or sys.stderr)
    console.setFormatter(_formatter(json_output))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    if config.file:
        root.addHandler(_file_handler(config))
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # LLM client libraries log every request at INFO
    for name in config.quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_session_context(**values: Any) -> None:
    """Attach values (user id, active quest) to every later log line."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**values)


__all__ = ["bind_session_context", "get_logger", "setup_logging"]
