"""Structured logging configuration — structlog + stdlib logging."""

from __future__ import annotations

import logging
import logging.config
import os
import re
import sys
from typing import Any

import structlog

# gh / git stderr and remote URLs can carry credentials
_TOKEN_RE = re.compile(r"\b(?:gh[pousr]_[A-Za-z0-9]{20,}|github_pat_[A-Za-z0-9_]{20,})\b")
_URL_CREDENTIALS_RE = re.compile(r"(https?://)[^/\s:@]+(?::[^/\s@]*)?@")

_REDACTED = "***"


def _redact(value: str) -> str:
    value = _TOKEN_RE.sub(_REDACTED, value)
    return _URL_CREDENTIALS_RE.sub(rf"\1{_REDACTED}@", value)


def redact_credentials(
    _logger: Any, _method: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    """Mask GitHub tokens and URL userinfo in string values."""
    for key, value in event_dict.items():
        if isinstance(value, str):
            event_dict[key] = _redact(value)
        elif isinstance(value, list):
            event_dict[key] = [_redact(v) if isinstance(v, str) else v for v in value]
    return event_dict


def setup_logging(
    level: str | None = None,
    log_format: str | None = None,
    engine_level: str | None = None,
) -> None:
    """Configure structlog and stdlib logging.

    Arguments override the environment:
        REPOPOLISHER_LOG_LEVEL        — business log level (default: INFO)
        REPOPOLISHER_LOG_FORMAT       — console | json (default: console)
        REPOPOLISHER_ENGINE_LOG_LEVEL — level for ``repopolisher.engine``, which
                                        logs every git/gh/typos invocation
                                        (default: the business level)
    """
    log_level = (level or os.environ.get("REPOPOLISHER_LOG_LEVEL", "INFO")).upper()
    log_format = (log_format or os.environ.get("REPOPOLISHER_LOG_FORMAT", "console")).lower()
    engine_level = (
        engine_level or os.environ.get("REPOPOLISHER_ENGINE_LOG_LEVEL") or log_level
    ).upper()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        redact_credentials,
    ]

    if log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=shared_processors
        + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "structlog": {
                    "()": structlog.stdlib.ProcessorFormatter,
                    "foreign_pre_chain": shared_processors,
                    "processors": [
                        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                        renderer,
                    ],
                },
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stderr",
                    "formatter": "structlog",
                },
            },
            "root": {
                "handlers": ["default"],
                "level": log_level,
            },
            "loggers": {
                "repopolisher": {"level": log_level},
                "repopolisher.engine": {"level": engine_level},
                "uvicorn.access": {"level": "WARNING"},
                "uvicorn.error": {"level": "INFO"},
                "sqlalchemy.engine": {"level": "WARNING"},
                "aiosqlite": {"level": "WARNING"},
                "asyncpg": {"level": "WARNING"},
                "httpx": {"level": "WARNING"},
            },
        }
    )
