from __future__ import annotations

import logging
import sys
from typing import Any

import orjson
import structlog

from modbot.core.config import Settings

# aiogram logs every handled update at INFO; keep that out of the bot's own stream
_NOISY_LOGGERS = ("aiogram.event", "aiosqlite")


def _orjson_dumps(obj: Any, *, default: Any) -> str:
    return orjson.dumps(obj, default=default).decode("utf-8")


def configure_logging(settings: Settings) -> None:
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, stream=sys.stdout, format="%(message)s")
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if settings.log_json:
        processors.append(structlog.processors.JSONRenderer(serializer=_orjson_dumps))
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)


def bind_update_context(**values: Any) -> None:
    """Attach ids (chat, user, command) to every log line until the update is done."""
    structlog.contextvars.bind_contextvars(**{k: v for k, v in values.items() if v is not None})


def clear_update_context() -> None:
    structlog.contextvars.clear_contextvars()
