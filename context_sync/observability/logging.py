"""
Structured logging configuration using structlog.

JSON lines in production, coloured console output elsewhere. Fields bound
with ``log_context`` (organization_id during a sync run, request_id in the
API middleware) are merged into every event emitted inside the block,
including events from stdlib ``logging`` loggers.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from structlog.types import Processor

from context_sync.config.settings import get_settings

# Libraries that log every request at INFO
_QUIET_LOGGERS = ("httpx", "httpcore", "openai", "asyncio", "asyncpg")


def setup_logging(level: str | None = None, json_logs: bool | None = None) -> None:
    """
    Configure structlog and route stdlib logging through it.

    Args:
        level: Log level name (default: LOG_LEVEL setting)
        json_logs: Force JSON rendering on or off (default: production only)
    """
    settings = get_settings()
    level = level or settings.log_level
    if json_logs is None:
        json_logs = settings.is_production

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    renderer: Processor
    if json_logs:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, level))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


@contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    """
    Bind fields to every log event emitted inside the block.

    Usage:
        with log_context(organization_id="org-1"):
            logger.info("Sync started")
    """
    with structlog.contextvars.bound_contextvars(**fields):
        yield

