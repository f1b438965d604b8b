"""
Structured logging configuration using structlog.

Production renders one JSON object per line; development renders colored
console output. Pipeline code logs with keyword fields (``source=``,
``url=``, ``receipt_id=``) and binds per-task context with
``bound_context`` so every line from one poller carries its source name.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from headline_anchor.config.settings import get_settings

# Console rendering only; JSON output keeps full digests
_HASH_FIELDS = ("fingerprint", "old_fingerprint", "new_fingerprint", "receipt_id")
_HASH_DISPLAY_LENGTH = 12

_NOISY_LOGGERS = ("httpx", "httpcore", "asyncio", "asyncpg", "uvicorn.access")


def abbreviate_hashes(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Shorten fingerprint and receipt fields for console rendering."""
    for key in _HASH_FIELDS:
        value = event_dict.get(key)
        if isinstance(value, str) and len(value) > _HASH_DISPLAY_LENGTH + 8:
            prefix, sep, digest = value.rpartition(":")
            event_dict[key] = f"{prefix}{sep}{digest[:_HASH_DISPLAY_LENGTH]}…"
    return event_dict


def _use_json(log_format: str, is_production: bool) -> bool:
    if log_format == "auto":
        return is_production
    return log_format == "json"


def setup_logging() -> None:
    """
    Configure structlog and the stdlib root logger from Settings.

    Usage:
        setup_logging()
        logger = structlog.get_logger(__name__)
        logger.info("Payload anchored", receipt_id="abc")
    """
    settings = get_settings()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if _use_json(settings.log_format, settings.is_production):
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            abbreviate_hashes,
            structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level),
        force=True,
    )

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


@contextmanager
def bound_context(**kwargs) -> Iterator[None]:
    """
    Bind fields to every log line emitted inside the block.

    Context is task-local, so concurrent pollers never see each other's
    fields.

    Usage:
        with bound_context(source="BBC News"):
            await poller.poll_once(source)
    """
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield
