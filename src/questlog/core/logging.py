"""Structured logging configuration for questlog.

Events are logged as key/value pairs through structlog. Output is rendered
for the console by default and as JSON lines when ``QUESTLOG_JSON_LOGS``
is set. Per-operation identifiers (character, session) are carried in
context variables so every event emitted inside an award or a turn is
tagged without threading them through each call.

Example:
    >>> from questlog.core.logging import get_logger, log_context
    >>> logger = get_logger(__name__)
    >>> with log_context(character_id="abc"):
    ...     logger.info("experience_awarded", amount=300)
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import Processor


if TYPE_CHECKING:
    from collections.abc import Generator

    from structlog.types import EventDict, WrappedLogger

    from questlog.core.config import Settings


_STDLIB_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _tag_app(app_name: str) -> Processor:
    tag = app_name.lower()

    def add_app(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict["app"] = tag
        return event_dict

    return add_app


def configure_logging(
    settings: Settings | None = None,
    *,
    level: str | None = None,
    json_format: bool | None = None,
    log_file: str | None = None,
) -> None:
    """Configure application-wide logging.

    Keyword arguments override the matching fields of ``settings``
    (``log_level`` and ``json_logs``), which default to the cached
    application settings.

    Args:
        settings: Settings to read defaults from.
        level: The logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: Render JSON lines instead of console output.
        log_file: Optional file that also receives stdlib log records.
    """
    if settings is None:
        from questlog.core.config import get_settings

        settings = get_settings()

    level = (level or settings.log_level).upper()
    if json_format is None:
        json_format = settings.json_logs
    numeric_level = logging.getLevelName(level)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    renderer: Processor
    if json_format:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            _tag_app(settings.app_name),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # sqlite3 and tenacity report through the standard library
    logging.basicConfig(format=_STDLIB_FORMAT, level=numeric_level, stream=sys.stdout, force=True)
    if log_file:
        handler = logging.FileHandler(log_file)
        handler.setLevel(numeric_level)
        handler.setFormatter(logging.Formatter(_STDLIB_FORMAT))
        logging.getLogger().addHandler(handler)


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a logger, typically with ``__name__``."""
    return structlog.get_logger(name)


@contextmanager
def log_context(**kwargs: Any) -> Generator[None, None, None]:
    """Bind context for the duration of a block.

    None values are skipped. Previously bound values are restored on exit,
    so nested blocks (a turn that triggers an award) keep the outer tags.
    """
    bound = {key: value for key, value in kwargs.items() if value is not None}
    with structlog.contextvars.bound_contextvars(**bound):
        yield


__all__ = [
    "configure_logging",
    "get_logger",
    "log_context",
]
