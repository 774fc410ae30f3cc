"""Structured logging for canonforge.

Every module logs through a structlog logger bound to its component name, so
synthesis, merge and store events can be filtered per component and carry
key/value context such as the record slug, the section and mutation counts.
Console output is meant for development; JSON lines for anything that is
collected.

Example:
    >>> from canonforge.core.logging import get_logger, record_context
    >>> logger = get_logger(__name__)
    >>> with record_context(slug="goblin-warchanter", operation="import"):
    ...     logger.info("Document created", id="abc123")
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import Processor


if TYPE_CHECKING:
    from structlog.types import EventDict, WrappedLogger


APP_NAME = "canonforge"
STDLIB_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _level(name: str) -> int:
    return logging.getLevelNamesMapping().get(name.upper(), logging.INFO)


def _component(name: str | None) -> str | None:
    if name is None:
        return None
    prefix = f"{APP_NAME}."
    return name[len(prefix):] if name.startswith(prefix) else name


def add_app_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Tag every event with the application name."""
    event_dict.setdefault("app", APP_NAME)
    return event_dict


def drop_unset_values(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Remove keys whose value is None.

    Optional context (a library scope, an entry location) is passed straight
    through by callers; unset values only add noise to the output.
    """
    return {key: value for key, value in event_dict.items() if value is not None}


def configure_logging(
    *,
    level: str = "INFO",
    json_format: bool = False,
    log_file: str | None = None,
) -> None:
    """Configure structlog and the standard library root logger.

    Args:
        level: Minimum level name; unknown names fall back to INFO.
        json_format: Render JSON lines instead of the console format.
        log_file: Also write standard-library records to this file.
    """
    threshold = _level(level)
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_app_context,
        drop_unset_values,
        structlog.processors.StackInfoRenderer(),
    ]
    if json_format:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(threshold),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(format=STDLIB_FORMAT, level=threshold, handlers=handlers, force=True)


def configure_from_settings() -> None:
    """Configure logging from the loaded application settings."""
    from canonforge.core.config import get_settings

    settings = get_settings()
    configure_logging(level=settings.log_level, json_format=settings.json_logs)


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Return a logger bound to the component ``name`` (typically ``__name__``).

    The ``canonforge.`` prefix is dropped, so events from
    ``canonforge.mapping.merge`` carry ``component="mapping.merge"``.
    """
    return structlog.get_logger(component=_component(name))


def bind_context(**kwargs: Any) -> None:
    """Bind context variables included in all subsequent logs.

    Example:
        >>> bind_context(batch="bestiary-import")
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()


@contextmanager
def record_context(**kwargs: Any) -> Iterator[None]:
    """Bind context for the duration of one record operation.

    Values bound before entering are restored on exit, so nested operations
    (an import inside a batch) do not clobber the outer context.
    """
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield


__all__ = [
    "APP_NAME",
    "add_app_context",
    "drop_unset_values",
    "configure_logging",
    "configure_from_settings",
    "get_logger",
    "bind_context",
    "clear_context",
    "record_context",
]
