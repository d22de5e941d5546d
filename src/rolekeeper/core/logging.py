"""Structured logging with correlation IDs.

Every log line carries the module that wrote it and a correlation id, so a
role change can be followed from the request or CLI command that caused it.
Development gets colored console output; every other environment gets JSON
lines with the event under ``message``.
"""

import logging
import sys
import uuid
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from rolekeeper.core.config import Settings, get_settings

DEFAULT_LOGGER_NAME = "rolekeeper"


def add_correlation_id(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Give the entry a fresh correlation id unless one is already bound."""
    event_dict.setdefault("correlation_id", f"cid_{uuid.uuid4().hex[:12]}")
    return event_dict


def rename_message_field(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Rename 'event' field to 'message'."""
    if "event" in event_dict:
        event_dict["message"] = event_dict.pop("event")
    return event_dict


def configure_logging(settings: Settings | None = None) -> None:
    """Configure structlog and the standard library root logger.

    Args:
        settings: Optional settings instance. If not provided, will load from environment.
    """
    settings = settings or get_settings()
    level = getattr(logging, settings.log_level)
    console = settings.is_development or settings.log_format == "console"

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        add_correlation_id,
    ]
    if console:
        processors.append(
            structlog.dev.ConsoleRenderer(colors=True, exception_formatter=structlog.dev.plain_traceback)
        )
    else:
        processors += [rename_message_field, structlog.processors.JSONRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        # Console loggers pick up the current stdout on every call
        cache_logger_on_first_use=not console,
    )

    # Standard logging for third-party libraries (sqlalchemy, uvicorn)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for logger_name in ["uvicorn", "uvicorn.access", "uvicorn.error"]:
        logging.getLogger(logger_name).setLevel(level)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger that tags every entry with ``logger=name``.

    The logger stays lazy until first use, so module-level loggers follow
    whatever ``configure_logging`` set up later.
    """
    return structlog.get_logger(logger=name or DEFAULT_LOGGER_NAME)


class LoggingContext:
    """Bind key/value pairs to every log entry inside the ``with`` block.

    Example:
        with LoggingContext(command="rolekeeper roles grant"):
            logger.info("Permission granted")  # includes command
    """

    def __init__(self, **kwargs: str) -> None:
        self.context = kwargs

    def __enter__(self) -> "LoggingContext":
        structlog.contextvars.bind_contextvars(**self.context)
        return self

    def __exit__(self, *args: Any) -> None:
        structlog.contextvars.unbind_contextvars(*self.context)


def bind_correlation_id(correlation_id: str) -> None:
    """Bind a correlation ID to the current logging context."""
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)


def clear_context() -> None:
    """Clear all context variables from the current logging context."""
    structlog.contextvars.clear_contextvars()
