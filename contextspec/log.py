"""Structured logging for contextspec.

Events are emitted through structlog on top of the standard library
``logging`` logger ``contextspec``, so pytest's log capture and
``--log-level`` see them like any other record.

The package never calls ``structlog.configure``: each logger is wrapped with
its own processor chain, and the global structlog setup stays with the
application or the code under test.

Usage:
    from contextspec.log import configure_logging, get_logger

    configure_logging(level="DEBUG", fmt="console")

    logger = get_logger(__name__)
    logger.debug("because_invoked", fixture="WhenAddingAnItem")
"""

import logging
import sys
from typing import Any, Literal

import structlog
from structlog.types import EventDict, Processor

LOGGER_NAMESPACE = "contextspec"

_renderers: dict[str, Processor] = {
    "console": structlog.dev.ConsoleRenderer(colors=False),
    "json": structlog.processors.JSONRenderer(),
}
_format: Literal["console", "json"] = "console"


def add_log_level(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add the log level to the event dictionary."""
    if method_name == "warn":
        method_name = "warning"
    event_dict["level"] = method_name
    return event_dict


def render(logger: logging.Logger, method_name: str, event_dict: EventDict) -> Any:
    """Render the event with the format selected by configure_logging."""
    return _renderers[_format](logger, method_name, event_dict)


def _processors() -> list[Processor]:
    return [
        structlog.stdlib.filter_by_level,
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        render,
    ]


def configure_logging(
    level: str = "WARNING",
    fmt: Literal["console", "json"] = "console",
    stream: bool = False,
) -> None:
    """Configure the ``contextspec`` stdlib logger.

    Only the package logger is touched; root handlers and the global
    structlog configuration belong to the host.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        fmt: Output format, "console" or "json"
        stream: Attach a stderr handler to the package logger, for the CLI
    """
    global _format
    _format = fmt

    package_logger = logging.getLogger(LOGGER_NAMESPACE)
    package_logger.setLevel(getattr(logging, level.upper(), logging.WARNING))

    if stream and not any(
        isinstance(h, logging.StreamHandler) for h in package_logger.handlers
    ):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(message)s"))
        package_logger.addHandler(handler)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, typically for ``__name__``.

    Names outside the ``contextspec`` namespace are placed under it.
    """
    if name != LOGGER_NAMESPACE and not name.startswith(f"{LOGGER_NAMESPACE}."):
        name = f"{LOGGER_NAMESPACE}.{name}"
    logger: structlog.stdlib.BoundLogger = structlog.wrap_logger(
        logging.getLogger(name),
        processors=_processors(),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
    )
    return logger


__all__ = [
    "LOGGER_NAMESPACE",
    "configure_logging",
    "get_logger",
]
