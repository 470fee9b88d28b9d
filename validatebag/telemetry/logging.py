"""
validatebag -- Structured Logging

All logging via structlog, rendered through the standard library root logger
so third-party libraries (bagit, httpx, uvicorn) share one output stream.
Validation runs bind the bag name and package type as context variables, so
every rule log line says which bag it belongs to.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from validatebag.config import LoggingConfig


def _renderer(config: LoggingConfig, stream: Any) -> Any:
    if config.format == "json":
        return structlog.processors.JSONRenderer()
    # Escape codes only on a terminal; CLI output is often redirected.
    isatty = getattr(stream, "isatty", None)
    return structlog.dev.ConsoleRenderer(colors=bool(isatty and isatty()))


def setup_logging(config: LoggingConfig, stream: Any = None) -> None:
    """
    Configure structured logging for the entire application.

    ``stream`` defaults to stdout; the CLI passes stderr so that reports on
    stdout stay machine-readable.
    """
    stream = stream or sys.stdout
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(config, stream),
        ],
    )

    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, config.level.upper(), logging.INFO))

    for name in config.quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)


@contextmanager
def validation_context(bag: str, info_package_type: str) -> Iterator[None]:
    """Tag every log line emitted inside the block with the bag under validation."""
    with structlog.contextvars.bound_contextvars(bag=bag, info_package_type=info_package_type):
        yield
