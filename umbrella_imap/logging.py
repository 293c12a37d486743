"""Log output for message loading and the IMAP transport."""

from __future__ import annotations

import logging
import sys

import structlog

from .config import LoggingConfig


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Install a single stderr handler on the root logger.

    Events from this package (``message_loaded``, ``imap_connected``, ...)
    and plain ``logging`` records from imaplib and tenacity share it.  The
    handler renders JSON lines unless ``config.json_format`` is false, and
    drops records below ``config.level``.
    """
    config = config or LoggingConfig()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    renderer: structlog.types.Processor
    if config.json_format:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Records from plain ``logging`` users (imaplib callers, tenacity) get
    # the same processors before rendering.
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(config.level.upper())
