"""Structured logging for audit runs.

Log events go to stderr so that summaries printed on stdout stay parseable.
"""

import logging
import sys
from typing import Any, List

import structlog
from structlog.types import Processor

from acl_audit.infrastructure.logging_processors import (
    add_run_context,
    add_service_context,
    format_exception_info,
    sanitize_sensitive_data,
    set_log_severity,
)

# Client libraries that log every request at INFO
QUIET_LOGGERS = ("httpx", "httpcore")


def build_processors() -> List[Processor]:
    """Processors shared by structlog and foreign stdlib records"""
    return [
        structlog.contextvars.merge_contextvars,
        add_service_context,
        add_run_context,
        structlog.processors.add_log_level,
        set_log_severity,
        format_exception_info,
        structlog.processors.TimeStamper(fmt="iso"),
        # Must run after everything that adds fields
        sanitize_sensitive_data,
    ]


def _renderer(log_format: str) -> Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def setup_logging(log_level: str = "INFO", log_format: str = "console") -> None:
    """Route structlog and stdlib logging through one stderr handler"""
    processors = build_processors()

    structlog.configure(
        processors=processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(log_format),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Attach values (run id, repository, branch) to every following event"""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)
