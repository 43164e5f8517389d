"""structlog processors for audit runs"""

import sys
import traceback
from typing import Any

from structlog.contextvars import get_contextvars
from structlog.types import EventDict, WrappedLogger

REDACTED = "***REDACTED***"

SENSITIVE_KEYS = frozenset({
    "pat", "token", "secret", "password", "authorization",
    "access_token", "bearer", "auth_header",
})

# These hold ACL scope tokens and counts, not credentials
NON_SENSITIVE_KEYS = frozenset({"scope_token", "token_count"})

RUN_CONTEXT_KEYS = ("run_id", "project", "repository", "branch", "scope")

SEVERITIES = {
    "debug": "DEBUG",
    "info": "INFO",
    "warning": "WARNING",
    "error": "ERROR",
    "critical": "CRITICAL",
}


def is_sensitive_key(key: str) -> bool:
    """Match ``pat``, ``x_pat`` and ``pat_x`` style keys, case-insensitively"""
    lowered = key.lower()
    if lowered in NON_SENSITIVE_KEYS:
        return False
    return any(
        lowered == name or lowered.endswith("_" + name) or lowered.startswith(name + "_")
        for name in SENSITIVE_KEYS
    )


def redact(value: Any) -> Any:
    """Copy of ``value`` with sensitive mapping keys masked, at any depth"""
    if isinstance(value, dict):
        return {
            key: REDACTED if isinstance(key, str) and is_sensitive_key(key) else redact(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact(item) for item in value]
    return value


def add_service_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    event_dict["service"] = "acl-audit"
    return event_dict


def add_run_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Copy bound run values onto the event without overriding explicit ones"""
    context = get_contextvars()
    for key in RUN_CONTEXT_KEYS:
        if key in context:
            event_dict.setdefault(key, context[key])
    return event_dict


def sanitize_sensitive_data(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Mask PATs and auth headers"""
    return redact(event_dict)


def format_exception_info(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Replace ``exc_info`` with a structured ``exception`` field"""
    exc_info = event_dict.pop("exc_info", None)
    if not exc_info:
        return event_dict

    if isinstance(exc_info, BaseException):
        exc_info = (type(exc_info), exc_info, exc_info.__traceback__)
    elif not isinstance(exc_info, tuple):
        exc_info = sys.exc_info()

    exc_type, exc_value, exc_tb = exc_info
    if exc_type is not None:
        event_dict["exception"] = {
            "type": exc_type.__name__,
            "message": str(exc_value),
            "traceback": traceback.format_exception(exc_type, exc_value, exc_tb),
        }
    return event_dict


def set_log_severity(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Uppercase severity field for log aggregation systems"""
    if "level" in event_dict:
        event_dict["severity"] = SEVERITIES.get(event_dict["level"], "INFO")
    return event_dict
