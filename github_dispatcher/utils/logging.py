"""Structured logging setup using structlog."""

from __future__ import annotations

import logging
import re
import sys

import structlog


# Rule commands can carry credentials (clone URLs with userinfo, --token=...)
# and are logged verbatim in queue items and raw payloads.
_REDACTED_FIELDS = ("payload", "item", "error")

_URL_USERINFO = re.compile(r"(?P<scheme>[a-z][a-z0-9+.\-]*://)[^/\s:@]*(?::[^/\s@]*)?@", re.IGNORECASE)
_SECRET_ASSIGNMENT = re.compile(
    r"(?P<name>[\w\-]*(?:token|secret|password|passwd|api[_\-]?key)[\w\-]*)(?P<sep>[\"']?\s*[:=]\s*)[\"']?[^\s\"',]+",
    re.IGNORECASE,
)

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def redact_credentials(text: str) -> str:
    text = _URL_USERINFO.sub(r"\g<scheme>***@", text)
    return _SECRET_ASSIGNMENT.sub(r"\g<name>\g<sep>***REDACTED***", text)


def _redact_credentials(
    _logger: structlog.types.WrappedLogger,
    _method: str,
    event_dict: structlog.types.EventDict,
) -> structlog.types.EventDict:
    for key in _REDACTED_FIELDS:
        value = event_dict.get(key)
        if isinstance(value, (bytes, bytearray)):
            value = bytes(value).decode("utf-8", errors="replace")
        if isinstance(value, str):
            event_dict[key] = redact_credentials(value)
    return event_dict


def parse_log_level(level: str) -> int:
    """Map a level name to a stdlib level. Unknown names fall back to INFO."""
    return _LEVELS.get(level.strip().upper(), logging.INFO)


def setup_logging(level: str = "INFO", json_output: bool = False) -> None:
    """Configure structlog with optional JSON output."""
    numeric_level = parse_log_level(level)

    # Payloads are logged verbatim at DEBUG
    if numeric_level <= logging.DEBUG:
        print(
            "WARNING: DEBUG logging is enabled. Raw webhook payloads will "
            "appear in logs.",
            file=sys.stderr,
        )

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        _redact_credentials,
    ]

    if json_output:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric_level)

    # Quiet noisy libraries
    for name in ("redis", "asyncio"):
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
