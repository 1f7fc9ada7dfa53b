"""structlog setup: one key=value line per event, secrets redacted."""
from __future__ import annotations

import logging
import re
import sys

import structlog

REDACTED = "***"
_SECRET_KEYS = frozenset({"secret", "token", "authorization", "x-revalidation-secret"})
_SECRET_QUERY_RE = re.compile(r"(?i)([?&](?:secret|token)=)[^&\s]*")


def redact_query_secrets(value: str) -> str:
    """Mask ``secret=``/``token=`` query parameters inside a URL or query string."""
    return _SECRET_QUERY_RE.sub(rf"\g<1>{REDACTED}", value)


def _clean(value: str) -> str:
    escaped = (
        value.replace("\\", "\\\\")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return redact_query_secrets(escaped)


def sanitize_processor(logger, method_name, event_dict):
    """Keep every entry on one line and never print a shared secret."""
    for key, value in event_dict.items():
        if key.lower() in _SECRET_KEYS and value is not None:
            event_dict[key] = REDACTED
        elif isinstance(value, str):
            event_dict[key] = _clean(value)
        elif isinstance(value, (list, tuple)):
            event_dict[key] = [_clean(item) if isinstance(item, str) else item for item in value]
    return event_dict


def configure_logging(level: int = logging.INFO) -> None:
    """Route stdlib logging (aiohttp included) and structlog to stdout."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level)

    access_logger = logging.getLogger("aiohttp.access")
    access_logger.handlers = []
    access_logger.propagate = True

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            # after format_exc_info so tracebacks are flattened too
            sanitize_processor,
            structlog.processors.KeyValueRenderer(
                key_order=["timestamp", "level", "logger", "event"],
                drop_missing=True,
            ),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
