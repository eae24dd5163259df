"""
Logging redaction helpers.
Redacts auth tokens and backend keys from log messages.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable


_PATTERNS: Iterable[tuple[re.Pattern, str]] = (
    # Authorization: Bearer <token>
    (re.compile(r"(Bearer\s+)([A-Za-z0-9\-\._~+/]+=*)"), r"\1[REDACTED]"),
    # Bare JWTs (header.payload.signature)
    (re.compile(r"eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+"), "[REDACTED_JWT]"),
    # apikey header / anon key / service role key in config dumps
    (
        re.compile(r"(?i)(apikey|api[_-]?key|anon[_-]?key|service[_-]?role[_-]?key)\s*[:=]\s*([A-Za-z0-9\-\._]+)"),
        r"\1=[REDACTED]",
    ),
    # Generic access/refresh token key/value
    (re.compile(r"(?i)(access_token|refresh_token|token)\s*[:=]\s*([A-Za-z0-9\-\._]+)"), r"\1=[REDACTED]"),
    # Password embedded in a database URL
    (re.compile(r"(://[^:/\s]+:)([^@\s]+)(@)"), r"\1[REDACTED]\3"),
)


def redact_message(message: str) -> str:
    redacted = message
    for pattern, replacement in _PATTERNS:
        redacted = pattern.sub(replacement, redacted)
    return redacted


class RedactingFilter(logging.Filter):
    """Filter that redacts sensitive data from log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # Malformed %-args; let the handler report it as usual
            return True
        record.msg = redact_message(message)
        record.args = ()
        return True


def install_redaction_filter() -> None:
    root = logging.getLogger()
    # Avoid duplicate filters
    for existing in root.filters:
        if isinstance(existing, RedactingFilter):
            return
    root.addFilter(RedactingFilter())
    # Root-logger filters do not see records propagated from child loggers,
    # so attach to the handlers too.
    for handler in root.handlers:
        if not any(isinstance(f, RedactingFilter) for f in handler.filters):
            handler.addFilter(RedactingFilter())
