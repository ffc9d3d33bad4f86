"""Logging filters that scrub gateway credentials from log output."""

from __future__ import annotations

import logging
import re

_SENSITIVE_PATTERN = re.compile(
    r"(Bearer\s+[\w\.-]+"
    r"|access_token\"?\s*[:=]\s*\"?[^\"\s,}]+\"?"
    r"|\b(?-i:APP_USR|TEST)-[\w-]{8,})",
    re.IGNORECASE,
)

REDACTED = "**REDACTED**"


def scrub(text: str) -> str:
    return _SENSITIVE_PATTERN.sub(REDACTED, text)


class SensitiveFilter(logging.Filter):
    """Replace access tokens in log records with a redaction marker."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.args:
            try:
                message = record.getMessage()
            except (TypeError, ValueError):
                return True
            cleaned = scrub(message)
            if cleaned != message:
                record.msg = cleaned
                record.args = None
        elif isinstance(record.msg, str):
            record.msg = scrub(record.msg)
        return True


__all__ = ["REDACTED", "SensitiveFilter", "scrub"]
