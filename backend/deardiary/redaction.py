"""
Dear Diary — Log Redaction
============================

What:  Scrubs passwords, tokens, session cookies, bearer credentials and CSRF
       values from log text before any handler writes it.
How:   `redact()` applies a fixed list of case-insensitive patterns; the key
       part of each match is kept and the value becomes [REDACTED].
       `RedactingFilter` runs `redact()` over the fully formatted message of
       every record, so secrets passed as %-style args are caught too.
Who:   Installed on the root handler by `setup_logging()` in main.py, and on
       the client logger by `deardiary.client`.
"""

import logging
import re
from typing import List, Pattern

REDACTED = "[REDACTED]"

# A quoted value runs to its closing quote, so spaces and commas inside a
# JSON string are covered; an unquoted (or unterminated) value stops at the
# first delimiter.
_VALUE = r"(?:\"(?:[^\"\\]|\\.)*\"|'(?:[^'\\]|\\.)*'|[\"']?[^\"'\s,}&;]+)"


def _key_value(key: str) -> Pattern[str]:
    return re.compile(
        r"(?P<key>\w*" + key + r"\w*[\"']?\s*[:=]\s*)(?P<value>" + _VALUE + ")",
        re.IGNORECASE,
    )


_KEY_VALUE_PATTERNS: List[Pattern[str]] = [
    # password=..., "password": "...", currentPassword: ...
    _key_value("password"),
    # token=..., "session_token": "..."
    _key_value("token"),
    # csrf=..., csrfToken=...
    _key_value("csrf"),
]

_PLAIN_PATTERNS: List[Pattern[str]] = [
    # Cookie headers: deardiary_session=abc; other=1
    re.compile(r"(?P<key>\w*session\w*=)[^;\s,&]+", re.IGNORECASE),
    # Authorization: Bearer abc.def
    re.compile(r"(?P<key>bearer\s+)[A-Za-z0-9\-._~+/]+=*", re.IGNORECASE),
]


def _mask_value(match: "re.Match[str]") -> str:
    value = match.group("value")
    if value[0] in "\"'":
        return match.group("key") + value[0] + REDACTED + value[0]
    return match.group("key") + REDACTED


def redact(message: str) -> str:
    """Returns `message` with every sensitive value replaced by [REDACTED]."""
    for pattern in _KEY_VALUE_PATTERNS:
        message = pattern.sub(_mask_value, message)
    for pattern in _PLAIN_PATTERNS:
        message = pattern.sub(r"\g<key>" + REDACTED, message)
    return message


class RedactingFilter(logging.Filter):
    """
    Logging filter that rewrites each record's message in place.

    The record's args are folded into the message first, so the filter sees
    exactly the text a formatter would print.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # Mismatched %-args: leave the record for the handler to report.
            return True
        record.msg = redact(message)
        record.args = None
        return True
