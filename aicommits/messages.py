"""Normalization of raw candidate commit messages returned by a backend."""

from __future__ import annotations

import re
from typing import Iterable

_NEWLINES_RE = re.compile(r"[\r\n]")
# A single period directly after a word character at the very end.
_TRAILING_PERIOD_RE = re.compile(r"(\w)\.$")


def sanitize_message(message: str) -> str:
    """Return one candidate trimmed, flattened to one line and without a final period."""
    sanitized = message.strip()
    sanitized = _NEWLINES_RE.sub("", sanitized)
    return _TRAILING_PERIOD_RE.sub(r"\1", sanitized)


def process_messages(messages: Iterable[str]) -> list[str]:
    """Sanitize, drop empties and deduplicate candidates.

    Order of first occurrence is preserved. The function is idempotent:
    ``process_messages(process_messages(x)) == process_messages(x)``.
    """
    seen: set[str] = set()
    result: list[str] = []
    for raw in messages:
        sanitized = sanitize_message(raw)
        if not sanitized or sanitized in seen:
            continue
        seen.add(sanitized)
        result.append(sanitized)
    return result
