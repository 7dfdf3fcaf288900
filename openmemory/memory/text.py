"""Message text cleanup applied before storage."""

import re
from typing import Optional

# Non-greedy, no nesting: an unterminated "<" is left as text.
_MARKUP_RE = re.compile(r"<[^>]+>")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_message(raw: Optional[str]) -> str:
    """Strip angle-bracket markup and collapse whitespace runs to one space."""
    if not raw:
        return ""
    cleaned = _MARKUP_RE.sub("", raw)
    return _WHITESPACE_RE.sub(" ", cleaned).strip()
