from __future__ import annotations

"""Term normalization shared by indexing, scoring and summarization."""

import re

_LINE_BREAK_RE = re.compile(r"[\n\r]")
# Lowercase ASCII letters, digits, whitespace and Hangul syllables survive.
_DISALLOWED_RE = re.compile(r"[^a-z0-9가-힣\s]")
_WHITESPACE_RE = re.compile(r"\s+")


def tokenize(text: object) -> list[str]:
    """Return index terms in text order; non-string input yields no terms."""
    if not isinstance(text, str) or not text:
        return []
    lowered = _LINE_BREAK_RE.sub(" ", text.lower())
    cleaned = _DISALLOWED_RE.sub(" ", lowered)
    return [term for term in _WHITESPACE_RE.split(cleaned) if term]
