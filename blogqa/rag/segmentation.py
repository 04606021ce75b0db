from __future__ import annotations

"""Approximate sentence segmentation used by chunking and summaries.

Boundary heuristics are tuned for Korean and English blog prose. Callers
depend only on the ``SentenceSegmenter`` protocol, so a different locale can
plug in its own pattern without touching chunking or scoring.
"""

import re
from dataclasses import dataclass
from typing import Protocol


class SentenceSegmenter(Protocol):
    """Protocol for splitting text into sentence-like segments."""

    def split(self, text: str) -> list[str]:
        """Return segments in text order."""
        raise NotImplementedError


@dataclass(frozen=True)
class RegexSegmenter:
    """Split at zero-width or separator matches of a compiled pattern."""
    pattern: re.Pattern[str]
    strip: bool = False

    def split(self, text: str) -> list[str]:
        if not text:
            return []
        pieces = self.pattern.split(text)
        if self.strip:
            pieces = [piece.strip() for piece in pieces]
        return [piece for piece in pieces if piece]


# Break after ., !, ? or a newline, and after 다/요/. followed by whitespace.
# Segments keep their surrounding spaces so they concatenate back losslessly.
PASSAGE_BOUNDARY_RE = re.compile(r"(?<=[.!?\n])|(?<=[다요.]\s)")

# Coarser: only sentence-final punctuation (including 다./요.) or a line break.
SUMMARY_BOUNDARY_RE = re.compile(r"(?<=[.!?])\s+|\n+")

PASSAGE_SEGMENTER = RegexSegmenter(PASSAGE_BOUNDARY_RE)
SUMMARY_SEGMENTER = RegexSegmenter(SUMMARY_BOUNDARY_RE, strip=True)
