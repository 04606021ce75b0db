from __future__ import annotations

"""Size-bounded selection of ranked passages for answer generation."""

import json
from typing import Iterable, Mapping

from blogqa.rag.types import ContextItem, Passage, ScoredResult

DEFAULT_ITEM_MAX_CHARS = 1500
DEFAULT_TOTAL_MAX_SIZE = 8000


def serialized_size(item: ContextItem) -> int:
    """Length in characters of the compact JSON form of a context item."""
    return len(json.dumps(item.to_dict(), ensure_ascii=False, separators=(",", ":")))


def make_context_item(
    text: object, url: object, title: object, item_max_chars: int = DEFAULT_ITEM_MAX_CHARS
) -> ContextItem:
    """Build a context item, truncating text and blanking missing fields."""
    return ContextItem(
        text=(text if isinstance(text, str) else "")[: max(0, item_max_chars)],
        url=url if isinstance(url, str) else "",
        title=title if isinstance(title, str) else "",
    )


def limit_context_items(
    items: Iterable[ContextItem],
    total_max_size: int = DEFAULT_TOTAL_MAX_SIZE,
    max_count: int | None = None,
) -> list[ContextItem]:
    """Accept items in order until the next one would exceed the size ceiling."""
    accepted: list[ContextItem] = []
    total = 0
    for item in items:
        if max_count is not None and len(accepted) >= max_count:
            break
        size = serialized_size(item)
        if total + size > total_max_size:
            break
        accepted.append(item)
        total += size
    return accepted


def select_contexts(
    ranked: Iterable[ScoredResult],
    passages: Mapping[str, Passage],
    item_max_chars: int = DEFAULT_ITEM_MAX_CHARS,
    total_max_size: int = DEFAULT_TOTAL_MAX_SIZE,
    max_count: int | None = None,
) -> list[ContextItem]:
    """Select a rank-ordered prefix of passages that fits the context budget.

    Results whose passage is missing from ``passages`` are skipped. The item
    that would overflow ``total_max_size`` is dropped whole and selection
    stops there.
    """
    items = (
        make_context_item(passage.text, passage.meta.url, passage.meta.title, item_max_chars)
        for passage in (passages.get(result.passage_id) for result in ranked)
        if passage is not None
    )
    return limit_context_items(items, total_max_size=total_max_size, max_count=max_count)
