from __future__ import annotations

from dataclasses import dataclass

from blogqa.rag.types import ContextItem, ScoredResult


DEFAULT_REFUSAL = "지식베이스에 근거가 부족합니다."


@dataclass(frozen=True)
class GuardrailResult:
    allowed: bool
    reason: str


def relevant_results(ranked: list[ScoredResult]) -> list[ScoredResult]:
    """Keep only results sharing at least one term with the query."""
    return [result for result in ranked if result.score > 0]


def require_context(contexts: list[ContextItem]) -> GuardrailResult:
    """Refuse when there is nothing to ground an answer on.

    ``empty_context`` only arises for callers passing contexts directly; the
    pipeline filters to positive scores first, which implies non-blank text.
    """
    if not contexts:
        return GuardrailResult(allowed=False, reason="no_context")
    if all(not item.text.strip() for item in contexts):
        return GuardrailResult(allowed=False, reason="empty_context")
    return GuardrailResult(allowed=True, reason="ok")
