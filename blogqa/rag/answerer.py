from __future__ import annotations

"""Extractive answers built from passage sentences, no model call."""

from dataclasses import dataclass

from blogqa.rag.segmentation import SUMMARY_SEGMENTER, SentenceSegmenter
from blogqa.rag.tokenizer import tokenize


def extract_key_sentences(
    passage_text: object,
    query: object,
    max_sentences: int,
    segmenter: SentenceSegmenter = SUMMARY_SEGMENTER,
) -> list[str]:
    """Rank passage sentences by distinct query-term overlap.

    Ties prefer the shorter sentence, then the earlier one.
    """
    if not isinstance(passage_text, str) or max_sentences <= 0:
        return []
    query_terms = set(tokenize(query))
    sentences = segmenter.split(passage_text)
    ranked = sorted(
        sentences,
        key=lambda sentence: (-len(query_terms.intersection(tokenize(sentence))), len(sentence)),
    )
    return ranked[:max_sentences]


@dataclass(frozen=True)
class ExtractiveAnswerer:
    """Compose a fallback answer from the top passages' key sentences."""
    max_passages: int = 3
    max_sentences: int = 3
    header: str = "생성 답변을 사용할 수 없어 지식베이스에서 관련 문장을 발췌했습니다."

    def sentences(self, query: str, passage_texts: list[str]) -> list[str]:
        """Collect key sentences across passages without repeats."""
        picked: list[str] = []
        seen: set[str] = set()
        for text in passage_texts[: self.max_passages]:
            for sentence in extract_key_sentences(text, query, self.max_sentences):
                if sentence in seen:
                    continue
                seen.add(sentence)
                picked.append(sentence)
        return picked[: self.max_sentences]

    def generate(self, query: str, passage_texts: list[str]) -> tuple[str, list[str]]:
        """Return the formatted answer and the sentences it quotes."""
        picked = self.sentences(query, passage_texts)
        if not picked:
            return "", []
        lines = "\n".join(f"- {sentence}" for sentence in picked)
        return f"{self.header}\n{lines}", picked
