from __future__ import annotations

"""Generation clients that turn selected passages into a grounded answer."""

from dataclasses import dataclass
import json
import logging
from typing import Protocol

import httpx

from blogqa.rag.budget import (
    DEFAULT_ITEM_MAX_CHARS,
    DEFAULT_TOTAL_MAX_SIZE,
    limit_context_items,
    make_context_item,
)
from blogqa.rag.types import ContextItem


class LLMError(RuntimeError):
    """Raised when generation requests fail or responses are invalid."""
    pass


logger = logging.getLogger(__name__)

GENERATION_FAILED = "답변 생성 실패"

_SYSTEM_PROMPT = (
    "You answer questions about a health and medical blog using only the provided "
    "excerpts (contexts). "
    "Rules: "
    "Do not use knowledge outside the excerpts and do not guess. "
    "If unsure, say \"지식베이스에 근거가 부족합니다\" and point to the related source links. "
    "Lead with the key points as short bullet items. "
    "Where possible mark supporting excerpts with footnote indices such as 〔1〕, 〔2〕. "
    "Finish with a numbered list of related links. "
    "If any emergency or warning signs appear, add a recommendation to visit a medical institution. "
    "Answer in the language of the question."
)


def base_system_prompt() -> str:
    """Return the default system prompt for answer generation."""
    return _SYSTEM_PROMPT


@dataclass(frozen=True)
class GenerationResult:
    """Generated answer plus the context items actually sent."""
    answer: str
    used: list[ContextItem]


class Generator(Protocol):
    """Anything that can answer a question from ordered context items."""

    async def generate(self, question: str, contexts: list[ContextItem]) -> GenerationResult:
        raise NotImplementedError


def limit_contexts(
    contexts: list[ContextItem] | list[dict[str, object]],
    item_max_chars: int = DEFAULT_ITEM_MAX_CHARS,
    total_max_size: int = DEFAULT_TOTAL_MAX_SIZE,
) -> list[ContextItem]:
    """Re-apply the size ceiling to incoming contexts, keeping input order."""
    items: list[ContextItem] = []
    for context in contexts:
        if isinstance(context, ContextItem):
            items.append(make_context_item(context.text, context.url, context.title, item_max_chars))
        elif isinstance(context, dict):
            items.append(
                make_context_item(
                    context.get("text"), context.get("url"), context.get("title"), item_max_chars
                )
            )
    return limit_context_items(items, total_max_size=total_max_size)


def _user_payload(question: str, contexts: list[ContextItem]) -> str:
    return json.dumps(
        {"question": question, "contexts": [item.to_dict() for item in contexts]},
        ensure_ascii=False,
    )


@dataclass(frozen=True)
class OpenAIGenerator:
    """Generator backed by OpenAI chat completions."""
    api_key: str
    base_url: str
    model: str
    temperature: float
    max_tokens: int
    timeout: float
    item_max_chars: int = DEFAULT_ITEM_MAX_CHARS
    total_max_size: int = DEFAULT_TOTAL_MAX_SIZE
    system_prompt: str = _SYSTEM_PROMPT
    client: httpx.AsyncClient | None = None

    async def generate(self, question: str, contexts: list[ContextItem]) -> GenerationResult:
        """Generate an answer grounded in the contexts that fit the ceiling."""
        limited = limit_contexts(contexts, self.item_max_chars, self.total_max_size)
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": _user_payload(question, limited)},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        data = await _post_json(
            self.client, f"{self.base_url}/chat/completions", payload, headers, self.timeout
        )
        choices = data.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            raise LLMError("Invalid OpenAI response")
        message = choices[0].get("message") or {}
        if not isinstance(message, dict):
            raise LLMError("Invalid OpenAI response")
        content = message.get("content")
        if content is not None and not isinstance(content, str):
            raise LLMError("Invalid OpenAI response content")
        answer = (content or "").strip() or GENERATION_FAILED
        return GenerationResult(answer=answer, used=limited)


@dataclass(frozen=True)
class OllamaGenerator:
    """Generator backed by the Ollama chat API."""
    base_url: str
    model: str
    temperature: float
    max_tokens: int
    timeout: float
    item_max_chars: int = DEFAULT_ITEM_MAX_CHARS
    total_max_size: int = DEFAULT_TOTAL_MAX_SIZE
    system_prompt: str = _SYSTEM_PROMPT
    client: httpx.AsyncClient | None = None

    async def generate(self, question: str, contexts: list[ContextItem]) -> GenerationResult:
        """Generate an answer using a local Ollama model."""
        limited = limit_contexts(contexts, self.item_max_chars, self.total_max_size)
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": _user_payload(question, limited)},
            ],
            "stream": False,
            "options": {
                "temperature": self.temperature,
                "num_predict": self.max_tokens,
            },
        }
        data = await _post_json(self.client, f"{self.base_url}/api/chat", payload, {}, self.timeout)
        message = data.get("message")
        if not isinstance(message, dict):
            raise LLMError("Invalid LLM response")
        content = message.get("content")
        if not isinstance(content, str):
            raise LLMError("Invalid LLM response")
        return GenerationResult(answer=content.strip() or GENERATION_FAILED, used=limited)


async def _post_json(
    client: httpx.AsyncClient | None,
    url: str,
    payload: dict[str, object],
    headers: dict[str, str],
    timeout: float,
) -> dict[str, object]:
    """POST a JSON payload and decode a JSON object response."""
    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(timeout=timeout)
    try:
        response = await client.post(url, json=payload, headers=headers)
        response.raise_for_status()
        data = response.json()
    except httpx.HTTPError as exc:
        logger.warning("llm_request_failed", extra={"url": url, "detail": type(exc).__name__})
        raise LLMError(str(exc)) from exc
    except ValueError as exc:
        raise LLMError("LLM response is not valid JSON") from exc
    finally:
        if owns_client and client is not None:
            await client.aclose()
    if not isinstance(data, dict):
        raise LLMError("Invalid LLM response")
    return data


def build_generator(
    provider: str,
    *,
    api_key_openai: str | None,
    openai_base_url: str,
    openai_model: str | None,
    ollama_base_url: str,
    ollama_model: str,
    temperature: float,
    max_tokens: int,
    timeout: float,
    item_max_chars: int = DEFAULT_ITEM_MAX_CHARS,
    total_max_size: int = DEFAULT_TOTAL_MAX_SIZE,
    system_prompt: str | None = None,
) -> OpenAIGenerator | OllamaGenerator:
    """Factory for generators based on provider."""
    resolved_prompt = system_prompt or _SYSTEM_PROMPT
    normalized = provider.strip().lower()
    if normalized == "ollama":
        return OllamaGenerator(
            base_url=ollama_base_url.rstrip("/"),
            model=ollama_model,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
            item_max_chars=item_max_chars,
            total_max_size=total_max_size,
            system_prompt=resolved_prompt,
        )
    if normalized != "openai":
        raise LLMError(f"Unsupported LLM provider: {provider}")
    if not api_key_openai:
        raise LLMError("OPENAI_API_KEY is required for OpenAI provider")
    if not openai_model:
        raise LLMError("OPENAI_CHAT_MODEL is required for OpenAI provider")
    return OpenAIGenerator(
        api_key=api_key_openai,
        base_url=openai_base_url.rstrip("/"),
        model=openai_model,
        temperature=temperature,
        max_tokens=max_tokens,
        timeout=timeout,
        item_max_chars=item_max_chars,
        total_max_size=total_max_size,
        system_prompt=resolved_prompt,
    )
