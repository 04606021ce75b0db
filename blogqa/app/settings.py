from __future__ import annotations

import os
from dataclasses import dataclass

try:
    from dotenv import load_dotenv
except ImportError:  # pragma: no cover - optional in minimal setups
    load_dotenv = None

if load_dotenv is not None:
    load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes"}


@dataclass(frozen=True)
class Settings:
    chunk_max_len: int = int(os.getenv("RAG_CHUNK_MAX_LEN", "420"))
    chunk_overlap: int = int(os.getenv("RAG_CHUNK_OVERLAP", "60"))
    top_k: int = int(os.getenv("RAG_TOP_K", "8"))
    max_contexts: int = int(os.getenv("RAG_MAX_CONTEXTS", "6"))
    context_item_max_chars: int = int(os.getenv("RAG_CONTEXT_ITEM_MAX_CHARS", "1500"))
    context_max_size: int = int(os.getenv("RAG_CONTEXT_MAX_SIZE", "8000"))
    answerer_mode_raw: str = os.getenv("RAG_ANSWERER", "llm")
    llm_provider: str = os.getenv("RAG_LLM_PROVIDER", "openai")
    openai_api_key: str | None = os.getenv("OPENAI_API_KEY")
    openai_base_url: str = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
    openai_chat_model: str | None = os.getenv("OPENAI_CHAT_MODEL", "gpt-4o-mini")
    ollama_base_url: str = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
    ollama_model: str = os.getenv("OLLAMA_MODEL", "llama3.1:8b")
    llm_temperature: float = float(os.getenv("RAG_LLM_TEMPERATURE", "0.2"))
    llm_max_tokens: int = int(os.getenv("RAG_LLM_MAX_TOKENS", "800"))
    llm_timeout: float = float(os.getenv("RAG_LLM_TIMEOUT", "60"))
    fallback_max_passages: int = int(os.getenv("RAG_FALLBACK_MAX_PASSAGES", "3"))
    fallback_max_sentences: int = int(os.getenv("RAG_FALLBACK_MAX_SENTENCES", "3"))
    feed_timeout: float = float(os.getenv("RAG_FEED_TIMEOUT", "15"))
    feed_max_bytes: int = int(os.getenv("RAG_FEED_MAX_BYTES", "5242880"))
    feed_import_limit: int = int(os.getenv("RAG_FEED_IMPORT_LIMIT", "20"))
    feed_user_agent: str = os.getenv("RAG_FEED_USER_AGENT", "Mozilla/5.0 (Chatbot RSS fetcher)")
    admin_keys_raw: str = os.getenv("RAG_ADMIN_KEYS", "")
    metrics_enabled: bool = _flag("RAG_METRICS_ENABLED", "true")
    log_level: str = os.getenv("RAG_LOG_LEVEL", "INFO")

    @property
    def answerer_mode(self) -> str:
        return os.getenv("RAG_ANSWERER", self.answerer_mode_raw).strip().lower()

    @property
    def admin_keys(self) -> set[str]:
        raw = os.getenv("RAG_ADMIN_KEYS", self.admin_keys_raw)
        return {value.strip() for value in raw.split(",") if value.strip()}

    @property
    def allow_anonymous(self) -> bool:
        return _flag("RAG_ALLOW_ANONYMOUS", "false")


settings = Settings()
