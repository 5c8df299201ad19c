# faqbot/config.py
import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

# Terms that show up in many short, unambiguous questions
# (opening hours, closing days). See similarity.KeywordRule.
DEFAULT_STRONG_TERMS: Tuple[str, ...] = ("営業時間", "定休日")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    return float(raw) if raw else default


def _env_terms(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None:
        return default
    return tuple(t.strip() for t in raw.split(",") if t.strip())


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() not in ("", "0", "false", "no", "off")


@dataclass(frozen=True)
class Settings:
    # ---- FAQ corpus ----
    faq_source: str = ""
    refresh_interval: float = 10 * 60       # seconds
    fetch_timeout: float = 10.0

    # ---- Decision thresholds (tuned by hand) ----
    semantic_threshold: float = 0.65        # cosine, slightly loose
    lexical_threshold: float = 0.6
    strong_terms: Tuple[str, ...] = field(default=DEFAULT_STRONG_TERMS)
    strong_min_score: float = 0.8

    # ---- Embeddings ----
    embed_backend: str = "openai"           # openai | sentence-transformers
    embed_model: str = "text-embedding-3-small"
    embed_timeout: float = 10.0
    openai_api_key: Optional[str] = None

    # ---- Generative fallback ----
    gen_backend: str = "mock"               # openai | ollama | mock
    openai_model: str = "gpt-4o-mini"
    openai_timeout: float = 30.0
    ollama_host: str = "http://127.0.0.1:11434"
    ollama_model: str = "llama3"

    # ---- LINE ----
    line_channel_secret: str = ""
    line_access_token: str = ""
    line_timeout: float = 10.0

    debug_faq: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        """Read settings from the environment; anything unset keeps its default."""
        backend = os.getenv("EMBED_BACKEND", cls.embed_backend).lower().strip()
        default_model = (
            "sentence-transformers/paraphrase-multilingual-MiniLM-L12-v2"
            if backend == "sentence-transformers"
            else cls.embed_model
        )
        return cls(
            faq_source=os.getenv("FAQ_SHEET_URL", "").strip(),
            refresh_interval=_env_float("FAQ_REFRESH_SECONDS", cls.refresh_interval),
            fetch_timeout=_env_float("FAQ_FETCH_TIMEOUT", cls.fetch_timeout),
            semantic_threshold=_env_float("FAQ_SEMANTIC_THRESHOLD", cls.semantic_threshold),
            lexical_threshold=_env_float("FAQ_LEXICAL_THRESHOLD", cls.lexical_threshold),
            strong_terms=_env_terms("FAQ_STRONG_TERMS", DEFAULT_STRONG_TERMS),
            strong_min_score=_env_float("FAQ_STRONG_MIN_SCORE", cls.strong_min_score),
            embed_backend=backend,
            embed_model=os.getenv("EMBED_MODEL", default_model),
            embed_timeout=_env_float("EMBED_TIMEOUT", cls.embed_timeout),
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            gen_backend=os.getenv("GEN_BACKEND", cls.gen_backend).lower().strip() or "mock",
            openai_model=os.getenv("OPENAI_MODEL", cls.openai_model),
            openai_timeout=_env_float("OPENAI_TIMEOUT", cls.openai_timeout),
            ollama_host=os.getenv("OLLAMA_HOST", cls.ollama_host),
            ollama_model=os.getenv("OLLAMA_MODEL", cls.ollama_model),
            line_channel_secret=os.getenv("LINE_CHANNEL_SECRET", ""),
            line_access_token=os.getenv("LINE_CHANNEL_ACCESS_TOKEN", ""),
            line_timeout=_env_float("LINE_TIMEOUT", cls.line_timeout),
            debug_faq=_env_flag("DEBUG_FAQ"),
        )
