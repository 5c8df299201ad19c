# faqbot/embeddings.py
import logging
import time
from typing import Optional

import numpy as np
from openai import OpenAI, OpenAIError
from sentence_transformers import SentenceTransformer

from faqbot.config import Settings
from faqbot.errors import EmbeddingError

log = logging.getLogger(__name__)


def _as_vector(raw) -> np.ndarray:
    vec = np.asarray(raw, dtype=np.float32).ravel()
    if vec.size == 0:
        raise EmbeddingError("empty embedding")
    return vec


# ================== Backends ==================

class EmbeddingProvider:
    """text → fixed-length vector. Any failure surfaces as EmbeddingError (no retries)."""

    def embed(self, text: str) -> np.ndarray:
        raise NotImplementedError


# ---- OPENAI (hosted) ----
class OpenAIEmbeddingProvider(EmbeddingProvider):
    def __init__(self, api_key: Optional[str] = None, model: str = "text-embedding-3-small",
                 timeout: float = 10.0):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._client = None

    def _get_client(self):
        if self._client is None:
            if not self.api_key:
                raise EmbeddingError("OPENAI_API_KEY is not set.")
            # a timeout is reported as APITimeoutError, which is an OpenAIError
            self._client = OpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=0)
        return self._client

    def embed(self, text: str) -> np.ndarray:
        client = self._get_client()
        start = time.time()
        try:
            resp = client.embeddings.create(model=self.model, input=text)
            vec = _as_vector(resp.data[0].embedding)
        except OpenAIError as e:
            raise EmbeddingError(f"Embedding error: {e}") from e
        except (IndexError, AttributeError) as e:
            raise EmbeddingError(f"Unexpected embedding response: {e}") from e
        log.debug("Embedding took %.2fms", (time.time() - start) * 1000)
        return vec


# ---- SENTENCE-TRANSFORMERS (local) ----
class SentenceTransformerEmbeddingProvider(EmbeddingProvider):
    def __init__(self, model_name: str = "sentence-transformers/paraphrase-multilingual-MiniLM-L12-v2"):
        self.model_name = model_name
        self._model = None

    def embed(self, text: str) -> np.ndarray:
        try:
            if self._model is None:
                self._model = SentenceTransformer(self.model_name)
            vec = self._model.encode([text], convert_to_numpy=True, normalize_embeddings=True)
        except Exception as e:
            # the model can fail in many library-specific ways; all count as one failed attempt
            raise EmbeddingError(f"Local embedding error: {e}") from e
        return _as_vector(vec[0])


# ====== Factory ======

def get_embedding_provider(settings: Settings) -> EmbeddingProvider:
    backend = settings.embed_backend
    if backend == "sentence-transformers":
        return SentenceTransformerEmbeddingProvider(model_name=settings.embed_model)
    if backend == "openai":
        return OpenAIEmbeddingProvider(
            api_key=settings.openai_api_key,
            model=settings.embed_model,
            timeout=settings.embed_timeout,
        )
    raise ValueError(f"Unsupported embedding backend: {backend}")
