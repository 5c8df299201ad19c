# faqbot/generator.py
import logging
from typing import Optional

import requests
from openai import OpenAI, OpenAIError

from faqbot.config import Settings

log = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "あなたは企業向けLINEボットです。簡潔・丁寧な日本語で150文字以内を目安に回答してください。"
    "わからない場合は推測せず、その旨を伝えてください。"
)

# Sent when the model gives nothing usable.
FALLBACK_REPLY = "すみません、うまく答えられませんでした。"


# ================== Backends ==================

class GeneratorBackend:
    def generate(self, user_text: str) -> str:
        raise NotImplementedError


class MockBackend(GeneratorBackend):
    def generate(self, user_text: str) -> str:
        return FALLBACK_REPLY


# ---- OLLAMA (local) ----
class OllamaBackend(GeneratorBackend):
    def __init__(self, model: str = "llama3", host: str = "http://127.0.0.1:11434", temperature: float = 0.3,
                 timeout: float = 60.0):
        self.model = model
        self.host = host.rstrip("/")
        self.temperature = temperature
        self.timeout = timeout

    def generate(self, user_text: str) -> str:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": user_text},
            ],
            "options": {"temperature": self.temperature, "num_ctx": 2048},
            "stream": False,
        }
        try:
            r = requests.post(f"{self.host}/api/chat", json=payload, timeout=self.timeout)
            r.raise_for_status()
            data = r.json()
        except (requests.RequestException, ValueError) as e:
            log.error("[GEN][ollama] error: %s", e)
            return FALLBACK_REPLY
        content = ((data or {}).get("message") or {}).get("content") or ""
        return content.strip() or FALLBACK_REPLY


# ---- OPENAI (hosted) ----
class OpenAIBackend(GeneratorBackend):
    def __init__(self, api_key: Optional[str] = None, model: str = "gpt-4o-mini", temperature: float = 0.3,
                 max_tokens: int = 200, timeout: float = 30.0):
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

    def generate(self, user_text: str) -> str:
        if not self.api_key:
            log.error("[GEN][openai] OPENAI_API_KEY is not set.")
            return FALLBACK_REPLY

        client = OpenAI(api_key=self.api_key, timeout=self.timeout)
        try:
            resp = client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": user_text},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except OpenAIError as e:
            log.error("[GEN][openai] request error: %s", e)
            return FALLBACK_REPLY
        text = (resp.choices[0].message.content or "").strip() if resp.choices else ""
        return text or FALLBACK_REPLY


# ====== Factory ======

def get_backend(settings: Settings) -> GeneratorBackend:
    backend = (settings.gen_backend or "").lower().strip()
    if backend == "ollama":
        return OllamaBackend(model=settings.ollama_model, host=settings.ollama_host)
    if backend == "openai":
        return OpenAIBackend(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            timeout=settings.openai_timeout,
        )
    return MockBackend()


def generate_reply(user_text: str, settings: Settings) -> str:
    return get_backend(settings).generate(user_text)
