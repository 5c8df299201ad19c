# faqbot/main.py
import json
import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional, Tuple

from fastapi import Depends, FastAPI, Header, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from faqbot import __version__
from faqbot.config import Settings
from faqbot.errors import LineReplyError
from faqbot.generator import generate_reply
from faqbot.line_client import LineClient, verify_signature
from faqbot.resolver import MatchResult, Resolver

# ---------------- Logging ----------------
logging.basicConfig(
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    level=logging.INFO,
)
log = logging.getLogger("line-bot")

NON_TEXT_REPLY = "テキストでご質問ください。"
BUSY_REPLY = "只今混み合っています。少し時間をおいてお試しください。"

# -------- FastAPI setup --------
app = FastAPI(title="LINE FAQ Bot API", version=__version__)


# -------- Wiring (overridable in tests) --------
@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()


# one resolver (and so one FAQ cache) per process
@lru_cache(maxsize=1)
def get_resolver() -> Resolver:
    return Resolver.from_settings(get_settings())


def get_line_client(settings: Settings = Depends(get_settings)) -> LineClient:
    return LineClient(settings.line_access_token, timeout=settings.line_timeout)


class ChatRequest(BaseModel):
    query: str


class ChatResponse(BaseModel):
    mode: str
    answer: str
    meta: Dict[str, Any]


# -------- Decision --------
def answer_text(text: str, resolver: Resolver, settings: Settings) -> Tuple[str, str, Optional[MatchResult]]:
    """FAQ first; the generative model only when no FAQ entry is confident enough."""
    hit = resolver.resolve(text)
    if hit is not None:
        return "faq", hit.answer, hit
    return "generative", generate_reply(text, settings), None


def handle_event(ev: Dict[str, Any], resolver: Resolver, line: LineClient, settings: Settings) -> None:
    reply_token = ev.get("replyToken")
    if not reply_token:
        return

    message = ev.get("message") or {}
    if ev.get("type") != "message" or message.get("type") != "text":
        line.reply(reply_token, NON_TEXT_REPLY)
        return

    text = message.get("text") or ""

    # Debug: sending `debug` returns internal state (keep DEBUG_FAQ off in production)
    if settings.debug_faq and text.strip().lower() == "debug":
        index = resolver.cache.get_current()
        line.reply(
            reply_token,
            f"FAQ件数: {len(index)}\n閾値: {resolver.semantic_threshold} / {resolver.lexical_threshold}",
        )
        return

    _, answer, _ = answer_text(text, resolver, settings)
    line.reply(reply_token, answer)


def handle_events(events: List[Dict[str, Any]], resolver: Resolver, line: LineClient, settings: Settings) -> None:
    for ev in events:
        if not isinstance(ev, dict):
            log.warning("Skipping malformed event: %r", ev)
            continue
        try:
            handle_event(ev, resolver, line, settings)
        except Exception:
            log.exception("Event error")
            reply_token = ev.get("replyToken")
            if not reply_token:
                continue
            try:
                line.reply(reply_token, BUSY_REPLY)
            except LineReplyError as e:
                log.error("Busy reply failed: %s", e)


# -------- Routes --------
@app.get("/health")
def health():
    return {"status": "ok", "version": app.version}


@app.get("/webhook", response_class=PlainTextResponse)
def webhook_ping():
    return "ok"


@app.post("/webhook", response_class=PlainTextResponse)
async def webhook(
    request: Request,
    x_line_signature: str = Header(default=""),
    settings: Settings = Depends(get_settings),
    resolver: Resolver = Depends(get_resolver),
    line: LineClient = Depends(get_line_client),
):
    # signature is computed over the raw body
    raw = await request.body()
    if not verify_signature(raw, x_line_signature, settings.line_channel_secret):
        log.warning("Signature mismatch")
        return PlainTextResponse("unauthorized", status_code=401)

    try:
        body = json.loads(raw)
    except ValueError:
        return PlainTextResponse("bad json", status_code=400)

    events = body.get("events") if isinstance(body, dict) else None
    if not isinstance(events, list):
        events = []
    await run_in_threadpool(handle_events, events, resolver, line, settings)
    return PlainTextResponse("ok")


@app.post("/chat", response_model=ChatResponse)
def chat(
    req: ChatRequest,
    settings: Settings = Depends(get_settings),
    resolver: Resolver = Depends(get_resolver),
):
    mode, answer, hit = answer_text(req.query, resolver, settings)
    meta: Dict[str, Any] = {
        "faq_count": len(resolver.cache.current),
        "semantic_threshold": resolver.semantic_threshold,
        "lexical_threshold": resolver.lexical_threshold,
    }
    if hit is not None:
        meta.update({"via": hit.via_method, "score": hit.score, "question": hit.question})
    else:
        meta["generator_backend"] = settings.gen_backend
    return ChatResponse(mode=mode, answer=answer, meta=meta)
