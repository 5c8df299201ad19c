# faqbot/line_client.py
import base64
import hashlib
import hmac
import logging

import requests

from faqbot.errors import LineReplyError

log = logging.getLogger(__name__)

LINE_REPLY_URL = "https://api.line.me/v2/bot/message/reply"


def compute_signature(body: bytes, channel_secret: str) -> str:
    digest = hmac.new(channel_secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_signature(body: bytes, signature: str, channel_secret: str) -> bool:
    """X-Line-Signature is base64(HMAC-SHA256(channel secret, raw body))."""
    expected = compute_signature(body, channel_secret or "")
    return hmac.compare_digest(expected, signature or "")


class LineClient:
    def __init__(self, access_token: str, timeout: float = 10.0, url: str = LINE_REPLY_URL):
        self.access_token = access_token
        self.timeout = timeout
        self.url = url

    def reply(self, reply_token: str, text: str) -> None:
        payload = {
            "replyToken": reply_token,
            "messages": [{"type": "text", "text": text}],
        }
        headers = {"Authorization": f"Bearer {self.access_token}"}
        try:
            r = requests.post(self.url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise LineReplyError(f"LINE reply error: {e}") from e
        if not r.ok:
            raise LineReplyError(f"LINE reply error: {r.status_code} {r.text}")
