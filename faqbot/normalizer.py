# faqbot/normalizer.py
import re
import unicodedata

# Punctuation and brackets that carry no meaning for matching (ASCII and full-width).
_STRIP_CHARS = "、。・!！?？~〜－—_＿|｜/／\\（）()[]【】「」『』\"'`.,:：;；"
_STRIP_RE = re.compile("[" + re.escape(_STRIP_CHARS) + "]")
_SPACE_RE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """
    Light Japanese-friendly normalization for lexical comparison:
    NFKC (full-width → half-width), casefold, drop punctuation, drop whitespace.
    The same function is applied to FAQ questions and to user queries.
    """
    s = unicodedata.normalize("NFKC", str(text or ""))
    s = s.casefold()
    s = _STRIP_RE.sub("", s)
    return _SPACE_RE.sub("", s)
