# faqbot/corpus_loader.py
import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Sequence

import pandas as pd
import requests

from faqbot.errors import MalformedRecord, SourceUnavailable

log = logging.getLogger(__name__)

# Accepted headers per field, in priority order (matched case-insensitively).
QUESTION_KEYS = ("question", "質問", "Question")
ANSWER_KEYS = ("answer", "回答", "Answer")
TAG_KEYS = ("tags", "tag", "タグ", "Tags")


@dataclass(frozen=True)
class FAQRecord:
    question: str
    answer: str
    tags: str = ""


# ===== Fetch =====
def fetch_csv(source: str, timeout: float = 10.0) -> str:
    """
    Return the raw CSV text. `source` is either an http(s) URL (e.g. a
    spreadsheet published as CSV) or a local file path.
    """
    if source.startswith(("http://", "https://")):
        try:
            r = requests.get(source, timeout=timeout)
            r.raise_for_status()
        except requests.RequestException as e:
            raise SourceUnavailable(f"FAQ fetch error: {e}") from e
        # published sheets often omit the charset; always UTF-8
        return r.content.decode("utf-8-sig", errors="replace")

    try:
        return Path(source).read_text(encoding="utf-8-sig")
    except OSError as e:
        raise SourceUnavailable(f"FAQ read error: {e}") from e
    except UnicodeDecodeError as e:
        # e.g. a Shift_JIS export from Excel
        raise SourceUnavailable(f"FAQ file is not UTF-8: {e}") from e


# ===== Parse =====
def parse_rows(csv_text: str) -> List[Dict[str, str]]:
    """Header-driven rows; every cell as a string, empty cells as ''."""
    if not csv_text or not csv_text.strip():
        return []
    try:
        df = pd.read_csv(
            io.StringIO(csv_text),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except pd.errors.EmptyDataError:
        return []
    except pd.errors.ParserError as e:
        raise SourceUnavailable(f"FAQ parse error: {e}") from e
    df.columns = [str(c).strip() for c in df.columns]
    return df.to_dict(orient="records")


def _pick(row: Mapping[str, str], keys: Sequence[str]) -> str:
    for k in keys:
        value = row.get(k)
        if value is not None and str(value).strip():
            return str(value)
        # headers are matched loosely on case
        hit = next((kk for kk in row if str(kk).lower() == k.lower()), None)
        if hit is not None and str(row[hit]).strip():
            return str(row[hit])
    return ""


def map_row(row: Mapping[str, str]) -> FAQRecord:
    question = _pick(row, QUESTION_KEYS).strip()
    answer = _pick(row, ANSWER_KEYS).strip()
    if not question or not answer:
        raise MalformedRecord("row without question or answer")
    return FAQRecord(question=question, answer=answer, tags=_pick(row, TAG_KEYS).strip())


# ===== Main API =====
def load_records(source: str, timeout: float = 10.0) -> List[FAQRecord]:
    """
    Fetch + parse + map the FAQ source. Rows without question/answer are
    dropped. Raises SourceUnavailable when the source can't be read, so the
    caller can keep serving its previous data.
    """
    if not source:
        log.warning("FAQ_SHEET_URL not set; continuing without FAQ.")
        return []

    rows = parse_rows(fetch_csv(source, timeout=timeout))
    records: List[FAQRecord] = []
    for i, row in enumerate(rows):
        try:
            records.append(map_row(row))
        except MalformedRecord:
            log.debug("Skipping row %d: question or answer empty", i)
    return records
