import pytest
import requests

import faqbot.corpus_loader as loader_mod
from faqbot.corpus_loader import FAQRecord, load_records, map_row, parse_rows
from faqbot.errors import MalformedRecord, SourceUnavailable


class DummyResponse:
    def __init__(self, text="", status=200):
        self.content = text.encode("utf-8")
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


def test_load_local_csv_with_english_headers(tmp_path):
    csv_path = tmp_path / "faqs.csv"
    csv_path.write_text(
        "question,answer,tags\n"
        "営業時間は？,9時から18時です,hours\n"
        "定休日は？,日曜日です,\n",
        encoding="utf-8",
    )
    records = load_records(str(csv_path))
    assert records == [
        FAQRecord("営業時間は？", "9時から18時です", "hours"),
        FAQRecord("定休日は？", "日曜日です", ""),
    ]


def test_japanese_and_mixed_case_headers(tmp_path):
    csv_path = tmp_path / "faqs.csv"
    csv_path.write_text("質問,回答,タグ\n駐車場はありますか,あります,access\n", encoding="utf-8")
    assert load_records(str(csv_path)) == [FAQRecord("駐車場はありますか", "あります", "access")]

    csv_path.write_text("QUESTION,ANSWER\n q1 , a1 \n", encoding="utf-8")
    assert load_records(str(csv_path)) == [FAQRecord("q1", "a1", "")]


def test_first_non_empty_alias_wins():
    row = {"question": "  ", "質問": "日本語の質問", "answer": "a"}
    assert map_row(row).question == "日本語の質問"


def test_rows_without_question_or_answer_are_dropped(tmp_path):
    csv_path = tmp_path / "faqs.csv"
    csv_path.write_text(
        "question,answer\n"
        "q1,a1\n"
        ",a2\n"
        "q3,   \n"
        "\n"
        "q4,a4\n",
        encoding="utf-8",
    )
    records = load_records(str(csv_path))
    assert [r.question for r in records] == ["q1", "q4"]


def test_map_row_raises_malformed():
    with pytest.raises(MalformedRecord):
        map_row({"question": "q", "answer": ""})
    with pytest.raises(MalformedRecord):
        map_row({"foo": "bar"})


def test_parse_rows_empty_text():
    assert parse_rows("") == []
    assert parse_rows("   \n") == []


def test_http_source(monkeypatch):
    calls = {}

    def fake_get(url, timeout):
        calls["url"], calls["timeout"] = url, timeout
        return DummyResponse("question,answer\n営業時間は？,9時から18時です\n")

    monkeypatch.setattr(loader_mod.requests, "get", fake_get)
    records = load_records("https://example.com/faq.csv", timeout=3.0)
    assert records == [FAQRecord("営業時間は？", "9時から18時です", "")]
    assert calls == {"url": "https://example.com/faq.csv", "timeout": 3.0}


def test_http_error_raises_source_unavailable(monkeypatch):
    monkeypatch.setattr(loader_mod.requests, "get", lambda url, timeout: DummyResponse("nope", status=500))
    with pytest.raises(SourceUnavailable):
        load_records("https://example.com/faq.csv")


def test_timeout_raises_source_unavailable(monkeypatch):
    def fake_get(url, timeout):
        raise requests.Timeout("timed out")

    monkeypatch.setattr(loader_mod.requests, "get", fake_get)
    with pytest.raises(SourceUnavailable):
        load_records("https://example.com/faq.csv")


def test_missing_local_file_raises_source_unavailable(tmp_path):
    with pytest.raises(SourceUnavailable):
        load_records(str(tmp_path / "missing.csv"))


def test_unset_source_gives_empty_corpus():
    assert load_records("") == []


def test_non_utf8_local_file_raises_source_unavailable(tmp_path):
    csv_path = tmp_path / "faqs.csv"
    csv_path.write_bytes("question,answer\n営業時間は？,9時から18時です\n".encode("shift_jis"))
    with pytest.raises(SourceUnavailable):
        load_records(str(csv_path))
