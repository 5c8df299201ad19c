from dataclasses import FrozenInstanceError
from functools import partial

import numpy as np
import pytest

from faqbot.corpus_loader import FAQRecord, load_records
from faqbot.embeddings import EmbeddingProvider
from faqbot.errors import EmbeddingError, SourceUnavailable
from faqbot.faq_index import FAQIndex, FAQIndexCache, build_generation


class FakeClock:
    def __init__(self, t=1000.0):
        self.t = t

    def __call__(self):
        return self.t


class DummyEncoder(EmbeddingProvider):
    """Returns a fixed vector per text; texts listed in `fail` raise EmbeddingError."""

    def __init__(self, vectors=None, fail=(), default=(1.0, 0.0)):
        self.vectors = vectors or {}
        self.fail = set(fail)
        self.default = default
        self.calls = []

    def embed(self, text):
        self.calls.append(text)
        if text in self.fail:
            raise EmbeddingError(f"boom: {text}")
        return np.asarray(self.vectors.get(text, self.default), dtype=np.float32)


class SequenceLoader:
    """Each call returns the next item; exceptions in the list are raised."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0

    def __call__(self):
        res = self.results[min(self.calls, len(self.results) - 1)]
        self.calls += 1
        if isinstance(res, Exception):
            raise res
        return res


CORPUS = [
    FAQRecord("営業時間は？", "9時から18時です"),
    FAQRecord("定休日は？", "日曜日です", "holiday"),
]


def test_empty_cache_is_stale_and_loads_on_first_call():
    clock = FakeClock()
    loader = SequenceLoader(CORPUS)
    cache = FAQIndexCache(loader, DummyEncoder(), refresh_interval=600, clock=clock)
    assert cache.is_stale()
    assert len(cache.current) == 0

    index = cache.get_current()
    assert loader.calls == 1
    assert [r.question for r in index.records] == ["営業時間は？", "定休日は？"]
    assert [r.normalized_question for r in index.records] == ["営業時間は", "定休日は"]
    assert index.generated_at == 1000.0
    assert index.dimension == 2
    assert cache.last_report.ok and cache.last_report.embedded == 2


def test_fresh_cache_is_not_reloaded():
    clock = FakeClock()
    loader = SequenceLoader(CORPUS)
    cache = FAQIndexCache(loader, DummyEncoder(), refresh_interval=600, clock=clock)
    first = cache.get_current()

    clock.t += 599
    assert cache.get_current() is first
    assert loader.calls == 1

    clock.t += 1  # age == interval → stale
    second = cache.get_current()
    assert loader.calls == 2
    assert second is not first


def test_loader_failure_keeps_previous_generation():
    clock = FakeClock()
    loader = SequenceLoader(CORPUS, SourceUnavailable("FAQ fetch error: 503"))
    cache = FAQIndexCache(loader, DummyEncoder(), refresh_interval=600, clock=clock)
    first = cache.get_current()
    assert len(first) == 2

    clock.t += 700
    assert cache.get_current() is first
    assert cache.last_report.ok is False
    assert "503" in cache.last_report.error


def test_loader_failure_on_empty_cache_stays_empty():
    cache = FAQIndexCache(SequenceLoader(SourceUnavailable("down")), DummyEncoder(), clock=FakeClock())
    index = cache.get_current()
    assert len(index) == 0
    assert cache.is_stale()


def test_embedding_failure_drops_only_that_record():
    encoder = DummyEncoder(fail={"定休日は？"})
    cache = FAQIndexCache(SequenceLoader(CORPUS), encoder, clock=FakeClock())
    report = cache.refresh()

    assert [r.question for r in cache.current.records] == ["営業時間は？"]
    assert report.ok
    assert (report.attempted, report.embedded, report.failed) == (2, 1, 1)
    assert encoder.calls == ["営業時間は？", "定休日は？"]


def test_dimension_mismatch_is_excluded():
    records = [FAQRecord("a", "1"), FAQRecord("b", "2"), FAQRecord("c", "3")]
    encoder = DummyEncoder(vectors={"a": (1.0, 0.0), "b": (1.0, 0.0, 0.0), "c": (0.0, 1.0)})
    index, report = build_generation(records, encoder, now=5.0)
    assert [r.question for r in index.records] == ["a", "c"]
    assert index.matrix.shape == (2, 2)
    assert report.failed == 1


def test_build_generation_uses_progress_wrapper():
    seen = []

    def progress(items):
        seen.extend(items)
        return items

    index, _ = build_generation(CORPUS, DummyEncoder(), now=0.0, progress=progress)
    assert seen == CORPUS
    assert len(index) == 2


def test_refresh_replaces_generation_wholesale():
    clock = FakeClock()
    loader = SequenceLoader(CORPUS, [FAQRecord("駐車場は？", "あります")])
    cache = FAQIndexCache(loader, DummyEncoder(), refresh_interval=10, clock=clock)
    first = cache.get_current()
    clock.t += 10
    second = cache.get_current()

    assert [r.question for r in second.records] == ["駐車場は？"]
    # the old generation object is untouched
    assert [r.question for r in first.records] == ["営業時間は？", "定休日は？"]


def test_empty_index_defaults():
    index = FAQIndex()
    assert len(index) == 0
    assert index.dimension == 0
    assert index.generated_at is None


def test_frozen_generation():
    index = FAQIndex()
    with pytest.raises(FrozenInstanceError):
        index.records = ()


def test_non_utf8_reload_keeps_previous_generation(tmp_path):
    csv_path = tmp_path / "faqs.csv"
    csv_path.write_text("question,answer\n営業時間は？,9時から18時です\n", encoding="utf-8")
    clock = FakeClock()
    cache = FAQIndexCache(partial(load_records, str(csv_path)), DummyEncoder(),
                          refresh_interval=600, clock=clock)
    first = cache.get_current()
    assert len(first) == 1

    # re-saved from Excel as Shift_JIS
    csv_path.write_bytes("question,answer\n定休日は？,日曜日です\n".encode("shift_jis"))
    clock.t += 600
    assert cache.get_current() is first
    assert cache.last_report.ok is False


def test_attempted_counts_only_records_sent_to_embedder():
    encoder = DummyEncoder()
    _, report = build_generation(CORPUS, encoder, now=0.0, progress=lambda items: items[:1])
    assert encoder.calls == ["営業時間は？"]
    assert (report.attempted, report.embedded, report.failed) == (1, 1, 0)
