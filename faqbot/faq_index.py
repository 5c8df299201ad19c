# faqbot/faq_index.py
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Tuple

import numpy as np

from faqbot.corpus_loader import FAQRecord
from faqbot.embeddings import EmbeddingProvider
from faqbot.errors import EmbeddingError, SourceUnavailable
from faqbot.normalizer import normalize_text

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndexedFAQRecord:
    question: str
    answer: str
    tags: str
    normalized_question: str
    embedding: np.ndarray = field(repr=False, compare=False)


@dataclass(frozen=True)
class FAQIndex:
    """One immutable generation of the cached corpus."""
    records: Tuple[IndexedFAQRecord, ...] = ()
    generated_at: Optional[float] = None
    matrix: np.ndarray = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        # (n, d) embedding matrix for vectorized cosine
        if self.matrix is None:
            if self.records:
                m = np.vstack([r.embedding for r in self.records]).astype(np.float32)
            else:
                m = np.zeros((0, 0), dtype=np.float32)
            object.__setattr__(self, "matrix", m)

    def __len__(self) -> int:
        return len(self.records)

    @property
    def dimension(self) -> int:
        return int(self.matrix.shape[1]) if len(self.records) else 0


@dataclass(frozen=True)
class RefreshReport:
    """Result of one refresh attempt (best-effort batch)."""
    ok: bool
    attempted: int = 0
    embedded: int = 0
    error: Optional[str] = None

    @property
    def failed(self) -> int:
        return self.attempted - self.embedded


def build_generation(
    records: Iterable[FAQRecord],
    embedder: EmbeddingProvider,
    now: float,
    progress: Optional[Callable[[Iterable], Iterable]] = None,
) -> Tuple[FAQIndex, RefreshReport]:
    """
    Normalize and embed every record, one call at a time. Records whose
    embedding fails (or whose dimension differs from the first vector) are
    left out of the generation and counted as failed.
    """
    records = list(records)
    items = progress(records) if progress else records
    out: List[IndexedFAQRecord] = []
    dim: Optional[int] = None
    attempted = 0

    for r in items:
        attempted += 1
        try:
            emb = embedder.embed(r.question)
        except EmbeddingError as e:
            log.warning("Embedding failed for %r: %s", r.question, e)
            continue
        if dim is None:
            dim = emb.shape[0]
        elif emb.shape[0] != dim:
            log.warning("Embedding for %r has dimension %d, expected %d; skipped",
                        r.question, emb.shape[0], dim)
            continue
        out.append(IndexedFAQRecord(
            question=r.question,
            answer=r.answer,
            tags=r.tags,
            normalized_question=normalize_text(r.question),
            embedding=emb,
        ))

    index = FAQIndex(records=tuple(out), generated_at=now)
    report = RefreshReport(ok=True, attempted=attempted, embedded=len(out))
    return index, report


class FAQIndexCache:
    """
    Time-bounded, lazily refreshed cache of the FAQ index.

    The current generation is replaced by a single reference assignment once
    the new one is fully built; readers never see a half-built index. There is
    no refresh lock: two requests hitting a stale cache at once may both
    reload, and the last one to finish wins.
    """

    def __init__(
        self,
        loader: Callable[[], List[FAQRecord]],
        embedder: EmbeddingProvider,
        refresh_interval: float = 600.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.loader = loader
        self.embedder = embedder
        self.refresh_interval = refresh_interval
        self.clock = clock
        self._index = FAQIndex()
        self.last_report: Optional[RefreshReport] = None

    @property
    def current(self) -> FAQIndex:
        """Current generation, without triggering a refresh."""
        return self._index

    def is_stale(self) -> bool:
        generated_at = self._index.generated_at
        if generated_at is None:
            return True
        return self.clock() - generated_at >= self.refresh_interval

    def get_current(self) -> FAQIndex:
        if self.is_stale():
            self.refresh()
        return self._index

    def refresh(self) -> RefreshReport:
        now = self.clock()
        try:
            records = self.loader()
        except SourceUnavailable as e:
            log.error("FAQ refresh failed, keeping %d cached entries: %s", len(self._index), e)
            report = RefreshReport(ok=False, error=str(e))
            self.last_report = report
            return report

        index, report = build_generation(records, self.embedder, now)
        self._index = index
        self.last_report = report
        log.info("FAQ loaded: %d rows, embedded: %d", report.attempted, report.embedded)
        return report
