# faqbot/resolver.py
import logging
from dataclasses import dataclass
from functools import partial
from typing import Optional, Sequence

import numpy as np

from faqbot.config import Settings
from faqbot.corpus_loader import load_records
from faqbot.embeddings import EmbeddingProvider, get_embedding_provider
from faqbot.errors import EmbeddingError
from faqbot.faq_index import FAQIndex, FAQIndexCache
from faqbot.normalizer import normalize_text
from faqbot.similarity import KeywordRule, build_rules, cosine_scores, lexical_rank

log = logging.getLogger(__name__)

SEMANTIC = "semantic"
LEXICAL = "lexical"


@dataclass(frozen=True)
class MatchResult:
    answer: str
    via_method: str          # "semantic" | "lexical"
    score: float
    question: str = ""       # matched FAQ question, for debugging


class Resolver:
    """
    FAQ-first lookup: embeddings similarity, then a lexical safety net.

    `resolve()` returns a MatchResult or None (no FAQ cleared its threshold).
    It never raises for a failed embedding call; the query just falls through
    to the lexical stage.
    """

    def __init__(
        self,
        cache: FAQIndexCache,
        embedder: EmbeddingProvider,
        semantic_threshold: float = 0.65,
        lexical_threshold: float = 0.6,
        rules: Sequence[KeywordRule] = (),
    ):
        self.cache = cache
        self.embedder = embedder
        self.semantic_threshold = semantic_threshold
        self.lexical_threshold = lexical_threshold
        self.rules = tuple(rules)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Resolver":
        embedder = get_embedding_provider(settings)
        cache = FAQIndexCache(
            loader=partial(load_records, settings.faq_source, timeout=settings.fetch_timeout),
            embedder=embedder,
            refresh_interval=settings.refresh_interval,
        )
        return cls(
            cache=cache,
            embedder=embedder,
            semantic_threshold=settings.semantic_threshold,
            lexical_threshold=settings.lexical_threshold,
            rules=build_rules(settings.strong_terms, settings.strong_min_score),
        )

    # ---- stages ----
    def _semantic_match(self, index: FAQIndex, user_text: str) -> Optional[MatchResult]:
        try:
            query_vec = self.embedder.embed(user_text)
        except EmbeddingError as e:
            log.warning("Query embedding failed, lexical only: %s", e)
            return None

        sims = cosine_scores(index.matrix, query_vec)
        if sims.size == 0:
            return None
        best = int(np.argmax(sims))  # first max wins on ties
        score = float(sims[best])
        if score < self.semantic_threshold:
            log.debug("FAQ(emb) best=%.2f below %.2f", score, self.semantic_threshold)
            return None
        item = index.records[best]
        log.info('FAQ(emb) hit: "%s" sim=%.2f', item.question, score)
        return MatchResult(answer=item.answer, via_method=SEMANTIC, score=score, question=item.question)

    def _lexical_match(self, index: FAQIndex, user_text: str) -> Optional[MatchResult]:
        query_norm = normalize_text(user_text)
        if not query_norm:
            return None

        # (tier, score): containment and rule floors outrank prefix-only overlap
        best_key, best_item = (-1, 0.0), None
        for item in index.records:
            if not item.normalized_question:
                continue
            key = lexical_rank(query_norm, item.normalized_question, self.rules)
            if key[1] > 0.0 and key > best_key:
                best_key, best_item = key, item

        best_score = best_key[1]
        if best_item is None or best_score < self.lexical_threshold:
            return None
        log.info('FAQ(keyword) hit: "%s" score=%.2f', best_item.question, best_score)
        return MatchResult(answer=best_item.answer, via_method=LEXICAL, score=best_score,
                           question=best_item.question)

    # ---- main API ----
    def resolve(self, user_text: str) -> Optional[MatchResult]:
        index = self.cache.get_current()
        if not len(index):
            return None
        return self._semantic_match(index, user_text) or self._lexical_match(index, user_text)
