# faqbot/similarity.py
from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple

import numpy as np

# Prefix-only overlap is a weak signal; keep it well below containment.
PREFIX_DAMPING = 0.5


@dataclass(frozen=True)
class KeywordRule:
    """
    Explicit precision override for the lexical score: when BOTH the query and
    the FAQ question contain `term`, the score is raised to at least `min_score`.
    Meant for frequent, unambiguous questions ("営業時間", "定休日", ...).
    """
    term: str
    min_score: float = 0.8

    def applies(self, query_norm: str, question_norm: str) -> bool:
        return bool(self.term) and self.term in query_norm and self.term in question_norm


def build_rules(terms: Iterable[str], min_score: float = 0.8) -> Sequence[KeywordRule]:
    return tuple(KeywordRule(term=t, min_score=min_score) for t in terms if t)


# ===== Semantic =====
def cosine_similarity(a, b) -> float:
    """Cosine between two vectors. Undefined results (zero vectors, shape mismatch) count as 0."""
    a = np.asarray(a, dtype=np.float64).ravel()
    b = np.asarray(b, dtype=np.float64).ravel()
    if a.shape != b.shape or a.size == 0:
        return 0.0
    denom = np.linalg.norm(a) * np.linalg.norm(b)
    if not np.isfinite(denom) or denom == 0.0:
        return 0.0
    sim = float(np.dot(a, b) / denom)
    if not np.isfinite(sim):
        return 0.0
    return max(-1.0, min(1.0, sim))


def cosine_scores(matrix: np.ndarray, query_vec) -> np.ndarray:
    """
    Cosine of `query_vec` against every row of `matrix` (n, d) → (n,).
    NaN/inf are replaced by 0 so they never win the ranking.
    """
    q = np.asarray(query_vec, dtype=np.float64).ravel()
    if matrix.size == 0 or matrix.ndim != 2 or matrix.shape[1] != q.shape[0]:
        return np.zeros(matrix.shape[0] if matrix.ndim == 2 else 0, dtype=np.float64)
    with np.errstate(divide="ignore", invalid="ignore"):
        sims = matrix @ q / (np.linalg.norm(matrix, axis=1) * np.linalg.norm(q))
    sims = np.nan_to_num(sims, nan=0.0, posinf=0.0, neginf=0.0)
    return np.clip(sims, -1.0, 1.0)


# ===== Lexical =====
def _common_prefix_len(a: str, b: str) -> int:
    n = 0
    for ca, cb in zip(a, b):
        if ca != cb:
            break
        n += 1
    return n


# Lexical tiers: prefix-only overlap always ranks below a real match.
PREFIX_TIER = 0
MATCH_TIER = 1


def lexical_rank(query_norm: str, question_norm: str, rules: Sequence[KeywordRule] = ()) -> Tuple[int, float]:
    """
    Ranking key `(tier, score)` between two already-normalized strings.

    MATCH_TIER: equality (1), containment (len(shorter) / len(longer)) or a
    KeywordRule floor. PREFIX_TIER: common prefix / len(shorter), damped by
    PREFIX_DAMPING, or no overlap at all (0). Comparing keys as tuples keeps
    any prefix-only candidate below every containment candidate.
    """
    if query_norm == question_norm:
        return MATCH_TIER, 1.0
    if not query_norm or not question_norm:
        return PREFIX_TIER, 0.0

    shorter, longer = sorted((query_norm, question_norm), key=len)
    if shorter in longer:
        tier, score = MATCH_TIER, len(shorter) / len(longer)
    else:
        tier = PREFIX_TIER
        score = PREFIX_DAMPING * _common_prefix_len(query_norm, question_norm) / len(shorter)

    for rule in rules:
        if rule.applies(query_norm, question_norm):
            tier, score = MATCH_TIER, max(score, rule.min_score)
    return tier, min(score, 1.0)


def lexical_score(query_norm: str, question_norm: str, rules: Sequence[KeywordRule] = ()) -> float:
    """Surface similarity in [0, 1]; see lexical_rank for the cases."""
    return lexical_rank(query_norm, question_norm, rules)[1]
