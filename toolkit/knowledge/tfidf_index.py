# ==============================
# TF-IDF Index
# ==============================
"""
Sparse TF-IDF vectors with cosine similarity.

Used as the second signal in hybrid discovery. Term frequency is length
normalised, idf is smoothed: ln((N + 1) / (df + 1)) + 1. Scores are clamped to
0..1 and only positive similarities are returned.
"""

from __future__ import annotations

import math
from collections import Counter
from typing import Dict, List, Sequence, Tuple

from toolkit.knowledge.stemmer import tokenize

SparseVec = Dict[str, float]


def _weigh(tokens: List[str], idf: Dict[str, float]) -> Tuple[SparseVec, float]:
    if not tokens:
        return {}, 1.0
    total = len(tokens)
    vec: SparseVec = {}
    for term, count in Counter(tokens).items():
        weight = (count / total) * idf.get(term, 0.0)
        if weight > 0:
            vec[term] = weight
    norm = math.sqrt(sum(w * w for w in vec.values())) or 1.0
    return vec, norm


class TfidfIndex:
    def __init__(self, *, stemming: bool = True) -> None:
        self.stemming = stemming
        self._idf: Dict[str, float] = {}
        self._docs: List[Tuple[str, SparseVec, float]] = []

    def __len__(self) -> int:
        return len(self._docs)

    def build(self, corpus: Sequence[Tuple[str, str]]) -> None:
        tokenised = [(doc_id, tokenize(text, stemming=self.stemming)) for doc_id, text in corpus]
        df: Counter = Counter()
        for _, tokens in tokenised:
            df.update(set(tokens))

        n = len(tokenised)
        self._idf = {term: math.log((n + 1) / (count + 1)) + 1.0 for term, count in df.items()}
        self._docs = []
        for doc_id, tokens in tokenised:
            vec, norm = _weigh(tokens, self._idf)
            self._docs.append((doc_id, vec, norm))

    def search(self, query: str, k: int = 10) -> List[Tuple[str, float]]:
        tokens = [t for t in tokenize(query, stemming=self.stemming) if t in self._idf]
        if not tokens:
            return []
        q_vec, q_norm = _weigh(tokens, self._idf)

        scores: List[Tuple[str, float]] = []
        for doc_id, vec, norm in self._docs:
            small, big = (q_vec, vec) if len(q_vec) <= len(vec) else (vec, q_vec)
            dot = sum(w * big[t] for t, w in small.items() if t in big)
            sim = dot / (q_norm * norm)
            if sim > 0:
                scores.append((doc_id, min(1.0, max(0.0, sim))))

        scores.sort(key=lambda item: (-item[1], item[0]))
        return scores[:k]
