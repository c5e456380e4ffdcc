# ==============================
# BM25 Index
# ==============================
"""
In-memory Okapi BM25 over multi-field documents.

Design:
- Each field is scored separately (its own average length) and the field scores
  are combined with per-field boosts.
- idf = ln(1 + (N - df + 0.5) / (df + 0.5)); df counts a document once even if
  the term appears in several fields.
- search() normalises raw scores to 0..1 against what the query could attain:
  every distinct query term scored as well as the best single term hit in the
  corpus. The divisor is fixed per query, so ranking follows raw BM25 and
  min_score is an absolute bar. Words the corpus never saw still count
  against the query.

No external dependencies; the corpus is a tool catalog (hundreds to a few
thousand documents), rebuilt whenever the collection changes.
"""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Set, Tuple

from toolkit.knowledge.stemmer import tokenize

DEFAULT_FIELD_BOOSTS: Dict[str, float] = {
    "name": 2.0,
    "tags": 1.5,
    "category": 1.0,
    "description": 1.0,
}


@dataclass
class _Doc:
    doc_id: str
    fields: Dict[str, Counter] = field(default_factory=dict)
    lengths: Dict[str, int] = field(default_factory=dict)

    def terms(self) -> Set[str]:
        out: Set[str] = set()
        for counts in self.fields.values():
            out.update(counts)
        return out


class BM25Index:
    def __init__(
        self,
        *,
        k1: float = 1.2,
        b: float = 0.75,
        field_boosts: Optional[Mapping[str, float]] = None,
        stemming: bool = True,
    ) -> None:
        self.k1 = k1
        self.b = b
        self.field_boosts = dict(field_boosts or DEFAULT_FIELD_BOOSTS)
        self.stemming = stemming
        self._docs: List[_Doc] = []
        self._df: Counter = Counter()
        self._avg_len: Dict[str, float] = {}
        self._best_term_score = 0.0

    def __len__(self) -> int:
        return len(self._docs)

    def build(self, corpus: Sequence[Tuple[str, Mapping[str, str]]]) -> None:
        """corpus: (doc_id, {field: text}) pairs; unknown fields get boost 1.0."""
        self._docs = []
        self._df = Counter()
        totals: Counter = Counter()

        for doc_id, fields in corpus:
            doc = _Doc(doc_id=doc_id)
            for fname, text in fields.items():
                tokens = tokenize(text, stemming=self.stemming)
                doc.fields[fname] = Counter(tokens)
                doc.lengths[fname] = len(tokens)
                totals[fname] += len(tokens)
            self._df.update(doc.terms())
            self._docs.append(doc)

        n = len(self._docs) or 1
        self._avg_len = {fname: total / n for fname, total in totals.items()}
        self._best_term_score = max(
            (self._term_score(doc, term) for doc in self._docs for term in doc.terms()),
            default=0.0,
        )

    def idf(self, term: str) -> float:
        n = len(self._docs)
        df = self._df.get(term, 0)
        return math.log(1.0 + (n - df + 0.5) / (df + 0.5))

    def _field_score(self, doc: _Doc, fname: str, term: str) -> float:
        tf = doc.fields.get(fname, Counter()).get(term, 0)
        if tf == 0:
            return 0.0
        avg = self._avg_len.get(fname) or 1.0
        norm = 1.0 - self.b + self.b * (doc.lengths.get(fname, 0) / avg)
        return (tf * (self.k1 + 1.0)) / (tf + self.k1 * norm)

    def _term_score(self, doc: _Doc, term: str) -> float:
        return sum(self.field_boosts.get(fname, 1.0) * self._field_score(doc, fname, term) for fname in doc.fields)

    def raw_scores(self, query: str) -> Dict[str, float]:
        """doc_id -> raw bm25, matches only."""
        terms = list(dict.fromkeys(tokenize(query, stemming=self.stemming)))
        if not terms or not self._docs:
            return {}

        out: Dict[str, float] = {}
        for doc in self._docs:
            total = sum(self.idf(term) * self._term_score(doc, term) for term in terms)
            if total > 0:
                out[doc.doc_id] = total
        return out

    def attainable_score(self, query: str) -> float:
        terms = dict.fromkeys(tokenize(query, stemming=self.stemming))
        return sum(self.idf(term) for term in terms) * self._best_term_score

    def search(self, query: str, k: Optional[int] = None) -> List[Tuple[str, float]]:
        raw = self.raw_scores(query)
        if not raw:
            return []
        ceiling = self.attainable_score(query)
        scored = [(doc_id, min(1.0, score / ceiling)) for doc_id, score in raw.items()]
        scored.sort(key=lambda item: (-item[1], item[0]))
        return scored if k is None else scored[:k]
