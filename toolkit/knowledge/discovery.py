# ==============================
# Discovery Index
# ==============================
"""
Rank a Tool collection against a free-text query.

Design:
- One ToolDocument per tool: name, description, category (first "_" segment of the
  name) and tags (every name segment, action verbs repeated so they weigh more).
- BM25 with stemming is the primary signal. With hybrid_alpha < 1 a TF-IDF cosine
  score is blended in: alpha * bm25 + (1 - alpha) * tfidf.
- Hits below min_score are dropped here, never returned with a low score.
- Every hit is resolved back to the tool's full parameter schema.

The index is built once at construction; build a new one when the collection changes.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, List, Optional

from toolkit.contracts.search_schema import SearchHit, SearchQuery, ToolDocument
from toolkit.knowledge.bm25_index import BM25Index
from toolkit.knowledge.tfidf_index import TfidfIndex
from toolkit.tools.filters import PatternArg, as_pattern_list, matches_patterns

if TYPE_CHECKING:
    from toolkit.config.schema import DiscoveryConfig
    from toolkit.tools.base import Tool
    from toolkit.tools.collection import Tools

logger = logging.getLogger(__name__)

ACTION_VERBS = ("create", "update", "delete", "get", "list", "search")

DEFAULT_LIMIT = 5
DEFAULT_MIN_SCORE = 0.3


def tool_document(tool: "Tool") -> ToolDocument:
    segments = [s for s in tool.name.lower().split("_") if s]
    verbs = [s for s in segments if s in ACTION_VERBS]
    return ToolDocument(
        name=tool.name,
        description=tool.description or "",
        category=segments[0] if segments else "",
        tags=[*segments, *verbs],
    )


class DiscoveryIndex:
    def __init__(
        self,
        tools: "Tools",
        *,
        k1: float = 1.2,
        b: float = 0.75,
        hybrid_alpha: float = 1.0,
        default_limit: int = DEFAULT_LIMIT,
        default_min_score: float = DEFAULT_MIN_SCORE,
    ) -> None:
        if not 0.0 <= hybrid_alpha <= 1.0:
            raise ValueError(f"hybrid_alpha must be between 0 and 1, got {hybrid_alpha}")
        self.tools = tools
        self.hybrid_alpha = hybrid_alpha
        self.default_limit = default_limit
        self.default_min_score = default_min_score
        self.documents: Dict[str, ToolDocument] = {t.name: tool_document(t) for t in tools}

        self._bm25 = BM25Index(k1=k1, b=b)
        self._bm25.build(
            [
                (
                    doc.name,
                    {
                        "name": doc.name,
                        "description": doc.description,
                        "category": doc.category,
                        "tags": " ".join(doc.tags),
                    },
                )
                for doc in self.documents.values()
            ]
        )

        self._tfidf: Optional[TfidfIndex] = None
        if hybrid_alpha < 1.0:
            self._tfidf = TfidfIndex()
            self._tfidf.build(
                [(doc.name, f"{doc.name} {doc.description} {' '.join(doc.tags)}") for doc in self.documents.values()]
            )
        logger.debug("discovery index built over %d tools", len(self.documents))

    @classmethod
    def from_config(cls, tools: "Tools", config: "DiscoveryConfig") -> "DiscoveryIndex":
        return cls(
            tools,
            k1=config.k1,
            b=config.b,
            hybrid_alpha=config.hybrid_alpha,
            default_limit=config.limit,
            default_min_score=config.min_score,
        )

    def __len__(self) -> int:
        return len(self.documents)

    # ==============================
    # Query
    # ==============================
    def _scores(self, query: str) -> Dict[str, float]:
        bm25 = dict(self._bm25.search(query))
        if self._tfidf is None:
            return bm25

        tfidf = dict(self._tfidf.search(query, k=len(self.documents) or 1))
        alpha = self.hybrid_alpha
        combined: Dict[str, float] = {}
        for name in set(bm25) | set(tfidf):
            score = alpha * bm25.get(name, 0.0) + (1.0 - alpha) * tfidf.get(name, 0.0)
            combined[name] = min(1.0, max(0.0, score))
        return combined

    def search(
        self,
        query: str,
        *,
        limit: Optional[int] = None,
        min_score: Optional[float] = None,
        filter_patterns: Optional[PatternArg] = None,
    ) -> List[SearchHit]:
        if not query or not query.strip():
            return []
        limit = self.default_limit if limit is None else limit
        min_score = self.default_min_score if min_score is None else min_score
        if limit <= 0:
            return []
        patterns = as_pattern_list(filter_patterns) if filter_patterns else []

        ranked = sorted(self._scores(query).items(), key=lambda item: (-item[1], item[0]))
        hits: List[SearchHit] = []
        for name, score in ranked:
            if score < min_score:
                break
            if patterns and not matches_patterns(name, patterns):
                continue
            tool = self.tools.get_tool(name)
            if tool is None:
                continue
            hits.append(
                SearchHit(
                    name=tool.name,
                    description=tool.description,
                    parameters=tool.parameters.to_schema(),
                    score=round(score, 6),
                )
            )
            if len(hits) >= limit:
                break
        return hits

    def run(self, query: SearchQuery) -> List[SearchHit]:
        return self.search(
            query.query,
            limit=query.limit,
            min_score=query.min_score,
            filter_patterns=query.filter_patterns,
        )
