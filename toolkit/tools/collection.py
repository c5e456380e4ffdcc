# ==============================
# Tool Collection
# ==============================
"""
Ordered, queryable set of Tools.

Design:
- Lookup is by exact name; with duplicate names (one per account) the first wins.
- Filtering returns a new collection; the backing list is never mutated in place.
- Pattern filtering warns through an injectable logger when no pattern is given.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional

from toolkit.tools.base import Tool
from toolkit.tools.filters import PatternArg, as_pattern_list, matches_patterns
from toolkit.utils.errors import ToolNotFoundError

_default_logger = logging.getLogger(__name__)


class Tools:
    def __init__(self, tools: Optional[Iterable[Tool]] = None) -> None:
        self._tools: List[Tool] = list(tools or [])
        self._by_name: Dict[str, Tool] = {}
        for tool in self._tools:
            self._by_name.setdefault(tool.name, tool)

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[Tool]:
        return iter(list(self._tools))

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __repr__(self) -> str:
        return f"Tools({[t.name for t in self._tools]!r})"

    # ==============================
    # Lookup
    # ==============================
    def get_tool(self, name: str) -> Optional[Tool]:
        return self._by_name.get(name)

    def require(self, name: str) -> Tool:
        tool = self.get_tool(name)
        if tool is None:
            raise ToolNotFoundError(name)
        return tool

    def names(self) -> List[str]:
        return [t.name for t in self._tools]

    # ==============================
    # Filtering
    # ==============================
    def filter(self, predicate: Callable[[Tool], bool]) -> "Tools":
        return Tools(t for t in self._tools if predicate(t))

    def filter_by_patterns(
        self,
        patterns: Optional[PatternArg],
        *,
        logger: Optional[logging.Logger] = None,
    ) -> "Tools":
        """
        Glob filter (`*`, `?`, `!negation`).

        No pattern at all is allowed but logged as a warning; everything is returned.
        """
        pattern_list = as_pattern_list(patterns) if patterns else []
        if not pattern_list:
            (logger or _default_logger).warning("No filter pattern provided; returning all tools")
            return Tools(self._tools)
        return self.filter(lambda t: matches_patterns(t.name, pattern_list))

    def with_tools(self, extra: Iterable[Tool]) -> "Tools":
        return Tools([*self._tools, *extra])

    # ==============================
    # Export
    # ==============================
    def to_array(self) -> List[Tool]:
        return list(self._tools)

    def to_openai(self) -> List[Dict[str, Any]]:
        return [t.to_openai() for t in self._tools]

    def to_agent_framework(self, *, executable: bool = True) -> Dict[str, Dict[str, Any]]:
        out: Dict[str, Dict[str, Any]] = {}
        for t in self._tools:
            out.update(t.to_agent_framework(executable=executable))
        return out

    def meta_tools(self, *, hybrid_alpha: Optional[float] = None, **index_kwargs: Any) -> "Tools":
        """Discovery + execution meta tools over this collection."""
        from toolkit.tools.meta_tools import build_meta_tools

        return build_meta_tools(self, hybrid_alpha=hybrid_alpha, **index_kwargs)
