# ==============================
# Glob Filters
# ==============================
"""
Glob matching for tool names.

Pattern rules:
- `*` matches any run of characters, `?` exactly one, `.` is literal.
- A leading `!` negates the pattern.
- With no positive pattern, every name passes the positive side.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Iterable, List, Pattern, Sequence, Union

PatternArg = Union[str, Sequence[str]]


@lru_cache(maxsize=256)
def _glob_regex(pattern: str) -> Pattern[str]:
    body = re.escape(pattern).replace(r"\*", ".*").replace(r"\?", ".")
    return re.compile(f"^{body}$")


def match_glob(name: str, pattern: str) -> bool:
    return _glob_regex(pattern).match(name) is not None


def as_pattern_list(patterns: PatternArg) -> List[str]:
    if isinstance(patterns, str):
        return [patterns]
    return list(patterns)


def matches_patterns(name: str, patterns: Iterable[str]) -> bool:
    positive: List[str] = []
    negative: List[str] = []
    for p in patterns:
        if p.startswith("!"):
            negative.append(p[1:])
        else:
            positive.append(p)

    if positive and not any(match_glob(name, p) for p in positive):
        return False
    return not any(match_glob(name, p) for p in negative)
