# ==============================
# Tokenizer + Light Stemmer
# ==============================
"""
Lexical normalisation shared by the BM25 and TF-IDF indexes.

Pipeline: lowercase -> split on anything that is not [a-z0-9] (underscores
included, so tool names split into their segments) -> drop stopwords -> stem.

The stemmer only folds inflection (plurals, -ed, -ing, trailing -e). It is
deliberately shallow: "create", "created", "creates" and "creating" all land on
"creat", while short tokens such as "hris" or "id" are left alone.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import FrozenSet, List

_SPLIT_RE = re.compile(r"[^a-z0-9]+")
_VOWELS = frozenset("aeiouy")
_NO_UNDOUBLE = frozenset("lsz")

STOPWORDS: FrozenSet[str] = frozenset(
    {
        "a", "an", "the", "and", "or", "but", "if", "then", "else", "for", "of",
        "in", "on", "to", "from", "by", "with", "as", "at", "is", "are", "was",
        "were", "be", "been", "it", "this", "that", "these", "those", "not", "no",
        "can", "could", "should", "would", "may", "might", "do", "does", "did",
        "have", "has", "had", "you", "your", "i", "me", "my", "we", "our",
        "all", "some", "any", "want", "need",
    }
)


def _has_vowel(stem: str) -> bool:
    return any(c in _VOWELS for c in stem)


def _undouble(stem: str) -> str:
    if len(stem) >= 3 and stem[-1] == stem[-2] and stem[-1] not in _VOWELS and stem[-1] not in _NO_UNDOUBLE:
        return stem[:-1]
    return stem


@lru_cache(maxsize=4096)
def stem(token: str) -> str:
    """Fold common English inflections; documents and queries go through the same call."""
    word = token
    if len(word) <= 3 or word.isdigit():
        return word

    if word.endswith(("ies", "ied")) and len(word) > 4:
        word = word[:-3] + "y"
    elif word.endswith("sses"):
        word = word[:-2]
    elif word.endswith("s") and not word.endswith(("ss", "us", "is")):
        word = word[:-1]

    for suffix in ("ing", "ed"):
        if word.endswith(suffix):
            base = word[: -len(suffix)]
            if len(base) >= 3 and _has_vowel(base):
                word = _undouble(base)
            break

    if word.endswith("e") and len(word) > 4:
        word = word[:-1]
    return word


def split_words(text: str) -> List[str]:
    return [t for t in _SPLIT_RE.split((text or "").lower()) if t]


def tokenize(text: str, *, stemming: bool = True) -> List[str]:
    out: List[str] = []
    for tok in split_words(text):
        if tok in STOPWORDS:
            continue
        out.append(stem(tok) if stemming else tok)
    return out
