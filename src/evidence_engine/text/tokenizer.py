"""Text preprocessing shared by scoring, re-ranking and MMR selection."""

from __future__ import annotations

import re

from evidence_engine.config.constants import SIGNIFICANT_WORD_MIN_LENGTH, STOPWORDS


def tokenize(text: str) -> list[str]:
    """Tokenize text: lowercase, strip punctuation, remove stopwords."""
    text = text.lower()
    text = re.sub(r"[^\w\s]", " ", text)
    tokens = text.split()
    return [t for t in tokens if t not in STOPWORDS and len(t) > 1]


def query_terms(query: str, min_length: int = 4) -> list[str]:
    """Split on non-word characters and keep terms of at least ``min_length``."""
    return [t for t in re.split(r"\W+", query.lower()) if len(t) >= min_length]


def token_set(text: str) -> frozenset[str]:
    return frozenset(tokenize(text))


def significant_words(text: str) -> frozenset[str]:
    return frozenset(
        t for t in tokenize(text) if len(t) >= SIGNIFICANT_WORD_MIN_LENGTH
    )


def jaccard(left: frozenset[str] | set[str], right: frozenset[str] | set[str]) -> float:
    if not left or not right:
        return 0.0
    union = len(left | right)
    if union == 0:
        return 0.0
    return len(left & right) / union
