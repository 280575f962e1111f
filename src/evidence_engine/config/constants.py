"""Fixed lexical tables shared by the scoring and re-ranking stages."""

from __future__ import annotations

STOPWORDS = frozenset(
    {
        "a", "about", "above", "after", "again", "against", "all", "also", "am",
        "an", "and", "any", "are", "as", "at", "be", "because", "been", "before",
        "being", "below", "between", "both", "but", "by", "can", "could", "did",
        "do", "does", "doing", "down", "during", "each", "few", "for", "from",
        "further", "had", "has", "have", "having", "he", "her", "here", "hers",
        "him", "his", "how", "i", "if", "in", "into", "is", "it", "its", "itself",
        "just", "may", "me", "might", "more", "most", "must", "my", "no", "nor",
        "not", "now", "of", "off", "on", "once", "only", "or", "other", "our",
        "ours", "out", "over", "own", "same", "shall", "she", "should", "so",
        "some", "such", "than", "that", "the", "their", "theirs", "them", "then",
        "there", "these", "they", "this", "those", "through", "to", "too",
        "under", "until", "up", "upon", "very", "was", "we", "were", "what",
        "when", "where", "which", "while", "who", "whom", "why", "will", "with",
        "within", "without", "would", "you", "your", "yours",
    }
)

# Words shorter than this are never "significant" for topic matching.
SIGNIFICANT_WORD_MIN_LENGTH = 4

# Markers that start a new argument group.
STRONG_MARKERS = frozenset({"cross_reference", "argument_connector"})

WORD_LIMIT_PATTERN = (
    r"(?:up to|approximately|about|around|at least|at most|minimum|maximum|max|min)?"
    r"\s*(\d{1,5})\s*words?\b"
)
