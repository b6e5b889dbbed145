"""
Query sanitization, preprocessing and limit clamping
"""

import math
import re
from typing import Any
from core.config import settings

_DISALLOWED_CHARS = re.compile(r"[^\w\s\-.,!?]")

STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by",
    "how", "where", "what", "when", "why", "who", "which", "this", "that", "these", "those",
    "is", "are", "was", "were", "be", "been", "being", "have", "has", "had", "do", "does", "did",
    "will", "would", "could", "should", "may", "might", "can", "must",
})


def sanitize_query(query: Any, max_length: int = None) -> str:
    """
    Trim a search query, strip characters outside word/space/basic punctuation
    and cap its length. Non-string input sanitizes to "".
    """
    if not query or not isinstance(query, str):
        return ""
    max_length = max_length or settings.rag_max_query_length
    cleaned = _DISALLOWED_CHARS.sub("", query.strip())
    return cleaned[:max_length].strip()


def preprocess_query(query: str) -> str:
    """
    Keep the meaningful terms of a query for embedding.

    Drops stop words and words of two characters or fewer; falls back to the
    original query when nothing is left.
    """
    words = query.lower().split()
    meaningful = [
        word for word in words
        if len(re.sub(r"[^\w]", "", word)) > 2 and re.sub(r"[^\w]", "", word) not in STOP_WORDS
    ]
    if not meaningful:
        return query
    return " ".join(meaningful)


def clamp_limit(limit: Any, default: int = None, maximum: int = None) -> int:
    """
    Coerce a requested result limit into [1, maximum]. Never raises.

    Missing, non-numeric and non-positive values fall back to the default;
    values above the maximum are capped; fractional values are floored.
    """
    default = default or settings.rag_default_limit
    maximum = maximum or settings.rag_max_limit

    if isinstance(limit, bool) or limit is None:
        return default

    if isinstance(limit, str):
        try:
            limit = float(limit.strip())
        except ValueError:
            return default

    if not isinstance(limit, (int, float)) or math.isnan(limit):
        return default

    if math.isinf(limit):
        return maximum if limit > 0 else default

    value = math.floor(limit)
    if value < 1:
        return default
    return min(value, maximum)
