"""
Text quality metrics stored alongside each embedding.
Recomputed whenever an embedding's text changes.
"""
import re
from typing import Dict

_WHITESPACE_RUN = re.compile(r"\s+")


def count_unique_words(text: str) -> int:
    """
    Count distinct lowercased whitespace-delimited tokens.

    Leading or trailing whitespace yields an empty token, so "  a" counts
    two tokens: "" and "a".
    """
    return len(set(_WHITESPACE_RUN.split(text.lower())))


def information_density(unique_words: int, text_length: int) -> float:
    """Unique words per character; 0.0 for empty text."""
    if text_length == 0:
        return 0.0
    return unique_words / text_length


def compute_quality(text: str) -> Dict[str, float]:
    """
    Compute the quality block for a piece of text.

    Returns:
        Dict with text_length, unique_words and information_density
    """
    text_length = len(text)
    unique_words = count_unique_words(text)
    return {
        "text_length": text_length,
        "unique_words": unique_words,
        "information_density": information_density(unique_words, text_length),
    }
