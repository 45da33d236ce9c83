"""
Text Chunker Service
Bounds document text to an estimated token budget before it is sent to the
AI service. Tokens are approximated as a fixed number of characters.

The truncated text is always a prefix of the input. Cut points prefer a
paragraph break in the last 30% of the budget, then a sentence end in the
last 20%, and only then a hard cut.
"""

import math
from typing import Dict, Any


DEFAULT_CHARS_PER_TOKEN = 4
PARAGRAPH_BREAK = "\n\n"
PARAGRAPH_WINDOW = 0.7
SENTENCE_WINDOW = 0.8


def estimate_tokens(text: str, chars_per_token: int = DEFAULT_CHARS_PER_TOKEN) -> int:
    """
    Approximate the token count of the text.

    Args:
        text: Input text
        chars_per_token: Characters counted as one token

    Returns:
        Estimated number of tokens
    """
    if not text:
        return 0
    return math.ceil(len(text) / chars_per_token)


def truncate_to_token_budget(
    text: str,
    max_tokens: int,
    chars_per_token: int = DEFAULT_CHARS_PER_TOKEN
) -> str:
    """
    Truncate text so it fits inside max_tokens.

    Args:
        text: Input text
        max_tokens: Token budget
        chars_per_token: Characters counted as one token

    Returns:
        A prefix of text no longer than max_tokens * chars_per_token chars
    """
    if not text:
        return ""

    budget = max_tokens * chars_per_token
    if budget <= 0:
        return ""

    if len(text) <= budget:
        return text

    # A break must lie fully inside the budget
    paragraph_at = text.rfind(PARAGRAPH_BREAK, 0, budget)
    if paragraph_at != -1 and paragraph_at >= budget * PARAGRAPH_WINDOW:
        return text[:paragraph_at]

    sentence_at = text.rfind(".", 0, budget)
    if sentence_at != -1 and sentence_at >= budget * SENTENCE_WINDOW:
        return text[:sentence_at + 1]

    return text[:budget]


def chunk_stats(
    original: str,
    truncated: str,
    chars_per_token: int = DEFAULT_CHARS_PER_TOKEN
) -> Dict[str, Any]:
    """Describe a truncation for logging and processing metadata"""
    return {
        "original_chars": len(original),
        "truncated_chars": len(truncated),
        "original_tokens": estimate_tokens(original, chars_per_token),
        "truncated_tokens": estimate_tokens(truncated, chars_per_token),
        "was_truncated": len(truncated) < len(original),
    }
