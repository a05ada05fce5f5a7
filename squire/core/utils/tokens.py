"""Token estimation utilities for managing context budgets."""

import math

CHARS_PER_TOKEN = 4


def estimate_tokens(text: str | None) -> int:
    """Estimate the token cost of a text.

    Uses the ~4 characters per token rule of thumb for English text. The same
    estimate is used for budgeting and for reported token counts.
    """
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN)
