"""Fallback token estimation.

Providers normally report exact usage.  When a response carries no
usage metadata the turn is still counted, using a conservative
chars-per-token ratio that errs towards over-counting so that the
auto-reset threshold is reached early rather than late.
"""

CHARS_PER_TOKEN = 3
"""Conservative ratio (~3.5-4 for English, ~1.5-2 for CJK)."""


def estimate_tokens(text: str) -> int:
    """Return an estimated token count for *text* (at least 1 for non-empty)."""
    if not text:
        return 0
    return max(1, len(text) // CHARS_PER_TOKEN)
