"""Freeform address normalization for cache keys.

The normalized form is only ever used to look up and store cache entries; it
is never shown to callers.
"""

import re

_WHITESPACE_RE = re.compile(r"\s+")
_DISALLOWED_RE = re.compile(r"[^a-z0-9 ]")


def normalize_address(raw: str) -> str:
    """Normalize a freeform address into a canonical cache key.

    Lowercases the input, turns any whitespace into a single space, drops
    every character other than ``a-z``, ``0-9`` and space, collapses the
    remaining spaces, and trims both ends.

    Args:
        raw: Address exactly as supplied by the caller.

    Returns:
        Normalized key; empty string when nothing survives normalization.
    """
    lowered = _WHITESPACE_RE.sub(" ", raw.lower())
    stripped = _DISALLOWED_RE.sub("", lowered)
    return _WHITESPACE_RE.sub(" ", stripped).strip()
