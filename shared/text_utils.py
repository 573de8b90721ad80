"""
Text normalization for matching list choice labels.

Choice columns in the list store are edited by hand, so the same option
shows up as "Camión", "camion" or " CAMION ". Every comparison against an
option label goes through normalize_text first.
"""

import unicodedata
from typing import Any


def normalize_text(text: Any) -> str:
    """
    Normalize text for comparison.

    Performs:
    - Lowercase conversion
    - Unicode normalization (decompose accents) and accent removal
    - Stripping whitespace

    Args:
        text: Input value; None and non-strings are accepted

    Returns:
        Normalized text string
    """
    if text is None:
        return ""

    # Normalize unicode (decompose accents)
    normalized = unicodedata.normalize("NFD", str(text).lower())
    # Remove combining characters (accents)
    ascii_text = "".join(c for c in normalized if unicodedata.category(c) != "Mn")
    return ascii_text.strip()


def matches_any(text: Any, candidates: tuple[str, ...] | list[str]) -> bool:
    """
    Check whether normalized text equals any of the (already normalized) candidates.

    Args:
        text: Raw value to compare
        candidates: Normalized labels

    Returns:
        True on the first match
    """
    return normalize_text(text) in candidates
