"""Text helpers."""

from __future__ import annotations


def normalize_title(title: str) -> str:
    """Normalize a complaint title for duplicate checks: trim and lower-case.

    Inner whitespace is kept as typed; "pot  hole" and "pot hole" are different titles.
    """
    return title.strip().lower()
