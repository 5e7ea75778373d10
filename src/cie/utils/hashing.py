"""Hashing helpers for lock ids and log correlation."""

from __future__ import annotations

import hashlib


def hash_text(value: str) -> str:
    """Return a short SHA-256 hash for the provided text."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:12]


def lock_id(value: str) -> int:
    """Map text onto a signed 64-bit integer usable as a Postgres advisory lock id."""
    digest = hashlib.sha256(value.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big", signed=True)
