"""Utility helpers."""

from cie.utils.geo import distance_meters, validate_coordinates
from cie.utils.hashing import hash_text, lock_id
from cie.utils.logging import configure_logging, get_logger
from cie.utils.text import normalize_title
from cie.utils.time import utc_now

__all__ = [
    "distance_meters",
    "validate_coordinates",
    "hash_text",
    "lock_id",
    "configure_logging",
    "get_logger",
    "normalize_title",
    "utc_now",
]
