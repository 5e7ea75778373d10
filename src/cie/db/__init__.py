"""Database package."""

from cie.db.client import db_cursor, get_connection
from cie.db.schema import ensure_schema

__all__ = ["db_cursor", "get_connection", "ensure_schema"]
