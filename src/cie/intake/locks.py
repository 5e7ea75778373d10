"""Per-key mutual exclusion for the fetch-classify-persist sequence."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import ContextManager, Iterable, Iterator, Optional, Protocol

import psycopg

from cie.config import Settings
from cie.db.client import get_connection
from cie.intake.keys import IntakeKey
from cie.utils.hashing import lock_id
from cie.utils.logging import get_logger


logger = get_logger(__name__)


class KeyedLock(Protocol):
    """Protocol for holding a set of intake keys exclusively."""

    def hold(self, keys: Iterable[IntakeKey]) -> ContextManager[None]:
        """Acquire every key (sorted) and release them all on exit."""


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class LocalKeyedLock:
    """In-process keyed lock backed by one ``threading.Lock`` per key."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: dict[IntakeKey, _Entry] = {}

    @contextmanager
    def hold(self, keys: Iterable[IntakeKey]) -> Iterator[None]:
        ordered = sorted(set(keys))
        acquired: list[tuple[IntakeKey, _Entry]] = []
        try:
            for key in ordered:
                entry = self._checkout(key)
                try:
                    entry.lock.acquire()
                except BaseException:
                    self._checkin(key)
                    raise
                acquired.append((key, entry))
            yield
        finally:
            for key, entry in reversed(acquired):
                entry.lock.release()
                self._checkin(key)

    def active_keys(self) -> int:
        """Number of keys currently held or waited on."""
        with self._guard:
            return len(self._entries)

    def _checkout(self, key: IntakeKey) -> _Entry:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.users += 1
            return entry

    def _checkin(self, key: IntakeKey) -> None:
        with self._guard:
            entry = self._entries[key]
            entry.users -= 1
            if entry.users == 0:
                del self._entries[key]


class PostgresKeyedLock:
    """Cross-process keyed lock using session-level Postgres advisory locks.

    Each ``hold`` opens a dedicated connection; closing it drops any advisory
    locks it still owns, so a crashed holder never leaves keys locked.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or Settings()

    @contextmanager
    def hold(self, keys: Iterable[IntakeKey]) -> Iterator[None]:
        ids = sorted({lock_id(key.as_text()) for key in keys})
        conn = get_connection(self.settings, autocommit=True)
        acquired: list[int] = []
        try:
            with conn.cursor() as cursor:
                for key_id in ids:
                    cursor.execute("select pg_advisory_lock(%s)", (key_id,))
                    acquired.append(key_id)
            yield
        finally:
            try:
                with conn.cursor() as cursor:
                    for key_id in reversed(acquired):
                        cursor.execute("select pg_advisory_unlock(%s)", (key_id,))
            except psycopg.Error as exc:
                logger.warning("advisory_lock.unlock_failed: %s", exc)
            finally:
                conn.close()
