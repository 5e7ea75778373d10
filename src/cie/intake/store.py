"""Complaint stores consumed by the intake service."""

from __future__ import annotations

import threading
import uuid
from typing import Iterable, Optional, Protocol

from psycopg import Cursor

from cie.config import Settings
from cie.db.client import db_cursor
from cie.models import (
    ACTIVE_STATUSES,
    ActiveComplaint,
    CandidateComplaint,
    ComplaintRecord,
    ComplaintStatus,
    Coordinate,
    Priority,
)
from cie.utils.logging import get_logger
from cie.utils.time import utc_now


logger = get_logger(__name__)

# Older rows were written with "In Progress".
_ACTIVE_STATUS_VALUES: tuple[str, ...] = ACTIVE_STATUSES + ("In Progress",)


class ComplaintStore(Protocol):
    """Protocol for the backing complaint store."""

    def fetch_active(self) -> list[ActiveComplaint]:
        """Return every complaint whose status is Pending or In-Progress."""

    def append(self, candidate: CandidateComplaint, priority: Priority) -> ComplaintRecord:
        """Durably persist an accepted candidate and return the stored record."""

    def update_status(self, complaint_id: str, status: ComplaintStatus) -> ComplaintRecord:
        """Move a complaint through Pending, In-Progress and Resolved; KeyError if unknown."""


class InMemoryComplaintStore:
    """Thread-safe store for tests and dry runs."""

    def __init__(self, records: Optional[Iterable[ComplaintRecord]] = None) -> None:
        self._lock = threading.Lock()
        self._records: list[ComplaintRecord] = list(records or [])

    def fetch_active(self) -> list[ActiveComplaint]:
        with self._lock:
            return [r.to_active() for r in self._records if r.status in ACTIVE_STATUSES]

    def append(self, candidate: CandidateComplaint, priority: Priority) -> ComplaintRecord:
        record = ComplaintRecord(
            complaint_id=str(uuid.uuid4()),
            user_id=candidate.user_id,
            title=candidate.title,
            category=candidate.category,
            description=candidate.description,
            coordinate=candidate.coordinate,
            status="Pending",
            priority=priority,
            created_at=utc_now(),
        )
        with self._lock:
            self._records.append(record)
        return record

    def update_status(self, complaint_id: str, status: ComplaintStatus) -> ComplaintRecord:
        with self._lock:
            for index, record in enumerate(self._records):
                if record.complaint_id == complaint_id:
                    updated = record.model_copy(update={"status": status})
                    self._records[index] = updated
                    return updated
        raise KeyError(complaint_id)

    def records(self) -> list[ComplaintRecord]:
        with self._lock:
            return list(self._records)


class PostgresComplaintStore:
    """Complaint store backed by the ``complaints`` table."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or Settings()

    def fetch_active(self) -> list[ActiveComplaint]:
        with db_cursor(self.settings) as cursor:
            return fetch_active_rows(cursor)

    def append(self, candidate: CandidateComplaint, priority: Priority) -> ComplaintRecord:
        with db_cursor(self.settings) as cursor:
            return insert_complaint(cursor, candidate, priority)

    def update_status(self, complaint_id: str, status: ComplaintStatus) -> ComplaintRecord:
        with db_cursor(self.settings) as cursor:
            return update_complaint_status(cursor, complaint_id, status)


def fetch_active_rows(cursor: Cursor) -> list[ActiveComplaint]:
    """Load active complaints; rows without a location are skipped."""
    placeholders = ", ".join(["%s"] * len(_ACTIVE_STATUS_VALUES))
    cursor.execute(
        "select complaint_id, title, lat, lon, status, created_at from complaints "
        f"where status in ({placeholders}) order by created_at, complaint_id",
        _ACTIVE_STATUS_VALUES,
    )

    active: list[ActiveComplaint] = []
    skipped = 0
    for complaint_id, title, lat, lon, status, created_at in cursor.fetchall():
        if lat is None or lon is None:
            skipped += 1
            continue
        active.append(
            ActiveComplaint(
                complaint_id=str(complaint_id),
                title=title or "",
                coordinate=Coordinate(lat=lat, lon=lon),
                status=status,
                created_at=created_at,
            )
        )

    if skipped:
        logger.warning("fetch_active.skip_no_location count=%s", skipped)
    return active


def insert_complaint(
    cursor: Cursor,
    candidate: CandidateComplaint,
    priority: Priority,
) -> ComplaintRecord:
    """Insert an accepted complaint as Pending and return the stored row."""
    cursor.execute(
        "insert into complaints "
        "(user_id, title, category, description, lat, lon, status, priority) "
        "values (%s, %s, %s, %s, %s, %s, 'Pending', %s) "
        "returning complaint_id, created_at",
        (
            candidate.user_id,
            candidate.title,
            candidate.category,
            candidate.description,
            candidate.coordinate.lat,
            candidate.coordinate.lon,
            priority,
        ),
    )
    complaint_id, created_at = cursor.fetchone()
    return ComplaintRecord(
        complaint_id=str(complaint_id),
        user_id=candidate.user_id,
        title=candidate.title,
        category=candidate.category,
        description=candidate.description,
        coordinate=candidate.coordinate,
        status="Pending",
        priority=priority,
        created_at=created_at,
    )


def update_complaint_status(
    cursor: Cursor,
    complaint_id: str,
    status: ComplaintStatus,
) -> ComplaintRecord:
    """Set a complaint's status and return the updated row."""
    cursor.execute(
        "update complaints set status = %s where complaint_id = %s "
        "returning complaint_id, user_id, title, category, description, lat, lon, "
        "status, priority, created_at",
        (status, complaint_id),
    )
    row = cursor.fetchone()
    if row is None:
        raise KeyError(complaint_id)

    complaint_id, user_id, title, category, description, lat, lon, status, priority, created_at = row
    return ComplaintRecord(
        complaint_id=str(complaint_id),
        user_id=user_id,
        title=title,
        category=category,
        description=description,
        coordinate=Coordinate(lat=lat, lon=lon),
        status=status,
        priority=priority,
        created_at=created_at,
    )
