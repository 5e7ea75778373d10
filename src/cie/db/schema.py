"""Schema for the complaints table."""

from __future__ import annotations

from psycopg import Cursor


COMPLAINTS_DDL = """
create table if not exists complaints (
    complaint_id text primary key default gen_random_uuid()::text,
    user_id text not null,
    title text not null,
    category text not null default '',
    description text not null default '',
    lat double precision,
    lon double precision,
    status text not null default 'Pending',
    priority text not null,
    created_at timestamptz not null default now()
)
"""

ACTIVE_INDEX_DDL = """
create index if not exists complaints_active_idx
    on complaints (status)
    where status in ('Pending', 'In-Progress', 'In Progress')
"""


def ensure_schema(cursor: Cursor) -> None:
    """Create the complaints table and its index if missing."""
    cursor.execute(COMPLAINTS_DDL)
    cursor.execute(ACTIVE_INDEX_DDL)
