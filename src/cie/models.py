"""Core data models for complaint intake."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


ComplaintStatus = Literal["Pending", "In-Progress", "Resolved"]
Priority = Literal["Low", "Medium", "High"]

ACTIVE_STATUSES: tuple[str, ...] = ("Pending", "In-Progress")

_STATUS_ALIASES = {
    "pending": "Pending",
    "in-progress": "In-Progress",
    "in progress": "In-Progress",
    "in_progress": "In-Progress",
    "resolved": "Resolved",
}


def normalize_status(value: object) -> object:
    """Map stored status spellings ("In Progress", "pending") to canonical values."""
    if isinstance(value, str):
        return _STATUS_ALIASES.get(value.strip().lower(), value)
    return value


class Coordinate(BaseModel):
    """Latitude/longitude pair in degrees."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    lat: float = Field(ge=-90.0, le=90.0)
    lon: float = Field(ge=-180.0, le=180.0)


class ActiveComplaint(BaseModel):
    """Snapshot view of a stored complaint that is still open."""

    model_config = ConfigDict(frozen=True)

    complaint_id: str
    title: str
    coordinate: Coordinate
    status: ComplaintStatus
    created_at: datetime

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: object) -> object:
        return normalize_status(value)


class CandidateComplaint(BaseModel):
    """A complaint being submitted; id and timestamp come from the store."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    title: str
    category: str = ""
    description: str = ""
    coordinate: Coordinate
    user_id: str

    @field_validator("title")
    @classmethod
    def _require_title(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("title must not be blank")
        return value


class ComplaintRecord(BaseModel):
    """Persisted complaint as written by the store."""

    complaint_id: str
    user_id: str
    title: str
    category: str = ""
    description: str = ""
    coordinate: Coordinate
    status: ComplaintStatus = "Pending"
    priority: Priority
    created_at: datetime

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: object) -> object:
        return normalize_status(value)

    def to_active(self) -> ActiveComplaint:
        return ActiveComplaint(
            complaint_id=self.complaint_id,
            title=self.title,
            coordinate=self.coordinate,
            status=self.status,
            created_at=self.created_at,
        )


class AcceptDecision(BaseModel):
    """Candidate accepted with a priority tier."""

    model_config = ConfigDict(frozen=True)

    priority: Priority
    nearby_count: int = 0
    reason: Literal["accepted"] = "accepted"


class RejectDecision(BaseModel):
    """Candidate rejected as a duplicate of an active complaint."""

    model_config = ConfigDict(frozen=True)

    conflicting_complaint_id: str
    distance_meters: float
    message: str
    reason: Literal["duplicate_active_report"] = "duplicate_active_report"


IntakeDecision = Union[AcceptDecision, RejectDecision]


class SubmissionResult(BaseModel):
    """Outcome of a serialized submission."""

    decision: IntakeDecision
    complaint: Optional[ComplaintRecord] = None

    @property
    def accepted(self) -> bool:
        return isinstance(self.decision, AcceptDecision)
