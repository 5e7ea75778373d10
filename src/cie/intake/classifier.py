"""Duplicate detection and priority scoring for incoming complaints."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence

from cie.config import Settings
from cie.models import (
    AcceptDecision,
    ActiveComplaint,
    CandidateComplaint,
    Coordinate,
    IntakeDecision,
    Priority,
    RejectDecision,
)
from cie.utils.geo import distance_meters, validate_coordinates
from cie.utils.logging import get_logger
from cie.utils.text import normalize_title


logger = get_logger(__name__)

DEFAULT_DUPLICATE_RADIUS_METERS = 100.0
DEFAULT_DENSITY_RADIUS_METERS = 250.0
DEFAULT_HIGH_PRIORITY_THRESHOLD = 6
DEFAULT_MEDIUM_PRIORITY_THRESHOLD = 3


class InvalidInputError(ValueError):
    """Raised when a candidate or snapshot entry carries an invalid coordinate."""


@dataclass(frozen=True)
class IntakePolicy:
    """Tunable radii and breakpoints used by the classifier."""

    duplicate_radius_meters: float = DEFAULT_DUPLICATE_RADIUS_METERS
    density_radius_meters: float = DEFAULT_DENSITY_RADIUS_METERS
    high_priority_threshold: int = DEFAULT_HIGH_PRIORITY_THRESHOLD
    medium_priority_threshold: int = DEFAULT_MEDIUM_PRIORITY_THRESHOLD

    def __post_init__(self) -> None:
        for name in ("duplicate_radius_meters", "density_radius_meters"):
            value = getattr(self, name)
            if not math.isfinite(value) or value <= 0:
                raise ValueError(f"{name} must be a positive finite number, got {value!r}")
        if self.medium_priority_threshold < 0:
            raise ValueError("medium_priority_threshold must be >= 0")
        if self.medium_priority_threshold > self.high_priority_threshold:
            raise ValueError("medium_priority_threshold must not exceed high_priority_threshold")

    @classmethod
    def from_settings(cls, settings: Settings) -> "IntakePolicy":
        return cls(
            duplicate_radius_meters=settings.duplicate_radius_meters,
            density_radius_meters=settings.density_radius_meters,
            high_priority_threshold=settings.high_priority_threshold,
            medium_priority_threshold=settings.medium_priority_threshold,
        )


def priority_for_count(nearby_count: int, policy: Optional[IntakePolicy] = None) -> Priority:
    """Map a nearby-complaint count onto a priority tier (lower bounds inclusive)."""
    policy = policy or IntakePolicy()
    if nearby_count >= policy.high_priority_threshold:
        return "High"
    if nearby_count >= policy.medium_priority_threshold:
        return "Medium"
    return "Low"


class IntakeClassifier:
    """Classify a candidate complaint against a snapshot of active complaints.

    The classifier holds no mutable state; one instance may be shared across
    threads.
    """

    def __init__(self, policy: Optional[IntakePolicy] = None) -> None:
        self.policy = policy or IntakePolicy()

    def classify(
        self,
        candidate: CandidateComplaint,
        active: Sequence[ActiveComplaint],
    ) -> IntakeDecision:
        """Return a reject decision for duplicates, otherwise accept with a priority."""
        _require_valid(candidate.coordinate, "candidate")
        for entry in active:
            _require_valid(entry.coordinate, f"active complaint {entry.complaint_id}")

        title = normalize_title(candidate.title)
        distances = [distance_meters(candidate.coordinate, entry.coordinate) for entry in active]

        for entry, distance in zip(active, distances):
            if distance <= self.policy.duplicate_radius_meters and (
                normalize_title(entry.title) == title
            ):
                logger.debug(
                    "classify.duplicate complaint_id=%s distance_m=%.1f",
                    entry.complaint_id,
                    distance,
                )
                return RejectDecision(
                    conflicting_complaint_id=entry.complaint_id,
                    distance_meters=distance,
                    message=(
                        "duplicate of an active report with the same title within "
                        f"{self.policy.duplicate_radius_meters:g} meters"
                    ),
                )

        nearby_count = sum(
            1 for distance in distances if distance <= self.policy.density_radius_meters
        )
        priority = priority_for_count(nearby_count, self.policy)
        logger.debug(
            "classify.accepted nearby_count=%s priority=%s snapshot=%s",
            nearby_count,
            priority,
            len(active),
        )
        return AcceptDecision(priority=priority, nearby_count=nearby_count)


def _require_valid(coordinate: Coordinate, label: str) -> None:
    if not validate_coordinates(coordinate.lat, coordinate.lon):
        raise InvalidInputError(
            f"invalid coordinate for {label}: lat={coordinate.lat!r} lon={coordinate.lon!r}"
        )


_DEFAULT_CLASSIFIER: Optional[IntakeClassifier] = None


def classify(
    candidate: CandidateComplaint,
    active: Sequence[ActiveComplaint],
) -> IntakeDecision:
    """Convenience classify wrapper using the default policy."""
    global _DEFAULT_CLASSIFIER
    if _DEFAULT_CLASSIFIER is None:
        _DEFAULT_CLASSIFIER = IntakeClassifier()
    return _DEFAULT_CLASSIFIER.classify(candidate, active)
