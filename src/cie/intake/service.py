"""Serialized complaint submission."""

from __future__ import annotations

from typing import Optional

from cie.config import Settings
from cie.intake.classifier import IntakeClassifier, IntakePolicy
from cie.intake.keys import IntakeGrid
from cie.intake.locks import KeyedLock, LocalKeyedLock
from cie.intake.store import ComplaintStore
from cie.models import AcceptDecision, CandidateComplaint, SubmissionResult
from cie.utils.logging import get_logger


logger = get_logger(__name__)


class IntakeService:
    """Fetch, classify and persist a candidate inside its key's critical section.

    Submissions with the same normalized title in nearby cells are serialized;
    everything else runs in parallel.
    """

    def __init__(
        self,
        store: ComplaintStore,
        lock: Optional[KeyedLock] = None,
        classifier: Optional[IntakeClassifier] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.store = store
        self.lock = lock or LocalKeyedLock()
        self.classifier = classifier or IntakeClassifier(IntakePolicy.from_settings(self.settings))
        self.grid = IntakeGrid(
            cell_degrees=self.settings.intake_cell_degrees,
            radius_meters=self.classifier.policy.duplicate_radius_meters,
        )

    def submit(self, candidate: CandidateComplaint) -> SubmissionResult:
        """Classify a candidate against the live snapshot and persist it if accepted."""
        key = self.grid.home_key(candidate.title, candidate.coordinate)
        lock_keys = self.grid.lock_keys(candidate.title, candidate.coordinate)

        try:
            with self.lock.hold(lock_keys):
                active = self.store.fetch_active()
                decision = self.classifier.classify(candidate, active)
                if not isinstance(decision, AcceptDecision):
                    logger.info(
                        "intake.rejected key=%s user_id=%s duplicate_of=%s distance_m=%.1f",
                        key.fingerprint(),
                        candidate.user_id,
                        decision.conflicting_complaint_id,
                        decision.distance_meters,
                    )
                    return SubmissionResult(decision=decision)

                record = self.store.append(candidate, decision.priority)
        except Exception:
            logger.exception(
                "intake.failed key=%s user_id=%s", key.fingerprint(), candidate.user_id
            )
            raise

        logger.info(
            "intake.accepted key=%s complaint_id=%s priority=%s nearby=%s",
            key.fingerprint(),
            record.complaint_id,
            decision.priority,
            decision.nearby_count,
        )
        return SubmissionResult(decision=decision, complaint=record)
