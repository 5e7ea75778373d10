import threading
import time
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager

import pytest

from cie.config import Settings
from cie.intake.locks import LocalKeyedLock
from cie.intake.service import IntakeService
from cie.intake.store import InMemoryComplaintStore
from cie.models import AcceptDecision, CandidateComplaint, Coordinate, RejectDecision


BASE = Coordinate(lat=19.0760, lon=72.8777)


def _candidate(**overrides) -> CandidateComplaint:
    payload = {
        "title": "Pothole on Main St",
        "category": "Roads & Infrastructure",
        "description": "Large pothole",
        "coordinate": BASE,
        "user_id": "citizen-1",
    }
    payload.update(overrides)
    return CandidateComplaint(**payload)


class SlowStore(InMemoryComplaintStore):
    """Widens the window between snapshot read and persist."""

    def __init__(self, delay: float = 0.2) -> None:
        super().__init__()
        self.delay = delay

    def fetch_active(self):
        snapshot = super().fetch_active()
        time.sleep(self.delay)
        return snapshot


class FailingStore(InMemoryComplaintStore):
    def append(self, candidate, priority):
        raise RuntimeError("store unavailable")


class NoLock:
    @contextmanager
    def hold(self, keys):
        yield


def _submit_together(service: IntakeService, candidates: list[CandidateComplaint]):
    barrier = threading.Barrier(len(candidates))

    def run(candidate):
        barrier.wait()
        return service.submit(candidate)

    with ThreadPoolExecutor(max_workers=len(candidates)) as executor:
        return list(executor.map(run, candidates))


def test_submit_accepts_and_persists_pending_record():
    store = InMemoryComplaintStore()
    service = IntakeService(store, settings=Settings())
    result = service.submit(_candidate())
    assert result.accepted
    assert isinstance(result.decision, AcceptDecision)
    assert result.decision.priority == "Low"
    assert result.complaint is not None
    assert result.complaint.status == "Pending"
    assert result.complaint.priority == "Low"
    assert [r.complaint_id for r in store.records()] == [result.complaint.complaint_id]


def test_submit_rejects_duplicate_without_persisting():
    store = InMemoryComplaintStore()
    service = IntakeService(store, settings=Settings())
    first = service.submit(_candidate())
    second = service.submit(_candidate(user_id="citizen-2"))
    assert first.accepted
    assert not second.accepted
    assert isinstance(second.decision, RejectDecision)
    assert second.decision.conflicting_complaint_id == first.complaint.complaint_id
    assert second.complaint is None
    assert len(store.records()) == 1


def test_resolved_complaint_no_longer_blocks_resubmission():
    store = InMemoryComplaintStore()
    service = IntakeService(store, settings=Settings())
    first = service.submit(_candidate())
    store.update_status(first.complaint.complaint_id, "Resolved")
    again = service.submit(_candidate())
    assert again.accepted


def test_concurrent_identical_submissions_accept_exactly_one():
    store = SlowStore()
    service = IntakeService(store, settings=Settings())
    results = _submit_together(service, [_candidate(user_id="a"), _candidate(user_id="b")])
    assert sorted(r.accepted for r in results) == [False, True]
    assert len(store.records()) == 1


def test_concurrent_submissions_straddling_cell_boundary_accept_exactly_one():
    store = SlowStore()
    service = IntakeService(store, settings=Settings())
    west = _candidate(coordinate=Coordinate(lat=19.0799, lon=72.8799))
    east = _candidate(coordinate=Coordinate(lat=19.0801, lon=72.8801))
    results = _submit_together(service, [west, east])
    assert sorted(r.accepted for r in results) == [False, True]


def test_concurrent_submissions_with_fine_cells_accept_exactly_one():
    store = SlowStore()
    service = IntakeService(store, settings=Settings(intake_cell_degrees=0.0001))
    south = _candidate(coordinate=Coordinate(lat=19.0760, lon=72.8777))
    north = _candidate(coordinate=Coordinate(lat=19.0765, lon=72.8777))
    results = _submit_together(service, [south, north])
    assert sorted(r.accepted for r in results) == [False, True]
    assert len(store.records()) == 1


def test_concurrent_submissions_with_wide_radius_accept_exactly_one():
    store = SlowStore()
    service = IntakeService(store, settings=Settings(duplicate_radius_meters=2000))
    west = _candidate(coordinate=Coordinate(lat=19.0760, lon=72.8777))
    east = _candidate(coordinate=Coordinate(lat=19.0760, lon=72.8957))
    results = _submit_together(service, [west, east])
    assert sorted(r.accepted for r in results) == [False, True]


@pytest.mark.parametrize(
    "first, second",
    [
        (Coordinate(lat=90.0, lon=0.0), Coordinate(lat=90.0, lon=90.0)),
        (Coordinate(lat=0.0, lon=179.9996), Coordinate(lat=0.0, lon=-179.9996)),
    ],
    ids=["north-pole", "antimeridian"],
)
def test_concurrent_submissions_at_grid_seams_accept_exactly_one(first, second):
    store = SlowStore()
    service = IntakeService(store, settings=Settings())
    results = _submit_together(
        service, [_candidate(coordinate=first), _candidate(coordinate=second)]
    )
    assert sorted(r.accepted for r in results) == [False, True]
    assert len(store.records()) == 1


def test_without_serialization_both_duplicates_slip_through():
    store = SlowStore()
    service = IntakeService(store, lock=NoLock(), settings=Settings())
    results = _submit_together(service, [_candidate(user_id="a"), _candidate(user_id="b")])
    assert [r.accepted for r in results] == [True, True]


def test_other_keys_do_not_wait_for_held_key():
    lock = LocalKeyedLock()
    settings = Settings()
    service = IntakeService(InMemoryComplaintStore(), lock=lock, settings=settings)
    held = service.grid.lock_keys(_candidate().title, BASE)

    executor = ThreadPoolExecutor(max_workers=3)
    try:
        with lock.hold(held):
            other_title = executor.submit(service.submit, _candidate(title="Overflowing bin"))
            far_away = executor.submit(
                service.submit, _candidate(coordinate=Coordinate(lat=28.6139, lon=77.2090))
            )
            same_key = executor.submit(service.submit, _candidate(user_id="waiting"))

            assert other_title.result(timeout=5).accepted
            assert far_away.result(timeout=5).accepted
            time.sleep(0.1)
            assert not same_key.done()

        assert same_key.result(timeout=5).accepted
    finally:
        executor.shutdown(wait=True)


def test_lock_released_when_store_fails():
    lock = LocalKeyedLock()
    settings = Settings()
    failing = IntakeService(FailingStore(), lock=lock, settings=settings)
    with pytest.raises(RuntimeError):
        failing.submit(_candidate())
    assert lock.active_keys() == 0

    healthy = IntakeService(InMemoryComplaintStore(), lock=lock, settings=settings)
    assert healthy.submit(_candidate()).accepted


def test_service_uses_policy_from_settings():
    store = InMemoryComplaintStore()
    settings = Settings(high_priority_threshold=1, medium_priority_threshold=1)
    service = IntakeService(store, settings=settings)
    service.submit(_candidate(title="Broken streetlight"))
    result = service.submit(_candidate())
    assert result.decision.priority == "High"
