from __future__ import annotations

import pytest

from windshaft.request import Request
from windshaft.request_tracker import RequestTracker


def _req(i: int = 0) -> Request:
    return Request({"layers": [{"id": f"l{i}"}]}, {"stat_tag": "t"})


def test_rejects_after_limit_identical_requests():
    tracker = RequestTracker(3)
    r = _req()
    for _ in range(3):
        assert tracker.can_request_be_performed(r)
        tracker.track(r, {"layergroupid": "x"})
    assert tracker.occurrences(r) == 3
    assert not tracker.can_request_be_performed(r)
    # Distinct requests are unaffected.
    assert tracker.can_request_be_performed(_req(1))


def test_can_request_be_performed_does_not_mutate():
    tracker = RequestTracker(1)
    r = _req()
    for _ in range(5):
        assert tracker.can_request_be_performed(r)
    assert tracker.occurrences(r) == 0
    assert len(tracker) == 0


def test_track_keeps_latest_response():
    tracker = RequestTracker(3)
    r = _req()
    tracker.track(r, {"errors": ["boom"]})
    tracker.track(Request(dict(r.payload), dict(r.params)), {"layergroupid": "ok"})
    assert tracker.occurrences(r) == 2
    assert tracker.last_response(r) == {"layergroupid": "ok"}


def test_evicts_oldest_fingerprint_over_cap():
    tracker = RequestTracker(1, max_fingerprints=2)
    r0, r1, r2 = _req(0), _req(1), _req(2)
    tracker.track(r0, None)
    tracker.track(r1, None)
    # Re-tracking r0 doesn't make it younger: eviction is by first sighting.
    tracker.track(r0, None)
    tracker.track(r2, None)

    assert len(tracker) == 2
    assert tracker.occurrences(r0) == 0
    assert tracker.can_request_be_performed(r0)
    assert not tracker.can_request_be_performed(r1)
    assert not tracker.can_request_be_performed(r2)


def test_reset_clears_records():
    tracker = RequestTracker(1)
    r = _req()
    tracker.track(r, None)
    assert not tracker.can_request_be_performed(r)
    tracker.reset()
    assert tracker.can_request_be_performed(r)


def test_invalid_limits_raise():
    with pytest.raises(ValueError):
        RequestTracker(0)
    with pytest.raises(ValueError):
        RequestTracker(3, max_fingerprints=0)
