"""Tests for recon3d.session.progress."""

import threading

import pytest

from recon3d.session.progress import CAPTURE_SHARE, STAGE_PROGRESS, ProgressTracker


class TestProgressTracker:
    def test_starts_at_zero(self):
        assert ProgressTracker("s").value == 0.0

    def test_never_decreases(self):
        tracker = ProgressTracker("s")
        tracker.publish("a", 0.5)
        tracker.publish("b", 0.2)
        assert tracker.value == 0.5

    def test_clamped_to_unit_interval(self):
        tracker = ProgressTracker("s")
        tracker.publish("a", -3.0)
        assert tracker.value == 0.0
        tracker.publish("b", 7.0)
        assert tracker.value == 1.0

    def test_event_without_progress_keeps_value(self):
        tracker = ProgressTracker("s")
        tracker.publish("a", 0.3)
        events = []
        tracker.subscribe(events.append)
        tracker.publish("failed", message="boom")
        assert events[0].stage == "failed"
        assert events[0].progress == 0.3
        assert events[0].message == "boom"

    def test_capture_share(self):
        tracker = ProgressTracker("s")
        assert tracker.capture(50, 100) == pytest.approx(CAPTURE_SHARE / 2)
        assert tracker.capture(500, 100) == pytest.approx(CAPTURE_SHARE)

    def test_stages_in_order_are_increasing(self):
        tracker = ProgressTracker("s")
        seen = [tracker.stage(name) for name in ("filtering", "meshing", "analyzing", "complete")]
        assert seen == sorted(seen)
        assert seen[-1] == 1.0
        assert min(STAGE_PROGRESS.values()) >= CAPTURE_SHARE

    def test_unsubscribe(self):
        tracker = ProgressTracker("s")
        events = []
        unsubscribe = tracker.subscribe(events.append)
        tracker.publish("a", 0.1)
        unsubscribe()
        unsubscribe()
        tracker.publish("b", 0.2)
        assert [e.stage for e in events] == ["a"]

    def test_failing_subscriber_does_not_block_others(self):
        tracker = ProgressTracker("s")
        events = []

        def broken(event):
            raise RuntimeError("subscriber bug")

        tracker.subscribe(broken)
        tracker.subscribe(events.append)
        tracker.publish("a", 0.4)
        assert len(events) == 1

    def test_concurrent_publishers_stay_monotonic(self):
        tracker = ProgressTracker("s")
        seen = []
        lock = threading.Lock()

        def record(event):
            with lock:
                seen.append(event.progress)

        tracker.subscribe(record)
        threads = [
            threading.Thread(target=lambda i=i: [tracker.publish("p", (i * 50 + j) / 400) for j in range(50)])
            for i in range(8)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert tracker.value == pytest.approx(399 / 400)
        assert max(seen) == tracker.value
