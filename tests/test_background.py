"""Tests for the background bookkeeping queue."""

import threading

import pytest

from replyguard.background import BackgroundQueue


class TestBackgroundQueue:
    def test_runs_jobs(self, metrics):
        done = []
        with BackgroundQueue(max_workers=2, metrics=metrics) as queue:
            queue.submit("append", done.append, 1)
            queue.submit("append", done.append, 2)
            assert queue.drain(timeout=5)
        assert sorted(done) == [1, 2]
        assert metrics.get_counters()["background_ok"] == 2

    def test_failure_is_isolated(self, metrics):
        """A failing job does not stop the others and is counted."""
        done = []

        def broken(_):
            raise RuntimeError("store offline")

        with BackgroundQueue(max_workers=2, metrics=metrics) as queue:
            futures = queue.submit_all([("broken", broken), ("ok", done.append)], "event")
            assert queue.drain(timeout=5)

        assert [f.result() for f in futures] == [False, True]
        assert done == ["event"]
        counters = metrics.get_counters()
        assert counters["background_failed"] == 1
        assert counters["background_ok"] == 1
        failures = [e for e in metrics.get_events("background") if not e.data["ok"]]
        assert [e.data["job"] for e in failures] == ["broken"]

    def test_submit_returns_before_job_finishes(self, metrics):
        release = threading.Event()
        queue = BackgroundQueue(max_workers=1, metrics=metrics)
        future = queue.submit("wait", release.wait, 5)
        assert future is not None
        assert not future.done()
        release.set()
        assert queue.drain(timeout=5)
        queue.shutdown()

    def test_closed_queue_drops_jobs(self, metrics):
        queue = BackgroundQueue(metrics=metrics)
        queue.shutdown()
        assert queue.submit("late", lambda: None) is None

    def test_invalid_worker_count(self):
        with pytest.raises(ValueError):
            BackgroundQueue(max_workers=0)
