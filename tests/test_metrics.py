"""Tests for the metrics collector."""

from replyguard.metrics import MetricsCollector


class TestMetricsCollector:
    def test_counters_by_scope(self, metrics):
        metrics.record_consume("user_1", True, "daily")
        metrics.record_consume("user_1", False, "daily")
        metrics.record_consume("tester_1", True, "tester")

        assert metrics.get_counters() == {
            "consume_allowed": 1,
            "consume_rejected_daily": 1,
            "consume_tester_bypass": 1,
        }

    def test_event_buffer_is_bounded(self):
        """Old events are dropped; counters keep the full tally."""
        metrics = MetricsCollector(enable_logging=False, max_events=3)
        for i in range(10):
            metrics.record_engine_mode(f"user_{i}", "CORE_FAST")

        events = metrics.get_events()
        assert len(events) == 3
        assert [e.user_id for e in events] == ["user_7", "user_8", "user_9"]
        assert metrics.get_counters()["engine_mode_CORE_FAST"] == 10
        assert metrics.get_summary()["total_events"] == 3

    def test_reset(self, metrics):
        metrics.record_fallback("orchestrator", "boom")
        metrics.reset()
        assert metrics.get_counters() == {}
        assert metrics.get_events() == []

    def test_jsonl_sink(self, tmp_path):
        path = tmp_path / "metrics.jsonl"
        metrics = MetricsCollector(metrics_file=path, enable_logging=False)
        metrics.record_background("update_trust", ok=False, duration_ms=3, error="offline")

        lines = path.read_text().splitlines()
        assert len(lines) == 1
        assert '"update_trust"' in lines[0]
