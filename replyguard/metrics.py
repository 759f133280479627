"""
Metrics and observability for replyguard.

Provides structured logging and counters for quota decisions, orchestrator
fallbacks, and background bookkeeping.
"""

import json
import logging
import threading
from collections import defaultdict, deque
from dataclasses import dataclass, asdict
from datetime import datetime, UTC
from pathlib import Path
from typing import Any, Optional


@dataclass
class MetricEvent:
    """A single metric event."""
    timestamp: str
    event_type: str  # consume, engine_mode, fallback, background
    user_id: str
    data: dict[str, Any]


class MetricsCollector:
    """
    Collects counters and events from limiter, orchestrator and background
    workers. Safe to share across threads.
    """

    def __init__(
        self,
        metrics_file: Optional[Path] = None,
        enable_logging: bool = True,
        max_events: int = 10_000,
    ):
        """
        Initialize metrics collector.

        Args:
            metrics_file: Optional file to write metrics to (JSONL format)
            enable_logging: Whether to enable structured logging
            max_events: How many recent events to keep in memory. Counters
                cover the whole process lifetime.
        """
        self.metrics_file = metrics_file
        self.enable_logging = enable_logging
        self._lock = threading.Lock()

        self.logger = logging.getLogger("replyguard.metrics")
        if enable_logging and not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
                )
            )
            self.logger.addHandler(handler)
            self.logger.setLevel(logging.INFO)

        self._events: deque[MetricEvent] = deque(maxlen=max_events)
        self._counters: dict[str, int] = defaultdict(int)

    def record_consume(self, user_id: str, allowed: bool, scope: str, **extra: Any) -> None:
        """Record one limiter decision."""
        self._record_event(
            event_type="consume",
            user_id=user_id,
            data={"allowed": allowed, "scope": scope, **extra},
        )
        with self._lock:
            if scope == "tester":
                self._counters["consume_tester_bypass"] += 1
            elif allowed:
                self._counters["consume_allowed"] += 1
            else:
                self._counters[f"consume_rejected_{scope}"] += 1

    def record_engine_mode(self, user_id: str, mode: str, **extra: Any) -> None:
        self._record_event(
            event_type="engine_mode",
            user_id=user_id,
            data={"mode": mode, **extra},
        )
        with self._lock:
            self._counters[f"engine_mode_{mode}"] += 1

    def record_fallback(self, component: str, error: str) -> None:
        """Record a fail-open fallback (the raw input was returned)."""
        self._record_event(
            event_type="fallback",
            user_id="-",
            data={"component": component, "error": error},
        )
        with self._lock:
            self._counters[f"{component}_fallback"] += 1

    def record_background(self, job: str, ok: bool, duration_ms: int, error: Optional[str] = None) -> None:
        self._record_event(
            event_type="background",
            user_id="-",
            data={"job": job, "ok": ok, "duration_ms": duration_ms, "error": error},
        )
        with self._lock:
            self._counters["background_ok" if ok else "background_failed"] += 1

    def _record_event(self, event_type: str, user_id: str, data: dict) -> None:
        event = MetricEvent(
            timestamp=datetime.now(UTC).isoformat(),
            event_type=event_type,
            user_id=user_id,
            data=data,
        )

        with self._lock:
            self._events.append(event)
            if self.metrics_file:
                with open(self.metrics_file, "a") as f:
                    f.write(json.dumps(asdict(event), default=str) + "\n")

        if self.enable_logging:
            self.logger.info(
                f"{event_type.upper()}: user_id={user_id}, data={data}"
            )

    def get_counters(self) -> dict[str, int]:
        with self._lock:
            return dict(self._counters)

    def get_events(self, event_type: Optional[str] = None) -> list[MetricEvent]:
        with self._lock:
            if event_type is None:
                return list(self._events)
            return [e for e in self._events if e.event_type == event_type]

    def get_summary(self) -> dict:
        """
        Get aggregated statistics.

        Returns:
            Dictionary with counters and event totals
        """
        with self._lock:
            by_type: dict[str, int] = defaultdict(int)
            for event in self._events:
                by_type[event.event_type] += 1
            return {
                "counters": dict(self._counters),
                "events_by_type": dict(by_type),
                "total_events": len(self._events),
            }

    def reset(self) -> None:
        """Reset all metrics."""
        with self._lock:
            self._events.clear()
            self._counters.clear()


_default_metrics: Optional[MetricsCollector] = None


def get_metrics() -> MetricsCollector:
    """Get or create the shared metrics collector."""
    global _default_metrics
    if _default_metrics is None:
        _default_metrics = MetricsCollector(enable_logging=False)
    return _default_metrics
