"""Shared fixtures."""

from datetime import datetime, timedelta, UTC

import pytest

from replyguard.config import reset_models, reset_plans, reset_tuning
from replyguard.metrics import MetricsCollector


class FakeClock:
    """Manually advanced clock for limiter tests."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture(autouse=True)
def _reset_config(monkeypatch):
    for var in ("REPLYGUARD_TUNING_JSON", "REPLYGUARD_PLANS_JSON", "REPLYGUARD_MODELS_JSON"):
        monkeypatch.delenv(var, raising=False)
    reset_tuning()
    reset_plans()
    reset_models()
    yield
    reset_tuning()
    reset_plans()
    reset_models()


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 10, 12, 0, tzinfo=UTC))


@pytest.fixture
def metrics():
    return MetricsCollector(enable_logging=False)
