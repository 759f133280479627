"""Shared data models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, UTC
from typing import Optional


@dataclass
class UsageRecord:
    """Per-user quota counters. The only persisted, mutable entity."""
    user_id: str
    monthly_reset_at: datetime
    daily_count: int = 0
    monthly_count: int = 0
    daily_reset_at: Optional[datetime] = None  # Set only while locked

    def is_locked(self, now: datetime) -> bool:
        return self.daily_reset_at is not None and now < self.daily_reset_at

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "daily_count": self.daily_count,
            "monthly_count": self.monthly_count,
            "daily_reset_at": self.daily_reset_at.isoformat() if self.daily_reset_at else None,
            "monthly_reset_at": self.monthly_reset_at.isoformat(),
        }


@dataclass(frozen=True)
class PlanLimits:
    """Quota limits for a plan. Zero or negative means unlimited but tracked."""
    daily_limit: int
    monthly_limit: int
    is_tester: bool = False


def start_of_next_month(now: datetime) -> datetime:
    """First instant of the calendar month after ``now`` (UTC)."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    now = now.astimezone(UTC)
    if now.month == 12:
        return datetime(now.year + 1, 1, 1, tzinfo=UTC)
    return datetime(now.year, now.month + 1, 1, tzinfo=UTC)
