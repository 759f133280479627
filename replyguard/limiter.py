"""
Usage limiter for replyguard.

Consumes one unit of a user's quota or rejects, without ever letting
concurrent requests overshoot the cap.

Rules:
- Testers are always allowed and never counted.
- Premium users are held to a monthly cap.
- Free users are held to a daily cap enforced by a rolling lock window that
  opens the moment the cap is hit and lasts ``daily_lock_hours``.
- A limit of zero or less is unlimited, but the counter still moves.

Each increment is one conditional update in the ledger
(``count = count + 1 WHERE count < limit``). Rejections re-read the ledger,
so the reported numbers reflect the post-state rather than a stale read.
"""

import logging
from datetime import datetime, UTC, timedelta
from typing import Callable, Optional

from replyguard.config import get_tuning
from replyguard.metrics import MetricsCollector, get_metrics
from replyguard.models import PlanLimits, UsageRecord, start_of_next_month
from replyguard.schemas import ConsumeAllowed, ConsumeRejected, ConsumeResult
from replyguard.storage import DAILY, MONTHLY, InMemoryLedger, LedgerStore
from replyguard.validation import validate_plan_limits, validate_user_id

logger = logging.getLogger("replyguard.limiter")


def _seconds_until(reset_at: Optional[datetime], now: datetime) -> Optional[int]:
    if reset_at is None:
        return None
    return max(0, int((reset_at - now).total_seconds()))


class UsageLimiter:
    """
    Race-safe quota gate in front of the chat pipeline.

    Example:
        ```python
        limiter = UsageLimiter(SQLiteLedger("replyguard.db"))
        result = limiter.consume("user_123", get_plan_limits("free"), is_premium=False)
        if not result.ok:
            return 429, result.to_dict()
        ```
    """

    def __init__(
        self,
        store: Optional[LedgerStore] = None,
        clock: Optional[Callable[[], datetime]] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.store = store or InMemoryLedger()
        self._clock = clock or (lambda: datetime.now(UTC))
        self.metrics = metrics or get_metrics()

    @property
    def lock_window(self) -> timedelta:
        return timedelta(hours=get_tuning().daily_lock_hours)

    def consume(
        self,
        user_id: str,
        plan: PlanLimits,
        is_premium: bool,
        is_tester: bool = False,
    ) -> ConsumeResult:
        """
        Consume one unit of quota for a user.

        Args:
            user_id: Ledger key.
            plan: Limits for the user's plan.
            is_premium: Premium users are held to the monthly cap.
            is_tester: Testers bypass all limits.

        Returns:
            ConsumeAllowed or ConsumeRejected. Never raises for an
            exhausted quota.

        Raises:
            ValidationError: If user_id or plan is malformed.
        """
        validate_user_id(user_id)
        validate_plan_limits(plan)
        now = self._clock()

        if is_tester or plan.is_tester:
            self.metrics.record_consume(user_id, True, "tester")
            return ConsumeAllowed(usage=self.store.get_or_create(user_id, now), scope="tester")

        self._load(user_id, now)

        if is_premium:
            result = self._consume_monthly(user_id, plan.monthly_limit, now)
        else:
            result = self._consume_daily(user_id, plan.daily_limit, now)

        self.metrics.record_consume(
            user_id,
            result.ok,
            result.scope,
            limit_reached=getattr(result, "limit_reached", None),
        )
        if not result.ok:
            logger.info(
                "quota rejected user=%s scope=%s used=%s limit=%s reset_at=%s",
                user_id, result.scope, result.used, result.limit, result.reset_at,
            )
        return result

    def _load(self, user_id: str, now: datetime) -> UsageRecord:
        """Get-or-create, then apply any expired windows."""
        record = self.store.get_or_create(user_id, now)
        changed = False

        if now >= record.monthly_reset_at:
            self.store.roll_monthly(user_id, record.monthly_reset_at, start_of_next_month(now))
            changed = True

        if record.daily_reset_at is not None and now >= record.daily_reset_at:
            self.store.clear_daily_lock(user_id, record.daily_reset_at)
            changed = True

        if changed:
            # A concurrent request may have applied the same reset first; the
            # conditional writes above are no-ops in that case.
            record = self.store.get(user_id) or record
        return record

    def _consume_monthly(self, user_id: str, limit: int, now: datetime) -> ConsumeResult:
        if limit <= 0:
            self.store.increment(user_id, MONTHLY)
            return ConsumeAllowed(usage=self._reread(user_id, now), scope="monthly")

        if self.store.increment_if_below(user_id, MONTHLY, limit):
            record = self._reread(user_id, now)
            reached = record.monthly_count >= limit
            return ConsumeAllowed(
                usage=record,
                scope="monthly",
                limit_reached=reached,
                reset_at=record.monthly_reset_at if reached else None,
                reset_in_seconds=_seconds_until(record.monthly_reset_at, now) if reached else None,
            )

        record = self._reread(user_id, now)
        used = record.monthly_count
        return ConsumeRejected(
            scope="monthly",
            used=used,
            limit=limit,
            remaining=max(0, limit - used),
            reset_at=record.monthly_reset_at,
            reset_in_seconds=_seconds_until(record.monthly_reset_at, now),
        )

    def _consume_daily(self, user_id: str, limit: int, now: datetime) -> ConsumeResult:
        if limit <= 0:
            self.store.increment(user_id, DAILY)
            return ConsumeAllowed(usage=self._reread(user_id, now), scope="daily")

        if self.store.increment_if_below(user_id, DAILY, limit):
            record = self._reread(user_id, now)
            if record.daily_count < limit:
                return ConsumeAllowed(usage=record, scope="daily")
            # The cap has just been hit: open the lock window
            record = self._open_lock(user_id, now)
            return ConsumeAllowed(
                usage=record,
                scope="daily",
                limit_reached=True,
                reset_at=record.daily_reset_at,
                reset_in_seconds=_seconds_until(record.daily_reset_at, now),
            )

        record = self._reread(user_id, now)
        if record.daily_reset_at is None:
            record = self._open_lock(user_id, now)
        used = record.daily_count
        return ConsumeRejected(
            scope="daily",
            used=used,
            limit=limit,
            remaining=max(0, limit - used),
            reset_at=record.daily_reset_at,
            reset_in_seconds=_seconds_until(record.daily_reset_at, now),
        )

    def _open_lock(self, user_id: str, now: datetime) -> UsageRecord:
        """Start the lock window unless one is already running."""
        self.store.start_daily_lock(user_id, now + self.lock_window)
        return self._reread(user_id, now)

    def _reread(self, user_id: str, now: datetime) -> UsageRecord:
        record = self.store.get(user_id)
        if record is None:
            # Deleted between calls; recreate rather than fail the request.
            record = self.store.get_or_create(user_id, now)
        return record

    def usage_summary(self, user_id: str, plan: PlanLimits) -> dict:
        """
        Report usage against the plan without consuming anything.

        Returns:
            Dict with daily/monthly used, limit and remaining.
        """
        validate_user_id(user_id)
        now = self._clock()
        record = self._load(user_id, now)

        def remaining(limit: int, used: int) -> Optional[int]:
            return None if limit <= 0 else max(0, limit - used)

        return {
            "user_id": user_id,
            "daily_used": record.daily_count,
            "daily_limit": plan.daily_limit,
            "daily_remaining": remaining(plan.daily_limit, record.daily_count),
            "monthly_used": record.monthly_count,
            "monthly_limit": plan.monthly_limit,
            "monthly_remaining": remaining(plan.monthly_limit, record.monthly_count),
            "locked": record.is_locked(now),
            "reset_at": record.daily_reset_at.isoformat() if record.daily_reset_at else None,
        }
