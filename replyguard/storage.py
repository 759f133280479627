"""Ledger stores for per-user usage records.

Every write primitive is a single indivisible operation on the store. The
limiter composes them but never reads a count and writes it back.
"""

from __future__ import annotations

import dataclasses
import sqlite3
import threading
from datetime import datetime, UTC
from typing import Dict, List, Optional, Protocol

from replyguard.models import UsageRecord, start_of_next_month

DAILY = "daily_count"
MONTHLY = "monthly_count"
COUNTERS = (DAILY, MONTHLY)


def _check_counter(counter: str) -> None:
    if counter not in COUNTERS:
        raise ValueError(f"Unknown counter: {counter!r}")


class LedgerStore(Protocol):
    """Storage backend interface."""

    def get(self, user_id: str) -> Optional[UsageRecord]:
        ...

    def get_or_create(self, user_id: str, now: datetime) -> UsageRecord:
        ...

    def increment_if_below(self, user_id: str, counter: str, limit: int) -> bool:
        """Atomically add one to ``counter`` where ``counter < limit``."""
        ...

    def increment(self, user_id: str, counter: str) -> None:
        ...

    def start_daily_lock(self, user_id: str, reset_at: datetime) -> bool:
        """Set ``daily_reset_at`` only where it is currently unset."""
        ...

    def clear_daily_lock(self, user_id: str, expected_reset_at: datetime) -> bool:
        """Zero the daily counter and unlock, only if the lock is still ``expected_reset_at``."""
        ...

    def roll_monthly(self, user_id: str, expected_reset_at: datetime, next_reset_at: datetime) -> bool:
        ...

    def delete(self, user_id: str) -> bool:
        ...

    def list_records(self) -> List[UsageRecord]:
        ...


class InMemoryLedger:
    """In-memory ledger (default). Primitives run under one lock."""

    def __init__(self):
        self._records: Dict[str, UsageRecord] = {}
        self._lock = threading.Lock()

    def get(self, user_id: str) -> Optional[UsageRecord]:
        with self._lock:
            record = self._records.get(user_id)
            return dataclasses.replace(record) if record else None

    def get_or_create(self, user_id: str, now: datetime) -> UsageRecord:
        with self._lock:
            record = self._records.get(user_id)
            if record is None:
                record = UsageRecord(user_id=user_id, monthly_reset_at=start_of_next_month(now))
                self._records[user_id] = record
            return dataclasses.replace(record)

    def increment_if_below(self, user_id: str, counter: str, limit: int) -> bool:
        _check_counter(counter)
        with self._lock:
            record = self._records.get(user_id)
            if record is None or getattr(record, counter) >= limit:
                return False
            setattr(record, counter, getattr(record, counter) + 1)
            return True

    def increment(self, user_id: str, counter: str) -> None:
        _check_counter(counter)
        with self._lock:
            record = self._records.get(user_id)
            if record is not None:
                setattr(record, counter, getattr(record, counter) + 1)

    def start_daily_lock(self, user_id: str, reset_at: datetime) -> bool:
        with self._lock:
            record = self._records.get(user_id)
            if record is None or record.daily_reset_at is not None:
                return False
            record.daily_reset_at = reset_at
            return True

    def clear_daily_lock(self, user_id: str, expected_reset_at: datetime) -> bool:
        with self._lock:
            record = self._records.get(user_id)
            if record is None or record.daily_reset_at != expected_reset_at:
                return False
            record.daily_count = 0
            record.daily_reset_at = None
            return True

    def roll_monthly(self, user_id: str, expected_reset_at: datetime, next_reset_at: datetime) -> bool:
        with self._lock:
            record = self._records.get(user_id)
            if record is None or record.monthly_reset_at != expected_reset_at:
                return False
            record.monthly_count = 0
            record.monthly_reset_at = next_reset_at
            return True

    def delete(self, user_id: str) -> bool:
        with self._lock:
            return self._records.pop(user_id, None) is not None

    def list_records(self) -> List[UsageRecord]:
        with self._lock:
            return [dataclasses.replace(r) for r in self._records.values()]


def _to_text(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat()


def _from_text(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


class SQLiteLedger:
    """SQLite-backed ledger.

    Runs in autocommit mode so each conditional UPDATE is its own transaction.
    Several processes (or several ledgers on one file) stay consistent because
    the guard lives in the WHERE clause.
    """

    def __init__(self, db_path: str = "replyguard.db", timeout: float = 30.0):
        self._conn = sqlite3.connect(
            db_path,
            timeout=timeout,
            check_same_thread=False,
            isolation_level=None,
        )
        self._conn.row_factory = sqlite3.Row
        # One connection object must not be driven from two threads at once
        self._lock = threading.Lock()
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._init_schema()

    def _init_schema(self) -> None:
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS usage (
                user_id TEXT PRIMARY KEY,
                daily_count INTEGER NOT NULL DEFAULT 0 CHECK (daily_count >= 0),
                monthly_count INTEGER NOT NULL DEFAULT 0 CHECK (monthly_count >= 0),
                daily_reset_at TEXT,
                monthly_reset_at TEXT NOT NULL
            )
            """
        )

    def _row_to_record(self, row: sqlite3.Row) -> UsageRecord:
        return UsageRecord(
            user_id=row["user_id"],
            daily_count=row["daily_count"],
            monthly_count=row["monthly_count"],
            daily_reset_at=_from_text(row["daily_reset_at"]),
            monthly_reset_at=_from_text(row["monthly_reset_at"]),
        )

    def _execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        with self._lock:
            return self._conn.execute(sql, params)

    def get(self, user_id: str) -> Optional[UsageRecord]:
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM usage WHERE user_id = ?",
                (user_id,),
            ).fetchone()
        if not row:
            return None
        return self._row_to_record(row)

    def get_or_create(self, user_id: str, now: datetime) -> UsageRecord:
        self._execute(
            """
            INSERT INTO usage (user_id, daily_count, monthly_count, daily_reset_at, monthly_reset_at)
            VALUES (?, 0, 0, NULL, ?)
            ON CONFLICT(user_id) DO NOTHING
            """,
            (user_id, _to_text(start_of_next_month(now))),
        )
        record = self.get(user_id)
        if record is None:
            raise sqlite3.IntegrityError(f"usage row for {user_id!r} vanished after insert")
        return record

    def increment_if_below(self, user_id: str, counter: str, limit: int) -> bool:
        _check_counter(counter)
        cur = self._execute(
            f"UPDATE usage SET {counter} = {counter} + 1 WHERE user_id = ? AND {counter} < ?",
            (user_id, limit),
        )
        return cur.rowcount > 0

    def increment(self, user_id: str, counter: str) -> None:
        _check_counter(counter)
        self._execute(
            f"UPDATE usage SET {counter} = {counter} + 1 WHERE user_id = ?",
            (user_id,),
        )

    def start_daily_lock(self, user_id: str, reset_at: datetime) -> bool:
        cur = self._execute(
            "UPDATE usage SET daily_reset_at = ? WHERE user_id = ? AND daily_reset_at IS NULL",
            (_to_text(reset_at), user_id),
        )
        return cur.rowcount > 0

    def clear_daily_lock(self, user_id: str, expected_reset_at: datetime) -> bool:
        cur = self._execute(
            """
            UPDATE usage SET daily_count = 0, daily_reset_at = NULL
            WHERE user_id = ? AND daily_reset_at = ?
            """,
            (user_id, _to_text(expected_reset_at)),
        )
        return cur.rowcount > 0

    def roll_monthly(self, user_id: str, expected_reset_at: datetime, next_reset_at: datetime) -> bool:
        cur = self._execute(
            """
            UPDATE usage SET monthly_count = 0, monthly_reset_at = ?
            WHERE user_id = ? AND monthly_reset_at = ?
            """,
            (_to_text(next_reset_at), user_id, _to_text(expected_reset_at)),
        )
        return cur.rowcount > 0

    def delete(self, user_id: str) -> bool:
        cur = self._execute("DELETE FROM usage WHERE user_id = ?", (user_id,))
        return cur.rowcount > 0

    def list_records(self) -> List[UsageRecord]:
        with self._lock:
            rows = self._conn.execute("SELECT * FROM usage ORDER BY user_id ASC").fetchall()
        return [self._row_to_record(row) for row in rows]

    def close(self) -> None:
        with self._lock:
            self._conn.close()
