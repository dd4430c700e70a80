"""
Usage Store - Persistence for filter applications and per-user aggregates.

Two implementations of the UsageStore protocol:
- InMemoryUsageStore: lock-guarded dicts, for tests and single-process use
- SQLiteUsageStore: WAL-mode SQLite file shared across threads

The per-(user, filter) counter increment is atomic in both: a single critical
section in memory, a single ``INSERT ... ON CONFLICT DO UPDATE`` in SQLite.
Counters only grow.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from collections import Counter
from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import Protocol

from mediavault_filters.core.errors import InvalidInput, StorageFailure
from mediavault_filters.core.models import (
    FilterApplication,
    FilterConfig,
    StyleProfile,
    UserFilterPreference,
    utcnow,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FilterCount:
    """Number of applications of one filter within some scope."""
    filter_id: str
    count: int
    last_used: datetime


class UsageStore(Protocol):
    """Storage for the usage ledger."""

    def add_application(self, application: FilterApplication) -> None: ...

    def increment(
        self,
        user_id: str,
        filter_id: str,
        amount: int = 1,
        used_at: datetime | None = None,
        recently_used_limit: int = 10,
    ) -> None:
        """Atomically add ``amount`` to the counter and mark the filter most recent."""
        ...

    def get_preference(self, user_id: str) -> UserFilterPreference | None: ...

    def save_style_profile(self, user_id: str, profile: StyleProfile) -> None: ...

    def list_applications(
        self,
        user_id: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[FilterApplication]:
        """Applications, newest first."""
        ...

    def count_applications(self, user_id: str | None = None) -> int: ...

    def filter_counts(
        self,
        user_id: str | None = None,
        since: datetime | None = None,
        exclude_user: str | None = None,
        limit: int | None = None,
    ) -> list[FilterCount]:
        """Application counts per filter, highest count first."""
        ...

    def recent_media_ids(self, user_id: str, limit: int) -> list[str]:
        """Distinct media ids the user filtered, most recent first."""
        ...


def _push_recent(recent: list[str], filter_id: str, limit: int) -> list[str]:
    return ([filter_id] + [fid for fid in recent if fid != filter_id])[:limit]


def _check_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 1:
        raise InvalidInput(f"Usage increment must be a positive integer, got {amount!r}")


def _rank(counts: list[FilterCount], limit: int | None) -> list[FilterCount]:
    ranked = sorted(counts, key=lambda c: (-c.count, -c.last_used.timestamp(), c.filter_id))
    return ranked if limit is None else ranked[:limit]


# =============================================================================
# In-memory
# =============================================================================

class InMemoryUsageStore:
    """Thread-safe in-memory UsageStore."""

    def __init__(self):
        self._lock = threading.Lock()
        self._applications: list[FilterApplication] = []
        self._preferences: dict[str, UserFilterPreference] = {}

    def add_application(self, application: FilterApplication) -> None:
        with self._lock:
            self._applications.append(application)

    def increment(
        self,
        user_id: str,
        filter_id: str,
        amount: int = 1,
        used_at: datetime | None = None,
        recently_used_limit: int = 10,
    ) -> None:
        _check_amount(amount)
        now = used_at or utcnow()
        with self._lock:
            pref = self._preferences.get(user_id)
            if pref is None:
                pref = UserFilterPreference(user_id=user_id, created_at=now)
                self._preferences[user_id] = pref
            pref.usage_count[filter_id] = pref.usage_count.get(filter_id, 0) + amount
            pref.recently_used = _push_recent(pref.recently_used, filter_id, recently_used_limit)
            pref.last_used = filter_id
            pref.updated_at = now

    def get_preference(self, user_id: str) -> UserFilterPreference | None:
        with self._lock:
            pref = self._preferences.get(user_id)
            if pref is None:
                return None
            return replace(
                pref,
                usage_count=dict(pref.usage_count),
                recently_used=list(pref.recently_used),
            )

    def save_style_profile(self, user_id: str, profile: StyleProfile) -> None:
        now = utcnow()
        with self._lock:
            pref = self._preferences.get(user_id)
            if pref is None:
                pref = UserFilterPreference(user_id=user_id, created_at=now)
                self._preferences[user_id] = pref
            pref.style_profile = profile
            pref.updated_at = now

    def _newest_first(self, user_id: str | None) -> list[FilterApplication]:
        with self._lock:
            apps = [a for a in self._applications if user_id is None or a.user_id == user_id]
        return sorted(apps, key=lambda a: a.applied_at, reverse=True)

    def list_applications(
        self,
        user_id: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[FilterApplication]:
        apps = self._newest_first(user_id)[offset:]
        return apps if limit is None else apps[:limit]

    def count_applications(self, user_id: str | None = None) -> int:
        with self._lock:
            return sum(1 for a in self._applications if user_id is None or a.user_id == user_id)

    def filter_counts(
        self,
        user_id: str | None = None,
        since: datetime | None = None,
        exclude_user: str | None = None,
        limit: int | None = None,
    ) -> list[FilterCount]:
        counts: Counter[str] = Counter()
        last_used: dict[str, datetime] = {}
        with self._lock:
            for app in self._applications:
                if user_id is not None and app.user_id != user_id:
                    continue
                if exclude_user is not None and app.user_id == exclude_user:
                    continue
                if since is not None and app.applied_at < since:
                    continue
                counts[app.filter_id] += 1
                if app.filter_id not in last_used or app.applied_at > last_used[app.filter_id]:
                    last_used[app.filter_id] = app.applied_at
        return _rank([FilterCount(fid, n, last_used[fid]) for fid, n in counts.items()], limit)

    def recent_media_ids(self, user_id: str, limit: int) -> list[str]:
        seen: list[str] = []
        for app in self._newest_first(user_id):
            if app.media_id not in seen:
                seen.append(app.media_id)
                if len(seen) >= limit:
                    break
        return seen


# =============================================================================
# SQLite
# =============================================================================

_SCHEMA = """
CREATE TABLE IF NOT EXISTS filter_applications (
    id TEXT PRIMARY KEY,
    media_id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    filter_id TEXT NOT NULL,
    override_config TEXT,
    applied_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_applications_user ON filter_applications (user_id, applied_at);
CREATE INDEX IF NOT EXISTS idx_applications_time ON filter_applications (applied_at);

CREATE TABLE IF NOT EXISTS filter_usage (
    user_id TEXT NOT NULL,
    filter_id TEXT NOT NULL,
    count INTEGER NOT NULL DEFAULT 0,
    last_used TEXT NOT NULL,
    PRIMARY KEY (user_id, filter_id)
);

CREATE TABLE IF NOT EXISTS user_preferences (
    user_id TEXT PRIMARY KEY,
    recently_used TEXT NOT NULL DEFAULT '[]',
    last_used TEXT,
    style_profile TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""


class SQLiteUsageStore:
    """
    UsageStore on a SQLite database.

    One connection opened with ``check_same_thread=False`` is shared by all
    threads; statements are serialized by a lock and each write runs in its
    own transaction.

    Usage:
        store = SQLiteUsageStore("usage.db")
        ...
        store.close()
    """

    def __init__(self, db_path: str | Path = ":memory:"):
        self._db_path = str(db_path)
        self._lock = threading.RLock()
        try:
            self._conn = sqlite3.connect(
                self._db_path,
                check_same_thread=False,  # Allow use across threads
                timeout=10.0,  # Wait up to 10s for lock
            )
            self._conn.row_factory = sqlite3.Row
            if self._db_path != ":memory:":
                self._conn.execute("PRAGMA journal_mode=WAL")
                self._conn.execute("PRAGMA synchronous=NORMAL")
            self._conn.executescript(_SCHEMA)
        except sqlite3.Error as e:
            raise StorageFailure(f"Failed to open usage database {self._db_path}: {e}") from e
        logger.info("Opened usage database %s", self._db_path)

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self) -> SQLiteUsageStore:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _execute(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        with self._lock:
            try:
                with self._conn:
                    return self._conn.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                raise StorageFailure(f"Usage database error: {e}") from e

    def add_application(self, application: FilterApplication) -> None:
        override = application.override_config
        self._execute(
            "INSERT INTO filter_applications (id, media_id, user_id, filter_id, override_config, applied_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (
                application.id,
                application.media_id,
                application.user_id,
                application.filter_id,
                json.dumps(override.to_dict()) if override is not None else None,
                application.applied_at.isoformat(),
            ),
        )

    def increment(
        self,
        user_id: str,
        filter_id: str,
        amount: int = 1,
        used_at: datetime | None = None,
        recently_used_limit: int = 10,
    ) -> None:
        _check_amount(amount)
        now = (used_at or utcnow()).isoformat()
        with self._lock:
            try:
                with self._conn:
                    self._conn.execute(
                        "INSERT INTO filter_usage (user_id, filter_id, count, last_used) VALUES (?, ?, ?, ?) "
                        "ON CONFLICT (user_id, filter_id) DO UPDATE SET "
                        "count = count + excluded.count, last_used = excluded.last_used",
                        (user_id, filter_id, amount, now),
                    )
                    row = self._conn.execute(
                        "SELECT recently_used FROM user_preferences WHERE user_id = ?", (user_id,)
                    ).fetchone()
                    recent = json.loads(row["recently_used"]) if row else []
                    recent = _push_recent(recent, filter_id, recently_used_limit)
                    self._conn.execute(
                        "INSERT INTO user_preferences (user_id, recently_used, last_used, created_at, updated_at) "
                        "VALUES (?, ?, ?, ?, ?) "
                        "ON CONFLICT (user_id) DO UPDATE SET recently_used = excluded.recently_used, "
                        "last_used = excluded.last_used, updated_at = excluded.updated_at",
                        (user_id, json.dumps(recent), filter_id, now, now),
                    )
            except sqlite3.Error as e:
                raise StorageFailure(f"Usage database error: {e}") from e

    def get_preference(self, user_id: str) -> UserFilterPreference | None:
        rows = self._execute("SELECT * FROM user_preferences WHERE user_id = ?", (user_id,))
        if not rows:
            return None
        row = rows[0]
        counts = self._execute("SELECT filter_id, count FROM filter_usage WHERE user_id = ?", (user_id,))
        return UserFilterPreference(
            user_id=user_id,
            usage_count={r["filter_id"]: r["count"] for r in counts},
            recently_used=json.loads(row["recently_used"]),
            last_used=row["last_used"],
            style_profile=StyleProfile.from_dict(json.loads(row["style_profile"]) if row["style_profile"] else None),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def save_style_profile(self, user_id: str, profile: StyleProfile) -> None:
        now = utcnow().isoformat()
        self._execute(
            "INSERT INTO user_preferences (user_id, style_profile, created_at, updated_at) VALUES (?, ?, ?, ?) "
            "ON CONFLICT (user_id) DO UPDATE SET style_profile = excluded.style_profile, "
            "updated_at = excluded.updated_at",
            (user_id, json.dumps(profile.to_dict()), now, now),
        )

    def list_applications(
        self,
        user_id: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[FilterApplication]:
        sql = "SELECT * FROM filter_applications"
        params: list = []
        if user_id is not None:
            sql += " WHERE user_id = ?"
            params.append(user_id)
        sql += " ORDER BY applied_at DESC LIMIT ? OFFSET ?"
        params.extend([-1 if limit is None else limit, offset])
        return [self._row_to_application(r) for r in self._execute(sql, tuple(params))]

    def count_applications(self, user_id: str | None = None) -> int:
        if user_id is None:
            rows = self._execute("SELECT COUNT(*) AS n FROM filter_applications")
        else:
            rows = self._execute("SELECT COUNT(*) AS n FROM filter_applications WHERE user_id = ?", (user_id,))
        return rows[0]["n"]

    def filter_counts(
        self,
        user_id: str | None = None,
        since: datetime | None = None,
        exclude_user: str | None = None,
        limit: int | None = None,
    ) -> list[FilterCount]:
        clauses, params = [], []
        if user_id is not None:
            clauses.append("user_id = ?")
            params.append(user_id)
        if exclude_user is not None:
            clauses.append("user_id != ?")
            params.append(exclude_user)
        if since is not None:
            clauses.append("applied_at >= ?")
            params.append(since.isoformat())
        sql = "SELECT filter_id, COUNT(*) AS n, MAX(applied_at) AS last_used FROM filter_applications"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " GROUP BY filter_id"
        counts = [
            FilterCount(r["filter_id"], r["n"], datetime.fromisoformat(r["last_used"]))
            for r in self._execute(sql, tuple(params))
        ]
        return _rank(counts, limit)

    def recent_media_ids(self, user_id: str, limit: int) -> list[str]:
        rows = self._execute(
            "SELECT media_id, MAX(applied_at) AS last_applied FROM filter_applications "
            "WHERE user_id = ? GROUP BY media_id ORDER BY last_applied DESC LIMIT ?",
            (user_id, limit),
        )
        return [r["media_id"] for r in rows]

    @staticmethod
    def _row_to_application(row: sqlite3.Row) -> FilterApplication:
        override = row["override_config"]
        return FilterApplication(
            media_id=row["media_id"],
            user_id=row["user_id"],
            filter_id=row["filter_id"],
            override_config=FilterConfig.from_dict(json.loads(override)) if override else None,
            applied_at=datetime.fromisoformat(row["applied_at"]),
            id=row["id"],
        )
