from __future__ import annotations

import sqlite3
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Protocol, Sequence, Tuple

_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS feedback (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    source TEXT,
    content TEXT,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_feedback_created ON feedback(created_at);
"""

SAMPLE_FEEDBACK: Tuple[Tuple[str, str], ...] = (
    ("github", "Rate limiting docs are confusing. I keep getting blocked."),
    ("support", "The dashboard loads slowly when viewing analytics."),
    ("discord", "Love the product, but error messages could be clearer."),
    ("twitter", "Why does my worker randomly fail at night?"),
    ("forum", "Pricing tiers are hard to understand for small projects."),
)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class FeedbackRecord:
    source: Optional[str]
    content: Optional[str]
    created_at: str


class FeedbackStore(Protocol):
    def insert(self, source: str, content: str, created_at: Optional[str] = None) -> None:
        ...

    def query_recent(self, limit: int) -> List[FeedbackRecord]:
        ...


class SQLiteFeedbackStore:
    """Append-only feedback table.

    Reads are newest first; rows sharing a created_at come back in reverse
    insertion order so the latest insert still wins.
    """

    def __init__(self, db_path: str):
        self._db_path = db_path
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._ensure_tables()

    def _ensure_tables(self) -> None:
        self._conn.executescript(_SCHEMA_SQL)
        self._conn.commit()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def insert(self, source: str, content: str, created_at: Optional[str] = None) -> None:
        with self._lock:
            self._conn.execute(
                "INSERT INTO feedback (source, content, created_at) VALUES (?, ?, ?)",
                (source, content, created_at or now_iso()),
            )
            self._conn.commit()

    def query_recent(self, limit: int) -> List[FeedbackRecord]:
        if limit <= 0:
            return []
        with self._lock:
            rows = self._conn.execute(
                "SELECT source, content, created_at FROM feedback "
                "ORDER BY created_at DESC, id DESC LIMIT ?",
                (int(limit),),
            ).fetchall()
        return [FeedbackRecord(r["source"], r["content"], r["created_at"]) for r in rows]

    def count(self) -> int:
        with self._lock:
            return int(self._conn.execute("SELECT COUNT(*) FROM feedback").fetchone()[0])


def seed_samples(store: FeedbackStore, samples: Sequence[Tuple[str, str]] = SAMPLE_FEEDBACK, created_at: Optional[str] = None) -> int:
    """Insert the fixed demo rows, all sharing one timestamp. No rollback on partial failure."""
    ts = created_at or now_iso()
    for source, content in samples:
        store.insert(source, content, ts)
    return len(samples)
