"""SQLite-backed queue implementation used in place of AWS SQS."""

from __future__ import annotations

import json
import logging
import sqlite3
import time
import uuid
from contextlib import closing, contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List

logger = logging.getLogger(__name__)


class SQLiteQueueClient:
    """Persist job payloads with SQS-like leases, redelivery and a dead-letter table.

    A job that has already been received ``max_receive_count`` times is moved to
    the dead-letter table instead of being leased again, like an SQS redrive policy.
    """

    def __init__(self, db_path: str, *, max_receive_count: int = 5) -> None:
        if max_receive_count < 1:
            raise ValueError("max_receive_count must be at least 1")
        self._db_path = Path(db_path)
        self._max_receive_count = max_receive_count
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            self._db_path, check_same_thread=False, isolation_level=None, timeout=30
        )
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        with closing(self._connect()) as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    def _ensure_schema(self) -> None:
        with closing(self._connect()) as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS section_job_queue (
                    id TEXT PRIMARY KEY,
                    payload TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    visible_at REAL NOT NULL,
                    receive_count INTEGER NOT NULL DEFAULT 0
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS section_job_dead_letter (
                    id TEXT PRIMARY KEY,
                    payload TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    receive_count INTEGER NOT NULL,
                    dead_lettered_at TEXT NOT NULL
                )
                """
            )

    def enqueue_job(self, payload: Dict[str, Any]) -> str:
        message_id = uuid.uuid4().hex
        created_at = datetime.now(timezone.utc).isoformat()
        with closing(self._connect()) as conn:
            conn.execute(
                "INSERT INTO section_job_queue (id, payload, created_at, visible_at) "
                "VALUES (?, ?, ?, ?)",
                (message_id, json.dumps(payload), created_at, time.time()),
            )
        return message_id

    def receive_batch(
        self, *, max_messages: int = 10, visibility_timeout: float = 900.0
    ) -> List[Dict[str, Any]]:
        """Lease up to ``max_messages`` visible jobs, shaped like SQS records.

        Leased jobs become visible again after ``visibility_timeout`` seconds
        unless acknowledged.
        """
        now = time.time()
        leased: List[sqlite3.Row] = []
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT id, payload, created_at, receive_count FROM section_job_queue "
                "WHERE visible_at <= ? ORDER BY created_at, id LIMIT ?",
                (now, max_messages),
            ).fetchall()
            for row in rows:
                if row["receive_count"] >= self._max_receive_count:
                    self._dead_letter(conn, row)
                    continue
                conn.execute(
                    "UPDATE section_job_queue SET visible_at = ?, "
                    "receive_count = receive_count + 1 WHERE id = ?",
                    (now + visibility_timeout, row["id"]),
                )
                leased.append(row)
        return [
            {
                "messageId": row["id"],
                "body": row["payload"],
                "attributes": {"ApproximateReceiveCount": str(row["receive_count"] + 1)},
            }
            for row in leased
        ]

    def _dead_letter(self, conn: sqlite3.Connection, row: sqlite3.Row) -> None:
        conn.execute(
            "INSERT INTO section_job_dead_letter "
            "(id, payload, created_at, receive_count, dead_lettered_at) VALUES (?, ?, ?, ?, ?)",
            (
                row["id"],
                row["payload"],
                row["created_at"],
                row["receive_count"],
                datetime.now(timezone.utc).isoformat(),
            ),
        )
        conn.execute("DELETE FROM section_job_queue WHERE id = ?", (row["id"],))
        logger.warning(
            "Moved job %s to the dead-letter table after %d receives",
            row["id"],
            row["receive_count"],
        )

    def ack(self, message_ids: Iterable[str]) -> None:
        """Delete processed jobs so they are never redelivered."""
        ids = list(message_ids)
        if not ids:
            return
        with closing(self._connect()) as conn:
            conn.executemany(
                "DELETE FROM section_job_queue WHERE id = ?", [(item,) for item in ids]
            )

    def pending_count(self) -> int:
        with closing(self._connect()) as conn:
            row = conn.execute("SELECT COUNT(*) AS total FROM section_job_queue").fetchone()
        return int(row["total"])

    def dead_letters(self) -> List[Dict[str, Any]]:
        with closing(self._connect()) as conn:
            rows = conn.execute(
                "SELECT id, payload, receive_count FROM section_job_dead_letter "
                "ORDER BY dead_lettered_at, id"
            ).fetchall()
        return [
            {
                "messageId": row["id"],
                "body": row["payload"],
                "receiveCount": row["receive_count"],
            }
            for row in rows
        ]


__all__ = ["SQLiteQueueClient"]
