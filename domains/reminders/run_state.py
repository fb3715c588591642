"""Durable record of the last completed reminder cycle.

A single row in local SQLite. Read at the start of a cycle, overwritten at
the end with that cycle's ``now``; survives bot restarts so a catch-up after
downtime covers exactly the gap since the last commit.
"""

import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Optional

from logger import logger
from . import config
from .models import PersistenceUnavailable


class RunStateStore:
    """SQLite-backed store for the single run-state instant."""

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path or config.RUN_STATE_DB
        self._connection: Optional[sqlite3.Connection] = None

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create the database connection."""
        if self._connection is not None:
            return self._connection

        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self._connection = sqlite3.connect(
            self.db_path,
            check_same_thread=False,
            timeout=10.0
        )
        self._connection.execute("PRAGMA journal_mode=WAL")
        self._connection.execute("PRAGMA busy_timeout=5000")
        self._connection.executescript("""
            CREATE TABLE IF NOT EXISTS run_state (
                id INTEGER PRIMARY KEY CHECK (id = 1),
                last_run TEXT NOT NULL
            );
        """)
        self._connection.commit()

        logger.info(f"Run state store initialized: {self.db_path}")
        return self._connection

    @contextmanager
    def _transaction(self):
        """Context manager for database transactions."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def load(self) -> Optional[datetime]:
        """Instant of the last completed cycle, or None before the first one."""
        try:
            row = self._get_connection().execute(
                "SELECT last_run FROM run_state WHERE id = 1"
            ).fetchone()
        except (sqlite3.Error, OSError) as e:
            raise PersistenceUnavailable(f"Cannot read run state: {e}") from e

        return datetime.fromisoformat(row[0]) if row else None

    def store(self, now: datetime) -> None:
        """Replace the run state with ``now`` in one transaction."""
        try:
            with self._transaction() as conn:
                conn.execute(
                    "INSERT OR REPLACE INTO run_state (id, last_run) VALUES (1, ?)",
                    (now.isoformat(),)
                )
        except (sqlite3.Error, OSError) as e:
            raise PersistenceUnavailable(f"Cannot write run state: {e}") from e

        logger.debug(f"Run state committed: {now.isoformat()}")

    def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None
