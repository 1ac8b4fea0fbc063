"""SQLite database handle for the people count log.

Owns the connection, schema creation and transaction handling. One
``Database`` is created at startup and shared by reference with every
component that reads or writes observations.
"""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path

from people_counter.exceptions import StoreUnavailable

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS line (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    time TEXT NOT NULL,
    nb_people INTEGER NOT NULL,
    source TEXT
);

CREATE INDEX IF NOT EXISTS idx_line_time ON line(time);

CREATE TRIGGER IF NOT EXISTS line_no_update
BEFORE UPDATE ON line
BEGIN
    SELECT RAISE(ABORT, 'line is append-only');
END;

CREATE TRIGGER IF NOT EXISTS line_no_delete
BEFORE DELETE ON line
BEGIN
    SELECT RAISE(ABORT, 'line is append-only');
END;
"""


class Database:
    """Shared SQLite handle storing people count observations.

    Args:
        db_path: Path to the SQLite database file. Use ``':memory:'``
            for an in-memory database.
        timeout: Seconds to wait on a locked database before failing.

    Raises:
        StoreUnavailable: If the database cannot be opened.
    """

    def __init__(self, db_path: str = "data/people.db", timeout: float = 5.0) -> None:
        self.db_path = db_path
        self._lock = threading.Lock()
        self._closed = False
        try:
            if db_path != ":memory:":
                Path(db_path).parent.mkdir(parents=True, exist_ok=True)
            self.conn = sqlite3.connect(
                db_path, timeout=timeout, check_same_thread=False
            )
        except (OSError, sqlite3.Error) as exc:
            raise StoreUnavailable(f"Cannot open database {db_path}: {exc}") from exc
        self.conn.row_factory = sqlite3.Row
        try:
            self.init_schema()
        except StoreUnavailable:
            self.conn.close()
            self._closed = True
            raise
        logger.info("Database initialized at %s", db_path)

    @property
    def closed(self) -> bool:
        return self._closed

    def init_schema(self) -> None:
        """Create the observation table, index and triggers if missing."""
        with self._lock:
            try:
                self.conn.executescript(SCHEMA)
                self.conn.commit()
            except sqlite3.Error as exc:
                raise StoreUnavailable(f"Cannot create schema: {exc}") from exc

    @contextmanager
    def transaction(self):
        """Run one unit of work against the store.

        The handle lock is held for the whole block, so concurrent callers
        are serialized.

        Yields:
            A cursor on the shared connection.

        Raises:
            StoreUnavailable: If the handle is closed or SQLite fails. The
                transaction is rolled back first.
        """
        with self._lock:
            if self._closed:
                raise StoreUnavailable("Database connection is closed")
            try:
                cursor = self.conn.cursor()
                yield cursor
                self.conn.commit()
            except sqlite3.Error as exc:
                self.conn.rollback()
                raise StoreUnavailable(str(exc)) from exc
            except Exception:
                self.conn.rollback()
                raise

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._closed:
                return
            self.conn.close()
            self._closed = True
        logger.info("Database connection closed")
