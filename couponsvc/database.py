"""Opening the SQLite database and running work inside transactions."""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager, nullcontext
from dataclasses import dataclass
from typing import Iterator

_SCHEMA = """
CREATE TABLE IF NOT EXISTS campaign (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    total_coupons INTEGER NOT NULL,
    remaining_coupons INTEGER NOT NULL,
    start_at TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS coupon (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    campaign_id INTEGER NOT NULL REFERENCES campaign (id),
    code TEXT NOT NULL,
    created_at TEXT NOT NULL
);
"""


class DatabaseError(Exception):
    """Raised when the database cannot be opened or initialised."""


@dataclass(frozen=True)
class Config:
    """Where the database lives."""

    path: str


class _Connection(sqlite3.Connection):
    """A connection shared between threads, serialised by its own lock."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.lock = threading.RLock()


def connect(config: Config) -> sqlite3.Connection:
    """Open the database at ``config.path`` and make sure its tables exist."""
    try:
        connection = sqlite3.connect(
            config.path,
            factory=_Connection,
            isolation_level=None,
            check_same_thread=False,
        )
    except sqlite3.Error as exc:
        raise DatabaseError(f"database error: {exc}") from exc

    try:
        connection.executescript(_SCHEMA)
    except sqlite3.Error as exc:
        connection.close()
        raise DatabaseError(f"database error: {exc}") from exc
    return connection


@contextmanager
def transaction(connection: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Run the body in a transaction: commit on success, roll back on error."""
    lock = getattr(connection, "lock", None)
    with lock if lock is not None else nullcontext():
        connection.execute("BEGIN")
        try:
            yield connection
        except BaseException:
            connection.execute("ROLLBACK")
            raise
        else:
            connection.execute("COMMIT")