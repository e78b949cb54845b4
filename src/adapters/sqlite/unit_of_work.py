"""
SQLite Unit of Work.

One connection, one write transaction. The transaction is opened with
BEGIN IMMEDIATE so concurrent writers serialize on the database lock
instead of failing mid-transaction; waiting for the lock is bounded by
the busy timeout.
"""

from __future__ import annotations

import sqlite3
from typing import Any


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Convert SQLite row to dictionary."""
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def connect(db_path: str, timeout: float = 5.0) -> sqlite3.Connection:
    """Open a connection in autocommit mode; transactions are explicit."""
    conn = sqlite3.connect(db_path, timeout=timeout, isolation_level=None, check_same_thread=False)
    conn.row_factory = dict_factory
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


class SQLiteUnitOfWork:
    """
    Transaction scope over a single connection.

    Changes are kept only if commit() is called before the block exits;
    an exception or a missing commit discards them.
    """

    def __init__(self, db_path: str, timeout: float = 5.0):
        self.db_path = db_path
        self.timeout = timeout
        self._conn: sqlite3.Connection | None = None
        self._committed = False

    def __enter__(self) -> SQLiteUnitOfWork:
        self._conn = connect(self.db_path, self.timeout)
        try:
            self._conn.execute("BEGIN IMMEDIATE")
        except sqlite3.Error:
            self._conn.close()
            self._conn = None
            raise
        self._committed = False
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        if self._conn is None:
            return
        try:
            if not self._committed:
                self.rollback()
        finally:
            self._conn.close()
            self._conn = None

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Unit of work is not active")
        return self._conn

    def execute(self, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        return self.connection.execute(sql, params)

    def commit(self) -> None:
        self.connection.execute("COMMIT")
        self._committed = True

    def rollback(self) -> None:
        if self.connection.in_transaction:
            self.connection.execute("ROLLBACK")
