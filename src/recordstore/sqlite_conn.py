"""SQLite connection adapter.

Wraps a raw :class:`sqlite3.Connection` to satisfy the
:class:`~recordstore.protocols.Connection` protocol.

``sqlite3.Connection.execute()`` hands back a fresh cursor each time,
while the controller reads results from the connection itself
(``execute`` then ``fetchone`` / ``fetchall``). The adapter keeps one
cursor so both calls see the same result set.

Usage::

    from recordstore.sqlite_conn import SqliteConnection

    conn = SqliteConnection(":memory:")
    conn.execute('CREATE TABLE "persons" ("id" INTEGER PRIMARY KEY, "name" TEXT)')
    conn.execute('INSERT INTO "persons" ("name") VALUES (?) RETURNING "id"', ("Ann",))
    new_id = conn.fetchone()[0]
    conn.commit()
    conn.close()
"""

from __future__ import annotations

import sqlite3
from typing import Any


class SqliteConnection:
    """Adapter: ``sqlite3.Connection`` → ``Connection`` protocol.

    Rows come back as :class:`sqlite3.Row`, which supports positional
    access in column order like the tuples returned by the SQLAlchemy
    bridge.
    """

    def __init__(self, path: str = ":memory:", *, row_factory: Any = sqlite3.Row) -> None:
        self._path = path
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = row_factory
        self._cursor = self._conn.cursor()

    # -- Connection protocol -----------------------------------------------

    def execute(self, sql: str, params: tuple = ()) -> Any:
        self._cursor.execute(sql, tuple(params))
        return self._cursor

    def executemany(self, sql: str, params: list[tuple]) -> Any:
        self._cursor.executemany(sql, params)
        return self._cursor

    def fetchone(self) -> Any:
        return self._cursor.fetchone()

    def fetchall(self) -> list:
        return self._cursor.fetchall()

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    def close(self) -> None:
        self._conn.close()

    # -- convenience -------------------------------------------------------

    @property
    def raw(self) -> sqlite3.Connection:
        """Access the underlying ``sqlite3.Connection`` (e.g. for pragmas)."""
        return self._conn

    def __repr__(self) -> str:
        return f"SqliteConnection(path={self._path!r})"


__all__ = ["SqliteConnection"]
