"""
Tests for recordstore.connection and recordstore.sqlite_conn.

Covers:
- URL parsing for every supported form
- In-memory and file-backed SQLite connections
- ConnectionInfo metadata and dialect
- SqliteConnection protocol behaviour
- Placeholder rewriting for the SQLAlchemy bridge
"""

from __future__ import annotations

import pytest

from recordstore.connection import ConnectionInfo, _parse_url, create_connection
from recordstore.dialect import PostgreSQLDialect, SQLiteDialect
from recordstore.orm.session import _named_binds
from recordstore.protocols import Connection
from recordstore.sqlite_conn import SqliteConnection


class TestParseUrl:
    @pytest.mark.parametrize("db", [None, "", "memory", ":memory:", "sqlite://", "sqlite:///:memory:"])
    def test_memory(self, db):
        assert _parse_url(db) == ("memory", ":memory:")

    def test_sqlite_url(self):
        assert _parse_url("sqlite:///data/store.db") == ("sqlite", "data/store.db")

    def test_plain_path(self):
        assert _parse_url("store.db") == ("file", "store.db")

    @pytest.mark.parametrize(
        "db,expected",
        [
            ("postgresql://u:p@h/db", "postgresql://u:p@h/db"),
            ("postgresql+psycopg2://u@h/db", "postgresql+psycopg2://u@h/db"),
            ("postgres://u@h/db", "postgresql://u@h/db"),
            ("postgres+psycopg2://u@h/db", "postgresql+psycopg2://u@h/db"),
        ],
    )
    def test_postgres_normalized(self, db, expected):
        assert _parse_url(db) == ("postgresql", expected)


class TestCreateConnection:
    def test_memory(self):
        conn, info = create_connection()
        assert isinstance(conn, SqliteConnection)
        assert info.is_sqlite and not info.is_postgres
        assert info.persistent is False
        assert isinstance(info.dialect, SQLiteDialect)
        conn.close()

    def test_file_in_data_dir(self, tmp_path):
        conn, info = create_connection("nested/store.db", data_dir=str(tmp_path))
        assert info.persistent is True
        assert info.resolved_path == str((tmp_path / "nested" / "store.db").resolve())
        assert (tmp_path / "nested" / "store.db").exists()
        assert "path=" in repr(info)
        conn.close()

    def test_absolute_path_ignores_data_dir(self, tmp_path):
        target = tmp_path / "abs.db"
        conn, info = create_connection(f"sqlite:///{target}", data_dir="/elsewhere")
        assert info.resolved_path == str(target.resolve())
        conn.close()


class TestConnectionInfo:
    def test_repr_without_path(self):
        info = ConnectionInfo(backend="postgresql", persistent=True, url="postgresql://h/db")
        assert repr(info) == "ConnectionInfo(backend='postgresql', persistent=True, url='postgresql://h/db')"

    def test_dialect_excluded_from_equality(self):
        a = ConnectionInfo(backend="sqlite", persistent=False, url=":memory:")
        b = ConnectionInfo(
            backend="sqlite", persistent=False, url=":memory:", dialect=PostgreSQLDialect()
        )
        assert a == b


class TestSqliteConnection:
    def test_satisfies_protocol(self):
        conn = SqliteConnection()
        assert isinstance(conn, Connection)
        conn.close()

    def test_execute_fetch_commit(self):
        conn = SqliteConnection()
        conn.execute("CREATE TABLE t (a INTEGER, b TEXT)")
        conn.executemany("INSERT INTO t VALUES (?, ?)", [(1, "x"), (2, "y")])
        conn.commit()
        conn.execute("SELECT a, b FROM t ORDER BY a")
        rows = conn.fetchall()
        assert [tuple(r) for r in rows] == [(1, "x"), (2, "y")]
        assert rows[0]["b"] == "x"
        conn.close()

    def test_rollback_discards(self):
        conn = SqliteConnection()
        conn.execute("CREATE TABLE t (a INTEGER)")
        conn.commit()
        conn.execute("INSERT INTO t VALUES (?)", (1,))
        conn.rollback()
        conn.execute("SELECT COUNT(*) FROM t")
        assert conn.fetchone()[0] == 0
        conn.close()


class TestNamedBinds:
    def test_rewrites_in_order(self):
        assert _named_binds('SELECT * FROM "t" WHERE "a" = ? AND "b" = ?') == (
            'SELECT * FROM "t" WHERE "a" = :p0 AND "b" = :p1'
        )

    def test_skips_quoted_text(self):
        assert _named_binds("SELECT '?', \"?\" FROM t WHERE a = ?") == (
            "SELECT '?', \"?\" FROM t WHERE a = :p0"
        )
