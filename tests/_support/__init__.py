"""
Test support utilities for recordstore tests.

Sample record types and helpers that don't fit as pytest fixtures but
are useful across multiple test files.
"""

from __future__ import annotations

from typing import Any

from recordstore.sqlgen import TableSQL


def create_tables(conn: Any, *record_types: type, table_prefix: str = "") -> None:
    """Create (idempotently) the tables for ``record_types`` on ``conn``."""
    for record_type in record_types:
        conn.execute(TableSQL(record_type, table_prefix=table_prefix).query_create_table())
    conn.commit()


def count_rows(conn: Any, table: str) -> int:
    conn.execute(f'SELECT COUNT(*) FROM "{table}"')
    return conn.fetchone()[0]
