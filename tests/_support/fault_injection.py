"""
Fault injection for deterministic database failures.

``FaultyConnection`` wraps a real connection and raises on statements
whose text contains an installed marker. It also records every statement
it sees, so tests can assert on database interaction.

Usage in test code::

    from tests._support.fault_injection import FaultyConnection

    conn = FaultyConnection(SqliteConnection(":memory:"))
    conn.install_fault('DELETE FROM "pets"')
    # ... run the operation ...
    conn.clear_faults()
"""

from __future__ import annotations

import sqlite3
from typing import Any


class FaultyConnection:
    """``Connection`` wrapper that fails on matching statements."""

    def __init__(self, inner: Any) -> None:
        self.inner = inner
        self.statements: list[tuple[str, tuple]] = []
        self.rollbacks = 0
        self._faults: list[str] = []

    def install_fault(self, marker: str) -> None:
        self._faults.append(marker)

    def clear_faults(self) -> None:
        self._faults.clear()

    def execute(self, sql: str, params: tuple = ()) -> Any:
        self.statements.append((sql, tuple(params)))
        for marker in self._faults:
            if marker in sql:
                raise sqlite3.OperationalError(f"Injected fault for {marker!r}")
        return self.inner.execute(sql, params)

    def executemany(self, sql: str, params: list[tuple]) -> Any:
        return self.inner.executemany(sql, params)

    def fetchone(self) -> Any:
        return self.inner.fetchone()

    def fetchall(self) -> list:
        return self.inner.fetchall()

    def commit(self) -> None:
        self.inner.commit()

    def rollback(self) -> None:
        self.rollbacks += 1
        self.inner.rollback()
