"""
Protocol definitions for recordstore.

The controller depends on shapes, not drivers: anything satisfying
:class:`Connection` can carry its statements, and any zero-argument
callable returning a fresh record is a :data:`RecordFactory`.

Architecture:
    ::

        protocols.py
        ├── Connection    : sync DB protocol (sqlite3 adapter, SA bridge, ...)
        ├── RecordFactory : () -> fresh zero-valued record
        ├── Constructors  : relation name -> RecordFactory
        └── RowTransform  : (record) -> any, applied per row by Controller.get

Tags:
    protocol, connection, factory, recordstore

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from recordstore.records import Record


@runtime_checkable
class Connection(Protocol):
    """
    Minimal SYNCHRONOUS connection interface.

    Examples:
        >>> conn.execute("SELECT id FROM persons WHERE id = ?", (1,))
        >>> row = conn.fetchone()
        >>> conn.commit()
    """

    def execute(self, sql: str, params: tuple = ()) -> Any:
        """Execute SQL statement with optional parameters. SYNC."""
        ...

    def executemany(self, sql: str, params: list[tuple]) -> Any:
        """Execute SQL statement for multiple parameter sets. SYNC."""
        ...

    def fetchone(self) -> Any:
        """Fetch one row from last query. SYNC."""
        ...

    def fetchall(self) -> list:
        """Fetch all rows from last query. SYNC."""
        ...

    def commit(self) -> None:
        """Commit current transaction. SYNC."""
        ...

    def rollback(self) -> None:
        """Rollback current transaction. SYNC."""
        ...


RecordFactory = Callable[[], "Record"]
"""Zero-argument callable returning a fresh, zero-valued record."""

Constructors = Mapping[str, RecordFactory]
"""Relation name -> factory for that relation's child record type."""

RowTransform = Callable[["Record"], Any]
"""Per-row hook applied by ``Controller.get`` before appending a result."""


__all__ = [
    "Connection",
    "RecordFactory",
    "Constructors",
    "RowTransform",
]
