"""SQL dialect abstraction for the SQL generator.

The generator in :mod:`recordstore.sqlgen` writes one statement shape
for every backend and asks the dialect for the fragments that differ:
placeholders, identifier quoting, identity column DDL and column types.

Architecture::

    ┌──────────────────────────────────────────────────────────────┐
    │  TableSQL (sqlgen)                                           │
    │    f"INSERT INTO {q(table)} ({cols}) VALUES ({ph(n)})"       │
    └──────────────────────────────────────────────────────────────┘
                              │
                              ▼
          ┌──────────────────────┐   ┌──────────────────────────┐
          │ SQLiteDialect        │   │ PostgreSQLDialect        │
          │ ?, ?, ?              │   │ %s, %s  (psycopg2)       │
          │ INTEGER PK AUTOINC   │   │ ?, ?    (SA bridge)      │
          │ bool -> INTEGER      │   │ BIGSERIAL, BOOLEAN       │
          └──────────────────────┘   └──────────────────────────┘

Examples:
    >>> from recordstore.dialect import get_dialect
    >>> d = get_dialect("sqlite")
    >>> d.placeholders(3)
    '?, ?, ?'
    >>> get_dialect("postgresql").placeholders(2)
    '%s, %s'

Tags:
    dialect, sql, abstraction, portability, recordstore

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from recordstore.records import FieldKind


@runtime_checkable
class Dialect(Protocol):
    """SQL dialect contract.

    Every method returns a SQL fragment valid for the target database.
    """

    @property
    def name(self) -> str:
        """Human-readable dialect name (e.g. ``'sqlite'``)."""
        ...

    def placeholder(self, index: int) -> str:
        """Single positional placeholder (0-based index)."""
        ...

    def placeholders(self, count: int) -> str:
        """Comma-separated placeholder list."""
        ...

    def quote(self, identifier: str) -> str:
        """Quote a table or column name."""
        ...

    def unbounded_limit(self) -> str:
        """LIMIT argument meaning no limit (SQLite needs one before OFFSET)."""
        ...

    def auto_increment(self) -> str:
        """DDL fragment for the auto-incrementing identity column."""
        ...

    def column_type(self, kind: FieldKind) -> str:
        """DDL column type for a field kind."""
        ...

    def literal(self, value: object) -> str:
        """SQL literal for a zero value used in ``DEFAULT`` clauses."""
        ...


# =========================================================================
# Concrete Dialect Implementations
# =========================================================================


class SQLiteDialect:
    """SQLite dialect: ``?`` placeholders, integers for booleans."""

    _TYPES = {
        FieldKind.INT64: "INTEGER",
        FieldKind.INT: "INTEGER",
        FieldKind.STR: "TEXT",
        FieldKind.BOOL: "INTEGER",
    }

    @property
    def name(self) -> str:
        return "sqlite"

    @property
    def paramstyle(self) -> str:
        return "qmark"

    # -- Placeholders ------------------------------------------------------

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "?"

    def placeholders(self, count: int) -> str:
        return ", ".join("?" for _ in range(count))

    def quote(self, identifier: str) -> str:
        return '"' + identifier.replace('"', '""') + '"'

    def unbounded_limit(self) -> str:
        return "-1"

    # -- DDL ---------------------------------------------------------------

    def auto_increment(self) -> str:
        return "INTEGER PRIMARY KEY AUTOINCREMENT"

    def column_type(self, kind: FieldKind) -> str:
        return self._TYPES[kind]

    def literal(self, value: object) -> str:
        if isinstance(value, bool):
            return "1" if value else "0"
        if isinstance(value, int):
            return str(value)
        return "'" + str(value).replace("'", "''") + "'"


class PostgreSQLDialect:
    """PostgreSQL dialect.

    Uses ``%s`` format-style placeholders for psycopg2 by default. The
    SQLAlchemy bridge rewrites ``?`` into named binds, so connections made
    through it use ``PostgreSQLDialect(paramstyle="qmark")``.
    """

    _TYPES = {
        FieldKind.INT64: "BIGINT",
        FieldKind.INT: "INTEGER",
        FieldKind.STR: "TEXT",
        FieldKind.BOOL: "BOOLEAN",
    }

    def __init__(self, paramstyle: str = "format") -> None:
        if paramstyle not in ("format", "qmark"):
            raise ValueError(f"Unsupported paramstyle {paramstyle!r}")
        self._paramstyle = paramstyle

    @property
    def name(self) -> str:
        return "postgresql"

    @property
    def paramstyle(self) -> str:
        return self._paramstyle

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "%s" if self._paramstyle == "format" else "?"

    def placeholders(self, count: int) -> str:
        return ", ".join(self.placeholder(i) for i in range(count))

    def quote(self, identifier: str) -> str:
        return '"' + identifier.replace('"', '""') + '"'

    def unbounded_limit(self) -> str:
        return "ALL"

    def auto_increment(self) -> str:
        return "BIGSERIAL PRIMARY KEY"

    def column_type(self, kind: FieldKind) -> str:
        return self._TYPES[kind]

    def literal(self, value: object) -> str:
        if isinstance(value, bool):
            return "TRUE" if value else "FALSE"
        if isinstance(value, int):
            return str(value)
        return "'" + str(value).replace("'", "''") + "'"


# =========================================================================
# Registry / Factory
# =========================================================================

# Pre-instantiated singletons (dialects are stateless)
_DIALECTS: dict[str, Dialect] = {
    "sqlite": SQLiteDialect(),
    "postgresql": PostgreSQLDialect(),
    "postgres": PostgreSQLDialect(),  # alias
}


def get_dialect(db_type: str) -> Dialect:
    """Get a dialect by database type name.

    Raises:
        ValueError: If ``db_type`` is not recognised.
    """
    key = db_type.lower()
    if key not in _DIALECTS:
        raise ValueError(
            f"Unknown dialect '{db_type}'. "
            f"Supported: {sorted(set(_DIALECTS) - {'postgres'})}"
        )
    return _DIALECTS[key]


def register_dialect(name: str, dialect: Dialect) -> None:
    """Register a custom dialect implementation (drivers, test doubles)."""
    _DIALECTS[name.lower()] = dialect


__all__ = [
    "Dialect",
    "SQLiteDialect",
    "PostgreSQLDialect",
    "get_dialect",
    "register_dialect",
]
