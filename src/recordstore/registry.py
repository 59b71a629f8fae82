"""Schema registry: one ``TableSQL`` per record type, built on first use.

The registry is an explicit object handed to the controller. Populate it
at startup with :meth:`SchemaRegistry.register` (or let :meth:`resolve`
register lazily); after warm-up it is read-mostly. Registration is
serialized by a lock, so concurrent first use of the same type builds
one generator.

Entries are keyed by the record class's qualified name
(``module.QualName``).

Examples:
    >>> registry = SchemaRegistry(table_prefix="app_")
    >>> registry.resolve(Person).table
    'app_persons'
    >>> registry.register(Admin, parent=Person).table
    'app_persons'

Tags:
    registry, schema, cache, recordstore

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import threading
from typing import Any

from recordstore.dialect import Dialect
from recordstore.errors import SchemaError
from recordstore.logging import get_logger
from recordstore.records import DEFAULT_TAG
from recordstore.sqlgen import TableSQL

logger = get_logger(__name__)


def type_key(record: Any) -> str:
    """Registry key for a record class or instance."""
    record_type = record if isinstance(record, type) else type(record)
    return f"{record_type.__module__}.{record_type.__qualname__}"


class SchemaRegistry:
    """Cache of SQL generators keyed by record type."""

    def __init__(
        self,
        *,
        table_prefix: str = "",
        tag_name: str = DEFAULT_TAG,
        dialect: Dialect | None = None,
    ) -> None:
        self.table_prefix = table_prefix
        self.tag_name = tag_name
        self.dialect = dialect
        self._entries: dict[str, TableSQL] = {}
        self._lock = threading.RLock()

    def __contains__(self, record: Any) -> bool:
        return type_key(record) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def resolve(self, record: Any) -> TableSQL:
        """Cached generator for ``record``'s type, registering it if needed.

        Raises:
            SchemaError: the type's shape cannot be described.
        """
        entry = self._entries.get(type_key(record))
        if entry is not None:
            return entry
        return self.register(record)

    def register(self, record: Any, parent: Any = None, overwrite: bool = False) -> TableSQL:
        """Build and cache the generator for ``record``'s type.

        With ``parent``, the generator shares the parent's table name and
        column names. Without ``overwrite`` an existing entry is kept and
        returned unchanged.

        Raises:
            SchemaError: the type's shape cannot be described, or it has
                a field the parent lacks.
        """
        key = type_key(record)
        with self._lock:
            existing = self._entries.get(key)
            if existing is not None and not overwrite:
                return existing

            record_type = record if isinstance(record, type) else type(record)
            try:
                if parent is not None:
                    source = self.resolve(parent)
                    generator = TableSQL(
                        record_type,
                        force_name=source.table,
                        source=source,
                        tag_name=self.tag_name,
                        dialect=self.dialect,
                    )
                else:
                    generator = TableSQL(
                        record_type,
                        table_prefix=self.table_prefix,
                        tag_name=self.tag_name,
                        dialect=self.dialect,
                    )
            except SchemaError as e:
                e.with_context(record_type=record_type.__name__)
                raise

            self._entries[key] = generator

        logger.info(
            "schema_registered",
            record_type=generator.schema.name,
            table=generator.table,
            parent=type_key(parent) if parent is not None else None,
            overwrite=overwrite,
        )
        return generator

    def field_name_for_column(self, record: Any, column: str) -> str:
        """Reverse lookup from a column name to the attribute name.

        Raises:
            SchemaError: the type has no such column.
        """
        generator = self.resolve(record)
        name = generator.field_name_for_column(column)
        if name is None:
            raise SchemaError(
                f"{generator.schema.name} has no column {column!r}", op="GetFieldNameFromDBCol"
            ).with_context(record_type=generator.schema.name, table=generator.table)
        return name

    def names(self) -> list[str]:
        return sorted(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


__all__ = ["SchemaRegistry", "type_key"]
