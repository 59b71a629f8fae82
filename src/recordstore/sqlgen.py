"""SQL text generator: one ``TableSQL`` per record type.

Given a record's field table, ``TableSQL`` produces the parameterized
statements the controller issues, and maps between attribute names and
column names. It never executes anything.

Parameter order is part of the contract. Every query documents the
order its placeholders expect, and that order is the one
:mod:`recordstore.introspect` produces for records and
:meth:`TableSQL.filter_params` / :meth:`TableSQL.update_params`
produce for maps.

Architecture::

    RecordSchema (records.py)          Dialect (dialect.py)
          │  columns, identity               │  ?, "quote", types
          ▼                                  ▼
    ┌──────────────────────────────────────────────────────────┐
    │ TableSQL                                                 │
    │   table = prefix + snake_case(Type) + "s"  | force_name  │
    │   columns = identity, data fields (declaration order)    │
    │                                                          │
    │   query_insert / query_insert_on_conflict_update         │
    │   query_update_by_id / query_select_by_id                │
    │   query_delete_by_id / query_delete_returning_id         │
    │   query_select / query_select_count / query_update       │
    │   query_create_table / query_drop_table                  │
    └──────────────────────────────────────────────────────────┘

Filters:
    ``{"name": "Ann"}``          -> ``"name" = ?``
    ``{"group_id": [1, 2]}``     -> ``"group_id" IN (?, ?)``
    ``{"group_id": []}``         -> ``1 = 0`` (matches nothing)
    ``{"email": None}``          -> ``"email" IS NULL``

    Keys are emitted in sorted order; ``filter_params`` follows the same
    order.

Examples:
    >>> sql = TableSQL(Person)
    >>> sql.table
    'persons'
    >>> sql.query_select_by_id()
    'SELECT "id", "name", "age", "active", "group_id" FROM "persons" WHERE "id" = ?'

Tags:
    sql, generator, query-builder, recordstore

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from recordstore.dialect import Dialect, SQLiteDialect
from recordstore.errors import SchemaError, ValidationError
from recordstore.records import DEFAULT_TAG, FieldSpec, RecordSchema, schema_of, snake_case

_SEQUENCE_TYPES = (list, tuple, set, frozenset)


def is_membership(value: Any) -> bool:
    """Whether a filter value means ``IN (...)`` rather than equality."""
    return isinstance(value, _SEQUENCE_TYPES)


def _membership_values(value: Any) -> list[Any]:
    # Sets have no order; sort them so SQL text and params agree.
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    return list(value)


class TableSQL:
    """Statement generator bound to one record type and one table.

    Args:
        record_type: Record class (or instance) to describe.
        table_prefix: Prepended to the derived table name.
        force_name: Use this table name verbatim (prefix not applied).
        source: Parent generator whose column names are reused for
            same-named fields.
        tag_name: Field-metadata key holding column declarations.
        dialect: SQL dialect; SQLite when omitted.

    Raises:
        SchemaError: the record's shape cannot be described, or a field
            is unknown to ``source``.
    """

    def __init__(
        self,
        record_type: Any,
        *,
        table_prefix: str = "",
        force_name: str | None = None,
        source: TableSQL | None = None,
        tag_name: str = DEFAULT_TAG,
        dialect: Dialect | None = None,
    ) -> None:
        self.schema: RecordSchema = schema_of(record_type, tag_name)
        self.dialect: Dialect = dialect or SQLiteDialect()
        self.table: str = force_name or f"{table_prefix}{snake_case(self.schema.name)}s"
        self.source = source

        columns: dict[str, str] = {}
        for spec in self.schema.columns:
            if source is None:
                columns[spec.name] = spec.column
                continue
            inherited = source.column_for_field(spec.name)
            if inherited is None:
                raise SchemaError(
                    f"Field {self.schema.name}.{spec.name} is unknown to source "
                    f"{source.schema.name}"
                ).with_context(record_type=self.schema.name, table=self.table, field=spec.name)
            columns[spec.name] = inherited
        self._columns = columns
        self._fields_by_column = {col: name for name, col in columns.items()}

    def __repr__(self) -> str:
        return f"TableSQL(record_type={self.schema.name!r}, table={self.table!r})"

    # -- Naming ------------------------------------------------------------

    @property
    def identity_column(self) -> str:
        return self._columns[self.schema.identity.name]

    @property
    def columns(self) -> list[str]:
        """Identity column first, then data columns."""
        return list(self._columns.values())

    @property
    def data_columns(self) -> list[str]:
        return [self._columns[f.name] for f in self.schema.fields]

    def column_for_field(self, name: str) -> str | None:
        return self._columns.get(name)

    def field_name_for_column(self, column: str) -> str | None:
        return self._fields_by_column.get(column)

    def _q(self, name: str) -> str:
        return self.dialect.quote(name)

    def _col(self, field_name: str) -> str:
        column = self._columns.get(field_name)
        if column is None:
            raise ValidationError(
                [field_name], op="BuildQuery"
            ).with_context(record_type=self.schema.name, table=self.table)
        return self._q(column)

    def _ph(self, count: int) -> str:
        return self.dialect.placeholders(count)

    @property
    def _table(self) -> str:
        return self._q(self.table)

    @property
    def _select_list(self) -> str:
        return ", ".join(self._q(c) for c in self.columns)

    @property
    def _id(self) -> str:
        return self._q(self.identity_column)

    # -- Row statements ----------------------------------------------------

    def query_insert(self) -> str:
        """Insert a new row; params: data fields. Returns the new identity."""
        cols = self.data_columns
        if not cols:
            return f"INSERT INTO {self._table} DEFAULT VALUES RETURNING {self._id}"
        names = ", ".join(self._q(c) for c in cols)
        return (
            f"INSERT INTO {self._table} ({names}) VALUES ({self._ph(len(cols))}) "
            f"RETURNING {self._id}"
        )

    def query_insert_on_conflict_update(self) -> str:
        """Upsert by identity; params: identity and data fields, then data fields."""
        cols = self.columns
        names = ", ".join(self._q(c) for c in cols)
        sql = (
            f"INSERT INTO {self._table} ({names}) VALUES ({self._ph(len(cols))}) "
            f"ON CONFLICT ({self._id}) DO "
        )
        if not self.data_columns:
            return sql + "NOTHING"
        return sql + "UPDATE SET " + self._assignments(self.data_columns)

    def query_update_by_id(self) -> str:
        """Update one row; params: data fields, then identity."""
        if self.data_columns:
            assignments = self._assignments(self.data_columns)
        else:
            assignments = f"{self._id} = {self._id}"
        return f"UPDATE {self._table} SET {assignments} WHERE {self._id} = {self._ph(1)}"

    def query_select_by_id(self) -> str:
        """Select one row (all columns); params: identity."""
        return f"SELECT {self._select_list} FROM {self._table} WHERE {self._id} = {self._ph(1)}"

    def query_delete_by_id(self) -> str:
        """Delete one row; params: identity."""
        return f"DELETE FROM {self._table} WHERE {self._id} = {self._ph(1)}"

    # -- Filtered statements -----------------------------------------------

    def query_select(
        self,
        order: Sequence[str] | None = None,
        limit: int = 0,
        offset: int = 0,
        filters: Mapping[str, Any] | None = None,
    ) -> str:
        """Select all columns; params: ``filter_params(filters)``.

        ``order`` entries are field names, ``"-name"`` for descending.
        A ``limit`` or ``offset`` of 0 is not applied.
        """
        sql = f"SELECT {self._select_list} FROM {self._table}" + self._where(filters)
        if order:
            sql += " ORDER BY " + ", ".join(self._order_term(o) for o in order)
        if limit > 0:
            sql += f" LIMIT {int(limit)}"
        elif offset > 0:
            sql += f" LIMIT {self.dialect.unbounded_limit()}"
        if offset > 0:
            sql += f" OFFSET {int(offset)}"
        return sql

    def query_select_count(self, filters: Mapping[str, Any] | None = None) -> str:
        """Count rows; params: ``filter_params(filters)``."""
        return f"SELECT COUNT(*) FROM {self._table}" + self._where(filters)

    def query_delete_returning_id(self, filters: Mapping[str, Any] | None = None) -> str:
        """Delete matching rows, returning their identities."""
        return f"DELETE FROM {self._table}{self._where(filters)} RETURNING {self._id}"

    def query_update(
        self,
        values: Mapping[str, Any],
        filters: Mapping[str, Any] | None = None,
    ) -> str:
        """Update matching rows; params: ``update_params(values, filters)``."""
        if not values:
            raise ValidationError([], "No values to update", op="BuildQuery").with_context(
                record_type=self.schema.name, table=self.table
            )
        assignments = ", ".join(f"{self._col(k)} = {self._ph(1)}" for k in sorted(values))
        return f"UPDATE {self._table} SET {assignments}" + self._where(filters)

    # -- Parameters --------------------------------------------------------

    def filter_params(self, filters: Mapping[str, Any] | None) -> list[Any]:
        """Parameters for the WHERE clause built from ``filters``."""
        params: list[Any] = []
        for key in sorted(filters or {}):
            value = filters[key]
            if value is None:
                continue
            if is_membership(value):
                params.extend(_membership_values(value))
            else:
                params.append(value)
        return params

    def update_params(
        self,
        values: Mapping[str, Any],
        filters: Mapping[str, Any] | None = None,
    ) -> list[Any]:
        """Value bindings, then filter bindings."""
        return [values[k] for k in sorted(values)] + self.filter_params(filters)

    # -- DDL ---------------------------------------------------------------

    def query_create_table(self) -> str:
        """``CREATE TABLE IF NOT EXISTS`` for this record type."""
        defs = [f"{self._id} {self.dialect.auto_increment()}"]
        for spec in self.schema.fields:
            defs.append(self._column_def(spec))
        return f"CREATE TABLE IF NOT EXISTS {self._table} ({', '.join(defs)})"

    def query_drop_table(self) -> str:
        return f"DROP TABLE IF EXISTS {self._table}"

    # -- Internals ---------------------------------------------------------

    def _assignments(self, columns: Iterable[str]) -> str:
        return ", ".join(f"{self._q(c)} = {self._ph(1)}" for c in columns)

    def _column_def(self, spec: FieldSpec) -> str:
        return (
            f"{self._q(self._columns[spec.name])} {self.dialect.column_type(spec.kind)} "
            f"NOT NULL DEFAULT {self.dialect.literal(spec.zero)}"
        )

    def _order_term(self, entry: str) -> str:
        descending = entry.startswith("-")
        name = entry[1:] if descending else entry
        return f"{self._col(name)} {'DESC' if descending else 'ASC'}"

    def _where(self, filters: Mapping[str, Any] | None) -> str:
        if not filters:
            return ""
        terms: list[str] = []
        for key in sorted(filters):
            column = self._col(key)
            value = filters[key]
            if value is None:
                terms.append(f"{column} IS NULL")
            elif is_membership(value):
                if not value:
                    terms.append("1 = 0")
                else:
                    terms.append(f"{column} IN ({self._ph(len(value))})")
            else:
                terms.append(f"{column} = {self._ph(1)}")
        return " WHERE " + " AND ".join(terms)


__all__ = [
    "TableSQL",
    "is_membership",
]
