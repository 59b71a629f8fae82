"""Persistence controller: generic CRUD over any record type.

Manifesto:
    Callers hand the controller a record (or a zero-argument factory for
    one) and get rows in and out of the database without writing
    per-type code. The controller resolves the type's SQL generator,
    validates caller-supplied maps against the field table, binds
    parameters in introspector order, and binds rows back into records.
    It is a thin, fail-fast layer: one statement per step, no retries, no
    transaction spanning more than one statement.

Architecture::

    ┌──────────────────────────────────────────────────────────────────┐
    │                         Controller                               │
    │                                                                  │
    │   registry: SchemaRegistry  → TableSQL per record type           │
    │   validator: Validator      → filters, values, whole records     │
    │   conn: Connection          → SqliteConnection / SAConnectionBridge
    │                                                                  │
    │   save(record)              INSERT ... RETURNING | upsert | update
    │   load(record, id)          SELECT by id, or reset on no row      │
    │   delete(record)            DELETE by id, reset, cascade(depth 0) │
    │   delete_multiple(factory)  DELETE ... RETURNING id, cascade      │
    │   update_multiple(factory)  UPDATE ... SET values WHERE filters   │
    │   get(factory)              SELECT ... ORDER/LIMIT/OFFSET         │
    │   get_count(factory)        SELECT COUNT(*)                       │
    └──────────────────────────────────────────────────────────────────┘

Cascade delete::

    Group ──persons──▶ Person ──pets──▶ Pet ──...──▶ (stops at depth 3)

    For each relation on the deleted type whose name is in
    ``constructors``, delete children WHERE fk IN (deleted ids) at
    depth + 1. Recursion continues only while depth < 3. Only ids
    actually returned by the preceding DELETE seed the next level.
    Nothing is rolled back on failure: the caller gets a
    ``CascadeDeleteError`` and a ``cascade_delete_incomplete`` warning is
    logged.

Examples:
    >>> conn = SqliteConnection(":memory:")
    >>> store = Controller(conn)
    >>> ann = Person(name="Ann", age=30)
    >>> store.save(ann)
    >>> ann.id
    1
    >>> again = Person()
    >>> store.load(again, "1")
    >>> again.name
    'Ann'
    >>> store.get(Person, GetOptions(filters={"age": 30}, order=["-id"]))
    [Person(id=1, name='Ann', age=30, active=False, group_id=0)]

Guardrails:
    ❌ DON'T: Treat a zeroed record after ``load`` as an error
    ✅ DO: Check ``record.id`` to tell found from not found

    ❌ DON'T: Expect ``coerce_string_map`` to report bad input
    ✅ DO: Compare its keys with the input when every key matters

    ❌ DON'T: Assume a failed cascade left the parent in place
    ✅ DO: Check ``CascadeDeleteError.primary_deleted`` and reconcile

Tags:
    controller, persistence, crud, cascade-delete, recordstore

Doc-Types:
    - API Reference
    - Architecture Documentation
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from recordstore.connection import create_connection
from recordstore.dialect import Dialect
from recordstore.errors import (
    CascadeDeleteError,
    ConversionError,
    MissingValuesError,
    QueryError,
    RecordStoreError,
    ScanError,
    SchemaError,
    ValidationError,
)
from recordstore.introspect import (
    assign_fields,
    coerce_string_map,
    field_values,
    identity_value,
    reset_fields,
    set_identity,
)
from recordstore.logging import configure_logging, get_logger
from recordstore.protocols import Connection, Constructors, RecordFactory, RowTransform
from recordstore.records import DEFAULT_TAG, FieldKind
from recordstore.registry import SchemaRegistry
from recordstore.settings import RecordStoreSettings, get_settings
from recordstore.sqlgen import TableSQL
from recordstore.validation import Validator

logger = get_logger(__name__)

MAX_CASCADE_DEPTH = 3

# Parent ids per IN (...) clause, below SQLite's default bound-variable limit.
CASCADE_CHUNK_SIZE = 500

_ID_RE = re.compile(r"[+-]?[0-9]+")


# =============================================================================
# OPTIONS
# =============================================================================


@dataclass(frozen=True)
class SaveOptions:
    """``no_insert``: update by identity only, never insert."""

    no_insert: bool = False


@dataclass(frozen=True)
class DeleteOptions:
    constructors: Constructors = field(default_factory=dict)


@dataclass(frozen=True)
class DeleteMultipleOptions:
    filters: Mapping[str, Any] | None = None
    cascade_delete_depth: int = 0
    constructors: Constructors = field(default_factory=dict)


@dataclass(frozen=True)
class UpdateMultipleOptions:
    filters: Mapping[str, Any] | None = None
    convert_values_from_string: bool = False


@dataclass(frozen=True)
class GetOptions:
    """Query options for :meth:`Controller.get`.

    ``order`` entries are field names, ``"-name"`` for descending. A
    ``limit`` or ``offset`` of 0 is not applied. ``row_transform`` maps
    each bound record to the value appended to the result.
    """

    order: Sequence[str] | None = None
    limit: int = 0
    offset: int = 0
    filters: Mapping[str, Any] | None = None
    row_transform: RowTransform | None = None


@dataclass(frozen=True)
class GetCountOptions:
    filters: Mapping[str, Any] | None = None


# =============================================================================
# CONTROLLER
# =============================================================================


class Controller:
    """Generic persistence operations over a single connection.

    Parameters:
        conn: Any object satisfying the :class:`Connection` protocol.
        registry: Schema registry; a private one is created if omitted.
        validator: Field validator; a default one is created if omitted.
        dialect: SQL dialect for a registry created here.
        table_prefix: Table prefix for a registry created here.
        tag_name: Field-metadata key for a registry created here.
    """

    def __init__(
        self,
        conn: Connection,
        *,
        registry: SchemaRegistry | None = None,
        validator: Validator | None = None,
        dialect: Dialect | None = None,
        table_prefix: str = "",
        tag_name: str = DEFAULT_TAG,
    ) -> None:
        self.conn = conn
        if registry is None:
            registry = SchemaRegistry(table_prefix=table_prefix, tag_name=tag_name, dialect=dialect)
        self.registry = registry
        self.validator = validator or Validator()

    @classmethod
    def from_session(cls, session: Any, dialect: Dialect | None = None, **kwargs: Any) -> Controller:
        """Create a controller backed by a SQLAlchemy ORM session.

        Statements go through
        :class:`~recordstore.orm.session.SAConnectionBridge`, which takes
        ``?`` placeholders, so ``dialect`` must be qmark-style.
        """
        from recordstore.orm.session import SAConnectionBridge

        return cls(SAConnectionBridge(session), dialect=dialect, **kwargs)

    # -- Schema ------------------------------------------------------------

    def register(self, record: Any, parent: Any = None, overwrite: bool = False) -> TableSQL:
        """Register ``record``'s type, optionally derived from ``parent``'s."""
        return self.registry.register(record, parent, overwrite)

    def field_name_for_column(self, record: Any, column: str) -> str:
        return self.registry.field_name_for_column(record, column)

    def coerce_string_map(self, record: Any, values: Mapping[str, Any]) -> dict[str, Any]:
        return coerce_string_map(record, values, tag_name=self.registry.tag_name)

    def validate(self, record: Any, values: Mapping[str, Any] | None = None) -> list[str]:
        """Invalid field names for ``values`` (or the whole record when empty)."""
        generator = self._helper(record, "validate")
        if values:
            return self.validator.invalid_values(generator.schema, values)
        return self.validator.invalid_record_fields(generator.schema, record)

    # -- Single record -----------------------------------------------------

    def save(self, record: Any, options: SaveOptions | None = None) -> None:
        """Insert or update ``record``.

        Identity 0 inserts and binds the generated identity back into the
        record. A non-zero identity upserts, or only updates with
        ``no_insert`` (affecting no row when none exists).

        Raises:
            ValidationError: a field value is invalid; nothing is written.
            QueryError: the statement failed.
        """
        options = options or SaveOptions()
        generator = self._helper(record, "save")
        schema = generator.schema
        self._validated(self.validator.validate_record, record, schema, generator=generator)

        record_id = identity_value(record, tag_name=self.registry.tag_name)
        if record_id != 0 and options.no_insert:
            params = [*field_values(record, schema=schema), record_id]
            self._run(generator, "save", generator.query_update_by_id(), params)
        elif record_id != 0:
            params = [
                *field_values(record, True, schema=schema),
                *field_values(record, schema=schema),
            ]
            self._run(generator, "save", generator.query_insert_on_conflict_update(), params)
        else:
            rows = self._run(
                generator,
                "save",
                generator.query_insert(),
                field_values(record, schema=schema),
                fetch=True,
            )
            if not rows:
                raise ScanError("Insert returned no identity", op="DBQueryRowScan").with_context(
                    record_type=schema.name, table=generator.table, operation="save"
                )
            set_identity(record, rows[0][0], tag_name=self.registry.tag_name)

    def load(self, record: Any, record_id: str | int) -> None:
        """Fill ``record`` from the row with identity ``record_id``.

        When no row matches, the record is reset to zero values and no
        error is raised.

        Raises:
            ConversionError: ``record_id`` is not an integer.
            QueryError: the statement failed.
            ScanError: the row could not be bound.
        """
        generator = self._helper(record, "load")
        ident = self._parse_id(generator, record_id)

        rows = self._run(generator, "load", generator.query_select_by_id(), [ident], fetch=True)
        if not rows:
            reset_fields(record, tag_name=self.registry.tag_name)
            return
        self._scan(generator, record, rows[0], "load")

    def delete(self, record: Any, options: DeleteOptions | None = None) -> None:
        """Delete ``record``'s row, reset it, then cascade to its relations.

        A record with identity 0 is left alone.

        Raises:
            QueryError: the delete failed.
            CascadeDeleteError: a dependent delete failed after the row
                was removed.
        """
        options = options or DeleteOptions()
        generator = self._helper(record, "delete")
        record_id = identity_value(record, tag_name=self.registry.tag_name)
        if record_id == 0:
            return

        self._run(generator, "delete", generator.query_delete_by_id(), [record_id])
        reset_fields(record, tag_name=self.registry.tag_name)
        self._cascade(generator, [record_id], 0, options.constructors)

    # -- Multiple records --------------------------------------------------

    def delete_multiple(
        self,
        factory: RecordFactory,
        options: DeleteMultipleOptions | None = None,
    ) -> list[int]:
        """Delete every row matching ``filters`` and return their identities.

        Cascades over the deleted identities while
        ``cascade_delete_depth`` is below ``MAX_CASCADE_DEPTH``, in
        batches of ``CASCADE_CHUNK_SIZE`` parent ids.

        Raises:
            ValidationError: a filter is invalid, or
                ``cascade_delete_depth`` is negative.
        """
        options = options or DeleteMultipleOptions()
        record = factory()
        generator = self._helper(record, "delete_multiple")
        if options.cascade_delete_depth < 0:
            raise ValidationError(["cascade_delete_depth"], op="ValidateCascadeDepth").with_context(
                record_type=generator.schema.name, table=generator.table, operation="delete_multiple"
            )
        if options.filters:
            self._validated(
                self.validator.validate_filters,
                generator.schema,
                options.filters,
                generator=generator,
            )

        rows = self._run(
            generator,
            "delete_multiple",
            generator.query_delete_returning_id(options.filters),
            generator.filter_params(options.filters),
            fetch=True,
        )
        deleted = [row[0] for row in rows]
        if options.cascade_delete_depth < MAX_CASCADE_DEPTH:
            self._cascade(generator, deleted, options.cascade_delete_depth, options.constructors)
        return deleted

    def update_multiple(
        self,
        factory: RecordFactory,
        values: Mapping[str, Any],
        options: UpdateMultipleOptions | None = None,
    ) -> None:
        """Set ``values`` on every row matching ``filters``.

        Raises:
            MissingValuesError: ``values`` is empty (also after string
                conversion dropped every key).
            ValidationError: a value or filter is invalid.
        """
        options = options or UpdateMultipleOptions()
        record = factory()
        generator = self._helper(record, "update_multiple")
        context = {
            "record_type": generator.schema.name,
            "table": generator.table,
            "operation": "update_multiple",
        }
        if not values:
            raise MissingValuesError().with_context(**context)
        if options.convert_values_from_string:
            values = self.coerce_string_map(record, values)
            if not values:
                raise MissingValuesError(
                    "No values left after string conversion"
                ).with_context(**context)

        self._validated(self.validator.validate_values, generator.schema, values, generator=generator)
        if options.filters:
            self._validated(
                self.validator.validate_filters,
                generator.schema,
                options.filters,
                generator=generator,
            )

        self._run(
            generator,
            "update_multiple",
            generator.query_update(values, options.filters),
            generator.update_params(values, options.filters),
        )

    def get(self, factory: RecordFactory, options: GetOptions | None = None) -> list[Any]:
        """Rows matching ``filters`` as fresh records (or transformed values)."""
        options = options or GetOptions()
        generator = self._helper(factory(), "get")
        schema = generator.schema
        if options.filters:
            self._validated(self.validator.validate_filters, schema, options.filters, generator=generator)
        if options.order:
            self._validated(self.validator.validate_order, schema, options.order, generator=generator)
        bad_paging = [n for n in ("limit", "offset") if getattr(options, n) < 0]
        if bad_paging:
            raise ValidationError(bad_paging, op="ValidatePaging").with_context(
                record_type=schema.name, table=generator.table, operation="get"
            )

        rows = self._run(
            generator,
            "get",
            generator.query_select(options.order, options.limit, options.offset, options.filters),
            generator.filter_params(options.filters),
            fetch=True,
        )
        results: list[Any] = []
        for row in rows:
            obj = factory()
            self._scan(generator, obj, row, "get")
            results.append(options.row_transform(obj) if options.row_transform else obj)
        return results

    def get_count(self, factory: RecordFactory, options: GetCountOptions | None = None) -> int:
        options = options or GetCountOptions()
        generator = self._helper(factory(), "get_count")
        if options.filters:
            self._validated(
                self.validator.validate_filters,
                generator.schema,
                options.filters,
                generator=generator,
            )

        rows = self._run(
            generator,
            "get_count",
            generator.query_select_count(options.filters),
            generator.filter_params(options.filters),
            fetch=True,
        )
        if not rows or not isinstance(rows[0][0], int):
            raise ScanError("Count query returned no integer", op="DBQueryRowScan").with_context(
                record_type=generator.schema.name, table=generator.table, operation="get_count"
            )
        return rows[0][0]

    # -- Cascade -----------------------------------------------------------

    def _cascade(
        self,
        generator: TableSQL,
        parent_ids: list[int],
        depth: int,
        constructors: Constructors,
    ) -> None:
        if not parent_ids:
            return
        for rel in generator.schema.relations:
            child_factory = constructors.get(rel.name)
            if child_factory is None:
                continue
            try:
                for start in range(0, len(parent_ids), CASCADE_CHUNK_SIZE):
                    self.delete_multiple(
                        child_factory,
                        DeleteMultipleOptions(
                            filters={rel.foreign_key: parent_ids[start : start + CASCADE_CHUNK_SIZE]},
                            cascade_delete_depth=depth + 1,
                            constructors=constructors,
                        ),
                    )
            except CascadeDeleteError:
                raise
            except RecordStoreError as e:
                logger.warning(
                    "cascade_delete_incomplete",
                    parent_type=generator.schema.name,
                    parent_ids=list(parent_ids),
                    depth=depth,
                    relation=rel.name,
                    error=str(e),
                )
                raise CascadeDeleteError(
                    f"Cascade delete of relation {rel.name!r} failed",
                    parent_type=generator.schema.name,
                    parent_ids=parent_ids,
                    depth=depth,
                    relation=rel.name,
                    cause=e,
                ).with_context(
                    record_type=generator.schema.name, table=generator.table, operation="delete"
                ) from e

    # -- Internals ---------------------------------------------------------

    def _helper(self, record: Any, operation: str) -> TableSQL:
        try:
            return self.registry.resolve(record)
        except SchemaError as e:
            e.with_context(operation=operation)
            raise

    @staticmethod
    def _parse_id(generator: TableSQL, record_id: str | int) -> int:
        ident: int | None = None
        if isinstance(record_id, int) and not isinstance(record_id, bool):
            ident = record_id
        elif isinstance(record_id, str) and _ID_RE.fullmatch(record_id):
            ident = int(record_id)
        low, high = FieldKind.INT64.bounds
        if ident is not None and low <= ident <= high:
            return ident
        raise ConversionError(f"Invalid identity {record_id!r}").with_context(
            record_type=generator.schema.name, operation="load"
        )

    @staticmethod
    def _validated(check: Any, *args: Any, generator: TableSQL) -> None:
        try:
            check(*args)
        except ValidationError as e:
            e.with_context(table=generator.table)
            raise

    def _scan(self, generator: TableSQL, record: Any, row: Any, operation: str) -> None:
        try:
            assign_fields(record, row, schema=generator.schema)
        except ScanError as e:
            e.with_context(table=generator.table, operation=operation)
            raise

    def _run(
        self,
        generator: TableSQL,
        operation: str,
        sql: str,
        params: Sequence[Any],
        *,
        fetch: bool = False,
    ) -> list[Any]:
        """Execute one statement and commit it; rows are read before commit."""
        logger.debug(
            "statement_issued",
            operation=operation,
            record_type=generator.schema.name,
            table=generator.table,
            params=len(params),
        )
        try:
            self.conn.execute(sql, tuple(params))
            rows = list(self.conn.fetchall()) if fetch else []
            self.conn.commit()
        except Exception as e:
            self._rollback()
            raise QueryError("Error executing DB query", cause=e).with_context(
                record_type=generator.schema.name,
                table=generator.table,
                operation=operation,
            ) from e
        return rows

    def _rollback(self) -> None:
        try:
            self.conn.rollback()
        except Exception:
            logger.warning("rollback_failed", exc_info=True)


# =============================================================================
# FACTORY
# =============================================================================


def create_controller(settings: RecordStoreSettings | None = None) -> Controller:
    """Configure logging and open a connection from settings.

    Returns a controller using the connection's dialect and the
    configured table prefix and tag name.
    """
    settings = settings or get_settings()
    configure_logging(level=settings.log_level, json_format=settings.json_logs)
    conn, info = create_connection(
        settings.database_url,
        data_dir=settings.data_dir,
        echo=settings.echo_sql,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        pool_timeout=settings.pool_timeout,
    )
    logger.info("controller_created", backend=info.backend, table_prefix=settings.table_prefix)
    return Controller(
        conn,
        dialect=info.dialect,
        table_prefix=settings.table_prefix,
        tag_name=settings.tag_name,
    )


__all__ = [
    "MAX_CASCADE_DEPTH",
    "CASCADE_CHUNK_SIZE",
    "Controller",
    "SaveOptions",
    "DeleteOptions",
    "DeleteMultipleOptions",
    "UpdateMultipleOptions",
    "GetOptions",
    "GetCountOptions",
    "create_controller",
]
