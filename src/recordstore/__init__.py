"""
recordstore - generic record persistence over SQL.

Declare a dataclass record, hand it to a :class:`Controller`, and get
save / load / delete / filtered get / bulk update / cascading delete
without per-type code.

Examples:
    >>> from dataclasses import dataclass
    >>> from recordstore import Controller, Record, SqliteConnection
    >>> @dataclass
    ... class Person(Record):
    ...     id: int = 0
    ...     name: str = ""
    >>> store = Controller(SqliteConnection(":memory:"))
"""

from __future__ import annotations

__version__ = "0.1.0"

from recordstore.connection import ConnectionInfo, create_connection
from recordstore.controller import (
    MAX_CASCADE_DEPTH,
    Controller,
    DeleteMultipleOptions,
    DeleteOptions,
    GetCountOptions,
    GetOptions,
    SaveOptions,
    UpdateMultipleOptions,
    create_controller,
)
from recordstore.dialect import Dialect, PostgreSQLDialect, SQLiteDialect, get_dialect
from recordstore.errors import (
    CascadeDeleteError,
    ConversionError,
    ErrorCategory,
    ErrorContext,
    MissingValuesError,
    QueryError,
    RecordStoreError,
    ScanError,
    SchemaError,
    ValidationError,
    invalid_fields,
    is_validation_error,
)
from recordstore.protocols import Connection
from recordstore.records import FieldKind, Record, RecordSchema, column, relation
from recordstore.registry import SchemaRegistry
from recordstore.settings import RecordStoreSettings, get_settings
from recordstore.sqlgen import TableSQL
from recordstore.sqlite_conn import SqliteConnection
from recordstore.validation import Validator

__all__ = [
    "__version__",
    # records
    "FieldKind",
    "Record",
    "RecordSchema",
    "column",
    "relation",
    # controller
    "MAX_CASCADE_DEPTH",
    "Controller",
    "SaveOptions",
    "DeleteOptions",
    "DeleteMultipleOptions",
    "UpdateMultipleOptions",
    "GetOptions",
    "GetCountOptions",
    "create_controller",
    # collaborators
    "SchemaRegistry",
    "TableSQL",
    "Validator",
    "Dialect",
    "SQLiteDialect",
    "PostgreSQLDialect",
    "get_dialect",
    "Connection",
    "SqliteConnection",
    "ConnectionInfo",
    "create_connection",
    "RecordStoreSettings",
    "get_settings",
    # errors
    "RecordStoreError",
    "ErrorCategory",
    "ErrorContext",
    "SchemaError",
    "ValidationError",
    "MissingValuesError",
    "ConversionError",
    "QueryError",
    "ScanError",
    "CascadeDeleteError",
    "is_validation_error",
    "invalid_fields",
]
