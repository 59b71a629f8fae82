"""
Structured error types for recordstore.

Every failure raised by the persistence controller is a
:class:`RecordStoreError` subclass. Instead of a formatted string, each
error carries:

- **Op:** The step that failed (``"Validate"``, ``"DBQuery"``, ...)
- **Category:** What kind of failure (schema, validation, database, ...)
- **Context:** Record type, table and free-form metadata
- **Cause:** The chained driver or parser exception, if any

Architecture:
    ::

        ┌───────────────────────────────────────────────────────────┐
        │                    RecordStoreError                        │
        │            (op, category, context, cause)                  │
        ├───────────────────────────────────────────────────────────┤
        │                                                            │
        │  SchemaError         ValidationError     ConversionError   │
        │  (SCHEMA)            (VALIDATION)        (CONVERSION)      │
        │                       fields: [...]                        │
        │                      MissingValuesError                    │
        │                                                            │
        │  QueryError          ScanError                             │
        │  (DATABASE)          (DATABASE)                            │
        │      │                                                     │
        │  CascadeDeleteError                                        │
        │  (parent_type, parent_ids, depth, primary_deleted)         │
        └───────────────────────────────────────────────────────────┘

Examples:
    >>> err = ValidationError(["age"], op="ValidateFilters")
    >>> err.fields
    ['age']
    >>> err.category
    <ErrorCategory.VALIDATION: 'VALIDATION'>

    Wrapping a driver error:

    >>> try:
    ...     raise RuntimeError("no such table: persons")
    ... except RuntimeError as e:
    ...     err = QueryError("Error executing DB query", cause=e)
    >>> err.cause
    RuntimeError('no such table: persons')

Guardrails:
    ❌ DON'T: Format the invalid field names into the message only
    ✅ DO: Keep them on ``ValidationError.fields`` so callers can act on them

    ❌ DON'T: Swallow the driver exception
    ✅ DO: Pass it as ``cause=`` for error chaining

Tags:
    error-handling, exception-hierarchy, error-context, recordstore

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    SCHEMA = "SCHEMA"              # Record shape cannot be described
    VALIDATION = "VALIDATION"      # Unknown field, wrong-typed value, constraint
    CONVERSION = "CONVERSION"      # Malformed identity string
    DATABASE = "DATABASE"          # Statement execution or row scan
    INTERNAL = "INTERNAL"          # Bugs, unexpected state


@dataclass
class ErrorContext:
    """Structured metadata attached to an error.

    Attributes:
        record_type: Name of the record class involved
        table: Database table the operation targeted
        operation: Controller operation (``"save"``, ``"get"``, ...)
        metadata: Additional key-value pairs
    """

    record_type: str | None = None
    table: str | None = None
    operation: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result: dict[str, Any] = {}
        for key in ["record_type", "table", "operation"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class RecordStoreError(Exception):
    """
    Base exception for all recordstore errors.

    Subclasses set ``default_category`` and ``default_op`` so that the
    common case needs nothing but a message.

    Examples:
        >>> error = RecordStoreError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>

        >>> error = RecordStoreError("Lookup failed").with_context(
        ...     record_type="Person", table="persons"
        ... )
        >>> error.context.table
        'persons'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_op: str = "Internal"

    def __init__(
        self,
        message: str,
        *,
        op: str | None = None,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.op = op or self.default_op
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> RecordStoreError:
        """Add context to this error (fluent API)."""
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Serialize for structured logging."""
        result: dict[str, Any] = {
            "error_type": type(self).__name__,
            "op": self.op,
            "message": self.message,
            "category": self.category.value,
            "context": self.context.to_dict(),
        }
        if self.cause is not None:
            result["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return result

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.op}: {self.message}: {self.cause}"
        return f"{self.op}: {self.message}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(op={self.op!r}, message={self.message!r})"


# =============================================================================
# SCHEMA
# =============================================================================


class SchemaError(RecordStoreError):
    """A record type's schema could not be derived or resolved."""

    default_category = ErrorCategory.SCHEMA
    default_op = "GetHelper"


# =============================================================================
# VALIDATION
# =============================================================================


class ValidationError(RecordStoreError):
    """A filter/value map or a record failed validation.

    ``fields`` lists every offending field name, in a stable order.
    """

    default_category = ErrorCategory.VALIDATION
    default_op = "Validate"

    def __init__(
        self,
        fields: Iterable[str],
        message: str | None = None,
        **kwargs: Any,
    ):
        self.fields: list[str] = list(fields)
        super().__init__(
            message or f"Invalid fields: {', '.join(self.fields)}",
            **kwargs,
        )

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["fields"] = list(self.fields)
        return result


class MissingValuesError(ValidationError):
    """An update was requested with an empty values map."""

    default_op = "MissingValues"

    def __init__(self, message: str = "Missing values for update", **kwargs: Any):
        super().__init__([], message, **kwargs)


class ConversionError(RecordStoreError):
    """An identity string could not be parsed as an integer."""

    default_category = ErrorCategory.CONVERSION
    default_op = "IDToInt"


# =============================================================================
# DATABASE
# =============================================================================


class QueryError(RecordStoreError):
    """A statement failed to execute."""

    default_category = ErrorCategory.DATABASE
    default_op = "DBQuery"


class ScanError(RecordStoreError):
    """A result row could not be bound into a record."""

    default_category = ErrorCategory.DATABASE
    default_op = "DBQueryRowsScan"


class CascadeDeleteError(QueryError):
    """Deleting dependent rows failed part-way through a cascade.

    Rows removed before the failure are not restored. When
    ``primary_deleted`` is true the rows the caller asked to delete are
    already gone and the database needs manual reconciliation.
    """

    default_op = "CascadeDelete"

    def __init__(
        self,
        message: str,
        *,
        parent_type: str,
        parent_ids: Sequence[int],
        depth: int,
        relation: str | None = None,
        primary_deleted: bool = True,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.parent_type = parent_type
        self.parent_ids = list(parent_ids)
        self.depth = depth
        self.relation = relation
        self.primary_deleted = primary_deleted

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result.update(
            parent_type=self.parent_type,
            parent_ids=self.parent_ids,
            depth=self.depth,
            relation=self.relation,
            primary_deleted=self.primary_deleted,
        )
        return result


# =============================================================================
# HELPERS
# =============================================================================


def is_validation_error(error: BaseException) -> bool:
    """Check whether an error was caused by caller input rather than the database."""
    return isinstance(error, ValidationError)


def invalid_fields(error: BaseException) -> list[str]:
    """Return the offending field names carried by an error, if any."""
    if isinstance(error, ValidationError):
        return list(error.fields)
    return []


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "RecordStoreError",
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
