"""Generic field access over records.

Every function here reads the record's field table
(:func:`recordstore.records.schema_of`) and nothing else, so any record
type works without per-type code.

Ordering contract: values are produced, and rows consumed, in the field
table's column order. That is the identity first (when included), then
data fields in declaration order, the same order
:class:`recordstore.sqlgen.TableSQL` lays out columns and placeholders.

Examples:
    >>> p = Person(name="Ann", age=30, active=True, group_id=1)
    >>> field_values(p)
    ['Ann', 30, True, 1]
    >>> coerce_string_map(p, {"age": "30", "active": "true", "bogus": "x"})
    {'age': 30, 'active': True}

Tags:
    introspection, fields, binding, recordstore

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

from recordstore.errors import ScanError
from recordstore.records import DEFAULT_TAG, FieldKind, FieldSpec, RecordSchema, schema_of

_INT_RE = re.compile(r"[+-]?[0-9]+")


def field_values(
    record: Any,
    include_identity: bool = False,
    *,
    schema: RecordSchema | None = None,
    tag_name: str = DEFAULT_TAG,
) -> list[Any]:
    """Ordered values for parameter binding."""
    schema = schema or schema_of(record, tag_name)
    specs = schema.columns if include_identity else schema.fields
    return [getattr(record, spec.name) for spec in specs]


def assign_fields(
    record: Any,
    row: Sequence[Any],
    include_identity: bool = True,
    *,
    schema: RecordSchema | None = None,
    tag_name: str = DEFAULT_TAG,
) -> None:
    """Bind a result row into ``record`` in place.

    Raises:
        ScanError: column count mismatch, a ``NULL`` column, or a value
            that cannot be held by the field's kind.
    """
    schema = schema or schema_of(record, tag_name)
    specs = schema.columns if include_identity else schema.fields
    values = tuple(row)
    if len(values) != len(specs):
        raise ScanError(
            f"Row has {len(values)} columns, {schema.name} expects {len(specs)}"
        ).with_context(record_type=schema.name)

    converted = [_scan_value(schema, spec, value) for spec, value in zip(specs, values)]
    for spec, value in zip(specs, converted):
        setattr(record, spec.name, value)


def _scan_value(schema: RecordSchema, spec: FieldSpec, value: Any) -> Any:
    if value is None:
        raise ScanError(f"NULL in column for {schema.name}.{spec.name}").with_context(
            record_type=schema.name, field=spec.name
        )
    if spec.kind is FieldKind.BOOL:
        # SQLite stores booleans as 0/1.
        if isinstance(value, bool):
            return value
        if isinstance(value, int) and value in (0, 1):
            return bool(value)
    elif spec.kind.is_integer:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    elif isinstance(value, str):
        return value
    raise ScanError(
        f"Cannot scan {type(value).__name__} into {schema.name}.{spec.name} ({spec.kind.value})"
    ).with_context(record_type=schema.name, field=spec.name)


def identity_value(record: Any, *, tag_name: str = DEFAULT_TAG) -> int:
    """Current identity of ``record`` (0 means unsaved)."""
    return getattr(record, schema_of(record, tag_name).identity.name)


def set_identity(record: Any, value: int, *, tag_name: str = DEFAULT_TAG) -> None:
    setattr(record, schema_of(record, tag_name).identity.name, value)


def coerce_string_map(
    record: Any,
    values: Mapping[str, Any],
    *,
    tag_name: str = DEFAULT_TAG,
) -> dict[str, Any]:
    """Convert string values to each named field's kind.

    Integers are parsed in base 10 and must fit the field's kind, booleans
    are true only for the exact string ``"true"``, strings pass through.
    A value already of the field's type is kept as is. Keys that are not
    data fields, integers that do not parse or fit, and other non-string
    values are dropped from the result without being reported.
    """
    schema = schema_of(record, tag_name)
    result: dict[str, Any] = {}
    for key, raw in values.items():
        spec = schema.field(key)
        if spec is None:
            continue
        if type(raw) is spec.kind.python_type:
            value = raw
        elif not isinstance(raw, str):
            continue
        elif spec.kind.is_integer:
            if _INT_RE.fullmatch(raw) is None:
                continue
            value = int(raw)
        elif spec.kind is FieldKind.BOOL:
            value = raw == "true"
        else:
            value = raw
        if spec.kind.is_integer and not _fits(spec.kind, value):
            continue
        result[key] = value
    return result


def _fits(kind: FieldKind, value: int) -> bool:
    low, high = kind.bounds
    return low <= value <= high


def reset_fields(record: Any, *, tag_name: str = DEFAULT_TAG) -> None:
    """Return ``record`` to its unbound state: zero identity and fields,
    empty relation lists."""
    schema = schema_of(record, tag_name)
    for spec in schema.columns:
        setattr(record, spec.name, spec.zero)
    for rel in schema.relations:
        setattr(record, rel.attribute, [])


__all__ = [
    "field_values",
    "assign_fields",
    "identity_value",
    "set_identity",
    "coerce_string_map",
    "reset_fields",
]
