"""Record declaration: field kinds, column/relation metadata, field tables.

A record is a ``@dataclass`` (usually subclassing :class:`Record`) whose
fields carry primitive values. Per-field persistence metadata lives in
the dataclass field ``metadata`` under a tag key (``"db"`` by default),
written by the :func:`column` and :func:`relation` helpers.

Each record class exposes ``record_schema()``, an explicit field table
(:class:`RecordSchema`) derived once and cached. Everything downstream
(introspection, SQL generation, validation) reads that table rather than
walking attributes.

Example::

    from dataclasses import dataclass

    from recordstore.records import FieldKind, Record, column, relation

    @dataclass
    class Group(Record):
        id: int = 0
        name: str = column(default="", required=True, max_length=80)
        persons: list = relation("persons", foreign_key="group_id")

    @dataclass
    class Person(Record):
        id: int = 0
        name: str = ""
        age: int = column(kind=FieldKind.INT, min_value=0)
        active: bool = False
        group_id: int = 0

Tags:
    records, dataclasses, schema, metadata, recordstore

Doc-Types:
    - API Reference
    - Data Model
"""

from __future__ import annotations

import dataclasses
import re
from dataclasses import MISSING, dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Any

from recordstore.errors import SchemaError

DEFAULT_TAG = "db"


class FieldKind(str, Enum):
    """Primitive kinds a data field can hold."""

    INT64 = "int64"
    INT = "int"
    STR = "str"
    BOOL = "bool"

    @property
    def zero(self) -> Any:
        """Zero value for this kind."""
        return _ZERO[self]

    @property
    def python_type(self) -> type:
        return _PYTHON_TYPE[self]

    @property
    def is_integer(self) -> bool:
        return self in (FieldKind.INT64, FieldKind.INT)

    @property
    def bounds(self) -> tuple[int, int] | None:
        """Inclusive signed range for integer kinds, ``None`` otherwise."""
        return _BOUNDS.get(self)


_ZERO: dict[FieldKind, Any] = {
    FieldKind.INT64: 0,
    FieldKind.INT: 0,
    FieldKind.STR: "",
    FieldKind.BOOL: False,
}

_BOUNDS: dict[FieldKind, tuple[int, int]] = {
    FieldKind.INT64: (-(2**63), 2**63 - 1),
    FieldKind.INT: (-(2**31), 2**31 - 1),
}

_PYTHON_TYPE: dict[FieldKind, type] = {
    FieldKind.INT64: int,
    FieldKind.INT: int,
    FieldKind.STR: str,
    FieldKind.BOOL: bool,
}

# Annotation -> default kind. ``int`` maps to 64-bit, matching the
# identity column.
_KIND_BY_TYPE: dict[Any, FieldKind] = {
    int: FieldKind.INT64,
    str: FieldKind.STR,
    bool: FieldKind.BOOL,
}

_TYPE_BY_NAME: dict[str, type] = {"int": int, "str": str, "bool": bool}


# ---------------------------------------------------------------------------
# Field table
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Constraints:
    """Value constraints checked when a field is assigned."""

    required: bool = False
    min_length: int | None = None
    max_length: int | None = None
    min_value: int | None = None
    max_value: int | None = None
    pattern: str | None = None
    email: bool = False

    def is_empty(self) -> bool:
        return self == _NO_CONSTRAINTS


_NO_CONSTRAINTS = Constraints()


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """One persisted field: attribute name, column name and kind."""

    name: str
    column: str
    kind: FieldKind
    identity: bool = False
    constraints: Constraints = _NO_CONSTRAINTS

    @property
    def zero(self) -> Any:
        return self.kind.zero


@dataclass(frozen=True, slots=True)
class RelationSpec:
    """A one-to-many link to a child record type.

    ``name`` is the key looked up in the caller's constructors map;
    ``foreign_key`` is the child's field holding the parent identity.
    """

    name: str
    attribute: str
    foreign_key: str


@dataclass(frozen=True)
class RecordSchema:
    """Explicit field table for one record class."""

    record_type: type
    identity: FieldSpec
    fields: tuple[FieldSpec, ...]
    relations: tuple[RelationSpec, ...] = ()
    _by_name: dict[str, FieldSpec] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_by_name", {f.name: f for f in self.fields})

    @property
    def name(self) -> str:
        return self.record_type.__name__

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    @property
    def columns(self) -> tuple[FieldSpec, ...]:
        """Identity first, then data fields in declaration order."""
        return (self.identity, *self.fields)

    def field(self, name: str) -> FieldSpec | None:
        """Data field by attribute name (identity excluded)."""
        return self._by_name.get(name)

    def has_field(self, name: str) -> bool:
        return name in self._by_name


# ---------------------------------------------------------------------------
# Declaration helpers
# ---------------------------------------------------------------------------


def column(
    *,
    default: Any = MISSING,
    name: str | None = None,
    kind: FieldKind | None = None,
    identity: bool = False,
    required: bool = False,
    min_length: int | None = None,
    max_length: int | None = None,
    min_value: int | None = None,
    max_value: int | None = None,
    pattern: str | None = None,
    email: bool = False,
    tag: str = DEFAULT_TAG,
) -> Any:
    """Declare a persisted data field with column metadata.

    ``default`` falls back to the zero value of ``kind`` when a kind is
    given; otherwise it must be supplied so the record stays
    constructible without arguments.
    """
    if default is MISSING and kind is not None:
        default = kind.zero
    meta = {
        "column": name,
        "kind": kind,
        "identity": identity,
        "constraints": Constraints(
            required=required,
            min_length=min_length,
            max_length=max_length,
            min_value=min_value,
            max_value=max_value,
            pattern=pattern,
            email=email,
        ),
    }
    return field(default=default, metadata={tag: meta})


def relation(name: str, *, foreign_key: str | None = None, tag: str = DEFAULT_TAG) -> Any:
    """Declare a non-persisted relation to a child record type.

    ``foreign_key`` defaults to ``<snake_case parent name>_id``.
    """
    meta = {"relation": name, "foreign_key": foreign_key}
    return field(default_factory=list, compare=False, repr=False, metadata={tag: meta})


# ---------------------------------------------------------------------------
# Schema derivation
# ---------------------------------------------------------------------------

_SNAKE_1 = re.compile(r"(.)([A-Z][a-z]+)")
_SNAKE_2 = re.compile(r"([a-z0-9])([A-Z])")


def snake_case(name: str) -> str:
    """``PetOwner`` -> ``pet_owner``."""
    return _SNAKE_2.sub(r"\1_\2", _SNAKE_1.sub(r"\1_\2", name)).lower()


@lru_cache(maxsize=None)
def describe(record_type: type, tag_name: str = DEFAULT_TAG) -> RecordSchema:
    """Derive the field table for a dataclass record type.

    Raises:
        SchemaError: not a dataclass, unsupported field kind, or the
            identity field is missing, duplicated or not an integer.
    """
    type_name = getattr(record_type, "__name__", repr(record_type))
    if not (isinstance(record_type, type) and dataclasses.is_dataclass(record_type)):
        raise SchemaError(f"{type_name} is not a dataclass record").with_context(
            record_type=type_name
        )

    specs: list[FieldSpec] = []
    relations: list[RelationSpec] = []
    for f in dataclasses.fields(record_type):
        meta = f.metadata.get(tag_name, {})
        if "relation" in meta:
            relations.append(
                RelationSpec(
                    name=meta["relation"],
                    attribute=f.name,
                    foreign_key=meta.get("foreign_key") or f"{snake_case(type_name)}_id",
                )
            )
            continue
        specs.append(_field_spec(type_name, f.name, f.type, meta))

    identities = [s for s in specs if s.identity]
    if not identities:
        by_name = {s.name: s for s in specs}
        if "id" in by_name:
            identities = [dataclasses.replace(by_name["id"], identity=True)]
            specs = [identities[0] if s.name == "id" else s for s in specs]
    if len(identities) != 1:
        problem = "missing" if not identities else "declared more than once"
        raise SchemaError(f"Identity field of {type_name} is {problem}").with_context(
            record_type=type_name
        )
    identity = identities[0]
    if not identity.kind.is_integer:
        raise SchemaError(
            f"Identity field {type_name}.{identity.name} must be an integer"
        ).with_context(record_type=type_name)

    return RecordSchema(
        record_type=record_type,
        identity=identity,
        fields=tuple(s for s in specs if not s.identity),
        relations=tuple(relations),
    )


def _field_spec(type_name: str, name: str, annotation: Any, meta: dict[str, Any]) -> FieldSpec:
    # String annotations come from modules using postponed evaluation.
    if isinstance(annotation, str):
        annotation = _TYPE_BY_NAME.get(annotation, annotation)
    inferred = _KIND_BY_TYPE.get(annotation)
    kind: FieldKind | None = meta.get("kind") or inferred
    if kind is None or (inferred is not None and kind.python_type is not inferred.python_type):
        raise SchemaError(
            f"Unsupported kind for field {type_name}.{name}: {annotation!r}"
        ).with_context(record_type=type_name, field=name)
    return FieldSpec(
        name=name,
        column=meta.get("column") or name,
        kind=kind,
        identity=bool(meta.get("identity", False)),
        constraints=meta.get("constraints", _NO_CONSTRAINTS),
    )


def schema_of(record: Any, tag_name: str = DEFAULT_TAG) -> RecordSchema:
    """Field table for a record instance or record class."""
    record_type = record if isinstance(record, type) else type(record)
    provider = getattr(record_type, "record_schema", None)
    if provider is not None:
        return provider(tag_name)
    return describe(record_type, tag_name)


class Record:
    """Base for dataclass records.

    Exposes the field table through ``record_schema()``. A subclass may
    override it to supply a hand-written :class:`RecordSchema`.
    """

    @classmethod
    def record_schema(cls, tag_name: str = DEFAULT_TAG) -> RecordSchema:
        return describe(cls, tag_name)


__all__ = [
    "DEFAULT_TAG",
    "FieldKind",
    "Constraints",
    "FieldSpec",
    "RelationSpec",
    "RecordSchema",
    "Record",
    "column",
    "relation",
    "describe",
    "schema_of",
    "snake_case",
]
