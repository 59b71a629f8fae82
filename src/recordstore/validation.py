"""Field validation for records, update values and filters.

Each data field gets a strict pydantic ``TypeAdapter`` built from its
kind and, for assignments, its declared constraints. Three entry points
share the adapters:

==================  ==============================  ===================
Method              Checks                          Error op
==================  ==============================  ===================
validate_record     every data field + identity     ``Validate``
validate_values     keys exist, type, constraints   ``ValidateValues``
validate_filters    keys exist, type (or sequence)  ``ValidateFilters``
validate_order      order entries name a field      ``ValidateOrder``
==================  ==============================  ===================

``invalid_*`` variants return the offending names instead of raising.

Guardrails:
    ❌ DON'T: Coerce ``"30"`` into ``30`` while validating
    ✅ DO: Use ``coerce_string_map`` explicitly, then validate

    ❌ DON'T: Accept ``True`` for an integer field
    ✅ DO: Rely on strict mode, which keeps bool and int apart

Tags:
    validation, pydantic, constraints, recordstore

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from functools import lru_cache
from typing import Annotated, Any

from pydantic import AfterValidator, Field, Strict, StringConstraints, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from recordstore.errors import ValidationError
from recordstore.records import FieldKind, FieldSpec, RecordSchema, schema_of
from recordstore.sqlgen import is_membership

_EMAIL_RE = re.compile(r"[^@\s]+@[^@\s]+\.[^@\s]+")


def _check_required(zero: Any):
    def check(value: Any) -> Any:
        if value == zero:
            raise ValueError("value is required")
        return value

    return check


def _check_email(value: str) -> str:
    if value and _EMAIL_RE.fullmatch(value) is None:
        raise ValueError("value is not an email address")
    return value


@lru_cache(maxsize=None)
def _adapter(spec: FieldSpec, with_constraints: bool) -> TypeAdapter:
    c = spec.constraints
    metadata: list[Any] = []

    if spec.kind.is_integer:
        low, high = spec.kind.bounds
        if with_constraints and c.min_value is not None:
            low = max(low, c.min_value)
        if with_constraints and c.max_value is not None:
            high = min(high, c.max_value)
        metadata += [Strict(), Field(ge=low, le=high)]
    elif spec.kind is FieldKind.STR:
        if with_constraints:
            metadata.append(
                StringConstraints(
                    strict=True,
                    min_length=c.min_length,
                    max_length=c.max_length,
                    pattern=c.pattern,
                )
            )
            if c.email:
                metadata.append(AfterValidator(_check_email))
        else:
            metadata.append(Strict())
    else:
        metadata.append(Strict())

    if with_constraints and c.required:
        metadata.append(AfterValidator(_check_required(spec.zero)))

    return TypeAdapter(Annotated[(spec.kind.python_type, *metadata)])


def _is_valid(spec: FieldSpec, value: Any, with_constraints: bool) -> bool:
    try:
        _adapter(spec, with_constraints).validate_python(value)
    except PydanticValidationError:
        return False
    return True


class Validator:
    """Checks record values and caller-supplied maps against a field table."""

    # -- Non-raising -------------------------------------------------------

    def invalid_record_fields(self, schema: RecordSchema, record: Any) -> list[str]:
        invalid: list[str] = []
        ident = schema.identity
        value = getattr(record, ident.name)
        if not _is_valid(ident, value, False) or value < 0:
            invalid.append(ident.name)
        for spec in schema.fields:
            if not _is_valid(spec, getattr(record, spec.name), True):
                invalid.append(spec.name)
        return invalid

    def invalid_values(self, schema: RecordSchema, values: Mapping[str, Any]) -> list[str]:
        invalid: list[str] = []
        for key, value in values.items():
            spec = schema.field(key)
            if spec is None or not _is_valid(spec, value, True):
                invalid.append(key)
        return invalid

    def invalid_filters(self, schema: RecordSchema, filters: Mapping[str, Any]) -> list[str]:
        invalid: list[str] = []
        for key, value in filters.items():
            spec = schema.field(key)
            if spec is None:
                invalid.append(key)
            elif value is None:
                continue
            elif is_membership(value):
                if not all(_is_valid(spec, item, False) for item in value):
                    invalid.append(key)
            elif not _is_valid(spec, value, False):
                invalid.append(key)
        return invalid

    def invalid_order(self, schema: RecordSchema, order: Sequence[str]) -> list[str]:
        invalid: list[str] = []
        for entry in order:
            name = entry[1:] if entry.startswith("-") else entry
            if name != schema.identity.name and not schema.has_field(name):
                invalid.append(entry)
        return invalid

    # -- Raising -----------------------------------------------------------

    def validate_record(self, record: Any, schema: RecordSchema | None = None) -> None:
        schema = schema or schema_of(record)
        self._raise_if(schema, self.invalid_record_fields(schema, record), "Validate")

    def validate_values(self, schema: RecordSchema, values: Mapping[str, Any]) -> None:
        self._raise_if(schema, self.invalid_values(schema, values), "ValidateValues")

    def validate_filters(self, schema: RecordSchema, filters: Mapping[str, Any]) -> None:
        self._raise_if(schema, self.invalid_filters(schema, filters), "ValidateFilters")

    def validate_order(self, schema: RecordSchema, order: Sequence[str]) -> None:
        self._raise_if(schema, self.invalid_order(schema, order), "ValidateOrder")

    @staticmethod
    def _raise_if(schema: RecordSchema, invalid: list[str], op: str) -> None:
        if invalid:
            raise ValidationError(invalid, op=op).with_context(record_type=schema.name)


__all__ = ["Validator"]
