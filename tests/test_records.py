"""Tests for record declaration and field-table derivation."""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from recordstore.errors import ErrorCategory, SchemaError
from recordstore.records import (
    FieldKind,
    Record,
    RecordSchema,
    column,
    describe,
    relation,
    schema_of,
    snake_case,
)
from tests._support.records import Group, Person, Pet, Tagged


class TestFieldKind:
    def test_zero_values(self):
        assert FieldKind.INT64.zero == 0
        assert FieldKind.INT.zero == 0
        assert FieldKind.STR.zero == ""
        assert FieldKind.BOOL.zero is False

    def test_is_integer(self):
        assert FieldKind.INT64.is_integer
        assert FieldKind.INT.is_integer
        assert not FieldKind.STR.is_integer
        assert not FieldKind.BOOL.is_integer

    def test_bounds(self):
        assert FieldKind.INT64.bounds == (-(2**63), 2**63 - 1)
        assert FieldKind.INT.bounds == (-(2**31), 2**31 - 1)
        assert FieldKind.STR.bounds is None


class TestSnakeCase:
    @pytest.mark.parametrize(
        "name,expected",
        [("Person", "person"), ("PetOwner", "pet_owner"), ("HTTPLog", "http_log")],
    )
    def test_conversion(self, name, expected):
        assert snake_case(name) == expected


class TestDescribe:
    def test_identity_and_data_fields(self):
        schema = Person.record_schema()
        assert isinstance(schema, RecordSchema)
        assert schema.identity.name == "id"
        assert schema.identity.kind is FieldKind.INT64
        assert schema.field_names == ["name", "age", "active", "email", "group_id"]

    def test_columns_put_identity_first(self):
        schema = Pet.record_schema()
        assert [c.name for c in schema.columns] == ["id", "name", "person_id"]

    def test_kinds_from_annotations_and_overrides(self):
        schema = Person.record_schema()
        assert schema.field("name").kind is FieldKind.STR
        assert schema.field("age").kind is FieldKind.INT
        assert schema.field("active").kind is FieldKind.BOOL
        assert schema.field("group_id").kind is FieldKind.INT64

    def test_relations_are_not_columns(self):
        schema = Group.record_schema()
        assert schema.field_names == ["name"]
        assert not schema.has_field("persons")
        (rel,) = schema.relations
        assert rel.name == "persons"
        assert rel.attribute == "persons"
        assert rel.foreign_key == "group_id"

    def test_relation_default_foreign_key(self):
        @dataclass
        class Owner(Record):
            id: int = 0
            pets: list = relation("pets")

        (rel,) = Owner.record_schema().relations
        assert rel.foreign_key == "owner_id"

    def test_explicit_identity_and_column_names(self):
        schema = Tagged.record_schema()
        assert schema.identity.name == "key"
        assert schema.identity.column == "tagged_key"
        assert schema.field("label").column == "label_text"
        assert schema.field("weight").column == "weight"

    def test_constraints_are_carried(self):
        c = Group.record_schema().field("name").constraints
        assert c.required is True
        assert c.max_length == 40
        assert Pet.record_schema().field("name").constraints.is_empty()

    def test_cached(self):
        assert describe(Person) is describe(Person)

    def test_schema_of_instance_and_class(self):
        assert schema_of(Person()) is schema_of(Person)

    def test_zero_valued_factory(self):
        group = Group()
        assert group.id == 0
        assert group.name == ""
        assert group.persons == []


class TestDescribeErrors:
    def test_not_a_dataclass(self):
        class Plain:
            id = 0

        with pytest.raises(SchemaError) as exc_info:
            describe(Plain)
        assert exc_info.value.category is ErrorCategory.SCHEMA
        assert exc_info.value.op == "GetHelper"

    def test_missing_identity(self):
        @dataclass
        class NoId(Record):
            name: str = ""

        with pytest.raises(SchemaError, match="missing"):
            NoId.record_schema()

    def test_duplicate_identity(self):
        @dataclass
        class TwoIds(Record):
            a: int = column(default=0, identity=True)
            b: int = column(default=0, identity=True)

        with pytest.raises(SchemaError, match="more than once"):
            TwoIds.record_schema()

    def test_non_integer_identity(self):
        @dataclass
        class TextId(Record):
            id: str = ""

        with pytest.raises(SchemaError, match="must be an integer"):
            TextId.record_schema()

    def test_unsupported_kind(self):
        @dataclass
        class Weighted(Record):
            id: int = 0
            weight: float = 0.0

        with pytest.raises(SchemaError, match="Unsupported kind") as exc_info:
            Weighted.record_schema()
        assert exc_info.value.context.metadata["field"] == "weight"

    def test_kind_contradicting_annotation(self):
        @dataclass
        class Mixed(Record):
            id: int = 0
            flag: str = column(default="", kind=FieldKind.BOOL)

        with pytest.raises(SchemaError):
            Mixed.record_schema()


class TestTagName:
    def test_metadata_under_custom_tag(self):
        @dataclass
        class Custom(Record):
            id: int = 0
            label: str = column(default="", name="label_col", tag="sql")

        assert Custom.record_schema("sql").field("label").column == "label_col"
        assert Custom.record_schema().field("label").column == "label"
