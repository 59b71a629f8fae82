"""Tests for recordstore.errors."""

import pytest

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


class TestRecordStoreError:
    def test_defaults(self):
        err = RecordStoreError("boom")
        assert err.message == "boom"
        assert err.op == "Internal"
        assert err.category is ErrorCategory.INTERNAL
        assert err.cause is None
        assert str(err) == "Internal: boom"

    def test_cause_is_chained(self):
        cause = RuntimeError("disk full")
        err = QueryError("Error executing DB query", cause=cause)
        assert err.__cause__ is cause
        assert str(err) == "DBQuery: Error executing DB query: disk full"

    def test_with_context_routes_unknown_keys_to_metadata(self):
        err = SchemaError("bad").with_context(record_type="Person", table="persons", field="age")
        assert err.context.record_type == "Person"
        assert err.context.table == "persons"
        assert err.context.metadata == {"field": "age"}

    def test_to_dict(self):
        err = QueryError("failed", cause=ValueError("x")).with_context(operation="get")
        d = err.to_dict()
        assert d["error_type"] == "QueryError"
        assert d["op"] == "DBQuery"
        assert d["category"] == "DATABASE"
        assert d["context"] == {"operation": "get"}
        assert d["cause"] == "ValueError: x"

    def test_op_override(self):
        assert QueryError("x", op="Connect").op == "Connect"


class TestErrorContext:
    def test_to_dict_skips_unset(self):
        assert ErrorContext().to_dict() == {}
        assert ErrorContext(table="t", metadata={"k": 1}).to_dict() == {"table": "t", "k": 1}


class TestKinds:
    @pytest.mark.parametrize(
        "cls,op,category",
        [
            (SchemaError, "GetHelper", ErrorCategory.SCHEMA),
            (ConversionError, "IDToInt", ErrorCategory.CONVERSION),
            (QueryError, "DBQuery", ErrorCategory.DATABASE),
            (ScanError, "DBQueryRowsScan", ErrorCategory.DATABASE),
        ],
    )
    def test_defaults(self, cls, op, category):
        err = cls("x")
        assert isinstance(err, RecordStoreError)
        assert err.op == op
        assert err.category is category

    def test_validation_error_fields(self):
        err = ValidationError(["age", "name"], op="ValidateFilters")
        assert err.fields == ["age", "name"]
        assert err.message == "Invalid fields: age, name"
        assert err.to_dict()["fields"] == ["age", "name"]

    def test_missing_values(self):
        err = MissingValuesError()
        assert isinstance(err, ValidationError)
        assert err.op == "MissingValues"
        assert err.fields == []

    def test_cascade_delete_error(self):
        err = CascadeDeleteError(
            "child delete failed",
            parent_type="Group",
            parent_ids=(1, 2),
            depth=1,
            relation="persons",
        )
        assert isinstance(err, QueryError)
        assert err.op == "CascadeDelete"
        assert err.parent_ids == [1, 2]
        assert err.primary_deleted is True
        d = err.to_dict()
        assert d["relation"] == "persons"
        assert d["depth"] == 1


class TestHelpers:
    def test_is_validation_error(self):
        assert is_validation_error(ValidationError(["x"]))
        assert is_validation_error(MissingValuesError())
        assert not is_validation_error(QueryError("x"))
        assert not is_validation_error(ValueError("x"))

    def test_invalid_fields(self):
        assert invalid_fields(ValidationError(["a", "b"])) == ["a", "b"]
        assert invalid_fields(ScanError("x")) == []
