"""Tests for the schema registry (recordstore.registry)."""

from __future__ import annotations

import threading
from dataclasses import dataclass

import pytest
from structlog.testing import capture_logs

from recordstore.dialect import PostgreSQLDialect
from recordstore.errors import SchemaError
from recordstore.records import Record
from recordstore.registry import SchemaRegistry, type_key
from tests._support.records import Admin, Person, Pet


class TestResolve:
    def test_lazy_registration_is_cached(self, registry):
        first = registry.resolve(Pet)
        assert registry.resolve(Pet()) is first
        assert Pet in registry
        assert len(registry) == 1

    def test_names(self, registry):
        registry.resolve(Pet)
        registry.resolve(Person)
        assert registry.names() == sorted([type_key(Pet), type_key(Person)])

    def test_options_flow_into_generators(self):
        registry = SchemaRegistry(table_prefix="app_", dialect=PostgreSQLDialect())
        sql = registry.resolve(Pet)
        assert sql.table == "app_pets"
        assert sql.query_delete_by_id().endswith("= %s")

    def test_schema_error(self, registry):
        @dataclass
        class Broken(Record):
            name: str = ""

        with pytest.raises(SchemaError) as exc_info:
            registry.resolve(Broken)
        assert exc_info.value.context.record_type == "Broken"
        assert Broken not in registry


class TestRegister:
    def test_existing_entry_kept_without_overwrite(self, registry):
        first = registry.register(Pet)
        assert registry.register(Pet) is first

    def test_overwrite_replaces(self, registry):
        first = registry.register(Pet)
        second = registry.register(Pet, overwrite=True)
        assert second is not first
        assert registry.resolve(Pet) is second

    def test_parent_shares_table(self):
        registry = SchemaRegistry(table_prefix="app_")
        admins = registry.register(Admin, parent=Person)
        assert admins.table == "app_persons"
        assert admins.source is registry.resolve(Person)

    def test_logs_registration(self, registry):
        with capture_logs() as logs:
            registry.register(Pet)
        (entry,) = [e for e in logs if e["event"] == "schema_registered"]
        assert entry["log_level"] == "info"
        assert entry["table"] == "pets"

    def test_concurrent_first_use_builds_one_generator(self, registry):
        results = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            results.append(registry.resolve(Person))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len({id(r) for r in results}) == 1

    def test_clear(self, registry):
        registry.resolve(Pet)
        registry.clear()
        assert len(registry) == 0


class TestFieldNameForColumn:
    def test_lookup(self, registry):
        assert registry.field_name_for_column(Person, "group_id") == "group_id"

    def test_unknown_column(self, registry):
        with pytest.raises(SchemaError) as exc_info:
            registry.field_name_for_column(Person, "nope")
        assert exc_info.value.op == "GetFieldNameFromDBCol"
