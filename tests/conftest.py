"""
Shared pytest fixtures and configuration for recordstore tests.

This module provides:
- Settings cache cleanup for test isolation
- In-memory SQLite connections with the sample tables created
- A registry and controller wired to that connection

Usage:
    Fixtures are auto-discovered by pytest. Use them as function
    arguments and pytest injects them.

    def test_save(controller):
        ...
"""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest

from recordstore.controller import Controller
from recordstore.registry import SchemaRegistry
from recordstore.settings import clear_settings_cache
from recordstore.sqlite_conn import SqliteConnection
from tests._support import create_tables
from tests._support.fault_injection import FaultyConnection
from tests._support.records import Alpha, Beta, Gamma, Group, Person, Pet, Tagged

SAMPLE_TYPES = (Group, Person, Pet, Alpha, Beta, Gamma, Tagged)


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)

        if "integration" in str(test_path):
            item.add_marker(pytest.mark.integration)

        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def clean_settings() -> Generator[None, None, None]:
    """Forget cached settings before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
def conn() -> Generator[SqliteConnection, None, None]:
    """In-memory SQLite connection with every sample table created."""
    connection = SqliteConnection(":memory:")
    create_tables(connection, *SAMPLE_TYPES)
    yield connection
    connection.close()


@pytest.fixture
def faulty_conn(conn: SqliteConnection) -> FaultyConnection:
    """The ``conn`` fixture wrapped for fault injection and statement capture."""
    return FaultyConnection(conn)


@pytest.fixture
def registry() -> SchemaRegistry:
    return SchemaRegistry()


@pytest.fixture
def controller(conn: SqliteConnection, registry: SchemaRegistry) -> Controller:
    return Controller(conn, registry=registry)


@pytest.fixture
def faulty_controller(faulty_conn: FaultyConnection) -> Controller:
    return Controller(faulty_conn)


@pytest.fixture
def group_with_people(controller: Controller) -> tuple[Group, list[Person]]:
    """One group with two people, each owning one pet."""
    group = Group(name="Ops")
    controller.save(group)
    people = [
        Person(name="Ann", age=31, active=True, group_id=group.id),
        Person(name="Bob", age=45, group_id=group.id),
    ]
    for person in people:
        controller.save(person)
        controller.save(Pet(name=f"{person.name}'s cat", person_id=person.id))
    return group, people
