"""SQLAlchemy integration: engine factory and Connection bridge."""

from __future__ import annotations

from recordstore.orm.session import (
    RecordStoreSession,
    SAConnectionBridge,
    create_engine,
)

__all__ = [
    "RecordStoreSession",
    "SAConnectionBridge",
    "create_engine",
]
