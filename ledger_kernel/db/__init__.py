"""Database layer: declarative base, engine/session management, entity store."""

from ledger_kernel.db.base import Base, TrackedBase
from ledger_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from ledger_kernel.db.store import EntityStore

__all__ = [
    "Base",
    "EntityStore",
    "TrackedBase",
    "create_tables",
    "get_engine",
    "get_session",
    "init_engine_from_url",
    "reset_engine",
]
