"""
Startup wiring from settings to a ready EntityStore.

    LedgerSettings
         |
         v
    configure_logging(level)  ->  init_engine_from_url  ->  create_tables
         |
         v
    register_immutability_listeners  ->  EntityStore(get_session())

This is the only place a failure is allowed to abort the process: an engine
that cannot initialize leaves nothing for the services to work with.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ledger_kernel.db.engine import create_tables, get_session, init_engine_from_url
from ledger_kernel.db.immutability import register_immutability_listeners
from ledger_kernel.db.store import EntityStore
from ledger_kernel.logging_config import configure_logging, get_logger

if TYPE_CHECKING:
    from ledger_config.schema import LedgerSettings

logger = get_logger("db.bootstrap")


def open_store(settings: LedgerSettings, echo: bool = False) -> EntityStore:
    """Initialize logging and the database described by ``settings``."""
    configure_logging(level=settings.log_level)
    init_engine_from_url(settings.database_url, echo=echo)
    create_tables()
    register_immutability_listeners()
    logger.info("store_opened", extra={"log_level": settings.log_level})
    return EntityStore(get_session())
