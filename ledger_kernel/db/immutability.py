"""
ORM-level append-only enforcement for the activity log.

Activity log entries record what happened to a business; once written they
are never edited.  SQLAlchemy fires ``before_update`` before the UPDATE
statement is sent, so a listener can abort the flush:

    session.flush()
         |
         v
    [before_update] --> _check_activity_log_immutability() --> ImmutabilityViolationError

Rows are still removed when their owning business is deleted.

Usage:

    from ledger_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup

    unregister_immutability_listeners()  # TESTS ONLY
"""

from sqlalchemy import event

from ledger_kernel.exceptions import ImmutabilityViolationError
from ledger_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _check_activity_log_immutability(mapper, connection, target):
    """Prevent any update to an ActivityLog row."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "ActivityLog",
            "entity_id": str(target.id),
            "statement": "UPDATE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="ActivityLog",
        entity_id=str(target.id),
        reason="Activity log entries are append-only",
    )


def register_immutability_listeners() -> None:
    """Register append-only listeners (idempotent)."""
    from ledger_kernel.models.activity_log import ActivityLog

    if not event.contains(ActivityLog, "before_update", _check_activity_log_immutability):
        event.listen(ActivityLog, "before_update", _check_activity_log_immutability)
    logger.debug("immutability_listeners_registered")


def unregister_immutability_listeners() -> None:
    """Remove append-only listeners. FOR TESTING ONLY."""
    from ledger_kernel.models.activity_log import ActivityLog

    if event.contains(ActivityLog, "before_update", _check_activity_log_immutability):
        event.remove(ActivityLog, "before_update", _check_activity_log_immutability)
