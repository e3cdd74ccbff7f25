"""
Tests for append-only enforcement on the activity log.

Activity entries may be written and may disappear with their business, but
an existing entry can never be edited.
"""

import pytest
from sqlalchemy import event

from ledger_kernel.db.immutability import (
    _check_activity_log_immutability,
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from ledger_kernel.exceptions import ImmutabilityViolationError
from ledger_kernel.models.activity_log import ActivityLog


class TestActivityLogAppendOnly:
    def test_update_blocked(self, store, activity, business):
        entry = store.find_one(ActivityLog, ActivityLog.business_id == business.id)

        with pytest.raises(ImmutabilityViolationError) as exc_info:
            with store.atomic("tamper"):
                entry.details = "rewritten"
                store.flush()

        assert exc_info.value.entity_type == "ActivityLog"
        assert exc_info.value.code == "IMMUTABILITY_VIOLATION"
        store.session.expire_all()
        assert store.get(ActivityLog, entry.id).details != "rewritten"

    def test_violation_logged(self, store, business, captured_logs):
        entry = store.find_one(ActivityLog, ActivityLog.business_id == business.id)
        with pytest.raises(ImmutabilityViolationError):
            with store.atomic("tamper"):
                entry.action = "Forged"
        assert any(r["message"] == "immutability_violation_blocked" for r in captured_logs())

    def test_append_allowed(self, store, activity, business):
        with store.atomic("append"):
            activity.record(business.id, "Note", "first")
            activity.record(business.id, "Note", "second")
        assert store.count(ActivityLog, ActivityLog.action == "Note") == 2

    def test_entries_removed_with_business(self, store, business_service, business):
        business_service.delete_business(business.id)
        assert store.count(ActivityLog) == 0


class TestListenerRegistration:
    def test_register_is_idempotent(self, engine):
        register_immutability_listeners()
        register_immutability_listeners()
        assert event.contains(ActivityLog, "before_update", _check_activity_log_immutability)

    def test_unregister(self, engine):
        unregister_immutability_listeners()
        assert not event.contains(
            ActivityLog, "before_update", _check_activity_log_immutability
        )
        register_immutability_listeners()
