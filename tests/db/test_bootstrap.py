"""Tests for opening a store from settings."""

from dataclasses import replace

import pytest

from ledger_kernel.db.bootstrap import open_store
from ledger_kernel.db.engine import reset_engine
from ledger_kernel.db.immutability import unregister_immutability_listeners
from ledger_kernel.exceptions import ImmutabilityViolationError
from ledger_kernel.models.activity_log import ActivityLog
from ledger_kernel.services.business_service import BusinessService


@pytest.fixture
def opened(settings):
    store = open_store(settings)
    yield store
    store.session.close()
    unregister_immutability_listeners()
    reset_engine()


class TestOpenStore:
    def test_tables_ready(self, opened, settings):
        business = BusinessService(opened, settings).create_business("Garage")
        assert opened.count(ActivityLog, ActivityLog.business_id == business.id) >= 1

    def test_activity_log_guarded(self, opened, settings):
        business = BusinessService(opened, settings).create_business("Garage")
        entry = opened.find_one(ActivityLog, ActivityLog.business_id == business.id)
        with pytest.raises(ImmutabilityViolationError):
            with opened.atomic("tamper"):
                entry.details = "rewritten"

    def test_logs_open(self, settings, captured_logs):
        store = open_store(replace(settings, log_level="DEBUG"))
        try:
            assert any(r["message"] == "store_opened" for r in captured_logs())
        finally:
            store.session.close()
            unregister_immutability_listeners()
            reset_engine()
