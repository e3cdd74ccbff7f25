"""
Pytest fixtures for the ledger kernel test suite.

Provides:
- A fresh in-memory SQLite database per test
- Entity store, deterministic clock and settings
- Every engine wired onto the same store
- A business with a ready-to-use LedgerContext
- Common test utilities (captured logs, commit failure injection)
"""

import dataclasses
import json
import logging
from datetime import UTC, datetime
from decimal import Decimal
from io import StringIO

import pytest
from sqlalchemy.exc import OperationalError

from ledger_config import DEFAULT_SETTINGS_PATH, get_settings
from ledger_kernel.db.engine import (
    create_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from ledger_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from ledger_kernel.db.store import EntityStore
from ledger_kernel.domain.clock import DeterministicClock
from ledger_kernel.domain.context import LedgerContext
from ledger_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from ledger_kernel.models.user import UserRole
from ledger_kernel.services.access_service import AccessService
from ledger_kernel.services.activity_service import ActivityService
from ledger_kernel.services.backup_service import BackupService
from ledger_kernel.services.business_service import BusinessService
from ledger_kernel.services.csv_service import CsvService
from ledger_kernel.services.ledger_service import LedgerService
from ledger_kernel.services.reference_service import ReferenceDataService
from ledger_kernel.services.shop_service import EmployeeService, PartService

TEST_ACTOR = "cashier"

# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture ledger_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, ledger, ctx):
            ledger.transfer_funds(ctx, ...)
            logs = captured_logs()
            assert any(r["message"] == "transfer_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("ledger_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database infrastructure
# =============================================================================


@pytest.fixture
def engine():
    """A fresh in-memory database with every table created."""
    engine = init_engine_from_url("sqlite://")
    create_tables()
    register_immutability_listeners()
    yield engine
    unregister_immutability_listeners()
    reset_engine()


@pytest.fixture
def session(engine):
    session = get_session()
    yield session
    session.close()


@pytest.fixture
def store(session) -> EntityStore:
    return EntityStore(session)


@pytest.fixture
def failing_commit(store, monkeypatch):
    """
    Make every commit on the store's session fail like a disk error.

    The real rollback still runs, so the session ends up exactly where the
    atomic scope started.
    """

    def _fail():
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(store.session, "commit", _fail)
    yield
    monkeypatch.undo()


# =============================================================================
# Settings and clock
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(datetime(2024, 3, 15, 9, 0, 0, tzinfo=UTC))


@pytest.fixture
def settings():
    return dataclasses.replace(get_settings(DEFAULT_SETTINGS_PATH), database_url="sqlite://")


# =============================================================================
# Engines
# =============================================================================


@pytest.fixture
def activity(store, deterministic_clock) -> ActivityService:
    return ActivityService(store, deterministic_clock)


@pytest.fixture
def business_service(store, settings, deterministic_clock, activity) -> BusinessService:
    return BusinessService(store, settings, deterministic_clock, activity)


@pytest.fixture
def ledger(store, deterministic_clock, activity) -> LedgerService:
    return LedgerService(store, deterministic_clock, activity)


@pytest.fixture
def reference(store, deterministic_clock) -> ReferenceDataService:
    return ReferenceDataService(store, deterministic_clock)


@pytest.fixture
def csv_service(store, ledger, reference, settings, deterministic_clock) -> CsvService:
    return CsvService(store, ledger, reference, settings, deterministic_clock)


@pytest.fixture
def backup_service(store, settings, deterministic_clock, activity) -> BackupService:
    return BackupService(store, settings, deterministic_clock, activity)


@pytest.fixture
def access_service(store, settings, deterministic_clock) -> AccessService:
    return AccessService(store, settings, deterministic_clock)


@pytest.fixture
def employee_service(store, deterministic_clock) -> EmployeeService:
    return EmployeeService(store, deterministic_clock)


@pytest.fixture
def part_service(store, deterministic_clock) -> PartService:
    return PartService(store, deterministic_clock)


# =============================================================================
# Business fixtures
# =============================================================================


@pytest.fixture
def business(business_service):
    """The first (and therefore active) business, USD, default reference data."""
    return business_service.create_business("Esthetics Auto", currency="USD", address="Dubai")


@pytest.fixture
def ctx(business) -> LedgerContext:
    return LedgerContext(business_id=business.id, actor=TEST_ACTOR, role=UserRole.USER)


@pytest.fixture
def admin_ctx(business) -> LedgerContext:
    return LedgerContext(business_id=business.id, actor="admin", role=UserRole.ADMIN)


@pytest.fixture
def cash_account(ledger, ctx):
    return ledger.create_account(ctx, "Cash", opening_balance=Decimal("1000.00"))


@pytest.fixture
def bank_account(ledger, ctx):
    return ledger.create_account(ctx, "Bank", opening_balance=Decimal("0"))


@pytest.fixture
def sales_category(reference, ctx):
    return reference.find_category(ctx, "Sales")


@pytest.fixture
def rent_category(reference, ctx):
    return reference.find_category(ctx, "Rent")


@pytest.fixture
def cash_mode(reference, ctx):
    return reference.find_payment_mode(ctx, "Cash")
