"""
Tests for BackupService.

Covers:
- Snapshot export shape and exact decimal strings
- Restore into a new active business with recomputed balances
- Undecodable or inconsistent backups change nothing
- Restore is one unit of work
- The flat export carries no credentials
"""

import json
from datetime import UTC, datetime
from decimal import Decimal

import pytest

from ledger_kernel.domain.context import LedgerContext
from ledger_kernel.domain.snapshot import SNAPSHOT_KEYS
from ledger_kernel.exceptions import FormatError, NoActiveBusinessError, StoreError
from ledger_kernel.models.account import Account
from ledger_kernel.models.activity_log import ActivityLog
from ledger_kernel.models.business import Business
from ledger_kernel.models.fund_transfer import FundTransfer
from ledger_kernel.models.transaction import Transaction


@pytest.fixture
def populated(ledger, ctx, cash_account, bank_account, sales_category, rent_category, cash_mode):
    """Cash 1000 +500 -120 -300 = 1080, Bank 0 +300 = 300."""
    ledger.create_transaction(
        ctx, "500.00", "income", cash_account.id, sales_category.id,
        payment_mode_id=cash_mode.id, notes="Job 1", date=datetime(2024, 3, 1, tzinfo=UTC),
    )
    ledger.create_transaction(
        ctx, "120", "expense", cash_account.id, rent_category.id,
        date=datetime(2024, 3, 2, tzinfo=UTC),
    )
    ledger.transfer_funds(ctx, cash_account.id, bank_account.id, "300", notes="deposit")
    return ctx


def _count(store, model, business_id) -> int:
    return store.count(model, model.business_id == business_id)


class TestExport:
    def test_snapshot_contains_whole_graph(self, backup_service, populated):
        data = backup_service.export_snapshot(populated).to_dict()
        assert tuple(data) == SNAPSHOT_KEYS
        assert data["business"]["name"] == "Esthetics Auto"
        assert len(data["accounts"]) == 2
        assert len(data["transactions"]) == 2
        assert len(data["fundTransfers"]) == 1
        assert len(data["categories"]) == 7
        assert len(data["paymentModes"]) == 5
        assert data["activityLogs"]

    def test_decimals_exported_as_strings(self, backup_service, populated):
        data = json.loads(backup_service.export_json(populated))
        cash = next(a for a in data["accounts"] if a["name"] == "Cash")
        assert cash["openingBalance"] == "1000.00"
        assert cash["currentBalance"] == "1080.00"
        assert data["transactions"][0]["amount"] == "500.00"

    def test_relations_written_as_ids(self, backup_service, populated, cash_account, bank_account):
        data = backup_service.export_snapshot(populated).to_dict()
        transfer = data["fundTransfers"][0]
        assert transfer["fromAccountId"] == str(cash_account.id)
        assert transfer["toAccountId"] == str(bank_account.id)

    def test_requires_business(self, backup_service):
        with pytest.raises(NoActiveBusinessError):
            backup_service.export_snapshot(LedgerContext(business_id=None))


class TestRestore:
    def test_round_trip(self, backup_service, ledger, store, populated, business):
        text = backup_service.export_json(populated)
        result = backup_service.restore_json(text)

        assert result.business_id != business.id
        assert result.business_name == "Esthetics Auto"
        assert result.accounts == 2
        assert result.transactions == 2
        assert result.fund_transfers == 1
        assert result.skipped_transfers == 0
        assert result.balance_mismatches == ()

        restored_ctx = LedgerContext(business_id=result.business_id)
        balances = {a.name: a.current_balance for a in ledger.list_accounts(restored_ctx)}
        assert balances == {"Cash": Decimal("1080.00"), "Bank": Decimal("300")}
        assert ledger.get_net_income(restored_ctx) == Decimal("380.00")
        restored = ledger.list_transactions(restored_ctx)
        assert {t.notes for t in restored} == {"Job 1", None}
        assert any(t.payment_mode and t.payment_mode.name == "Cash" for t in restored)

    def test_restored_business_is_only_active(self, backup_service, store, populated, business):
        result = backup_service.restore_json(backup_service.export_json(populated))
        store.session.expire_all()
        active = store.find(Business, Business.is_active.is_(True))
        assert [b.id for b in active] == [result.business_id]

    def test_activity_log_restored_plus_marker(self, backup_service, store, populated, business):
        original = _count(store, ActivityLog, business.id)
        result = backup_service.restore_json(backup_service.export_json(populated))
        assert result.activity_logs == original
        assert _count(store, ActivityLog, result.business_id) == original + 1
        marker = store.find_one(
            ActivityLog,
            ActivityLog.business_id == result.business_id,
            ActivityLog.action == "Data Restored",
        )
        assert marker is not None

    def test_balance_mismatch_reported(self, backup_service, populated, captured_logs):
        data = backup_service.export_snapshot(populated).to_dict()
        cash = next(a for a in data["accounts"] if a["name"] == "Cash")
        cash["currentBalance"] = "5000.00"

        result = backup_service.restore_json(json.dumps(data))

        assert len(result.balance_mismatches) == 1
        mismatch = result.balance_mismatches[0]
        assert mismatch.account_name == "Cash"
        assert mismatch.snapshot_balance == Decimal("5000.00")
        assert mismatch.recomputed_balance == Decimal("1080.00")
        assert any(r["message"] == "restore_balance_mismatch" for r in captured_logs())

    def test_transfer_to_unknown_account_skipped(self, backup_service, ledger, populated):
        data = backup_service.export_snapshot(populated).to_dict()
        data["fundTransfers"][0]["toAccountId"] = "somewhere-else"

        result = backup_service.restore_json(json.dumps(data))

        assert result.fund_transfers == 0
        assert result.skipped_transfers == 1
        balances = {
            a.name: a.current_balance
            for a in ledger.list_accounts(LedgerContext(business_id=result.business_id))
        }
        assert balances["Cash"] == Decimal("1380.00")
        assert balances["Bank"] == Decimal("0")

    def test_epoch_dates_accepted(self, backup_service, ledger, populated):
        data = backup_service.export_snapshot(populated).to_dict()
        data["transactions"][0]["date"] = 1709251200
        result = backup_service.restore_json(json.dumps(data))
        dates = {
            t.date for t in ledger.list_transactions(LedgerContext(business_id=result.business_id))
        }
        assert datetime(2024, 3, 1, tzinfo=UTC) in dates


class TestRestoreFailures:
    def test_invalid_json_changes_nothing(self, backup_service, store, populated, business):
        before = store.count(Business)
        with pytest.raises(FormatError):
            backup_service.restore_json("{broken")
        assert store.count(Business) == before
        assert store.get(Business, business.id).is_active

    def test_bad_value_reports_path(self, backup_service, store, populated):
        data = backup_service.export_snapshot(populated).to_dict()
        data["transactions"][1]["amount"] = "lots"
        with pytest.raises(FormatError, match=r"transactions\[1\].amount"):
            backup_service.restore_json(json.dumps(data))
        assert store.count(Business) == 1

    def test_dangling_reference_changes_nothing(self, backup_service, store, populated):
        data = backup_service.export_snapshot(populated).to_dict()
        data["transactions"][0]["accountId"] = "missing"
        with pytest.raises(FormatError, match="unknown account"):
            backup_service.restore_json(json.dumps(data))
        assert store.count(Business) == 1
        assert store.count(Account) == 2

    def test_unsupported_currency(self, backup_service, populated):
        data = backup_service.export_snapshot(populated).to_dict()
        data["business"]["currency"] = "XYZ"
        with pytest.raises(FormatError, match="business.currency"):
            backup_service.restore_json(json.dumps(data))

    def test_commit_failure_restores_nothing(
        self, backup_service, store, populated, business, failing_commit
    ):
        text = backup_service.export_json(populated)
        with pytest.raises(StoreError):
            backup_service.restore_json(text)
        assert store.count(Business) == 1
        assert store.count(Transaction) == 2
        assert store.count(FundTransfer) == 1
        assert store.get(Business, business.id).is_active


class TestFlatExport:
    def test_flat_shape(
        self, backup_service, access_service, employee_service, part_service, populated
    ):
        access_service.ensure_default_admin()
        employee_service.create_employee(
            "Sara", "055", salary="4200.00", join_date=datetime(2023, 1, 1, tzinfo=UTC)
        )
        part_service.create_part("Oil filter", price="12.75", quantity=10, part_number="OF-1")

        data = backup_service.export_flat_snapshot(populated)

        assert set(data) == {
            "transactions", "employees", "parts", "accounts", "users",
            "exportDate", "appVersion", "companyName", "companyAddress",
        }
        assert data["companyName"] == "Esthetics Auto"
        assert data["companyAddress"] == "Dubai, UAE"
        txn = next(t for t in data["transactions"] if t["type"] == "income")
        assert txn["amount"] == "500.00"
        assert txn["account"] == "Cash"
        assert txn["category"] == "Sales"
        assert txn["description"] == "Job 1"
        assert txn["date"] == datetime(2024, 3, 1, tzinfo=UTC).timestamp()
        employee = data["employees"][0]
        assert employee["salary"] == "4200.00"
        assert employee["visaExpiry"] == 0
        assert data["parts"][0]["partNumber"] == "OF-1"
        assert {a["name"] for a in data["accounts"]} == {"Cash", "Bank"}

    def test_no_credentials(self, backup_service, access_service, populated):
        access_service.ensure_default_admin()
        text = backup_service.export_flat_json(populated)
        user = json.loads(text)["users"][0]
        assert user == {
            "id": user["id"],
            "username": "admin",
            "role": "admin",
            "hasPassword": True,
        }
        assert "pbkdf2" not in text
        assert "password_hash" not in text
