"""
BackupService -- JSON snapshot export and full restore of one business.

Export walks the business and serializes it with its accounts, categories,
payment modes, transactions, fund transfers (either side owned by the
business) and activity log.  Relations are written as identifiers.

Restore always creates a NEW business (new identifiers throughout), makes
it the only active one, and replays every record from the snapshot:

    decode + validate references  --FormatError-->  abort, store untouched
              |
              v
    [one unit of work]
        deactivate all businesses
        business, accounts, categories, payment modes
        transactions, fund transfers, activity log   (ids remapped)
        balances = opening + restored transactions + restored transfers
        "Data Restored" activity entry
    [commit]  --StoreError-->  nothing visible, previous active business kept

A transfer whose other side is not part of the snapshot is skipped and
counted.  A restored balance that differs from the stored snapshot balance
is reported in the result and logged.

The flat export is the shop's disaster-recovery dump: every table as a list
of flat maps, credentials replaced by ``hasPassword``.  It is meant for
inspection and is not restorable.
"""

from __future__ import annotations

import json
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import or_

from ledger_kernel.db.store import EntityStore
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.context import LedgerContext
from ledger_kernel.domain.currency import CurrencyCatalog
from ledger_kernel.domain.dtos import BalanceMismatch, RestoreResult
from ledger_kernel.domain.snapshot import (
    AccountRecord,
    ActivityLogRecord,
    BusinessRecord,
    BusinessSnapshot,
    CategoryRecord,
    FundTransferRecord,
    PaymentModeRecord,
    TransactionRecord,
    format_instant,
    to_epoch,
)
from ledger_kernel.exceptions import FormatError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.models.activity_log import ActivityLog
from ledger_kernel.models.business import Business
from ledger_kernel.models.category import Category, PaymentMode
from ledger_kernel.models.fund_transfer import FundTransfer
from ledger_kernel.models.shop import Employee, Part
from ledger_kernel.models.transaction import Transaction
from ledger_kernel.models.user import User
from ledger_kernel.services import activity_service as actions
from ledger_kernel.services.activity_service import ActivityService
from ledger_kernel.services.base import BaseService

if TYPE_CHECKING:
    from ledger_config.schema import LedgerSettings

logger = get_logger("services.backup")


class BackupService(BaseService):
    def __init__(
        self,
        store: EntityStore,
        settings: LedgerSettings,
        clock: Clock | None = None,
        activity: ActivityService | None = None,
    ):
        super().__init__(store, clock)
        self.settings = settings
        self.activity = activity or ActivityService(store, self.clock)

    # ==================================================================
    # Export
    # ==================================================================

    def _business_transfers(self, account_ids: list[UUID]) -> list[FundTransfer]:
        if not account_ids:
            return []
        return self.store.find(
            FundTransfer,
            or_(
                FundTransfer.from_account_id.in_(account_ids),
                FundTransfer.to_account_id.in_(account_ids),
            ),
            order_by=(FundTransfer.date, FundTransfer.created_at),
        )

    def export_snapshot(self, ctx: LedgerContext) -> BusinessSnapshot:
        """
        Capture the context's business as a snapshot.

        Raises:
            NoActiveBusinessError: The context has no existing business.
        """
        with self._bind(ctx):
            business = self._business(ctx)
            accounts = self.store.find(
                Account, Account.business_id == business.id, order_by=(Account.created_at,)
            )
            categories = self.store.find(
                Category, Category.business_id == business.id, order_by=(Category.created_at,)
            )
            modes = self.store.find(
                PaymentMode,
                PaymentMode.business_id == business.id,
                order_by=(PaymentMode.created_at,),
            )
            transactions = self.store.find(
                Transaction,
                Transaction.business_id == business.id,
                order_by=(Transaction.date, Transaction.created_at),
            )
            transfers = self._business_transfers([a.id for a in accounts])
            logs = self.store.find(
                ActivityLog,
                ActivityLog.business_id == business.id,
                order_by=(ActivityLog.timestamp,),
            )

            snapshot = BusinessSnapshot(
                business=BusinessRecord(
                    id=str(business.id),
                    name=business.name,
                    address=business.address,
                    currency=business.currency,
                    created_at=business.created_at,
                ),
                accounts=tuple(
                    AccountRecord(
                        id=str(a.id),
                        name=a.name,
                        currency=a.currency,
                        opening_balance=a.opening_balance,
                        current_balance=a.current_balance,
                        created_at=a.created_at,
                        updated_at=a.updated_at,
                    )
                    for a in accounts
                ),
                categories=tuple(
                    CategoryRecord(id=str(c.id), name=c.name, color=c.color, created_at=c.created_at)
                    for c in categories
                ),
                payment_modes=tuple(
                    PaymentModeRecord(id=str(m.id), name=m.name, created_at=m.created_at)
                    for m in modes
                ),
                transactions=tuple(
                    TransactionRecord(
                        id=str(t.id),
                        amount=t.amount,
                        type=t.transaction_type,
                        notes=t.notes,
                        date=t.date,
                        created_at=t.created_at,
                        account_id=str(t.account_id),
                        category_id=str(t.category_id),
                        payment_mode_id=str(t.payment_mode_id) if t.payment_mode_id else None,
                    )
                    for t in transactions
                ),
                fund_transfers=tuple(
                    FundTransferRecord(
                        id=str(f.id),
                        amount=f.amount,
                        notes=f.notes,
                        date=f.date,
                        created_at=f.created_at,
                        from_account_id=str(f.from_account_id) if f.from_account_id else None,
                        to_account_id=str(f.to_account_id) if f.to_account_id else None,
                    )
                    for f in transfers
                ),
                activity_logs=tuple(
                    ActivityLogRecord(
                        id=str(log.id),
                        action=log.action,
                        details=log.details,
                        timestamp=log.timestamp,
                    )
                    for log in logs
                ),
                export_date=self.clock.now(),
            )

            logger.info(
                "backup_exported",
                extra={
                    "account_count": len(snapshot.accounts),
                    "transaction_count": len(snapshot.transactions),
                    "transfer_count": len(snapshot.fund_transfers),
                },
            )
        return snapshot

    def export_json(self, ctx: LedgerContext) -> str:
        return self.export_snapshot(ctx).to_json()

    # ==================================================================
    # Restore
    # ==================================================================

    def restore_json(self, text: str | bytes) -> RestoreResult:
        """
        Decode and restore a JSON backup.

        Raises:
            FormatError: Undecodable or inconsistent backup; nothing changed.
            StoreError: Persistence failed; nothing changed.
        """
        return self.restore_snapshot(BusinessSnapshot.from_json(text))

    @staticmethod
    def _check_currency(code: str, path: str) -> str:
        normalized = code.strip().upper()
        if not CurrencyCatalog.is_supported(normalized):
            raise FormatError(f"{path}: unsupported currency {code!r}", source="snapshot")
        return normalized

    def _validate(self, snapshot: BusinessSnapshot) -> None:
        """Reject snapshots whose references do not resolve inside the snapshot."""
        self._check_currency(snapshot.business.currency, "business.currency")
        for i, a in enumerate(snapshot.accounts):
            self._check_currency(a.currency, f"accounts[{i}].currency")

        def unique_ids(records, label: str) -> set[str]:
            ids = [r.id for r in records]
            if len(ids) != len(set(ids)):
                raise FormatError(f"{label}: duplicate id", source="snapshot")
            return set(ids)

        account_ids = unique_ids(snapshot.accounts, "accounts")
        category_ids = unique_ids(snapshot.categories, "categories")
        mode_ids = unique_ids(snapshot.payment_modes, "paymentModes")

        for i, t in enumerate(snapshot.transactions):
            path = f"transactions[{i}]"
            if t.account_id not in account_ids:
                raise FormatError(f"{path}.accountId: unknown account {t.account_id}", source="snapshot")
            if t.category_id not in category_ids:
                raise FormatError(f"{path}.categoryId: unknown category {t.category_id}", source="snapshot")
            if t.payment_mode_id is not None and t.payment_mode_id not in mode_ids:
                raise FormatError(
                    f"{path}.paymentModeId: unknown payment mode {t.payment_mode_id}",
                    source="snapshot",
                )

    def restore_snapshot(self, snapshot: BusinessSnapshot) -> RestoreResult:
        """Restore a decoded snapshot as a new active business."""
        self._validate(snapshot)

        with self.store.atomic("restore_backup"):
            now = self.clock.now()
            for existing in self.store.find(Business, Business.is_active.is_(True)):
                existing.is_active = False

            source = snapshot.business
            business = self.store.create(
                Business,
                name=source.name,
                address=source.address,
                currency=self._check_currency(source.currency, "business.currency"),
                is_active=True,
                created_at=source.created_at,
                updated_at=now,
            )

            accounts: dict[str, Account] = {}
            for record in snapshot.accounts:
                accounts[record.id] = self.store.create(
                    Account,
                    name=record.name,
                    currency=record.currency.strip().upper(),
                    opening_balance=record.opening_balance,
                    current_balance=record.opening_balance,
                    business_id=business.id,
                    created_at=record.created_at,
                    updated_at=record.updated_at,
                )

            categories: dict[str, Category] = {}
            for record in snapshot.categories:
                categories[record.id] = self.store.create(
                    Category,
                    name=record.name,
                    color=record.color,
                    business_id=business.id,
                    created_at=record.created_at,
                    updated_at=record.created_at,
                )

            modes: dict[str, PaymentMode] = {}
            for record in snapshot.payment_modes:
                modes[record.id] = self.store.create(
                    PaymentMode,
                    name=record.name,
                    business_id=business.id,
                    created_at=record.created_at,
                    updated_at=record.created_at,
                )

            balances: dict[str, Decimal] = {r.id: r.opening_balance for r in snapshot.accounts}

            for record in snapshot.transactions:
                mode = modes[record.payment_mode_id] if record.payment_mode_id else None
                self.store.create(
                    Transaction,
                    amount=record.amount,
                    type=record.type.value,
                    date=record.date,
                    notes=record.notes,
                    business_id=business.id,
                    account_id=accounts[record.account_id].id,
                    category_id=categories[record.category_id].id,
                    payment_mode_id=mode.id if mode else None,
                    created_at=record.created_at,
                    updated_at=record.created_at,
                )
                balances[record.account_id] += record.type.signed(record.amount)

            restored_transfers = 0
            skipped_transfers = 0
            for record in snapshot.fund_transfers:
                if (
                    record.from_account_id not in accounts
                    or record.to_account_id not in accounts
                    or record.from_account_id == record.to_account_id
                ):
                    skipped_transfers += 1
                    continue
                self.store.create(
                    FundTransfer,
                    amount=record.amount,
                    notes=record.notes,
                    date=record.date,
                    from_account_id=accounts[record.from_account_id].id,
                    to_account_id=accounts[record.to_account_id].id,
                    created_at=record.created_at,
                    updated_at=record.created_at,
                )
                balances[record.from_account_id] -= record.amount
                balances[record.to_account_id] += record.amount
                restored_transfers += 1

            mismatches: list[BalanceMismatch] = []
            for record in snapshot.accounts:
                account = accounts[record.id]
                account.current_balance = balances[record.id]
                if balances[record.id] != record.current_balance:
                    mismatches.append(
                        BalanceMismatch(
                            account_name=record.name,
                            snapshot_balance=record.current_balance,
                            recomputed_balance=balances[record.id],
                        )
                    )

            for record in snapshot.activity_logs:
                self.store.create(
                    ActivityLog,
                    business_id=business.id,
                    action=record.action,
                    details=record.details,
                    timestamp=record.timestamp,
                )

            self.activity.record(
                business.id,
                actions.DATA_RESTORED,
                f"Business '{source.name}' restored from backup of "
                f"{format_instant(snapshot.export_date)}",
            )

        for mismatch in mismatches:
            logger.warning(
                "restore_balance_mismatch",
                extra={
                    "account_name": mismatch.account_name,
                    "snapshot_balance": mismatch.snapshot_balance,
                    "recomputed_balance": mismatch.recomputed_balance,
                },
            )
        if skipped_transfers:
            logger.warning(
                "restore_transfers_skipped", extra={"skipped_transfers": skipped_transfers}
            )
        logger.info(
            "restore_completed",
            extra={
                "business_id": str(business.id),
                "account_count": len(accounts),
                "transaction_count": len(snapshot.transactions),
                "transfer_count": restored_transfers,
            },
        )

        return RestoreResult(
            business_id=business.id,
            business_name=business.name,
            accounts=len(accounts),
            categories=len(categories),
            payment_modes=len(modes),
            transactions=len(snapshot.transactions),
            fund_transfers=restored_transfers,
            activity_logs=len(snapshot.activity_logs),
            skipped_transfers=skipped_transfers,
            balance_mismatches=tuple(mismatches),
        )

    # ==================================================================
    # Flat disaster-recovery export
    # ==================================================================

    def export_flat_snapshot(self, ctx: LedgerContext) -> dict[str, Any]:
        """
        Dump the business's transactions and accounts plus all employees,
        parts and users as flat maps.  Instants are Unix seconds; decimals
        are exact strings; user credentials are replaced by ``hasPassword``.
        """
        with self._bind(ctx):
            business = self._business(ctx)
            transactions = self.store.find(
                Transaction,
                Transaction.business_id == business.id,
                order_by=(Transaction.date.desc(),),
            )
            accounts = self.store.find(
                Account, Account.business_id == business.id, order_by=(Account.name,)
            )
            employees = self.store.find(Employee, order_by=(Employee.name,))
            parts = self.store.find(Part, order_by=(Part.name,))
            users = self.store.find(User, order_by=(User.username,))
            company = self.settings.company

            dump = {
                "transactions": [
                    {
                        "id": str(t.id),
                        "date": to_epoch(t.date),
                        "category": t.category.name if t.category else "",
                        "transactionId": t.reference or "",
                        "vendor": t.vendor or "",
                        "account": t.account.name if t.account else "",
                        "amount": str(t.amount),
                        "description": t.notes or "",
                        "type": t.transaction_type.value,
                        "createdAt": to_epoch(t.created_at),
                        "createdBy": t.created_by or "",
                    }
                    for t in transactions
                ],
                "employees": [
                    {
                        "id": str(e.id),
                        "name": e.name,
                        "designation": e.designation or "",
                        "phone": e.phone,
                        "email": e.email or "",
                        "emiratesId": e.national_id or "",
                        "joinDate": to_epoch(e.join_date),
                        "salary": str(e.salary),
                        "visaExpiry": to_epoch(e.visa_expiry),
                    }
                    for e in employees
                ],
                "parts": [
                    {
                        "id": str(p.id),
                        "partName": p.name,
                        "partNumber": p.part_number or "",
                        "customer": p.customer or "",
                        "vehicle": p.vehicle or "",
                        "supplier": p.supplier or "",
                        "quantity": p.quantity,
                        "price": str(p.price),
                    }
                    for p in parts
                ],
                "accounts": [{"id": str(a.id), "name": a.name} for a in accounts],
                "users": [
                    {
                        "id": str(u.id),
                        "username": u.username,
                        "role": u.role,
                        "hasPassword": bool(u.password_hash),
                    }
                    for u in users
                ],
                "exportDate": to_epoch(self.clock.now()),
                "appVersion": self.settings.app_version,
                "companyName": company.name or business.name,
                "companyAddress": company.address or business.address or "",
            }
            logger.info(
                "flat_backup_exported",
                extra={"transaction_count": len(transactions), "user_count": len(users)},
            )
        return dump

    def export_flat_json(self, ctx: LedgerContext) -> str:
        return json.dumps(self.export_flat_snapshot(ctx), indent=2, ensure_ascii=False)
