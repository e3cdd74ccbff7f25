"""
Snapshot -- the portable JSON shape of one business's data graph.

Records hold relations as identifiers (``accountId``, ``categoryId`` ...),
never as embedded copies.  Encoding rules:

    instants   ISO-8601 with offset on write; ISO-8601 or Unix epoch seconds
               on read.  Naive ISO strings are taken as UTC.
    decimals   exact strings on write; strings or JSON numbers on read
               (numbers are parsed straight to Decimal, never via float).

Every decoding problem raises FormatError naming the offending path, e.g.
``transactions[3].amount``.
"""

import json
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from ledger_kernel.exceptions import FormatError
from ledger_kernel.models.transaction import TransactionType

SNAPSHOT_KEYS = (
    "business",
    "accounts",
    "categories",
    "paymentModes",
    "transactions",
    "fundTransfers",
    "activityLogs",
    "exportDate",
)


def format_instant(moment: datetime) -> str:
    return moment.astimezone(UTC).isoformat()


def to_epoch(moment: datetime | None) -> float:
    """Unix seconds, 0 for a missing instant."""
    if moment is None:
        return 0
    return moment.timestamp()


def parse_instant(value: Any, path: str) -> datetime:
    if isinstance(value, bool):
        raise FormatError(f"{path}: expected a date, got {value!r}", source="snapshot")
    if isinstance(value, (int, float, Decimal)):
        try:
            return datetime.fromtimestamp(float(value), UTC)
        except (OverflowError, OSError, ValueError):
            raise FormatError(f"{path}: epoch out of range: {value}", source="snapshot") from None
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            raise FormatError(f"{path}: invalid ISO-8601 date {value!r}", source="snapshot") from None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        return parsed
    raise FormatError(f"{path}: expected a date, got {type(value).__name__}", source="snapshot")


def parse_decimal(value: Any, path: str) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise FormatError(f"{path}: expected a decimal, got {value!r}", source="snapshot")
    if isinstance(value, float):
        # Only reachable when the caller decoded JSON without parse_float=Decimal
        value = repr(value)
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise FormatError(f"{path}: invalid decimal {value!r}", source="snapshot") from None
    if not amount.is_finite():
        raise FormatError(f"{path}: decimal must be finite", source="snapshot")
    return amount


class _Fields:
    """Typed accessors over one JSON object, reporting errors by path."""

    def __init__(self, data: Any, path: str):
        if not isinstance(data, dict):
            raise FormatError(f"{path}: expected an object", source="snapshot")
        self._data = data
        self._path = path

    def _at(self, key: str) -> str:
        return f"{self._path}.{key}"

    def required(self, key: str) -> Any:
        if key not in self._data or self._data[key] is None:
            raise FormatError(f"{self._at(key)}: missing", source="snapshot")
        return self._data[key]

    def text(self, key: str) -> str:
        value = self.required(key)
        if not isinstance(value, str):
            raise FormatError(f"{self._at(key)}: expected a string", source="snapshot")
        return value

    def identifier(self, key: str) -> str:
        value = self.required(key)
        if not isinstance(value, (str, int)) or isinstance(value, bool) or value == "":
            raise FormatError(f"{self._at(key)}: invalid identifier", source="snapshot")
        return str(value)

    def optional_identifier(self, key: str) -> str | None:
        if self._data.get(key) in (None, ""):
            return None
        return self.identifier(key)

    def optional_text(self, key: str) -> str | None:
        value = self._data.get(key)
        if value is None:
            return None
        if not isinstance(value, str):
            raise FormatError(f"{self._at(key)}: expected a string", source="snapshot")
        return value

    def decimal(self, key: str) -> Decimal:
        return parse_decimal(self.required(key), self._at(key))

    def positive_decimal(self, key: str) -> Decimal:
        amount = self.decimal(key)
        if amount <= 0:
            raise FormatError(f"{self._at(key)}: must be greater than zero", source="snapshot")
        return amount

    def instant(self, key: str) -> datetime:
        return parse_instant(self.required(key), self._at(key))

    def optional_instant(self, key: str) -> datetime | None:
        if self._data.get(key) is None:
            return None
        return self.instant(key)

    def records(self, key: str) -> list[Any]:
        value = self._data.get(key, [])
        if value is None:
            return []
        if not isinstance(value, list):
            raise FormatError(f"{self._at(key)}: expected a list", source="snapshot")
        return value


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BusinessRecord:
    id: str
    name: str
    currency: str
    created_at: datetime
    address: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "currency": self.currency,
            "createdAt": format_instant(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Any, path: str = "business") -> "BusinessRecord":
        f = _Fields(data, path)
        return cls(
            id=f.identifier("id"),
            name=f.text("name"),
            address=f.optional_text("address"),
            currency=f.text("currency"),
            created_at=f.instant("createdAt"),
        )


@dataclass(frozen=True)
class AccountRecord:
    id: str
    name: str
    currency: str
    opening_balance: Decimal
    current_balance: Decimal
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "currency": self.currency,
            "openingBalance": str(self.opening_balance),
            "currentBalance": str(self.current_balance),
            "createdAt": format_instant(self.created_at),
            "updatedAt": format_instant(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Any, path: str) -> "AccountRecord":
        f = _Fields(data, path)
        created_at = f.instant("createdAt")
        return cls(
            id=f.identifier("id"),
            name=f.text("name"),
            currency=f.text("currency"),
            opening_balance=f.decimal("openingBalance"),
            current_balance=f.decimal("currentBalance"),
            created_at=created_at,
            updated_at=f.optional_instant("updatedAt") or created_at,
        )


@dataclass(frozen=True)
class CategoryRecord:
    id: str
    name: str
    created_at: datetime
    color: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "createdAt": format_instant(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Any, path: str) -> "CategoryRecord":
        f = _Fields(data, path)
        return cls(
            id=f.identifier("id"),
            name=f.text("name"),
            color=f.optional_text("color"),
            created_at=f.instant("createdAt"),
        )


@dataclass(frozen=True)
class PaymentModeRecord:
    id: str
    name: str
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "createdAt": format_instant(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Any, path: str) -> "PaymentModeRecord":
        f = _Fields(data, path)
        return cls(id=f.identifier("id"), name=f.text("name"), created_at=f.instant("createdAt"))


@dataclass(frozen=True)
class TransactionRecord:
    id: str
    amount: Decimal
    type: TransactionType
    date: datetime
    created_at: datetime
    account_id: str
    category_id: str
    payment_mode_id: str | None = None
    notes: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "amount": str(self.amount),
            "type": self.type.value,
            "notes": self.notes,
            "date": format_instant(self.date),
            "createdAt": format_instant(self.created_at),
            "accountId": self.account_id,
            "categoryId": self.category_id,
            "paymentModeId": self.payment_mode_id,
        }

    @classmethod
    def from_dict(cls, data: Any, path: str) -> "TransactionRecord":
        f = _Fields(data, path)
        try:
            txn_type = TransactionType.parse(f.text("type"))
        except ValueError:
            raise FormatError(f"{path}.type: must be income or expense", source="snapshot") from None
        return cls(
            id=f.identifier("id"),
            amount=f.positive_decimal("amount"),
            type=txn_type,
            notes=f.optional_text("notes"),
            date=f.instant("date"),
            created_at=f.instant("createdAt"),
            account_id=f.identifier("accountId"),
            category_id=f.identifier("categoryId"),
            payment_mode_id=f.optional_identifier("paymentModeId"),
        )


@dataclass(frozen=True)
class FundTransferRecord:
    id: str
    amount: Decimal
    date: datetime
    created_at: datetime
    from_account_id: str | None
    to_account_id: str | None
    notes: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "amount": str(self.amount),
            "notes": self.notes,
            "date": format_instant(self.date),
            "createdAt": format_instant(self.created_at),
            "fromAccountId": self.from_account_id,
            "toAccountId": self.to_account_id,
        }

    @classmethod
    def from_dict(cls, data: Any, path: str) -> "FundTransferRecord":
        f = _Fields(data, path)
        return cls(
            id=f.identifier("id"),
            amount=f.positive_decimal("amount"),
            notes=f.optional_text("notes"),
            date=f.instant("date"),
            created_at=f.instant("createdAt"),
            from_account_id=f.optional_identifier("fromAccountId"),
            to_account_id=f.optional_identifier("toAccountId"),
        )


@dataclass(frozen=True)
class ActivityLogRecord:
    id: str
    action: str
    details: str
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "action": self.action,
            "details": self.details,
            "timestamp": format_instant(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: Any, path: str) -> "ActivityLogRecord":
        f = _Fields(data, path)
        return cls(
            id=f.identifier("id"),
            action=f.text("action"),
            details=f.optional_text("details") or "",
            timestamp=f.instant("timestamp"),
        )


@dataclass(frozen=True)
class BusinessSnapshot:
    business: BusinessRecord
    accounts: tuple[AccountRecord, ...]
    categories: tuple[CategoryRecord, ...]
    payment_modes: tuple[PaymentModeRecord, ...]
    transactions: tuple[TransactionRecord, ...]
    fund_transfers: tuple[FundTransferRecord, ...]
    activity_logs: tuple[ActivityLogRecord, ...]
    export_date: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "business": self.business.to_dict(),
            "accounts": [r.to_dict() for r in self.accounts],
            "categories": [r.to_dict() for r in self.categories],
            "paymentModes": [r.to_dict() for r in self.payment_modes],
            "transactions": [r.to_dict() for r in self.transactions],
            "fundTransfers": [r.to_dict() for r in self.fund_transfers],
            "activityLogs": [r.to_dict() for r in self.activity_logs],
            "exportDate": format_instant(self.export_date),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Any) -> "BusinessSnapshot":
        """
        Decode and validate a snapshot object.

        Raises:
            FormatError: On any missing key, wrong type or bad value.
        """
        f = _Fields(data, "snapshot")
        return cls(
            business=BusinessRecord.from_dict(f.required("business")),
            accounts=tuple(
                AccountRecord.from_dict(r, f"accounts[{i}]")
                for i, r in enumerate(f.records("accounts"))
            ),
            categories=tuple(
                CategoryRecord.from_dict(r, f"categories[{i}]")
                for i, r in enumerate(f.records("categories"))
            ),
            payment_modes=tuple(
                PaymentModeRecord.from_dict(r, f"paymentModes[{i}]")
                for i, r in enumerate(f.records("paymentModes"))
            ),
            transactions=tuple(
                TransactionRecord.from_dict(r, f"transactions[{i}]")
                for i, r in enumerate(f.records("transactions"))
            ),
            fund_transfers=tuple(
                FundTransferRecord.from_dict(r, f"fundTransfers[{i}]")
                for i, r in enumerate(f.records("fundTransfers"))
            ),
            activity_logs=tuple(
                ActivityLogRecord.from_dict(r, f"activityLogs[{i}]")
                for i, r in enumerate(f.records("activityLogs"))
            ),
            export_date=f.instant("exportDate"),
        )

    @classmethod
    def from_json(cls, text: str | bytes) -> "BusinessSnapshot":
        try:
            data = json.loads(text, parse_float=Decimal)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise FormatError(f"Backup is not valid JSON: {exc}", source="snapshot") from exc
        return cls.from_dict(data)
