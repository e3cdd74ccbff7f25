"""Immutable value objects passed into and returned from the engines."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from uuid import UUID


@dataclass(frozen=True)
class DateRange:
    """
    Half-open interval ``[start, end)`` over transaction dates.

    Either bound may be None, meaning unbounded on that side.
    """

    start: datetime | None = None
    end: datetime | None = None

    def __post_init__(self) -> None:
        for bound in (self.start, self.end):
            if bound is not None and bound.tzinfo is None:
                raise ValueError(f"DateRange bounds must be timezone-aware: {bound!r}")
        if self.start is not None and self.end is not None and self.end < self.start:
            raise ValueError(f"DateRange end {self.end} is before start {self.start}")

    def contains(self, moment: datetime) -> bool:
        if self.start is not None and moment < self.start:
            return False
        if self.end is not None and moment >= self.end:
            return False
        return True


@dataclass(frozen=True)
class ImportResult:
    """Outcome of a CSV import.  ``success`` is True iff at least one row imported."""

    success: bool
    imported_count: int = 0
    skipped_count: int = 0
    errors: tuple[str, ...] = ()

    @classmethod
    def failure(cls, message: str, skipped_count: int = 0) -> "ImportResult":
        return cls(success=False, skipped_count=skipped_count, errors=(message,))


@dataclass(frozen=True)
class BalanceMismatch:
    """A restored account whose recomputed balance differs from the snapshot."""

    account_name: str
    snapshot_balance: Decimal
    recomputed_balance: Decimal


@dataclass(frozen=True)
class RestoreResult:
    business_id: UUID
    business_name: str
    accounts: int = 0
    categories: int = 0
    payment_modes: int = 0
    transactions: int = 0
    fund_transfers: int = 0
    activity_logs: int = 0
    skipped_transfers: int = 0
    balance_mismatches: tuple[BalanceMismatch, ...] = field(default_factory=tuple)
