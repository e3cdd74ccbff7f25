"""Pure domain values: clock, currency catalog, call context, snapshot and CSV formats."""

from ledger_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from ledger_kernel.domain.context import LedgerContext
from ledger_kernel.domain.currency import CurrencyCatalog, CurrencyInfo
from ledger_kernel.domain.dtos import DateRange, ImportResult, RestoreResult

__all__ = [
    "Clock",
    "CurrencyCatalog",
    "CurrencyInfo",
    "DateRange",
    "DeterministicClock",
    "ImportResult",
    "LedgerContext",
    "RestoreResult",
    "SystemClock",
]
