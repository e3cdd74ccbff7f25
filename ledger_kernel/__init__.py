"""
Ledger Kernel

A small-business bookkeeping core with:
- Incrementally maintained running balances
- Atomic transactions and fund transfers
- CSV import/export with per-row error reporting
- JSON backup and full restore
- Append-only activity logging
"""

__version__ = "0.1.0"
