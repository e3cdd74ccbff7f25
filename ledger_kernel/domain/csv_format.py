"""
CSV format for transaction import/export.

    Date,Category,Account,Amount,Type,Payment Mode,Notes
    15-03-2024,Sales,Cash,1250.00,income,Cash,"Invoice 12, ""paid"" in full"

Writing uses minimal quoting: a field is quoted only when it contains a
comma, a double quote or a line break, and embedded quotes are doubled.
Reading is line-oriented: quoted fields may contain commas and doubled
quotes but not line breaks.  Only the first five header columns are
required; extra trailing columns are ignored.
"""

import csv
import io
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from typing import Iterable, Sequence

from ledger_kernel.exceptions import HeaderMismatchError, ImportRowError
from ledger_kernel.models.transaction import TransactionType

TRANSACTION_HEADER = ("Date", "Category", "Account", "Amount", "Type", "Payment Mode", "Notes")
REQUIRED_HEADER = TRANSACTION_HEADER[:5]
REQUIRED_HEADER_TEXT = ",".join(REQUIRED_HEADER)
TRANSACTION_HEADER_TEXT = ",".join(TRANSACTION_HEADER)

DEFAULT_DATE_FORMAT = "%d-%m-%Y"


def split_lines(text: str) -> list[str]:
    """Split on any line break, dropping a leading byte-order mark."""
    return text.lstrip("\ufeff").splitlines()


def parse_line(line: str) -> list[str]:
    return next(csv.reader([line]), [])


def check_header(fields: Sequence[str]) -> None:
    """
    Raises:
        HeaderMismatchError: If the first five trimmed tokens are not
            ``Date,Category,Account,Amount,Type``.
    """
    normalized = [f.strip() for f in fields]
    if tuple(normalized[: len(REQUIRED_HEADER)]) != REQUIRED_HEADER:
        raise HeaderMismatchError(TRANSACTION_HEADER_TEXT, normalized)


def write_rows(header: Sequence[str], rows: Iterable[Sequence[object]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(header)
    writer.writerows(rows)
    return buffer.getvalue()


def format_date(moment: datetime | None, date_format: str = DEFAULT_DATE_FORMAT) -> str:
    if moment is None:
        return ""
    return moment.strftime(date_format)


@dataclass(frozen=True)
class ParsedRow:
    """One validated data row, names not yet resolved to records."""

    row_number: int
    date: datetime
    category: str
    account: str
    amount: Decimal
    type: TransactionType
    payment_mode: str
    notes: str


def parse_row(
    fields: Sequence[str],
    row_number: int,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> ParsedRow:
    """
    Validate one data row in column order: field count, date, amount, type,
    then the category and account names.

    Raises:
        ImportRowError: With the code of the first failing check.
    """
    if len(fields) < len(REQUIRED_HEADER):
        raise ImportRowError(row_number, ImportRowError.INSUFFICIENT_DATA, "Insufficient data")
    try:
        date = datetime.strptime(fields[0].strip(), date_format).replace(tzinfo=UTC)
    except ValueError:
        raise ImportRowError(
            row_number, ImportRowError.INVALID_DATE, "Invalid date format"
        ) from None

    try:
        amount = Decimal(fields[3].strip())
    except InvalidOperation:
        amount = None
    if amount is None or not amount.is_finite() or amount <= 0:
        raise ImportRowError(row_number, ImportRowError.INVALID_AMOUNT, "Invalid amount")

    try:
        txn_type = TransactionType.parse(fields[4])
    except ValueError:
        raise ImportRowError(
            row_number, ImportRowError.INVALID_TYPE, "Invalid transaction type"
        ) from None

    # Names resolve by find-or-create, which cannot create a nameless record
    if not fields[1].strip() or not fields[2].strip():
        raise ImportRowError(
            row_number, ImportRowError.INSUFFICIENT_DATA, "Missing category or account name"
        )

    return ParsedRow(
        row_number=row_number,
        date=date,
        category=fields[1].strip(),
        account=fields[2].strip(),
        amount=amount,
        type=txn_type,
        payment_mode=fields[5].strip() if len(fields) > 5 else "",
        notes=fields[6] if len(fields) > 6 else "",
    )
