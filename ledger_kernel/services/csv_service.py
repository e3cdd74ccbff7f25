"""
CsvService -- transaction CSV export and import, plus shop record exports.

Import processing:

    text --split lines--> header check --HeaderMismatch--> failure result
                               |
                               v
    for each non-blank data line (reported as its file line number):
        parse fields -> date -> amount -> type          (ImportRowError)
        [unit of work]
            resolve-or-create category, account, payment mode
            LedgerService.create_transaction              (PersistError)
        [commit]

Each row is its own unit of work: a rejected row rolls back only its own
auto-created records and never undoes rows already imported.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

from ledger_kernel.db.store import EntityStore
from ledger_kernel.domain import csv_format
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.context import LedgerContext
from ledger_kernel.domain.dtos import DateRange, ImportResult
from ledger_kernel.exceptions import HeaderMismatchError, ImportRowError, LedgerKernelError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.shop import Employee, Part
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.ledger_service import LedgerService
from ledger_kernel.services.reference_service import ReferenceDataService

if TYPE_CHECKING:
    from ledger_config.schema import LedgerSettings

logger = get_logger("services.csv")

EMPLOYEE_HEADER = (
    "Name",
    "Designation",
    "Phone",
    "Email",
    "Emirates ID",
    "Join Date",
    "Salary",
    "Visa Expiry",
)
PART_HEADER = ("Part Name", "Part Number", "Customer", "Vehicle", "Supplier", "Quantity", "Price")
SHOP_TRANSACTION_HEADER = (
    "Date",
    "Category",
    "ID",
    "Vendor",
    "Account",
    "Amount",
    "Description",
    "Type",
)


class CsvService(BaseService):
    def __init__(
        self,
        store: EntityStore,
        ledger: LedgerService,
        reference: ReferenceDataService,
        settings: LedgerSettings | None = None,
        clock: Clock | None = None,
    ):
        super().__init__(store, clock)
        self.ledger = ledger
        self.reference = reference
        self.date_format = (
            settings.csv_date_format if settings is not None else csv_format.DEFAULT_DATE_FORMAT
        )

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def export_transactions(self, ctx: LedgerContext, date_range: DateRange | None = None) -> str:
        """One header line, then one line per transaction, newest first."""
        transactions = self.ledger.list_transactions(ctx, date_range)
        rows = (
            (
                csv_format.format_date(t.date, self.date_format),
                t.category.name if t.category else "",
                t.account.name if t.account else "",
                str(t.amount),
                t.transaction_type.value,
                t.payment_mode.name if t.payment_mode else "",
                t.notes or "",
            )
            for t in transactions
        )
        text = csv_format.write_rows(csv_format.TRANSACTION_HEADER, rows)
        logger.info("csv_export_completed", extra={"row_count": len(transactions)})
        return text

    def export_shop_transactions(
        self, ctx: LedgerContext, date_range: DateRange | None = None
    ) -> str:
        """
        The shop layout: reference number as ID, vendor, and notes as the
        description.  Not importable; ``import_transactions`` reads only the
        ledger layout.
        """
        transactions = self.ledger.list_transactions(ctx, date_range)
        rows = (
            (
                csv_format.format_date(t.date, self.date_format),
                t.category.name if t.category else "",
                t.reference or "",
                t.vendor or "",
                t.account.name if t.account else "",
                str(t.amount),
                t.notes or "",
                t.transaction_type.value,
            )
            for t in transactions
        )
        text = csv_format.write_rows(SHOP_TRANSACTION_HEADER, rows)
        logger.info(
            "csv_export_completed",
            extra={"row_count": len(transactions), "layout": "shop"},
        )
        return text

    def export_employees(self, employees: Iterable[Employee] | None = None) -> str:
        if employees is None:
            employees = self.store.find(Employee, order_by=Employee.name)
        rows = [
            (
                e.name,
                e.designation or "",
                e.phone,
                e.email or "",
                e.national_id or "",
                csv_format.format_date(e.join_date, self.date_format),
                str(e.salary),
                csv_format.format_date(e.visa_expiry, self.date_format),
            )
            for e in employees
        ]
        return csv_format.write_rows(EMPLOYEE_HEADER, rows)

    def export_parts(self, parts: Iterable[Part] | None = None) -> str:
        if parts is None:
            parts = self.store.find(Part, order_by=Part.name)
        rows = [
            (
                p.name,
                p.part_number or "",
                p.customer or "",
                p.vehicle or "",
                p.supplier or "",
                p.quantity,
                str(p.price),
            )
            for p in parts
        ]
        return csv_format.write_rows(PART_HEADER, rows)

    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------

    def import_transactions(self, ctx: LedgerContext, text: str) -> ImportResult:
        """
        Import transactions from CSV text into the context's business.

        Returns:
            ImportResult.  ``success`` is True iff at least one row was
            imported.  Errors are ordered by row and read
            ``"Row <line>: <reason>"``.

        Raises:
            NoActiveBusinessError: The context has no existing business.
        """
        with self._bind(ctx):
            self._business(ctx)

            lines = csv_format.split_lines(text)
            if len(lines) < 2:
                logger.info("csv_import_empty")
                return ImportResult.failure("No data found in CSV")

            try:
                csv_format.check_header(csv_format.parse_line(lines[0]))
            except HeaderMismatchError as exc:
                logger.warning("csv_header_mismatch", extra={"header": exc.actual})
                return ImportResult.failure(str(exc))

            imported = 0
            errors: list[str] = []

            for index, line in enumerate(lines[1:]):
                row_number = index + 2
                if not line.strip():
                    continue
                try:
                    row = csv_format.parse_row(
                        csv_format.parse_line(line), row_number, self.date_format
                    )
                    self._import_row(ctx, row)
                except ImportRowError as exc:
                    errors.append(str(exc))
                    logger.info(
                        "csv_row_skipped",
                        extra={"row_number": row_number, "reason_code": exc.code},
                    )
                    continue
                imported += 1

            result = ImportResult(
                success=imported > 0,
                imported_count=imported,
                skipped_count=len(errors),
                errors=tuple(errors),
            )
            logger.info(
                "csv_import_completed",
                extra={"imported_count": imported, "skipped_count": len(errors)},
            )
            return result

    def _import_row(self, ctx: LedgerContext, row: csv_format.ParsedRow) -> None:
        try:
            with self.store.atomic("import_row"):
                category = self.reference.find_or_create_category(ctx, row.category)
                account = self.reference.find_or_create_account(ctx, row.account)
                payment_mode = (
                    self.reference.find_or_create_payment_mode(ctx, row.payment_mode)
                    if row.payment_mode
                    else None
                )
                self.ledger.create_transaction(
                    ctx,
                    amount=row.amount,
                    type=row.type,
                    account_id=account.id,
                    category_id=category.id,
                    payment_mode_id=payment_mode.id if payment_mode else None,
                    notes=row.notes or None,
                    date=row.date,
                )
        except LedgerKernelError as exc:
            raise ImportRowError(
                row.row_number,
                ImportRowError.PERSIST_ERROR,
                f"Failed to create transaction ({exc})",
            ) from exc
