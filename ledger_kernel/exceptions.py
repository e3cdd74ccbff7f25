"""
Typed Exception Hierarchy for the Ledger Kernel.

Every error raised by an engine is a typed exception carrying a
machine-readable ``code`` and the structured data that explains it, so
callers catch by type and render by field instead of parsing messages.

    try:
        ledger.transfer_funds(ctx, cash.id, bank.id, Decimal("50.00"))
    except InsufficientFundsError as e:
        show(f"Only {e.available} available in {e.account_name}")

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerKernelError (base)
    |
    +-- ValidationError
    |   +-- NoActiveBusinessError
    |
    +-- InsufficientFundsError
    |
    +-- ConstraintViolationError
    |   +-- AccountReferencedError
    |   +-- ReferenceDataInUseError
    |
    +-- EntityNotFoundError
    |
    +-- StoreError
    |
    +-- FormatError
    |   +-- HeaderMismatchError
    |
    +-- ImportRowError
    |
    +-- AccessError
    |   +-- AuthenticationError
    |   +-- PermissionDeniedError
    |   +-- DuplicateUsernameError
    |
    +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Code                 | When Raised
---------------------|------------------------------------------------------
VALIDATION_ERROR     | Bad input shape or range (amount <= 0, self transfer)
NO_ACTIVE_BUSINESS   | Operation needs a business context and has none
INSUFFICIENT_FUNDS   | Transfer larger than the source account's balance
CONSTRAINT_VIOLATION | Deletion blocked by dependent records
ACCOUNT_REFERENCED   | Account still has transactions
ENTITY_NOT_FOUND     | Referenced record does not exist in the business
STORE_ERROR          | Underlying persistence failure (already rolled back)
FORMAT_ERROR         | Malformed backup or import input
HEADER_MISMATCH      | CSV header lacks the required leading columns
INVALID_DATE         | CSV row date not in the day-month-year pattern
INVALID_AMOUNT       | CSV row amount not a positive decimal
INVALID_TYPE         | CSV row type not income/expense
INSUFFICIENT_DATA    | CSV row has fewer than five fields
PERSIST_ERROR        | CSV row rejected by the ledger
AUTHENTICATION_FAILED| Unknown user or wrong password
PERMISSION_DENIED    | Role does not allow the action
DUPLICATE_USERNAME   | Username already taken
IMMUTABILITY_VIOLATION | Attempt to modify an append-only record
"""

from decimal import Decimal
from typing import Any
from uuid import UUID


class LedgerKernelError(Exception):
    """Base exception for all ledger kernel errors."""

    code: str = "LEDGER_KERNEL_ERROR"


# =============================================================================
# Validation
# =============================================================================


class ValidationError(LedgerKernelError):
    """Input failed shape or range validation before any mutation."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None, value: Any = None):
        self.field = field
        self.value = value
        super().__init__(message)


class NoActiveBusinessError(ValidationError):
    """No business context is available for the operation."""

    code: str = "NO_ACTIVE_BUSINESS"

    def __init__(self, business_id: UUID | None = None):
        self.business_id = business_id
        if business_id is None:
            message = "No active business"
        else:
            message = f"Business {business_id} does not exist"
        super().__init__(message, field="business_id", value=business_id)


# =============================================================================
# Business rules
# =============================================================================


class InsufficientFundsError(LedgerKernelError):
    """Source account balance is lower than the requested amount."""

    code: str = "INSUFFICIENT_FUNDS"

    def __init__(
        self,
        account_id: UUID,
        account_name: str,
        available: Decimal,
        requested: Decimal,
    ):
        self.account_id = account_id
        self.account_name = account_name
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient funds in '{account_name}': "
            f"available {available}, requested {requested}"
        )


class ConstraintViolationError(LedgerKernelError):
    """Deletion blocked by dependent records."""

    code: str = "CONSTRAINT_VIOLATION"


class AccountReferencedError(ConstraintViolationError):
    """Account cannot be deleted while transactions reference it."""

    code: str = "ACCOUNT_REFERENCED"

    def __init__(self, account_id: UUID, transaction_count: int):
        self.account_id = account_id
        self.transaction_count = transaction_count
        super().__init__(
            f"Cannot delete account {account_id}: "
            f"it has {transaction_count} transaction(s)"
        )


class ReferenceDataInUseError(ConstraintViolationError):
    """Category or payment mode still used by transactions."""

    code: str = "REFERENCE_DATA_IN_USE"

    def __init__(self, entity_type: str, entity_id: UUID, transaction_count: int):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.transaction_count = transaction_count
        super().__init__(
            f"Cannot delete {entity_type} {entity_id}: "
            f"used by {transaction_count} transaction(s)"
        )


class EntityNotFoundError(LedgerKernelError):
    """Referenced record does not exist (or belongs to another business)."""

    code: str = "ENTITY_NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: UUID | str | None):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


# =============================================================================
# Persistence
# =============================================================================


class StoreError(LedgerKernelError):
    """The store failed to commit; the unit of work was rolled back."""

    code: str = "STORE_ERROR"

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Store failure during {operation}: {reason}")


# =============================================================================
# Import / backup formats
# =============================================================================


class FormatError(LedgerKernelError):
    """Malformed or undecodable input document."""

    code: str = "FORMAT_ERROR"

    def __init__(self, message: str, source: str | None = None):
        self.source = source
        super().__init__(message)


class HeaderMismatchError(FormatError):
    """CSV header does not start with the required columns."""

    code: str = "HEADER_MISMATCH"

    def __init__(self, expected: str, actual: list[str]):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Invalid CSV headers. Expected: {expected}", source="csv")


class ImportRowError(LedgerKernelError):
    """A single CSV row could not be imported."""

    code: str = "IMPORT_ROW_ERROR"

    INVALID_DATE = "INVALID_DATE"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    INVALID_TYPE = "INVALID_TYPE"
    INSUFFICIENT_DATA = "INSUFFICIENT_DATA"
    PERSIST_ERROR = "PERSIST_ERROR"

    def __init__(self, row_number: int, code: str, detail: str):
        self.row_number = row_number
        self.code = code
        self.detail = detail
        super().__init__(f"Row {row_number}: {detail}")


# =============================================================================
# Access
# =============================================================================


class AccessError(LedgerKernelError):
    """Base for user and permission errors."""

    code: str = "ACCESS_ERROR"


class AuthenticationError(AccessError):
    code: str = "AUTHENTICATION_FAILED"

    def __init__(self, username: str):
        self.username = username
        super().__init__("Invalid username or password")


class PermissionDeniedError(AccessError):
    code: str = "PERMISSION_DENIED"

    def __init__(self, actor: str | None, action: str):
        self.actor = actor
        self.action = action
        super().__init__(f"User '{actor}' is not allowed to {action}")


class DuplicateUsernameError(AccessError):
    code: str = "DUPLICATE_USERNAME"

    def __init__(self, username: str):
        self.username = username
        super().__init__(f"Username already exists: {username}")


# =============================================================================
# Immutability
# =============================================================================


class ImmutabilityViolationError(LedgerKernelError):
    """Attempt to modify an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(f"Cannot modify {entity_type} {entity_id}: {reason}")
