"""Domain models for the ledger kernel."""

from ledger_kernel.models.account import Account
from ledger_kernel.models.activity_log import ActivityLog
from ledger_kernel.models.business import Business
from ledger_kernel.models.category import Category, PaymentMode
from ledger_kernel.models.fund_transfer import FundTransfer
from ledger_kernel.models.shop import Employee, Part
from ledger_kernel.models.transaction import Transaction, TransactionType
from ledger_kernel.models.user import User, UserRole

__all__ = [
    "Account",
    "ActivityLog",
    "Business",
    "Category",
    "Employee",
    "FundTransfer",
    "Part",
    "PaymentMode",
    "Transaction",
    "TransactionType",
    "User",
    "UserRole",
]
