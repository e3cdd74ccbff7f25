"""
Module: ledger_kernel.models.transaction
Responsibility: ORM persistence for income and expense transactions.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced (by LedgerService):
    - amount > 0; the sign comes from ``type``.
    - ``date`` is the user-chosen instant and is distinct from created_at.
    - A transaction's effect on its account is applied exactly once at
      creation, reversed exactly once at deletion, and reversed then
      re-applied on update.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from ledger_kernel.models.account import Account
    from ledger_kernel.models.business import Business
    from ledger_kernel.models.category import Category, PaymentMode


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"

    @classmethod
    def parse(cls, token: str) -> "TransactionType":
        """Case-insensitive lookup.  Raises ValueError for unknown tokens."""
        return cls(token.strip().lower())

    def signed(self, amount: Decimal) -> Decimal:
        """Balance effect of ``amount`` for this type."""
        return amount if self is TransactionType.INCOME else -amount


class Transaction(TrackedBase):
    """An income or expense recorded against one account."""

    __tablename__ = "transactions"

    __table_args__ = (
        Index("idx_transaction_business_date", "business_id", "date"),
        Index("idx_transaction_account", "account_id"),
    )

    amount: Mapped[Decimal] = mapped_column(nullable=False)

    type: Mapped[TransactionType] = mapped_column(String(10), nullable=False)

    date: Mapped[datetime] = mapped_column(nullable=False)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    vendor: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Free-text external reference (receipt or voucher number)
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Username of the actor who recorded it; drives the edit-window rule
    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    business_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("businesses.id", ondelete="CASCADE"),
        nullable=False,
    )

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    category_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("categories.id"),
        nullable=False,
    )

    payment_mode_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("payment_modes.id"),
        nullable=True,
    )

    business: Mapped["Business"] = relationship(back_populates="transactions")
    account: Mapped["Account"] = relationship()
    category: Mapped["Category"] = relationship()
    payment_mode: Mapped["PaymentMode | None"] = relationship()

    @property
    def transaction_type(self) -> TransactionType:
        return TransactionType(self.type)

    @property
    def signed_amount(self) -> Decimal:
        return self.transaction_type.signed(self.amount)

    def __repr__(self) -> str:
        return f"<Transaction {self.type} {self.amount} on {self.date:%Y-%m-%d}>"
