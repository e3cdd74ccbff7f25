"""
Module: ledger_kernel.models.account
Responsibility: ORM persistence for an Account and its running balance.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced (by LedgerService, not the ORM):
    current_balance == opening_balance
                       + sum(signed transactions on this account)
                       + sum(signed transfers touching this account)

    The balance is maintained incrementally.  Nothing outside the ledger
    engine may assign current_balance, except a restore which recomputes it.
"""

from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from ledger_kernel.models.business import Business


class Account(TrackedBase):
    """A money container with an opening balance and a running balance."""

    __tablename__ = "accounts"

    __table_args__ = (Index("idx_account_business", "business_id"),)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    opening_balance: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    current_balance: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    business_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("businesses.id", ondelete="CASCADE"),
        nullable=False,
    )

    business: Mapped["Business"] = relationship(back_populates="accounts")

    def __repr__(self) -> str:
        return f"<Account {self.name}: {self.current_balance} {self.currency}>"
