"""
Module: ledger_kernel.models.fund_transfer
Responsibility: ORM persistence for a movement of money between two accounts.
Architecture position: Kernel > Models.  May import from db/base.py only.

A FundTransfer references its accounts; it is not owned by them.  Deleting
an account sets the matching side to NULL and leaves the transfer in place
as history.
"""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from ledger_kernel.models.account import Account


class FundTransfer(TrackedBase):
    __tablename__ = "fund_transfers"

    amount: Mapped[Decimal] = mapped_column(nullable=False)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    date: Mapped[datetime] = mapped_column(nullable=False)

    from_account_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    to_account_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    from_account: Mapped["Account | None"] = relationship(foreign_keys=[from_account_id])
    to_account: Mapped["Account | None"] = relationship(foreign_keys=[to_account_id])

    def __repr__(self) -> str:
        return f"<FundTransfer {self.amount} {self.from_account_id} -> {self.to_account_id}>"
