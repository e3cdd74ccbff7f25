"""
Module: ledger_kernel.models.business
Responsibility: ORM persistence for a Business, the ownership root of every
    account, category, payment mode, transaction and activity log entry.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Deleting a Business deletes everything it owns (ORM cascade).
    - At most one Business has is_active=True.  Enforced by BusinessService,
      not by the schema.
"""

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase

if TYPE_CHECKING:
    from ledger_kernel.models.account import Account
    from ledger_kernel.models.activity_log import ActivityLog
    from ledger_kernel.models.category import Category, PaymentMode
    from ledger_kernel.models.transaction import Transaction


class Business(TrackedBase):
    """A bookkeeping scope.  Every ledger operation runs against one."""

    __tablename__ = "businesses"

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    address: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # ISO 4217 code from the currency catalog
    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    accounts: Mapped[list["Account"]] = relationship(
        back_populates="business",
        cascade="all, delete-orphan",
    )
    categories: Mapped[list["Category"]] = relationship(
        back_populates="business",
        cascade="all, delete-orphan",
    )
    payment_modes: Mapped[list["PaymentMode"]] = relationship(
        back_populates="business",
        cascade="all, delete-orphan",
    )
    transactions: Mapped[list["Transaction"]] = relationship(
        back_populates="business",
        cascade="all, delete-orphan",
    )
    activity_logs: Mapped[list["ActivityLog"]] = relationship(
        back_populates="business",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        marker = " (active)" if self.is_active else ""
        return f"<Business {self.name} [{self.currency}]{marker}>"
