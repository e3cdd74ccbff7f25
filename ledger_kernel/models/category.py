"""Categories and payment modes: per-business reference data for transactions."""

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from ledger_kernel.models.business import Business


class Category(TrackedBase):
    __tablename__ = "categories"

    __table_args__ = (Index("idx_category_business_name", "business_id", "name"),)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Display colour tag, e.g. "#3498db"
    color: Mapped[str | None] = mapped_column(String(32), nullable=True)

    business_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("businesses.id", ondelete="CASCADE"),
        nullable=False,
    )

    business: Mapped["Business"] = relationship(back_populates="categories")

    def __repr__(self) -> str:
        return f"<Category {self.name}>"


class PaymentMode(TrackedBase):
    __tablename__ = "payment_modes"

    __table_args__ = (Index("idx_payment_mode_business_name", "business_id", "name"),)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    business_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("businesses.id", ondelete="CASCADE"),
        nullable=False,
    )

    business: Mapped["Business"] = relationship(back_populates="payment_modes")

    def __repr__(self) -> str:
        return f"<PaymentMode {self.name}>"
