"""
Module: ledger_kernel.models.activity_log
Responsibility: Append-only record of user-visible actions per business.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Rows are never updated (db/immutability.py rejects UPDATE).
    - Rows go away only with their owning Business.
"""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import Base, UUIDString

if TYPE_CHECKING:
    from ledger_kernel.models.business import Business


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    __table_args__ = (Index("idx_activity_business_ts", "business_id", "timestamp"),)

    # Short label, e.g. "Transaction Created"
    action: Mapped[str] = mapped_column(String(100), nullable=False)

    details: Mapped[str] = mapped_column(Text, nullable=False, default="")

    timestamp: Mapped[datetime] = mapped_column(nullable=False)

    business_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("businesses.id", ondelete="CASCADE"),
        nullable=False,
    )

    business: Mapped["Business"] = relationship(back_populates="activity_logs")

    def __repr__(self) -> str:
        return f"<ActivityLog {self.action} @ {self.timestamp.isoformat()}>"
