"""
ActivityService -- append-only activity log per business.

``record`` never opens a scope of its own: it adds the entry to whatever
unit of work the calling engine has open, so the log line commits or rolls
back together with the change it describes.
"""

from uuid import UUID

from ledger_kernel.domain.context import LedgerContext
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.activity_log import ActivityLog
from ledger_kernel.services.base import BaseService

logger = get_logger("services.activity")

# Action labels shown in the activity feed
ACCOUNT_CREATED = "Account Created"
ACCOUNT_UPDATED = "Account Updated"
ACCOUNT_DELETED = "Account Deleted"
FUND_TRANSFER = "Fund Transfer"
TRANSACTION_CREATED = "Transaction Created"
TRANSACTION_UPDATED = "Transaction Updated"
TRANSACTION_DELETED = "Transaction Deleted"
BUSINESS_CREATED = "Business Created"
BUSINESS_UPDATED = "Business Updated"
DATA_RESTORED = "Data Restored"


class ActivityService(BaseService):
    def record(self, business_id: UUID, action: str, details: str = "") -> ActivityLog:
        entry = self.store.create(
            ActivityLog,
            business_id=business_id,
            action=action,
            details=details,
            timestamp=self.clock.now(),
        )
        logger.debug("activity_recorded", extra={"action": action})
        return entry

    def list_recent(self, ctx: LedgerContext, limit: int = 100) -> list[ActivityLog]:
        """Newest entries first."""
        business = self._business(ctx)
        return self.store.find(
            ActivityLog,
            ActivityLog.business_id == business.id,
            order_by=(ActivityLog.timestamp.desc(),),
            limit=limit,
        )
