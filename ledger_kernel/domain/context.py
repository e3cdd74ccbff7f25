"""
LedgerContext -- the explicit "which business, which user" value every engine
call receives.

There is no process-wide active business.  Callers obtain a context from
``BusinessService.active_context()`` (or build one directly in tests) and pass
it to each operation.
"""

from dataclasses import dataclass, replace
from uuid import UUID

from ledger_kernel.exceptions import NoActiveBusinessError
from ledger_kernel.models.user import UserRole


@dataclass(frozen=True)
class LedgerContext:
    business_id: UUID | None
    actor: str | None = None
    role: UserRole = UserRole.USER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def require_business(self) -> UUID:
        """Return the business id, raising NoActiveBusinessError if unset."""
        if self.business_id is None:
            raise NoActiveBusinessError()
        return self.business_id

    def as_actor(self, actor: str, role: UserRole = UserRole.USER) -> "LedgerContext":
        return replace(self, actor=actor, role=role)
