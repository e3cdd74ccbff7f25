"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Common constructor for every engine: an ``EntityStore`` for persistence
    and a ``Clock`` for timestamps.

Invariants enforced:
    - Each public mutating operation opens exactly one
      ``store.atomic(<operation>)`` scope.  When an operation is called from
      inside another engine's scope (CSV import creating transactions,
      restore replaying records) it joins that scope instead of committing
      on its own.
    - Validation happens before the scope opens, so rejected input never
      touches the store.
"""

from abc import ABC
from uuid import UUID

from ledger_kernel.db.store import EntityStore
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.context import LedgerContext
from ledger_kernel.exceptions import EntityNotFoundError, NoActiveBusinessError, ValidationError
from ledger_kernel.logging_config import LogContext
from ledger_kernel.models.business import Business


class BaseService(ABC):
    def __init__(self, store: EntityStore, clock: Clock | None = None):
        self.store = store
        self.clock = clock or SystemClock()

    def _bind(self, ctx: LedgerContext):
        """Log context manager carrying the caller's business and actor."""
        return LogContext.bind(business_id=ctx.business_id, actor=ctx.actor)

    def _business(self, ctx: LedgerContext) -> Business:
        """
        Resolve the context's business.

        Raises:
            NoActiveBusinessError: If the context has no business or it no
                longer exists.
        """
        business_id = ctx.require_business()
        business = self.store.get(Business, business_id)
        if business is None:
            raise NoActiveBusinessError(business_id)
        return business

    def _owned(self, model: type, entity_id: UUID | None, ctx: LedgerContext):
        """
        Load a business-owned record.

        Raises:
            EntityNotFoundError: If it does not exist or belongs to a
                different business.
        """
        entity = self.store.get(model, entity_id)
        if entity is None or entity.business_id != ctx.business_id:
            raise EntityNotFoundError(model.__name__, entity_id)
        return entity

    @staticmethod
    def _require_name(name: str | None, field: str = "name") -> str:
        cleaned = (name or "").strip()
        if not cleaned:
            raise ValidationError(f"{field} is required", field=field, value=name)
        return cleaned
