"""
BusinessService -- creates businesses and decides which one is active.

Invariants enforced:
    - At most one Business has is_active=True.  The first business ever
      created becomes active; ``set_active_business`` deactivates every
      other business in the same unit of work; deleting the active business
      promotes the next one by name.
    - A new business is seeded with the configured default categories and
      payment modes (and optionally default accounts) in the same unit of
      work that creates it.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from ledger_kernel.db.store import EntityStore
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.context import LedgerContext
from ledger_kernel.domain.currency import CurrencyCatalog
from ledger_kernel.exceptions import EntityNotFoundError, NoActiveBusinessError, ValidationError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.models.business import Business
from ledger_kernel.models.category import Category, PaymentMode
from ledger_kernel.models.user import UserRole
from ledger_kernel.services import activity_service as actions
from ledger_kernel.services.activity_service import ActivityService
from ledger_kernel.services.base import BaseService

if TYPE_CHECKING:
    from ledger_config.schema import LedgerSettings

logger = get_logger("services.business")


def validate_currency(code: str | None) -> str:
    """Normalize a currency code, raising ValidationError if not in the catalog."""
    normalized = (code or "").strip().upper()
    if not CurrencyCatalog.is_supported(normalized):
        raise ValidationError(
            f"Unsupported currency: {code!r}", field="currency", value=code
        )
    return normalized


class BusinessService(BaseService):
    def __init__(
        self,
        store: EntityStore,
        settings: LedgerSettings,
        clock: Clock | None = None,
        activity: ActivityService | None = None,
    ):
        super().__init__(store, clock)
        self.settings = settings
        self.activity = activity or ActivityService(store, self.clock)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_business(self, business_id: UUID) -> Business:
        business = self.store.get(Business, business_id)
        if business is None:
            raise EntityNotFoundError("Business", business_id)
        return business

    def get_active_business(self) -> Business | None:
        return self.store.find_one(Business, Business.is_active.is_(True))

    def list_businesses(self) -> list[Business]:
        return self.store.find(Business, order_by=(Business.name, Business.created_at))

    def active_context(
        self,
        actor: str | None = None,
        role: UserRole = UserRole.USER,
    ) -> LedgerContext:
        """
        Build the call context for the active business.

        Raises:
            NoActiveBusinessError: If no business is active.
        """
        business = self.get_active_business()
        if business is None:
            raise NoActiveBusinessError()
        return LedgerContext(business_id=business.id, actor=actor, role=role)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_business(
        self,
        name: str,
        currency: str | None = None,
        address: str | None = None,
        with_default_accounts: bool = False,
    ) -> Business:
        """
        Create a business with its default reference data.

        Args:
            name: Display name (required).
            currency: Catalog currency code; defaults to the configured one.
            address: Optional postal address.
            with_default_accounts: Also create the configured default
                accounts with zero balances.

        Returns:
            The new Business.  It is active iff it is the first business.

        Raises:
            ValidationError: Empty name or unsupported currency.
            StoreError: Persistence failed; nothing was created.
        """
        name = self._require_name(name)
        currency = validate_currency(currency or self.settings.default_currency)

        with self.store.atomic("create_business"):
            now = self.clock.now()
            is_first = self.store.count(Business) == 0
            business = self.store.create(
                Business,
                name=name,
                address=(address or "").strip() or None,
                currency=currency,
                is_active=is_first,
                created_at=now,
                updated_at=now,
            )
            for seed in self.settings.default_categories:
                self.store.create(
                    Category,
                    name=seed.name,
                    color=seed.color,
                    business_id=business.id,
                    created_at=now,
                    updated_at=now,
                )
            for mode_name in self.settings.default_payment_modes:
                self.store.create(
                    PaymentMode,
                    name=mode_name,
                    business_id=business.id,
                    created_at=now,
                    updated_at=now,
                )
            if with_default_accounts:
                for account_name in self.settings.default_accounts:
                    self.store.create(
                        Account,
                        name=account_name,
                        currency=currency,
                        opening_balance=Decimal("0"),
                        current_balance=Decimal("0"),
                        business_id=business.id,
                        created_at=now,
                        updated_at=now,
                    )
            self.activity.record(
                business.id, actions.BUSINESS_CREATED, f"Business '{name}' created"
            )

        logger.info(
            "business_created",
            extra={
                "business_id": str(business.id),
                "currency": currency,
                "is_active": is_first,
            },
        )
        return business

    def set_active_business(self, business_id: UUID) -> Business:
        """Make ``business_id`` the only active business."""
        target = self.get_business(business_id)
        with self.store.atomic("set_active_business"):
            for business in self.store.find(Business):
                business.is_active = business.id == target.id
        logger.info("business_activated", extra={"business_id": str(target.id)})
        return target

    def update_business(
        self,
        business_id: UUID,
        name: str | None = None,
        currency: str | None = None,
        address: str | None = None,
    ) -> Business:
        """
        Rename, re-address or change the currency of a business.

        Changing the business currency does not touch existing accounts;
        it is the default for accounts created afterwards.
        """
        business = self.get_business(business_id)
        new_name = self._require_name(name) if name is not None else business.name
        new_currency = validate_currency(currency) if currency is not None else business.currency

        with self.store.atomic("update_business"):
            business.name = new_name
            business.currency = new_currency
            if address is not None:
                business.address = address.strip() or None
            business.updated_at = self.clock.now()
            self.activity.record(
                business.id, actions.BUSINESS_UPDATED, f"Business '{new_name}' updated"
            )
        logger.info("business_updated", extra={"business_id": str(business.id)})
        return business

    def delete_business(self, business_id: UUID) -> None:
        """
        Delete a business and everything it owns.

        Fund transfers between its accounts stay behind with their account
        references cleared.  If it was active, the next business by name
        becomes active.
        """
        business = self.get_business(business_id)
        was_active = business.is_active
        name = business.name

        with self.store.atomic("delete_business"):
            self.store.delete(business)
            self.store.flush()
            promoted = None
            if was_active:
                remaining = self.list_businesses()
                if remaining:
                    promoted = remaining[0]
                    promoted.is_active = True

        logger.info(
            "business_deleted",
            extra={
                "business_id": str(business_id),
                "business_name": name,
                "promoted_business_id": str(promoted.id) if promoted else None,
            },
        )
