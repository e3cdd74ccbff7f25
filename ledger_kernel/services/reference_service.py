"""
ReferenceDataService -- categories, payment modes and by-name resolution.

The ``find_or_create_*`` helpers match names exactly within one business
and create the record when absent.  CSV import relies on them, calling them
inside its per-row unit of work so a rejected row leaves nothing behind.
"""

from decimal import Decimal
from uuid import UUID

from ledger_kernel.domain.context import LedgerContext
from ledger_kernel.exceptions import ReferenceDataInUseError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.models.category import Category, PaymentMode
from ledger_kernel.models.transaction import Transaction
from ledger_kernel.services.base import BaseService

logger = get_logger("services.reference")


class ReferenceDataService(BaseService):
    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def list_categories(self, ctx: LedgerContext) -> list[Category]:
        business = self._business(ctx)
        return self.store.find(
            Category, Category.business_id == business.id, order_by=Category.name
        )

    def create_category(
        self, ctx: LedgerContext, name: str, color: str | None = None
    ) -> Category:
        name = self._require_name(name)
        business = self._business(ctx)
        with self.store.atomic("create_category"):
            now = self.clock.now()
            category = self.store.create(
                Category,
                name=name,
                color=color,
                business_id=business.id,
                created_at=now,
                updated_at=now,
            )
        logger.info("category_created", extra={"category_id": str(category.id)})
        return category

    def find_category(self, ctx: LedgerContext, name: str) -> Category | None:
        return self.store.find_one(
            Category, Category.business_id == ctx.business_id, Category.name == name
        )

    def find_or_create_category(self, ctx: LedgerContext, name: str) -> Category:
        existing = self.find_category(ctx, name)
        if existing is not None:
            return existing
        logger.debug("category_auto_created", extra={"category_name": name})
        return self.create_category(ctx, name)

    def delete_category(self, ctx: LedgerContext, category_id: UUID) -> None:
        """
        Raises:
            ReferenceDataInUseError: If any transaction uses the category.
        """
        category = self._owned(Category, category_id, ctx)
        used = self.store.count(Transaction, Transaction.category_id == category.id)
        if used:
            raise ReferenceDataInUseError("Category", category.id, used)
        with self.store.atomic("delete_category"):
            self.store.delete(category)
        logger.info("category_deleted", extra={"category_id": str(category_id)})

    # ------------------------------------------------------------------
    # Payment modes
    # ------------------------------------------------------------------

    def list_payment_modes(self, ctx: LedgerContext) -> list[PaymentMode]:
        business = self._business(ctx)
        return self.store.find(
            PaymentMode, PaymentMode.business_id == business.id, order_by=PaymentMode.name
        )

    def create_payment_mode(self, ctx: LedgerContext, name: str) -> PaymentMode:
        name = self._require_name(name)
        business = self._business(ctx)
        with self.store.atomic("create_payment_mode"):
            now = self.clock.now()
            mode = self.store.create(
                PaymentMode,
                name=name,
                business_id=business.id,
                created_at=now,
                updated_at=now,
            )
        logger.info("payment_mode_created", extra={"payment_mode_id": str(mode.id)})
        return mode

    def find_payment_mode(self, ctx: LedgerContext, name: str) -> PaymentMode | None:
        return self.store.find_one(
            PaymentMode,
            PaymentMode.business_id == ctx.business_id,
            PaymentMode.name == name,
        )

    def find_or_create_payment_mode(self, ctx: LedgerContext, name: str) -> PaymentMode:
        existing = self.find_payment_mode(ctx, name)
        if existing is not None:
            return existing
        logger.debug("payment_mode_auto_created", extra={"payment_mode_name": name})
        return self.create_payment_mode(ctx, name)

    def delete_payment_mode(self, ctx: LedgerContext, payment_mode_id: UUID) -> None:
        mode = self._owned(PaymentMode, payment_mode_id, ctx)
        used = self.store.count(Transaction, Transaction.payment_mode_id == mode.id)
        if used:
            raise ReferenceDataInUseError("PaymentMode", mode.id, used)
        with self.store.atomic("delete_payment_mode"):
            self.store.delete(mode)
        logger.info("payment_mode_deleted", extra={"payment_mode_id": str(payment_mode_id)})

    # ------------------------------------------------------------------
    # Accounts by name
    # ------------------------------------------------------------------

    def find_account(self, ctx: LedgerContext, name: str) -> Account | None:
        return self.store.find_one(
            Account, Account.business_id == ctx.business_id, Account.name == name
        )

    def find_or_create_account(self, ctx: LedgerContext, name: str) -> Account:
        """
        Match an account by exact name, or create it with zero opening and
        current balance in the business currency.
        """
        existing = self.find_account(ctx, name)
        if existing is not None:
            return existing
        name = self._require_name(name)
        business = self._business(ctx)
        with self.store.atomic("create_account"):
            now = self.clock.now()
            account = self.store.create(
                Account,
                name=name,
                currency=business.currency,
                opening_balance=Decimal("0"),
                current_balance=Decimal("0"),
                business_id=business.id,
                created_at=now,
                updated_at=now,
            )
        logger.debug("account_auto_created", extra={"account_id": str(account.id)})
        return account
