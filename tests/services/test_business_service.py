"""
Tests for BusinessService.

Covers:
- Creation with seeded reference data
- The single-active-business rule
- Update and cascade delete
"""

from decimal import Decimal

import pytest

from ledger_kernel.exceptions import EntityNotFoundError, NoActiveBusinessError, ValidationError
from ledger_kernel.models.account import Account
from ledger_kernel.models.business import Business
from ledger_kernel.models.category import Category, PaymentMode
from ledger_kernel.models.fund_transfer import FundTransfer
from ledger_kernel.models.transaction import Transaction
from ledger_kernel.models.user import UserRole


def _active(store) -> list[str]:
    return [b.name for b in store.find(Business, Business.is_active.is_(True))]


class TestCreateBusiness:
    def test_first_business_is_active(self, business_service, store):
        business = business_service.create_business("First")
        assert business.is_active
        assert business.currency == "USD"
        assert _active(store) == ["First"]

    def test_second_business_is_not_active(self, business_service, store, business):
        second = business_service.create_business("Second", currency="eur")
        assert not second.is_active
        assert second.currency == "EUR"
        assert _active(store) == ["Esthetics Auto"]

    def test_seeds_reference_data(self, business_service, store, settings):
        business = business_service.create_business("Seeded")
        categories = store.find(Category, Category.business_id == business.id)
        modes = store.find(PaymentMode, PaymentMode.business_id == business.id)
        assert {c.name for c in categories} == {s.name for s in settings.default_categories}
        assert len(modes) == len(settings.default_payment_modes)
        assert store.count(Account, Account.business_id == business.id) == 0

    def test_default_accounts_optional(self, business_service, store):
        business = business_service.create_business("With accounts", with_default_accounts=True)
        accounts = store.find(Account, Account.business_id == business.id, order_by=Account.name)
        assert [a.name for a in accounts] == ["Bank", "Cash", "Credit Card"]
        assert all(a.current_balance == Decimal("0") for a in accounts)

    def test_blank_name(self, business_service):
        with pytest.raises(ValidationError):
            business_service.create_business("  ")

    def test_unknown_currency_creates_nothing(self, business_service, store):
        with pytest.raises(ValidationError):
            business_service.create_business("Bad", currency="XYZ")
        assert store.count(Business) == 0


class TestActiveBusiness:
    def test_switch(self, business_service, store, business):
        second = business_service.create_business("Second")
        business_service.set_active_business(second.id)
        assert _active(store) == ["Second"]
        assert business_service.get_active_business().id == second.id

    def test_active_context(self, business_service, business):
        ctx = business_service.active_context("owner", UserRole.ADMIN)
        assert ctx.business_id == business.id
        assert ctx.actor == "owner"
        assert ctx.is_admin

    def test_active_context_without_business(self, business_service):
        with pytest.raises(NoActiveBusinessError):
            business_service.active_context()

    def test_unknown_business(self, business_service):
        from uuid import uuid4

        with pytest.raises(EntityNotFoundError):
            business_service.set_active_business(uuid4())


class TestUpdateBusiness:
    def test_update_fields(self, business_service, business):
        updated = business_service.update_business(
            business.id, name="Renamed", currency="gbp", address="  "
        )
        assert updated.name == "Renamed"
        assert updated.currency == "GBP"
        assert updated.address is None

    def test_currency_change_keeps_account_currency(
        self, business_service, ledger, ctx, business, cash_account
    ):
        business_service.update_business(business.id, currency="AED")
        assert cash_account.currency == "USD"
        assert ledger.create_account(ctx, "New").currency == "AED"


class TestDeleteBusiness:
    def test_cascade_and_promotion(
        self, business_service, ledger, store, ctx, business, cash_account, bank_account,
        sales_category,
    ):
        ledger.create_transaction(ctx, "10", "income", cash_account.id, sales_category.id)
        transfer = ledger.transfer_funds(ctx, cash_account.id, bank_account.id, "5")
        other = business_service.create_business("Other")

        business_service.delete_business(business.id)
        store.session.expire_all()

        assert store.count(Account, Account.business_id == business.id) == 0
        assert store.count(Transaction) == 0
        assert store.count(Category, Category.business_id == business.id) == 0
        kept = store.get(FundTransfer, transfer.id)
        assert kept.from_account_id is None
        assert kept.to_account_id is None
        assert store.get(Business, other.id).is_active

    def test_delete_last_business(self, business_service, store, business):
        business_service.delete_business(business.id)
        assert store.count(Business) == 0
        assert business_service.get_active_business() is None
