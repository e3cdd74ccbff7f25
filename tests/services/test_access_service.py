"""
Tests for AccessService.

Covers:
- Default admin bootstrap and password hashing
- Authentication
- User management permissions
- The transaction edit window for non-admin users
"""

import pytest

from ledger_kernel.domain.context import LedgerContext
from ledger_kernel.exceptions import (
    AuthenticationError,
    DuplicateUsernameError,
    PermissionDeniedError,
    ValidationError,
)
from ledger_kernel.models.user import User, UserRole
from ledger_kernel.services.access_service import pwd_context


class TestUsers:
    def test_default_admin_created_once(self, access_service, store):
        first = access_service.ensure_default_admin()
        second = access_service.ensure_default_admin()
        assert first.id == second.id
        assert first.is_admin
        assert store.count(User) == 1

    def test_password_is_hashed(self, access_service):
        admin = access_service.ensure_default_admin()
        assert admin.password_hash != "admin"
        assert pwd_context.verify("admin", admin.password_hash)

    def test_admin_creates_user(self, access_service, admin_ctx):
        user = access_service.create_user(admin_ctx, "cashier", "s3cret")
        assert user.role == "user"
        assert not user.is_admin

    def test_non_admin_cannot_create_user(self, access_service, ctx):
        with pytest.raises(PermissionDeniedError):
            access_service.create_user(ctx, "other", "pw")

    def test_duplicate_username(self, access_service, admin_ctx):
        access_service.create_user(admin_ctx, "cashier", "pw")
        with pytest.raises(DuplicateUsernameError):
            access_service.create_user(admin_ctx, "cashier", "pw2")

    def test_empty_password(self, access_service, admin_ctx):
        with pytest.raises(ValidationError):
            access_service.create_user(admin_ctx, "cashier", "")

    def test_cannot_delete_self(self, access_service, admin_ctx):
        admin = access_service.ensure_default_admin()
        with pytest.raises(PermissionDeniedError):
            access_service.delete_user(admin_ctx, admin.id)

    def test_non_admin_cannot_delete_admin(self, access_service, ctx):
        admin = access_service.ensure_default_admin()
        with pytest.raises(PermissionDeniedError):
            access_service.delete_user(ctx, admin.id)

    def test_admin_deletes_user(self, access_service, admin_ctx, store):
        user = access_service.create_user(admin_ctx, "temp", "pw")
        access_service.delete_user(admin_ctx, user.id)
        assert store.get(User, user.id) is None


class TestAuthentication:
    def test_valid_credentials(self, access_service, admin_ctx):
        access_service.create_user(admin_ctx, "cashier", "pw", role=UserRole.USER)
        ctx = access_service.authenticate("cashier", "pw")
        assert ctx.actor == "cashier"
        assert ctx.role is UserRole.USER
        assert ctx.business_id is None

    def test_wrong_password(self, access_service):
        access_service.ensure_default_admin()
        with pytest.raises(AuthenticationError):
            access_service.authenticate("admin", "wrong")

    def test_unknown_user(self, access_service):
        with pytest.raises(AuthenticationError):
            access_service.authenticate("ghost", "pw")

    def test_change_password(self, access_service):
        access_service.ensure_default_admin()
        ctx = access_service.authenticate("admin", "admin")
        access_service.change_password(ctx, "admin", "n3w")
        assert access_service.authenticate("admin", "n3w").is_admin
        with pytest.raises(AuthenticationError):
            access_service.authenticate("admin", "admin")

    def test_change_password_requires_current(self, access_service):
        access_service.ensure_default_admin()
        ctx = access_service.authenticate("admin", "admin")
        with pytest.raises(AuthenticationError):
            access_service.change_password(ctx, "nope", "n3w")


class TestPermissions:
    @pytest.fixture
    def own_txn(self, ledger, ctx, cash_account, sales_category):
        return ledger.create_transaction(ctx, "10", "income", cash_account.id, sales_category.id)

    def test_creator_may_edit_within_window(self, access_service, ctx, own_txn, deterministic_clock):
        deterministic_clock.advance(10 * 60 - 1)
        assert access_service.can_edit_transaction(ctx, own_txn)
        assert access_service.can_delete_transaction(ctx, own_txn)

    def test_creator_locked_out_after_window(
        self, access_service, ctx, own_txn, deterministic_clock
    ):
        deterministic_clock.advance(10 * 60)
        assert not access_service.can_edit_transaction(ctx, own_txn)
        with pytest.raises(PermissionDeniedError):
            access_service.require(
                access_service.can_edit_transaction(ctx, own_txn), ctx, "edit transaction"
            )

    def test_other_user_never_edits(self, access_service, ctx, own_txn):
        other = ctx.as_actor("someone-else")
        assert not access_service.can_edit_transaction(other, own_txn)

    def test_admin_always_edits(self, access_service, admin_ctx, own_txn, deterministic_clock):
        deterministic_clock.advance(365 * 24 * 3600)
        assert access_service.can_delete_transaction(admin_ctx, own_txn)

    def test_admin_only_capabilities(self, access_service, ctx, admin_ctx):
        for check in (
            access_service.can_manage_employees,
            access_service.can_manage_users,
            access_service.can_export_data,
            access_service.can_backup_restore,
        ):
            assert check(admin_ctx)
            assert not check(ctx)

    def test_anonymous_context(self, access_service, own_txn, business):
        anonymous = LedgerContext(business_id=business.id)
        assert not access_service.can_edit_transaction(anonymous, own_txn)
