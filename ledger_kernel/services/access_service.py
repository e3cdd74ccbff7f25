"""
AccessService -- users, passwords and role-based permission checks.

Roles:
    admin   everything
    user    records transactions; may edit or delete only their own, and
            only within the configured edit window after creating them

Passwords are stored as passlib ``pbkdf2_sha256`` hashes.
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING
from uuid import UUID

from passlib.context import CryptContext

from ledger_kernel.db.store import EntityStore
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.context import LedgerContext
from ledger_kernel.exceptions import (
    AuthenticationError,
    DuplicateUsernameError,
    EntityNotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.transaction import Transaction
from ledger_kernel.models.user import User, UserRole
from ledger_kernel.services.base import BaseService

if TYPE_CHECKING:
    from ledger_config.schema import LedgerSettings

logger = get_logger("services.access")

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class AccessService(BaseService):
    def __init__(
        self,
        store: EntityStore,
        settings: LedgerSettings,
        clock: Clock | None = None,
    ):
        super().__init__(store, clock)
        self.settings = settings

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def _find_user(self, username: str) -> User | None:
        return self.store.find_one(User, User.username == username)

    def list_users(self) -> list[User]:
        return self.store.find(User, order_by=User.username)

    def ensure_default_admin(self) -> User:
        """Create the configured admin account if it does not exist yet."""
        username = self.settings.default_admin_username
        existing = self._find_user(username)
        if existing is not None:
            return existing
        with self.store.atomic("ensure_default_admin"):
            now = self.clock.now()
            admin = self.store.create(
                User,
                username=username,
                password_hash=pwd_context.hash(self.settings.default_admin_password),
                role=UserRole.ADMIN.value,
                created_at=now,
                updated_at=now,
            )
        logger.info("default_admin_created", extra={"username": username})
        return admin

    def create_user(
        self,
        ctx: LedgerContext,
        username: str,
        password: str,
        role: UserRole = UserRole.USER,
    ) -> User:
        """
        Raises:
            PermissionDeniedError: Caller is not an admin.
            DuplicateUsernameError: Username already taken.
            ValidationError: Empty username or password.
        """
        self.require(self.can_manage_users(ctx), ctx, "manage users")
        username = self._require_name(username, "username")
        if not password:
            raise ValidationError("password is required", field="password")
        if self._find_user(username) is not None:
            raise DuplicateUsernameError(username)

        with self.store.atomic("create_user"):
            now = self.clock.now()
            user = self.store.create(
                User,
                username=username,
                password_hash=pwd_context.hash(password),
                role=UserRole(role).value,
                created_at=now,
                updated_at=now,
            )
        logger.info("user_created", extra={"username": username, "role": UserRole(role)})
        return user

    def authenticate(self, username: str, password: str) -> LedgerContext:
        """
        Verify credentials.

        Returns:
            A LedgerContext with the user as actor and no business; combine
            it with ``BusinessService.active_context`` to operate.

        Raises:
            AuthenticationError: Unknown user or wrong password.
        """
        user = self._find_user(username)
        if user is None or not pwd_context.verify(password, user.password_hash):
            logger.warning("authentication_failed", extra={"username": username})
            raise AuthenticationError(username)
        logger.info("authentication_succeeded", extra={"username": username})
        return LedgerContext(business_id=None, actor=user.username, role=UserRole(user.role))

    def change_password(self, ctx: LedgerContext, current_password: str, new_password: str) -> None:
        """Change the caller's own password after re-checking the current one."""
        user = self._find_user(ctx.actor or "")
        if user is None or not pwd_context.verify(current_password, user.password_hash):
            raise AuthenticationError(ctx.actor or "")
        if not new_password:
            raise ValidationError("password is required", field="password")
        with self.store.atomic("change_password"):
            user.password_hash = pwd_context.hash(new_password)
            user.updated_at = self.clock.now()
        logger.info("password_changed", extra={"username": user.username})

    def delete_user(self, ctx: LedgerContext, user_id: UUID) -> None:
        """
        Raises:
            PermissionDeniedError: Deleting oneself, or a non-admin deleting
                an admin.
        """
        user = self.store.get(User, user_id)
        if user is None:
            raise EntityNotFoundError("User", user_id)
        if user.username == ctx.actor:
            raise PermissionDeniedError(ctx.actor, "delete their own user")
        if user.is_admin and not ctx.is_admin:
            raise PermissionDeniedError(ctx.actor, "delete an admin user")
        with self.store.atomic("delete_user"):
            self.store.delete(user)
        logger.info("user_deleted", extra={"username": user.username})

    # ------------------------------------------------------------------
    # Permissions
    # ------------------------------------------------------------------

    def _within_edit_window(self, ctx: LedgerContext, txn: Transaction) -> bool:
        if ctx.actor is None or txn.created_by != ctx.actor:
            return False
        window = timedelta(minutes=self.settings.transaction_edit_window_minutes)
        return self.clock.now() - txn.created_at < window

    def can_edit_transaction(self, ctx: LedgerContext, txn: Transaction) -> bool:
        return ctx.is_admin or self._within_edit_window(ctx, txn)

    def can_delete_transaction(self, ctx: LedgerContext, txn: Transaction) -> bool:
        return ctx.is_admin or self._within_edit_window(ctx, txn)

    def can_manage_employees(self, ctx: LedgerContext) -> bool:
        return ctx.is_admin

    def can_manage_users(self, ctx: LedgerContext) -> bool:
        return ctx.is_admin

    def can_export_data(self, ctx: LedgerContext) -> bool:
        return ctx.is_admin

    def can_backup_restore(self, ctx: LedgerContext) -> bool:
        return ctx.is_admin

    @staticmethod
    def require(allowed: bool, ctx: LedgerContext, action: str) -> None:
        """Raise PermissionDeniedError unless ``allowed``."""
        if not allowed:
            logger.warning("permission_denied", extra={"action": action})
            raise PermissionDeniedError(ctx.actor, action)
