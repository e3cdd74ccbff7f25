"""Application users and their roles."""

from enum import Enum

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase


class UserRole(str, Enum):
    ADMIN = "admin"
    USER = "user"


class User(TrackedBase):
    """
    A person allowed to use the application.

    ``password_hash`` is an opaque credential produced by AccessService.  It
    is never exported; backups carry ``hasPassword`` instead.
    """

    __tablename__ = "users"

    __table_args__ = (UniqueConstraint("username", name="uq_user_username"),)

    username: Mapped[str] = mapped_column(String(100), nullable=False)

    password_hash: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    role: Mapped[UserRole] = mapped_column(String(10), nullable=False, default=UserRole.USER)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def __repr__(self) -> str:
        return f"<User {self.username} ({self.role})>"
