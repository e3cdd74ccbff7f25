"""
LedgerSettings schema.

The typed, frozen form of the YAML settings file.  Everything the engines
need to know about defaults (seed categories, CSV date pattern, edit window)
comes from here rather than from module-level constants.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CategorySeed:
    """A category created for every new business."""

    name: str
    color: str | None = None


@dataclass(frozen=True)
class CompanyProfile:
    """Identity written into the flat backup."""

    name: str
    address: str = ""


@dataclass(frozen=True)
class LedgerSettings:
    database_url: str
    default_currency: str = "USD"
    default_categories: tuple[CategorySeed, ...] = ()
    default_payment_modes: tuple[str, ...] = ()
    default_accounts: tuple[str, ...] = ()
    csv_date_format: str = "%d-%m-%Y"
    app_version: str = "1.0"
    company: CompanyProfile = CompanyProfile(name="")
    transaction_edit_window_minutes: int = 10
    default_admin_username: str = "admin"
    default_admin_password: str = "admin"
    log_level: str = "INFO"
