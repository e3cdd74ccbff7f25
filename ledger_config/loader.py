"""
Settings loader (``ledger_config.loader``).

Loads a YAML settings file and parses it into ``LedgerSettings``.  Callers
use ``ledger_config.get_settings()``; this module is the parsing half.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError``.
* Wrong value types or unsupported currency  -> ``ValueError``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import CategorySeed, CompanyProfile, LedgerSettings
from ledger_kernel.domain.currency import CurrencyCatalog


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file and return the parsed dict."""
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def _parse_category(entry: Any) -> CategorySeed:
    if isinstance(entry, str):
        return CategorySeed(name=entry)
    if isinstance(entry, dict):
        return CategorySeed(name=str(entry["name"]), color=entry.get("color"))
    raise ValueError(f"default_categories entry must be a name or mapping: {entry!r}")


def _string_tuple(data: dict[str, Any], key: str) -> tuple[str, ...]:
    value = data.get(key) or []
    if not isinstance(value, list):
        raise ValueError(f"{key} must be a list")
    return tuple(str(v) for v in value)


def parse_settings(data: dict[str, Any]) -> LedgerSettings:
    """Parse a settings mapping into LedgerSettings."""
    currency = str(data.get("default_currency", "USD")).upper()
    if not CurrencyCatalog.is_supported(currency):
        raise ValueError(f"default_currency not in catalog: {currency}")

    window = data.get("transaction_edit_window_minutes", 10)
    if not isinstance(window, int) or isinstance(window, bool) or window < 0:
        raise ValueError(
            f"transaction_edit_window_minutes must be a non-negative integer: {window!r}"
        )

    company = data.get("company") or {}
    categories = data.get("default_categories") or []
    if not isinstance(categories, list):
        raise ValueError("default_categories must be a list")

    return LedgerSettings(
        database_url=str(data["database_url"]),
        default_currency=currency,
        default_categories=tuple(_parse_category(c) for c in categories),
        default_payment_modes=_string_tuple(data, "default_payment_modes"),
        default_accounts=_string_tuple(data, "default_accounts"),
        csv_date_format=str(data.get("csv_date_format", "%d-%m-%Y")),
        app_version=str(data.get("app_version", "1.0")),
        company=CompanyProfile(
            name=str(company.get("name", "")),
            address=str(company.get("address", "")),
        ),
        transaction_edit_window_minutes=window,
        default_admin_username=str(data.get("default_admin_username", "admin")),
        default_admin_password=str(data.get("default_admin_password", "admin")),
        log_level=str(data.get("log_level", "INFO")).upper(),
    )
