"""
ledger_config -- single public entrypoint for application settings.

Responsibility:
    ``get_settings()`` is the only way the application obtains settings.
    It reads one YAML file (an explicit path, ``$LEDGER_CONFIG_FILE``, or
    the packaged ``defaults.yaml``) and applies the ``$LEDGER_DATABASE_URL``
    override.

Failure modes:
    - ``FileNotFoundError`` -- the selected YAML file does not exist.
    - ``ValueError`` / ``KeyError`` -- the file fails validation.
"""

from __future__ import annotations

import dataclasses
import logging
import os
from pathlib import Path

from ledger_config.loader import load_yaml_file, parse_settings
from ledger_config.schema import CategorySeed, CompanyProfile, LedgerSettings

_logger = logging.getLogger("ledger_kernel.config")

DEFAULT_SETTINGS_PATH = Path(__file__).parent / "defaults.yaml"

CONFIG_FILE_ENV = "LEDGER_CONFIG_FILE"
DATABASE_URL_ENV = "LEDGER_DATABASE_URL"


def get_settings(path: Path | str | None = None) -> LedgerSettings:
    """Load and validate settings.

    Args:
        path: YAML file to load.  Falls back to ``$LEDGER_CONFIG_FILE``,
            then to the packaged defaults.

    Returns:
        A frozen ``LedgerSettings``.
    """
    if path is None:
        path = os.environ.get(CONFIG_FILE_ENV) or DEFAULT_SETTINGS_PATH
    path = Path(path)

    settings = parse_settings(load_yaml_file(path))

    database_url = os.environ.get(DATABASE_URL_ENV)
    if database_url:
        settings = dataclasses.replace(settings, database_url=database_url)

    _logger.info(
        "settings_loaded",
        extra={
            "settings_path": str(path),
            "default_currency": settings.default_currency,
            "database_url_overridden": bool(database_url),
        },
    )
    return settings


__all__ = [
    "CategorySeed",
    "CompanyProfile",
    "LedgerSettings",
    "get_settings",
]
