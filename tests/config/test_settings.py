"""
Tests for settings loading (ledger_config).

Covers:
- Packaged defaults parse into a frozen LedgerSettings
- Environment overrides for file and database URL
- Validation of currency and edit window
"""

from __future__ import annotations

import dataclasses

import pytest

from ledger_config import (
    CONFIG_FILE_ENV,
    DATABASE_URL_ENV,
    DEFAULT_SETTINGS_PATH,
    CategorySeed,
    LedgerSettings,
    get_settings,
)
from ledger_config.loader import parse_settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv(CONFIG_FILE_ENV, raising=False)
    monkeypatch.delenv(DATABASE_URL_ENV, raising=False)


class TestPackagedDefaults:
    def test_defaults_load(self):
        settings = get_settings()
        assert isinstance(settings, LedgerSettings)
        assert settings.default_currency == "USD"
        assert settings.csv_date_format == "%d-%m-%Y"
        assert settings.transaction_edit_window_minutes == 10

    def test_default_reference_data(self):
        settings = get_settings()
        assert CategorySeed("Sales", "#2ecc71") in settings.default_categories
        assert len(settings.default_categories) == 7
        assert settings.default_payment_modes[0] == "Cash"
        assert settings.default_accounts == ("Cash", "Bank", "Credit Card")

    def test_company_profile(self):
        settings = get_settings()
        assert settings.company.name == "Esthetics Auto"
        assert settings.company.address == "Dubai, UAE"

    def test_settings_are_frozen(self):
        settings = get_settings()
        with pytest.raises(dataclasses.FrozenInstanceError):
            settings.default_currency = "EUR"


class TestOverrides:
    def test_database_url_env(self, monkeypatch):
        monkeypatch.setenv(DATABASE_URL_ENV, "sqlite:///tmp/other.db")
        assert get_settings().database_url == "sqlite:///tmp/other.db"

    def test_config_file_env(self, monkeypatch, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("database_url: sqlite://\ndefault_currency: aed\n")
        monkeypatch.setenv(CONFIG_FILE_ENV, str(path))
        settings = get_settings()
        assert settings.default_currency == "AED"
        assert settings.default_categories == ()

    def test_explicit_path_wins(self, monkeypatch, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("database_url: sqlite://\n")
        monkeypatch.setenv(CONFIG_FILE_ENV, str(tmp_path / "missing.yaml"))
        assert get_settings(path).database_url == "sqlite://"
        assert DEFAULT_SETTINGS_PATH.exists()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_settings(tmp_path / "missing.yaml")


class TestValidation:
    def test_database_url_required(self):
        with pytest.raises(KeyError):
            parse_settings({})

    def test_unknown_currency(self):
        with pytest.raises(ValueError, match="default_currency"):
            parse_settings({"database_url": "sqlite://", "default_currency": "XYZ"})

    @pytest.mark.parametrize("window", [-1, "ten", True])
    def test_bad_edit_window(self, window):
        with pytest.raises(ValueError, match="transaction_edit_window_minutes"):
            parse_settings({"database_url": "sqlite://", "transaction_edit_window_minutes": window})

    def test_category_as_plain_name(self):
        settings = parse_settings({"database_url": "sqlite://", "default_categories": ["Misc"]})
        assert settings.default_categories == (CategorySeed("Misc"),)

    def test_bad_category_entry(self):
        with pytest.raises(ValueError):
            parse_settings({"database_url": "sqlite://", "default_categories": [42]})
