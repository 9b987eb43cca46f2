"""Tests for settings and application wiring."""

import pytest

from expense_tracker.config import ExchangeRateSettings, get_settings, validate_all_settings
from expense_tracker.gateway import DataGateway
from expense_tracker.orchestrator import create_app_components, create_database
from expense_tracker.services.database import InMemoryDatabase


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch, tmp_path):
    # No stray .env from the working tree
    monkeypatch.chdir(tmp_path)
    for name in (
        "EXCHANGE_RATE_API_KEY",
        "EXCHANGE_RATE_BASE_CURRENCY",
        "GOOGLE_SHEETS_CREDENTIALS_PATH",
        "GOOGLE_SHEETS_SPREADSHEET_ID",
        "GOOGLE_SHEETS_POLL_INTERVAL_SECONDS",
        "STORAGE_BACKEND",
        "SUPPORTED_CURRENCIES",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestSettings:
    """Tests for environment-driven configuration."""

    def test_app_defaults(self):
        app = get_settings().app
        assert app.storage_backend == "sheets"
        assert app.min_password_length == 6
        assert app.supported_currencies_list == ["AUD", "USD", "EUR", "CNY", "AED", "HKD", "JPY"]

    def test_supported_currencies_from_env(self, monkeypatch):
        monkeypatch.setenv("SUPPORTED_CURRENCIES", " aud, usd ,,gbp")
        assert get_settings().app.supported_currencies_list == ["AUD", "USD", "GBP"]

    def test_invalid_backend_rejected(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "postgres")
        with pytest.raises(ValueError):
            get_settings().app

    def test_exchange_rate_settings(self, monkeypatch):
        monkeypatch.setenv("EXCHANGE_RATE_API_KEY", "abc123")
        monkeypatch.setenv("EXCHANGE_RATE_BASE_CURRENCY", "usd")
        settings = get_settings().exchange_rate
        assert settings.api_key == "abc123"
        assert settings.base_currency == "USD"
        assert settings.host == "v6.exchangerate-api.com"

    def test_service_settings_read_dotenv(self, tmp_path, monkeypatch):
        credentials = tmp_path / "credentials.json"
        credentials.write_text("{}")
        (tmp_path / ".env").write_text(
            "EXCHANGE_RATE_API_KEY=abc\n"
            "EXCHANGE_RATE_BASE_CURRENCY=usd\n"
            f"GOOGLE_SHEETS_CREDENTIALS_PATH={credentials}\n"
            "GOOGLE_SHEETS_SPREADSHEET_ID=sheet-123\n"
            "GOOGLE_SHEETS_POLL_INTERVAL_SECONDS=2\n"
        )
        monkeypatch.chdir(tmp_path)

        rates = get_settings().exchange_rate
        sheets = get_settings().google_sheets

        assert rates.api_key == "abc"
        assert rates.base_currency == "USD"
        assert sheets.spreadsheet_id == "sheet-123"
        assert sheets.credentials_path == str(credentials)
        assert sheets.poll_interval_seconds == 2
        assert validate_all_settings()["exchange_rate"] is True

    def test_validate_all_settings_reports_missing_keys(self):
        status = validate_all_settings()
        assert status["app"] is True
        assert status["exchange_rate"] is False
        assert "exchange_rate_error" in status
        assert status["google_sheets"] is False


class TestWiring:
    """Tests for component construction."""

    def test_memory_backend_when_storage_disabled(self):
        assert isinstance(create_database(use_storage=False), InMemoryDatabase)

    def test_memory_backend_when_selected(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "memory")
        assert isinstance(create_database(), InMemoryDatabase)

    def test_falls_back_to_memory_when_sheets_unconfigured(self):
        assert isinstance(create_database(), InMemoryDatabase)

    def test_create_app_components(self, monkeypatch):
        monkeypatch.setenv("EXCHANGE_RATE_API_KEY", "abc123")
        gateway, rates = create_app_components(use_storage=False)

        assert isinstance(gateway, DataGateway)
        assert isinstance(gateway.database, InMemoryDatabase)
        assert rates.build_url("AUD").endswith("/abc123/latest/AUD")

    def test_missing_api_key_still_builds_rates_client(self):
        _, rates = create_app_components(use_storage=False)
        assert rates.base_currency == "AUD"
        assert rates.snapshot is None

    def test_explicit_database_wins(self):
        database = InMemoryDatabase(min_password_length=10)
        gateway, _ = create_app_components(database=database)
        assert gateway.database is database

    def test_rate_settings_can_be_built_directly(self):
        settings = ExchangeRateSettings(api_key="k", base_currency=" eur ")
        assert settings.base_currency == "EUR"
