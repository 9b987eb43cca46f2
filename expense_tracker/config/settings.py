"""
Configuration Management for Expense Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets document store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # Credentials live apart from the documents, one worksheet per collection
    accounts_sheet_name: str = Field(
        default="accounts",
        description="Name of the sheet holding sign-in credentials"
    )
    users_sheet_name: str = Field(
        default="users",
        description="Name of the sheet holding user documents"
    )
    expense_sheet_name: str = Field(
        default="expense",
        description="Name of the sheet holding expense documents"
    )
    income_sheet_name: str = Field(
        default="income",
        description="Name of the sheet holding income documents"
    )

    poll_interval_seconds: float = Field(
        default=5.0,
        gt=0,
        le=300,
        description="How often the user document is polled for changes"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class ExchangeRateSettings(BaseSettings):
    """ExchangeRate-API configuration."""

    model_config = SettingsConfigDict(
        env_prefix="EXCHANGE_RATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="ExchangeRate-API key"
    )
    host: str = Field(
        default="v6.exchangerate-api.com",
        description="API host name"
    )
    base_currency: str = Field(
        default="AUD",
        min_length=3,
        max_length=3,
        description="Currency all stored amounts are recorded in"
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=120,
        description="HTTP timeout for a rate fetch"
    )

    @field_validator('base_currency', mode='before')
    @classmethod
    def normalize_base_currency(cls, v: str) -> str:
        return v.strip().upper()


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for local logs"
    )

    # Backend selection
    storage_backend: str = Field(
        default="sheets",
        pattern="^(sheets|memory)$",
        description="Document store backend: 'sheets' or 'memory'"
    )

    supported_currencies: str = Field(
        default="AUD,USD,EUR,CNY,AED,HKD,JPY",
        description="Comma-separated list of currencies offered in the picker"
    )
    min_password_length: int = Field(
        default=6,
        ge=1,
        le=128,
        description="Shortest password accepted at sign-up"
    )

    @property
    def supported_currencies_list(self) -> list[str]:
        """Get supported currencies as a list."""
        return [
            code.strip().upper()
            for code in self.supported_currencies.split(",")
            if code.strip()
        ]


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: These are loaded lazily to allow partial configuration

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def exchange_rate(self) -> ExchangeRateSettings:
        return ExchangeRateSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.google_sheets
        results["google_sheets"] = True
    except Exception as e:
        results["google_sheets"] = False
        results["google_sheets_error"] = str(e)

    try:
        _ = settings.exchange_rate
        results["exchange_rate"] = True
    except Exception as e:
        results["exchange_rate"] = False
        results["exchange_rate_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
