"""
Application wiring for Expense Tracker.

Builds the document store backend, the data gateway and the exchange rate
client from settings. Everything is constructed here and handed to the
controllers; nothing else reaches for a global instance.
"""

from typing import Optional

from pydantic import ValidationError

from expense_tracker.config import ExchangeRateSettings, get_settings
from expense_tracker.gateway import DataGateway
from expense_tracker.listeners import ListenerRegistry
from expense_tracker.log import configure_logging, get_logger
from expense_tracker.services.currency import ExchangeRateClient
from expense_tracker.services.database import (
    DatabaseInterface,
    GoogleSheetsClient,
    GoogleSheetsDatabase,
    InMemoryDatabase,
)


logger = get_logger(__name__)


def create_database(use_storage: bool = True) -> DatabaseInterface:
    """
    Pick the document store backend.

    Falls back to the in-memory store when remote storage is disabled,
    not selected, or not configured.
    """
    app_settings = get_settings().app
    min_length = app_settings.min_password_length

    if not use_storage or app_settings.storage_backend == "memory":
        return InMemoryDatabase(min_password_length=min_length)

    try:
        sheets_settings = get_settings().google_sheets
        client = GoogleSheetsClient(sheets_settings)
        return GoogleSheetsDatabase(client, min_password_length=min_length)
    except Exception as e:
        # Storage not configured - continue in memory
        logger.warning("storage_not_configured", error=str(e))
        return InMemoryDatabase(min_password_length=min_length)


def create_app_components(
    use_storage: bool = True,
    database: Optional[DatabaseInterface] = None,
) -> tuple[DataGateway, ExchangeRateClient]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to use the configured remote backend.
                    Set to False to run fully in memory.
        database: Explicit backend, overriding settings.

    Returns:
        (gateway, exchange_rate_client)
    """
    app_settings = get_settings().app
    configure_logging(app_settings.log_level)

    gateway = DataGateway(
        database=database or create_database(use_storage),
        listeners=ListenerRegistry(),
    )
    try:
        rate_settings = get_settings().exchange_rate
    except ValidationError as e:
        # Without an API key only the base currency can be shown
        logger.warning("exchange_rate_not_configured", error=str(e))
        rate_settings = ExchangeRateSettings(api_key="")
    rates = ExchangeRateClient(rate_settings)

    logger.info(
        "components_created",
        environment=app_settings.app_environment,
        backend=type(gateway.database).__name__,
    )
    return gateway, rates
