"""
Currency Conversion using ExchangeRate-API

Fetches the latest rate table for one base currency:

    GET https://{host}/v6/{api_key}/latest/{BASE}

The client holds exactly one snapshot. Each fetch replaces it wholesale;
a failed fetch leaves the previous snapshot (or none) in place.

DESIGN DECISION: Starting a fetch invalidates the client's HTTP session and
any fetch still in flight. Only the newest request may update the snapshot,
so a slow response for a currency the user has already moved away from is
dropped. The invalidation is scoped to this client; other sessions in the
process are untouched.

No retries: a failed fetch is logged and the caller sees an unavailable rate.
"""

import asyncio
from decimal import Decimal, DivisionByZero, InvalidOperation
from typing import Callable, Optional

import requests
from pydantic import ValidationError

from expense_tracker.config import ExchangeRateSettings, get_settings
from expense_tracker.log import get_logger
from expense_tracker.models.exchange import ExchangeRateResponse, ExchangeRateSnapshot


logger = get_logger(__name__)


class CurrencyError(Exception):
    """Base exception for currency conversion errors."""
    pass


class NetworkOrDecodeError(CurrencyError):
    """The rate table could not be fetched or decoded."""
    pass


def normalize_currency(value: str) -> str:
    normalized = value.strip().upper()
    if len(normalized) != 3 or not normalized.isalpha():
        raise ValueError("Currency must be a 3-letter ISO 4217 code.")
    return normalized


class ExchangeRateClient:
    """
    Client for the ExchangeRate-API "latest" endpoint.

    Usage:
        client = ExchangeRateClient()
        await client.fetch_rates("AUD")
        client.rate("AUD", "USD")  # Decimal or None
    """

    def __init__(
        self,
        settings: Optional[ExchangeRateSettings] = None,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ):
        self._settings = settings or get_settings().exchange_rate
        self._session_factory = session_factory
        self._session = session_factory()
        self._snapshot: Optional[ExchangeRateSnapshot] = None
        self._generation = 0

    @property
    def snapshot(self) -> Optional[ExchangeRateSnapshot]:
        return self._snapshot

    @property
    def base_currency(self) -> str:
        return self._settings.base_currency

    def build_url(self, base_currency: str) -> str:
        return (
            f"https://{self._settings.host}/v6/{self._settings.api_key}"
            f"/latest/{normalize_currency(base_currency)}"
        )

    def _reset_session(self) -> requests.Session:
        """Drop the current session (and its pooled connections) for a fresh one."""
        self._session.close()
        self._session = self._session_factory()
        return self._session

    def _get_json(self, session: requests.Session, url: str) -> dict:
        try:
            response = session.get(url, timeout=self._settings.timeout_seconds)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise NetworkOrDecodeError(f"Rate request failed: {e}") from e
        except ValueError as e:
            raise NetworkOrDecodeError(f"Rate response is not JSON: {e}") from e

    def _decode(self, payload: dict) -> ExchangeRateSnapshot:
        try:
            response = ExchangeRateResponse.model_validate(payload)
        except ValidationError as e:
            raise NetworkOrDecodeError(f"Unexpected rate payload: {e}") from e

        if not response.is_success:
            error_type = payload.get("error-type", "unknown") if isinstance(payload, dict) else "unknown"
            raise NetworkOrDecodeError(f"Rate API returned an error: {error_type}")

        return ExchangeRateSnapshot.from_response(response)

    async def fetch_rates(self, base_currency: Optional[str] = None) -> Optional[ExchangeRateSnapshot]:
        """
        Fetch the latest rates relative to `base_currency`.

        Returns:
            The new snapshot, or None if the fetch failed or was superseded
            by a newer fetch.
        """
        base = normalize_currency(base_currency or self._settings.base_currency)
        url = self.build_url(base)

        self._generation += 1
        generation = self._generation
        session = self._reset_session()

        try:
            payload = await asyncio.to_thread(self._get_json, session, url)
            snapshot = self._decode(payload)
        except NetworkOrDecodeError as e:
            logger.error(
                "exchange_rate_fetch_failed",
                base_currency=base,
                error=str(e),
                kept_snapshot=self._snapshot.base_code if self._snapshot else None,
            )
            return None

        if generation != self._generation:
            logger.info("exchange_rate_fetch_superseded", base_currency=base)
            return None

        self._snapshot = snapshot
        logger.info(
            "exchange_rates_updated",
            base_currency=snapshot.base_code,
            currencies=len(snapshot.conversion_rates),
        )
        return snapshot

    def rate(self, from_currency: str, to_currency: str) -> Optional[Decimal]:
        """
        Cross rate between two currencies of the current snapshot.

        Computed as rates[to] / rates[from]. Returns None when there is no
        snapshot or either currency is missing from it.
        """
        if self._snapshot is None:
            return None

        rates = self._snapshot.conversion_rates
        source = from_currency.strip().upper()
        target = to_currency.strip().upper()
        if source not in rates or target not in rates:
            return None

        try:
            return rates[target] / rates[source]
        except (DivisionByZero, InvalidOperation):
            return None

    def convert(
        self,
        amount: Decimal,
        from_currency: str,
        to_currency: str,
    ) -> Optional[Decimal]:
        """Convert an amount; None when the rate is unavailable."""
        conversion_rate = self.rate(from_currency, to_currency)
        if conversion_rate is None:
            return None
        return Decimal(amount) * conversion_rate

    def close(self) -> None:
        self._session.close()
