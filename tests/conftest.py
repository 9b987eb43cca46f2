"""Shared test helpers: an in-memory backend and a fake rate API session."""

import asyncio
from decimal import Decimal

import pytest

from expense_tracker.config import ExchangeRateSettings
from expense_tracker.gateway import DataGateway
from expense_tracker.services.currency import ExchangeRateClient
from expense_tracker.services.database import InMemoryDatabase


def rate_payload(base: str = "AUD", rates: dict | None = None) -> dict:
    """A successful ExchangeRate-API response body."""
    return {
        "result": "success",
        "documentation": "https://www.exchangerate-api.com/docs",
        "terms_of_use": "https://www.exchangerate-api.com/terms",
        "time_last_update_unix": 1718409601,
        "time_last_update_utc": "Sat, 15 Jun 2024 00:00:01 +0000",
        "time_next_update_unix": 1718496001,
        "time_next_update_utc": "Sun, 16 Jun 2024 00:00:01 +0000",
        "base_code": base,
        "conversion_rates": rates or {"AUD": 1, "USD": 0.66, "EUR": 0.62, "JPY": 104.2},
    }


class FakeResponse:
    def __init__(self, payload=None, status_error=None, json_error=None):
        self._payload = payload
        self._status_error = status_error
        self._json_error = json_error

    def raise_for_status(self):
        if self._status_error:
            raise self._status_error

    def json(self):
        if self._json_error:
            raise self._json_error
        return self._payload


class FakeSession:
    """Stands in for requests.Session; records every GET."""

    def __init__(self, responses):
        self._responses = responses
        self.requested_urls: list[str] = []
        self.closed = False

    def get(self, url, timeout=None):
        self.requested_urls.append(url)
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def close(self):
        self.closed = True


class FakeSessionFactory:
    """Hands out FakeSessions that share one queue of canned responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.sessions: list[FakeSession] = []

    def __call__(self) -> FakeSession:
        session = FakeSession(self.responses)
        self.sessions.append(session)
        return session

    @property
    def requested_urls(self) -> list[str]:
        return [url for session in self.sessions for url in session.requested_urls]


def make_rate_client(*responses) -> tuple[ExchangeRateClient, FakeSessionFactory]:
    factory = FakeSessionFactory(*responses)
    client = ExchangeRateClient(
        ExchangeRateSettings(api_key="test-key", base_currency="AUD"),
        session_factory=factory,
    )
    return client, factory


async def wait_until(predicate, timeout: float = 2.0) -> None:
    """Yield to the event loop until `predicate()` holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.01)


class RecordingListener:
    """DatabaseListener that keeps every delivery."""

    def __init__(self, listener_type):
        self.listener_type = listener_type
        self.calls: list[tuple] = []

    def on_data_change(self, change, expenses, incomes):
        self.calls.append((change, expenses, incomes))

    @property
    def last_expenses(self):
        return self.calls[-1][1]

    @property
    def last_incomes(self):
        return self.calls[-1][2]


@pytest.fixture
def database() -> InMemoryDatabase:
    return InMemoryDatabase()


@pytest.fixture
def gateway(database) -> DataGateway:
    return DataGateway(database)


def amounts(records) -> list[Decimal]:
    return sorted(record.amount for record in records)
