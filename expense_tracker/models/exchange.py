"""
Exchange rate models.

`ExchangeRateResponse` mirrors the ExchangeRate-API v6 "latest" payload.
`ExchangeRateSnapshot` is what the rest of the app holds on to: one base
currency and its rate table, replaced wholesale on every fetch.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ExchangeRateResponse(BaseModel):
    """Wire model of GET /v6/{key}/latest/{BASE}."""
    model_config = ConfigDict(extra="ignore")

    result: str
    documentation: Optional[str] = None
    terms_of_use: Optional[str] = None
    time_last_update_unix: Optional[int] = None
    time_last_update_utc: Optional[str] = None
    time_next_update_unix: Optional[int] = None
    time_next_update_utc: Optional[str] = None
    base_code: str
    conversion_rates: dict[str, Decimal]

    @property
    def is_success(self) -> bool:
        return self.result == "success"


class ExchangeRateSnapshot(BaseModel):
    """The most recently fetched rate table."""

    base_code: str
    conversion_rates: dict[str, Decimal]
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    time_last_update_unix: Optional[int] = None
    time_next_update_unix: Optional[int] = None

    @field_validator('base_code')
    @classmethod
    def normalize_base(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator('conversion_rates')
    @classmethod
    def normalize_codes(cls, v: dict[str, Decimal]) -> dict[str, Decimal]:
        return {code.strip().upper(): rate for code, rate in v.items()}

    @classmethod
    def from_response(cls, response: ExchangeRateResponse) -> "ExchangeRateSnapshot":
        return cls(
            base_code=response.base_code,
            conversion_rates=response.conversion_rates,
            time_last_update_unix=response.time_last_update_unix,
            time_next_update_unix=response.time_next_update_unix,
        )

    def has(self, currency: str) -> bool:
        return currency.strip().upper() in self.conversion_rates
