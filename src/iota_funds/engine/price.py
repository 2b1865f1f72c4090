"""Fiat pricing — rate lookup and base-unit conversion.

Rates come from the CoinGecko "simple price" endpoint:
- GET {api_url}?ids=<asset>&vs_currencies=<code>&precision=<n>
  -> {"<asset>": {"<code>": <rate>}}
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from iota_funds.errors.price_errors import PriceServiceError, RateUnavailable

if TYPE_CHECKING:
    from iota_funds.config.settings import PriceConfig

logger = logging.getLogger(__name__)

BASE_UNITS_PER_TOKEN = 1_000_000


def convert(amount: int, rate: float) -> float:
    """Fiat value of *amount* base units at *rate* per whole token."""
    return amount / BASE_UNITS_PER_TOKEN * rate


class PriceService:
    """Async HTTP client for the fiat price API.

    Usage::

        prices = PriceService(config)
        await prices.connect()
        try:
            rate = await prices.get_rate("eur")
        finally:
            await prices.close()
    """

    def __init__(self, config: PriceConfig) -> None:
        self._config = config
        self._client: httpx.AsyncClient | None = None

    async def connect(self) -> None:
        """Create the underlying HTTP client."""
        self._client = httpx.AsyncClient(
            headers={"Accept": "application/json"},
            timeout=self._config.timeout,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def get_rate(self, currency: str) -> float:
        """Price of one token in *currency*.

        Raises:
            RateUnavailable: If the response has no rate for *currency*.
            PriceServiceError: If the API cannot be reached or errors.
        """
        client = self._ensure_connected()
        code = currency.lower()
        asset = self._config.asset_id
        try:
            response = await client.get(
                self._config.api_url,
                params={
                    "ids": asset,
                    "vs_currencies": code,
                    "precision": str(self._config.precision),
                },
            )
            response.raise_for_status()
            data: dict[str, Any] = response.json()
        except httpx.HTTPError as exc:
            raise PriceServiceError(f"price lookup failed: {exc}", currency=code) from exc
        except ValueError as exc:
            raise PriceServiceError("price API returned invalid JSON", currency=code) from exc

        rates = data.get(asset) if isinstance(data, dict) else None
        if not isinstance(rates, dict) or rates.get(code) is None:
            raise RateUnavailable(f"price in '{code}' not found", currency=code)
        rate = float(rates[code])
        logger.debug("1 %s = %s %s", asset, rate, code.upper())
        return rate

    def _ensure_connected(self) -> httpx.AsyncClient:
        if self._client is None:
            msg = "Price service not connected. Call connect() first."
            raise PriceServiceError(msg)
        return self._client
