"""Fiat price lookup errors."""

from __future__ import annotations

from iota_funds.errors.funds_errors import FundsError


class RateUnavailable(FundsError):
    """No exchange rate is available for the requested currency."""

    def __init__(self, message: str, *, currency: str = "") -> None:
        super().__init__(message, code="rate-unavailable")
        self.currency = currency


class PriceServiceError(RateUnavailable):
    """The price API could not be reached or answered with an error."""
