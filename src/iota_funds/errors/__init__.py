"""Error taxonomy for iota-funds."""

from iota_funds.errors.chain_errors import (
    ConfirmationTimeout,
    LedgerDataError,
    NodeRequestError,
    NodeUnavailable,
    SubmissionError,
    TimeNotSynced,
)
from iota_funds.errors.funds_errors import FundsError
from iota_funds.errors.price_errors import PriceServiceError, RateUnavailable
from iota_funds.errors.wallet_errors import (
    AddressDecodeError,
    KeyDecodeError,
    OutputConstructionError,
)

__all__ = [
    "AddressDecodeError",
    "ConfirmationTimeout",
    "FundsError",
    "KeyDecodeError",
    "LedgerDataError",
    "NodeRequestError",
    "NodeUnavailable",
    "OutputConstructionError",
    "PriceServiceError",
    "RateUnavailable",
    "SubmissionError",
    "TimeNotSynced",
]
