"""Key, address and output construction errors."""

from __future__ import annotations

from iota_funds.errors.funds_errors import FundsError


class KeyDecodeError(FundsError):
    """A private key is not valid Base58 or has the wrong length."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="key-decode-error", exit_code=2)


class AddressDecodeError(FundsError):
    """A bech32 address could not be decoded or belongs to another network."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="address-decode-error", exit_code=2)


class OutputConstructionError(FundsError):
    """An output could not be built, e.g. its amount is below the storage deposit."""

    def __init__(self, message: str, *, amount: int = 0, minimum: int = 0) -> None:
        super().__init__(message, code="output-construction-error")
        self.amount = amount
        self.minimum = minimum
