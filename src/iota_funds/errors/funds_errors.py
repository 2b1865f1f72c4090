"""FundsError — base exception class for all iota-funds errors."""

from __future__ import annotations

from typing import Self


class FundsError(Exception):
    """Base error for all iota-funds operations.

    Attributes:
        message: Human-readable error description.
        code: Machine-readable error code string.
        exit_code: Process exit status the CLI uses for this error.
        key_index: Position of the private key being processed, if any.
        stage: Processing stage the error was raised in, if known.
    """

    def __init__(
        self,
        message: str,
        *,
        code: str = "funds-error",
        exit_code: int = 1,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.exit_code = exit_code
        self.key_index: int | None = None
        self.stage: str | None = None

    def at(self, key_index: int, stage: str) -> Self:
        """Attach the key index and stage the error was raised in."""
        if self.key_index is None:
            self.key_index = key_index
        if self.stage is None:
            self.stage = stage
        return self

    def __str__(self) -> str:
        if self.key_index is None:
            return self.message
        return f"key #{self.key_index} ({self.stage}): {self.message}"
