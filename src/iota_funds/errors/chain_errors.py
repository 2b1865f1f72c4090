"""Node & ledger related errors."""

from __future__ import annotations

from iota_funds.errors.funds_errors import FundsError


class NodeUnavailable(FundsError):
    """The node could not be reached or is not usable for this run."""

    def __init__(self, message: str, *, code: str = "node-unavailable") -> None:
        super().__init__(message, code=code)


class TimeNotSynced(NodeUnavailable):
    """Local clock and the node's latest milestone disagree too much."""

    def __init__(self, local_time: int, node_time: int) -> None:
        super().__init__(
            f"node time {node_time} is not synced with local time {local_time}",
            code="time-not-synced",
        )
        self.local_time = local_time
        self.node_time = node_time


class NodeRequestError(FundsError):
    """The node answered a request with a non-success status."""

    def __init__(self, message: str, *, status_code: int = 500) -> None:
        super().__init__(message, code="node-request-error")
        self.status_code = status_code


class LedgerDataError(FundsError):
    """The node returned data this tool cannot interpret."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="ledger-data-error")


class SubmissionError(FundsError):
    """The node rejected a block or the ledger did not apply its transaction."""

    def __init__(self, message: str, *, block_id: str = "") -> None:
        super().__init__(message, code="submission-error")
        self.block_id = block_id


class ConfirmationTimeout(FundsError):
    """A submitted block was not included within the polling budget."""

    def __init__(self, block_id: str, attempts: int) -> None:
        super().__init__(
            f"block {block_id} not included after {attempts} attempts",
            code="confirmation-timeout",
        )
        self.block_id = block_id
        self.attempts = attempts
