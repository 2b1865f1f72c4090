"""Node HTTP client — node info, indexer queries, outputs, blocks.

Provides an async HTTP client for the Stardust node REST API:
- GET  /api/core/v2/info — protocol parameters, latest milestone
- GET  /api/indexer/v1/outputs/basic — basic output ids (paginated)
- GET  /api/core/v2/outputs/{outputId} — output with metadata
- POST /api/core/v2/blocks — submit a block
- GET  /api/core/v2/blocks/{blockId}/metadata — inclusion state
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Self

import httpx

from iota_funds.errors.chain_errors import (
    ConfirmationTimeout,
    LedgerDataError,
    NodeRequestError,
    NodeUnavailable,
    SubmissionError,
    TimeNotSynced,
)
from iota_funds.ledger.models import (
    BlockMetadata,
    LedgerInclusionState,
    NodeInfo,
    OutputWithMetadata,
    ProtocolParameters,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import TracebackType

    from iota_funds.config.settings import NodeConfig

logger = logging.getLogger(__name__)

_CORE = "/api/core/v2"
_INDEXER = "/api/indexer/v1"


@dataclass(frozen=True)
class OutputQuery:
    """Indexer filters for basic outputs; ``None`` leaves a filter unset."""

    address: str
    has_storage_deposit_return: bool | None = None
    has_expiration: bool | None = None
    has_timelock: bool | None = None

    def to_params(self) -> dict[str, str]:
        params = {"address": self.address}
        flags = {
            "hasStorageDepositReturn": self.has_storage_deposit_return,
            "hasExpiration": self.has_expiration,
            "hasTimelock": self.has_timelock,
        }
        for name, value in flags.items():
            if value is not None:
                params[name] = "true" if value else "false"
        return params


class NodeClient:
    """Async HTTP client for one Stardust node.

    Created once per run and handed to the flows explicitly::

        async with NodeClient(url, config) as node:
            now = await node.get_reference_time()
            ids = await node.basic_output_ids(OutputQuery(address=addr))
    """

    def __init__(self, url: str, config: NodeConfig) -> None:
        """Initialize the node client.

        Args:
            url: Base URL of the node.
            config: Timeouts and confirmation polling settings.
        """
        self._url = url.rstrip("/")
        self._config = config
        self._client: httpx.AsyncClient | None = None
        self._info: NodeInfo | None = None

    async def connect(self) -> None:
        """Create the underlying HTTP client."""
        self._client = httpx.AsyncClient(
            base_url=self._url,
            headers={"Accept": "application/json"},
            timeout=self._config.timeout,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    @property
    def is_connected(self) -> bool:
        """Check if the HTTP client is active."""
        return self._client is not None

    @property
    def url(self) -> str:
        return self._url

    # ------------------------------------------------------------------
    # Node info
    # ------------------------------------------------------------------

    async def get_info(self, *, refresh: bool = False) -> NodeInfo:
        """Fetch the node info; cached after the first call unless *refresh*."""
        if self._info is None or refresh:
            data = await self._get_json(f"{_CORE}/info", "get_info")
            self._info = NodeInfo.from_dict(data)
            logger.debug(
                "Connected to %s %s on %s",
                self._info.name,
                self._info.version,
                self._info.protocol.network_name,
            )
        return self._info

    async def get_protocol_parameters(self) -> ProtocolParameters:
        return (await self.get_info()).protocol

    async def get_reference_time(self) -> int:
        """Return the latest milestone timestamp as the run's notion of "now".

        Raises:
            TimeNotSynced: If local time and the node's time differ by more
                than the configured skew.
        """
        info = await self.get_info(refresh=True)
        node_time = info.latest_milestone_timestamp
        local_time = int(time.time())
        if abs(local_time - node_time) > self._config.max_time_skew:
            raise TimeNotSynced(local_time, node_time)
        return node_time

    # ------------------------------------------------------------------
    # Outputs
    # ------------------------------------------------------------------

    async def basic_output_ids(self, query: OutputQuery) -> list[str]:
        """Return the ids of all basic outputs matching *query*, following pagination."""
        params = query.to_params()
        ids: list[str] = []
        while True:
            data = await self._get_json(
                f"{_INDEXER}/outputs/basic", "basic_output_ids", params=params
            )
            ids.extend(data.get("items", []))
            cursor = data.get("cursor")
            if not cursor:
                return ids
            params = {**params, "cursor": cursor}

    async def get_output(self, output_id: str) -> OutputWithMetadata:
        data = await self._get_json(f"{_CORE}/outputs/{output_id}", "get_output")
        return OutputWithMetadata.from_dict(data)

    async def get_outputs(self, output_ids: Sequence[str]) -> list[OutputWithMetadata]:
        """Fetch full records for *output_ids*, one request at a time, in order."""
        return [await self.get_output(output_id) for output_id in output_ids]

    # ------------------------------------------------------------------
    # Blocks
    # ------------------------------------------------------------------

    async def submit_block(self, payload: dict[str, Any]) -> str:
        """Submit a block carrying *payload*; the node selects parents and does PoW.

        Returns:
            The block id.

        Raises:
            SubmissionError: If the node rejects the block or the request
                fails in transit.
        """
        info = await self.get_info()
        block = {
            "protocolVersion": info.protocol.version,
            "parents": [],
            "payload": payload,
            "nonce": "0",
        }
        client = self._ensure_connected()
        try:
            response = await client.post(f"{_CORE}/blocks", json=block)
        except httpx.HTTPError as exc:
            raise SubmissionError(f"block submission to {self._url} failed: {exc}") from exc

        if response.status_code not in (200, 201):
            raise SubmissionError(
                f"node rejected block ({response.status_code}): {_error_detail(response)}"
            )
        block_id = _json(response, "submit_block").get("blockId", "")
        if not block_id:
            raise SubmissionError("node accepted block but returned no block id")
        return block_id

    async def get_block_metadata(self, block_id: str) -> BlockMetadata:
        data = await self._get_json(f"{_CORE}/blocks/{block_id}/metadata", "get_block_metadata")
        return BlockMetadata.from_dict(data)

    async def await_confirmation(self, block_id: str) -> BlockMetadata:
        """Poll the block metadata until its transaction is included.

        Polls every ``confirmation_interval`` seconds, at most
        ``confirmation_max_attempts`` times.

        Raises:
            SubmissionError: If the transaction conflicts or is missing.
            ConfirmationTimeout: If the budget is exhausted first.
        """
        attempts = self._config.confirmation_max_attempts
        for attempt in range(1, attempts + 1):
            metadata = await self.get_block_metadata(block_id)
            state = metadata.ledger_inclusion_state
            if state is LedgerInclusionState.INCLUDED:
                return metadata
            if state in (LedgerInclusionState.CONFLICTING, LedgerInclusionState.NO_TRANSACTION):
                raise SubmissionError(
                    f"block {block_id} was referenced as {state.value} "
                    f"(conflict reason {metadata.conflict_reason})",
                    block_id=block_id,
                )
            logger.debug("Block %s pending (attempt %d/%d)", block_id, attempt, attempts)
            if attempt < attempts:
                await asyncio.sleep(self._config.confirmation_interval)
        raise ConfirmationTimeout(block_id, attempts)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _ensure_connected(self) -> httpx.AsyncClient:
        """Return the HTTP client, raising if not connected."""
        if self._client is None:
            msg = "Node client not connected. Call connect() first."
            raise NodeUnavailable(msg)
        return self._client

    async def _get_json(
        self, path: str, operation: str, *, params: dict[str, str] | None = None
    ) -> dict[str, Any]:
        client = self._ensure_connected()
        try:
            response = await client.get(path, params=params)
        except httpx.HTTPError as exc:
            raise NodeUnavailable(f"{operation} on {self._url} failed: {exc}") from exc

        if response.status_code != 200:
            raise NodeRequestError(
                f"{operation} failed ({response.status_code}): {_error_detail(response)}",
                status_code=response.status_code,
            )
        return _json(response, operation)


def _json(response: httpx.Response, operation: str) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError as exc:
        raise LedgerDataError(f"{operation} returned invalid JSON") from exc
    if not isinstance(data, dict):
        raise LedgerDataError(f"{operation} returned {type(data).__name__}, expected object")
    return data


def _error_detail(response: httpx.Response) -> str:
    """Extract the node's error message, falling back to the raw body."""
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict):
        error = body.get("error", body)
        if isinstance(error, dict):
            return str(error.get("message", error))
        return str(error)
    return response.text
