"""Ledger access — node client, data models, binary codec."""

from iota_funds.ledger.client import NodeClient, OutputQuery

__all__ = ["NodeClient", "OutputQuery"]
