"""Core engine — eligibility, aggregation, pricing, consolidation and reporting."""

from iota_funds.engine.aggregator import (
    BalanceRow,
    aggregate_by_unlock,
    aggregate_spendable,
    with_cumulative,
)
from iota_funds.engine.eligibility import EligibilityResult, classify
from iota_funds.engine.price import PriceService, convert

__all__ = [
    "BalanceRow",
    "EligibilityResult",
    "PriceService",
    "aggregate_by_unlock",
    "aggregate_spendable",
    "classify",
    "convert",
    "with_cumulative",
]
