"""Eligibility rules — which outputs count, and under which unlock time.

Two questions are answered for an output at a fixed reference time:

* consolidation: can the owner spend it right now? (unspent, not
  time-locked, not expired)
* reporting: does it count towards the timed balance, and under which
  unlock timestamp? (unspent, no storage deposit return, non-zero amount;
  keyed by its time-lock if any, else by the time it was booked)

A time-lock equal to the reference time no longer locks; an expiration
equal to the reference time has expired.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from iota_funds.ledger.models import (
    AddressUnlock,
    ExpirationUnlock,
    StorageDepositReturnUnlock,
    TimelockUnlock,
)

if TYPE_CHECKING:
    from iota_funds.ledger.models import BasicOutput, OutputMetadata

_KNOWN_CONDITIONS = (
    AddressUnlock,
    ExpirationUnlock,
    StorageDepositReturnUnlock,
    TimelockUnlock,
)


@dataclass(frozen=True)
class EligibilityResult:
    """Outcome of classifying one output.

    Attributes:
        spendable: Immediately spendable by the owner (consolidation).
        reportable: Counts towards the timed balance (reporting).
        bucket_key: Unlock timestamp to report under, ``None`` if not reportable.
    """

    spendable: bool
    reportable: bool
    bucket_key: int | None = None


def classify(
    output: BasicOutput, metadata: OutputMetadata, reference_time: int
) -> EligibilityResult:
    """Classify *output* against *reference_time*. Pure."""
    if metadata.is_spent:
        return EligibilityResult(spendable=False, reportable=False)

    for condition in output.unlock_conditions:
        if not isinstance(condition, _KNOWN_CONDITIONS):
            msg = f"unhandled unlock condition {condition!r}"
            raise TypeError(msg)

    timelock = output.timelock()
    reportable = output.storage_deposit_return() is None and output.amount > 0
    bucket_key = None
    if reportable:
        bucket_key = (
            timelock.unix_time if timelock is not None else metadata.milestone_timestamp_booked
        )
    return EligibilityResult(
        spendable=not output.is_time_locked(reference_time)
        and not output.is_expired(reference_time),
        reportable=reportable,
        bucket_key=bucket_key,
    )


def is_immediately_spendable(
    output: BasicOutput, metadata: OutputMetadata, reference_time: int
) -> bool:
    return classify(output, metadata, reference_time).spendable


def unlock_bucket_key(
    output: BasicOutput, metadata: OutputMetadata, reference_time: int
) -> int | None:
    """Timestamp the output is reported under, ``None`` if it does not count."""
    return classify(output, metadata, reference_time).bucket_key
