"""
EIP-1559 fee estimation.

Derives a priority fee and a fee cap from the latest base fee and a window of
per-block reward samples, ignoring a stale low cluster when fees have spiked.
All arithmetic is on integers so every node running this code agrees on the
result.
"""

from dataclasses import dataclass
from typing import Iterable, List, Sequence

from faucet.errors import FeeMechanismUnavailable

GWEI = 10**9

# Defaults of the eth_feeHistory query.
FEE_HISTORY_BLOCKS = 10
REWARD_PERCENTILE = 5.0

# A jump of this many percent between two sorted samples marks a fee spike.
SPIKE_THRESHOLD_PERCENT = 200

# (upper bound inclusive, numerator, denominator)
_SURGE_TIERS = (
    (40 * GWEI, 2, 1),
    (100 * GWEI, 16, 10),
    (200 * GWEI, 14, 10),
)
_SURGE_DEFAULT = (12, 10)


@dataclass(frozen=True)
class FeeHistorySample:
    rewards: Sequence[int]
    base_fee: int


@dataclass(frozen=True)
class FeeRecommendation:
    priority_fee: int
    fee_cap: int


def estimate_priority_fee(rewards: Iterable[int]) -> int:
    """
    Return the recommended priority fee for the given reward samples.

    Zero samples carry no signal and are dropped. If the largest percentage
    jump between neighbouring sorted samples is at least
    ``SPIKE_THRESHOLD_PERCENT`` and sits in the upper half, only the samples
    from that jump onward are considered. The result is the upper median.
    """
    samples: List[int] = sorted(r for r in rewards if r > 0)
    if not samples:
        return 0
    if len(samples) == 1:
        return samples[0]

    changes = [
        ((samples[i + 1] - samples[i]) * 100) // samples[i]
        for i in range(len(samples) - 1)
    ]
    max_change = max(changes)
    max_change_index = changes.index(max_change)

    if max_change >= SPIKE_THRESHOLD_PERCENT and max_change_index >= len(samples) // 2:
        samples = samples[max_change_index:]

    return samples[len(samples) // 2]


def base_fee_surged(base_fee: int) -> int:
    """Scale the base fee by a cushion that shrinks as the base fee grows."""
    for bound, numerator, denominator in _SURGE_TIERS:
        if base_fee <= bound:
            return base_fee * numerator // denominator
    numerator, denominator = _SURGE_DEFAULT
    return base_fee * numerator // denominator


def recommend_fees(sample: FeeHistorySample) -> FeeRecommendation:
    priority_fee = estimate_priority_fee(sample.rewards)
    surged = base_fee_surged(sample.base_fee)
    if priority_fee > surged:
        fee_cap = priority_fee + surged
    else:
        fee_cap = surged
    return FeeRecommendation(priority_fee=priority_fee, fee_cap=fee_cap)


def sample_from_chain(latest_block, fee_history) -> FeeHistorySample:
    """
    Build a sample from a ``get_block("latest")`` result and an
    ``eth_feeHistory`` response queried with a single percentile.
    """
    base_fee = latest_block.get("baseFeePerGas")
    if base_fee is None:
        raise FeeMechanismUnavailable("EIP-1559 not activated")
    rewards = [int(block_rewards[0]) for block_rewards in fee_history.get("reward") or [] if block_rewards]
    return FeeHistorySample(rewards=rewards, base_fee=int(base_fee))
