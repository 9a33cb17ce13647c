"""Tests for priority fee and fee cap estimation."""

import pytest

from faucet.errors import FeeMechanismUnavailable
from faucet.fees import (
    GWEI,
    FeeHistorySample,
    base_fee_surged,
    estimate_priority_fee,
    recommend_fees,
    sample_from_chain,
)


@pytest.mark.parametrize(
    "rewards, expected",
    [
        ([5, 5, 5], 5),
        ([], 0),
        ([0, 0, 0], 0),
        ([7], 7),
        ([0, 7, 0], 7),
        ([4, 1, 3, 2], 3),  # even length takes the upper middle
    ],
)
def test_priority_fee_median(rewards, expected):
    assert estimate_priority_fee(rewards) == expected


def test_priority_fee_ignores_stale_cluster_after_late_spike():
    # Jump of 614% between 14 and 100 sits at index 4 of 8.
    rewards = [120, 10, 110, 11, 12, 100, 13, 14]

    assert estimate_priority_fee(rewards) == 110


def test_priority_fee_keeps_full_set_when_spike_in_lower_half():
    rewards = [10, 100, 110, 120, 130]

    assert estimate_priority_fee(rewards) == 110


def test_priority_fee_keeps_full_set_below_threshold():
    # Largest change is 150%, under the 200% threshold.
    rewards = [10, 11, 12, 30]

    assert estimate_priority_fee(rewards) == 12


def test_priority_fee_spike_exactly_at_threshold():
    rewards = [10, 10, 10, 30]

    assert estimate_priority_fee(rewards) == 30


def test_priority_fee_uses_first_index_of_max_change():
    # Two 900% jumps; the first one (index 1) is in the lower half.
    rewards = [1, 1, 10, 10, 100]

    assert estimate_priority_fee(rewards) == 10


@pytest.mark.parametrize(
    "base_fee, surged",
    [
        (30 * GWEI, 60 * GWEI),
        (40 * GWEI, 80 * GWEI),
        (90 * GWEI, 144 * GWEI),
        (100 * GWEI, 160 * GWEI),
        (150 * GWEI, 210 * GWEI),
        (300 * GWEI, 360 * GWEI),
        (0, 0),
    ],
)
def test_base_fee_surge_tiers(base_fee, surged):
    assert base_fee_surged(base_fee) == surged


def test_surge_uses_integer_arithmetic():
    assert base_fee_surged(100 * GWEI + 7) == (100 * GWEI + 7) * 14 // 10
    assert isinstance(base_fee_surged(123_456_789_123), int)


def test_fee_cap_is_surged_base_fee_for_small_tip():
    fees = recommend_fees(FeeHistorySample(rewards=[2 * GWEI], base_fee=30 * GWEI))

    assert fees.priority_fee == 2 * GWEI
    assert fees.fee_cap == 60 * GWEI


def test_fee_cap_adds_tip_when_tip_exceeds_surged_base_fee():
    fees = recommend_fees(FeeHistorySample(rewards=[50], base_fee=10))

    assert fees.priority_fee == 50
    assert fees.fee_cap == 50 + 20


def test_sample_from_chain_reads_first_percentile_of_each_block():
    sample = sample_from_chain(
        {"baseFeePerGas": 1000},
        {"reward": [[3], [0], [9]], "baseFeePerGas": [1, 2, 3]},
    )

    assert sample.base_fee == 1000
    assert list(sample.rewards) == [3, 0, 9]


def test_sample_from_chain_without_base_fee():
    with pytest.raises(FeeMechanismUnavailable):
        sample_from_chain({"number": 1}, {"reward": [[1]]})
