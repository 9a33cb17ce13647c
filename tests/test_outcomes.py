"""Tests for mapping broadcast results to semantic outcomes."""

import asyncio
from unittest.mock import AsyncMock

import pytest
from eth_utils import keccak

from faucet.errors import BroadcastError, InclusionError
from faucet.outcomes import (
    FAUCET_EMPTY_SELECTOR,
    TRY_LATER_SELECTOR,
    Failure,
    Pending,
    RateLimited,
    ResourceExhausted,
    Success,
    classify_error,
    classify_revert,
    resolve,
)


class FakePending:
    def __init__(self, tx_hash="0x" + "ab" * 32, receipt=None, error=None):
        self.tx_hash = tx_hash
        self.wait = AsyncMock(return_value=receipt, side_effect=error)


def test_selectors_are_keccak_prefixes():
    assert TRY_LATER_SELECTOR == keccak(text="TryLater()")[:4]
    assert FAUCET_EMPTY_SELECTOR == keccak(text="FaucetEmpty()")[:4]
    assert TRY_LATER_SELECTOR != FAUCET_EMPTY_SELECTOR


def test_short_revert_payload_is_failure():
    err = BroadcastError("execution reverted", revert_data=b"\x01\x02")

    assert classify_error(err) == Failure(message="execution reverted")


def test_try_later_selector_is_rate_limited():
    err = BroadcastError("execution reverted", revert_data=TRY_LATER_SELECTOR)

    assert classify_error(err) == RateLimited()


def test_faucet_empty_selector_with_trailing_data_is_exhausted():
    err = BroadcastError("execution reverted", revert_data=FAUCET_EMPTY_SELECTOR + b"\x00" * 32)

    assert classify_error(err) == ResourceExhausted()


def test_unknown_selector_keeps_original_message():
    err = BroadcastError("execution reverted: custom error 0xdeadbeef", revert_data=bytes.fromhex("deadbeef00"))

    assert classify_error(err) == Failure(message="execution reverted: custom error 0xdeadbeef")


def test_error_without_revert_payload_is_failure():
    err = BroadcastError("connection refused")

    assert classify_error(err) == Failure(message="connection refused")


def test_classify_revert_accepts_bytearray():
    assert classify_revert(bytearray(TRY_LATER_SELECTOR), "reverted") == RateLimited()


@pytest.mark.asyncio
async def test_resolve_without_wait_returns_pending_immediately():
    pending = FakePending()

    outcome = await resolve(pending, wait=False)

    assert outcome == Pending(tx_hash=pending.tx_hash)
    pending.wait.assert_not_called()


@pytest.mark.asyncio
async def test_resolve_with_wait_returns_success_after_receipt():
    pending = FakePending(receipt={"status": 1, "blockNumber": 12})

    outcome = await resolve(pending)

    assert outcome == Success(tx_hash=pending.tx_hash)
    pending.wait.assert_awaited_once()


@pytest.mark.asyncio
async def test_resolve_missing_receipt_raises():
    pending = FakePending(receipt=None)

    with pytest.raises(InclusionError):
        await resolve(pending, wait=True)


@pytest.mark.asyncio
async def test_resolve_propagates_wait_errors():
    pending = FakePending(error=asyncio.TimeoutError())

    with pytest.raises(asyncio.TimeoutError):
        await resolve(pending, wait=True)
