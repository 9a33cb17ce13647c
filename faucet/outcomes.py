"""
Classification of broadcast attempts into semantic outcomes.

Every submission ends in exactly one of Success, Pending, RateLimited,
ResourceExhausted or Failure. Rate limiting and an empty faucet are reported
by the faucet contract as custom errors, recognised here by their selector.
"""

from dataclasses import dataclass
from typing import Optional, Union

import structlog
from eth_utils import keccak

from faucet.errors import BroadcastError, InclusionError

logger = structlog.get_logger(__name__)

SELECTOR_SIZE = 4

TRY_LATER_SELECTOR: bytes = keccak(text="TryLater()")[:SELECTOR_SIZE]
FAUCET_EMPTY_SELECTOR: bytes = keccak(text="FaucetEmpty()")[:SELECTOR_SIZE]


@dataclass(frozen=True)
class Success:
    tx_hash: str


@dataclass(frozen=True)
class Pending:
    tx_hash: str


@dataclass(frozen=True)
class RateLimited:
    pass


@dataclass(frozen=True)
class ResourceExhausted:
    pass


@dataclass(frozen=True)
class Failure:
    message: str


TransactionOutcome = Union[Success, Pending, RateLimited, ResourceExhausted, Failure]


def classify_revert(revert_data: Optional[bytes], message: str) -> TransactionOutcome:
    if revert_data is None or len(revert_data) < SELECTOR_SIZE:
        return Failure(message=message)
    selector = bytes(revert_data[:SELECTOR_SIZE])
    if selector == TRY_LATER_SELECTOR:
        return RateLimited()
    if selector == FAUCET_EMPTY_SELECTOR:
        return ResourceExhausted()
    return Failure(message=message)


def classify_error(err: BroadcastError) -> TransactionOutcome:
    """Map a failed broadcast to RateLimited, ResourceExhausted or Failure."""
    return classify_revert(err.revert_data, str(err))


async def resolve(pending, wait: bool = True) -> TransactionOutcome:
    """
    Turn a broadcast transaction into Success or Pending.

    With ``wait`` the inclusion receipt is awaited first. Errors while
    awaiting are not absorbed: they propagate to the caller.
    """
    if not wait:
        return Pending(tx_hash=pending.tx_hash)

    receipt = await pending.wait()
    if receipt is None:
        raise InclusionError("transaction did not return a receipt")
    logger.debug("transaction_included", tx_hash=pending.tx_hash, block_number=receipt.get("blockNumber"))
    return Success(tx_hash=pending.tx_hash)
