"""
Web3-backed chain client.

Wraps the node connection and the faucet signing key, and exposes the fee
sample, broadcast and receipt-wait capabilities used by the faucet core.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import aiohttp
import structlog
from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import to_bytes
from web3 import AsyncWeb3
from web3.exceptions import ContractLogicError, Web3Exception

from faucet.errors import BroadcastError, ConfigurationError
from faucet.fees import (
    FEE_HISTORY_BLOCKS,
    REWARD_PERCENTILE,
    FeeHistorySample,
    FeeRecommendation,
    recommend_fees,
    sample_from_chain,
)

logger = structlog.get_logger(__name__)

# Failures of the node or the transport, as opposed to bugs in this process.
_PROVIDER_ERRORS = (Web3Exception, aiohttp.ClientError, asyncio.TimeoutError, OSError, ValueError)

FAUCET_ABI = [
    {
        "name": "drip",
        "type": "function",
        "inputs": [
            {"name": "recipient", "type": "address", "internalType": "address payable"},
            {"name": "keys", "type": "string[]", "internalType": "string[]"},
        ],
        "outputs": [],
        "stateMutability": "nonpayable",
    }
]

TOKEN_ABI = [
    {
        "name": "mint",
        "type": "function",
        "inputs": [
            {"name": "to", "type": "address", "internalType": "address"},
            {"name": "amount", "type": "uint256", "internalType": "uint256"},
        ],
        "outputs": [],
        "stateMutability": "nonpayable",
    }
]


@dataclass(frozen=True)
class TxEnvelope:
    """
    An unsigned transaction waiting for a nonce.

    Either a plain transfer (``to`` and ``value``) or a bound contract
    function, whose gas estimation may revert.
    """

    to: Optional[str] = None
    value: int = 0
    function: Any = None
    fees: Optional[FeeRecommendation] = None


@dataclass
class PendingTransaction:
    """Handle on a broadcast transaction whose inclusion has not been confirmed."""

    tx_hash: str
    client: "ChainClient" = field(repr=False)

    async def wait(self):
        return await self.client.await_inclusion(self.tx_hash)


def revert_bytes(data) -> Optional[bytes]:
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    if isinstance(data, str) and data.startswith("0x"):
        try:
            return to_bytes(hexstr=data)
        except ValueError:
            return None
    return None


class ChainClient:
    """
    Signing connection to an EVM node.

    One instance is shared by every request; only ``broadcast`` must be
    called under the transaction serializer.
    """

    def __init__(self, w3: AsyncWeb3, account: LocalAccount, receipt_timeout: float = 120.0):
        self.w3 = w3
        self.account = account
        self.receipt_timeout = receipt_timeout
        self._chain_id: Optional[int] = None

    @classmethod
    def from_settings(cls, settings) -> "ChainClient":
        if not settings.private_key:
            raise ConfigurationError("a private key is required to sign faucet transactions")
        try:
            account = Account.from_key(settings.private_key)
        except (ValueError, TypeError) as e:
            raise ConfigurationError(f"invalid private key: {e}") from e
        w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(settings.rpc_url))
        logger.info("chain_client_created", rpc_url=settings.rpc_url, address=account.address)
        return cls(w3, account, receipt_timeout=settings.receipt_timeout_seconds)

    @property
    def address(self) -> str:
        return self.account.address

    async def chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = await self.w3.eth.chain_id
        return self._chain_id

    async def pending_nonce(self) -> int:
        return await self.w3.eth.get_transaction_count(self.address, "pending")

    async def balance(self, address: str) -> int:
        return await self.w3.eth.get_balance(address)

    def contract(self, address: str, abi):
        return self.w3.eth.contract(address=AsyncWeb3.to_checksum_address(address), abi=abi)

    async def fee_sample(
        self,
        blocks: int = FEE_HISTORY_BLOCKS,
        percentile: float = REWARD_PERCENTILE,
    ) -> FeeHistorySample:
        latest = await self.w3.eth.get_block("latest")
        history = await self.w3.eth.fee_history(blocks, "latest", [percentile])
        return sample_from_chain(latest, history)

    async def estimate_fees(
        self,
        blocks: int = FEE_HISTORY_BLOCKS,
        percentile: float = REWARD_PERCENTILE,
    ) -> FeeRecommendation:
        fees = recommend_fees(await self.fee_sample(blocks, percentile))
        logger.debug("fees_estimated", priority_fee=fees.priority_fee, fee_cap=fees.fee_cap)
        return fees

    async def broadcast(self, envelope: TxEnvelope, nonce: int) -> PendingTransaction:
        """
        Build, sign and send ``envelope`` with the given nonce.

        Raises:
            BroadcastError: wrapping node, transport or contract failures;
                carries the revert data when a contract call reverted.
            Other exceptions (programming errors) propagate unchanged.
        """
        try:
            tx_hash = await self.w3.eth.send_raw_transaction(
                self.account.sign_transaction(await self._build(envelope, nonce)).raw_transaction
            )
        except ContractLogicError as e:
            raise BroadcastError(str(e), revert_data=revert_bytes(e.data)) from e
        except _PROVIDER_ERRORS as e:
            raise BroadcastError(str(e)) from e

        pending = PendingTransaction(tx_hash=AsyncWeb3.to_hex(tx_hash), client=self)
        logger.info("transaction_broadcast", tx_hash=pending.tx_hash, nonce=nonce)
        return pending

    async def await_inclusion(self, tx_hash: str):
        return await self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)

    async def _build(self, envelope: TxEnvelope, nonce: int) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "from": self.address,
            "nonce": nonce,
            "chainId": await self.chain_id(),
        }
        if envelope.fees is not None:
            params["maxPriorityFeePerGas"] = envelope.fees.priority_fee
            params["maxFeePerGas"] = envelope.fees.fee_cap

        if envelope.function is not None:
            return await envelope.function.build_transaction(params)

        params["to"] = envelope.to
        params["value"] = envelope.value
        params["gas"] = await self.w3.eth.estimate_gas(params)
        return params
