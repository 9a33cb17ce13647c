"""
Faucet operations.

Each operation estimates fees, broadcasts through the shared serializer and
classifies the result. Provider errors while estimating fees or waiting for a
receipt propagate unchanged; retrying is left to the client.
"""

from dataclasses import dataclass, replace
from typing import List, Optional

import structlog

from faucet.config import Settings, get_settings
from faucet.errors import BroadcastError, ConfigurationError, IneligibleRecipient
from faucet.outcomes import TransactionOutcome, classify_error, resolve
from faucet.rpc_client import FAUCET_ABI, TOKEN_ABI, ChainClient, TxEnvelope
from faucet.serializer import TransactionSerializer

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class TransactionRequest:
    recipient: str
    value: int = 0
    wait: bool = True


class FaucetService:
    def __init__(
        self,
        client: ChainClient,
        settings: Settings,
        serializer: Optional[TransactionSerializer] = None,
    ):
        self.client = client
        self.settings = settings
        self.serializer = serializer or TransactionSerializer(client)

    async def register(self, recipient: str, wait: bool = True) -> TransactionOutcome:
        """Send a small native transfer so the recipient account exists on-chain."""
        request = TransactionRequest(recipient=recipient, value=self.settings.register_amount, wait=wait)
        envelope = TxEnvelope(to=request.recipient, value=request.value)
        return await self.submit(envelope, request)

    async def drip(self, recipient: str, keys: List[str], wait: bool = True) -> TransactionOutcome:
        """Call the faucet contract's ``drip``; the contract rate-limits on ``keys``."""
        if not self.settings.faucet_address:
            raise ConfigurationError("faucet contract address is not configured")
        request = TransactionRequest(recipient=recipient, wait=wait)
        faucet = self.client.contract(self.settings.faucet_address, FAUCET_ABI)
        envelope = TxEnvelope(function=faucet.functions.drip(request.recipient, keys))
        return await self.submit(envelope, request)

    async def mint(self, recipient: str, wait: bool = True) -> TransactionOutcome:
        """Mint faucet tokens to a recipient that already holds native balance."""
        if not self.settings.token_address:
            raise ConfigurationError("token contract address is not configured")
        request = TransactionRequest(recipient=recipient, value=self.settings.mint_amount, wait=wait)
        if await self.client.balance(request.recipient) == 0:
            raise IneligibleRecipient("make sure the address has nonzero balance")
        token = self.client.contract(self.settings.token_address, TOKEN_ABI)
        envelope = TxEnvelope(function=token.functions.mint(request.recipient, request.value))
        return await self.submit(envelope, request)

    async def submit(self, envelope: TxEnvelope, request: TransactionRequest) -> TransactionOutcome:
        """Estimate fees, broadcast ``envelope`` under the serializer and classify the result."""
        fees = await self.client.estimate_fees(
            self.settings.fee_history_blocks,
            self.settings.fee_reward_percentile,
        )
        envelope = replace(envelope, fees=fees)

        try:
            pending = await self.serializer.submit(envelope)
        except BroadcastError as err:
            outcome = classify_error(err)
            logger.info(
                "broadcast_rejected",
                recipient=request.recipient,
                outcome=type(outcome).__name__,
                error=str(err),
            )
            return outcome

        return await resolve(pending, request.wait)


_service: Optional[FaucetService] = None


async def get_faucet_service() -> FaucetService:
    """
    Return the process-wide service, creating it on first use.

    Runs on the event loop, which owns the serializer lock.
    """
    global _service
    if _service is None:
        settings = get_settings()
        _service = FaucetService(ChainClient.from_settings(settings), settings)
    return _service
