"""
Serialized transaction submission.

A single signing key must never hand out the same nonce twice. The
serializer admits one task at a time into the section that picks a nonce and
broadcasts; waiting for inclusion happens outside it so slow blocks do not
hold up other senders.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

import structlog

from faucet.errors import BroadcastError, SerializerStateError

logger = structlog.get_logger(__name__)


class TransactionSerializer:
    """
    Guards the broadcast step of a shared chain client.

    The client must provide ``pending_nonce()`` and
    ``broadcast(envelope, nonce)``. Nonces are read from the node once and
    then counted locally; a failed broadcast drops the local count so the
    next holder re-reads it.
    """

    def __init__(self, client):
        self.client = client
        self._lock = asyncio.Lock()
        self._in_flight = False
        self._nonce: Optional[int] = None

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def acquire(self) -> None:
        await self._lock.acquire()
        if self._in_flight:
            self._lock.release()
            logger.error("serializer_state_corrupted", reason="acquired while in flight")
            raise SerializerStateError("broadcast section acquired while already in flight")
        self._in_flight = True

    def release(self) -> None:
        if not self._in_flight or not self._lock.locked():
            logger.error("serializer_state_corrupted", reason="release without acquire")
            raise SerializerStateError("broadcast section released without being held")
        self._in_flight = False
        self._lock.release()

    @asynccontextmanager
    async def exclusive(self):
        """Hold the broadcast section for the duration of the block."""
        await self.acquire()
        try:
            yield
        finally:
            self.release()

    async def submit(self, envelope):
        """
        Broadcast ``envelope`` under exclusion and return its pending handle.

        Raises:
            BroadcastError: if building or sending failed.
            SerializerStateError: if the exclusion state is corrupted.
        """
        async with self.exclusive():
            if self._nonce is None:
                self._nonce = await self.client.pending_nonce()
            nonce = self._nonce
            try:
                pending = await self.client.broadcast(envelope, nonce)
            except (BroadcastError, asyncio.CancelledError):
                self._nonce = None
                raise
            self._nonce = nonce + 1
            return pending
