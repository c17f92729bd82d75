"""BlockGateway protocol - fetch-and-extract, one-shot or streaming."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Protocol

from solana_tx_tracker.models.transfers import Block

if TYPE_CHECKING:
    from solana_tx_tracker.subscriptions.coordinator import SubscriptionHandle


class BlockGateway(Protocol):
    """Turns remote blocks into Block domain objects."""

    async def fetch_block(self, slot: int) -> Block:
        """Fetch one block and extract its transfers. Raises BlockFetchError."""
        ...

    async def get_latest_slot(self) -> int:
        """Latest slot known to the node."""
        ...

    async def subscribe(self, sink: asyncio.Queue[Block]) -> SubscriptionHandle:
        """Stream a Block onto `sink` for every completed slot.

        Returns once the underlying subscription is live.
        """
        ...

    async def unsubscribe(self, handle: SubscriptionHandle) -> None:
        """Tear down the subscription and drain in-flight fetches."""
        ...
