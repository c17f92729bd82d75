"""Remote node protocols - block fetch and slot-update stream."""

from __future__ import annotations

from typing import Any, AsyncIterator, Protocol

from solana_tx_tracker.models.events import SlotUpdate


class Teardown(Protocol):
    """Unsubscribes the one stream it was created for."""

    async def close(self) -> None:
        ...


class BlockFetcher(Protocol):
    """One-shot JSON-RPC reads against a Solana node."""

    async def get_block(self, slot: int) -> dict[str, Any]:
        """Return the raw getBlock result.

        Raises BlockNotFoundError when the node has no block for the slot,
        RpcError / RpcTransportError on other failures.
        """
        ...

    async def get_slot(self) -> int:
        """Latest slot at the configured commitment."""
        ...


class SlotUpdateSource(Protocol):
    """Streaming slot notifications from a Solana node."""

    async def slots_updates_subscribe(self) -> tuple[AsyncIterator[SlotUpdate], Teardown]:
        """Open a slotsUpdates subscription.

        The iterator ends once the returned Teardown has been closed.
        """
        ...
