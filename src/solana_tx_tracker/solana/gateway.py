"""Solana block gateway - fetch-and-extract, one-shot or driven by slot updates."""

from __future__ import annotations

import asyncio
import logging

from solana_tx_tracker.errors import (
    BlockFetchError,
    BlockNotFoundError,
    RpcError,
    RpcTransportError,
)
from solana_tx_tracker.extraction.extractor import TransferExtractor
from solana_tx_tracker.interfaces.rpc import BlockFetcher, SlotUpdateSource
from solana_tx_tracker.models.events import SlotUpdate
from solana_tx_tracker.models.transfers import Block
from solana_tx_tracker.subscriptions.coordinator import (
    OpenedStream,
    Subscription,
    SubscriptionCoordinator,
    SubscriptionHandle,
)

log = logging.getLogger(__name__)

SLOT_SUBSCRIPTION = "slot"


class SolanaBlockGateway:
    """Turns remote Solana blocks into Block objects carrying tracked transfers.

    fetch_block() is the one-shot path. subscribe() opens a slotsUpdates
    stream through the coordinator and, for every completed slot, fetches
    the block and puts it on the caller's queue. Fetches for different slots
    run concurrently, so blocks can arrive out of slot order.
    """

    def __init__(
        self,
        rpc: BlockFetcher,
        pubsub: SlotUpdateSource,
        extractor: TransferExtractor,
        coordinator: SubscriptionCoordinator | None = None,
    ) -> None:
        self._rpc = rpc
        self._pubsub = pubsub
        self._extractor = extractor
        self._coordinator = coordinator or SubscriptionCoordinator()

    async def fetch_block(self, slot: int) -> Block:
        """Fetch the finalized block at `slot` and extract its transfers."""
        try:
            raw = await self._rpc.get_block(slot)
        except BlockNotFoundError:
            raise
        except (RpcError, RpcTransportError) as exc:
            raise BlockFetchError(slot, str(exc)) from exc

        transfers = self._extractor.extract(raw)
        block = Block(
            slot=slot,
            blockhash=str(raw.get("blockhash", "")),
            transactions=tuple(transfers),
        )
        log.debug("Block %d: %d transfer(s)", slot, len(block.transactions))
        return block

    async def get_latest_slot(self) -> int:
        return await self._rpc.get_slot()

    async def subscribe(self, sink: asyncio.Queue[Block]) -> SubscriptionHandle:
        """Stream blocks onto `sink`; returns once the slot stream is live.

        Raises SubscribeError if the stream cannot be opened. The handle is
        already shut down in that case.
        """

        async def _open() -> OpenedStream:
            events, teardown = await self._pubsub.slots_updates_subscribe()
            return OpenedStream(events=events, teardown=teardown)

        async def _on_slot_update(update: SlotUpdate) -> None:
            if not update.is_completed:
                return
            block = await self.fetch_block(update.slot)
            sink.put_nowait(block)

        handle = self._coordinator.start([
            Subscription(name=SLOT_SUBSCRIPTION, open=_open, handle=_on_slot_update),
        ])
        try:
            await self._coordinator.wait_ready(handle)
        except BaseException:
            await self._coordinator.shutdown(handle)
            raise
        return handle

    async def unsubscribe(self, handle: SubscriptionHandle) -> None:
        await self._coordinator.shutdown(handle)
