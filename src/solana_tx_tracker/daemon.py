"""Main daemon loop - wires all components together."""

from __future__ import annotations

import asyncio
import logging
import signal

from solana_tx_tracker.extraction.extractor import TransferExtractor
from solana_tx_tracker.interfaces.gateway import BlockGateway
from solana_tx_tracker.models.config import TrackerConfig
from solana_tx_tracker.models.transfers import Block, TransferEvent
from solana_tx_tracker.solana.gateway import SolanaBlockGateway
from solana_tx_tracker.solana.pubsub import SolanaPubsubClient
from solana_tx_tracker.solana.rpc import SolanaRpcClient
from solana_tx_tracker.subscriptions.coordinator import SubscriptionCoordinator

log = logging.getLogger(__name__)


def format_transfer(event: TransferEvent, symbol: str) -> str:
    return (
        f"TX {event.signature} detected: {event.source.address} "
        f"sent {event.amount} {symbol} to {event.destination.address}"
    )


class TrackerDaemon:
    """Streams completed slots and reports tracked-mint transfers.

    Subscribes through the block gateway, consumes blocks from a queue
    until stop() is called, then unsubscribes and drains in-flight fetches.
    """

    def __init__(self, cfg: TrackerConfig) -> None:
        self._cfg = cfg
        self._running = False
        self._queue: asyncio.Queue[Block | None] = asyncio.Queue()

        # Core components
        self.rpc = SolanaRpcClient(
            cfg.resolved_rpc_url,
            commitment=cfg.commitment,
            timeout=cfg.request_timeout,
            max_supported_transaction_version=cfg.max_supported_transaction_version,
        )
        self.pubsub = SolanaPubsubClient(cfg.resolved_ws_url, request_timeout=cfg.request_timeout)
        self.extractor = TransferExtractor(cfg.mint)
        self.coordinator = SubscriptionCoordinator(backoff_interval=cfg.backoff_interval)
        self.gateway: BlockGateway = SolanaBlockGateway(
            self.rpc, self.pubsub, self.extractor, self.coordinator,
        )

        self.blocks_seen = 0
        self.transfers_seen = 0

    async def start(self) -> None:
        """Connect, subscribe, and run the main loop until stopped."""
        log.info("Starting solana_tx_tracker daemon")
        log.info("  Cluster: %s", self._cfg.cluster)
        log.info("  RPC: %s", self._cfg.resolved_rpc_url)
        log.info("  WS: %s", self._cfg.resolved_ws_url)
        log.info("  Mint: %s (%s)", self._cfg.mint, self._cfg.token_symbol)

        self._running = True
        try:
            await self.pubsub.connect()
            handle = await self.gateway.subscribe(self._queue)
            try:
                await self._main_loop()
            finally:
                await self.gateway.unsubscribe(handle)
                self._drain_queue()
        finally:
            self._running = False
            await self.pubsub.close()
            await self.rpc.close()
            log.info("Daemon shut down cleanly")

    async def stop(self) -> None:
        """Signal the daemon to stop gracefully."""
        log.info("Stop requested")
        self._running = False
        self._queue.put_nowait(None)

    async def _main_loop(self) -> None:
        while self._running:
            block = await self._queue.get()
            if block is None:
                break
            self._handle_block(block)

    def _drain_queue(self) -> None:
        """Report blocks whose fetch finished during shutdown."""
        while not self._queue.empty():
            block = self._queue.get_nowait()
            if block is not None:
                self._handle_block(block)

    def _handle_block(self, block: Block) -> None:
        self.blocks_seen += 1
        self.transfers_seen += len(block.transactions)
        if not block.transactions:
            log.debug("Block %d: no %s transfers", block.slot, self._cfg.token_symbol)
            return
        log.info("Block %d (%s): %d transfer(s)", block.slot, block.blockhash, len(block.transactions))
        for event in block.transactions:
            log.info("%s", format_transfer(event, self._cfg.token_symbol))


async def run_daemon(cfg: TrackerConfig) -> None:
    """Entry point for running the daemon."""
    daemon = TrackerDaemon(cfg)

    loop = asyncio.get_running_loop()

    def _signal_handler():
        asyncio.ensure_future(daemon.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    await daemon.start()
