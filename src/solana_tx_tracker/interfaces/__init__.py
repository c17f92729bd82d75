"""Protocol interfaces for all solana_tx_tracker components."""

from solana_tx_tracker.interfaces.gateway import BlockGateway
from solana_tx_tracker.interfaces.rpc import BlockFetcher, SlotUpdateSource, Teardown

__all__ = [
    "BlockGateway",
    "BlockFetcher", "SlotUpdateSource", "Teardown",
]
