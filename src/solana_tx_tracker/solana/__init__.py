"""Solana integration components."""

from solana_tx_tracker.solana.gateway import SolanaBlockGateway
from solana_tx_tracker.solana.pubsub import SolanaPubsubClient
from solana_tx_tracker.solana.rpc import SolanaRpcClient

__all__ = ["SolanaBlockGateway", "SolanaPubsubClient", "SolanaRpcClient"]
