"""Data models for the solana_tx_tracker daemon."""

from solana_tx_tracker.models.config import TrackerConfig, USDC_MINT
from solana_tx_tracker.models.events import SlotUpdate, SlotUpdateKind
from solana_tx_tracker.models.transfers import Account, Block, Program, TransferEvent

__all__ = [
    "TrackerConfig", "USDC_MINT",
    "SlotUpdate", "SlotUpdateKind",
    "Account", "Block", "Program", "TransferEvent",
]
