"""Block extraction - raw getBlock JSON to transfer events."""

from solana_tx_tracker.extraction.balances import AccountBalanceTable
from solana_tx_tracker.extraction.extractor import TransferExtractor, extract_transfers

__all__ = ["AccountBalanceTable", "TransferExtractor", "extract_transfers"]
