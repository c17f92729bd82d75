"""Configuration models for the tracker."""

from __future__ import annotations

from dataclasses import dataclass

USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"


@dataclass
class TrackerConfig:
    """Complete tracker configuration."""

    # Tracker
    backoff_interval: float = 5.0  # seconds a stream sleeps after a failed fetch
    log_level: str = "info"

    # Solana
    cluster: str = "mainnet-beta"
    rpc_url: str = ""  # derived from cluster when empty
    ws_url: str = ""  # derived from cluster when empty
    commitment: str = "finalized"
    request_timeout: float = 30.0  # seconds per RPC request
    max_supported_transaction_version: int = 0

    # Token
    mint: str = USDC_MINT
    token_symbol: str = "USDC"

    @property
    def resolved_rpc_url(self) -> str:
        return self.rpc_url or f"https://api.{self.cluster}.solana.com"

    @property
    def resolved_ws_url(self) -> str:
        return self.ws_url or f"wss://api.{self.cluster}.solana.com/"
