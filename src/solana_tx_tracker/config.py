"""Configuration loading: TOML file + environment variables."""

from __future__ import annotations

import os
from pathlib import Path

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

from solana_tx_tracker.models.config import TrackerConfig


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "SOLANA_TRACKER_",
) -> TrackerConfig:
    """Load tracker configuration from a TOML file and env vars.

    Priority (highest wins):
        1. Environment variables (SOLANA_TRACKER_CLUSTER, etc.)
        2. TOML config file
        3. Defaults from TrackerConfig
    """
    raw: dict = {}
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.exists():
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    cfg = TrackerConfig()

    # ── Tracker section ────────────────────────────────────
    tracker = raw.get("tracker", {})
    if v := tracker.get("backoff_interval"):
        cfg.backoff_interval = float(v)
    if v := tracker.get("log_level"):
        cfg.log_level = str(v)

    # ── Solana section ─────────────────────────────────────
    solana = raw.get("solana", {})
    if v := solana.get("cluster"):
        cfg.cluster = str(v)
    if v := solana.get("rpc_url"):
        cfg.rpc_url = str(v)
    if v := solana.get("ws_url"):
        cfg.ws_url = str(v)
    if v := solana.get("commitment"):
        cfg.commitment = str(v)
    if v := solana.get("request_timeout"):
        cfg.request_timeout = float(v)
    if (v := solana.get("max_supported_transaction_version")) is not None:
        cfg.max_supported_transaction_version = int(v)

    # ── Token section ──────────────────────────────────────
    token = raw.get("token", {})
    if v := token.get("mint"):
        cfg.mint = str(v)
    if v := token.get("symbol"):
        cfg.token_symbol = str(v)

    # ── Environment variable overrides (highest priority) ──
    if cluster := os.environ.get(f"{env_prefix}CLUSTER"):
        cfg.cluster = cluster
    if rpc := os.environ.get(f"{env_prefix}RPC_URL"):
        cfg.rpc_url = rpc
    if ws := os.environ.get(f"{env_prefix}WS_URL"):
        cfg.ws_url = ws
    if mint := os.environ.get(f"{env_prefix}MINT"):
        cfg.mint = mint
    if level := os.environ.get(f"{env_prefix}LOG_LEVEL"):
        cfg.log_level = level

    return cfg
