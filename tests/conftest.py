"""Shared fixtures for solana_tx_tracker tests."""

from __future__ import annotations

import pytest
from pytest_metadata.plugin import metadata_key

from solana_tx_tracker.daemon import TrackerDaemon
from solana_tx_tracker.extraction.extractor import TransferExtractor
from solana_tx_tracker.models.config import USDC_MINT, TrackerConfig
from solana_tx_tracker.solana.gateway import SolanaBlockGateway
from solana_tx_tracker.subscriptions.coordinator import SubscriptionCoordinator

from tests.mocks import MockPubsub, MockRpc

TEST_CLUSTER = "devnet"
TEST_BACKOFF = 0.05

EXPLORER_BASE = "https://explorer.solana.com"


def explorer_link(kind: str, id: str, label: str | None = None) -> str:
    """Build an HTML anchor to the Solana explorer for the report."""
    url = f"{EXPLORER_BASE}/{kind}/{id}?cluster={TEST_CLUSTER}"
    text = label or f"{id[:8]}...{id[-4:]}"
    return f'<a href="{url}" target="_blank">{text}</a>'


# ── Report metadata & explorer links ─────────────────────────────


def pytest_configure(config):
    """Add cluster info to the HTML report Environment table."""
    meta = config.stash.setdefault(metadata_key, {})
    meta["Cluster"] = TEST_CLUSTER
    meta["Tracked Mint"] = USDC_MINT


def pytest_html_results_summary(prefix, summary, postfix):
    """Inject a clickable explorer link for the tracked mint."""
    prefix.append(
        '<div style="margin:8px 0;padding:10px;background:#f8f9fa;border:1px solid #dee2e6;'
        'border-radius:4px;font-family:monospace;font-size:13px;">'
        "<strong>Solana Explorer Links</strong><br/>"
        f'Tracked Mint: {explorer_link("address", USDC_MINT, USDC_MINT)}'
        "</div>"
    )


def make_test_config(**overrides) -> TrackerConfig:
    """Build a TrackerConfig suitable for testing."""
    defaults = dict(
        backoff_interval=TEST_BACKOFF,
        log_level="debug",
        cluster=TEST_CLUSTER,
        request_timeout=2.0,
        mint=USDC_MINT,
        token_symbol="USDC",
    )
    defaults.update(overrides)
    return TrackerConfig(**defaults)


@pytest.fixture
def test_config():
    """Default TrackerConfig for tests."""
    return make_test_config()


@pytest.fixture
def mock_rpc():
    return MockRpc()


@pytest.fixture
def mock_pubsub():
    return MockPubsub()


@pytest.fixture
def extractor():
    return TransferExtractor(USDC_MINT)


@pytest.fixture
def coordinator():
    return SubscriptionCoordinator(backoff_interval=TEST_BACKOFF)


@pytest.fixture
def gateway(mock_rpc, mock_pubsub, extractor, coordinator):
    """SolanaBlockGateway over mocked RPC and pubsub clients."""
    return SolanaBlockGateway(mock_rpc, mock_pubsub, extractor, coordinator)


@pytest.fixture
def daemon(test_config, mock_rpc, mock_pubsub, gateway):
    """TrackerDaemon with mocked network components."""
    d = TrackerDaemon(test_config)
    d.rpc = mock_rpc
    d.pubsub = mock_pubsub
    d.gateway = gateway
    return d
