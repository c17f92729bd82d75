"""CLI commands via click's test runner."""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from solana_tx_tracker import cli as cli_module
from solana_tx_tracker.errors import RpcTransportError

from tests.factories import DEST_OWNER, SOURCE_OWNER, make_raw_block, make_usdc_transfer
from tests.mocks import MockRpc


@pytest.fixture
def runner(monkeypatch):
    for name in ("CLUSTER", "RPC_URL", "WS_URL", "MINT", "LOG_LEVEL"):
        monkeypatch.delenv(f"SOLANA_TRACKER_{name}", raising=False)
    return CliRunner()


@pytest.fixture
def cli_rpc(monkeypatch):
    """Replace the CLI's RPC client with a MockRpc."""
    rpc = MockRpc(latest_slot=777)
    monkeypatch.setattr(cli_module, "SolanaRpcClient", lambda *args, **kwargs: rpc)
    return rpc


def test_status_shows_resolved_config(runner, tmp_path):
    path = tmp_path / "tracker.toml"
    path.write_text('[solana]\ncluster = "devnet"\n')

    result = runner.invoke(cli_module.cli, ["-c", str(path), "status"])

    assert result.exit_code == 0
    assert "Cluster:    devnet" in result.output
    assert "https://api.devnet.solana.com" in result.output
    assert "wss://api.devnet.solana.com/" in result.output


def test_block_prints_transfers(runner, cli_rpc):
    cli_rpc.add_block(123, make_raw_block(make_usdc_transfer(signature="SigOne"), blockhash="HashX"))

    result = runner.invoke(cli_module.cli, ["block", "--cluster", "devnet", "--block-id", "123"])

    assert result.exit_code == 0
    assert "Block:      123" in result.output
    assert "Blockhash:  HashX" in result.output
    assert f"TX SigOne detected: {SOURCE_OWNER} sent 50.0 USDC to {DEST_OWNER}" in result.output


def test_block_defaults_to_latest_slot(runner, cli_rpc):
    cli_rpc.add_block(777, make_raw_block())

    result = runner.invoke(cli_module.cli, ["block"])

    assert result.exit_code == 0
    assert cli_rpc.get_block_calls == [777]
    assert "Transfers:  0" in result.output


def test_block_not_found_exits_nonzero(runner, cli_rpc):
    result = runner.invoke(cli_module.cli, ["block", "--block-id", "5"])

    assert result.exit_code == 1
    assert "No block for slot 5" in result.output


def test_block_rpc_failure_exits_nonzero(runner, cli_rpc):
    cli_rpc.fail(9, RpcTransportError("getBlock: HTTP 503"))

    result = runner.invoke(cli_module.cli, ["block", "--block-id", "9"])

    assert result.exit_code == 1
    assert "Error getting block" in result.output
