"""CLI entry point for the solana_tx_tracker daemon."""

from __future__ import annotations

import asyncio
import logging
import sys

import click

from solana_tx_tracker.config import load_config
from solana_tx_tracker.daemon import format_transfer, run_daemon
from solana_tx_tracker.errors import BlockNotFoundError, TrackerError
from solana_tx_tracker.extraction.extractor import TransferExtractor
from solana_tx_tracker.models.config import TrackerConfig
from solana_tx_tracker.solana.gateway import SolanaBlockGateway
from solana_tx_tracker.solana.pubsub import SolanaPubsubClient
from solana_tx_tracker.solana.rpc import SolanaRpcClient


def _load(ctx: click.Context, cluster: str | None) -> TrackerConfig:
    cfg = load_config(ctx.obj["config_path"])
    if cluster:
        cfg.cluster = cluster
    return cfg


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """solana-tx-tracker - Watch a Solana cluster for token transfers of one mint."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    if verbose:
        level = logging.DEBUG
    else:
        level = getattr(logging, load_config(config_path).log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# ── Tracking ───────────────────────────────────────────


@cli.command()
@click.option("--cluster", default=None, help="Cluster name, e.g. mainnet-beta or devnet")
@click.pass_context
def track(ctx: click.Context, cluster: str | None) -> None:
    """Track transfers in every completed slot until interrupted."""
    cfg = _load(ctx, cluster)
    click.echo(f"Tracking {cfg.token_symbol} transfers on {cfg.cluster} (Ctrl+C to stop)")
    try:
        asyncio.run(run_daemon(cfg))
    except TrackerError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


@cli.command()
@click.option("--cluster", default=None, help="Cluster name, e.g. mainnet-beta or devnet")
@click.option("--block-id", type=int, default=None, help="Slot to fetch (latest if omitted)")
@click.pass_context
def block(ctx: click.Context, cluster: str | None, block_id: int | None) -> None:
    """Fetch one block and print its transfers."""
    cfg = _load(ctx, cluster)

    async def _block():
        rpc = SolanaRpcClient(
            cfg.resolved_rpc_url,
            commitment=cfg.commitment,
            timeout=cfg.request_timeout,
            max_supported_transaction_version=cfg.max_supported_transaction_version,
        )
        gateway = SolanaBlockGateway(
            rpc, SolanaPubsubClient(cfg.resolved_ws_url), TransferExtractor(cfg.mint),
        )
        try:
            slot = block_id if block_id is not None else await gateway.get_latest_slot()
            return await gateway.fetch_block(slot)
        finally:
            await rpc.close()

    try:
        result = asyncio.run(_block())
    except BlockNotFoundError as exc:
        click.echo(f"No block for slot {exc.slot}: {exc.detail}", err=True)
        sys.exit(1)
    except TrackerError as exc:
        click.echo(f"Error getting block: {exc}", err=True)
        sys.exit(1)

    click.echo("-" * 60)
    click.echo(f"Block:      {result.slot}")
    click.echo(f"Blockhash:  {result.blockhash}")
    click.echo(f"Transfers:  {len(result.transactions)}")
    for event in result.transactions:
        click.echo(format_transfer(event, cfg.token_symbol))


# ── Info ───────────────────────────────────────────────


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show resolved configuration."""
    cfg = load_config(ctx.obj["config_path"])
    click.echo(f"Cluster:    {cfg.cluster}")
    click.echo(f"RPC URL:    {cfg.resolved_rpc_url}")
    click.echo(f"WS URL:     {cfg.resolved_ws_url}")
    click.echo(f"Commitment: {cfg.commitment}")
    click.echo(f"Mint:       {cfg.mint}")
    click.echo(f"Symbol:     {cfg.token_symbol}")
    click.echo(f"Backoff:    {cfg.backoff_interval}s")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
