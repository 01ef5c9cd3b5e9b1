"""Click CLI: serve, quote, pricing, supply, init-db, rewards."""

from __future__ import annotations

import asyncio
import json
import logging
from decimal import Decimal

import click

from pegasus.config import get_settings


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@click.group()
@click.version_option(version="0.1.0")
def cli():
    """Pegasus - Gasless swap quotes and PGS reward gateway."""
    pass


@cli.command()
@click.option("--host", default="127.0.0.1")
@click.option("--port", default=8000)
@click.option("--log-level", default=None, help="Overrides LOG_LEVEL from .env")
def serve(host: str, port: int, log_level: str | None):
    """Run the HTTP API."""
    import uvicorn
    from pegasus.api.app import create_app

    level = log_level or get_settings().log_level
    configure_logging(level)
    click.echo(f"Starting Pegasus gateway on http://{host}:{port}")
    uvicorn.run(create_app(), host=host, port=port, log_level=level.lower())


@cli.command()
@click.argument("from_token")
@click.argument("to_token")
@click.argument("amount")
@click.option("--chain", default="ethereum", help="Chain name or ID (ethereum, arbitrum, polygon, bsc, avalanche)")
def quote(from_token: str, to_token: str, amount: str, chain: str):
    """Quote AMOUNT of FROM_TOKEN in TO_TOKEN through the price source chain."""
    import httpx
    from pegasus.api.app import build_resolver
    from pegasus.chain.registry import resolve_chain
    from pegasus.models.schema import QuoteRequest
    from pegasus.tokens.registry import TokenRegistry

    settings = get_settings()
    chain_id = resolve_chain(chain).chain_id
    request = QuoteRequest(from_token=from_token, to_token=to_token, amount=Decimal(amount), chain_id=chain_id)

    async def _quote():
        async with httpx.AsyncClient(timeout=settings.request_timeout) as client:
            resolver = build_resolver(client, settings, TokenRegistry.default())
            return await resolver.resolve_quote(request)

    result = asyncio.run(_quote())
    click.echo(f"{result.from_amount} {from_token} = {result.to_amount} {to_token}")
    click.echo(f"Rate: {result.rate}  Source: {result.source}{' (fallback)' if result.using_fallback else ''}")


@cli.command()
def pricing():
    """Show the live PGS halvening state from the reward token contract."""
    from pegasus.api.app import build_gateway
    from pegasus.storage.database import get_connection

    settings = get_settings()
    conn = get_connection(":memory:")
    gateway = build_gateway(settings, conn)
    if gateway is None:
        click.echo("Reward gateway not configured. Set REWARD_TOKEN_ADDRESS, GASLESS_SWAP_ADDRESS and OWNER_PRIVATE_KEY.")
    else:
        info = asyncio.run(gateway.pricing_info())
        click.echo(json.dumps(info, indent=2))
    conn.close()


@cli.command()
@click.option("--usd", "usd_swapped", default=None, help="Cumulative USD volume to evaluate")
@click.option("--threshold", default=None, type=int, help="Halvening threshold in USD")
def supply(usd_swapped: str | None, threshold: int | None):
    """Print the halvening curve projections offline."""
    import pandas as pd
    from pegasus.pricing.halvening import HalveningSchedule, format_wei, usd_to_wei

    settings = get_settings()
    schedule = HalveningSchedule(threshold or settings.halvening_threshold_usd, settings.base_tokens_per_dollar)

    click.echo(f"Max supply: {format_wei(schedule.max_supply)} PGS")
    click.echo(pd.DataFrame(schedule.projections()).to_string(index=False))

    if usd_swapped is not None:
        total = usd_to_wei(usd_swapped)
        point = schedule.price_at(total)
        click.echo(f"\nAt ${usd_swapped}:")
        click.echo(f"  Multiplier: {point.multiplier}x (halvening #{point.halvening_count})")
        click.echo(f"  Tokens per dollar: {format_wei(point.tokens_per_dollar)}")
        click.echo(f"  Supply: {format_wei(schedule.supply_at(total))}")
        click.echo(f"  Next halvening at: ${format_wei(schedule.next_halvening_at(total))}")


@cli.command("init-db")
def init_db():
    """Create the DuckDB reward ledger tables."""
    from pegasus.storage.database import get_connection

    settings = get_settings()
    conn = get_connection(settings.duckdb_path)
    click.echo(f"Reward database ready at {settings.duckdb_path}")
    conn.close()


@cli.command()
@click.option("--user", default=None, help="Filter by user address")
@click.option("--status", default=None, type=click.Choice(["pending", "confirmed", "failed"]))
@click.option("--limit", default=50)
def rewards(user: str | None, status: str | None, limit: int):
    """List recorded reward mints."""
    from pegasus.chain.registry import get_chain_config
    from pegasus.storage.database import count_rewards, get_connection, get_rewards

    chain_config = get_chain_config(get_settings().chain_id)
    conn = get_connection()
    df = get_rewards(conn, user_address=user, status=status, limit=limit)
    if df.empty:
        click.echo("No rewards recorded.")
    else:
        df["explorer"] = df["mint_tx_hash"].map(lambda h: chain_config.tx_url(h) if isinstance(h, str) else "")
        cols = ["swap_transaction_id", "user_address", "swap_amount_usd", "reward_amount_wei", "status", "explorer"]
        click.echo(df[cols].to_string(index=False))
    click.echo(f"\nConfirmed: {count_rewards(conn)}  Failed: {count_rewards(conn, 'failed')}")
    conn.close()


if __name__ == "__main__":
    cli()
