"""
Command line entry point for the Crypto Chart API.

Runs the HTTP server or queries market data directly through the same
cached service the server uses.
"""

import asyncio
import functools
import json
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich import box

from crypto_chart_api import __version__
from crypto_chart_api.core.config import ConfigManager, ConfigError
from crypto_chart_api.core.logging import setup_logging as setup_structured_logging
from crypto_chart_api.data.exceptions import MarketDataError
from crypto_chart_api.data.models import Timeframe
from crypto_chart_api.data.service import MarketDataService

console = Console()
logger = logging.getLogger(__name__)

TIMEFRAME_CHOICES = [tf.value for tf in Timeframe]


def setup_logging(debug: bool = False, verbose: bool = False) -> None:
    """Set up console logging for interactive commands."""
    level = logging.DEBUG if debug else (logging.INFO if verbose else logging.WARNING)
    
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
        force=True
    )
    logging.getLogger("crypto_chart_api").setLevel(level)


def async_command(f):
    """Decorator to make Click commands async-compatible."""

    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        return asyncio.run(f(*args, **kwargs))
    return wrapper


def build_service(config: Dict[str, Any]) -> MarketDataService:
    """Create the market data service for a command."""
    return MarketDataService.from_config(config)


async def run_with_service(config: Dict[str, Any],
                           action: Callable[[MarketDataService], Awaitable[Any]]) -> Any:
    """Run ``action`` against an initialized service, converting errors."""
    service = build_service(config)
    await service.initialize()
    try:
        return await action(service)
    except MarketDataError as e:
        raise click.ClickException(f"{e.kind}: {e.message}")
    finally:
        await service.shutdown()


@click.group(invoke_without_command=True)
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.option('--config-dir', type=click.Path(exists=True, file_okay=False),
              help='Directory with config.yaml overrides')
@click.pass_context
def main(ctx: click.Context, debug: bool, verbose: bool, config_dir: Optional[str]) -> None:
    """
    Crypto Chart API - cached cryptocurrency prices, statistics and charts.
    
    Serves CoinGecko market data over HTTP with a five minute response cache,
    or queries it directly from the command line.
    """
    setup_logging(debug, verbose)
    
    config_manager = ConfigManager(config_dir=Path(config_dir) if config_dir else None)
    try:
        config_manager.initialize()
    except ConfigError as e:
        raise click.ClickException(str(e))
    
    ctx.ensure_object(dict)
    ctx.obj['config'] = config_manager.get_all()
    ctx.obj['debug'] = debug
    
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@main.command()
def version() -> None:
    """Show version information."""
    console.print(f"Crypto Chart API v{__version__}")


@main.command()
@click.option('--host', help='Bind address (default from config)')
@click.option('--port', type=int, help='Bind port (default from config)')
@click.pass_context
def serve(ctx: click.Context, host: Optional[str], port: Optional[int]) -> None:
    """Run the HTTP API server."""
    import uvicorn
    from crypto_chart_api.api import create_app
    
    config = ctx.obj['config']
    server_config = config.get('server', {})
    host = host or server_config.get('host', '127.0.0.1')
    port = port or server_config.get('port', 8080)
    
    setup_structured_logging(config)
    app = create_app(config=config)
    
    console.print(f"[green]Serving on http://{host}:{port}[/green]")
    uvicorn.run(app, host=host, port=port, log_config=None)


@main.command()
@click.argument('symbol')
@click.option('--timeframe', '-t', type=click.Choice(TIMEFRAME_CHOICES), default='1d',
              help='Lookback window (default: 1d)')
@click.option('--format', 'output_format', type=click.Choice(['table', 'json']),
              default='table', help='Output format')
@click.pass_context
@async_command
async def prices(ctx: click.Context, symbol: str, timeframe: str, output_format: str) -> None:
    """Show the price series for a coin.
    
    Examples:
        crypto-chart-api prices bitcoin
        crypto-chart-api prices ethereum --timeframe 7d --format json
    """
    series = await run_with_service(
        ctx.obj['config'], lambda service: service.get_prices(symbol, timeframe)
    )
    
    if output_format == 'json':
        click.echo(json.dumps(series.to_dict()))
        return
    
    table = Table(title=f"{series.symbol.upper()} prices ({series.timeframe.label})",
                  box=box.ROUNDED)
    table.add_column("Samples", justify="right")
    table.add_column("First", justify="right")
    table.add_column("Last", justify="right")
    table.add_column("Low", justify="right", style="red")
    table.add_column("High", justify="right", style="green")
    table.add_row(
        str(len(series)),
        f"${series[0]:,.2f}",
        f"${series[-1]:,.2f}",
        f"${min(series):,.2f}",
        f"${max(series):,.2f}"
    )
    console.print(table)


@main.command()
@click.argument('symbol')
@click.option('--format', 'output_format', type=click.Choice(['table', 'json']),
              default='table', help='Output format')
@click.pass_context
@async_command
async def stats(ctx: click.Context, symbol: str, output_format: str) -> None:
    """Show market statistics for a coin."""
    statistics = await run_with_service(
        ctx.obj['config'], lambda service: service.get_statistics(symbol)
    )
    
    if output_format == 'json':
        click.echo(json.dumps({'stats': statistics.to_dict()}))
        return
    
    change = statistics.price_change_percent
    table = Table(title=f"{symbol.upper()} statistics", box=box.ROUNDED, show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Market cap", f"${statistics.market_cap:,.0f}")
    table.add_row("24h volume", f"${statistics.volume_24h:,.0f}")
    table.add_row("Circulating supply", f"{statistics.circulating_supply:,.0f}")
    table.add_row("Total supply", f"{statistics.total_supply:,.0f}")
    table.add_row("All-time high", f"${statistics.all_time_high:,.2f}")
    table.add_row("All-time high date", statistics.all_time_high_date or "-")
    table.add_row("Change 24h / 7d", f"{change.day:+.2f}% / {change.week:+.2f}%")
    table.add_row("Change 30d / 1y", f"{change.month:+.2f}% / {change.year:+.2f}%")
    console.print(table)


@main.command()
@click.argument('symbol')
@click.option('--timeframe', '-t', type=click.Choice(TIMEFRAME_CHOICES), default='1d',
              help='Lookback window (default: 1d)')
@click.option('--output', '-o', type=click.Path(dir_okay=False), required=True,
              help='PNG file to write')
@click.pass_context
@async_command
async def chart(ctx: click.Context, symbol: str, timeframe: str, output: str) -> None:
    """Render a price chart to a PNG file."""
    image = await run_with_service(
        ctx.obj['config'], lambda service: service.get_chart(symbol, timeframe)
    )
    
    Path(output).write_bytes(image)
    console.print(f"[green]Wrote {len(image)} bytes to {output}[/green]")


@main.command()
@click.pass_context
def coins(ctx: click.Context) -> None:
    """List the default coins."""
    service = build_service(ctx.obj['config'])
    
    table = Table(title="Default coins", box=box.ROUNDED)
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Symbol", style="bold")
    for coin in service.list_default_coins():
        table.add_row(coin['id'], coin['name'], coin['symbol'])
    console.print(table)


if __name__ == '__main__':
    main()
