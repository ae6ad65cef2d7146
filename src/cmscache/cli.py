"""Click CLI for cmscache — inspect settings and manage the SQLite cache store."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from cmscache.config.schema import CacheSettings, load_settings
from cmscache.errors.exceptions import CacheConfigError

console = Console()
error_console = Console(stderr=True)


def _setup_logging(verbosity: int, default_level: str = "WARNING") -> None:
    """Configure logging based on verbosity level."""
    level = logging.getLevelName(default_level)
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=error_console, show_time=False, show_path=False)],
    )


def _load_settings_or_exit(**overrides: object) -> CacheSettings:
    try:
        return load_settings(**overrides)
    except CacheConfigError as e:
        error_console.print(f"[red]Invalid configuration:[/red] {e}")
        sys.exit(1)


@click.group()
@click.version_option(package_name="cmscache")
def cli() -> None:
    """cmscache — policy-driven cache registry for content management."""


@cli.command("config")
@click.option("--backend", type=str, default=None, help="Override the cache backend.")
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v info, -vv debug).")
def show_config(backend: str | None, verbose: int) -> None:
    """Show the resolved cache settings."""
    settings = _load_settings_or_exit(backend=backend)
    _setup_logging(verbose, settings.log_level)

    table = Table(title="Cache Settings", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    for field, value in settings.model_dump().items():
        table.add_row(field, str(value))

    console.print(table)


@cli.group()
def cache() -> None:
    """SQLite cache store commands."""


@cache.command("stats")
@click.option("--db", "db_path", type=click.Path(), default=None, help="Cache database path.")
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v info, -vv debug).")
def cache_stats(db_path: str | None, verbose: int) -> None:
    """Show per-region statistics of the cache store."""
    from cmscache.cache.disk import list_region_stats

    settings = _load_settings_or_exit(db_path=db_path)
    _setup_logging(verbose, settings.log_level)

    regions = list_region_stats(Path(settings.db_path))
    if not regions:
        console.print(f"[yellow]No cached regions in {settings.db_path}[/yellow]")
        return

    table = Table(title="Cache Regions", show_header=True)
    table.add_column("Region", style="cyan")
    table.add_column("Entries")
    table.add_column("Size (MB)")

    for stats in regions:
        table.add_row(stats.name, str(stats.entries), f"{stats.size_mb:.3f}")

    table.add_row("[bold]Total[/bold]", str(sum(s.entries for s in regions)), "")
    console.print(table)


@cache.command("clear")
@click.option("--db", "db_path", type=click.Path(), default=None, help="Cache database path.")
@click.option("--region", type=str, default=None, help="Only clear this region.")
@click.confirmation_option(prompt="Are you sure you want to clear the cache?")
def cache_clear(db_path: str | None, region: str | None) -> None:
    """Clear cached data, for all regions or one."""
    from cmscache.cache.disk import purge

    settings = _load_settings_or_exit(db_path=db_path)
    deleted = purge(Path(settings.db_path), region=region)
    scope = f"region '{region}'" if region else "all regions"
    console.print(f"[green]Cleared {deleted} entries from {scope}.[/green]")


def main() -> None:
    """Entry point for the CLI."""
    cli()
