"""
identiscan command-line interface.

Usage:
    identiscan scan octocat
    identiscan scan octocat --adapter github --adapter keybase --output results.json
    identiscan adapters
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import click
from pydantic import ValidationError
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

from . import __version__
from .core import AggregatorConfig, ScanEngine, ScanEvent, ScanJob, ScanStatus, create_engine
from .exceptions import ConfigError
from .log_config import configure_logging
from .utils import is_valid_query


console = Console()

LEVEL_STYLES = {"high": "bold green", "medium": "yellow", "low": "dim"}


def build_engine(config: AggregatorConfig) -> ScanEngine:
    return create_engine(config)


def load_config(config_path: Optional[str], **overrides) -> AggregatorConfig:
    """Build the configuration from an optional YAML file plus CLI overrides."""
    overrides = {k: v for k, v in overrides.items() if v is not None}
    try:
        if config_path:
            return AggregatorConfig.from_yaml(config_path, **overrides)
        return AggregatorConfig(**overrides)
    except (ConfigError, ValidationError) as e:
        raise click.ClickException(str(e))


def _validate_query(ctx, param, value: str) -> str:
    if not is_valid_query(value):
        raise click.BadParameter("only letters, digits and _ . - @ are allowed")
    return value


@click.group()
@click.version_option(version=__version__, prog_name="identiscan")
@click.option('--log-level', default='WARNING', help='Log level (default: WARNING)')
@click.option('--json-logs', is_flag=True, help='Emit JSON log lines')
def cli(log_level: str, json_logs: bool):
    """
    identiscan - Federated identity reconnaissance

    Looks a username, email, IP address or domain up across many sources.
    """
    configure_logging(level=log_level, json_output=json_logs)


@cli.command()
@click.argument('query', callback=_validate_query)
@click.option('--adapter', '-a', 'adapters', multiple=True, help='Only query this adapter (repeatable)')
@click.option('--platform', 'platforms', multiple=True, help='Direct probe: only this platform (repeatable)')
@click.option('--category', 'categories', multiple=True, help='Direct probe: only this category (repeatable)')
@click.option('--timeout', type=float, help='Per-adapter timeout in seconds (default: 30)')
@click.option('--total-timeout', type=float, help='Whole-scan timeout in seconds (default: 120)')
@click.option('--no-cache', is_flag=True, help='Disable the result cache')
@click.option('--config', 'config_path', type=click.Path(exists=True, dir_okay=False), help='YAML config file')
@click.option('--limit', default=50, type=int, help='Maximum findings to display (default: 50)')
@click.option('--output', type=click.Path(), help='Save the scan to a JSON file')
def scan(
    query: str,
    adapters: tuple,
    platforms: tuple,
    categories: tuple,
    timeout: Optional[float],
    total_timeout: Optional[float],
    no_cache: bool,
    config_path: Optional[str],
    limit: int,
    output: Optional[str],
):
    """
    Scan QUERY across every registered source.

    Example:
        identiscan scan octocat
        identiscan scan example.com --adapter hunter --adapter searchengine
    """
    config = load_config(
        config_path,
        default_timeout=timeout,
        total_timeout=total_timeout,
        enable_cache=False if no_cache else None,
    )

    options: Dict[str, Any] = {}
    if adapters:
        options["adapters"] = list(adapters)
    if platforms:
        options["platforms"] = list(platforms)
    if categories:
        options["categories"] = list(categories)

    engine = build_engine(config)
    job = asyncio.run(run_scan(engine, query, options))

    display_results(job, limit=limit)

    if output:
        output_path = Path(output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(job.to_dict(), f, indent=2, default=str)
        console.print(f"\n[green]Results saved to:[/green] {output_path}")

    if job.status is ScanStatus.ERROR:
        sys.exit(1)


async def run_scan(engine: ScanEngine, query: str, options: Dict[str, Any]) -> ScanJob:
    """Start a scan and render its progress until it finishes."""
    job = await engine.start_scan(query, options)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task(f"[cyan]Scanning {query}...", total=100, completed=job.progress)

        async for event, payload in engine.stream(job.id):
            if event is ScanEvent.PROGRESS:
                progress.update(
                    task,
                    completed=payload["progress"],
                    description=f"[cyan]{payload['adapter']} done ({payload['results_count']} findings)",
                )
            elif event is ScanEvent.ADAPTER_ERROR:
                progress.console.print(f"[yellow]! {payload['adapter']}:[/yellow] {payload['error']}")

        progress.update(task, completed=100, description="[green]Scan complete!")

    return engine.get_scan(job.id)


def display_results(job: ScanJob, limit: int = 50):
    """Print the findings and adapter errors of a finished scan."""
    cached = " [dim](from cache)[/dim]" if job.from_cache else ""
    console.print(
        f"\n[bold]Scan {job.id}[/bold]{cached}: {job.status.value}, "
        f"{job.stats.unique_results} findings from {job.stats.completed_sources}/"
        f"{job.stats.total_sources} sources in {job.duration:.1f}s"
    )

    if job.results:
        table = Table(title=f"Findings for {job.query}")
        table.add_column("#", justify="right", style="dim")
        table.add_column("Source", style="cyan", no_wrap=True)
        table.add_column("Type")
        table.add_column("Confidence", justify="right")
        table.add_column("Username")
        table.add_column("URL", overflow="fold")

        for i, finding in enumerate(job.results[:limit], 1):
            level = finding.confidence_level.value if finding.confidence_level else "low"
            table.add_row(
                str(i),
                finding.source,
                finding.kind.value,
                f"[{LEVEL_STYLES[level]}]{finding.confidence:.0%} {level}[/]",
                finding.username or "",
                finding.url or "",
            )
        console.print(table)

        if len(job.results) > limit:
            console.print(f"[dim]... {len(job.results) - limit} more (use --output for all)[/dim]")
    else:
        console.print("[dim]No findings[/dim]")

    if job.errors:
        console.print("\n[bold yellow]Source errors[/bold yellow]")
        for failure in job.errors:
            console.print(f"  • {failure.adapter or 'scan'}: {failure.error}")


@cli.command()
@click.option('--config', 'config_path', type=click.Path(exists=True, dir_okay=False), help='YAML config file')
def adapters(config_path: Optional[str]):
    """List registered sources by priority."""
    engine = build_engine(load_config(config_path))

    table = Table(title="Sources")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Priority", justify="right")
    table.add_column("Rate limit", style="yellow")

    for adapter in engine.get_adapters():
        rate = adapter["rate_limit"]
        table.add_row(
            adapter["name"],
            str(adapter["priority"]),
            f"{rate['requests']} req / {rate['window']:g}s",
        )

    console.print(table)


@cli.command()
def version():
    """Show version information"""
    console.print(f"\n[bold cyan]identiscan v{__version__}[/bold cyan]")
    console.print("[cyan]Federated identity reconnaissance[/cyan]\n")


if __name__ == '__main__':
    cli()
