"""Typer CLI for the CrUX dashboard.

Commands:
  report   Fetch origins, then print filtered/sorted rows and per-metric summaries
  metrics  List the metric names reported for a set of origins
  serve    Run the CrUX proxy API
"""

from __future__ import annotations

import asyncio
import logging
from enum import StrEnum
from typing import Annotated

import typer
import uvicorn
from rich.console import Console
from rich.table import Table

from crux_core.models import RawResponse, SortState
from crux_core.normalizer import normalize
from crux_core.state import DashboardState, parse_threshold
from crux_core.types import SortDirection, SortKey
from crux_core.views import visible_summary
from crux_dashboard.api import create_app
from crux_dashboard.client import CruxClient, clean_origins
from crux_dashboard.config import DashboardConfig

app = typer.Typer(
    name="crux-dashboard",
    help="Chrome UX Report dashboard: fetch, filter, sort and summarize origin metrics",
    no_args_is_help=True,
)
console = Console()


class OutputFormat(StrEnum):
    TEXT = "text"
    JSON = "json"


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log at INFO level")] = False,
) -> None:
    """CrUX dashboard CLI."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def _fetch_batch(config: DashboardConfig, origins: list[str]) -> list[RawResponse]:
    async with CruxClient(config) as client:
        return await client.fetch_batch(origins)


def _load_state(origins: list[str]) -> DashboardState:
    """Fetch a batch for the given origins and wrap it in a fresh dashboard state."""
    cleaned = clean_origins(origins)
    if not cleaned:
        console.print("[red]At least one non-empty origin is required.[/red]")
        raise typer.Exit(1)

    config = DashboardConfig()
    if not config.google_api_key:
        console.print("[yellow]No API key set (GOOGLE_API_KEY / CRUX_GOOGLE_API_KEY).[/yellow]")

    with console.status("[bold green]Querying CrUX..."):
        batch = asyncio.run(_fetch_batch(config, cleaned))

    results, _ = normalize(batch)
    return DashboardState().with_batch(results)


def _sort_arrow(sort: SortState, key: SortKey) -> str:
    if sort.key != key:
        return ""
    return " ↑" if sort.direction == SortDirection.ASC else " ↓"


@app.command()
def report(
    origins: Annotated[list[str], typer.Argument(help="Origins to query, e.g. https://web.dev")],
    metric: Annotated[
        list[str] | None, typer.Option("--metric", "-m", help="Only show this metric")
    ] = None,
    only_origin: Annotated[
        list[str] | None, typer.Option("--only-origin", help="Only show rows for this origin")
    ] = None,
    threshold: Annotated[
        str, typer.Option("--threshold", "-t", help="Minimum p75 value on the 0-100 scale")
    ] = "0",
    sort_by: Annotated[SortKey, typer.Option("--sort-by", "-s", help="Sort column")] = (
        SortKey.METRIC
    ),
    desc: Annotated[bool, typer.Option("--desc", help="Sort descending")] = False,
    format: Annotated[
        OutputFormat, typer.Option("--format", "-f", help="Output format")
    ] = OutputFormat.TEXT,
) -> None:
    """Fetch origins and print the details and summary tables."""
    state = _load_state(origins)
    if only_origin:
        state = state.with_filter(selected_origins=clean_origins(only_origin))
    state = state.with_filter(
        selected_metrics=metric or [],
        threshold=parse_threshold(threshold),
    ).with_sort(
        SortState(key=sort_by, direction=SortDirection.DESC if desc else SortDirection.ASC)
    )

    views = state.views()
    failed = [r for r in state.results if not r.is_ok]

    if format == OutputFormat.JSON:
        typer.echo(views.model_dump_json(indent=2))
        return

    details = Table(title="Details")
    details.add_column(f"Origin{_sort_arrow(state.sort, SortKey.ORIGIN)}", style="cyan")
    details.add_column(f"Metric{_sort_arrow(state.sort, SortKey.METRIC)}")
    details.add_column(f"Value (p75){_sort_arrow(state.sort, SortKey.VALUE)}", justify="right")
    for row in views.rows:
        details.add_row(row.origin, row.metric, f"{row.value:.2f}")
    if not views.rows:
        details.add_row("[dim]No data to display[/dim]", "", "")
    console.print(details)

    shown = visible_summary(views.summary, state.filter)
    if shown:
        summary = Table(title="Summary")
        summary.add_column("Metric")
        for column in ("Average", "Min", "Max", "Count"):
            summary.add_column(column, justify="right")
        for stats in shown.values():
            summary.add_row(
                stats.metric,
                f"{stats.average:.2f}",
                f"{stats.min:.2f}",
                f"{stats.max:.2f}",
                str(stats.count),
            )
        console.print(summary)
    else:
        console.print("[dim]No summary data[/dim]")

    for result in failed:
        console.print(f"  [yellow]failed[/yellow]: {result.origin}: {result.error}")


@app.command()
def metrics(
    origins: Annotated[list[str], typer.Argument(help="Origins to query")],
) -> None:
    """List the metric names reported across the given origins."""
    state = _load_state(origins)
    universe = state.views().metric_universe
    if not universe:
        console.print("[dim]No metrics reported[/dim]")
        return
    for name in universe:
        console.print(f"  [cyan]{name}[/cyan]")


@app.command()
def serve(
    host: Annotated[str | None, typer.Option("--host", help="Bind address")] = None,
    port: Annotated[int | None, typer.Option("--port", "-p", help="Bind port")] = None,
) -> None:
    """Run the CrUX proxy API."""
    config = DashboardConfig()
    bind_host = host or config.host
    bind_port = port or config.port
    console.print(f"[green]Serving CrUX proxy on http://{bind_host}:{bind_port}[/green]")
    uvicorn.run(create_app(config), host=bind_host, port=bind_port)


if __name__ == "__main__":
    app()
