"""Click-based CLI for autoprice.

Thin wrapper around library modules: every command
delegates to ingestion, storage, or trends modules.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from datetime import date

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run_async(coro):
    """Run an async coroutine from synchronous Click code."""
    return asyncio.run(coro)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _load_config(ctx: click.Context):
    """Load config lazily, caching on first call."""
    if "config" not in ctx.obj:
        from autoprice.core import load_config

        ctx.obj["config"] = load_config(config_path=ctx.obj.get("config_path"))
    return ctx.obj["config"]


def _stores(config):
    """Snapshot store and index maintainer over the configured data dir."""
    from autoprice.storage import IndexMaintainer, SnapshotStore

    snapshots = SnapshotStore(config.storage.data_dir)
    return snapshots, IndexMaintainer(snapshots)


def _trend_engine(config):
    from autoprice.trends import TrendCache, TrendEngine

    snapshots, index = _stores(config)
    cache = TrendCache(
        ttl_seconds=config.trends.cache_ttl_seconds,
        max_entries=config.trends.cache_max_entries,
    )
    return TrendEngine(snapshots, index, cache, max_points=config.trends.max_points), index


def _parse_date(ctx: click.Context, param: click.Parameter, value: str | None) -> date | None:
    """Click callback: ISO date string -> date."""
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise click.BadParameter(f"expected YYYY-MM-DD, got {value!r}")


def _format_try(value: float | None) -> str:
    from autoprice.normalize import format_price

    return format_price(value) if value is not None else "-"


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    envvar="AUTOPRICE_CONFIG",
    default=None,
    help="Path to autoprice.yml config file.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable verbose output.",
)
@click.version_option(package_name="autoprice")
@click.pass_context
def cli(ctx: click.Context, config: str | None, verbose: bool) -> None:
    """autoprice: Turkish vehicle price-list collector and trend tracker."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose
    ctx.obj["console"] = console
    _configure_logging(verbose)


# ---------------------------------------------------------------------------
# collect
# ---------------------------------------------------------------------------


@cli.command()
@click.option(
    "--source",
    "-s",
    "source_ids",
    multiple=True,
    help="Collect only this source id (repeatable). Default: all enabled sources.",
)
@click.option(
    "--date",
    "run_date",
    callback=_parse_date,
    default=None,
    help="Snapshot date (YYYY-MM-DD). Default: today.",
)
@click.pass_context
def collect(ctx: click.Context, source_ids: tuple[str, ...], run_date: date | None) -> None:
    """Fetch every enabled price list and store today's snapshots."""
    config = _load_config(ctx)

    if source_ids:
        sources = []
        for source_id in source_ids:
            source = config.get_source(source_id)
            if source is None:
                raise click.UsageError(f"Unknown source: {source_id}")
            sources.append(source)
    else:
        sources = config.enabled_sources

    disabled = [s.id for s in sources if not s.enabled]
    if disabled:
        console.print(f"[yellow]Skipping disabled sources: {', '.join(disabled)}[/yellow]")

    async def _run():
        from autoprice.ingestion import Dispatcher, SourceFetcher

        snapshots, index = _stores(config)
        async with SourceFetcher(config.fetch) as fetcher:
            dispatcher = Dispatcher(config, fetcher, snapshots, index)
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
                transient=True,
            ) as progress:
                progress.add_task(f"Collecting {len(sources)} sources...", total=None)
                return await dispatcher.run(sources, run_date)

    report = _run_async(_run())
    _output_report_table(report)

    console.print(
        f"[green]✓[/green] {report.successful}/{report.total_brands} sources "
        f"collected for {report.run_date}"
        + (f" ({report.failed} failed)" if report.failed else "")
    )
    if report.total_brands and report.successful == 0:
        ctx.exit(1)


def _output_report_table(report) -> None:
    """Render per-source run results as a Rich table."""
    table = Table(title=f"Collection {report.run_date}")
    table.add_column("Source", style="bold")
    table.add_column("Status")
    table.add_column("Rows", justify="right")
    table.add_column("Error")

    for result in report.details:
        status = "[green]ok[/green]" if result.success else f"[red]{result.error_kind}[/red]"
        table.add_row(result.brand_id, status, str(result.count), result.error or "")

    console.print(table)


# ---------------------------------------------------------------------------
# status
# ---------------------------------------------------------------------------


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show indexed brands, dates and the last run's health."""
    config = _load_config(ctx)
    _, index = _stores(config)
    current = index.load()

    table = Table(title="autoprice Status")
    table.add_column("Brand", style="bold")
    table.add_column("Name")
    table.add_column("Dates", justify="right")
    table.add_column("First → Latest")
    table.add_column("Records", justify="right")

    for brand_id, entry in sorted(current.brands.items()):
        span = (
            f"{entry.available_dates[0]} → {entry.latest_date}"
            if entry.available_dates
            else "N/A"
        )
        table.add_row(
            brand_id, entry.name, str(len(entry.available_dates)), span,
            str(entry.total_records),
        )

    console.print(table)
    console.print(f"Data directory: {config.storage.data_dir}")
    console.print(f"Last updated: {current.last_updated or 'never'}")

    report = index.load_report()
    if report is not None:
        console.print(
            f"Last run {report.run_date}: {report.successful}/{report.total_brands} "
            "sources succeeded"
        )
        for failure in report.failures:
            console.print(f"  [red]{failure.brand_id}[/red]: {failure.error}")


# ---------------------------------------------------------------------------
# trend
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("brand")
@click.option("--model", "-m", required=True, help="Model name, e.g. 'Golf'.")
@click.option("--trim", "-t", default="", help="Trim/equipment name.")
@click.option("--engine", "-e", default="", help="Engine text as published.")
@click.option("--from", "from_date", callback=_parse_date, default=None, help="YYYY-MM-DD")
@click.option("--to", "to_date", callback=_parse_date, default=None, help="YYYY-MM-DD")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"], case_sensitive=False),
    default="table",
    help="Output format.",
)
@click.pass_context
def trend(
    ctx: click.Context,
    brand: str,
    model: str,
    trim: str,
    engine: str,
    from_date: date | None,
    to_date: date | None,
    output_format: str,
) -> None:
    """Show the price history of one vehicle."""
    from autoprice.normalize import identity

    config = _load_config(ctx)
    trends, index = _trend_engine(config)

    current = index.load()
    brand_id = current.resolve_brand_id(brand)
    if brand_id is None:
        raise click.UsageError(f"No data for brand: {brand}")

    vehicle_id = identity(current.brands[brand_id].name, model, trim, engine)
    points = trends.series(brand_id, vehicle_id, from_date, to_date)
    summary = trends.summarize(vehicle_id, points)

    if output_format == "json":
        click.echo(json.dumps(summary.model_dump(mode="json", by_alias=True), indent=2))
        return

    if not points:
        console.print(f"[yellow]No price history for {vehicle_id}[/yellow]")
        return

    table = Table(title=vehicle_id)
    table.add_column("Date")
    table.add_column("Price", justify="right")
    for point in summary.points:
        table.add_row(str(point.day), _format_try(point.price))
    console.print(table)

    sign = "+" if summary.change > 0 else ""
    console.print(
        f"{summary.direction}: {sign}{_format_try(summary.change)} "
        f"({sign}{summary.change_percent:.1f}%)"
    )


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("tracked_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"], case_sensitive=False),
    default="table",
    help="Output format.",
)
@click.pass_context
def check(ctx: click.Context, tracked_file: str, output_format: str) -> None:
    """Report price changes for the vehicles listed in TRACKED_FILE (JSON)."""
    from pydantic import TypeAdapter, ValidationError

    from autoprice.core import TrackedVehicle

    config = _load_config(ctx)
    try:
        with open(tracked_file, encoding="utf-8") as f:
            tracked = TypeAdapter(list[TrackedVehicle]).validate_python(json.load(f))
    except (json.JSONDecodeError, ValidationError) as e:
        raise click.BadParameter(f"invalid tracked vehicles file: {e}")

    trends, _ = _trend_engine(config)
    events = trends.detect_changes(tracked)

    if output_format == "json":
        _output_changes_json(events)
    else:
        _output_changes_table(events, len(tracked))


def _output_changes_table(events, tracked_count: int) -> None:
    """Render price-change events as a Rich table."""
    if not events:
        console.print(f"No price changes among {tracked_count} tracked vehicles.")
        return

    table = Table(title="Price Changes")
    table.add_column("Vehicle", style="bold")
    table.add_column("Old", justify="right")
    table.add_column("New", justify="right")
    table.add_column("Diff", justify="right")
    table.add_column("%", justify="right")

    for e in events:
        style = "red" if e.diff > 0 else "green"
        table.add_row(
            e.vehicle.id,
            e.old_price_raw or _format_try(e.old_price),
            e.new_price_raw,
            f"[{style}]{_format_try(e.diff)}[/{style}]",
            f"[{style}]{e.diff_percent:+.2f}[/{style}]",
        )

    console.print(table)


def _output_changes_json(events) -> None:
    """Write price-change events as JSON to stdout."""
    output = [e.model_dump(mode="json", by_alias=True) for e in events]
    click.echo(json.dumps(output, indent=2, ensure_ascii=False))


# ---------------------------------------------------------------------------
# events
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--brand", "-b", default=None, help="Brand id or name (default: all brands).")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"], case_sensitive=False),
    default="table",
    help="Output format.",
)
@click.pass_context
def events(ctx: click.Context, brand: str | None, output_format: str) -> None:
    """Show new, removed and repriced vehicles since each brand's previous snapshot."""
    config = _load_config(ctx)
    trends, index = _trend_engine(config)

    brand_id = None
    if brand is not None:
        brand_id = index.load().resolve_brand_id(brand)
        if brand_id is None:
            raise click.UsageError(f"No data for brand: {brand}")

    report = trends.market_events(brand_id)

    if output_format == "json":
        click.echo(
            json.dumps(report.model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False)
        )
        return

    summary = report.summary
    if not summary.total_events:
        console.print("No market events.")
        return

    table = Table(title=f"Market Events {report.previous_date} -> {report.day}")
    table.add_column("Type")
    table.add_column("Vehicle", style="bold")
    table.add_column("Old", justify="right")
    table.add_column("New", justify="right")
    table.add_column("%", justify="right")
    for e in report.events:
        percent = f"{e.price_change_percent:+.2f}" if e.price_change_percent is not None else ""
        table.add_row(
            str(e.type),
            e.vehicle_id,
            e.old_price_raw or "-",
            e.new_price_raw or "-",
            percent,
        )
    console.print(table)
    console.print(
        f"{summary.new_vehicles} new, {summary.removed_vehicles} removed, "
        f"{summary.price_increases} up, {summary.price_decreases} down"
    )


# ---------------------------------------------------------------------------
# sources
# ---------------------------------------------------------------------------


@cli.command()
@click.pass_context
def sources(ctx: click.Context) -> None:
    """List configured price-list sources."""
    config = _load_config(ctx)

    table = Table(title="Sources")
    table.add_column("Id", style="bold")
    table.add_column("Name")
    table.add_column("Parser")
    table.add_column("Type")
    table.add_column("Enabled")
    table.add_column("URL")

    for source in config.sources:
        table.add_row(
            source.id,
            source.name,
            str(source.parser),
            str(source.response_type),
            "yes" if source.enabled else "[dim]no[/dim]",
            source.url,
        )

    console.print(table)


# ---------------------------------------------------------------------------
# serve
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--host", type=str, default=None, help="Bind address (default: api.host).")
@click.option("--port", "-p", type=int, default=None, help="Port number (default: api.port).")
@click.option("--reload", is_flag=True, default=False, help="Auto-reload on code changes.")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None, reload: bool) -> None:
    """Start the read-only REST API server."""
    try:
        import uvicorn
    except ImportError:
        console.print(
            "[red]uvicorn not installed. Install with: "
            "pip install autoprice[api][/red]"
        )
        raise SystemExit(1)

    config = _load_config(ctx)
    if ctx.obj.get("config_path"):
        # The app factory runs in the server process and reads it from there.
        os.environ["AUTOPRICE_CONFIG"] = ctx.obj["config_path"]
    host = host or config.api.host
    port = port or config.api.port

    console.print(f"Starting autoprice API on [bold]{host}:{port}[/bold]")
    console.print(f"API docs: http://{host}:{port}/docs")

    uvicorn.run(
        "autoprice.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
