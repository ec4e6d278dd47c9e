"""Click CLI for expense-report."""

from __future__ import annotations

import asyncio
import datetime
import sys
from pathlib import Path

import click
import structlog

from expense_report import __version__
from expense_report.errors import EntryValidationError, ExpenseReportError, StoreError
from expense_report.models import AppConfig, Category, ExpenseEntry
from expense_report.utils.logging import setup_logging

logger = structlog.get_logger()


class DateType(click.ParamType):
    """Click parameter type for YYYY-MM-DD or YYYY/MM/DD dates."""

    name = "date"

    def convert(self, value, param, ctx):
        if isinstance(value, datetime.date):
            return value
        try:
            year, month, day = (int(part) for part in value.replace("/", "-").split("-"))
            return datetime.date(year, month, day)
        except ValueError:
            self.fail(f"'{value}' is not a valid date (expected YYYY-MM-DD)", param, ctx)


class CategoryType(click.ParamType):
    """Click parameter type accepting category names and aliases."""

    name = "category"

    def convert(self, value, param, ctx):
        try:
            return Category.parse(value)
        except ValueError:
            choices = ", ".join(c.section_id for c in Category)
            self.fail(f"'{value}' is not a category (one of: {choices})", param, ctx)


DATE = DateType()
CATEGORY = CategoryType()


def _load(ctx: click.Context) -> AppConfig:
    from expense_report.config import load_config

    config_path = ctx.obj.get("config_path")
    return load_config(Path(config_path) if config_path else None)


def _run(coro) -> None:
    """Run a command coroutine, turning domain errors into exit code 1."""
    try:
        asyncio.run(coro)
    except EntryValidationError as e:
        click.echo(f"Invalid entry: {e}", err=True)
        sys.exit(1)
    except (ExpenseReportError, FileNotFoundError) as e:
        logger.error("command_failed", error=str(e))
        click.echo(f"ERROR: {e}", err=True)
        sys.exit(1)


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON lines.")
@click.option(
    "-c", "--config", "config_path", type=click.Path(exists=True), default=None,
    help="Path to config.yaml.",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, json_logs: bool, config_path: str | None) -> None:
    """expense-report — Business travel expense reports."""
    setup_logging(verbose=verbose, json_output=json_logs)
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config_path"] = config_path


@cli.command()
@click.pass_context
def new(ctx: click.Context) -> None:
    """Create a new report and print its id."""
    _run(_new_async(ctx))


async def _new_async(ctx: click.Context) -> None:
    from expense_report.store.client import StoreClient

    config = _load(ctx)
    async with StoreClient(config.store) as client:
        report_id = await client.create_report(config.user.id)
    click.echo(report_id)


@cli.command()
@click.argument("report_id")
@click.pass_context
def show(ctx: click.Context, report_id: str) -> None:
    """Print the report summary and detail sections."""
    _run(_show_async(ctx, report_id))


async def _show_async(ctx: click.Context, report_id: str) -> None:
    from expense_report.exporters.screen import render_text
    from expense_report.session import ReportSession
    from expense_report.store.client import StoreClient

    config = _load(ctx)
    async with StoreClient(config.store) as client:
        session = ReportSession(client, config.user.id, report_id=report_id)
        await session.start()
    click.echo(render_text(session.build_model(config.user.name)), nl=False)


@cli.command()
@click.argument("report_id")
@click.argument("category", type=CATEGORY)
@click.option("--date", "on_date", type=DATE, required=True, help="Expense date.")
@click.option("--currency", default="TWD", show_default=True, help="ISO currency code.")
@click.option("--amount", type=float, default=0.0, help="Amount in the entered currency.")
@click.option("--region", default="", help="City or region.")
@click.option("--note", default="", help="Free-text note.")
@click.option("--flight-code", default="", help="Flight number (flights).")
@click.option("--departure", default="", help="Departure station (flights).")
@click.option("--arrival", default="", help="Arrival station (flights).")
@click.option("--dep-time", default="", help="Departure time (flights).")
@click.option("--arr-time", default="", help="Arrival time (flights).")
@click.option("--nights", type=int, default=1, show_default=True, help="Nights (accommodation).")
@click.option("--personal", type=float, default=0.0, help="Personal amount (accommodation).")
@click.option("--advance", type=float, default=0.0, help="Amount advanced for others (accommodation).")
@click.option("--payers", type=int, default=0, help="People advanced for (accommodation).")
@click.option("--classification", default="", help="Sub-classification (others).")
@click.pass_context
def add(ctx: click.Context, report_id: str, category: Category, on_date: datetime.date, **fields) -> None:
    """Add an expense line to a report."""
    entry = ExpenseEntry(
        date=on_date,
        currency=fields["currency"],
        amount=fields["amount"],
        region=fields["region"],
        note=fields["note"],
        flight_code=fields["flight_code"],
        departure=fields["departure"],
        arrival=fields["arrival"],
        dep_time=fields["dep_time"],
        arr_time=fields["arr_time"],
        nights=fields["nights"],
        personal_amount=fields["personal"],
        advance_amount=fields["advance"],
        advance_payers=fields["payers"],
        classification=fields["classification"],
    )
    _run(_add_async(ctx, report_id, category, entry))


async def _add_async(ctx: click.Context, report_id: str, category: Category, entry: ExpenseEntry) -> None:
    from expense_report.session import ReportSession
    from expense_report.store.client import StoreClient

    config = _load(ctx)
    async with StoreClient(config.store) as client:
        session = ReportSession(
            client, config.user.id, report_id=report_id, debounce=config.rates.debounce_seconds
        )
        await session.start()

        if category is Category.FLIGHT and entry.flight_code and not entry.departure:
            try:
                info = await client.search_flight(entry.flight_code, entry.date)
            except StoreError as e:
                logger.warning("flight_search_failed", code=entry.flight_code, error=str(e))
                info = None
            if info is not None:
                entry = entry.model_copy(update=info.model_dump())

        result = await session.add_entry(category, entry)

    if result is None:
        click.echo("Superseded by a newer entry; nothing stored.")
        return
    if result.resolution.error:
        click.echo(f"  WARNING: rate lookup failed, used {result.resolution.rate:g}: {result.resolution.error}", err=True)
    click.echo(
        f"Added {category.label}: {result.item.currency} at {result.item.rate:g} -> "
        f"TWD {result.item.overall_twd:,}"
    )


@cli.command()
@click.argument("report_id")
@click.argument("category", type=CATEGORY)
@click.argument("sequence", type=click.IntRange(min=1))
@click.pass_context
def delete(ctx: click.Context, report_id: str, category: Category, sequence: int) -> None:
    """Delete the SEQUENCE-th line of CATEGORY from a report."""
    _run(_delete_async(ctx, report_id, category, sequence))


async def _delete_async(ctx: click.Context, report_id: str, category: Category, sequence: int) -> None:
    from expense_report.session import ReportSession
    from expense_report.store.client import StoreClient

    config = _load(ctx)
    async with StoreClient(config.store) as client:
        session = ReportSession(client, config.user.id, report_id=report_id)
        await session.start()
        await session.delete_item(category, sequence)
    click.echo(f"Deleted {category.label} #{sequence}")


@cli.command()
@click.argument("report_id")
@click.option(
    "--format", "fmt", default=None,
    help="Export format. Defaults to the --output extension, then config export.default_format.",
)
@click.option("--output", "output", type=click.Path(path_type=Path), default=None, help="Output file or directory.")
@click.pass_context
def export(ctx: click.Context, report_id: str, fmt: str | None, output: Path | None) -> None:
    """Export a report to a file."""
    _run(_export_async(ctx, report_id, fmt, output))


async def _export_async(ctx: click.Context, report_id: str, fmt: str | None, output: Path | None) -> None:
    from expense_report.exporters.registry import discover_sinks, get_sink, sink_for_path
    from expense_report.session import ReportSession
    from expense_report.store.client import StoreClient

    config = _load(ctx)
    discover_sinks()
    sink = sink_for_path(output) if output is not None and fmt is None else None
    if sink is None:
        try:
            sink = get_sink(fmt or config.export.default_format)
        except KeyError as e:
            raise click.BadParameter(str(e.args[0]), param_hint="'--format'") from e

    async with StoreClient(config.store) as client:
        session = ReportSession(client, config.user.id, report_id=report_id)
        await session.start()
    path = sink.export(session.build_model(config.user.name), output or config.export.output_dir)
    click.echo(f"Exported: {path}")


@cli.command()
@click.argument("currency")
@click.argument("on_date", metavar="DATE", type=DATE)
@click.pass_context
def rate(ctx: click.Context, currency: str, on_date: datetime.date) -> None:
    """Look up the TWD exchange rate for CURRENCY on DATE."""
    _run(_rate_async(ctx, currency, on_date))


async def _rate_async(ctx: click.Context, currency: str, on_date: datetime.date) -> None:
    from expense_report.store.client import StoreClient

    config = _load(ctx)
    async with StoreClient(config.store) as client:
        value = await client.get_exchange_rate(currency.upper(), on_date)
    click.echo(f"{currency.upper()} {on_date:%Y/%m/%d}: {value:g}")


@cli.command(name="sinks")
def list_sinks_cmd() -> None:
    """List available export formats."""
    from expense_report.exporters.registry import discover_sinks, list_sinks

    discover_sinks()
    sinks = list_sinks()

    click.echo("Available export formats:")
    for name, cls in sorted(sinks.items()):
        click.echo(f"  {name:10s} {cls.__module__}.{cls.__name__}")
