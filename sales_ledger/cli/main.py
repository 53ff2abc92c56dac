"""
CLI interface for the sales ledger.

Operator commands: set the commission rate, summarize sales, record and
list sales, and run the webhook receiver.
"""

import sys
from datetime import datetime, timezone
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from sales_ledger.config.loader import ServiceSettings, load_settings
from sales_ledger.core.commission import set_commission_rate
from sales_ledger.core.ingestion import IngestionGateway
from sales_ledger.core.summary import PeriodSummary, SummaryPeriod, summarize_period
from sales_ledger.errors import SalesLedgerError
from sales_ledger.logging_config import setup_logging
from sales_ledger.storage.config_store import ConfigStore
from sales_ledger.storage.repository import SalesRepository, initialize_schema

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1


def _settings(ctx: typer.Context) -> ServiceSettings:
    return ctx.obj["settings"]


def _prepare(settings: ServiceSettings) -> None:
    initialize_schema(settings.db_path, settings.default_commission_rate)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        envvar="SALES_LEDGER_CONFIG",
        help="Path to a YAML settings file"
    )
):
    """Sales Ledger CLI."""
    try:
        settings = load_settings(config)
    except SalesLedgerError as e:
        console.print(f"[red]Error loading settings:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    setup_logging(settings.log_level)
    ctx.obj = {"settings": settings}

    if ctx.invoked_subcommand is None:
        console.print("Sales Ledger - Use --help to see available commands")


@app.command()
def status(ctx: typer.Context):
    """Show database location and current commission rate."""
    settings = _settings(ctx)
    try:
        _prepare(settings)
        rate = ConfigStore(settings.db_path).get_commission_rate()
        count = SalesRepository(settings.db_path).count()
    except SalesLedgerError as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    console.print(f"Database: {settings.db_path}")
    console.print(f"Commission rate: {_format_rate(rate)}%")
    console.print(f"Recorded sales: {count}")


@app.command()
def init(ctx: typer.Context):
    """Initialize the sales database."""
    try:
        _prepare(_settings(ctx))
        console.print("[green]✓[/] Database initialized successfully")
        sys.exit(EXIT_CODE_PASS)
    except SalesLedgerError as e:
        console.print(f"[red]Error initializing database:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command("commission-set")
def commission_set(
    ctx: typer.Context,
    rate: float = typer.Argument(..., help="Commission rate in percent")
):
    """Set the commission rate applied to future sales.

    Use ``--`` before a negative rate, e.g. ``commission-set -- -5``.
    """
    settings = _settings(ctx)
    try:
        _prepare(settings)
        new_rate = set_commission_rate(ConfigStore(settings.db_path), rate)
    except SalesLedgerError as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    console.print(f"Commission set to {_format_rate(new_rate)}%")


@app.command("sales-summary")
def sales_summary(
    ctx: typer.Context,
    period: str = typer.Argument(..., help="day|week|month")
):
    """Show transaction count and totals for a period."""
    settings = _settings(ctx)
    try:
        summary_period = SummaryPeriod.parse(period)
        _prepare(settings)
        result = summarize_period(summary_period, SalesRepository(settings.db_path))
    except SalesLedgerError as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    _display_summary(result)


@app.command()
def record(
    ctx: typer.Context,
    product: str = typer.Argument(..., help="Product sold"),
    amount: float = typer.Argument(..., help="Sale amount"),
    seller_id: Optional[str] = typer.Option(None, "--seller-id", help="Seller identifier"),
    seller_tag: Optional[str] = typer.Option(None, "--seller-tag", help="Seller display name"),
    notes: Optional[str] = typer.Option(None, "--notes", "-n", help="Free-text notes"),
    source: Optional[str] = typer.Option(None, "--source", "-s", help="Origin label")
):
    """Record a sale by hand at the current commission rate."""
    settings = _settings(ctx)
    try:
        _prepare(settings)
        gateway = IngestionGateway(
            repository=SalesRepository(settings.db_path),
            config_store=ConfigStore(settings.db_path),
            webhook_secret=settings.webhook_secret,
        )
        receipt = gateway.record_sale(
            product=product,
            amount=amount,
            seller_id=seller_id,
            seller_tag=seller_tag,
            notes=notes,
            source=source,
        )
    except SalesLedgerError as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    console.print(
        f"[green]✓[/] Sale #{receipt.sale_id} recorded: {product} for "
        f"{_format_currency(amount)} (commission {_format_currency(receipt.commission)})"
    )


@app.command()
def recent(
    ctx: typer.Context,
    limit: int = typer.Option(10, "--limit", "-l", help="Number of sales to show")
):
    """List the most recent sales."""
    settings = _settings(ctx)
    try:
        _prepare(settings)
        sales = SalesRepository(settings.db_path).recent(limit)
    except SalesLedgerError as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    if not sales:
        console.print("[dim]No sales recorded yet.[/]")
        return

    table = Table(title="Recent Sales")
    table.add_column("ID", justify="right")
    table.add_column("Time (UTC)")
    table.add_column("Seller")
    table.add_column("Product")
    table.add_column("Amount", justify="right")
    table.add_column("Commission", justify="right")
    for sale in sales:
        table.add_row(
            str(sale.id),
            datetime.fromtimestamp(sale.timestamp, timezone.utc).strftime("%Y-%m-%d %H:%M"),
            sale.seller_tag or "",
            sale.product,
            _format_currency(sale.amount),
            _format_currency(sale.commission),
        )
    console.print(table)


@app.command()
def serve(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Listen port")
):
    """Run the webhook receiver."""
    import uvicorn

    from sales_ledger.webhook.app import create_app

    settings = _settings(ctx)
    try:
        webhook_app = create_app(settings)
    except SalesLedgerError as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    bind_host = host or settings.webhook_host
    bind_port = port or settings.webhook_port
    console.print(f"Webhook receiver listening on port {bind_port}")
    uvicorn.run(webhook_app, host=bind_host, port=bind_port, log_level=settings.log_level.lower())


def _format_currency(amount: float) -> str:
    """Format currency with thousands separators."""
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def _format_rate(rate: float) -> str:
    return f"{rate:g}"


def _display_summary(result: PeriodSummary):
    """Display a period summary."""
    console.print(f"\n[bold]Sales Summary ({result.period.value})[/bold]")
    console.print("-" * 40)
    console.print(f"Transactions: {result.count}")
    console.print(f"Total: {_format_currency(result.total_amount)}")
    console.print(f"Commissions: {_format_currency(result.total_commission)}")


if __name__ == "__main__":
    app()
