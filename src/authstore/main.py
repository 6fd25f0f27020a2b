"""
AuthStore - CLI Entry Point.

Usage:
    authstore schema         Write the CloudFormation template
    authstore health         Check configuration and table reachability
    authstore version        Show version
"""

import asyncio
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="authstore",
    help="AuthStore - DynamoDB data-access adapter for identity frameworks.",
    add_completion=False,
)
console = Console()


@app.command()
def schema(
    out: Optional[str] = typer.Option(None, "--out", "-o", help="Where to write the template"),
    single_table: Optional[bool] = typer.Option(
        None, "--single-table/--multi-table", help="Override the configured topology"
    ),
    model: Optional[list[str]] = typer.Option(None, "--model", "-m", help="Model to include (repeatable)"),
) -> None:
    """Write the CloudFormation template for the configured tables."""
    from authstore.config import configure_logging, get_settings
    from authstore.keys import KeyStrategy
    from authstore.models import DEFAULT_MODELS
    from authstore.schema import create_schema

    settings = get_settings()
    configure_logging(settings.log_level)

    keys = KeyStrategy.from_settings(settings)
    if single_table is not None:
        keys = KeyStrategy(
            single_table=single_table,
            table_name=keys.table_name,
            table_prefix=keys.table_prefix,
        )

    schema_file = create_schema(keys, model or DEFAULT_MODELS, out or settings.schema_file)
    path = schema_file.write()
    topology = "single-table" if keys.single_table else "multi-table"
    console.print(f"✅ Wrote {topology} schema to [bold]{path}[/bold]")


@app.command()
def health() -> None:
    """Check configuration and whether each table exists."""
    from authstore.config import get_settings
    from authstore.db.client import DynamoStoreClient
    from authstore.keys import KeyStrategy
    from authstore.models import DEFAULT_MODELS

    console.print("\n[bold]AuthStore Health Check[/bold]\n")

    try:
        settings = get_settings()
    except Exception as e:
        console.print(f"\n[red]❌ Configuration error: {e}[/red]")
        console.print("[dim]Check AUTHSTORE_* variables or your .env file.[/dim]")
        raise typer.Exit(1)

    console.print("✅ Configuration loaded")
    console.print(f"   Region: {settings.region}")
    console.print(f"   Topology: {settings.topology}")
    if settings.endpoint_url:
        console.print(f"   Endpoint: {settings.endpoint_url}")

    keys = KeyStrategy.from_settings(settings)
    client = DynamoStoreClient.from_settings(settings)
    tables = sorted({keys.resolve_table(name) for name in DEFAULT_MODELS})

    status_table = Table(title="Tables")
    status_table.add_column("Table")
    status_table.add_column("Status")
    status_table.add_column("Items", justify="right")

    missing = 0
    for table in tables:
        try:
            description = asyncio.run(client.describe_table(table))
        except Exception as e:
            status_table.add_row(table, f"[red]error: {e}[/red]", "?")
            missing += 1
            continue
        if description is None:
            status_table.add_row(table, "[yellow]missing[/yellow]", "-")
            missing += 1
        else:
            status_table.add_row(
                table,
                f"[green]{description.get('TableStatus', '?')}[/green]",
                str(description.get("ItemCount", "?")),
            )

    console.print(status_table)

    if missing:
        console.print(f"\n[red]{missing} table(s) unavailable.[/red] Run `authstore schema` and deploy it.")
        raise typer.Exit(1)
    console.print("\n[green]All checks passed![/green]")


@app.command()
def version() -> None:
    """Show version information."""
    from authstore import __version__

    console.print(f"AuthStore version {__version__}")


if __name__ == "__main__":
    app()
