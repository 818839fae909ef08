"""odata-mcp CLI - manage saved connections and run the MCP server.

Commands:
    odata-mcp start              - Start MCP server (transport from MCP_TRANSPORT)
    odata-mcp add NAME           - Save a named connection
    odata-mcp remove NAME        - Remove a saved connection
    odata-mcp list               - List saved connections
    odata-mcp show NAME          - Show one connection (password masked)
    odata-mcp default NAME       - Set the default connection
    odata-mcp test [NAME]        - Smoke-test a connection against the server
"""

import os
from importlib.metadata import PackageNotFoundError, version

import click
from rich.console import Console
from rich.prompt import Confirm
from rich.table import Table

from odata_mcp.client import ODataClient
from odata_mcp.config import get_settings, reset_settings
from odata_mcp.errors import ODataMCPError
from odata_mcp.models import PASSWORD_MASK, Connection, QueryOptions
from odata_mcp.parser import extract_table_names
from odata_mcp.registry import ConnectionRegistry
from odata_mcp.store import YamlConfigStore

console = Console()


def _get_cli_version() -> str:
    try:
        return version("odata-mcp")
    except PackageNotFoundError:
        return "unknown"


def _registry() -> ConnectionRegistry:
    return ConnectionRegistry(YamlConfigStore(get_settings().get_config_file()))


def _resolve_connection(name: str | None) -> Connection | None:
    """Named connection, else the default, else the environment connection."""
    registry = _registry()
    if name:
        return registry.get(name)
    return registry.get_default() or get_settings().baseline_connection()


@click.group()
@click.version_option(version=_get_cli_version())
def main():
    """odata-mcp - MCP server for OData tabular data services."""
    pass


@main.command()
@click.option(
    "--transport",
    type=click.Choice(["stdio", "http", "sse"]),
    default=None,
    help="Override MCP_TRANSPORT",
)
@click.option("--host", default=None, help="Override MCP_HOST")
@click.option("--port", type=int, default=None, help="Override MCP_PORT")
def start(transport: str | None, host: str | None, port: int | None):
    """Start the MCP server."""
    if transport:
        os.environ["MCP_TRANSPORT"] = transport
    if host:
        os.environ["MCP_HOST"] = host
    if port:
        os.environ["MCP_PORT"] = str(port)
    reset_settings()

    from odata_mcp.server import main as server_main

    server_main()


@main.command()
@click.argument("name")
@click.option("--server", required=True, help="Server URL, e.g. https://fms.example.com")
@click.option("--database", required=True, help="Hosted database name")
@click.option("--user", required=True, help="Account name")
@click.option("--password", prompt=True, hide_input=True, help="Account password")
def add(name: str, server: str, database: str, user: str, password: str):
    """Save a named connection."""
    connection = Connection(server=server, database=database, user=user, password=password)
    try:
        _registry().add(name, connection)
    except ODataMCPError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)
    console.print(f"[green]✓ Connection '{name}' added[/green]")


@main.command()
@click.argument("name")
@click.option("-y", "--yes", is_flag=True, help="Do not ask for confirmation")
def remove(name: str, yes: bool):
    """Remove a saved connection."""
    registry = _registry()
    if not registry.exists(name):
        console.print(f"[red]Connection '{name}' not found.[/red]")
        raise SystemExit(1)

    if not yes and not Confirm.ask(f"Remove connection '{name}'?", default=False):
        console.print("[dim]Cancelled.[/dim]")
        return

    registry.remove(name)
    console.print(f"[green]✓ Connection '{name}' removed[/green]")


@main.command("list")
def list_cmd():
    """List saved connections."""
    registry = _registry()
    connections = registry.list()

    if not connections:
        console.print("[dim]No saved connections.[/dim]")
        console.print("[dim]Run 'odata-mcp add <name>' to create one.[/dim]")
        return

    default_name = registry.get_default_name()

    table = Table(title="Connections", show_header=True)
    table.add_column("Name", style="cyan")
    table.add_column("Default", justify="center")
    table.add_column("Server")
    table.add_column("Database")
    table.add_column("User")
    table.add_column("Password")

    for conn in connections:
        table.add_row(
            conn.name,
            "[green]●[/green]" if conn.name == default_name else "",
            conn.server,
            conn.database,
            conn.user,
            PASSWORD_MASK,
        )

    console.print(table)


@main.command()
@click.argument("name")
def show(name: str):
    """Show one saved connection."""
    registry = _registry()
    conn = registry.get(name)
    if conn is None:
        console.print(f"[red]Connection '{name}' not found.[/red]")
        raise SystemExit(1)

    label = " (default)" if name == registry.get_default_name() else ""
    console.print(f"[bold cyan]Connection: {name}{label}[/bold cyan]")
    for key, value in conn.to_public_dict().items():
        if key != "name":
            console.print(f"  {key.capitalize() + ':':<10}{value}")


@main.command()
@click.argument("name")
def default(name: str):
    """Set the default connection."""
    try:
        _registry().set_default(name)
    except ODataMCPError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)
    console.print(f"[green]✓ Default connection set to '{name}'[/green]")


@main.command()
@click.argument("name", required=False)
def test(name: str | None):
    """Smoke-test a connection: service document, tables and a sample query.

    Uses NAME, else the default connection, else ODATA_* environment variables.
    """
    conn = _resolve_connection(name)
    if conn is None:
        target = f"Connection '{name}' not found." if name else "No connection configured."
        console.print(f"[red]{target}[/red]")
        raise SystemExit(1)

    settings = get_settings()
    client = ODataClient.from_connection(
        conn, verify_ssl=settings.odata_verify_ssl, timeout=settings.timeout_seconds
    )
    console.print(f"[bold]Testing {conn.address} as {conn.user}[/bold]")
    console.print(f"[dim]Base URL: {client.base_url}[/dim]")

    try:
        if not client.test_connection():
            console.print("[red]✗ Connection failed[/red]")
            raise SystemExit(1)
        console.print("[green]✓ Service document retrieved[/green]")

        tables = extract_table_names(client.get_metadata())
        console.print(f"[green]✓ Metadata retrieved ({len(tables)} tables)[/green]")
        for table_name in tables[:10]:
            console.print(f"  - {table_name}")
        if len(tables) > 10:
            console.print(f"  [dim]... and {len(tables) - 10} more[/dim]")

        if tables:
            records = client.query_records(tables[0], QueryOptions(top=1))
            console.print(
                f"[green]✓ Sample query on {tables[0]} returned {len(records.items)} record(s)[/green]"
            )
    except ODataMCPError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise SystemExit(1)
    finally:
        client.close()

    console.print("[green]All checks passed.[/green]")


if __name__ == "__main__":
    main()
