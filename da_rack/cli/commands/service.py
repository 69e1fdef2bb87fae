"""CLI — Service management commands."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
import uvicorn
from rich.console import Console
from rich.table import Table

app = typer.Typer(help="Start and inspect the DA Rack service.")
console = Console()


@app.command("start")
def start(
    host: str = typer.Option("127.0.0.1", help="Host to bind to."),
    port: int = typer.Option(8787, help="Port to listen on."),
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Path to config.yaml.")
    ] = None,
    log_level: str = typer.Option("info", help="Log level."),
) -> None:
    """Start the DA Rack service."""
    from da_rack.api.server import create_app
    from da_rack.config import Settings

    settings = Settings.load(config_file=config)
    settings.server.host = host
    settings.server.port = port

    console.print(f"[bold green]Starting DA Rack on {host}:{port}[/bold green]")
    console.print(f"Database: {settings.storage.database}")

    uvicorn.run(create_app(settings=settings), host=host, port=port, log_level=log_level)


@app.command("meta")
def meta(
    host: str = typer.Option("127.0.0.1"),
    port: int = typer.Option(8787),
) -> None:
    """Show the running service's identity."""
    import httpx

    try:
        resp = httpx.get(f"http://{host}:{port}/meta", timeout=5.0)
        resp.raise_for_status()
        data = resp.json()
    except Exception as exc:
        console.print(f"[red]Service unreachable: {exc}[/red]")
        raise typer.Exit(1)

    table = Table(title="DA Rack")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")
    for k, v in data.items():
        table.add_row(str(k), str(v))
    console.print(table)
