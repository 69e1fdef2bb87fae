"""CLI — Data commands: run catalog actions locally or over HTTP."""

from __future__ import annotations

import asyncio
import json
import os
import sys
import uuid
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.syntax import Syntax

from da_rack.dispatch.actions import Action

app = typer.Typer(help="Initialise the database and run catalog actions.")
console = Console()


def _print_json(data: Any) -> None:
    console.print(Syntax(json.dumps(data, indent=2, default=str), "json"))


@app.command("init")
def init(
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Path to config.yaml.")
    ] = None,
) -> None:
    """Create the system table and its reserved records in the local database."""
    from da_rack.config import Settings
    from da_rack.dispatch.dispatcher import ActionDispatcher
    from da_rack.query.builder import SYSTEM_TABLE
    from da_rack.storage.store import SqlStore

    settings = Settings.load(config_file=config)

    async def _run() -> Any:
        store = SqlStore(settings.storage.database, timeout=settings.storage.timeout)
        await store.init()
        try:
            return await ActionDispatcher(store).dispatch(
                Action.INIT_SYSTEM.value, {"table_name": SYSTEM_TABLE}
            )
        finally:
            await store.close()

    outcome = asyncio.run(_run())
    if not outcome.ok:
        console.print(f"[red]Init failed: {outcome.error}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]{outcome.payload['message']}[/green]")


@app.command("call")
def call(
    action: str = typer.Argument(help=f"One of: {', '.join(Action.names())}."),
    payload: str = typer.Option("{}", "--payload", "-p", help="JSON payload. Use - for stdin."),
    host: str = typer.Option("127.0.0.1"),
    port: int = typer.Option(8787),
    token: str | None = typer.Option(
        None, "--token", help="Bearer token (defaults to $DA_WRITE_TOKEN)."
    ),
    request_id: str | None = typer.Option(None, "--request-id"),
) -> None:
    """Send one action envelope to a running service."""
    import httpx

    raw = sys.stdin.read() if payload == "-" else payload
    try:
        payload_data = json.loads(raw)
    except json.JSONDecodeError as exc:
        console.print(f"[red]Invalid JSON payload: {exc}[/red]")
        raise typer.Exit(1)

    token = token or os.environ.get("DA_WRITE_TOKEN", "")
    body = {
        "action": action,
        "payload": payload_data,
        "request_id": request_id or uuid.uuid4().hex,
    }
    try:
        resp = httpx.post(
            f"http://{host}:{port}/api",
            json=body,
            headers={"Authorization": f"Bearer {token}"},
            timeout=30.0,
        )
        envelope = resp.json()
    except Exception as exc:
        console.print(f"[red]Error: {exc}[/red]")
        raise typer.Exit(1)

    _print_json(envelope)
    if envelope.get("type") != "ack":
        raise typer.Exit(1)
