"""DA Rack CLI — Entry point.

Usage:
    da-rack service start
    da-rack service meta
    da-rack data init
    da-rack data call <action> --payload '{"table_name": "users"}'
"""

from __future__ import annotations

import typer

from da_rack.cli.commands import data, service

app = typer.Typer(
    name="da-rack",
    help="DA Rack — schema-fixed relational data access over one action endpoint.",
    no_args_is_help=True,
    pretty_exceptions_enable=False,
)

app.add_typer(service.app, name="service")
app.add_typer(data.app, name="data")


@app.callback()
def main_callback() -> None:
    pass


if __name__ == "__main__":
    app()
