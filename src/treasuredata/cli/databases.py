"""`tdcli databases`."""

from __future__ import annotations

import typer

from treasuredata.cli.output import emit, emit_message
from treasuredata.cli.session import client_session

app = typer.Typer(no_args_is_help=True, help="List, inspect, create and delete databases.")

COLUMNS = ("name", "count", "permission", "delete_protected", "created_at", "updated_at")


@app.command("list")
def list_databases(ctx: typer.Context) -> None:
    """List databases visible to the API key."""

    with client_session(ctx) as client:
        emit(ctx, client.databases.list(), columns=COLUMNS, title="Databases")


@app.command("get")
def get_database(ctx: typer.Context, name: str = typer.Argument(..., help="Database name.")) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.databases.get(name), title=f"Database {name}")


@app.command("create")
def create_database(ctx: typer.Context, name: str = typer.Argument(..., help="Database name.")) -> None:
    with client_session(ctx) as client:
        client.databases.create(name)
    emit_message(f"Database {name} created")


@app.command("delete")
def delete_database(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Database name."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Delete a database and every table in it."""

    if not yes:
        typer.confirm(f"Delete database {name!r} and all its tables?", abort=True)
    with client_session(ctx) as client:
        client.databases.delete(name)
    emit_message(f"Database {name} deleted")
