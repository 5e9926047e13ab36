"""`tdcli import`: bulk import sessions."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from treasuredata.cli.output import emit, emit_message
from treasuredata.cli.session import client_session

app = typer.Typer(no_args_is_help=True, help="Bulk import sessions: create, upload, perform, commit.")

COLUMNS = ("name", "database", "table", "status", "upload_frozen", "valid_records", "error_records", "job_id")


@app.command("list")
def list_sessions(ctx: typer.Context) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.bulk_import.list(), columns=COLUMNS, title="Bulk import sessions")


@app.command("get")
def show_session(ctx: typer.Context, name: str = typer.Argument(..., help="Session name.")) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.bulk_import.show(name), title=f"Session {name}")


@app.command("create")
def create_session(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Session name."),
    database: str = typer.Argument(..., help="Target database."),
    table: str = typer.Argument(..., help="Target table."),
) -> None:
    with client_session(ctx) as client:
        client.bulk_import.create(name, database, table)
    emit_message(f"Session {name} created for {database}.{table}")


@app.command("delete")
def delete_session(ctx: typer.Context, name: str = typer.Argument(..., help="Session name.")) -> None:
    with client_session(ctx) as client:
        client.bulk_import.delete(name)
    emit_message(f"Session {name} deleted")


@app.command("upload")
def upload_part(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Session name."),
    part_name: str = typer.Argument(..., help="Part name."),
    path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Part file (msgpack.gz)."),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Upload timeout (seconds)."),
) -> None:
    with client_session(ctx) as client, path.open("rb") as fh:
        client.bulk_import.upload_part(name, part_name, fh, timeout=timeout)
    emit_message(f"Uploaded {path} as part {part_name}")


@app.command("parts")
def list_parts(ctx: typer.Context, name: str = typer.Argument(..., help="Session name.")) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.bulk_import.list_parts(name), columns=("name", "size"), title=f"Parts of {name}")


@app.command("freeze")
def freeze(ctx: typer.Context, name: str = typer.Argument(..., help="Session name.")) -> None:
    with client_session(ctx) as client:
        client.bulk_import.freeze(name)
    emit_message(f"Session {name} frozen")


@app.command("unfreeze")
def unfreeze(ctx: typer.Context, name: str = typer.Argument(..., help="Session name.")) -> None:
    with client_session(ctx) as client:
        client.bulk_import.unfreeze(name)
    emit_message(f"Session {name} unfrozen")


@app.command("perform")
def perform(ctx: typer.Context, name: str = typer.Argument(..., help="Session name.")) -> None:
    """Start the job that converts the uploaded parts."""

    with client_session(ctx) as client:
        emit(ctx, client.bulk_import.perform(name), title="Perform job")


@app.command("commit")
def commit(ctx: typer.Context, name: str = typer.Argument(..., help="Session name.")) -> None:
    with client_session(ctx) as client:
        client.bulk_import.commit(name)
    emit_message(f"Session {name} committed")
