"""`tdcli tables`."""

from __future__ import annotations

from typing import Optional

import typer

from treasuredata.cli.output import emit, emit_message
from treasuredata.cli.session import client_session

app = typer.Typer(no_args_is_help=True, help="Manage tables inside a database.")

COLUMNS = ("name", "type", "count", "estimated_storage_size", "expire_days", "updated_at")


@app.command("list")
def list_tables(ctx: typer.Context, database: str = typer.Argument(..., help="Database name.")) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.tables.list(database), columns=COLUMNS, title=f"Tables in {database}")


@app.command("get")
def get_table(
    ctx: typer.Context,
    database: str = typer.Argument(..., help="Database name."),
    table: str = typer.Argument(..., help="Table name."),
) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.tables.get(database, table), title=f"{database}.{table}")


@app.command("schema")
def table_schema(
    ctx: typer.Context,
    database: str = typer.Argument(..., help="Database name."),
    table: str = typer.Argument(..., help="Table name."),
) -> None:
    """Show the columns of a table."""

    with client_session(ctx) as client:
        columns = client.tables.get(database, table).schema_columns()
    emit(ctx, [{"column": name, "type": kind} for name, kind in columns], title=f"Schema of {database}.{table}")


@app.command("create")
def create_table(
    ctx: typer.Context,
    database: str = typer.Argument(..., help="Database name."),
    table: str = typer.Argument(..., help="Table name."),
    table_type: str = typer.Option("log", "--type", help="Table type: log or item."),
) -> None:
    with client_session(ctx) as client:
        client.tables.create(database, table, table_type)
    emit_message(f"Table {database}.{table} created")


@app.command("delete")
def delete_table(
    ctx: typer.Context,
    database: str = typer.Argument(..., help="Database name."),
    table: str = typer.Argument(..., help="Table name."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    if not yes:
        typer.confirm(f"Delete table {database}.{table}?", abort=True)
    with client_session(ctx) as client:
        client.tables.delete(database, table)
    emit_message(f"Table {database}.{table} deleted")


@app.command("swap")
def swap_tables(
    ctx: typer.Context,
    database: str = typer.Argument(..., help="Database name."),
    table1: str = typer.Argument(...),
    table2: str = typer.Argument(...),
) -> None:
    """Swap the contents of two tables."""

    with client_session(ctx) as client:
        client.tables.swap(database, table1, table2)
    emit_message(f"Swapped {database}.{table1} and {database}.{table2}")


@app.command("rename")
def rename_table(
    ctx: typer.Context,
    database: str = typer.Argument(..., help="Database name."),
    old_name: str = typer.Argument(...),
    new_name: str = typer.Argument(...),
) -> None:
    with client_session(ctx) as client:
        client.tables.rename(database, old_name, new_name)
    emit_message(f"Renamed {database}.{old_name} to {new_name}")


@app.command("update")
def update_table(
    ctx: typer.Context,
    database: str = typer.Argument(..., help="Database name."),
    table: str = typer.Argument(..., help="Table name."),
    schema: Optional[str] = typer.Option(None, "--schema", help='Schema JSON, e.g. [["id","long"]].'),
    expire_days: Optional[int] = typer.Option(None, "--expire-days", help="Retention in days."),
) -> None:
    if schema is None and expire_days is None:
        raise typer.BadParameter("pass --schema and/or --expire-days")
    with client_session(ctx) as client:
        client.tables.update(database, table, schema=schema, expire_days=expire_days)
    emit_message(f"Table {database}.{table} updated")
