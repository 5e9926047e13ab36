"""`tdcli users`."""

from __future__ import annotations

from typing import Optional

import typer

from treasuredata.cli.output import emit, emit_message
from treasuredata.cli.session import client_session

app = typer.Typer(no_args_is_help=True, help="Account users and their API keys.")

COLUMNS = ("id", "name", "email", "administrator", "created_at")


@app.command("list")
def list_users(ctx: typer.Context) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.users.list(), columns=COLUMNS, title="Users")


@app.command("get")
def get_user(ctx: typer.Context, email: str = typer.Argument(..., help="User email.")) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.users.get(email), title=email)


@app.command("create")
def create_user(
    ctx: typer.Context,
    email: str = typer.Argument(..., help="User email."),
    name: Optional[str] = typer.Option(None, "--name", help="Display name."),
) -> None:
    password = typer.prompt("Password", hide_input=True, confirmation_prompt=True)
    with client_session(ctx) as client:
        emit(ctx, client.users.create(email, password, name), title="User created")


@app.command("delete")
def delete_user(
    ctx: typer.Context,
    email: str = typer.Argument(..., help="User email."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    if not yes:
        typer.confirm(f"Delete user {email}?", abort=True)
    with client_session(ctx) as client:
        client.users.delete(email)
    emit_message(f"User {email} deleted")


@app.command("apikeys")
def list_api_keys(ctx: typer.Context, email: str = typer.Argument(..., help="User email.")) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.users.list_api_keys(email), columns=("key", "type", "created_at"), title="API keys")


@app.command("add-apikey")
def add_api_key(ctx: typer.Context, email: str = typer.Argument(..., help="User email.")) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.users.add_api_key(email), title="API key created")


@app.command("remove-apikey")
def remove_api_key(
    ctx: typer.Context,
    email: str = typer.Argument(..., help="User email."),
    key: str = typer.Argument(..., help="API key to revoke."),
) -> None:
    with client_session(ctx) as client:
        client.users.remove_api_key(email, key)
    emit_message(f"API key removed from {email}")
