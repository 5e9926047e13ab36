"""`tdcli results`: job results and result destinations."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import typer

from treasuredata.adapters.client import TreasureDataClient
from treasuredata.cli.output import emit, emit_message, parse_json_option
from treasuredata.cli.session import client_session, info
from treasuredata.core.domain.models import ResultFormat
from treasuredata.core.errors import TransportError

logger = logging.getLogger(__name__)

app = typer.Typer(no_args_is_help=True, help="Download job results and manage result destinations.")


def fetch_rows(client: TreasureDataClient, job_id: str, *, limit: int | None = None) -> list[Any]:
    """Read a result as JSONL through the streaming cursor.

    Rows arrive either as objects or as arrays; arrays are keyed `c0..cN`
    so they still render as a table.
    """

    rows: list[Any] = []
    with client.results.get_result_jsonl(job_id) as cursor:
        while (limit is None or len(rows) < limit) and cursor.advance():
            if not cursor.current_bytes().strip():
                continue
            row = cursor.decode_current()
            if isinstance(row, list):
                row = {f"c{i}": value for i, value in enumerate(row)}
            rows.append(row)
    if cursor.last_error is not None:
        raise cursor.last_error
    return rows


@app.command("get")
def get_result(
    ctx: typer.Context,
    job_id: str = typer.Argument(..., help="Job ID."),
    result_format: ResultFormat = typer.Option(ResultFormat.CSV, "--result-format", help="Wire format to download."),
    limit: Optional[int] = typer.Option(None, "--limit", min=1, help="Max rows."),
) -> None:
    """Stream the raw result body to stdout (or to --output)."""

    with client_session(ctx) as client:
        output = client.settings.output
        if output is not None:
            written = client.results.download(job_id, output, format=result_format, limit=limit)
            info(f"[green]Saved {written} bytes to:[/green] {output}")
            return

        response = client.results.get_result(job_id, format=result_format, limit=limit)
        stdout = typer.get_binary_stream("stdout")
        try:
            for chunk in response.iter_bytes():
                stdout.write(chunk)
        except OSError as exc:
            raise TransportError(f"writing result of job {job_id}: {exc}") from exc
        finally:
            response.close()
        stdout.flush()


@app.command("rows")
def result_rows(
    ctx: typer.Context,
    job_id: str = typer.Argument(..., help="Job ID."),
    limit: Optional[int] = typer.Option(None, "--limit", min=1, help="Max rows."),
) -> None:
    """Decode a result row by row and render it with --format."""

    with client_session(ctx) as client:
        emit(ctx, fetch_rows(client, job_id, limit=limit), title=f"Result of job {job_id}")


@app.command("list")
def list_destinations(ctx: typer.Context) -> None:
    """List saved result destinations."""

    with client_session(ctx) as client:
        emit(ctx, client.results.list_results(), columns=("name", "type", "url"), title="Result destinations")


@app.command("create")
def create_destination(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Destination name."),
    url: str = typer.Argument(..., help="Result URL."),
    settings: Optional[str] = typer.Option(None, "--settings", help="Settings as JSON."),
) -> None:
    with client_session(ctx) as client:
        client.results.create_result(name, url, parse_json_option(settings, "--settings"))
    emit_message(f"Result destination {name} created")


@app.command("delete")
def delete_destination(ctx: typer.Context, name: str = typer.Argument(..., help="Destination name.")) -> None:
    with client_session(ctx) as client:
        client.results.delete_result(name)
    emit_message(f"Result destination {name} deleted")
