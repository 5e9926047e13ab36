"""`tdcli jobs`."""

from __future__ import annotations

from typing import Optional

import typer

from treasuredata.cli.output import emit, emit_message, parse_json_option
from treasuredata.cli.session import client_session

app = typer.Typer(no_args_is_help=True, help="List, inspect and kill jobs.")

COLUMNS = ("job_id", "type", "status", "database", "user_name", "created_at", "duration")


@app.command("list")
def list_jobs(
    ctx: typer.Context,
    status: Optional[str] = typer.Option(None, "--status", help="queued, running, success, error, killed."),
    from_: Optional[int] = typer.Option(None, "--from", help="Start index (newest first)."),
    to: Optional[int] = typer.Option(None, "--to", help="End index."),
    slow: bool = typer.Option(False, "--slow", help="Only slow jobs."),
) -> None:
    with client_session(ctx) as client:
        resp = client.jobs.list(from_=from_, to=to, status=status, slow=slow)
    emit(ctx, resp.jobs, columns=COLUMNS, title=f"Jobs ({resp.count} total)")


@app.command("get")
def get_job(ctx: typer.Context, job_id: str = typer.Argument(..., help="Job ID.")) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.jobs.get(job_id), title=f"Job {job_id}")


@app.command("status")
def job_status(
    ctx: typer.Context,
    job_id: Optional[str] = typer.Argument(None, help="Job ID."),
    domain_key: Optional[str] = typer.Option(None, "--domain-key", help="Look the job up by domain key."),
) -> None:
    if not job_id and not domain_key:
        raise typer.BadParameter("pass a job ID or --domain-key")
    with client_session(ctx) as client:
        status = client.jobs.status_by_domain_key(domain_key) if domain_key else client.jobs.status(job_id)
    emit(ctx, status, title="Job status")


@app.command("kill")
def kill_job(ctx: typer.Context, job_id: str = typer.Argument(..., help="Job ID.")) -> None:
    with client_session(ctx) as client:
        client.jobs.kill(job_id)
    emit_message(f"Job {job_id} kill requested")


@app.command("export")
def export_result(
    ctx: typer.Context,
    job_id: str = typer.Argument(..., help="Finished job whose result is exported."),
    result: Optional[str] = typer.Option(None, "--result", help="Result output URL."),
    connection: Optional[str] = typer.Option(None, "--connection", help="Saved result connection name."),
    settings: Optional[str] = typer.Option(None, "--settings", help="Result settings as JSON."),
) -> None:
    """Export the result of a finished job to a result destination."""

    with client_session(ctx) as client:
        job = client.jobs.result_export(
            job_id,
            result=result,
            result_connection=connection,
            result_settings=parse_json_option(settings, "--settings"),
        )
    emit(ctx, job, title="Export job")
