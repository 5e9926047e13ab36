"""`tdcli query`: submit SQL and optionally wait for it."""

from __future__ import annotations

import time
from typing import Optional

import typer

from treasuredata.adapters.client import TreasureDataClient
from treasuredata.cli.output import emit, emit_message
from treasuredata.cli.results import fetch_rows
from treasuredata.cli.session import client_session, fail, info
from treasuredata.core.domain.models import IssueQueryOptions, JobStatus, QueryType

app = typer.Typer(no_args_is_help=True, help="Submit queries (Trino/Presto/Hive).")

FINISHED = ("success", "error", "killed")


def wait_for_job(
    client: TreasureDataClient,
    job_id: str,
    *,
    timeout: float,
    interval: float,
) -> JobStatus:
    """Poll the job status until it finishes or `timeout` seconds pass."""

    deadline = time.monotonic() + timeout
    while True:
        status = client.jobs.status(job_id)
        if status.status in FINISHED:
            return status
        if time.monotonic() >= deadline:
            fail(f"timeout waiting for job {job_id} (last status: {status.status or 'unknown'})")
        info(f"[dim]job {job_id}: {status.status}[/dim]")
        time.sleep(interval)


@app.command("submit")
def submit(
    ctx: typer.Context,
    sql: str = typer.Argument(..., help="SQL to execute."),
    database: str = typer.Option(..., "--database", "-d", help="Database to run against."),
    engine: QueryType = typer.Option(QueryType.TRINO, "--engine", "-e", help="Query engine."),
    priority: Optional[int] = typer.Option(None, "--priority", min=-2, max=2, help="Priority (-2..2)."),
    retry_limit: Optional[int] = typer.Option(None, "--retry-limit", min=0),
    result_url: Optional[str] = typer.Option(None, "--result", help="Write the result to this result URL."),
    pool_name: Optional[str] = typer.Option(None, "--pool-name"),
    domain_key: Optional[str] = typer.Option(None, "--domain-key", help="Idempotency key."),
    wait: bool = typer.Option(False, "--wait", "-w", help="Wait until the job finishes."),
    show: bool = typer.Option(False, "--show", help="With --wait: print the result rows."),
    limit: Optional[int] = typer.Option(None, "--limit", min=1, help="With --show: max rows."),
    timeout: float = typer.Option(300.0, "--timeout", min=0, help="Wait timeout (seconds)."),
    interval: float = typer.Option(2.0, "--interval", min=0, help="Polling interval (seconds)."),
) -> None:
    """Submit a query; prints the job ID, or the outcome with --wait."""

    options = IssueQueryOptions(
        query=sql,
        priority=priority,
        retry_limit=retry_limit,
        result=result_url,
        pool_name=pool_name,
        domain_key=domain_key,
    )
    with client_session(ctx) as client:
        issued = client.queries.issue(engine, database, options)
        if not wait:
            emit(ctx, {"job_id": issued.job_id, "database": issued.database or database}, title="Query submitted")
            return

        info(f"Waiting for job {issued.job_id} (timeout: {timeout:g}s)...")
        status = wait_for_job(client, issued.job_id, timeout=timeout, interval=interval)
        if status.status != "success":
            job = client.jobs.get(issued.job_id)
            detail = job.debug.stderr if job.debug and job.debug.stderr else ""
            fail(f"job {issued.job_id} {status.status}" + (f": {detail}" if detail else ""))

        if show:
            emit(ctx, fetch_rows(client, issued.job_id, limit=limit), title=f"Result of job {issued.job_id}")
        else:
            emit(ctx, status, title=f"Job {issued.job_id}")


@app.command("cancel")
def cancel(ctx: typer.Context, job_id: str = typer.Argument(..., help="Job ID.")) -> None:
    with client_session(ctx) as client:
        client.jobs.kill(job_id)
    emit_message(f"Job {job_id} kill requested")
