"""`tdcli workflow`: workflows, attempts, schedules and projects."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import typer

from treasuredata.cli.output import emit, emit_message, emit_raw, parse_json_option
from treasuredata.cli.session import client_session, info
from treasuredata.core.domain.workflow import WorkflowAttempt

logger = logging.getLogger(__name__)

app = typer.Typer(no_args_is_help=True, help="Treasure Workflow (Digdag) projects and runs.")
attempts_app = typer.Typer(no_args_is_help=True, help="Workflow attempts (runs) and their tasks.")
schedule_app = typer.Typer(no_args_is_help=True, help="Workflow schedules.")
projects_app = typer.Typer(no_args_is_help=True, help="Workflow projects, archives and secrets.")
secrets_app = typer.Typer(no_args_is_help=True, help="Project secrets.")
app.add_typer(attempts_app, name="attempts")
app.add_typer(schedule_app, name="schedule")
app.add_typer(projects_app, name="projects")
projects_app.add_typer(secrets_app, name="secrets")

WORKFLOW_COLUMNS = ("id", "name", "project", "revision", "timezone")
ATTEMPT_COLUMNS = ("id", "index", "state", "session_time", "created_at", "finished_at")
TASK_COLUMNS = ("id", "full_name", "state", "started_at", "updated_at")
PROJECT_COLUMNS = ("id", "name", "revision", "archive_type", "updated_at")


def _workflow_rows(workflows: list[Any]) -> list[dict[str, Any]]:
    rows = []
    for wf in workflows:
        row = wf.model_dump(mode="json", exclude={"config"})
        row["project"] = wf.project.name if wf.project else ""
        rows.append(row)
    return rows


def _attempt_row(attempt: WorkflowAttempt) -> dict[str, Any]:
    row = attempt.model_dump(mode="json")
    row["state"] = attempt.state
    return row


# ---------------------------------------------------------------------------
# Workflows
# ---------------------------------------------------------------------------


@app.command("list")
def list_workflows(
    ctx: typer.Context,
    project: Optional[str] = typer.Option(None, "--project", help="Only workflows of this project ID."),
    limit: Optional[int] = typer.Option(None, "--limit", min=1),
    offset: Optional[int] = typer.Option(None, "--offset", min=0),
) -> None:
    with client_session(ctx) as client:
        if project:
            workflows = client.workflow.projects.workflows(project)
        else:
            workflows = client.workflow.workflows.list(limit=limit, offset=offset)
    emit(ctx, _workflow_rows(workflows), columns=WORKFLOW_COLUMNS, title="Workflows")


@app.command("get")
def get_workflow(
    ctx: typer.Context,
    workflow: str = typer.Argument(..., help="Workflow ID, or name with --by-name."),
    by_name: bool = typer.Option(False, "--by-name", help="Look the workflow up by name."),
    project: Optional[str] = typer.Option(None, "--project", help="Project name to narrow a name lookup."),
) -> None:
    with client_session(ctx) as client:
        if by_name:
            wf = client.workflow.workflows.find_by_name(workflow, project=project)
        else:
            wf = client.workflow.workflows.get(workflow)
    emit(ctx, wf, title=wf.name)


@app.command("create")
def create_workflow(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Workflow name."),
    project: str = typer.Option(..., "--project", help="Project name."),
    config: Path = typer.Option(..., "--config", exists=True, dir_okay=False, help="Workflow definition (.dig)."),
) -> None:
    with client_session(ctx) as client:
        wf = client.workflow.workflows.create(name, project, config.read_text(encoding="utf-8"))
    emit(ctx, wf, title="Workflow created")


@app.command("update")
def update_workflow(
    ctx: typer.Context,
    workflow_id: str = typer.Argument(..., help="Workflow ID."),
    body: str = typer.Option(..., "--json", help="Updated fields as JSON."),
) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.workflow.workflows.update(workflow_id, parse_json_option(body, "--json")))


@app.command("delete")
def delete_workflow(
    ctx: typer.Context,
    workflow_id: str = typer.Argument(..., help="Workflow ID."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    if not yes:
        typer.confirm(f"Delete workflow {workflow_id}?", abort=True)
    with client_session(ctx) as client:
        client.workflow.workflows.delete(workflow_id)
    emit_message(f"Workflow {workflow_id} deleted")


@app.command("start")
def start_workflow(
    ctx: typer.Context,
    workflow_id: str = typer.Argument(..., help="Workflow ID."),
    params: Optional[str] = typer.Option(None, "--params", help="Session parameters as JSON."),
) -> None:
    """Start a new attempt of a workflow."""

    with client_session(ctx) as client:
        attempt = client.workflow.attempts.start(workflow_id, parse_json_option(params, "--params"))
    emit(ctx, _attempt_row(attempt), title="Attempt started")


# ---------------------------------------------------------------------------
# Attempts
# ---------------------------------------------------------------------------


@attempts_app.command("list")
def list_attempts(
    ctx: typer.Context,
    workflow_id: str = typer.Argument(..., help="Workflow ID."),
    status: Optional[str] = typer.Option(None, "--status", help="running, success, error, ..."),
    limit: Optional[int] = typer.Option(None, "--limit", min=1),
    last_id: Optional[int] = typer.Option(None, "--last-id", help="Page after this attempt ID."),
) -> None:
    with client_session(ctx) as client:
        attempts = client.workflow.attempts.list(workflow_id, limit=limit, last_id=last_id, status=status)
    emit(ctx, [_attempt_row(a) for a in attempts], columns=ATTEMPT_COLUMNS, title="Attempts")


@attempts_app.command("get")
def get_attempt(
    ctx: typer.Context,
    workflow_id: str = typer.Argument(..., help="Workflow ID."),
    attempt_id: str = typer.Argument(..., help="Attempt ID."),
) -> None:
    with client_session(ctx) as client:
        attempt = client.workflow.attempts.get(workflow_id, attempt_id)
    emit(ctx, _attempt_row(attempt), title=f"Attempt {attempt_id}")


@attempts_app.command("kill")
def kill_attempt(
    ctx: typer.Context,
    workflow_id: str = typer.Argument(..., help="Workflow ID."),
    attempt_id: str = typer.Argument(..., help="Attempt ID."),
) -> None:
    with client_session(ctx) as client:
        client.workflow.attempts.kill(workflow_id, attempt_id)
    emit_message(f"Attempt {attempt_id} kill requested")


@attempts_app.command("retry")
def retry_attempt(
    ctx: typer.Context,
    workflow_id: str = typer.Argument(..., help="Workflow ID."),
    attempt_id: str = typer.Argument(..., help="Attempt ID."),
    params: Optional[str] = typer.Option(None, "--params", help="Override parameters as JSON."),
) -> None:
    with client_session(ctx) as client:
        attempt = client.workflow.attempts.retry(workflow_id, attempt_id, parse_json_option(params, "--params"))
    emit(ctx, _attempt_row(attempt), title="Attempt retried")


@attempts_app.command("tasks")
def list_tasks(
    ctx: typer.Context,
    workflow_id: str = typer.Argument(..., help="Workflow ID."),
    attempt_id: str = typer.Argument(..., help="Attempt ID."),
) -> None:
    with client_session(ctx) as client:
        tasks = client.workflow.attempts.tasks(workflow_id, attempt_id)
    emit(ctx, tasks, columns=TASK_COLUMNS, title=f"Tasks of attempt {attempt_id}")


@attempts_app.command("task")
def get_task(
    ctx: typer.Context,
    workflow_id: str = typer.Argument(..., help="Workflow ID."),
    attempt_id: str = typer.Argument(..., help="Attempt ID."),
    task_id: str = typer.Argument(..., help="Task ID."),
) -> None:
    with client_session(ctx) as client:
        task = client.workflow.attempts.task(workflow_id, attempt_id, task_id)
    emit(ctx, task, title=task.full_name)


@attempts_app.command("log")
def attempt_log(
    ctx: typer.Context,
    workflow_id: str = typer.Argument(..., help="Workflow ID."),
    attempt_id: str = typer.Argument(..., help="Attempt ID."),
    task_id: Optional[str] = typer.Option(None, "--task", help="Only the log of this task."),
) -> None:
    """Print an attempt (or task) log as plain text."""

    with client_session(ctx) as client:
        if task_id:
            text = client.workflow.attempts.task_log(workflow_id, attempt_id, task_id)
        else:
            text = client.workflow.attempts.log(workflow_id, attempt_id)
    emit_raw(text)


# ---------------------------------------------------------------------------
# Schedules
# ---------------------------------------------------------------------------


@schedule_app.command("get")
def get_schedule(ctx: typer.Context, workflow_id: str = typer.Argument(..., help="Workflow ID.")) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.workflow.schedules.get(workflow_id), title=f"Schedule of workflow {workflow_id}")


@schedule_app.command("enable")
def enable_schedule(ctx: typer.Context, workflow_id: str = typer.Argument(..., help="Workflow ID.")) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.workflow.schedules.enable(workflow_id), title="Schedule enabled")


@schedule_app.command("disable")
def disable_schedule(ctx: typer.Context, workflow_id: str = typer.Argument(..., help="Workflow ID.")) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.workflow.schedules.disable(workflow_id), title="Schedule disabled")


@schedule_app.command("update")
def update_schedule(
    ctx: typer.Context,
    workflow_id: str = typer.Argument(..., help="Workflow ID."),
    cron: str = typer.Option(..., "--cron", help="Cron expression or @daily/@hourly/..."),
    timezone: str = typer.Option("UTC", "--timezone", help="IANA time zone."),
    delay: int = typer.Option(0, "--delay", help="Delay in seconds."),
) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.workflow.schedules.update(workflow_id, cron, timezone, delay), title="Schedule updated")


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


@projects_app.command("list")
def list_projects(ctx: typer.Context) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.workflow.projects.list(), columns=PROJECT_COLUMNS, title="Projects")


@projects_app.command("get")
def get_project(
    ctx: typer.Context,
    project: str = typer.Argument(..., help="Project ID, or name with --by-name."),
    by_name: bool = typer.Option(False, "--by-name", help="Look the project up by name."),
) -> None:
    with client_session(ctx) as client:
        if by_name:
            proj = client.workflow.projects.find_by_name(project)
        else:
            proj = client.workflow.projects.get(project)
    emit(ctx, proj, title=proj.name)


@projects_app.command("push")
def push_project(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Project name."),
    directory: Path = typer.Argument(Path("."), exists=True, file_okay=False, help="Project directory."),
    revision: Optional[str] = typer.Option(None, "--revision", help="Revision label (default: archive MD5)."),
    skip_hooks: bool = typer.Option(False, "--skip-hooks", help="Do not run .td-hooks.json pre-upload hooks."),
) -> None:
    """Pack a project directory and upload it as a new revision."""

    info(f"Packing [bold]{directory}[/bold]")
    with client_session(ctx) as client:
        proj = client.workflow.projects.create_from_directory(name, directory, revision, run_hooks=not skip_hooks)
    emit(ctx, proj, title="Project uploaded")


@projects_app.command("upload")
def upload_archive(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Project name."),
    archive: Path = typer.Argument(..., exists=True, dir_okay=False, help="tar.gz archive."),
    revision: Optional[str] = typer.Option(None, "--revision", help="Revision label (default: archive MD5)."),
) -> None:
    """Upload a prebuilt tar.gz archive as a new project revision."""

    with client_session(ctx) as client:
        proj = client.workflow.projects.create_from_archive(name, archive.read_bytes(), revision)
    emit(ctx, proj, title="Project uploaded")


@projects_app.command("workflows")
def project_workflows(ctx: typer.Context, project_id: str = typer.Argument(..., help="Project ID.")) -> None:
    with client_session(ctx) as client:
        workflows = client.workflow.projects.workflows(project_id)
    emit(ctx, _workflow_rows(workflows), columns=WORKFLOW_COLUMNS)


@projects_app.command("download")
def download_project(
    ctx: typer.Context,
    project: str = typer.Argument(..., help="Project ID, or name with --by-name."),
    output_dir: Path = typer.Argument(..., file_okay=False, help="Directory to extract into."),
    by_name: bool = typer.Option(False, "--by-name", help="Look the project up by name."),
    revision: Optional[str] = typer.Option(None, "--revision"),
) -> None:
    """Download a project archive and extract it into a directory."""

    with client_session(ctx) as client:
        if by_name:
            files = client.workflow.projects.download_by_name_to_directory(project, output_dir, revision)
        else:
            files = client.workflow.projects.download_to_directory(project, output_dir, revision)
    logger.debug("extracted %d files", len(files))
    emit_message(f"Extracted {len(files)} file(s) to {output_dir}")


@secrets_app.command("list")
def list_secrets(ctx: typer.Context, project_id: str = typer.Argument(..., help="Project ID.")) -> None:
    with client_session(ctx) as client:
        keys = client.workflow.projects.secrets(project_id)
    emit(ctx, [{"key": k} for k in keys], columns=("key",), title="Secrets")


@secrets_app.command("set")
def set_secret(
    ctx: typer.Context,
    project_id: str = typer.Argument(..., help="Project ID."),
    key: str = typer.Argument(..., help="Secret key."),
    value: Optional[str] = typer.Option(None, "--value", help="Secret value (prompted when omitted)."),
) -> None:
    if value is None:
        value = typer.prompt(f"Value for {key}", hide_input=True)
    with client_session(ctx) as client:
        client.workflow.projects.set_secret(project_id, key, value)
    emit_message(f"Secret {key} set")


@secrets_app.command("delete")
def delete_secret(
    ctx: typer.Context,
    project_id: str = typer.Argument(..., help="Project ID."),
    key: str = typer.Argument(..., help="Secret key."),
) -> None:
    with client_session(ctx) as client:
        client.workflow.projects.delete_secret(project_id, key)
    emit_message(f"Secret {key} deleted")
