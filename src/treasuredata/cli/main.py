"""Root Typer application (`tdcli`).

Global options override the environment (`TD_*`) and the .env files; the
resolved settings are stored on the Typer context for every sub-command.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError

from treasuredata import __version__
from treasuredata.cli import (
    bulk_import,
    cdp,
    databases,
    doctor,
    jobs,
    permissions,
    query,
    results,
    tables,
    users,
    workflow,
)
from treasuredata.cli.output import OutputFormat
from treasuredata.cli.session import CLIState, configure_logging, fail
from treasuredata.core.config import AppSettings
from treasuredata.core.domain.region import Region
from treasuredata.core.errors import TreasureDataError

app = typer.Typer(
    no_args_is_help=True,
    help="Treasure Data command line client: databases, jobs, results, CDP and workflows.",
)

app.add_typer(doctor.config_app, name="config")
app.command(name="doctor")(doctor.run)
app.add_typer(databases.app, name="databases")
app.add_typer(tables.app, name="tables")
app.add_typer(jobs.app, name="jobs")
app.add_typer(query.app, name="query")
app.add_typer(results.app, name="results")
app.add_typer(users.app, name="users")
app.add_typer(permissions.app, name="perms")
app.add_typer(bulk_import.app, name="import")
app.add_typer(cdp.app, name="cdp")
app.add_typer(workflow.app, name="workflow")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"tdcli {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    api_key: Optional[str] = typer.Option(None, "--api-key", help="API key (account_id/api_key). Overrides TD_API_KEY."),
    region: Optional[Region] = typer.Option(None, "--region", "-r", help="Region: us, eu, tokyo, ap02."),
    endpoint: Optional[str] = typer.Option(None, "--endpoint", help="Override the v3 API base URL."),
    output_format: Optional[OutputFormat] = typer.Option(None, "--format", "-f", help="Output format."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write output to a file."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging (requests, statuses)."),
    insecure: bool = typer.Option(False, "--insecure", help="Skip TLS certificate verification."),
    cert_file: Optional[Path] = typer.Option(None, "--cert-file", help="Client certificate (PEM)."),
    key_file: Optional[Path] = typer.Option(None, "--key-file", help="Client private key (PEM)."),
    ca_file: Optional[Path] = typer.Option(None, "--ca-file", help="Custom CA bundle (PEM)."),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show the version and exit."
    ),
) -> None:
    """Resolve settings for this invocation."""

    configure_logging(verbose)

    overrides = {
        "api_key": api_key,
        "region": region,
        "endpoint": endpoint,
        "format": output_format.value if output_format else None,
        "output": output,
        "insecure_skip_verify": True if insecure else None,
        "cert_file": cert_file,
        "key_file": key_file,
        "ca_file": ca_file,
    }
    try:
        settings = AppSettings(**{k: v for k, v in overrides.items() if v is not None})
    except ValidationError as exc:
        fail(f"invalid configuration: {exc}")

    ctx.obj = CLIState(settings, verbose=verbose)


def run() -> None:
    """Console-script entrypoint."""

    try:
        app()
    except TreasureDataError as exc:
        # Commands normally handle these; this catches anything raised outside a session.
        typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        sys.exit(1)


if __name__ == "__main__":
    run()
