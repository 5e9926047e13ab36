"""Doctor command and `config` sub-commands."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from treasuredata.cli.session import fail, get_state
from treasuredata.cli.ui_components import build_checks_table, build_kv_table, print_banner, status_label
from treasuredata.core.config import (
    AppSettings,
    get_user_env_file,
    mask_api_key,
    read_user_env_vars,
    validate_api_key,
    write_user_env_vars,
)
from treasuredata.core.domain.region import Region
from treasuredata.core.errors import TreasureDataError

config_app = typer.Typer(no_args_is_help=True, help="Show and edit the user configuration (.env).")

_console = Console()

CONFIG_KEYS = (
    "api_key",
    "region",
    "format",
    "output",
    "endpoint",
    "cdp_endpoint",
    "workflow_endpoint",
    "http_timeout_seconds",
)


def _check_value(key: str, value: str) -> str:
    """Validate one `config set` value; returns the normalized value."""

    if key not in CONFIG_KEYS:
        raise typer.BadParameter(f"unknown key {key!r}; valid keys: {', '.join(CONFIG_KEYS)}")
    if key == "api_key":
        try:
            return validate_api_key(value.strip())
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from None
    if key == "region":
        try:
            return Region(value.strip().lower()).value
        except ValueError:
            valid = ", ".join(r.value for r in Region)
            raise typer.BadParameter(f"invalid region {value!r}; valid regions: {valid}") from None
    if key == "format":
        value = value.strip().lower()
        if value not in ("table", "json", "csv"):
            raise typer.BadParameter("format must be one of: table, json, csv")
        return value
    if key == "http_timeout_seconds":
        try:
            if float(value) <= 0:
                raise ValueError
        except ValueError:
            raise typer.BadParameter("http_timeout_seconds must be a positive number") from None
    return value.strip()


def _display(settings: AppSettings) -> dict[str, str]:
    return {
        "api_key": mask_api_key(settings.api_key),
        "region": settings.region.value,
        "format": settings.format,
        "output": str(settings.output or ""),
        "endpoint": settings.api_base_url,
        "cdp_endpoint": settings.cdp_base_url,
        "workflow_endpoint": settings.workflow_base_url,
        "http_timeout_seconds": str(settings.http_timeout_seconds),
    }


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Show the effective configuration (API key masked)."""

    settings = get_state(ctx).settings
    _console.print(build_kv_table(_display(settings), title="Current configuration"))
    env_file = get_user_env_file()
    for i, path in enumerate((Path(".env"), env_file), start=1):
        mark = " [green]✓[/green]" if path.exists() else ""
        _console.print(f"  {i}. {path}{mark}")


@config_app.command("get")
def config_get(ctx: typer.Context, key: str = typer.Argument(..., help="Configuration key.")) -> None:
    """Print one effective configuration value."""

    if key not in CONFIG_KEYS:
        fail(f"unknown key {key!r}; valid keys: {', '.join(CONFIG_KEYS)}")
    typer.echo(_display(get_state(ctx).settings)[key])


@config_app.command("set")
def config_set(
    key: str = typer.Argument(..., help="Configuration key."),
    value: str = typer.Argument(..., help="New value."),
) -> None:
    """Store one value in the user .env."""

    env_path = write_user_env_vars({key: _check_value(key, value)})
    _console.print(f"[green]Saved {key} to:[/green] {env_path}")


@config_app.command("init")
def config_init() -> None:
    """Interactive setup (stores the API key and region in the user .env)."""

    current = read_user_env_vars()
    region = typer.prompt(
        "Region (us, eu, tokyo, ap02)",
        default=current.get("TD_REGION", Region.default().value),
        show_default=True,
    )
    region = _check_value("region", region)
    api_key = _check_value("api_key", typer.prompt("API key (account_id/api_key)", hide_input=True))
    output_format = _check_value(
        "format", typer.prompt("Output format", default=current.get("TD_FORMAT", "table"), show_default=True)
    )

    env_path = write_user_env_vars({"api_key": api_key, "region": region, "format": output_format})
    _console.print(f"[green]Saved config to:[/green] {env_path}")


def run(
    ctx: typer.Context,
    offline: bool = typer.Option(False, "--offline", help="Skip the authenticated API call."),
) -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = get_state(ctx).settings
    if settings.format == "table":
        print_banner(_console)

    table = build_checks_table("tdcli doctor")

    key_ok = True
    try:
        validate_api_key(settings.api_key)
        table.add_row("API key", status_label(True), mask_api_key(settings.api_key))
    except ValueError as exc:
        key_ok = False
        table.add_row("API key", status_label(False), str(exc))

    table.add_row("Region", status_label(True), f"{settings.region.value} ({settings.region.label()})")
    table.add_row("v3 API", status_label(True), settings.api_base_url)
    table.add_row("CDP API", status_label(True), settings.cdp_base_url)
    table.add_row("Workflow API", status_label(True), settings.workflow_base_url)

    env_file = get_user_env_file()
    table.add_row(
        "User config",
        status_label(True if env_file.exists() else None),
        str(env_file) if env_file.exists() else f"{env_file} (run `tdcli config init`)",
    )

    api_ok: bool | None = None
    if offline or not key_ok:
        table.add_row("Authenticated call", status_label(None), "skipped")
    else:
        try:
            with get_state(ctx).build_client() as client:
                count = len(client.databases.list())
            api_ok = True
            table.add_row("Authenticated call", status_label(True), f"{count} database(s) visible")
        except TreasureDataError as exc:
            api_ok = False
            table.add_row("Authenticated call", status_label(False), str(exc))

    _console.print(table)

    if not key_ok or api_ok is False:
        _console.print("\n[yellow]Note:[/yellow] check TD_API_KEY / TD_REGION or run `tdcli config init`.")
        raise typer.Exit(code=1)
