"""Rendering of command results as table, JSON or CSV.

Every command hands its result (models, lists of models, dicts) to `emit`;
the global `--format` / `--output` options decide what happens next.
"""

from __future__ import annotations

import csv
import io
import json
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Sequence

import typer
from pydantic import BaseModel
from rich.console import Console

from treasuredata.adapters.json_exporter import dumps_json, export_json
from treasuredata.cli.session import get_state, info
from treasuredata.cli.ui_components import build_kv_table, build_records_table
from treasuredata.core.domain.fields import FlexibleText, compact_json

_console = Console()


class OutputFormat(str, Enum):
    TABLE = "table"
    JSON = "json"
    CSV = "csv"


def to_jsonable(data: Any) -> Any:
    """Models, flexible fields and datetimes down to plain JSON values."""

    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    if isinstance(data, FlexibleText):
        return data.encode()
    if isinstance(data, datetime):
        return data.isoformat()
    if isinstance(data, Enum):
        return data.value
    if isinstance(data, dict):
        return {str(k): to_jsonable(v) for k, v in data.items()}
    if isinstance(data, (list, tuple)):
        return [to_jsonable(v) for v in data]
    return data


def _flat(value: Any) -> Any:
    if isinstance(value, (dict, list)):
        return compact_json(value)
    return value


def _records(payload: Any) -> list[dict[str, Any]]:
    if isinstance(payload, list):
        return [item if isinstance(item, dict) else {"value": item} for item in payload]
    if isinstance(payload, dict):
        return [payload]
    return [{"value": payload}]


def _columns(records: Sequence[dict[str, Any]], columns: Sequence[str] | None) -> list[str]:
    if columns:
        return list(columns)
    seen: dict[str, None] = {}
    for record in records:
        for key in record:
            seen.setdefault(key, None)
    return list(seen)


def render_csv(payload: Any, columns: Sequence[str] | None = None) -> str:
    records = _records(payload)
    names = _columns(records, columns)
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(names)
    for record in records:
        writer.writerow(["" if record.get(n) is None else _flat(record.get(n)) for n in names])
    return buf.getvalue()


def _write_text(text: str, output: Path | None) -> None:
    if output is None:
        typer.echo(text, nl=not text.endswith("\n"))
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    info(f"[green]Saved:[/green] {output}")


def emit(
    ctx: typer.Context,
    data: Any,
    *,
    columns: Sequence[str] | None = None,
    title: str | None = None,
) -> None:
    """Print `data` in the selected format (or write it to `--output`)."""

    state = get_state(ctx)
    fmt = state.settings.format
    output = state.settings.output
    payload = to_jsonable(data)

    if fmt == OutputFormat.JSON.value:
        if output is not None:
            export_json(payload, output)
            info(f"[green]Saved:[/green] {output}")
        else:
            typer.echo(dumps_json(payload))
        return

    if fmt == OutputFormat.CSV.value:
        _write_text(render_csv(payload, columns), output)
        return

    if isinstance(payload, dict) and not columns:
        renderable = build_kv_table({k: _flat(v) for k, v in payload.items()}, title=title)
    else:
        records = [{k: _flat(v) for k, v in r.items()} for r in _records(payload)]
        renderable = build_records_table(records, _columns(records, columns), title=title)

    if output is None:
        _console.print(renderable)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    with output.open("w", encoding="utf-8") as fh:
        Console(file=fh, width=200, color_system=None).print(renderable)
    info(f"[green]Saved:[/green] {output}")


def emit_message(message: str) -> None:
    """Human status line for commands without a payload (delete, kill, ...)."""

    info(f"[green]{message}[/green]")


def emit_raw(data: str) -> None:
    """Print text as-is (logs, SQL), bypassing the format options."""

    typer.echo(data, nl=not data.endswith("\n"))


def parse_json_option(value: str | None, name: str) -> Any:
    """Decode a JSON-valued option such as `--params '{"k": 1}'`."""

    if value is None:
        return None
    try:
        return json.loads(value)
    except ValueError as exc:
        raise typer.BadParameter(f"{name} must be valid JSON: {exc}") from None
