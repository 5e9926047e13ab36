"""`tdcli cdp`: audiences, segments, activations, folders, journeys, funnels,
tokens, predictive segments and activation templates.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import typer

from treasuredata.cli.output import emit, emit_message, parse_json_option
from treasuredata.cli.session import client_session
from treasuredata.core.domain.cdp import JSONAPIListResponse, JSONAPIResource, JSONAPIResponse

app = typer.Typer(no_args_is_help=True, help="Customer Data Platform.")
audiences_app = typer.Typer(no_args_is_help=True, help="Audiences (parent segments).")
segments_app = typer.Typer(no_args_is_help=True, help="Segments and segment queries.")
activations_app = typer.Typer(no_args_is_help=True, help="Activations (syndications).")
folders_app = typer.Typer(no_args_is_help=True, help="Entity folders.")
journeys_app = typer.Typer(no_args_is_help=True, help="Customer journeys.")
funnels_app = typer.Typer(no_args_is_help=True, help="Funnels (ordered segment stages).")
tokens_app = typer.Typer(no_args_is_help=True, help="Audience and entity tokens.")
predictive_app = typer.Typer(no_args_is_help=True, help="Predictive segments.")
templates_app = typer.Typer(no_args_is_help=True, help="Activation templates.")
app.add_typer(audiences_app, name="audiences")
app.add_typer(segments_app, name="segments")
app.add_typer(activations_app, name="activations")
app.add_typer(folders_app, name="folders")
app.add_typer(journeys_app, name="journeys")
app.add_typer(funnels_app, name="funnels")
app.add_typer(tokens_app, name="tokens")
app.add_typer(predictive_app, name="predictive-segments")
app.add_typer(templates_app, name="activation-templates")

AUDIENCE_COLUMNS = ("id", "name", "population", "schedule_type", "updated_at")
SEGMENT_COLUMNS = ("id", "name", "population", "realtime", "segment_folder_id", "updated_at")
ACTIVATION_COLUMNS = ("id", "name", "type", "segment_id", "status", "schedule_type")
EXECUTION_COLUMNS = ("workflow_id", "workflow_session_id", "status", "created_at", "finished_at")
RESOURCE_COLUMNS = ("id", "type", "name")
FUNNEL_COLUMNS = ("id", "name", "population", "segment_folder_id", "updated_at")
TOKEN_COLUMNS = ("id", "name", "type", "status", "key_column", "expires_at")
PREDICTIVE_COLUMNS = ("id", "name", "status", "population", "base_segment_id", "updated_at")
PREDICTIVE_EXECUTION_COLUMNS = ("id", "status", "created_at", "finished_at")


def _resource_row(resource: JSONAPIResource) -> dict[str, Any]:
    row: dict[str, Any] = {"id": resource.id.as_text(), "type": resource.type, "name": resource.name}
    for key, value in resource.attributes.items():
        row.setdefault(key, value)
    return row


def _resources(resp: JSONAPIListResponse) -> list[dict[str, Any]]:
    return [_resource_row(r) for r in resp.data]


def _resource(resp: JSONAPIResponse | None) -> dict[str, Any]:
    if resp is None or resp.data is None:
        return {}
    return _resource_row(resp.data)


def _load_document(path: Path) -> dict[str, Any]:
    data = parse_json_option(path.read_text(encoding="utf-8"), str(path))
    if not isinstance(data, dict):
        raise typer.BadParameter(f"{path} must contain a JSON object")
    return data


# ---------------------------------------------------------------------------
# Audiences
# ---------------------------------------------------------------------------


@audiences_app.command("list")
def list_audiences(ctx: typer.Context) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.cdp.audiences.list(), columns=AUDIENCE_COLUMNS, title="Audiences")


@audiences_app.command("get")
def get_audience(ctx: typer.Context, audience_id: str = typer.Argument(..., help="Audience ID.")) -> None:
    with client_session(ctx) as client:
        audience = client.cdp.audiences.get(audience_id)
    emit(ctx, audience.model_dump(mode="json", exclude={"attributes", "behaviors"}), title=audience.name)


@audiences_app.command("create")
def create_audience(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Audience name."),
    database: str = typer.Option(..., "--database", help="Parent (master) database."),
    table: str = typer.Option(..., "--table", help="Parent (master) table."),
    description: str = typer.Option("", "--description"),
) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.cdp.audiences.create(name, database, table, description=description), title="Audience created")


@audiences_app.command("update")
def update_audience(
    ctx: typer.Context,
    audience_id: str = typer.Argument(..., help="Audience ID."),
    body: str = typer.Option(..., "--json", help="Updated settings (camelCase JSON)."),
) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.cdp.audiences.update(audience_id, parse_json_option(body, "--json")))


@audiences_app.command("delete")
def delete_audience(ctx: typer.Context, audience_id: str = typer.Argument(..., help="Audience ID.")) -> None:
    with client_session(ctx) as client:
        client.cdp.audiences.delete(audience_id)
    emit_message(f"Audience {audience_id} deleted")


@audiences_app.command("attributes")
def audience_attributes(ctx: typer.Context, audience_id: str = typer.Argument(..., help="Audience ID.")) -> None:
    with client_session(ctx) as client:
        emit(
            ctx,
            client.cdp.audiences.attributes(audience_id),
            columns=("name", "type", "parent_table_name", "parent_column"),
        )


@audiences_app.command("behaviors")
def audience_behaviors(ctx: typer.Context, audience_id: str = typer.Argument(..., help="Audience ID.")) -> None:
    with client_session(ctx) as client:
        emit(
            ctx,
            client.cdp.audiences.behaviors(audience_id),
            columns=("id", "name", "parent_database_name", "parent_table_name"),
        )


@audiences_app.command("run")
def run_audience(ctx: typer.Context, audience_id: str = typer.Argument(..., help="Audience ID.")) -> None:
    """Start the audience (master segment) build workflow."""

    with client_session(ctx) as client:
        emit(ctx, client.cdp.audiences.run(audience_id), title="Audience run")


@audiences_app.command("executions")
def audience_executions(ctx: typer.Context, audience_id: str = typer.Argument(..., help="Audience ID.")) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.cdp.audiences.executions(audience_id), columns=EXECUTION_COLUMNS)


@audiences_app.command("statistics")
def audience_statistics(ctx: typer.Context, audience_id: str = typer.Argument(..., help="Audience ID.")) -> None:
    with client_session(ctx) as client:
        points = client.cdp.audiences.statistics(audience_id)
    emit(ctx, [_point(p) for p in points], columns=("time", "population", "has_data"))


def _point(point: list[Any]) -> dict[str, Any]:
    padded = list(point) + [None] * (3 - len(point))
    return {"time": padded[0], "population": padded[1], "has_data": padded[2]}


@audiences_app.command("folders")
def audience_folders(ctx: typer.Context, audience_id: str = typer.Argument(..., help="Audience ID.")) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.cdp.audiences.list_folders(audience_id), columns=("id", "name", "parent_folder_id", "path"))


@audiences_app.command("create-folder")
def create_audience_folder(
    ctx: typer.Context,
    audience_id: str = typer.Argument(..., help="Audience ID."),
    name: str = typer.Argument(..., help="Folder name."),
    parent_id: Optional[str] = typer.Option(None, "--parent", help="Parent folder ID."),
    description: str = typer.Option("", "--description"),
) -> None:
    with client_session(ctx) as client:
        folder = client.cdp.audiences.create_folder(
            audience_id, name, description=description, parent_id=parent_id
        )
    emit(ctx, folder, title="Folder created")


@audiences_app.command("delete-folder")
def delete_audience_folder(
    ctx: typer.Context,
    audience_id: str = typer.Argument(..., help="Audience ID."),
    folder_id: str = typer.Argument(..., help="Folder ID."),
) -> None:
    with client_session(ctx) as client:
        client.cdp.audiences.delete_folder(audience_id, folder_id)
    emit_message(f"Folder {folder_id} deleted")


# ---------------------------------------------------------------------------
# Segments
# ---------------------------------------------------------------------------


@segments_app.command("list")
def list_segments(
    ctx: typer.Context,
    audience_id: str = typer.Argument(..., help="Audience ID."),
    folder_id: Optional[str] = typer.Option(None, "--folder", help="Only segments in this folder."),
    limit: Optional[int] = typer.Option(None, "--limit", min=1),
    offset: Optional[int] = typer.Option(None, "--offset", min=0),
) -> None:
    with client_session(ctx) as client:
        if folder_id:
            segments = client.cdp.segments.list_in_folder(audience_id, folder_id, limit=limit, offset=offset)
        else:
            segments = client.cdp.segments.list(audience_id, limit=limit, offset=offset)
    emit(ctx, segments, columns=SEGMENT_COLUMNS, title="Segments")


@segments_app.command("get")
def get_segment(
    ctx: typer.Context,
    audience_id: str = typer.Argument(..., help="Audience ID."),
    segment_id: str = typer.Argument(..., help="Segment ID."),
) -> None:
    with client_session(ctx) as client:
        segment = client.cdp.segments.get(audience_id, segment_id)
    emit(ctx, segment, title=segment.name)


@segments_app.command("create")
def create_segment(
    ctx: typer.Context,
    audience_id: str = typer.Argument(..., help="Audience ID."),
    name: str = typer.Argument(..., help="Segment name."),
    query: str = typer.Option(..., "--query", help="Segment SQL condition."),
    description: str = typer.Option("", "--description"),
) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.cdp.segments.create(audience_id, name, query, description=description), title="Segment created")


@segments_app.command("update")
def update_segment(
    ctx: typer.Context,
    audience_id: str = typer.Argument(..., help="Audience ID."),
    segment_id: str = typer.Argument(..., help="Segment ID."),
    body: str = typer.Option(..., "--json", help="Updated fields as JSON."),
) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.cdp.segments.update(audience_id, segment_id, parse_json_option(body, "--json")))


@segments_app.command("delete")
def delete_segment(
    ctx: typer.Context,
    audience_id: str = typer.Argument(..., help="Audience ID."),
    segment_id: str = typer.Argument(..., help="Segment ID."),
) -> None:
    with client_session(ctx) as client:
        client.cdp.segments.delete(audience_id, segment_id)
    emit_message(f"Segment {segment_id} deleted")


@segments_app.command("statistics")
def segment_statistics(
    ctx: typer.Context,
    audience_id: str = typer.Argument(..., help="Audience ID."),
    segment_id: str = typer.Argument(..., help="Segment ID."),
) -> None:
    with client_session(ctx) as client:
        points = client.cdp.segments.statistics(audience_id, segment_id)
    emit(ctx, [_point(p) for p in points], columns=("time", "population", "has_data"))


@segments_app.command("query")
def segment_query(
    ctx: typer.Context,
    audience_id: str = typer.Argument(..., help="Audience ID."),
    query: str = typer.Argument(..., help="Segment SQL condition."),
) -> None:
    """Start an ad-hoc segment query (population estimate)."""

    with client_session(ctx) as client:
        emit(ctx, client.cdp.segments.create_query(audience_id, query), title="Segment query")


@segments_app.command("query-status")
def segment_query_status(
    ctx: typer.Context,
    audience_id: str = typer.Argument(..., help="Audience ID."),
    query_id: str = typer.Argument(..., help="Query ID."),
) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.cdp.segments.query_status(audience_id, query_id), title=f"Query {query_id}")


@segments_app.command("kill-query")
def kill_segment_query(
    ctx: typer.Context,
    audience_id: str = typer.Argument(..., help="Audience ID."),
    query_id: str = typer.Argument(..., help="Query ID."),
) -> None:
    with client_session(ctx) as client:
        client.cdp.segments.kill_query(audience_id, query_id)
    emit_message(f"Query {query_id} kill requested")


@segments_app.command("customers")
def segment_customers(
    ctx: typer.Context,
    audience_id: str = typer.Argument(..., help="Audience ID."),
    query_id: str = typer.Argument(..., help="Query ID."),
    limit: Optional[int] = typer.Option(None, "--limit", min=1),
    offset: Optional[int] = typer.Option(None, "--offset", min=0),
) -> None:
    with client_session(ctx) as client:
        resp = client.cdp.segments.query_customers(audience_id, query_id, limit=limit, offset=offset)
    rows = [{"id": c.id.as_text(), **c.attributes} for c in resp.customers]
    emit(ctx, rows, title=f"Customers ({resp.total})")


@segments_app.command("entities")
def list_segment_entities(ctx: typer.Context) -> None:
    """List segment entities (JSON:API)."""

    with client_session(ctx) as client:
        emit(ctx, _resources(client.cdp.segments.list_entities()), columns=RESOURCE_COLUMNS)


@segments_app.command("entity")
def get_segment_entity(ctx: typer.Context, segment_id: str = typer.Argument(..., help="Segment ID.")) -> None:
    with client_session(ctx) as client:
        emit(ctx, _resource(client.cdp.segments.get_entity(segment_id)))


@segments_app.command("create-entity")
def create_segment_entity(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Segment name."),
    folder_id: str = typer.Option(..., "--folder", help="Parent segment folder ID."),
    description: str = typer.Option("", "--description"),
    attributes: Optional[str] = typer.Option(None, "--attributes", help="Extra attributes (rule, kind) as JSON."),
) -> None:
    with client_session(ctx) as client:
        resp = client.cdp.segments.create_entity(
            name, folder_id, description=description, attributes=parse_json_option(attributes, "--attributes")
        )
    emit(ctx, _resource(resp), title="Segment created")


@segments_app.command("update-entity")
def update_segment_entity(
    ctx: typer.Context,
    segment_id: str = typer.Argument(..., help="Segment ID."),
    attributes: str = typer.Option(..., "--attributes", help="Attributes as JSON."),
) -> None:
    with client_session(ctx) as client:
        resp = client.cdp.segments.update_entity(segment_id, parse_json_option(attributes, "--attributes"))
    emit(ctx, _resource(resp))


@segments_app.command("delete-entity")
def delete_segment_entity(ctx: typer.Context, segment_id: str = typer.Argument(..., help="Segment ID.")) -> None:
    with client_session(ctx) as client:
        client.cdp.segments.delete_entity(segment_id)
    emit_message(f"Segment {segment_id} deleted")


# ---------------------------------------------------------------------------
# Activations
# ---------------------------------------------------------------------------


@activations_app.command("list")
def list_activations(
    ctx: typer.Context,
    audience_id: Optional[str] = typer.Option(None, "--audience", help="All activations of an audience."),
    segment_id: Optional[str] = typer.Option(None, "--segment", help="Activations of an entity segment."),
    status: Optional[str] = typer.Option(None, "--status"),
) -> None:
    if not audience_id and not segment_id:
        raise typer.BadParameter("pass --audience or --segment")
    with client_session(ctx) as client:
        if segment_id:
            activations = client.cdp.activations.list_for_segment(segment_id)
        else:
            activations = client.cdp.activations.list(audience_id, status=status)
    emit(ctx, activations, columns=ACTIVATION_COLUMNS, title="Activations")


@activations_app.command("get")
def get_activation(
    ctx: typer.Context,
    audience_id: str = typer.Argument(..., help="Audience ID."),
    segment_id: str = typer.Argument(..., help="Segment ID."),
    activation_id: str = typer.Argument(..., help="Activation ID."),
) -> None:
    with client_session(ctx) as client:
        activation = client.cdp.activations.get(audience_id, segment_id, activation_id)
    emit(ctx, activation.model_dump(mode="json", exclude={"executions"}), title=activation.name)


@activations_app.command("create")
def create_activation(
    ctx: typer.Context,
    segment_id: str = typer.Argument(..., help="Entity segment ID."),
    name: str = typer.Argument(..., help="Activation name."),
    description: str = typer.Option("", "--description"),
    attributes: Optional[str] = typer.Option(None, "--attributes", help="connectionId, columns, schedule as JSON."),
) -> None:
    with client_session(ctx) as client:
        activation = client.cdp.activations.create(
            segment_id, name, description=description, attributes=parse_json_option(attributes, "--attributes")
        )
    emit(ctx, activation, title="Activation created")


@activations_app.command("update")
def update_activation(
    ctx: typer.Context,
    audience_id: str = typer.Argument(..., help="Audience ID."),
    segment_id: str = typer.Argument(..., help="Segment ID."),
    activation_id: str = typer.Argument(..., help="Activation ID."),
    body: str = typer.Option(..., "--json", help="Updated fields as JSON."),
) -> None:
    with client_session(ctx) as client:
        emit(
            ctx,
            client.cdp.activations.update(audience_id, segment_id, activation_id, parse_json_option(body, "--json")),
        )


@activations_app.command("set-status")
def set_activation_status(
    ctx: typer.Context,
    audience_id: str = typer.Argument(..., help="Audience ID."),
    segment_id: str = typer.Argument(..., help="Segment ID."),
    activation_id: str = typer.Argument(..., help="Activation ID."),
    status: str = typer.Argument(..., help="New status."),
) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.cdp.activations.update_status(audience_id, segment_id, activation_id, status))


@activations_app.command("delete")
def delete_activation(
    ctx: typer.Context,
    audience_id: str = typer.Argument(..., help="Audience ID."),
    segment_id: str = typer.Argument(..., help="Segment ID."),
    activation_id: str = typer.Argument(..., help="Activation ID."),
) -> None:
    with client_session(ctx) as client:
        client.cdp.activations.delete(audience_id, segment_id, activation_id)
    emit_message(f"Activation {activation_id} deleted")


@activations_app.command("execute")
def execute_activation(
    ctx: typer.Context,
    audience_id: str = typer.Argument(..., help="Audience ID."),
    segment_id: str = typer.Argument(..., help="Segment ID."),
    activation_id: str = typer.Argument(..., help="Activation ID."),
) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.cdp.activations.execute(audience_id, segment_id, activation_id), title="Activation run")


@activations_app.command("executions")
def activation_executions(
    ctx: typer.Context,
    audience_id: str = typer.Argument(..., help="Audience ID."),
    segment_id: str = typer.Argument(..., help="Segment ID."),
    activation_id: str = typer.Argument(..., help="Activation ID."),
) -> None:
    with client_session(ctx) as client:
        runs = client.cdp.activations.executions(audience_id, segment_id, activation_id)
    emit(ctx, runs, columns=EXECUTION_COLUMNS)


# ---------------------------------------------------------------------------
# Entity folders
# ---------------------------------------------------------------------------


@folders_app.command("get")
def get_folder(ctx: typer.Context, folder_id: str = typer.Argument(..., help="Folder ID.")) -> None:
    with client_session(ctx) as client:
        emit(ctx, _resource(client.cdp.folders.get(folder_id)))


@folders_app.command("create")
def create_folder(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Folder name."),
    parent_id: Optional[str] = typer.Option(None, "--parent", help="Parent folder ID."),
    description: str = typer.Option("", "--description"),
) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.cdp.folders.create(name, description=description, parent_id=parent_id), title="Folder created")


@folders_app.command("update")
def update_folder(
    ctx: typer.Context,
    folder_id: str = typer.Argument(..., help="Folder ID."),
    name: Optional[str] = typer.Option(None, "--name"),
    description: Optional[str] = typer.Option(None, "--description"),
) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.cdp.folders.update(folder_id, name=name, description=description))


@folders_app.command("delete")
def delete_folder(ctx: typer.Context, folder_id: str = typer.Argument(..., help="Folder ID.")) -> None:
    with client_session(ctx) as client:
        client.cdp.folders.delete(folder_id)
    emit_message(f"Folder {folder_id} deleted")


@folders_app.command("entities")
def folder_entities(ctx: typer.Context, folder_id: str = typer.Argument(..., help="Folder ID.")) -> None:
    """Segments, journeys and sub-folders inside a folder."""

    with client_session(ctx) as client:
        emit(ctx, _resources(client.cdp.folders.entities(folder_id)), columns=RESOURCE_COLUMNS)


# ---------------------------------------------------------------------------
# Journeys
# ---------------------------------------------------------------------------


@journeys_app.command("list")
def list_journeys(ctx: typer.Context, folder_id: str = typer.Argument(..., help="Folder ID.")) -> None:
    with client_session(ctx) as client:
        emit(ctx, _resources(client.cdp.journeys.list(folder_id)), columns=("id", "name", "state"))


@journeys_app.command("get")
def get_journey(
    ctx: typer.Context,
    journey_id: str = typer.Argument(..., help="Journey ID."),
    detail: bool = typer.Option(False, "--detail", help="Include stages and steps."),
) -> None:
    with client_session(ctx) as client:
        resp = client.cdp.journeys.detail(journey_id) if detail else client.cdp.journeys.get(journey_id)
    emit(ctx, _resource(resp))


@journeys_app.command("create")
def create_journey(
    ctx: typer.Context,
    document: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON:API document file."),
) -> None:
    with client_session(ctx) as client:
        emit(ctx, _resource(client.cdp.journeys.create(_load_document(document))), title="Journey created")


@journeys_app.command("update")
def update_journey(
    ctx: typer.Context,
    journey_id: str = typer.Argument(..., help="Journey ID."),
    document: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON:API document file."),
) -> None:
    with client_session(ctx) as client:
        emit(ctx, _resource(client.cdp.journeys.update(journey_id, _load_document(document))))


@journeys_app.command("delete")
def delete_journey(ctx: typer.Context, journey_id: str = typer.Argument(..., help="Journey ID.")) -> None:
    with client_session(ctx) as client:
        client.cdp.journeys.delete(journey_id)
    emit_message(f"Journey {journey_id} deleted")


@journeys_app.command("statistics")
def journey_statistics(
    ctx: typer.Context,
    journey_id: str = typer.Argument(..., help="Journey ID."),
    from_: Optional[str] = typer.Option(None, "--from", help="Start day (YYYY-MM-DD)."),
    to: Optional[str] = typer.Option(None, "--to", help="End day (YYYY-MM-DD)."),
) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.cdp.journeys.statistics(journey_id, from_=from_, to=to), title="Journey statistics")


@journeys_app.command("pause")
def pause_journey(ctx: typer.Context, journey_id: str = typer.Argument(..., help="Journey ID.")) -> None:
    with client_session(ctx) as client:
        client.cdp.journeys.pause(journey_id)
    emit_message(f"Journey {journey_id} paused")


@journeys_app.command("resume")
def resume_journey(ctx: typer.Context, journey_id: str = typer.Argument(..., help="Journey ID.")) -> None:
    with client_session(ctx) as client:
        client.cdp.journeys.resume(journey_id)
    emit_message(f"Journey {journey_id} resumed")


# ---------------------------------------------------------------------------
# Funnels
# ---------------------------------------------------------------------------


def _stages(value: str) -> list[Any]:
    stages = parse_json_option(value, "--stages")
    if not isinstance(stages, list):
        raise typer.BadParameter("--stages must be a JSON array")
    return stages


@funnels_app.command("list")
def list_funnels(ctx: typer.Context, audience_id: str = typer.Argument(..., help="Audience ID.")) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.cdp.funnels.list(audience_id), columns=FUNNEL_COLUMNS, title="Funnels")


@funnels_app.command("get")
def get_funnel(
    ctx: typer.Context,
    audience_id: str = typer.Argument(..., help="Audience ID."),
    funnel_id: str = typer.Argument(..., help="Funnel ID."),
) -> None:
    with client_session(ctx) as client:
        funnel = client.cdp.funnels.get(audience_id, funnel_id)
    emit(ctx, funnel, title=funnel.name)


@funnels_app.command("create")
def create_funnel(
    ctx: typer.Context,
    audience_id: str = typer.Argument(..., help="Audience ID."),
    name: str = typer.Argument(..., help="Funnel name."),
    stages: str = typer.Option(..., "--stages", help='Stages as JSON, e.g. [{"name": "...", "segmentId": 1}].'),
    description: str = typer.Option("", "--description"),
    folder_id: Optional[str] = typer.Option(None, "--folder", help="Segment folder ID."),
) -> None:
    with client_session(ctx) as client:
        funnel = client.cdp.funnels.create(
            audience_id, name, _stages(stages), description=description, segment_folder_id=folder_id
        )
    emit(ctx, funnel, title="Funnel created")


@funnels_app.command("update")
def update_funnel(
    ctx: typer.Context,
    audience_id: str = typer.Argument(..., help="Audience ID."),
    funnel_id: str = typer.Argument(..., help="Funnel ID."),
    name: str = typer.Option(..., "--name"),
    stages: str = typer.Option(..., "--stages", help="Stages as JSON."),
    description: str = typer.Option("", "--description"),
    folder_id: Optional[str] = typer.Option(None, "--folder", help="Segment folder ID."),
) -> None:
    with client_session(ctx) as client:
        funnel = client.cdp.funnels.update(
            audience_id, funnel_id, name, _stages(stages), description=description, segment_folder_id=folder_id
        )
    emit(ctx, funnel)


@funnels_app.command("delete")
def delete_funnel(
    ctx: typer.Context,
    audience_id: str = typer.Argument(..., help="Audience ID."),
    funnel_id: str = typer.Argument(..., help="Funnel ID."),
) -> None:
    with client_session(ctx) as client:
        client.cdp.funnels.delete(audience_id, funnel_id)
    emit_message(f"Funnel {funnel_id} deleted")


@funnels_app.command("clone")
def clone_funnel(
    ctx: typer.Context,
    audience_id: str = typer.Argument(..., help="Audience ID."),
    funnel_id: str = typer.Argument(..., help="Funnel ID."),
    name: str = typer.Argument(..., help="Name of the copy."),
    description: str = typer.Option("", "--description"),
    folder_id: Optional[str] = typer.Option(None, "--folder", help="Segment folder ID."),
) -> None:
    with client_session(ctx) as client:
        funnel = client.cdp.funnels.clone(
            audience_id, funnel_id, name, description=description, segment_folder_id=folder_id
        )
    emit(ctx, funnel, title="Funnel cloned")


@funnels_app.command("statistics")
def funnel_statistics(
    ctx: typer.Context,
    audience_id: str = typer.Argument(..., help="Audience ID."),
    funnel_id: str = typer.Argument(..., help="Funnel ID."),
    limit: Optional[int] = typer.Option(None, "--limit", min=1, help="History points per stage."),
) -> None:
    with client_session(ctx) as client:
        stats = client.cdp.funnels.statistics(audience_id, funnel_id, limit=limit)
    rows = [
        {"stage_id": stage.id.as_text(), **_point(point)} for stage in stats.stages for point in stage.history
    ]
    emit(ctx, rows, columns=("stage_id", "time", "population", "has_data"), title=f"Population {stats.population}")


@funnels_app.command("create-entity")
def create_funnel_entity(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Funnel name."),
    stages: str = typer.Option(..., "--stages", help="Stages as JSON."),
    description: str = typer.Option("", "--description"),
    folder_id: Optional[str] = typer.Option(None, "--folder", help="Parent folder ID."),
) -> None:
    with client_session(ctx) as client:
        resp = client.cdp.funnels.create_entity(
            name, _stages(stages), description=description, parent_folder_id=folder_id
        )
    emit(ctx, _resource(resp), title="Funnel created")


@funnels_app.command("entity")
def get_funnel_entity(ctx: typer.Context, funnel_id: str = typer.Argument(..., help="Funnel ID.")) -> None:
    with client_session(ctx) as client:
        emit(ctx, _resource(client.cdp.funnels.get_entity(funnel_id)))


@funnels_app.command("update-entity")
def update_funnel_entity(
    ctx: typer.Context,
    funnel_id: str = typer.Argument(..., help="Funnel ID."),
    attributes: str = typer.Option(..., "--attributes", help="Attributes as JSON."),
) -> None:
    with client_session(ctx) as client:
        resp = client.cdp.funnels.update_entity(funnel_id, parse_json_option(attributes, "--attributes"))
    emit(ctx, _resource(resp))


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


def _columns_option(value: str) -> list[str]:
    """Accept a JSON array or a comma-separated list of column names."""

    text = value.strip()
    if text.startswith("["):
        columns = parse_json_option(text, "--attribute-columns")
        return [str(c) for c in columns]
    return [c.strip() for c in text.split(",") if c.strip()]


def _token_updates(pairs: list[str]) -> dict[str, Any]:
    updates: dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep:
            raise typer.BadParameter(f"expected key=value, got {pair!r}")
        key = key.strip()
        if key == "scopes":
            updates[key] = [s.strip() for s in value.split(",") if s.strip()]
        elif key == "metadata":
            updates[key] = parse_json_option(value, "metadata")
        elif key in ("name", "description", "status", "expires_at"):
            updates[key] = value
        else:
            raise typer.BadParameter(f"unknown token field {key!r}")
    return updates


@tokens_app.command("list")
def list_tokens(
    ctx: typer.Context,
    audience_id: str = typer.Argument(..., help="Audience ID."),
    limit: Optional[int] = typer.Option(None, "--limit", min=1),
    offset: Optional[int] = typer.Option(None, "--offset", min=0),
    type_: Optional[str] = typer.Option(None, "--type", help="Token type filter."),
    status: Optional[str] = typer.Option(None, "--status", help="Token status filter."),
) -> None:
    with client_session(ctx) as client:
        tokens = client.cdp.tokens.list(audience_id, limit=limit, offset=offset, type=type_, status=status)
    emit(ctx, tokens, columns=TOKEN_COLUMNS, title="Tokens")


@tokens_app.command("get")
def get_token(
    ctx: typer.Context,
    audience_id: str = typer.Argument(..., help="Audience ID."),
    token_id: str = typer.Argument(..., help="Token ID."),
) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.cdp.tokens.get(audience_id, token_id))


@tokens_app.command("create")
def create_token(
    ctx: typer.Context,
    audience_id: str = typer.Argument(..., help="Audience ID."),
    key_column: str = typer.Option(..., "--key-column", help="Lookup key column."),
    attribute_columns: str = typer.Option(..., "--attribute-columns", help="Columns (JSON array or comma list)."),
    description: Optional[str] = typer.Option(None, "--description"),
) -> None:
    with client_session(ctx) as client:
        token = client.cdp.tokens.create(
            audience_id, key_column, _columns_option(attribute_columns), description=description
        )
    emit(ctx, token, title="Token created")


@tokens_app.command("update")
def update_token(
    ctx: typer.Context,
    audience_id: str = typer.Argument(..., help="Audience ID."),
    token_id: str = typer.Argument(..., help="Token ID."),
    key_column: str = typer.Option(..., "--key-column", help="Lookup key column."),
    attribute_columns: str = typer.Option(..., "--attribute-columns", help="Columns (JSON array or comma list)."),
    description: Optional[str] = typer.Option(None, "--description"),
) -> None:
    with client_session(ctx) as client:
        token = client.cdp.tokens.update(
            audience_id, token_id, key_column, _columns_option(attribute_columns), description=description
        )
    emit(ctx, token)


@tokens_app.command("delete")
def delete_token(
    ctx: typer.Context,
    audience_id: str = typer.Argument(..., help="Audience ID."),
    token_id: str = typer.Argument(..., help="Token ID."),
) -> None:
    with client_session(ctx) as client:
        client.cdp.tokens.delete(audience_id, token_id)
    emit_message(f"Token {token_id} deleted")


@tokens_app.command("create-entity")
def create_token_entity(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Token name."),
    key_column: str = typer.Option(..., "--key-column", help="Lookup key column."),
    attribute_columns: str = typer.Option(..., "--attribute-columns", help="Columns (JSON array or comma list)."),
    description: Optional[str] = typer.Option(None, "--description"),
) -> None:
    with client_session(ctx) as client:
        token = client.cdp.tokens.create_entity(
            name, key_column, _columns_option(attribute_columns), description=description
        )
    emit(ctx, token, title="Token created")


@tokens_app.command("entity")
def get_token_entity(ctx: typer.Context, token_id: str = typer.Argument(..., help="Token ID.")) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.cdp.tokens.get_entity(token_id))


@tokens_app.command("update-entity")
def update_token_entity(
    ctx: typer.Context,
    token_id: str = typer.Argument(..., help="Token ID."),
    pairs: list[str] = typer.Argument(
        ..., help="Fields as key=value: name, description, status, expires_at, scopes (a,b), metadata (JSON)."
    ),
) -> None:
    updates = _token_updates(pairs)
    with client_session(ctx) as client:
        emit(ctx, client.cdp.tokens.update_entity(token_id, **updates))


@tokens_app.command("delete-entity")
def delete_token_entity(ctx: typer.Context, token_id: str = typer.Argument(..., help="Token ID.")) -> None:
    with client_session(ctx) as client:
        client.cdp.tokens.delete_entity(token_id)
    emit_message(f"Token {token_id} deleted")


# ---------------------------------------------------------------------------
# Predictive segments
# ---------------------------------------------------------------------------


def _thresholds(value: str) -> list[Any]:
    thresholds = parse_json_option(value, "--grade-thresholds")
    if not isinstance(thresholds, list):
        raise typer.BadParameter("--grade-thresholds must be a JSON array")
    return thresholds


@predictive_app.command("list")
def list_predictive_segments(ctx: typer.Context, audience_id: str = typer.Argument(..., help="Audience ID.")) -> None:
    with client_session(ctx) as client:
        emit(
            ctx,
            client.cdp.predictive_segments.list(audience_id),
            columns=PREDICTIVE_COLUMNS,
            title="Predictive segments",
        )


@predictive_app.command("get")
def get_predictive_segment(
    ctx: typer.Context,
    audience_id: str = typer.Argument(..., help="Audience ID."),
    predictive_segment_id: str = typer.Argument(..., help="Predictive segment ID."),
) -> None:
    with client_session(ctx) as client:
        segment = client.cdp.predictive_segments.get(audience_id, predictive_segment_id)
    emit(ctx, segment, title=segment.name)


@predictive_app.command("create")
def create_predictive_segment(
    ctx: typer.Context,
    audience_id: str = typer.Argument(..., help="Audience ID."),
    name: str = typer.Argument(..., help="Predictive segment name."),
    base_segment_id: str = typer.Option(..., "--base-segment", help="Segment the model scores."),
    grade_thresholds: str = typer.Option(..., "--grade-thresholds", help="Three thresholds as JSON."),
    description: str = typer.Option("", "--description"),
    attributes: Optional[str] = typer.Option(None, "--attributes", help="Model settings as JSON."),
) -> None:
    with client_session(ctx) as client:
        segment = client.cdp.predictive_segments.create(
            audience_id,
            name,
            base_segment_id,
            _thresholds(grade_thresholds),
            description=description,
            attributes=parse_json_option(attributes, "--attributes"),
        )
    emit(ctx, segment, title="Predictive segment created")


@predictive_app.command("update")
def update_predictive_segment(
    ctx: typer.Context,
    audience_id: str = typer.Argument(..., help="Audience ID."),
    predictive_segment_id: str = typer.Argument(..., help="Predictive segment ID."),
    body: str = typer.Option(..., "--json", help="Updated fields as JSON."),
) -> None:
    with client_session(ctx) as client:
        segment = client.cdp.predictive_segments.update(
            audience_id, predictive_segment_id, parse_json_option(body, "--json")
        )
    emit(ctx, segment)


@predictive_app.command("delete")
def delete_predictive_segment(
    ctx: typer.Context,
    audience_id: str = typer.Argument(..., help="Audience ID."),
    predictive_segment_id: str = typer.Argument(..., help="Predictive segment ID."),
) -> None:
    with client_session(ctx) as client:
        client.cdp.predictive_segments.delete(audience_id, predictive_segment_id)
    emit_message(f"Predictive segment {predictive_segment_id} deleted")


@predictive_app.command("train")
def train_predictive_segment(
    ctx: typer.Context,
    audience_id: str = typer.Argument(..., help="Audience ID."),
    predictive_segment_id: str = typer.Argument(..., help="Predictive segment ID."),
) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.cdp.predictive_segments.train(audience_id, predictive_segment_id), title="Training started")


@predictive_app.command("executions")
def predictive_segment_executions(
    ctx: typer.Context,
    audience_id: str = typer.Argument(..., help="Audience ID."),
    predictive_segment_id: str = typer.Argument(..., help="Predictive segment ID."),
) -> None:
    with client_session(ctx) as client:
        executions = client.cdp.predictive_segments.executions(audience_id, predictive_segment_id)
    emit(ctx, executions, columns=PREDICTIVE_EXECUTION_COLUMNS)


@predictive_app.command("guess-rule")
def guess_predictive_rule(ctx: typer.Context, audience_id: str = typer.Argument(..., help="Audience ID.")) -> None:
    with client_session(ctx) as client:
        emit(ctx, client.cdp.predictive_segments.guess_rule(audience_id))


@predictive_app.command("model")
def predictive_segment_model(
    ctx: typer.Context,
    audience_id: str = typer.Argument(..., help="Audience ID."),
    predictive_segment_id: str = typer.Argument(..., help="Predictive segment ID."),
    view: str = typer.Option("features", "--view", help="columns, features or histogram."),
) -> None:
    service_calls = {"columns": "model_columns", "features": "model_features", "histogram": "score_histogram"}
    if view not in service_calls:
        raise typer.BadParameter("--view must be one of: columns, features, histogram")
    with client_session(ctx) as client:
        data = getattr(client.cdp.predictive_segments, service_calls[view])(audience_id, predictive_segment_id)
    emit(ctx, data)


@predictive_app.command("create-entity")
def create_predictive_entity(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Predictive segment name."),
    grade_thresholds: str = typer.Option(..., "--grade-thresholds", help="Three thresholds as JSON."),
    base_segment_id: Optional[str] = typer.Option(None, "--base-segment", help="Segment the model scores."),
    folder_id: Optional[str] = typer.Option(None, "--folder", help="Parent folder ID."),
    description: str = typer.Option("", "--description"),
    attributes: Optional[str] = typer.Option(None, "--attributes", help="Model settings as JSON."),
) -> None:
    with client_session(ctx) as client:
        resp = client.cdp.predictive_segments.create_entity(
            name,
            _thresholds(grade_thresholds),
            base_segment_id=base_segment_id,
            parent_folder_id=folder_id,
            description=description,
            attributes=parse_json_option(attributes, "--attributes"),
        )
    emit(ctx, _resource(resp), title="Predictive segment created")


@predictive_app.command("entity")
def get_predictive_entity(
    ctx: typer.Context, predictive_segment_id: str = typer.Argument(..., help="Predictive segment ID.")
) -> None:
    with client_session(ctx) as client:
        emit(ctx, _resource(client.cdp.predictive_segments.get_entity(predictive_segment_id)))


@predictive_app.command("update-entity")
def update_predictive_entity(
    ctx: typer.Context,
    predictive_segment_id: str = typer.Argument(..., help="Predictive segment ID."),
    attributes: str = typer.Option(..., "--attributes", help="Attributes as JSON."),
) -> None:
    with client_session(ctx) as client:
        resp = client.cdp.predictive_segments.update_entity(
            predictive_segment_id, parse_json_option(attributes, "--attributes")
        )
    emit(ctx, _resource(resp))


@predictive_app.command("delete-entity")
def delete_predictive_entity(
    ctx: typer.Context, predictive_segment_id: str = typer.Argument(..., help="Predictive segment ID.")
) -> None:
    with client_session(ctx) as client:
        client.cdp.predictive_segments.delete_entity(predictive_segment_id)
    emit_message(f"Predictive segment {predictive_segment_id} deleted")


@predictive_app.command("run-entity")
def run_predictive_entity(
    ctx: typer.Context, predictive_segment_id: str = typer.Argument(..., help="Predictive segment ID.")
) -> None:
    with client_session(ctx) as client:
        emit(ctx, _resource(client.cdp.predictive_segments.run_entity(predictive_segment_id)), title="Run started")


@predictive_app.command("entity-executions")
def predictive_entity_executions(
    ctx: typer.Context, predictive_segment_id: str = typer.Argument(..., help="Predictive segment ID.")
) -> None:
    with client_session(ctx) as client:
        resp = client.cdp.predictive_segments.entity_executions(predictive_segment_id)
    emit(ctx, _resources(resp), columns=RESOURCE_COLUMNS)


@predictive_app.command("entity-model")
def predictive_entity_model(
    ctx: typer.Context,
    predictive_segment_id: str = typer.Argument(..., help="Predictive segment ID."),
    view: str = typer.Option("features", "--view", help="columns, features or scores."),
    limit: Optional[int] = typer.Option(None, "--limit", min=1, help="Rows for columns/features."),
) -> None:
    if view not in ("columns", "features", "scores"):
        raise typer.BadParameter("--view must be one of: columns, features, scores")
    with client_session(ctx) as client:
        service = client.cdp.predictive_segments
        if view == "columns":
            data = service.entity_model_columns(predictive_segment_id, limit=limit)
        elif view == "features":
            data = service.entity_model_features(predictive_segment_id, limit=limit)
        else:
            data = service.entity_model_scores(predictive_segment_id)
    emit(ctx, data)


# ---------------------------------------------------------------------------
# Activation templates
# ---------------------------------------------------------------------------


@templates_app.command("list")
def list_activation_templates(
    ctx: typer.Context, parent_segment_id: str = typer.Argument(..., help="Parent segment (audience) ID.")
) -> None:
    with client_session(ctx) as client:
        resp = client.cdp.activation_templates.list(parent_segment_id)
    emit(ctx, _resources(resp), columns=RESOURCE_COLUMNS, title="Activation templates")


@templates_app.command("get")
def get_activation_template(ctx: typer.Context, template_id: str = typer.Argument(..., help="Template ID.")) -> None:
    with client_session(ctx) as client:
        emit(ctx, _resource(client.cdp.activation_templates.get(template_id)))


@templates_app.command("create")
def create_activation_template(
    ctx: typer.Context,
    document: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON:API document file."),
) -> None:
    with client_session(ctx) as client:
        resp = client.cdp.activation_templates.create(_load_document(document))
    emit(ctx, _resource(resp), title="Activation template created")


@templates_app.command("update")
def update_activation_template(
    ctx: typer.Context,
    template_id: str = typer.Argument(..., help="Template ID."),
    document: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON:API document file."),
) -> None:
    with client_session(ctx) as client:
        emit(ctx, _resource(client.cdp.activation_templates.update(template_id, _load_document(document))))


@templates_app.command("delete")
def delete_activation_template(
    ctx: typer.Context, template_id: str = typer.Argument(..., help="Template ID.")
) -> None:
    with client_session(ctx) as client:
        client.cdp.activation_templates.delete(template_id)
    emit_message(f"Activation template {template_id} deleted")
