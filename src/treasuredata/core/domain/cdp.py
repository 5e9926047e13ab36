"""CDP models: audiences, segments, activations, folders and JSON:API documents.

The classic CDP endpoints speak camelCase (`createdAt`, `audienceId`) while
segment queries and entity folders speak snake_case; the entity endpoints
wrap everything in JSON:API documents. Timestamps here are ISO-8601 strings
with milliseconds, which `TDTimestamp` absorbs just like v3 epochs.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field
from pydantic.alias_generators import to_camel
from pydantic.config import ConfigDict

from treasuredata.core.domain.fields import FlexibleID, FlexibleText, TDTimestamp
from treasuredata.core.domain.models import TDModel

StatisticsPoint = list[Any]
"""One `[timestamp, value, has_data]` sample of a population time series."""


class CamelModel(TDModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, alias_generator=to_camel)


class CDPUser(TDModel):
    id: FlexibleText = Field(default_factory=FlexibleText)
    td_user_id: FlexibleText = Field(default_factory=FlexibleText)
    name: str = ""


# ---------------------------------------------------------------------------
# Audiences (parent segments)
# ---------------------------------------------------------------------------


class CDPAudienceMaster(CamelModel):
    parent_database_name: str = ""
    parent_table_name: str = ""


class CDPAudienceAttribute(CamelModel):
    audience_id: FlexibleText = Field(default_factory=FlexibleText)
    id: FlexibleText = Field(default_factory=FlexibleText)
    name: str = ""
    type: str = ""
    parent_database_name: str = ""
    parent_table_name: str = ""
    parent_column: str = ""
    parent_key: str = ""
    foreign_key: str = ""
    matrix_column_name: str = ""
    grouping_name: str | None = None
    used_by_segment_insight: bool = False
    visibility: str | None = None


class CDPBehaviorSchemaField(CamelModel):
    name: str = ""
    type: str = ""
    parent_column: str = ""
    matrix_column_name: str = ""
    visibility: str | None = None


class CDPAudienceBehavior(CamelModel):
    audience_id: FlexibleText = Field(default_factory=FlexibleText)
    id: FlexibleText = Field(default_factory=FlexibleText)
    name: str = ""
    parent_database_name: str = ""
    parent_table_name: str = ""
    parent_key: str = ""
    foreign_key: str = ""
    matrix_database_name: str = ""
    matrix_table_name: str = ""
    all_columns: bool = False
    default_time_filter_enabled: bool = False
    is_realtime: bool = False
    behavior_schema: list[CDPBehaviorSchemaField] = Field(default_factory=list, alias="schema")


class CDPAudience(CamelModel):
    id: FlexibleID
    name: str = ""
    description: str | None = None
    schedule_type: str | None = None
    schedule_option: str | None = None
    timezone: str | None = None
    created_at: TDTimestamp | None = None
    updated_at: TDTimestamp | None = None
    created_by: CDPUser | None = None
    updated_by: CDPUser | None = None
    matrix_updated_at: TDTimestamp | None = None
    workflow_hive_only: bool = False
    hive_engine_version: str | None = None
    hive_pool_name: str | None = None
    presto_pool_name: str | None = None
    population: int | None = None
    max_activation_behavior_row: int | None = None
    allow_activation_behavior: bool = False
    llm_state: str | None = None
    llm_enabled: bool = False
    root_folder_id: FlexibleText = Field(default_factory=FlexibleText)
    master: CDPAudienceMaster | None = None
    attributes: list[CDPAudienceAttribute] = Field(default_factory=list)
    behaviors: list[CDPAudienceBehavior] = Field(default_factory=list)
    audience_filters: list[dict[str, Any]] = Field(default_factory=list)


class CDPAudienceExecution(CamelModel):
    audience_id: FlexibleText = Field(default_factory=FlexibleText)
    workflow_id: FlexibleText = Field(default_factory=FlexibleText)
    workflow_session_id: FlexibleText = Field(default_factory=FlexibleText)
    workflow_attempt_id: FlexibleText = Field(default_factory=FlexibleText)
    created_at: TDTimestamp | None = None
    finished_at: TDTimestamp | None = None
    status: str = ""


class CDPAudienceFolder(CamelModel):
    id: FlexibleID
    audience_id: FlexibleText = Field(default_factory=FlexibleText)
    name: str = ""
    description: str | None = None
    parent_folder_id: FlexibleText = Field(default_factory=FlexibleText)
    path: str | None = None
    created_at: TDTimestamp | None = None
    updated_at: TDTimestamp | None = None
    created_by: CDPUser | None = None
    updated_by: CDPUser | None = None


# ---------------------------------------------------------------------------
# Segments
# ---------------------------------------------------------------------------


class CDPSegment(CamelModel):
    id: FlexibleID
    audience_id: FlexibleText = Field(default_factory=FlexibleText)
    name: str = ""
    description: str | None = None
    realtime: bool = False
    is_visible: bool = True
    num_syndications: int | None = None
    segment_folder_id: FlexibleText = Field(default_factory=FlexibleText)
    population: int | None = None
    created_at: TDTimestamp | None = None
    updated_at: TDTimestamp | None = None
    created_by: CDPUser | None = None
    updated_by: CDPUser | None = None
    kind: int | None = None
    rule: Any = None
    query: FlexibleText = Field(default_factory=FlexibleText)
    status: str | None = None


class CDPSegmentQuery(TDModel):
    id: FlexibleID
    segment_id: FlexibleText = Field(default_factory=FlexibleText)
    query: FlexibleText = Field(default_factory=FlexibleText)
    status: str = ""
    created_at: TDTimestamp | None = None
    updated_at: TDTimestamp | None = None
    started_at: TDTimestamp | None = None
    finished_at: TDTimestamp | None = None
    results: dict[str, Any] = Field(default_factory=dict)
    error: str | None = None


class CDPSegmentCustomer(TDModel):
    id: FlexibleText = Field(default_factory=FlexibleText)
    attributes: dict[str, Any] = Field(default_factory=dict)


class CDPSegmentCustomerListResponse(TDModel):
    customers: list[CDPSegmentCustomer] = Field(default_factory=list)
    total: int = 0


# ---------------------------------------------------------------------------
# Activations (syndications)
# ---------------------------------------------------------------------------


class CDPActivationExecution(CamelModel):
    id: FlexibleText = Field(default_factory=FlexibleText)
    syndication_id: FlexibleText = Field(default_factory=FlexibleText)
    workflow_id: FlexibleText = Field(default_factory=FlexibleText)
    workflow_session_id: FlexibleText = Field(default_factory=FlexibleText)
    workflow_attempt_id: FlexibleText = Field(default_factory=FlexibleText)
    created_at: TDTimestamp | None = None
    finished_at: TDTimestamp | None = None
    status: str = ""


class CDPActivation(CamelModel):
    id: FlexibleID
    name: str = ""
    type: str = ""
    description: str | None = None
    segment_id: FlexibleText = Field(default_factory=FlexibleText)
    audience_id: FlexibleText = Field(default_factory=FlexibleText)
    activation_template_id: FlexibleText = Field(default_factory=FlexibleText)
    all_columns: bool = False
    connection_id: FlexibleText = Field(default_factory=FlexibleText)
    schedule_type: str | None = None
    schedule_option: str | None = None
    repeat_sub_frequency: list[int] = Field(default_factory=list)
    timezone: str | None = None
    created_by: CDPUser | None = None
    updated_by: CDPUser | None = None
    notify_on: list[str] = Field(default_factory=list)
    email_recipients: list[int] = Field(default_factory=list)
    connector_config: dict[str, Any] = Field(default_factory=dict)
    columns: list[dict[str, Any]] = Field(default_factory=list)
    valid: bool = True
    executions: list[CDPActivationExecution] = Field(default_factory=list)
    configuration: dict[str, Any] = Field(default_factory=dict)
    status: str | None = None
    created_at: TDTimestamp | None = None
    updated_at: TDTimestamp | None = None


# ---------------------------------------------------------------------------
# Funnels
# ---------------------------------------------------------------------------


class CDPFunnelStage(CamelModel):
    id: FlexibleText = Field(default_factory=FlexibleText)
    name: str = ""
    num_syndication: int | None = None
    audience_id: FlexibleText = Field(default_factory=FlexibleText)
    funnel_id: FlexibleText = Field(default_factory=FlexibleText)
    segment_folder_id: FlexibleText = Field(default_factory=FlexibleText)
    segment_id: FlexibleText = Field(default_factory=FlexibleText)


class CDPFunnel(CamelModel):
    id: FlexibleID
    audience_id: FlexibleText = Field(default_factory=FlexibleText)
    segment_folder_id: FlexibleText = Field(default_factory=FlexibleText)
    name: str = ""
    description: str | None = None
    population: int | None = None
    num_syndications: int | None = None
    need_to_run_workflow: bool = False
    stages: list[CDPFunnelStage] = Field(default_factory=list)
    created_at: TDTimestamp | None = None
    updated_at: TDTimestamp | None = None


class CDPFunnelStageStatistic(CamelModel):
    id: FlexibleText = Field(default_factory=FlexibleText)
    history: list[StatisticsPoint] = Field(default_factory=list)


class CDPFunnelStatistic(CamelModel):
    population: int | None = None
    stages: list[CDPFunnelStageStatistic] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


class CDPToken(TDModel):
    """Audience token; the legacy endpoints add camelCase key/attribute columns."""

    id: FlexibleID
    name: str = ""
    description: str | None = None
    type: str = ""
    value: str | None = None
    status: str = ""
    expires_at: TDTimestamp | None = None
    scopes: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    key_column: str = Field(default="", alias="keyColumn")
    attribute_columns: list[str] = Field(default_factory=list, alias="attributeColumns")
    segments: list[dict[str, Any]] = Field(default_factory=list)
    created_at: TDTimestamp | None = None
    updated_at: TDTimestamp | None = None
    created_by: CDPUser | None = None
    updated_by: CDPUser | None = None


# ---------------------------------------------------------------------------
# Predictive segments
# ---------------------------------------------------------------------------


class CDPPredictiveSegmentAccuracy(CamelModel):
    training_accuracy: float | None = None
    validation_accuracy: float | None = None


class CDPPredictiveSegmentROC(TDModel):
    training_roc: float | None = Field(default=None, alias="trainingROC")
    validation_roc: float | None = Field(default=None, alias="validationROC")


class CDPPredictiveSegment(CamelModel):
    id: FlexibleID
    audience_id: FlexibleText = Field(default_factory=FlexibleText)
    base_segment_id: FlexibleText = Field(default_factory=FlexibleText)
    segment_id: FlexibleText = Field(default_factory=FlexibleText)
    segment_folder_id: FlexibleText = Field(default_factory=FlexibleText)
    name: str = ""
    description: str | None = None
    predictive_name: str = ""
    predictive_column: str = ""
    model_type: str = ""
    training_period: int | None = None
    prediction_period: int | None = None
    feature_columns: list[str] = Field(default_factory=list)
    grade_thresholds: list[float] = Field(default_factory=list)
    status: str = ""
    population: int | None = None
    accuracy: CDPPredictiveSegmentAccuracy | None = None
    area_under_roc_curve: CDPPredictiveSegmentROC | None = None
    created_at: TDTimestamp | None = None
    updated_at: TDTimestamp | None = None

    model_config = ConfigDict(
        extra="ignore", populate_by_name=True, alias_generator=to_camel, protected_namespaces=()
    )


class CDPPredictiveSegmentExecution(CamelModel):
    id: FlexibleText = Field(default_factory=FlexibleText)
    predictive_segment_id: FlexibleText = Field(default_factory=FlexibleText)
    status: str = ""
    message: str | None = None
    created_at: TDTimestamp | None = None
    started_at: TDTimestamp | None = None
    finished_at: TDTimestamp | None = None


class CDPPredictiveSegmentRule(TDModel):
    query: FlexibleText = Field(default_factory=FlexibleText)
    status: str = ""


class CDPPredictiveSegmentGuessRule(TDModel):
    status: str = ""
    rule: CDPPredictiveSegmentRule | None = None


# ---------------------------------------------------------------------------
# Entity folders & JSON:API
# ---------------------------------------------------------------------------


class CDPFolder(TDModel):
    id: FlexibleID
    name: str = ""
    description: str | None = None
    parent_id: FlexibleText = Field(default_factory=FlexibleText)
    path: str | None = None
    created_at: TDTimestamp | None = None
    updated_at: TDTimestamp | None = None
    created_by: CDPUser | None = None
    updated_by: CDPUser | None = None


class JSONAPIResource(TDModel):
    """A JSON:API resource object; attributes stay an open mapping."""

    id: FlexibleText = Field(default_factory=FlexibleText)
    type: str = ""
    attributes: dict[str, Any] = Field(default_factory=dict)
    relationships: dict[str, Any] = Field(default_factory=dict)
    meta: dict[str, Any] = Field(default_factory=dict)

    @property
    def name(self) -> str:
        return str(self.attributes.get("name") or "")


class JSONAPIResponse(TDModel):
    data: JSONAPIResource | None = None
    included: list[Any] = Field(default_factory=list)


class JSONAPIListResponse(TDModel):
    data: list[JSONAPIResource] = Field(default_factory=list)
    included: list[Any] = Field(default_factory=list)
    meta: dict[str, Any] = Field(default_factory=dict)


def jsonapi_document(
    resource_type: str,
    attributes: dict[str, Any],
    *,
    resource_id: str | None = None,
    relationships: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build a `{"data": {...}}` request document."""

    data: dict[str, Any] = {"type": resource_type, "attributes": attributes}
    if resource_id is not None:
        data["id"] = resource_id
    if relationships:
        data["relationships"] = relationships
    return {"data": data}


def relationship(resource_type: str, resource_id: str) -> dict[str, Any]:
    return {"data": {"id": resource_id, "type": resource_type}}
