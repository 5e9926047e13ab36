"""CDP services: audiences, segments, activations, folders, journeys, funnels,
tokens, predictive segments and activation templates.

Why several small services behind one namespace:
- The CDP API mixes three dialects (camelCase JSON, snake_case JSON and
  JSON:API documents); grouping by resource keeps each dialect local.
- `client.cdp.audiences.list()` reads like the CLI (`tdcli cdp audiences list`).
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Sequence

from treasuredata.adapters.services.base import BaseService, compact, require, seg
from treasuredata.core.domain.cdp import (
    CDPActivation,
    CDPActivationExecution,
    CDPAudience,
    CDPAudienceAttribute,
    CDPAudienceBehavior,
    CDPAudienceExecution,
    CDPAudienceFolder,
    CDPFolder,
    CDPFunnel,
    CDPFunnelStatistic,
    CDPPredictiveSegment,
    CDPPredictiveSegmentExecution,
    CDPPredictiveSegmentGuessRule,
    CDPSegment,
    CDPSegmentCustomer,
    CDPSegmentCustomerListResponse,
    CDPSegmentQuery,
    CDPToken,
    JSONAPIListResponse,
    JSONAPIResponse,
    StatisticsPoint,
    jsonapi_document,
    relationship,
)
from treasuredata.core.errors import APIError, InvalidArgumentError
from treasuredata.core.interfaces.transport import API, Transport

FOLDER_SEGMENT_TYPE = "folder-segment"
BATCH_SEGMENT_TYPE = "batch-segment"
SYNDICATION_TYPE = "syndication"
FUNNEL_TYPE = "funnel"
PREDICTIVE_SEGMENT_TYPE = "predictive-segment"

MIN_FUNNEL_STAGES = 3
MAX_FUNNEL_STAGES = 8
GRADE_THRESHOLD_COUNT = 3
_OK = (200, 204)


def _day(value: date | datetime | str | None) -> str | None:
    """Render a statistics bound as `YYYY-MM-DD`."""

    if value is None or isinstance(value, str):
        return value or None
    return value.strftime("%Y-%m-%d")


def _folder_from(data: Any) -> CDPFolder:
    """Decode a folder from either a flat object or a JSON:API document."""

    if isinstance(data, dict) and isinstance(data.get("data"), dict):
        resource = data["data"]
        flat = dict(resource.get("attributes") or {})
        flat["id"] = resource.get("id")
        data = flat
    return CDPFolder.model_validate(data)


def _check_stages(stages: Any) -> list[Any]:
    if not isinstance(stages, (list, tuple)):
        raise InvalidArgumentError("stages", stages, "must be a list of stages")
    count = len(stages)
    if not MIN_FUNNEL_STAGES <= count <= MAX_FUNNEL_STAGES:
        raise InvalidArgumentError(
            "stages",
            count,
            f"funnel must have between {MIN_FUNNEL_STAGES} and {MAX_FUNNEL_STAGES} stages, got {count}",
        )
    return list(stages)


def _check_thresholds(thresholds: Any) -> list[Any]:
    if not isinstance(thresholds, (list, tuple)) or len(thresholds) != GRADE_THRESHOLD_COUNT:
        got = len(thresholds) if isinstance(thresholds, (list, tuple)) else thresholds
        raise InvalidArgumentError(
            "grade_thresholds", thresholds, f"must contain exactly {GRADE_THRESHOLD_COUNT} values, got {got}"
        )
    return list(thresholds)


class AudiencesService(BaseService):
    """Audiences (parent segments) and their folders."""

    def list(self) -> list[CDPAudience]:
        return self._transport.request_json("GET", "audiences", api=API.CDP, into=list[CDPAudience]) or []

    def get(self, audience_id: str) -> CDPAudience:
        audience_id = require("audience_id", audience_id)
        return self._transport.request_json("GET", f"audiences/{seg(audience_id)}", api=API.CDP, into=CDPAudience)

    def create(
        self,
        name: str,
        parent_database_name: str,
        parent_table_name: str,
        *,
        description: str = "",
    ) -> CDPAudience:
        body = {
            "name": require("name", name),
            "description": description,
            "master": {
                "parentDatabaseName": require("parent_database_name", parent_database_name),
                "parentTableName": require("parent_table_name", parent_table_name),
            },
        }
        return self._transport.request_json("POST", "audiences", api=API.CDP, body=body, into=CDPAudience)

    def update(self, audience_id: str, updates: dict[str, Any]) -> CDPAudience:
        """Replace audience settings; `updates` uses the API's camelCase keys."""

        audience_id = require("audience_id", audience_id)
        return self._transport.request_json(
            "PUT", f"audiences/{seg(audience_id)}", api=API.CDP, body=updates, into=CDPAudience
        )

    def delete(self, audience_id: str) -> None:
        audience_id = require("audience_id", audience_id)
        self._transport.request("DELETE", f"audiences/{seg(audience_id)}", api=API.CDP)

    def attributes(self, audience_id: str) -> list[CDPAudienceAttribute]:
        audience_id = require("audience_id", audience_id)
        return self._transport.request_json(
            "GET", f"audiences/{seg(audience_id)}/attributes", api=API.CDP, into=list[CDPAudienceAttribute]
        ) or []

    def behaviors(self, audience_id: str) -> list[CDPAudienceBehavior]:
        audience_id = require("audience_id", audience_id)
        return self._transport.request_json(
            "GET", f"audiences/{seg(audience_id)}/behaviors", api=API.CDP, into=list[CDPAudienceBehavior]
        ) or []

    def run(self, audience_id: str) -> CDPAudienceExecution:
        """Start the workflow that rebuilds the audience."""

        audience_id = require("audience_id", audience_id)
        return self._transport.request_json(
            "POST", f"audiences/{seg(audience_id)}/run", api=API.CDP, into=CDPAudienceExecution
        )

    def executions(self, audience_id: str) -> list[CDPAudienceExecution]:
        audience_id = require("audience_id", audience_id)
        return self._transport.request_json(
            "GET", f"audiences/{seg(audience_id)}/executions", api=API.CDP, into=list[CDPAudienceExecution]
        ) or []

    def statistics(self, audience_id: str) -> list[StatisticsPoint]:
        """Population history as `[timestamp, population, has_data]` samples."""

        audience_id = require("audience_id", audience_id)
        return self._transport.request_json(
            "GET", f"audiences/{seg(audience_id)}/statistics", api=API.CDP, into=list[StatisticsPoint]
        ) or []

    # Audience folders

    def list_folders(self, audience_id: str) -> list[CDPAudienceFolder]:
        audience_id = require("audience_id", audience_id)
        return self._transport.request_json(
            "GET", f"audiences/{seg(audience_id)}/folders/", api=API.CDP, into=list[CDPAudienceFolder]
        ) or []

    def create_folder(
        self,
        audience_id: str,
        name: str,
        *,
        description: str | None = None,
        parent_id: str | None = None,
    ) -> CDPAudienceFolder:
        audience_id = require("audience_id", audience_id)
        body = compact(name=require("name", name), description=description or None, parent_id=parent_id or None)
        return self._transport.request_json(
            "POST", f"audiences/{seg(audience_id)}/folders", api=API.CDP, body=body, into=CDPAudienceFolder
        )

    def get_folder(self, audience_id: str, folder_id: str) -> CDPAudienceFolder:
        audience_id = require("audience_id", audience_id)
        folder_id = require("folder_id", folder_id)
        return self._transport.request_json(
            "GET", f"audiences/{seg(audience_id)}/folders/{seg(folder_id)}", api=API.CDP, into=CDPAudienceFolder
        )

    def update_folder(
        self,
        audience_id: str,
        folder_id: str,
        *,
        name: str | None = None,
        description: str | None = None,
    ) -> CDPAudienceFolder:
        audience_id = require("audience_id", audience_id)
        folder_id = require("folder_id", folder_id)
        body = compact(name=name or None, description=description or None)
        return self._transport.request_json(
            "PATCH",
            f"audiences/{seg(audience_id)}/folders/{seg(folder_id)}",
            api=API.CDP,
            body=body,
            into=CDPAudienceFolder,
        )

    def delete_folder(self, audience_id: str, folder_id: str) -> None:
        audience_id = require("audience_id", audience_id)
        folder_id = require("folder_id", folder_id)
        self._transport.request("DELETE", f"audiences/{seg(audience_id)}/folders/{seg(folder_id)}", api=API.CDP)


class SegmentsService(BaseService):
    """Segments of an audience, ad-hoc segment queries and entity segments."""

    def list(
        self,
        audience_id: str,
        *,
        limit: int | None = None,
        offset: int | None = None,
        folder_id: str | None = None,
        query: str | None = None,
    ) -> list[CDPSegment]:
        audience_id = require("audience_id", audience_id)
        params = compact(limit=limit or None, offset=offset or None, folder_id=folder_id or None, query=query or None)
        return self._transport.request_json(
            "GET", f"audiences/{seg(audience_id)}/segments", api=API.CDP, params=params, into=list[CDPSegment]
        ) or []

    def list_in_folder(
        self,
        audience_id: str,
        folder_id: str,
        *,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[CDPSegment]:
        audience_id = require("audience_id", audience_id)
        folder_id = require("folder_id", folder_id)
        params = compact(limit=limit or None, offset=offset or None)
        return self._transport.request_json(
            "GET",
            f"audiences/{seg(audience_id)}/folders/{seg(folder_id)}/segments",
            api=API.CDP,
            params=params,
            into=list[CDPSegment],
        ) or []

    def get(self, audience_id: str, segment_id: str) -> CDPSegment:
        audience_id = require("audience_id", audience_id)
        segment_id = require("segment_id", segment_id)
        return self._transport.request_json(
            "GET", f"audiences/{seg(audience_id)}/segments/{seg(segment_id)}", api=API.CDP, into=CDPSegment
        )

    def create(self, audience_id: str, name: str, query: str, *, description: str = "") -> CDPSegment:
        audience_id = require("audience_id", audience_id)
        body = {"name": require("name", name), "description": description, "query": require("query", query)}
        return self._transport.request_json(
            "POST", f"audiences/{seg(audience_id)}/segments", api=API.CDP, body=body, into=CDPSegment
        )

    def update(self, audience_id: str, segment_id: str, updates: dict[str, Any]) -> CDPSegment:
        audience_id = require("audience_id", audience_id)
        segment_id = require("segment_id", segment_id)
        return self._transport.request_json(
            "PUT",
            f"audiences/{seg(audience_id)}/segments/{seg(segment_id)}",
            api=API.CDP,
            body=updates,
            into=CDPSegment,
        )

    def delete(self, audience_id: str, segment_id: str) -> None:
        audience_id = require("audience_id", audience_id)
        segment_id = require("segment_id", segment_id)
        self._transport.request("DELETE", f"audiences/{seg(audience_id)}/segments/{seg(segment_id)}", api=API.CDP)

    def statistics(self, audience_id: str, segment_id: str) -> list[StatisticsPoint]:
        audience_id = require("audience_id", audience_id)
        segment_id = require("segment_id", segment_id)
        return self._transport.request_json(
            "GET",
            f"audiences/{seg(audience_id)}/segments/{seg(segment_id)}/statistics",
            api=API.CDP,
            into=list[StatisticsPoint],
        ) or []

    # Segment queries

    def create_query(self, audience_id: str, query: str) -> CDPSegmentQuery:
        audience_id = require("audience_id", audience_id)
        body = {"query": require("query", query)}
        return self._transport.request_json(
            "POST", f"audiences/{seg(audience_id)}/segments/queries", api=API.CDP, body=body, into=CDPSegmentQuery
        )

    def query_status(self, audience_id: str, query_id: str) -> CDPSegmentQuery:
        audience_id = require("audience_id", audience_id)
        query_id = require("query_id", query_id)
        return self._transport.request_json(
            "GET",
            f"audiences/{seg(audience_id)}/segments/queries/{seg(query_id)}",
            api=API.CDP,
            into=CDPSegmentQuery,
        )

    def kill_query(self, audience_id: str, query_id: str) -> None:
        audience_id = require("audience_id", audience_id)
        query_id = require("query_id", query_id)
        self._transport.request(
            "POST", f"audiences/{seg(audience_id)}/segments/queries/{seg(query_id)}/kill", api=API.CDP
        )

    def query_customers(
        self,
        audience_id: str,
        query_id: str,
        *,
        limit: int | None = None,
        offset: int | None = None,
        fields: str | None = None,
    ) -> CDPSegmentCustomerListResponse:
        audience_id = require("audience_id", audience_id)
        query_id = require("query_id", query_id)
        params = compact(limit=limit or None, offset=offset or None, fields=fields or None)
        customers: list[CDPSegmentCustomer] = self._transport.request_json(
            "GET",
            f"audiences/{seg(audience_id)}/segments/queries/{seg(query_id)}/customers",
            api=API.CDP,
            params=params,
            into=list[CDPSegmentCustomer],
        ) or []
        return CDPSegmentCustomerListResponse(customers=customers, total=len(customers))

    # Entity segments (JSON:API)

    def list_entities(self) -> JSONAPIListResponse:
        resp = self._transport.request_json(
            "GET", "entities/segments", api=API.CDP_JSONAPI, into=JSONAPIListResponse
        )
        return resp if resp is not None else JSONAPIListResponse()

    def get_entity(self, segment_id: str) -> JSONAPIResponse:
        segment_id = require("segment_id", segment_id)
        return self._transport.request_json(
            "GET", f"entities/segments/{seg(segment_id)}", api=API.CDP_JSONAPI, into=JSONAPIResponse
        )

    def create_entity(
        self,
        name: str,
        parent_folder_id: str,
        *,
        description: str = "",
        segment_type: str = BATCH_SEGMENT_TYPE,
        attributes: dict[str, Any] | None = None,
    ) -> JSONAPIResponse:
        """Create a segment entity inside a segment folder.

        Extra `attributes` (rule, kind, ...) are merged over name/description.
        """

        attrs: dict[str, Any] = {"name": require("name", name), "description": description}
        attrs.update(attributes or {})
        body = jsonapi_document(
            segment_type or BATCH_SEGMENT_TYPE,
            attrs,
            relationships={
                "parentFolder": relationship(FOLDER_SEGMENT_TYPE, require("parent_folder_id", parent_folder_id))
            },
        )
        return self._transport.request_json(
            "POST", "entities/segments", api=API.CDP_JSONAPI, body=body, into=JSONAPIResponse
        )

    def update_entity(
        self,
        segment_id: str,
        attributes: dict[str, Any],
        *,
        segment_type: str = BATCH_SEGMENT_TYPE,
    ) -> JSONAPIResponse:
        segment_id = require("segment_id", segment_id)
        body = jsonapi_document(segment_type, attributes, resource_id=segment_id)
        return self._transport.request_json(
            "PUT", f"entities/segments/{seg(segment_id)}", api=API.CDP_JSONAPI, body=body, into=JSONAPIResponse
        )

    def delete_entity(self, segment_id: str) -> None:
        segment_id = require("segment_id", segment_id)
        self._transport.request("DELETE", f"entities/segments/{seg(segment_id)}", api=API.CDP_JSONAPI)


class ActivationsService(BaseService):
    """Activations (syndications) that push segment members to destinations."""

    @staticmethod
    def _path(audience_id: str, segment_id: str, activation_id: str) -> str:
        return (
            f"audiences/{seg(require('audience_id', audience_id))}"
            f"/segments/{seg(require('segment_id', segment_id))}"
            f"/syndications/{seg(require('activation_id', activation_id))}"
        )

    def list(
        self,
        audience_id: str,
        *,
        limit: int | None = None,
        offset: int | None = None,
        type: str | None = None,
        status: str | None = None,
        segment_folder_id: str | None = None,
    ) -> list[CDPActivation]:
        audience_id = require("audience_id", audience_id)
        params = compact(
            limit=limit or None,
            offset=offset or None,
            type=type or None,
            status=status or None,
            segment_folder_id=segment_folder_id or None,
        )
        return self._transport.request_json(
            "GET", f"audiences/{seg(audience_id)}/syndications", api=API.CDP, params=params, into=list[CDPActivation]
        ) or []

    def list_for_segment(self, segment_id: str) -> list[CDPActivation]:
        segment_id = require("segment_id", segment_id)
        data = self._transport.request_json("GET", f"entities/segments/{seg(segment_id)}/syndications", api=API.CDP)
        items = data.get("data") if isinstance(data, dict) else data
        return [CDPActivation.model_validate(item) for item in items or []]

    def get(self, audience_id: str, segment_id: str, activation_id: str) -> CDPActivation:
        return self._transport.request_json(
            "GET", self._path(audience_id, segment_id, activation_id), api=API.CDP, into=CDPActivation
        )

    def create(
        self,
        segment_id: str,
        name: str,
        *,
        description: str = "",
        attributes: dict[str, Any] | None = None,
    ) -> CDPActivation:
        """Create an activation for an entity segment.

        `attributes` carries the destination settings (`connectionId`,
        `columns`, `schedule*`, ...) and is merged over name/description.
        """

        segment_id = require("segment_id", segment_id)
        attrs: dict[str, Any] = {"name": require("name", name), "description": description}
        attrs.update(attributes or {})
        body = {"type": SYNDICATION_TYPE, "attributes": attrs}
        data = self._transport.request_json(
            "POST", f"entities/segments/{seg(segment_id)}/syndications", api=API.CDP, body=body
        )
        if isinstance(data, dict) and "data" in data:
            data = data["data"]
        return CDPActivation.model_validate(data)

    def update(
        self,
        audience_id: str,
        segment_id: str,
        activation_id: str,
        updates: dict[str, Any],
    ) -> CDPActivation:
        return self._transport.request_json(
            "PUT", self._path(audience_id, segment_id, activation_id), api=API.CDP, body=updates, into=CDPActivation
        )

    def update_status(self, audience_id: str, segment_id: str, activation_id: str, status: str) -> CDPActivation:
        body = {"status": require("status", status)}
        return self._transport.request_json(
            "PATCH", self._path(audience_id, segment_id, activation_id), api=API.CDP, body=body, into=CDPActivation
        )

    def delete(self, audience_id: str, segment_id: str, activation_id: str) -> None:
        self._transport.request("DELETE", self._path(audience_id, segment_id, activation_id), api=API.CDP)

    def execute(self, audience_id: str, segment_id: str, activation_id: str) -> CDPActivationExecution:
        return self._transport.request_json(
            "POST",
            self._path(audience_id, segment_id, activation_id) + "/runs",
            api=API.CDP,
            into=CDPActivationExecution,
        )

    def executions(self, audience_id: str, segment_id: str, activation_id: str) -> list[CDPActivationExecution]:
        return self._transport.request_json(
            "GET",
            self._path(audience_id, segment_id, activation_id) + "/runs",
            api=API.CDP,
            into=list[CDPActivationExecution],
        ) or []


class FoldersService(BaseService):
    """Entity folders (segment folder tree)."""

    def get(self, folder_id: str) -> JSONAPIResponse:
        folder_id = require("folder_id", folder_id)
        return self._transport.request_json(
            "GET", f"entities/folders/{seg(folder_id)}", api=API.CDP_JSONAPI, into=JSONAPIResponse
        )

    def create(self, name: str, *, description: str = "", parent_id: str | None = None) -> CDPFolder:
        body: dict[str, Any] = {
            "type": FOLDER_SEGMENT_TYPE,
            "attributes": {"name": require("name", name), "description": description},
        }
        if parent_id:
            body["relationships"] = {"parentFolder": relationship(FOLDER_SEGMENT_TYPE, parent_id)}
        return _folder_from(self._transport.request_json("POST", "entities/folders", api=API.CDP, body=body))

    def update(self, folder_id: str, *, name: str | None = None, description: str | None = None) -> CDPFolder:
        folder_id = require("folder_id", folder_id)
        body = jsonapi_document(
            FOLDER_SEGMENT_TYPE,
            compact(name=name or None, description=description),
            resource_id=folder_id,
        )
        return _folder_from(
            self._transport.request_json("PATCH", f"entities/folders/{seg(folder_id)}", api=API.CDP, body=body)
        )

    def delete(self, folder_id: str) -> None:
        folder_id = require("folder_id", folder_id)
        self._transport.request("DELETE", f"entities/folders/{seg(folder_id)}", api=API.CDP)

    def entities(self, folder_id: str) -> JSONAPIListResponse:
        """Segments, journeys and sub-folders stored in a folder."""

        folder_id = require("folder_id", folder_id)
        resp = self._transport.request_json(
            "GET", f"entities/by-folder/{seg(folder_id)}", api=API.CDP, into=JSONAPIListResponse
        )
        return resp if resp is not None else JSONAPIListResponse()


class JourneysService(BaseService):
    """Customer journeys (JSON:API resources on the CDP API)."""

    def list(self, folder_id: str) -> JSONAPIListResponse:
        folder_id = require("folder_id", folder_id)
        resp = self._transport.request_json(
            "GET", "entities/journeys", api=API.CDP, params={"folder_id": folder_id}, into=JSONAPIListResponse
        )
        return resp if resp is not None else JSONAPIListResponse()

    def get(self, journey_id: str) -> JSONAPIResponse:
        journey_id = require("journey_id", journey_id)
        return self._transport.request_json(
            "GET", f"entities/journeys/{seg(journey_id)}", api=API.CDP, into=JSONAPIResponse
        )

    def create(self, document: dict[str, Any]) -> JSONAPIResponse:
        """Create a journey from a `{"data": {...}}` document."""

        return self._transport.request_json(
            "POST", "entities/journeys", api=API.CDP, body=document, into=JSONAPIResponse
        )

    def update(self, journey_id: str, document: dict[str, Any]) -> JSONAPIResponse:
        journey_id = require("journey_id", journey_id)
        return self._transport.request_json(
            "PATCH", f"entities/journeys/{seg(journey_id)}", api=API.CDP, body=document, into=JSONAPIResponse
        )

    def delete(self, journey_id: str) -> None:
        journey_id = require("journey_id", journey_id)
        self._transport.request("DELETE", f"entities/journeys/{seg(journey_id)}", api=API.CDP)

    def detail(self, journey_id: str) -> JSONAPIResponse:
        journey_id = require("journey_id", journey_id)
        return self._transport.request_json(
            "GET", f"entities/journeys/{seg(journey_id)}/detail", api=API.CDP, into=JSONAPIResponse
        )

    def statistics(
        self,
        journey_id: str,
        *,
        from_: date | datetime | str | None = None,
        to: date | datetime | str | None = None,
    ) -> dict[str, Any]:
        """Completion statistics; bounds are sent as `YYYY-MM-DD`."""

        journey_id = require("journey_id", journey_id)
        params = compact(**{"from": _day(from_), "to": _day(to)})
        data = self._transport.request_json(
            "GET", f"entities/journeys/{seg(journey_id)}/statistics", api=API.CDP, params=params
        )
        if isinstance(data, dict) and isinstance(data.get("data"), dict):
            return data["data"]
        return data or {}

    def pause(self, journey_id: str) -> JSONAPIResponse:
        journey_id = require("journey_id", journey_id)
        return self._transport.request_json(
            "PATCH", f"entities/journeys/{seg(journey_id)}/pause", api=API.CDP, into=JSONAPIResponse
        )

    def resume(self, journey_id: str) -> JSONAPIResponse:
        journey_id = require("journey_id", journey_id)
        return self._transport.request_json(
            "PATCH", f"entities/journeys/{seg(journey_id)}/resume", api=API.CDP, into=JSONAPIResponse
        )


class FunnelsService(BaseService):
    """Funnels: 3 to 8 ordered stages, each backed by a segment."""

    @staticmethod
    def _path(audience_id: str, funnel_id: str | None = None) -> str:
        path = f"audiences/{seg(require('audience_id', audience_id))}/funnels"
        if funnel_id is not None:
            path += f"/{seg(require('funnel_id', funnel_id))}"
        return path

    def list(self, audience_id: str) -> list[CDPFunnel]:
        return self._transport.request_json("GET", self._path(audience_id), api=API.CDP, into=list[CDPFunnel]) or []

    def get(self, audience_id: str, funnel_id: str) -> CDPFunnel:
        return self._transport.request_json("GET", self._path(audience_id, funnel_id), api=API.CDP, into=CDPFunnel)

    def create(
        self,
        audience_id: str,
        name: str,
        stages: Sequence[dict[str, Any]],
        *,
        description: str = "",
        segment_folder_id: int | str | None = None,
    ) -> CDPFunnel:
        """Create a funnel; `stages` are `{"name": ..., "segmentId": ...}` objects."""

        path = self._path(audience_id)
        body = compact(
            name=require("name", name),
            description=description,
            segmentFolderId=segment_folder_id or None,
            stages=_check_stages(stages),
        )
        return self._transport.request_json("POST", path, api=API.CDP, body=body, into=CDPFunnel)

    def update(
        self,
        audience_id: str,
        funnel_id: str,
        name: str,
        stages: Sequence[dict[str, Any]],
        *,
        description: str = "",
        segment_folder_id: int | str | None = None,
    ) -> CDPFunnel:
        path = self._path(audience_id, funnel_id)
        body = compact(
            name=require("name", name),
            description=description,
            segmentFolderId=segment_folder_id or None,
            stages=_check_stages(stages),
        )
        return self._transport.request_json("PUT", path, api=API.CDP, body=body, into=CDPFunnel)

    def delete(self, audience_id: str, funnel_id: str) -> CDPFunnel | None:
        """Delete a funnel; the API echoes the deleted record."""

        return self._transport.request_json(
            "DELETE", self._path(audience_id, funnel_id), api=API.CDP, into=CDPFunnel
        )

    def clone(
        self,
        audience_id: str,
        funnel_id: str,
        name: str,
        *,
        description: str = "",
        segment_folder_id: int | str | None = None,
    ) -> CDPFunnel:
        path = self._path(audience_id, funnel_id) + "/clone"
        body = compact(name=require("name", name), description=description, segmentFolderId=segment_folder_id or None)
        return self._transport.request_json("POST", path, api=API.CDP, body=body, into=CDPFunnel)

    def statistics(self, audience_id: str, funnel_id: str, *, limit: int | None = None) -> CDPFunnelStatistic:
        """Population history per stage."""

        path = self._path(audience_id, funnel_id) + "/statistics"
        resp = self._transport.request_json(
            "GET", path, api=API.CDP, params=compact(limit=limit), into=CDPFunnelStatistic
        )
        return resp if resp is not None else CDPFunnelStatistic()

    # Entity funnels (JSON:API)

    def create_entity(
        self,
        name: str,
        stages: Sequence[dict[str, Any]],
        *,
        description: str = "",
        parent_folder_id: str | None = None,
    ) -> JSONAPIResponse:
        attrs = {"name": require("name", name), "description": description, "stages": _check_stages(stages)}
        relationships = None
        if parent_folder_id:
            relationships = {"parentFolder": relationship(FOLDER_SEGMENT_TYPE, parent_folder_id)}
        body = jsonapi_document(FUNNEL_TYPE, attrs, relationships=relationships)
        return self._transport.request_json(
            "POST", "entities/funnels", api=API.CDP_JSONAPI, body=body, into=JSONAPIResponse
        )

    def get_entity(self, funnel_id: str) -> JSONAPIResponse:
        funnel_id = require("funnel_id", funnel_id)
        return self._transport.request_json(
            "GET", f"entities/funnels/{seg(funnel_id)}", api=API.CDP_JSONAPI, into=JSONAPIResponse
        )

    def update_entity(self, funnel_id: str, attributes: dict[str, Any]) -> JSONAPIResponse:
        """Patch funnel attributes; a `stages` list is checked like on create."""

        funnel_id = require("funnel_id", funnel_id)
        if "stages" in attributes:
            _check_stages(attributes["stages"])
        body = jsonapi_document(FUNNEL_TYPE, attributes, resource_id=funnel_id)
        return self._transport.request_json(
            "PATCH", f"entities/funnels/{seg(funnel_id)}", api=API.CDP_JSONAPI, body=body, into=JSONAPIResponse
        )


class TokensService(BaseService):
    """Tokens: audience-level (legacy) and entity tokens.

    Deletes accept only 200/204; any other success status raises `APIError`.
    """

    @staticmethod
    def _path(audience_id: str, token_id: str | None = None) -> str:
        path = f"audiences/{seg(require('audience_id', audience_id))}/tokens"
        if token_id is not None:
            path += f"/{seg(require('token_id', token_id))}"
        return path

    def _delete(self, path: str, token_id: str) -> None:
        resp = self._transport.request("DELETE", path, api=API.CDP)
        if resp.status_code not in _OK:
            raise APIError(
                resp.status_code, method="DELETE", url=str(resp.url), message=f"failed to delete token: {token_id}"
            )

    def list(
        self,
        audience_id: str,
        *,
        limit: int | None = None,
        offset: int | None = None,
        type: str | None = None,
        status: str | None = None,
    ) -> list[CDPToken]:
        params = compact(limit=limit or None, offset=offset or None, type=type or None, status=status or None)
        return self._transport.request_json(
            "GET", self._path(audience_id), api=API.CDP, params=params, into=list[CDPToken]
        ) or []

    def create(
        self,
        audience_id: str,
        key_column: str,
        attribute_columns: Sequence[str],
        *,
        description: str | None = None,
        token: str | None = None,
        segments: Sequence[dict[str, int]] | None = None,
    ) -> CDPToken:
        body = _legacy_token_body(key_column, attribute_columns, description, token, segments)
        return self._transport.request_json("POST", self._path(audience_id), api=API.CDP, body=body, into=CDPToken)

    def get(self, audience_id: str, token_id: str) -> CDPToken:
        return self._transport.request_json("GET", self._path(audience_id, token_id), api=API.CDP, into=CDPToken)

    def update(
        self,
        audience_id: str,
        token_id: str,
        key_column: str,
        attribute_columns: Sequence[str],
        *,
        description: str | None = None,
        token: str | None = None,
        segments: Sequence[dict[str, int]] | None = None,
    ) -> CDPToken:
        path = self._path(audience_id, token_id)
        body = _legacy_token_body(key_column, attribute_columns, description, token, segments)
        return self._transport.request_json("PUT", path, api=API.CDP, body=body, into=CDPToken)

    def delete(self, audience_id: str, token_id: str) -> None:
        self._delete(self._path(audience_id, token_id), token_id)

    # Entity tokens

    def create_entity(
        self,
        name: str,
        key_column: str,
        attribute_columns: Sequence[str],
        *,
        description: str | None = None,
    ) -> CDPToken:
        body = compact(
            name=require("name", name),
            description=description or None,
            keyColumn=require("key_column", key_column),
            attributeColumns=list(attribute_columns),
        )
        return self._transport.request_json("POST", "entities/tokens", api=API.CDP, body=body, into=CDPToken)

    def get_entity(self, token_id: str) -> CDPToken:
        token_id = require("token_id", token_id)
        return self._transport.request_json("GET", f"entities/tokens/{seg(token_id)}", api=API.CDP, into=CDPToken)

    def update_entity(
        self,
        token_id: str,
        *,
        name: str | None = None,
        description: str | None = None,
        status: str | None = None,
        expires_at: datetime | str | None = None,
        scopes: Sequence[str] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> CDPToken:
        """Patch an entity token; only the given fields are sent."""

        token_id = require("token_id", token_id)
        if isinstance(expires_at, datetime):
            expires_at = expires_at.isoformat()
        body = compact(
            name=name or None,
            description=description or None,
            status=status or None,
            expires_at=expires_at or None,
            scopes=list(scopes) if scopes else None,
            metadata=metadata or None,
        )
        return self._transport.request_json(
            "PATCH", f"entities/tokens/{seg(token_id)}", api=API.CDP, body=body, into=CDPToken
        )

    def delete_entity(self, token_id: str) -> None:
        token_id = require("token_id", token_id)
        self._delete(f"entities/tokens/{seg(token_id)}", token_id)


def _legacy_token_body(
    key_column: str,
    attribute_columns: Sequence[str],
    description: str | None,
    token: str | None,
    segments: Sequence[dict[str, int]] | None,
) -> dict[str, Any]:
    return compact(
        description=description or None,
        token=token or None,
        keyColumn=require("key_column", key_column),
        segments=list(segments) if segments else None,
        attributeColumns=list(attribute_columns),
    )


class PredictiveSegmentsService(BaseService):
    """Predictive segments: ML-scored segments with exactly three grade thresholds."""

    @staticmethod
    def _path(audience_id: str, predictive_segment_id: str | None = None) -> str:
        path = f"audiences/{seg(require('audience_id', audience_id))}/predictive_segments"
        if predictive_segment_id is not None:
            path += f"/{seg(require('predictive_segment_id', predictive_segment_id))}"
        return path

    def list(self, audience_id: str) -> list[CDPPredictiveSegment]:
        return self._transport.request_json(
            "GET", self._path(audience_id), api=API.CDP, into=list[CDPPredictiveSegment]
        ) or []

    def get(self, audience_id: str, predictive_segment_id: str) -> CDPPredictiveSegment:
        return self._transport.request_json(
            "GET", self._path(audience_id, predictive_segment_id), api=API.CDP, into=CDPPredictiveSegment
        )

    def create(
        self,
        audience_id: str,
        name: str,
        base_segment_id: str,
        grade_thresholds: Sequence[float],
        *,
        description: str = "",
        attributes: dict[str, Any] | None = None,
    ) -> CDPPredictiveSegment:
        """Create a predictive segment.

        `attributes` carries the model settings in the API's camelCase
        (`predictiveName`, `predictiveColumn`, `modelType`, `trainingPeriod`,
        `predictionPeriod`, `featureColumns`, `segmentFolderId`).
        """

        path = self._path(audience_id)
        body: dict[str, Any] = {
            "name": require("name", name),
            "description": description,
            "baseSegmentId": require("base_segment_id", base_segment_id),
        }
        body.update(attributes or {})
        body["gradeThresholds"] = _check_thresholds(grade_thresholds)
        return self._transport.request_json("POST", path, api=API.CDP, body=body, into=CDPPredictiveSegment)

    def update(self, audience_id: str, predictive_segment_id: str, updates: dict[str, Any]) -> CDPPredictiveSegment:
        path = self._path(audience_id, predictive_segment_id)
        if "gradeThresholds" in updates:
            _check_thresholds(updates["gradeThresholds"])
        return self._transport.request_json("PATCH", path, api=API.CDP, body=updates, into=CDPPredictiveSegment)

    def delete(self, audience_id: str, predictive_segment_id: str) -> CDPPredictiveSegment | None:
        return self._transport.request_json(
            "DELETE", self._path(audience_id, predictive_segment_id), api=API.CDP, into=CDPPredictiveSegment
        )

    def executions(self, audience_id: str, predictive_segment_id: str) -> list[CDPPredictiveSegmentExecution]:
        return self._transport.request_json(
            "GET",
            self._path(audience_id, predictive_segment_id) + "/executions",
            api=API.CDP,
            into=list[CDPPredictiveSegmentExecution],
        ) or []

    def train(self, audience_id: str, predictive_segment_id: str) -> CDPPredictiveSegmentExecution:
        """Start model training (and scoring) for a predictive segment."""

        return self._transport.request_json(
            "POST",
            self._path(audience_id, predictive_segment_id) + "/run",
            api=API.CDP,
            into=CDPPredictiveSegmentExecution,
        )

    def guess_rule(self, audience_id: str) -> CDPPredictiveSegmentGuessRule:
        resp = self._transport.request_json(
            "GET", self._path(audience_id) + "/guess_rule_async", api=API.CDP, into=CDPPredictiveSegmentGuessRule
        )
        return resp if resp is not None else CDPPredictiveSegmentGuessRule()

    def model_columns(self, audience_id: str, predictive_segment_id: str) -> Any:
        return self._transport.request_json(
            "GET", self._path(audience_id, predictive_segment_id) + "/model/columns", api=API.CDP
        )

    def model_features(self, audience_id: str, predictive_segment_id: str) -> Any:
        return self._transport.request_json(
            "GET", self._path(audience_id, predictive_segment_id) + "/model/features", api=API.CDP
        )

    def score_histogram(self, audience_id: str, predictive_segment_id: str) -> Any:
        return self._transport.request_json(
            "GET", self._path(audience_id, predictive_segment_id) + "/score_histogram", api=API.CDP
        )

    # Entity predictive segments (JSON:API)

    @staticmethod
    def _entity_path(predictive_segment_id: str) -> str:
        return f"entities/predictive_segments/{seg(require('predictive_segment_id', predictive_segment_id))}"

    def create_entity(
        self,
        name: str,
        grade_thresholds: Sequence[float],
        *,
        base_segment_id: str | None = None,
        parent_folder_id: str | None = None,
        description: str = "",
        attributes: dict[str, Any] | None = None,
    ) -> JSONAPIResponse:
        attrs: dict[str, Any] = {"name": require("name", name), "description": description}
        attrs.update(attributes or {})
        attrs["gradeThresholds"] = _check_thresholds(grade_thresholds)
        relationships: dict[str, Any] = {}
        if base_segment_id:
            relationships["baseSegment"] = relationship(BATCH_SEGMENT_TYPE, base_segment_id)
        if parent_folder_id:
            relationships["parentFolder"] = relationship(FOLDER_SEGMENT_TYPE, parent_folder_id)
        body = jsonapi_document(PREDICTIVE_SEGMENT_TYPE, attrs, relationships=relationships)
        return self._transport.request_json(
            "POST", "entities/predictive_segments", api=API.CDP_JSONAPI, body=body, into=JSONAPIResponse
        )

    def get_entity(self, predictive_segment_id: str) -> JSONAPIResponse:
        return self._transport.request_json(
            "GET", self._entity_path(predictive_segment_id), api=API.CDP_JSONAPI, into=JSONAPIResponse
        )

    def update_entity(self, predictive_segment_id: str, attributes: dict[str, Any]) -> JSONAPIResponse:
        path = self._entity_path(predictive_segment_id)
        if "gradeThresholds" in attributes:
            _check_thresholds(attributes["gradeThresholds"])
        body = jsonapi_document(PREDICTIVE_SEGMENT_TYPE, attributes, resource_id=predictive_segment_id)
        return self._transport.request_json("PATCH", path, api=API.CDP_JSONAPI, body=body, into=JSONAPIResponse)

    def delete_entity(self, predictive_segment_id: str) -> JSONAPIResponse | None:
        return self._transport.request_json(
            "DELETE", self._entity_path(predictive_segment_id), api=API.CDP_JSONAPI, into=JSONAPIResponse
        )

    def run_entity(self, predictive_segment_id: str) -> JSONAPIResponse:
        return self._transport.request_json(
            "POST", self._entity_path(predictive_segment_id) + "/run", api=API.CDP_JSONAPI, into=JSONAPIResponse
        )

    def entity_executions(self, predictive_segment_id: str) -> JSONAPIListResponse:
        resp = self._transport.request_json(
            "GET",
            self._entity_path(predictive_segment_id) + "/executions",
            api=API.CDP_JSONAPI,
            into=JSONAPIListResponse,
        )
        return resp if resp is not None else JSONAPIListResponse()

    def entity_model_features(self, predictive_segment_id: str, *, limit: int | None = None) -> Any:
        return self._transport.request_json(
            "GET",
            self._entity_path(predictive_segment_id) + "/model/features",
            api=API.CDP_JSONAPI,
            params=compact(limit=limit),
        )

    def entity_model_columns(self, predictive_segment_id: str, *, limit: int | None = None) -> Any:
        return self._transport.request_json(
            "GET",
            self._entity_path(predictive_segment_id) + "/model/columns",
            api=API.CDP_JSONAPI,
            params=compact(limit=limit),
        )

    def entity_model_scores(self, predictive_segment_id: str) -> Any:
        return self._transport.request_json(
            "GET", self._entity_path(predictive_segment_id) + "/model/scores", api=API.CDP_JSONAPI
        )


class ActivationTemplatesService(BaseService):
    """Reusable activation settings, stored as JSON:API entities."""

    def list(self, parent_segment_id: str) -> JSONAPIListResponse:
        """Templates available to one parent segment (audience)."""

        parent_segment_id = require("parent_segment_id", parent_segment_id)
        resp = self._transport.request_json(
            "GET",
            f"entities/parent_segments/{seg(parent_segment_id)}/activation_templates",
            api=API.CDP,
            into=JSONAPIListResponse,
        )
        return resp if resp is not None else JSONAPIListResponse()

    def get(self, template_id: str) -> JSONAPIResponse:
        template_id = require("template_id", template_id)
        return self._transport.request_json(
            "GET", f"entities/activation_templates/{seg(template_id)}", api=API.CDP, into=JSONAPIResponse
        )

    def create(self, document: dict[str, Any]) -> JSONAPIResponse:
        """Create a template from a `{"data": {...}}` document."""

        if not isinstance(document, dict) or not isinstance(document.get("data"), dict):
            raise InvalidArgumentError("document", document, "must be a {\"data\": {...}} object")
        return self._transport.request_json(
            "POST", "entities/activation_templates", api=API.CDP, body=document, into=JSONAPIResponse
        )

    def update(self, template_id: str, document: dict[str, Any]) -> JSONAPIResponse:
        template_id = require("template_id", template_id)
        if not isinstance(document, dict) or not isinstance(document.get("data"), dict):
            raise InvalidArgumentError("document", document, "must be a {\"data\": {...}} object")
        return self._transport.request_json(
            "PATCH",
            f"entities/activation_templates/{seg(template_id)}",
            api=API.CDP,
            body=document,
            into=JSONAPIResponse,
        )

    def delete(self, template_id: str) -> None:
        template_id = require("template_id", template_id)
        self._transport.request("DELETE", f"entities/activation_templates/{seg(template_id)}", api=API.CDP)


class CDPService:
    """Namespace grouping the CDP services."""

    def __init__(self, transport: Transport) -> None:
        self.audiences = AudiencesService(transport)
        self.segments = SegmentsService(transport)
        self.activations = ActivationsService(transport)
        self.folders = FoldersService(transport)
        self.journeys = JourneysService(transport)
        self.funnels = FunnelsService(transport)
        self.tokens = TokensService(transport)
        self.predictive_segments = PredictiveSegmentsService(transport)
        self.activation_templates = ActivationTemplatesService(transport)
