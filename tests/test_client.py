"""TreasureDataClient transport: headers, endpoints, error mapping."""

import json

import httpx
import pytest
import respx

from conftest import API_KEY, CDP, V3, WORKFLOW
from treasuredata.adapters.client import (
    JSONAPI_CONTENT_TYPE,
    TreasureDataClient,
    clean_params,
    encode_body,
    normalize_endpoint,
)
from treasuredata.core.domain.models import IssueQueryOptions, QueryType
from treasuredata.core.errors import APIError, DecodeError, InvalidArgumentError, TransportError
from treasuredata.core.interfaces.transport import API


class TestHelpers:
    def test_normalize_endpoint(self):
        assert normalize_endpoint("api.example.com/") == "https://api.example.com"
        assert normalize_endpoint(" http://localhost:8080// ") == "http://localhost:8080"

    def test_encode_body_drops_none_and_uses_aliases(self):
        body = encode_body(IssueQueryOptions(query="SELECT 1", priority=1))
        assert json.loads(body) == {"query": "SELECT 1", "priority": 1}

    def test_clean_params(self):
        assert clean_params({"a": None, "type": QueryType.TRINO, "limit": 5}) == {"type": "trino", "limit": 5}
        assert clean_params({"a": None}) is None


class TestConstruction:
    def test_region_selects_endpoints(self, settings):
        with TreasureDataClient(API_KEY, region="EU", settings=settings) as td:
            assert td.base_url(API.V3) == "https://api.eu01.treasuredata.com"
            assert td.base_url(API.CDP) == "https://api-cdp.eu01.treasuredata.com"
            assert td.base_url(API.WORKFLOW) == "https://api-workflow.eu01.treasuredata.com"

    def test_endpoint_override(self, settings):
        with TreasureDataClient(API_KEY, endpoint="td.internal/", settings=settings) as td:
            assert td.url_for(API.V3, "v3/database/list") == "https://td.internal/v3/database/list"

    def test_unknown_region(self, settings):
        with pytest.raises(InvalidArgumentError):
            TreasureDataClient(API_KEY, region="mars", settings=settings)

    def test_missing_api_key(self, settings):
        with pytest.raises(InvalidArgumentError):
            TreasureDataClient(settings=settings)


class TestRequests:
    @respx.mock
    def test_authorization_and_user_agent(self, client):
        route = respx.get(f"{V3}/v3/database/list").mock(return_value=httpx.Response(200, json={"databases": []}))
        assert client.databases.list() == []
        request = route.calls.last.request
        assert request.headers["authorization"] == f"TD1 {API_KEY}"
        assert request.headers["user-agent"].startswith("treasuredata-client/")
        assert request.headers["accept"] == "application/json"

    @respx.mock
    def test_error_body_is_copied_onto_api_error(self, client):
        respx.get(f"{V3}/v3/database/list").mock(
            return_value=httpx.Response(
                403, json={"message": "Access denied", "error": "Forbidden", "severity": "error"}
            )
        )
        with pytest.raises(APIError) as excinfo:
            client.databases.list()
        err = excinfo.value
        assert err.status_code == 403
        assert err.message == "Access denied"
        assert err.error == "Forbidden"
        assert err.severity == "error"
        assert "403" in str(err)

    @respx.mock
    def test_non_json_error_body(self, client):
        respx.get(f"{V3}/v3/job/show/1").mock(return_value=httpx.Response(502, text="<html>Bad Gateway</html>"))
        with pytest.raises(APIError) as excinfo:
            client.jobs.get("1")
        assert excinfo.value.status_code == 502
        assert excinfo.value.message == ""
        assert "Bad Gateway" in excinfo.value.body

    @respx.mock
    def test_connection_failure_is_transport_error(self, client):
        respx.get(f"{V3}/v3/database/list").mock(side_effect=httpx.ConnectError("refused"))
        with pytest.raises(TransportError):
            client.databases.list()

    @respx.mock
    def test_invalid_json_is_decode_error(self, client):
        respx.get(f"{V3}/v3/database/list").mock(return_value=httpx.Response(200, content=b"{not json"))
        with pytest.raises(DecodeError):
            client.databases.list()

    @respx.mock
    def test_no_content_decodes_to_none(self, client):
        respx.delete(f"{CDP}/audiences/1").mock(return_value=httpx.Response(204))
        assert client.request_json("DELETE", "audiences/1", api=API.CDP) is None

    @respx.mock
    def test_jsonapi_negotiation(self, client):
        route = respx.get(f"{CDP}/entities/segments").mock(
            return_value=httpx.Response(200, json={"data": []}, headers={"Content-Type": JSONAPI_CONTENT_TYPE})
        )
        client.cdp.segments.list_entities()
        assert route.calls.last.request.headers["accept"] == JSONAPI_CONTENT_TYPE

    @respx.mock
    def test_stream_error_is_read_and_raised(self, client):
        respx.get(f"{V3}/v3/job/result/9").mock(return_value=httpx.Response(404, json={"message": "no such job"}))
        with pytest.raises(APIError) as excinfo:
            client.results.get_result("9")
        assert excinfo.value.message == "no such job"

    @respx.mock
    def test_workflow_base_url(self, client):
        route = respx.get(f"{WORKFLOW}/api/projects").mock(return_value=httpx.Response(200, json={"projects": []}))
        assert client.workflow.projects.list() == []
        assert route.called
