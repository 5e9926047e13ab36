"""v3 services: paths, bodies and decoded models."""

import json

import httpx
import pytest
import respx

from conftest import V3
from treasuredata.core.domain.models import IssueQueryOptions, QueryType, ResultFormat
from treasuredata.core.errors import InvalidArgumentError


class TestDatabases:
    @respx.mock
    def test_list(self, client):
        respx.get(f"{V3}/v3/database/list").mock(
            return_value=httpx.Response(
                200,
                json={
                    "databases": [
                        {"name": "sample_datasets", "count": 8812278, "created_at": "2014-10-08 02:57:38 UTC",
                         "permission": "administrator", "id": 12345},
                    ]
                },
            )
        )
        dbs = client.databases.list()
        assert [db.name for db in dbs] == ["sample_datasets"]
        assert dbs[0].id == "12345"
        assert dbs[0].created_at.year == 2014

    @respx.mock
    def test_create_returns_name_only(self, client):
        route = respx.post(f"{V3}/v3/database/create/analytics").mock(
            return_value=httpx.Response(200, json={"database": "analytics"})
        )
        db = client.databases.create("analytics")
        assert route.called
        assert db.name == "analytics"

    @respx.mock
    def test_path_segments_are_encoded(self, client):
        route = respx.get(host="api.treasuredata.com").mock(
            return_value=httpx.Response(200, json={"name": "my db"})
        )
        client.databases.get("my db")
        assert route.calls.last.request.url.raw_path == b"/v3/database/show/my%20db"

    def test_empty_name_is_rejected_before_sending(self, client):
        with pytest.raises(InvalidArgumentError) as excinfo:
            client.databases.delete("  ")
        assert excinfo.value.field == "database"


class TestTables:
    @respx.mock
    def test_list_fills_database(self, client):
        respx.get(f"{V3}/v3/table/list/sample_datasets").mock(
            return_value=httpx.Response(
                200,
                json={
                    "database": "sample_datasets",
                    "tables": [{"name": "www_access", "type": "log", "count": 5000,
                                "schema": '[["host","string"],["code","long"]]'}],
                },
            )
        )
        tables = client.tables.list("sample_datasets")
        assert tables[0].database == "sample_datasets"
        assert tables[0].schema_columns() == [("host", "string"), ("code", "long")]

    def test_create_rejects_unknown_type(self, client):
        with pytest.raises(InvalidArgumentError):
            client.tables.create("db", "t", "view")

    @respx.mock
    def test_update_sends_schema_as_json_text(self, client):
        route = respx.post(f"{V3}/v3/table/update/db/t").mock(return_value=httpx.Response(200, json={}))
        client.tables.update("db", "t", schema=[["host", "string"]], expire_days=30)
        body = json.loads(route.calls.last.request.content)
        assert body == {"schema": '[["host","string"]]', "expire_days": 30}

    def test_update_rejects_negative_retention(self, client):
        with pytest.raises(InvalidArgumentError):
            client.tables.update("db", "t", expire_days=-1)


class TestJobsAndQueries:
    @respx.mock
    def test_list_sends_paging_and_status(self, client):
        route = respx.get(f"{V3}/v3/job/list").mock(
            return_value=httpx.Response(
                200,
                json={"count": 1, "from": 0, "to": 20,
                      "jobs": [{"job_id": "55", "status": "success", "query": "SELECT 1", "type": "trino"}]},
            )
        )
        resp = client.jobs.list(from_=5, to=20, status="success")
        params = route.calls.last.request.url.params
        assert params["from"] == "5"
        assert params["status"] == "success"
        assert resp.jobs[0].job_id == "55"

    @respx.mock
    def test_issue_query(self, client):
        route = respx.post(f"{V3}/v3/job/issue/trino/sample_datasets").mock(
            return_value=httpx.Response(200, json={"job": "123", "job_id": 123, "database": "sample_datasets"})
        )
        resp = client.queries.issue(
            QueryType.TRINO,
            "sample_datasets",
            IssueQueryOptions(query="SELECT COUNT(1) FROM www_access", priority=1, pool_name="etl"),
        )
        assert resp.job_id == "123"
        body = json.loads(route.calls.last.request.content)
        assert body == {"query": "SELECT COUNT(1) FROM www_access", "priority": 1, "pool_name": "etl"}

    def test_issue_query_unknown_engine(self, client):
        with pytest.raises(InvalidArgumentError):
            client.queries.issue("spark", "db", "SELECT 1")

    @respx.mock
    def test_status_by_domain_key(self, client):
        respx.get(f"{V3}/v3/job/status_by_domain_key/nightly-1").mock(
            return_value=httpx.Response(200, json={"job_id": 9, "status": "running"})
        )
        assert client.jobs.status_by_domain_key("nightly-1").status == "running"


class TestResults:
    @respx.mock
    def test_jsonl_cursor(self, client):
        route = respx.get(f"{V3}/v3/job/result/7").mock(
            return_value=httpx.Response(200, content=b'["a",1]\n["b",2]\n')
        )
        rows = []
        with client.results.get_result_jsonl("7") as cursor:
            while cursor.advance():
                rows.append(cursor.decode_current())
        assert rows == [["a", 1], ["b", 2]]
        assert route.calls.last.request.url.params["format"] == "jsonl"

    @respx.mock
    def test_download(self, client, tmp_path):
        respx.get(f"{V3}/v3/job/result/7").mock(return_value=httpx.Response(200, content=b"a,b\n1,2\n"))
        target = tmp_path / "out" / "result.csv"
        written = client.results.download("7", target, format=ResultFormat.CSV)
        assert written == 8
        assert target.read_bytes() == b"a,b\n1,2\n"

    def test_negative_limit(self, client):
        with pytest.raises(InvalidArgumentError):
            client.results.get_result("7", limit=-1)

    def test_unknown_format(self, client):
        with pytest.raises(InvalidArgumentError):
            client.results.get_result("7", format="xml")


class TestBulkImportAndPermissions:
    @respx.mock
    def test_upload_part_is_multipart(self, client):
        route = respx.put(f"{V3}/v3/bulk_import/upload_part/session1/part-0").mock(
            return_value=httpx.Response(200, json={})
        )
        client.bulk_import.upload_part("session1", "part-0", b"\x82\xa1a\x01")
        request = route.calls.last.request
        assert request.headers["content-type"].startswith("multipart/form-data")
        assert b"\x82\xa1a\x01" in request.read()

    @respx.mock
    def test_list_policies(self, client):
        respx.get(f"{V3}/v3/access_control/policies").mock(
            return_value=httpx.Response(200, json=[{"id": 1, "name": "analysts", "user_count": 3}])
        )
        policies = client.permissions.list_policies()
        assert policies[0].name == "analysts"

    def test_policy_id_must_be_positive_integer(self, client):
        with pytest.raises(InvalidArgumentError):
            client.permissions.get_policy("abc")
        with pytest.raises(InvalidArgumentError):
            client.permissions.get_policy(0)
