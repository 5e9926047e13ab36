"""`tdcli` end to end through Typer's CliRunner with the HTTP layer mocked."""

import json

import httpx
import pytest
import respx
from typer.testing import CliRunner

from conftest import API_KEY, CDP, V3, WORKFLOW
from treasuredata import __version__
from treasuredata.cli.main import app
from treasuredata.core import config

runner = CliRunner()


def invoke(*args: str, **kwargs):
    return runner.invoke(app, ["--api-key", API_KEY, *args], **kwargs)


class TestRoot:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.setenv("TD_API_KEY", "")
        result = runner.invoke(app, ["databases", "list"])
        assert result.exit_code == 1
        assert "API key" in result.output

    def test_doctor_offline(self):
        result = invoke("doctor", "--offline")
        assert result.exit_code == 0
        assert "doctor" in result.output


class TestDatabases:
    @respx.mock
    def test_list_as_json(self):
        respx.get(f"{V3}/v3/database/list").mock(
            return_value=httpx.Response(
                200, json={"databases": [{"name": "sample_datasets", "count": 10, "created_at": 1736528737}]}
            )
        )
        result = invoke("--format", "json", "databases", "list")
        assert result.exit_code == 0, result.output
        rows = json.loads(result.stdout)
        assert rows[0]["name"] == "sample_datasets"
        assert rows[0]["created_at"] == "2025-01-10T17:05:37+00:00"

    @respx.mock
    def test_list_as_csv(self):
        respx.get(f"{V3}/v3/database/list").mock(
            return_value=httpx.Response(200, json={"databases": [{"name": "a", "count": 1}, {"name": "b"}]})
        )
        result = invoke("--format", "csv", "databases", "list")
        assert result.exit_code == 0, result.output
        lines = result.stdout.splitlines()
        assert lines[0] == "name,count,permission,delete_protected,created_at,updated_at"
        assert lines[1].startswith("a,1,")
        assert len(lines) == 3

    @respx.mock
    def test_output_file(self, tmp_path):
        respx.get(f"{V3}/v3/database/list").mock(
            return_value=httpx.Response(200, json={"databases": [{"name": "a"}]})
        )
        target = tmp_path / "dbs.json"
        result = invoke("--format", "json", "--output", str(target), "databases", "list")
        assert result.exit_code == 0, result.output
        assert json.loads(target.read_text())[0]["name"] == "a"

    @respx.mock
    def test_api_error_exits_1(self):
        respx.get(f"{V3}/v3/database/show/nope").mock(
            return_value=httpx.Response(404, json={"message": "Database 'nope' does not exist"})
        )
        result = invoke("databases", "get", "nope")
        assert result.exit_code == 1
        assert "does not exist" in result.output

    def test_delete_needs_confirmation(self):
        result = invoke("databases", "delete", "analytics", input="n\n")
        assert result.exit_code == 1


class TestQueryAndResults:
    @respx.mock
    def test_submit_without_wait(self):
        route = respx.post(f"{V3}/v3/job/issue/trino/sample_datasets").mock(
            return_value=httpx.Response(200, json={"job_id": "123", "database": "sample_datasets"})
        )
        result = invoke("--format", "json", "query", "submit", "SELECT 1", "-d", "sample_datasets", "--priority", "1")
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == {"job_id": "123", "database": "sample_datasets"}
        assert json.loads(route.calls.last.request.content) == {"query": "SELECT 1", "priority": 1}

    @respx.mock
    def test_submit_wait_and_show(self):
        respx.post(f"{V3}/v3/job/issue/trino/db").mock(return_value=httpx.Response(200, json={"job_id": "5"}))
        respx.get(f"{V3}/v3/job/status/5").mock(return_value=httpx.Response(200, json={"job_id": "5", "status": "success"}))
        respx.get(f"{V3}/v3/job/result/5").mock(return_value=httpx.Response(200, content=b'["x",1]\n'))
        result = invoke("--format", "csv", "query", "submit", "SELECT 1", "-d", "db", "--wait", "--show", "--interval", "0")
        assert result.exit_code == 0, result.output
        assert "c0,c1" in result.output
        assert "x,1" in result.output

    @respx.mock
    def test_failed_job_exits_1(self):
        respx.post(f"{V3}/v3/job/issue/trino/db").mock(return_value=httpx.Response(200, json={"job_id": "6"}))
        respx.get(f"{V3}/v3/job/status/6").mock(return_value=httpx.Response(200, json={"job_id": "6", "status": "error"}))
        respx.get(f"{V3}/v3/job/show/6").mock(
            return_value=httpx.Response(200, json={"job_id": "6", "status": "error", "debug": {"stderr": "syntax error"}})
        )
        result = invoke("query", "submit", "SELEC 1", "-d", "db", "--wait", "--interval", "0")
        assert result.exit_code == 1
        assert "syntax error" in result.output

    @respx.mock
    def test_result_rows_as_json(self):
        respx.get(f"{V3}/v3/job/result/7").mock(
            return_value=httpx.Response(200, content=b'{"host":"a","code":200}\n\n{"host":"b","code":404}\n')
        )
        result = invoke("--format", "json", "results", "rows", "7", "--limit", "1")
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == [{"host": "a", "code": 200}]

    @respx.mock
    def test_raw_result_to_stdout(self):
        respx.get(f"{V3}/v3/job/result/7").mock(return_value=httpx.Response(200, content=b"a,b\n1,2\n"))
        result = invoke("results", "get", "7")
        assert result.exit_code == 0, result.output
        assert result.stdout_bytes == b"a,b\n1,2\n"


class TestCDPAndWorkflow:
    @respx.mock
    def test_segment_entities(self):
        respx.get(f"{CDP}/entities/segments").mock(
            return_value=httpx.Response(
                200, json={"data": [{"id": "55", "type": "segment-batch", "attributes": {"name": "VIP"}}]}
            )
        )
        result = invoke("--format", "json", "cdp", "segments", "entities")
        assert result.exit_code == 0, result.output
        rows = json.loads(result.stdout)
        assert rows[0]["id"] == "55"
        assert rows[0]["name"] == "VIP"

    def test_funnel_with_too_few_stages_fails_locally(self):
        result = invoke("cdp", "funnels", "create", "100", "Conversion", "--stages", '[{"name": "a", "segmentId": 1}]')
        assert result.exit_code == 1
        assert "between 3 and 8" in result.output

    @respx.mock
    def test_token_entity_update_pairs(self):
        route = respx.patch(f"{CDP}/entities/tokens/t1").mock(
            return_value=httpx.Response(200, json={"id": "t1", "status": "inactive", "scopes": ["a", "b"]})
        )
        result = invoke("--format", "json", "cdp", "tokens", "update-entity", "t1", "status=inactive", "scopes=a,b")
        assert result.exit_code == 0, result.output
        assert json.loads(route.calls.last.request.content) == {"status": "inactive", "scopes": ["a", "b"]}
        assert json.loads(result.stdout)["status"] == "inactive"

    def test_invalid_cron_is_rejected_locally(self):
        result = invoke("workflow", "schedule", "update", "42", "--cron", "every day")
        assert result.exit_code == 1
        assert "cron" in result.output

    @respx.mock
    def test_attempt_log(self):
        respx.get(f"{WORKFLOW}/api/workflows/42/attempts/9/log").mock(
            return_value=httpx.Response(200, text="line one\nline two\n")
        )
        result = invoke("workflow", "attempts", "log", "42", "9")
        assert result.exit_code == 0, result.output
        assert result.stdout == "line one\nline two\n"

    @respx.mock
    def test_secrets_list(self):
        respx.get(f"{WORKFLOW}/api/projects/10/secrets").mock(
            return_value=httpx.Response(200, json={"secrets": {"b": {}, "a": {}}})
        )
        result = invoke("--format", "json", "workflow", "projects", "secrets", "list", "10")
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == [{"key": "a"}, {"key": "b"}]


class TestConfigCommands:
    @pytest.fixture(autouse=True)
    def _config_dir(self, monkeypatch, tmp_path):
        monkeypatch.setattr(config, "get_user_config_dir", lambda: tmp_path / "cfg")

    def test_set_and_read_back(self, tmp_path):
        result = runner.invoke(app, ["config", "set", "region", "EU"])
        assert result.exit_code == 0, result.output
        assert "TD_REGION=eu" in (tmp_path / "cfg" / ".env").read_text()

    def test_set_rejects_bad_values(self):
        assert runner.invoke(app, ["config", "set", "region", "mars"]).exit_code == 2
        assert runner.invoke(app, ["config", "set", "api_key", "nokey"]).exit_code == 2
        assert runner.invoke(app, ["config", "set", "colour", "blue"]).exit_code == 2

    def test_get_masks_api_key(self):
        result = invoke("config", "get", "api_key")
        assert result.exit_code == 0, result.output
        assert result.stdout.strip() == "1234***6789"
