"""Workflow services: status handling, schedules, project archives and secrets."""

import hashlib
import io
import json
import sys
import tarfile

import httpx
import pytest
import respx

from conftest import WORKFLOW
from treasuredata.adapters.archive import create_tar_gz
from treasuredata.adapters.services.workflow import validate_cron_expression
from treasuredata.core.domain.workflow import WorkflowAttempt
from treasuredata.core.errors import InvalidArgumentError, WorkflowError


def _names(archive: bytes) -> list[str]:
    with tarfile.open(fileobj=io.BytesIO(archive), mode="r:gz") as tar:
        return sorted(m.name for m in tar.getmembers())


class TestCron:
    @pytest.mark.parametrize("cron", ["@daily", "@hourly", "0 * * * *", "*/15 0-6 1,15 * 1-5", "0 0 * * * 2024"])
    def test_valid(self, cron):
        validate_cron_expression(cron)

    @pytest.mark.parametrize("cron", ["", "* * *", "0 0 * * MON", "a b c d e", "@sometimes"])
    def test_invalid(self, cron):
        with pytest.raises(InvalidArgumentError) as excinfo:
            validate_cron_expression(cron)
        assert excinfo.value.field == "cron"


class TestWorkflows:
    @respx.mock
    def test_delete_accepts_only_200_and_204(self, client):
        respx.delete(f"{WORKFLOW}/api/workflows/42").mock(return_value=httpx.Response(204))
        client.workflow.workflows.delete("42")

        respx.delete(f"{WORKFLOW}/api/workflows/43").mock(return_value=httpx.Response(202))
        with pytest.raises(WorkflowError) as excinfo:
            client.workflow.workflows.delete("43")
        assert excinfo.value.status_code == 202
        assert "workflow_id=43" in str(excinfo.value)

    @respx.mock
    def test_find_by_name(self, client):
        respx.get(f"{WORKFLOW}/api/workflows").mock(
            return_value=httpx.Response(
                200,
                json={
                    "workflows": [
                        {"id": "1", "name": "daily", "project": {"id": "10", "name": "etl"}},
                        {"id": "2", "name": "daily", "project": {"id": "11", "name": "ml"}},
                        {"id": "3", "name": "hourly", "project": {"id": "10", "name": "etl"}},
                    ]
                },
            )
        )
        assert client.workflow.workflows.find_by_name("daily", project="ml").id == "2"
        with pytest.raises(InvalidArgumentError, match="multiple"):
            client.workflow.workflows.find_by_name("daily")
        with pytest.raises(InvalidArgumentError, match="no workflow"):
            client.workflow.workflows.find_by_name("weekly")


class TestAttempts:
    @respx.mock
    def test_start_with_params(self, client):
        route = respx.post(f"{WORKFLOW}/api/workflows/42/attempts").mock(
            return_value=httpx.Response(200, json={"id": 900, "index": 1, "done": False})
        )
        attempt = client.workflow.attempts.start("42", {"target_date": "2024-01-01"})
        assert attempt.id == "900"
        assert attempt.state == "running"
        assert json.loads(route.calls.last.request.content) == {"params": {"target_date": "2024-01-01"}}

    @respx.mock
    def test_kill_rejects_accepted_status(self, client):
        respx.post(f"{WORKFLOW}/api/workflows/42/attempts/900/kill").mock(return_value=httpx.Response(202))
        with pytest.raises(WorkflowError) as excinfo:
            client.workflow.attempts.kill("42", "900")
        assert excinfo.value.attempt_id == "900"

    @respx.mock
    def test_log_is_text(self, client):
        respx.get(f"{WORKFLOW}/api/workflows/42/attempts/900/log").mock(
            return_value=httpx.Response(200, text="2024-01-01 started\n")
        )
        assert client.workflow.attempts.log("42", "900") == "2024-01-01 started\n"

    def test_state_from_done_and_success(self):
        assert WorkflowAttempt(id="1", done=True, success=False).state == "error"
        assert WorkflowAttempt(id="1", done=True, success=True).state == "success"
        assert WorkflowAttempt(id="1", status="killed").state == "killed"


class TestSchedules:
    @respx.mock
    def test_update(self, client):
        route = respx.put(f"{WORKFLOW}/api/workflows/42/schedule").mock(
            return_value=httpx.Response(200, json={"id": 5, "cron": "0 1 * * *", "timezone": "Asia/Tokyo"})
        )
        schedule = client.workflow.schedules.update("42", "0 1 * * *", "Asia/Tokyo", delay=60)
        assert schedule.timezone == "Asia/Tokyo"
        assert json.loads(route.calls.last.request.content) == {
            "cron": "0 1 * * *",
            "timezone": "Asia/Tokyo",
            "delay": 60,
        }

    def test_update_validation_order(self, client):
        with pytest.raises(InvalidArgumentError) as excinfo:
            client.workflow.schedules.update("", "bad", "", -1)
        assert excinfo.value.field == "workflow_id"
        with pytest.raises(InvalidArgumentError) as excinfo:
            client.workflow.schedules.update("42", "bad", "", -1)
        assert excinfo.value.field == "cron"
        with pytest.raises(InvalidArgumentError) as excinfo:
            client.workflow.schedules.update("42", "@daily", "", -1)
        assert excinfo.value.field == "timezone"
        with pytest.raises(InvalidArgumentError) as excinfo:
            client.workflow.schedules.update("42", "@daily", "UTC", -1)
        assert excinfo.value.field == "delay"


class TestProjects:
    @respx.mock
    def test_upload_defaults_revision_to_md5(self, client):
        archive = b"\x1f\x8b fake archive"
        route = respx.put(f"{WORKFLOW}/api/projects").mock(
            return_value=httpx.Response(200, json={"id": "10", "name": "etl", "revision": "r"})
        )
        project = client.workflow.projects.create_from_archive("etl", archive)
        assert project.id == "10"
        request = route.calls.last.request
        assert request.url.params["project"] == "etl"
        assert request.url.params["revision"] == hashlib.md5(archive).hexdigest()
        assert request.headers["content-type"] == "application/gzip"
        assert request.content == archive

    def test_upload_rejects_empty_archive(self, client):
        with pytest.raises(InvalidArgumentError):
            client.workflow.projects.create_from_archive("etl", b"")

    @respx.mock
    def test_push_directory_runs_hooks_first(self, client, tmp_path):
        project_dir = tmp_path / "etl"
        project_dir.mkdir()
        (project_dir / "daily.dig").write_text("+step:\n  echo>: hello\n")
        hooks = {
            "pre_upload_hooks": [
                {
                    "name": "build",
                    "command": [sys.executable, "-c", "open('generated.sql','w').write('SELECT 1')"],
                    "fail_on_error": True,
                }
            ]
        }
        (project_dir / ".td-hooks.json").write_text(json.dumps(hooks))

        route = respx.put(f"{WORKFLOW}/api/projects").mock(
            return_value=httpx.Response(200, json={"id": "10", "name": "etl"})
        )
        client.workflow.projects.create_from_directory("etl", project_dir, revision="v1")

        request = route.calls.last.request
        assert request.url.params["revision"] == "v1"
        assert _names(request.content) == ["daily.dig", "generated.sql"]

    @respx.mock
    def test_download_to_directory(self, client, tmp_path):
        source = tmp_path / "src"
        (source / "queries").mkdir(parents=True)
        (source / "daily.dig").write_text("+a:\n  sh>: true\n")
        (source / "queries" / "q.sql").write_text("SELECT 1")
        archive = create_tar_gz(source)

        route = respx.get(f"{WORKFLOW}/api/projects/10/archive").mock(
            return_value=httpx.Response(200, content=archive)
        )
        files = client.workflow.projects.download_to_directory("10", tmp_path / "out", revision="v1")
        assert sorted(p.name for p in files) == ["daily.dig", "q.sql"]
        assert (tmp_path / "out" / "queries" / "q.sql").read_text() == "SELECT 1"
        assert route.calls.last.request.url.params["revision"] == "v1"

    @respx.mock
    def test_get_by_name(self, client):
        route = respx.get(f"{WORKFLOW}/api/projects").mock(
            return_value=httpx.Response(200, json={"projects": []})
        )
        with pytest.raises(InvalidArgumentError):
            client.workflow.projects.get_by_name("missing")
        assert route.calls.last.request.url.params["name"] == "missing"

    @respx.mock
    def test_secrets(self, client):
        respx.get(f"{WORKFLOW}/api/projects/10/secrets").mock(
            return_value=httpx.Response(200, json={"secrets": {"td.apikey": {}, "aws.key": {}}})
        )
        assert client.workflow.projects.secrets("10") == ["aws.key", "td.apikey"]

        route = respx.put(f"{WORKFLOW}/api/projects/10/secrets/aws.key").mock(return_value=httpx.Response(204))
        client.workflow.projects.set_secret("10", "aws.key", "s3cr3t")
        assert json.loads(route.calls.last.request.content) == {"value": "s3cr3t"}

        respx.delete(f"{WORKFLOW}/api/projects/10/secrets/aws.key").mock(return_value=httpx.Response(202))
        with pytest.raises(WorkflowError, match="key=aws.key"):
            client.workflow.projects.delete_secret("10", "aws.key")
