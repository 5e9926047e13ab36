"""Workflow API (`api/workflows`, `api/projects`).

Why split into small services:
- Workflows, attempts, schedules and projects are separate resources on the
  server; `WorkflowService` only groups them under `client.workflow`.
- Delete, kill and secret writes accept nothing but 200/204 and raise
  `WorkflowError` otherwise.
"""

from __future__ import annotations

import hashlib
import logging
import re
from pathlib import Path
from typing import Any

from treasuredata.adapters.archive import create_tar_gz, extract_tar_gz
from treasuredata.adapters.hooks import execute_pre_upload_hooks
from treasuredata.adapters.services.base import BaseService, compact, require, seg
from treasuredata.core.domain.workflow import (
    Workflow,
    WorkflowAttempt,
    WorkflowAttemptListResponse,
    WorkflowListResponse,
    WorkflowProject,
    WorkflowProjectListResponse,
    WorkflowProjectSecretsResponse,
    WorkflowSchedule,
    WorkflowTask,
    WorkflowTaskListResponse,
)
from treasuredata.core.errors import InvalidArgumentError, WorkflowError
from treasuredata.core.interfaces.transport import API, Transport

logger = logging.getLogger(__name__)

CRON_SPECIALS = frozenset({"@yearly", "@annually", "@monthly", "@weekly", "@daily", "@midnight", "@hourly"})
_CRON_FIELD = re.compile(r"^[*0-9,\-/]+$")

ARCHIVE_ACCEPT = "application/gzip, application/x-gzip, application/octet-stream, */*"
_OK = (200, 204)


def validate_cron_expression(cron: str) -> None:
    """Accept `@daily`-style specials or 5-6 numeric cron fields."""

    if not cron:
        raise InvalidArgumentError("cron", cron, "cannot be empty")
    if cron in CRON_SPECIALS:
        return
    fields = cron.split()
    if len(fields) not in (5, 6):
        raise InvalidArgumentError(
            "cron", cron, f"invalid cron expression: expected 5 or 6 fields, got {len(fields)}"
        )
    for i, field in enumerate(fields):
        if not _CRON_FIELD.match(field):
            raise InvalidArgumentError("cron", cron, f"invalid cron expression: invalid characters in field {i}")


class WorkflowsService(BaseService):
    def list(self, *, limit: int | None = None, offset: int | None = None) -> list[Workflow]:
        params = compact(limit=limit or None, offset=offset or None)
        resp = self._transport.request_json(
            "GET", "api/workflows", api=API.WORKFLOW, params=params, into=WorkflowListResponse
        )
        return resp.workflows if resp else []

    def get(self, workflow_id: str) -> Workflow:
        workflow_id = require("workflow_id", workflow_id)
        return self._transport.request_json("GET", f"api/workflows/{seg(workflow_id)}", api=API.WORKFLOW, into=Workflow)

    def create(self, name: str, project: str, config: str) -> Workflow:
        body = {
            "name": require("name", name),
            "project": require("project", project),
            "config": require("config", config),
        }
        return self._transport.request_json("POST", "api/workflows", api=API.WORKFLOW, body=body, into=Workflow)

    def update(self, workflow_id: str, updates: dict[str, Any]) -> Workflow:
        workflow_id = require("workflow_id", workflow_id)
        return self._transport.request_json(
            "PUT", f"api/workflows/{seg(workflow_id)}", api=API.WORKFLOW, body=dict(updates), into=Workflow
        )

    def delete(self, workflow_id: str) -> None:
        workflow_id = require("workflow_id", workflow_id)
        resp = self._transport.request("DELETE", f"api/workflows/{seg(workflow_id)}", api=API.WORKFLOW)
        if resp.status_code not in _OK:
            raise WorkflowError("delete workflow", workflow_id=workflow_id, status_code=resp.status_code)

    def find_by_name(self, name: str, *, project: str | None = None) -> Workflow:
        """Exact-name lookup over the listing; exactly one match is required."""

        name = require("name", name)
        matches = [
            wf for wf in self.list()
            if wf.name == name and (project is None or (wf.project is not None and wf.project.name == project))
        ]
        if not matches:
            raise InvalidArgumentError("name", name, "no workflow found with this name")
        if len(matches) > 1:
            raise InvalidArgumentError("name", name, f"multiple workflows found with this name ({len(matches)})")
        return matches[0]


class AttemptsService(BaseService):
    @staticmethod
    def _base(workflow_id: str) -> str:
        return f"api/workflows/{seg(require('workflow_id', workflow_id))}/attempts"

    def start(self, workflow_id: str, params: dict[str, Any] | None = None) -> WorkflowAttempt:
        body = {"params": params} if params is not None else {}
        return self._transport.request_json(
            "POST", self._base(workflow_id), api=API.WORKFLOW, body=body, into=WorkflowAttempt
        )

    def list(
        self,
        workflow_id: str,
        *,
        limit: int | None = None,
        offset: int | None = None,
        last_id: int | None = None,
        status: str | None = None,
    ) -> list[WorkflowAttempt]:
        params = compact(limit=limit or None, offset=offset or None, last_id=last_id or None, status=status or None)
        resp = self._transport.request_json(
            "GET", self._base(workflow_id), api=API.WORKFLOW, params=params, into=WorkflowAttemptListResponse
        )
        return resp.attempts if resp else []

    def get(self, workflow_id: str, attempt_id: str) -> WorkflowAttempt:
        attempt_id = require("attempt_id", attempt_id)
        return self._transport.request_json(
            "GET", f"{self._base(workflow_id)}/{seg(attempt_id)}", api=API.WORKFLOW, into=WorkflowAttempt
        )

    def kill(self, workflow_id: str, attempt_id: str) -> None:
        attempt_id = require("attempt_id", attempt_id)
        resp = self._transport.request(
            "POST", f"{self._base(workflow_id)}/{seg(attempt_id)}/kill", api=API.WORKFLOW
        )
        if resp.status_code not in _OK:
            raise WorkflowError(
                "kill workflow attempt",
                workflow_id=workflow_id,
                attempt_id=attempt_id,
                status_code=resp.status_code,
            )

    def retry(self, workflow_id: str, attempt_id: str, params: dict[str, Any] | None = None) -> WorkflowAttempt:
        attempt_id = require("attempt_id", attempt_id)
        body = {"params": params} if params is not None else {}
        return self._transport.request_json(
            "POST",
            f"{self._base(workflow_id)}/{seg(attempt_id)}/retry",
            api=API.WORKFLOW,
            body=body,
            into=WorkflowAttempt,
        )

    def tasks(self, workflow_id: str, attempt_id: str) -> list[WorkflowTask]:
        attempt_id = require("attempt_id", attempt_id)
        resp = self._transport.request_json(
            "GET",
            f"{self._base(workflow_id)}/{seg(attempt_id)}/tasks",
            api=API.WORKFLOW,
            into=WorkflowTaskListResponse,
        )
        return resp.tasks if resp else []

    def task(self, workflow_id: str, attempt_id: str, task_id: str) -> WorkflowTask:
        attempt_id = require("attempt_id", attempt_id)
        task_id = require("task_id", task_id)
        return self._transport.request_json(
            "GET",
            f"{self._base(workflow_id)}/{seg(attempt_id)}/tasks/{seg(task_id)}",
            api=API.WORKFLOW,
            into=WorkflowTask,
        )

    def log(self, workflow_id: str, attempt_id: str) -> str:
        attempt_id = require("attempt_id", attempt_id)
        resp = self._transport.request("GET", f"{self._base(workflow_id)}/{seg(attempt_id)}/log", api=API.WORKFLOW)
        return resp.text

    def task_log(self, workflow_id: str, attempt_id: str, task_id: str) -> str:
        attempt_id = require("attempt_id", attempt_id)
        task_id = require("task_id", task_id)
        resp = self._transport.request(
            "GET",
            f"{self._base(workflow_id)}/{seg(attempt_id)}/tasks/{seg(task_id)}/log",
            api=API.WORKFLOW,
        )
        return resp.text


class SchedulesService(BaseService):
    @staticmethod
    def _base(workflow_id: str) -> str:
        return f"api/workflows/{seg(require('workflow_id', workflow_id))}/schedule"

    def get(self, workflow_id: str) -> WorkflowSchedule:
        return self._transport.request_json("GET", self._base(workflow_id), api=API.WORKFLOW, into=WorkflowSchedule)

    def enable(self, workflow_id: str) -> WorkflowSchedule:
        return self._transport.request_json(
            "POST", f"{self._base(workflow_id)}/enable", api=API.WORKFLOW, into=WorkflowSchedule
        )

    def disable(self, workflow_id: str) -> WorkflowSchedule:
        return self._transport.request_json(
            "POST", f"{self._base(workflow_id)}/disable", api=API.WORKFLOW, into=WorkflowSchedule
        )

    def update(self, workflow_id: str, cron: str, timezone: str, delay: int = 0) -> WorkflowSchedule:
        """Replace cron, timezone and delay (seconds) of a schedule."""

        path = self._base(workflow_id)
        validate_cron_expression(cron)
        if not timezone:
            raise InvalidArgumentError("timezone", timezone, "cannot be empty")
        if delay < 0:
            raise InvalidArgumentError("delay", delay, "cannot be negative")
        body = {"cron": cron, "timezone": timezone, "delay": delay}
        return self._transport.request_json("PUT", path, api=API.WORKFLOW, body=body, into=WorkflowSchedule)


class ProjectsService(BaseService):
    def list(self) -> list[WorkflowProject]:
        resp = self._transport.request_json("GET", "api/projects", api=API.WORKFLOW, into=WorkflowProjectListResponse)
        return resp.projects if resp else []

    def get(self, project_id: str) -> WorkflowProject:
        project_id = require("project_id", project_id)
        return self._transport.request_json(
            "GET", f"api/projects/{seg(project_id)}", api=API.WORKFLOW, into=WorkflowProject
        )

    def get_by_name(self, name: str) -> WorkflowProject:
        """Server-side name lookup (`?name=`); the first match wins."""

        name = require("name", name)
        resp = self._transport.request_json(
            "GET", "api/projects", api=API.WORKFLOW, params={"name": name}, into=WorkflowProjectListResponse
        )
        if not resp or not resp.projects:
            raise InvalidArgumentError("name", name, "no project found with this name")
        return resp.projects[0]

    def find_by_name(self, name: str) -> WorkflowProject:
        """Client-side exact match over the full listing; must be unique."""

        name = require("name", name)
        matches = [p for p in self.list() if p.name == name]
        if not matches:
            raise InvalidArgumentError("name", name, "no project found with this name")
        if len(matches) > 1:
            raise InvalidArgumentError("name", name, f"multiple projects found with this name ({len(matches)})")
        return matches[0]

    def create_from_archive(self, name: str, archive: bytes, revision: str | None = None) -> WorkflowProject:
        """Upload a tar.gz; the revision defaults to the archive's md5 hex digest."""

        name = require("name", name)
        if not archive:
            raise InvalidArgumentError("archive", "", "cannot be empty")
        revision = revision or hashlib.md5(archive).hexdigest()
        logger.debug("uploading project %s revision %s (%d bytes)", name, revision, len(archive))
        return self._transport.request_json(
            "PUT",
            "api/projects",
            api=API.WORKFLOW,
            params={"project": name, "revision": revision},
            content=archive,
            headers={"Content-Type": "application/gzip"},
            into=WorkflowProject,
        )

    def create_from_directory(
        self,
        name: str,
        directory: str | Path,
        revision: str | None = None,
        *,
        run_hooks: bool = True,
    ) -> WorkflowProject:
        """Run pre-upload hooks, pack `directory` and upload it."""

        name = require("name", name)
        if run_hooks:
            execute_pre_upload_hooks(directory)
        archive = create_tar_gz(directory)
        return self.create_from_archive(name, archive, revision)

    def workflows(self, project_id: str) -> list[Workflow]:
        project_id = require("project_id", project_id)
        resp = self._transport.request_json(
            "GET", f"api/projects/{seg(project_id)}/workflows", api=API.WORKFLOW, into=WorkflowListResponse
        )
        return resp.workflows if resp else []

    def secrets(self, project_id: str) -> list[str]:
        """Secret keys of a project; values are never returned."""

        project_id = require("project_id", project_id)
        resp = self._transport.request_json(
            "GET", f"api/projects/{seg(project_id)}/secrets", api=API.WORKFLOW, into=WorkflowProjectSecretsResponse
        )
        return sorted(resp.secrets) if resp else []

    def set_secret(self, project_id: str, key: str, value: str) -> None:
        project_id = require("project_id", project_id)
        key = require("key", key)
        resp = self._transport.request(
            "PUT",
            f"api/projects/{seg(project_id)}/secrets/{seg(key)}",
            api=API.WORKFLOW,
            body={"value": value},
        )
        if resp.status_code not in _OK:
            raise WorkflowError(
                "set project secret", project_id=project_id, status_code=resp.status_code, message=f"key={key}"
            )

    def delete_secret(self, project_id: str, key: str) -> None:
        project_id = require("project_id", project_id)
        key = require("key", key)
        resp = self._transport.request(
            "DELETE", f"api/projects/{seg(project_id)}/secrets/{seg(key)}", api=API.WORKFLOW
        )
        if resp.status_code not in _OK:
            raise WorkflowError(
                "delete project secret", project_id=project_id, status_code=resp.status_code, message=f"key={key}"
            )

    def download(self, project_id: str, revision: str | None = None) -> bytes:
        """Fetch the project archive (tar.gz bytes)."""

        project_id = require("project_id", project_id)
        resp = self._transport.request(
            "GET",
            f"api/projects/{seg(project_id)}/archive",
            api=API.WORKFLOW,
            params=compact(revision=revision or None),
            headers={"Accept": ARCHIVE_ACCEPT},
        )
        return resp.content

    def download_to_directory(
        self, project_id: str, output_dir: str | Path, revision: str | None = None
    ) -> list[Path]:
        return extract_tar_gz(self.download(project_id, revision), output_dir)

    def download_by_name_to_directory(
        self, name: str, output_dir: str | Path, revision: str | None = None
    ) -> list[Path]:
        project = self.get_by_name(name)
        return self.download_to_directory(project.id, output_dir, revision)


class WorkflowService:
    """Namespace for the workflow resources (`client.workflow`)."""

    def __init__(self, transport: Transport) -> None:
        self.workflows = WorkflowsService(transport)
        self.attempts = AttemptsService(transport)
        self.schedules = SchedulesService(transport)
        self.projects = ProjectsService(transport)
