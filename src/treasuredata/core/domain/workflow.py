"""Workflow (Digdag) models.

Workflow, attempt, session and project IDs are numeric on the server but are
serialized as strings by some endpoints and as numbers by others; they all
decode through `FlexibleID` / `FlexibleText` into plain strings.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from treasuredata.core.domain.fields import FlexibleID, FlexibleText, TDTimestamp
from treasuredata.core.domain.models import TDModel


class WorkflowProjectRef(TDModel):
    id: FlexibleID
    name: str = ""


class Workflow(TDModel):
    id: FlexibleID
    name: str = ""
    project: WorkflowProjectRef | None = None
    revision: str = ""
    status: str | None = None
    config: dict[str, Any] = Field(default_factory=dict)
    created_at: TDTimestamp | None = None
    updated_at: TDTimestamp | None = None
    last_attempt: FlexibleText = Field(default_factory=FlexibleText)
    next_schedule: TDTimestamp | None = None
    timezone: str | None = None


class WorkflowAttempt(TDModel):
    id: FlexibleID
    index: int | None = None
    workflow_id: FlexibleText = Field(default_factory=FlexibleText)
    status: str | None = None
    created_at: TDTimestamp | None = None
    finished_at: TDTimestamp | None = None
    session_id: FlexibleText = Field(default_factory=FlexibleText)
    session_uuid: str | None = None
    session_time: TDTimestamp | None = None
    params: dict[str, Any] = Field(default_factory=dict)
    log_file_size: int | None = None
    success: bool | None = None
    done: bool = False

    @property
    def state(self) -> str:
        """Readable state derived from `done`/`success` when `status` is missing."""

        if self.status:
            return self.status
        if not self.done:
            return "running"
        return "success" if self.success else "error"


class WorkflowTask(TDModel):
    id: FlexibleID
    full_name: str = ""
    parent_id: FlexibleText = Field(default_factory=FlexibleText)
    config: dict[str, Any] = Field(default_factory=dict)
    upstreams: list[FlexibleID] = Field(default_factory=list)
    is_group: bool = False
    state: str = ""
    export_params: dict[str, Any] = Field(default_factory=dict)
    store_params: dict[str, Any] = Field(default_factory=dict)
    report: Any = None
    error: dict[str, Any] | None = None
    retry_at: TDTimestamp | None = None
    started_at: TDTimestamp | None = None
    updated_at: TDTimestamp | None = None


class WorkflowSchedule(TDModel):
    id: FlexibleID
    workflow_id: FlexibleText = Field(default_factory=FlexibleText)
    cron: str | None = None
    timezone: str | None = None
    delay: int | None = None
    next_time: TDTimestamp | None = None
    next_schedule_time: TDTimestamp | None = None
    disabled_at: TDTimestamp | None = None
    created_at: TDTimestamp | None = None
    updated_at: TDTimestamp | None = None

    @property
    def enabled(self) -> bool:
        return self.disabled_at is None


class WorkflowProject(TDModel):
    id: FlexibleID
    name: str = ""
    revision: str = ""
    archive_type: str | None = Field(default=None, alias="archiveType")
    archive_md5: str | None = Field(default=None, alias="archiveMd5")
    created_at: TDTimestamp | None = Field(default=None, alias="createdAt")
    updated_at: TDTimestamp | None = Field(default=None, alias="updatedAt")
    deleted_at: TDTimestamp | None = Field(default=None, alias="deletedAt")


class WorkflowListResponse(TDModel):
    workflows: list[Workflow] = Field(default_factory=list)


class WorkflowAttemptListResponse(TDModel):
    attempts: list[WorkflowAttempt] = Field(default_factory=list)


class WorkflowTaskListResponse(TDModel):
    tasks: list[WorkflowTask] = Field(default_factory=list)


class WorkflowProjectListResponse(TDModel):
    projects: list[WorkflowProject] = Field(default_factory=list)


class WorkflowProjectSecretsResponse(TDModel):
    secrets: dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Pre-upload hooks (.td-hooks.json)
# ---------------------------------------------------------------------------


class WorkflowHook(BaseModel):
    """One pre-upload hook entry.

    `timeout` is in seconds; 0 means the default (60 s).
    """

    name: str = ""
    command: list[str] = Field(default_factory=list)
    timeout: int = 0
    fail_on_error: bool = False
    working_dir: str = ""


class WorkflowHooksConfig(BaseModel):
    pre_upload_hooks: list[WorkflowHook] = Field(default_factory=list)
