"""Domain models for the v3 API (pydantic v2).

Why pydantic in the domain:
- Strict validation and self-documenting fields (Field) without coupling the
  core to I/O libraries.
- The flexible field types plug straight into model validation, so every
  heterogeneous wire encoding is absorbed in one place.

Note:
- These models describe *what* the platform returns, not *how* it is fetched.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

from treasuredata.core.domain.fields import FlexibleID, FlexibleInt, FlexibleText, TDTimestamp, loads


class TDModel(BaseModel):
    """Base for every response model.

    Unknown keys are ignored (the APIs add fields over time) and aliased
    fields accept either the wire name or the Python name.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @classmethod
    def model_validate_json(cls, json_data: str | bytes | bytearray, **kwargs: Any) -> TDModel:
        """Parse with `fields.loads` so flexible text keeps exact number literals."""

        return cls.model_validate(loads(json_data), **kwargs)


class QueryType(str, Enum):
    HIVE = "hive"
    TRINO = "trino"
    PRESTO = "presto"


class ResultFormat(str, Enum):
    JSON = "json"
    CSV = "csv"
    TSV = "tsv"
    JSONL = "jsonl"
    MSGPACK = "msgpack"


# ---------------------------------------------------------------------------
# Databases & tables
# ---------------------------------------------------------------------------


class Database(TDModel):
    name: str = Field(..., min_length=1, description="Database name.")
    created_at: TDTimestamp | None = None
    updated_at: TDTimestamp | None = None
    count: int | None = Field(default=0, description="Approximate record count.")
    organization: str | None = None
    permission: str = Field(default="", description="Permission of the caller: administrator, full_access, import_only, query_only.")
    delete_protected: bool = False
    id: FlexibleText = Field(default_factory=FlexibleText)


class DatabaseListResponse(TDModel):
    databases: list[Database] = Field(default_factory=list)


class Table(TDModel):
    id: int | None = None
    name: str = Field(..., min_length=1)
    database: str = ""
    type: str = Field(default="log", description="Table type (log or item).")
    count: int | None = 0
    created_at: TDTimestamp | None = None
    updated_at: TDTimestamp | None = None
    estimated_storage_size: int | None = 0
    last_log_timestamp: FlexibleInt = Field(
        default=None,
        description="Epoch of the newest record; the API sends it as number or numeric string.",
    )
    delete_protected: bool = False
    table_schema: str | None = Field(
        default=None,
        alias="schema",
        description="Schema as JSON text: [[name, type, alias?], ...].",
    )
    expire_days: int | None = None
    include_v: bool = False
    counter_updated_at: TDTimestamp | None = None

    def schema_columns(self) -> list[tuple[str, str]]:
        """Parse `table_schema` into (name, type) pairs. Empty when unset."""

        if not self.table_schema:
            return []
        raw = json.loads(self.table_schema)
        return [(str(col[0]), str(col[1])) for col in raw if isinstance(col, list) and len(col) >= 2]


class TableListResponse(TDModel):
    database: str = ""
    tables: list[Table] = Field(default_factory=list)


class TableCreateResponse(TDModel):
    database: str
    table: str
    type: str = "log"


# ---------------------------------------------------------------------------
# Jobs & queries
# ---------------------------------------------------------------------------


class JobDebug(TDModel):
    cmdout: str | None = None
    stderr: str | None = None


class Job(TDModel):
    """A query or export job.

    `query` is SQL text for most engines but an object for some job types;
    both decode to text (`Job.query.as_text()`).
    """

    job_id: FlexibleID = Field(..., description="Job identifier (string or number on the wire).")
    type: str = ""
    database: str = ""
    query: FlexibleText = Field(default_factory=FlexibleText)
    status: str = ""
    url: str = ""
    user_name: str = ""
    created_at: TDTimestamp | None = None
    updated_at: TDTimestamp | None = None
    start_at: TDTimestamp | None = None
    end_at: TDTimestamp | None = None
    duration: int | None = None
    cpu_time: int | None = None
    result_size: int | None = None
    num_records: int | None = None
    priority: int | None = 0
    retry_limit: int | None = 0
    organization: str | None = None
    hive_result_schema: str | None = None
    result: str | None = None
    linked_result_export_job_id: FlexibleText = Field(default_factory=FlexibleText)
    result_export_target_job_id: FlexibleText = Field(default_factory=FlexibleText)
    debug: JobDebug | None = None

    @property
    def finished(self) -> bool:
        return self.status in ("success", "error", "killed")


class JobListResponse(TDModel):
    count: int = 0
    from_: int | None = Field(default=None, alias="from")
    to: int | None = None
    jobs: list[Job] = Field(default_factory=list)


class JobStatus(TDModel):
    job_id: FlexibleID
    status: str = ""
    cpu_time: int | None = None
    result_size: int | None = None
    duration: int | None = None
    created_at: TDTimestamp | None = None
    updated_at: TDTimestamp | None = None
    start_at: TDTimestamp | None = None
    end_at: TDTimestamp | None = None
    num_records: int | None = None


class IssueQueryOptions(BaseModel):
    """Request body for `v3/job/issue`; unset fields are omitted."""

    query: str = Field(..., min_length=1)
    priority: int | None = Field(default=None, ge=-2, le=2)
    retry_limit: int | None = Field(default=None, ge=0)
    result: str | None = None
    domain_key: str | None = None
    pool_name: str | None = None
    type: str | None = None
    engine_version: str | None = None


class IssueQueryResponse(TDModel):
    job: FlexibleText = Field(default_factory=FlexibleText)
    job_id: FlexibleID
    database: str = ""


# ---------------------------------------------------------------------------
# Result destinations
# ---------------------------------------------------------------------------


class Result(TDModel):
    name: str
    url: str = ""
    id: FlexibleText = Field(default_factory=FlexibleText)
    type: str = ""
    settings: dict[str, Any] = Field(default_factory=dict)


class ResultListResponse(TDModel):
    results: list[Result] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(TDModel):
    id: int | None = None
    name: str = ""
    email: str = ""
    account_id: int | None = None
    created_at: TDTimestamp | None = None
    updated_at: TDTimestamp | None = None
    gravatar_url: str = ""
    administrator: bool = False
    me: bool = False
    restricted: bool = False
    email_verified: bool = False


class UserListResponse(TDModel):
    users: list[User] = Field(default_factory=list)


class APIKey(TDModel):
    key: str
    type: str = ""
    created_at: TDTimestamp | None = None


class APIKeyListResponse(TDModel):
    apikeys: list[APIKey] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Bulk import
# ---------------------------------------------------------------------------


class BulkImport(TDModel):
    name: str
    database: str = ""
    table: str = ""
    status: str = ""
    job_id: FlexibleText = Field(default_factory=FlexibleText)
    valid_records: int | None = None
    error_records: int | None = None
    valid_parts: int | None = None
    error_parts: int | None = None
    upload_frozen: bool = False
    created_at: TDTimestamp | None = None


class BulkImportListResponse(TDModel):
    bulk_imports: list[BulkImport] = Field(default_factory=list)


class BulkImportPart(TDModel):
    name: str
    size: int | None = None


class BulkImportPartListResponse(TDModel):
    parts: list[BulkImportPart] = Field(default_factory=list)
