"""Bulk import sessions (`v3/bulk_import/...`).

Lifecycle: create -> upload_part (n times) -> freeze -> perform -> commit.
"""

from __future__ import annotations

from typing import IO

from treasuredata.adapters.services.base import BaseService, require, seg
from treasuredata.core.domain.models import (
    BulkImport,
    BulkImportListResponse,
    BulkImportPart,
    BulkImportPartListResponse,
    Job,
)


class BulkImportService(BaseService):
    def create(self, name: str, database: str, table: str) -> None:
        name = require("name", name)
        database = require("database", database)
        table = require("table", table)
        self._transport.request("POST", f"v3/bulk_import/create/{seg(name)}/{seg(database)}/{seg(table)}")

    def upload_part(
        self,
        name: str,
        part_name: str,
        data: bytes | IO[bytes],
        *,
        timeout: float | None = None,
    ) -> None:
        """Upload one part as multipart form field `file`."""

        name = require("name", name)
        part_name = require("part_name", part_name)
        self._transport.request(
            "PUT",
            f"v3/bulk_import/upload_part/{seg(name)}/{seg(part_name)}",
            files={"file": (part_name, data, "application/octet-stream")},
            timeout=timeout,
        )

    def delete(self, name: str) -> None:
        name = require("name", name)
        self._transport.request("POST", f"v3/bulk_import/delete/{seg(name)}")

    def show(self, name: str) -> BulkImport:
        name = require("name", name)
        return self._transport.request_json("GET", f"v3/bulk_import/show/{seg(name)}", into=BulkImport)

    def list(self) -> list[BulkImport]:
        resp = self._transport.request_json("GET", "v3/bulk_import/list", into=BulkImportListResponse)
        return resp.bulk_imports if resp else []

    def commit(self, name: str) -> None:
        name = require("name", name)
        self._transport.request("POST", f"v3/bulk_import/commit/{seg(name)}")

    def freeze(self, name: str) -> None:
        name = require("name", name)
        self._transport.request("POST", f"v3/bulk_import/freeze/{seg(name)}")

    def unfreeze(self, name: str) -> None:
        name = require("name", name)
        self._transport.request("POST", f"v3/bulk_import/unfreeze/{seg(name)}")

    def perform(self, name: str) -> Job:
        """Start the job that converts the uploaded parts."""

        name = require("name", name)
        return self._transport.request_json("POST", f"v3/bulk_import/perform/{seg(name)}", into=Job)

    def list_parts(self, name: str) -> list[BulkImportPart]:
        name = require("name", name)
        resp = self._transport.request_json(
            "GET", f"v3/bulk_import/list_parts/{seg(name)}", into=BulkImportPartListResponse
        )
        return resp.parts if resp else []
