"""Databases (`v3/database/...`)."""

from __future__ import annotations

from treasuredata.adapters.services.base import BaseService, require, seg
from treasuredata.core.domain.models import Database, DatabaseListResponse


class DatabasesService(BaseService):
    def list(self) -> list[Database]:
        resp = self._transport.request_json("GET", "v3/database/list", into=DatabaseListResponse)
        return resp.databases if resp else []

    def get(self, name: str) -> Database:
        name = require("database", name)
        return self._transport.request_json("GET", f"v3/database/show/{seg(name)}", into=Database)

    def create(self, name: str) -> Database:
        """Create a database.

        The API only echoes `{"database": name}`, so the returned model carries
        just the name; use `get()` for the full record.
        """

        name = require("database", name)
        data = self._transport.request_json("POST", f"v3/database/create/{seg(name)}") or {}
        return Database(name=str(data.get("database") or name))

    def delete(self, name: str) -> None:
        name = require("database", name)
        self._transport.request("POST", f"v3/database/delete/{seg(name)}")
